"""
API tests for QA job tickets, staged inspections, job release and the COA.
"""

import pytest
from httpx import AsyncClient

from qms.db.models import MasterItem

GLUE_FORM = {
    "id": "frm-1",
    "name": "Carton Glue Line Inspection",
    "processType": "CARTON",
    "applicableStages": ["MAKE_READY", "IN_PROCESS", "FINAL"],
    "fields": [
        {"id": "f1", "label": "Glue Adhesion Test", "type": "PASS_FAIL_NA", "isMandatory": True, "failOptions": ["FAIL"]},
        {"id": "f2", "label": "Barcode Scan", "type": "PASS_FAIL_NA", "isMandatory": True, "failOptions": ["FAIL"]},
        {"id": "f3", "label": "Coating", "type": "BUTTON_GROUP", "options": ["Gloss", "Matte", "Smeared"],
         "failOptions": ["Smeared"]},
    ],
}
PRINT_FORM = {
    "id": "frm-2",
    "name": "Flexo Print Check",
    "processType": "FLEXO",
    "applicableStages": ["IN_PROCESS"],
    "fields": [{"id": "p1", "label": "Registration", "type": "TEXT"}],
}

PASSING = {"f1": "PASS", "f2": "PASS", "f3": "Gloss"}


@pytest.fixture
async def qa_setup(test_db, users, configure):
    await configure("qa", {"forms": [GLUE_FORM, PRINT_FORM], "inspectionGuide": "Guards on."})
    await configure("ncr", {"ownerUserIds": ["300"], "rcaCompleterUserIds": ["400"], "categories": []})
    test_db.add(MasterItem(item_number="CTN-1001", description="Folding carton", status="ACTIVE"))
    await test_db.commit()
    return users


async def open_ticket(client: AsyncClient, headers: dict, number: str = "JT-5001", **extra) -> dict:
    payload = {"ticketNumber": number, "itemNumber": "CTN-1001", "processType": "CARTON", "customerName": "Acme Foods"}
    payload.update(extra)
    resp = await client.post("/api/v1/qa/tickets", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def inspect(client: AsyncClient, headers: dict, ticket_id: str, stage: str, values=None, form_id="frm-1"):
    return await client.post(
        f"/api/v1/qa/tickets/{ticket_id}/inspections",
        json={"formId": form_id, "stage": stage, "values": PASSING if values is None else values},
        headers=headers,
    )


class TestTickets:
    async def test_forms_default_to_process_type(self, client: AsyncClient, qa_setup, auth):
        ticket = await open_ticket(client, auth(qa_setup["operator"]))
        assert ticket["applicableFormIds"] == ["frm-1"]
        assert ticket["status"] == "OPEN"
        assert ticket["isNewItemEntry"] is False

    async def test_unknown_item_is_flagged_new(self, client: AsyncClient, qa_setup, auth):
        ticket = await open_ticket(client, auth(qa_setup["operator"]), itemNumber="CTN-9999")
        assert ticket["isNewItemEntry"] is True

    async def test_duplicate_ticket_number(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        await open_ticket(client, headers)
        resp = await client.post(
            "/api/v1/qa/tickets",
            json={"ticketNumber": "JT-5001", "itemNumber": "CTN-1001", "processType": "CARTON"},
            headers=headers,
        )
        assert resp.status_code == 409

    async def test_toggle_form(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        added = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/forms/frm-2/toggle", headers=headers)
        assert added.json()["applicableFormIds"] == ["frm-1", "frm-2"]
        removed = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/forms/frm-1/toggle", headers=headers)
        assert removed.json()["applicableFormIds"] == ["frm-2"]


class TestInspections:
    async def test_passing_record_moves_ticket_in_progress(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        resp = await inspect(client, headers, ticket["id"], "MAKE_READY")
        assert resp.status_code == 201
        assert resp.json()["isNcrTriggered"] is False

        current = await client.get(f"/api/v1/qa/tickets/{ticket['id']}", headers=headers)
        assert current.json()["status"] == "IN_PROGRESS"

    async def test_single_make_ready_and_final(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        await inspect(client, headers, ticket["id"], "MAKE_READY")
        again = await inspect(client, headers, ticket["id"], "MAKE_READY")
        assert again.status_code == 409

        first = await inspect(client, headers, ticket["id"], "IN_PROCESS")
        second = await inspect(client, headers, ticket["id"], "IN_PROCESS")
        assert first.status_code == second.status_code == 201

    async def test_mandatory_fields(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        resp = await inspect(client, headers, ticket["id"], "MAKE_READY", values={"f1": "PASS"})
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Barcode Scan"]

    async def test_form_must_apply_to_ticket(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        resp = await inspect(client, headers, ticket["id"], "IN_PROCESS", values={"p1": "ok"}, form_id="frm-2")
        assert resp.status_code == 409

    async def test_fail_option_locks_ticket_and_opens_ncr(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        resp = await inspect(client, headers, ticket["id"], "IN_PROCESS",
                             values={"f1": "PASS", "f2": "PASS", "f3": "Smeared"})
        assert resp.json()["isNcrTriggered"] is True

        current = await client.get(f"/api/v1/qa/tickets/{ticket['id']}", headers=headers)
        assert current.json()["status"] == "LOCKED_NCR"

        ncrs = await client.get("/api/v1/ncr", params={"ticketId": ticket["id"]}, headers=headers)
        assert len(ncrs.json()) == 1
        assert ncrs.json()[0]["inspectionType"] == "Carton Glue Line Inspection"
        assert ncrs.json()[0]["inspectionId"] == resp.json()["id"]
        assert ncrs.json()[0]["status"] == "OPEN"

        # Later passing records keep the lock
        await inspect(client, headers, ticket["id"], "IN_PROCESS")
        still = await client.get(f"/api/v1/qa/tickets/{ticket['id']}", headers=headers)
        assert still.json()["status"] == "LOCKED_NCR"


class TestRelease:
    async def test_release_requires_final_records(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        await inspect(client, headers, ticket["id"], "MAKE_READY")

        early = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/release", headers=headers)
        assert early.status_code == 422
        assert early.json()["error"]["details"]["missing"] == ["Carton Glue Line Inspection"]

        await inspect(client, headers, ticket["id"], "FINAL")
        released = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/release", headers=headers)
        assert released.status_code == 200
        assert released.json()["status"] == "COMPLETED"

        after = await inspect(client, headers, ticket["id"], "IN_PROCESS")
        assert after.status_code == 409

    async def test_locked_ticket_waits_for_closed_ncrs(self, client: AsyncClient, qa_setup, auth):
        operator, owner = auth(qa_setup["operator"]), auth(qa_setup["manager"])
        ticket = await open_ticket(client, operator)
        await inspect(client, operator, ticket["id"], "FINAL", values={"f1": "FAIL", "f2": "PASS"})

        blocked = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/release", headers=operator)
        assert blocked.status_code == 409

        ncr_id = (await client.get("/api/v1/ncr", params={"ticketId": ticket["id"]}, headers=operator)).json()[0]["id"]
        await client.post(
            f"/api/v1/ncr/{ncr_id}/disposition",
            json={"dispositionAction": "REWORK", "justification": "Re-glue", "defectiveQuantity": 500,
                  "pricePerThousand": 12.5, "ncrOwnerId": "300", "category": "Process Error"},
            headers=owner,
        )
        await client.put(f"/api/v1/ncr/{ncr_id}/rca", json={"assignedToUserId": "400"}, headers=owner)
        await client.post(
            f"/api/v1/ncr/{ncr_id}/rca/submit",
            json={"rootCause": "Glue pot cold", "correctiveAction": "Add warm-up check"},
            headers=operator,
        )
        closed = await client.post(f"/api/v1/ncr/{ncr_id}/review", json={"decision": "CLOSE"}, headers=owner)
        assert closed.json()["status"] == "CLOSED"

        released = await client.post(f"/api/v1/qa/tickets/{ticket['id']}/release", headers=operator)
        assert released.json()["status"] == "COMPLETED"

    async def test_coa_pdf(self, client: AsyncClient, qa_setup, auth):
        headers = auth(qa_setup["operator"])
        ticket = await open_ticket(client, headers)
        await inspect(client, headers, ticket["id"], "FINAL")
        resp = await client.get(f"/api/v1/qa/tickets/{ticket['id']}/coa", headers=headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "COA_JT-5001.pdf" in resp.headers["content-disposition"]
