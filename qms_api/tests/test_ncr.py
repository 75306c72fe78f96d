"""
API tests for the nonconformance workflow: disposition, RCA and owner review.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from qms.db.models import NCRRecord, QAInspectionRecord
from qms.services.ncr import rca_status_label

COMPLETE_DISPOSITION = {
    "dispositionAction": "DISCARD",
    "justification": "Print smeared beyond tolerance",
    "defectiveQuantity": 2000,
    "pricePerThousand": 45.0,
    "ncrOwnerId": "300",
    "category": "Material Defect",
    "subCategory": "Ink Issue",
}


@pytest.fixture
async def ncr_setup(test_db, users, configure):
    await configure("ncr", {"ownerUserIds": ["300"], "rcaCompleterUserIds": ["400"], "categories": []})
    test_db.add(NCRRecord(id="ncr-1", ticket_id="t-1", inspection_type="Flexo Print Check", inspector_id="400",
                          status="OPEN"))
    await test_db.commit()
    return users


class TestDisposition:
    async def test_incomplete_disposition_leaves_ncr_open(self, client: AsyncClient, ncr_setup, auth):
        headers = auth(ncr_setup["manager"])
        partial = {k: v for k, v in COMPLETE_DISPOSITION.items() if k not in ("category", "ncrOwnerId")}
        resp = await client.post("/api/v1/ncr/ncr-1/disposition", json=partial, headers=headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["NCR owner", "Category"]

        current = await client.get("/api/v1/ncr/ncr-1", headers=headers)
        assert current.json()["status"] == "OPEN"
        assert current.json()["dispositionAction"] is None

    async def test_zero_quantity_is_a_valid_answer(self, client: AsyncClient, ncr_setup, auth):
        payload = dict(COMPLETE_DISPOSITION, defectiveQuantity=0)
        resp = await client.post("/api/v1/ncr/ncr-1/disposition", json=payload, headers=auth(ncr_setup["manager"]))
        assert resp.status_code == 200
        assert resp.json()["totalCost"] == 0

    async def test_owner_must_be_configured(self, client: AsyncClient, ncr_setup, auth):
        payload = dict(COMPLETE_DISPOSITION, ncrOwnerId="400")
        resp = await client.post("/api/v1/ncr/ncr-1/disposition", json=payload, headers=auth(ncr_setup["manager"]))
        assert resp.status_code == 422

    async def test_complete_disposition(self, client: AsyncClient, ncr_setup, auth):
        resp = await client.post(
            "/api/v1/ncr/ncr-1/disposition", json=COMPLETE_DISPOSITION, headers=auth(ncr_setup["manager"])
        )
        body = resp.json()
        assert body["status"] == "PENDING_RCA"
        assert body["dispositionedBy"] == "300"
        assert body["totalCost"] == 2000 * 45.0

        again = await client.post(
            "/api/v1/ncr/ncr-1/disposition", json=COMPLETE_DISPOSITION, headers=auth(ncr_setup["manager"])
        )
        assert again.status_code == 409


class TestRootCause:
    async def _dispositioned(self, client, headers):
        await client.post("/api/v1/ncr/ncr-1/disposition", json=COMPLETE_DISPOSITION, headers=headers)

    async def test_only_owner_assigns(self, client: AsyncClient, ncr_setup, auth):
        await self._dispositioned(client, auth(ncr_setup["manager"]))
        resp = await client.put(
            "/api/v1/ncr/ncr-1/rca", json={"assignedToUserId": "400"}, headers=auth(ncr_setup["operator"])
        )
        assert resp.status_code == 403

    async def test_rca_label_counts_days(self, client: AsyncClient, ncr_setup, auth):
        owner = auth(ncr_setup["manager"])
        await self._dispositioned(client, owner)
        due = (date.today() + timedelta(days=5)).isoformat()
        resp = await client.put(
            "/api/v1/ncr/ncr-1/rca", json={"assignedToUserId": "400", "rcaDueDate": due}, headers=owner
        )
        assert resp.json()["rcaStatusLabel"] == "IN PROCESS (5 DAYS LEFT)"

    async def test_submit_requires_findings(self, client: AsyncClient, ncr_setup, auth):
        owner, assignee = auth(ncr_setup["manager"]), auth(ncr_setup["operator"])
        await self._dispositioned(client, owner)
        await client.put("/api/v1/ncr/ncr-1/rca", json={"assignedToUserId": "400"}, headers=owner)

        resp = await client.post("/api/v1/ncr/ncr-1/rca/submit", json={"rootCause": "Worn anilox"}, headers=assignee)
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Corrective action"]

    async def test_reject_then_close(self, client: AsyncClient, ncr_setup, auth):
        owner, assignee = auth(ncr_setup["manager"]), auth(ncr_setup["operator"])
        await self._dispositioned(client, owner)
        await client.put("/api/v1/ncr/ncr-1/rca", json={"assignedToUserId": "400"}, headers=owner)
        findings = {"rootCause": "Worn anilox", "correctiveAction": "Replace roll"}

        submitted = await client.post("/api/v1/ncr/ncr-1/rca/submit", json=findings, headers=assignee)
        assert submitted.json()["status"] == "PENDING_REVIEW"
        assert submitted.json()["rcaStatusLabel"] == "PENDING OWNER REVIEW"

        not_owner = await client.post("/api/v1/ncr/ncr-1/review", json={"decision": "CLOSE"}, headers=assignee)
        assert not_owner.status_code == 403

        rejected = await client.post("/api/v1/ncr/ncr-1/review", json={"decision": "REJECT"}, headers=owner)
        assert rejected.json()["status"] == "PENDING_RCA"

        await client.post("/api/v1/ncr/ncr-1/rca/submit", json=findings, headers=assignee)
        closed = await client.post("/api/v1/ncr/ncr-1/review", json={"decision": "CLOSE"}, headers=owner)
        body = closed.json()
        assert body["status"] == "CLOSED"
        assert body["resolvedByUserId"] == "400"
        assert body["rcaStatusLabel"] == "COMPLETE"

        open_only = await client.get("/api/v1/ncr", params={"openOnly": "true"}, headers=owner)
        assert open_only.json() == []


class TestSync:
    async def test_failed_inspections_without_ncr_get_one(self, client: AsyncClient, ncr_setup, test_db, auth):
        test_db.add_all(
            [
                QAInspectionRecord(id="ins-1", ticket_id="t-2", form_id="gone", inspector_id="400",
                                   stage="FINAL", values={}, is_ncr_triggered=True),
                QAInspectionRecord(id="ins-2", ticket_id="t-2", form_id="gone", inspector_id="400",
                                   stage="MAKE_READY", values={}, is_ncr_triggered=False),
            ]
        )
        await test_db.commit()

        resp = await client.post("/api/v1/ncr/sync", headers=auth(ncr_setup["admin"]))
        assert resp.json()["message"] == "1 NCR(s) created"
        again = await client.post("/api/v1/ncr/sync", headers=auth(ncr_setup["admin"]))
        assert again.json()["message"] == "0 NCR(s) created"

        ncrs = await client.get("/api/v1/ncr", params={"ticketId": "t-2"}, headers=auth(ncr_setup["admin"]))
        assert ncrs.json()[0]["inspectionType"] == "Quality Inspection"


def test_overdue_label():
    ncr = NCRRecord(status="PENDING_RCA", rca_due_date=date(2024, 3, 1))
    assert rca_status_label(ncr, today=date(2024, 3, 4)) == "OVERDUE (3 DAYS)"
    assert rca_status_label(ncr, today=date(2024, 3, 1)) == "IN PROCESS (0 DAYS LEFT)"
