"""
API tests for the customer complaint workflow and customer notice.
"""

import pytest
from httpx import AsyncClient

from qms.db.models import QATicket

DETAILS = {
    "ownerId": "300",
    "invoiceNumber": "INV-88",
    "category": "Product Quality",
    "subCategory": "Damaged",
    "issueDescription": "Crushed corners on 3 pallets",
    "defectiveQuantity": 1500,
    "pricePerUnit": 0.4,
}
RCA = {"rootCause": "Strapping too tight", "correctiveAction": "Adjust strapper tension", "assignedToUserId": "400"}


@pytest.fixture
async def complaint_setup(test_db, users, configure):
    await configure(
        "complaints",
        {
            "returnAddresses": [
                {"id": "addr-1", "label": "Main Warehouse", "address": "123 Packaging Way, Frankston, TX 75763"}
            ],
            "categories": [{"id": "ccat-1", "name": "Product Quality", "subCategories": ["Damaged", "Wrong Print"]}],
        },
    )
    test_db.add(QATicket(id="t-1", ticket_number="JT-5001", item_number="CTN-1001", customer_name="Acme Foods",
                         process_type="CARTON", created_by_id="400", status="COMPLETED"))
    await test_db.commit()
    return users


async def _log(client: AsyncClient, headers: dict) -> dict:
    resp = await client.post("/api/v1/complaints", json={"ticketId": "t-1"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestComplaintWorkflow:
    async def test_logged_against_ticket_customer(self, client: AsyncClient, complaint_setup, auth):
        complaint = await _log(client, auth(complaint_setup["manager"]))
        assert complaint["stage"] == "DETAILS"
        assert complaint["customerId"] == "Acme Foods"
        assert complaint["revision"] == 1

    async def test_unknown_ticket(self, client: AsyncClient, complaint_setup, auth):
        resp = await client.post("/api/v1/complaints", json={"ticketId": "nope"}, headers=auth(complaint_setup["manager"]))
        assert resp.status_code == 404

    async def test_details_compute_cost(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        resp = await client.post(f"/api/v1/complaints/{complaint['id']}/details", json=DETAILS, headers=headers)
        assert resp.json()["stage"] == "CONTAINMENT"
        assert resp.json()["totalCost"] == pytest.approx(600.0)

    async def test_details_list_every_missing_field(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        resp = await client.post(
            f"/api/v1/complaints/{complaint['id']}/details", json={"invoiceNumber": "INV-88"}, headers=headers
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == [
            "Owner", "Category", "Sub-category", "Description", "Defective quantity", "Price per unit",
        ]

    async def test_return_requires_known_address(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        await client.post(f"/api/v1/complaints/{complaint['id']}/details", json=DETAILS, headers=headers)

        no_address = await client.post(
            f"/api/v1/complaints/{complaint['id']}/containment",
            json={"containmentAction": "RETURN_FOR_CREDIT"},
            headers=headers,
        )
        assert no_address.status_code == 422
        assert no_address.json()["error"]["details"]["missing"] == ["Return address"]

        bad_address = await client.post(
            f"/api/v1/complaints/{complaint['id']}/containment",
            json={"containmentAction": "RETURN_FOR_CREDIT", "selectedReturnAddressId": "addr-9"},
            headers=headers,
        )
        assert bad_address.status_code == 422

    async def test_steps_must_follow_stage_order(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        resp = await client.post(f"/api/v1/complaints/{complaint['id']}/rca", json=RCA, headers=headers)
        assert resp.status_code == 409

    async def test_full_cycle_and_reopen(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        cid = complaint["id"]
        await client.post(f"/api/v1/complaints/{cid}/details", json=DETAILS, headers=headers)
        contained = await client.post(
            f"/api/v1/complaints/{cid}/containment",
            json={"containmentAction": "RETURN_FOR_REPLACEMENT", "selectedReturnAddressId": "addr-1",
                  "isMaterialReturned": True},
            headers=headers,
        )
        assert contained.json()["stage"] == "RCA"

        closed = await client.post(f"/api/v1/complaints/{cid}/rca", json=RCA, headers=headers)
        assert closed.json()["stage"] == "CLOSED"
        assert closed.json()["closedAt"] is not None

        reopened = await client.post(f"/api/v1/complaints/{cid}/reopen", headers=headers)
        assert reopened.json()["stage"] == "DETAILS"
        assert reopened.json()["revision"] == 2
        assert reopened.json()["closedAt"] is None

        listed = await client.get("/api/v1/complaints", params={"stage": "DETAILS"}, headers=headers)
        assert [c["id"] for c in listed.json()] == [cid]


class TestNotice:
    async def test_notice_needs_containment(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        resp = await client.get(f"/api/v1/complaints/{complaint['id']}/notice", headers=headers)
        assert resp.status_code == 409

    async def test_notice_pdf(self, client: AsyncClient, complaint_setup, auth):
        headers = auth(complaint_setup["manager"])
        complaint = await _log(client, headers)
        cid = complaint["id"]
        await client.post(f"/api/v1/complaints/{cid}/details", json=DETAILS, headers=headers)
        await client.post(
            f"/api/v1/complaints/{cid}/containment",
            json={"containmentAction": "RETURN_FOR_CREDIT", "selectedReturnAddressId": "addr-1"},
            headers=headers,
        )
        resp = await client.get(f"/api/v1/complaints/{cid}/notice", headers=headers)
        assert resp.status_code == 200
        assert resp.content.startswith(b"%PDF")

    async def test_requires_sign_in(self, client: AsyncClient, complaint_setup):
        resp = await client.get("/api/v1/complaints")
        assert resp.status_code == 401
