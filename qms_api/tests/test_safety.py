"""
API tests for injury incidents, near misses and safety observations.
"""

from datetime import date

import pytest
from httpx import AsyncClient


@pytest.fixture
async def safety_setup(users, configure):
    await configure("safety", {"safetyApprovers": ["200"], "safetyGuide": "Call 911 first."})
    return users


class TestIncidents:
    async def test_report_numbers_follow_year_sequence(self, client: AsyncClient, safety_setup, auth):
        headers = auth(safety_setup["manager"])
        payload = {"injuredUserId": "400", "locationId": "1", "severity": 4, "treatmentType": "FIRST_AID"}
        first = await client.post("/api/v1/safety/incidents", json=payload, headers=headers)
        second = await client.post("/api/v1/safety/incidents", json=payload, headers=headers)
        year = date.today().year
        assert first.status_code == 201
        assert first.json()["reportNumber"] == f"INC-{year}-001"
        assert second.json()["reportNumber"] == f"INC-{year}-002"
        assert first.json()["status"] == "SUBMITTED"
        assert first.json()["reportedByUserId"] == "300"

    async def test_self_filing_is_refused(self, client: AsyncClient, safety_setup, auth):
        resp = await client.post(
            "/api/v1/safety/incidents",
            json={"injuredUserId": "400", "locationId": "1"},
            headers=auth(safety_setup["operator"]),
        )
        assert resp.status_code == 422
        assert "Self-filing" in resp.json()["error"]["message"]

    async def test_required_fields(self, client: AsyncClient, safety_setup, auth):
        resp = await client.post("/api/v1/safety/incidents", json={}, headers=auth(safety_setup["manager"]))
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Injured person", "Location"]

    async def test_status_change_needs_safety_approver(self, client: AsyncClient, safety_setup, auth):
        created = await client.post(
            "/api/v1/safety/incidents",
            json={"injuredUserId": "400", "locationId": "1"},
            headers=auth(safety_setup["manager"]),
        )
        incident_id = created.json()["id"]

        refused = await client.post(
            f"/api/v1/safety/incidents/{incident_id}/status",
            json={"status": "APPROVED"},
            headers=auth(safety_setup["manager"]),
        )
        assert refused.status_code == 403

        approved = await client.post(
            f"/api/v1/safety/incidents/{incident_id}/status",
            json={"status": "APPROVED"},
            headers=auth(safety_setup["admin"]),
        )
        assert approved.json()["status"] == "APPROVED"


class TestNearMisses:
    async def test_report_and_filter(self, client: AsyncClient, safety_setup, auth):
        headers = auth(safety_setup["operator"])
        resp = await client.post(
            "/api/v1/safety/near-misses",
            json={"type": "IFO", "eventPersonName": "Forklift driver", "locationId": "2", "details": "No horn at corner"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json()["reportNumber"].startswith("NM-")
        assert resp.json()["eventDate"] == date.today().isoformat()

        listed = await client.get("/api/v1/safety/near-misses", params={"locationId": "2"}, headers=headers)
        assert [n["id"] for n in listed.json()] == [resp.json()["id"]]
        empty = await client.get("/api/v1/safety/near-misses", params={"locationId": "1"}, headers=headers)
        assert empty.json() == []

    async def test_missing_details(self, client: AsyncClient, safety_setup, auth):
        resp = await client.post(
            "/api/v1/safety/near-misses", json={"locationId": "1"}, headers=auth(safety_setup["operator"])
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Person involved", "Details"]


class TestObservations:
    async def test_action_round_trip(self, client: AsyncClient, safety_setup, auth):
        obs = await client.post(
            "/api/v1/safety/observations",
            json={"locationId": "1", "specificLocation": "Dock 3", "details": "Pallets stacked in walkway"},
            headers=auth(safety_setup["operator"]),
        )
        obs_id = obs.json()["id"]

        assigned = await client.post(
            f"/api/v1/safety/observations/{obs_id}/action",
            json={"assignedActionUserId": "300", "actionDescription": "Clear walkway"},
            headers=auth(safety_setup["admin"]),
        )
        assert assigned.status_code == 200
        due = date.fromisoformat(assigned.json()["actionDueDate"])
        assert (due - date.today()).days == 30

        not_mine = await client.post(
            f"/api/v1/safety/observations/{obs_id}/action/complete",
            json={"actionTaken": "Moved pallets"},
            headers=auth(safety_setup["operator"]),
        )
        assert not_mine.status_code == 403

        done = await client.post(
            f"/api/v1/safety/observations/{obs_id}/action/complete",
            json={"actionTaken": "Moved pallets"},
            headers=auth(safety_setup["manager"]),
        )
        assert done.json()["status"] == "ACTION_PENDING_REVIEW"
        assert done.json()["actionTaken"] == "Moved pallets"
        assert done.json()["actionCompletedAt"] is not None

    async def test_closed_observation_cannot_get_action(self, client: AsyncClient, safety_setup, auth):
        obs = await client.post(
            "/api/v1/safety/observations",
            json={"locationId": "1", "details": "Spill"},
            headers=auth(safety_setup["operator"]),
        )
        obs_id = obs.json()["id"]
        await client.post(
            f"/api/v1/safety/observations/{obs_id}/status", json={"status": "CLOSED"}, headers=auth(safety_setup["admin"])
        )
        resp = await client.post(
            f"/api/v1/safety/observations/{obs_id}/action",
            json={"assignedActionUserId": "300"},
            headers=auth(safety_setup["admin"]),
        )
        assert resp.status_code == 409

    async def test_config_round_trip(self, client: AsyncClient, safety_setup, auth):
        cfg = await client.get("/api/v1/safety/config", headers=auth(safety_setup["operator"]))
        assert cfg.json()["safetyApprovers"] == ["200"]

        refused = await client.put(
            "/api/v1/safety/config",
            json={"safetyApprovers": ["300"]},
            headers=auth(safety_setup["operator"]),
        )
        assert refused.status_code == 403

        updated = await client.put(
            "/api/v1/safety/config",
            json={"safetyApprovers": ["200", "300"], "safetyGuide": "Updated"},
            headers=auth(safety_setup["admin"]),
        )
        assert updated.json()["safetyApprovers"] == ["200", "300"]
