"""
API tests for quality records: numbering, archiving, filters, templates and downloads.
"""

import base64

import pytest
from httpx import AsyncClient

from qms.db.models import RecordType


@pytest.fixture
async def record_setup(test_db, users, configure):
    """Cleaning and maintenance log types; the manager creates records, the admin manages templates."""
    test_db.add_all(
        [
            RecordType(id="rt-1", name="Cleaning Log", prefix="CLN"),
            RecordType(id="rt-2", name="Maintenance Log", prefix="MNT"),
        ]
    )
    await test_db.commit()
    await configure("records", {"allowedCreators": ["300"], "templateManagers": ["200"]})
    return users


async def _create(client: AsyncClient, headers: dict, **extra) -> dict:
    payload = {"title": "Press 4 Wash-down", "type": "CLN", "content": "<p>Rollers cleaned</p>"}
    payload.update(extra)
    resp = await client.post("/api/v1/records", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreate:
    async def test_numbered_per_type(self, client: AsyncClient, record_setup, auth):
        headers = auth(record_setup["manager"])
        first = await _create(client, headers)
        second = await _create(client, headers, title="Glue Pot Clean")
        maintenance = await _create(client, headers, title="Die Cutter Service", type="MNT")
        assert [first["recordNumber"], second["recordNumber"], maintenance["recordNumber"]] == [
            "CLN-001",
            "CLN-002",
            "MNT-001",
        ]
        assert first["status"] == "ACTIVE"
        assert first["retentionYears"] == 5
        assert first["creatorId"] == "300"

    async def test_site_and_department_default_to_creator(self, client: AsyncClient, record_setup, auth):
        record = await _create(client, auth(record_setup["manager"]))
        assert record["locationId"] == "1"
        assert record["departmentId"] == "2"

    async def test_type_defaults_to_first_configured(self, client: AsyncClient, record_setup, auth):
        resp = await client.post(
            "/api/v1/records", json={"title": "Floor Sweep"}, headers=auth(record_setup["manager"])
        )
        assert resp.json()["recordNumber"] == "CLN-001"

    async def test_title_is_required(self, client: AsyncClient, record_setup, auth):
        resp = await client.post("/api/v1/records", json={"type": "CLN"}, headers=auth(record_setup["manager"]))
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Title"]

    async def test_only_allowed_creators(self, client: AsyncClient, record_setup, auth):
        refused = await client.post(
            "/api/v1/records", json={"title": "Floor Sweep", "type": "CLN"}, headers=auth(record_setup["operator"])
        )
        assert refused.status_code == 403
        # Super Admins are always allowed
        await _create(client, auth(record_setup["super"]))


class TestEditAndArchive:
    async def test_archived_record_is_read_only(self, client: AsyncClient, record_setup, auth):
        headers = auth(record_setup["manager"])
        record = await _create(client, headers)

        edited = await client.put(
            f"/api/v1/records/{record['id']}",
            json={"title": "Press 4 Wash-down (night shift)", "type": "CLN", "retentionYears": 7},
            headers=headers,
        )
        assert edited.status_code == 200
        assert edited.json()["recordNumber"] == "CLN-001"
        assert edited.json()["retentionYears"] == 7
        assert edited.json()["locationId"] == "1"

        archived = await client.post(f"/api/v1/records/{record['id']}/archive", headers=headers)
        assert archived.json()["status"] == "ARCHIVED"

        again = await client.post(f"/api/v1/records/{record['id']}/archive", headers=headers)
        assert again.status_code == 409
        locked = await client.put(
            f"/api/v1/records/{record['id']}", json={"title": "Changed", "type": "CLN"}, headers=headers
        )
        assert locked.status_code == 409

    async def test_changing_type_renumbers(self, client: AsyncClient, record_setup, auth):
        headers = auth(record_setup["manager"])
        record = await _create(client, headers)
        moved = await client.put(
            f"/api/v1/records/{record['id']}", json={"title": record["title"], "type": "MNT"}, headers=headers
        )
        assert moved.json()["recordNumber"] == "MNT-001"

    async def test_operator_cannot_archive(self, client: AsyncClient, record_setup, auth):
        record = await _create(client, auth(record_setup["manager"]))
        resp = await client.post(f"/api/v1/records/{record['id']}/archive", headers=auth(record_setup["operator"]))
        assert resp.status_code == 403

    async def test_unknown_record(self, client: AsyncClient, record_setup, auth):
        resp = await client.get("/api/v1/records/nope", headers=auth(record_setup["operator"]))
        assert resp.status_code == 404


class TestListing:
    async def test_filters(self, client: AsyncClient, record_setup, auth):
        manager, super_admin = auth(record_setup["manager"]), auth(record_setup["super"])
        wash = await _create(client, manager)
        await _create(client, manager, title="Forklift Check", type="MNT", locationId="2")
        audit = await _create(client, super_admin, title="Lab Bench Clean")

        by_search = await client.get("/api/v1/records", params={"search": "mnt-"}, headers=manager)
        assert [r["title"] for r in by_search.json()] == ["Forklift Check"]

        by_site = await client.get("/api/v1/records", params={"locationId": "1"}, headers=manager)
        assert {r["id"] for r in by_site.json()} == {wash["id"], audit["id"]}

        by_creator = await client.get("/api/v1/records", params={"creatorId": "100"}, headers=manager)
        assert [r["id"] for r in by_creator.json()] == [audit["id"]]

        by_department = await client.get("/api/v1/records", params={"departmentId": "1"}, headers=manager)
        assert [r["id"] for r in by_department.json()] == [audit["id"]]


class TestTypesAndTemplates:
    async def test_type_prefix_is_unique(self, client: AsyncClient, record_setup, auth):
        headers = auth(record_setup["admin"])
        created = await client.post("/api/v1/records/types", json={"name": "Pest Control", "prefix": "pst"},
                                    headers=headers)
        assert created.status_code == 201
        assert created.json()["prefix"] == "PST"
        duplicate = await client.post("/api/v1/records/types", json={"name": "Other", "prefix": "CLN"},
                                      headers=headers)
        assert duplicate.status_code == 400

        listed = await client.get("/api/v1/records/types", headers=auth(record_setup["operator"]))
        assert [t["prefix"] for t in listed.json()] == ["CLN", "MNT", "PST"]

    async def test_types_need_admin(self, client: AsyncClient, record_setup, auth):
        resp = await client.post("/api/v1/records/types", json={"name": "Pest Control", "prefix": "PST"},
                                 headers=auth(record_setup["manager"]))
        assert resp.status_code == 403

    async def test_template_managers(self, client: AsyncClient, record_setup, auth):
        payload = {"name": "Daily Wash-down", "content": "<p>Area:</p><p>Chemical:</p>"}
        refused = await client.post("/api/v1/records/templates", json=payload, headers=auth(record_setup["manager"]))
        assert refused.status_code == 403

        admin = auth(record_setup["admin"])
        created = await client.post("/api/v1/records/templates", json=payload, headers=admin)
        assert created.status_code == 201

        renamed = await client.put(
            f"/api/v1/records/templates/{created.json()['id']}",
            json={"name": "Weekly Wash-down", "content": payload["content"]},
            headers=admin,
        )
        assert renamed.json()["name"] == "Weekly Wash-down"

        deleted = await client.delete(
            f"/api/v1/records/templates/{created.json()['id']}", headers=auth(record_setup["super"])
        )
        assert deleted.status_code == 204
        listed = await client.get("/api/v1/records/templates", headers=admin)
        assert listed.json() == []

    async def test_config_round_trip(self, client: AsyncClient, record_setup, auth):
        cfg = await client.get("/api/v1/records/config", headers=auth(record_setup["operator"]))
        assert cfg.json() == {"allowedCreators": ["300"], "templateManagers": ["200"]}


class TestDownload:
    async def test_typed_record_renders_pdf(self, client: AsyncClient, record_setup, auth):
        record = await _create(client, auth(record_setup["manager"]))
        resp = await client.get(f"/api/v1/records/{record['id']}/download", headers=auth(record_setup["operator"]))
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "Record_CLN-001.pdf" in resp.headers["content-disposition"]

    async def test_uploaded_scan_is_returned_as_stored(self, client: AsyncClient, record_setup, auth):
        raw = b"signed cleaning sheet"
        data_url = "data:text/plain;base64," + base64.b64encode(raw).decode()
        record = await _create(client, auth(record_setup["manager"]), content=data_url, isUploadedFile=True)
        resp = await client.get(f"/api/v1/records/{record['id']}/download", headers=auth(record_setup["operator"]))
        assert resp.content == raw
