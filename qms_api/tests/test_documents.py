"""
API tests for document control: drafting, multi-approver sign-off, superseding and change requests.
"""

import base64

import pytest
from httpx import AsyncClient

from qms.db.models import DocumentFolder, DocumentType


@pytest.fixture
async def doc_setup(test_db, users, configure):
    """SOP type, system folders and a config letting the manager author documents."""
    test_db.add_all(
        [
            DocumentType(id="dt-1", name="Standard Operating Procedure", prefix="SOP"),
            DocumentFolder(id="root", name="General Docs", is_system=True),
            DocumentFolder(id="archive", name="Archive", parent_id="root", is_system=True),
        ]
    )
    await test_db.commit()
    await configure("documents", {"allowedCreators": ["300"], "changeRequestApprovers": ["200"]})
    return users


async def _submit(client: AsyncClient, headers: dict, approvers=("200",), **extra) -> dict:
    payload = {
        "title": "Glue Line Start-up",
        "type": "SOP",
        "content": "1. Check guards.\n2. Warm glue pot.",
        "approverIds": list(approvers),
        "submit": True,
    }
    payload.update(extra)
    resp = await client.post("/api/v1/documents", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestDrafting:
    async def test_draft_gets_numbered_by_type_prefix(self, client: AsyncClient, doc_setup, auth):
        headers = auth(doc_setup["manager"])
        first = await client.post(
            "/api/v1/documents", json={"title": "Press Setup", "type": "SOP"}, headers=headers
        )
        second = await client.post(
            "/api/v1/documents", json={"title": "Die Change", "type": "SOP"}, headers=headers
        )
        assert first.json()["docNumber"] == "SOP-001"
        assert second.json()["docNumber"] == "SOP-002"
        assert first.json()["status"] == "DRAFT"
        assert first.json()["version"] == 1.0
        assert first.json()["folderId"] == "root"

    async def test_missing_title_and_type_are_listed(self, client: AsyncClient, doc_setup, auth):
        resp = await client.post("/api/v1/documents", json={"content": "x"}, headers=auth(doc_setup["manager"]))
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Title", "Document type"]

    async def test_submit_requires_an_approver(self, client: AsyncClient, doc_setup, auth):
        resp = await client.post(
            "/api/v1/documents",
            json={"title": "Press Setup", "type": "SOP", "submit": True},
            headers=auth(doc_setup["manager"]),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["missing"] == ["Approvers"]

    async def test_operator_cannot_create(self, client: AsyncClient, doc_setup, auth):
        resp = await client.post(
            "/api/v1/documents", json={"title": "Press Setup", "type": "SOP"}, headers=auth(doc_setup["operator"])
        )
        assert resp.status_code == 403


class TestApproval:
    async def test_every_approver_must_sign(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]), approvers=("200", "100"))

        first = await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["admin"]))
        assert first.status_code == 200
        assert first.json()["status"] == "PENDING_APPROVAL"
        assert first.json()["approvedByIds"] == ["200"]

        twice = await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["admin"]))
        assert twice.status_code == 409

        last = await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["super"]))
        assert last.json()["status"] == "APPROVED"

    async def test_non_approver_is_refused(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        resp = await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["operator"]))
        assert resp.status_code == 403

    async def test_request_revision_clears_signatures(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]), approvers=("200", "100"))
        await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["admin"]))

        resp = await client.post(
            f"/api/v1/documents/{doc['id']}/request-revision",
            json={"comment": "Add lockout step"},
            headers=auth(doc_setup["super"]),
        )
        assert resp.json()["status"] == "REVISION_REQUESTED"
        assert resp.json()["approvedByIds"] == []

    async def test_approved_document_cannot_be_edited(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["admin"]))
        resp = await client.put(
            f"/api/v1/documents/{doc['id']}",
            json={"title": "Changed", "type": "SOP"},
            headers=auth(doc_setup["manager"]),
        )
        assert resp.status_code == 409


class TestChangeRequests:
    async def test_new_revision_supersedes_and_archives_previous(self, client: AsyncClient, doc_setup, auth):
        manager, admin = auth(doc_setup["manager"]), auth(doc_setup["admin"])
        doc = await _submit(client, manager)
        await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=admin)

        cr = await client.post(
            f"/api/v1/documents/{doc['id']}/change-requests",
            json={"reason": "New glue supplier"},
            headers=auth(doc_setup["operator"]),
        )
        assert cr.status_code == 201
        assert cr.json()["status"] == "PENDING"
        assert cr.json()["assignedToUserId"] == "300"

        revision = await client.post(f"/api/v1/documents/change-requests/{cr.json()['id']}/approve", headers=admin)
        assert revision.status_code == 200
        draft = revision.json()
        assert draft["id"] != doc["id"]
        assert draft["docNumber"] == doc["docNumber"]
        assert draft["version"] == 1.1
        assert draft["status"] == "DRAFT"
        assert draft["isRedline"] is False

        # The approved revision stays in force until the new one is approved
        current = await client.get(f"/api/v1/documents/{doc['id']}", headers=manager)
        assert current.json()["status"] == "APPROVED"

        await client.put(
            f"/api/v1/documents/{draft['id']}",
            json={"title": draft["title"], "type": "SOP", "approverIds": ["200"], "submit": True},
            headers=manager,
        )
        approved = await client.post(f"/api/v1/documents/{draft['id']}/approve", headers=admin)
        assert approved.json()["status"] == "APPROVED"
        assert approved.json()["isRedline"] is False

        previous = await client.get(f"/api/v1/documents/{doc['id']}", headers=manager)
        assert previous.json()["status"] == "OBSOLETE"
        assert previous.json()["folderId"] == "archive"

    async def test_change_request_only_on_approved(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        resp = await client.post(
            f"/api/v1/documents/{doc['id']}/change-requests",
            json={"reason": "Typo"},
            headers=auth(doc_setup["operator"]),
        )
        assert resp.status_code == 409

    async def test_only_configured_approvers_resolve(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        await client.post(f"/api/v1/documents/{doc['id']}/approve", headers=auth(doc_setup["admin"]))
        cr = await client.post(
            f"/api/v1/documents/{doc['id']}/change-requests",
            json={"reason": "Typo"},
            headers=auth(doc_setup["operator"]),
        )
        refused = await client.post(
            f"/api/v1/documents/change-requests/{cr.json()['id']}/reject", headers=auth(doc_setup["manager"])
        )
        assert refused.status_code == 403

        rejected = await client.post(
            f"/api/v1/documents/change-requests/{cr.json()['id']}/reject", headers=auth(doc_setup["admin"])
        )
        assert rejected.json()["status"] == "REJECTED"
        assert rejected.json()["resolvedByUserId"] == "200"


class TestFoldersAndDownload:
    async def test_system_folders_cannot_be_deleted(self, client: AsyncClient, doc_setup, auth):
        resp = await client.delete("/api/v1/documents/folders/archive", headers=auth(doc_setup["manager"]))
        assert resp.status_code == 409

    async def test_move_into_new_folder(self, client: AsyncClient, doc_setup, auth):
        headers = auth(doc_setup["manager"])
        folder = await client.post("/api/v1/documents/folders", json={"name": "Glue Line"}, headers=headers)
        assert folder.status_code == 201
        assert folder.json()["parentId"] == "root"

        doc = await _submit(client, headers)
        moved = await client.post(
            f"/api/v1/documents/{doc['id']}/move", json={"folderId": folder.json()["id"]}, headers=headers
        )
        assert moved.json()["folderId"] == folder.json()["id"]

        listed = await client.get("/api/v1/documents", params={"folderId": folder.json()["id"]}, headers=headers)
        assert [d["id"] for d in listed.json()] == [doc["id"]]

    async def test_deleting_folder_returns_documents_to_root(self, client: AsyncClient, doc_setup, auth):
        headers = auth(doc_setup["manager"])
        folder = await client.post("/api/v1/documents/folders", json={"name": "Die Shop"}, headers=headers)
        doc = await _submit(client, headers)
        await client.post(f"/api/v1/documents/{doc['id']}/move", json={"folderId": folder.json()["id"]}, headers=headers)

        deleted = await client.delete(f"/api/v1/documents/folders/{folder.json()['id']}", headers=headers)
        assert deleted.status_code == 204

        current = await client.get(f"/api/v1/documents/{doc['id']}", headers=headers)
        assert current.json()["folderId"] == "root"
        folders = await client.get("/api/v1/documents/folders", headers=headers)
        assert folder.json()["id"] not in [f["id"] for f in folders.json()]

    async def test_authored_document_downloads_as_pdf(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        resp = await client.get(f"/api/v1/documents/{doc['id']}/download", headers=auth(doc_setup["operator"]))
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "SOP-001_v1.0.pdf" in resp.headers["content-disposition"]

    async def test_uploaded_file_is_returned_as_stored(self, client: AsyncClient, doc_setup, auth):
        raw = b"scanned form"
        data_url = "data:text/plain;base64," + base64.b64encode(raw).decode()
        doc = await _submit(client, auth(doc_setup["manager"]), content=data_url, isUploadedFile=True)
        resp = await client.get(f"/api/v1/documents/{doc['id']}/download", headers=auth(doc_setup["operator"]))
        assert resp.status_code == 200
        assert resp.content == raw

    async def test_only_super_admin_toggles_active(self, client: AsyncClient, doc_setup, auth):
        doc = await _submit(client, auth(doc_setup["manager"]))
        refused = await client.post(f"/api/v1/documents/{doc['id']}/toggle-active", headers=auth(doc_setup["admin"]))
        assert refused.status_code == 403
        toggled = await client.post(f"/api/v1/documents/{doc['id']}/toggle-active", headers=auth(doc_setup["super"]))
        assert toggled.json()["isActive"] is False
