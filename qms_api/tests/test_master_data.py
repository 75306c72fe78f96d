"""
API tests for items, customers and suppliers, including CSV bulk import.
"""

from httpx import AsyncClient


def _upload(content: str) -> dict:
    return {"file": ("import.csv", content.encode(), "text/csv")}


class TestItems:
    async def test_create_list_and_patch(self, client: AsyncClient, users, auth):
        admin = auth(users["admin"])
        created = await client.post(
            "/api/v1/master-data/items",
            json={"itemNumber": "CTN-1001", "description": "Folding carton", "customerName": "Acme Foods"},
            headers=admin,
        )
        assert created.status_code == 201
        assert created.json()["status"] == "ACTIVE"

        dup = await client.post("/api/v1/master-data/items", json={"itemNumber": "CTN-1001"}, headers=admin)
        assert dup.status_code == 409

        patched = await client.patch(
            f"/api/v1/master-data/items/{created.json()['id']}",
            json={"manufacturingSite": "Main Plant - Frankston"},
            headers=admin,
        )
        assert patched.json()["manufacturingSite"] == "Main Plant - Frankston"
        assert patched.json()["description"] == "Folding carton"

        listed = await client.get("/api/v1/master-data/items", params={"search": "carton"}, headers=auth(users["operator"]))
        assert [i["itemNumber"] for i in listed.json()] == ["CTN-1001"]

    async def test_toggle_and_delete(self, client: AsyncClient, users, auth):
        admin = auth(users["admin"])
        created = await client.post("/api/v1/master-data/items", json={"itemNumber": "LBL-7"}, headers=admin)
        item_id = created.json()["id"]

        toggled = await client.post(f"/api/v1/master-data/items/{item_id}/toggle-status", headers=admin)
        assert toggled.json()["status"] == "INACTIVE"

        deleted = await client.delete(f"/api/v1/master-data/items/{item_id}", headers=admin)
        assert deleted.status_code == 204
        missing = await client.get(f"/api/v1/master-data/items/{item_id}", headers=admin)
        assert missing.status_code == 404

    async def test_operator_cannot_create(self, client: AsyncClient, users, auth):
        resp = await client.post(
            "/api/v1/master-data/items", json={"itemNumber": "X-1"}, headers=auth(users["operator"])
        )
        assert resp.status_code == 403


class TestParties:
    async def test_customers_and_suppliers_are_separate(self, client: AsyncClient, users, auth):
        admin = auth(users["admin"])
        await client.post("/api/v1/master-data/customers", json={"name": "Acme Foods"}, headers=admin)
        await client.post("/api/v1/master-data/suppliers", json={"name": "Board Mill Co"}, headers=admin)

        customers = await client.get("/api/v1/master-data/customers", headers=admin)
        suppliers = await client.get("/api/v1/master-data/suppliers", headers=admin)
        assert [c["name"] for c in customers.json()] == ["Acme Foods"]
        assert [s["name"] for s in suppliers.json()] == ["Board Mill Co"]

    async def test_unknown_kind_is_rejected(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/master-data/vendors/template", headers=auth(users["admin"]))
        assert resp.status_code == 422


class TestCsvImport:
    async def test_template_headers(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/master-data/items/template", headers=auth(users["operator"]))
        assert resp.status_code == 200
        assert resp.text.strip() == "Item Number,Description,Manufacturing Site,Customer Name"

    async def test_import_creates_updates_and_skips(self, client: AsyncClient, users, auth):
        admin = auth(users["admin"])
        await client.post(
            "/api/v1/master-data/items", json={"itemNumber": "CTN-1", "description": "Old"}, headers=admin
        )
        csv_text = (
            "Item Number,Description,Manufacturing Site,Customer Name\n"
            "CTN-1,Updated carton,Main Plant,Acme\n"
            "CTN-2,,Warehouse B,Acme\n"
            ",Orphan row,,\n"
        )
        resp = await client.post("/api/v1/master-data/items/import", files=_upload(csv_text), headers=admin)
        assert resp.status_code == 200
        assert resp.json() == {"created": 1, "updated": 1, "skipped": 1}

        items = {i["itemNumber"]: i for i in (await client.get("/api/v1/master-data/items", headers=admin)).json()}
        assert items["CTN-1"]["description"] == "Updated carton"
        assert items["CTN-2"]["description"] == "No Description"

    async def test_supplier_import(self, client: AsyncClient, users, auth):
        csv_text = "Supplier Name,Email,Phone\nBoard Mill Co,orders@boardmill.example,555-0100\n"
        resp = await client.post(
            "/api/v1/master-data/suppliers/import", files=_upload(csv_text), headers=auth(users["admin"])
        )
        assert resp.json()["created"] == 1

    async def test_empty_file_is_a_parse_error(self, client: AsyncClient, users, auth):
        resp = await client.post(
            "/api/v1/master-data/customers/import", files=_upload(""), headers=auth(users["admin"])
        )
        assert resp.status_code == 400
        assert "template" in resp.json()["error"]["message"]
