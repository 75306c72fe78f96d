"""
API tests for system roles, departments, locations and the org chart.
"""

from httpx import AsyncClient

from qms.db.models import User
from qms.services.users import build_org_tree


class TestSystemRoles:
    async def test_list_sorted_by_name(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/org/roles", headers=auth(users["operator"]))
        assert [r["name"] for r in resp.json()] == ["Operator", "Quality Manager"]
        assert resp.json()[0]["moduleAccess"] == ["DASHBOARD", "SAFETY", "TRAINING"]

    async def test_create_update_delete(self, client: AsyncClient, users, auth):
        headers = auth(users["admin"])
        created = await client.post(
            "/api/v1/org/roles",
            json={"name": "Shipping Lead", "moduleAccess": ["DASHBOARD", "COMPLAINTS"]},
            headers=headers,
        )
        assert created.status_code == 201
        role_id = created.json()["id"]

        updated = await client.put(
            f"/api/v1/org/roles/{role_id}",
            json={"name": "Shipping Lead", "description": "Dock supervisors", "moduleAccess": ["DASHBOARD"]},
            headers=headers,
        )
        assert updated.json()["moduleAccess"] == ["DASHBOARD"]
        assert updated.json()["description"] == "Dock supervisors"

        deleted = await client.delete(f"/api/v1/org/roles/{role_id}", headers=headers)
        assert deleted.status_code == 204
        missing = await client.put(f"/api/v1/org/roles/{role_id}", json={"name": "x"}, headers=headers)
        assert missing.status_code == 404

    async def test_duplicate_name(self, client: AsyncClient, users, auth):
        resp = await client.post("/api/v1/org/roles", json={"name": "Operator"}, headers=auth(users["admin"]))
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Role already exists"

    async def test_writes_need_admin(self, client: AsyncClient, users, auth):
        resp = await client.post("/api/v1/org/roles", json={"name": "Night Shift"}, headers=auth(users["manager"]))
        assert resp.status_code == 403


class TestSites:
    async def test_locations_are_public(self, client: AsyncClient, users):
        resp = await client.get("/api/v1/org/locations")
        assert resp.status_code == 200
        assert [loc["name"] for loc in resp.json()] == ["Main Plant - Frankston", "Warehouse B"]

    async def test_location_lifecycle(self, client: AsyncClient, users, auth):
        headers = auth(users["super"])
        created = await client.post(
            "/api/v1/org/locations", json={"name": "Distribution Center", "address": "9 Dock Rd"}, headers=headers
        )
        loc_id = created.json()["id"]
        renamed = await client.put(
            f"/api/v1/org/locations/{loc_id}", json={"name": "DC East", "address": "9 Dock Rd"}, headers=headers
        )
        assert renamed.json()["name"] == "DC East"
        assert (await client.delete(f"/api/v1/org/locations/{loc_id}", headers=headers)).status_code == 204

    async def test_departments(self, client: AsyncClient, users, auth):
        headers = auth(users["admin"])
        created = await client.post("/api/v1/org/departments", json={"name": "Maintenance"}, headers=headers)
        assert created.status_code == 201

        listed = await client.get("/api/v1/org/departments", headers=auth(users["operator"]))
        assert [d["name"] for d in listed.json()] == ["Maintenance", "Production", "Quality Assurance"]

        resp = await client.delete(f"/api/v1/org/departments/{created.json()['id']}", headers=headers)
        assert resp.status_code == 204


class TestOrgChart:
    async def test_reports_hang_under_their_manager(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/org/chart", headers=auth(users["operator"]))
        assert resp.status_code == 200
        roots = resp.json()
        assert [n["user"]["name"] for n in roots] == ["Admin User", "Alex Admin", "Morgan Shift"]
        manager = roots[2]
        assert [r["user"]["id"] for r in manager["reports"]] == ["400"]
        assert manager["reports"][0]["reports"] == []

    async def test_site_filter_promotes_reports_of_absent_managers(self, client: AsyncClient, test_db, users, auth):
        headers = auth(users["operator"])
        test_db.add(User(id="600", name="Dana Dock", username="dana", role="User", status="Active",
                         location_id="2", manager_id="300"))
        await test_db.commit()

        warehouse = await client.get("/api/v1/org/chart", params={"locationId": "2"}, headers=headers)
        assert [n["user"]["id"] for n in warehouse.json()] == ["600"]

        everyone = await client.get("/api/v1/org/chart", params={"locationId": "ALL"}, headers=headers)
        manager = next(n for n in everyone.json() if n["user"]["id"] == "300")
        assert [r["user"]["id"] for r in manager["reports"]] == ["600", "400"]

    async def test_chart_pdf(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/org/chart/pdf", params={"locationId": "1"}, headers=auth(users["operator"]))
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "OrgChart.pdf" in resp.headers["content-disposition"]

    async def test_requires_sign_in(self, client: AsyncClient, users):
        resp = await client.get("/api/v1/org/chart")
        assert resp.status_code == 401


def _person(user_id: str, manager_id=None) -> User:
    return User(id=user_id, name=f"Person {user_id}", username=f"p{user_id}", role="User", status="Active",
                manager_id=manager_id)


def test_reporting_loop_does_not_nest_forever():
    people = [_person("a", "b"), _person("b", "a"), _person("c", "a"), _person("d", "d")]
    roots = build_org_tree(people)
    assert [n.user.id for n in roots] == ["a", "b", "d"]
    assert [r.user.id for r in roots[0].reports] == ["c"]
    assert roots[1].reports == []
