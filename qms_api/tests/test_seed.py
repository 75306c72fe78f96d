"""
Tests for the reference data seeder.
"""

from httpx import AsyncClient
from sqlalchemy import func, select

from qms.db.models import DocumentFolder, Location, ModuleConfig, RecordType, User
from qms.db.seed import (
    _seed_admin,
    _seed_documents,
    _seed_module_configs,
    _seed_organization,
    _seed_records,
)


async def _seed(session) -> None:
    await _seed_organization(session)
    await _seed_admin(session)
    await _seed_documents(session)
    await _seed_records(session)
    await _seed_module_configs(session)
    await session.commit()


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def test_seed_is_idempotent(test_db):
    await _seed(test_db)
    first = [await _count(test_db, m) for m in (Location, User, DocumentFolder, ModuleConfig, RecordType)]
    await _seed(test_db)
    second = [await _count(test_db, m) for m in (Location, User, DocumentFolder, ModuleConfig, RecordType)]
    assert first == second
    assert first[1] == 1
    assert first[3] == 6
    assert first[4] == 2


async def test_existing_config_is_kept(test_db, configure):
    await configure("ncr", {"ownerUserIds": ["300"], "rcaCompleterUserIds": [], "categories": []})
    await _seed(test_db)
    stored = await test_db.get(ModuleConfig, "ncr")
    assert stored.data["ownerUserIds"] == ["300"]


async def test_seeded_admin_can_sign_in(client: AsyncClient, test_db):
    await _seed(test_db)
    resp = await client.post("/api/v1/auth/login", data={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    assert resp.json()["token_type"] == "bearer"
