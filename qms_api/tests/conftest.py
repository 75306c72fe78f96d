"""
Test configuration: in-memory SQLite database, seeded plant users and an async API client.

Each test gets a fresh schema built from the ORM metadata. Requests authenticate with
real access tokens so the role and status checks in qms.core.deps are exercised.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from qms.api.main import app  # noqa: E402
from qms.core.deps import get_db  # noqa: E402
from qms.core.security import create_access_token, get_password_hash  # noqa: E402
from qms.db import models  # noqa: E402,F401
from qms.db.base import Base  # noqa: E402
from qms.db.models import Department, Location, ModuleConfig, SystemRole, User  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OPERATOR_PASSWORD = "press-line-4"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    maker = async_sessionmaker(bind=test_engine, expire_on_commit=False, autoflush=False)
    async with maker() as session:
        yield session


@pytest.fixture
async def users(test_db: AsyncSession):
    """
    Plant staff used across tests:
      super - Super Admin (id 100)
      admin - Admin
      manager - Manager with 'operator' as a direct report
      operator - Operator role at the main plant
      pending - self-registered, awaiting approval
    """
    test_db.add_all(
        [
            Location(id="1", name="Main Plant - Frankston"),
            Location(id="2", name="Warehouse B"),
            Department(id="1", name="Quality Assurance"),
            Department(id="2", name="Production"),
            SystemRole(id="R1", name="Quality Manager", module_access=["DASHBOARD", "DOCUMENTS", "TRAINING"]),
            SystemRole(id="R4", name="Operator", module_access=["DASHBOARD", "SAFETY", "TRAINING"]),
        ]
    )
    people = {
        "super": User(id="100", name="Admin User", username="admin", role="Super Admin", status="Active",
                      system_role_id="R1", department_id="1", location_id="1", joined_date=date(2023, 1, 1)),
        "admin": User(id="200", name="Alex Admin", username="alex", role="Admin", status="Active",
                      system_role_id="R1", department_id="1", location_id="1", joined_date=date(2023, 2, 1)),
        "manager": User(id="300", name="Morgan Shift", username="morgan", role="Manager", status="Active",
                        system_role_id="R1", department_id="2", location_id="1", joined_date=date(2023, 3, 1)),
        "operator": User(id="400", name="Sam Press", username="sam", role="User", status="Active",
                         system_role_id="R4", department_id="2", location_id="1", manager_id="300",
                         hashed_password=get_password_hash(OPERATOR_PASSWORD), joined_date=date(2024, 1, 15)),
        "pending": User(id="500", name="Pat New", username="pat", role="User", status="Pending",
                        hashed_password=get_password_hash("welcome1"), joined_date=date(2024, 6, 1)),
    }
    test_db.add_all(people.values())
    await test_db.commit()
    return people


@pytest.fixture
def auth():
    """Return a function building Authorization headers for a user."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject=user.id, role=user.role)}"}

    return _headers


@pytest.fixture
async def configure(test_db: AsyncSession):
    """Store a module config document, camelCase keys as the client sends them."""

    async def _configure(key: str, data: dict) -> None:
        existing = await test_db.get(ModuleConfig, key)
        if existing:
            existing.data = data
        else:
            test_db.add(ModuleConfig(key=key, data=data))
        await test_db.commit()

    return _configure


@pytest.fixture
async def client(test_db: AsyncSession):
    """Async test client with the database dependency pointed at the test session."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
