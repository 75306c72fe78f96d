"""
GET/PUT `/config` endpoints shared by every module router.

No postponed annotations here: the PUT body type is the schema class handed to
add_config_routes, resolved when the route is built.
"""
from typing import Type

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.schemas.common import CamelModel
from qms.services.config import ConfigService


# PUBLIC_INTERFACE
def add_config_routes(router: APIRouter, key: str, schema: Type[CamelModel]) -> None:
    """Attach `GET /config` (any signed-in user) and `PUT /config` (admin) for one module."""

    @router.get(
        "/config",
        response_model=schema,
        summary=f"Read {key} configuration",
        dependencies=[Depends(get_current_active_user)],
    )
    async def read_config(session: AsyncSession = Depends(get_db)):
        return await ConfigService(session).load(key, schema)

    @router.put(
        "/config",
        response_model=schema,
        summary=f"Replace {key} configuration",
        dependencies=[Depends(require_admin)],
    )
    async def replace_config(payload: schema, session: AsyncSession = Depends(get_db)):  # type: ignore[valid-type]
        return await ConfigService(session).store(key, payload)
