from __future__ import annotations

from typing import Any, Dict, Optional

from qms.db.models.config import ModuleConfig
from .base import BaseRepository


class ConfigRepository(BaseRepository):
    """Read/write the per-module configuration documents."""

    async def get_data(self, key: str) -> Optional[Dict[str, Any]]:
        row = await self.get(ModuleConfig, key)
        return dict(row.data) if row else None

    async def put_data(self, key: str, data: Dict[str, Any]) -> ModuleConfig:
        row = await self.get(ModuleConfig, key)
        if row is None:
            row = ModuleConfig(key=key, data=data)
            await self.add(row)
        else:
            # Reassign so the JSON column is flagged dirty.
            row.data = data
        await self.flush()
        return row
