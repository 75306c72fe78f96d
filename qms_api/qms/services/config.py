from __future__ import annotations

import logging
from typing import Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from qms.repositories.config import ConfigRepository
from qms.schemas.common import CamelModel
from qms.schemas.complaints import ComplaintGlobalConfig
from qms.schemas.documents import DocumentGlobalConfig
from qms.schemas.quality import NCRGlobalConfig, QAGlobalConfig
from qms.schemas.records import RecordGlobalConfig
from qms.schemas.safety import SafetyGlobalConfig
from qms.services.base import BaseService

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound=CamelModel)

CONFIG_SCHEMAS: dict[str, Type[CamelModel]] = {
    "safety": SafetyGlobalConfig,
    "documents": DocumentGlobalConfig,
    "qa": QAGlobalConfig,
    "ncr": NCRGlobalConfig,
    "complaints": ComplaintGlobalConfig,
    "records": RecordGlobalConfig,
}


class ConfigService(BaseService):
    """Typed access to the per-module configuration documents."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ConfigRepository(session)

    # PUBLIC_INTERFACE
    async def load(self, key: str, schema: Type[ConfigT]) -> ConfigT:
        """Return the stored config for a module, or the schema defaults when none is stored."""
        data = await self.repo.get_data(key)
        if data is None:
            return schema()
        return schema.model_validate(data)

    # PUBLIC_INTERFACE
    async def store(self, key: str, config: CamelModel) -> CamelModel:
        """Replace a module's config document."""
        await self.repo.put_data(key, config.model_dump(mode="json", by_alias=True))
        await self.repo.commit()
        logger.info("Updated %s configuration", key)
        return config

    async def safety(self) -> SafetyGlobalConfig:
        return await self.load("safety", SafetyGlobalConfig)

    async def documents(self) -> DocumentGlobalConfig:
        return await self.load("documents", DocumentGlobalConfig)

    async def qa(self) -> QAGlobalConfig:
        return await self.load("qa", QAGlobalConfig)

    async def ncr(self) -> NCRGlobalConfig:
        return await self.load("ncr", NCRGlobalConfig)

    async def complaints(self) -> ComplaintGlobalConfig:
        return await self.load("complaints", ComplaintGlobalConfig)

    async def records(self) -> RecordGlobalConfig:
        return await self.load("records", RecordGlobalConfig)
