from __future__ import annotations

import io
import logging
from typing import Dict, List, Tuple, Type, Union

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, QMSError, WorkflowError
from qms.db.models.enums import RecordStatus
from qms.db.models.master_data import MasterCustomer, MasterItem, MasterSupplier
from qms.repositories.master_data import ItemRepository, PartyRepository
from qms.schemas.master_data import ImportResult
from qms.services.base import BaseService

logger = logging.getLogger(__name__)

MasterRecord = Union[MasterItem, MasterCustomer, MasterSupplier]

# kind -> (model, CSV headers, model attributes in column order, key attribute)
MASTER_KINDS: Dict[str, Tuple[Type[MasterRecord], List[str], List[str], str]] = {
    "items": (
        MasterItem,
        ["Item Number", "Description", "Manufacturing Site", "Customer Name"],
        ["item_number", "description", "manufacturing_site", "customer_name"],
        "item_number",
    ),
    "customers": (
        MasterCustomer,
        ["Customer Name", "Email", "Phone"],
        ["name", "email", "phone"],
        "name",
    ),
    "suppliers": (
        MasterSupplier,
        ["Supplier Name", "Email", "Phone"],
        ["name", "email", "phone"],
        "name",
    ),
}

CSV_PARSE_ERROR = "Failed to parse CSV. Please ensure it matches the template format."


def template_csv(kind: str) -> str:
    """Header-only CSV users fill in for bulk import."""
    _, headers, _, _ = MASTER_KINDS[kind]
    return ",".join(headers) + "\n"


class MasterDataService(BaseService):
    """CRUD, status toggling and CSV bulk import for items, customers and suppliers."""

    def __init__(self, session: AsyncSession, kind: str) -> None:
        super().__init__(session)
        if kind not in MASTER_KINDS:
            raise NotFoundError("Master data list", kind)
        self.kind = kind
        self.model, self.headers, self.columns, self.key = MASTER_KINDS[kind]
        if self.model is MasterItem:
            self.repo = ItemRepository(session)
        else:
            self.repo = PartyRepository(session, self.model)

    async def list(self, *, search=None, status=None, limit: int = 200, offset: int = 0) -> List[MasterRecord]:
        if self.model is MasterItem:
            return await self.repo.list_items(search=search, status=status, limit=limit, offset=offset)
        return await self.repo.list_parties(search=search, status=status, limit=limit, offset=offset)

    async def get(self, record_id: str) -> MasterRecord:
        record = await self.repo.get(self.model, record_id)
        if not record:
            raise NotFoundError(self.model.__name__, record_id)
        return record

    async def _find_by_key(self, value: str):
        if self.model is MasterItem:
            return await self.repo.get_by_number(value)
        return await self.repo.get_by_name(value)

    async def create(self, data: dict) -> MasterRecord:
        if await self._find_by_key(data[self.key]):
            raise WorkflowError(f"{data[self.key]} already exists.")
        record = self.model(**data)
        await self.repo.add(record)
        return await self._save(record)

    async def update(self, record_id: str, changes: dict) -> MasterRecord:
        record = await self.get(record_id)
        new_key = changes.get(self.key)
        if new_key and new_key != getattr(record, self.key):
            if await self._find_by_key(new_key):
                raise WorkflowError(f"{new_key} already exists.")
        for attr, value in changes.items():
            if value is not None:
                setattr(record, attr, value)
        return await self._save(record)

    async def delete(self, record_id: str) -> None:
        record = await self.get(record_id)
        await self.repo.delete(record)
        await self.repo.commit()

    # PUBLIC_INTERFACE
    async def toggle_status(self, record_id: str) -> MasterRecord:
        record = await self.get(record_id)
        record.status = (
            RecordStatus.INACTIVE.value if record.status == RecordStatus.ACTIVE.value else RecordStatus.ACTIVE.value
        )
        return await self._save(record)

    # PUBLIC_INTERFACE
    async def import_csv(self, raw: bytes) -> ImportResult:
        """
        Bulk upsert from a CSV laid out like the template.

        Columns are read by position after the header row. Rows with an empty key
        column are skipped; rows whose key already exists update that record.
        """
        try:
            frame = pd.read_csv(io.BytesIO(raw), dtype=str, keep_default_na=False, skip_blank_lines=True)
        except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as exc:
            raise QMSError(CSV_PARSE_ERROR) from exc

        result = ImportResult()
        seen: Dict[str, MasterRecord] = {}
        for row in frame.itertuples(index=False):
            values = {attr: (str(row[i]).strip() if i < len(row) else "") for i, attr in enumerate(self.columns)}
            key = values[self.key]
            if not key:
                result.skipped += 1
                continue
            if self.model is MasterItem and not values["description"]:
                values["description"] = "No Description"
            record = seen.get(key) or await self._find_by_key(key)
            if record is None:
                record = self.model(**values, status=RecordStatus.ACTIVE.value)
                await self.repo.add(record)
                result.created += 1
            else:
                for attr, value in values.items():
                    setattr(record, attr, value)
                result.updated += 1
            seen[key] = record
        await self.repo.commit()
        logger.info(
            "Imported %s: %d created, %d updated, %d skipped",
            self.kind, result.created, result.updated, result.skipped,
        )
        return result
