"""
Backup and restore of operational data.

A backup is a JSON document `{meta, data}` where `data` holds one camelCase array per
exported table. The same arrays can be flattened into a sectioned CSV report.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import QMSError
from qms.db.base import Base
from qms.db.models.complaints import CustomerComplaint
from qms.db.models.documents import Document
from qms.db.models.organization import User
from qms.db.models.quality import NCRRecord, QAInspectionRecord, QATicket
from qms.db.models.safety import SafetyIncident
from qms.db.models.training import TrainingRecord
from qms.repositories.base import BaseRepository
from qms.schemas.auth import UserRead
from qms.schemas.backup import BackupFile, BackupMeta, BackupRange, RestoreResult
from qms.schemas.common import CamelModel
from qms.schemas.complaints import ComplaintRead
from qms.schemas.documents import DocumentRead
from qms.schemas.quality import NCR_DERIVED_FIELDS, NCRRead, QAInspectionRead, QATicketRead
from qms.schemas.safety import SafetyIncidentRead
from qms.schemas.training import TrainingRecordRead
from qms.services.base import BaseService, as_utc, now_utc

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid backup file format."
PARSE_FAILED = "Failed to parse or restore file. Ensure it is a valid JSON backup."

_datetime_adapter = TypeAdapter(datetime)
_date_adapter = TypeAdapter(date)


@dataclass(frozen=True)
class BackupSection:
    key: str
    title: str
    model: Type[Base]
    schema: Type[CamelModel]
    date_field: Optional[str]
    exclude: frozenset = frozenset()


SECTIONS: Dict[str, BackupSection] = {
    s.key: s
    for s in (
        BackupSection("safetyIncidents", "Safety Incidents", SafetyIncident, SafetyIncidentRead, "incidentDate"),
        BackupSection("documents", "Documents", Document, DocumentRead, "createdAt"),
        BackupSection("trainingRecords", "Training Records", TrainingRecord, TrainingRecordRead, "assignedDate"),
        BackupSection("qaTickets", "QA Tickets", QATicket, QATicketRead, "createdAt"),
        BackupSection("qaInspections", "QA Inspections", QAInspectionRecord, QAInspectionRead, "createdAt"),
        BackupSection("ncrRecords", "NCR Records", NCRRecord, NCRRead, "detectedAt", frozenset(NCR_DERIVED_FIELDS)),
        BackupSection("complaints", "Customer Complaints", CustomerComplaint, ComplaintRead, "createdAt"),
        BackupSection("users", "Users", User, UserRead, None),
    )
}

MODULES: Dict[str, List[str]] = {
    "SAFETY": ["safetyIncidents"],
    "DOCUMENTS": ["documents"],
    "TRAINING": ["trainingRecords"],
    "QA": ["qaTickets", "qaInspections"],
    "NCR": ["ncrRecords"],
    "COMPLAINTS": ["complaints"],
    "USERS": ["users"],
}


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    try:
        return as_utc(_datetime_adapter.validate_python(value))
    except ValidationError:
        pass
    try:
        return datetime.combine(_date_adapter.validate_python(value), time.min, tzinfo=timezone.utc)
    except ValidationError:
        return None


# PUBLIC_INTERFACE
def filter_by_date(
    items: Iterable[Dict[str, Any]], field: Optional[str], start: Optional[date], end: Optional[date]
) -> List[Dict[str, Any]]:
    """
    Keep items whose `field` falls in [start 00:00, end + 1 day 00:00) UTC, so the
    whole end day is included. Items with no value in `field` are always kept;
    values that cannot be read as a date are dropped.
    """
    items = list(items)
    if field is None or (start is None and end is None):
        return items
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None
    kept = []
    for item in items:
        raw = item.get(field)
        if raw is None or raw == "":
            kept.append(item)
            continue
        moment = _as_datetime(raw)
        if moment is None:
            continue
        if (lower is None or moment >= lower) and (upper is None or moment < upper):
            kept.append(item)
    return kept


def select_sections(modules: Optional[Sequence[str]]) -> List[BackupSection]:
    """Resolve module keys (SAFETY, QA, ...) into sections, in CSV order."""
    keys = [m.upper() for m in modules] if modules else list(MODULES)
    unknown = [m for m in keys if m not in MODULES]
    if unknown:
        raise QMSError(f"Unknown backup module(s): {', '.join(unknown)}", details={"modules": list(MODULES)})
    wanted = {array for m in keys for array in MODULES[m]}
    return [s for s in SECTIONS.values() if s.key in wanted]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return '"' + text.replace('"', '""') + '"'


# PUBLIC_INTERFACE
def render_csv(backup: BackupFile) -> str:
    """
    Flatten a backup into the sectioned CSV report.

    Header lines, then per non-empty array a `--- TITLE ---` line, the first item's
    keys as header row, one quoted row per item and a blank line.
    """
    rng = backup.meta.range
    out = [
        f"Exported By: {backup.meta.exported_by}\n",
        f"Date: {backup.meta.date}\n",
        f"Range: {rng.start or ''} to {rng.end or ''}\n",
        "\n",
    ]
    for section in SECTIONS.values():
        rows = backup.data.get(section.key)
        if not rows:
            continue
        out.append(f"--- {section.title.upper()} ---\n")
        headers = list(rows[0].keys())
        out.append(",".join(headers) + "\n")
        for row in rows:
            out.append(",".join(_cell(row.get(h)) for h in headers) + "\n")
        out.append("\n")
    return "".join(out)


class BackupService(BaseService):
    """Exports selected tables as a dated backup and restores them wholesale."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = BaseRepository(session)

    async def _rows(self, section: BackupSection) -> List[Dict[str, Any]]:
        entities = await self.repo.list_all(section.model)
        return [
            section.schema.model_validate(e).model_dump(mode="json", by_alias=True, exclude=set(section.exclude))
            for e in entities
        ]

    # PUBLIC_INTERFACE
    async def export(
        self, actor: User, modules: Optional[Sequence[str]], start: Optional[date], end: Optional[date]
    ) -> BackupFile:
        data: Dict[str, List[Dict[str, Any]]] = {}
        for section in select_sections(modules):
            rows = await self._rows(section)
            data[section.key] = filter_by_date(rows, section.date_field, start, end)
        logger.info("Backup exported by %s: %s", actor.id, {k: len(v) for k, v in data.items()})
        return BackupFile(
            meta=BackupMeta(
                exported_by=actor.name,
                date=now_utc().isoformat(),
                range=BackupRange(start=start, end=end),
            ),
            data=data,
        )

    @staticmethod
    def parse(raw: bytes) -> Dict[str, Any]:
        try:
            document = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise QMSError(PARSE_FAILED) from exc
        if not isinstance(document, dict) or not document.get("meta") or not isinstance(document.get("data"), dict):
            raise QMSError(INVALID_FORMAT)
        return document

    def _to_entity(self, section: BackupSection, row: Dict[str, Any]) -> Base:
        fields = section.schema.model_validate(row).model_dump(exclude=set(section.exclude))
        table = section.model.__table__
        kwargs = {}
        for key, value in fields.items():
            column = table.columns.get(key)
            if column is None:
                continue
            if value is None and column.default is not None and not column.nullable:
                continue
            kwargs[key] = value
        return section.model(**kwargs)

    # PUBLIC_INTERFACE
    async def restore(self, raw: bytes, start: Optional[date], end: Optional[date]) -> RestoreResult:
        """
        Replace each table present in the backup with its rows inside the date range.

        Restored users keep the password hash already stored for the same id.
        """
        document = self.parse(raw)
        restored: Dict[str, int] = {}
        try:
            password_hashes = {u.id: u.hashed_password for u in await self.repo.list_all(User)}
            for section in SECTIONS.values():
                rows = document["data"].get(section.key)
                if rows is None:
                    continue
                if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
                    raise QMSError(INVALID_FORMAT)
                rows = filter_by_date(rows, section.date_field, start, end)
                entities = [self._to_entity(section, row) for row in rows]
                if section.model is User:
                    for user in entities:
                        user.hashed_password = password_hashes.get(user.id)
                await self.repo.delete_all(section.model)
                await self.repo.add_all(entities)
                restored[section.key] = len(entities)
            await self.repo.commit()
        except ValidationError as exc:
            await self.session.rollback()
            raise QMSError(PARSE_FAILED, details={"errors": exc.error_count()}) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.warning("Backup restore rejected by the database: %s", exc.__class__.__name__)
            raise QMSError(PARSE_FAILED) from exc
        except QMSError:
            await self.session.rollback()
            raise

        logger.info("Backup restored: %s", restored)
        window = f"{start or 'the beginning'} and {end or 'today'}"
        return RestoreResult(
            restored=restored,
            total=sum(restored.values()),
            message=f"Successfully restored data records falling between {window}.",
        )
