from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.schemas.kpi import KpiFilters, KpiSummary
from qms.services.kpis import KpiService
from qms.services.ncr import NCRService

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)

EXPORT_FORMATS = "^(csv|xlsx|pdf)$"


def _export_dataframe(
    df: pd.DataFrame,
    filename_base: str,
    export_format: str,
) -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
      - pdf: application/pdf (landscape table)
    """
    export_format = (export_format or "csv").lower()
    if export_format == "xlsx":
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'}
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    if export_format == "pdf":
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
        )
        styles = getSampleStyleSheet()
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        elements: list = [Paragraph(f"{filename_base.replace('_', ' ').title()} ({stamp})", styles["Title"])]

        data = [list(df.columns)] + df.fillna("").astype(str).values.tolist()
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ]
            )
        )
        elements.append(table)
        doc.build(elements)
        buffer.seek(0)
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.pdf"'}
        return StreamingResponse(buffer, media_type="application/pdf", headers=headers)

    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    headers = {"Content-Disposition": f'attachment; filename="{filename_base}.csv"'}
    return StreamingResponse(buffer, media_type="text/csv", headers=headers)


def _filters(
    location_id: Optional[str] = Query(None, alias="locationId", description="Filter by location"),
    department_id: Optional[str] = Query(None, alias="departmentId", description="Filter by department"),
    user_id: Optional[str] = Query(None, alias="userId", description="Filter by user"),
) -> KpiFilters:
    return KpiFilters(location_id=location_id, department_id=department_id, user_id=user_id)


# PUBLIC_INTERFACE
@router.get(
    "/kpis",
    response_model=KpiSummary,
    summary="KPI dashboard",
    description="Safety, document, training, NCR and complaint counts for the dashboard.",
    dependencies=[Depends(get_current_active_user)],
)
async def kpi_summary(
    filters: KpiFilters = Depends(_filters),
    session: AsyncSession = Depends(get_db),
) -> KpiSummary:
    return await KpiService(session).summary(filters)


# PUBLIC_INTERFACE
@router.get(
    "/kpis/export",
    summary="KPI report",
    description="Exports the KPI dashboard as one row per metric.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_admin)],
)
async def kpi_report(
    filters: KpiFilters = Depends(_filters),
    session: AsyncSession = Depends(get_db),
    format: str = Query("csv", pattern=EXPORT_FORMATS, description="Export format: csv | xlsx | pdf"),
):
    df = await KpiService(session).summary_frame(filters)
    return _export_dataframe(df, "kpi_summary", format)


# PUBLIC_INTERFACE
@router.get(
    "/ncr-register",
    summary="NCR register",
    description="Exports nonconformances with disposition, cost and RCA progress.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(get_current_active_user)],
)
async def ncr_register_report(
    session: AsyncSession = Depends(get_db),
    status: Optional[str] = Query(None, description="Filter NCRs by status"),
    open_only: bool = Query(False, alias="openOnly"),
    format: str = Query("csv", pattern=EXPORT_FORMATS, description="Export format: csv | xlsx | pdf"),
):
    df = await NCRService(session).register_frame(status=status, open_only=open_only)
    return _export_dataframe(df, "ncr_register", format)
