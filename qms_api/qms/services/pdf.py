"""
PDF rendering with reportlab: document copies, quality records, the org chart,
certificates of analysis and complaint notices.

Every renderer returns the finished PDF as bytes; routes wrap them in a StreamingResponse.
"""
from __future__ import annotations

import base64
import html
import io
import logging
import re
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import HRFlowable, Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from qms.db.models.complaints import CustomerComplaint
from qms.db.models.documents import Document
from qms.db.models.organization import User
from qms.db.models.quality import QAInspectionRecord, QATicket
from qms.db.models.records import QualityRecord
from qms.schemas.complaints import ReturnAddress
from qms.schemas.quality import QAFormConfig

logger = logging.getLogger(__name__)

COMPANY_ADDRESS = "123 Packaging Way, Frankston, TX 75763"

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_RE = re.compile(r"</?(p|div|br|li|h[1-6]|tr)\b[^>]*>", re.IGNORECASE)
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+/-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def strip_html(content: str) -> str:
    """Reduce rich-text HTML to plain text, keeping block boundaries as line breaks."""
    text = _BLOCK_RE.sub("\n", content or "")
    text = html.unescape(_TAG_RE.sub("", text))
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def decode_data_url(url: str) -> Tuple[str, bytes]:
    """Split a data URL into (mime type, payload bytes). Raises ValueError when malformed."""
    match = _DATA_URL_RE.match(url or "")
    if not match:
        raise ValueError("not a data URL")
    payload = match.group("data")
    raw = base64.b64decode(payload, validate=True) if match.group("b64") else payload.encode()
    return match.group("mime") or "application/octet-stream", raw


def _logo(source: Optional[str]) -> Optional[Image]:
    """Load the configured logo from a data URL or a readable file; None when unusable."""
    if not source:
        return None
    try:
        if source.startswith("data:"):
            _, raw = decode_data_url(source)
        else:
            raw = Path(source).read_bytes()
        width, height = ImageReader(io.BytesIO(raw)).getSize()
    except (OSError, ValueError) as exc:
        logger.warning("Company logo could not be loaded, falling back to text header: %s", exc)
        return None
    target_w = 40 * mm
    return Image(io.BytesIO(raw), width=target_w, height=target_w * height / width)


def _paragraph(text: str, style) -> Paragraph:
    return Paragraph(html.escape(text).replace("\n", "<br/>"), style)


def _build(elements: list) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=20 * mm, rightMargin=20 * mm,
                            topMargin=15 * mm, bottomMargin=15 * mm)
    doc.build(elements)
    return buffer.getvalue()


def _header(company_name: str, logo_url: Optional[str], styles) -> list:
    logo = _logo(logo_url)
    if logo is not None:
        logo.hAlign = "LEFT"
        return [logo, Spacer(1, 4 * mm)]
    return [Paragraph(html.escape(company_name), styles["Title"])]


# PUBLIC_INTERFACE
def render_document_pdf(doc: Document, references: Sequence[Document], company_name: str) -> bytes:
    """Printable copy of a controlled document."""
    styles = getSampleStyleSheet()
    elements: list = [Paragraph(html.escape(company_name), styles["Title"])]
    for line in (
        f"Document: {doc.doc_number}",
        f"Title: {doc.title}",
        f"Version: {doc.version:.1f}",
        f"Status: {doc.status}",
    ):
        elements.append(_paragraph(line, styles["Normal"]))
    elements += [Spacer(1, 3 * mm), HRFlowable(width="100%", color=colors.black), Spacer(1, 5 * mm)]
    elements.append(_paragraph(strip_html(doc.content) or "(No Content)", styles["BodyText"]))

    if references:
        elements += [Spacer(1, 8 * mm), Paragraph("<b>REFERENCE DOCUMENTS:</b>", styles["Normal"])]
        for ref in references:
            elements.append(_paragraph(f"- {ref.doc_number}: {ref.title}", styles["Normal"]))

    elements += [Spacer(1, 10 * mm), _paragraph(f"Generated on {date.today().isoformat()}", styles["Italic"])]
    return _build(elements)


# PUBLIC_INTERFACE
def render_record_pdf(record: QualityRecord, creator_name: Optional[str], company_name: str) -> bytes:
    """Printable copy of a quality record."""
    styles = getSampleStyleSheet()
    elements: list = [
        Paragraph(html.escape(company_name), styles["Title"]),
        Paragraph("QUALITY RECORD", styles["Heading2"]),
    ]
    created = record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else "-"
    for line in (
        f"Record #: {record.record_number}",
        f"Title: {record.title}",
        f"Created By: {creator_name or 'Unknown'}",
        f"Date: {created}",
    ):
        elements.append(_paragraph(line, styles["Normal"]))
    elements += [Spacer(1, 3 * mm), HRFlowable(width="100%", color=colors.black), Spacer(1, 5 * mm)]
    elements.append(_paragraph(strip_html(record.content) or "(No Content)", styles["BodyText"]))
    return _build(elements)


# PUBLIC_INTERFACE
def render_org_chart_pdf(people: Sequence[User], company_name: str) -> bytes:
    """Organizational chart as a flat `name - role` listing."""
    styles = getSampleStyleSheet()
    elements: list = [
        Paragraph(html.escape(company_name), styles["Title"]),
        Paragraph("Organizational Chart", styles["Heading2"]),
        Spacer(1, 3 * mm),
    ]
    for person in people:
        elements.append(_paragraph(f"{person.name} - {person.role}", styles["Normal"]))
    if not people:
        elements.append(Paragraph("No staff at this location.", styles["Normal"]))
    return _build(elements)


# PUBLIC_INTERFACE
def render_coa_pdf(
    ticket: QATicket,
    final_records: Sequence[QAInspectionRecord],
    forms: Dict[str, QAFormConfig],
    company_name: str,
    logo_url: Optional[str] = None,
) -> bytes:
    """Certificate of analysis listing every FINAL inspection field by field."""
    styles = getSampleStyleSheet()
    elements = _header(company_name, logo_url, styles)
    elements.append(Paragraph("CERTIFICATE OF ANALYSIS (COA)", styles["Heading2"]))
    for line in (
        f"Job Number: {ticket.ticket_number}",
        f"Item: {ticket.item_number} - {ticket.description}",
        f"Customer: {ticket.customer_name}",
        f"Date Released: {date.today().isoformat()}",
    ):
        elements.append(_paragraph(line, styles["Normal"]))
    elements += [Spacer(1, 3 * mm), HRFlowable(width="100%", color=colors.black), Spacer(1, 5 * mm)]

    if not final_records:
        elements.append(Paragraph("No final inspection records found.", styles["Normal"]))
    for record in final_records:
        form = forms.get(record.form_id)
        elements.append(_paragraph(f"Verification Stage: {form.name if form else 'Unknown'}", styles["Heading4"]))
        rows: List[List[str]] = [["Check", "Result"]]
        for field in form.fields if form else []:
            value = record.values.get(field.id)
            rows.append([field.label, "-" if value in (None, "") else str(value)])
        table = Table(rows, colWidths=[100 * mm, 60 * mm], hAlign="LEFT")
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ]))
        elements += [table, Spacer(1, 4 * mm)]
    return _build(elements)


# PUBLIC_INTERFACE
def render_complaint_notice(
    complaint: CustomerComplaint,
    ticket: Optional[QATicket],
    return_address: Optional[ReturnAddress],
    company_name: str,
    logo_url: Optional[str] = None,
) -> bytes:
    """Notice sent to the customer: complaint details, containment and where to return material."""
    styles = getSampleStyleSheet()
    elements = _header(company_name, logo_url, styles)
    elements.append(Paragraph(COMPANY_ADDRESS, styles["Normal"]))
    elements += [Spacer(1, 3 * mm), HRFlowable(width="100%", color=colors.black), Spacer(1, 5 * mm)]

    info = [
        [f"Date: {date.today().isoformat()}", f"Reference Job: {ticket.ticket_number if ticket else 'N/A'}"],
        [f"Customer: {complaint.customer_id}", f"Complaint ID: {complaint.id}"],
    ]
    if complaint.invoice_number:
        info.append([f"Invoice #: {complaint.invoice_number}", f"Revision: {complaint.revision}"])
    elements.append(Table(info, colWidths=[85 * mm, 85 * mm], hAlign="LEFT"))
    elements.append(Spacer(1, 6 * mm))

    elements.append(Paragraph("COMPLAINT DETAILS", styles["Heading3"]))
    for label, value in (
        ("Category", complaint.category),
        ("Sub-category", complaint.sub_category),
        ("Description", complaint.issue_description),
        ("Defective quantity", complaint.defective_quantity),
        ("Total cost", f"{complaint.total_cost:.2f}" if complaint.total_cost is not None else None),
    ):
        elements.append(_paragraph(f"{label}: {value if value not in (None, '') else '-'}", styles["Normal"]))

    elements.append(Paragraph("CONTAINMENT ACTION", styles["Heading3"]))
    action = (complaint.containment_action or "N/A").replace("_", " ")
    elements.append(_paragraph(action, styles["Normal"]))

    if return_address is not None:
        elements.append(Paragraph("RETURN ADDRESS", styles["Heading3"]))
        elements.append(_paragraph(return_address.label, styles["Normal"]))
        elements.append(_paragraph(return_address.address, styles["Normal"]))
    return _build(elements)
