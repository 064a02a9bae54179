"""
XLSX exports.

Every export returns a ``BytesIO`` ready for ``flask.send_file``.  Rows are
limited to what the requesting profile can see (clients: own company).
"""

import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from casedesk.models.document import DeliveredDocument
from casedesk.services.collective_process_service import list_collective_processes
from casedesk.services.company_service import list_people
from casedesk.services.government_status import calculate_government_status
from casedesk.services.individual_process_service import list_individual_processes
from casedesk.services.task_service import list_tasks

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
URGENT_FILL = PatternFill(start_color="F8D7DA", end_color="F8D7DA", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def _apply_header_style(ws, row: int, col_count: int) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def _cell_value(value):
    if isinstance(value, datetime):
        # openpyxl rejects tz-aware datetimes
        return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value
    return value


def _write_sheet(title: str, headers: list[str], rows, highlight=None) -> io.BytesIO:
    """One-sheet workbook: header row, data rows, frozen header and auto width."""
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws.append(headers)
    _apply_header_style(ws, 1, len(headers))

    count = 0
    for row_idx, values in enumerate(rows, 2):
        count += 1
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(value))
            cell.border = THIN_BORDER
            if highlight and highlight(values):
                cell.fill = URGENT_FILL
    ws.freeze_panes = "A2"
    _auto_width(ws)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    logger.info("XLSX export sheet=%s rows=%d", title, count)
    return buf


# ═══════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════
def export_collective_processes_xlsx(profile, **filters) -> io.BytesIO:
    headers = ["ID", "Reference", "Company", "Process Type", "Status", "Urgent",
               "Request Date", "Individual Processes", "Created"]
    rows = (
        [
            cp.id,
            cp.reference_number,
            cp.company.name if cp.company else "",
            cp.process_type.name if cp.process_type else "",
            cp.status,
            "Yes" if cp.is_urgent else "No",
            cp.request_date,
            cp.individual_processes.count(),
            cp.created_at,
        ]
        for cp in list_collective_processes(profile, **filters).all()
    )
    return _write_sheet("Collective Processes", headers, rows, highlight=lambda r: r[5] == "Yes")


def export_individual_processes_xlsx(profile, **filters) -> io.BytesIO:
    headers = ["ID", "Collective Reference", "Person", "Case Status", "Workflow Status",
               "Government Status", "Protocol", "RNM", "RNM Deadline", "Appointment", "Deadline"]
    rows = (
        [
            ip.id,
            ip.collective_process.reference_number if ip.collective_process else "",
            ip.person.full_name if ip.person else "",
            ip.case_status.name if ip.case_status else "",
            ip.workflow_status,
            calculate_government_status(ip.government_fields())["status"],
            ip.protocol_number,
            ip.rnm_number,
            ip.rnm_deadline,
            ip.appointment_date_time,
            ip.deadline_date,
        ]
        for ip in list_individual_processes(profile, **filters).all()
    )
    return _write_sheet("Individual Processes", headers, rows)


def export_people_xlsx(profile, search=None, company_id=None) -> io.BytesIO:
    headers = ["ID", "Full Name", "Email", "CPF", "Birth Date", "Nationality", "Profession", "Company"]
    rows = (
        [
            p.id, p.full_name, p.email, p.cpf, p.birth_date, p.nationality, p.profession,
            p.company.name if p.company else "",
        ]
        for p in list_people(profile, search=search, company_id=company_id)
    )
    return _write_sheet("People", headers, rows)


def export_documents_xlsx(profile, collective_process_id=None, status=None) -> io.BytesIO:
    headers = ["ID", "Person", "Document Type", "File", "Status", "Version", "Required",
               "Uploaded", "Reviewed", "Expiry Date", "Rejection Reason"]
    process_ids = [
        ip.id for ip in list_individual_processes(profile, collective_process_id=collective_process_id).all()
    ]
    q = DeliveredDocument.query.filter(
        DeliveredDocument.individual_process_id.in_(process_ids),
        DeliveredDocument.is_latest.is_(True),
    )
    if status:
        q = q.filter(DeliveredDocument.status == status)
    rows = (
        [
            d.id,
            d.individual_process.person.full_name if d.individual_process and d.individual_process.person else "",
            d.document_type.name if d.document_type else "(unclassified)",
            d.file_name,
            d.status,
            d.version,
            "Yes" if d.is_required else "No",
            d.uploaded_at,
            d.reviewed_at,
            d.expiry_date,
            d.rejection_reason,
        ]
        for d in q.order_by(DeliveredDocument.individual_process_id, DeliveredDocument.id).all()
    )
    return _write_sheet("Documents", headers, rows)


def export_tasks_xlsx(profile, **filters) -> io.BytesIO:
    headers = ["ID", "Title", "Priority", "Status", "Due Date", "Assignee",
               "Individual Process", "Collective Process", "Completed"]
    rows = (
        [
            t.id, t.title, t.priority, t.status, t.due_date,
            t.assignee.full_name if t.assignee else "",
            t.individual_process_id, t.collective_process_id, t.completed_at,
        ]
        for t in list_tasks(profile, **filters).all()
    )
    return _write_sheet("Tasks", headers, rows, highlight=lambda r: r[2] == "urgent")
