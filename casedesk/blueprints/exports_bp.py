"""
Exports Blueprint — XLSX downloads.

Endpoints:
  GET /api/v1/exports/collective-processes.xlsx
  GET /api/v1/exports/individual-processes.xlsx   (?collective_process_id=)
  GET /api/v1/exports/people.xlsx                 (?search=&company_id=)
  GET /api/v1/exports/documents.xlsx              (?collective_process_id=&status=)
  GET /api/v1/exports/tasks.xlsx                  (?status=&priority=)
"""

from datetime import datetime, timezone

from flask import Blueprint, Response, g, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import login_required
from casedesk.services import export_service

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

exports_bp = Blueprint("exports", __name__, url_prefix="/api/v1/exports")
register_error_handlers(exports_bp)


def _xlsx_response(buf, name: str) -> Response:
    filename = f"{name}_{datetime.now(timezone.utc).strftime('%Y%m%d')}.xlsx"
    return Response(
        buf.getvalue(),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@exports_bp.route("/collective-processes.xlsx", methods=["GET"])
@login_required
def collective_processes():
    buf = export_service.export_collective_processes_xlsx(
        g.current_user,
        status=request.args.get("status"),
        company_id=request.args.get("company_id", type=int),
    )
    return _xlsx_response(buf, "collective_processes")


@exports_bp.route("/individual-processes.xlsx", methods=["GET"])
@login_required
def individual_processes():
    buf = export_service.export_individual_processes_xlsx(
        g.current_user,
        collective_process_id=request.args.get("collective_process_id", type=int),
        workflow_status=request.args.get("workflow_status"),
    )
    return _xlsx_response(buf, "individual_processes")


@exports_bp.route("/people.xlsx", methods=["GET"])
@login_required
def people():
    buf = export_service.export_people_xlsx(
        g.current_user,
        search=request.args.get("search"),
        company_id=request.args.get("company_id", type=int),
    )
    return _xlsx_response(buf, "people")


@exports_bp.route("/documents.xlsx", methods=["GET"])
@login_required
def documents():
    buf = export_service.export_documents_xlsx(
        g.current_user,
        collective_process_id=request.args.get("collective_process_id", type=int),
        status=request.args.get("status"),
    )
    return _xlsx_response(buf, "documents")


@exports_bp.route("/tasks.xlsx", methods=["GET"])
@login_required
def tasks():
    buf = export_service.export_tasks_xlsx(
        g.current_user,
        status=request.args.get("status"),
        priority=request.args.get("priority"),
    )
    return _xlsx_response(buf, "tasks")
