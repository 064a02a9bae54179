"""
Processes Blueprint — collective and individual processes.

Collective processes:
  GET/POST          /api/v1/collective-processes
  GET               /api/v1/collective-processes/by-reference/<ref>
  GET/PUT/DELETE    /api/v1/collective-processes/<id>
  POST              /api/v1/collective-processes/<id>/status
  GET               /api/v1/collective-processes/<id>/status-summary
  POST              /api/v1/collective-processes/<id>/people
  POST              /api/v1/collective-processes/<id>/case-status

Individual processes:
  GET/POST          /api/v1/individual-processes
  GET/PUT/DELETE    /api/v1/individual-processes/<id>
  GET               /api/v1/individual-processes/<id>/government
  POST              /api/v1/individual-processes/<id>/workflow
  GET               /api/v1/individual-processes/<id>/history
  GET/POST          /api/v1/individual-processes/<id>/statuses
  GET               /api/v1/individual-processes/<id>/statuses/active
  PUT/DELETE        /api/v1/process-statuses/<id>
  GET               /api/v1/individual-processes/<id>/requirements-checklist
  GET               /api/v1/appointments/upcoming
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import paginated_response, register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import checklist_service
from casedesk.services import collective_process_service as cps
from casedesk.services import individual_process_service as ips
from casedesk.services.appointment_reminders import list_upcoming_appointments
from casedesk.services.process_status import next_collective_statuses
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

processes_bp = Blueprint("processes", __name__, url_prefix="/api/v1")
register_error_handlers(processes_bp)


def _optional_bool(name):
    value = request.args.get(name)
    return parse_bool(value) if value is not None else None


# ═══════════════════════════════════════════════════════════════
# Collective processes
# ═══════════════════════════════════════════════════════════════
@processes_bp.route("/collective-processes", methods=["GET"])
@login_required
def list_collective_processes():
    q = cps.list_collective_processes(
        g.current_user,
        company_id=request.args.get("company_id", type=int),
        status=request.args.get("status"),
        process_type_id=request.args.get("process_type_id", type=int),
        is_urgent=_optional_bool("is_urgent"),
        search=request.args.get("search"),
    )
    return paginated_response(q)


@processes_bp.route("/collective-processes", methods=["POST"])
@admin_required
def create_collective_process():
    data = request.get_json(silent=True) or {}
    if not data.get("reference_number"):
        return api_error(E.VALIDATION_REQUIRED, "reference_number is required")
    process = cps.create_collective_process(g.current_user, data)
    return jsonify(process.to_dict()), 201


@processes_bp.route("/collective-processes/by-reference/<path:reference_number>", methods=["GET"])
@login_required
def get_by_reference(reference_number):
    return jsonify(cps.get_by_reference_number(g.current_user, reference_number).to_dict()), 200


@processes_bp.route("/collective-processes/<int:cp_id>", methods=["GET"])
@login_required
def get_collective_process(cp_id):
    process = cps.get_collective_process(g.current_user, cp_id)
    body = process.to_dict(include_children=parse_bool(request.args.get("include_children")))
    body["allowed_transitions"] = next_collective_statuses(process.status)
    return jsonify(body), 200


@processes_bp.route("/collective-processes/<int:cp_id>", methods=["PUT"])
@admin_required
def update_collective_process(cp_id):
    data = request.get_json(silent=True) or {}
    return jsonify(cps.update_collective_process(g.current_user, cp_id, data).to_dict()), 200


@processes_bp.route("/collective-processes/<int:cp_id>", methods=["DELETE"])
@admin_required
def delete_collective_process(cp_id):
    cps.delete_collective_process(g.current_user, cp_id)
    return jsonify({"message": "Collective process deleted"}), 200


@processes_bp.route("/collective-processes/<int:cp_id>/status", methods=["POST"])
@admin_required
def transition_collective_status(cp_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    return jsonify(cps.transition_status(g.current_user, cp_id, data["status"]).to_dict()), 200


@processes_bp.route("/collective-processes/<int:cp_id>/status-summary", methods=["GET"])
@login_required
def collective_status_summary(cp_id):
    return jsonify(cps.status_summary(g.current_user, cp_id)), 200


@processes_bp.route("/collective-processes/<int:cp_id>/people", methods=["POST"])
@admin_required
def add_people(cp_id):
    """
    Body: { "person_ids": [..], "case_status_id"?, "legal_framework_id"?, "deadline_date"? }
    Returns: { successful, failed, total_processed }
    """
    data = request.get_json(silent=True) or {}
    person_ids = data.get("person_ids")
    if not isinstance(person_ids, list) or not person_ids:
        return api_error(E.VALIDATION_REQUIRED, "person_ids must be a non-empty list")
    result = cps.add_people(
        g.current_user, cp_id, person_ids,
        case_status_id=data.get("case_status_id"),
        legal_framework_id=data.get("legal_framework_id"),
        deadline_date=data.get("deadline_date"),
    )
    return jsonify(result), 200


@processes_bp.route("/collective-processes/<int:cp_id>/case-status", methods=["POST"])
@admin_required
def bulk_update_case_status(cp_id):
    data = request.get_json(silent=True) or {}
    if not data.get("case_status_id"):
        return api_error(E.VALIDATION_REQUIRED, "case_status_id is required")
    result = cps.update_statuses(
        g.current_user, cp_id, data["case_status_id"],
        status_date=data.get("date"),
        notes=data.get("notes"),
        individual_process_ids=data.get("individual_process_ids"),
    )
    return jsonify(result), 200


# ═══════════════════════════════════════════════════════════════
# Individual processes
# ═══════════════════════════════════════════════════════════════
@processes_bp.route("/individual-processes", methods=["GET"])
@login_required
def list_individual_processes():
    q = ips.list_individual_processes(
        g.current_user,
        collective_process_id=request.args.get("collective_process_id", type=int),
        person_id=request.args.get("person_id", type=int),
        case_status_id=request.args.get("case_status_id", type=int),
        workflow_status=request.args.get("workflow_status"),
        is_active=_optional_bool("is_active"),
    )
    return paginated_response(q)


@processes_bp.route("/individual-processes", methods=["POST"])
@admin_required
def create_individual_process():
    data = request.get_json(silent=True) or {}
    return jsonify(ips.create_individual_process(g.current_user, data).to_dict()), 201


@processes_bp.route("/individual-processes/<int:ip_id>", methods=["GET"])
@login_required
def get_individual_process(ip_id):
    process = ips.get_individual_process(g.current_user, ip_id)
    body = process.to_dict()
    body["allowed_transitions"] = ips.allowed_transitions(g.current_user, ip_id)
    return jsonify(body), 200


@processes_bp.route("/individual-processes/<int:ip_id>", methods=["PUT"])
@admin_required
def update_individual_process(ip_id):
    data = request.get_json(silent=True) or {}
    return jsonify(ips.update_individual_process(g.current_user, ip_id, data).to_dict()), 200


@processes_bp.route("/individual-processes/<int:ip_id>", methods=["DELETE"])
@admin_required
def delete_individual_process(ip_id):
    ips.delete_individual_process(g.current_user, ip_id)
    return jsonify({"message": "Individual process deleted"}), 200


@processes_bp.route("/individual-processes/<int:ip_id>/government", methods=["GET"])
@login_required
def government_view(ip_id):
    return jsonify(ips.get_government_view(g.current_user, ip_id)), 200


@processes_bp.route("/individual-processes/<int:ip_id>/workflow", methods=["POST"])
@admin_required
def transition_workflow(ip_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    process = ips.transition_workflow(g.current_user, ip_id, data["status"], notes=data.get("notes"))
    return jsonify(process.to_dict()), 200


@processes_bp.route("/individual-processes/<int:ip_id>/history", methods=["GET"])
@login_required
def workflow_history(ip_id):
    return jsonify([h.to_dict() for h in ips.list_process_history(g.current_user, ip_id)]), 200


@processes_bp.route("/individual-processes/<int:ip_id>/requirements-checklist", methods=["GET"])
@login_required
def requirements_checklist(ip_id):
    return jsonify(checklist_service.get_requirements_checklist(g.current_user, ip_id)), 200


# ── Case status history ──────────────────────────────────────────────────────

@processes_bp.route("/individual-processes/<int:ip_id>/statuses", methods=["GET"])
@login_required
def list_status_history(ip_id):
    return jsonify([s.to_dict() for s in ips.list_status_history(g.current_user, ip_id)]), 200


@processes_bp.route("/individual-processes/<int:ip_id>/statuses/active", methods=["GET"])
@login_required
def get_active_status(ip_id):
    record = ips.get_active_status(g.current_user, ip_id)
    return jsonify(record.to_dict() if record else None), 200


@processes_bp.route("/individual-processes/<int:ip_id>/statuses", methods=["POST"])
@admin_required
def add_status(ip_id):
    """
    Body: { "case_status_id", "date"?: "YYYY-MM-DD", "notes"?, "filled_fields_data"?: {...} }
    """
    data = request.get_json(silent=True) or {}
    if not data.get("case_status_id"):
        return api_error(E.VALIDATION_REQUIRED, "case_status_id is required")
    record = ips.add_status(
        g.current_user, ip_id, data["case_status_id"],
        status_date=data.get("date"),
        notes=data.get("notes"),
        filled_fields_data=data.get("filled_fields_data"),
    )
    return jsonify(record.to_dict()), 201


@processes_bp.route("/process-statuses/<int:status_id>", methods=["PUT"])
@admin_required
def update_status(status_id):
    data = request.get_json(silent=True) or {}
    return jsonify(ips.update_status(g.current_user, status_id, data).to_dict()), 200


@processes_bp.route("/process-statuses/<int:status_id>", methods=["DELETE"])
@admin_required
def delete_status(status_id):
    ips.delete_status(g.current_user, status_id)
    return jsonify({"message": "Status record deleted"}), 200


# ═══════════════════════════════════════════════════════════════
# Appointments
# ═══════════════════════════════════════════════════════════════
@processes_bp.route("/appointments/upcoming", methods=["GET"])
@login_required
def upcoming_appointments():
    days = request.args.get("days", 7, type=int)
    items = list_upcoming_appointments(g.current_user, days=max(1, min(days, 90)))
    return jsonify([ip.to_dict() for ip in items]), 200
