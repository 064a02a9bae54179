"""
Tasks Blueprint.

Endpoints:
  GET/POST        /api/v1/tasks
  GET             /api/v1/tasks/mine
  GET             /api/v1/tasks/overdue
  GET/PUT/DELETE  /api/v1/tasks/<id>
  POST            /api/v1/tasks/<id>/complete
  POST            /api/v1/tasks/<id>/reassign
  POST            /api/v1/tasks/<id>/extend-deadline
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import paginated_response, register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import task_service
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1")
register_error_handlers(tasks_bp)


@tasks_bp.route("/tasks", methods=["GET"])
@login_required
def list_tasks():
    q = task_service.list_tasks(
        g.current_user,
        status=request.args.get("status"),
        priority=request.args.get("priority"),
        assigned_to=request.args.get("assigned_to", type=int),
        individual_process_id=request.args.get("individual_process_id", type=int),
        collective_process_id=request.args.get("collective_process_id", type=int),
    )
    return paginated_response(q)


@tasks_bp.route("/tasks", methods=["POST"])
@admin_required
def create_task():
    data = request.get_json(silent=True) or {}
    return jsonify(task_service.create_task(g.current_user, data).to_dict()), 201


@tasks_bp.route("/tasks/mine", methods=["GET"])
@login_required
def my_tasks():
    tasks = task_service.my_tasks(g.current_user, include_completed=parse_bool(request.args.get("include_completed")))
    return jsonify([t.to_dict() for t in tasks]), 200


@tasks_bp.route("/tasks/overdue", methods=["GET"])
@login_required
def overdue_tasks():
    return jsonify([t.to_dict() for t in task_service.overdue_tasks(g.current_user)]), 200


@tasks_bp.route("/tasks/<int:task_id>", methods=["GET"])
@login_required
def get_task(task_id):
    return jsonify(task_service.get_task(g.current_user, task_id).to_dict()), 200


@tasks_bp.route("/tasks/<int:task_id>", methods=["PUT"])
@admin_required
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    return jsonify(task_service.update_task(g.current_user, task_id, data).to_dict()), 200


@tasks_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
@admin_required
def delete_task(task_id):
    task_service.delete_task(g.current_user, task_id)
    return jsonify({"message": "Task deleted"}), 200


@tasks_bp.route("/tasks/<int:task_id>/complete", methods=["POST"])
@login_required
def complete_task(task_id):
    return jsonify(task_service.complete_task(g.current_user, task_id).to_dict()), 200


@tasks_bp.route("/tasks/<int:task_id>/reassign", methods=["POST"])
@admin_required
def reassign_task(task_id):
    data = request.get_json(silent=True) or {}
    if "assigned_to" not in data:
        return api_error(E.VALIDATION_REQUIRED, "assigned_to is required")
    return jsonify(task_service.reassign_task(g.current_user, task_id, data["assigned_to"]).to_dict()), 200


@tasks_bp.route("/tasks/<int:task_id>/extend-deadline", methods=["POST"])
@admin_required
def extend_deadline(task_id):
    data = request.get_json(silent=True) or {}
    if not data.get("due_date"):
        return api_error(E.VALIDATION_REQUIRED, "due_date is required")
    return jsonify(task_service.extend_deadline(g.current_user, task_id, data["due_date"]).to_dict()), 200
