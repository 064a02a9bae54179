"""
Activity Log Blueprint (admin).

Endpoints:
  GET /api/v1/activity-logs                       — filters: user_id, entity_type, entity_id,
                                                    action, start, end, limit, offset
  GET /api/v1/activity-logs/<entity_type>/<id>    — history of one entity
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required
from casedesk.services import activity_service

activity_bp = Blueprint("activity", __name__, url_prefix="/api/v1")
register_error_handlers(activity_bp)


@activity_bp.route("/activity-logs", methods=["GET"])
@admin_required
def list_activity_logs():
    items, total = activity_service.list_activity_logs(
        g.current_user,
        user_id=request.args.get("user_id", type=int),
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        action=request.args.get("action"),
        start=request.args.get("start"),
        end=request.args.get("end"),
        limit=min(request.args.get("limit", 100, type=int), 500),
        offset=max(request.args.get("offset", 0, type=int), 0),
    )
    return jsonify({"items": [i.to_dict() for i in items], "total": total}), 200


@activity_bp.route("/activity-logs/<entity_type>/<int:entity_id>", methods=["GET"])
@admin_required
def entity_history(entity_type, entity_id):
    items = activity_service.get_entity_history(g.current_user, entity_type, entity_id)
    return jsonify([i.to_dict() for i in items]), 200
