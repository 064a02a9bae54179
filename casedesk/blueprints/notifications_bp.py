"""
Notifications Blueprint — the current user's in-app notifications.

Endpoints:
  GET     /api/v1/notifications              — list (?unread_only=true&limit=&offset=)
  POST    /api/v1/notifications              — create for a user (admin)
  GET     /api/v1/notifications/unread-count
  POST    /api/v1/notifications/read-all
  GET     /api/v1/notifications/<id>
  POST    /api/v1/notifications/<id>/read
  DELETE  /api/v1/notifications/<id>
"""

import logging

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.core.exceptions import NotFoundError
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.models import db
from casedesk.models.notification import NOTIFICATION_TYPES
from casedesk.models.user import UserProfile
from casedesk.services.notification import NotificationService
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/v1")
register_error_handlers(notifications_bp)


@notifications_bp.route("/notifications", methods=["GET"])
@login_required
def list_notifications():
    limit = min(request.args.get("limit", 50, type=int), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = NotificationService.list_for_user(
        g.current_user.id,
        unread_only=parse_bool(request.args.get("unread_only")),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(g.current_user.id),
    }), 200


@notifications_bp.route("/notifications", methods=["POST"])
@admin_required
def create_notification():
    data = request.get_json(silent=True) or {}
    title = (data.get("title") or "").strip()
    if not title:
        return api_error(E.VALIDATION_REQUIRED, "title is required")
    if not data.get("user_id"):
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    ntype = data.get("type", "system")
    if ntype not in NOTIFICATION_TYPES:
        return api_error(E.VALIDATION_INVALID, f"Invalid type. Must be one of: {sorted(NOTIFICATION_TYPES)}")
    if db.session.get(UserProfile, data["user_id"]) is None:
        raise NotFoundError(resource="User profile", resource_id=data["user_id"])

    notif = NotificationService.create(
        user_id=data["user_id"],
        title=title,
        message=data.get("message", ""),
        type=ntype,
        entity_type=data.get("entity_type", ""),
        entity_id=data.get("entity_id"),
    )
    return jsonify(notif.to_dict()), 201


@notifications_bp.route("/notifications/unread-count", methods=["GET"])
@login_required
def unread_count():
    return jsonify({"unread_count": NotificationService.unread_count(g.current_user.id)}), 200


@notifications_bp.route("/notifications/read-all", methods=["POST"])
@login_required
def mark_all_read():
    return jsonify({"updated": NotificationService.mark_all_read(g.current_user.id)}), 200


@notifications_bp.route("/notifications/<int:notif_id>", methods=["GET"])
@login_required
def get_notification(notif_id):
    return jsonify(NotificationService.get(notif_id, g.current_user.id).to_dict()), 200


@notifications_bp.route("/notifications/<int:notif_id>/read", methods=["POST"])
@login_required
def mark_read(notif_id):
    return jsonify(NotificationService.mark_read(notif_id, g.current_user.id).to_dict()), 200


@notifications_bp.route("/notifications/<int:notif_id>", methods=["DELETE"])
@login_required
def delete_notification(notif_id):
    NotificationService.delete(notif_id, g.current_user.id)
    return jsonify({"message": "Notification deleted"}), 200
