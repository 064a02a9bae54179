"""
Dashboard Blueprint.

Endpoints:
  GET /api/v1/dashboard                     — all widgets for the current user
  GET /api/v1/dashboard/process-stats
  GET /api/v1/dashboard/upcoming-deadlines  (?days=30)
  GET /api/v1/dashboard/recent-activity     (admin, ?limit=20)
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")
register_error_handlers(dashboard_bp)


@dashboard_bp.route("", methods=["GET"])
@login_required
def dashboard():
    return jsonify(dashboard_service.get_dashboard(g.current_user)), 200


@dashboard_bp.route("/process-stats", methods=["GET"])
@login_required
def process_stats():
    return jsonify(dashboard_service.get_process_stats(g.current_user)), 200


@dashboard_bp.route("/upcoming-deadlines", methods=["GET"])
@login_required
def upcoming_deadlines():
    days = max(1, min(request.args.get("days", 30, type=int), 365))
    return jsonify(dashboard_service.get_upcoming_deadlines(g.current_user, days=days)), 200


@dashboard_bp.route("/recent-activity", methods=["GET"])
@admin_required
def recent_activity():
    limit = max(1, min(request.args.get("limit", 20, type=int), 200))
    return jsonify(dashboard_service.get_recent_activity(g.current_user, limit=limit)), 200
