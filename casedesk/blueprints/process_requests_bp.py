"""
Process Requests Blueprint.

Endpoints:
  GET/POST        /api/v1/process-requests
  GET/PUT/DELETE  /api/v1/process-requests/<id>
  POST            /api/v1/process-requests/<id>/approve   (admin)
  POST            /api/v1/process-requests/<id>/reject    (admin)
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import paginated_response, register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import process_request_service

process_requests_bp = Blueprint("process_requests", __name__, url_prefix="/api/v1")
register_error_handlers(process_requests_bp)


@process_requests_bp.route("/process-requests", methods=["GET"])
@login_required
def list_requests():
    q = process_request_service.list_requests(
        g.current_user,
        status=request.args.get("status"),
        company_id=request.args.get("company_id", type=int),
    )
    return paginated_response(q)


@process_requests_bp.route("/process-requests", methods=["POST"])
@login_required
def create_request():
    data = request.get_json(silent=True) or {}
    return jsonify(process_request_service.create_request(g.current_user, data).to_dict()), 201


@process_requests_bp.route("/process-requests/<int:req_id>", methods=["GET"])
@login_required
def get_request(req_id):
    return jsonify(process_request_service.get_request(g.current_user, req_id).to_dict()), 200


@process_requests_bp.route("/process-requests/<int:req_id>", methods=["PUT"])
@login_required
def update_request(req_id):
    data = request.get_json(silent=True) or {}
    return jsonify(process_request_service.update_request(g.current_user, req_id, data).to_dict()), 200


@process_requests_bp.route("/process-requests/<int:req_id>", methods=["DELETE"])
@login_required
def delete_request(req_id):
    process_request_service.delete_request(g.current_user, req_id)
    return jsonify({"message": "Process request deleted"}), 200


@process_requests_bp.route("/process-requests/<int:req_id>/approve", methods=["POST"])
@admin_required
def approve_request(req_id):
    return jsonify(process_request_service.approve_request(g.current_user, req_id).to_dict()), 200


@process_requests_bp.route("/process-requests/<int:req_id>/reject", methods=["POST"])
@admin_required
def reject_request(req_id):
    data = request.get_json(silent=True) or {}
    return jsonify(process_request_service.reject_request(g.current_user, req_id, data.get("reason")).to_dict()), 200
