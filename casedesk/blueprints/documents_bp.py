"""
Documents Blueprint — delivered documents, review and conditions.

Endpoints:
  GET   /api/v1/individual-processes/<id>/documents            — latest documents
  GET   /api/v1/individual-processes/<id>/documents/grouped    — required/optional/loose
  POST  /api/v1/individual-processes/<id>/documents            — upload (typed or loose)
  GET   /api/v1/documents/<id>
  DELETE /api/v1/documents/<id>                                 — soft remove
  POST  /api/v1/documents/<id>/upload                           — fill placeholder / replace rejected
  POST  /api/v1/documents/<id>/assign-type
  POST  /api/v1/documents/<id>/submit
  POST  /api/v1/documents/<id>/approve
  POST  /api/v1/documents/<id>/reject
  GET   /api/v1/documents/<id>/versions
  GET   /api/v1/documents/<id>/history
  GET   /api/v1/documents/<id>/validity
  GET   /api/v1/documents/<id>/conditions
  GET   /api/v1/documents/<id>/conditions/status
  PUT   /api/v1/document-conditions/<id>                        — toggle fulfilment
  GET   /api/v1/documents/review-queue
  POST  /api/v1/documents/bulk/approve | bulk/reject | bulk/delete

Upload bodies carry file metadata only; the file itself is stored
externally and referenced by ``file_url``.
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import condition_service, document_service
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

documents_bp = Blueprint("documents", __name__, url_prefix="/api/v1")
register_error_handlers(documents_bp)


def _ids(data):
    ids = data.get("ids")
    if not isinstance(ids, list) or not ids:
        return None
    return ids


# ═══════════════════════════════════════════════════════════════
# Per-process documents
# ═══════════════════════════════════════════════════════════════
@documents_bp.route("/individual-processes/<int:ip_id>/documents", methods=["GET"])
@login_required
def list_documents(ip_id):
    docs = document_service.list_documents(
        g.current_user, ip_id,
        status=request.args.get("status"),
        latest_only=not parse_bool(request.args.get("all_versions")),
    )
    return jsonify([d.to_dict() for d in docs]), 200


@documents_bp.route("/individual-processes/<int:ip_id>/documents/grouped", methods=["GET"])
@login_required
def list_grouped(ip_id):
    return jsonify(document_service.list_grouped_by_category(g.current_user, ip_id)), 200


@documents_bp.route("/individual-processes/<int:ip_id>/documents", methods=["POST"])
@login_required
def upload(ip_id):
    """
    Body: { file_name, file_url, file_size, mime_type,
            document_type_id?, document_requirement_id?, issue_date?, expiry_date? }

    Without ``document_type_id`` the document is stored as loose.
    """
    data = request.get_json(silent=True) or {}
    if not data.get("file_name"):
        return api_error(E.VALIDATION_REQUIRED, "file_name is required")
    if data.get("document_type_id"):
        document = document_service.upload_with_type(g.current_user, ip_id, data)
    else:
        document = document_service.upload_loose(g.current_user, ip_id, data)
    return jsonify(document.to_dict()), 201


# ═══════════════════════════════════════════════════════════════
# Single document
# ═══════════════════════════════════════════════════════════════
@documents_bp.route("/documents/review-queue", methods=["GET"])
@admin_required
def review_queue():
    limit = request.args.get("limit", 20, type=int)
    docs = document_service.list_review_queue(g.current_user, limit=max(1, min(limit, 200)))
    return jsonify([d.to_dict() for d in docs]), 200


@documents_bp.route("/documents/<int:doc_id>", methods=["GET"])
@login_required
def get_document(doc_id):
    document = document_service.get_document(g.current_user, doc_id)
    body = document.to_dict()
    body["conditions"] = [c.to_dict() for c in document.conditions]
    return jsonify(body), 200


@documents_bp.route("/documents/<int:doc_id>", methods=["DELETE"])
@admin_required
def remove_document(doc_id):
    document_service.remove_document(g.current_user, doc_id)
    return jsonify({"message": "Document removed"}), 200


@documents_bp.route("/documents/<int:doc_id>/upload", methods=["POST"])
@login_required
def upload_for_pending(doc_id):
    data = request.get_json(silent=True) or {}
    if not data.get("file_name"):
        return api_error(E.VALIDATION_REQUIRED, "file_name is required")
    return jsonify(document_service.upload_for_pending(g.current_user, doc_id, data).to_dict()), 201


@documents_bp.route("/documents/<int:doc_id>/assign-type", methods=["POST"])
@login_required
def assign_type(doc_id):
    data = request.get_json(silent=True) or {}
    if not data.get("document_type_id"):
        return api_error(E.VALIDATION_REQUIRED, "document_type_id is required")
    return jsonify(document_service.assign_type(g.current_user, doc_id, data["document_type_id"]).to_dict()), 200


@documents_bp.route("/documents/<int:doc_id>/submit", methods=["POST"])
@login_required
def submit_for_review(doc_id):
    return jsonify(document_service.submit_for_review(g.current_user, doc_id).to_dict()), 200


@documents_bp.route("/documents/<int:doc_id>/approve", methods=["POST"])
@admin_required
def approve(doc_id):
    data = request.get_json(silent=True) or {}
    return jsonify(document_service.approve_document(g.current_user, doc_id, notes=data.get("notes")).to_dict()), 200


@documents_bp.route("/documents/<int:doc_id>/reject", methods=["POST"])
@admin_required
def reject(doc_id):
    data = request.get_json(silent=True) or {}
    return jsonify(document_service.reject_document(g.current_user, doc_id, data.get("reason")).to_dict()), 200


@documents_bp.route("/documents/<int:doc_id>/versions", methods=["GET"])
@login_required
def version_history(doc_id):
    return jsonify([d.to_dict() for d in document_service.get_version_history(g.current_user, doc_id)]), 200


@documents_bp.route("/documents/<int:doc_id>/history", methods=["GET"])
@login_required
def status_history(doc_id):
    return jsonify([h.to_dict() for h in document_service.get_status_history(g.current_user, doc_id)]), 200


@documents_bp.route("/documents/<int:doc_id>/validity", methods=["GET"])
@login_required
def validity(doc_id):
    return jsonify(document_service.check_validity(g.current_user, doc_id)), 200


# ── Conditions ───────────────────────────────────────────────────────────────

@documents_bp.route("/documents/<int:doc_id>/conditions", methods=["GET"])
@login_required
def list_conditions(doc_id):
    return jsonify([c.to_dict() for c in condition_service.list_by_document(g.current_user, doc_id)]), 200


@documents_bp.route("/documents/<int:doc_id>/conditions/status", methods=["GET"])
@login_required
def conditions_status(doc_id):
    return jsonify(condition_service.get_validation_status(g.current_user, doc_id)), 200


@documents_bp.route("/document-conditions/<int:record_id>", methods=["PUT"])
@admin_required
def toggle_condition(record_id):
    data = request.get_json(silent=True) or {}
    if "is_fulfilled" not in data:
        return api_error(E.VALIDATION_REQUIRED, "is_fulfilled is required")
    record = condition_service.toggle_fulfillment(
        g.current_user, record_id, parse_bool(data["is_fulfilled"]), notes=data.get("notes"),
    )
    return jsonify(record.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Bulk operations
# ═══════════════════════════════════════════════════════════════
@documents_bp.route("/documents/bulk/approve", methods=["POST"])
@admin_required
def bulk_approve():
    data = request.get_json(silent=True) or {}
    ids = _ids(data)
    if ids is None:
        return api_error(E.VALIDATION_REQUIRED, "ids must be a non-empty list")
    return jsonify(document_service.bulk_approve(g.current_user, ids, notes=data.get("notes"))), 200


@documents_bp.route("/documents/bulk/reject", methods=["POST"])
@admin_required
def bulk_reject():
    data = request.get_json(silent=True) or {}
    ids = _ids(data)
    if ids is None:
        return api_error(E.VALIDATION_REQUIRED, "ids must be a non-empty list")
    return jsonify(document_service.bulk_reject(g.current_user, ids, data.get("reason"))), 200


@documents_bp.route("/documents/bulk/delete", methods=["POST"])
@admin_required
def bulk_delete():
    data = request.get_json(silent=True) or {}
    ids = _ids(data)
    if ids is None:
        return api_error(E.VALIDATION_REQUIRED, "ids must be a non-empty list")
    return jsonify(document_service.bulk_delete(g.current_user, ids)), 200
