"""
Catalog Blueprint — configuration data managed by admins.

Endpoint groups:
  Process types          /api/v1/process-types[/<id>]
  Legal frameworks       /api/v1/legal-frameworks[/<id>]
  Case statuses          /api/v1/case-statuses[/<id>], /toggle, /reorder
  Document categories    /api/v1/document-categories[/<id>], /toggle, /by-code/<code>
  Document types         /api/v1/document-types[/<id>]
  Framework associations /api/v1/document-types/<id>/legal-frameworks,
                         /api/v1/legal-frameworks/<id>/document-types,
                         /api/v1/document-type-associations/<id>
  Conditions             /api/v1/conditions[/<id>],
                         /api/v1/document-types/<id>/conditions,
                         /api/v1/condition-links/<id>
  Templates              /api/v1/document-templates[/<id>], /clone,
                         /api/v1/document-templates/<id>/requirements,
                         /api/v1/document-requirements/<id>

Reads are open to any authenticated user; writes require the admin role.
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import catalog_service, condition_service, template_service
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/v1")
register_error_handlers(catalog_bp)


def _active_only():
    return parse_bool(request.args.get("active_only"))


# ═══════════════════════════════════════════════════════════════
# Process types
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/process-types", methods=["GET"])
@login_required
def list_process_types():
    return jsonify([pt.to_dict() for pt in catalog_service.list_process_types(_active_only())]), 200


@catalog_bp.route("/process-types", methods=["POST"])
@admin_required
def create_process_type():
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.create_process_type(g.current_user, data).to_dict()), 201


@catalog_bp.route("/process-types/<int:pt_id>", methods=["GET"])
@login_required
def get_process_type(pt_id):
    return jsonify(catalog_service.get_process_type(pt_id).to_dict()), 200


@catalog_bp.route("/process-types/<int:pt_id>", methods=["PUT"])
@admin_required
def update_process_type(pt_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_process_type(g.current_user, pt_id, data).to_dict()), 200


@catalog_bp.route("/process-types/<int:pt_id>", methods=["DELETE"])
@admin_required
def delete_process_type(pt_id):
    catalog_service.delete_process_type(g.current_user, pt_id)
    return jsonify({"message": "Process type deleted"}), 200


# ═══════════════════════════════════════════════════════════════
# Legal frameworks
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/legal-frameworks", methods=["GET"])
@login_required
def list_legal_frameworks():
    items = catalog_service.list_legal_frameworks(
        process_type_id=request.args.get("process_type_id", type=int), active_only=_active_only(),
    )
    return jsonify([lf.to_dict() for lf in items]), 200


@catalog_bp.route("/legal-frameworks", methods=["POST"])
@admin_required
def create_legal_framework():
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.create_legal_framework(g.current_user, data).to_dict()), 201


@catalog_bp.route("/legal-frameworks/<int:lf_id>", methods=["GET"])
@login_required
def get_legal_framework(lf_id):
    return jsonify(catalog_service.get_legal_framework(lf_id).to_dict()), 200


@catalog_bp.route("/legal-frameworks/<int:lf_id>", methods=["PUT"])
@admin_required
def update_legal_framework(lf_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_legal_framework(g.current_user, lf_id, data).to_dict()), 200


@catalog_bp.route("/legal-frameworks/<int:lf_id>", methods=["DELETE"])
@admin_required
def delete_legal_framework(lf_id):
    catalog_service.delete_legal_framework(g.current_user, lf_id)
    return jsonify({"message": "Legal framework deleted"}), 200


@catalog_bp.route("/legal-frameworks/<int:lf_id>/document-types", methods=["GET"])
@login_required
def list_framework_document_types(lf_id):
    items = catalog_service.list_associations_by_legal_framework(lf_id)
    return jsonify([
        {**a.to_dict(), "document_type": a.document_type.to_dict() if a.document_type else None}
        for a in items
    ]), 200


# ═══════════════════════════════════════════════════════════════
# Case statuses
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/case-statuses", methods=["GET"])
@login_required
def list_case_statuses():
    items = catalog_service.list_case_statuses(active_only=_active_only(), category=request.args.get("category"))
    return jsonify([cs.to_dict() for cs in items]), 200


@catalog_bp.route("/case-statuses", methods=["POST"])
@admin_required
def create_case_status():
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.create_case_status(g.current_user, data).to_dict()), 201


@catalog_bp.route("/case-statuses/reorder", methods=["POST"])
@admin_required
def reorder_case_statuses():
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")
    if not isinstance(ids, list) or not ids:
        return api_error(E.VALIDATION_REQUIRED, "ids must be a non-empty list")
    count = catalog_service.reorder_case_statuses(g.current_user, ids)
    return jsonify({"updated": count}), 200


@catalog_bp.route("/case-statuses/<int:cs_id>", methods=["GET"])
@login_required
def get_case_status(cs_id):
    return jsonify(catalog_service.get_case_status(cs_id).to_dict()), 200


@catalog_bp.route("/case-statuses/<int:cs_id>", methods=["PUT"])
@admin_required
def update_case_status(cs_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_case_status(g.current_user, cs_id, data).to_dict()), 200


@catalog_bp.route("/case-statuses/<int:cs_id>", methods=["DELETE"])
@admin_required
def delete_case_status(cs_id):
    status = catalog_service.delete_case_status(g.current_user, cs_id)
    return jsonify(status.to_dict()), 200


@catalog_bp.route("/case-statuses/<int:cs_id>/toggle", methods=["POST"])
@admin_required
def toggle_case_status(cs_id):
    data = request.get_json(silent=True) or {}
    if "is_active" not in data:
        return api_error(E.VALIDATION_REQUIRED, "is_active is required")
    status = catalog_service.toggle_case_status_active(g.current_user, cs_id, parse_bool(data["is_active"]))
    return jsonify(status.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Document categories
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/document-categories", methods=["GET"])
@login_required
def list_document_categories():
    items = catalog_service.list_document_categories(active_only=_active_only(), search=request.args.get("search"))
    return jsonify([c.to_dict() for c in items]), 200


@catalog_bp.route("/document-categories/by-code/<code>", methods=["GET"])
@login_required
def get_document_category_by_code(code):
    return jsonify(catalog_service.get_document_category_by_code(code).to_dict()), 200


@catalog_bp.route("/document-categories", methods=["POST"])
@admin_required
def create_document_category():
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    return jsonify(catalog_service.create_document_category(g.current_user, data).to_dict()), 201


@catalog_bp.route("/document-categories/<int:category_id>", methods=["GET"])
@login_required
def get_document_category(category_id):
    return jsonify(catalog_service.get_document_category(category_id).to_dict()), 200


@catalog_bp.route("/document-categories/<int:category_id>", methods=["PUT"])
@admin_required
def update_document_category(category_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_document_category(g.current_user, category_id, data).to_dict()), 200


@catalog_bp.route("/document-categories/<int:category_id>", methods=["DELETE"])
@admin_required
def deactivate_document_category(category_id):
    category = catalog_service.deactivate_document_category(g.current_user, category_id)
    return jsonify(category.to_dict()), 200


@catalog_bp.route("/document-categories/<int:category_id>/toggle", methods=["POST"])
@admin_required
def toggle_document_category(category_id):
    category = catalog_service.toggle_document_category_active(g.current_user, category_id)
    return jsonify(category.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Document types & framework associations
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/document-types", methods=["GET"])
@login_required
def list_document_types():
    items = catalog_service.list_document_types(
        active_only=_active_only(), category=request.args.get("category"), search=request.args.get("search"),
    )
    return jsonify([dt.to_dict() for dt in items]), 200


@catalog_bp.route("/document-types", methods=["POST"])
@admin_required
def create_document_type():
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.create_document_type(g.current_user, data).to_dict()), 201


@catalog_bp.route("/document-types/<int:dt_id>", methods=["GET"])
@login_required
def get_document_type(dt_id):
    return jsonify(catalog_service.get_document_type(dt_id).to_dict()), 200


@catalog_bp.route("/document-types/<int:dt_id>", methods=["PUT"])
@admin_required
def update_document_type(dt_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_document_type(g.current_user, dt_id, data).to_dict()), 200


@catalog_bp.route("/document-types/<int:dt_id>", methods=["DELETE"])
@admin_required
def delete_document_type(dt_id):
    catalog_service.delete_document_type(g.current_user, dt_id)
    return jsonify({"message": "Document type deleted"}), 200


@catalog_bp.route("/document-types/<int:dt_id>/legal-frameworks", methods=["GET"])
@login_required
def list_document_type_frameworks(dt_id):
    return jsonify([a.to_dict() for a in catalog_service.list_associations_by_document_type(dt_id)]), 200


@catalog_bp.route("/document-types/<int:dt_id>/legal-frameworks", methods=["PUT"])
@admin_required
def replace_document_type_frameworks(dt_id):
    data = request.get_json(silent=True) or {}
    items = data.get("items")
    if not isinstance(items, list):
        return api_error(E.VALIDATION_REQUIRED, "items must be a list")
    result = catalog_service.update_associations(g.current_user, dt_id, items)
    return jsonify([a.to_dict() for a in result]), 200


@catalog_bp.route("/document-types/<int:dt_id>/legal-frameworks/toggle-all", methods=["POST"])
@admin_required
def toggle_all_frameworks(dt_id):
    data = request.get_json(silent=True) or {}
    count = catalog_service.toggle_all_for_document_type(
        g.current_user, dt_id, parse_bool(data.get("select_all")),
        default_is_required=parse_bool(data.get("is_required")),
    )
    return jsonify({"affected": count}), 200


@catalog_bp.route("/document-type-associations/<int:assoc_id>", methods=["PUT"])
@admin_required
def update_association(assoc_id):
    data = request.get_json(silent=True) or {}
    return jsonify(catalog_service.update_association(g.current_user, assoc_id, data).to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Conditions
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/conditions", methods=["GET"])
@login_required
def list_conditions():
    return jsonify([c.to_dict() for c in condition_service.list_conditions(_active_only())]), 200


@catalog_bp.route("/conditions", methods=["POST"])
@admin_required
def create_condition():
    data = request.get_json(silent=True) or {}
    return jsonify(condition_service.create_condition(g.current_user, data).to_dict()), 201


@catalog_bp.route("/conditions/<int:cond_id>", methods=["GET"])
@login_required
def get_condition(cond_id):
    return jsonify(condition_service.get_condition(cond_id).to_dict()), 200


@catalog_bp.route("/conditions/<int:cond_id>", methods=["PUT"])
@admin_required
def update_condition(cond_id):
    data = request.get_json(silent=True) or {}
    return jsonify(condition_service.update_condition(g.current_user, cond_id, data).to_dict()), 200


@catalog_bp.route("/conditions/<int:cond_id>", methods=["DELETE"])
@admin_required
def delete_condition(cond_id):
    condition_service.delete_condition(g.current_user, cond_id)
    return jsonify({"message": "Condition deleted"}), 200


@catalog_bp.route("/document-types/<int:dt_id>/conditions", methods=["GET"])
@login_required
def list_type_conditions(dt_id):
    return jsonify([link.to_dict() for link in condition_service.list_links_by_document_type(dt_id)]), 200


@catalog_bp.route("/document-types/<int:dt_id>/conditions/available", methods=["GET"])
@admin_required
def list_available_conditions(dt_id):
    return jsonify([c.to_dict() for c in condition_service.list_available_for_document_type(dt_id)]), 200


@catalog_bp.route("/document-types/<int:dt_id>/conditions", methods=["POST"])
@admin_required
def link_condition(dt_id):
    """Link an existing condition (``condition_id``) or create and link a new one (``name``)."""
    data = request.get_json(silent=True) or {}
    if data.get("condition_id"):
        link = condition_service.link_condition(
            g.current_user, dt_id, data["condition_id"],
            is_required=data.get("is_required"), sort_order=data.get("sort_order", 0),
        )
    elif data.get("name"):
        link = condition_service.create_and_link_condition(g.current_user, dt_id, data)
    else:
        return api_error(E.VALIDATION_REQUIRED, "condition_id or name is required")
    return jsonify(link.to_dict()), 201


@catalog_bp.route("/condition-links/<int:link_id>", methods=["PUT"])
@admin_required
def update_condition_link(link_id):
    data = request.get_json(silent=True) or {}
    return jsonify(condition_service.update_link(g.current_user, link_id, data).to_dict()), 200


@catalog_bp.route("/condition-links/<int:link_id>", methods=["DELETE"])
@admin_required
def unlink_condition(link_id):
    condition_service.unlink_condition(g.current_user, link_id)
    return jsonify({"message": "Condition unlinked"}), 200


# ═══════════════════════════════════════════════════════════════
# Templates & requirements
# ═══════════════════════════════════════════════════════════════
@catalog_bp.route("/document-templates", methods=["GET"])
@login_required
def list_templates():
    items = template_service.list_templates(
        process_type_id=request.args.get("process_type_id", type=int),
        legal_framework_id=request.args.get("legal_framework_id", type=int),
        active_only=_active_only(),
    )
    return jsonify([t.to_dict() for t in items]), 200


@catalog_bp.route("/document-templates", methods=["POST"])
@admin_required
def create_template():
    data = request.get_json(silent=True) or {}
    template = template_service.create_template(g.current_user, data)
    return jsonify(template.to_dict(include_requirements=True)), 201


@catalog_bp.route("/document-templates/<int:template_id>", methods=["GET"])
@login_required
def get_template(template_id):
    return jsonify(template_service.get_template(template_id).to_dict(include_requirements=True)), 200


@catalog_bp.route("/document-templates/<int:template_id>", methods=["PUT"])
@admin_required
def update_template(template_id):
    data = request.get_json(silent=True) or {}
    template = template_service.update_template(g.current_user, template_id, data)
    return jsonify(template.to_dict()), 200


@catalog_bp.route("/document-templates/<int:template_id>", methods=["DELETE"])
@admin_required
def delete_template(template_id):
    template_service.delete_template(g.current_user, template_id)
    return jsonify({"message": "Template deleted"}), 200


@catalog_bp.route("/document-templates/<int:template_id>/clone", methods=["POST"])
@admin_required
def clone_template(template_id):
    clone = template_service.clone_template(g.current_user, template_id)
    return jsonify(clone.to_dict(include_requirements=True)), 201


@catalog_bp.route("/document-templates/<int:template_id>/requirements", methods=["POST"])
@admin_required
def add_requirement(template_id):
    data = request.get_json(silent=True) or {}
    return jsonify(template_service.add_requirement(g.current_user, template_id, data).to_dict()), 201


@catalog_bp.route("/document-templates/<int:template_id>/requirements/reorder", methods=["POST"])
@admin_required
def reorder_requirements(template_id):
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")
    if not isinstance(ids, list) or not ids:
        return api_error(E.VALIDATION_REQUIRED, "ids must be a non-empty list")
    return jsonify({"updated": template_service.reorder_requirements(g.current_user, template_id, ids)}), 200


@catalog_bp.route("/document-requirements/<int:req_id>", methods=["PUT"])
@admin_required
def update_requirement(req_id):
    data = request.get_json(silent=True) or {}
    return jsonify(template_service.update_requirement(g.current_user, req_id, data).to_dict()), 200


@catalog_bp.route("/document-requirements/<int:req_id>", methods=["DELETE"])
@admin_required
def delete_requirement(req_id):
    template_service.delete_requirement(g.current_user, req_id)
    return jsonify({"message": "Requirement deleted"}), 200
