"""
Companies & People Blueprint.

Endpoints:
  GET/POST            /api/v1/companies
  GET/PUT/DELETE      /api/v1/companies/<id>
  GET/POST            /api/v1/people
  GET/PUT/DELETE      /api/v1/people/<id>
  GET                 /api/v1/people/check-cpf?cpf=...&exclude_id=...
  GET/POST            /api/v1/employments?person_id=..&company_id=..&is_current=..
  GET/PUT/DELETE      /api/v1/employments/<id>
  POST                /api/v1/employments/<id>/end
  GET                 /api/v1/people/<id>/employments, /api/v1/companies/<id>/employments
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import company_service, employment_service
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

companies_bp = Blueprint("companies", __name__, url_prefix="/api/v1")
register_error_handlers(companies_bp)


# ═══════════════════════════════════════════════════════════════
# Companies
# ═══════════════════════════════════════════════════════════════
@companies_bp.route("/companies", methods=["GET"])
@login_required
def list_companies():
    is_active = request.args.get("is_active")
    companies = company_service.list_companies(
        g.current_user,
        search=request.args.get("search"),
        is_active=parse_bool(is_active) if is_active is not None else None,
    )
    return jsonify([c.to_dict() for c in companies]), 200


@companies_bp.route("/companies", methods=["POST"])
@admin_required
def create_company():
    data = request.get_json(silent=True) or {}
    company = company_service.create_company(g.current_user, data)
    return jsonify(company.to_dict()), 201


@companies_bp.route("/companies/<int:company_id>", methods=["GET"])
@login_required
def get_company(company_id):
    return jsonify(company_service.get_company(g.current_user, company_id).to_dict()), 200


@companies_bp.route("/companies/<int:company_id>", methods=["PUT"])
@admin_required
def update_company(company_id):
    data = request.get_json(silent=True) or {}
    company = company_service.update_company(g.current_user, company_id, data)
    return jsonify(company.to_dict()), 200


@companies_bp.route("/companies/<int:company_id>", methods=["DELETE"])
@admin_required
def delete_company(company_id):
    company_service.delete_company(g.current_user, company_id)
    return jsonify({"message": "Company deleted"}), 200


# ═══════════════════════════════════════════════════════════════
# People
# ═══════════════════════════════════════════════════════════════
@companies_bp.route("/people", methods=["GET"])
@login_required
def list_people():
    people = company_service.list_people(
        g.current_user,
        search=request.args.get("search"),
        company_id=request.args.get("company_id", type=int),
    )
    return jsonify([p.to_dict() for p in people]), 200


@companies_bp.route("/people/check-cpf", methods=["GET"])
@admin_required
def check_cpf():
    result = company_service.check_cpf_duplicate(
        request.args.get("cpf"), exclude_person_id=request.args.get("exclude_id", type=int),
    )
    return jsonify(result), 200


@companies_bp.route("/people", methods=["POST"])
@admin_required
def create_person():
    data = request.get_json(silent=True) or {}
    person = company_service.create_person(g.current_user, data)
    return jsonify(person.to_dict()), 201


@companies_bp.route("/people/<int:person_id>", methods=["GET"])
@login_required
def get_person(person_id):
    return jsonify(company_service.get_person(g.current_user, person_id).to_dict()), 200


@companies_bp.route("/people/<int:person_id>", methods=["PUT"])
@admin_required
def update_person(person_id):
    data = request.get_json(silent=True) or {}
    person = company_service.update_person(g.current_user, person_id, data)
    return jsonify(person.to_dict()), 200


@companies_bp.route("/people/<int:person_id>", methods=["DELETE"])
@admin_required
def delete_person(person_id):
    company_service.delete_person(g.current_user, person_id)
    return jsonify({"message": "Person deleted"}), 200


# ═══════════════════════════════════════════════════════════════
# Employments (person ↔ company)
# ═══════════════════════════════════════════════════════════════
@companies_bp.route("/employments", methods=["GET"])
@login_required
def list_employments():
    is_current = request.args.get("is_current")
    items = employment_service.list_employments(
        g.current_user,
        person_id=request.args.get("person_id", type=int),
        company_id=request.args.get("company_id", type=int),
        is_current=parse_bool(is_current) if is_current is not None else None,
    )
    return jsonify([e.to_dict() for e in items]), 200


@companies_bp.route("/people/<int:person_id>/employments", methods=["GET"])
@login_required
def list_person_employments(person_id):
    company_service.get_person(g.current_user, person_id)
    items = employment_service.list_employments(g.current_user, person_id=person_id)
    return jsonify([e.to_dict() for e in items]), 200


@companies_bp.route("/companies/<int:company_id>/employments", methods=["GET"])
@login_required
def list_company_employments(company_id):
    items = employment_service.list_employments(g.current_user, company_id=company_id)
    return jsonify([e.to_dict() for e in items]), 200


@companies_bp.route("/employments", methods=["POST"])
@admin_required
def create_employment():
    data = request.get_json(silent=True) or {}
    return jsonify(employment_service.create_employment(g.current_user, data).to_dict()), 201


@companies_bp.route("/employments/<int:employment_id>", methods=["GET"])
@login_required
def get_employment(employment_id):
    return jsonify(employment_service.get_employment(g.current_user, employment_id).to_dict()), 200


@companies_bp.route("/employments/<int:employment_id>", methods=["PUT"])
@admin_required
def update_employment(employment_id):
    data = request.get_json(silent=True) or {}
    return jsonify(employment_service.update_employment(g.current_user, employment_id, data).to_dict()), 200


@companies_bp.route("/employments/<int:employment_id>/end", methods=["POST"])
@admin_required
def end_employment(employment_id):
    data = request.get_json(silent=True) or {}
    if not data.get("end_date"):
        return api_error(E.VALIDATION_REQUIRED, "end_date is required")
    employment = employment_service.end_employment(g.current_user, employment_id, data["end_date"])
    return jsonify(employment.to_dict()), 200


@companies_bp.route("/employments/<int:employment_id>", methods=["DELETE"])
@admin_required
def delete_employment(employment_id):
    employment_service.delete_employment(g.current_user, employment_id)
    return jsonify({"message": "Employment deleted"}), 200
