"""
Passports Blueprint.

Endpoints:
  GET/POST            /api/v1/passports?person_id=..&is_active=..&search=..&status=..
  GET                 /api/v1/passports/expiring?days=180
  GET/PUT/DELETE      /api/v1/passports/<id>
  GET                 /api/v1/people/<id>/passports
  GET                 /api/v1/people/<id>/passports/active
  GET                 /api/v1/people/<id>/passports/count
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import passport_service
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

passports_bp = Blueprint("passports", __name__, url_prefix="/api/v1")
register_error_handlers(passports_bp)


@passports_bp.route("/passports", methods=["GET"])
@login_required
def list_passports():
    is_active = request.args.get("is_active")
    passports = passport_service.list_passports(
        g.current_user,
        person_id=request.args.get("person_id", type=int),
        is_active=parse_bool(is_active) if is_active is not None else None,
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify([p.to_dict() for p in passports]), 200


@passports_bp.route("/passports/expiring", methods=["GET"])
@login_required
def list_expiring_passports():
    days = request.args.get("days", 180, type=int)
    if days < 0:
        return api_error(E.VALIDATION_INVALID, "days must be zero or positive")
    return jsonify(passport_service.list_expiring(g.current_user, days=days)), 200


@passports_bp.route("/passports", methods=["POST"])
@admin_required
def create_passport():
    data = request.get_json(silent=True) or {}
    if not data.get("person_id"):
        return api_error(E.VALIDATION_REQUIRED, "person_id is required")
    return jsonify(passport_service.create_passport(g.current_user, data).to_dict()), 201


@passports_bp.route("/passports/<int:passport_id>", methods=["GET"])
@login_required
def get_passport(passport_id):
    return jsonify(passport_service.get_passport(g.current_user, passport_id).to_dict()), 200


@passports_bp.route("/passports/<int:passport_id>", methods=["PUT"])
@admin_required
def update_passport(passport_id):
    data = request.get_json(silent=True) or {}
    return jsonify(passport_service.update_passport(g.current_user, passport_id, data).to_dict()), 200


@passports_bp.route("/passports/<int:passport_id>", methods=["DELETE"])
@admin_required
def delete_passport(passport_id):
    passport_service.delete_passport(g.current_user, passport_id)
    return jsonify({"message": "Passport deleted"}), 200


@passports_bp.route("/people/<int:person_id>/passports", methods=["GET"])
@login_required
def list_person_passports(person_id):
    return jsonify([p.to_dict() for p in passport_service.list_by_person(g.current_user, person_id)]), 200


@passports_bp.route("/people/<int:person_id>/passports/active", methods=["GET"])
@login_required
def get_active_passport(person_id):
    passport = passport_service.get_active_passport(g.current_user, person_id)
    return jsonify(passport.to_dict() if passport else None), 200


@passports_bp.route("/people/<int:person_id>/passports/count", methods=["GET"])
@login_required
def count_person_passports(person_id):
    return jsonify({"count": passport_service.count_by_person(g.current_user, person_id)}), 200
