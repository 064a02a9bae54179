"""
Auth Blueprint — login and user profile management.

Endpoints:
  POST   /api/v1/auth/login          — Email + password → JWT access token
  GET    /api/v1/auth/me             — Current user profile
  GET    /api/v1/auth/users          — List profiles (admin)
  POST   /api/v1/auth/users          — Create profile (admin)
  GET    /api/v1/auth/users/<id>     — Profile detail (admin)
  PUT    /api/v1/auth/users/<id>     — Update profile (admin)
  DELETE /api/v1/auth/users/<id>     — Deactivate profile (admin)
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.core.exceptions import AccessDeniedError
from casedesk.middleware.permission_required import admin_required, login_required
from casedesk.services import user_service
from casedesk.services.jwt_service import generate_token_response
from casedesk.utils.errors import E, api_error
from casedesk.utils.helpers import parse_bool

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password.

    Body: { "email": "...", "password": "..." }
    Returns: { access_token, token_type, expires_in, user }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    if not email or not password:
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")

    try:
        profile = user_service.authenticate(email, password)
    except AccessDeniedError as e:
        return api_error(E.UNAUTHORIZED, str(e))
    return jsonify(generate_token_response(profile)), 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    profile = g.current_user
    body = profile.to_dict()
    body["company_name"] = profile.company.name if profile.company else None
    return jsonify(body), 200


# ═══════════════════════════════════════════════════════════════
# User profiles (admin)
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    is_active = request.args.get("is_active")
    profiles = user_service.list_user_profiles(
        g.current_user,
        role=request.args.get("role"),
        company_id=request.args.get("company_id", type=int),
        is_active=parse_bool(is_active) if is_active is not None else None,
    )
    return jsonify([p.to_dict() for p in profiles]), 200


@auth_bp.route("/users", methods=["POST"])
@admin_required
def create_user():
    data = request.get_json(silent=True) or {}
    if not data.get("email"):
        return api_error(E.VALIDATION_REQUIRED, "email is required")
    profile = user_service.create_user_profile(g.current_user, data)
    return jsonify(profile.to_dict()), 201


@auth_bp.route("/users/<int:profile_id>", methods=["GET"])
@admin_required
def get_user(profile_id):
    return jsonify(user_service.get_user_profile(g.current_user, profile_id).to_dict()), 200


@auth_bp.route("/users/<int:profile_id>", methods=["PUT"])
@admin_required
def update_user(profile_id):
    data = request.get_json(silent=True) or {}
    profile = user_service.update_user_profile(g.current_user, profile_id, data)
    return jsonify(profile.to_dict()), 200


@auth_bp.route("/users/<int:profile_id>", methods=["DELETE"])
@admin_required
def deactivate_user(profile_id):
    profile = user_service.deactivate_user_profile(g.current_user, profile_id)
    return jsonify(profile.to_dict()), 200
