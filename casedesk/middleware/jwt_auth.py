"""
JWT Auth Middleware — parses the bearer token and loads the user profile.

Sets on ``g`` for every ``/api/v1/`` request:
    g.jwt_user_id   int | None
    g.current_user  UserProfile | None (active profiles only)

Invalid or expired tokens do not abort here; ``login_required`` rejects
the request later so public endpoints stay reachable.
"""

import logging

import jwt as pyjwt
from flask import g, request

from casedesk.models import db
from casedesk.models.user import UserProfile
from casedesk.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.current_user = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
            return
        except pyjwt.InvalidTokenError:
            g.jwt_error = "Invalid token"
            return

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            g.jwt_error = "Invalid token"
            return

        profile = db.session.get(UserProfile, user_id)
        if profile is None or not profile.is_active:
            logger.warning("JWT for missing or inactive profile id=%s", user_id)
            g.jwt_error = "User profile not found or inactive"
            return

        g.jwt_user_id = user_id
        g.current_user = profile
