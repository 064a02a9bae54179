"""
Route protection decorators.

Usage:
    @bp.route("/companies", methods=["GET"])
    @login_required
    def list_companies():
        ...

    @bp.route("/case-statuses", methods=["POST"])
    @admin_required
    def create_case_status():
        ...

Both rely on ``g.current_user`` populated by ``jwt_auth``.
"""

import functools
import logging

from flask import g

from casedesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def login_required(f):
    """Decorator: reject the request with 401 when no active profile is authenticated."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            return api_error(
                E.UNAUTHORIZED, getattr(g, "jwt_error", None) or "Authentication required",
            )
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Decorator: like ``login_required`` and additionally require the admin role."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        profile = getattr(g, "current_user", None)
        if profile is None:
            return api_error(
                E.UNAUTHORIZED, getattr(g, "jwt_error", None) or "Authentication required",
            )
        if not profile.is_admin:
            logger.warning("User %d denied admin endpoint %s", profile.id, f.__name__)
            return api_error(
                E.FORBIDDEN, "Access denied: This operation requires administrator privileges",
            )
        return f(*args, **kwargs)
    return decorated
