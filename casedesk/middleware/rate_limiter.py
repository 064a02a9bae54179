"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.  The Limiter
instance is created in ``casedesk/__init__.py`` with no default limits;
this module applies granular limits per route category.

Usage:
    from casedesk.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)


def rate_limit_key():
    """Authenticated user id if available, else remote IP."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Login:            10/minute per IP (credential stuffing)
        - Write-heavy:      60/minute
        - Exports:          20/minute (workbook generation)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit("10/minute", methods=["POST"])(bp)

    for bp_name in ("documents", "processes", "tasks", "notes", "catalog", "companies", "passports"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("60/minute", key_func=rate_limit_key, methods=["POST", "PUT", "PATCH", "DELETE"])(bp)

    bp = app.blueprints.get("exports")
    if bp:
        limiter.limit("20/minute", key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — login: 10/min, write: 60/min, export: 20/min")
