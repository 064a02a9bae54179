"""
casedesk — blueprint registry and shared helpers.

Every API blueprint calls ``register_error_handlers`` once so service
exceptions map to the same HTTP status codes everywhere.
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from casedesk.core.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from casedesk.models import db
from casedesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def paginated_response(query, serializer=None):
    items, total = paginate_query(query)
    serializer = serializer or (lambda obj: obj.to_dict())
    return jsonify({"items": [serializer(i) for i in items], "total": total}), 200


def register_error_handlers(bp) -> None:
    """Map service exceptions to JSON responses for one blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(AccessDeniedError)
    def _handle_forbidden(error: AccessDeniedError):
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        db.session.rollback()
        return api_error(E.INTERNAL, "Internal server error")
