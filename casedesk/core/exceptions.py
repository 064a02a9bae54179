"""
Application-wide exception hierarchy.

Services raise these; blueprints register handlers against them once
(see ``casedesk.blueprints.register_error_handlers``) and get consistent
HTTP status codes everywhere.

Usage:
    from casedesk.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Company", resource_id=42)
    raise ValidationError("Rejection reason is required")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Also raised for records a client user is not allowed to see, so a 404
    does not confirm the record exists in another company.

    Args:
        resource: Human-readable entity name (e.g. "Collective process").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        if resource_id is not None:
            msg = f"{resource} id={resource_id} not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None,
                 message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field} {value} already exists")


class AccessDeniedError(Exception):
    """Raised when the current user's role or company forbids the operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)
