"""
Role and company visibility checks.

Admins see everything.  Client users see only the data of their own
company; a client without a company assignment sees nothing.

Usage:
    profile = current_profile()
    ensure_process_access(profile, individual_process)
"""

from flask import g

from casedesk.core.exceptions import AccessDeniedError
from casedesk.models.process import CollectiveProcess, IndividualProcess


def current_profile():
    """The authenticated ``UserProfile`` for this request.

    Raises:
        AccessDeniedError: No authenticated profile.
    """
    profile = getattr(g, "current_user", None)
    if profile is None:
        raise AccessDeniedError("Authentication required")
    return profile


def require_admin(profile) -> None:
    if profile is None or not profile.is_admin:
        raise AccessDeniedError("Access denied: This operation requires administrator privileges")


def require_client(profile) -> None:
    if profile is None or not profile.is_client:
        raise AccessDeniedError("Access denied: This operation is only available to client users")
    if not profile.company_id:
        raise AccessDeniedError("Client user must have a company assignment")


def can_access_company(profile, company_id) -> bool:
    if profile is None:
        return False
    if profile.is_admin:
        return True
    return bool(profile.company_id) and profile.company_id == company_id


def require_company_access(profile, company_id) -> None:
    if not can_access_company(profile, company_id):
        raise AccessDeniedError("Access denied: You do not have access to this company's data")


def process_company_id(process):
    """Company that owns an individual or collective process."""
    if isinstance(process, IndividualProcess):
        return process.collective_process.company_id if process.collective_process else None
    if isinstance(process, CollectiveProcess):
        return process.company_id
    raise TypeError(f"Unsupported process type: {type(process).__name__}")


def can_access_process(profile, process) -> bool:
    return can_access_company(profile, process_company_id(process))


def ensure_process_access(profile, process, message=None) -> None:
    if not can_access_process(profile, process):
        raise AccessDeniedError(message or "Access denied: Process does not belong to your company")


def scope_company_id(profile):
    """Company filter to apply to list queries: None for admins (no filter)."""
    if profile.is_admin:
        return None
    if not profile.company_id:
        raise AccessDeniedError("Client user must have a company assignment")
    return profile.company_id
