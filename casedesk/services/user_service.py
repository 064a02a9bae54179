"""
User Service — authentication and user profile management.
"""

import logging

from email_validator import EmailNotValidError, validate_email

from casedesk.core.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.company import Company
from casedesk.models.user import ROLE_ADMIN, ROLE_CLIENT, VALID_ROLES, UserProfile
from casedesk.services.access_control import require_admin
from casedesk.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

_UPDATABLE_FIELDS = ("full_name", "phone_number", "company_id", "role", "is_active")


def normalize_email(email: str) -> str:
    """Validate and normalise an email address (no DNS lookup)."""
    try:
        return validate_email(email or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}")


# ═══════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════
def authenticate(email: str, password: str) -> UserProfile:
    """Return the active profile matching the credentials.

    Raises:
        AccessDeniedError: Unknown email, wrong password or inactive profile.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AccessDeniedError("Invalid email or password")

    profile = UserProfile.query.filter_by(email=email).first()
    if profile is None or not verify_password(password or "", profile.password_hash):
        logger.info("Failed login attempt for %s", email)
        raise AccessDeniedError("Invalid email or password")
    if not profile.is_active:
        raise AccessDeniedError("User account is inactive")

    profile.last_login_at = utcnow()
    log_activity(action="login", entity_type="user_profile", entity_id=profile.id, user_id=profile.id)
    db.session.commit()
    return profile


# ═══════════════════════════════════════════════════════════════
# Profile CRUD (admin)
# ═══════════════════════════════════════════════════════════════
def _validate_role_company(role: str, company_id) -> None:
    if role not in VALID_ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if role == ROLE_CLIENT and company_id is None:
        raise ValidationError("Client users must be assigned to a company")
    if company_id is not None and db.session.get(Company, company_id) is None:
        raise NotFoundError(resource="Company", resource_id=company_id)


def create_user_profile(admin, data: dict) -> UserProfile:
    require_admin(admin)

    email = normalize_email(data.get("email"))
    full_name = (data.get("full_name") or "").strip()
    if not full_name:
        raise ValidationError("full_name is required")
    password = data.get("password") or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    role = data.get("role", ROLE_CLIENT)
    company_id = data.get("company_id")
    _validate_role_company(role, company_id)

    if UserProfile.query.filter_by(email=email).first():
        raise ConflictError(resource="User", field="email", value=email)

    profile = UserProfile(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        company_id=company_id,
        phone_number=data.get("phone_number"),
        is_active=data.get("is_active", True),
    )
    db.session.add(profile)
    db.session.flush()
    log_activity(action="created", entity_type="user_profile", entity_id=profile.id, user_id=admin.id,
                 details={"email": email, "role": role})
    db.session.commit()
    logger.info("UserProfile created id=%s role=%s", profile.id, role)
    return profile


def get_user_profile(admin, profile_id: int) -> UserProfile:
    require_admin(admin)
    profile = db.session.get(UserProfile, profile_id)
    if profile is None:
        raise NotFoundError(resource="User profile", resource_id=profile_id)
    return profile


def list_user_profiles(admin, *, role=None, company_id=None, is_active=None) -> list[UserProfile]:
    require_admin(admin)
    q = UserProfile.query
    if role:
        q = q.filter_by(role=role)
    if company_id:
        q = q.filter_by(company_id=company_id)
    if is_active is not None:
        q = q.filter_by(is_active=is_active)
    return q.order_by(UserProfile.full_name).all()


def update_user_profile(admin, profile_id: int, data: dict) -> UserProfile:
    profile = get_user_profile(admin, profile_id)

    role = data.get("role", profile.role)
    company_id = data.get("company_id", profile.company_id)
    _validate_role_company(role, company_id)

    changes = {}
    for field in _UPDATABLE_FIELDS:
        if field in data and getattr(profile, field) != data[field]:
            changes[field] = {"before": getattr(profile, field), "after": data[field]}
            setattr(profile, field, data[field])

    if data.get("password"):
        if len(data["password"]) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        profile.password_hash = hash_password(data["password"])
        changes["password"] = {"before": "***", "after": "***"}

    if changes:
        log_activity(action="updated", entity_type="user_profile", entity_id=profile.id,
                     user_id=admin.id, details={"changes": changes})
    db.session.commit()
    return profile


def deactivate_user_profile(admin, profile_id: int) -> UserProfile:
    profile = get_user_profile(admin, profile_id)
    if profile.id == admin.id:
        raise ValidationError("You cannot deactivate your own account")
    profile.is_active = False
    log_activity(action="deactivated", entity_type="user_profile", entity_id=profile.id, user_id=admin.id)
    db.session.commit()
    return profile


def admin_ids() -> list[int]:
    rows = UserProfile.query.filter_by(role=ROLE_ADMIN, is_active=True).with_entities(UserProfile.id).all()
    return [r.id for r in rows]


def company_user_ids(company_id) -> list[int]:
    if not company_id:
        return []
    rows = (
        UserProfile.query.filter_by(company_id=company_id, is_active=True)
        .with_entities(UserProfile.id).all()
    )
    return [r.id for r in rows]


def ensure_admin(email: str, password: str, full_name: str = "Administrator") -> tuple[UserProfile, bool]:
    """Create the admin profile if missing (CLI bootstrap).

    Returns:
        (profile, created)
    """
    email = normalize_email(email)
    profile = UserProfile.query.filter_by(email=email).first()
    if profile:
        return profile, False
    profile = UserProfile(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=ROLE_ADMIN,
    )
    db.session.add(profile)
    db.session.commit()
    return profile, True
