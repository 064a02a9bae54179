"""
Passport service.

Admins register and maintain passports; a person keeps at most one active
passport, so activating one deactivates the others.  Clients read the
passports of the people their company can see.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import or_

from casedesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.company import Person
from casedesk.models.passport import PASSPORT_STATUSES, Passport, passport_status
from casedesk.services.access_control import require_admin
from casedesk.services.activity_service import diff_fields
from casedesk.services.company_service import get_person, is_person_visible, visible_people_query
from casedesk.utils.helpers import parse_bool, parse_date_input

logger = logging.getLogger(__name__)

PASSPORT_FIELDS = ("person_id", "passport_number", "issuing_country", "issue_date", "expiry_date",
                   "file_url", "is_active")


def _parse_date(value, label):
    try:
        return parse_date_input(value)
    except ValueError as e:
        raise ValidationError(f"{label}: {e}")


def _payload(data: dict) -> dict:
    payload = {k: data[k] for k in PASSPORT_FIELDS if k in data}
    if "passport_number" in payload:
        payload["passport_number"] = (payload["passport_number"] or "").strip().upper()
        if not payload["passport_number"]:
            raise ValidationError("Passport number is required")
    for field in ("issue_date", "expiry_date"):
        if field in payload:
            payload[field] = _parse_date(payload[field], field)
    if "is_active" in payload:
        payload["is_active"] = parse_bool(payload["is_active"], default=True)
    if "person_id" in payload and db.session.get(Person, payload["person_id"]) is None:
        raise NotFoundError(resource="Person", resource_id=payload["person_id"])
    return payload


def _check_dates(issue_date, expiry_date) -> None:
    if issue_date and expiry_date and expiry_date <= issue_date:
        raise ValidationError("Expiry date must be after issue date")


def _deactivate_others(person_id, keep_id=None) -> int:
    q = Passport.query.filter_by(person_id=person_id, is_active=True)
    if keep_id is not None:
        q = q.filter(Passport.id != keep_id)
    others = q.all()
    for other in others:
        other.is_active = False
    return len(others)


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def list_passports(profile, person_id=None, is_active=None, search=None, status=None) -> list[Passport]:
    """Passports of visible people, soonest expiry first.

    ``search`` matches the passport number or the holder's name;
    ``status`` filters on the computed expiry status.
    """
    if status and status not in PASSPORT_STATUSES:
        raise ValidationError(f"Invalid passport status: {status}")
    visible = visible_people_query(profile).with_entities(Person.id)
    q = Passport.query.join(Person, Passport.person_id == Person.id).filter(Passport.person_id.in_(visible))
    if person_id is not None:
        q = q.filter(Passport.person_id == person_id)
    if is_active is not None:
        q = q.filter(Passport.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Passport.passport_number.ilike(term), Person.full_name.ilike(term)))
    items = q.order_by(Passport.expiry_date, Passport.id).all()
    if status:
        items = [p for p in items if p.status == status]
    return items


def list_by_person(profile, person_id: int) -> list[Passport]:
    person = get_person(profile, person_id)
    return (
        Passport.query.filter_by(person_id=person.id)
        .order_by(Passport.is_active.desc(), Passport.expiry_date.desc(), Passport.id.desc())
        .all()
    )


def count_by_person(profile, person_id: int) -> int:
    person = get_person(profile, person_id)
    return Passport.query.filter_by(person_id=person.id).count()


def get_active_passport(profile, person_id: int) -> Passport | None:
    person = get_person(profile, person_id)
    return Passport.query.filter_by(person_id=person.id, is_active=True).first()


def get_passport(profile, passport_id: int) -> Passport:
    passport = db.session.get(Passport, passport_id)
    if passport is None:
        raise NotFoundError(resource="Passport", resource_id=passport_id)
    if not profile.is_admin and not is_person_visible(profile, passport.person_id):
        raise AccessDeniedError("Access denied: You do not have permission to view this passport")
    return passport


def list_expiring(profile, days: int = 180, today=None) -> list[dict]:
    """Active passports expiring within ``days`` (already expired ones included)."""
    today = today or date.today()
    horizon = today + timedelta(days=days)
    visible = visible_people_query(profile).with_entities(Person.id)
    passports = (
        Passport.query.filter(
            Passport.is_active.is_(True),
            Passport.expiry_date.isnot(None),
            Passport.expiry_date <= horizon,
            Passport.person_id.in_(visible),
        )
        .order_by(Passport.expiry_date, Passport.id)
        .all()
    )
    return [
        {
            **p.to_dict(),
            "status": passport_status(p.expiry_date, today),
            "days_remaining": (p.expiry_date - today).days,
        }
        for p in passports
    ]


# ═══════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════
def create_passport(profile, data: dict) -> Passport:
    """
    Register a passport.  Active by default, which retires the holder's
    previous active passport.

    Raises:
        ValidationError: Missing number/dates or expiry not after issue.
        NotFoundError: Unknown person.
    """
    require_admin(profile)
    for field in ("person_id", "passport_number", "issue_date", "expiry_date"):
        if not data.get(field):
            raise ValidationError(f"{field} is required")
    payload = _payload(data)
    payload.setdefault("is_active", True)
    _check_dates(payload["issue_date"], payload["expiry_date"])

    if payload["is_active"]:
        _deactivate_others(payload["person_id"])
    passport = Passport(**payload)
    db.session.add(passport)
    db.session.flush()
    log_activity(action="created", entity_type="passport", entity_id=passport.id, user_id=profile.id,
                 details={"passport_number": passport.passport_number,
                          "person_name": passport.person.full_name, "is_active": passport.is_active})
    db.session.commit()
    logger.info("Passport %s registered for person=%s", passport.passport_number, passport.person_id)
    return passport


def update_passport(profile, passport_id: int, data: dict) -> Passport:
    require_admin(profile)
    passport = get_passport(profile, passport_id)
    payload = _payload(data)
    _check_dates(payload.get("issue_date", passport.issue_date), payload.get("expiry_date", passport.expiry_date))

    changes = diff_fields(passport, payload, PASSPORT_FIELDS)
    if passport.is_active and ("is_active" in changes or "person_id" in changes):
        _deactivate_others(passport.person_id, keep_id=passport.id)
    if changes:
        db.session.flush()
        db.session.expire(passport, ["person"])
        log_activity(action="updated", entity_type="passport", entity_id=passport.id, user_id=profile.id,
                     details={"passport_number": passport.passport_number, "changes": changes})
    db.session.commit()
    return passport


def delete_passport(profile, passport_id: int) -> None:
    require_admin(profile)
    passport = get_passport(profile, passport_id)
    log_activity(action="deleted", entity_type="passport", entity_id=passport.id, user_id=profile.id,
                 details={"passport_number": passport.passport_number,
                          "person_name": passport.person.full_name if passport.person else None})
    db.session.delete(passport)
    db.session.commit()
