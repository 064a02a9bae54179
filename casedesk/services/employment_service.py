"""
Employment service — person ↔ company links.

Rules:
    - a person has at most one current employment
    - a current employment has no end date
    - the end date, when given, must be after the start date
    - the current employment mirrors ``Person.company_id`` (the current employer)

Admins manage employments; clients read the employments of their own company.
"""

import logging

from casedesk.core.exceptions import NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.company import Company, Person, PersonCompany
from casedesk.services.access_control import require_admin, require_company_access, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.utils.helpers import parse_bool, parse_date_input

logger = logging.getLogger(__name__)

EMPLOYMENT_FIELDS = ("person_id", "company_id", "role", "start_date", "end_date", "is_current")


def _parse_date(value, label):
    try:
        return parse_date_input(value)
    except ValueError as e:
        raise ValidationError(f"{label}: {e}")


def _payload(data: dict) -> dict:
    payload = {k: data[k] for k in EMPLOYMENT_FIELDS if k in data}
    if "role" in payload:
        payload["role"] = (payload["role"] or "").strip()
        if not payload["role"]:
            raise ValidationError("Role is required")
    if "start_date" in payload:
        payload["start_date"] = _parse_date(payload["start_date"], "start_date")
    if "end_date" in payload:
        payload["end_date"] = _parse_date(payload["end_date"], "end_date")
    if "is_current" in payload:
        payload["is_current"] = parse_bool(payload["is_current"])
    if "person_id" in payload and db.session.get(Person, payload["person_id"]) is None:
        raise NotFoundError(resource="Person", resource_id=payload["person_id"])
    if "company_id" in payload and db.session.get(Company, payload["company_id"]) is None:
        raise NotFoundError(resource="Company", resource_id=payload["company_id"])
    return payload


def _validate(person_id, start_date, end_date, is_current, exclude_id=None) -> None:
    if end_date and start_date and end_date <= start_date:
        raise ValidationError("End date must be after start date")
    if is_current and end_date:
        raise ValidationError("Current employment cannot have an end date")
    if is_current:
        q = PersonCompany.query.filter_by(person_id=person_id, is_current=True)
        if exclude_id:
            q = q.filter(PersonCompany.id != exclude_id)
        if q.first():
            raise ValidationError(
                "This person already has a current employment. "
                "Please end the current employment before adding a new one."
            )


def _sync_current_employer(employment: PersonCompany) -> None:
    if employment.is_current:
        person = employment.person or db.session.get(Person, employment.person_id)
        person.company_id = employment.company_id


def list_employments(profile, person_id=None, company_id=None, is_current=None) -> list[PersonCompany]:
    q = PersonCompany.query
    scoped = scope_company_id(profile)
    if scoped is not None:
        q = q.filter(PersonCompany.company_id == scoped)
    if person_id is not None:
        q = q.filter(PersonCompany.person_id == person_id)
    if company_id is not None:
        require_company_access(profile, company_id)
        q = q.filter(PersonCompany.company_id == company_id)
    if is_current is not None:
        q = q.filter(PersonCompany.is_current.is_(is_current))
    return q.order_by(PersonCompany.is_current.desc(), PersonCompany.start_date.desc(), PersonCompany.id).all()


def get_employment(profile, employment_id: int) -> PersonCompany:
    employment = db.session.get(PersonCompany, employment_id)
    if employment is None:
        raise NotFoundError(resource="Employment", resource_id=employment_id)
    require_company_access(profile, employment.company_id)
    return employment


def create_employment(profile, data: dict) -> PersonCompany:
    """
    Link a person to a company.

    Raises:
        ValidationError: Missing role/start date, bad dates, or a second
            current employment.
        NotFoundError: Unknown person or company.
    """
    require_admin(profile)
    for field in ("person_id", "company_id", "role", "start_date"):
        if not data.get(field):
            raise ValidationError(f"{field} is required")
    payload = _payload(data)
    payload.setdefault("is_current", False)
    _validate(payload["person_id"], payload["start_date"], payload.get("end_date"), payload["is_current"])

    employment = PersonCompany(**payload)
    db.session.add(employment)
    db.session.flush()
    _sync_current_employer(employment)
    log_activity(action="created", entity_type="employment", entity_id=employment.id, user_id=profile.id,
                 details={"person_id": employment.person_id, "company_id": employment.company_id,
                          "role": employment.role, "is_current": employment.is_current})
    db.session.commit()
    return employment


def update_employment(profile, employment_id: int, data: dict) -> PersonCompany:
    require_admin(profile)
    employment = get_employment(profile, employment_id)
    payload = _payload(data)
    _validate(
        payload.get("person_id", employment.person_id),
        payload.get("start_date", employment.start_date),
        payload.get("end_date", employment.end_date),
        payload.get("is_current", employment.is_current),
        exclude_id=employment.id,
    )
    was_current = employment.is_current
    previous_person = employment.person
    previous_company_id = employment.company_id
    changes = diff_fields(employment, payload, EMPLOYMENT_FIELDS)
    if changes:
        if was_current and previous_person.company_id == previous_company_id:
            previous_person.company_id = None
        db.session.flush()
        db.session.expire(employment, ["person", "company"])
        _sync_current_employer(employment)
        log_activity(action="updated", entity_type="employment", entity_id=employment.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return employment


def end_employment(profile, employment_id: int, end_date=None) -> PersonCompany:
    """Close a current employment; the person is left without a current employer."""
    require_admin(profile)
    employment = get_employment(profile, employment_id)
    if not employment.is_current:
        raise ValidationError("Employment is not current")
    ended = _parse_date(end_date, "end_date") if end_date else None
    if ended is None:
        raise ValidationError("end_date is required")
    _validate(employment.person_id, employment.start_date, ended, False)

    if employment.person.company_id == employment.company_id:
        employment.person.company_id = None
    employment.is_current = False
    employment.end_date = ended
    log_activity(action="ended", entity_type="employment", entity_id=employment.id, user_id=profile.id,
                 details={"end_date": ended.isoformat()})
    db.session.commit()
    return employment


def delete_employment(profile, employment_id: int) -> None:
    require_admin(profile)
    employment = get_employment(profile, employment_id)
    person = employment.person
    was_current_employer = employment.is_current and person.company_id == employment.company_id
    log_activity(action="deleted", entity_type="employment", entity_id=employment.id, user_id=profile.id,
                 details={"person_id": employment.person_id, "company_id": employment.company_id})
    db.session.delete(employment)
    if was_current_employer:
        person.company_id = None
    db.session.commit()
