"""
Company and person service layer.

Companies:  admin CRUD; clients only ever see their own company.
People:     admin CRUD with CPF duplicate detection; clients see the people
            employed by their company (current employer or any employment
            link) or handled in their company's processes.
"""

import logging
import re

from sqlalchemy import or_

from casedesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.company import Company, Person, PersonCompany
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.access_control import require_admin, require_company_access, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.services.user_service import normalize_email
from casedesk.utils.helpers import parse_date

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ("name", "tax_id", "website", "address", "phone_number", "email", "is_active", "notes")
PERSON_FIELDS = (
    "full_name", "email", "cpf", "birth_date", "nationality", "marital_status", "profession",
    "mother_name", "father_name", "phone_number", "address", "company_id", "notes",
)


def clean_document_number(value: str | None) -> str:
    """Strip formatting from CPF/CNPJ numbers."""
    return re.sub(r"\D", "", value or "")


# ═══════════════════════════════════════════════════════════════
# Companies
# ═══════════════════════════════════════════════════════════════
def _company_payload(data: dict) -> dict:
    payload = {k: data[k] for k in COMPANY_FIELDS if k in data}
    if "name" in payload and not (payload["name"] or "").strip():
        raise ValidationError("Company name is required")
    if payload.get("email"):
        payload["email"] = normalize_email(payload["email"])
    if payload.get("tax_id"):
        payload["tax_id"] = clean_document_number(payload["tax_id"])
    return payload


def list_companies(profile, search: str | None = None, is_active=None) -> list[Company]:
    """Companies visible to the profile, ordered by name."""
    company_id = scope_company_id(profile)
    q = Company.query
    if company_id is not None:
        q = q.filter(Company.id == company_id)
    if is_active is not None:
        q = q.filter(Company.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Company.name.ilike(term), Company.tax_id.ilike(term), Company.email.ilike(term)))
    return q.order_by(Company.name).all()


def get_company(profile, company_id: int) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError(resource="Company", resource_id=company_id)
    require_company_access(profile, company.id)
    return company


def create_company(profile, data: dict) -> Company:
    require_admin(profile)
    payload = _company_payload(data)
    if not payload.get("name"):
        raise ValidationError("Company name is required")
    if payload.get("tax_id") and Company.query.filter_by(tax_id=payload["tax_id"]).first():
        raise ConflictError(resource="Company", field="tax id", value=payload["tax_id"])

    company = Company(**payload)
    db.session.add(company)
    db.session.flush()
    log_activity(action="created", entity_type="company", entity_id=company.id, user_id=profile.id,
                 details={"name": company.name})
    db.session.commit()
    logger.info("Company created id=%s", company.id)
    return company


def update_company(profile, company_id: int, data: dict) -> Company:
    require_admin(profile)
    company = get_company(profile, company_id)
    payload = _company_payload(data)
    if payload.get("tax_id") and payload["tax_id"] != company.tax_id:
        dup = Company.query.filter(Company.tax_id == payload["tax_id"], Company.id != company.id).first()
        if dup:
            raise ConflictError(resource="Company", field="tax id", value=payload["tax_id"])

    changes = diff_fields(company, payload, COMPANY_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="company", entity_id=company.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return company


def delete_company(profile, company_id: int) -> None:
    require_admin(profile)
    company = get_company(profile, company_id)
    if CollectiveProcess.query.filter_by(company_id=company.id).first():
        raise ValidationError("Cannot delete company with associated collective processes")
    log_activity(action="deleted", entity_type="company", entity_id=company.id, user_id=profile.id,
                 details={"name": company.name})
    db.session.delete(company)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# People
# ═══════════════════════════════════════════════════════════════
def visible_people_query(profile):
    company_id = scope_company_id(profile)
    q = Person.query
    if company_id is None:
        return q
    in_company_process = (
        db.session.query(IndividualProcess.person_id)
        .join(CollectiveProcess, IndividualProcess.collective_process_id == CollectiveProcess.id)
        .filter(CollectiveProcess.company_id == company_id)
    )
    employed = db.session.query(PersonCompany.person_id).filter(PersonCompany.company_id == company_id)
    return q.filter(or_(
        Person.company_id == company_id,
        Person.id.in_(in_company_process),
        Person.id.in_(employed),
    ))


def is_person_visible(profile, person_id) -> bool:
    return visible_people_query(profile).filter(Person.id == person_id).first() is not None


def _person_payload(data: dict) -> dict:
    payload = {k: data[k] for k in PERSON_FIELDS if k in data}
    if "full_name" in payload and not (payload["full_name"] or "").strip():
        raise ValidationError("Full name is required")
    if payload.get("email"):
        payload["email"] = normalize_email(payload["email"])
    if "cpf" in payload:
        payload["cpf"] = clean_document_number(payload["cpf"]) or None
    if "birth_date" in payload:
        payload["birth_date"] = parse_date(payload["birth_date"])
    if payload.get("company_id") and db.session.get(Company, payload["company_id"]) is None:
        raise NotFoundError(resource="Company", resource_id=payload["company_id"])
    return payload


def check_cpf_duplicate(cpf: str | None, exclude_person_id: int | None = None) -> dict:
    """``{is_available, existing_person}``; incomplete CPFs are always available."""
    cleaned = clean_document_number(cpf)
    if len(cleaned) != 11:
        return {"is_available": True, "existing_person": None}
    existing = Person.query.filter_by(cpf=cleaned).first()
    if existing is None or existing.id == exclude_person_id:
        return {"is_available": True, "existing_person": None}
    return {"is_available": False, "existing_person": {"id": existing.id, "full_name": existing.full_name}}


def list_people(profile, search: str | None = None, company_id: int | None = None) -> list[Person]:
    q = visible_people_query(profile)
    if company_id:
        require_company_access(profile, company_id)
        q = q.filter(Person.company_id == company_id)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Person.full_name.ilike(term), Person.email.ilike(term), Person.cpf.ilike(term)))
    return q.order_by(Person.full_name).all()


def get_person(profile, person_id: int) -> Person:
    person = visible_people_query(profile).filter(Person.id == person_id).first()
    if person is None:
        raise NotFoundError(resource="Person", resource_id=person_id)
    return person


def create_person(profile, data: dict) -> Person:
    require_admin(profile)
    payload = _person_payload(data)
    if not payload.get("full_name"):
        raise ValidationError("Full name is required")
    dup = check_cpf_duplicate(payload.get("cpf"))
    if not dup["is_available"]:
        raise ConflictError(
            resource="Person", field="cpf", value=payload["cpf"],
            message=f"CPF {payload['cpf']} is already registered to {dup['existing_person']['full_name']}",
        )

    person = Person(**payload)
    db.session.add(person)
    db.session.flush()
    log_activity(action="created", entity_type="person", entity_id=person.id, user_id=profile.id,
                 details={"full_name": person.full_name})
    db.session.commit()
    return person


def update_person(profile, person_id: int, data: dict) -> Person:
    require_admin(profile)
    person = get_person(profile, person_id)
    payload = _person_payload(data)
    if payload.get("cpf"):
        dup = check_cpf_duplicate(payload["cpf"], exclude_person_id=person.id)
        if not dup["is_available"]:
            raise ConflictError(
                resource="Person", field="cpf", value=payload["cpf"],
                message=f"CPF {payload['cpf']} is already registered to {dup['existing_person']['full_name']}",
            )

    changes = diff_fields(person, payload, PERSON_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="person", entity_id=person.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return person


def delete_person(profile, person_id: int) -> None:
    require_admin(profile)
    person = get_person(profile, person_id)
    if IndividualProcess.query.filter_by(person_id=person.id).first():
        raise ValidationError("Cannot delete person with associated individual processes")
    log_activity(action="deleted", entity_type="person", entity_id=person.id, user_id=profile.id,
                 details={"full_name": person.full_name})
    db.session.delete(person)
    db.session.commit()
