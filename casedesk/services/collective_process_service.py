"""
Collective process service layer.

A collective process is a company's batch filing.  Admins manage it; client
users of the owning company can read it.  Bulk operations (``add_people``,
``update_statuses``) collect per-item failures instead of aborting.
"""

import logging

from sqlalchemy import or_

from casedesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.catalog import CaseStatus, LegalFramework, ProcessType
from casedesk.models.company import Company, Person
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.access_control import ensure_process_access, require_admin, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.services.checklist_service import generate_document_checklist
from casedesk.services.individual_process_service import apply_case_status
from casedesk.services.process_status import calculate_collective_status, validate_collective_transition
from casedesk.utils.helpers import parse_date, parse_date_input

logger = logging.getLogger(__name__)

FIELDS = ("reference_number", "company_id", "contact_person_id", "process_type_id", "is_urgent",
          "request_date", "notes")


def _payload(data: dict) -> dict:
    payload = {k: data[k] for k in FIELDS if k in data}
    if "reference_number" in payload:
        payload["reference_number"] = (payload["reference_number"] or "").strip()
        if not payload["reference_number"]:
            raise ValidationError("Reference number is required")
    if "request_date" in payload:
        payload["request_date"] = parse_date(payload["request_date"])
    if payload.get("company_id") and db.session.get(Company, payload["company_id"]) is None:
        raise NotFoundError(resource="Company", resource_id=payload["company_id"])
    if payload.get("contact_person_id") and db.session.get(Person, payload["contact_person_id"]) is None:
        raise NotFoundError(resource="Person", resource_id=payload["contact_person_id"])
    if payload.get("process_type_id") and db.session.get(ProcessType, payload["process_type_id"]) is None:
        raise NotFoundError(resource="Process type", resource_id=payload["process_type_id"])
    return payload


def _check_reference(reference_number: str, exclude_id=None) -> None:
    q = CollectiveProcess.query.filter_by(reference_number=reference_number)
    if exclude_id:
        q = q.filter(CollectiveProcess.id != exclude_id)
    if q.first():
        raise ConflictError(
            resource="Collective process", field="reference number", value=reference_number,
            message=f"Collective process with reference number {reference_number} already exists",
        )


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════
def create_collective_process(profile, data: dict) -> CollectiveProcess:
    require_admin(profile)
    payload = _payload(data)
    if not payload.get("reference_number"):
        raise ValidationError("Reference number is required")
    _check_reference(payload["reference_number"])

    process = CollectiveProcess(**payload, status=data.get("status") or "draft")
    db.session.add(process)
    db.session.flush()
    log_activity(action="created", entity_type="collective_process", entity_id=process.id,
                 user_id=profile.id, details={"reference_number": process.reference_number})
    db.session.commit()
    logger.info("CollectiveProcess created id=%s ref=%s", process.id, process.reference_number)
    return process


def get_collective_process(profile, process_id: int) -> CollectiveProcess:
    process = db.session.get(CollectiveProcess, process_id)
    if process is None:
        raise NotFoundError(resource="Collective process", resource_id=process_id)
    ensure_process_access(profile, process)
    return process


def get_by_reference_number(profile, reference_number: str) -> CollectiveProcess:
    process = CollectiveProcess.query.filter_by(reference_number=reference_number).first()
    if process is None:
        raise NotFoundError(resource="Collective process", resource_id=reference_number)
    ensure_process_access(profile, process)
    return process


def list_collective_processes(profile, *, company_id=None, status=None, process_type_id=None,
                              is_urgent=None, search=None):
    """Query of visible collective processes, newest first."""
    scoped = scope_company_id(profile)
    q = CollectiveProcess.query
    if scoped is not None:
        q = q.filter(CollectiveProcess.company_id == scoped)
    elif company_id:
        q = q.filter(CollectiveProcess.company_id == company_id)
    if status:
        q = q.filter(CollectiveProcess.status == status)
    if process_type_id:
        q = q.filter(CollectiveProcess.process_type_id == process_type_id)
    if is_urgent is not None:
        q = q.filter(CollectiveProcess.is_urgent.is_(is_urgent))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(CollectiveProcess.reference_number.ilike(term), CollectiveProcess.notes.ilike(term)))
    return q.order_by(CollectiveProcess.created_at.desc(), CollectiveProcess.id.desc())


def update_collective_process(profile, process_id: int, data: dict) -> CollectiveProcess:
    require_admin(profile)
    process = get_collective_process(profile, process_id)
    payload = _payload(data)
    if payload.get("reference_number") and payload["reference_number"] != process.reference_number:
        _check_reference(payload["reference_number"], exclude_id=process.id)

    changes = diff_fields(process, payload, FIELDS)
    if changes:
        log_activity(action="updated", entity_type="collective_process", entity_id=process.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return process


def delete_collective_process(profile, process_id: int) -> None:
    require_admin(profile)
    process = get_collective_process(profile, process_id)
    if process.individual_processes.count():
        raise ValidationError("Cannot delete collective process with individual processes")
    log_activity(action="deleted", entity_type="collective_process", entity_id=process.id,
                 user_id=profile.id, details={"reference_number": process.reference_number})
    db.session.delete(process)
    db.session.commit()


def transition_status(profile, process_id: int, new_status: str) -> CollectiveProcess:
    require_admin(profile)
    process = get_collective_process(profile, process_id)
    previous = process.status
    validate_collective_transition(previous, new_status)
    if previous == new_status:
        return process
    process.status = new_status
    process.completed_at = utcnow() if new_status == "completed" else None
    log_activity(action="status_changed", entity_type="collective_process", entity_id=process.id,
                 user_id=profile.id, details={"from": previous, "to": new_status})
    db.session.commit()
    logger.info("CollectiveProcess %s status %s -> %s", process.id, previous, new_status)
    return process


def status_summary(profile, process_id: int) -> dict:
    process = get_collective_process(profile, process_id)
    return calculate_collective_status(process.individual_processes.all())


# ═══════════════════════════════════════════════════════════════
# Bulk operations
# ═══════════════════════════════════════════════════════════════
def add_people(profile, process_id: int, person_ids: list[int], *, case_status_id=None,
               legal_framework_id=None, deadline_date=None) -> dict:
    """Create one individual process per person.

    Each new process gets an initial status record (when ``case_status_id``
    is given) and a generated document checklist.

    Returns:
        ``{successful: [individual process dicts], failed: [{person_id, reason}],
        total_processed}``
    """
    require_admin(profile)
    collective = get_collective_process(profile, process_id)
    case_status = None
    if case_status_id:
        case_status = db.session.get(CaseStatus, case_status_id)
        if case_status is None:
            raise NotFoundError(resource="Case status", resource_id=case_status_id)
    if legal_framework_id and db.session.get(LegalFramework, legal_framework_id) is None:
        raise NotFoundError(resource="Legal framework", resource_id=legal_framework_id)

    successful, failed = [], []
    for person_id in person_ids or []:
        person = db.session.get(Person, person_id)
        if person is None:
            failed.append({"person_id": person_id, "reason": "Person not found"})
            continue
        if IndividualProcess.query.filter_by(collective_process_id=collective.id, person_id=person.id).first():
            failed.append({"person_id": person_id,
                           "reason": f"{person.full_name} is already in this collective process"})
            continue

        ip = IndividualProcess(
            collective_process=collective,
            person=person,
            legal_framework_id=legal_framework_id,
            deadline_date=parse_date(deadline_date),
        )
        db.session.add(ip)
        db.session.flush()
        if case_status is not None:
            apply_case_status(ip, case_status, actor=profile, notes="Initial status on creation")
        generate_document_checklist(ip, actor=profile)
        successful.append(ip)

    if successful:
        log_activity(action="people_added", entity_type="collective_process", entity_id=collective.id,
                     user_id=profile.id, details={"person_ids": [ip.person_id for ip in successful]})
    db.session.commit()
    logger.info("CollectiveProcess %s add_people ok=%d failed=%d", collective.id, len(successful), len(failed))
    return {
        "successful": [ip.to_dict() for ip in successful],
        "failed": failed,
        "total_processed": len(person_ids or []),
    }


def update_statuses(profile, process_id: int, case_status_id: int, *, status_date=None,
                    notes=None, individual_process_ids=None) -> dict:
    """Apply one case status to every (or the selected) individual process."""
    require_admin(profile)
    collective = get_collective_process(profile, process_id)
    case_status = db.session.get(CaseStatus, case_status_id)
    if case_status is None:
        raise NotFoundError(resource="Case status", resource_id=case_status_id)
    try:
        parsed_date = parse_date_input(status_date)
    except ValueError as e:
        raise ValidationError(str(e))

    q = collective.individual_processes
    if individual_process_ids:
        q = q.filter(IndividualProcess.id.in_(individual_process_ids))
    targets = q.all()
    if not targets:
        raise ValidationError("No individual processes found in this collective process")

    successful, failed = [], []
    for ip in targets:
        if ip.case_status_id == case_status.id:
            failed.append({"id": ip.id, "reason": "Process already has this status"})
            continue
        apply_case_status(ip, case_status, actor=profile, status_date=parsed_date,
                          notes=notes or "Bulk status update from collective process")
        log_activity(action="status_added", entity_type="individual_process", entity_id=ip.id,
                     user_id=profile.id, details={"case_status_id": case_status.id, "bulk": True})
        successful.append(ip.id)

    db.session.commit()
    return {"successful": successful, "failed": failed, "total_processed": len(targets)}
