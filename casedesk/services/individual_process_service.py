"""
Individual process service layer.

An individual process tracks one person's case inside a collective
process.  It carries two independent notions of progress:

- ``workflow_status``: the fixed workflow in ``process_status``
  (validated transitions, logged to ``ProcessHistory``)
- ``case_status_id``: the configurable case status, with its full history
  in ``IndividualProcessStatus``; exactly one history row is active and
  it always matches ``case_status_id``.
"""

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError

from casedesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.catalog import CaseStatus, LegalFramework
from casedesk.models.company import Person
from casedesk.models.process import (
    DATE_FIELDS,
    DATETIME_FIELDS,
    GOVERNMENT_FIELDS,
    CollectiveProcess,
    IndividualProcess,
    IndividualProcessStatus,
    ProcessHistory,
)
from casedesk.services.access_control import ensure_process_access, require_admin, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.services.checklist_service import generate_document_checklist
from casedesk.services.government_status import government_summary
from casedesk.services.process_status import next_individual_statuses, validate_individual_transition
from casedesk.utils.helpers import parse_date, parse_date_input, parse_datetime

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (*GOVERNMENT_FIELDS, "legal_framework_id", "deadline_date", "is_active")


def _coerce_field(field: str, value):
    if field in DATE_FIELDS:
        return parse_date(value)
    if field in DATETIME_FIELDS:
        return parse_datetime(value)
    return value


def get_individual_process(profile, process_id: int) -> IndividualProcess:
    process = db.session.get(IndividualProcess, process_id)
    if process is None:
        raise NotFoundError(resource="Individual process", resource_id=process_id)
    ensure_process_access(profile, process)
    return process


def list_individual_processes(profile, *, collective_process_id=None, person_id=None,
                              case_status_id=None, workflow_status=None, is_active=None):
    """Query of visible individual processes (callers paginate or ``.all()``)."""
    company_id = scope_company_id(profile)
    q = IndividualProcess.query.join(
        CollectiveProcess, IndividualProcess.collective_process_id == CollectiveProcess.id,
    )
    if company_id is not None:
        q = q.filter(CollectiveProcess.company_id == company_id)
    if collective_process_id:
        q = q.filter(IndividualProcess.collective_process_id == collective_process_id)
    if person_id:
        q = q.filter(IndividualProcess.person_id == person_id)
    if case_status_id:
        q = q.filter(IndividualProcess.case_status_id == case_status_id)
    if workflow_status:
        q = q.filter(IndividualProcess.workflow_status == workflow_status)
    if is_active is not None:
        q = q.filter(IndividualProcess.is_active.is_(is_active))
    return q.order_by(IndividualProcess.created_at.desc(), IndividualProcess.id.desc())


def create_individual_process(profile, data: dict) -> IndividualProcess:
    """Add a person to a collective process and generate their document checklist.

    Args:
        data: ``collective_process_id`` and ``person_id`` (required), optional
            ``legal_framework_id``, ``case_status_id``, ``deadline_date`` and
            government fields.

    Raises:
        ConflictError: The person already has a process in this collective process.
    """
    require_admin(profile)
    collective_id = data.get("collective_process_id")
    person_id = data.get("person_id")
    if not collective_id or not person_id:
        raise ValidationError("collective_process_id and person_id are required")

    collective = db.session.get(CollectiveProcess, collective_id)
    if collective is None:
        raise NotFoundError(resource="Collective process", resource_id=collective_id)
    person = db.session.get(Person, person_id)
    if person is None:
        raise NotFoundError(resource="Person", resource_id=person_id)
    if IndividualProcess.query.filter_by(collective_process_id=collective.id, person_id=person.id).first():
        raise ConflictError(resource="Individual process", field="person", value=person.id,
                            message=f"{person.full_name} is already in this collective process")
    if data.get("legal_framework_id") and db.session.get(LegalFramework, data["legal_framework_id"]) is None:
        raise NotFoundError(resource="Legal framework", resource_id=data["legal_framework_id"])

    process = IndividualProcess(collective_process=collective, person=person)
    for field in UPDATABLE_FIELDS:
        if field in data:
            setattr(process, field, _coerce_field(field, data[field]))
    db.session.add(process)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(resource="Individual process", field="person", value=person.id,
                            message=f"{person.full_name} is already in this collective process")

    if data.get("case_status_id"):
        case_status = _get_case_status(data["case_status_id"])
        apply_case_status(process, case_status, actor=profile, notes="Initial status on creation")

    generate_document_checklist(process, actor=profile)
    log_activity(action="created", entity_type="individual_process", entity_id=process.id,
                 user_id=profile.id, details={"collective_process_id": collective.id, "person_id": person.id})
    db.session.commit()
    logger.info("IndividualProcess created id=%s collective=%s", process.id, collective.id)
    return process


def update_individual_process(profile, process_id: int, data: dict) -> IndividualProcess:
    require_admin(profile)
    process = get_individual_process(profile, process_id)
    if data.get("legal_framework_id") and db.session.get(LegalFramework, data["legal_framework_id"]) is None:
        raise NotFoundError(resource="Legal framework", resource_id=data["legal_framework_id"])

    payload = {f: _coerce_field(f, data[f]) for f in UPDATABLE_FIELDS if f in data}
    changes = diff_fields(process, payload, UPDATABLE_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="individual_process", entity_id=process.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return process


def delete_individual_process(profile, process_id: int) -> None:
    require_admin(profile)
    process = get_individual_process(profile, process_id)
    log_activity(action="deleted", entity_type="individual_process", entity_id=process.id,
                 user_id=profile.id, details={"person_id": process.person_id})
    db.session.delete(process)
    db.session.commit()


def get_government_view(profile, process_id: int) -> dict:
    process = get_individual_process(profile, process_id)
    fields = process.government_fields()
    return {
        "individual_process_id": process.id,
        "fields": {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in fields.items()},
        **government_summary(fields),
    }


# ═══════════════════════════════════════════════════════════════
# Workflow transitions
# ═══════════════════════════════════════════════════════════════
def transition_workflow(profile, process_id: int, new_status: str, notes: str | None = None) -> IndividualProcess:
    """Move the process along the workflow and record a ``ProcessHistory`` row.

    Raises:
        ValidationError: Unknown target status or a transition the workflow
            does not allow (``details["allowed"]`` lists the valid targets).
    """
    require_admin(profile)
    process = get_individual_process(profile, process_id)
    previous = process.workflow_status
    validate_individual_transition(previous, new_status)
    if previous == new_status:
        return process

    process.workflow_status = new_status
    process.completed_at = utcnow() if new_status == "completed" else None
    db.session.add(ProcessHistory(
        individual_process_id=process.id,
        previous_status=previous,
        new_status=new_status,
        changed_by=profile.id,
        notes=notes,
    ))
    log_activity(action="status_changed", entity_type="individual_process", entity_id=process.id,
                 user_id=profile.id, details={"from": previous, "to": new_status})
    db.session.commit()
    logger.info("IndividualProcess %s workflow %s -> %s", process.id, previous, new_status)
    return process


def list_process_history(profile, process_id: int) -> list[ProcessHistory]:
    process = get_individual_process(profile, process_id)
    return (
        ProcessHistory.query.filter_by(individual_process_id=process.id)
        .order_by(ProcessHistory.changed_at.desc(), ProcessHistory.id.desc())
        .all()
    )


def allowed_transitions(profile, process_id: int) -> list[str]:
    return next_individual_statuses(get_individual_process(profile, process_id).workflow_status)


# ═══════════════════════════════════════════════════════════════
# Case status history
# ═══════════════════════════════════════════════════════════════
def _get_case_status(case_status_id: int) -> CaseStatus:
    cs = db.session.get(CaseStatus, case_status_id)
    if cs is None:
        raise NotFoundError(resource="Case status", resource_id=case_status_id)
    return cs


def _validate_filled_fields(case_status: CaseStatus, filled_fields_data: dict | None) -> dict:
    filled_fields_data = filled_fields_data or {}
    if not isinstance(filled_fields_data, dict):
        raise ValidationError("filled_fields_data must be an object")
    allowed = set(case_status.fillable_fields or [])
    for field in filled_fields_data:
        if field not in allowed:
            raise ValidationError(f'Field "{field}" is not a fillable field for this status')
    return filled_fields_data


def _parse_status_date(value) -> date:
    try:
        return parse_date_input(value) or date.today()
    except ValueError as e:
        raise ValidationError(str(e))


def apply_case_status(process: IndividualProcess, case_status: CaseStatus, *, actor=None,
                      status_date=None, notes=None, filled_fields_data=None) -> IndividualProcessStatus:
    """Make ``case_status`` the active status of ``process``.

    Deactivates the other active records, inserts the new one, updates
    ``case_status_id`` and copies filled fields onto the process.  Flushes
    only; the caller commits.
    """
    filled_fields_data = filled_fields_data or {}
    IndividualProcessStatus.query.filter_by(
        individual_process_id=process.id, is_active=True,
    ).update({"is_active": False})

    record = IndividualProcessStatus(
        individual_process_id=process.id,
        case_status_id=case_status.id,
        status_name=case_status.name,
        date=status_date or date.today(),
        notes=notes,
        filled_fields_data=filled_fields_data or None,
        is_active=True,
        changed_by=actor.id if actor is not None else None,
        changed_at=utcnow(),
    )
    db.session.add(record)

    process.case_status_id = case_status.id
    process.case_status = case_status
    for field, value in filled_fields_data.items():
        if field in UPDATABLE_FIELDS:
            setattr(process, field, _coerce_field(field, value))
    db.session.flush()
    return record


def add_status(profile, process_id: int, case_status_id: int, *, status_date=None, notes=None,
               filled_fields_data=None) -> IndividualProcessStatus:
    """Record a new case status for the process.

    Args:
        status_date: ``YYYY-MM-DD``; defaults to today.
        filled_fields_data: Values for the case status' fillable fields,
            copied onto the process.

    Raises:
        ValidationError: Bad date format or a field the status does not allow.
    """
    require_admin(profile)
    process = get_individual_process(profile, process_id)
    case_status = _get_case_status(case_status_id)
    filled = _validate_filled_fields(case_status, filled_fields_data)
    parsed_date = _parse_status_date(status_date)

    previous_id = process.case_status_id
    record = apply_case_status(process, case_status, actor=profile, status_date=parsed_date,
                               notes=notes, filled_fields_data=filled)
    log_activity(
        action="status_added", entity_type="individual_process", entity_id=process.id, user_id=profile.id,
        details={"previous_case_status_id": previous_id, "case_status_id": case_status.id,
                 "status_name": case_status.name, "filled_fields": sorted(filled)},
    )
    db.session.commit()
    return record


def get_active_status(profile, process_id: int) -> IndividualProcessStatus | None:
    process = get_individual_process(profile, process_id)
    return IndividualProcessStatus.query.filter_by(individual_process_id=process.id, is_active=True).first()


def list_status_history(profile, process_id: int) -> list[IndividualProcessStatus]:
    """Status records, newest first."""
    process = get_individual_process(profile, process_id)
    return (
        IndividualProcessStatus.query.filter_by(individual_process_id=process.id)
        .order_by(IndividualProcessStatus.changed_at.desc(), IndividualProcessStatus.id.desc())
        .all()
    )


def _get_status_record(profile, status_id: int) -> IndividualProcessStatus:
    record = db.session.get(IndividualProcessStatus, status_id)
    if record is None:
        raise NotFoundError(resource="Status record", resource_id=status_id)
    get_individual_process(profile, record.individual_process_id)
    return record


def update_status(profile, status_id: int, data: dict) -> IndividualProcessStatus:
    require_admin(profile)
    record = _get_status_record(profile, status_id)
    process = db.session.get(IndividualProcess, record.individual_process_id)

    if "date" in data:
        record.date = _parse_status_date(data["date"])
    if "notes" in data:
        record.notes = data["notes"]
    if "filled_fields_data" in data and record.case_status is not None:
        record.filled_fields_data = _validate_filled_fields(record.case_status, data["filled_fields_data"]) or None

    if data.get("is_active") and not record.is_active:
        IndividualProcessStatus.query.filter(
            IndividualProcessStatus.individual_process_id == process.id,
            IndividualProcessStatus.id != record.id,
        ).update({"is_active": False})
        record.is_active = True
        process.case_status_id = record.case_status_id

    log_activity(action="status_updated", entity_type="individual_process", entity_id=process.id,
                 user_id=profile.id, details={"status_id": record.id})
    db.session.commit()
    return record


def delete_status(profile, status_id: int) -> None:
    """Delete a status record; if it was active the most recent remaining one takes over."""
    require_admin(profile)
    record = _get_status_record(profile, status_id)
    process = db.session.get(IndividualProcess, record.individual_process_id)
    was_active = record.is_active
    db.session.delete(record)
    db.session.flush()

    if was_active:
        successor = (
            IndividualProcessStatus.query.filter_by(individual_process_id=process.id)
            .order_by(IndividualProcessStatus.changed_at.desc(), IndividualProcessStatus.id.desc())
            .first()
        )
        if successor is not None:
            successor.is_active = True
            process.case_status_id = successor.case_status_id
        else:
            process.case_status_id = None

    log_activity(action="status_deleted", entity_type="individual_process", entity_id=process.id,
                 user_id=profile.id, details={"status_id": status_id, "was_active": was_active})
    db.session.commit()
