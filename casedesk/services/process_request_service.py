"""
Process request service layer.

Client users ask for a new collective process; an admin approves (which
creates a ``draft`` collective process with reference ``PR-<year>-<NNNN>``)
or rejects it with a reason.  Requests are editable only while pending.
"""

import logging

from sqlalchemy import func

from casedesk.core.exceptions import NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.company import Company, Person
from casedesk.models.process import CollectiveProcess, ProcessRequest
from casedesk.services.access_control import require_admin, require_company_access, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.services.notification import NotificationService
from casedesk.services.user_service import admin_ids
from casedesk.utils.helpers import parse_date

logger = logging.getLogger(__name__)

FIELDS = ("contact_person_id", "process_type_id", "is_urgent", "request_date", "notes")


def _payload(data: dict) -> dict:
    payload = {k: data[k] for k in FIELDS if k in data}
    if "request_date" in payload:
        payload["request_date"] = parse_date(payload["request_date"])
    if payload.get("contact_person_id") and db.session.get(Person, payload["contact_person_id"]) is None:
        raise NotFoundError(resource="Person", resource_id=payload["contact_person_id"])
    return payload


def get_request(profile, request_id: int) -> ProcessRequest:
    req = db.session.get(ProcessRequest, request_id)
    if req is None:
        raise NotFoundError(resource="Process request", resource_id=request_id)
    require_company_access(profile, req.company_id)
    return req


def list_requests(profile, status=None, company_id=None):
    scoped = scope_company_id(profile)
    q = ProcessRequest.query
    if scoped is not None:
        q = q.filter(ProcessRequest.company_id == scoped)
    elif company_id:
        q = q.filter(ProcessRequest.company_id == company_id)
    if status:
        q = q.filter(ProcessRequest.status == status)
    return q.order_by(ProcessRequest.created_at.desc(), ProcessRequest.id.desc())


def create_request(profile, data: dict) -> ProcessRequest:
    """Submit a request.  Clients always file for their own company."""
    company_id = profile.company_id if not profile.is_admin else data.get("company_id")
    if not company_id:
        raise ValidationError("company_id is required")
    if db.session.get(Company, company_id) is None:
        raise NotFoundError(resource="Company", resource_id=company_id)
    require_company_access(profile, company_id)

    req = ProcessRequest(company_id=company_id, status="pending", created_by=profile.id, **_payload(data))
    db.session.add(req)
    db.session.flush()
    if not profile.is_admin:
        NotificationService.notify_many(
            admin_ids(),
            type="process_request",
            title="New Process Request",
            message=f"A new process request was submitted by {profile.full_name}",
            entity_type="process_request",
            entity_id=req.id,
        )
    log_activity(action="created", entity_type="process_request", entity_id=req.id, user_id=profile.id)
    db.session.commit()
    return req


def _require_pending(req: ProcessRequest, verb: str) -> None:
    if req.status != "pending":
        raise ValidationError(f"Cannot {verb} request with status: {req.status}")


def update_request(profile, request_id: int, data: dict) -> ProcessRequest:
    req = get_request(profile, request_id)
    _require_pending(req, "update")
    changes = diff_fields(req, _payload(data), FIELDS)
    if changes:
        log_activity(action="updated", entity_type="process_request", entity_id=req.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return req


def next_reference_number(year: int) -> str:
    prefix = f"PR-{year}-"
    count = (
        db.session.query(func.count(CollectiveProcess.id))
        .filter(CollectiveProcess.reference_number.like(f"{prefix}%"))
        .scalar()
    )
    return f"{prefix}{count + 1:04d}"


def approve_request(profile, request_id: int) -> ProcessRequest:
    """Approve a pending request and open a draft collective process for it."""
    require_admin(profile)
    req = get_request(profile, request_id)
    _require_pending(req, "approve")

    now = utcnow()
    process = CollectiveProcess(
        reference_number=next_reference_number(now.year),
        company_id=req.company_id,
        contact_person_id=req.contact_person_id,
        process_type_id=req.process_type_id,
        is_urgent=req.is_urgent,
        request_date=req.request_date,
        notes=req.notes,
        status="draft",
    )
    db.session.add(process)
    db.session.flush()

    req.status = "approved"
    req.reviewed_by = profile.id
    req.reviewed_at = now
    req.approved_collective_process_id = process.id
    NotificationService.notify(
        user_id=req.created_by,
        type="process_request",
        title="Process Request Approved",
        message=f"Your process request was approved as {process.reference_number}",
        entity_type="collective_process",
        entity_id=process.id,
    )
    log_activity(action="approved", entity_type="process_request", entity_id=req.id, user_id=profile.id,
                 details={"collective_process_id": process.id, "reference_number": process.reference_number})
    db.session.commit()
    logger.info("ProcessRequest %s approved -> collective %s", req.id, process.reference_number)
    return req


def reject_request(profile, request_id: int, reason: str) -> ProcessRequest:
    require_admin(profile)
    req = get_request(profile, request_id)
    _require_pending(req, "reject")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")

    req.status = "rejected"
    req.reviewed_by = profile.id
    req.reviewed_at = utcnow()
    req.rejection_reason = reason
    NotificationService.notify(
        user_id=req.created_by,
        type="process_request",
        title="Process Request Rejected",
        message=f"Your process request was rejected: {reason}",
        entity_type="process_request",
        entity_id=req.id,
    )
    log_activity(action="rejected", entity_type="process_request", entity_id=req.id, user_id=profile.id,
                 details={"reason": reason})
    db.session.commit()
    return req


def delete_request(profile, request_id: int) -> None:
    req = get_request(profile, request_id)
    if req.status == "approved" and req.approved_collective_process_id:
        raise ValidationError("Cannot delete an approved request that created a collective process")
    if not profile.is_admin and req.status != "pending":
        raise ValidationError(f"Cannot delete request with status: {req.status}")
    log_activity(action="deleted", entity_type="process_request", entity_id=req.id, user_id=profile.id)
    db.session.delete(req)
    db.session.commit()
