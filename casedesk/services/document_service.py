"""
Delivered document lifecycle.

    not_started / pending_upload ──upload──▶ uploaded ──submit──▶ under_review
                                                │                    │
                                                └──────approve/reject┘
                                                     │         │
                                                 approved   rejected ──upload──▶ uploaded (v+1)

Versioning: a slot is (individual process, document type, requirement).
Every upload into a slot inserts a new row with ``version + 1`` and clears
``is_latest`` on the previous row.  Every status change writes a
``DocumentStatusHistory`` row.

File bytes live in external storage; this layer stores the metadata
(``file_name``, ``file_url``, ``file_size``, ``mime_type``) it is given.
"""

import logging
import os

from casedesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.catalog import DocumentType, DocumentTypeLegalFramework
from casedesk.models.document import (
    DOC_APPROVED,
    DOC_NOT_STARTED,
    DOC_PENDING_UPLOAD,
    DOC_REJECTED,
    DOC_UNDER_REVIEW,
    DOC_UPLOADED,
    EMPTY_STATUSES,
    DeliveredDocument,
    DocumentStatusHistory,
)
from casedesk.models.process import IndividualProcess
from casedesk.services.access_control import ensure_process_access, require_admin
from casedesk.services.condition_service import auto_create_for_document, validation_status
from casedesk.services.document_validity import check_document_validity
from casedesk.services.notification import NotificationService
from casedesk.utils.helpers import parse_date

logger = logging.getLogger(__name__)

UPLOAD_DENIED = "Access denied: You do not have permission to upload documents for this process"
AWAITING_UPLOAD = {DOC_NOT_STARTED, DOC_PENDING_UPLOAD, DOC_REJECTED}
FILE_FIELDS = ("file_name", "file_url", "file_size", "mime_type")


# ── Lookups ──────────────────────────────────────────────────────────────────

def _get_process(profile, process_id: int, message=None) -> IndividualProcess:
    process = db.session.get(IndividualProcess, process_id)
    if process is None:
        raise NotFoundError(resource="Individual process", resource_id=process_id)
    ensure_process_access(profile, process, message)
    return process


def get_document(profile, document_id: int) -> DeliveredDocument:
    document = db.session.get(DeliveredDocument, document_id)
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_id)
    ensure_process_access(profile, document.individual_process)
    return document


def _latest_in_slot(process_id, document_type_id, requirement_id) -> DeliveredDocument | None:
    return (
        DeliveredDocument.query.filter_by(
            individual_process_id=process_id,
            document_type_id=document_type_id,
            document_requirement_id=requirement_id,
            is_latest=True,
        )
        .order_by(DeliveredDocument.version.desc())
        .first()
    )


def _record_status(document, previous, new, actor_id, notes=None) -> None:
    db.session.add(DocumentStatusHistory(
        document_id=document.id,
        previous_status=previous,
        new_status=new,
        changed_by=actor_id,
        notes=notes,
    ))


def _file_payload(data: dict) -> dict:
    payload = {k: data[k] for k in FILE_FIELDS if data.get(k) is not None}
    if not payload.get("file_name"):
        raise ValidationError("file_name is required")
    try:
        payload["file_size"] = int(payload.get("file_size") or 0)
    except (TypeError, ValueError):
        raise ValidationError("file_size must be an integer")
    if payload["file_size"] < 0:
        raise ValidationError("file_size must be positive")
    return payload


def _extension(file_name: str) -> str:
    return os.path.splitext(file_name or "")[1].lower()


def validate_file_against_type(document_type: DocumentType, file_name: str, file_size: int) -> None:
    """Raise ValidationError when the file breaks the type's format or size rules."""
    allowed = [e.lower() for e in (document_type.allowed_file_types or [])]
    if allowed and _extension(file_name) not in allowed:
        raise ValidationError(f"File type not allowed. Allowed types: {', '.join(allowed)}")
    max_mb = document_type.max_file_size_mb
    if max_mb and file_size > max_mb * 1024 * 1024:
        raise ValidationError(f"File size exceeds maximum allowed ({max_mb:g} MB)")


# ═══════════════════════════════════════════════════════════════
# Uploads
# ═══════════════════════════════════════════════════════════════
def _insert_version(profile, process: IndividualProcess, document_type_id, requirement_id,
                    data: dict) -> DeliveredDocument:
    """Insert the next version of a slot.  Flushes; the caller commits."""
    file_data = _file_payload(data)
    previous = _latest_in_slot(process.id, document_type_id, requirement_id)
    if previous is not None:
        previous.is_latest = False

    document = DeliveredDocument(
        individual_process_id=process.id,
        document_type_id=document_type_id,
        document_requirement_id=requirement_id,
        person_id=process.person_id,
        company_id=process.company_id,
        status=DOC_UPLOADED,
        is_required=previous.is_required if previous is not None else bool(data.get("is_required")),
        uploaded_by=profile.id,
        uploaded_at=utcnow(),
        issue_date=parse_date(data.get("issue_date")),
        expiry_date=parse_date(data.get("expiry_date")),
        version=(previous.version + 1) if previous is not None else 1,
        is_latest=True,
        **file_data,
    )
    db.session.add(document)
    db.session.flush()

    auto_create_for_document(document)
    _record_status(document, previous.status if previous is not None else None, DOC_UPLOADED, profile.id,
                   notes=data.get("notes"))
    log_activity(
        action="uploaded", entity_type="delivered_document", entity_id=document.id, user_id=profile.id,
        details={"individual_process_id": process.id, "document_type_id": document_type_id,
                 "version": document.version, "file_name": document.file_name},
    )
    return document


def upload_with_type(profile, process_id: int, data: dict) -> DeliveredDocument:
    """Upload a typed document after checking the type is active and the file fits its rules."""
    process = _get_process(profile, process_id, UPLOAD_DENIED)
    document_type_id = data.get("document_type_id")
    if not document_type_id:
        raise ValidationError("document_type_id is required")
    document_type = db.session.get(DocumentType, document_type_id)
    if document_type is None:
        raise NotFoundError(resource="Document type", resource_id=document_type_id)
    if not document_type.is_active:
        raise ValidationError("Document type is not active")
    file_data = _file_payload(data)
    validate_file_against_type(document_type, file_data["file_name"], file_data["file_size"])

    document = _insert_version(profile, process, document_type.id, data.get("document_requirement_id"), data)
    db.session.commit()
    logger.info("Document uploaded id=%s process=%s type=%s v%d",
                document.id, process.id, document_type.id, document.version)
    return document


def upload_loose(profile, process_id: int, data: dict) -> DeliveredDocument:
    """Upload a document with no type; it can be classified later with ``assign_type``."""
    process = _get_process(profile, process_id, UPLOAD_DENIED)
    document = DeliveredDocument(
        individual_process_id=process.id,
        person_id=process.person_id,
        company_id=process.company_id,
        status=DOC_UPLOADED,
        uploaded_by=profile.id,
        uploaded_at=utcnow(),
        issue_date=parse_date(data.get("issue_date")),
        expiry_date=parse_date(data.get("expiry_date")),
        version=1,
        is_latest=True,
        **_file_payload(data),
    )
    db.session.add(document)
    db.session.flush()
    _record_status(document, None, DOC_UPLOADED, profile.id)
    log_activity(action="uploaded", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id, details={"individual_process_id": process.id, "loose": True})
    db.session.commit()
    return document


def assign_type(profile, document_id: int, document_type_id: int) -> DeliveredDocument:
    document = get_document(profile, document_id)
    if document.document_type_id:
        raise ValidationError("Document already has a type assigned")
    document_type = db.session.get(DocumentType, document_type_id)
    if document_type is None:
        raise NotFoundError(resource="Document type", resource_id=document_type_id)
    if not document_type.is_active:
        raise ValidationError("Document type is not active")

    previous = _latest_in_slot(document.individual_process_id, document_type.id, None)
    if previous is not None and previous.id != document.id:
        previous.is_latest = False
        document.version = previous.version + 1
        document.is_required = previous.is_required
    document.document_type_id = document_type.id
    db.session.flush()
    auto_create_for_document(document)
    log_activity(action="type_assigned", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id, details={"document_type_id": document_type.id})
    db.session.commit()
    return document


def upload_for_pending(profile, document_id: int, data: dict) -> DeliveredDocument:
    """Fill a placeholder (or replace a rejected document) with a new version."""
    placeholder = get_document(profile, document_id)
    if not placeholder.is_latest:
        raise ValidationError("Only the latest version of a document can be replaced")
    if placeholder.status not in AWAITING_UPLOAD:
        raise ValidationError(f"Cannot upload a file for a document with status: {placeholder.status}")
    process = placeholder.individual_process
    if placeholder.document_type is not None:
        file_data = _file_payload(data)
        validate_file_against_type(placeholder.document_type, file_data["file_name"], file_data["file_size"])

    document = _insert_version(profile, process, placeholder.document_type_id,
                               placeholder.document_requirement_id, data)
    db.session.commit()
    return document


# ═══════════════════════════════════════════════════════════════
# Review
# ═══════════════════════════════════════════════════════════════
def submit_for_review(profile, document_id: int) -> DeliveredDocument:
    document = get_document(profile, document_id)
    if document.status != DOC_UPLOADED:
        raise ValidationError(f"Cannot submit document with status: {document.status}")
    document.status = DOC_UNDER_REVIEW
    _record_status(document, DOC_UPLOADED, DOC_UNDER_REVIEW, profile.id)
    log_activity(action="submitted_for_review", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id)
    db.session.commit()
    return document


def _approve(profile, document: DeliveredDocument, notes=None) -> None:
    if document.status == DOC_APPROVED:
        raise ValidationError("Document is already approved")
    if document.status in EMPTY_STATUSES:
        raise ValidationError("Cannot approve a document that has not been uploaded")
    check = validation_status(document)
    if not check["all_required_fulfilled"]:
        raise ValidationError(
            "Cannot approve document: required conditions not fulfilled: "
            + ", ".join(check["unfulfilled_required"])
        )

    previous = document.status
    document.status = DOC_APPROVED
    document.reviewed_by = profile.id
    document.reviewed_at = utcnow()
    document.rejection_reason = None
    _record_status(document, previous, DOC_APPROVED, profile.id, notes=notes)
    log_activity(action="approved", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id, details={"previous_status": previous})
    if document.uploaded_by and document.uploaded_by != profile.id:
        NotificationService.notify(
            user_id=document.uploaded_by,
            type="document_approved",
            title="Document Approved",
            message=f'Your document "{document.file_name}" has been approved',
            entity_type="delivered_document",
            entity_id=document.id,
        )


def _reject(profile, document: DeliveredDocument, reason: str) -> None:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")
    if document.status in EMPTY_STATUSES:
        raise ValidationError("Cannot reject a document that has not been uploaded")
    if document.status == DOC_REJECTED:
        raise ValidationError("Document is already rejected")

    previous = document.status
    document.status = DOC_REJECTED
    document.reviewed_by = profile.id
    document.reviewed_at = utcnow()
    document.rejection_reason = reason
    _record_status(document, previous, DOC_REJECTED, profile.id, notes=reason)
    log_activity(action="rejected", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id, details={"previous_status": previous, "reason": reason})
    if document.uploaded_by and document.uploaded_by != profile.id:
        NotificationService.notify(
            user_id=document.uploaded_by,
            type="document_rejected",
            title="Document Rejected",
            message=f'Your document "{document.file_name}" was rejected: {reason}',
            entity_type="delivered_document",
            entity_id=document.id,
        )


def approve_document(profile, document_id: int, notes: str | None = None) -> DeliveredDocument:
    """Approve a document.

    Raises:
        ValidationError: Already approved, nothing uploaded yet, or a
            required condition is still unfulfilled.
    """
    require_admin(profile)
    document = get_document(profile, document_id)
    _approve(profile, document, notes)
    db.session.commit()
    logger.info("Document approved id=%s by=%s", document.id, profile.id)
    return document


def reject_document(profile, document_id: int, reason: str) -> DeliveredDocument:
    require_admin(profile)
    document = get_document(profile, document_id)
    _reject(profile, document, reason)
    db.session.commit()
    logger.info("Document rejected id=%s by=%s", document.id, profile.id)
    return document


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def get_version_history(profile, document_id: int) -> list[DeliveredDocument]:
    """All versions in the document's slot, newest first."""
    document = get_document(profile, document_id)
    q = DeliveredDocument.query.filter_by(
        individual_process_id=document.individual_process_id,
        document_type_id=document.document_type_id,
        document_requirement_id=document.document_requirement_id,
    )
    if document.document_type_id is None:
        q = q.filter(DeliveredDocument.id == document.id)
    return q.order_by(DeliveredDocument.version.desc(), DeliveredDocument.id.desc()).all()


def list_documents(profile, process_id: int, *, status=None, latest_only=True) -> list[DeliveredDocument]:
    process = _get_process(profile, process_id)
    q = DeliveredDocument.query.filter_by(individual_process_id=process.id)
    if latest_only:
        q = q.filter(DeliveredDocument.is_latest.is_(True))
    if status:
        q = q.filter(DeliveredDocument.status == status)
    return q.order_by(DeliveredDocument.created_at, DeliveredDocument.id).all()


def list_grouped_by_category(profile, process_id: int) -> dict:
    """Latest documents split into required / optional / loose plus counts."""
    documents = list_documents(profile, process_id)
    required = [d for d in documents if d.document_type_id and d.is_required]
    optional = [d for d in documents if d.document_type_id and not d.is_required]
    loose = [d for d in documents if not d.document_type_id]

    def uploaded(docs):
        return sum(1 for d in docs if d.status != DOC_NOT_STARTED)

    def approved(docs):
        return sum(1 for d in docs if d.status == DOC_APPROVED)

    return {
        "required": [d.to_dict() for d in required],
        "optional": [d.to_dict() for d in optional],
        "loose": [d.to_dict() for d in loose],
        "summary": {
            "total_required": len(required),
            "total_optional": len(optional),
            "total_loose": len(loose),
            "required_uploaded": uploaded(required),
            "required_approved": approved(required),
            "optional_uploaded": uploaded(optional),
            "optional_approved": approved(optional),
        },
    }


def list_review_queue(profile, limit=20) -> list[DeliveredDocument]:
    require_admin(profile)
    return (
        DeliveredDocument.query.filter_by(status=DOC_UNDER_REVIEW, is_latest=True)
        .order_by(DeliveredDocument.uploaded_at, DeliveredDocument.id)
        .limit(limit)
        .all()
    )


def get_status_history(profile, document_id: int) -> list[DocumentStatusHistory]:
    document = get_document(profile, document_id)
    return (
        DocumentStatusHistory.query.filter_by(document_id=document.id)
        .order_by(DocumentStatusHistory.changed_at.desc(), DocumentStatusHistory.id.desc())
        .all()
    )


def check_validity(profile, document_id: int, today=None) -> dict:
    """Validity of a document against its legal framework association rule."""
    document = get_document(profile, document_id)
    process = document.individual_process
    assoc = None
    if document.document_type_id and process.legal_framework_id:
        assoc = DocumentTypeLegalFramework.query.filter_by(
            document_type_id=document.document_type_id,
            legal_framework_id=process.legal_framework_id,
        ).first()
    return check_document_validity(
        assoc.validity_type if assoc else None,
        assoc.validity_days if assoc else None,
        issue_date=document.issue_date,
        expiry_date=document.expiry_date,
        today=today,
    )


# ═══════════════════════════════════════════════════════════════
# Removal & bulk operations
# ═══════════════════════════════════════════════════════════════
def _remove(profile, document: DeliveredDocument) -> None:
    if not document.is_latest:
        raise ValidationError("Document has already been removed")
    document.is_latest = False
    log_activity(action="deleted", entity_type="delivered_document", entity_id=document.id,
                 user_id=profile.id, details={"file_name": document.file_name, "version": document.version})


def remove_document(profile, document_id: int) -> None:
    """Soft remove: the row stays in the version history but leaves every listing."""
    require_admin(profile)
    document = get_document(profile, document_id)
    _remove(profile, document)
    db.session.commit()


def _bulk(profile, document_ids, action) -> dict:
    successful, failed = [], []
    for document_id in document_ids or []:
        try:
            document = get_document(profile, document_id)
            action(document)
            db.session.flush()
            successful.append(document_id)
        except (ValidationError, NotFoundError, AccessDeniedError) as e:
            failed.append({"id": document_id, "reason": str(e)})
    db.session.commit()
    return {"successful": successful, "failed": failed, "total_processed": len(document_ids or [])}


def bulk_approve(profile, document_ids: list[int], notes: str | None = None) -> dict:
    require_admin(profile)
    return _bulk(profile, document_ids, lambda doc: _approve(profile, doc, notes))


def bulk_reject(profile, document_ids: list[int], reason: str) -> dict:
    require_admin(profile)
    if not (reason or "").strip():
        raise ValidationError("Rejection reason is required")
    return _bulk(profile, document_ids, lambda doc: _reject(profile, doc, reason))


def bulk_delete(profile, document_ids: list[int]) -> dict:
    require_admin(profile)

    def delete(doc):
        if doc.status == DOC_APPROVED:
            raise ValidationError("Cannot delete approved documents. Please reject first if needed.")
        _remove(profile, doc)

    return _bulk(profile, document_ids, delete)
