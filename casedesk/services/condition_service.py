"""
Document type conditions.

- Condition catalog CRUD (admin)
- Links between document types and conditions
- Per-document fulfilment records (``DeliveredDocumentCondition``) created
  automatically on upload and toggled by reviewers

A document whose required conditions are not all fulfilled cannot be
approved (see ``document_service.approve_document``).
"""

import logging
from datetime import timedelta

from casedesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.catalog import DocumentType, DocumentTypeCondition, DocumentTypeConditionLink
from casedesk.models.document import DeliveredDocument, DeliveredDocumentCondition
from casedesk.services.access_control import ensure_process_access, require_admin
from casedesk.services.activity_service import diff_fields
from casedesk.utils.helpers import as_utc

logger = logging.getLogger(__name__)

CONDITION_FIELDS = ("name", "code", "description", "is_required", "relative_expiration_days", "is_active")


def get_condition(condition_id: int) -> DocumentTypeCondition:
    cond = db.session.get(DocumentTypeCondition, condition_id)
    if cond is None:
        raise NotFoundError(resource="Condition", resource_id=condition_id)
    return cond


def _check_code(code, exclude_id=None):
    if not code:
        return
    q = DocumentTypeCondition.query.filter_by(code=code)
    if exclude_id:
        q = q.filter(DocumentTypeCondition.id != exclude_id)
    if q.first():
        raise ConflictError(resource="Condition", field="code", value=code,
                            message="A condition with this code already exists")


# ═══════════════════════════════════════════════════════════════
# Condition catalog
# ═══════════════════════════════════════════════════════════════
def list_conditions(active_only=False) -> list[DocumentTypeCondition]:
    q = DocumentTypeCondition.query
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(DocumentTypeCondition.name).all()


def create_condition(profile, data: dict) -> DocumentTypeCondition:
    require_admin(profile)
    if not (data.get("name") or "").strip():
        raise ValidationError("Condition name is required")
    _check_code(data.get("code"))
    cond = DocumentTypeCondition(**{k: data[k] for k in CONDITION_FIELDS if k in data})
    db.session.add(cond)
    db.session.flush()
    log_activity(action="created", entity_type="document_type_condition", entity_id=cond.id,
                 user_id=profile.id, details={"name": cond.name})
    db.session.commit()
    return cond


def update_condition(profile, condition_id: int, data: dict) -> DocumentTypeCondition:
    require_admin(profile)
    cond = get_condition(condition_id)
    if "name" in data and not (data["name"] or "").strip():
        raise ValidationError("Condition name is required")
    if data.get("code") and data["code"] != cond.code:
        _check_code(data["code"], exclude_id=cond.id)
    changes = diff_fields(cond, data, CONDITION_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="document_type_condition", entity_id=cond.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return cond


def delete_condition(profile, condition_id: int) -> None:
    """Delete a condition and its links; refused while delivered documents use it."""
    require_admin(profile)
    cond = get_condition(condition_id)
    if DeliveredDocumentCondition.query.filter_by(condition_id=cond.id).first():
        raise ValidationError("Cannot delete: this condition is being used by delivered documents")
    DocumentTypeConditionLink.query.filter_by(condition_id=cond.id).delete()
    log_activity(action="deleted", entity_type="document_type_condition", entity_id=cond.id,
                 user_id=profile.id, details={"name": cond.name})
    db.session.delete(cond)
    db.session.commit()


def create_and_link_condition(profile, document_type_id: int, data: dict) -> DocumentTypeConditionLink:
    require_admin(profile)
    if db.session.get(DocumentType, document_type_id) is None:
        raise NotFoundError(resource="Document type", resource_id=document_type_id)
    if not (data.get("name") or "").strip():
        raise ValidationError("Condition name is required")
    _check_code(data.get("code"))
    cond = DocumentTypeCondition(**{k: data[k] for k in CONDITION_FIELDS if k in data})
    db.session.add(cond)
    db.session.flush()
    link = DocumentTypeConditionLink(
        document_type_id=document_type_id,
        condition_id=cond.id,
        is_required=data.get("link_is_required"),
        sort_order=data.get("sort_order", 0),
    )
    db.session.add(link)
    db.session.commit()
    return link


# ═══════════════════════════════════════════════════════════════
# Links
# ═══════════════════════════════════════════════════════════════
def list_links_by_document_type(document_type_id: int) -> list[DocumentTypeConditionLink]:
    return (
        DocumentTypeConditionLink.query.filter_by(document_type_id=document_type_id)
        .order_by(DocumentTypeConditionLink.sort_order, DocumentTypeConditionLink.id)
        .all()
    )


def list_available_for_document_type(document_type_id: int) -> list[DocumentTypeCondition]:
    """Active conditions not yet linked to the document type."""
    linked = db.session.query(DocumentTypeConditionLink.condition_id).filter_by(document_type_id=document_type_id)
    return (
        DocumentTypeCondition.query.filter(
            DocumentTypeCondition.is_active.is_(True),
            DocumentTypeCondition.id.notin_(linked),
        )
        .order_by(DocumentTypeCondition.name)
        .all()
    )


def link_condition(profile, document_type_id: int, condition_id: int,
                   is_required=None, sort_order=0) -> DocumentTypeConditionLink:
    require_admin(profile)
    if db.session.get(DocumentType, document_type_id) is None:
        raise NotFoundError(resource="Document type", resource_id=document_type_id)
    get_condition(condition_id)
    if DocumentTypeConditionLink.query.filter_by(
        document_type_id=document_type_id, condition_id=condition_id,
    ).first():
        raise ConflictError(resource="Condition link", field="condition", value=condition_id,
                            message="This condition is already linked to this document type")
    link = DocumentTypeConditionLink(
        document_type_id=document_type_id,
        condition_id=condition_id,
        is_required=is_required,
        sort_order=sort_order or 0,
    )
    db.session.add(link)
    db.session.commit()
    return link


def unlink_condition(profile, link_id: int) -> None:
    require_admin(profile)
    link = db.session.get(DocumentTypeConditionLink, link_id)
    if link is None:
        raise NotFoundError(resource="Link", resource_id=link_id)
    db.session.delete(link)
    db.session.commit()


def update_link(profile, link_id: int, data: dict) -> DocumentTypeConditionLink:
    require_admin(profile)
    link = db.session.get(DocumentTypeConditionLink, link_id)
    if link is None:
        raise NotFoundError(resource="Link", resource_id=link_id)
    diff_fields(link, data, ("is_required", "sort_order"))
    db.session.commit()
    return link


# ═══════════════════════════════════════════════════════════════
# Delivered document conditions
# ═══════════════════════════════════════════════════════════════
def auto_create_for_document(document: DeliveredDocument) -> list[DeliveredDocumentCondition]:
    """Create one unfulfilled record per active condition linked to the document type.

    ``expires_at`` is the individual process creation time plus the
    condition's ``relative_expiration_days``.  Uses ``flush``; the caller
    owns the transaction.
    """
    if not document.document_type_id:
        return []
    process = document.individual_process
    if process is None:
        return []

    created = []
    for link in list_links_by_document_type(document.document_type_id):
        cond = link.condition
        if cond is None or not cond.is_active:
            continue
        expires_at = None
        if cond.relative_expiration_days and process.created_at:
            expires_at = as_utc(process.created_at) + timedelta(days=cond.relative_expiration_days)
        record = DeliveredDocumentCondition(
            condition_id=cond.id,
            is_fulfilled=False,
            expires_at=expires_at,
        )
        document.conditions.append(record)
        created.append(record)
    db.session.flush()
    return created


def _sorted_conditions(document: DeliveredDocument) -> list[DeliveredDocumentCondition]:
    return sorted(
        document.conditions,
        key=lambda c: (not (c.condition and c.condition.is_required), (c.condition.name if c.condition else "")),
    )


def list_by_document(profile, document_id: int) -> list[DeliveredDocumentCondition]:
    """Conditions of a document, required first then by name."""
    document = _get_document(profile, document_id)
    return _sorted_conditions(document)


def _required_overrides(document: DeliveredDocument) -> dict:
    """condition_id -> link-level ``is_required`` for the document's type (None = use condition default)."""
    if not document.document_type_id:
        return {}
    return {link.condition_id: link.is_required for link in list_links_by_document_type(document.document_type_id)}


def validation_status(document: DeliveredDocument, now=None) -> dict:
    now = now or utcnow()
    overrides = _required_overrides(document)
    unfulfilled_required = []
    expired = []
    fulfilled = 0
    for record in document.conditions:
        cond = record.condition
        if cond is None:
            continue
        is_required = overrides.get(cond.id)
        if is_required is None:
            is_required = cond.is_required
        if record.is_fulfilled:
            fulfilled += 1
        if is_required and not record.is_fulfilled:
            unfulfilled_required.append(cond.name)
        if record.expires_at and as_utc(record.expires_at) < now:
            expired.append(cond.name)
    return {
        "all_required_fulfilled": not unfulfilled_required,
        "has_expired_conditions": bool(expired),
        "unfulfilled_required": unfulfilled_required,
        "expired_conditions": expired,
        "total_conditions": len(document.conditions),
        "fulfilled_count": fulfilled,
    }


def get_validation_status(profile, document_id: int) -> dict:
    return validation_status(_get_document(profile, document_id))


def toggle_fulfillment(profile, record_id: int, is_fulfilled: bool, notes: str | None = None) -> DeliveredDocumentCondition:
    require_admin(profile)
    record = db.session.get(DeliveredDocumentCondition, record_id)
    if record is None:
        raise NotFoundError(resource="Document condition", resource_id=record_id)

    record.is_fulfilled = bool(is_fulfilled)
    if record.is_fulfilled:
        record.fulfilled_at = utcnow()
        record.fulfilled_by = profile.id
    else:
        record.fulfilled_at = None
        record.fulfilled_by = None
    if notes is not None:
        record.notes = notes

    log_activity(
        action="condition_fulfilled" if record.is_fulfilled else "condition_unfulfilled",
        entity_type="delivered_document", entity_id=record.document_id, user_id=profile.id,
        details={"condition_id": record.condition_id},
    )
    db.session.commit()
    return record


def _get_document(profile, document_id: int) -> DeliveredDocument:
    document = db.session.get(DeliveredDocument, document_id)
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_id)
    ensure_process_access(profile, document.individual_process)
    return document
