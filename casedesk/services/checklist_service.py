"""
Document checklist for individual processes.

Two views of "which documents does this person need":

1. ``generate_document_checklist`` inserts ``not_started`` placeholder
   documents from the active template (or, failing that, the legal
   framework associations) when a process is created.
2. ``get_requirements_checklist`` reports completion per legal framework
   association: a document counts as *completed* only when it is present,
   its required conditions are fulfilled and its validity rule is met.
"""

import logging

from casedesk.core.exceptions import NotFoundError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.catalog import DocumentTypeLegalFramework
from casedesk.models.document import DOC_NOT_STARTED, EMPTY_STATUSES, DeliveredDocument
from casedesk.models.process import IndividualProcess
from casedesk.services.access_control import ensure_process_access
from casedesk.services.condition_service import validation_status
from casedesk.services.document_validity import check_document_validity, is_validity_ok
from casedesk.services.template_service import find_active_template

logger = logging.getLogger(__name__)

COMPLETION_COMPLETED = "completed"
COMPLETION_PARTIAL = "partial"
COMPLETION_PENDING = "pending"


def _slot_exists(process_id, document_type_id, requirement_id) -> bool:
    return DeliveredDocument.query.filter_by(
        individual_process_id=process_id,
        document_type_id=document_type_id,
        document_requirement_id=requirement_id,
        is_latest=True,
    ).first() is not None


def _placeholder(process: IndividualProcess, document_type_id, requirement_id, is_required, actor_id):
    return DeliveredDocument(
        individual_process_id=process.id,
        document_type_id=document_type_id,
        document_requirement_id=requirement_id,
        person_id=process.person_id,
        company_id=process.company_id,
        status=DOC_NOT_STARTED,
        is_required=bool(is_required),
        uploaded_by=actor_id,
        version=1,
        is_latest=True,
    )


def generate_document_checklist(process: IndividualProcess, actor=None) -> list[DeliveredDocument]:
    """Insert placeholder documents for the process' required paperwork.

    Uses the highest-version active template matching the collective
    process type and the individual legal framework; falls back to the
    legal framework's document type associations.  Slots that already have
    a latest document are skipped.  Flushes only; the caller commits.

    Returns:
        The placeholders created (empty when the collective process has no
        process type).
    """
    collective = process.collective_process
    process_type_id = collective.process_type_id if collective else None
    if not process_type_id:
        return []

    actor_id = actor.id if actor is not None else None
    created = []
    template = find_active_template(process_type_id, process.legal_framework_id)
    if template is not None:
        source = "template"
        for req in sorted(template.requirements, key=lambda r: (r.sort_order or 0, r.id)):
            if _slot_exists(process.id, req.document_type_id, req.id):
                continue
            created.append(_placeholder(process, req.document_type_id, req.id, req.is_required, actor_id))
    elif process.legal_framework_id:
        source = "legal_framework"
        for assoc in _associations(process.legal_framework_id):
            if _slot_exists(process.id, assoc.document_type_id, None):
                continue
            created.append(_placeholder(process, assoc.document_type_id, None, assoc.is_required, actor_id))
    else:
        return []

    db.session.add_all(created)
    db.session.flush()
    if created:
        log_activity(
            action="checklist_generated", entity_type="individual_process", entity_id=process.id,
            user_id=actor_id, details={"source": source, "documents": len(created)},
        )
        logger.info("Checklist generated process=%s source=%s count=%d", process.id, source, len(created))
    return created


def _associations(legal_framework_id) -> list[DocumentTypeLegalFramework]:
    return (
        DocumentTypeLegalFramework.query.filter_by(legal_framework_id=legal_framework_id)
        .order_by(DocumentTypeLegalFramework.sort_order, DocumentTypeLegalFramework.id)
        .all()
    )


def _latest_document(process_id, document_type_id) -> DeliveredDocument | None:
    return (
        DeliveredDocument.query.filter_by(
            individual_process_id=process_id, document_type_id=document_type_id, is_latest=True,
        )
        .order_by(DeliveredDocument.version.desc(), DeliveredDocument.id.desc())
        .first()
    )


def completion_status(has_document: bool, conditions_met: bool, validity_ok: bool) -> str:
    if not has_document:
        return COMPLETION_PENDING
    if conditions_met and validity_ok:
        return COMPLETION_COMPLETED
    return COMPLETION_PARTIAL


def build_requirements_checklist(process: IndividualProcess, today=None) -> dict:
    items = []
    summary = {"total": 0, COMPLETION_COMPLETED: 0, COMPLETION_PARTIAL: 0, COMPLETION_PENDING: 0}
    if not process.legal_framework_id:
        return {"items": items, "summary": summary}

    for assoc in _associations(process.legal_framework_id):
        doc = _latest_document(process.id, assoc.document_type_id)
        has_document = doc is not None and doc.status not in EMPTY_STATUSES

        validity = check_document_validity(
            assoc.validity_type, assoc.validity_days,
            issue_date=doc.issue_date if doc else None,
            expiry_date=doc.expiry_date if doc else None,
            today=today,
        )
        conditions = validation_status(doc) if doc is not None else None
        conditions_met = conditions["all_required_fulfilled"] if conditions else False

        status = completion_status(has_document, conditions_met, is_validity_ok(validity))
        summary["total"] += 1
        summary[status] += 1
        items.append({
            "association": assoc.to_dict(),
            "document_type_id": assoc.document_type_id,
            "document_type_name": assoc.document_type.name if assoc.document_type else None,
            "is_required": assoc.is_required,
            "responsible_party": assoc.responsible_party,
            "workflow_type": assoc.workflow_type,
            "document": doc.to_dict() if doc else None,
            "has_document": has_document,
            "conditions": conditions,
            "validity": validity,
            "completion_status": status,
        })
    return {"items": items, "summary": summary}


def get_requirements_checklist(profile, process_id: int, today=None) -> dict:
    process = db.session.get(IndividualProcess, process_id)
    if process is None:
        raise NotFoundError(resource="Individual process", resource_id=process_id)
    ensure_process_access(profile, process)
    return build_requirements_checklist(process, today=today)
