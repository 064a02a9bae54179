"""
Document templates and their requirements.

A template lists the documents required for a (process type, legal
framework) pair.  Templates are versioned: ``clone_template`` creates the
next version as an inactive copy; checklist generation uses the highest
active version.
"""

import logging

from casedesk.core.exceptions import NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.catalog import DocumentRequirement, DocumentTemplate, DocumentType, LegalFramework, ProcessType
from casedesk.models.document import DeliveredDocument
from casedesk.services.access_control import require_admin
from casedesk.services.activity_service import diff_fields

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = ("name", "description", "process_type_id", "legal_framework_id", "is_active")
REQUIREMENT_FIELDS = (
    "document_type_id", "is_required", "is_critical", "description", "example_url", "max_size_mb",
    "allowed_formats", "sort_order", "validity_days", "requires_translation", "requires_notarization",
)


def get_template(template_id: int) -> DocumentTemplate:
    template = db.session.get(DocumentTemplate, template_id)
    if template is None:
        raise NotFoundError(resource="Document template", resource_id=template_id)
    return template


def get_requirement(requirement_id: int) -> DocumentRequirement:
    req = db.session.get(DocumentRequirement, requirement_id)
    if req is None:
        raise NotFoundError(resource="Document requirement", resource_id=requirement_id)
    return req


def _validate_refs(data: dict) -> None:
    if data.get("process_type_id") and db.session.get(ProcessType, data["process_type_id"]) is None:
        raise NotFoundError(resource="Process type", resource_id=data["process_type_id"])
    if data.get("legal_framework_id") and db.session.get(LegalFramework, data["legal_framework_id"]) is None:
        raise NotFoundError(resource="Legal framework", resource_id=data["legal_framework_id"])


def _matching_templates(process_type_id, legal_framework_id):
    q = DocumentTemplate.query.filter_by(process_type_id=process_type_id)
    if legal_framework_id:
        return q.filter_by(legal_framework_id=legal_framework_id)
    return q.filter(DocumentTemplate.legal_framework_id.is_(None))


def find_active_template(process_type_id, legal_framework_id=None) -> DocumentTemplate | None:
    """Highest-version active template for the pair, or None."""
    if not process_type_id:
        return None
    return (
        _matching_templates(process_type_id, legal_framework_id)
        .filter_by(is_active=True)
        .order_by(DocumentTemplate.version.desc())
        .first()
    )


# ═══════════════════════════════════════════════════════════════
# Templates
# ═══════════════════════════════════════════════════════════════
def list_templates(process_type_id=None, legal_framework_id=None, active_only=False) -> list[DocumentTemplate]:
    q = DocumentTemplate.query
    if process_type_id:
        q = q.filter_by(process_type_id=process_type_id)
    if legal_framework_id:
        q = q.filter_by(legal_framework_id=legal_framework_id)
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(DocumentTemplate.name, DocumentTemplate.version.desc()).all()


def create_template(profile, data: dict) -> DocumentTemplate:
    require_admin(profile)
    if not (data.get("name") or "").strip():
        raise ValidationError("Template name is required")
    if not data.get("process_type_id"):
        raise ValidationError("process_type_id is required")
    _validate_refs(data)

    latest = _matching_templates(data["process_type_id"], data.get("legal_framework_id")) \
        .order_by(DocumentTemplate.version.desc()).first()
    template = DocumentTemplate(
        **{k: data[k] for k in TEMPLATE_FIELDS if k in data},
        version=(latest.version + 1) if latest else 1,
        created_by=profile.id,
    )
    db.session.add(template)
    db.session.flush()
    for item in data.get("requirements") or []:
        _add_requirement(template, item)
    log_activity(action="created", entity_type="document_template", entity_id=template.id,
                 user_id=profile.id, details={"name": template.name, "version": template.version})
    db.session.commit()
    return template


def update_template(profile, template_id: int, data: dict) -> DocumentTemplate:
    require_admin(profile)
    template = get_template(template_id)
    _validate_refs(data)
    changes = diff_fields(template, data, ("name", "description", "is_active"))
    if changes:
        log_activity(action="updated", entity_type="document_template", entity_id=template.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return template


def _template_in_use(template: DocumentTemplate) -> bool:
    req_ids = [r.id for r in template.requirements]
    if not req_ids:
        return False
    return DeliveredDocument.query.filter(DeliveredDocument.document_requirement_id.in_(req_ids)).first() is not None


def delete_template(profile, template_id: int) -> None:
    require_admin(profile)
    template = get_template(template_id)
    if _template_in_use(template):
        raise ValidationError("Cannot delete template that is in use. Please deactivate it instead.")
    db.session.delete(template)
    log_activity(action="deleted", entity_type="document_template", entity_id=template_id, user_id=profile.id)
    db.session.commit()


def clone_template(profile, template_id: int) -> DocumentTemplate:
    """Copy a template with its requirements as the next (inactive) version."""
    require_admin(profile)
    source = get_template(template_id)
    max_version = max(
        (t.version for t in _matching_templates(source.process_type_id, source.legal_framework_id).all()),
        default=0,
    )
    clone = DocumentTemplate(
        name=f"{source.name} (v{max_version + 1})",
        description=source.description,
        process_type_id=source.process_type_id,
        legal_framework_id=source.legal_framework_id,
        is_active=False,
        version=max_version + 1,
        created_by=profile.id,
    )
    db.session.add(clone)
    db.session.flush()
    for req in source.requirements:
        clone.requirements.append(DocumentRequirement(
            **{k: getattr(req, k) for k in REQUIREMENT_FIELDS},
        ))
    log_activity(action="cloned", entity_type="document_template", entity_id=clone.id, user_id=profile.id,
                 details={"source_id": source.id, "version": clone.version})
    db.session.commit()
    return clone


# ═══════════════════════════════════════════════════════════════
# Requirements
# ═══════════════════════════════════════════════════════════════
def _add_requirement(template: DocumentTemplate, data: dict) -> DocumentRequirement:
    if not data.get("document_type_id"):
        raise ValidationError("document_type_id is required")
    if db.session.get(DocumentType, data["document_type_id"]) is None:
        raise NotFoundError(resource="Document type", resource_id=data["document_type_id"])
    payload = {k: data[k] for k in REQUIREMENT_FIELDS if k in data}
    if "sort_order" not in payload:
        payload["sort_order"] = len(template.requirements)
    req = DocumentRequirement(**payload)
    template.requirements.append(req)
    return req


def add_requirement(profile, template_id: int, data: dict) -> DocumentRequirement:
    require_admin(profile)
    template = get_template(template_id)
    req = _add_requirement(template, data)
    db.session.commit()
    return req


def update_requirement(profile, requirement_id: int, data: dict) -> DocumentRequirement:
    require_admin(profile)
    req = get_requirement(requirement_id)
    if data.get("document_type_id") and db.session.get(DocumentType, data["document_type_id"]) is None:
        raise NotFoundError(resource="Document type", resource_id=data["document_type_id"])
    diff_fields(req, data, REQUIREMENT_FIELDS)
    db.session.commit()
    return req


def reorder_requirements(profile, template_id: int, ordered_ids: list[int]) -> int:
    require_admin(profile)
    template = get_template(template_id)
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Duplicate requirement ids are not allowed")
    by_id = {r.id: r for r in template.requirements}
    for position, req_id in enumerate(ordered_ids):
        if req_id not in by_id:
            raise NotFoundError(resource="Document requirement", resource_id=req_id)
        by_id[req_id].sort_order = position
    db.session.commit()
    return len(ordered_ids)


def delete_requirement(profile, requirement_id: int) -> None:
    require_admin(profile)
    req = get_requirement(requirement_id)
    if DeliveredDocument.query.filter_by(document_requirement_id=req.id).first():
        raise ValidationError(
            "Cannot delete requirement that has documents delivered. "
            "Please remove or reassign the documents first."
        )
    db.session.delete(req)
    db.session.commit()
