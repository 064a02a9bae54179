"""
Catalog service layer — admin-maintained lookup tables.

Covers process types, legal frameworks, case statuses, document categories,
document types and the document-type ↔ legal-framework associations.  Conditions live in
``condition_service``; templates in ``template_service``.
"""

import logging
import re
import unicodedata

from casedesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.catalog import (
    RESPONSIBLE_PARTIES,
    VALIDITY_TYPES,
    WORKFLOW_TYPES,
    CaseStatus,
    DocumentCategory,
    DocumentType,
    DocumentTypeLegalFramework,
    LegalFramework,
    ProcessType,
)
from casedesk.models.process import GOVERNMENT_FIELDS, IndividualProcess
from casedesk.services.access_control import require_admin
from casedesk.services.activity_service import diff_fields

logger = logging.getLogger(__name__)

PROCESS_TYPE_FIELDS = ("name", "description", "estimated_days", "is_active", "sort_order")
LEGAL_FRAMEWORK_FIELDS = ("name", "process_type_id", "description", "is_active")
CASE_STATUS_FIELDS = (
    "name", "name_en", "code", "description", "category", "color", "sort_order", "fillable_fields", "is_active",
)
DOCUMENT_CATEGORY_FIELDS = ("name", "code", "description", "is_active")
DOCUMENT_TYPE_FIELDS = (
    "name", "code", "category", "description", "allowed_file_types", "max_file_size_mb", "is_active",
)
ASSOCIATION_FIELDS = (
    "is_required", "responsible_party", "workflow_type", "validity_days", "validity_type",
    "sort_order", "description", "notes",
)

# Individual-process fields a case status may declare as fillable
FILLABLE_FIELD_NAMES = set(GOVERNMENT_FIELDS) | {"deadline_date"}


def _get(model, pk, label):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def _require_name(data: dict, label: str) -> None:
    if "name" in data and not (data["name"] or "").strip():
        raise ValidationError(f"{label} name is required")


# ═══════════════════════════════════════════════════════════════
# Process types
# ═══════════════════════════════════════════════════════════════
def list_process_types(active_only=False) -> list[ProcessType]:
    q = ProcessType.query
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(ProcessType.sort_order, ProcessType.name).all()


def get_process_type(process_type_id: int) -> ProcessType:
    return _get(ProcessType, process_type_id, "Process type")


def create_process_type(profile, data: dict) -> ProcessType:
    require_admin(profile)
    if not (data.get("name") or "").strip():
        raise ValidationError("Process type name is required")
    pt = ProcessType(**{k: data[k] for k in PROCESS_TYPE_FIELDS if k in data})
    db.session.add(pt)
    db.session.flush()
    log_activity(action="created", entity_type="process_type", entity_id=pt.id, user_id=profile.id,
                 details={"name": pt.name})
    db.session.commit()
    return pt


def update_process_type(profile, process_type_id: int, data: dict) -> ProcessType:
    require_admin(profile)
    pt = get_process_type(process_type_id)
    _require_name(data, "Process type")
    changes = diff_fields(pt, data, PROCESS_TYPE_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="process_type", entity_id=pt.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return pt


def delete_process_type(profile, process_type_id: int) -> None:
    from casedesk.models.process import CollectiveProcess

    require_admin(profile)
    pt = get_process_type(process_type_id)
    if CollectiveProcess.query.filter_by(process_type_id=pt.id).first():
        raise ValidationError("Cannot delete process type that is used by collective processes")
    db.session.delete(pt)
    log_activity(action="deleted", entity_type="process_type", entity_id=process_type_id, user_id=profile.id)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Legal frameworks
# ═══════════════════════════════════════════════════════════════
def list_legal_frameworks(process_type_id=None, active_only=False) -> list[LegalFramework]:
    q = LegalFramework.query
    if process_type_id:
        q = q.filter_by(process_type_id=process_type_id)
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(LegalFramework.name).all()


def get_legal_framework(legal_framework_id: int) -> LegalFramework:
    return _get(LegalFramework, legal_framework_id, "Legal framework")


def create_legal_framework(profile, data: dict) -> LegalFramework:
    require_admin(profile)
    if not (data.get("name") or "").strip():
        raise ValidationError("Legal framework name is required")
    if data.get("process_type_id"):
        get_process_type(data["process_type_id"])
    lf = LegalFramework(**{k: data[k] for k in LEGAL_FRAMEWORK_FIELDS if k in data})
    db.session.add(lf)
    db.session.flush()
    log_activity(action="created", entity_type="legal_framework", entity_id=lf.id, user_id=profile.id,
                 details={"name": lf.name})
    db.session.commit()
    return lf


def update_legal_framework(profile, legal_framework_id: int, data: dict) -> LegalFramework:
    require_admin(profile)
    lf = get_legal_framework(legal_framework_id)
    _require_name(data, "Legal framework")
    if data.get("process_type_id"):
        get_process_type(data["process_type_id"])
    changes = diff_fields(lf, data, LEGAL_FRAMEWORK_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="legal_framework", entity_id=lf.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return lf


def delete_legal_framework(profile, legal_framework_id: int) -> None:
    require_admin(profile)
    lf = get_legal_framework(legal_framework_id)
    if IndividualProcess.query.filter_by(legal_framework_id=lf.id).first():
        raise ValidationError("Cannot delete legal framework that is used by individual processes")
    DocumentTypeLegalFramework.query.filter_by(legal_framework_id=lf.id).delete()
    db.session.delete(lf)
    log_activity(action="deleted", entity_type="legal_framework", entity_id=legal_framework_id,
                 user_id=profile.id)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Case statuses
# ═══════════════════════════════════════════════════════════════
def _validate_fillable_fields(fields) -> list[str]:
    fields = list(fields or [])
    unknown = [f for f in fields if f not in FILLABLE_FIELD_NAMES]
    if unknown:
        raise ValidationError(f"Unknown fillable field(s): {', '.join(unknown)}")
    return fields


def list_case_statuses(active_only=False, category=None) -> list[CaseStatus]:
    q = CaseStatus.query
    if active_only:
        q = q.filter_by(is_active=True)
    if category:
        q = q.filter_by(category=category)
    return q.order_by(CaseStatus.sort_order, CaseStatus.name).all()


def get_case_status(case_status_id: int) -> CaseStatus:
    return _get(CaseStatus, case_status_id, "Case status")


def get_case_status_by_code(code: str) -> CaseStatus:
    status = CaseStatus.query.filter_by(code=code).first()
    if status is None:
        raise NotFoundError(resource="Case status", resource_id=code)
    return status


def _case_status_in_use(case_status_id: int) -> bool:
    return IndividualProcess.query.filter_by(case_status_id=case_status_id).first() is not None


def create_case_status(profile, data: dict) -> CaseStatus:
    require_admin(profile)
    code = (data.get("code") or "").strip()
    if not code:
        raise ValidationError("Case status code is required")
    if not (data.get("name") or "").strip():
        raise ValidationError("Case status name is required")
    if CaseStatus.query.filter_by(code=code).first():
        raise ConflictError(resource="Case status", field="code", value=code,
                            message=f'Case status with code "{code}" already exists')

    payload = {k: data[k] for k in CASE_STATUS_FIELDS if k in data}
    payload["code"] = code
    payload["fillable_fields"] = _validate_fillable_fields(data.get("fillable_fields"))
    if "sort_order" not in payload:
        payload["sort_order"] = (db.session.query(db.func.max(CaseStatus.sort_order)).scalar() or 0) + 1

    status = CaseStatus(**payload)
    db.session.add(status)
    db.session.flush()
    log_activity(action="created", entity_type="case_status", entity_id=status.id, user_id=profile.id,
                 details={"code": code})
    db.session.commit()
    return status


def update_case_status(profile, case_status_id: int, data: dict) -> CaseStatus:
    require_admin(profile)
    status = get_case_status(case_status_id)
    _require_name(data, "Case status")

    new_code = data.get("code")
    if new_code and new_code != status.code:
        if _case_status_in_use(status.id):
            raise ValidationError("Cannot change code of case status that is in use")
        if CaseStatus.query.filter_by(code=new_code).first():
            raise ConflictError(resource="Case status", field="code", value=new_code,
                                message=f'Case status with code "{new_code}" already exists')
    if "fillable_fields" in data:
        data = {**data, "fillable_fields": _validate_fillable_fields(data["fillable_fields"])}

    changes = diff_fields(status, data, CASE_STATUS_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="case_status", entity_id=status.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return status


def delete_case_status(profile, case_status_id: int) -> CaseStatus:
    """Soft delete (deactivate); refused while individual processes use it."""
    require_admin(profile)
    status = get_case_status(case_status_id)
    if _case_status_in_use(status.id):
        raise ValidationError("Cannot delete case status that is in use. You can deactivate it instead.")
    status.is_active = False
    log_activity(action="deleted", entity_type="case_status", entity_id=status.id, user_id=profile.id)
    db.session.commit()
    return status


def toggle_case_status_active(profile, case_status_id: int, is_active: bool) -> CaseStatus:
    require_admin(profile)
    status = get_case_status(case_status_id)
    if not is_active and _case_status_in_use(status.id):
        raise ValidationError("Cannot deactivate case status that is in use")
    status.is_active = bool(is_active)
    db.session.commit()
    return status


def reorder_case_statuses(profile, ordered_ids: list[int]) -> int:
    """Assign sort_order 1..n following the given id list."""
    require_admin(profile)
    statuses = {s.id: s for s in CaseStatus.query.filter(CaseStatus.id.in_(ordered_ids)).all()}
    missing = [i for i in ordered_ids if i not in statuses]
    if missing:
        raise NotFoundError(resource="Case status", resource_id=missing[0])
    for position, status_id in enumerate(ordered_ids, start=1):
        statuses[status_id].sort_order = position
    db.session.commit()
    return len(ordered_ids)


# (name, name_en, code, category, color)
DEFAULT_CASE_STATUSES = [
    ("Em Preparação", "In Preparation", "em_preparacao", "preparation", "#3B82F6"),
    ("Em Trâmite", "In Progress", "em_tramite", "in_progress", "#FBBF24"),
    ("Encaminhado a análise", "Forwarded for Analysis", "encaminhado_analise", "review", "#F97316"),
    ("Exigência", "Requirements Requested", "exigencia", "review", "#F97316"),
    ("Juntada de documento", "Document Submission", "juntada_documento", "in_progress", "#FBBF24"),
    ("Deferido", "Approved", "deferido", "approved", "#10B981"),
    ("Publicado no DOU", "Published in Official Gazette", "publicado_dou", "completed", "#059669"),
    ("Emissão do VITEM", "VITEM Issuance", "emissao_vitem", "completed", "#059669"),
    ("Entrada no Brasil", "Entry to Brazil", "entrada_brasil", "completed", "#059669"),
    ("Registro Nacional Migratório (RNM)", "National Migration Registry", "rnm", "completed", "#059669"),
    ("Em Renovação", "Under Renewal", "em_renovacao", "in_progress", "#FBBF24"),
    ("Nova Solicitação de Visto", "New Visa Request", "nova_solicitacao_visto", "preparation", "#3B82F6"),
    ("Pedido de Cancelamento", "Cancellation Request", "pedido_cancelamento", "cancelled", "#EF4444"),
    ("Pedido de Arquivamento", "Archive Request", "pedido_arquivamento", "cancelled", "#EF4444"),
    ("Pedido cancelado", "Request Cancelled", "pedido_cancelado", "cancelled", "#EF4444"),
    ("Proposta de Deferimento", "Proposal for Approval", "proposta_deferimento", "review", "#F97316"),
    ("Diário Oficial", "Official Gazette", "diario_oficial", "review", "#F97316"),
]


def seed_default_case_statuses() -> int:
    """
    Insert the default case statuses, skipping codes that already exist.
    Safe to run multiple times.  Caller commits.

    Returns:
        Number of statuses inserted.
    """
    existing = {code for (code,) in db.session.query(CaseStatus.code).all()}
    created = 0
    for position, (name, name_en, code, category, color) in enumerate(DEFAULT_CASE_STATUSES, start=1):
        if code in existing:
            continue
        db.session.add(CaseStatus(
            name=name, name_en=name_en, code=code, category=category,
            color=color, sort_order=position, fillable_fields=[], is_active=True,
        ))
        created += 1

    if created:
        db.session.flush()
        logger.info("Seeded %d case statuses", created)
    return created


# ═══════════════════════════════════════════════════════════════
# Document categories
# ═══════════════════════════════════════════════════════════════
CATEGORY_CODE_RE = re.compile(r"^[A-Z0-9_]+$")


def generate_category_code(name: str) -> str:
    """``"Certidões de Nascimento"`` -> ``"CERTIDOES_DE_NASCIMENTO"``."""
    ascii_name = "".join(
        ch for ch in unicodedata.normalize("NFD", name or "") if not unicodedata.combining(ch)
    )
    code = re.sub(r"[\s-]+", "_", ascii_name.upper())
    code = re.sub(r"[^A-Z0-9_]", "", code)
    return re.sub(r"_+", "_", code).strip("_")


def _normalize_category_code(code) -> str:
    code = re.sub(r"\s+", "_", (code or "").strip().upper())
    if not 2 <= len(code) <= 50:
        raise ValidationError("Code must be between 2 and 50 characters")
    if not CATEGORY_CODE_RE.match(code):
        raise ValidationError("Code must contain only uppercase letters, numbers, and underscores")
    return code


def _check_category_name(name) -> str:
    name = (name or "").strip()
    if not 2 <= len(name) <= 100:
        raise ValidationError("Name must be between 2 and 100 characters")
    return name


def _check_category_code_free(code, exclude_id=None):
    existing = DocumentCategory.query.filter_by(code=code).first()
    if existing is not None and existing.id != exclude_id:
        raise ConflictError(resource="Document category", field="code", value=code,
                            message="A document category with this code already exists")


def list_document_categories(active_only=False, search=None) -> list[DocumentCategory]:
    q = DocumentCategory.query
    if active_only:
        q = q.filter_by(is_active=True)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(
            DocumentCategory.name.ilike(term),
            DocumentCategory.code.ilike(term),
            DocumentCategory.description.ilike(term),
        ))
    return q.order_by(DocumentCategory.name).all()


def get_document_category(category_id: int) -> DocumentCategory:
    return _get(DocumentCategory, category_id, "Document category")


def get_document_category_by_code(code: str) -> DocumentCategory:
    category = DocumentCategory.query.filter_by(code=(code or "").upper()).first()
    if category is None:
        raise NotFoundError(resource="Document category", resource_id=code)
    return category


def create_document_category(profile, data: dict) -> DocumentCategory:
    require_admin(profile)
    name = _check_category_name(data.get("name"))
    code = _normalize_category_code(data.get("code") or generate_category_code(name))
    _check_category_code_free(code)
    description = data.get("description") or ""
    if len(description) > 500:
        raise ValidationError("Description must be at most 500 characters")

    category = DocumentCategory(
        name=name,
        code=code,
        description=description,
        is_active=data.get("is_active", True),
        created_by=profile.id,
    )
    db.session.add(category)
    db.session.flush()
    log_activity(action="created", entity_type="document_category", entity_id=category.id,
                 user_id=profile.id, details={"name": name, "code": code})
    db.session.commit()
    return category


def update_document_category(profile, category_id: int, data: dict) -> DocumentCategory:
    """Partial update.  Renaming the code carries the document types along."""
    require_admin(profile)
    category = get_document_category(category_id)
    payload = {k: data[k] for k in DOCUMENT_CATEGORY_FIELDS if k in data}
    if "name" in payload:
        payload["name"] = _check_category_name(payload["name"])
    if "code" in payload:
        payload["code"] = _normalize_category_code(payload["code"])
        _check_category_code_free(payload["code"], exclude_id=category.id)
    if len(payload.get("description") or "") > 500:
        raise ValidationError("Description must be at most 500 characters")

    old_code = category.code
    changes = diff_fields(category, payload, DOCUMENT_CATEGORY_FIELDS)
    if "code" in changes:
        DocumentType.query.filter_by(category=old_code).update(
            {DocumentType.category: category.code}, synchronize_session="fetch",
        )
    category.updated_by = profile.id
    if changes:
        log_activity(action="updated", entity_type="document_category", entity_id=category.id,
                     user_id=profile.id, details={"changes": changes})
    db.session.commit()
    return category


def deactivate_document_category(profile, category_id: int) -> DocumentCategory:
    return toggle_document_category_active(profile, category_id, False)


def toggle_document_category_active(profile, category_id: int, is_active: bool | None = None) -> DocumentCategory:
    """Set ``is_active`` (flip it when ``is_active`` is None)."""
    require_admin(profile)
    category = get_document_category(category_id)
    category.is_active = (not category.is_active) if is_active is None else bool(is_active)
    category.updated_by = profile.id
    log_activity(action="activated" if category.is_active else "deactivated", entity_type="document_category",
                 entity_id=category.id, user_id=profile.id, details={"code": category.code})
    db.session.commit()
    return category


def _resolve_category_code(value):
    """Document types reference a category by code; blank clears it."""
    if not value:
        return None
    category = DocumentCategory.query.filter_by(code=str(value).strip().upper()).first()
    if category is None:
        raise ValidationError(f"Unknown document category: {value}")
    return category.code


# ═══════════════════════════════════════════════════════════════
# Document types
# ═══════════════════════════════════════════════════════════════
def _normalize_extensions(values) -> list[str]:
    out = []
    for ext in values or []:
        ext = str(ext).strip().lower()
        if not ext:
            continue
        out.append(ext if ext.startswith(".") else f".{ext}")
    return out


def list_document_types(active_only=False, category=None, search=None) -> list[DocumentType]:
    q = DocumentType.query
    if active_only:
        q = q.filter_by(is_active=True)
    if category:
        q = q.filter_by(category=category.upper())
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(DocumentType.name.ilike(term), DocumentType.code.ilike(term)))
    return q.order_by(DocumentType.name).all()


def get_document_type(document_type_id: int) -> DocumentType:
    return _get(DocumentType, document_type_id, "Document type")


def _check_document_type_code(code, exclude_id=None):
    if not code:
        return
    q = DocumentType.query.filter_by(code=code)
    if exclude_id:
        q = q.filter(DocumentType.id != exclude_id)
    if q.first():
        raise ConflictError(resource="Document type", field="code", value=code)


def _max_file_size(value):
    if value is None:
        return None
    try:
        size = float(value)
    except (TypeError, ValueError):
        raise ValidationError("max_file_size_mb must be a number")
    if size <= 0:
        raise ValidationError("max_file_size_mb must be positive")
    return size


def create_document_type(profile, data: dict) -> DocumentType:
    require_admin(profile)
    if not (data.get("name") or "").strip():
        raise ValidationError("Document type name is required")
    _check_document_type_code(data.get("code"))
    payload = {k: data[k] for k in DOCUMENT_TYPE_FIELDS if k in data}
    if "max_file_size_mb" in payload:
        payload["max_file_size_mb"] = _max_file_size(payload["max_file_size_mb"])
    if "category" in payload:
        payload["category"] = _resolve_category_code(payload["category"])
    payload["allowed_file_types"] = _normalize_extensions(data.get("allowed_file_types"))
    dt = DocumentType(**payload)
    db.session.add(dt)
    db.session.flush()
    log_activity(action="created", entity_type="document_type", entity_id=dt.id, user_id=profile.id,
                 details={"name": dt.name, "code": dt.code})
    db.session.commit()
    return dt


def update_document_type(profile, document_type_id: int, data: dict) -> DocumentType:
    require_admin(profile)
    dt = get_document_type(document_type_id)
    _require_name(data, "Document type")
    if data.get("code") and data["code"] != dt.code:
        _check_document_type_code(data["code"], exclude_id=dt.id)
    if "allowed_file_types" in data:
        data = {**data, "allowed_file_types": _normalize_extensions(data["allowed_file_types"])}
    if "max_file_size_mb" in data:
        data = {**data, "max_file_size_mb": _max_file_size(data["max_file_size_mb"])}
    if "category" in data:
        data = {**data, "category": _resolve_category_code(data["category"])}

    changes = diff_fields(dt, data, DOCUMENT_TYPE_FIELDS)
    if changes:
        log_activity(action="updated", entity_type="document_type", entity_id=dt.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return dt


def delete_document_type(profile, document_type_id: int) -> None:
    from casedesk.models.document import DeliveredDocument

    require_admin(profile)
    dt = get_document_type(document_type_id)
    if DeliveredDocument.query.filter_by(document_type_id=dt.id).first():
        raise ValidationError("Cannot delete document type that has delivered documents. Deactivate it instead.")
    log_activity(action="deleted", entity_type="document_type", entity_id=dt.id, user_id=profile.id,
                 details={"name": dt.name, "code": dt.code})
    DocumentTypeLegalFramework.query.filter_by(document_type_id=dt.id).delete()
    db.session.delete(dt)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Document type ↔ legal framework associations
# ═══════════════════════════════════════════════════════════════
def _association_payload(item: dict) -> dict:
    payload = {k: item[k] for k in ASSOCIATION_FIELDS if k in item}
    if payload.get("validity_type") and payload["validity_type"] not in VALIDITY_TYPES:
        raise ValidationError(f"Invalid validity type: {payload['validity_type']}")
    if payload.get("responsible_party") and payload["responsible_party"] not in RESPONSIBLE_PARTIES:
        raise ValidationError(f"Invalid responsible party: {payload['responsible_party']}")
    if payload.get("workflow_type") and payload["workflow_type"] not in WORKFLOW_TYPES:
        raise ValidationError(f"Invalid workflow type: {payload['workflow_type']}")
    return payload


def list_associations_by_legal_framework(legal_framework_id: int) -> list[DocumentTypeLegalFramework]:
    return (
        DocumentTypeLegalFramework.query.filter_by(legal_framework_id=legal_framework_id)
        .order_by(DocumentTypeLegalFramework.sort_order, DocumentTypeLegalFramework.id)
        .all()
    )


def list_associations_by_document_type(document_type_id: int) -> list[DocumentTypeLegalFramework]:
    return (
        DocumentTypeLegalFramework.query.filter_by(document_type_id=document_type_id)
        .order_by(DocumentTypeLegalFramework.id)
        .all()
    )


def update_associations(profile, document_type_id: int, items: list[dict]) -> list[DocumentTypeLegalFramework]:
    """Replace every association of a document type with ``items``."""
    require_admin(profile)
    get_document_type(document_type_id)

    seen = set()
    rows = []
    for item in items:
        lf_id = item.get("legal_framework_id")
        if not lf_id:
            raise ValidationError("legal_framework_id is required for every association")
        if lf_id in seen:
            raise ValidationError(f"Legal framework {lf_id} is listed more than once")
        seen.add(lf_id)
        get_legal_framework(lf_id)
        rows.append(DocumentTypeLegalFramework(
            document_type_id=document_type_id,
            legal_framework_id=lf_id,
            **_association_payload(item),
        ))

    DocumentTypeLegalFramework.query.filter_by(document_type_id=document_type_id).delete()
    db.session.add_all(rows)
    log_activity(action="associations_updated", entity_type="document_type", entity_id=document_type_id,
                 user_id=profile.id, details={"legal_framework_ids": sorted(seen)})
    db.session.commit()
    return rows


def toggle_all_for_document_type(profile, document_type_id: int, select_all: bool,
                                 default_is_required: bool = False) -> int:
    """Link a document type to every active legal framework, or unlink it from all.

    Returns:
        Number of associations after the operation.
    """
    require_admin(profile)
    get_document_type(document_type_id)
    DocumentTypeLegalFramework.query.filter_by(document_type_id=document_type_id).delete()

    created = 0
    if select_all:
        for lf in LegalFramework.query.filter_by(is_active=True).all():
            db.session.add(DocumentTypeLegalFramework(
                document_type_id=document_type_id,
                legal_framework_id=lf.id,
                is_required=bool(default_is_required),
            ))
            created += 1
    db.session.commit()
    return created


def update_association(profile, association_id: int, data: dict) -> DocumentTypeLegalFramework:
    require_admin(profile)
    assoc = _get(DocumentTypeLegalFramework, association_id, "Association")
    diff_fields(assoc, _association_payload(data), ASSOCIATION_FIELDS)
    db.session.commit()
    return assoc
