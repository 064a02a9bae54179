"""
casedesk — configuration catalog models (admin-maintained lookup tables).

Models:
    - ProcessType
    - LegalFramework
    - CaseStatus: configurable workflow stage label with fillable fields
    - DocumentCategory: grouping for document types, referenced by code
    - DocumentType
    - DocumentTypeLegalFramework: which documents a legal framework requires
    - DocumentTypeCondition / DocumentTypeConditionLink: checks a delivered
      document must satisfy before approval
    - DocumentTemplate / DocumentRequirement: versioned required-document
      templates per (process type, legal framework)
"""

from casedesk.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

VALIDITY_FIXED_EXPIRY = "fixed_expiry"
VALIDITY_RELATIVE_TO_ISSUE = "relative_to_issue"
VALIDITY_TYPES = {VALIDITY_FIXED_EXPIRY, VALIDITY_RELATIVE_TO_ISSUE}

RESPONSIBLE_PARTIES = {"client", "company", "admin"}
WORKFLOW_TYPES = {"upload", "admin_generated", "external"}


class ProcessType(db.Model):
    __tablename__ = "process_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    estimated_days = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "estimated_days": self.estimated_days,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
        }


class LegalFramework(db.Model):
    __tablename__ = "legal_frameworks"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    process_type = db.relationship("ProcessType")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "process_type_id": self.process_type_id,
            "description": self.description,
            "is_active": self.is_active,
        }


class CaseStatus(db.Model):
    __tablename__ = "case_statuses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    name_en = db.Column(db.String(150))
    code = db.Column(db.String(60), nullable=False, unique=True, index=True)
    description = db.Column(db.Text)
    category = db.Column(db.String(60), index=True)
    color = db.Column(db.String(20))
    sort_order = db.Column(db.Integer, default=0, nullable=False, index=True)
    fillable_fields = db.Column(
        db.JSON, default=list,
        comment="Individual process field names that can be filled when this status is applied",
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "name_en": self.name_en,
            "code": self.code,
            "description": self.description,
            "category": self.category,
            "color": self.color,
            "sort_order": self.sort_order,
            "fillable_fields": self.fillable_fields or [],
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<CaseStatus {self.code}>"


class DocumentCategory(db.Model):
    __tablename__ = "document_categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(50), nullable=False, unique=True, index=True, comment="UPPER_SNAKE_CASE")
    description = db.Column(db.String(500), default="")
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    updated_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description or "",
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<DocumentCategory {self.code}>"


class DocumentType(db.Model):
    __tablename__ = "document_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(60), unique=True, index=True)
    category = db.Column(db.String(60), index=True, comment="DocumentCategory.code")
    description = db.Column(db.Text)
    allowed_file_types = db.Column(db.JSON, default=list, comment='Extensions, e.g. [".pdf", ".jpg"]')
    max_file_size_mb = db.Column(db.Float)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    document_category = db.relationship(
        "DocumentCategory",
        primaryjoin="foreign(DocumentType.category) == DocumentCategory.code",
        viewonly=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "category": self.category,
            "category_name": self.document_category.name if self.document_category else None,
            "description": self.description,
            "allowed_file_types": self.allowed_file_types or [],
            "max_file_size_mb": self.max_file_size_mb,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<DocumentType {self.code or self.id}>"


class DocumentTypeLegalFramework(db.Model):
    __tablename__ = "document_type_legal_frameworks"
    __table_args__ = (
        db.UniqueConstraint("document_type_id", "legal_framework_id", name="uq_doc_type_legal_framework"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    responsible_party = db.Column(db.String(20), default="client")
    workflow_type = db.Column(db.String(30), default="upload")
    validity_days = db.Column(db.Integer)
    validity_type = db.Column(db.String(30), comment="fixed_expiry | relative_to_issue")
    sort_order = db.Column(db.Integer, default=999)
    description = db.Column(db.Text)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    document_type = db.relationship("DocumentType")
    legal_framework = db.relationship("LegalFramework")

    def to_dict(self):
        return {
            "id": self.id,
            "document_type_id": self.document_type_id,
            "legal_framework_id": self.legal_framework_id,
            "is_required": self.is_required,
            "responsible_party": self.responsible_party,
            "workflow_type": self.workflow_type,
            "validity_days": self.validity_days,
            "validity_type": self.validity_type,
            "sort_order": self.sort_order,
            "description": self.description,
            "notes": self.notes,
        }


class DocumentTypeCondition(db.Model):
    __tablename__ = "document_type_conditions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(60), unique=True, index=True)
    description = db.Column(db.Text)
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    relative_expiration_days = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "is_required": self.is_required,
            "relative_expiration_days": self.relative_expiration_days,
            "is_active": self.is_active,
        }


class DocumentTypeConditionLink(db.Model):
    __tablename__ = "document_type_condition_links"
    __table_args__ = (
        db.UniqueConstraint("document_type_id", "condition_id", name="uq_doc_type_condition"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    condition_id = db.Column(
        db.Integer, db.ForeignKey("document_type_conditions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    is_required = db.Column(db.Boolean, nullable=True, comment="Overrides the condition default when set")
    sort_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    condition = db.relationship("DocumentTypeCondition")

    def to_dict(self):
        return {
            "id": self.id,
            "document_type_id": self.document_type_id,
            "condition_id": self.condition_id,
            "is_required": self.is_required,
            "sort_order": self.sort_order,
            "condition": self.condition.to_dict() if self.condition else None,
        }


class DocumentTemplate(db.Model):
    __tablename__ = "document_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    version = db.Column(db.Integer, default=1, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    requirements = db.relationship(
        "DocumentRequirement", back_populates="template",
        cascade="all, delete-orphan", order_by="DocumentRequirement.sort_order",
    )

    def to_dict(self, include_requirements=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "process_type_id": self.process_type_id,
            "legal_framework_id": self.legal_framework_id,
            "is_active": self.is_active,
            "version": self.version,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }
        if include_requirements:
            d["requirements"] = [r.to_dict() for r in self.requirements]
        return d


class DocumentRequirement(db.Model):
    __tablename__ = "document_requirements"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("document_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    is_critical = db.Column(db.Boolean, default=False, nullable=False)
    description = db.Column(db.Text, default="")
    example_url = db.Column(db.String(500))
    max_size_mb = db.Column(db.Float, default=10)
    allowed_formats = db.Column(db.JSON, default=list)
    sort_order = db.Column(db.Integer, default=0)
    validity_days = db.Column(db.Integer)
    requires_translation = db.Column(db.Boolean, default=False, nullable=False)
    requires_notarization = db.Column(db.Boolean, default=False, nullable=False)

    template = db.relationship("DocumentTemplate", back_populates="requirements")
    document_type = db.relationship("DocumentType")

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "document_type_id": self.document_type_id,
            "is_required": self.is_required,
            "is_critical": self.is_critical,
            "description": self.description,
            "example_url": self.example_url,
            "max_size_mb": self.max_size_mb,
            "allowed_formats": self.allowed_formats or [],
            "sort_order": self.sort_order,
            "validity_days": self.validity_days,
            "requires_translation": self.requires_translation,
            "requires_notarization": self.requires_notarization,
        }
