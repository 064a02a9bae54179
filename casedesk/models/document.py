"""
casedesk — delivered document models.

Models:
    - DeliveredDocument:          one uploaded version of a document slot
    - DocumentStatusHistory:      append-only status change log
    - DeliveredDocumentCondition: per-document fulfilment of a type condition

A document slot is (individual_process_id, document_type_id,
document_requirement_id).  Every upload into a slot inserts a new row with
``version + 1`` and flips the previous row's ``is_latest`` flag.
"""

from casedesk.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

DOC_NOT_STARTED = "not_started"
DOC_PENDING_UPLOAD = "pending_upload"
DOC_UPLOADED = "uploaded"
DOC_UNDER_REVIEW = "under_review"
DOC_APPROVED = "approved"
DOC_REJECTED = "rejected"
DOC_EXPIRED = "expired"

DOCUMENT_STATUSES = {
    DOC_NOT_STARTED, DOC_PENDING_UPLOAD, DOC_UPLOADED,
    DOC_UNDER_REVIEW, DOC_APPROVED, DOC_REJECTED, DOC_EXPIRED,
}

# Placeholder statuses that mean "no file yet"
EMPTY_STATUSES = {DOC_NOT_STARTED, DOC_PENDING_UPLOAD}


class DeliveredDocument(db.Model):
    __tablename__ = "delivered_documents"
    __table_args__ = (
        db.Index("idx_doc_slot", "individual_process_id", "document_type_id", "document_requirement_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="SET NULL"), nullable=True,
        comment="NULL for loose documents",
    )
    document_requirement_id = db.Column(
        db.Integer, db.ForeignKey("document_requirements.id", ondelete="SET NULL"), nullable=True,
    )
    person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"))
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"))

    file_name = db.Column(db.String(255), default="")
    file_url = db.Column(db.String(1000), default="")
    file_size = db.Column(db.Integer, default=0)
    mime_type = db.Column(db.String(120), default="")

    status = db.Column(db.String(20), default=DOC_NOT_STARTED, nullable=False, index=True)
    is_required = db.Column(db.Boolean, default=False, nullable=False)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    uploaded_at = db.Column(db.DateTime(timezone=True))
    reviewed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    reviewed_at = db.Column(db.DateTime(timezone=True))
    rejection_reason = db.Column(db.Text)
    issue_date = db.Column(db.Date)
    expiry_date = db.Column(db.Date)
    version = db.Column(db.Integer, default=1, nullable=False)
    is_latest = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    individual_process = db.relationship("IndividualProcess")
    document_type = db.relationship("DocumentType")
    conditions = db.relationship(
        "DeliveredDocumentCondition", back_populates="document", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "individual_process_id": self.individual_process_id,
            "document_type_id": self.document_type_id,
            "document_type_name": self.document_type.name if self.document_type else None,
            "document_requirement_id": self.document_requirement_id,
            "person_id": self.person_id,
            "company_id": self.company_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "status": self.status,
            "is_required": self.is_required,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": iso(self.uploaded_at),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": iso(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
            "issue_date": iso(self.issue_date),
            "expiry_date": iso(self.expiry_date),
            "version": self.version,
            "is_latest": self.is_latest,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<DeliveredDocument {self.id} v{self.version}: {self.status}>"


class DocumentStatusHistory(db.Model):
    __tablename__ = "document_status_history"

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("delivered_documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    previous_status = db.Column(db.String(20))
    new_status = db.Column(db.String(20), nullable=False)
    changed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    changed_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "document_id": self.document_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "changed_at": iso(self.changed_at),
            "notes": self.notes,
        }


class DeliveredDocumentCondition(db.Model):
    __tablename__ = "delivered_document_conditions"
    __table_args__ = (
        db.UniqueConstraint("document_id", "condition_id", name="uq_document_condition"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("delivered_documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    condition_id = db.Column(
        db.Integer, db.ForeignKey("document_type_conditions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    is_fulfilled = db.Column(db.Boolean, default=False, nullable=False)
    fulfilled_at = db.Column(db.DateTime(timezone=True))
    fulfilled_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    expires_at = db.Column(db.DateTime(timezone=True))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    document = db.relationship("DeliveredDocument", back_populates="conditions")
    condition = db.relationship("DocumentTypeCondition")

    def to_dict(self):
        cond = self.condition
        return {
            "id": self.id,
            "document_id": self.document_id,
            "condition_id": self.condition_id,
            "condition_name": cond.name if cond else None,
            "condition_code": cond.code if cond else None,
            "is_required": cond.is_required if cond else False,
            "is_fulfilled": self.is_fulfilled,
            "fulfilled_at": iso(self.fulfilled_at),
            "fulfilled_by": self.fulfilled_by,
            "expires_at": iso(self.expires_at),
            "notes": self.notes,
        }
