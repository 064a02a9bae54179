"""
casedesk — process domain models.

Models:
    - CollectiveProcess:        batch filing for a company
    - IndividualProcess:        one person's sub-case inside a collective process
    - IndividualProcessStatus:  case-status history (exactly one active row)
    - ProcessHistory:           append-only workflow transition log
    - ProcessRequest:           client request for a new collective process
"""

from casedesk.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

COLLECTIVE_STATUSES = {"draft", "in_progress", "completed", "cancelled"}
PROCESS_REQUEST_STATUSES = {"pending", "approved", "rejected"}

# Fields that can be written through a case status' fillable_fields list
GOVERNMENT_FIELDS = (
    "mre_office_number",
    "dou_number",
    "dou_section",
    "dou_page",
    "dou_date",
    "protocol_number",
    "rnm_number",
    "rnm_deadline",
    "appointment_date_time",
)
DATE_FIELDS = {"dou_date", "rnm_deadline", "deadline_date"}
DATETIME_FIELDS = {"appointment_date_time"}


class CollectiveProcess(db.Model):
    __tablename__ = "collective_processes"

    id = db.Column(db.Integer, primary_key=True)
    reference_number = db.Column(db.String(60), nullable=False, unique=True, index=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    contact_person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True,
    )
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    is_urgent = db.Column(db.Boolean, default=False, nullable=False)
    request_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default="draft", nullable=False, index=True)
    completed_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = db.relationship("Company", back_populates="collective_processes")
    contact_person = db.relationship("Person")
    process_type = db.relationship("ProcessType")
    individual_processes = db.relationship(
        "IndividualProcess", back_populates="collective_process", lazy="dynamic",
    )

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "reference_number": self.reference_number,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "contact_person_id": self.contact_person_id,
            "process_type_id": self.process_type_id,
            "process_type_name": self.process_type.name if self.process_type else None,
            "is_urgent": self.is_urgent,
            "request_date": iso(self.request_date),
            "notes": self.notes,
            "status": self.status,
            "completed_at": iso(self.completed_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_children:
            d["individual_processes"] = [ip.to_dict() for ip in self.individual_processes]
        return d

    def __repr__(self):
        return f"<CollectiveProcess {self.reference_number}>"


class IndividualProcess(db.Model):
    __tablename__ = "individual_processes"
    __table_args__ = (
        db.UniqueConstraint("collective_process_id", "person_id", name="uq_collective_person"),
    )

    id = db.Column(db.Integer, primary_key=True)
    collective_process_id = db.Column(
        db.Integer, db.ForeignKey("collective_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    case_status_id = db.Column(
        db.Integer, db.ForeignKey("case_statuses.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    workflow_status = db.Column(
        db.String(40), default="pending_documents", nullable=False, index=True,
    )

    # Government protocol fields
    mre_office_number = db.Column(db.String(60))
    dou_number = db.Column(db.String(60))
    dou_section = db.Column(db.String(20))
    dou_page = db.Column(db.String(20))
    dou_date = db.Column(db.Date)
    protocol_number = db.Column(db.String(60))
    rnm_number = db.Column(db.String(60))
    rnm_deadline = db.Column(db.Date)
    appointment_date_time = db.Column(db.DateTime(timezone=True), index=True)

    deadline_date = db.Column(db.Date, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    collective_process = db.relationship("CollectiveProcess", back_populates="individual_processes")
    person = db.relationship("Person")
    case_status = db.relationship("CaseStatus")
    legal_framework = db.relationship("LegalFramework")

    @property
    def company_id(self):
        return self.collective_process.company_id if self.collective_process else None

    def government_fields(self):
        return {name: getattr(self, name) for name in GOVERNMENT_FIELDS}

    def to_dict(self):
        return {
            "id": self.id,
            "collective_process_id": self.collective_process_id,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "case_status_id": self.case_status_id,
            "case_status_name": self.case_status.name if self.case_status else None,
            "legal_framework_id": self.legal_framework_id,
            "workflow_status": self.workflow_status,
            "mre_office_number": self.mre_office_number,
            "dou_number": self.dou_number,
            "dou_section": self.dou_section,
            "dou_page": self.dou_page,
            "dou_date": iso(self.dou_date),
            "protocol_number": self.protocol_number,
            "rnm_number": self.rnm_number,
            "rnm_deadline": iso(self.rnm_deadline),
            "appointment_date_time": iso(self.appointment_date_time),
            "deadline_date": iso(self.deadline_date),
            "is_active": self.is_active,
            "completed_at": iso(self.completed_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<IndividualProcess {self.id}: person={self.person_id}>"


class IndividualProcessStatus(db.Model):
    __tablename__ = "individual_process_statuses"

    id = db.Column(db.Integer, primary_key=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    case_status_id = db.Column(
        db.Integer, db.ForeignKey("case_statuses.id", ondelete="SET NULL"), nullable=True,
    )
    status_name = db.Column(db.String(150), nullable=False)
    date = db.Column(db.Date)
    notes = db.Column(db.Text)
    filled_fields_data = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    changed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    changed_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    case_status = db.relationship("CaseStatus")

    def to_dict(self):
        return {
            "id": self.id,
            "individual_process_id": self.individual_process_id,
            "case_status_id": self.case_status_id,
            "status_name": self.status_name,
            "date": iso(self.date),
            "notes": self.notes,
            "filled_fields_data": self.filled_fields_data,
            "is_active": self.is_active,
            "changed_by": self.changed_by,
            "changed_at": iso(self.changed_at),
        }


class ProcessHistory(db.Model):
    """Append-only record of individual-process workflow transitions."""

    __tablename__ = "process_history"

    id = db.Column(db.Integer, primary_key=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    previous_status = db.Column(db.String(40))
    new_status = db.Column(db.String(40), nullable=False)
    changed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    changed_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "individual_process_id": self.individual_process_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "changed_at": iso(self.changed_at),
            "notes": self.notes,
        }


class ProcessRequest(db.Model):
    __tablename__ = "process_requests"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    contact_person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"))
    process_type_id = db.Column(db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"))
    is_urgent = db.Column(db.Boolean, default=False, nullable=False)
    request_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    reviewed_at = db.Column(db.DateTime(timezone=True))
    rejection_reason = db.Column(db.Text)
    approved_collective_process_id = db.Column(
        db.Integer, db.ForeignKey("collective_processes.id", ondelete="SET NULL"),
    )
    created_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "contact_person_id": self.contact_person_id,
            "process_type_id": self.process_type_id,
            "is_urgent": self.is_urgent,
            "request_date": iso(self.request_date),
            "notes": self.notes,
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": iso(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
            "approved_collective_process_id": self.approved_collective_process_id,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }
