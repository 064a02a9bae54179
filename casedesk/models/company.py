"""
casedesk — company and person models.

Models:
    - Company: a client company (the visibility boundary for client users)
    - Person:  a foreign national handled in one or more individual processes
    - PersonCompany: employment history linking a person to a company
"""

from casedesk.models import db, iso, utcnow


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    tax_id = db.Column(db.String(30), index=True)
    website = db.Column(db.String(255))
    address = db.Column(db.String(500))
    phone_number = db.Column(db.String(50))
    email = db.Column(db.String(200))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    users = db.relationship("UserProfile", back_populates="company")
    collective_processes = db.relationship(
        "CollectiveProcess", back_populates="company", lazy="dynamic",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "website": self.website,
            "address": self.address,
            "phone_number": self.phone_number,
            "email": self.email,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"


class Person(db.Model):
    __tablename__ = "people"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(db.String(200), index=True)
    cpf = db.Column(db.String(20), index=True)
    birth_date = db.Column(db.Date)
    nationality = db.Column(db.String(100))
    marital_status = db.Column(db.String(50))
    profession = db.Column(db.String(150))
    mother_name = db.Column(db.String(255))
    father_name = db.Column(db.String(255))
    phone_number = db.Column(db.String(50))
    address = db.Column(db.String(500))
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True,
        comment="Current employer",
    )
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = db.relationship("Company")

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "cpf": self.cpf,
            "birth_date": iso(self.birth_date),
            "nationality": self.nationality,
            "marital_status": self.marital_status,
            "profession": self.profession,
            "mother_name": self.mother_name,
            "father_name": self.father_name,
            "phone_number": self.phone_number,
            "address": self.address,
            "company_id": self.company_id,
            "notes": self.notes,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Person {self.id}: {self.full_name}>"


class PersonCompany(db.Model):
    """One employment of a person at a company; at most one is current per person."""

    __tablename__ = "person_companies"
    __table_args__ = (
        db.Index("idx_person_company", "person_id", "company_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(150), nullable=False)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    person = db.relationship("Person", backref=db.backref("employments", cascade="all, delete-orphan",
                                                          passive_deletes=True))
    company = db.relationship("Company")

    def to_dict(self):
        return {
            "id": self.id,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "role": self.role,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "is_current": self.is_current,
        }

    def __repr__(self):
        return f"<PersonCompany person={self.person_id} company={self.company_id}>"
