"""
casedesk — user profile model.

Two roles exist:
  - admin:  agency staff, sees and manages everything
  - client: company user, restricted to the data of ``company_id``
"""

from casedesk.models import db, iso, utcnow

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"
VALID_ROLES = {ROLE_ADMIN, ROLE_CLIENT}


class UserProfile(db.Model):
    __tablename__ = "user_profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256))
    full_name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_CLIENT, index=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    phone_number = db.Column(db.String(50))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = db.relationship("Company", back_populates="users")

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def is_client(self):
        return self.role == ROLE_CLIENT

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "company_id": self.company_id,
            "phone_number": self.phone_number,
            "is_active": self.is_active,
            "last_login_at": iso(self.last_login_at),
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<UserProfile {self.id}: {self.email} ({self.role})>"
