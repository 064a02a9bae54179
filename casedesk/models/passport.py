"""
casedesk — passport model.

A person may hold several passports over time; at most one is active.
``passport_status`` classifies a passport by its expiry date:

    expired         expiry date already passed (or unknown)
    expiring_soon   expires within the next six months
    valid           otherwise
"""

import calendar
from datetime import date

from casedesk.models import db, iso, utcnow

PASSPORT_VALID = "valid"
PASSPORT_EXPIRING_SOON = "expiring_soon"
PASSPORT_EXPIRED = "expired"
PASSPORT_STATUSES = (PASSPORT_VALID, PASSPORT_EXPIRING_SOON, PASSPORT_EXPIRED)

EXPIRY_WARNING_MONTHS = 6


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def passport_status(expiry_date, today=None) -> str:
    if expiry_date is None:
        return PASSPORT_EXPIRED
    today = today or date.today()
    if expiry_date < today:
        return PASSPORT_EXPIRED
    if expiry_date < add_months(today, EXPIRY_WARNING_MONTHS):
        return PASSPORT_EXPIRING_SOON
    return PASSPORT_VALID


class Passport(db.Model):
    __tablename__ = "passports"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    passport_number = db.Column(db.String(50), nullable=False, index=True)
    issuing_country = db.Column(db.String(100))
    issue_date = db.Column(db.Date)
    expiry_date = db.Column(db.Date, index=True)
    file_url = db.Column(db.String(1000))
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    person = db.relationship("Person", backref=db.backref("passports", cascade="all, delete-orphan",
                                                          passive_deletes=True))

    @property
    def status(self):
        return passport_status(self.expiry_date)

    def to_dict(self):
        return {
            "id": self.id,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "passport_number": self.passport_number,
            "issuing_country": self.issuing_country,
            "issue_date": iso(self.issue_date),
            "expiry_date": iso(self.expiry_date),
            "file_url": self.file_url,
            "is_active": self.is_active,
            "status": self.status,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Passport {self.passport_number}>"
