"""
casedesk — note model.

A note belongs to exactly one process: either an individual process or a
collective process, never both.
"""

from casedesk.models import db, iso, utcnow
from casedesk.models.soft_delete import SoftDeleteMixin


class Note(SoftDeleteMixin, db.Model):
    __tablename__ = "notes"

    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)
    date = db.Column(db.Date, nullable=False)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    collective_process_id = db.Column(
        db.Integer, db.ForeignKey("collective_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    created_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = db.relationship("UserProfile")

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "date": iso(self.date),
            "individual_process_id": self.individual_process_id,
            "collective_process_id": self.collective_process_id,
            "created_by": self.created_by,
            "author_name": self.author.full_name if self.author else None,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
