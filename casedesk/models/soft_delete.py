"""
Soft delete mixin.

Adds a ``deleted_at`` timestamp column and query helpers.  Models using the
mixin are marked as deleted instead of being physically removed.

Usage:
    class Note(SoftDeleteMixin, db.Model):
        ...

    note.soft_delete()
    db.session.commit()

    Note.query_active().filter_by(collective_process_id=7).all()
"""

from casedesk.models import db, utcnow


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self):
        """Mark this record as deleted."""
        self.deleted_at = utcnow()

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))
