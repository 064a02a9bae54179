"""
casedesk — activity log model.

Models:
    - ActivityLog: append-only trail of user actions on domain entities.
"""

import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from casedesk.models import db, iso, utcnow

logger = logging.getLogger(__name__)


class ActivityLog(db.Model):
    """
    Immutable activity trail.

    One row per action.  ``details`` carries free-form context, e.g.
    ``{"changes": {field: {"before": .., "after": ..}}}`` for updates.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_entity", "entity_type", "entity_id"),
        db.Index("idx_activity_user", "user_id"),
        db.Index("idx_activity_action", "action"),
        db.Index("idx_activity_ts", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    action = db.Column(db.String(60), nullable=False, comment="created | updated | status_added | ...")
    entity_type = db.Column(db.String(40), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.JSON)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("UserProfile")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details or {},
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def log_activity(
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    user_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog | None:
    """
    Append a single activity row.  Staged in a savepoint so callers keep
    transaction control.

    Request metadata (client IP, user agent) is picked up when called inside
    a request.  Failures are logged and swallowed; the business operation
    that triggered the log must never fail because of it.
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = (request.user_agent.string or "")[:500]

    log = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.flush()
    try:
        with db.session.begin_nested():
            db.session.add(log)
        return log
    except SQLAlchemyError:
        logger.exception("Failed to write activity log %s %s/%s", action, entity_type, entity_id)
        return None
