"""
casedesk — task model.

A task hangs off an individual process, a collective process, or both.
"""

from casedesk.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

TASK_PRIORITIES = {"low", "medium", "high", "urgent"}
TASK_STATUSES = {"todo", "in_progress", "completed", "cancelled"}
OPEN_TASK_STATUSES = {"todo", "in_progress"}


class Task(db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    collective_process_id = db.Column(
        db.Integer, db.ForeignKey("collective_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    due_date = db.Column(db.Date, index=True)
    priority = db.Column(db.String(20), default="medium", nullable=False)
    status = db.Column(db.String(20), default="todo", nullable=False, index=True)
    assigned_to = db.Column(
        db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    completed_at = db.Column(db.DateTime(timezone=True))
    completed_by = db.Column(db.Integer, db.ForeignKey("user_profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    individual_process = db.relationship("IndividualProcess")
    collective_process = db.relationship("CollectiveProcess")
    assignee = db.relationship("UserProfile", foreign_keys=[assigned_to])

    def to_dict(self):
        return {
            "id": self.id,
            "individual_process_id": self.individual_process_id,
            "collective_process_id": self.collective_process_id,
            "title": self.title,
            "description": self.description,
            "due_date": iso(self.due_date),
            "priority": self.priority,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "assignee_name": self.assignee.full_name if self.assignee else None,
            "created_by": self.created_by,
            "completed_at": iso(self.completed_at),
            "completed_by": self.completed_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title[:40]}>"
