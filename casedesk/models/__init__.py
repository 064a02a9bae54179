"""
casedesk — SQLAlchemy models package.

``db`` is created here and bound to the app in ``create_app``.  Model
modules import it from this package; ``create_app`` imports every model
module so metadata is complete before ``db.create_all()``.
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise a date/datetime column value (None-safe)."""
    return value.isoformat() if value else None
