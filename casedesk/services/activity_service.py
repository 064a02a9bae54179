"""
Activity log queries.

Writing goes through ``casedesk.models.activity.log_activity``; this module
only reads the trail (admin views and per-entity history).
"""

from casedesk.models.activity import ActivityLog
from casedesk.services.access_control import require_admin
from casedesk.utils.helpers import parse_datetime


def list_activity_logs(profile, *, user_id=None, entity_type=None, entity_id=None,
                       action=None, start=None, end=None, limit=100, offset=0):
    """Paginated activity trail, newest first (admin only).

    ``start`` / ``end`` accept ISO datetimes or datetime objects.
    """
    require_admin(profile)

    q = ActivityLog.query
    if user_id:
        q = q.filter(ActivityLog.user_id == user_id)
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(ActivityLog.entity_id == entity_id)
    if action:
        q = q.filter(ActivityLog.action == action)
    start_dt = parse_datetime(start)
    if start_dt:
        q = q.filter(ActivityLog.created_at >= start_dt)
    end_dt = parse_datetime(end)
    if end_dt:
        q = q.filter(ActivityLog.created_at <= end_dt)

    total = q.count()
    items = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).offset(offset).limit(limit).all()
    return items, total


def get_entity_history(profile, entity_type: str, entity_id: int) -> list[ActivityLog]:
    """All activity for one entity, oldest first (admin only)."""
    require_admin(profile)
    return (
        ActivityLog.query.filter_by(entity_type=entity_type, entity_id=entity_id)
        .order_by(ActivityLog.created_at.asc(), ActivityLog.id.asc())
        .all()
    )


def recent_activity(limit=20) -> list[dict]:
    rows = ActivityLog.query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
    return [row.to_dict() for row in rows]


def diff_fields(obj, data: dict, fields) -> dict:
    """Apply ``data`` to ``obj`` for the given fields and return the changes.

    Returns:
        ``{field: {"before": old, "after": new}}`` for fields whose value changed.
    """
    changes = {}
    for field in fields:
        if field not in data:
            continue
        old = getattr(obj, field)
        new = data[field]
        if old != new:
            changes[field] = {"before": _plain(old), "after": _plain(new)}
            setattr(obj, field, new)
    return changes


def _plain(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
