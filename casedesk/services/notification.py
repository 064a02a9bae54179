"""
Notification Service.

Central service for creating and querying per-user in-app notifications.
Domain services call ``notify`` / ``notify_many`` for side-effect
notifications; those never raise into the caller.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from casedesk.core.exceptions import NotFoundError
from casedesk.models import db, utcnow
from casedesk.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, user_id, title, message="", type="system", entity_type="", entity_id=None):
        """
        Create a single notification record.

        Returns:
            The created Notification instance (already committed).
        """
        notif = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.session.add(notif)
        db.session.commit()
        return notif

    @staticmethod
    def notify(*, user_id, title, message="", type="system", entity_type="", entity_id=None):
        """
        Stage a notification inside the caller's transaction.

        Failures are logged and swallowed: a notification must never break
        the operation that triggered it.
        """
        if not user_id:
            return None
        notif = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.session.flush()
        try:
            with db.session.begin_nested():
                db.session.add(notif)
            return notif
        except SQLAlchemyError:
            logger.exception("Failed to create %s notification for user %s", type, user_id)
            return None

    @staticmethod
    def notify_many(user_ids, **kwargs):
        """Stage one notification per distinct recipient."""
        created = []
        for uid in dict.fromkeys(u for u in user_ids if u):
            notif = NotificationService.notify(user_id=uid, **kwargs)
            if notif is not None:
                created.append(notif)
        return created

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def get(notification_id, user_id):
        notif = db.session.get(Notification, notification_id)
        if notif is None or notif.user_id != user_id:
            raise NotFoundError(resource="Notification", resource_id=notification_id)
        return notif

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50, offset=0):
        """Retrieve notifications for a user, newest first."""
        q = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id, user_id):
        notif = NotificationService.get(notification_id, user_id)
        if not notif.is_read:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(user_id):
        """Mark all notifications of a user as read; returns the number updated."""
        count = (
            Notification.query.filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True, "read_at": utcnow()}, synchronize_session="fetch")
        )
        db.session.commit()
        return count

    @staticmethod
    def delete(notification_id, user_id):
        notif = NotificationService.get(notification_id, user_id)
        db.session.delete(notif)
        db.session.commit()
