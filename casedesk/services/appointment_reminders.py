"""
Appointment reminders.

Run periodically (``flask send-appointment-reminders``, e.g. from cron):
every individual process with an ``appointment_date_time`` inside the
reminder window notifies the users of the process company plus all admins.
"""

import logging
from datetime import timedelta

from flask import current_app

from casedesk.models import db, utcnow
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.access_control import scope_company_id
from casedesk.services.notification import NotificationService
from casedesk.services.user_service import admin_ids, company_user_ids

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_HOURS = 24


def _appointments_between(start, end, company_id=None):
    q = IndividualProcess.query.filter(
        IndividualProcess.appointment_date_time.isnot(None),
        IndividualProcess.appointment_date_time >= start,
        IndividualProcess.appointment_date_time <= end,
        IndividualProcess.is_active.is_(True),
    )
    if company_id is not None:
        q = q.join(
            CollectiveProcess, IndividualProcess.collective_process_id == CollectiveProcess.id,
        ).filter(CollectiveProcess.company_id == company_id)
    return q.order_by(IndividualProcess.appointment_date_time)


def send_appointment_reminders(now=None, window_hours=None) -> dict:
    """Notify about appointments in ``[now, now + window_hours]``.

    Returns:
        ``{notifications_created, appointments_checked}``
    """
    now = now or utcnow()
    if window_hours is None:
        window_hours = current_app.config.get("APPOINTMENT_REMINDER_WINDOW_HOURS", DEFAULT_WINDOW_HOURS)
    processes = _appointments_between(now, now + timedelta(hours=window_hours)).all()

    admins = admin_ids()
    created = 0
    for ip in processes:
        person_name = ip.person.full_name if ip.person else "a person"
        when = ip.appointment_date_time.strftime("%Y-%m-%d %H:%M")
        recipients = company_user_ids(ip.company_id) + admins
        created += len(NotificationService.notify_many(
            recipients,
            type="appointment_reminder",
            title="Upcoming Appointment",
            message=f"Appointment for {person_name} scheduled at {when}",
            entity_type="individual_process",
            entity_id=ip.id,
        ))
    db.session.commit()
    logger.info("Appointment reminders: checked=%d created=%d", len(processes), created)
    return {"notifications_created": created, "appointments_checked": len(processes)}


def list_upcoming_appointments(profile, days=7, now=None) -> list[IndividualProcess]:
    now = now or utcnow()
    return _appointments_between(now, now + timedelta(days=days), scope_company_id(profile)).all()
