"""
Dashboard Service

Aggregates the home-screen widgets:
  - Individual process counts by case status (client-scoped)
  - Document review queue (admin)
  - Overdue tasks and upcoming deadlines
  - Active passports expiring within six months
  - Recent activity (admin)
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func

from casedesk.models import db
from casedesk.models.catalog import CaseStatus
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.access_control import require_admin, scope_company_id
from casedesk.services.activity_service import recent_activity
from casedesk.services.document_service import list_review_queue
from casedesk.services.passport_service import list_expiring
from casedesk.services.task_service import overdue_tasks

logger = logging.getLogger(__name__)


def _scoped_individual_query(profile):
    company_id = scope_company_id(profile)
    q = IndividualProcess.query.join(
        CollectiveProcess, IndividualProcess.collective_process_id == CollectiveProcess.id,
    )
    if company_id is not None:
        q = q.filter(CollectiveProcess.company_id == company_id)
    return q


def get_process_stats(profile) -> dict:
    """Active individual processes grouped by case status with percentages."""
    base = _scoped_individual_query(profile).filter(IndividualProcess.is_active.is_(True))
    total = base.count()
    rows = (
        base.with_entities(
            IndividualProcess.case_status_id,
            CaseStatus.name,
            CaseStatus.code,
            func.count(IndividualProcess.id),
        )
        .outerjoin(CaseStatus, IndividualProcess.case_status_id == CaseStatus.id)
        .group_by(IndividualProcess.case_status_id, CaseStatus.name, CaseStatus.code)
        .all()
    )

    status_counts, status_percentages = {}, {}
    for case_status_id, name, code, count in rows:
        key = str(case_status_id) if case_status_id is not None else "none"
        status_counts[key] = {"count": count, "name": name or "No status", "code": code}
        status_percentages[key] = round(count / total * 100, 1) if total else 0
    return {"total": total, "status_counts": status_counts, "status_percentages": status_percentages}


def get_upcoming_deadlines(profile, days=30, today: date | None = None) -> list[dict]:
    today = today or date.today()
    until = today + timedelta(days=days)
    rows = (
        _scoped_individual_query(profile)
        .filter(
            IndividualProcess.is_active.is_(True),
            IndividualProcess.deadline_date.isnot(None),
            IndividualProcess.deadline_date >= today,
            IndividualProcess.deadline_date <= until,
        )
        .order_by(IndividualProcess.deadline_date)
        .all()
    )
    return [
        {**ip.to_dict(), "days_remaining": (ip.deadline_date - today).days}
        for ip in rows
    ]


def get_dashboard(profile) -> dict:
    data = {
        "process_stats": get_process_stats(profile),
        "collective_status_counts": count_collective_by_status(profile),
        "overdue_tasks": [t.to_dict() for t in overdue_tasks(profile)],
        "upcoming_deadlines": get_upcoming_deadlines(profile),
        "expiring_passports": list_expiring(profile, days=180),
    }
    if profile.is_admin:
        data["review_queue"] = [d.to_dict() for d in list_review_queue(profile)]
        data["recent_activity"] = recent_activity(limit=20)
    return data


def get_recent_activity(profile, limit=20) -> list[dict]:
    require_admin(profile)
    return recent_activity(limit=limit)


def count_collective_by_status(profile) -> dict:
    company_id = scope_company_id(profile)
    q = db.session.query(CollectiveProcess.status, func.count(CollectiveProcess.id))
    if company_id is not None:
        q = q.filter(CollectiveProcess.company_id == company_id)
    return {status: count for status, count in q.group_by(CollectiveProcess.status).all()}
