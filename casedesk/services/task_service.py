"""
Task service layer.

Tasks hang off an individual and/or collective process.  Admins create and
manage them; assignees are notified on assignment and reassignment.  Client
users only see tasks of their company's processes.
"""

import logging
from datetime import date

from sqlalchemy import or_

from casedesk.core.exceptions import NotFoundError, ValidationError
from casedesk.models import db, utcnow
from casedesk.models.activity import log_activity
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.models.task import OPEN_TASK_STATUSES, TASK_PRIORITIES, TASK_STATUSES, Task
from casedesk.models.user import UserProfile
from casedesk.services.access_control import ensure_process_access, require_admin, scope_company_id
from casedesk.services.activity_service import diff_fields
from casedesk.services.notification import NotificationService
from casedesk.utils.helpers import parse_date

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "due_date", "priority", "status")


def _resolve_processes(data: dict):
    ip_id = data.get("individual_process_id")
    cp_id = data.get("collective_process_id")
    if not ip_id and not cp_id:
        raise ValidationError("Either individual_process_id or collective_process_id must be provided")
    ip = cp = None
    if ip_id:
        ip = db.session.get(IndividualProcess, ip_id)
        if ip is None:
            raise NotFoundError(resource="Individual process", resource_id=ip_id)
    if cp_id:
        cp = db.session.get(CollectiveProcess, cp_id)
        if cp is None:
            raise NotFoundError(resource="Collective process", resource_id=cp_id)
    return ip, cp


def _get_assignee(user_id) -> UserProfile:
    user = db.session.get(UserProfile, user_id)
    if user is None or not user.is_active:
        raise ValidationError("Assigned user not found")
    return user


def _notify_assignee(task: Task, title: str) -> None:
    NotificationService.notify(
        user_id=task.assigned_to,
        type="task_assigned",
        title=title,
        message=f'You have been assigned the task "{task.title}"',
        entity_type="task",
        entity_id=task.id,
    )


def get_task(profile, task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError(resource="Task", resource_id=task_id)
    process = task.individual_process or task.collective_process
    if process is not None:
        ensure_process_access(profile, process)
    elif not profile.is_admin:
        raise NotFoundError(resource="Task", resource_id=task_id)
    return task


def create_task(profile, data: dict) -> Task:
    """Create a task and notify the assignee.

    Raises:
        ValidationError: No process id, empty title, bad priority or unknown assignee.
        NotFoundError: Unknown process.
    """
    require_admin(profile)
    ip, cp = _resolve_processes(data)
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Task title is required")
    priority = data.get("priority") or "medium"
    if priority not in TASK_PRIORITIES:
        raise ValidationError("Invalid priority value")
    assignee = None
    if data.get("assigned_to"):
        assignee = _get_assignee(data["assigned_to"])

    task = Task(
        individual_process_id=ip.id if ip else None,
        collective_process_id=cp.id if cp else (ip.collective_process_id if ip else None),
        title=title,
        description=data.get("description") or "",
        due_date=parse_date(data.get("due_date")),
        priority=priority,
        status="todo",
        assigned_to=assignee.id if assignee else None,
        created_by=profile.id,
    )
    db.session.add(task)
    db.session.flush()
    if assignee is not None:
        _notify_assignee(task, "New Task Assigned")
    log_activity(action="created", entity_type="task", entity_id=task.id, user_id=profile.id,
                 details={"title": task.title, "assigned_to": task.assigned_to})
    db.session.commit()
    logger.info("Task created id=%s assigned_to=%s", task.id, task.assigned_to)
    return task


def update_task(profile, task_id: int, data: dict) -> Task:
    require_admin(profile)
    task = get_task(profile, task_id)
    payload = {k: data[k] for k in UPDATABLE_FIELDS if k in data}
    if "title" in payload and not (payload["title"] or "").strip():
        raise ValidationError("Task title is required")
    if "priority" in payload and payload["priority"] not in TASK_PRIORITIES:
        raise ValidationError("Invalid priority value")
    if "status" in payload and payload["status"] not in TASK_STATUSES:
        raise ValidationError("Invalid status value")
    if "due_date" in payload:
        payload["due_date"] = parse_date(payload["due_date"])

    changes = diff_fields(task, payload, UPDATABLE_FIELDS)
    if "status" in changes:
        if task.status == "completed":
            task.completed_at = utcnow()
            task.completed_by = profile.id
        else:
            task.completed_at = None
            task.completed_by = None
    if "assigned_to" in data and data["assigned_to"] != task.assigned_to:
        return reassign_task(profile, task.id, data["assigned_to"], changes=changes)
    if changes:
        log_activity(action="updated", entity_type="task", entity_id=task.id, user_id=profile.id,
                     details={"changes": changes})
    db.session.commit()
    return task


def complete_task(profile, task_id: int) -> Task:
    """Mark a task completed; admins or the assignee may complete it."""
    task = get_task(profile, task_id)
    if not profile.is_admin and task.assigned_to != profile.id:
        require_admin(profile)
    if task.status == "completed":
        raise ValidationError("Task is already completed")
    previous = task.status
    task.status = "completed"
    task.completed_at = utcnow()
    task.completed_by = profile.id
    log_activity(action="completed", entity_type="task", entity_id=task.id, user_id=profile.id,
                 details={"previous_status": previous})
    db.session.commit()
    return task


def reassign_task(profile, task_id: int, user_id, changes=None) -> Task:
    require_admin(profile)
    task = get_task(profile, task_id)
    changes = dict(changes or {})
    previous = task.assigned_to
    if user_id:
        assignee = _get_assignee(user_id)
        task.assigned_to = assignee.id
    else:
        task.assigned_to = None
    changes["assigned_to"] = {"before": previous, "after": task.assigned_to}
    if task.assigned_to and task.assigned_to != previous:
        _notify_assignee(task, "Task Reassigned to You")
    log_activity(action="reassigned", entity_type="task", entity_id=task.id, user_id=profile.id,
                 details={"changes": changes})
    db.session.commit()
    return task


def extend_deadline(profile, task_id: int, new_due_date) -> Task:
    require_admin(profile)
    task = get_task(profile, task_id)
    parsed = parse_date(new_due_date)
    if parsed is None:
        raise ValidationError("A valid due date is required")
    changes = diff_fields(task, {"due_date": parsed}, ("due_date",))
    log_activity(action="deadline_extended", entity_type="task", entity_id=task.id, user_id=profile.id,
                 details={"changes": changes})
    db.session.commit()
    return task


def delete_task(profile, task_id: int) -> None:
    require_admin(profile)
    task = get_task(profile, task_id)
    log_activity(action="deleted", entity_type="task", entity_id=task.id, user_id=profile.id,
                 details={"title": task.title})
    db.session.delete(task)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def _scoped_query(profile):
    company_id = scope_company_id(profile)
    q = Task.query
    if company_id is None:
        return q
    ip_ids = (
        db.session.query(IndividualProcess.id)
        .join(CollectiveProcess, IndividualProcess.collective_process_id == CollectiveProcess.id)
        .filter(CollectiveProcess.company_id == company_id)
    )
    cp_ids = db.session.query(CollectiveProcess.id).filter(CollectiveProcess.company_id == company_id)
    return q.filter(or_(Task.individual_process_id.in_(ip_ids), Task.collective_process_id.in_(cp_ids)))


def list_tasks(profile, *, status=None, priority=None, assigned_to=None,
               individual_process_id=None, collective_process_id=None):
    q = _scoped_query(profile)
    if status:
        q = q.filter(Task.status == status)
    if priority:
        q = q.filter(Task.priority == priority)
    if assigned_to:
        q = q.filter(Task.assigned_to == assigned_to)
    if individual_process_id:
        q = q.filter(Task.individual_process_id == individual_process_id)
    if collective_process_id:
        q = q.filter(Task.collective_process_id == collective_process_id)
    return q.order_by(Task.due_date.is_(None), Task.due_date, Task.id)


def my_tasks(profile, include_completed=False) -> list[Task]:
    q = Task.query.filter(Task.assigned_to == profile.id)
    if not include_completed:
        q = q.filter(Task.status.in_(OPEN_TASK_STATUSES))
    return q.order_by(Task.due_date.is_(None), Task.due_date, Task.id).all()


def overdue_tasks(profile, today: date | None = None) -> list[Task]:
    today = today or date.today()
    return (
        _scoped_query(profile)
        .filter(Task.status.in_(OPEN_TASK_STATUSES), Task.due_date.isnot(None), Task.due_date < today)
        .order_by(Task.due_date, Task.id)
        .all()
    )
