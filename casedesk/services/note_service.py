"""
Note service layer.

A note is attached to exactly one process (individual or collective).  Both
admins and client users of the owning company can write notes; only the
author or an admin can edit or delete them.  Deletion is soft.
"""

import logging
from datetime import date

from casedesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from casedesk.models import db
from casedesk.models.activity import log_activity
from casedesk.models.note import Note
from casedesk.models.process import CollectiveProcess, IndividualProcess
from casedesk.services.access_control import ensure_process_access

logger = logging.getLogger(__name__)

NO_PROCESS = "Either individual_process_id or collective_process_id must be provided"
BOTH_PROCESSES = "Only one of individual_process_id or collective_process_id should be provided"


def _resolve_process(individual_process_id=None, collective_process_id=None):
    if not individual_process_id and not collective_process_id:
        raise ValidationError(NO_PROCESS)
    if individual_process_id and collective_process_id:
        raise ValidationError(BOTH_PROCESSES)
    if individual_process_id:
        process = db.session.get(IndividualProcess, individual_process_id)
        if process is None:
            raise NotFoundError(resource="Individual process", resource_id=individual_process_id)
    else:
        process = db.session.get(CollectiveProcess, collective_process_id)
        if process is None:
            raise NotFoundError(resource="Collective process", resource_id=collective_process_id)
    return process


def _get_note(profile, note_id: int) -> Note:
    note = Note.query_active().filter(Note.id == note_id).first()
    if note is None:
        raise NotFoundError(resource="Note", resource_id=note_id)
    ensure_process_access(profile, _resolve_process(note.individual_process_id, note.collective_process_id))
    return note


def _require_author_or_admin(profile, note: Note, verb: str) -> None:
    if not profile.is_admin and note.created_by != profile.id:
        raise AccessDeniedError(f"Access denied: You can only {verb} your own notes")


def create_note(profile, data: dict) -> Note:
    process = _resolve_process(data.get("individual_process_id"), data.get("collective_process_id"))
    content = (data.get("content") or "").strip()
    if not content:
        raise ValidationError("Note content is required")
    ensure_process_access(profile, process)

    note = Note(
        content=content,
        date=date.today(),
        individual_process_id=data.get("individual_process_id") or None,
        collective_process_id=data.get("collective_process_id") or None,
        created_by=profile.id,
    )
    db.session.add(note)
    db.session.flush()
    log_activity(action="created", entity_type="note", entity_id=note.id, user_id=profile.id,
                 details={"individual_process_id": note.individual_process_id,
                          "collective_process_id": note.collective_process_id})
    db.session.commit()
    return note


def list_notes(profile, *, individual_process_id=None, collective_process_id=None) -> list[Note]:
    process = _resolve_process(individual_process_id, collective_process_id)
    ensure_process_access(profile, process)
    q = Note.query_active()
    if individual_process_id:
        q = q.filter(Note.individual_process_id == individual_process_id)
    else:
        q = q.filter(Note.collective_process_id == collective_process_id)
    return q.order_by(Note.created_at.desc(), Note.id.desc()).all()


def update_note(profile, note_id: int, content: str) -> Note:
    note = _get_note(profile, note_id)
    _require_author_or_admin(profile, note, "edit")
    content = (content or "").strip()
    if not content:
        raise ValidationError("Note content is required")
    note.content = content
    log_activity(action="updated", entity_type="note", entity_id=note.id, user_id=profile.id)
    db.session.commit()
    return note


def delete_note(profile, note_id: int) -> None:
    note = _get_note(profile, note_id)
    _require_author_or_admin(profile, note, "delete")
    note.soft_delete()
    log_activity(action="deleted", entity_type="note", entity_id=note.id, user_id=profile.id)
    db.session.commit()
