"""
Government protocol progress for an individual process.

Pure functions over the nine government fields of an individual process
(``IndividualProcess.government_fields()`` or any mapping with the same
keys).  No database access.

Progress ladder (first match wins):
    rnm_number present          → approved      100
    dou_date present            → under_review   80
    protocol_number present     → submitted      60
    mre_office_number/dou_number → preparing  25..50
    nothing                     → not_started     0
"""

from casedesk.models.process import GOVERNMENT_FIELDS

PREPARATION_FIELDS = ("mre_office_number", "dou_number")


def _filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def calculate_government_status(fields: dict) -> dict:
    """Return ``{status, progress, label, color}`` for the given field values."""
    if _filled(fields.get("rnm_number")):
        return {"status": "approved", "progress": 100, "label": "approved", "color": "green"}

    if _filled(fields.get("dou_date")):
        return {"status": "under_review", "progress": 80, "label": "underReview", "color": "blue"}

    if _filled(fields.get("protocol_number")):
        return {"status": "submitted", "progress": 60, "label": "submitted", "color": "blue"}

    prepared = sum(1 for name in PREPARATION_FIELDS if _filled(fields.get(name)))
    if prepared > 0:
        progress = min(25 + (prepared / len(PREPARATION_FIELDS)) * 25, 50)
        return {"status": "preparing", "progress": progress, "label": "preparing", "color": "yellow"}

    return {"status": "not_started", "progress": 0, "label": "notStarted", "color": "gray"}


def calculate_government_fields_completion(fields: dict) -> int:
    """Percentage (0-100, rounded) of government fields that are filled."""
    filled = sum(1 for name in GOVERNMENT_FIELDS if _filled(fields.get(name)))
    return round(filled / len(GOVERNMENT_FIELDS) * 100)


def get_next_government_action(fields: dict) -> str | None:
    """Key of the next step the agency has to take, or None when approved."""
    status = calculate_government_status(fields)["status"]
    return {
        "not_started": "startPreparation",
        "preparing": "submitProtocol",
        "submitted": "awaitingDOUPublication",
        "under_review": "awaitingRNMApproval",
    }.get(status)


def government_summary(fields: dict) -> dict:
    """Status, completion and next action in one payload."""
    return {
        **calculate_government_status(fields),
        "fields_completion": calculate_government_fields_completion(fields),
        "next_action": get_next_government_action(fields),
    }
