"""
Process status rules.

- Workflow transition tables for individual and collective processes
- Transition validation (``validate_*_transition`` raise ValidationError)
- Collective status summary calculated from the case statuses of its
  individual processes

Usage:
    from casedesk.services.process_status import validate_individual_transition

    validate_individual_transition(ip.workflow_status, "documents_submitted")
"""

from casedesk.core.exceptions import ValidationError

# ── Individual workflow ──────────────────────────────────────────────────────

INDIVIDUAL_STATUS_TRANSITIONS: dict[str, list[str]] = {
    "pending_documents": ["documents_submitted", "cancelled"],
    "documents_submitted": ["documents_approved", "pending_documents", "cancelled"],
    "documents_approved": ["preparing_submission", "cancelled"],
    "preparing_submission": ["submitted_to_government", "cancelled"],
    "submitted_to_government": ["under_government_review", "cancelled"],
    "under_government_review": ["government_approved", "government_rejected", "cancelled"],
    "government_approved": ["completed", "cancelled"],
    "government_rejected": ["pending_documents", "cancelled"],
    "completed": ["under_government_review"],
    "cancelled": ["pending_documents"],
}

# ── Collective (main) process ────────────────────────────────────────────────

COLLECTIVE_STATUS_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed": ["in_progress"],
    "cancelled": ["in_progress"],
}


def _is_valid(table: dict, current: str, new: str) -> bool:
    if current == new:
        return True
    allowed = table.get(current)
    if allowed is None:
        return False
    return new in allowed


def is_valid_individual_transition(current_status: str, new_status: str) -> bool:
    return _is_valid(INDIVIDUAL_STATUS_TRANSITIONS, current_status, new_status)


def is_valid_collective_transition(current_status: str, new_status: str) -> bool:
    return _is_valid(COLLECTIVE_STATUS_TRANSITIONS, current_status, new_status)


def next_individual_statuses(current_status: str) -> list[str]:
    return list(INDIVIDUAL_STATUS_TRANSITIONS.get(current_status, []))


def next_collective_statuses(current_status: str) -> list[str]:
    return list(COLLECTIVE_STATUS_TRANSITIONS.get(current_status, []))


def validate_individual_transition(current_status: str, new_status: str) -> None:
    if new_status not in INDIVIDUAL_STATUS_TRANSITIONS:
        raise ValidationError(f"Unknown status: {new_status}")
    if not is_valid_individual_transition(current_status, new_status):
        raise ValidationError(
            f"Invalid status transition from {current_status} to {new_status}",
            details={"allowed": next_individual_statuses(current_status)},
        )


def validate_collective_transition(current_status: str, new_status: str) -> None:
    if new_status not in COLLECTIVE_STATUS_TRANSITIONS:
        raise ValidationError(f"Unknown status: {new_status}")
    if not is_valid_collective_transition(current_status, new_status):
        raise ValidationError(
            f"Invalid status transition from {current_status} to {new_status}",
            details={"allowed": next_collective_statuses(current_status)},
        )


# ═══════════════════════════════════════════════════════════════
# Calculated collective status
# ═══════════════════════════════════════════════════════════════

def get_status_breakdown(individual_processes) -> list[dict]:
    """Group processes by case status, sorted by count desc then name.

    Processes without a case status are skipped.
    """
    groups: dict[int, dict] = {}
    for ip in individual_processes:
        status = ip.case_status
        if status is None or ip.case_status_id is None:
            continue
        entry = groups.get(ip.case_status_id)
        if entry is None:
            groups[ip.case_status_id] = {
                "case_status_id": ip.case_status_id,
                "case_status_name": status.name,
                "case_status_name_en": status.name_en,
                "color": status.color,
                "count": 1,
            }
        else:
            entry["count"] += 1
    return sorted(groups.values(), key=lambda e: (-e["count"], e["case_status_name"]))


def format_status_breakdown(breakdown: list[dict]) -> str:
    if not breakdown:
        return "No status defined"
    if len(breakdown) == 1 and breakdown[0]["count"] == 1:
        return breakdown[0]["case_status_name"]
    return ", ".join(f"{e['count']} {e['case_status_name']}" for e in breakdown)


def calculate_collective_status(individual_processes) -> dict:
    """Summarise the case statuses of a collective process' individual processes.

    Returns:
        ``{display_text, breakdown, total_processes, has_multiple_statuses,
        color}``; ``color`` comes from the most common status.
    """
    individual_processes = list(individual_processes or [])
    if not individual_processes:
        return {
            "display_text": "No individual processes",
            "breakdown": [],
            "total_processes": 0,
            "has_multiple_statuses": False,
            "color": None,
        }

    breakdown = get_status_breakdown(individual_processes)
    return {
        "display_text": format_status_breakdown(breakdown),
        "breakdown": breakdown,
        "total_processes": len(individual_processes),
        "has_multiple_statuses": len(breakdown) > 1,
        "color": breakdown[0]["color"] if breakdown else None,
    }
