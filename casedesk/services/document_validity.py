"""
Document validity / expiry rules.

A legal-framework association may attach a validity rule to a document type:

    fixed_expiry       the document carries an expiry date and must still
                       have at least ``validity_days`` left
    relative_to_issue  the document must have been issued within the last
                       ``validity_days`` days

``min_remaining`` and ``max_age`` are accepted as legacy aliases.

The result carries a ``message_key`` for the UI plus the number of days the
message refers to (``days_value``).
"""

from datetime import date

from casedesk.utils.helpers import parse_date

EXPIRING_SOON_THRESHOLD = 30

VALIDITY_VALID = "valid"
VALIDITY_EXPIRING_SOON = "expiring_soon"
VALIDITY_EXPIRED = "expired"
VALIDITY_MISSING_DATE = "missing_date"
VALIDITY_NO_RULE = "no_rule"

_TYPE_ALIASES = {
    "fixed_expiry": "fixed_expiry",
    "min_remaining": "fixed_expiry",
    "relative_to_issue": "relative_to_issue",
    "max_age": "relative_to_issue",
}


def _result(status, message_key, days_value=None):
    return {"status": status, "message_key": message_key, "days_value": days_value}


def check_document_validity(validity_type, validity_days, issue_date=None, expiry_date=None, today=None) -> dict:
    """Evaluate a document against its validity rule.

    Args:
        validity_type: ``fixed_expiry`` / ``relative_to_issue`` (or legacy alias).
        validity_days: Rule parameter in days.
        issue_date: Document issue date (date or ISO string).
        expiry_date: Document expiry date (date or ISO string).
        today: Reference date, defaults to ``date.today()``.

    Returns:
        ``{"status", "message_key", "days_value"}``.
    """
    rule = _TYPE_ALIASES.get(validity_type or "")
    if not rule or not validity_days:
        return _result(VALIDITY_NO_RULE, "validity.noRule")

    today = parse_date(today) or date.today()

    if rule == "fixed_expiry":
        expiry = parse_date(expiry_date)
        if not expiry:
            return _result(VALIDITY_MISSING_DATE, "validity.missingExpiryDate")

        days_remaining = (expiry - today).days
        if days_remaining < 0:
            return _result(VALIDITY_EXPIRED, "validity.expired", abs(days_remaining))
        if days_remaining < validity_days:
            return _result(VALIDITY_EXPIRED, "validity.insufficientRemaining", days_remaining)
        if days_remaining < validity_days + EXPIRING_SOON_THRESHOLD:
            return _result(VALIDITY_EXPIRING_SOON, "validity.expiringSoon", days_remaining)
        return _result(VALIDITY_VALID, "validity.valid", days_remaining)

    issue = parse_date(issue_date)
    if not issue:
        return _result(VALIDITY_MISSING_DATE, "validity.missingIssueDate")

    days_since_issue = (today - issue).days
    days_left = validity_days - days_since_issue
    if days_left < 0:
        return _result(VALIDITY_EXPIRED, "validity.maxAgeExceeded", abs(days_left))
    if days_left < EXPIRING_SOON_THRESHOLD:
        return _result(VALIDITY_EXPIRING_SOON, "validity.expiringSoon", days_left)
    return _result(VALIDITY_VALID, "validity.valid", days_left)


def is_validity_ok(result: dict) -> bool:
    """True for results that do not block a document from being complete."""
    return result["status"] in (VALIDITY_VALID, VALIDITY_NO_RULE)
