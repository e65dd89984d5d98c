"""Due-date helpers for process-desk.

due_date is stored as free text, so every helper tolerates values that
do not parse: they classify as "unknown" and never raise an alert.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

DUE_SOON_DAYS = 2

OVERDUE = "overdue"
DUE_SOON = "due_soon"
ON_TRACK = "on_track"
UNKNOWN = "unknown"


def parse_due_date(value: str | None) -> date | None:
    """Parse YYYY-MM-DD, or the date part of an ISO datetime."""
    if not value:
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def days_until_due(value: str | None, today: date | None = None) -> int | None:
    due = parse_due_date(value)
    if due is None:
        return None
    return (due - (today or date.today())).days


def is_weekend(value: str | None) -> bool:
    due = parse_due_date(value)
    return due is not None and due.weekday() >= 5


def due_status(value: str | None, today: date | None = None) -> str:
    days = days_until_due(value, today)
    if days is None:
        return UNKNOWN
    if days < 0:
        return OVERDUE
    if days <= DUE_SOON_DAYS:
        return DUE_SOON
    return ON_TRACK


def should_alert(value: str | None, today: date | None = None) -> bool:
    """True when the due date is at most two days away (or past) or falls on a weekend."""
    days = days_until_due(value, today)
    if days is None:
        return False
    return days <= DUE_SOON_DAYS or is_weekend(value)


def processes_needing_attention(
    processes: Iterable[dict[str, Any]], today: date | None = None
) -> list[dict[str, Any]]:
    """Return the processes that should alert, earliest due date first.

    Each returned record is a copy carrying extra due_status and
    days_until_due keys.
    """
    flagged = []
    for process in processes:
        if not should_alert(process["due_date"], today):
            continue
        flagged.append(
            {
                **process,
                "due_status": due_status(process["due_date"], today),
                "days_until_due": days_until_due(process["due_date"], today),
            }
        )
    flagged.sort(key=lambda p: p["days_until_due"])
    return flagged
