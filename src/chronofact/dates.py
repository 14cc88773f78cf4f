"""ISO-8601 date parsing shared by writes and reads.

Effective dates have calendar-day granularity. A datetime (or a timestamp
string) is truncated to its date; ordering inside one day falls back to
insertion order.
"""

from __future__ import annotations

from datetime import date, datetime

from chronofact.errors import ValidationError


def parse_date(value: str | date | datetime) -> date:
    """Normalize a date-like value, raising ValidationError if it can't be parsed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Expected an ISO-8601 date, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Unparsable date: {value!r}") from None
