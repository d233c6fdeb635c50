from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_calendar_date(value: Any) -> Optional[date]:
    """
    Normalise any incoming date-ish value to a calendar date.

    Accepts ``date``, ``datetime`` (the date part is kept as given, no tz
    shifting), ISO dates (``2024-03-01``) and ISO datetimes, including a
    trailing ``Z``. Empty strings and ``None`` become ``None``.
    """
    if value is None:
        return None
    # datetime is a subclass of date, check it first.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError as exc:
            raise ValueError(f"Unrecognised date value: {value!r}") from exc
    raise ValueError(f"Unsupported date type: {type(value).__name__}")


def day_bounds(
    start: Optional[date], end: Optional[date]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Inclusive calendar-day range to half-open datetime bounds ``[lower, upper)``.
    """
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return lower, upper
