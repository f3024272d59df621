"""Numeric safety utilities shared by every recovery model.

All helpers are total: they never raise and never let NaN, infinities or
negative elapsed time leak into a score.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Union

DateLike = Union[str, date, datetime]


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(n):
        return None
    return n


def clamp(value: Any, min_value: float, max_value: float) -> float:
    """Bound value to [min_value, max_value]; non-numeric or NaN yields min_value."""
    n = _to_float(value)
    if n is None:
        return min_value
    return max(min_value, min(max_value, n))


def safe_number(value: Any, fallback: float) -> float:
    """Return value as a float, or fallback for None/NaN/inf/non-numeric input."""
    n = _to_float(value)
    if n is None or math.isinf(n):
        return fallback
    return n


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a date-like value into a naive UTC datetime.

    Accepts ``YYYY-MM-DD`` strings (midnight), ISO-8601 timestamps (a trailing
    ``Z`` is accepted), ``date`` and ``datetime`` objects. Returns None when
    the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    """Parse a date-like value into a calendar date (UTC)."""
    parsed = parse_timestamp(value)
    return parsed.date() if parsed is not None else None


def date_key(value: Any) -> Optional[str]:
    """Return the ``YYYY-MM-DD`` key of a date-like value, or None."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed is not None else None


def hours_between(start: Any, end: Any) -> float:
    """Elapsed hours from start to end; 0 if unparsable or negative."""
    t1 = parse_timestamp(start)
    t2 = parse_timestamp(end)
    if t1 is None or t2 is None:
        return 0.0
    hours = (t2 - t1).total_seconds() / 3600.0
    return hours if hours > 0 else 0.0


def days_before(value: datetime, days: int) -> datetime:
    """Shift a timestamp back by a whole number of days."""
    return value - timedelta(days=days)


def normalize_to_100(value: Any, max_possible: Any) -> float:
    """Express value as a 0-100 share of max_possible; 0 for invalid input."""
    v = _to_float(value)
    m = _to_float(max_possible)
    if v is None or m is None or math.isinf(v) or math.isinf(m) or m <= 0:
        return 0.0
    return clamp(v / m * 100, 0, 100)
