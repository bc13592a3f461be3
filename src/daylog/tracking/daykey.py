"""Day key derivation for the duration store.

A day key is the ISO calendar date (``YYYY-MM-DD``) of the local calendar
day a timestamp falls on. Timestamps are integer milliseconds since the
Unix epoch and are converted with the process timezone. Naive datetimes
are taken to be local already.
"""

import time
from datetime import date, datetime

# English names used by older releases (JavaScript ``Date.toDateString``),
# independent of the process locale
LEGACY_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
LEGACY_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

TimeLike = int | float | datetime | date


def now_ms() -> int:
    """Current time in epoch milliseconds (the default clock)."""
    return time.time_ns() // 1_000_000


def local_date(value: TimeLike) -> date:
    """Return the local calendar date of a timestamp, datetime or date.

    Args:
        value: Epoch milliseconds, a datetime (naive = local) or a date

    Returns:
        The local calendar date
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Cannot derive a date from {type(value).__name__}")
    return datetime.fromtimestamp(value / 1000).date()


def day_key_of(value: TimeLike) -> str:
    """Derive the day key for a timestamp, datetime or date.

    Example:
        >>> day_key_of(date(2026, 3, 31))
        '2026-03-31'
    """
    return local_date(value).isoformat()


def date_from_day_key(key: str) -> date:
    """Parse a day key back into a date.

    Accepts ISO keys and the legacy ``toDateString`` keys
    (e.g. ``"Mon Oct 19 2026"``).

    Raises:
        ValueError: If the key is in neither format.
    """
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError):
        pass
    try:
        return _parse_legacy_key(key)
    except (TypeError, ValueError):
        raise ValueError(f"Not a day key: {key!r}") from None


def _parse_legacy_key(key: str) -> date:
    """Parse ``"Mon Oct 19 2026"`` with English names regardless of locale."""
    if not isinstance(key, str):
        raise TypeError(f"Day keys are strings, got {type(key).__name__}")
    weekday, month, day, year = key.split(" ")
    if weekday not in LEGACY_WEEKDAYS or month not in LEGACY_MONTHS:
        raise ValueError(f"Unknown weekday or month in {key!r}")
    if len(day) != 2 or len(year) != 4 or not (day.isdigit() and year.isdigit()):
        raise ValueError(f"Malformed day or year in {key!r}")
    return date(int(year), LEGACY_MONTHS.index(month) + 1, int(day))


def is_canonical(key: str) -> bool:
    """Check whether a key is already in ISO form."""
    try:
        return date.fromisoformat(key).isoformat() == key
    except (TypeError, ValueError):
        return False
