"""Retention policy for daily totals.

Entries older than a trailing window of calendar months are expired.
Month arithmetic is calendar based: the day of month is clamped to the
length of the target month, so March 31 minus one month is the last day
of February.
"""

import calendar
import logging
from datetime import date

from daylog.tracking.daykey import TimeLike, date_from_day_key, local_date

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_MONTHS = 2


def subtract_months(d: date, months: int) -> date:
    """Subtract calendar months from a date.

    Args:
        d: The starting date
        months: Number of months to go back (must be >= 0)

    Returns:
        The same day of month ``months`` earlier, clamped to the month's length
    """
    if months < 0:
        raise ValueError("months must be non-negative")
    index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def retention_cutoff(now: TimeLike, months: int = DEFAULT_RETENTION_MONTHS) -> date:
    """Earliest date that is still retained at ``now``."""
    return subtract_months(local_date(now), months)


def is_expired(day_key: str, now: TimeLike, months: int = DEFAULT_RETENTION_MONTHS) -> bool:
    """Check whether a day key falls before the retention window.

    The cutoff date itself is retained. Keys that cannot be parsed are
    expired since no report can ever show them.

    Args:
        day_key: Day key of the entry
        now: Current time
        months: Length of the retention window in calendar months

    Returns:
        True if the entry should be pruned
    """
    try:
        entry_date = date_from_day_key(day_key)
    except ValueError:
        logger.debug(f"Unparseable day key {day_key!r} treated as expired")
        return True
    return entry_date < retention_cutoff(now, months)
