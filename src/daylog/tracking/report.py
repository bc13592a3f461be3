"""Report aggregation over a date range.

Builds one row per calendar day of an inclusive range, most recent day
first, plus summary statistics over the rows.
"""

import calendar
from collections.abc import Mapping
from datetime import date, datetime, timedelta

from daylog.errors import InvalidRange
from daylog.tracking.daykey import day_key_of
from daylog.tracking.types import Report, ReportRow, ReportSummary

NO_TIME_LOGGED = "No time logged"

_MS_PER_MINUTE = 60_000


def format_duration(milliseconds: int | float) -> str:
    """Format milliseconds as zero-padded ``HH:MM``.

    Partial minutes are dropped and hours are not wrapped at 24.

    Example:
        >>> format_duration(3_660_000)
        '01:01'
        >>> format_duration(90_000_000)
        '25:00'
    """
    total_minutes = max(0, int(milliseconds // _MS_PER_MINUTE))
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def validate_range(start: date, end: date) -> tuple[date, date]:
    """Truncate both ends to dates and check their order.

    Returns:
        The truncated ``(start, end)`` pair

    Raises:
        InvalidRange: If start is after end.
    """
    start, end = _as_date(start), _as_date(end)
    if start > end:
        raise InvalidRange(start, end)
    return start, end


def month_range(today: date) -> tuple[date, date]:
    """First and last day of the month containing ``today``."""
    today = _as_date(today)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def build_report(
    snapshot: Mapping[str, int],
    start: date,
    end: date,
    no_time_text: str = NO_TIME_LOGGED,
) -> Report:
    """Aggregate daily totals over an inclusive date range.

    Args:
        snapshot: Day key to milliseconds mapping (absent days count as 0)
        start: First day of the range
        end: Last day of the range
        no_time_text: Display text for days without logged time

    Returns:
        Report with rows ordered most recent first

    Raises:
        InvalidRange: If start is after end.
    """
    start, end = validate_range(start, end)

    rows: list[ReportRow] = []
    day = end
    while day >= start:
        day_key = day_key_of(day)
        logged = int(snapshot.get(day_key, 0))
        rows.append(ReportRow(
            date=day,
            day_key=day_key,
            logged_ms=logged,
            display_text=format_duration(logged) if logged > 0 else no_time_text,
        ))
        day -= timedelta(days=1)

    active_days = sum(1 for row in rows if row.logged_ms > 0)
    total_ms = sum(row.logged_ms for row in rows)

    summary = ReportSummary(
        total_days=len(rows),
        active_days=active_days,
        total_ms=total_ms,
        average_ms_per_active_day=total_ms / active_days if active_days else 0.0,
    )
    return Report(start=start, end=end, rows=rows, summary=summary)
