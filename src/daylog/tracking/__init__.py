"""Time-accounting engine for daylog.

This package provides:
- Day key derivation for the local calendar day
- A date-bucketed duration store with a calendar-month retention policy
- The idle/running session state machine
- Report aggregation over an inclusive date range
- Async persistence backends (JSON file and in-memory)

Example:
    from daylog.tracking import MemoryBackend, TrackingService

    service = TrackingService(MemoryBackend())
    await service.open()
    await service.start()
    ...
    await service.stop()
    report = service.report(date(2026, 10, 1), date(2026, 10, 31))
"""

from daylog.tracking.backend import JsonFileBackend, MemoryBackend, StorageBackend
from daylog.tracking.daykey import date_from_day_key, day_key_of, local_date, now_ms
from daylog.tracking.report import (
    NO_TIME_LOGGED,
    build_report,
    format_duration,
    month_range,
    validate_range,
)
from daylog.tracking.retention import is_expired, retention_cutoff, subtract_months
from daylog.tracking.service import TrackingService
from daylog.tracking.session import SessionTracker
from daylog.tracking.store import DurationStore
from daylog.tracking.ticker import ElapsedTicker
from daylog.tracking.types import (
    Report,
    ReportRow,
    ReportSummary,
    SessionState,
    SessionStatus,
)

__all__ = [
    # Service
    "TrackingService",
    # Engine
    "DurationStore",
    "SessionTracker",
    "ElapsedTicker",
    # Types
    "SessionState",
    "SessionStatus",
    "Report",
    "ReportRow",
    "ReportSummary",
    # Backends
    "StorageBackend",
    "JsonFileBackend",
    "MemoryBackend",
    # Day keys and retention
    "day_key_of",
    "date_from_day_key",
    "local_date",
    "now_ms",
    "is_expired",
    "retention_cutoff",
    "subtract_months",
    # Reports
    "NO_TIME_LOGGED",
    "build_report",
    "format_duration",
    "month_range",
    "validate_range",
]
