"""Type definitions for time tracking.

This module defines the Pydantic models for the persisted session state
and for the derived report values.
"""

import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Names of the persisted blobs
ENTRIES_KEY = "timeEntries"
STATE_KEY = "trackingState"


class SessionStatus(str, Enum):
    """Status of the tracking session.

    Attributes:
        IDLE: No session is running.
        RUNNING: A session started at ``started_at`` is running.
    """

    IDLE = "idle"
    RUNNING = "running"


class SessionState(BaseModel):
    """Persisted session state.

    ``started_at`` (epoch milliseconds) is set iff the session is running.
    Serialized as ``{"status": ..., "startedAt": ...}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: SessionStatus = Field(default=SessionStatus.IDLE, description="Session status")
    started_at: int | None = Field(
        default=None,
        alias="startedAt",
        description="Epoch milliseconds the running session started at",
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_shape(cls, data: Any) -> Any:
        # Older releases stored {"isTracking": bool, "startTime": int | null}
        if isinstance(data, dict) and "isTracking" in data and "status" not in data:
            running = bool(data.get("isTracking")) and data.get("startTime") is not None
            return {
                "status": SessionStatus.RUNNING if running else SessionStatus.IDLE,
                "startedAt": data.get("startTime") if running else None,
            }
        return data

    @field_validator("started_at")
    @classmethod
    def _check_representable(cls, v: int | None) -> int | None:
        if v is None:
            return v
        try:
            datetime.datetime.fromtimestamp(v / 1000)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"startedAt {v} is outside the supported date range") from None
        return v

    @model_validator(mode="after")
    def _check_started_at(self) -> "SessionState":
        if self.status == SessionStatus.RUNNING and self.started_at is None:
            raise ValueError("a running session requires startedAt")
        if self.status == SessionStatus.IDLE and self.started_at is not None:
            raise ValueError("an idle session must not have startedAt")
        return self

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.RUNNING

    def to_blob(self) -> dict[str, Any]:
        """Serialize for the storage backend."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReportRow(BaseModel):
    """One calendar day of a report."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    day_key: str
    logged_ms: int = Field(ge=0)
    display_text: str

    @property
    def has_time(self) -> bool:
        return self.logged_ms > 0


class ReportSummary(BaseModel):
    """Summary statistics over all rows of a report."""

    model_config = ConfigDict(frozen=True)

    total_days: int = Field(ge=0)
    active_days: int = Field(ge=0)
    total_ms: int = Field(ge=0)
    average_ms_per_active_day: float = Field(ge=0)


class Report(BaseModel):
    """Rows (most recent first) and summary for an inclusive date range."""

    model_config = ConfigDict(frozen=True)

    start: datetime.date
    end: datetime.date
    rows: list[ReportRow]
    summary: ReportSummary
