"""Configuration management for daylog."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# daylog config directory
DAYLOG_DIR = Path.home() / ".daylog"
DAYLOG_ENV_FILE = DAYLOG_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DAYLOG_",
        # Later files override earlier ones
        env_file=(str(DAYLOG_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage settings
    storage_path: Path | None = Field(
        default=None,
        description="Path for the tracking data file (default: ~/.daylog/daylog.json)",
    )
    storage_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Maximum time a single storage read/write may take",
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Maximum time to wait for the storage file lock",
    )

    # Retention settings
    retention_months: int = Field(
        default=2,
        ge=1,
        description="Calendar months of daily totals to keep before pruning",
    )

    # Display settings
    refresh_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Refresh cadence of the live elapsed display in seconds",
    )
    no_time_logged_text: str = Field(
        default="No time logged",
        description="Report text shown for days without logged time",
    )

    def get_storage_path(self) -> Path:
        """Get the storage path, using default if not set."""
        if self.storage_path:
            return self.storage_path
        return DAYLOG_DIR / "daylog.json"


# Global settings instance
settings = Settings()
