"""daylog - A personal time tracker with per-day totals and range reports."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("daylog")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from daylog.tracking import TrackingService, build_report, format_duration

__all__ = ["TrackingService", "build_report", "format_duration"]
