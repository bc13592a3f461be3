"""Command-line interface for daylog.

daylog tracks time with a single start/stop session and keeps a total
per calendar day for the last couple of months.

CONCEPTS:
---------
- SESSION: One contiguous running interval from `start` to `stop`.
           All of its time is logged on the day it started.

- REPORT:  Per-day totals over an inclusive date range, most recent
           day first, with a summary of total and average time.

- CLEANUP: Daily totals older than the retention window (2 calendar
           months by default) are pruned whenever daylog starts.
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import NoReturn

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from daylog import __version__
from daylog.config import settings
from daylog.errors import InvalidRange, InvalidTransition
from daylog.tracking import TrackingService, format_duration, local_date, month_range
from daylog.tracking.types import Report

console = Console()

# Help text shown when no command is given
WELCOME_TEXT = f"""
# daylog v{__version__}

A personal time tracker with daily totals.

## Quick Start

```bash
daylog start                       # Start tracking
daylog status --watch              # Watch the running session
daylog stop                        # Stop and log the time
daylog report                      # Report for this month
daylog report --start 2026-10-01 --end 2026-10-07
```

Data is stored in `~/.daylog/daylog.json` (set `DAYLOG_STORAGE_PATH` to change).
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def _parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}' (expected YYYY-MM-DD)") from None


async def open_service() -> TrackingService:
    """Create the configured service, load state and run startup cleanup."""
    service = TrackingService.from_settings(settings)
    if not await service.open():
        console.print("[yellow]Warning:[/yellow] stored data could not be read, starting empty")
    await service.run_cleanup()
    return service


def _warn_if_pending(service: TrackingService) -> None:
    if service.has_pending_writes:
        console.print(
            f"[yellow]Warning:[/yellow] could not save to {service.storage_path}; "
            "changes are kept only for this run"
        )


def _print_status(service: TrackingService) -> None:
    if service.is_running:
        console.print(f"[green]Running[/green]  session {format_duration(service.elapsed_so_far())}")
    else:
        console.print("[dim]Stopped[/dim]")
    console.print(f"Today: [bold]{format_duration(service.today_total())}[/bold]")


def cmd_start(args: argparse.Namespace) -> None:
    """Start tracking."""

    async def _run() -> bool:
        service = await open_service()
        try:
            await service.start()
        except InvalidTransition:
            console.print("[red]Error:[/red] a session is already running")
            return False
        console.print("[green]Started tracking.[/green]")
        _warn_if_pending(service)
        return True

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_stop(args: argparse.Namespace) -> None:
    """Stop tracking and log the elapsed time."""

    async def _run() -> bool:
        service = await open_service()
        try:
            elapsed = await service.stop()
        except InvalidTransition:
            console.print("[red]Error:[/red] no session is running")
            return False
        console.print(f"[green]Stopped.[/green] Logged {format_duration(elapsed)}")
        console.print(f"Today: [bold]{format_duration(service.today_total())}[/bold]")
        _warn_if_pending(service)
        return True

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_toggle(args: argparse.Namespace) -> None:
    """Start when stopped, stop when running."""

    async def _run() -> None:
        service = await open_service()
        await service.toggle()
        _print_status(service)
        _warn_if_pending(service)

    asyncio.run(_run())


def cmd_status(args: argparse.Namespace) -> None:
    """Show the session status and today's total."""

    async def _run() -> None:
        service = await open_service()
        if not args.watch or not service.is_running:
            _print_status(service)
            return

        def _render(elapsed_ms: int) -> Panel:
            return Panel(
                f"Session: [bold green]{format_duration(elapsed_ms)}[/bold green]\n"
                f"Today:   [bold]{format_duration(service.today_total())}[/bold]",
                title="Running",
            )

        with Live(_render(service.elapsed_so_far()), console=console, transient=True) as live:
            await service.watch(lambda ms: live.update(_render(ms)), interval=settings.refresh_interval_seconds)
            try:
                while service.is_running:
                    await asyncio.sleep(settings.refresh_interval_seconds)
            finally:
                await service.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching. The session keeps running.[/dim]")


def cmd_today(args: argparse.Namespace) -> None:
    """Show today's total including the running session."""

    async def _run() -> None:
        service = await open_service()
        console.print(format_duration(service.today_total()))

    asyncio.run(_run())


def print_report(report: Report) -> None:
    """Render a report as a table and a summary panel."""
    table = Table(title=f"Time Report {report.start.isoformat()} to {report.end.isoformat()}")
    table.add_column("Day", style="cyan")
    table.add_column("Date", style="white")
    table.add_column("Time", justify="right")

    for row in report.rows:
        table.add_row(
            row.date.strftime("%A"),
            f"{row.date.strftime('%B')} {row.date.day}, {row.date.year}",
            row.display_text if row.has_time else f"[dim]{row.display_text}[/dim]",
        )

    console.print(table)

    summary = report.summary
    console.print(Panel(
        f"Total days:   {summary.total_days}\n"
        f"Active days:  {summary.active_days}\n"
        f"Total time:   {format_duration(summary.total_ms)}\n"
        f"Average time: {format_duration(summary.average_ms_per_active_day)}",
        title="Summary",
    ))


def cmd_report(args: argparse.Namespace) -> None:
    """Show per-day totals over a date range."""

    async def _run() -> bool:
        service = await open_service()
        default_start, default_end = month_range(local_date(service.tracker.now()))
        if args.this_month:
            start, end = default_start, default_end
        else:
            start = args.start or default_start
            end = args.end or default_end

        try:
            report = service.report(start, end)
        except InvalidRange:
            console.print("[red]Error:[/red] start date must be before or equal to end date")
            return False
        print_report(report)
        return True

    if not asyncio.run(_run()):
        sys.exit(1)


def cmd_cleanup(args: argparse.Namespace) -> None:
    """Prune daily totals older than the retention window."""

    async def _run() -> None:
        service = TrackingService.from_settings(settings)
        await service.open()
        if await service.run_cleanup():
            console.print("[green]Removed expired entries.[/green]")
        else:
            console.print("[dim]Nothing to clean up.[/dim]")

    asyncio.run(_run())


def cmd_version(args: argparse.Namespace) -> None:
    """Show version information."""
    console.print(f"daylog v{__version__}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="daylog",
        description="daylog - personal time tracker with daily totals",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed output")

    subparsers = parser.add_subparsers(dest="command")

    start_parser = subparsers.add_parser("start", help="Start tracking")
    start_parser.set_defaults(func=cmd_start)

    stop_parser = subparsers.add_parser("stop", help="Stop tracking and log the time")
    stop_parser.set_defaults(func=cmd_stop)

    toggle_parser = subparsers.add_parser("toggle", help="Start or stop tracking")
    toggle_parser.set_defaults(func=cmd_toggle)

    status_parser = subparsers.add_parser("status", help="Show session status and today's total")
    status_parser.add_argument(
        "-w", "--watch", action="store_true",
        help="Keep refreshing the running session time (Ctrl+C to exit)"
    )
    status_parser.set_defaults(func=cmd_status)

    today_parser = subparsers.add_parser("today", help="Show today's total")
    today_parser.set_defaults(func=cmd_today)

    report_parser = subparsers.add_parser(
        "report",
        help="Show per-day totals for a date range",
        description="Show one row per day of an inclusive date range, most recent first.",
        epilog="""Examples:
  daylog report                                   This month
  daylog report --start 2026-10-01 --end 2026-10-07"""
    )
    report_parser.add_argument("--start", type=_parse_date, help="First day (YYYY-MM-DD)")
    report_parser.add_argument("--end", type=_parse_date, help="Last day (YYYY-MM-DD)")
    report_parser.add_argument(
        "--this-month", action="store_true",
        help="Report on the current month (default)"
    )
    report_parser.set_defaults(func=cmd_report)

    cleanup_parser = subparsers.add_parser("cleanup", help="Prune expired daily totals")
    cleanup_parser.set_defaults(func=cmd_cleanup)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main() -> NoReturn:
    """Main entry point for the daylog CLI."""
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)

    # No command given - show welcome
    if args.command is None:
        console.print(Markdown(WELCOME_TEXT))
        sys.exit(0)

    args.func(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
