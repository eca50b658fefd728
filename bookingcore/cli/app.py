"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.log_sinks import LoggingAuditLog, LoggingNotifier
from ..adapters.memory_store import InMemoryBookingStore
from ..adapters.webhook import WebhookAuditLog, WebhookNotifier
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingCoreError
from ..services.scheduling_service import SchedulingService

app = typer.Typer(
    name="bookingcore",
    help="Compute bookable slots, check conflicts and auto-assign cleaning jobs",
    add_completion=False
)

console = Console()

DEFAULT_DATA_FILE = Path(__file__).parent.parent / "adapters" / "sample_data.json"

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Booking scheduling and assignment tools.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the config file, falling back to defaults when none exists."""
    config_path = config_file or get_default_config_path()

    if config_file is None and not config_path.exists():
        return AppConfig()

    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig) -> SchedulingService:
    store = InMemoryBookingStore.from_json(config.data_file or DEFAULT_DATA_FILE)

    notifications = config.notifications
    if notifications.webhook_url:
        notifier = WebhookNotifier(notifications.webhook_url, timeout=notifications.timeout_seconds)
    else:
        notifier = LoggingNotifier()

    if notifications.audit_webhook_url:
        audit_log = WebhookAuditLog(notifications.audit_webhook_url, timeout=notifications.timeout_seconds)
    else:
        audit_log = LoggingAuditLog()

    return SchedulingService(
        repository=store,
        notifier=notifier,
        audit_log=audit_log,
        working_window=config.get_working_window(),
        timezone=config.timezone,
        default_strategy=config.assignment.default_strategy,
        fallback_distance_km=config.assignment.fallback_distance_km,
        default_duration_hours=config.durations.default_hours,
    )


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


@app.command()
def availability(
    date: Annotated[str, typer.Argument(help="Service day (YYYY-MM-DD)")],
    duration: Annotated[Optional[float], typer.Option("--duration", "-d", help="Job duration in hours (1-8)")] = None,
    provider: Annotated[Optional[str], typer.Option("--provider", "-p", help="Only consider this provider")] = None,
    config_file: ConfigOption = None,
):
    """
    List bookable start times for a day.

    Examples:

        bookingcore availability 2025-01-15

        bookingcore availability 2025-01-15 --duration 3 --provider prov-sparkle
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config)
        slots = service.get_availability(date, duration_hours=duration, provider_id=provider)
    except (BookingCoreError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if not slots:
        console.print(f"[yellow]No bookable slots on {date}.[/yellow]")
        return

    table = Table(title=f"Available slots on {date}", show_header=True, header_style="bold cyan")
    table.add_column("Start", style="bold yellow")
    table.add_column("Free providers", justify="right")

    for slot in slots:
        table.add_row(slot.time, str(slot.available_provider_count))

    console.print(table)


@app.command("check-conflict")
def check_conflict(
    provider: Annotated[str, typer.Argument(help="Provider id")],
    date: Annotated[str, typer.Argument(help="Service day (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    duration: Annotated[Optional[float], typer.Option("--duration", "-d", help="Job duration in hours")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Booking id to ignore (reschedule)")] = None,
    config_file: ConfigOption = None,
):
    """
    Check whether a provider is already booked at a given time.

    Exits with status 2 when there is a conflict.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config)
        conflict = service.check_conflict(
            provider, date, time, duration_hours=duration, exclude_booking_id=exclude
        )
    except (BookingCoreError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if conflict:
        console.print(f"[red]✗ {provider} is not available on {date} at {time}[/red]")
        raise typer.Exit(2)

    console.print(f"[green]✓ {provider} is free on {date} at {time}[/green]")


@app.command("auto-assign")
def auto_assign(
    job_ids: Annotated[Optional[List[str]], typer.Argument(help="Job ids to assign. Defaults to all unassigned jobs.")] = None,
    strategy: Annotated[Optional[str], typer.Option("--strategy", "-s", help="distance, workload, rating or balanced")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show the plan without writing anything.")] = False,
    config_file: ConfigOption = None,
):
    """
    Assign unassigned jobs to the best available providers.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config)
        result = service.auto_assign(job_ids=job_ids or None, strategy=strategy, dry_run=dry_run)
    except (BookingCoreError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if result.total == 0:
        console.print("[yellow]No unassigned jobs found.[/yellow]")
        return

    title = "Planned assignments" if dry_run else "Assignments"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Job", style="bold yellow")
    table.add_column("Provider")
    table.add_column("Score", justify="right")
    table.add_column("Distance (km)", justify="right")

    for assignment in result.assignments:
        table.add_row(
            assignment.job_id,
            assignment.provider_id,
            f"{assignment.score:.1f}",
            f"{assignment.distance_km:.2f}",
        )

    console.print(table)
    console.print(f"[bold green]✓ {result.assigned} of {result.total} job(s) assigned[/bold green]")

    for error in result.errors:
        console.print(f"[yellow]⚠ {escape(error)}[/yellow]")


@app.command()
def providers(config_file: ConfigOption = None):
    """
    List the providers in the data file.
    """
    try:
        config = _load_config(config_file)
        store = InMemoryBookingStore.from_json(config.data_file or DEFAULT_DATA_FILE)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    table = Table(title="Providers", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold yellow")
    table.add_column("Status")
    table.add_column("Rating", justify="right")
    table.add_column("Radius (km)", justify="right")

    for provider in store.list_providers():
        table.add_row(
            provider.id,
            provider.availability_status.value,
            f"{provider.rating:.1f}" if provider.rating is not None else "-",
            f"{provider.service_radius_km:g}" if provider.service_radius_km is not None else "-",
        )

    console.print(table)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingcore[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
