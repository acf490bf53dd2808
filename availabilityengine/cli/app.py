"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import pendulum
import typer
from pendulum import Date, DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.snapshot_provider import SnapshotProvider
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import AvailabilityError
from ..domain.models import WEEKDAY_NAMES, BookingRequest
from ..domain.resolver import AvailabilityResolver
from ..services.availability_service import AvailabilityService, slots_to_payload

app = typer.Typer(
    name="availabilityengine",
    help="Resolve bookable appointment slots from business hours, time-off and bookings",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
SnapshotOption = Annotated[
    Optional[Path],
    typer.Option("--snapshot", help="Time-off/appointment snapshot file. Overrides snapshot_file from the config."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Resolve bookable appointment slots.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> Tuple[AppConfig, Path]:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path), config_path


def _build_service(
    config: AppConfig,
    config_path: Path,
    snapshot: Optional[Path],
) -> AvailabilityService:
    """Wire the snapshot provider and the resolver into a service."""
    snapshot_path = snapshot or config.get_snapshot_path(config_path)
    provider = SnapshotProvider(snapshot_path, timezone=config.timezone)
    resolver = AvailabilityResolver(
        calendar=config.build_calendar(),
        policy=config.policy.to_policy(),
    )
    return AvailabilityService(
        time_off_provider=provider,
        appointment_provider=provider,
        resolver=resolver,
    )


def _parse_date(value: str, tz: str, label: str) -> Date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse {label} '{value}': {e}[/red]")
        raise typer.Exit(1)


def _parse_now(value: Optional[str], tz: str) -> Optional[DateTime]:
    if value is None:
        return None
    try:
        return pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse --now '{value}': {e}[/red]")
        raise typer.Exit(1)


def _build_request(
    config: AppConfig,
    date: Date,
    duration: Optional[int],
    services: Optional[List[str]],
) -> BookingRequest:
    """Turn --duration or --service options into a booking request."""
    if duration is not None and services:
        console.print("[red]Error: use either --duration or --service, not both.[/red]")
        raise typer.Exit(1)

    if services:
        try:
            items = config.resolve_services(services)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)
        return BookingRequest.from_services(date, items)

    if duration is None:
        console.print("[red]Error: provide --duration or at least one --service.[/red]")
        raise typer.Exit(1)

    return BookingRequest(date=date, total_duration_minutes=duration)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Date to search (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Total duration in minutes")] = None,
    service: Annotated[Optional[List[str]], typer.Option("--service", "-s", help="Configured service name; repeat to stack services")] = None,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Evaluate as of this ISO-8601 instant instead of the current time")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print {\"slots\": [...]} instead of a table")] = False,
):
    """
    List bookable start times on a date.

    Examples:

        # Fixed duration
        availabilityengine slots 2024-11-25 --duration 60

        # Stack configured services (durations and buffers add up)
        availabilityengine slots 2024-11-25 -s facial -s brow-tint

        # Machine-readable output
        availabilityengine slots 2024-11-25 -d 30 --json
    """
    try:
        config, config_path = _load_config(config_file)
        tz = config.timezone

        target_date = _parse_date(date, tz, "date")
        request = _build_request(config, target_date, duration, service)
        now_instant = _parse_now(now, tz)

        availability = _build_service(config, config_path, snapshot)
        found = asyncio.run(
            availability.find_slots_for_request(request, now=now_instant)
        )
    except (FileNotFoundError, AvailabilityError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(slots_to_payload(found)))
        return

    console.print()
    if not found:
        console.print(
            f"[yellow]⚠ No bookable slots on {target_date.format('YYYY-MM-DD')} "
            f"for {request.total_duration_minutes} minutes.[/yellow]"
        )
    else:
        console.print(
            f"[bold green]✓ {len(found)} bookable slot(s) "
            f"({request.total_duration_minutes} min):[/bold green]\n"
        )
        for slot in found:
            console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def hours(
    config_file: ConfigOption = None,
):
    """
    Show the weekly business hours, including default fallbacks.
    """
    try:
        config, _ = _load_config(config_file)
        calendar = config.build_calendar()
    except (FileNotFoundError, AvailabilityError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(
        title=f"Business hours ({config.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Open")
    table.add_column("Windows")
    table.add_column("Source", style="dim")

    for day in (1, 2, 3, 4, 5, 6, 0):
        entry = calendar.hours_for_day(day)
        is_open = entry.is_open and bool(entry.time_slots)
        windows = ", ".join(
            f"{entry.time_slots[i]}-{entry.time_slots[i + 1]}"
            for i in range(0, len(entry.time_slots), 2)
        ) if is_open else "-"
        table.add_row(
            WEEKDAY_NAMES[day],
            "yes" if is_open else "no",
            windows,
            "default" if calendar.uses_default(day) else "configured",
        )

    console.print()
    console.print(table)
    console.print()


@app.command("time-off")
def time_off(
    start: Annotated[str, typer.Argument(help="First date (YYYY-MM-DD)")],
    end: Annotated[str, typer.Argument(help="Last date, inclusive (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
):
    """
    List time-off occurrences between two dates, recurring ones expanded.
    """
    try:
        config, config_path = _load_config(config_file)
        tz = config.timezone

        start_date = _parse_date(start, tz, "start date")
        end_date = _parse_date(end, tz, "end date")
        if end_date < start_date:
            console.print("[red]Error: end date must not be before start date.[/red]")
            raise typer.Exit(1)

        range_start = pendulum.datetime(start_date.year, start_date.month, start_date.day, tz=tz)
        range_end = pendulum.datetime(end_date.year, end_date.month, end_date.day, tz=tz).add(days=1)

        availability = _build_service(config, config_path, snapshot)
        occurrences = asyncio.run(
            availability.find_time_off(range_start=range_start, range_end=range_end)
        )
    except (FileNotFoundError, AvailabilityError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not occurrences:
        console.print("\n[yellow]No time-off in this range.[/yellow]\n")
        return

    table = Table(title="Time-off", show_header=True, header_style="bold cyan")
    table.add_column("Title", style="bold yellow")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Repeats", style="dim")

    for period, occurrence in occurrences:
        table.add_row(
            period.title,
            occurrence.start.in_timezone(tz).format("ddd YYYY-MM-DD HH:mm"),
            occurrence.end.in_timezone(tz).format("ddd YYYY-MM-DD HH:mm"),
            period.recurrence_pattern.value if period.repeats else "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]availabilityengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
