"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Dict, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_busy_source import JsonBusySource
from ..config import EngineConfig, get_default_config_path
from ..domain.exceptions import SlotEngineError
from ..domain.models import AvailabilityQuery, Slot
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="slotengine",
    help="Compute bookable appointment slots from working hours, overrides and busy time",
    add_completion=False
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def _load_config(config_file: Optional[Path]) -> EngineConfig:
    """Load the schedule config, turning failures into a clean exit."""
    config_path = config_file or get_default_config_path()
    try:
        return EngineConfig.load_from_yaml(config_path)
    except (FileNotFoundError, SlotEngineError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _build_service(config: EngineConfig) -> AvailabilityService:
    busy_sources = []
    if config.calendar_file is not None:
        busy_sources.append(JsonBusySource(config.calendar_file, calendar_id=config.calendar_id))
    return AvailabilityService(busy_sources=busy_sources)


def _parse_day(value: str, tz: str, option: str) -> pendulum.DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).start_of("day")
    except ValueError as e:
        console.print(f"[red]Could not parse {option} date: {e}[/red]")
        raise typer.Exit(1)


def _determine_window(tz: str, start_option: Optional[str], end_option: Optional[str]):
    """
    Resolve the query window: from the start day's midnight up to the
    midnight after the end day.
    """
    if start_option:
        start_date = _parse_day(start_option, tz, "--start")
    else:
        start_date = pendulum.now(tz).start_of("day")

    if end_option:
        end_day = _parse_day(end_option, tz, "--end")
    else:
        end_day = start_date.add(days=7)

    end_date = end_day.add(days=1).start_of("day")

    if end_date <= start_date:
        console.print("[red]The end date must not be before the start date.[/red]")
        raise typer.Exit(1)

    return start_date, end_date


def _group_slots_by_day(slots: List[Slot]) -> Dict[str, List[Slot]]:
    grouped: Dict[str, List[Slot]] = {}
    for slot in slots:
        grouped.setdefault(slot.time.format("ddd, DD.MM.YYYY"), []).append(slot)
    return grouped


@app.command()
def slots(
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to schedule file. Defaults to ./schedule.yaml")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD), defaults to today")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last day (YYYY-MM-DD), defaults to start + 7 days")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Event length in minutes")] = None,
    interval: Annotated[Optional[int], typer.Option("--interval", "-i", help="Minutes between slot starts")] = None,
    notice: Annotated[Optional[int], typer.Option("--notice", help="Minimum booking notice in minutes")] = None,
    show_ranges: Annotated[bool, typer.Option("--ranges", help="Also list the free ranges slots were cut from.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    List bookable slots for the configured schedule.

    Examples:

        slotengine slots
        slotengine slots --start 2024-11-25 --end 2024-11-29 --duration 60
        slotengine slots -c salon.yaml --interval 15 --ranges
    """
    _configure_logging(verbose)
    config = _load_config(config_file)
    tz = config.timezone

    date_from, date_to = _determine_window(tz, start, end)

    query = AvailabilityQuery(
        availability=config.availability(),
        timezone=tz,
        date_from=date_from,
        date_to=date_to,
        event_length=duration if duration is not None else config.defaults.event_length,
        slot_interval=interval if interval is not None else config.defaults.slot_interval,
        minimum_booking_notice=notice if notice is not None else config.defaults.minimum_booking_notice,
    )

    result = _build_service(config).find_slots(query, bookings=config.to_bookings())

    console.print(f"\n[bold cyan]Slots[/bold cyan] {date_from.format('DD.MM.YYYY')} - "
                  f"{date_to.subtract(days=1).format('DD.MM.YYYY')} ({tz})")
    console.print(f"   Event length: {query.event_length} min, every {query.frequency} min, "
                  f"notice {query.minimum_booking_notice} min\n")

    if show_ranges:
        table = Table(title="Free ranges", show_header=True, header_style="bold cyan")
        table.add_column("Range", style="bold yellow")
        table.add_column("Minutes", justify="right", style="dim")
        for date_range in result.date_ranges:
            table.add_row(str(date_range), str(date_range.duration_minutes()))
        console.print(table)
        console.print()

    if not result.slots:
        console.print("[yellow]No bookable slots found.[/yellow]\n")
        return

    console.print(f"[bold green]{len(result.slots)} slot(s) found:[/bold green]\n")
    for day, day_slots in _group_slots_by_day(result.slots).items():
        times = ", ".join(slot.time.format("HH:mm") for slot in day_slots)
        console.print(f"  [bold]{day}[/bold]  {times}")
    console.print()


@app.command()
def check(
    start: Annotated[str, typer.Argument(help="Requested start, e.g. '2024-11-25 10:30' (schedule timezone)")],
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to schedule file")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Event length in minutes")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Check whether a booking starting at START would fit the schedule.

    Exits with code 0 when the time is available and 1 otherwise.
    """
    _configure_logging(verbose)
    config = _load_config(config_file)
    tz = config.timezone

    try:
        slot_start = pendulum.parse(start, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse start time: {e}[/red]")
        raise typer.Exit(1)

    # Durations and bare times parse too
    if not isinstance(slot_start, pendulum.DateTime):
        console.print(f"[red]Could not parse start time: {start!r} is not a date and time[/red]")
        raise typer.Exit(1)

    length = duration if duration is not None else config.defaults.event_length
    slot_end = slot_start.add(minutes=length)

    available = _build_service(config).check_slot(
        slot_start=slot_start,
        slot_end=slot_end,
        availability=config.availability(),
        timezone=tz,
        bookings=config.to_bookings(),
    )

    label = f"{slot_start.format('DD.MM.YYYY HH:mm')} - {slot_end.format('HH:mm')}"
    if available:
        console.print(Panel.fit(
            f"[bold green]✓ {label} is available[/bold green]\n\n"
            f"[bold]Timezone:[/bold] {tz}",
            title="✓ Slot check"
        ))
        return

    console.print(f"[red]✗ {label} is not available[/red]")
    raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
