"""
Main CLI application using Typer.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.availability import AvailabilityResolver
from ..domain.exceptions import NoSlotAvailableError, SchedulingError
from ..domain.models import DoctorTimeline
from ..domain.slot_grid import SlotGrid
from ..adapters.api_client import AppointmentApiClient
from ..adapters.cached_store import CachedAppointmentStore
from ..adapters.json_store import JsonAppointmentStore
from ..services.scheduling import AppointmentStoreProtocol, SchedulingService

app = typer.Typer(
    name="clinicscheduler",
    help="Check doctor availability and find free appointment slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the bundled sample appointments instead of the backend.")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="JSON appointment file for --mock mode.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig, mock: bool, data_file: Optional[Path]) -> SchedulingService:
    """Wire the configured store, cache and resolver together."""
    store: AppointmentStoreProtocol
    if mock:
        store = JsonAppointmentStore(data_file=data_file, timezone=config.timezone)
    else:
        store = AppointmentApiClient(
            base_url=config.store.base_url,
            api_token=config.store.api_token,
            timeout=config.store.timeout_seconds,
            timezone=config.timezone,
        )

    if config.store.cache_ttl_seconds:
        store = CachedAppointmentStore(store, ttl_seconds=config.store.cache_ttl_seconds)

    resolver = AvailabilityResolver(
        slot_grid=config.schedule.to_slot_grid(),
        lookahead_days=config.schedule.lookahead_days,
        closed_weekdays=config.closed_weekdays,
    )
    return SchedulingService(
        store=store,
        resolver=resolver,
        lookahead_days=config.schedule.lookahead_days,
    )


def _parse_moment(value: str, tz: str) -> DateTime:
    """Parse 'YYYY-MM-DD HH:mm' in the configured timezone."""
    try:
        return pendulum.from_format(value, "YYYY-MM-DD HH:mm", tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Expected YYYY-MM-DD HH:mm, got '{value}' ({e})")


def _parse_day(value: str, tz: str) -> DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).start_of("day")
    except ValueError as e:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got '{value}' ({e})")


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def check(
    doctor: Annotated[str, typer.Argument(help="Doctor alias from the config, or the store's doctor id.")],
    at: Annotated[str, typer.Option("--at", help="Requested start (YYYY-MM-DD HH:mm)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Appointment id being edited; it never conflicts with itself.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the answer as JSON.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Check whether a doctor is free at a given time.

    Examples:

        clinicscheduler check house --at "2024-11-25 09:15" --duration 15

        clinicscheduler check house --at "2024-11-25 09:15" --exclude apt-1001 --json
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        start = _parse_moment(at, config.timezone)
        doctor_id = config.resolve_doctor(doctor)
        minutes = duration if duration is not None else config.schedule.duration_minutes

        service = _build_service(config, mock, data_file)
        result = service.check_availability(
            doctor_id=doctor_id,
            start=start,
            duration_minutes=minutes,
            exclude_appointment_id=exclude,
        )
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(str(e))

    if as_json:
        typer.echo(json.dumps(result.to_dict()))
        return

    window = f"{start.format('ddd, DD.MM.YYYY HH:mm')} ({minutes} min)"
    if result.available:
        console.print(f"[bold green]✓ {doctor_id} is available[/bold green] {window}")
    else:
        console.print(f"[bold yellow]✗ {doctor_id} is NOT available[/bold yellow] {window}")
        console.print(f"  Conflicts with {result.conflict.appointment_id}: {result.conflict.format_display()}")


@app.command("next-slot")
def next_slot(
    doctor: Annotated[str, typer.Argument(help="Doctor alias from the config, or the store's doctor id.")],
    after: Annotated[Optional[str], typer.Option("--after", help="Earliest start (YYYY-MM-DD HH:mm). Defaults to now.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Days to search, including the first.")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Appointment id being edited.")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Suggest the next free grid-aligned slot for a doctor.

    Start times are rounded up to the slot grid: with 30-minute slots a
    search from 09:05 begins at 09:30.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        not_before = _parse_moment(after, config.timezone) if after else pendulum.now(config.timezone)
        doctor_id = config.resolve_doctor(doctor)
        minutes = duration if duration is not None else config.schedule.duration_minutes
        if days is not None and days < 1:
            raise typer.BadParameter("--days must be at least 1")

        service = _build_service(config, mock, data_file)
        slot = service.suggest_next_slot(
            doctor_id=doctor_id,
            not_before=not_before,
            duration_minutes=minutes,
            exclude_appointment_id=exclude,
            lookahead_days=days,
        )
    except NoSlotAvailableError as e:
        console.print(f"[yellow]⚠ {e}.[/yellow]")
        console.print("Try a shorter duration or a longer search (--days).")
        raise typer.Exit(1)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(str(e))

    end = slot.add(minutes=minutes)
    console.print(
        f"[bold green]✓ Next free slot for {doctor_id}:[/bold green] "
        f"{slot.format('ddd, DD.MM.YYYY HH:mm')} - {end.format('HH:mm')}"
    )


def _render_timeline(grid: SlotGrid, timelines: List[DoctorTimeline], day: DateTime) -> Table:
    table = Table(
        title=f"Appointments {day.format('ddd, DD.MM.YYYY')}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Doctor", style="bold yellow", no_wrap=True)
    boundaries = list(grid.slot_boundaries())
    for _, boundary in boundaries:
        table.add_column(boundary.strftime("%H:%M"), justify="center")

    for timeline in timelines:
        occupied = timeline.occupied_slots()
        cells = []
        for index, _ in boundaries:
            placed = occupied.get(index)
            if placed is None:
                cells.append("")
            elif placed.slot_index == index:
                cells.append(placed.appointment.patient_label or placed.appointment.appointment_id)
            else:
                cells.append("·")
        table.add_row(timeline.doctor_id, *cells)

    return table


@app.command()
def timeline(
    doctors: Annotated[Optional[List[str]], typer.Argument(help="Doctors to show. Defaults to all configured doctors.")] = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Day to show (YYYY-MM-DD). Defaults to today.")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show each doctor's appointments for a day on the slot grid.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        day = _parse_day(date, config.timezone) if date else pendulum.today(config.timezone)
        doctor_ids = config.resolve_doctors(doctors or [d.name for d in config.doctors])
        if not doctor_ids:
            raise ValueError("No doctors given and none configured.")

        service = _build_service(config, mock, data_file)
        timelines = service.build_timeline(doctor_ids=doctor_ids, day=day)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(str(e))

    console.print()
    console.print(_render_timeline(service.resolver.slot_grid, timelines, day))

    off_grid = [appt for tl in timelines for appt in tl.off_grid]
    if off_grid:
        console.print("\n[bold]Outside working hours:[/bold]")
        for appt in off_grid:
            console.print(f"  {appt.doctor_id}: {appt.format_display()}")
    console.print()


@app.command("list-doctors")
def list_doctors(
    config_file: ConfigOption = None,
):
    """
    List all configured doctors.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    if not config.doctors:
        console.print("[yellow]No doctors defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured doctors",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Name (Alias)", style="bold yellow")
    table.add_column("Store id", style="dim")

    for doctor in config.doctors:
        table.add_row(doctor.name, doctor.doctor_id)

    console.print()
    console.print(table)
    console.print(Panel.fit(
        f"Working hours {config.schedule.work_start_hour}:00 - {config.schedule.work_end_hour}:00, "
        f"{config.schedule.slot_minutes}-minute slots, timezone {config.timezone}",
        title="Schedule"
    ))
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]clinicscheduler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
