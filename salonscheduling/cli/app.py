"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.table import Table

from ..adapters.api_client import AppointmentApiClient
from ..adapters.json_source import JsonAppointmentSource
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.rules import calculate_appointment_end_time, is_within_business_hours
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService
from ..services.conflict_checker import AppointmentSourceProtocol, ConflictChecker

app = typer.Typer(
    name="salonscheduling",
    help="Check appointment conflicts and list free slots for salon professionals",
    add_completion=False,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Salon scheduling engine."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def build_source(config: AppConfig) -> AppointmentSourceProtocol:
    """Pick the booking API when configured, otherwise the JSON export."""
    if config.api is not None:
        return AppointmentApiClient(
            base_url=config.api.base_url,
            access_token=config.api.token,
            timezone=config.timezone,
            timeout=config.api.timeout_seconds,
        )
    if config.data_file is not None:
        return JsonAppointmentSource(config.data_file, timezone=config.timezone)
    raise SchedulingError("Configure either 'api' or 'data_file' to read appointments from.")


def build_availability_service(config: AppConfig, source: AppointmentSourceProtocol) -> AvailabilityService:
    return AvailabilityService(
        source,
        SlotCalculator(business_hours=config.get_business_hours()),
        slot_duration_minutes=config.business_hours.slot_duration_minutes,
        buffer_minutes=config.business_hours.buffer_minutes,
    )


def _parse_datetime(value: str, tz: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid date/time '{value}': {e}")
    if not isinstance(parsed, DateTime):
        raise typer.BadParameter(f"Expected a date and time, got '{value}'")
    return parsed


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    professional: Annotated[str, typer.Argument(help="Professional alias or id")],
    day: Annotated[Optional[str], typer.Option("--date", help="Day (YYYY-MM-DD). Defaults to today")] = None,
    days: Annotated[int, typer.Option("--days", min=1, help="Number of days to list, starting at --date")] = 1,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", min=1, help="Slot duration in minutes")] = None,
    config_file: ConfigOption = None,
):
    """
    List free slots for a professional.

    Examples:

        salonscheduling slots ana --date 2024-11-25
        salonscheduling slots ana --date 2024-11-25 --days 7 --duration 60
    """
    try:
        config = _load_config(config_file)
        service = build_availability_service(config, build_source(config))
        professional_id = config.resolve_professional(professional)
        first_day = day or pendulum.today(config.timezone).to_date_string()
        slot_minutes = duration or config.business_hours.slot_duration_minutes

        if days == 1:
            by_day = {
                first_day: asyncio.run(
                    service.get_available_slots(
                        professional_id,
                        config.salon_id,
                        first_day,
                        slot_duration=slot_minutes,
                        work_start_hour=config.business_hours.start_hour,
                        work_end_hour=config.business_hours.end_hour,
                    )
                )
            }
        else:
            last_day = pendulum.from_format(first_day, "YYYY-MM-DD").add(days=days - 1).to_date_string()
            by_day = asyncio.run(
                service.get_availability_range(
                    professional_id, config.salon_id, first_day, last_day, slot_duration=slot_minutes
                )
            )
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print()
    for key, day_slots in by_day.items():
        if not day_slots:
            console.print(f"[yellow]⚠ {key}: no free slots.[/yellow]")
            continue

        console.print(f"[bold green]✓ {key}: {len(day_slots)} free slot(s)[/bold green]")
        for slot in day_slots:
            console.print(f"  {slot.start.format('HH:mm')} – {slot.end.format('HH:mm')}")
    console.print()


@app.command()
def check(
    professional: Annotated[str, typer.Argument(help="Professional alias or id")],
    start: Annotated[str, typer.Option("--start", help="Start (YYYY-MM-DD HH:mm)")],
    end: Annotated[Optional[str], typer.Option("--end", help="End (YYYY-MM-DD HH:mm)")] = None,
    service_durations: Annotated[
        Optional[List[int]],
        typer.Option("--service", "-s", help="Service duration in minutes; repeat per service"),
    ] = None,
    assistants: Annotated[
        Optional[List[str]], typer.Option("--assistant", "-a", help="Assistant id; repeatable")
    ] = None,
    exclude: Annotated[
        Optional[str], typer.Option("--exclude", help="Appointment id to ignore (rescheduling)")
    ] = None,
    config_file: ConfigOption = None,
):
    """
    Check whether a booking conflicts with existing appointments.

    Either give --end or one --service per booked service.
    """
    try:
        config = _load_config(config_file)
        start_at = _parse_datetime(start, config.timezone)
        if end is not None:
            end_at = _parse_datetime(end, config.timezone)
        elif service_durations:
            end_at = calculate_appointment_end_time(
                start_at, [{"duration": minutes} for minutes in service_durations]
            )
        else:
            raise typer.BadParameter("Provide --end or at least one --service duration")

        professional_id = config.resolve_professional(professional)
        checker = ConflictChecker(
            build_source(config), buffer_minutes=config.business_hours.buffer_minutes
        )
        conflict = asyncio.run(
            checker.check_booking(
                professional_id,
                config.salon_id,
                start_at,
                end_at,
                assistant_ids=assistants or (),
                exclude_appointment_id=exclude,
            )
        )

        alternatives = []
        day_hours = config.get_business_hours().window_for_day(start_at.date())
        if conflict.has_conflict and day_hours is not None:
            alternatives = asyncio.run(
                checker.find_alternative_slots(
                    professional_id,
                    config.salon_id,
                    day_hours,
                    int((end_at - start_at).total_seconds() // 60),
                    slot_interval=config.business_hours.alternative_interval_minutes,
                    assistant_ids=assistants or (),
                    exclude_appointment_id=exclude,
                )
            )
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    window = f"{start_at.format('DD.MM.YYYY HH:mm')} – {end_at.format('HH:mm')}"
    bh = config.business_hours
    if not is_within_business_hours(start_at, end_at, bh.start_hour, bh.end_hour):
        console.print(f"[yellow]⚠ {window} is outside business hours[/yellow]")

    if conflict.has_conflict:
        console.print(f"[bold red]✗ Conflict ({conflict.conflict_type.value}):[/bold red] {conflict.message}")
        if alternatives:
            starts = ", ".join(alt.format("HH:mm") for alt in alternatives)
            console.print(f"  Alternatives on {start_at.format('DD.MM.YYYY')}: {starts}")
        else:
            console.print("  No alternative start times that day.")
        raise typer.Exit(2)

    console.print(f"[bold green]✓ {window} is free[/bold green]")


@app.command(name="next")
def next_slot(
    professional: Annotated[str, typer.Argument(help="Professional alias or id")],
    from_day: Annotated[
        Optional[str], typer.Option("--from", help="First day (YYYY-MM-DD). Defaults to now")
    ] = None,
    search_days: Annotated[int, typer.Option("--search-days", min=1, help="Days to search")] = 30,
    config_file: ConfigOption = None,
):
    """
    Show the next free slot for a professional.

    Without --from the search starts now, so slots earlier today are skipped.
    """
    try:
        config = _load_config(config_file)
        service = build_availability_service(config, build_source(config))
        not_before = None
        if from_day is None:
            not_before = pendulum.now(config.timezone)
            from_day = not_before.to_date_string()
        slot = asyncio.run(
            service.find_next_available_slot(
                config.resolve_professional(professional),
                config.salon_id,
                from_day,
                search_days=search_days,
                not_before=not_before,
            )
        )
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    if slot is None:
        console.print(f"[yellow]⚠ No free slot within {search_days} day(s).[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Next free slot:[/bold green] {slot}")


@app.command()
def agenda(
    professional: Annotated[str, typer.Argument(help="Professional alias or id")],
    day: Annotated[Optional[str], typer.Option("--date", help="Day (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
):
    """
    Show appointments and time blocks of a professional for one day.
    """
    try:
        config = _load_config(config_file)
        service = build_availability_service(config, build_source(config))
        blocks = asyncio.run(
            service.get_occupied_blocks(
                config.resolve_professional(professional),
                config.salon_id,
                day or pendulum.today(config.timezone).to_date_string(),
            )
        )
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    if not blocks:
        console.print("[yellow]Nothing booked.[/yellow]")
        return

    table = Table(title="Agenda", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="bold")
    table.add_column("Type")
    table.add_column("Details", style="dim")
    for block in blocks:
        table.add_row(
            f"{block.slot.start.format('HH:mm')} – {block.slot.end.format('HH:mm')}",
            block.kind,
            block.label,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def team(
    day: Annotated[Optional[str], typer.Option("--date", help="Day (YYYY-MM-DD). Defaults to today")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", min=1, help="Slot duration in minutes")] = None,
    config_file: ConfigOption = None,
):
    """
    Compare availability of all configured professionals for one day.
    """
    try:
        config = _load_config(config_file)
        if not config.professionals:
            console.print("[yellow]No professionals defined in the config file.[/yellow]")
            return

        service = build_availability_service(config, build_source(config))
        results = asyncio.run(
            service.get_multi_professional_availability(
                [p.id for p in config.professionals],
                config.salon_id,
                day or pendulum.today(config.timezone).to_date_string(),
                slot_duration=duration,
            )
        )
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    names = {p.id: p.name for p in config.professionals}
    table = Table(title="Team availability", show_header=True, header_style="bold cyan")
    table.add_column("Name (Alias)", style="bold yellow")
    table.add_column("Next free")
    table.add_column("Free slots", justify="right")
    for result in results:
        next_free = result.next_available.format("HH:mm") if result.next_available else "-"
        table.add_row(names[result.professional_id], next_free, str(len(result.slots)))

    console.print()
    console.print(table)
    console.print()


@app.command()
def hours(
    start: Annotated[str, typer.Option("--start", help="Start (YYYY-MM-DD HH:mm)")],
    end: Annotated[str, typer.Option("--end", help="End (YYYY-MM-DD HH:mm)")],
    config_file: ConfigOption = None,
):
    """
    Check an interval against the configured business hours.
    """
    try:
        config = _load_config(config_file)
        start_at = _parse_datetime(start, config.timezone)
        end_at = _parse_datetime(end, config.timezone)
    except (ValueError, FileNotFoundError) as e:
        _fail(e)

    bh = config.business_hours
    if is_within_business_hours(start_at, end_at, bh.start_hour, bh.end_hour):
        console.print(f"[green]✓ Within business hours ({bh.start_hour}:00 - {bh.end_hour}:00)[/green]")
    else:
        console.print(f"[red]✗ Outside business hours ({bh.start_hour}:00 - {bh.end_hour}:00)[/red]")
        raise typer.Exit(1)


@app.command()
def list_professionals(config_file: ConfigOption = None):
    """
    List all configured professionals.
    """
    try:
        config = _load_config(config_file)
    except (ValueError, FileNotFoundError) as e:
        _fail(e)

    if not config.professionals:
        console.print("[yellow]No professionals defined in the config file.[/yellow]")
        return

    table = Table(title="Configured professionals", show_header=True, header_style="bold cyan")
    table.add_column("Name (Alias)", style="bold yellow")
    table.add_column("ID", style="dim")

    for professional in config.professionals:
        table.add_row(professional.name, professional.id)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonscheduling[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
