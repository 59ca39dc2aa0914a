"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.memory_store import JsonFileRecordStore
from ..config import AppConfig, get_default_config_path
from ..domain.conversion import TimeConverter
from ..domain.exceptions import SchedulingError
from ..domain.models import SlotSpec, Student, TeacherProfile
from ..domain.scheduling import sort_by_start
from ..domain.timezones import DEFAULT_REGISTRY
from ..services.scheduling_board import SchedulingBoard

app = typer.Typer(
    name="tutorboard",
    help="Publish teacher availability and book students across timezones",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./tutorboard.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="Path to the board's JSON data file")]


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the explicit config file, or the default one if present."""
    try:
        if config_file:
            config = AppConfig.load_from_yaml(config_file)
        else:
            config = AppConfig.load_or_default(get_default_config_path())
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return config


def _open_board(config_file: Optional[Path], data_file: Optional[Path]) -> Tuple[AppConfig, SchedulingBoard]:
    config = _load_config(config_file)
    try:
        store = JsonFileRecordStore(data_file or config.data_file)
    except ValueError as e:
        _fail(e)

    return config, SchedulingBoard(store=store, converter=TimeConverter(registry=DEFAULT_REGISTRY))


def _parse_slot_option(value: str, default_zone: str) -> SlotSpec:
    """
    Parse a ``--slot`` value of the form ``DAY TIME [ZONE]``.

    The zone falls back to ``default_zone`` when omitted.
    """
    parts = value.split()
    if len(parts) == 2:
        return SlotSpec(weekday=parts[0], local_time=parts[1], timezone=default_zone)
    if len(parts) == 3:
        return SlotSpec(weekday=parts[0], local_time=parts[1], timezone=parts[2])
    raise typer.BadParameter(f"Expected 'DAY TIME [ZONE]', got {value!r}", param_hint="--slot")


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def zones():
    """
    List the supported timezones.
    """
    table = Table(title="Timezones", show_header=True, header_style="bold cyan")
    table.add_column("Code", style="bold yellow")
    table.add_column("Zone")
    table.add_column("Label", style="dim")

    for entry in DEFAULT_REGISTRY:
        table.add_row(entry.code, entry.zone, entry.label)

    console.print()
    console.print(table)
    console.print()


@app.command()
def convert(
    day: Annotated[Optional[str], typer.Argument(help="Weekday, e.g. 'Monday' or 'mon'")] = None,
    time: Annotated[Optional[str], typer.Argument(help="24-hour time, e.g. '09:00'")] = None,
    zone: Annotated[Optional[str], typer.Option("--zone", "-z", help="Timezone code the time is given in")] = None,
    config_file: ConfigOption = None,
):
    """
    Show this week's DAY TIME in UTC and in every display timezone.
    """
    config = _load_config(config_file)
    converter = TimeConverter(registry=DEFAULT_REGISTRY)

    try:
        instant = converter.to_utc_string(
            day or config.defaults.weekday,
            time or config.defaults.time,
            DEFAULT_REGISTRY.validate(zone or config.default_timezone),
        )
    except SchedulingError as e:
        _fail(e)

    console.print(f"\n[bold]UTC:[/bold] {instant}\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Zone", style="bold yellow")
    table.add_column("Date")
    table.add_column("Time", style="bold")

    for code in config.display_timezones:
        table.add_row(code, converter.format_date(instant, code), converter.format_clock(instant, code))

    console.print(table)
    console.print()


@app.command("add-teacher")
def add_teacher(
    name: Annotated[str, typer.Argument(help="Teacher's display name")],
    subject: Annotated[str, typer.Argument(help="Subject taught")],
    zone: Annotated[Optional[str], typer.Option("--zone", "-z", help="Teacher's home timezone code")] = None,
    slots: Annotated[Optional[List[str]], typer.Option("--slot", "-s", help="Availability as 'DAY TIME [ZONE]'; repeatable")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Add a teacher with their weekly availability.

    Examples:

        tutorboard add-teacher "Dr. Evelyn Reed" "Quantum Physics" --zone EST --slot "Mon 09:00" --slot "Tue 10:00 PST"
    """
    config, board = _open_board(config_file, data_file)
    home_zone = zone or config.default_timezone

    specs = [_parse_slot_option(value, home_zone) for value in slots or []]

    try:
        teacher, created = board.add_teacher(TeacherProfile(name=name, subject=subject, timezone=home_zone), specs)
    except SchedulingError as e:
        _fail(e)

    console.print(f"\n[green]✓ Added {teacher.name}[/green] [dim]({teacher.id})[/dim]")
    for slot in created:
        console.print(f"  {board.converter.format_in_zone(slot.utc_start_time, teacher.timezone)}  [dim]{slot.id}[/dim]")

    dropped = len(specs) - len(created)
    if dropped:
        console.print(f"[yellow]⚠ {dropped} slot(s) could not be converted and were skipped.[/yellow]")
    console.print()


@app.command("add-slot")
def add_slot(
    teacher_id: Annotated[str, typer.Argument(help="Teacher id")],
    day: Annotated[Optional[str], typer.Argument(help="Weekday; defaults to the configured weekday")] = None,
    time: Annotated[Optional[str], typer.Argument(help="24-hour time; defaults to the configured time")] = None,
    zone: Annotated[Optional[str], typer.Option("--zone", "-z", help="Timezone code; defaults to the teacher's")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Add one availability slot to an existing teacher.
    """
    config, board = _open_board(config_file, data_file)
    spec_day = day or config.defaults.weekday
    spec_time = time or config.defaults.time

    try:
        teacher = board.get_teacher(teacher_id)
        slot = board.add_slot(teacher.id, SlotSpec(weekday=spec_day, local_time=spec_time, timezone=zone or teacher.timezone))
    except SchedulingError as e:
        _fail(e)

    console.print(
        f"\n[green]✓ Slot added:[/green] {board.converter.format_in_zone(slot.utc_start_time, teacher.timezone)} "
        f"[dim]({slot.id})[/dim]\n"
    )


@app.command()
def assign(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    student: Annotated[str, typer.Argument(help="Student's display name")],
    zone: Annotated[Optional[str], typer.Option("--zone", "-z", help="Student's timezone code")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Book a student into a slot, replacing any current booking.
    """
    config, board = _open_board(config_file, data_file)

    try:
        slot = board.get_slot(slot_id)
        updated = board.assign_student(slot.id, Student(name=student, timezone=zone or config.default_timezone))
    except SchedulingError as e:
        _fail(e)

    teacher = board.find_teacher(updated.teacher_id)
    console.print("\n[green]✓ Schedule confirmed[/green]")
    if teacher:
        console.print(f"  Teacher time: {board.converter.format_in_zone(updated.utc_start_time, teacher.timezone)} ({teacher.timezone})")
    console.print(
        f"  Student time: {board.converter.format_in_zone(updated.utc_start_time, updated.student.timezone)} "
        f"({updated.student.timezone})\n"
    )


@app.command()
def clear(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Remove the student booked into a slot.
    """
    _, board = _open_board(config_file, data_file)

    try:
        slot = board.get_slot(slot_id)
    except SchedulingError as e:
        _fail(e)

    if not slot.is_occupied:
        console.print("\n[yellow]Slot is not booked.[/yellow]\n")
        return

    board.clear_student(slot.id)
    console.print(f"\n[green]✓ Booking for {slot.student.name} removed.[/green]\n")


@app.command("delete-teacher")
def delete_teacher(
    teacher_id: Annotated[str, typer.Argument(help="Teacher id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Delete a teacher and all of their availability slots.
    """
    _, board = _open_board(config_file, data_file)

    try:
        teacher = board.get_teacher(teacher_id)
    except SchedulingError as e:
        _fail(e)

    slot_count = len(board.teacher_slots(teacher.id))
    if not yes:
        typer.confirm(
            f"This will permanently delete {teacher.name} and {slot_count} slot(s). Continue?",
            abort=True,
        )

    board.delete_teacher(teacher.id)
    console.print(f"\n[green]✓ {teacher.name} and all their slots have been removed.[/green]\n")


@app.command()
def dashboard(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show every teacher with their slots in all display timezones.
    """
    config, board = _open_board(config_file, data_file)
    converter = board.converter

    if not board.teachers:
        console.print("\n[yellow]No teachers found. Add a new teacher to get started.[/yellow]\n")
        return

    for teacher in sorted(board.teachers, key=lambda t: t.name.lower()):
        table = Table(
            title=f"{teacher.name} · {teacher.subject}",
            caption=DEFAULT_REGISTRY.label(teacher.timezone),
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Slot", style="dim")
        for code in config.display_timezones:
            table.add_column(code)
        table.add_column("Student", style="bold green")

        for slot in board.teacher_slots(teacher.id):
            booked = f"{slot.student.name} ({slot.student.timezone})" if slot.student else "-"
            table.add_row(
                slot.id,
                *[converter.format_in_zone(slot.utc_start_time, code) for code in config.display_timezones],
                booked,
            )

        console.print()
        console.print(table)
    console.print()


@app.command()
def scheduled(
    teacher_id: Annotated[Optional[str], typer.Option("--teacher", "-t", help="Only show this teacher's bookings")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List all booked slots in chronological order.
    """
    _, board = _open_board(config_file, data_file)
    converter = board.converter

    sessions = sort_by_start(board.list_scheduled(teacher_id=teacher_id))

    table = Table(
        title="Scheduled Times",
        caption="A list of all scheduled times.",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Teacher", style="bold")
    table.add_column("Subject")
    table.add_column("Student")
    table.add_column("Teacher's Time")
    table.add_column("Student's Time")

    for session in sessions:
        teacher = session.teacher
        student = session.student
        table.add_row(
            teacher.name if teacher else "N/A",
            teacher.subject if teacher else "N/A",
            student.name,
            f"{converter.format_in_zone(session.utc_start_time, teacher.timezone)} ({teacher.timezone})" if teacher else "",
            f"{converter.format_in_zone(session.utc_start_time, student.timezone)} ({student.timezone})",
        )

    console.print()
    if sessions:
        console.print(table)
    else:
        console.print("[yellow]No times scheduled yet.[/yellow]")
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]tutorboard[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
