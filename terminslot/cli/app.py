"""
Main CLI application using Typer.
"""

from datetime import date
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..adapters.api_client import BookingAPIClient
from ..adapters.calendar_export import build_ics, google_calendar_url, ics_filename
from ..adapters.mock_api_client import MockBookingAPIClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import TerminslotError
from ..domain.models import WEEKDAY_NAMES_BS, AppointmentDetails, DayStatus
from ..logging_config import configure_logging
from ..services.booking import BookingRequest, BookingService, GuestContact

app = typer.Typer(
    name="terminslot",
    help="Slobodni termini i zakazivanje pregleda",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Mock-podaci umjesto API-ja.")]

STATUS_STYLES = {
    DayStatus.AVAILABLE: "green",
    DayStatus.FULLY_BOOKED: "bold red",
    DayStatus.CLOSED: "dim strike",
}


def _load_config(config_file: Optional[Path]) -> AppConfig:
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)
    return AppConfig.load_or_default(get_default_config_path())


def _build_service(config: AppConfig, mock: bool) -> BookingService:
    """Return a booking service talking to the selected backend."""
    if mock:
        client = MockBookingAPIClient(timezone=config.timezone)
    else:
        client = BookingAPIClient(
            base_url=config.api.base_url,
            token=config.api_token(),
            timeout=config.api.timeout_seconds,
        )
    return BookingService(api_client=client, config=config)


def _parse_date(value: str, tz: str) -> date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        raise ValueError(f"Neispravan datum '{value}' (očekivano YYYY-MM-DD)") from e


def _format_day(day: date) -> str:
    return f"{WEEKDAY_NAMES_BS[day.weekday()]}, {day.strftime('%d.%m.%Y.')}"


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Greška:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    doctor_id: Annotated[int, typer.Argument(help="ID doktora")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Datum (YYYY-MM-DD). Zadano: prvi slobodan dan za zakazivanje")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List free appointment times for one day.

    Examples:

        terminslot slots 12 --date 2026-11-02
        terminslot slots 1 --mock
    """
    try:
        config = _load_config(config_file)
        configure_logging(config.log_level)
        service = _build_service(config, mock)

        target = _parse_date(day, config.timezone) if day else service.earliest_bookable_day()
        doctor = service.load_doctor(doctor_id)
        free = service.available_slots(doctor_id, target)

        console.print(f"\n[bold cyan]{doctor.display_name}[/bold cyan] - {_format_day(target)}\n")

        if not doctor.is_configured:
            console.print(
                "[yellow]Doktor nema definisano radno vrijeme. "
                "Molimo kontaktirajte direktno telefonom.[/yellow]\n"
            )
            return

        if not free:
            console.print("[yellow]Nema dostupnih termina za izabrani datum.[/yellow]\n")
            return

        console.print(f"[bold green]Dostupni termini ({len(free)}):[/bold green]")
        console.print("  " + "  ".join(free))
        console.print()

    except (TerminslotError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def calendar(
    doctor_id: Annotated[int, typer.Argument(help="ID doktora")],
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="Mjesec (YYYY-MM). Zadano: tekući mjesec")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show a month calendar with available, fully booked and closed days.
    """
    try:
        config = _load_config(config_file)
        configure_logging(config.log_level)
        service = _build_service(config, mock)

        if month:
            try:
                first = pendulum.from_format(month, "YYYY-MM", tz=config.timezone).date()
            except ValueError as e:
                raise ValueError(f"Neispravan mjesec '{month}' (očekivano YYYY-MM)") from e
        else:
            first = service.today().replace(day=1)

        statuses = service.month_overview(doctor_id, first.year, first.month)
        doctor = service.load_doctor(doctor_id)

        table = Table(
            title=f"{doctor.display_name} - {first.month:02d}/{first.year}",
            show_header=True,
            header_style="bold cyan"
        )
        for name in WEEKDAY_NAMES_BS:
            table.add_column(name[:3].capitalize(), justify="right")

        row = [""] * first.weekday()
        for day, status in statuses.items():
            row.append(f"[{STATUS_STYLES[status]}]{day.day}[/{STATUS_STYLES[status]}]")
            if len(row) == 7:
                table.add_row(*row)
                row = []
        if row:
            table.add_row(*(row + [""] * (7 - len(row))))

        console.print()
        console.print(table)
        console.print(
            "[green]●[/green] Dostupni termini   "
            "[red]●[/red] Popunjeno   "
            "[dim]●[/dim] Zatvoreno\n"
        )

    except (TerminslotError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def book(
    doctor_id: Annotated[int, typer.Argument(help="ID doktora")],
    time: Annotated[str, typer.Option("--time", "-t", help="Vrijeme (HH:MM)")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Datum (YYYY-MM-DD). Uz --visit zadano: datum gostovanja")] = None,
    service_id: Annotated[Optional[int], typer.Option("--service", help="ID usluge")] = None,
    note: Annotated[Optional[str], typer.Option("--note", help="Napomena")] = None,
    visit_id: Annotated[Optional[int], typer.Option("--visit", help="ID gostovanja u drugoj klinici")] = None,
    first_name: Annotated[Optional[str], typer.Option("--first-name", help="Ime (gost)")] = None,
    last_name: Annotated[Optional[str], typer.Option("--last-name", help="Prezime (gost)")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="E-mail (gost)")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", help="Telefon (gost)")] = None,
    ics_path: Annotated[Optional[Path], typer.Option("--ics", help="Snimi termin kao .ics (datoteka ili folder)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book an appointment. Without an API token the guest contact fields are required.
    """
    try:
        config = _load_config(config_file)
        configure_logging(config.log_level)
        service = _build_service(config, mock)

        guest = None
        if any((first_name, last_name, email, phone)) or not (mock or config.api_token()):
            if not all((first_name, last_name, email, phone)):
                raise ValueError("Za zakazivanje kao gost potrebni su ime, prezime, e-mail i telefon")
            guest = GuestContact(first_name=first_name, last_name=last_name, email=email, phone=phone)

        visit = service.load_guest_visit(doctor_id, visit_id) if visit_id is not None else None

        if day:
            target = _parse_date(day, config.timezone)
        elif visit is not None:
            target = visit.day
        else:
            raise ValueError("Datum je obavezan (--date YYYY-MM-DD)")

        service.book(BookingRequest(
            doctor_id=doctor_id,
            day=target,
            time=time,
            service_id=service_id,
            note=note,
            guest=guest,
            visit=visit,
        ))

        doctor = service.load_doctor(doctor_id)
        details = AppointmentDetails(
            doctor_name=doctor.display_name,
            day=target,
            time=time,
            location=(visit.clinic_name if visit else doctor.profile.get("lokacija")) or "",
            specialty=doctor.profile.get("specijalnost"),
            address=None if visit else doctor.profile.get("adresa"),
            phone=doctor.profile.get("telefon"),
            clinic_name=visit.clinic_name if visit else None,
            duration_minutes=(
                visit.slot_duration_minutes if visit else doctor.calculator.slot_duration_minutes
            ),
        )

        console.print(Panel.fit(
            f"[bold green]✓ Termin je uspješno zakazan![/bold green]\n\n"
            f"[bold]Doktor:[/bold] {details.doctor_name}\n"
            f"[bold]Datum:[/bold] {_format_day(target)}\n"
            f"[bold]Vrijeme:[/bold] {time}\n"
            f"[bold]Lokacija:[/bold] {details.display_location() or '-'}",
            title="Potvrda termina"
        ))
        console.print(f"\nGoogle Calendar: {google_calendar_url(details, config.timezone)}\n")

        if ics_path is not None:
            target_file = ics_path / ics_filename(details) if ics_path.is_dir() else ics_path
            try:
                target_file.write_bytes(build_ics(details, config.timezone))
            except OSError as e:
                # The appointment is already booked at this point
                console.print(f"[yellow]Kalendar nije snimljen:[/yellow] {e}\n")
            else:
                console.print(f"[green]✓ Kalendar snimljen:[/green] {target_file}\n")

    except (TerminslotError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def visit_slots(
    doctor_id: Annotated[int, typer.Argument(help="ID doktora")],
    visit_id: Annotated[int, typer.Argument(help="ID gostovanja")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List free times during a doctor's guest visit at another clinic.
    """
    try:
        config = _load_config(config_file)
        configure_logging(config.log_level)
        service = _build_service(config, mock)

        visit = service.load_guest_visit(doctor_id, visit_id)
        free = service.guest_visit_slots(doctor_id, visit)

        console.print(f"\n[bold cyan]{visit.clinic_name or 'Gostovanje'}[/bold cyan] - {_format_day(visit.day)}\n")
        if not visit.accepts_online_bookings:
            console.print("[yellow]Ovo gostovanje ne prima online rezervacije.[/yellow]\n")
        elif not free:
            console.print("[yellow]Nema dostupnih termina.[/yellow]\n")
        else:
            console.print("  " + "  ".join(free) + "\n")

    except (TerminslotError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]terminslot[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
