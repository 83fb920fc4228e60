from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from mytimetable.config import get_settings
from mytimetable.export_ics import export_grid_to_ics
from mytimetable.extract import extract_files
from mytimetable.grid import count_entries, merge_grid
from mytimetable.model import AtomicSlot, DAYS, TIME_SLOTS, GridMatrix
from mytimetable.parse import parse_many
from mytimetable.pipeline import build_grid, build_rows, csv_filename, ics_filename, write_rows_csv
from mytimetable.storage import (
    default_store,
    is_first_visit,
    load_preferences,
    load_raw_slots,
    mark_seen,
    record_visit,
    save_preferences,
    save_raw_slots,
)


console = Console()

CONTINUED = "  ⋮"


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def grid_table(grid: GridMatrix) -> Table:
    """
    Time rows x day columns. Cells covered by a longer block show a marker.
    """
    table = Table(title="Your personalized timetable", box=box.SIMPLE, show_lines=True)
    table.add_column("Time", style="bold")
    for day in DAYS:
        table.add_column(day)

    # (day, time) -> text shown in that cell
    shown: dict[tuple[str, str], str] = {}
    for day, blocks in merge_grid(grid).items():
        for block in blocks:
            times = block.times
            shown[(day, times[0])] = block.content
            for time in times[1:]:
                shown[(day, time)] = CONTINUED

    for time in TIME_SLOTS:
        # Cell text is OCR output, never rich markup
        table.add_row(time, *[Text(shown.get((day, time), "")) for day in DAYS])

    return table


def print_grid(grid: GridMatrix) -> None:
    console.print(grid_table(grid))


class Session:
    """
    State of one interactive run. The grid is rebuilt on every change.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.store = default_store(data_dir)
        self.slots: List[AtomicSlot] = load_raw_slots(data_dir)
        self.courses, self.group = load_preferences(self.store)
        self.overrides: List[Tuple[str, str, str]] = []

    def grid(self) -> GridMatrix:
        return build_grid(self.slots, self.courses, self.group, overrides=self.overrides)

    def set_filters(self, courses: str, group: str) -> None:
        if self.overrides:
            _println("Manual edits were discarded (course list or group changed).")
        self.courses, self.group = courses, group
        self.overrides = []
        save_preferences(self.store, courses, group)

    def replace_slots(self, slots: List[AtomicSlot]) -> None:
        self.slots = slots
        self.overrides = []
        save_raw_slots(slots, self.data_dir)


def run_interactive(data_dir: Path) -> None:
    """
    Interactive menu loop.
    """
    session = Session(data_dir)
    _print_welcome(session)

    while True:
        _print_header(session)

        choice = _prompt(
            "\n[1] Set courses\n"
            "[2] Set lab group\n"
            "[3] Show timetable\n"
            "[4] Edit a cell\n"
            "[5] Export .ics\n"
            "[6] Export .csv\n"
            "[7] Import saved answer\n"
            "[8] Extract from images\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        if choice == "1":
            _flow_set_courses(session)
        elif choice == "2":
            _flow_set_group(session)
        elif choice == "3":
            _flow_show(session)
        elif choice == "4":
            _flow_edit_cell(session)
        elif choice == "5":
            _flow_export_ics(session)
        elif choice == "6":
            _flow_export_csv(session)
        elif choice == "7":
            _flow_import(session)
        elif choice == "8":
            _flow_extract(session)
        else:
            _println("Invalid choice.")


def _print_welcome(session: Session) -> None:
    visits = record_visit(session.store)
    if is_first_visit(session.store):
        _println("\n[bold]Welcome to MyTimetable![/]")
        _println(
            "1) Extract your faculty timetable images (or import a saved answer)\n"
            "2) Enter your courses (e.g. 'PE302, HU302, E1') and lab group (e.g. G3)\n"
            "3) Check the grid, fix cells if needed, then export .ics or .csv"
        )
        mark_seen(session.store)
    else:
        _println(f"\nWelcome back (visit #{visits}).")


def _print_header(session: Session) -> None:
    _println("\n=== MyTimetable (interactive) ===")
    _println(f"Raw slots: {len(session.slots)} | Courses: {session.courses} | Group: {session.group}")
    if session.overrides:
        _println(f"Manual edits: {len(session.overrides)}")


def _flow_set_courses(session: Session) -> None:
    value = _prompt(f"Courses, comma-separated [{session.courses}]: ").strip()
    if value:
        session.set_filters(value, session.group)


def _flow_set_group(session: Session) -> None:
    value = _prompt(f"Lab group [{session.group}]: ").strip()
    if value:
        session.set_filters(session.courses, value.upper())


def _flow_show(session: Session) -> None:
    if not session.slots:
        _println("No extracted data yet. Use [7] or [8] first.")
        return

    grid = session.grid()
    n = count_entries(grid)
    if n == 0:
        _println("No classes found for these courses and group.")
        return

    print_grid(grid)
    _println(f"Found {n} class slots. Review and edit if needed before exporting.")


def _flow_edit_cell(session: Session) -> None:
    day = _prompt(f"Day ({', '.join(DAYS)}) [blank = back]: ").strip().upper()
    if not day:
        return
    if day not in DAYS:
        _println("Unknown day.")
        return

    time = _prompt(f"Time ({', '.join(TIME_SLOTS)}): ").strip()
    if time not in TIME_SLOTS:
        _println("Unknown time slot.")
        return

    current = session.grid()[day][time]
    console.print(f"Current: {current!r}", markup=False)
    text = _prompt("New text (use ' || ' for stacked classes, blank = clear): ")

    session.overrides.append((day, time, text))
    _println(f"Updated {day} {time}.")


def _default_out_path(filename: str) -> Path:
    # Default to user's Downloads folder (works on Windows/macOS/Linux)
    downloads = Path.home() / "Downloads"
    out_in = _prompt(f"Please enter desired file name, default is [{filename}]: ").strip()
    return downloads / (out_in or filename)


def _flow_export_ics(session: Session) -> None:
    grid = session.grid()
    if count_entries(grid) == 0:
        _println("Nothing to export.")
        return

    out_path = _default_out_path(ics_filename(session.group))
    if out_path.suffix.lower() != ".ics":
        out_path = out_path.with_suffix(".ics")

    n = export_grid_to_ics(grid, out_path, course_list=session.courses)
    _println(f"\nExported {n} events.")
    _println(f"Saved to: {out_path.resolve()}")
    _println(
        "\nNext steps:\n"
        "- Google Calendar (desktop): Settings → Import & export → Import → choose this .ics file\n"
        "- iPhone/Android: send the .ics file to yourself and tap to import\n"
    )


def _flow_export_csv(session: Session) -> None:
    grid = session.grid()
    if count_entries(grid) == 0:
        _println("Nothing to export.")
        return

    out_path = _default_out_path(csv_filename(session.group))
    if out_path.suffix.lower() != ".csv":
        out_path = out_path.with_suffix(".csv")

    write_rows_csv(build_rows(grid), out_path)
    _println(f"Saved to: {out_path.resolve()}")


def _store(session: Session, slots: List[AtomicSlot]) -> None:
    if not slots:
        _println("No data extracted.")
        return
    session.replace_slots(slots)
    _println(f"Extracted {len(slots)} raw time slots.")


def _flow_import(session: Session) -> None:
    name = _prompt("Path of saved answer (JSON or text) [blank = back]: ").strip()
    if not name:
        return
    try:
        text = Path(name).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _println(f"Cannot read file: {exc}")
        return
    _store(session, parse_many([text]))


def _flow_extract(session: Session) -> None:
    names = _prompt("Image paths, separated by ';' [blank = back]: ").strip()
    if not names:
        return

    settings = get_settings()
    api_key = settings.api_key or _prompt("Gemini API key: ").strip()

    paths = [Path(n.strip()).expanduser() for n in names.split(";") if n.strip()]
    with console.status("Processing timetable..."):
        result = extract_files(paths, api_key, settings.model, timeout=settings.timeout)

    for path, message in result.failures:
        _println(f"[red]Failed:[/] {path}: {message}")

    _store(session, parse_many(result.texts))
