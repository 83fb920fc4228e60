"""
CLI (Command Line Interface).

This module provides quick terminal commands, e.g.:

    mytimetable extract timetable.png electives.png
    mytimetable import answer.json
    mytimetable show --courses "PE302, HU302, E1" --group G3
    mytimetable export-ics
    mytimetable export-csv out.csv
    mytimetable interactive

Note:
- The interactive UI lives in mytimetable/interactive.py
- Course list and group are remembered between calls
- Messages are plain text, only the grid itself is drawn with rich
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from mytimetable.config import get_settings
from mytimetable.export_ics import export_grid_to_ics
from mytimetable.extract import extract_files
from mytimetable.grid import count_entries
from mytimetable.model import AtomicSlot, GridMatrix
from mytimetable.parse import parse_many
from mytimetable.pipeline import build_grid, build_rows, csv_filename, ics_filename, write_rows_csv
from mytimetable.storage import (
    default_store,
    load_preferences,
    load_raw_slots,
    save_preferences,
    save_raw_slots,
)


logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _store_slots(slots: List[AtomicSlot], data_dir: Path) -> int:
    if not slots:
        print("No data extracted.")
        return 1
    path = save_raw_slots(slots, data_dir)
    print(f"Extracted {len(slots)} raw time slots -> {path}")
    return 0


def _cmd_extract(args: argparse.Namespace, data_dir: Path) -> int:
    """
    Send the images to the extraction service and store the raw slots.
    """
    settings = get_settings()
    api_key = (args.api_key or settings.api_key).strip()
    model = (args.model or settings.model).strip()

    logger.info("Extracting %d file(s) with %s", len(args.files), model)
    result = extract_files(args.files, api_key, model, timeout=settings.timeout)
    for path, message in result.failures:
        print(f"Failed: {path}: {message}")

    # Whatever did come back is still parsed
    return _store_slots(parse_many(result.texts), data_dir)


def _cmd_import(args: argparse.Namespace, data_dir: Path) -> int:
    """
    Parse saved extraction answers (JSON or text files) and store the raw slots.
    """
    texts: List[str] = []
    for name in args.files:
        try:
            texts.append(Path(name).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Failed: {name}: {exc}")

    return _store_slots(parse_many(texts), data_dir)


def _resolve_filters(args: argparse.Namespace, data_dir: Path) -> Tuple[str, str]:
    """
    Use --courses / --group if given (and remember them), else the stored ones.
    """
    store = default_store(data_dir)
    courses, group = load_preferences(store)

    if args.courses is not None or args.group is not None:
        courses = args.courses if args.courses is not None else courses
        group = args.group if args.group is not None else group
        save_preferences(store, courses, group)

    return courses, group


def _personal_grid(args: argparse.Namespace, data_dir: Path) -> Optional[Tuple[GridMatrix, str, str]]:
    slots = load_raw_slots(data_dir)
    if not slots:
        print("No extracted data yet. Run 'mytimetable extract' or 'mytimetable import' first.")
        return None

    courses, group = _resolve_filters(args, data_dir)
    try:
        grid = build_grid(slots, courses, group, overrides=args.set or [])
    except KeyError as exc:
        print(f"Invalid --set: {exc}")
        return None

    return grid, courses, group


def _cmd_show(args: argparse.Namespace, data_dir: Path) -> int:
    from mytimetable.interactive import print_grid

    built = _personal_grid(args, data_dir)
    if built is None:
        return 1
    grid, courses, group = built

    print(f"Courses: {courses} | Group: {group}")
    if count_entries(grid) == 0:
        print("No classes found for these courses and group.")
        return 0

    print_grid(grid)
    return 0


def _cmd_export_ics(args: argparse.Namespace, data_dir: Path) -> int:
    """
    Export the personal timetable as weekly recurring calendar events.
    """
    built = _personal_grid(args, data_dir)
    if built is None:
        return 1
    grid, courses, group = built

    out_path = (args.out or "").strip() or ics_filename(group)
    n = export_grid_to_ics(grid, out_path, course_list=courses)
    print(f"Exported {n} events to: {out_path}")
    return 0


def _cmd_export_csv(args: argparse.Namespace, data_dir: Path) -> int:
    """
    Export the personal timetable as spreadsheet rows (one row per day).
    """
    built = _personal_grid(args, data_dir)
    if built is None:
        return 1
    grid, _, group = built

    out_path = (args.out or "").strip() or csv_filename(group)
    write_rows_csv(build_rows(grid), out_path)
    print(f"Exported timetable rows to: {out_path}")
    return 0


def _add_filter_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--courses", type=str, default=None, help="Comma-separated course codes (e.g. 'PE302, E1')")
    p.add_argument("--group", type=str, default=None, help="Lab group (e.g. G3)")
    p.add_argument(
        "--set",
        nargs=3,
        action="append",
        metavar=("DAY", "TIME", "TEXT"),
        help="Manually replace one cell (repeatable), e.g. --set MON 9-10 'L PE302'",
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="mytimetable", description="MyTimetable CLI")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v, -vv)")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory for stored data")
    sub = parser.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Extract raw slots from timetable images")
    p_extract.add_argument("files", nargs="+", help="Image files (png/jpg/pdf)")
    p_extract.add_argument("--api-key", type=str, default=None, help="Gemini API key")
    p_extract.add_argument("--model", type=str, default=None, help="Gemini model name")

    p_import = sub.add_parser("import", help="Import saved extraction answers")
    p_import.add_argument("files", nargs="+", help="JSON or text files")

    p_show = sub.add_parser("show", help="Show the personal timetable")
    _add_filter_arguments(p_show)

    p_ics = sub.add_parser("export-ics", help="Export the personal timetable to .ics")
    p_ics.add_argument("out", nargs="?", default=None, help="Output file (default University_Schedule_<group>.ics)")
    _add_filter_arguments(p_ics)

    p_csv = sub.add_parser("export-csv", help="Export the personal timetable rows to .csv")
    p_csv.add_argument("out", nargs="?", default=None, help="Output file (default Timetable_<group>.csv)")
    _add_filter_arguments(p_csv)

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    data_dir = args.data_dir if args.data_dir is not None else get_settings().data_dir

    if args.command == "extract":
        raise SystemExit(_cmd_extract(args, data_dir))
    if args.command == "import":
        raise SystemExit(_cmd_import(args, data_dir))
    if args.command == "show":
        raise SystemExit(_cmd_show(args, data_dir))
    if args.command == "export-ics":
        raise SystemExit(_cmd_export_ics(args, data_dir))
    if args.command == "export-csv":
        raise SystemExit(_cmd_export_csv(args, data_dir))

    if args.command == "interactive":
        from mytimetable.interactive import run_interactive

        run_interactive(data_dir)
        raise SystemExit(0)

    raise SystemExit(2)
