"""
The timetable pipeline as plain functions.

    raw slots --build_grid--> grid --build_calendar--> .ics text
                                   --build_rows-----> spreadsheet rows

Every call is a pure function of its arguments. Front ends call the
pipeline again whenever the course list, the group or a cell changes.
"""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from mytimetable.export_ics import build_ics
from mytimetable.filter import filter_timetable, normalize_group
from mytimetable.grid import merge_grid, set_cell, to_rows
from mytimetable.model import AtomicSlot, GridMatrix


Override = Tuple[str, str, str]


def build_grid(
    slots: Iterable[AtomicSlot],
    course_list: str,
    group: str,
    overrides: Iterable[Override] = (),
) -> GridMatrix:
    """
    Filter the raw slots, then apply manual (day, time, text) corrections.
    """
    grid = filter_timetable(slots, course_list, group)
    for day, time, text in overrides:
        grid = set_cell(grid, day, time, text)
    return grid


def build_calendar(
    grid: GridMatrix,
    course_list: str,
    reference: Optional[datetime] = None,
    stamp: Optional[datetime] = None,
) -> str:
    if reference is None:
        reference = datetime.now()
    return build_ics(merge_grid(grid), reference, course_list, stamp=stamp)


def build_rows(grid: GridMatrix) -> List[List[str]]:
    return to_rows(grid)


def write_rows_csv(rows: List[List[str]], out_path: str | Path) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8", newline="") as fh:
        csv.writer(fh).writerows(rows)
    return out


def _file_label(group: str) -> str:
    return normalize_group(group) or "ALL"


def ics_filename(group: str) -> str:
    return f"University_Schedule_{_file_label(group)}.ics"


def xlsx_filename(group: str) -> str:
    return f"Timetable_{_file_label(group)}.xlsx"


def csv_filename(group: str) -> str:
    return str(Path(xlsx_filename(group)).with_suffix(".csv"))
