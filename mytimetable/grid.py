"""
Weekly grid helpers.

- empty_grid(): the 5 x 10 matrix every consumer relies on
- merge_row() / merge_grid(): contiguous identical cells -> Blocks
- to_rows(): the spreadsheet row matrix (no merging, on purpose)

Merging compares cell text only. Two different classes that happen to
produce the same text merge into one block; editing one cell is enough
to break a merge again.
"""

from __future__ import annotations

from typing import Dict, List

from mytimetable.model import DAYS, TIME_SLOTS, Block, GridMatrix


HEADER_LABEL = "Day/Time"


def empty_grid() -> GridMatrix:
    """
    Return a grid with all 50 cells present and set to "".
    """
    return {day: {time: "" for time in TIME_SLOTS} for day in DAYS}


def copy_grid(grid: GridMatrix) -> GridMatrix:
    out = empty_grid()
    for day in DAYS:
        for time in TIME_SLOTS:
            out[day][time] = grid.get(day, {}).get(time, "") or ""
    return out


def set_cell(grid: GridMatrix, day: str, time: str, text: str) -> GridMatrix:
    """
    Return a copy of grid with one cell replaced (manual correction).

    Stacked classes may be given as "A || B"; they are stored one per line.

    Raises KeyError for a day or time outside the grid.
    """
    day = day.strip().upper()
    time = time.strip()
    if day not in DAYS:
        raise KeyError(f"Unknown day: {day!r}")
    if time not in TIME_SLOTS:
        raise KeyError(f"Unknown time slot: {time!r}")

    out = copy_grid(grid)
    out[day][time] = "\n".join(part.strip() for part in text.split("||") if part.strip())
    return out


def merge_row(day: str, grid: GridMatrix) -> List[Block]:
    """
    Scan one day left to right and merge runs of identical non-empty cells.
    """
    row = grid.get(day, {})
    blocks: List[Block] = []

    i = 0
    while i < len(TIME_SLOTS):
        content = row.get(TIME_SLOTS[i], "")
        if not content:
            i += 1
            continue

        span = 1
        while i + span < len(TIME_SLOTS) and row.get(TIME_SLOTS[i + span], "") == content:
            span += 1

        blocks.append(Block(day=day, start_index=i, span=span, content=content))
        i += span

    return blocks


def merge_grid(grid: GridMatrix) -> Dict[str, List[Block]]:
    return {day: merge_row(day, grid) for day in DAYS}


def to_rows(grid: GridMatrix) -> List[List[str]]:
    """
    Header row + one row per day, cells in time-slot order.

    Spanned classes are repeated in every column they cover.
    """
    rows: List[List[str]] = [[HEADER_LABEL, *TIME_SLOTS]]
    for day in DAYS:
        cells = grid.get(day, {})
        rows.append([day, *[cells.get(time, "") for time in TIME_SLOTS]])
    return rows


def count_entries(grid: GridMatrix) -> int:
    """
    Number of class lines over all cells (a 2-hour class counts twice).
    """
    total = 0
    for day in DAYS:
        for time in TIME_SLOTS:
            total += len([line for line in grid.get(day, {}).get(time, "").split("\n") if line.strip()])
    return total
