"""
Course / lab-group filtering.

Given the atomic slots of the whole faculty timetable, keep only the
stacked sub-entries that belong to the student:

Course rule:
    - short codes (<= 3 chars, e.g. "E1") must appear as a whole word
    - longer codes (e.g. "PE302") must appear in the text with all
      whitespace removed ("PE 302" matches)

Group rule:
    - if the sub-entry names groups ("G1", "P 2", ...) the student's group
      must equal one of them exactly
    - if it names no group at all it applies to everyone

A sub-entry without a course match is always dropped.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set

from mytimetable.grid import empty_grid
from mytimetable.model import AtomicSlot, GridMatrix


SHORT_CODE_MAX_LEN = 3

_ENTRY_SEPARATOR_RE = re.compile(r"\s*\|\|\s*")
_GROUP_TOKEN_RE = re.compile(r"\b([GP])\s?(\d+)\b")
_WHITESPACE_RE = re.compile(r"\s+")


def parse_course_list(course_list: str) -> Set[str]:
    """
    'pe302, E1 ,, hu302' -> {'PE302', 'E1', 'HU302'}
    """
    if not course_list:
        return set()
    return {c.strip().upper() for c in course_list.split(",") if c.strip()}


def normalize_group(group_id: str) -> str:
    """
    ' g 3 ' -> 'G3'
    """
    return _WHITESPACE_RE.sub("", (group_id or "").upper())


def split_entries(raw_content: str) -> List[str]:
    """
    Split a cell on '||' (with or without surrounding spaces).
    """
    return [part.strip() for part in _ENTRY_SEPARATOR_RE.split(raw_content or "") if part.strip()]


def matches_course(entry: str, courses: Iterable[str]) -> bool:
    upper = entry.upper()
    compact = _WHITESPACE_RE.sub("", upper)

    for code in courses:
        if len(code) <= SHORT_CODE_MAX_LEN:
            # "E1" must not match inside "SE10"
            if re.search(rf"\b{re.escape(code)}\b", upper):
                return True
        elif _WHITESPACE_RE.sub("", code) in compact:
            return True
    return False


def find_group_tokens(entry: str) -> List[str]:
    """
    'P PE 302 LAB G 1, G2' -> ['G1', 'G2']
    """
    return [f"{letter}{number}" for letter, number in _GROUP_TOKEN_RE.findall(entry.upper())]


def matches_group(entry: str, group: str) -> bool:
    tokens = find_group_tokens(entry)
    if not tokens:
        return True
    return group in tokens


def keep_entry(entry: str, courses: Set[str], group: str) -> bool:
    """
    True if one stacked sub-entry belongs to the student.
    """
    if not matches_course(entry, courses):
        return False
    return matches_group(entry, group)


def filter_timetable(slots: Iterable[AtomicSlot], course_list: str, group_id: str) -> GridMatrix:
    """
    Build the personalized grid from all extracted slots.

    Pure function: the same inputs always give the same grid. An empty
    course list gives an empty grid.
    """
    courses = parse_course_list(course_list)
    group = normalize_group(group_id)

    grid = empty_grid()
    if not courses:
        return grid

    for slot in slots:
        row = grid.get(slot.day)
        if row is None or slot.time not in row:
            continue

        kept = [e for e in split_entries(slot.raw_content) if keep_entry(e, courses, group)]
        if not kept:
            continue

        # Several source slots for the same cell are stacked in input order
        if row[slot.time]:
            kept.insert(0, row[slot.time])
        row[slot.time] = "\n".join(kept)

    return grid
