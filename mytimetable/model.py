"""
Central data model definitions used across the project.

This module defines the canonical shape of the timetable objects so that:
- all modules share the same day and time-slot labels
- parsing, filtering, merging and exporting agree on field names
- the code stays readable and beginner-friendly
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List


# Fixed grid axes (order matters: it is the display and merge order)
DAYS: List[str] = ["MON", "TUE", "WED", "THU", "FRI"]

TIME_SLOTS: List[str] = [
    "8-9",
    "9-10",
    "10-11",
    "11-12",
    "12-1",
    "1-2",
    "2-3",
    "3-4",
    "4-5",
    "5-6",
]

# day -> time label -> cell text ("" when empty, "\n"-joined when stacked)
GridMatrix = Dict[str, Dict[str, str]]


@dataclass(frozen=True)
class AtomicSlot:
    """
    One cell occupant as extracted, before any filtering.

    raw_content may hold several stacked classes joined by " || ".
    (day, time) is not unique: several slots can target the same cell.
    """

    day: str
    time: str
    raw_content: str

    def to_dict(self) -> dict:
        return {"day": self.day, "time": self.time, "raw_content": self.raw_content}


@dataclass(frozen=True)
class Block:
    """
    A maximal run of identical, non-empty cells within one day.
    """

    day: str
    start_index: int
    span: int
    content: str

    @property
    def time(self) -> str:
        return TIME_SLOTS[self.start_index]

    @property
    def times(self) -> List[str]:
        return TIME_SLOTS[self.start_index : self.start_index + self.span]


@dataclass
class CalendarEvent:
    """
    Represents one VEVENT of the exported calendar.

    All datetimes are naive (floating local time).
    """

    uid: str
    title: str
    description: str
    start: datetime
    end: datetime
    until: datetime
    location: str
