"""
iCalendar (.ics) export.

We convert the merged blocks of the personal grid into weekly recurring
events that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Times are floating local time (no timezone, no 'Z'): the timetable has no
timezone, the calendar app applies its own on import.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from mytimetable.grid import merge_grid
from mytimetable.model import DAYS, TIME_SLOTS, Block, CalendarEvent, GridMatrix


PRODID = "-//MyTimetable//University Schedule//EN"

LOCATION_MAX_LEN = 60
REMINDER_MINUTES = 10

SESSION_MARKERS = ("P", "L")

_LEADING_INT_RE = re.compile(r"^\s*(\d{1,2})")
_CODE_RE = re.compile(r"\b[A-Z]{1,4}[ -]?\d{1,3}\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _fold(line: str) -> List[str]:
    """
    Fold a content line into chunks of at most 75 octets.
    """
    out: List[str] = []
    current = ""
    for ch in line:
        if len((current + ch).encode("utf-8")) > 75:
            out.append(current)
            # continuation lines start with a single space
            current = " "
        current += ch
    out.append(current)
    return out


def _dt_local(dt: datetime) -> str:
    """
    Floating local datetime 'YYYYMMDDTHHMMSS'.
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def _uid(block: Block, index: int, text: str) -> str:
    hasher = hashlib.sha1()
    hasher.update("|".join([block.day, block.time, str(index), text]).encode("utf-8"))
    return f"{hasher.hexdigest()}@mytimetable"


# ---------------------------------------------------------------------------
# Date / time rules
# ---------------------------------------------------------------------------


def start_hour(time_label: str) -> int:
    """
    '10-11' -> 10, '2-3' -> 14.

    Labels carry no AM/PM: hours 1..6 are afternoon, 8..12 stay as they are.
    """
    m = _LEADING_INT_RE.match(time_label)
    if not m:
        raise ValueError(f"Invalid time label: {time_label!r}")
    hour = int(m.group(1))
    if 1 <= hour <= 6:
        hour += 12
    return hour


def next_occurrence(reference: datetime, day: str, hour: int) -> datetime:
    """
    First date on or after reference that falls on day, at hour:00:00.
    """
    # Sunday = 0 ... Saturday = 6, so MON = 1 ... FRI = 5
    target = DAYS.index(day) + 1
    current = (reference.weekday() + 1) % 7

    delta = target - current
    if delta < 0:
        delta += 7

    d = reference.date() + timedelta(days=delta)
    return datetime(d.year, d.month, d.day, hour, 0, 0)


def recurrence_until(reference: datetime) -> datetime:
    """
    End of the current term.

    Jan-May -> May 1st, Jun-Dec -> Dec 1st (both 23:59:59, same year).
    """
    if reference.month <= 5:
        return datetime(reference.year, 5, 1, 23, 59, 59)
    return datetime(reference.year, 12, 1, 23, 59, 59)


def extract_title(text: str, course_codes: Iterable[str]) -> str:
    """
    Pick a short event title from one class line.

    Order:
    1. a short (<= 3 chars) course code of the student, as a whole word
    2. the first 'letters + digits' course-like code ('PE 302' -> 'PE302')
    3. the token after a leading session marker ('P' / 'L')
    4. the first token
    """
    upper = text.upper()
    for code in course_codes:
        code = code.strip().upper()
        if code and len(code) <= 3 and re.search(rf"\b{re.escape(code)}\b", upper):
            return code

    m = _CODE_RE.search(text)
    if m:
        return _WHITESPACE_RE.sub("", m.group(0).upper())

    tokens = text.split()
    if not tokens:
        return ""
    if len(tokens) > 1 and tokens[0].upper() in SESSION_MARKERS:
        return tokens[1]
    return tokens[0]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def build_events(
    blocks_by_day: Dict[str, List[Block]],
    reference: datetime,
    course_list: str = "",
) -> List[CalendarEvent]:
    """
    One event per non-blank line of every block.
    """
    codes = [c.strip().upper() for c in (course_list or "").split(",") if c.strip()]
    until = recurrence_until(reference)

    events: List[CalendarEvent] = []
    for day in DAYS:
        for block in blocks_by_day.get(day, []):
            hour = start_hour(TIME_SLOTS[block.start_index])
            start = next_occurrence(reference, day, hour)
            end = start + timedelta(hours=block.span)

            for index, line in enumerate(block.content.split("\n")):
                text = line.strip()
                if not text:
                    continue

                description = _WHITESPACE_RE.sub(" ", text)
                events.append(
                    CalendarEvent(
                        uid=_uid(block, index, text),
                        title=extract_title(text, codes),
                        description=description,
                        start=start,
                        end=end,
                        until=until,
                        location=description[:LOCATION_MAX_LEN],
                    )
                )

    return events


def events_to_ics(events: Iterable[CalendarEvent], stamp: Optional[datetime] = None) -> str:
    """
    Render events as one VCALENDAR document (CRLF line endings).
    """
    if stamp is None:
        stamp = datetime.now(timezone.utc)
    # DTSTAMP is the only UTC value in the file
    dtstamp = stamp.strftime("%Y%m%dT%H%M%SZ")

    lines: List[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{PRODID}")
    lines.append("CALSCALE:GREGORIAN")
    lines.append("METHOD:PUBLISH")

    for ev in events:
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{ev.uid}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_local(ev.start)}")
        lines.append(f"DTEND:{_dt_local(ev.end)}")
        lines.append(f"RRULE:FREQ=WEEKLY;UNTIL={_dt_local(ev.until)}")
        lines.append(f"SUMMARY:{_ics_escape(ev.title)}")
        lines.append(f"DESCRIPTION:{_ics_escape(ev.description)}")
        lines.append(f"LOCATION:{_ics_escape(ev.location)}")
        lines.append("STATUS:CONFIRMED")
        lines.append("SEQUENCE:0")
        lines.append("BEGIN:VALARM")
        lines.append(f"TRIGGER:-PT{REMINDER_MINUTES}M")
        lines.append("ACTION:DISPLAY")
        lines.append(f"DESCRIPTION:{_ics_escape(ev.title)}")
        lines.append("END:VALARM")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")

    folded: List[str] = []
    for line in lines:
        folded.extend(_fold(line))

    # ICS standard uses CRLF
    return "\r\n".join(folded) + "\r\n"


def build_ics(
    blocks_by_day: Dict[str, List[Block]],
    reference: datetime,
    course_list: str = "",
    stamp: Optional[datetime] = None,
) -> str:
    return events_to_ics(build_events(blocks_by_day, reference, course_list), stamp=stamp)


def export_grid_to_ics(
    grid: GridMatrix,
    out_path: str | Path,
    reference: Optional[datetime] = None,
    course_list: str = "",
) -> int:
    """
    Export the personal grid to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    if reference is None:
        reference = datetime.now()

    events = build_events(merge_grid(grid), reference, course_list)
    out.write_text(events_to_ics(events), encoding="utf-8", newline="")
    return len(events)
