"""
Parsing (AI extraction output -> atomic slots).

- Accepts either already-decoded records or the raw text answer of the AI service
- Extracts EACH {day, time, raw_content} record as exactly ONE AtomicSlot
- Falls back to line-oriented "DAY: / TIME: content" scanning when the
  answer contains no JSON at all

Important rules (DO NOT CHANGE):
- Malformed content never raises, it yields fewer (or zero) slots
- Several slots may target the same (day, time) cell, all are kept
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from mytimetable.model import DAYS, TIME_SLOTS, AtomicSlot


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

FULL_DAY_NAMES = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]

# Lines the AI uses to say "nothing in this cell"
EMPTY_MARKERS = {"EMPTY", "(EMPTY)", "-", "--", "—", "N/A", "NONE", "FREE"}

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")

_HOUR_RANGE_RE = re.compile(r"^(\d{1,2})(?::00)?-(\d{1,2})(?::00)?$")

_LABEL = r"\d{1,2}(?::00)?\s*[-–—]\s*\d{1,2}(?::00)?"

# "DAY: MON" or "MON:" / "Monday:" (the colon is required for the bare form)
_DAY_LINE_RE = re.compile(
    r"^(?:DAY\s*:\s*(?P<named>[A-Za-z]+)\s*:?|(?P<bare>[A-Za-z]+)\s*:)\s*(?P<rest>.*)$",
    re.IGNORECASE,
)

# "TIME: 8-9" or "8-9:" (the colon is required for the bare form)
_TIME_LINE_RE = re.compile(
    rf"^(?:TIME\s*:\s*(?P<named>{_LABEL})\s*:?|(?P<bare>{_LABEL})\s*:)\s*(?P<rest>.*)$",
    re.IGNORECASE,
)

_CONTENT_KEYS = ("raw_content", "rawContent", "content")


# ---------------------------------------------------------------------------
# Payload shapes
# ---------------------------------------------------------------------------


@dataclass
class StructuredPayload:
    """
    Records that were already decoded (list of dicts).
    """

    records: List[Any]


@dataclass
class FreeTextPayload:
    """
    The raw text answer of the AI service.
    """

    text: str


Payload = Union[StructuredPayload, FreeTextPayload]


def decode_payload(raw: Any) -> Payload:
    """
    Decide once, at the entry point, which shape the upstream data has.
    """
    if isinstance(raw, (StructuredPayload, FreeTextPayload)):
        return raw
    if isinstance(raw, (list, tuple)):
        return StructuredPayload(records=list(raw))
    if isinstance(raw, dict):
        return StructuredPayload(records=[raw])
    if isinstance(raw, bytes):
        return FreeTextPayload(text=raw.decode("utf-8", errors="replace"))
    if raw is None:
        return FreeTextPayload(text="")
    return FreeTextPayload(text=str(raw))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clean_json_string(text: str) -> str:
    """
    Remove a surrounding ```json ... ``` (or plain ```) fence.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_START_RE.sub("", cleaned)
        cleaned = _FENCE_END_RE.sub("", cleaned)
    return cleaned.strip()


def normalize_day(value: Any) -> Optional[str]:
    """
    'mon', 'Monday', 'THURS' -> 'MON' / 'MON' / 'THU'. Unknown -> None.
    """
    if not isinstance(value, str):
        return None
    v = value.strip().upper().rstrip(":.")
    if len(v) < 3:
        return None

    for short, full in zip(DAYS, FULL_DAY_NAMES):
        if v.startswith(short) and full.startswith(v):
            return short
    return None


def normalize_time(value: Any) -> Optional[str]:
    """
    '8 - 9', '08:00-09:00', '13-14' -> '8-9' / '8-9' / '1-2'. Unknown -> None.
    """
    if isinstance(value, (int, float)) or not isinstance(value, str):
        return None

    v = value.strip().replace("–", "-").replace("—", "-").replace(" ", "")
    m = _HOUR_RANGE_RE.match(v)
    if not m:
        return None

    start, end = int(m.group(1)), int(m.group(2))
    # Labels are written on a 12-hour clock
    if start > 12:
        start -= 12
    if end > 12:
        end -= 12

    label = f"{start}-{end}"
    return label if label in TIME_SLOTS else None


def _record_content(record: dict) -> str:
    for key in _CONTENT_KEYS:
        value = record.get(key)
        if value is not None:
            return str(value).strip()
    return ""


def _is_empty_marker(text: str) -> bool:
    return text.strip().upper() in EMPTY_MARKERS


def _iter_array_chunks(text: str) -> Iterator[str]:
    """
    Yield every top-level, bracket-balanced '[...]' substring of text.

    Brackets inside JSON string literals do not count.
    """
    depth = 0
    start = 0
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if depth > 0 and in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == "[":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "]" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]
        elif ch == '"' and depth > 0:
            in_string = True


# ---------------------------------------------------------------------------
# Structured mode
# ---------------------------------------------------------------------------


def slots_from_records(records: Iterable[Any]) -> List[AtomicSlot]:
    """
    Turn decoded {day, time, raw_content} records into AtomicSlots.

    Records that cannot be placed on the grid are skipped.
    """
    slots: List[AtomicSlot] = []

    for record in records:
        # Some answers nest one array per day
        if isinstance(record, list):
            slots.extend(slots_from_records(record))
            continue
        if not isinstance(record, dict):
            logger.debug("Skipping non-object record: %r", record)
            continue

        content = _record_content(record)
        if not content or _is_empty_marker(content):
            continue

        day = normalize_day(record.get("day"))
        time = normalize_time(record.get("time"))
        if day is None or time is None:
            logger.warning(
                "Skipping record with unknown day/time: day=%r time=%r",
                record.get("day"),
                record.get("time"),
            )
            continue

        slots.append(AtomicSlot(day=day, time=time, raw_content=content))

    return slots


# ---------------------------------------------------------------------------
# Free text mode
# ---------------------------------------------------------------------------


def _match_day_line(line: str) -> Optional[Tuple[str, str]]:
    m = _DAY_LINE_RE.match(line)
    if not m:
        return None
    day = normalize_day(m.group("named") or m.group("bare"))
    if day is None:
        return None
    return day, m.group("rest").strip()


def _match_time_line(line: str) -> Optional[Tuple[Optional[str], str]]:
    m = _TIME_LINE_RE.match(line)
    if not m:
        return None
    label = m.group("named") or m.group("bare")
    time = normalize_time(label)
    if time is None:
        logger.warning("Unknown time label in text: %r", label)
    return time, m.group("rest").strip()


def parse_text_blocks(text: str) -> List[AtomicSlot]:
    """
    Line-oriented fallback parser.

    DAY: MON          <- sets the current day
    8-9: L PE302      <- sets the current time, rest of line is content
    P HU302 G1        <- further lines belong to the same cell (stacked)
    EMPTY             <- skipped
    """
    slots: List[AtomicSlot] = []

    day: Optional[str] = None
    time: Optional[str] = None
    buffer: List[str] = []

    def flush() -> None:
        if day and time and buffer:
            slots.append(AtomicSlot(day=day, time=time, raw_content=" || ".join(buffer)))
        buffer.clear()

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or _is_empty_marker(stripped):
            continue

        day_match = _match_day_line(stripped)
        if day_match:
            flush()
            day, stripped = day_match
            time = None
            if not stripped or _is_empty_marker(stripped):
                continue

        time_match = _match_time_line(stripped)
        if time_match:
            flush()
            time, stripped = time_match
            if not stripped or _is_empty_marker(stripped):
                continue

        # Content outside a known (day, time) cell is ignored
        if day and time:
            buffer.append(stripped)

    flush()
    return slots


def _parse_free_text(text: str) -> List[AtomicSlot]:
    cleaned = clean_json_string(text)
    if not cleaned:
        return []

    # Normal case: the whole answer is one JSON document
    try:
        data = json.loads(cleaned)
    except ValueError:
        pass
    else:
        if isinstance(data, dict):
            logger.info("AI did not return an array, wrapping the object.")
            data = [data]
        if isinstance(data, list):
            slots = slots_from_records(data)
            if slots:
                return slots

    # Several arrays embedded in prose (e.g. one per day), or an array
    # wrapped in an object
    slots = []
    for n, chunk in enumerate(_iter_array_chunks(cleaned), start=1):
        try:
            data = json.loads(chunk)
        except ValueError as exc:
            logger.warning("Skipping JSON chunk %d that failed to decode: %s", n, exc)
            continue
        slots.extend(slots_from_records(data))

    # Decoded chunks may be notes like "[101]" rather than records
    if slots:
        return slots

    return parse_text_blocks(cleaned)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_raw(raw: Any) -> List[AtomicSlot]:
    """
    Parse one upstream result (records or text) into AtomicSlots.

    Returns an empty list if nothing usable was found.
    """
    payload = decode_payload(raw)
    if isinstance(payload, StructuredPayload):
        return slots_from_records(payload.records)
    return _parse_free_text(payload.text)


def parse_many(raws: Iterable[Any]) -> List[AtomicSlot]:
    """
    Parse several upstream results (e.g. one per uploaded image) in order.
    """
    slots: List[AtomicSlot] = []
    for raw in raws:
        slots.extend(parse_raw(raw))
    logger.info("Parsed %d raw time slots.", len(slots))
    return slots
