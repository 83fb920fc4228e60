"""
Persistent storage.

This module manages two files inside the data directory:

    raw_slots.json   the last extraction result (all slots, unfiltered)
    state.json       small key/value state (preferences, visit counter)

Design rationale:
- the raw slots are the only long-lived artifact, the personal grid is
  always re-derived from them
- the timetable pipeline itself never touches these files, front ends
  pass a JsonStore in explicitly
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Tuple

from mytimetable.model import AtomicSlot
from mytimetable.parse import slots_from_records


RAW_SLOTS_FILE = "raw_slots.json"
STATE_FILE = "state.json"

DEFAULT_COURSES = "PE302, PE304, HU302, E1, E2, E4"
DEFAULT_GROUP = "G3"


def _read_json(path: Path) -> Any:
    """
    Return decoded JSON or None if the file is missing or broken.
    """
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return None


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class JsonStore:
    """
    Tiny get/set key-value store backed by one JSON file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict:
        data = _read_json(self.path)
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        _write_json(self.path, data)


def default_store(data_dir: str | Path) -> JsonStore:
    return JsonStore(Path(data_dir) / STATE_FILE)


# ---------------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------------


def record_visit(store: JsonStore) -> int:
    """
    Increment and return the visit counter.
    """
    count = store.get("visit_count", 0)
    if not isinstance(count, int) or count < 0:
        count = 0
    count += 1
    store.set("visit_count", count)
    return count


def is_first_visit(store: JsonStore) -> bool:
    return not store.get("first_visit_seen", False)


def mark_seen(store: JsonStore) -> None:
    store.set("first_visit_seen", True)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


def load_preferences(store: JsonStore) -> Tuple[str, str]:
    """
    Return (course_list, group), falling back to the defaults.
    """
    courses = store.get("courses")
    group = store.get("group")
    if not isinstance(courses, str):
        courses = DEFAULT_COURSES
    if not isinstance(group, str):
        group = DEFAULT_GROUP
    return courses, group


def save_preferences(store: JsonStore, courses: str, group: str) -> None:
    store.set("courses", courses.strip())
    store.set("group", group.strip().upper())


# ---------------------------------------------------------------------------
# Raw slots
# ---------------------------------------------------------------------------


def load_raw_slots(data_dir: str | Path) -> List[AtomicSlot]:
    """
    Load the last extraction result. Missing or invalid file -> [].
    """
    data = _read_json(Path(data_dir) / RAW_SLOTS_FILE)
    if not isinstance(data, list):
        return []
    return slots_from_records(data)


def save_raw_slots(slots: Iterable[AtomicSlot], data_dir: str | Path) -> Path:
    path = Path(data_dir) / RAW_SLOTS_FILE
    _write_json(path, [s.to_dict() for s in slots])
    return path
