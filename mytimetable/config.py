"""
Runtime settings.

Values come from environment variables (a local .env file is loaded first):

    GEMINI_API_KEY        key for the extraction service
    GEMINI_MODEL          model name (default gemini-2.5-flash)
    MYTIMETABLE_TIMEOUT   request timeout in seconds (default 60)
    MYTIMETABLE_DATA_DIR  where raw slots and preferences are stored
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 60.0


@dataclass
class Settings:
    api_key: str
    model: str
    timeout: float
    data_dir: Path


def _get_timeout() -> float:
    raw = os.getenv("MYTIMETABLE_TIMEOUT", "")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid MYTIMETABLE_TIMEOUT %r, falling back to %s", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    if value <= 0:
        logger.warning("MYTIMETABLE_TIMEOUT must be positive, falling back to %s", DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return value


def get_settings() -> Settings:
    data_dir = os.getenv("MYTIMETABLE_DATA_DIR", "")
    return Settings(
        api_key=os.getenv("GEMINI_API_KEY", ""),
        model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
        timeout=_get_timeout(),
        data_dir=Path(data_dir) if data_dir else PACKAGE_DIR / "data",
    )
