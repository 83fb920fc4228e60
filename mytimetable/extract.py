"""
AI extraction (timetable image -> raw answer text).

Sends each uploaded image to the Gemini REST API together with the raw
extraction prompt and returns the text answer. The answer is NOT parsed
here, see mytimetable.parse.

One failing file does not stop the others: extract_files() collects the
failures and returns every answer it did get.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)


API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT = """
You are a raw data extractor for university timetables.
I have uploaded an image of a timetable grid.

TASK:
Convert the visual grid into a comprehensive, flat JSON list representing every active time slot. Do NOT filter any data.

INSTRUCTIONS:
1.  Analyze Grid: Identify the headers defining Days (rows: MON, TUE...) and Times (columns: 8-9, 9-10...).
2.  Iterate & Extract: Go through every intersection of Day and Time.
3.  Handling Multiple Items in One Slot (Vertical Stacking):
    - Many grid cells contain multiple distinct classes stacked vertically.
    - Extract all text for each distinct stack item.
    - Join these distinct items together using exactly this separator: " || " (space pipe pipe space).
4.  Handling Time Spans (Horizontal Spanning):
    - If a single visual block spans across multiple column headers (e.g., a Lab block 10-12), generate SEPARATE JSON entries for each hourly interval (e.g., one for 10-11, one for 11-12).
    - Both entries should contain the same raw content text.
5.  Content: The "raw_content" string should include EVERYTHING in that block: course codes, type (L/P), professors, rooms.

OUTPUT FORMAT (JSON Array ONLY):
[
  { "day": "MON", "time": "8-9", "raw_content": "E1 L PE308 GET PROF.NAVEEN || L PE308 GET PROF.ANIL" },
  { "day": "MON", "time": "11-12", "raw_content": "P PE 302 LAB G1 MUKESH S D" },
  { "day": "MON", "time": "12-1", "raw_content": "P PE 302 LAB G1 MUKESH S D" }
]

Return only valid JSON.
"""


class ExtractionFailure(Exception):
    """
    The extraction service could not be called or gave no usable answer.
    """


@dataclass
class ExtractionResult:
    texts: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)


def _guess_mime_type(path: Path) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "application/octet-stream"


def _build_body(image: bytes, mime_type: str) -> dict:
    return {
        "contents": [
            {
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(image).decode("ascii")}},
                    {"text": PROMPT},
                ]
            }
        ],
        "generationConfig": {"responseMimeType": "application/json"},
    }


def _answer_text(data: Any) -> str:
    """
    Pull candidates[0].content.parts[*].text out of the response body.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ExtractionFailure("Invalid response from the extraction service (no candidates).") from exc

    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text.strip():
        raise ExtractionFailure("The extraction service returned an empty answer.")
    return text


def extract_file(
    path: str | Path,
    api_key: str,
    model: str,
    timeout: float = 60.0,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Send one image to the service and return its raw text answer.
    """
    if not api_key:
        raise ExtractionFailure("No API key configured (set GEMINI_API_KEY or pass --api-key).")

    p = Path(path)
    try:
        image = p.read_bytes()
    except OSError as exc:
        raise ExtractionFailure(f"Cannot read {p}: {exc}") from exc

    if session is None:
        with requests.Session() as owned:
            return extract_file(p, api_key, model, timeout=timeout, session=owned)

    url = API_URL.format(model=model)

    logger.info("Sending %s to %s for raw extraction...", p.name, model)
    try:
        resp = session.post(
            url,
            params={"key": api_key},
            json=_build_body(image, _guess_mime_type(p)),
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as exc:
        raise ExtractionFailure(f"Extraction request failed: {exc}") from exc
    except ValueError as exc:
        raise ExtractionFailure(f"Extraction service returned non-JSON body: {exc}") from exc

    return _answer_text(data)


def extract_files(
    paths: Iterable[str | Path],
    api_key: str,
    model: str,
    timeout: float = 60.0,
    session: Optional[requests.Session] = None,
) -> ExtractionResult:
    """
    Extract every file in order. Failures are recorded, not raised.
    """
    if session is None:
        with requests.Session() as owned:
            return extract_files(paths, api_key, model, timeout=timeout, session=owned)

    result = ExtractionResult()

    for path in paths:
        try:
            result.texts.append(extract_file(path, api_key, model, timeout=timeout, session=session))
        except ExtractionFailure as exc:
            logger.warning("Extraction failed for %s: %s", path, exc)
            result.failures.append((str(path), str(exc)))

    return result
