"""Split raw transcript text into records and parse their timestamps."""

from __future__ import annotations

import io
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

_LOGGER = logging.getLogger(__name__)

# Keys under which single-document transcripts embed their record array.
DOCUMENT_ARRAY_KEYS = ("messages", "items", "entries", "timeline", "history")

_LEADING_SPACE = re.compile(r"\s*")
_FRACTION = re.compile(r"(\.\d{1,6})\d*")
_EPOCH_MS_THRESHOLD = 1e11


@dataclass
class RawLine:
    """One record slot of the input: a decoded object, or None if malformed."""

    index: int
    record: dict | None


@dataclass
class RecordSource:
    """Records of one transcript plus the enclosing document fields, if any."""

    records: Iterator[RawLine]
    header: dict | None = None


def _coerce_records(value: Any) -> list[dict | None]:
    """Normalize a decoded JSON value to a list of record slots."""
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [record if isinstance(record, dict) else None for record in value]
    return [None]


def open_records(text: str) -> RecordSource:
    """Return the records of ``text``, from a JSON document or from JSON lines.

    A whole-document parse is tried first (some tools write one pretty-printed
    JSON object holding a message array). JSONL input fails that parse on its
    second line, and is then read lazily line by line.
    """
    first = _LEADING_SPACE.match(text).end()
    if text[first:first + 1] in ("{", "["):
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = None
        else:
            return _document_records(payload)
    return RecordSource(records=_line_records(text))


def _document_records(payload: Any) -> RecordSource:
    header = None
    records: list[dict | None]
    if isinstance(payload, dict):
        for key in DOCUMENT_ARRAY_KEYS:
            items = payload.get(key)
            if isinstance(items, list):
                header = {k: v for k, v in payload.items() if k != key}
                records = _coerce_records(items)
                break
        else:
            records = [payload]
    else:
        records = _coerce_records(payload)
    return RecordSource(
        records=(RawLine(index, record) for index, record in enumerate(records)),
        header=header,
    )


def _line_records(text: str) -> Iterator[RawLine]:
    index = 0
    for line in io.StringIO(text):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as exc:
            _LOGGER.debug("Record %d is not valid JSON: %s", index, exc)
            yield RawLine(index, None)
            index += 1
            continue
        for record in _coerce_records(entry):
            yield RawLine(index, record)
            index += 1


def sample_records(sample: str, limit: int = 5) -> list[dict]:
    """Decode up to ``limit`` records from the head of ``sample`` for detection."""
    if limit <= 0 or not sample.strip():
        return []
    found: list[dict] = []
    source = open_records(sample)
    if source.header is not None:
        found.append(source.header)
    for raw in source.records:
        if raw.record is not None:
            found.append(raw.record)
        if len(found) >= limit or raw.index + 1 >= limit:
            break
    return found


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into an aware UTC datetime."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Older interpreters only accept 3 or 6 fractional digits.
    text = _FRACTION.sub(lambda m: m.group(1).ljust(7, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
