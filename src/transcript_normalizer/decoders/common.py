"""Helpers shared by the record decoders."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..records import parse_timestamp
from . import Dropped, DropReason


def stamp(record: dict, fields: tuple[str, ...] = ("timestamp",)) -> datetime | Dropped:
    """Return the record's timestamp, or the reason it cannot be used."""
    for name in fields:
        value = record.get(name)
        if value is None or value == "":
            continue
        parsed = parse_timestamp(value)
        if parsed is None:
            return Dropped(DropReason.BAD_TIMESTAMP)
        return parsed
    return Dropped(DropReason.NO_TIMESTAMP)


def first_str(record: dict, *keys: str) -> str | None:
    """Return the first non-empty string value among ``keys``."""
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def pick(record: dict, fields: dict[str, str]) -> dict[str, Any]:
    """Copy the present ``record`` fields into a metadata dict, renamed.

    ``fields`` maps source field names to metadata keys.
    """
    return {target: record[source] for source, target in fields.items() if record.get(source) is not None}


def type_of(record: dict, key: str = "type") -> str | None:
    """The record's type tag, or None when it is missing or not a string."""
    value = record.get(key)
    return value if isinstance(value, str) else None
