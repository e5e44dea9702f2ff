"""Drive one parse call: records in, ParsedSession out."""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter

from .aggregate import aggregate
from .config import Config
from .decoders import DecodeContext, Dropped, DropReason, RecordDecoder
from .errors import EmptyInputError, NoUsableRecordsError
from .linking import ToolLinker
from .models import ParsedMessage, ParsedSession
from .patterns import refine_role
from .records import open_records
from .splitting import split_message

_LOGGER = logging.getLogger(__name__)


class _IdAllocator:
    """Hands out message ids, suffixing repeats with ``~{n}`` in input order."""

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def claim(self, wanted: str) -> str:
        candidate = wanted
        n = 1
        while candidate in self._seen:
            candidate = f"{wanted}~{n}"
            n += 1
        self._seen.add(candidate)
        return candidate


def parse(text: str, decoder: RecordDecoder, config: Config | None = None) -> ParsedSession:
    """Normalize ``text`` with ``decoder``.

    Raises EmptyInputError for blank input and NoUsableRecordsError when no
    record is a JSON object. Every other defect is absorbed as a counted drop.
    """
    if not text or not text.strip():
        raise EmptyInputError()

    source = open_records(text)
    ctx = DecodeContext(format_name=decoder.name)
    linker = ToolLinker()
    ids = _IdAllocator()
    drops: Counter[str] = Counter()

    session_id = decoder.session_id(source.header) if source.header else None
    lines_total = 0
    structured = 0
    records_seen = 0
    messages: list[ParsedMessage] = []

    for raw in source.records:
        lines_total += 1
        if raw.record is None:
            drops[DropReason.MALFORMED.value] += 1
            continue
        structured += 1
        if session_id is None:
            session_id = decoder.session_id(raw.record)

        ctx.record_index = raw.index
        result = decoder.decode(raw.record, ctx)
        if isinstance(result, Dropped):
            drops[result.reason.value] += 1
            _LOGGER.debug("Dropped record %d: %s", raw.index, result.reason.value)
            continue

        result.id = ids.claim(result.id)
        result.blocks = linker.link_blocks(result.blocks, result.id, result.linked_to)
        role, rule = refine_role(result.role, result.blocks)
        if rule is not None:
            result.role = role
            result.metadata = {**result.metadata, "text_rule": rule}

        for message in split_message(result):
            unique = ids.claim(message.id) if message.id != result.id else message.id
            if unique != message.id:
                message = dataclasses.replace(message, id=unique)
            messages.append(message)
        records_seen += 1

    if structured == 0 and lines_total > 0:
        raise NoUsableRecordsError(lines_total)

    # list.sort is stable, so equal timestamps keep input order
    messages.sort(key=lambda message: message.timestamp)

    session = aggregate(
        messages,
        records_seen,
        lines_total,
        source_format=decoder.name,
        session_id=session_id,
        session_prefix=decoder.session_prefix,
        drops=drops,
    )
    _LOGGER.info(
        "Parsed %s transcript %s: %d message(s) from %d/%d record(s), %d dropped",
        decoder.name,
        session.session_id,
        len(messages),
        records_seen,
        lines_total,
        sum(drops.values()),
    )
    return session
