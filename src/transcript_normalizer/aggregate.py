"""Fold an ordered message list into a ParsedSession."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Mapping

from .models import (
    ImageBlock,
    ParsedMessage,
    ParsedSession,
    ReasoningBlock,
    Role,
    SessionMetadata,
)

# Usage keys that report prompt-cache hits, across providers.
CACHED_TOKEN_KEYS = ("cache_read_input_tokens", "cached_input_tokens", "cached", "cachedContentTokenCount")


def aggregate(
    messages: list[ParsedMessage],
    records_seen: int,
    lines_total: int,
    *,
    source_format: str,
    session_id: str | None = None,
    session_prefix: str = "session",
    drops: Mapping[str, int] | None = None,
    now: datetime | None = None,
) -> ParsedSession:
    """Compute session bounds, identity and counters in one pass over ``messages``."""
    start_time: datetime | None = None
    end_time: datetime | None = None
    roles: Counter[str] = Counter()
    invocations = outcomes = orphaned = 0
    has_reasoning = has_redacted = has_images = has_cached = False
    models: set[str] = set()

    for message in messages:
        if start_time is None or message.timestamp < start_time:
            start_time = message.timestamp
        if end_time is None or message.timestamp > end_time:
            end_time = message.timestamp

        roles[message.role.value] += 1
        if message.role is Role.TOOL_INVOCATION:
            invocations += 1
        elif message.role is Role.TOOL_OUTCOME:
            outcomes += 1
            if message.orphaned:
                orphaned += 1

        for block in message.content:
            if isinstance(block, ReasoningBlock):
                has_reasoning = True
                has_redacted = has_redacted or block.redacted
            elif isinstance(block, ImageBlock):
                has_images = True

        model = message.metadata.get("model")
        if isinstance(model, str) and model:
            models.add(model)
        if not has_cached and _has_cached_tokens(message.metadata.get("usage")):
            has_cached = True

    if start_time is None or end_time is None:
        start_time = end_time = now or datetime.now(timezone.utc)
    duration = max(end_time - start_time, timedelta(0))

    generated = not session_id
    if generated:
        session_id = f"{session_prefix}-{int(start_time.timestamp() * 1000)}"

    metadata = SessionMetadata(
        message_count=len(messages),
        lines_total=lines_total,
        records_seen=records_seen,
        drops=dict(drops or {}),
        role_counts=dict(roles),
        tool_invocation_count=invocations,
        tool_outcome_count=outcomes,
        orphaned_outcome_count=orphaned,
        has_reasoning=has_reasoning,
        has_redacted_reasoning=has_redacted,
        has_images=has_images,
        has_tool_calls=invocations > 0,
        has_cached_tokens=has_cached,
        models=tuple(sorted(models)),
        session_id_generated=generated,
    )
    return ParsedSession(
        session_id=session_id,
        source_format=source_format,
        messages=tuple(messages),
        start_time=start_time,
        end_time=end_time,
        duration=duration,
        metadata=metadata,
    )


def _has_cached_tokens(usage) -> bool:
    if not isinstance(usage, Mapping):
        return False
    for key in CACHED_TOKEN_KEYS:
        value = usage.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return True
    return False
