"""Decode Claude Code transcript JSONL records."""

from __future__ import annotations

from ..content import classify_content
from ..models import Role
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import as_dict, first_str, pick, stamp, type_of

_ROLES = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "system": Role.SYSTEM,
}

# Bookkeeping entries Claude Code writes alongside the conversation.
_IGNORED_TYPES = frozenset({"summary", "file-history-snapshot", "queue-operation"})

_METADATA_FIELDS = {
    "requestId": "request_id",
    "userType": "user_type",
    "cwd": "cwd",
    "gitBranch": "git_branch",
    "version": "version",
    "isSidechain": "is_sidechain",
    "subtype": "subtype",
    "level": "level",
    "toolUseResult": "tool_use_result",
    "isCompactSummary": "is_compact_summary",
}


class ClaudeCodeDecoder:
    name = "claude-code"
    aliases = ("claude",)
    session_prefix = "session"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        return any(_looks_like_claude(record) for record in sample_records(sample, limit))

    def session_id(self, record: dict) -> str | None:
        return first_str(record, "sessionId", "sessionID", "session_id")

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        # Meta entries (skill expansions, caveats) are not part of the conversation
        if record.get("isMeta"):
            return Dropped(DropReason.META)

        entry_type = type_of(record)
        if entry_type in _IGNORED_TYPES:
            return Dropped(DropReason.IGNORED)

        timestamp = stamp(record)
        if isinstance(timestamp, Dropped):
            return timestamp

        msg = as_dict(record.get("message"))
        raw_content = msg.get("content") if "content" in msg else record.get("content")

        metadata = pick(record, _METADATA_FIELDS)
        metadata.update(pick(msg, {"model": "model", "usage": "usage", "id": "api_message_id", "stop_reason": "stop_reason"}))
        metadata["entry_type"] = entry_type
        if msg.get("role"):
            metadata["role"] = msg["role"]

        return ProvisionalMessage(
            id=first_str(record, "uuid") or ctx.fallback_id(),
            timestamp=timestamp,
            role=_ROLES.get(entry_type, Role.META),
            blocks=classify_content(raw_content),
            metadata=metadata,
            parent_id=first_str(record, "parentUuid"),
            linked_to=first_str(record, "sourceToolUseID", "parentToolUseID"),
        )


def _looks_like_claude(record: dict) -> bool:
    if "provider" in record or any(key.startswith("gemini_") for key in record):
        return False
    return (
        bool(record.get("uuid"))
        and bool(record.get("timestamp"))
        and isinstance(record.get("message"), dict)
        and record.get("type") in ("user", "assistant")
    )
