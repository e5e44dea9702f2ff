"""Decode the canonical unified JSONL format.

Canonical records follow the Claude Code record layout and add a ``provider``
field naming the tool the session was converted from.
"""

from __future__ import annotations

from ..content import classify_content
from ..models import Role
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import as_dict, first_str, pick, stamp, type_of

_TYPES = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "meta": Role.META,
}

_METADATA_FIELDS = {
    "provider": "provider",
    "cwd": "cwd",
    "gitBranch": "git_branch",
    "version": "version",
    "isSidechain": "is_sidechain",
    "userType": "user_type",
    "requestId": "request_id",
    "providerMetadata": "provider_metadata",
    "toolUseResult": "tool_use_result",
}


class CanonicalDecoder:
    name = "canonical"
    aliases = ()
    session_prefix = "session"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        for record in sample_records(sample, limit):
            if (
                record.get("uuid")
                and record.get("sessionId")
                and record.get("provider")
                and as_dict(record.get("message")).get("role")
                and type_of(record) in _TYPES
            ):
                return True
        return False

    def session_id(self, record: dict) -> str | None:
        return first_str(record, "sessionId")

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        if record.get("isMeta"):
            return Dropped(DropReason.META)

        timestamp = stamp(record)
        if isinstance(timestamp, Dropped):
            return timestamp

        msg = record.get("message")
        if not isinstance(msg, dict) or type_of(record) not in _TYPES:
            return Dropped(DropReason.IGNORED)

        metadata = pick(record, _METADATA_FIELDS)
        metadata.update(pick(msg, {"role": "role", "model": "model", "usage": "usage"}))

        return ProvisionalMessage(
            id=first_str(record, "uuid") or ctx.fallback_id(),
            timestamp=timestamp,
            role=_TYPES[record["type"]],
            blocks=classify_content(msg.get("content")),
            metadata=metadata,
            parent_id=first_str(record, "parentUuid"),
        )
