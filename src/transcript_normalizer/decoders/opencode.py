"""Decode OpenCode session JSONL records.

OpenCode records use Anthropic-style message content with lowercase tool
names (``bash``, ``read``); names are title-cased to match the other tools.
"""

from __future__ import annotations

import dataclasses

from ..content import classify_content
from ..models import ContentBlock, Role, ToolInvocationBlock, ToolOutcomeBlock
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import as_dict, first_str, stamp, type_of

_ROLES = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "tool_use": Role.TOOL_INVOCATION,
    "tool_result": Role.TOOL_OUTCOME,
}


class OpenCodeDecoder:
    name = "opencode"
    aliases = ()
    session_prefix = "opencode"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        for record in sample_records(sample, limit):
            if (
                record.get("sessionId")
                and record.get("timestamp")
                and isinstance(record.get("message"), dict)
                and type_of(record) in _ROLES
                and "uuid" not in record
            ):
                return True
        return False

    def session_id(self, record: dict) -> str | None:
        return first_str(record, "sessionId", "sessionID")

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        timestamp = stamp(record)
        if isinstance(timestamp, Dropped):
            return timestamp

        entry_type = type_of(record)
        if entry_type not in _ROLES:
            return Dropped(DropReason.IGNORED)

        msg = as_dict(record.get("message"))
        blocks = [_title_case_tool(block) for block in classify_content(msg.get("content"))]

        metadata = {"entry_type": entry_type}
        if msg.get("role"):
            metadata["role"] = msg["role"]
        if msg.get("model"):
            metadata["model"] = msg["model"]

        session = first_str(record, "sessionId") or "opencode"
        return ProvisionalMessage(
            id=first_str(record, "id", "uuid") or f"{session}-{ctx.record_index}",
            timestamp=timestamp,
            role=_ROLES[entry_type],
            blocks=blocks,
            metadata=metadata,
            parent_id=first_str(record, "parentId"),
        )


def _title_case_tool(block: ContentBlock) -> ContentBlock:
    if isinstance(block, ToolInvocationBlock) and block.name[:1].islower():
        return dataclasses.replace(block, name=block.name[:1].upper() + block.name[1:])
    if isinstance(block, ToolOutcomeBlock) and block.tool_name and block.tool_name[:1].islower():
        return dataclasses.replace(block, tool_name=block.tool_name[:1].upper() + block.tool_name[1:])
    return block
