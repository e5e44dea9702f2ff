"""Decode Codex CLI session transcripts.

Current Codex versions write "rollout" JSONL: every line wraps a ``payload``
in an envelope typed ``session_meta``, ``response_item``, ``event_msg``,
``turn_context`` or ``compacted``. Older versions wrote the response items
themselves, as JSONL or inside a ``{"session": ..., "items": [...]}``
document. Both are handled here.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from ..content import classify_content
from ..models import ContentBlock, Role, TextBlock, ToolInvocationBlock, ToolOutcomeBlock
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import as_dict, first_str, pick, stamp, type_of

_ENVELOPE_TYPES = frozenset({"session_meta", "response_item", "event_msg", "turn_context", "compacted"})

_MESSAGE_ROLES = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "system": Role.SYSTEM,
    "developer": Role.SYSTEM,
}

_INVOCATION_TYPES = frozenset({"function_call", "custom_tool_call"})
_OUTCOME_TYPES = frozenset({"function_call_output", "custom_tool_call_output"})

# event_msg entries that restate a response_item written next to them.
_MIRROR_EVENTS = frozenset({"agent_message", "agent_reasoning", "agent_reasoning_raw_content", "user_message"})

_SESSION_META_FIELDS = {
    "cwd": "cwd",
    "cli_version": "cli_version",
    "originator": "originator",
    "source": "source",
    "git": "git",
    "model_provider": "model_provider",
}

_TURN_CONTEXT_FIELDS = {
    "cwd": "cwd",
    "model": "model",
    "approval_policy": "approval_policy",
    "sandbox_policy": "sandbox_policy",
    "effort": "effort",
}


class CodexDecoder:
    name = "codex"
    aliases = ("codex-cli",)
    session_prefix = "codex"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        for record in sample_records(sample, limit):
            if isinstance(record.get("payload"), dict) and type_of(record) in _ENVELOPE_TYPES:
                return True
            if record.get("messageID") is not None and record.get("sessionID") is not None:
                return True
            if isinstance(record.get("session"), dict) and "id" in record["session"]:
                return True
        return False

    def session_id(self, record: dict) -> str | None:
        if record.get("type") == "session_meta":
            session_id = first_str(as_dict(record.get("payload")), "id", "session_id")
            if session_id:
                return session_id
        return first_str(as_dict(record.get("session")), "id") or first_str(
            record, "sessionID", "sessionId", "session_id"
        )

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        timestamp = stamp(record, ("timestamp", "created_at"))
        if isinstance(timestamp, Dropped):
            return timestamp

        envelope = record.get("type")
        payload = as_dict(record.get("payload"))

        if envelope == "session_meta":
            return self._meta(record, ctx, timestamp, pick(payload, _SESSION_META_FIELDS))
        if envelope == "turn_context":
            return self._meta(record, ctx, timestamp, pick(payload, _TURN_CONTEXT_FIELDS))
        if envelope == "event_msg":
            return self._event(record, payload, ctx, timestamp)
        if envelope == "compacted":
            summary = payload.get("message")
            blocks: list[ContentBlock] = [TextBlock(summary)] if isinstance(summary, str) else []
            return self._message(record, {}, ctx, timestamp, Role.META, blocks, {"compacted": True})
        if envelope == "response_item":
            return self._response_item(record, payload, ctx, timestamp)

        # Legacy: the response item is the record itself.
        item = record
        if "type" not in item and isinstance(item.get("message"), dict):
            item = {"type": "message", **item["message"]}
        elif "type" not in item and "role" in item:
            item = {"type": "message", **item}
        return self._response_item(record, item, ctx, timestamp)

    def _response_item(self, record: dict, item: dict, ctx: DecodeContext, timestamp) -> ProvisionalMessage | Dropped:
        item_type = type_of(item)

        if item_type == "message":
            role = _MESSAGE_ROLES.get(type_of(item, "role"))
            if role is None:
                return Dropped(DropReason.IGNORED)
            return self._message(record, item, ctx, timestamp, role, classify_content(item.get("content")), {"role": item["role"]})

        if item_type == "reasoning":
            return self._message(record, item, ctx, timestamp, Role.ASSISTANT, classify_content([item]), {})

        if item_type in _INVOCATION_TYPES:
            return self._message(record, item, ctx, timestamp, Role.TOOL_INVOCATION, classify_content([item]), {})

        if item_type in ("local_shell_call", "web_search_call"):
            block = ToolInvocationBlock(
                name=item_type[: -len("_call")],
                input=as_dict(item.get("action")),
                call_id=first_str(item, "call_id", "id"),
            )
            return self._message(record, item, ctx, timestamp, Role.TOOL_INVOCATION, [block], {"status": item.get("status")})

        if item_type in _OUTCOME_TYPES:
            blocks = [_with_exit_status(block) for block in classify_content([item])]
            return self._message(record, item, ctx, timestamp, Role.TOOL_OUTCOME, blocks, {})

        return Dropped(DropReason.IGNORED)

    def _event(self, record: dict, payload: dict, ctx: DecodeContext, timestamp) -> ProvisionalMessage | Dropped:
        event_type = type_of(payload)
        if event_type in _MIRROR_EVENTS:
            return Dropped(DropReason.DUPLICATE)
        if event_type == "turn_aborted":
            return self._message(record, {}, ctx, timestamp, Role.INTERRUPTION, [], pick(payload, {"reason": "reason"}))
        if event_type == "token_count":
            info = as_dict(payload.get("info"))
            usage = info.get("last_token_usage") or info.get("total_token_usage")
            if not isinstance(usage, dict):
                return Dropped(DropReason.IGNORED)
            return self._meta(record, ctx, timestamp, {"usage": usage, "event_type": event_type})
        return Dropped(DropReason.IGNORED)

    def _meta(self, record: dict, ctx: DecodeContext, timestamp, metadata: dict) -> ProvisionalMessage:
        return self._message(record, {}, ctx, timestamp, Role.META, [], metadata)

    def _message(
        self,
        record: dict,
        item: dict,
        ctx: DecodeContext,
        timestamp,
        role: Role,
        blocks: list[ContentBlock],
        metadata: dict[str, Any],
    ) -> ProvisionalMessage:
        metadata = {key: value for key, value in metadata.items() if value is not None}
        metadata["entry_type"] = record.get("type") or item.get("type")
        if isinstance(item.get("type"), str):
            metadata["item_type"] = item["type"]
        return ProvisionalMessage(
            id=first_str(item, "id") or first_str(record, "id", "messageID") or ctx.fallback_id(),
            timestamp=timestamp,
            role=role,
            blocks=blocks,
            metadata=metadata,
        )


def _with_exit_status(block: ContentBlock) -> ContentBlock:
    """Unwrap Codex's ``{"output": ..., "metadata": {"exit_code": n}}`` outputs."""
    if not isinstance(block, ToolOutcomeBlock) or not isinstance(block.payload, str):
        return block
    try:
        decoded = json.loads(block.payload)
    except json.JSONDecodeError:
        return block
    if not isinstance(decoded, dict) or "output" not in decoded:
        return block
    exit_code = as_dict(decoded.get("metadata")).get("exit_code")
    is_error = block.is_error or (isinstance(exit_code, int) and exit_code != 0)
    return dataclasses.replace(block, payload=decoded, is_error=is_error)
