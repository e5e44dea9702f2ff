"""Decode Gemini CLI sessions.

Two shapes are accepted: converted JSONL records (``uuid``, ``message``,
``gemini_model``, ``gemini_thoughts``, ``gemini_tokens``) and the Gemini CLI
session document, whose ``messages`` array holds records with ``content``,
``thoughts``, ``tokens`` and ``toolCalls``.
"""

from __future__ import annotations

from typing import Any

from ..content import classify_content, decode_arguments
from ..models import ContentBlock, ReasoningBlock, Role, ToolInvocationBlock, ToolOutcomeBlock
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import as_dict, first_str, pick, stamp, type_of

_ROLES = {
    "user": Role.USER,
    "gemini": Role.ASSISTANT,
    "model": Role.ASSISTANT,
    "assistant": Role.ASSISTANT,
    "tool_use": Role.TOOL_INVOCATION,
    "tool_result": Role.TOOL_OUTCOME,
    "info": Role.SYSTEM,
    "error": Role.SYSTEM,
    "warning": Role.SYSTEM,
}

_ERROR_STATUSES = frozenset({"error", "failed", "cancelled"})


class GeminiDecoder:
    name = "gemini-code"
    aliases = ("gemini",)
    session_prefix = "gemini"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        for record in sample_records(sample, limit):
            if record.get("gemini_model") or "gemini_thoughts" in record or record.get("type") == "gemini":
                return True
            # Session document header: {"sessionId", "projectHash", "messages": [...]}
            if record.get("sessionId") and "projectHash" in record:
                return True
        return False

    def session_id(self, record: dict) -> str | None:
        return first_str(record, "sessionId", "session_id")

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        timestamp = stamp(record)
        if isinstance(timestamp, Dropped):
            return timestamp

        entry_type = type_of(record)
        if entry_type not in _ROLES:
            return Dropped(DropReason.IGNORED)

        msg = as_dict(record.get("message"))
        raw_content = msg.get("content") if "content" in msg else record.get("content")

        blocks: list[ContentBlock] = _thought_blocks(record.get("gemini_thoughts", record.get("thoughts")))
        blocks.extend(classify_content(raw_content))
        blocks.extend(_tool_call_blocks(record.get("toolCalls")))

        metadata: dict[str, Any] = {"entry_type": entry_type}
        model = first_str(record, "gemini_model", "model")
        if model:
            metadata["model"] = model
        tokens = record.get("gemini_tokens", record.get("tokens"))
        if isinstance(tokens, dict):
            metadata["usage"] = tokens
        metadata.update(pick(record, {"cwd": "cwd"}))
        if msg.get("role"):
            metadata["role"] = msg["role"]

        return ProvisionalMessage(
            id=first_str(record, "uuid", "id") or ctx.fallback_id(),
            timestamp=timestamp,
            role=_ROLES[entry_type],
            blocks=blocks,
            metadata=metadata,
            parent_id=first_str(record, "parentUuid"),
            linked_to=first_str(record, "toolUseId", "linkedTo"),
        )


def _thought_blocks(thoughts: Any) -> list[ContentBlock]:
    if not isinstance(thoughts, list):
        return []
    blocks: list[ContentBlock] = []
    for thought in thoughts:
        if isinstance(thought, str) and thought.strip():
            blocks.append(ReasoningBlock(text=thought))
        elif isinstance(thought, dict):
            subject = thought.get("subject") or ""
            description = thought.get("description") or ""
            text = f"{subject}: {description}" if subject and description else subject or description
            if text:
                blocks.append(ReasoningBlock(text=text))
    return blocks


def _tool_call_blocks(tool_calls: Any) -> list[ContentBlock]:
    """Expand recorded tool calls into invocation and outcome blocks."""
    if not isinstance(tool_calls, list):
        return []
    blocks: list[ContentBlock] = []
    for call in tool_calls:
        if not isinstance(call, dict) or not isinstance(call.get("name"), str):
            continue
        call_id = call.get("id") if isinstance(call.get("id"), str) and call.get("id") else None
        blocks.append(ToolInvocationBlock(name=call["name"], input=decode_arguments(call.get("args")), call_id=call_id))
        if call.get("result") is None and call.get("resultDisplay") is None:
            continue
        blocks.append(ToolOutcomeBlock(
            payload=call.get("result") if call.get("result") is not None else call.get("resultDisplay"),
            reference=call_id,
            is_error=str(call.get("status", "")).lower() in _ERROR_STATUSES,
            tool_name=call["name"],
        ))
    return blocks
