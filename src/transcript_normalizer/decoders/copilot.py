"""Decode GitHub Copilot CLI timeline entries."""

from __future__ import annotations

from collections import Counter
from typing import Any

from ..content import decode_arguments
from ..models import ContentBlock, Role, TextBlock, ToolInvocationBlock, ToolOutcomeBlock
from ..records import sample_records
from . import DecodeContext, Dropped, DropReason, ProvisionalMessage
from .common import first_str, pick, stamp, type_of

_TEXT_ROLES = {
    "user": Role.USER,
    "copilot": Role.ASSISTANT,
    "info": Role.SYSTEM,
    "error": Role.SYSTEM,
}

# Entry types only Copilot writes; "user" and "info" alone are too generic.
_DISTINCT_TYPES = frozenset({"copilot", "tool_call_requested", "tool_call_completed"})

_ERROR_RESULTS = frozenset({"failure", "error", "rejected", "denied"})

_REQUESTED_KEY = "copilot.requested_call_ids"
_UNANSWERED_KEY = "copilot.unanswered_by_name"


class CopilotDecoder:
    name = "github-copilot"
    aliases = ("copilot",)
    session_prefix = "copilot"

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        for record in sample_records(sample, limit):
            if type_of(record) in _DISTINCT_TYPES and "message" not in record and "payload" not in record:
                return True
        return False

    def session_id(self, record: dict) -> str | None:
        # Copilot timelines do not carry a session id.
        return None

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        timestamp = stamp(record)
        if isinstance(timestamp, Dropped):
            return timestamp

        entry_type = type_of(record)
        metadata = pick(record, {"toolTitle": "tool_title", "intentionSummary": "intention_summary"})
        metadata["entry_type"] = entry_type

        if entry_type in ("tool_call_requested", "tool_call_completed"):
            call_id = first_str(record, "callId")
            blocks = self._tool_blocks(record, call_id, ctx)
            fallback = call_id if entry_type == "tool_call_requested" else call_id and f"result-{call_id}"
            return ProvisionalMessage(
                id=first_str(record, "id") or fallback or ctx.fallback_id("tool"),
                timestamp=timestamp,
                role=Role.TOOL_INVOCATION if entry_type == "tool_call_requested" else Role.TOOL_OUTCOME,
                blocks=blocks,
                metadata=metadata,
            )

        if entry_type not in _TEXT_ROLES:
            return Dropped(DropReason.IGNORED)

        text = record.get("text")
        blocks: list[ContentBlock] = [TextBlock(text)] if isinstance(text, str) else []
        if isinstance(record.get("expandedText"), str):
            metadata["expanded_text"] = record["expandedText"]
        return ProvisionalMessage(
            id=first_str(record, "id") or ctx.fallback_id(),
            timestamp=timestamp,
            role=_TEXT_ROLES[entry_type],
            blocks=blocks,
            metadata=metadata,
        )

    def _tool_blocks(self, record: dict, call_id: str | None, ctx: DecodeContext) -> list[ContentBlock]:
        name = first_str(record, "name") or "unknown"
        requested: set[str] = ctx.state.setdefault(_REQUESTED_KEY, set())
        unanswered: Counter[str] = ctx.state.setdefault(_UNANSWERED_KEY, Counter())
        blocks: list[ContentBlock] = []

        # A completed call repeats the request data; emit the invocation only
        # if no tool_call_requested entry announced it. Without a callId the
        # announcement is tracked per tool name.
        if record.get("type") == "tool_call_requested":
            announced = False
        elif call_id is not None:
            announced = call_id in requested
        else:
            announced = unanswered[name] > 0

        if not announced:
            blocks.append(ToolInvocationBlock(name=name, input=decode_arguments(record.get("arguments")), call_id=call_id))
            if call_id is not None:
                requested.add(call_id)
            elif record.get("type") == "tool_call_requested":
                unanswered[name] += 1
        elif call_id is None:
            unanswered[name] -= 1

        if record.get("type") == "tool_call_completed":
            result = record.get("result")
            blocks.append(ToolOutcomeBlock(
                payload=_result_payload(result),
                reference=call_id,
                is_error=isinstance(result, dict) and str(result.get("type", "")).lower() in _ERROR_RESULTS,
                tool_name=name,
            ))
        return blocks


def _result_payload(result: Any) -> Any:
    if isinstance(result, dict) and "log" in result:
        return result["log"]
    return result
