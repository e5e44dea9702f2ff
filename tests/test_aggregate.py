"""Tests for session aggregation."""

from datetime import datetime, timedelta, timezone

from transcript_normalizer.aggregate import aggregate
from transcript_normalizer.models import (
    ImageBlock,
    ParsedMessage,
    ReasoningBlock,
    Role,
    TextBlock,
    ToolInvocationBlock,
    ToolOutcomeBlock,
)

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _msg(id, seconds, role=Role.USER, content=(), **metadata):
    return ParsedMessage(id=id, timestamp=T0 + timedelta(seconds=seconds), role=role, content=content, metadata=metadata)


class TestAggregate:
    def test_bounds_and_duration(self):
        session = aggregate([_msg("a", 0), _msg("b", 30), _msg("c", 45)], 3, 3, source_format="x", session_id="s")
        assert session.start_time == T0
        assert session.end_time == T0 + timedelta(seconds=45)
        assert session.duration == timedelta(seconds=45)
        assert session.session_id == "s"
        assert not session.metadata.session_id_generated

    def test_empty_uses_now(self):
        session = aggregate([], 0, 4, source_format="x", session_prefix="gemini", now=T0)
        assert session.start_time == session.end_time == T0
        assert session.duration == timedelta(0)
        assert session.session_id == f"gemini-{int(T0.timestamp() * 1000)}"
        assert session.metadata.session_id_generated
        assert session.metadata.message_count == 0

    def test_generated_id_seeded_from_first_message(self):
        session = aggregate([_msg("a", 10)], 1, 1, source_format="x", session_prefix="copilot")
        assert session.session_id == f"copilot-{int((T0 + timedelta(seconds=10)).timestamp() * 1000)}"

    def test_counters_and_flags(self):
        messages = [
            _msg("u", 0, content=(TextBlock("look"), ImageBlock(media_type="image/png", data="A"))),
            _msg("a", 1, Role.ASSISTANT, (ReasoningBlock(redacted=True),), model="m-1",
                 usage={"input_tokens": 5, "cache_read_input_tokens": 10}),
            _msg("i", 2, Role.TOOL_INVOCATION, (ToolInvocationBlock(name="Bash", join_key="k"),)),
            _msg("o", 3, Role.TOOL_OUTCOME, (ToolOutcomeBlock(payload="", join_key="k"),)),
            _msg("x", 4, Role.TOOL_OUTCOME, (ToolOutcomeBlock(payload="", join_key="zz", orphaned=True),)),
            _msg("b", 5, Role.ASSISTANT, model="m-0"),
        ]
        meta = aggregate(messages, 6, 8, source_format="x", drops={"malformed": 2}).metadata
        assert meta.message_count == 6
        assert meta.role_counts == {"user": 1, "assistant": 2, "tool_invocation": 1, "tool_outcome": 2}
        assert meta.tool_invocation_count == 1
        assert meta.tool_outcome_count == 2
        assert meta.orphaned_outcome_count == 1
        assert meta.has_reasoning and meta.has_redacted_reasoning
        assert meta.has_images
        assert meta.has_tool_calls
        assert meta.has_cached_tokens
        assert meta.models == ("m-0", "m-1")
        assert meta.consumed_ratio == 0.75
        assert meta.dropped_count == 2

    def test_zero_cache_counts_are_not_cached(self):
        messages = [_msg("a", 0, Role.ASSISTANT, usage={"cached_input_tokens": 0, "cached": True})]
        assert not aggregate(messages, 1, 1, source_format="x").metadata.has_cached_tokens

    def test_pair_tool_calls(self):
        messages = [
            _msg("i1", 0, Role.TOOL_INVOCATION, (ToolInvocationBlock(name="A", join_key="k1"),)),
            _msg("i2", 1, Role.TOOL_INVOCATION, (ToolInvocationBlock(name="B", join_key="k2"),)),
            _msg("o1", 2, Role.TOOL_OUTCOME, (ToolOutcomeBlock(payload="", join_key="k1"),)),
        ]
        session = aggregate(messages, 3, 3, source_format="x", session_id="s")
        assert [(i.id, o.id if o else None) for i, o in session.pair_tool_calls()] == [("i1", "o1"), ("i2", None)]
