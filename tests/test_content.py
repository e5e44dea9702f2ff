"""Tests for content-block classification and the user text pattern tables."""

import json

import pytest

from transcript_normalizer.content import classify_content, decode_arguments
from transcript_normalizer.models import (
    BlockKind,
    ImageBlock,
    OpaqueBlock,
    ReasoningBlock,
    Role,
    TextBlock,
    ToolInvocationBlock,
    ToolOutcomeBlock,
    flatten_text,
)
from transcript_normalizer.patterns import USER_TEXT_RULES, match_user_text, refine_role


class TestClassifyContent:
    def test_plain_string(self):
        assert classify_content("hello") == [TextBlock("hello")]

    def test_none_has_no_blocks(self):
        assert classify_content(None) == []

    def test_parts_in_order(self):
        blocks = classify_content([
            {"type": "text", "text": "Let me look."},
            {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "x.py"}},
            {"type": "tool_result", "tool_use_id": "toolu_1", "content": "print(1)"},
        ])
        assert [b.kind for b in blocks] == [BlockKind.TEXT, BlockKind.TOOL_INVOCATION, BlockKind.TOOL_OUTCOME]
        assert blocks[1] == ToolInvocationBlock(name="Read", input={"file_path": "x.py"}, call_id="toolu_1")
        assert blocks[2].reference == "toolu_1"

    def test_json_string_parts_wrapper(self):
        raw = json.dumps({"parts": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]})
        assert classify_content(raw) == [TextBlock("a"), TextBlock("b")]

    def test_json_looking_string_without_parts_is_text(self):
        raw = '{"not": "parts"}'
        assert classify_content(raw) == [TextBlock(raw)]

    @pytest.mark.parametrize("key", ["parts", "content", "blocks"])
    def test_wrapper_objects(self, key):
        assert classify_content({key: ["x", {"type": "text", "text": "y"}]}) == [TextBlock("x"), TextBlock("y")]

    def test_single_typed_part(self):
        blocks = classify_content({"type": "tool_result", "tool_use_id": "t", "content": [{"type": "text", "text": "ok"}]})
        assert len(blocks) == 1
        assert isinstance(blocks[0], ToolOutcomeBlock)
        assert blocks[0].text == "ok"

    def test_unknown_shapes_are_opaque(self):
        assert classify_content(42) == [OpaqueBlock(42)]
        assert classify_content([{"type": "hologram", "data": 1}]) == [OpaqueBlock({"type": "hologram", "data": 1})]
        assert classify_content({"mystery": True}) == [OpaqueBlock({"mystery": True})]

    def test_function_call_with_json_arguments(self):
        [block] = classify_content([{
            "type": "function_call", "id": "fc_1", "call_id": "call_1",
            "name": "shell", "arguments": '{"command": ["ls"]}',
        }])
        assert block.call_id == "call_1"
        assert block.input == {"command": ["ls"]}

    def test_openai_tool_call_shape(self):
        [block] = classify_content([{
            "type": "tool_call", "id": "call_7",
            "function": {"name": "search", "arguments": '{"q": "retry"}'},
        }])
        assert block == ToolInvocationBlock(name="search", input={"q": "retry"}, call_id="call_7")


class TestReasoning:
    def test_thinking_text(self):
        [block] = classify_content([{"type": "thinking", "thinking": "Consider edge cases", "signature": "s"}])
        assert block == ReasoningBlock(text="Consider edge cases", signature="s")
        assert block.displayable

    def test_thinking_without_text_is_redacted(self):
        [block] = classify_content([{"type": "thinking", "thinking": "", "signature": "EqQBCkgI"}])
        assert block.redacted
        assert block.text is None
        assert not block.displayable

    def test_redacted_thinking(self):
        [block] = classify_content([{"type": "redacted_thinking", "data": "opaque"}])
        assert block == ReasoningBlock(redacted=True, signature="opaque")

    def test_gemini_thought_part(self):
        [block] = classify_content([{"text": "hmm", "thought": True}])
        assert block == ReasoningBlock(text="hmm")


class TestImages:
    def test_base64_source(self):
        [block] = classify_content([{"type": "image", "source": {"type": "base64", "media_type": "image/jpeg", "data": "AAA"}}])
        assert block == ImageBlock(media_type="image/jpeg", data="AAA")

    def test_data_url(self):
        [block] = classify_content([{"type": "input_image", "image_url": "data:image/png;base64,AAA"}])
        assert block == ImageBlock(media_type="image/png", data="data:image/png;base64,AAA")

    def test_inline_data(self):
        [block] = classify_content([{"inlineData": {"mimeType": "image/webp", "data": "BBB"}}])
        assert block == ImageBlock(media_type="image/webp", data="BBB")

    def test_image_without_data_is_opaque(self):
        part = {"type": "image", "source": {"type": "file"}}
        assert classify_content([part]) == [OpaqueBlock(part)]


class TestGeminiParts:
    def test_function_call_and_response(self):
        blocks = classify_content([
            {"functionCall": {"id": "fc-1", "name": "read_file", "args": {"path": "a"}}},
            {"functionResponse": {"id": "fc-1", "name": "read_file", "response": {"output": "text"}}},
        ])
        assert blocks[0] == ToolInvocationBlock(name="read_file", input={"path": "a"}, call_id="fc-1")
        assert blocks[1].reference == "fc-1"
        assert blocks[1].text == "text"


class TestHelpers:
    def test_flatten_text_skips_other_blocks(self):
        blocks = [TextBlock("a"), ReasoningBlock(text="hidden"), TextBlock("b")]
        assert flatten_text(blocks) == "a\nb"

    def test_decode_arguments(self):
        assert decode_arguments('{"a": 1}') == {"a": 1}
        assert decode_arguments("not json") == "not json"
        assert decode_arguments(None) == {}


class TestPatterns:
    @pytest.mark.parametrize(
        "text, role",
        [
            ("[Request interrupted by user]", Role.INTERRUPTION),
            ("[Request interrupted by user for tool use]", Role.INTERRUPTION),
            ("<command-name>/compact</command-name>", Role.COMMAND),
            ("<command-name>/model</command-name>\n<command-args></command-args>", Role.COMMAND),
            ("<local-command-stdout>Set model</local-command-stdout>", Role.COMMAND),
            ("/review src/app.py", Role.COMMAND),
            ("<environment_context>\n<cwd>/w</cwd>\n</environment_context>", Role.META),
            ("<user_instructions>be terse</user_instructions>", Role.META),
        ],
    )
    def test_rules(self, text, role):
        rule = match_user_text(text)
        assert rule is not None
        assert rule.role is role

    def test_ordinary_text_unchanged(self):
        assert match_user_text("Please fix /usr/bin paths in the script") is None
        assert match_user_text("   ") is None

    def test_first_rule_wins(self):
        assert match_user_text("<command-name>/compact</command-name>").name == "compact"

    def test_refine_only_touches_text_only_user_messages(self):
        text = [TextBlock("[Request interrupted by user]")]
        assert refine_role(Role.USER, text) == (Role.INTERRUPTION, "interrupted")
        assert refine_role(Role.ASSISTANT, text) == (Role.ASSISTANT, None)
        mixed = text + [ImageBlock(media_type="image/png", data="A")]
        assert refine_role(Role.USER, mixed) == (Role.USER, None)

    def test_rule_names_unique(self):
        names = [rule.name for rule in USER_TEXT_RULES]
        assert len(names) == len(set(names))
