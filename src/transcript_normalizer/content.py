"""Turn a raw content payload of unknown shape into typed content blocks."""

from __future__ import annotations

import json
from typing import Any, Callable

from .models import (
    ContentBlock,
    ImageBlock,
    OpaqueBlock,
    ReasoningBlock,
    TextBlock,
    ToolInvocationBlock,
    ToolOutcomeBlock,
)

# Keys under which wrapper objects nest their part lists.
WRAPPER_KEYS = ("parts", "content", "blocks")


def classify_content(raw: Any) -> list[ContentBlock]:
    """Classify a raw content payload into an ordered list of blocks.

    Strings become a single text block, lists become one block per part,
    wrapper objects are unwrapped, and anything unrecognized is kept as an
    opaque block. Absent content (None) yields no blocks.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = _parts_from_json_string(raw)
        if parts is not None:
            return classify_parts(parts)
        return [TextBlock(raw)]
    if isinstance(raw, list):
        return classify_parts(raw)
    if isinstance(raw, dict):
        # A lone part object (a tool_result carries its own "content" list).
        if isinstance(raw.get("type"), str) and raw["type"] in PART_BUILDERS:
            return [classify_part(raw)]
        for key in WRAPPER_KEYS:
            nested = raw.get(key)
            if isinstance(nested, list):
                return classify_parts(nested)
        return [classify_part(raw)]
    return [OpaqueBlock(raw)]


def classify_parts(parts: list) -> list[ContentBlock]:
    return [classify_part(part) for part in parts]


def classify_part(part: Any) -> ContentBlock:
    """Classify one element of a content list."""
    if isinstance(part, str):
        return TextBlock(part)
    if not isinstance(part, dict):
        return OpaqueBlock(part)

    part_type = part.get("type")
    if isinstance(part_type, str):
        builder = PART_BUILDERS.get(part_type)
        block = builder(part) if builder else None
        return block if block is not None else OpaqueBlock(part)

    for key, builder in UNTYPED_PART_BUILDERS:
        if key in part:
            block = builder(part)
            if block is not None:
                return block
    return OpaqueBlock(part)


def _parts_from_json_string(raw: str) -> list | None:
    """Unwrap a string that holds a serialized ``{"parts": [...]}`` object."""
    stripped = raw.lstrip()
    if not stripped.startswith("{") or '"parts"' not in stripped:
        return None
    try:
        decoded = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if isinstance(decoded, dict) and isinstance(decoded.get("parts"), list):
        return decoded["parts"]
    return None


def decode_arguments(arguments: Any) -> Any:
    """Decode tool arguments that some sources serialize as a JSON string."""
    if isinstance(arguments, str):
        try:
            return json.loads(arguments)
        except json.JSONDecodeError:
            return arguments
    if arguments is None:
        return {}
    return arguments


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


# --- Typed parts ---


def _text(part: dict) -> ContentBlock | None:
    text = part.get("text")
    return TextBlock(text) if isinstance(text, str) else None


def _tool_invocation(part: dict) -> ContentBlock | None:
    function = part.get("function") if isinstance(part.get("function"), dict) else {}
    name = part.get("name") or function.get("name")
    if not isinstance(name, str) or not name:
        return None
    if "input" in part:
        arguments = part["input"]
    elif "arguments" in part:
        arguments = part["arguments"]
    elif "args" in part:
        arguments = part["args"]
    else:
        arguments = function.get("arguments")
    return ToolInvocationBlock(
        name=name,
        input=decode_arguments(arguments),
        # Codex items carry both an item id and the call_id their outputs reference.
        call_id=_str_or_none(part.get("call_id")) or _str_or_none(part.get("id")),
    )


def _tool_outcome(part: dict) -> ContentBlock | None:
    if "content" in part:
        payload = part["content"]
    elif "output" in part:
        payload = part["output"]
    else:
        payload = part.get("result")
    return ToolOutcomeBlock(
        payload=payload,
        reference=_str_or_none(part.get("tool_use_id")) or _str_or_none(part.get("call_id")),
        is_error=bool(part.get("is_error", False)),
        tool_name=_str_or_none(part.get("name")),
    )


def _thinking(part: dict) -> ContentBlock | None:
    text = part.get("thinking")
    if not isinstance(text, str):
        text = part.get("text")
    signature = _str_or_none(part.get("signature"))
    if isinstance(text, str) and text.strip():
        return ReasoningBlock(text=text, signature=signature)
    return ReasoningBlock(redacted=True, signature=signature)


def _redacted_thinking(part: dict) -> ContentBlock | None:
    return ReasoningBlock(redacted=True, signature=_str_or_none(part.get("data")))


def _reasoning(part: dict) -> ContentBlock | None:
    summary = part.get("summary")
    texts = []
    if isinstance(summary, list):
        for item in summary:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                texts.append(item["text"])
            elif isinstance(item, str):
                texts.append(item)
    elif isinstance(summary, str):
        texts.append(summary)
    if isinstance(part.get("text"), str):
        texts.append(part["text"])
    text = "\n".join(t for t in texts if t.strip())
    if text:
        return ReasoningBlock(text=text)
    return ReasoningBlock(redacted=True, signature=_str_or_none(part.get("encrypted_content")))


def _image(part: dict) -> ContentBlock | None:
    source = part.get("source")
    if isinstance(source, dict):
        if isinstance(source.get("data"), str):
            return ImageBlock(media_type=source.get("media_type") or "image/png", data=source["data"])
        if isinstance(source.get("url"), str):
            return ImageBlock(media_type=source.get("media_type") or "image/*", data=source["url"])
    if isinstance(part.get("data"), str):
        media_type = part.get("media_type") or part.get("mimeType") or "image/png"
        return ImageBlock(media_type=media_type, data=part["data"])
    url = part.get("image_url")
    if isinstance(url, dict):
        url = url.get("url")
    if isinstance(url, str):
        media_type = url[5:].split(";", 1)[0] if url.startswith("data:") else "image/*"
        return ImageBlock(media_type=media_type or "image/*", data=url)
    return None


PART_BUILDERS: dict[str, Callable[[dict], ContentBlock | None]] = {
    "text": _text,
    "input_text": _text,
    "output_text": _text,
    "summary_text": _text,
    "tool_use": _tool_invocation,
    "server_tool_use": _tool_invocation,
    "function_call": _tool_invocation,
    "tool_call": _tool_invocation,
    "custom_tool_call": _tool_invocation,
    "tool_result": _tool_outcome,
    "tool_response": _tool_outcome,
    "function_call_output": _tool_outcome,
    "custom_tool_call_output": _tool_outcome,
    "thinking": _thinking,
    "redacted_thinking": _redacted_thinking,
    "reasoning": _reasoning,
    "image": _image,
    "input_image": _image,
}


# --- Untyped parts (Gemini API style: the key names the part) ---


def _inline_data(part: dict) -> ContentBlock | None:
    data = part.get("inlineData")
    if isinstance(data, dict) and isinstance(data.get("data"), str):
        return ImageBlock(media_type=data.get("mimeType") or "application/octet-stream", data=data["data"])
    return None


def _function_call(part: dict) -> ContentBlock | None:
    call = part.get("functionCall")
    if not isinstance(call, dict) or not isinstance(call.get("name"), str):
        return None
    return ToolInvocationBlock(
        name=call["name"],
        input=decode_arguments(call.get("args")),
        call_id=_str_or_none(call.get("id")),
    )


def _function_response(part: dict) -> ContentBlock | None:
    response = part.get("functionResponse")
    if not isinstance(response, dict):
        return None
    return ToolOutcomeBlock(
        payload=response.get("response"),
        reference=_str_or_none(response.get("id")),
        tool_name=_str_or_none(response.get("name")),
    )


def _thought_text(part: dict) -> ContentBlock | None:
    if part.get("thought") is True and isinstance(part.get("text"), str):
        return ReasoningBlock(text=part["text"])
    return _text(part)


UNTYPED_PART_BUILDERS: tuple[tuple[str, Callable[[dict], ContentBlock | None]], ...] = (
    ("functionCall", _function_call),
    ("functionResponse", _function_response),
    ("inlineData", _inline_data),
    ("text", _thought_text),
)
