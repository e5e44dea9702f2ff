"""Canonical session model shared by every transcript format."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union


class BlockKind(str, Enum):
    TEXT = "text"
    TOOL_INVOCATION = "tool_invocation"
    TOOL_OUTCOME = "tool_outcome"
    REASONING = "reasoning"
    IMAGE = "image"
    OPAQUE = "opaque"


class Role(str, Enum):
    """What a message represents in the conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL_INVOCATION = "tool_invocation"
    TOOL_OUTCOME = "tool_outcome"
    SYSTEM = "system"
    INTERRUPTION = "interruption"
    COMMAND = "command"
    META = "meta"


TOOL_ROLES = frozenset({Role.TOOL_INVOCATION, Role.TOOL_OUTCOME})


@dataclass(frozen=True)
class TextBlock:
    text: str

    kind = BlockKind.TEXT


@dataclass(frozen=True)
class ToolInvocationBlock:
    """A request by the agent to run a tool."""

    name: str
    input: Any = field(default_factory=dict)
    call_id: str | None = None  # native id, when the source has one
    join_key: str | None = None  # set by the linker

    kind = BlockKind.TOOL_INVOCATION


@dataclass(frozen=True)
class ToolOutcomeBlock:
    """The result of a tool run, linked back to its invocation by join key."""

    payload: Any
    reference: str | None = None  # native id of the invocation, if recorded
    is_error: bool = False
    tool_name: str | None = None
    join_key: str | None = None  # set by the linker
    orphaned: bool = False  # no matching invocation was seen

    kind = BlockKind.TOOL_OUTCOME

    @property
    def text(self) -> str:
        """Best-effort plain text of the payload."""
        return payload_text(self.payload)


@dataclass(frozen=True)
class ReasoningBlock:
    """A reasoning trace. Redacted traces carry no readable text."""

    text: str | None = None
    redacted: bool = False
    signature: str | None = None

    kind = BlockKind.REASONING

    @property
    def displayable(self) -> bool:
        return not self.redacted and bool(self.text)


@dataclass(frozen=True)
class ImageBlock:
    media_type: str
    data: str  # base64 payload, URL, or data URL

    kind = BlockKind.IMAGE


@dataclass(frozen=True)
class OpaqueBlock:
    """Content whose shape is not recognized, kept verbatim."""

    value: Any

    kind = BlockKind.OPAQUE


ContentBlock = Union[
    TextBlock,
    ToolInvocationBlock,
    ToolOutcomeBlock,
    ReasoningBlock,
    ImageBlock,
    OpaqueBlock,
]

TOOL_BLOCKS = (ToolInvocationBlock, ToolOutcomeBlock)


def flatten_text(blocks) -> str:
    """Concatenate the text blocks of a content list, in order."""
    return "\n".join(block.text for block in blocks if isinstance(block, TextBlock))


def payload_text(payload: Any) -> str:
    """Flatten a tool outcome payload (string, part list, or log object) to text."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, list):
        parts = []
        for item in payload:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                parts.append(item["text"])
        return "\n".join(parts)
    if isinstance(payload, dict):
        for key in ("output", "text", "log", "content"):
            value = payload.get(key)
            if isinstance(value, str):
                return value
    return ""


@dataclass(frozen=True)
class ParsedMessage:
    """One canonical message. Immutable once created."""

    id: str
    timestamp: datetime
    role: Role
    content: tuple[ContentBlock, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    parent_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", tuple(self.content))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def text(self) -> str:
        return flatten_text(self.content)

    @property
    def tool_invocation(self) -> ToolInvocationBlock | None:
        if self.role is Role.TOOL_INVOCATION:
            return self.content[0]  # type: ignore[return-value]
        return None

    @property
    def tool_outcome(self) -> ToolOutcomeBlock | None:
        if self.role is Role.TOOL_OUTCOME:
            return self.content[0]  # type: ignore[return-value]
        return None

    @property
    def join_key(self) -> str | None:
        block = self.tool_invocation or self.tool_outcome
        return block.join_key if block else None

    @property
    def orphaned(self) -> bool:
        outcome = self.tool_outcome
        return bool(outcome and outcome.orphaned)


@dataclass(frozen=True)
class SessionMetadata:
    """Session-level counters and capability flags, computed once."""

    message_count: int = 0
    lines_total: int = 0  # records found in the input (lines or array elements)
    records_seen: int = 0  # records that produced at least one message
    drops: Mapping[str, int] = field(default_factory=dict)
    role_counts: Mapping[str, int] = field(default_factory=dict)
    tool_invocation_count: int = 0
    tool_outcome_count: int = 0
    orphaned_outcome_count: int = 0
    has_reasoning: bool = False
    has_redacted_reasoning: bool = False
    has_images: bool = False
    has_tool_calls: bool = False
    has_cached_tokens: bool = False
    models: tuple[str, ...] = ()
    session_id_generated: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "drops", MappingProxyType(dict(self.drops)))
        object.__setattr__(self, "role_counts", MappingProxyType(dict(self.role_counts)))

    @property
    def consumed_ratio(self) -> float:
        if not self.lines_total:
            return 0.0
        return self.records_seen / self.lines_total

    @property
    def dropped_count(self) -> int:
        return sum(self.drops.values())


@dataclass(frozen=True)
class ParsedSession:
    """The canonical, provider-independent view of one agent session."""

    session_id: str
    source_format: str
    messages: tuple[ParsedMessage, ...]
    start_time: datetime
    end_time: datetime
    duration: timedelta
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))

    def invocations(self) -> list[ParsedMessage]:
        return [m for m in self.messages if m.role is Role.TOOL_INVOCATION]

    def outcomes(self) -> list[ParsedMessage]:
        return [m for m in self.messages if m.role is Role.TOOL_OUTCOME]

    def pair_tool_calls(self) -> list[tuple[ParsedMessage, ParsedMessage | None]]:
        """Pair every invocation with its outcome (None while unanswered)."""
        outcomes: dict[str, ParsedMessage] = {}
        for message in self.outcomes():
            if not message.orphaned and message.join_key not in outcomes:
                outcomes[message.join_key] = message
        return [(m, outcomes.get(m.join_key)) for m in self.invocations()]
