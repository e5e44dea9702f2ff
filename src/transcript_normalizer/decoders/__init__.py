"""Per-format record decoders.

Each decoder maps one raw record of its source format to a provisional
message, or to a ``Dropped`` marker saying why the record was skipped.
Decoders are stateless; anything a format needs to remember between records
lives in the ``DecodeContext`` of the current parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..models import ContentBlock, Role


class DropReason(str, Enum):
    MALFORMED = "malformed"  # not a JSON object
    NO_TIMESTAMP = "no_timestamp"
    BAD_TIMESTAMP = "bad_timestamp"
    META = "meta"  # flagged internal by the source
    IGNORED = "ignored"  # bookkeeping record with no conversational content
    DUPLICATE = "duplicate"  # mirrors another record


@dataclass(frozen=True)
class Dropped:
    reason: DropReason


@dataclass
class ProvisionalMessage:
    """A decoded record before linking and splitting."""

    id: str
    timestamp: datetime
    role: Role
    blocks: list[ContentBlock] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    parent_id: str | None = None
    linked_to: str | None = None  # record-level reference to a tool invocation


@dataclass
class DecodeContext:
    """Mutable state of one parse call, handed to the decoder for every record."""

    format_name: str
    record_index: int = 0
    state: dict[str, Any] = field(default_factory=dict)

    def fallback_id(self, prefix: str = "msg") -> str:
        """A deterministic id for records that carry none."""
        return f"{prefix}-{self.record_index}"


@runtime_checkable
class RecordDecoder(Protocol):
    """Protocol for source-format decoders."""

    name: str
    aliases: tuple[str, ...]
    session_prefix: str

    def can_decode(self, sample: str, limit: int = 5) -> bool:
        """Return True if ``sample`` looks like this decoder's format."""
        ...

    def session_id(self, record: dict) -> str | None:
        """Return the session id carried by ``record``, if any."""
        ...

    def decode(self, record: dict, ctx: DecodeContext) -> ProvisionalMessage | Dropped:
        """Decode one record."""
        ...


def builtin_decoders() -> list[RecordDecoder]:
    """All bundled decoders, in detection priority order."""
    from .canonical import CanonicalDecoder
    from .claude import ClaudeCodeDecoder
    from .codex import CodexDecoder
    from .copilot import CopilotDecoder
    from .gemini import GeminiDecoder
    from .opencode import OpenCodeDecoder

    return [
        CanonicalDecoder(),
        GeminiDecoder(),
        ClaudeCodeDecoder(),
        CopilotDecoder(),
        CodexDecoder(),
        OpenCodeDecoder(),
    ]
