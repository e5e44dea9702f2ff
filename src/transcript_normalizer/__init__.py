"""Normalize coding-agent transcripts into one canonical session model."""

from __future__ import annotations

from .config import Config
from .content import classify_content
from .errors import EmptyInputError, NoUsableRecordsError, TranscriptError, UnknownFormatError
from .models import (
    BlockKind,
    ContentBlock,
    ImageBlock,
    OpaqueBlock,
    ParsedMessage,
    ParsedSession,
    ReasoningBlock,
    Role,
    SessionMetadata,
    TextBlock,
    ToolInvocationBlock,
    ToolOutcomeBlock,
    flatten_text,
)
from .pipeline import parse
from .registry import DecoderRegistry, build_registry

__version__ = "0.1.0"


def detect_format(
    text: str,
    *,
    registry: DecoderRegistry | None = None,
    config: Config | None = None,
) -> str | None:
    """Return the name of the format ``text`` is written in, or None."""
    registry = registry or build_registry(config)
    decoder = registry.detect(text)
    return decoder.name if decoder else None


def parse_session(
    text: str,
    format: str | None = None,
    *,
    registry: DecoderRegistry | None = None,
    config: Config | None = None,
) -> ParsedSession:
    """Parse a transcript into a ParsedSession.

    ``format`` names the source format (a decoder name or alias). When it is
    omitted, ``Config.default_format`` is used, and failing that the format is
    detected from the first records of ``text``.

    Raises:
        EmptyInputError: ``text`` is empty or whitespace-only.
        UnknownFormatError: the named format is not registered, or detection
            recognized nothing.
        NoUsableRecordsError: no record of ``text`` is a JSON object.
    """
    config = config or Config()
    if not text or not text.strip():
        raise EmptyInputError()
    registry = registry or build_registry(config)

    name = format or config.default_format
    if name:
        decoder = registry.get(name)
    else:
        decoder = registry.detect(text)
        if decoder is None:
            raise UnknownFormatError(
                f"Could not detect the transcript format. Pass one of: {', '.join(registry.names())}."
            )
    return parse(text, decoder, config)


__all__ = [
    "BlockKind",
    "Config",
    "ContentBlock",
    "DecoderRegistry",
    "EmptyInputError",
    "ImageBlock",
    "NoUsableRecordsError",
    "OpaqueBlock",
    "ParsedMessage",
    "ParsedSession",
    "ReasoningBlock",
    "Role",
    "SessionMetadata",
    "TextBlock",
    "ToolInvocationBlock",
    "ToolOutcomeBlock",
    "TranscriptError",
    "UnknownFormatError",
    "build_registry",
    "classify_content",
    "detect_format",
    "flatten_text",
    "parse_session",
]
