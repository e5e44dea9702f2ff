"""Errors raised by the normalization engine.

Only conditions that leave nothing to analyse are raised. Everything else
(bad lines, orphaned tool outcomes, unknown content shapes) is absorbed into
the parsed session.
"""

from __future__ import annotations


class TranscriptError(Exception):
    """Base class for all transcript normalization errors."""


class EmptyInputError(TranscriptError, ValueError):
    """The input is empty or whitespace-only."""

    def __init__(self, message: str = "Transcript is empty: nothing to parse.") -> None:
        super().__init__(message)


class NoUsableRecordsError(TranscriptError, ValueError):
    """Every record in a non-empty input failed structural parsing."""

    def __init__(self, lines_total: int) -> None:
        self.lines_total = lines_total
        super().__init__(
            f"None of the {lines_total} record(s) in the transcript could be parsed as JSON objects."
        )


class UnknownFormatError(TranscriptError, ValueError):
    """No registered decoder matches the requested or detected format."""
