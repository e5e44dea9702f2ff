"""Runtime settings, resolved from environment variables and defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Config:
    """Runtime configuration, resolved from env vars and defaults."""

    # Format detection
    detect_sample_records: int = field(default_factory=lambda: _env_int("TN_DETECT_SAMPLE_RECORDS", 5))
    default_format: str | None = field(
        default_factory=lambda: os.environ.get("TN_FORMAT") or None
    )  # decoder name or alias; None = auto-detect

    # CLI guard: the engine itself never reads files
    max_input_bytes: int = field(default_factory=lambda: _env_int("TN_MAX_INPUT_BYTES", 64 * 1024 * 1024))

    log_level: str = field(default_factory=lambda: os.environ.get("TN_LOG_LEVEL", "WARNING"))

    def resolved_log_level(self, verbose: bool = False) -> int:
        """Map the configured level name to a ``logging`` constant."""
        if verbose:
            return logging.DEBUG
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")
        return level
