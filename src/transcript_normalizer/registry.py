"""Select the decoder for a transcript, by name or by sniffing its content."""

from __future__ import annotations

import logging

from .config import Config
from .decoders import RecordDecoder, builtin_decoders
from .errors import UnknownFormatError

_LOGGER = logging.getLogger(__name__)


class DecoderRegistry:
    """An explicitly constructed set of decoders.

    Detection tries decoders in registration order, so register the most
    specific formats first.
    """

    def __init__(self, decoders: list[RecordDecoder] | None = None, config: Config | None = None) -> None:
        self._decoders: list[RecordDecoder] = []
        self._by_name: dict[str, RecordDecoder] = {}
        self.config = config or Config()
        for decoder in decoders or []:
            self.register(decoder)

    def register(self, decoder: RecordDecoder) -> None:
        if not isinstance(decoder, RecordDecoder):
            raise TypeError(f"{decoder!r} does not implement the RecordDecoder protocol")
        self._decoders.append(decoder)
        for name in (decoder.name, *decoder.aliases):
            self._by_name[name.lower()] = decoder

    def get(self, name: str) -> RecordDecoder:
        """Resolve a format name or alias; partial names match as a fallback."""
        wanted = name.lower().strip()
        if not wanted:
            raise UnknownFormatError("Format name is empty.")
        if wanted in self._by_name:
            return self._by_name[wanted]
        for key, decoder in self._by_name.items():
            if wanted in key or key in wanted:
                return decoder
        raise UnknownFormatError(
            f"Unknown transcript format: {name!r}. Use one of: {', '.join(self.names())}."
        )

    def detect(self, sample: str) -> RecordDecoder | None:
        """Return the first decoder that recognizes ``sample``, or None."""
        for decoder in self._decoders:
            if decoder.can_decode(sample, self.config.detect_sample_records):
                _LOGGER.debug("Detected transcript format %s", decoder.name)
                return decoder
        return None

    def names(self) -> list[str]:
        return [decoder.name for decoder in self._decoders]

    def __contains__(self, name: str) -> bool:
        return name.lower().strip() in self._by_name

    def __iter__(self):
        return iter(self._decoders)


def build_registry(config: Config | None = None) -> DecoderRegistry:
    """A fresh registry holding every bundled decoder."""
    return DecoderRegistry(builtin_decoders(), config)
