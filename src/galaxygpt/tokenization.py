"""Token counting and truncation for a specific model's tokenizer."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import tiktoken

LOGGER = logging.getLogger(__name__)

FALLBACK_ENCODING = "cl100k_base"


class Encoding(Protocol):
    """Subset of ``tiktoken.Encoding`` used by the adapter."""

    def encode_ordinary(self, text: str) -> list[int]:
        """Encode text, treating special-token strings as plain text."""

    def decode_bytes(self, tokens: Sequence[int]) -> bytes:
        """Decode tokens back to raw UTF-8 bytes."""


class TokenizerAdapter:
    """Counts and truncates text under one model's tokenization scheme.

    Instances hold no mutable state and can be shared between requests.
    """

    def __init__(self, encoding: Encoding, name: str = "custom") -> None:
        self._encoding = encoding
        self.name = name

    @classmethod
    def for_model(cls, model: str) -> "TokenizerAdapter":
        try:
            encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            LOGGER.warning("No tiktoken mapping for %s, using %s", model, FALLBACK_ENCODING)
            encoding = tiktoken.get_encoding(FALLBACK_ENCODING)
        return cls(encoding, name=model)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._encoding.encode_ordinary(text))

    def truncate(self, text: str, max_tokens: int) -> str:
        """Return the longest prefix of ``text`` that fits in ``max_tokens``.

        Token boundaries can fall inside a multi-byte code point; incomplete
        trailing bytes are dropped rather than decoded into replacement
        characters.
        """
        if max_tokens <= 0 or not text:
            return ""
        tokens = self._encoding.encode_ordinary(text)
        if len(tokens) <= max_tokens:
            return text
        keep = max_tokens
        while keep > 0:
            prefix = self._decode_prefix(tokens[:keep])
            # re-encoding a prefix may merge differently than the original run
            if self.count(prefix) <= max_tokens:
                return prefix
            keep -= 1
        return ""

    def _decode_prefix(self, tokens: Sequence[int]) -> str:
        raw = self._encoding.decode_bytes(tokens)
        return raw.decode("utf-8", errors="ignore")


__all__ = ["Encoding", "TokenizerAdapter"]
