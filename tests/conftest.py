"""Shared stubs for the pipeline tests."""

from __future__ import annotations

from typing import Sequence

import pytest

from galaxygpt.models import ConversationTurn, DocumentChunk, RetrievedChunk
from galaxygpt.services.moderation import ModerationResult
from galaxygpt.tokenization import TokenizerAdapter


class ByteEncoding:
    """One token per UTF-8 byte; code points span several tokens."""

    def encode_ordinary(self, text: str) -> list[int]:
        return list(text.encode("utf-8"))

    def decode_bytes(self, tokens: Sequence[int]) -> bytes:
        return bytes(tokens)


class StubEmbeddings:
    def __init__(self, vector: tuple[float, ...] = (0.1, 0.2, 0.3), error: Exception | None = None) -> None:
        self.vector = vector
        self.error = error
        self.calls: list[str] = []

    def embed_query(self, query: str) -> tuple[float, ...]:
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.vector

    def embed_texts(self, texts: Sequence[str]) -> Sequence[tuple[float, ...]]:
        return [self.vector for _ in texts]


class StubIndex:
    def __init__(self, results: Sequence[RetrievedChunk] = (), error: Exception | None = None) -> None:
        self.results = list(results)
        self.error = error
        self.calls: list[tuple[tuple[float, ...], int]] = []

    def search(self, vector: Sequence[float], top_k: int) -> Sequence[RetrievedChunk]:
        self.calls.append((tuple(vector), top_k))
        if self.error is not None:
            raise self.error
        return self.results[:top_k]


class StubChat:
    def __init__(self, reply: str = "  The Deity is a ship.  \n", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def complete(
        self,
        messages: Sequence[ConversationTurn],
        *,
        max_tokens: int | None = None,
        user: str | None = None,
    ) -> str:
        self.calls.append({"messages": list(messages), "max_tokens": max_tokens, "user": user})
        if self.error is not None:
            raise self.error
        return self.reply


class StubModeration:
    def __init__(self, flagged: bool = False) -> None:
        self.flagged = flagged
        self.calls: list[str] = []

    def classify(self, text: str) -> ModerationResult:
        self.calls.append(text)
        return ModerationResult(flagged=self.flagged, categories=("harassment",) if self.flagged else ())


def make_chunk(title: str, text: str, score: float, chunk_id: str | None = None) -> RetrievedChunk:
    chunk = DocumentChunk(chunk_id=chunk_id or f"{title}-0", title=title, text=text)
    return RetrievedChunk(chunk=chunk, score=score)


@pytest.fixture
def byte_tokenizer() -> TokenizerAdapter:
    return TokenizerAdapter(ByteEncoding(), name="bytes")

