"""Shared domain models used across the GalaxyGPT pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Sequence

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class WikiPage:
    """A wiki page as exported for indexing."""

    title: str
    content: str


@dataclass(frozen=True)
class DocumentChunk:
    """Piece of a wiki page stored in the vector index."""

    chunk_id: str
    title: str
    text: str
    order: int = 0
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RetrievedChunk:
    """Chunk returned from the vector index with its similarity score."""

    chunk: DocumentChunk
    score: float


@dataclass(frozen=True)
class ContextBundle:
    """Retrieved context joined into one string, with its token count."""

    text: str
    token_count: int
    chunks: Sequence[RetrievedChunk] = ()
    truncated: bool = False

    @classmethod
    def empty(cls) -> "ContextBundle":
        return cls(text="", token_count=0)


@dataclass(frozen=True)
class ConversationTurn:
    """One message of a chat conversation."""

    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class AnswerResult:
    """Answer produced by the chat model and its measurements."""

    answer: str
    context: str
    duration_ms: float
    prompt_tokens: int
    answer_tokens: int


@dataclass(frozen=True)
class AskResult:
    """Outcome of a complete ask request."""

    context: ContextBundle
    answer: AnswerResult
    duration_ms: float
