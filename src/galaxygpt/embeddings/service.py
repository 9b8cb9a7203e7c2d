"""Embedding backends for GalaxyGPT."""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Protocol, Sequence, Tuple

import openai
from openai import OpenAI

from galaxygpt.errors import EmbeddingServiceError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for embedding backends."""

    model: str = "text-embedding-3-small"
    dim: int = 1536
    normalize: bool = True
    batch_size: int = 100


class EmbeddingBackend(Protocol):
    """Protocol describing embedding behaviour."""

    def embed_query(self, query: str) -> Tuple[float, ...]:
        """Return embedding vector for a query string."""

    def embed_texts(self, texts: Sequence[str]) -> Sequence[Tuple[float, ...]]:
        """Return embedding vectors for texts being indexed."""


class HashEmbeddingBackend:
    """Deterministic lightweight embedding used offline and in tests."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()

    def _hash_to_vector(self, text: str) -> Tuple[float, ...]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeat = (self._config.dim + len(digest) - 1) // len(digest)
        raw = (digest * repeat)[: self._config.dim]
        vector = [byte / 255.0 for byte in raw]
        if self._config.normalize:
            norm = math.sqrt(sum(value * value for value in vector)) or 1.0
            vector = [value / norm for value in vector]
        return tuple(vector)

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return self._hash_to_vector(query)

    def embed_texts(self, texts: Sequence[str]) -> Sequence[Tuple[float, ...]]:
        return [self._hash_to_vector(text) for text in texts]


class OpenAIEmbeddingBackend:
    """Embedding backend calling the OpenAI embeddings API.

    The client is shared between requests; the OpenAI SDK client is safe for
    concurrent use.
    """

    def __init__(self, client: OpenAI, config: EmbeddingConfig | None = None) -> None:
        self._client = client
        self._config = config or EmbeddingConfig()

    def embed_query(self, query: str) -> Tuple[float, ...]:
        vectors = self._create([query])
        return vectors[0]

    def embed_texts(self, texts: Sequence[str]) -> Sequence[Tuple[float, ...]]:
        vectors: list[Tuple[float, ...]] = []
        size = self._config.batch_size
        for start in range(0, len(texts), size):
            batch = list(texts[start : start + size])
            vectors.extend(self._create(batch))
            LOGGER.info("Embedded batch %d (%d texts)", start // size + 1, len(batch))
        return vectors

    def _create(self, texts: list[str]) -> list[Tuple[float, ...]]:
        try:
            response = self._client.embeddings.create(model=self._config.model, input=texts)
        except openai.OpenAIError as exc:
            raise EmbeddingServiceError(f"Embedding request failed: {exc}") from exc
        if len(response.data) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding service returned {len(response.data)} vectors for {len(texts)} inputs"
            )
        ordered = sorted(response.data, key=lambda item: item.index)
        vectors = [tuple(item.embedding) for item in ordered]
        if vectors and len(vectors[0]) != self._config.dim:
            LOGGER.warning(
                "Embedding dim mismatch: configured=%d, actual=%d",
                self._config.dim,
                len(vectors[0]),
            )
        return vectors
