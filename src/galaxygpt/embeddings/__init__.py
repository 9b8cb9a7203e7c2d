"""Embedding services and the vector index."""

from .service import EmbeddingBackend, EmbeddingConfig, HashEmbeddingBackend, OpenAIEmbeddingBackend
from .store import ChromaVectorIndex, VectorIndex

__all__ = [
    "EmbeddingBackend",
    "EmbeddingConfig",
    "HashEmbeddingBackend",
    "OpenAIEmbeddingBackend",
    "ChromaVectorIndex",
    "VectorIndex",
]
