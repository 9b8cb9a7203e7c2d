"""Error taxonomy for the question-answering pipeline.

Every failure that ends a request is one of these kinds so the HTTP layer can
map it to a response without inspecting message text.
"""

from __future__ import annotations


class GalaxyGPTError(RuntimeError):
    """Base class for pipeline failures."""

    kind = "internal"


class ConfigurationError(GalaxyGPTError):
    """Raised when the service cannot be wired from the supplied settings."""

    kind = "configuration"


class InvalidInputError(GalaxyGPTError):
    """Raised when a request is rejected before any external call."""

    kind = "invalid_input"


class EmbeddingServiceError(GalaxyGPTError):
    """Raised when the embedding service errors or times out."""

    kind = "embedding_service"


class IndexUnavailableError(GalaxyGPTError):
    """Raised when the vector index cannot be queried."""

    kind = "index_unavailable"


class ChatServiceError(GalaxyGPTError):
    """Raised when the chat completion call fails."""

    kind = "chat_service"


class ContentRejectedError(GalaxyGPTError):
    """Raised when moderation flags the question."""

    kind = "content_rejected"

    def __init__(self, message: str = "The question was rejected by moderation.", categories: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.categories = categories


__all__ = [
    "ChatServiceError",
    "ConfigurationError",
    "ContentRejectedError",
    "EmbeddingServiceError",
    "GalaxyGPTError",
    "IndexUnavailableError",
    "InvalidInputError",
]
