"""Chat completion backends for GalaxyGPT."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import openai
from openai import OpenAI

from galaxygpt.errors import ChatServiceError
from galaxygpt.models import ConversationTurn

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for answer generation."""

    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_output_tokens: int | None = None


class ChatBackend(Protocol):
    """Protocol describing chat completion behaviour."""

    def complete(
        self,
        messages: Sequence[ConversationTurn],
        *,
        max_tokens: int | None = None,
        user: str | None = None,
    ) -> str:
        """Return the raw text the model generated for the conversation."""


class TemplateChatBackend:
    """Deterministic backend used for tests and offline environments."""

    def complete(
        self,
        messages: Sequence[ConversationTurn],
        *,
        max_tokens: int | None = None,
        user: str | None = None,
    ) -> str:
        if not messages:
            return ""
        prompt = messages[-1].content
        if max_tokens is not None and max_tokens > 0:
            words = prompt.split()
            prompt = " ".join(words[:max_tokens])
        return f"Offline mode, no model was called. Prompt received:\n{prompt}"


class OpenAIChatBackend:
    """Chat backend calling the OpenAI chat completions API."""

    def __init__(self, client: OpenAI, config: GenerationConfig | None = None) -> None:
        self._client = client
        self._config = config or GenerationConfig()

    def complete(
        self,
        messages: Sequence[ConversationTurn],
        *,
        max_tokens: int | None = None,
        user: str | None = None,
    ) -> str:
        limit = max_tokens if max_tokens is not None else self._config.max_output_tokens
        kwargs: dict[str, object] = {
            "model": self._config.model,
            "messages": [turn.as_message() for turn in messages],
            "temperature": self._config.temperature,
        }
        if limit is not None:
            kwargs["max_tokens"] = limit
        if user:
            kwargs["user"] = user
        try:
            response = self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise ChatServiceError(f"Chat completion failed: {exc}") from exc
        if not response.choices:
            raise ChatServiceError("Chat completion returned no choices")
        choice = response.choices[0]
        if choice.finish_reason == "length":
            LOGGER.warning("Chat completion stopped at the token limit (%s)", limit)
        return choice.message.content or ""
