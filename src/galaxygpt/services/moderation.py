"""Moderation backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import openai
from openai import OpenAI

from galaxygpt.errors import ChatServiceError


@dataclass(frozen=True)
class ModerationResult:
    flagged: bool
    categories: tuple[str, ...] = field(default_factory=tuple)


class ModerationBackend(Protocol):
    """Classifies text before it reaches the chat model."""

    def classify(self, text: str) -> ModerationResult:
        """Return whether the text is flagged."""


class OpenAIModerationBackend:
    """Moderation via the OpenAI moderations API."""

    def __init__(self, client: OpenAI, model: str = "omni-moderation-latest") -> None:
        self._client = client
        self._model = model

    def classify(self, text: str) -> ModerationResult:
        try:
            response = self._client.moderations.create(model=self._model, input=text)
        except openai.OpenAIError as exc:
            # moderation shares the chat provider, surface it as such
            raise ChatServiceError(f"Moderation request failed: {exc}") from exc
        if not response.results:
            raise ChatServiceError("Moderation returned no results")
        result = response.results[0]
        categories = tuple(
            name for name, hit in result.categories.model_dump().items() if hit
        )
        return ModerationResult(flagged=bool(result.flagged), categories=categories)
