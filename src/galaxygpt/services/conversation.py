"""Assembly of the message sequence sent to the chat model."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from galaxygpt.config import DEFAULT_SYSTEM_PROMPT, DEFAULT_USER_PROMPT_TEMPLATE
from galaxygpt.models import ConversationTurn

_PLACEHOLDER = re.compile(r"\{(question|context)\}")


@dataclass(frozen=True)
class ConversationConfig:
    """Prompt text used when building conversations."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt_template: str = DEFAULT_USER_PROMPT_TEMPLATE


class ConversationAssembler:
    """Builds ``[system] + prior turns + [user question with context]``.

    Prior turns are passed through untouched. History is not trimmed to the
    chat model's window; oversized prompts fail in the chat service.
    """

    def __init__(self, config: ConversationConfig | None = None) -> None:
        self._config = config or ConversationConfig()

    @property
    def system_prompt(self) -> str:
        return self._config.system_prompt

    def build_conversation(
        self,
        question: str,
        context: str,
        prior_turns: Sequence[ConversationTurn] = (),
        system_prompt: str | None = None,
    ) -> list[ConversationTurn]:
        system = ConversationTurn(role="system", content=system_prompt or self._config.system_prompt)
        final = ConversationTurn(role="user", content=self.render_user_prompt(question, context))
        return [system, *prior_turns, final]

    def render_user_prompt(self, question: str, context: str) -> str:
        # single pass so braces inside wiki text or questions are left alone
        values = {"question": question, "context": context}
        return _PLACEHOLDER.sub(lambda match: values[match.group(1)], self._config.user_prompt_template)
