"""Answer orchestration: moderation, conversation assembly and chat completion."""

from __future__ import annotations

import time
from typing import Sequence

from galaxygpt.errors import ContentRejectedError, InvalidInputError
from galaxygpt.metrics.observability import PipelineMetrics, get_logger
from galaxygpt.models import AnswerResult, ConversationTurn
from galaxygpt.services.conversation import ConversationAssembler
from galaxygpt.services.generation import ChatBackend
from galaxygpt.services.moderation import ModerationBackend
from galaxygpt.tokenization import TokenizerAdapter


class AnswerOrchestrator:
    """Produces a measured answer for a question and its retrieved context.

    ``moderation`` is optional; when it is ``None`` questions go straight to the
    chat model. ``chat_tokenizer`` must match the chat model.
    """

    def __init__(
        self,
        chat: ChatBackend,
        chat_tokenizer: TokenizerAdapter,
        assembler: ConversationAssembler | None = None,
        moderation: ModerationBackend | None = None,
        default_max_output_tokens: int | None = None,
    ) -> None:
        self._chat = chat
        self._tokenizer = chat_tokenizer
        self._assembler = assembler or ConversationAssembler()
        self._moderation = moderation
        self._default_max_output_tokens = default_max_output_tokens
        self._logger = get_logger("answer")

    def answer_question(
        self,
        question: str,
        context: str,
        prior_turns: Sequence[ConversationTurn] = (),
        username: str | None = None,
        max_output_tokens: int | None = None,
    ) -> AnswerResult:
        """Answer ``question`` using ``context``.

        ``username`` is forwarded to the chat service as the end-user id and
        must already be anonymized (see ``hash_username``).
        """
        if not question or not question.strip():
            raise InvalidInputError("The question cannot be empty.")

        start = time.perf_counter()
        if self._moderation is not None:
            verdict = self._moderation.classify(question)
            if verdict.flagged:
                self._logger.warning("moderation.flagged", user=username, categories=list(verdict.categories))
                raise ContentRejectedError(categories=verdict.categories)

        conversation = self._assembler.build_conversation(question, context, prior_turns)
        limit = max_output_tokens if max_output_tokens is not None else self._default_max_output_tokens
        generation_start = time.perf_counter()
        raw = self._chat.complete(conversation, max_tokens=limit, user=username)
        generation_duration = time.perf_counter() - generation_start
        answer = raw.strip()
        duration_ms = (time.perf_counter() - start) * 1000

        prompt_tokens = self.count_prompt_tokens(conversation)
        answer_tokens = self._tokenizer.count(answer)
        PipelineMetrics.observe_generation(generation_duration, prompt_tokens, answer_tokens)
        self._logger.info(
            "answer.complete",
            user=username,
            turns=len(conversation),
            prompt_tokens=prompt_tokens,
            answer_tokens=answer_tokens,
            duration_seconds=generation_duration,
        )
        return AnswerResult(
            answer=answer,
            context=context,
            duration_ms=duration_ms,
            prompt_tokens=prompt_tokens,
            answer_tokens=answer_tokens,
        )

    def count_prompt_tokens(self, conversation: Sequence[ConversationTurn]) -> int:
        """Tokens of every message body sent to the chat model."""

        return sum(self._tokenizer.count(turn.content) for turn in conversation)
