"""Request pipeline combining context retrieval and answer generation."""

from __future__ import annotations

import time
from typing import Sequence

from galaxygpt.errors import GalaxyGPTError, InvalidInputError
from galaxygpt.metrics.observability import PipelineMetrics, get_logger, hash_username
from galaxygpt.models import AskResult, ConversationTurn
from galaxygpt.retrieval.service import ContextManager
from galaxygpt.services.answer import AnswerOrchestrator


class QueryService:
    """Runs one ask request: validate, fetch context, answer, measure.

    Holds only shared, read-only collaborators; every call is independent.
    """

    def __init__(self, context_manager: ContextManager, orchestrator: AnswerOrchestrator) -> None:
        self._context_manager = context_manager
        self._orchestrator = orchestrator
        self._logger = get_logger("query")

    def ask(
        self,
        question: str,
        *,
        username: str | None = None,
        max_context_documents: int | None = None,
        max_output_tokens: int | None = None,
        token_budget: int | None = None,
        prior_turns: Sequence[ConversationTurn] = (),
    ) -> AskResult:
        user_id = hash_username(username)
        if not question or not question.strip():
            self._logger.info("ask.rejected", user=user_id, reason="empty_question")
            PipelineMetrics.record_error(InvalidInputError.kind)
            raise InvalidInputError("The question cannot be empty.")

        self._logger.info(
            "ask.received",
            user=user_id,
            question_chars=len(question),
            max_context_documents=max_context_documents,
            max_output_tokens=max_output_tokens,
            prior_turns=len(prior_turns),
        )
        start = time.perf_counter()
        try:
            context = self._context_manager.fetch_context(
                question,
                max_documents=max_context_documents,
                token_budget=token_budget,
            )
            answer = self._orchestrator.answer_question(
                question,
                context.text,
                prior_turns=prior_turns,
                username=user_id,
                max_output_tokens=max_output_tokens,
            )
        except GalaxyGPTError as exc:
            PipelineMetrics.record_error(exc.kind)
            self._logger.warning("ask.failed", user=user_id, kind=exc.kind)
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        self._logger.info(
            "ask.complete",
            user=user_id,
            duration_ms=duration_ms,
            context_tokens=context.token_count,
            prompt_tokens=answer.prompt_tokens,
            answer_tokens=answer.answer_tokens,
        )
        return AskResult(context=context, answer=answer, duration_ms=duration_ms)
