"""Context retrieval: question embedding, index search and context budgeting."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Sequence

from galaxygpt.embeddings import EmbeddingBackend, VectorIndex
from galaxygpt.errors import EmbeddingServiceError
from galaxygpt.metrics.observability import PipelineMetrics, TimedSection, get_logger
from galaxygpt.models import ContextBundle, RetrievedChunk
from galaxygpt.tokenization import TokenizerAdapter


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for context retrieval."""

    max_documents: int = 5
    token_budget: int = 2048
    embedding_max_input_tokens: int = 8191
    delimiter: str = "\n\n---\n\n"


class ContextManager:
    """Turns a question into a token-budgeted block of wiki excerpts.

    ``context_tokenizer`` must match the model that reads the context (the chat
    model); ``embedding_tokenizer`` bounds the text sent to the embedding model.
    """

    def __init__(
        self,
        embedding_backend: EmbeddingBackend,
        index: VectorIndex,
        context_tokenizer: TokenizerAdapter,
        embedding_tokenizer: TokenizerAdapter | None = None,
        config: RetrievalConfig | None = None,
    ) -> None:
        self._embeddings = embedding_backend
        self._index = index
        self._tokenizer = context_tokenizer
        self._embedding_tokenizer = embedding_tokenizer or context_tokenizer
        self._config = config or RetrievalConfig()
        self._logger = get_logger("context")

    def fetch_context(
        self,
        question: str,
        max_documents: int | None = None,
        token_budget: int | None = None,
    ) -> ContextBundle:
        limit = self._config.max_documents if max_documents is None else max_documents
        budget = self._config.token_budget if token_budget is None else token_budget

        query = self._embedding_tokenizer.truncate(question, self._config.embedding_max_input_tokens)
        with TimedSection(PipelineMetrics.observe_embedding):
            vector = self._embeddings.embed_query(query)
        if not vector:
            raise EmbeddingServiceError("Embedding service returned an empty vector")

        search_start = time.perf_counter()
        results = list(self._index.search(vector, limit)) if limit > 0 else []
        search_duration = time.perf_counter() - search_start
        PipelineMetrics.observe_retrieval(search_duration, len(results), (item.score for item in results))

        bundle = self.assemble(results, budget)
        PipelineMetrics.observe_context(bundle.token_count)
        self._logger.info(
            "context.fetched",
            retrieved=len(results),
            used=len(bundle.chunks),
            tokens=bundle.token_count,
            token_budget=budget,
            truncated=bundle.truncated,
            search_seconds=search_duration,
        )
        return bundle

    def assemble(self, results: Sequence[RetrievedChunk], token_budget: int) -> ContextBundle:
        """Join ranked chunks until the next one would exceed ``token_budget``."""

        if not results or token_budget <= 0:
            return ContextBundle.empty()
        ranked = sorted(results, key=lambda item: item.score, reverse=True)
        text = ""
        token_count = 0
        used: list[RetrievedChunk] = []
        for item in ranked:
            piece = self.format_chunk(item)
            candidate = f"{text}{self._config.delimiter}{piece}" if used else piece
            candidate_tokens = self._tokenizer.count(candidate)
            if candidate_tokens > token_budget:
                break
            text, token_count = candidate, candidate_tokens
            used.append(item)

        if used:
            return ContextBundle(text=text, token_count=token_count, chunks=tuple(used))

        # nothing fits whole: hard-truncate the best chunk instead of sending no context
        best = ranked[0]
        text = self._tokenizer.truncate(self.format_chunk(best), token_budget)
        return ContextBundle(
            text=text,
            token_count=self._tokenizer.count(text),
            chunks=(best,),
            truncated=True,
        )

    @staticmethod
    def format_chunk(item: RetrievedChunk) -> str:
        title = item.chunk.title.strip()
        if not title:
            return item.chunk.text
        return f"Page: {title}\n{item.chunk.text}"
