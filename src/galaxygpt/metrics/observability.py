"""Observability helpers for GalaxyGPT."""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Iterable

import structlog
from prometheus_client import Counter, Histogram

_configured_level: int | None = None


def configure_logging(level: int | str | None = None) -> None:
    """Configure structlog; an explicit level replaces an earlier configuration."""

    global _configured_level  # noqa: PLW0603 - module-level guard
    if level is None:
        if _configured_level is not None:
            return
        level = logging.INFO
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if level == _configured_level:
        return
    if _configured_level is None:
        logging.basicConfig(level=level, format="%(message)s")
    else:
        logging.getLogger().setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured_level = level


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "galaxygpt") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def hash_username(username: str | None) -> str | None:
    """Anonymize a username; only the digest may reach logs or upstream APIs."""

    if username is None:
        return None
    return hashlib.sha256(username.encode("utf-8")).hexdigest().upper()


def _clamp_score(score: float) -> float:
    if score < 0.0:
        return 0.0
    if score > 1.0:
        return 1.0
    return score


class PipelineMetrics:
    """Prometheus metrics for pipeline stages."""

    embedding_latency = Histogram(
        "galaxygpt_embedding_duration_seconds",
        "Time spent embedding questions.",
        buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
    )
    retrieval_latency = Histogram(
        "galaxygpt_retrieval_duration_seconds",
        "Time spent querying the vector index.",
        buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0),
    )
    retrieved_chunk_count = Histogram(
        "galaxygpt_retrieved_chunk_count",
        "Number of chunks returned by the vector index.",
        buckets=(0, 1, 2, 3, 5, 8, 13, 21),
    )
    similarity_score = Histogram(
        "galaxygpt_similarity_score",
        "Similarity score of retrieved chunks.",
        buckets=(0.0, 0.25, 0.5, 0.75, 1.0),
    )
    context_tokens = Histogram(
        "galaxygpt_context_tokens",
        "Tokens of retrieved context injected into prompts.",
        buckets=(0, 128, 256, 512, 1024, 2048, 4096, 8192),
    )
    generation_latency = Histogram(
        "galaxygpt_generation_duration_seconds",
        "Time spent waiting on the chat model.",
        buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
    )
    prompt_tokens = Histogram(
        "galaxygpt_prompt_tokens",
        "Tokens sent to the chat model per request.",
        buckets=(64, 256, 512, 1024, 2048, 4096, 8192, 16384),
    )
    answer_tokens = Histogram(
        "galaxygpt_answer_tokens",
        "Tokens received from the chat model per request.",
        buckets=(16, 64, 128, 256, 512, 1024, 2048),
    )
    pipeline_errors = Counter(
        "galaxygpt_pipeline_errors_total",
        "Requests that ended in a pipeline error.",
        ["kind"],
    )

    @classmethod
    def observe_embedding(cls, duration_seconds: float) -> None:
        cls.embedding_latency.observe(duration_seconds)

    @classmethod
    def observe_retrieval(
        cls,
        duration_seconds: float,
        chunk_count: int,
        scores: Iterable[float],
    ) -> None:
        cls.retrieval_latency.observe(duration_seconds)
        cls.retrieved_chunk_count.observe(chunk_count)
        for score in scores:
            cls.similarity_score.observe(_clamp_score(score))

    @classmethod
    def observe_context(cls, token_count: int) -> None:
        cls.context_tokens.observe(token_count)

    @classmethod
    def observe_generation(cls, duration_seconds: float, prompt_tokens: int, answer_tokens: int) -> None:
        cls.generation_latency.observe(duration_seconds)
        cls.prompt_tokens.observe(prompt_tokens)
        cls.answer_tokens.observe(answer_tokens)

    @classmethod
    def record_error(cls, kind: str) -> None:
        cls.pipeline_errors.labels(kind=kind).inc()


class TimedSection:
    """Context manager capturing elapsed time for metrics."""

    def __init__(self, callback) -> None:
        self._callback = callback
        self._start = 0.0
        self.duration = 0.0

    def __enter__(self) -> "TimedSection":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.duration = time.perf_counter() - self._start
        if exc_type is None:
            self._callback(self.duration)


__all__ = [
    "PipelineMetrics",
    "TimedSection",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
    "hash_username",
]
