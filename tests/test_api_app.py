"""Tests for the FastAPI application."""

from __future__ import annotations

import logging

import chromadb
import structlog
from fastapi.testclient import TestClient

from conftest import ByteEncoding, StubChat, StubEmbeddings, StubIndex, StubModeration, make_chunk
from galaxygpt.api.app import AppDependencies, create_app
from galaxygpt.config import Settings
from galaxygpt.embeddings import ChromaVectorIndex, EmbeddingConfig, HashEmbeddingBackend
from galaxygpt.errors import ChatServiceError
from galaxygpt.ingestion import WikiPageIngestor
from galaxygpt.metrics.observability import configure_logging
from galaxygpt.models import WikiPage
from galaxygpt.retrieval.service import ContextManager, RetrievalConfig
from galaxygpt.services.answer import AnswerOrchestrator
from galaxygpt.services.generation import TemplateChatBackend
from galaxygpt.services.query import QueryService
from galaxygpt.tokenization import TokenizerAdapter


def create_test_client(
    *,
    chat: StubChat | None = None,
    embeddings: StubEmbeddings | None = None,
    index: StubIndex | None = None,
    moderation: StubModeration | None = None,
    settings: Settings | None = None,
) -> TestClient:
    tokenizer = TokenizerAdapter(ByteEncoding())
    embeddings = embeddings or StubEmbeddings()
    index = index or StubIndex([make_chunk("Deity", "The Deity is a ship.", 0.9)])
    manager = ContextManager(embeddings, index, context_tokenizer=tokenizer, config=RetrievalConfig(token_budget=200))
    orchestrator = AnswerOrchestrator(chat or StubChat(), tokenizer, moderation=moderation)
    deps = AppDependencies(
        index=ChromaVectorIndex("api-test", client=chromadb.EphemeralClient()),
        embeddings=embeddings,
        query_service=QueryService(manager, orchestrator),
    )
    app = create_app(settings=settings or Settings(environment="test"), dependencies=deps)
    return TestClient(app)


def test_ask_returns_answer_contract():
    client = create_test_client(chat=StubChat(reply="  The Deity is a ship.  "))
    response = client.post("/api/v1/ask", json={"prompt": "What is the deity?", "username": "someone"})
    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["answer"] == "The Deity is a ship."
    assert payload["context"] == "Page: Deity\nThe Deity is a ship."
    assert payload["response_tokens"] == str(len("The Deity is a ship."))
    assert payload["context_tokens"] == str(len(payload["context"]))
    assert int(payload["question_tokens"]) > int(payload["context_tokens"])
    assert payload["duration"].isdigit()
    assert "version" in payload
    assert response.headers["X-Correlation-ID"]


def test_ask_passes_limits_and_history():
    chat = StubChat()
    index = StubIndex([make_chunk("Deity", "The Deity is a ship.", 0.9)])
    client = create_test_client(chat=chat, index=index)
    response = client.post(
        "/api/v1/ask",
        json={
            "prompt": "what is the deity?",
            "max_length": 50,
            "max_context_length": 3,
            "conversation": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        },
    )
    assert response.status_code == 200, response.text
    assert index.calls[0][1] == 3
    assert chat.calls[0]["max_tokens"] == 50
    assert [turn.content for turn in chat.calls[0]["messages"][1:3]] == ["hi", "hello"]


def test_empty_question_is_bad_request_without_external_calls():
    embeddings, chat = StubEmbeddings(), StubChat()
    client = create_test_client(embeddings=embeddings, chat=chat)
    response = client.post("/api/v1/ask", json={"prompt": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "The question cannot be empty."
    assert embeddings.calls == []
    assert chat.calls == []


def test_flagged_question_is_rejected():
    chat = StubChat()
    client = create_test_client(chat=chat, moderation=StubModeration(flagged=True))
    response = client.post("/api/v1/ask", json={"prompt": "something nasty"})
    assert response.status_code == 400
    assert chat.calls == []


def test_service_failure_is_generic_server_error():
    client = create_test_client(chat=StubChat(error=ChatServiceError("upstream said: secret details")))
    response = client.post("/api/v1/ask", json={"prompt": "What is the deity?"})
    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Internal Server Error"
    assert "secret" not in response.text


def test_api_key_required_when_configured():
    client = create_test_client(settings=Settings(environment="test", api_key="s3cret"))
    assert client.post("/api/v1/ask", json={"prompt": "deity?"}).status_code == 401
    ok = client.post("/api/v1/ask", json={"prompt": "deity?"}, headers={"X-API-Key": "s3cret"})
    assert ok.status_code == 200


def test_invalid_context_length_is_validation_error():
    client = create_test_client()
    response = client.post("/api/v1/ask", json={"prompt": "deity?", "max_context_length": 0})
    assert response.status_code == 422


def test_health_endpoints():
    client = create_test_client()
    assert client.get("/healthz").json()["status"] == "ok"
    assert client.head("/healthz").status_code == 200
    assert client.get("/livez").status_code == 200
    ready = client.get("/healthz/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "galaxygpt_retrieval_duration_seconds" in metrics.text


def test_end_to_end_with_local_index():
    tokenizer = TokenizerAdapter(ByteEncoding())
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=16))
    index = ChromaVectorIndex("api-e2e", client=chromadb.EphemeralClient())
    index.reset()
    WikiPageIngestor(backend, index).ingest([WikiPage(title="Deity", content="The Deity is a super capital ship.")])
    manager = ContextManager(backend, index, context_tokenizer=tokenizer, config=RetrievalConfig(token_budget=500))
    deps = AppDependencies(
        index=index,
        embeddings=backend,
        query_service=QueryService(manager, AnswerOrchestrator(TemplateChatBackend(), tokenizer)),
    )
    client = TestClient(create_app(settings=Settings(environment="test"), dependencies=deps))

    response = client.post("/api/v1/ask", json={"prompt": "What is the deity?"})
    assert response.status_code == 200, response.text
    payload = response.json()
    assert "The Deity is a super capital ship." in payload["context"]
    assert "What is the deity?" in payload["answer"]
    assert client.get("/healthz/ready").json()["chunks"] == 1


def test_max_context_length_follows_configured_limit():
    index = StubIndex([make_chunk("Deity", "The Deity is a ship.", 0.9)])
    client = create_test_client(index=index, settings=Settings(environment="test", max_context_documents_limit=50))
    response = client.post("/api/v1/ask", json={"prompt": "what is the deity?", "max_context_length": 30})
    assert response.status_code == 200, response.text
    assert index.calls[0][1] == 30


def test_max_context_length_above_limit_is_rejected():
    index = StubIndex([make_chunk("Deity", "The Deity is a ship.", 0.9)])
    client = create_test_client(index=index)
    response = client.post("/api/v1/ask", json={"prompt": "what is the deity?", "max_context_length": 30})
    assert response.status_code == 422
    assert "20" in response.json()["detail"]
    assert index.calls == []


def test_create_app_applies_settings_log_level():
    try:
        create_test_client(settings=Settings(environment="test", log_level="ERROR"))
        assert structlog.get_config()["wrapper_class"] is structlog.make_filtering_bound_logger(logging.ERROR)
    finally:
        configure_logging("INFO")
