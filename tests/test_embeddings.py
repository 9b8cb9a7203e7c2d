from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from galaxygpt.embeddings.service import EmbeddingConfig, HashEmbeddingBackend, OpenAIEmbeddingBackend
from galaxygpt.errors import EmbeddingServiceError


class FakeEmbeddingsAPI:
    def __init__(self, dim: int = 4, error: Exception | None = None) -> None:
        self.dim = dim
        self.error = error
        self.calls: list[dict] = []

    def create(self, *, model: str, input: list[str]):
        self.calls.append({"model": model, "input": input})
        if self.error is not None:
            raise self.error
        data = [
            SimpleNamespace(index=position, embedding=[float(position)] * self.dim)
            for position in reversed(range(len(input)))
        ]
        return SimpleNamespace(data=data)


def _client(api: FakeEmbeddingsAPI) -> SimpleNamespace:
    return SimpleNamespace(embeddings=api)


def test_hash_embedding_dim_matches_config():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=64))
    vec = backend.embed_query("hello world")
    assert isinstance(vec, tuple)
    assert len(vec) == 64


def test_openai_backend_embeds_query_with_configured_model():
    api = FakeEmbeddingsAPI(dim=4)
    backend = OpenAIEmbeddingBackend(_client(api), EmbeddingConfig(model="text-embedding-3-small", dim=4))
    assert backend.embed_query("deity") == (0.0, 0.0, 0.0, 0.0)
    assert api.calls == [{"model": "text-embedding-3-small", "input": ["deity"]}]


def test_openai_backend_batches_and_keeps_order():
    api = FakeEmbeddingsAPI(dim=2)
    backend = OpenAIEmbeddingBackend(_client(api), EmbeddingConfig(dim=2, batch_size=2))
    vectors = backend.embed_texts(["a", "b", "c"])
    assert [len(call["input"]) for call in api.calls] == [2, 1]
    assert vectors == [(0.0, 0.0), (1.0, 1.0), (0.0, 0.0)]


def test_openai_errors_become_embedding_service_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    api = FakeEmbeddingsAPI(error=openai.APITimeoutError(request=request))
    backend = OpenAIEmbeddingBackend(_client(api))
    with pytest.raises(EmbeddingServiceError):
        backend.embed_query("deity")
