"""Indexing of wiki pages into the vector index."""

from __future__ import annotations

import json
import re
import time
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence
from uuid import NAMESPACE_URL, uuid5

from langchain_text_splitters import RecursiveCharacterTextSplitter

from galaxygpt.embeddings import ChromaVectorIndex, EmbeddingBackend
from galaxygpt.metrics.observability import get_logger
from galaxygpt.models import DocumentChunk, WikiPage


class IngestionError(RuntimeError):
    """Raised when a page export cannot be read."""


@dataclass(frozen=True)
class IngestionConfig:
    """Configuration for page chunking."""

    chunk_size: int = 1000
    chunk_overlap: int = 100


def _normalize_text(raw: str) -> str:
    normalized = unicodedata.normalize("NFKC", raw)
    normalized = normalized.replace("\u00a0", " ")
    normalized = re.sub(r"[ \t]+", " ", normalized)
    normalized = re.sub(r"\n{3,}", "\n\n", normalized)
    return normalized.strip()


def load_pages(path: Path) -> list[WikiPage]:
    """Read a JSON export shaped as ``[{"title": ..., "content": ...}, ...]``."""

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise IngestionError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(data, list):
        raise IngestionError(f"{path} must contain a JSON list of pages")
    pages: list[WikiPage] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict) or "title" not in item or "content" not in item:
            raise IngestionError(f"Page #{position} in {path} needs 'title' and 'content'")
        pages.append(WikiPage(title=str(item["title"]), content=str(item["content"])))
    return pages


class WikiPageIngestor:
    """Split pages into chunks, embed them and store them in the index."""

    def __init__(
        self,
        embedding_backend: EmbeddingBackend,
        index: ChromaVectorIndex,
        config: IngestionConfig | None = None,
    ) -> None:
        self._embeddings = embedding_backend
        self._index = index
        self._config = config or IngestionConfig()
        self._logger = get_logger("ingestion")
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self._config.chunk_size,
            chunk_overlap=self._config.chunk_overlap,
        )

    def chunk_page(self, page: WikiPage) -> Sequence[DocumentChunk]:
        content = _normalize_text(page.content)
        if not content:
            return []
        page_id = uuid5(NAMESPACE_URL, page.title).hex
        return [
            DocumentChunk(
                chunk_id=f"{page_id}-{order}",
                title=page.title,
                text=text,
                order=order,
                metadata={"page_id": page_id},
            )
            for order, text in enumerate(self._splitter.split_text(content))
        ]

    def ingest(self, pages: Sequence[WikiPage]) -> Sequence[DocumentChunk]:
        start = time.perf_counter()
        chunks: List[DocumentChunk] = []
        for page in pages:
            chunks.extend(self.chunk_page(page))
        if chunks:
            vectors = self._embeddings.embed_texts([chunk.text for chunk in chunks])
            self._index.upsert(chunks, vectors)
        self._logger.info(
            "ingestion.complete",
            pages=len(pages),
            chunk_count=len(chunks),
            duration_seconds=time.perf_counter() - start,
        )
        return chunks
