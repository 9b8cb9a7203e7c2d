"""Vector index backed by Chroma."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Protocol, Sequence

import chromadb
from chromadb.api import ClientAPI
from chromadb.api.models.Collection import Collection
from chromadb.api.types import Documents, Embeddings as ChromaEmbeddings, IDs, Metadatas

from galaxygpt.errors import IndexUnavailableError
from galaxygpt.models import DocumentChunk, RetrievedChunk


class VectorIndex(Protocol):
    """Protocol for the nearest-neighbour index."""

    def search(self, vector: Sequence[float], top_k: int) -> Sequence[RetrievedChunk]:
        """Return up to ``top_k`` chunks ranked by similarity, best first."""


class ChromaVectorIndex:
    """Chroma collection holding embedded wiki chunks."""

    def __init__(
        self,
        collection_name: str = "galaxypedia",
        *,
        client: ClientAPI | None = None,
        persist_directory: str | Path | None = None,
    ) -> None:
        if client is not None:
            self._client = client
        elif persist_directory is not None:
            self._client = chromadb.PersistentClient(path=str(persist_directory))
        else:
            self._client = chromadb.EphemeralClient()
        self._collection_name = collection_name
        self._collection: Collection | None = None
        self._lock = threading.Lock()

    def _get_collection(self) -> Collection:
        # resolved lazily so the API can start while the index is still booting
        if self._collection is not None:
            return self._collection
        with self._lock:
            if self._collection is None:
                try:
                    self._collection = self._client.get_or_create_collection(
                        name=self._collection_name,
                        metadata={"hnsw:space": "cosine"},
                    )
                except Exception as exc:
                    raise IndexUnavailableError(f"Vector index unavailable: {exc}") from exc
        return self._collection

    def search(self, vector: Sequence[float], top_k: int) -> Sequence[RetrievedChunk]:
        if top_k <= 0:
            return []
        collection = self._get_collection()
        try:
            results = collection.query(
                query_embeddings=[list(vector)],
                n_results=top_k,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise IndexUnavailableError(f"Vector index query failed: {exc}") from exc
        retrieved = self._deserialize_results(results)
        return sorted(retrieved, key=lambda item: item.score, reverse=True)

    def upsert(self, chunks: Sequence[DocumentChunk], vectors: Sequence[Sequence[float]]) -> Sequence[str]:
        if len(chunks) != len(vectors):
            raise ValueError("Mismatch between number of chunks and embedding vectors")
        if not chunks:
            return []
        ids: IDs = [chunk.chunk_id for chunk in chunks]
        documents: Documents = [chunk.text for chunk in chunks]
        metadatas: Metadatas = [self._serialize_chunk(chunk) for chunk in chunks]
        embeddings: ChromaEmbeddings = [list(vector) for vector in vectors]
        collection = self._get_collection()
        try:
            collection.upsert(ids=ids, documents=documents, embeddings=embeddings, metadatas=metadatas)
        except Exception as exc:
            raise IndexUnavailableError(f"Vector index upsert failed: {exc}") from exc
        return list(ids)

    def count(self) -> int:
        try:
            return int(self._get_collection().count())
        except IndexUnavailableError:
            raise
        except Exception as exc:
            raise IndexUnavailableError(f"Vector index count failed: {exc}") from exc

    def reset(self) -> None:
        with self._lock:
            try:
                self._client.delete_collection(self._collection_name)
            except Exception as exc:  # missing collection is already empty
                message = str(exc).lower()
                if "does not exist" not in message and "not found" not in message:
                    raise IndexUnavailableError(f"Vector index reset failed: {exc}") from exc
            self._collection = None

    @staticmethod
    def _serialize_chunk(chunk: DocumentChunk) -> MutableMapping[str, object]:
        metadata: MutableMapping[str, object] = {
            "title": chunk.title,
            "order": chunk.order,
        }
        for key, value in chunk.metadata.items():
            if isinstance(value, (str, int, float, bool)):
                metadata.setdefault(key, value)
        return metadata

    def _deserialize_results(self, results: Mapping[str, object]) -> list[RetrievedChunk]:
        ids = list(self._first(results.get("ids", [])))
        documents = list(self._first(results.get("documents", [])))
        metadatas = list(self._first(results.get("metadatas", [])))
        distances = list(self._first(results.get("distances", [])))
        retrieved: list[RetrievedChunk] = []
        for position, chunk_id in enumerate(ids):
            document = documents[position] if position < len(documents) else ""
            metadata = metadatas[position] if position < len(metadatas) else None
            distance = distances[position] if position < len(distances) else None
            retrieved.append(self._deserialize_chunk(chunk_id, document or "", metadata or {}, distance))
        return retrieved

    @staticmethod
    def _deserialize_chunk(
        chunk_id: str,
        document: str,
        metadata: Mapping[str, object],
        distance: float | None,
    ) -> RetrievedChunk:
        extra = {k: v for k, v in metadata.items() if k not in {"title", "order"}}
        chunk = DocumentChunk(
            chunk_id=chunk_id,
            title=str(metadata.get("title", "")),
            text=document,
            order=int(metadata.get("order", 0)),
            metadata=extra,
        )
        score = 1.0 - float(distance) if distance is not None else 0.0
        return RetrievedChunk(chunk=chunk, score=score)

    @staticmethod
    def _first(value: object) -> Iterable:
        if isinstance(value, list):
            return value[0] if value else []
        return []
