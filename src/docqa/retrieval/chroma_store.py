"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import chromadb

from docqa.config import Settings, settings as default_settings
from docqa.retrieval.base import VectorStoreBase

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docqa.retrieval.models import IndexEntry

logger = logging.getLogger(__name__)

_SPACE_MAP = {
    "cosine": "cosine",
    "dot": "ip",
    "euclidean": "l2",
}

# Chroma rejects very large single add() calls.
_ADD_BATCH_SIZE = 1000


def build_chroma_client(cfg: Settings | None = None) -> Any:
    """Return a Chroma client for the configured deployment.

    Chroma Cloud when an API key is set, a remote server when a host is
    set, an in-process ephemeral client otherwise.
    """
    cfg = cfg or default_settings
    if cfg.chroma_api_key:
        return chromadb.CloudClient(
            tenant=cfg.chroma_tenant or None,
            database=cfg.chroma_database or None,
            api_key=cfg.chroma_api_key,
        )
    if cfg.chroma_host:
        return chromadb.HttpClient(host=cfg.chroma_host, port=cfg.chroma_port)
    return chromadb.EphemeralClient()


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma only stores scalar metadata values."""
    flat: dict[str, str | int | float | bool] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = str(value)
    return flat


def _distance_to_score(distance: float, space: str) -> float:
    if space == "l2":
        return 1.0 / (1.0 + distance)
    # cosine and ip distances are both reported as 1 - similarity.
    return 1.0 - distance


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    The collection is recreated empty on construction so that every
    process builds a fresh index.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    client:
        Chroma client; built from settings when omitted.
    metric:
        ``cosine``, ``dot`` or ``euclidean``.
    """

    def __init__(
        self,
        collection_name: str = default_settings.chroma_collection,
        *,
        client: Any = None,
        metric: str = "cosine",
    ) -> None:
        super().__init__(collection_name)
        space = _SPACE_MAP.get(metric.lower())
        if space is None:
            raise ValueError(f"Unsupported similarity metric: {metric!r}")
        self._space = space
        self._client = client if client is not None else build_chroma_client()
        self._collection = self._fresh_collection()

    def _fresh_collection(self) -> Any:
        metadata = {"hnsw:space": self._space}
        collection = self._client.get_or_create_collection(self.collection_name, metadata=metadata)
        # The distance space is fixed at creation; Chroma defaults to l2.
        existing_space = (collection.metadata or {}).get("hnsw:space", "l2")
        if collection.count() or existing_space != self._space:
            logger.info(
                "Dropping existing Chroma collection %r (space=%s, entries=%d)",
                self.collection_name,
                existing_space,
                collection.count(),
            )
            self._client.delete_collection(self.collection_name)
            collection = self._client.create_collection(self.collection_name, metadata=metadata)
        return collection

    # -- VectorStoreBase overrides --------------------------------------------

    def add(self, entries: Sequence[IndexEntry]) -> None:
        for offset in range(0, len(entries), _ADD_BATCH_SIZE):
            batch = entries[offset : offset + _ADD_BATCH_SIZE]
            # Chroma rejects empty metadata dicts but accepts None per record.
            metadatas = [_flatten_metadata(entry.metadata) or None for entry in batch]
            self._collection.add(
                ids=[entry.id for entry in batch],
                embeddings=[entry.vector for entry in batch],
                documents=[entry.content for entry in batch],
                metadatas=metadatas if any(metadatas) else None,
            )

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
    ) -> list[dict[str, Any]]:
        if k <= 0:
            return []
        total = self._collection.count()
        if not total:
            return []

        results = self._collection.query(
            query_embeddings=[query_embedding],
            n_results=min(k, total),
            include=["documents", "metadatas", "distances"],
        )

        hits: list[dict[str, Any]] = []
        ids = results.get("ids", [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for doc_id, content, meta, dist in zip(ids, docs, metas, distances):
            hits.append(
                {
                    "id": doc_id,
                    "content": content or "",
                    "score": _distance_to_score(dist, self._space),
                    "metadata": dict(meta or {}),
                }
            )
        # Entry ids are zero-padded build positions: ties fall back to insertion order.
        hits.sort(key=lambda hit: (-hit["score"], hit["id"]))
        return hits

    def count(self) -> int:
        return self._collection.count()

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
