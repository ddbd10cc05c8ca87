"""Vector-store backend selection."""

from __future__ import annotations

from docqa.config import Settings, settings as default_settings
from docqa.retrieval.base import VectorStoreBase
from docqa.retrieval.memory_store import InMemoryVectorStore


def create_vector_store(cfg: Settings | None = None) -> VectorStoreBase:
    """Return an empty vector store for the configured backend."""
    cfg = cfg or default_settings
    backend = cfg.vector_store.strip().lower()

    if backend == "memory":
        return InMemoryVectorStore(cfg.chroma_collection, metric=cfg.similarity_metric)

    if backend == "chroma":
        # chromadb is only imported when the backend is selected.
        from docqa.retrieval.chroma_store import ChromaVectorStore, build_chroma_client

        return ChromaVectorStore(
            cfg.chroma_collection,
            client=build_chroma_client(cfg),
            metric=cfg.similarity_metric,
        )

    raise ValueError(f"Unknown vector store backend: {cfg.vector_store!r}")
