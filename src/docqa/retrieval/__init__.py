"""
Retrieval — vector index backends and top-k similarity search.

This module wraps the vector store behind a clean interface so that
the QA layer never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — top-k retrieval with citations.
- :class:`VectorStoreBase` — abstract backend.
- :class:`InMemoryVectorStore` — default in-process backend.
- :class:`ChromaVectorStore` — Chroma backend.
- :class:`IndexEntry`, :class:`Citation`, :class:`RetrievalResult` — data models.
- :func:`create_vector_store` — backend selection from settings.
"""

from docqa.retrieval.base import VectorStoreBase
from docqa.retrieval.factory import create_vector_store
from docqa.retrieval.memory_store import InMemoryVectorStore
from docqa.retrieval.models import Citation, IndexEntry, RetrievalResult
from docqa.retrieval.retriever import SemanticRetriever

__all__ = [
    "Citation",
    "ChromaVectorStore",
    "InMemoryVectorStore",
    "IndexEntry",
    "RetrievalResult",
    "SemanticRetriever",
    "VectorStoreBase",
    "create_vector_store",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from docqa.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
