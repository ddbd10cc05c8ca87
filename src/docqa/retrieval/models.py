"""Domain models for index entries, retrieval results and citation tracking."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IndexEntry(BaseModel):
    """One (vector, chunk text, metadata) triple stored in a vector index.

    Entries are created once during the index build and never modified.

    Attributes
    ----------
    id:
        Stable identifier, ``chunk-<position>`` in build order.
    vector:
        The chunk's embedding.
    content:
        The chunk text.
    metadata:
        Provenance copied from the chunk (source, page, chunk_index, …).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    vector: list[float]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def make_id(position: int) -> str:
        """Return the id for the entry at build *position*."""
        return f"chunk-{position:08d}"


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source document.

    Attributes
    ----------
    document_id:
        The index entry id of the chunk (``None`` when unknown).
    source:
        File path the chunk was loaded from.
    chunk_index:
        Ordinal position of the chunk within the source document.
    page:
        Page number (PDF sources only).
    score:
        Similarity score returned by the vector store.
    metadata:
        Full metadata attached to the chunk.
    """

    document_id: str | None = None
    source: str = "unknown"
    chunk_index: int | None = None
    page: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation
