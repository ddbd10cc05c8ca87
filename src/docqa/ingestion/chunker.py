"""Text chunking into overlapping fixed-size windows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langchain_core.documents import Document
from langchain_text_splitters import TextSplitter

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Break preference: paragraph, line, sentence, word.
DEFAULT_SEPARATORS = ["\n\n", "\n", ". ", " "]


class OverlapTextSplitter(TextSplitter):
    """Split text into windows of at most ``chunk_size`` characters.

    Consecutive windows share exactly ``chunk_overlap`` characters: the
    last ``chunk_overlap`` characters of one chunk are the first
    ``chunk_overlap`` characters of the next.  Each window ends on the
    highest-priority separator found in its back half; only when none is
    found is the text cut at ``chunk_size``.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters shared by consecutive chunks.  Must be
        smaller than *chunk_size*.
    separators:
        Break candidates in priority order.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 75,
        separators: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} for size {chunk_size}"
            )
        kwargs.setdefault("strip_whitespace", False)
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)
        self._separators = separators if separators is not None else list(DEFAULT_SEPARATORS)

    def split_text(self, text: str) -> list[str]:
        if not text:
            return []
        if len(text) <= self._chunk_size:
            return [text]

        chunks: list[str] = []
        start = 0
        while len(text) - start > self._chunk_size:
            end = self._window_end(text, start)
            chunks.append(text[start:end])
            start = end - self._chunk_overlap
        chunks.append(text[start:])
        return chunks

    def _window_end(self, text: str, start: int) -> int:
        limit = start + self._chunk_size
        # The end must leave more than `overlap` new characters so the next
        # window always advances.
        floor = start + max(self._chunk_overlap + 1, self._chunk_size // 2)
        for separator in self._separators:
            idx = text.rfind(separator, floor, limit)
            if idx != -1:
                return idx + len(separator)
        return limit


def chunk_documents(
    documents: Iterable[Document],
    chunk_size: int = 1000,
    chunk_overlap: int = 75,
) -> list[Document]:
    """Split *documents* into smaller chunks for embedding.

    Parameters
    ----------
    documents:
        Source documents produced by a loader.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.

    Returns
    -------
    list[Document]
        Chunked documents ready for embedding.  Each chunk keeps its
        parent's metadata and adds ``chunk_index``, ``chunk_count``,
        ``start_index``, ``char_count`` and ``overlap``.
    """
    splitter = OverlapTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    chunks: list[Document] = []
    for document in documents:
        if not document.page_content.strip():
            logger.debug("Skipping empty document %s", document.metadata.get("source", "unknown"))
            continue

        pieces = splitter.split_text(document.page_content)
        offset = 0
        for index, piece in enumerate(pieces):
            metadata = dict(document.metadata)
            metadata.update(
                {
                    "chunk_index": index,
                    "chunk_count": len(pieces),
                    "start_index": offset,
                    "char_count": len(piece),
                    "overlap": chunk_overlap if index else 0,
                }
            )
            chunks.append(Document(page_content=piece, metadata=metadata))
            offset += len(piece) - chunk_overlap
    return chunks
