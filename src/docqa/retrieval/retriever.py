"""Semantic retriever — fixed top-k similarity search with citation tracking.

The retriever never holds a vector store directly.  It holds the index
handle and awaits it on every search, so a question that arrives while
the startup build is still running simply waits for it.

Usage::

    retriever = SemanticRetriever(index_handle, embeddings, default_k=4)
    results = await retriever.search("What color is the sky?")
    for r in results:
        print(r.citation.source, r.citation.score)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from docqa.exceptions import RetrievalError
from docqa.limits import CallGuard
from docqa.retrieval.models import Citation, RetrievalResult

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from docqa.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IndexProvider(Protocol):
    """Anything that can hand out the built vector store."""

    async def get(self) -> VectorStoreBase: ...


class SemanticRetriever:
    """Top-k retriever over the shared vector index.

    Parameters
    ----------
    index:
        Provider of the built store (normally an
        :class:`~docqa.ingestion.builder.IndexHandle`).
    embeddings:
        Embedding model used for the query text.  Must be the model the
        index was built with.
    default_k:
        Number of results returned by :meth:`search`.
    guard:
        Concurrency / timeout guard for the query embedding call.
    retries:
        Extra attempts after a failed search.
    backoff:
        Exponential backoff multiplier (seconds) between attempts.
    """

    def __init__(
        self,
        index: IndexProvider,
        embeddings: Embeddings,
        *,
        default_k: int = 4,
        guard: CallGuard | None = None,
        retries: int = 1,
        backoff: float = 0.5,
    ) -> None:
        self._index = index
        self._embeddings = embeddings
        self._guard = guard or CallGuard(timeout=None)
        self.default_k = default_k
        self.retries = retries
        self.backoff = backoff

    # -- public API -----------------------------------------------------------

    async def search(self, query: str, *, k: int | None = None) -> list[RetrievalResult]:
        """Embed *query* and return the *k* most similar chunks, best first.

        Raises
        ------
        IndexNotReadyError
            If the index build failed.
        RetrievalError
            If embedding the query or searching the store keeps failing.
        """
        store = await self._index.get()
        k = k or self.default_k

        async def _attempt() -> list[dict[str, Any]]:
            embedding = await self._guard.run(lambda: self._embeddings.aembed_query(query))
            return await asyncio.to_thread(store.similarity_search, embedding, k=k)

        raw_hits = await self._with_retry(_attempt)
        return self._to_results(raw_hits)

    async def search_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        store = await self._index.get()
        k = k or self.default_k

        async def _attempt() -> list[dict[str, Any]]:
            return await asyncio.to_thread(store.similarity_search, embedding, k=k)

        raw_hits = await self._with_retry(_attempt)
        return self._to_results(raw_hits)

    # -- internals ------------------------------------------------------------

    async def _with_retry(self, attempt_fn: Any) -> list[dict[str, Any]]:
        try:
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(self.retries + 1),
                wait=wait_exponential(multiplier=self.backoff, max=10),
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying similarity search (attempt %d)", attempt.retry_state.attempt_number
                        )
                    return await attempt_fn()
        except Exception as exc:
            logger.error("Similarity search failed: %s", exc)
            raise RetrievalError(f"Similarity search failed: {exc}") from exc
        raise RetrievalError("Similarity search made no attempt")  # pragma: no cover

    @staticmethod
    def _to_results(raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            meta = hit.get("metadata", {})
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                chunk_index=meta.get("chunk_index"),
                page=meta.get("page"),
                score=hit.get("score"),
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results
