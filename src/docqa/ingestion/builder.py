"""One-shot index build and the process-wide handle that memoizes it.

:class:`IndexBuilder` runs the ingestion pipeline end to end:

1. **Load** every file of the corpus directory (all-or-nothing).
2. **Split** the documents into overlapping chunks.
3. **Embed** every chunk.
4. **Index** the (vector, text, metadata) entries into a fresh store.

:class:`IndexHandle` wraps the build in a single asyncio task that is
started once and awaited by every request, so the corpus is never
loaded or embedded twice in one process.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from docqa.config import Settings
from docqa.exceptions import DocQAError, IndexBuildError, IndexNotReadyError
from docqa.ingestion.chunker import chunk_documents
from docqa.ingestion.embedder import embed_texts
from docqa.ingestion.loader import load_directory
from docqa.limits import CallGuard
from docqa.retrieval.factory import create_vector_store
from docqa.retrieval.models import IndexEntry

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings

    from docqa.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

DirectoryLoader = Callable[[Path, Settings], "list[Document]"]


class IndexBuilder:
    """Build a populated vector store from the configured corpus directory.

    Parameters
    ----------
    cfg:
        Settings providing the corpus directory and chunking knobs.
    embeddings:
        Embedding model for the chunks.
    guard:
        Concurrency / timeout guard for embedding calls.
    loader:
        ``(directory, settings) -> documents``; defaults to
        :func:`~docqa.ingestion.loader.load_directory`.
    store_factory:
        Returns an empty store; defaults to
        :func:`~docqa.retrieval.factory.create_vector_store`.
    """

    def __init__(
        self,
        cfg: Settings,
        embeddings: Embeddings,
        *,
        guard: CallGuard | None = None,
        loader: DirectoryLoader | None = None,
        store_factory: Callable[[], VectorStoreBase] | None = None,
    ) -> None:
        self.settings = cfg
        self._embeddings = embeddings
        self._guard = guard or CallGuard(cfg.max_concurrency, cfg.request_timeout)
        self._loader = loader or load_directory
        self._store_factory = store_factory or (lambda: create_vector_store(cfg))

    async def build(self) -> VectorStoreBase:
        """Run the full pipeline and return the populated store.

        Raises
        ------
        IndexBuildError
            If any stage fails.  There is no partial index.
        """
        cfg = self.settings
        started = time.perf_counter()
        try:
            logger.info("Loading documents from %s", cfg.docs_dir)
            documents = await asyncio.to_thread(self._loader, cfg.docs_dir, cfg)
            logger.info("Loaded %d document(s)", len(documents))

            chunks = chunk_documents(documents, cfg.chunk_size, cfg.chunk_overlap)
            logger.info(
                "Split into %d chunk(s) (size=%d, overlap=%d)",
                len(chunks),
                cfg.chunk_size,
                cfg.chunk_overlap,
            )

            vectors = await embed_texts(
                [chunk.page_content for chunk in chunks],
                self._embeddings,
                guard=self._guard,
                batch_size=cfg.embedding_batch_size,
            )
            logger.info("Embedded %d chunk(s)", len(vectors))

            entries = [
                IndexEntry(
                    id=IndexEntry.make_id(position),
                    vector=vector,
                    content=chunk.page_content,
                    metadata=chunk.metadata,
                )
                for position, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]
            store = self._store_factory()
            await asyncio.to_thread(store.add, entries)
        except IndexBuildError:
            raise
        except DocQAError as exc:
            raise IndexBuildError(f"Index build failed: {exc}") from exc
        except Exception as exc:
            raise IndexBuildError(f"Index build failed unexpectedly: {exc}") from exc

        logger.info(
            "Vector index %r ready: %d entries in %.2fs",
            store.collection_name,
            store.count(),
            time.perf_counter() - started,
        )
        return store


class IndexHandle:
    """Memoized, process-wide access to the vector store being built.

    ``start()`` launches the build at most once; ``get()`` awaits that
    same build from any number of concurrent callers.  A failed build
    stays failed for the life of the process.
    """

    def __init__(self, builder: IndexBuilder) -> None:
        self._builder = builder
        self._task: asyncio.Task[VectorStoreBase] | None = None

    @property
    def status(self) -> str:
        """One of ``pending``, ``building``, ``ready`` or ``failed``."""
        if self._task is None:
            return "pending"
        if not self._task.done():
            return "building"
        if self._task.cancelled() or self._task.exception() is not None:
            return "failed"
        return "ready"

    def start(self) -> asyncio.Task[VectorStoreBase]:
        """Start the build if it has not started yet and return its task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._builder.build(), name="index-build")
            self._task.add_done_callback(self._log_outcome)
        return self._task

    async def get(self) -> VectorStoreBase:
        """Wait for the build and return the store.

        Raises
        ------
        IndexNotReadyError
            If the build failed or was cancelled.
        """
        task = self.start()
        try:
            # Shielded: a caller that gives up must not cancel the shared build.
            return await asyncio.shield(task)
        except IndexBuildError as exc:
            raise IndexNotReadyError("Vector index is unavailable") from exc
        except asyncio.CancelledError:
            if task.cancelled():
                raise IndexNotReadyError("Vector index build was cancelled") from None
            raise

    async def close(self) -> None:
        """Cancel a build that is still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except (asyncio.CancelledError, IndexBuildError):
                logger.info("Index build cancelled during shutdown")

    @staticmethod
    def _log_outcome(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Index build was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Index build failed; answers are unavailable", exc_info=exc)
