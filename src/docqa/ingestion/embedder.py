"""Embedding provider selection and batched chunk embedding."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from docqa.config import Settings, settings as default_settings
from docqa.exceptions import EmbeddingError
from docqa.limits import CallGuard

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(cfg: Settings | None = None) -> Embeddings:
    """Return the configured embedding model.

    ``openai`` uses the OpenAI embeddings API, ``huggingface`` a local
    sentence-transformer, and ``fake`` a deterministic hash-seeded
    embedding for offline runs.
    """
    cfg = cfg or default_settings
    provider = cfg.embedding_provider.strip().lower()

    if provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        kwargs: dict = {"model": cfg.embedding_model}
        if cfg.openai_api_key:
            kwargs["api_key"] = cfg.openai_api_key
        return OpenAIEmbeddings(**kwargs)

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=cfg.embedding_model)

    if provider == "fake":
        from langchain_core.embeddings import DeterministicFakeEmbedding

        logger.warning("Using deterministic fake embeddings (dimension=%d)", cfg.embedding_dimension)
        return DeterministicFakeEmbedding(size=cfg.embedding_dimension)

    raise ValueError(f"Unknown embedding provider: {cfg.embedding_provider!r}")


async def embed_texts(
    texts: Sequence[str],
    embeddings: Embeddings,
    *,
    guard: CallGuard | None = None,
    batch_size: int = 256,
) -> list[list[float]]:
    """Embed *texts* in batches, one vector per text, in input order.

    Raises
    ------
    EmbeddingError
        If the provider fails, times out, or returns vectors whose count or
        dimension does not line up.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    guard = guard or CallGuard(max_concurrency=1, timeout=None)

    vectors: list[list[float]] = []
    dimension: int | None = None
    for offset in range(0, len(texts), batch_size):
        batch = list(texts[offset : offset + batch_size])
        try:
            batch_vectors = await guard.run(lambda batch=batch: embeddings.aembed_documents(batch))
        except asyncio.TimeoutError as exc:
            raise EmbeddingError(f"Embedding batch at offset {offset} timed out") from exc
        except Exception as exc:
            raise EmbeddingError(f"Embedding batch at offset {offset} failed: {exc}") from exc

        if len(batch_vectors) != len(batch):
            raise EmbeddingError(
                f"Embedding response size mismatch: expected {len(batch)}, got {len(batch_vectors)}"
            )
        for vector in batch_vectors:
            if dimension is None:
                dimension = len(vector)
            if not vector or len(vector) != dimension:
                raise EmbeddingError(
                    f"Embedding dimension mismatch: expected {dimension}, got {len(vector)}"
                )
            vectors.append([float(value) for value in vector])

        logger.debug("Embedded %d/%d texts", len(vectors), len(texts))
    return vectors
