"""In-process vector store with brute-force similarity search."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from docqa.retrieval.base import VectorStoreBase

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docqa.retrieval.models import IndexEntry

SUPPORTED_METRICS = ("cosine", "dot", "euclidean")


class InMemoryVectorStore(VectorStoreBase):
    """Vector store that keeps every entry in a Python list.

    The store accepts a single :meth:`add` call and is read-only
    afterwards.

    Parameters
    ----------
    collection_name:
        Logical name, used in logs only.
    metric:
        ``cosine``, ``dot`` or ``euclidean``.  Euclidean distances are
        turned into a similarity of ``1 / (1 + distance)``.
    """

    def __init__(self, collection_name: str = "docqa", *, metric: str = "cosine") -> None:
        super().__init__(collection_name)
        metric = metric.lower()
        if metric not in SUPPORTED_METRICS:
            raise ValueError(f"Unsupported similarity metric: {metric!r}")
        self.metric = metric
        self._entries: tuple[IndexEntry, ...] = ()
        self._dimension: int | None = None
        self._sealed = False

    def add(self, entries: Sequence[IndexEntry]) -> None:
        if self._sealed:
            raise RuntimeError(f"Vector store {self.collection_name!r} is read-only once built")
        dimensions = {len(entry.vector) for entry in entries}
        if len(dimensions) > 1:
            raise ValueError(f"Entries have mixed vector dimensions: {sorted(dimensions)}")
        self._dimension = dimensions.pop() if dimensions else None
        self._entries = tuple(entries)
        self._sealed = True

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
    ) -> list[dict[str, Any]]:
        if k <= 0 or not self._entries:
            return []
        if len(query_embedding) != self._dimension:
            raise ValueError(
                f"Query dimension {len(query_embedding)} does not match index dimension {self._dimension}"
            )

        scored = [(self._score(query_embedding, entry.vector), entry) for entry in self._entries]
        # sorted() is stable, so equal scores keep insertion order.
        scored = sorted(scored, key=lambda item: item[0], reverse=True)
        return [
            {
                "id": entry.id,
                "content": entry.content,
                "score": score,
                "metadata": dict(entry.metadata),
            }
            for score, entry in scored[:k]
        ]

    def count(self) -> int:
        return len(self._entries)

    def health_check(self) -> bool:
        return True

    def _score(self, a: list[float], b: list[float]) -> float:
        if self.metric == "dot":
            return sum(x * y for x, y in zip(a, b))
        if self.metric == "euclidean":
            distance = math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))
            return 1.0 / (1.0 + distance)
        dot = sum(x * y for x, y in zip(a, b))
        norm_a = math.sqrt(sum(x * x for x in a))
        norm_b = math.sqrt(sum(y * y for y in b))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0
        return dot / (norm_a * norm_b)
