"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the four abstract methods.  The rest of the retrieval
stack is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docqa.retrieval.models import IndexEntry


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    A store is populated once by the index builder and only read after
    that, so implementations must allow concurrent searches without
    locking.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    @abstractmethod
    def add(self, entries: Sequence[IndexEntry]) -> None:
        """Write *entries* into the store, preserving their order."""
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* entries for *query_embedding*, most similar first.

        Each result dict **must** contain:

        * ``"id"`` – entry identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict

        Entries with equal scores are returned in insertion order.
        """
        ...

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored entries."""
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...
