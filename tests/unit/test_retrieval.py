"""Unit tests for the retrieval layer — models, stores, and SemanticRetriever."""

from __future__ import annotations

import uuid
from typing import Any

import pytest
from pydantic import ValidationError

from docqa.exceptions import IndexNotReadyError, RetrievalError
from docqa.retrieval.base import VectorStoreBase
from docqa.retrieval.factory import create_vector_store
from docqa.retrieval.memory_store import InMemoryVectorStore
from docqa.retrieval.models import Citation, IndexEntry, RetrievalResult
from docqa.retrieval.retriever import SemanticRetriever


# ── Fakes for deterministic testing ─────────────────────────────────────


class FakeVectorStore(VectorStoreBase):
    """In-memory fake that returns canned results, optionally failing first."""

    def __init__(self, hits: list[dict[str, Any]] | None = None, failures: int = 0) -> None:
        super().__init__("test-collection")
        self._hits: list[dict[str, Any]] = hits or []
        self.failures = failures
        self.calls = 0

    def add(self, entries) -> None:  # noqa: ANN001
        raise NotImplementedError

    def similarity_search(self, query_embedding: list[float], *, k: int = 4) -> list[dict[str, Any]]:
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise ConnectionError("vector store unreachable")
        return self._hits[:k]

    def count(self) -> int:
        return len(self._hits)

    def health_check(self) -> bool:
        return True


class StaticIndex:
    """Index provider that is already built."""

    def __init__(self, store: VectorStoreBase) -> None:
        self.store = store

    async def get(self) -> VectorStoreBase:
        return self.store


class FailedIndex:
    async def get(self) -> VectorStoreBase:
        raise IndexNotReadyError("build failed")


def _entry(position: int, vector: list[float], text: str, **metadata: Any) -> IndexEntry:
    return IndexEntry(id=IndexEntry.make_id(position), vector=vector, content=text, metadata=metadata)


SAMPLE_HITS: list[dict[str, Any]] = [
    {
        "id": "chunk-00000003",
        "content": "The sky is blue on a clear day.",
        "score": 0.92,
        "metadata": {"source": "docs/sky.txt", "chunk_index": 3, "page": 7},
    },
    {
        "id": "chunk-00000001",
        "content": "Grass is green.",
        "score": 0.87,
        "metadata": {"source": "docs/grass.txt", "chunk_index": 1},
    },
    {
        "id": "chunk-00000002",
        "content": "Snow is white.",
        "score": 0.45,
        "metadata": {},
    },
]


# ── Model tests ─────────────────────────────────────────────────────────


class TestCitation:
    def test_default_source_is_unknown(self) -> None:
        assert Citation().source == "unknown"


class TestIndexEntry:
    def test_ids_sort_in_build_order(self) -> None:
        ids = [IndexEntry.make_id(p) for p in (0, 9, 10, 123)]
        assert ids == sorted(ids)

    def test_entries_are_immutable(self) -> None:
        entry = _entry(0, [1.0], "text")
        with pytest.raises(ValidationError):
            entry.content = "changed"  # type: ignore[misc]


# ── In-memory store tests ───────────────────────────────────────────────


class TestInMemoryVectorStore:
    @pytest.fixture()
    def store(self) -> InMemoryVectorStore:
        store = InMemoryVectorStore()
        store.add(
            [
                _entry(0, [1.0, 0.0], "east", source="a.txt"),
                _entry(1, [0.0, 1.0], "north", source="b.txt"),
                _entry(2, [0.7, 0.7], "north-east", source="c.txt"),
            ]
        )
        return store

    def test_results_ordered_by_descending_similarity(self, store: InMemoryVectorStore) -> None:
        hits = store.similarity_search([1.0, 0.1], k=3)
        assert [h["content"] for h in hits] == ["east", "north-east", "north"]
        scores = [h["score"] for h in hits]
        assert scores == sorted(scores, reverse=True)

    def test_k_limits_results(self, store: InMemoryVectorStore) -> None:
        assert len(store.similarity_search([1.0, 0.0], k=2)) == 2
        assert len(store.similarity_search([1.0, 0.0], k=10)) == 3

    def test_ties_keep_insertion_order(self) -> None:
        store = InMemoryVectorStore()
        store.add([_entry(i, [1.0, 0.0], f"dup-{i}") for i in range(5)])
        hits = store.similarity_search([1.0, 0.0], k=5)
        assert [h["id"] for h in hits] == [IndexEntry.make_id(i) for i in range(5)]

    def test_hits_carry_metadata(self, store: InMemoryVectorStore) -> None:
        hit = store.similarity_search([0.0, 1.0], k=1)[0]
        assert hit["metadata"] == {"source": "b.txt"}
        assert hit["id"] == IndexEntry.make_id(1)

    @pytest.mark.parametrize("metric", ["dot", "euclidean"])
    def test_alternative_metrics(self, metric: str) -> None:
        store = InMemoryVectorStore(metric=metric)
        store.add([_entry(0, [0.0, 1.0], "far"), _entry(1, [2.0, 0.0], "near")])
        assert store.similarity_search([2.0, 0.0], k=1)[0]["content"] == "near"

    def test_read_only_after_build(self, store: InMemoryVectorStore) -> None:
        with pytest.raises(RuntimeError, match="read-only"):
            store.add([_entry(9, [1.0, 1.0], "late")])

    def test_dimension_mismatch_raises(self, store: InMemoryVectorStore) -> None:
        with pytest.raises(ValueError, match="dimension"):
            store.similarity_search([1.0, 0.0, 0.0])

    def test_empty_store_returns_empty(self) -> None:
        store = InMemoryVectorStore()
        store.add([])
        assert store.similarity_search([1.0], k=4) == []
        assert store.count() == 0

    def test_unknown_metric_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryVectorStore(metric="manhattan")


class TestCreateVectorStore:
    def test_memory_backend(self, make_settings) -> None:
        store = create_vector_store(make_settings(similarity_metric="dot"))
        assert isinstance(store, InMemoryVectorStore)
        assert store.metric == "dot"

    def test_unknown_backend(self, make_settings) -> None:
        with pytest.raises(ValueError, match="Unknown vector store"):
            create_vector_store(make_settings(vector_store="pinecone"))


# ── SemanticRetriever tests ─────────────────────────────────────────────


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore(hits=SAMPLE_HITS)


@pytest.fixture()
def retriever(fake_store: FakeVectorStore, embeddings) -> SemanticRetriever:
    return SemanticRetriever(StaticIndex(fake_store), embeddings, default_k=5, backoff=0.0)


@pytest.mark.anyio
class TestSemanticRetriever:
    async def test_search_returns_retrieval_results(self, retriever: SemanticRetriever) -> None:
        results = await retriever.search("What color is the sky?")
        assert len(results) == 3
        assert all(isinstance(r, RetrievalResult) for r in results)

    async def test_citations_populated(self, retriever: SemanticRetriever) -> None:
        first = (await retriever.search("sky"))[0].citation
        assert first.document_id == "chunk-00000003"
        assert first.source == "docs/sky.txt"
        assert first.chunk_index == 3
        assert first.page == 7
        assert first.score == 0.92

    async def test_default_k_limits_results(self, fake_store: FakeVectorStore, embeddings) -> None:
        retriever = SemanticRetriever(StaticIndex(fake_store), embeddings, default_k=2)
        assert len(await retriever.search("anything")) == 2

    async def test_explicit_k_overrides_default(self, retriever: SemanticRetriever) -> None:
        assert len(await retriever.search("anything", k=1)) == 1

    async def test_query_is_embedded_once(self, retriever: SemanticRetriever, embeddings) -> None:
        await retriever.search("sky")
        assert embeddings.query_calls == 1
        assert embeddings.document_calls == 0

    async def test_search_by_embedding(self, retriever: SemanticRetriever, embeddings) -> None:
        results = await retriever.search_by_embedding([0.1, 0.2, 0.3], k=2)
        assert len(results) == 2
        assert embeddings.query_calls == 0

    async def test_missing_metadata_fields_handled(self, embeddings) -> None:
        sparse = [{"id": "x", "content": "text", "score": 0.8, "metadata": {}}]
        retriever = SemanticRetriever(StaticIndex(FakeVectorStore(hits=sparse)), embeddings)
        results = await retriever.search("query")
        assert results[0].citation.source == "unknown"
        assert results[0].citation.chunk_index is None

    async def test_transient_failure_is_retried_once(self, embeddings) -> None:
        store = FakeVectorStore(hits=SAMPLE_HITS, failures=1)
        retriever = SemanticRetriever(StaticIndex(store), embeddings, retries=1, backoff=0.0)
        results = await retriever.search("sky")
        assert len(results) == 3
        assert store.calls == 2

    async def test_persistent_failure_raises_retrieval_error(self, embeddings) -> None:
        store = FakeVectorStore(hits=SAMPLE_HITS, failures=5)
        retriever = SemanticRetriever(StaticIndex(store), embeddings, retries=1, backoff=0.0)
        with pytest.raises(RetrievalError):
            await retriever.search("sky")
        assert store.calls == 2

    async def test_failed_index_is_not_retried(self, embeddings) -> None:
        retriever = SemanticRetriever(FailedIndex(), embeddings)
        with pytest.raises(IndexNotReadyError):
            await retriever.search("sky")
        assert embeddings.query_calls == 0

    async def test_same_query_same_ordering(self, embeddings) -> None:
        vectors = embeddings.embed_documents([f"passage {i}" for i in range(12)])
        store = InMemoryVectorStore()
        store.add([_entry(i, v, f"passage {i}") for i, v in enumerate(vectors)])
        retriever = SemanticRetriever(StaticIndex(store), embeddings, default_k=4)

        first = [r.citation.document_id for r in await retriever.search("passage 3")]
        second = [r.citation.document_id for r in await retriever.search("passage 3")]

        assert first == second
        assert first[0] == IndexEntry.make_id(3)


# ── Chroma backend tests ────────────────────────────────────────────────


class TestChromaVectorStore:
    @pytest.fixture(autouse=True)
    def _skip_if_chroma_broken(self) -> None:
        """Skip if chromadb can't be imported in this environment."""
        try:
            from docqa.retrieval.chroma_store import ChromaVectorStore  # noqa: F401
        except Exception:
            pytest.skip("chromadb not importable in this environment")

    @pytest.fixture()
    def client(self) -> Any:
        import chromadb

        return chromadb.EphemeralClient()

    def test_search_orders_by_similarity(self, client: Any) -> None:
        from docqa.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(f"test-{uuid.uuid4().hex[:8]}", client=client)
        store.add(
            [
                _entry(0, [1.0, 0.0], "east", source="a.txt", page=None),
                _entry(1, [0.0, 1.0], "north", source="b.txt"),
            ]
        )
        hits = store.similarity_search([0.1, 1.0], k=2)
        assert [h["content"] for h in hits] == ["north", "east"]
        assert hits[0]["metadata"]["source"] == "b.txt"
        assert store.count() == 2

    def test_collection_is_rebuilt_fresh(self, client: Any) -> None:
        from docqa.retrieval.chroma_store import ChromaVectorStore

        name = f"test-{uuid.uuid4().hex[:8]}"
        ChromaVectorStore(name, client=client).add([_entry(0, [1.0, 0.0], "stale")])
        fresh = ChromaVectorStore(name, client=client)
        assert fresh.count() == 0

    def test_entries_without_metadata(self, client: Any) -> None:
        from docqa.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(f"test-{uuid.uuid4().hex[:8]}", client=client)
        store.add([_entry(0, [1.0, 0.0], "bare"), _entry(1, [0.0, 1.0], "tagged", source="t.txt")])

        hits = store.similarity_search([1.0, 0.0], k=2)
        assert [h["content"] for h in hits] == ["bare", "tagged"]
        assert hits[0]["metadata"] == {}
        assert hits[1]["metadata"] == {"source": "t.txt"}

    def test_metric_change_recreates_empty_collection(self, client: Any) -> None:
        from docqa.retrieval.chroma_store import ChromaVectorStore

        name = f"test-{uuid.uuid4().hex[:8]}"
        ChromaVectorStore(name, client=client, metric="dot")
        store = ChromaVectorStore(name, client=client, metric="cosine")
        store.add([_entry(0, [2.0, 0.0], "east")])

        # Inner product would score 2.0 here; cosine caps at 1.0.
        [hit] = store.similarity_search([1.0, 0.0], k=1)
        assert hit["score"] == pytest.approx(1.0, abs=1e-3)

    def test_flatten_metadata(self) -> None:
        from docqa.retrieval.chroma_store import _flatten_metadata

        flat = _flatten_metadata({"source": "a.txt", "page": 3, "skip": None, "tags": ["x", "y"]})
        assert flat == {"source": "a.txt", "page": 3, "tags": "['x', 'y']"}
