"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings
from langchain_core.messages import AIMessage

from docqa.config import Settings


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


# ── Fakes for external collaborators ────────────────────────────────────


class CountingEmbeddings(Embeddings):
    """Deterministic embeddings that count how often they are called."""

    def __init__(self, size: int = 32) -> None:
        self._inner = DeterministicFakeEmbedding(size=size)
        self.document_calls = 0
        self.query_calls = 0
        self.embedded_texts: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls += 1
        self.embedded_texts.extend(texts)
        return self._inner.embed_documents(texts)

    def embed_query(self, text: str) -> list[float]:
        self.query_calls += 1
        return self._inner.embed_query(text)


class RecordingChatModel:
    """Chat model stand-in that records every prompt it receives."""

    def __init__(self, answer: str = "The sky is blue.", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[list[Any]] = []

    async def ainvoke(self, messages: list[Any], **kwargs: Any) -> AIMessage:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.answer)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def docs_dir(tmp_path: Path) -> Path:
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture()
def make_settings(docs_dir: Path):
    """Factory for isolated settings pointing at the temporary corpus."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "docs_dir": docs_dir,
            "embedding_provider": "fake",
            "vector_store": "memory",
            "retry_backoff": 0.0,
            "request_timeout": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture()
def embeddings() -> CountingEmbeddings:
    return CountingEmbeddings()


@pytest.fixture()
def chat_model() -> RecordingChatModel:
    return RecordingChatModel()
