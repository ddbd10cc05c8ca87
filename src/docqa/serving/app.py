"""FastAPI application exposing conversational document QA as a REST API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from docqa.config import Settings, settings as default_settings
from docqa.exceptions import DocQAError
from docqa.ingestion.builder import DirectoryLoader, IndexBuilder, IndexHandle
from docqa.ingestion.embedder import get_embedding_function
from docqa.limits import CallGuard
from docqa.qa.chain import ConversationalQA
from docqa.qa.llm import get_llm
from docqa.qa.models import ChatTurn
from docqa.retrieval.retriever import SemanticRetriever

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings
    from langchain_core.language_models import BaseChatModel

    from docqa.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class AnswerRequest(BaseModel):
    """Incoming question plus the caller-owned chat history."""

    question: str = Field(min_length=1)
    chat_history: list[ChatTurn] = Field(default_factory=list)

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value

    @field_validator("chat_history", mode="before")
    @classmethod
    def _null_history(cls, value: object) -> object:
        return [] if value is None else value


class AnswerResponse(BaseModel):
    """Answer plus the chat history extended by the new turn."""

    answer: str
    chat_history: list[ChatTurn]


# ── Dependencies ──────────────────────────────────────────────────────
def get_qa(request: Request) -> ConversationalQA:
    """Return the QA chain created during application startup."""
    return request.app.state.qa


# ── Error handlers ────────────────────────────────────────────────────
async def _docqa_error_handler(request: Request, exc: DocQAError) -> JSONResponse:
    logger.error(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ── Application factory ───────────────────────────────────────────────
def create_app(
    cfg: Settings | None = None,
    *,
    embeddings: Embeddings | None = None,
    llm: BaseChatModel | None = None,
    loader: DirectoryLoader | None = None,
    store_factory: Callable[[], VectorStoreBase] | None = None,
) -> FastAPI:
    """Build the FastAPI app.

    Collaborators default to the configured providers and are created in
    the lifespan, so importing this module needs no credentials.  The
    index build starts as soon as the app starts and is shared by every
    request.
    """
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        embedder = embeddings or get_embedding_function(cfg)
        model = llm or get_llm(cfg)
        guard = CallGuard(cfg.max_concurrency, cfg.request_timeout)

        index = IndexHandle(
            IndexBuilder(cfg, embedder, guard=guard, loader=loader, store_factory=store_factory)
        )
        index.start()
        retriever = SemanticRetriever(
            index,
            embedder,
            default_k=cfg.retrieval_k,
            guard=guard,
            retries=cfg.retrieval_retries,
            backoff=cfg.retry_backoff,
        )
        app.state.index = index
        app.state.qa = ConversationalQA(retriever, model, guard=guard)
        logger.info("Document QA service started (corpus=%s)", cfg.docs_dir)
        try:
            yield
        finally:
            await index.close()

    app = FastAPI(
        title="Document QA API",
        version="0.1.0",
        description="Conversational question answering over a local document corpus.",
        lifespan=lifespan,
    )
    app.add_exception_handler(DocQAError, _docqa_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """Readiness probe: 200 once the vector index is built and its backend answers."""
        index = request.app.state.index
        status = index.status
        if status == "ready":
            store = await index.get()
            if not await asyncio.to_thread(store.health_check):
                status = "unavailable"
        return JSONResponse(status_code=200 if status == "ready" else 503, content={"status": status})

    @app.post("/api/answer", response_model=AnswerResponse)
    async def answer(body: AnswerRequest, qa: ConversationalQA = Depends(get_qa)) -> AnswerResponse:
        """Answer a question using the document index and the chat history."""
        result = await qa.answer(body.question, body.chat_history)
        return AnswerResponse(answer=result.answer, chat_history=result.chat_history)

    return app


app = create_app()
