"""Conversational retrieval QA — retrieve, prompt, answer, extend history.

Retrieval is driven by the current question only; the chat history is
given to the model as conversation context but is not used to rewrite
the search query.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from docqa.exceptions import InvalidQuestionError, ModelError
from docqa.limits import CallGuard
from docqa.qa.models import ChatTurn, QAResult
from docqa.qa.prompts import build_conversational_prompt

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

    from docqa.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class ConversationalQA:
    """Answer a question against the document index, given prior turns.

    Parameters
    ----------
    retriever:
        Top-k retriever over the shared index.
    llm:
        Chat model; called exactly once per question.
    guard:
        Concurrency / timeout guard for the model call.
    """

    def __init__(
        self,
        retriever: SemanticRetriever,
        llm: BaseChatModel,
        *,
        guard: CallGuard | None = None,
    ) -> None:
        self._retriever = retriever
        self._llm = llm
        self._guard = guard or CallGuard(timeout=None)

    async def answer(
        self,
        question: str,
        chat_history: Sequence[ChatTurn] | None = None,
    ) -> QAResult:
        """Answer *question* and return it with the history extended by one turn.

        The caller's history is copied, never mutated.

        Raises
        ------
        InvalidQuestionError
            If *question* is blank; no external call is made.
        IndexNotReadyError, RetrievalError
            Propagated from the retriever.
        ModelError
            If the model fails, times out, or returns no text.
        """
        if not question or not question.strip():
            raise InvalidQuestionError("question must be a non-empty string")
        history = list(chat_history or [])

        started = time.perf_counter()
        results = await self._retriever.search(question)
        messages = build_conversational_prompt(question, results, history)
        answer = await self._generate(messages)

        logger.info(
            "Answered question with %d context chunk(s) and %d prior turn(s) in %.2fs",
            len(results),
            len(history),
            time.perf_counter() - started,
        )
        return QAResult(
            answer=answer,
            chat_history=[*history, ChatTurn(question=question, answer=answer)],
            sources=results,
        )

    async def _generate(self, messages: list[BaseMessage]) -> str:
        try:
            response = await self._guard.run(lambda: self._llm.ainvoke(messages))
        except asyncio.TimeoutError as exc:
            raise ModelError("Language model call timed out") from exc
        except Exception as exc:
            raise ModelError(f"Language model call failed: {exc}") from exc

        content = getattr(response, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise ModelError(f"Language model returned no usable text: {content!r}")
        return content.strip()
