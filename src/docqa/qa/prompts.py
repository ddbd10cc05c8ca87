"""Prompt templates for conversational question answering.

The model sees one system message holding the grounding context, the
prior turns replayed as human / AI messages, and finally the new
question.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.messages import BaseMessage

    from docqa.qa.models import ChatTurn
    from docqa.retrieval.models import RetrievalResult

QA_SYSTEM = """\
You are a helpful assistant that answers questions about a private document collection.
Use the context passages below and the conversation so far to answer the user's latest question.
If the context does not contain the answer, say that you don't know; do not make one up.

Context:
{context}
"""

NO_CONTEXT = "(no relevant passages were found)"


def format_context(results: Sequence[RetrievalResult]) -> str:
    """Numbered listing of retrieved passages with their source."""
    if not results:
        return NO_CONTEXT
    parts: list[str] = []
    for i, result in enumerate(results, 1):
        citation = result.citation
        page = f", page={citation.page}" if citation.page is not None else ""
        parts.append(f"[{i}] source={citation.source}{page}\n{result.content}")
    return "\n\n".join(parts)


def build_conversational_prompt(
    question: str,
    results: Sequence[RetrievalResult],
    chat_history: Sequence[ChatTurn] = (),
) -> list[BaseMessage]:
    """Assemble the messages for one answer call.

    Parameters
    ----------
    question:
        The user's current question.
    results:
        Retrieved chunks used as grounding context.
    chat_history:
        Prior turns, oldest first.

    Returns
    -------
    list[BaseMessage]
        A list of LangChain message objects ready for ``.ainvoke()``.
    """
    messages: list[BaseMessage] = [SystemMessage(content=QA_SYSTEM.format(context=format_context(results)))]
    for turn in chat_history:
        messages.append(HumanMessage(content=turn.question))
        messages.append(AIMessage(content=turn.answer))
    messages.append(HumanMessage(content=question))
    return messages
