"""Conversation models shared by the QA chain and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from docqa.retrieval.models import RetrievalResult


class ChatTurn(BaseModel):
    """One question / answer pair of the caller-owned chat history.

    Extra keys sent by the caller are kept so the history can be echoed
    back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    question: str
    answer: str


@dataclass(frozen=True)
class QAResult:
    """Outcome of one conversational QA call.

    Attributes
    ----------
    answer:
        The model's answer text.
    chat_history:
        The input history followed by the new turn.
    sources:
        The retrieved chunks the answer was grounded on.
    """

    answer: str
    chat_history: list[ChatTurn]
    sources: list[RetrievalResult] = field(default_factory=list)
