"""
QA — conversational retrieval question answering.

Public API
----------
- :class:`ConversationalQA` — retrieve, prompt and answer one question.
- :class:`ChatTurn`, :class:`QAResult` — conversation models.
- :func:`build_conversational_prompt` — message assembly.
"""

from docqa.qa.chain import ConversationalQA
from docqa.qa.models import ChatTurn, QAResult
from docqa.qa.prompts import build_conversational_prompt

__all__ = [
    "ChatTurn",
    "ConversationalQA",
    "QAResult",
    "build_conversational_prompt",
]
