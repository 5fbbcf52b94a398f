"""
LangGraph state for the question-resolution pipeline.
langgraph is the orchestration framework and is allowed in the application layer.
"""

from datetime import date
from typing import Optional, TypedDict

from src.domain.entities.chat import GroundedContext, Intent, MetalSelection
from src.domain.entities.date_query import DateQuery


class QueryState(TypedDict, total=False):
    """State threaded through every node of the query graph.

    question:   the raw user question (input).
    today:      the date relative phrases resolve against (input).
    date_query: output of the date/range parser.
    metals:     output of the metal detector.
    intent:     output of the intent detector.
    context:    evidence and suggested answer from the context builder.
    """

    question: str
    today: date
    date_query: DateQuery
    metals: MetalSelection
    intent: Intent
    context: Optional[GroundedContext]
