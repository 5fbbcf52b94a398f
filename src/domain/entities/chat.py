"""
Domain entities for a single chat question/answer cycle.
Zero external dependencies, pure Python dataclasses only.

Everything here is created fresh per question and discarded with the response.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from src.domain.entities.date_query import DateQuery
from src.domain.entities.metal_price import DaySnapshot


class Intent(str, Enum):
    PRICE = "price"
    TREND = "trend"
    COMPARE = "compare"
    RANK = "rank"
    AVERAGE = "average"
    CARATS = "carats"
    DATERANGE = "daterange"
    HELP = "help"


@dataclass(frozen=True)
class MetalSelection:
    """Metal codes found in a question.

    An empty selection means "all tracked metals", not "no metals".
    primary is the metal mentioned earliest in the question, if any.
    """

    codes: frozenset[str] = frozenset()
    primary: Optional[str] = None

    @property
    def is_all(self) -> bool:
        return not self.codes

    def __len__(self) -> int:
        return len(self.codes)


@dataclass(frozen=True)
class ResolvedRows:
    """Store rows found for a DateQuery, one snapshot per date, ascending."""

    requested: DateQuery
    snapshots: tuple[DaySnapshot, ...]
    # Set when a SingleDate missed and the window fallback picked another date.
    closest_to: Optional[date] = None

    @property
    def latest(self) -> DaySnapshot:
        return self.snapshots[-1]

    @property
    def earliest(self) -> DaySnapshot:
        return self.snapshots[0]


@dataclass(frozen=True)
class NotFound:
    """No rows in the requested window; carries the store's usable bounds."""

    requested: DateQuery
    oldest: Optional[date]
    newest: Optional[date]


Resolution = Union[ResolvedRows, NotFound]


@dataclass(frozen=True)
class GroundedContext:
    """Evidence and the deterministic answer built for one question."""

    intent: Intent
    context_block: tuple[str, ...] = ()
    suggested_answer: Optional[str] = None
    site_info: Optional[str] = None
    not_found: Optional[NotFound] = None

    @property
    def evidence_text(self) -> str:
        return "\n\n".join(self.context_block)


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    evidence_text: str
    user_question: str
    streaming: bool = False

    @property
    def user_prompt(self) -> str:
        """Evidence followed by the question, as sent in the user turn."""
        question = f"USER QUESTION: {self.user_question}"
        if not self.evidence_text:
            return question
        return f"{self.evidence_text}\n\n{question}"


@dataclass(frozen=True)
class ChatAnswer:
    answer_text: str
    evidence_excerpt: str
    intent: Intent
    used_generative_backend: bool = False
