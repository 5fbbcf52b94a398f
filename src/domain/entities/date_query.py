"""
Domain entities for the temporal part of a question.

DateQuery is a closed tagged union: NoDate | SingleDate | DateRange.
Callers dispatch with isinstance() or structural pattern matching.
"""

from dataclasses import dataclass
from datetime import date
from typing import Union


@dataclass(frozen=True)
class NoDate:
    """The question names no date; resolve against the latest data."""

    def describe(self) -> str:
        return "latest"


@dataclass(frozen=True)
class SingleDate:
    date: date

    def describe(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def describe(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


DateQuery = Union[NoDate, SingleDate, DateRange]
