"""
Date/range expression parser: free text -> DateQuery.

Rules are an ordered table of (name, compiled pattern, builder). The first rule whose
pattern matches *and* whose builder returns a DateQuery wins; a builder returns None
when the match does not form a valid calendar date, and parsing moves on to the next
rule. Nothing here reads the wall clock: relative phrases resolve against *today*.
"""

import calendar
import logging
import re
from datetime import date, timedelta
from typing import Callable, Optional

from src.domain.entities.date_query import DateQuery, DateRange, NoDate, SingleDate

logger = logging.getLogger(__name__)

MONTHS: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_MONTH = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_DAY = r"(\d{1,2})(?!\d)(?:st|nd|rd|th)?"
_YEAR = r"(\d{4})"

TRAILING_WEEK_DAYS = 7
TRAILING_MONTH_DAYS = 30

Builder = Callable[[re.Match, date], Optional[DateQuery]]


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _year_or_current(group: Optional[str], today: date) -> int:
    return int(group) if group else today.year


# ---------------------------------------------------------------------------
# Flexible single-date sub-parser (used by the from/between rule)
# ---------------------------------------------------------------------------

_FLEXIBLE_FORMATS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})\b"), "ymd"),
    (re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})\b"), "dmy"),
    (re.compile(rf"^{_DAY}\s+{_MONTH}\b(?:\s+{_YEAR}\b)?"), "day_month"),
    (re.compile(rf"^{_MONTH}\s+{_DAY}\b,?(?:\s*{_YEAR}\b)?"), "month_day"),
]


def parse_flexible_date(text: str, today: date) -> Optional[date]:
    """Parse one side of a range expression, anchored at the start of *text*.

    Accepts ISO (YYYY-MM-DD), day-first numeric (DD-MM-YYYY), "D Month [Year]",
    "D Mon [Year]" and the month-name-first variants. Returns None when nothing
    usable is found.
    """
    s = text.strip().lower()
    for pattern, kind in _FLEXIBLE_FORMATS:
        m = pattern.match(s)
        if not m:
            continue
        if kind == "ymd":
            return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if kind == "dmy":
            return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        if kind == "day_month":
            return _safe_date(
                _year_or_current(m.group(3), today), MONTHS[m.group(2)], int(m.group(1))
            )
        return _safe_date(
            _year_or_current(m.group(3), today), MONTHS[m.group(1)], int(m.group(2))
        )
    return None


# ---------------------------------------------------------------------------
# Rule builders
# ---------------------------------------------------------------------------


def _today_or_yesterday(m: re.Match, today: date) -> DateQuery:
    if m.group(1) == "today":
        return SingleDate(today)
    return SingleDate(today - timedelta(days=1))


def _trailing(days: int) -> Builder:
    def build(m: re.Match, today: date) -> DateQuery:
        return DateRange(today - timedelta(days=days), today)

    return build


def _last_n_days(m: re.Match, today: date) -> Optional[DateQuery]:
    try:
        start = today - timedelta(days=int(m.group(1)))
    except (OverflowError, ValueError):
        return None
    return DateRange(start, today)


def _explicit_range(m: re.Match, today: date) -> Optional[DateQuery]:
    """Try every from/between keyword in turn until both sides parse."""
    while m is not None:
        first = parse_flexible_date(m.group(1), today)
        second = parse_flexible_date(m.group(2), today)
        if first is not None and second is not None:
            return DateRange(min(first, second), max(first, second))
        m = m.re.search(m.string, m.start() + 1)
    return None


def _day_month(m: re.Match, today: date) -> Optional[DateQuery]:
    day = _safe_date(_year_or_current(m.group(3), today), MONTHS[m.group(2)], int(m.group(1)))
    return SingleDate(day) if day else None


def _month_day(m: re.Match, today: date) -> Optional[DateQuery]:
    day = _safe_date(_year_or_current(m.group(3), today), MONTHS[m.group(1)], int(m.group(2)))
    return SingleDate(day) if day else None


def _iso(m: re.Match, today: date) -> Optional[DateQuery]:
    day = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return SingleDate(day) if day else None


def _day_first(m: re.Match, today: date) -> Optional[DateQuery]:
    day = _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    return SingleDate(day) if day else None


def _whole_month(m: re.Match, today: date) -> Optional[DateQuery]:
    year = _year_or_current(m.group(2), today)
    month = MONTHS[m.group(1)]
    first = _safe_date(year, month, 1)
    if first is None:
        return None
    return DateRange(first, date(year, month, calendar.monthrange(year, month)[1]))


DATE_RULES: list[tuple[str, re.Pattern, Builder]] = [
    ("relative_day", re.compile(r"\b(today|yesterday)\b"), _today_or_yesterday),
    ("trailing_week", re.compile(r"\b(?:last|past|this)\s+week\b"), _trailing(TRAILING_WEEK_DAYS)),
    ("trailing_month", re.compile(r"\b(?:last|past)\s+month\b"), _trailing(TRAILING_MONTH_DAYS)),
    ("last_n_days", re.compile(r"\blast\s+(\d+)\s+days?\b"), _last_n_days),
    (
        "explicit_range",
        re.compile(r"\b(?:from|between)\s+(.+?)\s+(?:to|and)\s+(.+)$"),
        _explicit_range,
    ),
    (
        "day_month",
        re.compile(rf"(?:\b(?:on|for|of)\s+)?\b{_DAY}\s+{_MONTH}\b(?:\s+{_YEAR}\b)?"),
        _day_month,
    ),
    ("month_day", re.compile(rf"\b{_MONTH}\s+{_DAY}\b,?(?:\s*{_YEAR}\b)?"), _month_day),
    ("iso", re.compile(r"\b(\d{4})[-/](\d{1,2})[-/](\d{1,2})\b"), _iso),
    ("day_first", re.compile(r"\b(\d{1,2})[-/](\d{1,2})[-/](\d{4})\b"), _day_first),
    ("whole_month", re.compile(rf"\bin\s+{_MONTH}\b(?:\s+{_YEAR}\b)?"), _whole_month),
]


def parse_date_query(text: str, today: date) -> DateQuery:
    """Extract the single date or date range a question refers to.

    Args:
        text:  The user's question, any case.
        today: The current date; relative phrases and missing years resolve
               against it.

    Returns:
        SingleDate, DateRange, or NoDate when no rule produced a usable date.
    """
    q = text.lower().strip()
    for name, pattern, build in DATE_RULES:
        m = pattern.search(q)
        if not m:
            continue
        result = build(m, today)
        if result is not None:
            logger.debug("Date rule %s matched %r -> %s", name, text, result)
            return result
    return NoDate()
