"""
Tests for the date/range expression parser.

All relative phrases resolve against a fixed "today" (2026-03-05) so nothing
depends on the wall clock.
"""

from datetime import date

import pytest

from src.application.query.date_parser import (
    DATE_RULES,
    parse_date_query,
    parse_flexible_date,
)
from src.domain.entities.date_query import DateRange, NoDate, SingleDate

TODAY = date(2026, 3, 5)


# =============================================================================
# Relative phrases
# =============================================================================

class TestRelativePhrases:
    """today / yesterday / last week / last month / last N days."""

    def test_today(self):
        assert parse_date_query("gold price today", TODAY) == SingleDate(TODAY)

    def test_yesterday(self):
        assert parse_date_query("What was silver YESTERDAY?", TODAY) == SingleDate(date(2026, 3, 4))

    @pytest.mark.parametrize("phrase", ["last week", "past week", "this week"])
    def test_trailing_week(self, phrase):
        result = parse_date_query(f"gold trend {phrase}", TODAY)
        assert result == DateRange(date(2026, 2, 26), TODAY)

    def test_last_month_is_thirty_days(self):
        result = parse_date_query("silver prices last month", TODAY)
        assert result == DateRange(date(2026, 2, 3), TODAY)

    def test_last_n_days(self):
        result = parse_date_query("gold for the last 10 days", TODAY)
        assert result == DateRange(date(2026, 2, 23), TODAY)

    def test_last_one_day(self):
        assert parse_date_query("last 1 day", TODAY) == DateRange(date(2026, 3, 4), TODAY)


# =============================================================================
# Explicit single dates
# =============================================================================

class TestSingleDates:
    """Day-month, month-day, ISO and day-first numeric forms."""

    def test_day_month_defaults_to_current_year(self):
        assert parse_date_query("gold price on 22 february", TODAY) == SingleDate(date(2026, 2, 22))

    def test_day_month_without_prefix(self):
        assert parse_date_query("22 feb 2025 gold", TODAY) == SingleDate(date(2025, 2, 22))

    def test_ordinal_suffix(self):
        assert parse_date_query("price for 3rd jan", TODAY) == SingleDate(date(2026, 1, 3))

    def test_month_day_with_year(self):
        assert parse_date_query("silver on February 14, 2025", TODAY) == SingleDate(date(2025, 2, 14))

    def test_iso(self):
        assert parse_date_query("gold 2026-02-20", TODAY) == SingleDate(date(2026, 2, 20))

    def test_iso_with_slashes(self):
        assert parse_date_query("gold 2026/02/20", TODAY) == SingleDate(date(2026, 2, 20))

    def test_day_first_numeric(self):
        assert parse_date_query("gold on 05-02-2026", TODAY) == SingleDate(date(2026, 2, 5))

    def test_year_digits_are_not_read_as_a_day(self):
        """'feb 2026' must not become 20 February."""
        result = parse_date_query("gold in feb 2026", TODAY)
        assert result == DateRange(date(2026, 2, 1), date(2026, 2, 28))


# =============================================================================
# Ranges
# =============================================================================

class TestRanges:
    """from/between ranges and whole months."""

    def test_from_to(self):
        result = parse_date_query("gold from 1 feb to 10 feb", TODAY)
        assert result == DateRange(date(2026, 2, 1), date(2026, 2, 10))

    def test_between_and_iso(self):
        result = parse_date_query("silver between 2026-01-05 and 2026-01-20", TODAY)
        assert result == DateRange(date(2026, 1, 5), date(2026, 1, 20))

    def test_reversed_range_is_normalized(self):
        result = parse_date_query("gold from 10 feb to 1 feb", TODAY)
        assert result == DateRange(date(2026, 2, 1), date(2026, 2, 10))

    def test_mixed_formats(self):
        result = parse_date_query("from jan 5 to 2026-01-09", TODAY)
        assert result == DateRange(date(2026, 1, 5), date(2026, 1, 9))

    def test_whole_month_current_year(self):
        result = parse_date_query("average gold price in january", TODAY)
        assert result == DateRange(date(2026, 1, 1), date(2026, 1, 31))

    def test_whole_month_leap_year(self):
        result = parse_date_query("gold in february 2024", TODAY)
        assert result == DateRange(date(2024, 2, 1), date(2024, 2, 29))

    def test_range_start_never_after_end(self):
        for question in ["from 28 feb to 2 feb", "between 2026-03-01 and 2026-01-01", "last 30 days"]:
            result = parse_date_query(question, TODAY)
            assert isinstance(result, DateRange)
            assert result.start <= result.end

    def test_later_range_keyword_is_tried(self):
        """"between gold and silver" does not parse; the later "from ... to ..." does."""
        result = parse_date_query("difference between gold and silver from 1 feb to 5 feb", TODAY)
        assert result == DateRange(date(2026, 2, 1), date(2026, 2, 5))


# =============================================================================
# Precedence and fall-through
# =============================================================================

class TestRuleOrder:
    """First matching rule wins; invalid matches fall through."""

    def test_relative_day_beats_explicit_date(self):
        assert parse_date_query("today vs 22 feb", TODAY) == SingleDate(TODAY)

    def test_range_beats_single_date(self):
        result = parse_date_query("gold from 2026-02-01 to 2026-02-03", TODAY)
        assert isinstance(result, DateRange)

    def test_invalid_calendar_date_falls_through(self):
        """'31 feb' is not a date; the whole-month rule picks up 'in march'."""
        result = parse_date_query("31 feb or in march", TODAY)
        assert result == DateRange(date(2026, 3, 1), date(2026, 3, 31))

    def test_unparseable_range_side_falls_through(self):
        result = parse_date_query("from monday to 22 feb", TODAY)
        assert result == SingleDate(date(2026, 2, 22))

    def test_out_of_range_day_count_falls_through(self):
        assert parse_date_query("gold price last 800000 days", TODAY) == NoDate()

    def test_oversized_day_count_falls_through(self):
        assert parse_date_query("last " + "9" * 5000 + " days", TODAY) == NoDate()

    def test_year_zero_month_falls_through(self):
        assert parse_date_query("gold in jan 0000", TODAY) == NoDate()

    def test_no_date(self):
        assert parse_date_query("what is the gold price", TODAY) == NoDate()

    def test_empty_question(self):
        assert parse_date_query("", TODAY) == NoDate()

    def test_rule_table_is_ordered(self):
        names = [name for name, _, _ in DATE_RULES]
        assert names.index("relative_day") < names.index("explicit_range")
        assert names.index("explicit_range") < names.index("day_month")
        assert names[-1] == "whole_month"


# =============================================================================
# Determinism and round-trip
# =============================================================================

class TestDeterminism:
    """Same input, same output; ISO rendering parses back to the same date."""

    @pytest.mark.parametrize("day", [date(2026, 1, 1), date(2025, 12, 31), date(2024, 2, 29)])
    def test_iso_round_trip(self, day):
        assert parse_date_query(day.isoformat(), TODAY) == SingleDate(day)

    def test_idempotent(self):
        question = "silver between 3 jan and 9 jan"
        assert parse_date_query(question, TODAY) == parse_date_query(question, TODAY)


class TestFlexibleDate:
    """parse_flexible_date handles one side of a range."""

    def test_day_month(self):
        assert parse_flexible_date("5 March", TODAY) == date(2026, 3, 5)

    def test_month_day_with_comma(self):
        assert parse_flexible_date("march 5, 2025", TODAY) == date(2025, 3, 5)

    def test_anchored_at_start(self):
        assert parse_flexible_date("gold 5 march", TODAY) is None

    def test_invalid(self):
        assert parse_flexible_date("2026-02-30", TODAY) is None
