import pytest
from datetime import datetime

from budget_ledger.domain.periods import (
    budget_month_for,
    next_month_key,
    parse_month_key,
    previous_month_key,
    resolve_range,
)


@pytest.mark.unit
class TestResolveRange:
    """Budget month boundaries for paydays"""

    def test_payday_25_runs_from_previous_month(self):
        # Act
        month_range = resolve_range("2024-11", 25)

        # Assert
        assert month_range.start == datetime(2024, 10, 25, 0, 0)
        assert month_range.end == datetime(2024, 11, 24, 23, 59, 59, 999000)

    def test_payday_1_is_the_calendar_month(self):
        # Act
        month_range = resolve_range("2024-11", 1)

        # Assert
        assert month_range.start == datetime(2024, 11, 1)
        assert month_range.end == datetime(2024, 11, 30, 23, 59, 59, 999000)

    def test_january_starts_in_december_of_previous_year(self):
        # Act
        month_range = resolve_range("2025-01", 25)

        # Assert
        assert month_range.start_date == "2024-12-25"
        assert month_range.end_date == "2025-01-24"

    def test_payday_1_in_december_ends_on_new_years_eve(self):
        month_range = resolve_range("2024-12", 1)

        assert month_range.start_date == "2024-12-01"
        assert month_range.end_date == "2024-12-31"

    def test_leap_february_calendar_month(self):
        month_range = resolve_range("2024-02", 1)

        assert month_range.end_date == "2024-02-29"

    def test_payday_past_month_end_rolls_over(self):
        """Day 31 of a 30-day month lands on the 1st of the next month"""
        # Act
        month_range = resolve_range("2024-12", 31)

        # Assert
        assert month_range.start_date == "2024-12-01"
        assert month_range.end_date == "2024-12-30"

    def test_consecutive_months_are_contiguous(self):
        """The day after one budget month ends is the day the next begins"""
        for month_key in ("2024-01", "2024-02", "2024-03", "2024-11", "2024-12"):
            current = resolve_range(month_key, 25)
            following = resolve_range(next_month_key(month_key), 25)

            assert (following.start - current.end).total_seconds() == pytest.approx(0.001)

    def test_contains_uses_whole_days(self):
        month_range = resolve_range("2024-11", 25)

        assert month_range.contains("2024-10-25")
        assert month_range.contains("2024-11-24T18:30:00")
        assert not month_range.contains("2024-11-25")

    def test_str_shows_dates(self):
        assert str(resolve_range("2024-11", 25)) == "2024-11: 2024-10-25 - 2024-11-24"


@pytest.mark.unit
class TestMonthKeys:

    def test_previous_month_of_january(self):
        assert previous_month_key("2025-01") == "2024-12"

    def test_next_month_of_december(self):
        assert next_month_key("2024-12") == "2025-01"

    @pytest.mark.parametrize("month_key", ["2024-13", "2024-1", "24-01", "november"])
    def test_invalid_month_keys_raise(self, month_key: str):
        with pytest.raises(ValueError):
            parse_month_key(month_key)

    def test_budget_month_for_date_after_payday(self):
        assert budget_month_for("2024-10-25", 25) == "2024-11"
        assert budget_month_for("2024-10-24", 25) == "2024-10"

    def test_budget_month_for_year_end(self):
        assert budget_month_for("2024-12-28", 25) == "2025-01"

    def test_budget_month_for_calendar_payday(self):
        assert budget_month_for("2024-10-31", 1) == "2024-10"
