"""
Budget month boundaries.

A budget month is either a calendar month (payday 1) or a payday-anchored
period: with payday 25, the budget month "2024-11" runs from 2024-10-25
through 2024-11-24, end of day.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

from budget_ledger.domain.values import normalize_date

# Last representable millisecond of a day
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class MonthRange:
    """Inclusive [start, end] interval of one budget month"""
    month_key: str
    start: datetime
    end: datetime

    @property
    def start_date(self) -> str:
        return self.start.date().isoformat()

    @property
    def end_date(self) -> str:
        return self.end.date().isoformat()

    def contains(self, value: Union[str, date]) -> bool:
        """Check a date (or YYYY-MM-DD string) against the range, by day"""
        day = normalize_date(value)
        return self.start_date <= day <= self.end_date

    def __str__(self) -> str:
        return f"{self.month_key}: {self.start_date} - {self.end_date}"


def parse_month_key(month_key: str) -> Tuple[int, int]:
    """
    Split a ``YYYY-MM`` key into (year, month).

    Raises:
        ValueError: If the key is not a zero-padded year-month
    """
    parts = month_key.split("-")
    if len(parts) != 2 or len(parts[0]) != 4 or len(parts[1]) != 2:
        raise ValueError(f"Invalid month key '{month_key}', expected YYYY-MM")

    year, month = int(parts[0]), int(parts[1])
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in month key '{month_key}'")

    return year, month


def format_month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_key_for(value: Union[str, date]) -> str:
    """Calendar month key of a date"""
    return normalize_date(value)[:7]


def previous_month_key(month_key: str) -> str:
    year, month = parse_month_key(month_key)
    if month == 1:
        return format_month_key(year - 1, 12)
    return format_month_key(year, month - 1)


def next_month_key(month_key: str) -> str:
    year, month = parse_month_key(month_key)
    if month == 12:
        return format_month_key(year + 1, 1)
    return format_month_key(year, month + 1)


def _day_in_month(year: int, month: int, day: int) -> date:
    # Days past the end of a short month roll into the next month (31 Feb -> 2/3 Mar),
    # which keeps consecutive budget months contiguous.
    return date(year, month, 1) + timedelta(days=day - 1)


def resolve_range(month_key: str, payday: int) -> MonthRange:
    """
    Resolve the date interval of a budget month.

    Args:
        month_key: Budget month as ``YYYY-MM``
        payday: Day of month the budget period starts on (1 = calendar month)

    Returns:
        MonthRange with start at 00:00 and end at 23:59:59.999

    Example:
        >>> str(resolve_range("2024-11", 25))
        '2024-11: 2024-10-25 - 2024-11-24'
    """
    year, month = parse_month_key(month_key)

    if payday == 1:
        start_day = date(year, month, 1)
        next_year, next_month = parse_month_key(next_month_key(month_key))
        end_day = date(next_year, next_month, 1) - timedelta(days=1)
    else:
        prev_year, prev_month = parse_month_key(previous_month_key(month_key))
        start_day = _day_in_month(prev_year, prev_month, payday)
        end_day = _day_in_month(year, month, payday - 1)

    return MonthRange(
        month_key=month_key,
        start=datetime.combine(start_day, time.min),
        end=datetime.combine(end_day, END_OF_DAY),
    )


def budget_month_for(value: Union[str, date], payday: int) -> str:
    """
    Find the budget month key a date falls into.

    With payday 25, 2024-10-25 belongs to "2024-11" while 2024-10-24
    still belongs to "2024-10".
    """
    month_key = month_key_for(value)
    if payday == 1:
        return month_key

    for candidate in (month_key, next_month_key(month_key), previous_month_key(month_key)):
        if resolve_range(candidate, payday).contains(value):
            return candidate
    return month_key
