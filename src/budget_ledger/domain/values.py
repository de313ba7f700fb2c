"""
Normalization of raw bank values.

Bank exports disagree on number and date formats. Everything that enters the
ledger goes through these helpers so that amounts are ``Decimal`` and dates are
``YYYY-MM-DD`` strings.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

MIN_YEAR = 1900
MAX_YEAR = 2100

CENT = Decimal("0.01")

_WHITESPACE = re.compile(r"\s+")


class MalformedRowError(ValueError):
    """Raised when a bank row has an unparseable date or amount."""
    pass


def parse_amount(value: Any) -> Decimal:
    """
    Parse a bank amount into a Decimal.

    Accepts numbers as well as text in Swedish ("1 234,56", "-500,00"),
    continental ("1.234,56") or international ("1,234.56") notation.

    Args:
        value: Raw amount from a bank row

    Returns:
        The signed amount

    Raises:
        MalformedRowError: If the value is empty or not a finite number
    """
    if value is None or isinstance(value, bool):
        raise MalformedRowError(f"Invalid amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        amount = _parse_amount_text(str(value))

    if not amount.is_finite():
        raise MalformedRowError(f"Invalid amount: {value!r}")

    return amount


def _parse_amount_text(text: str) -> Decimal:
    cleaned = _WHITESPACE.sub("", text).replace("−", "-")
    cleaned = cleaned.replace("kr", "").replace("SEK", "")

    if "," in cleaned and "." in cleaned:
        # The last separator marks the decimals: "1,234.56" or "1.234,56"
        decimal_mark = "," if cleaned.rindex(",") > cleaned.rindex(".") else "."
        group_mark = "." if decimal_mark == "," else ","
        if cleaned.count(decimal_mark) > 1:
            raise MalformedRowError(f"Invalid amount: {text!r}")
        cleaned = cleaned.replace(group_mark, "").replace(decimal_mark, ".")
    elif "," in cleaned:
        after_comma = cleaned[cleaned.rindex(",") + 1:]
        if len(after_comma) <= 2 and after_comma.isdigit():
            # "1234,56": comma is the decimal separator
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")

    if not cleaned:
        raise MalformedRowError(f"Invalid amount: {text!r}")

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise MalformedRowError(f"Invalid amount: {text!r}")


def parse_optional_amount(value: Any) -> Optional[Decimal]:
    """Parse an amount, returning None for empty or unparseable values."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return parse_amount(value)
    except MalformedRowError:
        return None


def normalize_date(value: Any) -> str:
    """
    Normalize a bank date to a ``YYYY-MM-DD`` string.

    Comparisons between transaction dates are always done on these strings,
    never on datetime objects, so time zones cannot shift a row into another day.

    Raises:
        MalformedRowError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        text = value.strip().split("T")[0].split(" ")[0]
        try:
            parsed = date.fromisoformat(text)
        except ValueError:
            raise MalformedRowError(f"Invalid date: {value!r}")
    else:
        raise MalformedRowError(f"Invalid date: {value!r}")

    if not MIN_YEAR <= parsed.year <= MAX_YEAR:
        raise MalformedRowError(f"Date out of range: {value!r}")

    return parsed.isoformat()


def normalize_text(value: Any) -> str:
    """Trim, lower-case and collapse whitespace. None becomes ''."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip().lower()


def format_amount(amount: Any) -> str:
    """Canonical two-decimal text for an amount, or '' when it cannot be read."""
    try:
        return str(parse_amount(amount).quantize(CENT))
    except (MalformedRowError, InvalidOperation):
        return ""
