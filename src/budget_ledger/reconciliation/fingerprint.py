from typing import Any

from budget_ledger.domain.values import MalformedRowError, format_amount, normalize_date, normalize_text


def _date_component(value: Any) -> str:
    try:
        return normalize_date(value)
    except MalformedRowError:
        return ""


def fingerprint(transaction: Any) -> str:
    """
    Identity string for "the same real-world bank event".

    Built from account id, day, amount and description, normalized so that
    two parses of the same bank row (on different days, through different
    column mappings) agree. Works on stored Transactions and on ParsedRows.
    Missing or unreadable fields become empty components instead of raising.

    Example:
        >>> fingerprint(row)
        'A1|2024-11-20|-500.00|ica supermarket'
    """
    account_id = getattr(transaction, "account_id", None) or ""
    return "|".join((
        str(account_id).strip(),
        _date_component(getattr(transaction, "date", None)),
        format_amount(getattr(transaction, "amount", None)),
        normalize_text(getattr(transaction, "description", None)),
    ))
