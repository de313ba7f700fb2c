"""
Start balances taken from bank-reported running balances.

The bank balance for a budget month is the ``balance_after`` of the account's
latest transaction in the previous calendar month dated before the month's
payday, i.e. the balance the account had when the budget month began.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from budget_ledger.domain.models import Ledger, MonthData, Transaction
from budget_ledger.domain.periods import next_month_key, previous_month_key, resolve_range
from budget_ledger.logging_setup import get_logger


def find_bank_balance(
    transactions: Iterable[Transaction],
    account_id: str,
    month_key: str,
    payday: int,
) -> Optional[Tuple[Decimal, str]]:
    """
    Find the bank-reported start balance of a budget month.

    Returns:
        (balance, date) of the transaction it was read from, or None
    """
    prev_key = previous_month_key(month_key)
    cutoff = (resolve_range(month_key, payday).start - timedelta(days=1)).date().isoformat()

    relevant = [
        txn for txn in transactions
        if txn.account_id == account_id
        and txn.balance_after is not None
        and txn.month_key == prev_key
        and txn.date <= cutoff
    ]
    if not relevant:
        return None

    latest = max(relevant, key=lambda txn: txn.date)
    return latest.balance_after, latest.date


def derive_bank_start_balances(
    ledger: Ledger,
    account_id: str,
    payday: int,
    logger: Optional[logging.Logger] = None,
) -> Tuple[Ledger, List[str]]:
    """
    Fill start balances from bank data for the months after those with data.

    Every calendar month holding the account's bank balances feeds the start
    balance of the following month, which is created if it is not stored yet.
    Balances filled this way are marked in ``account_bank_balances_set`` and
    recomputed on every call; a balance the user typed in is never replaced.

    Returns:
        (new ledger, month keys whose balance was set or changed)
    """
    logger = logger or get_logger(__name__)
    transactions = ledger.all_transactions()

    source_months = {
        txn.month_key for txn in transactions
        if txn.account_id == account_id and txn.balance_after is not None
    }

    updated: Dict[str, MonthData] = {}
    for month_key in sorted(next_month_key(key) for key in source_months):
        month = ledger.month_or_empty(month_key)
        if month.has_user_balance(account_id):
            continue

        found = find_bank_balance(transactions, account_id, month_key, payday)
        if found is None:
            continue

        balance, source_date = found
        if (
            month.account_bank_balances_set.get(account_id)
            and month.account_balances.get(account_id) == balance
        ):
            continue

        month.account_balances[account_id] = balance
        month.account_balances_set[account_id] = True
        month.account_bank_balances_set[account_id] = True
        updated[month_key] = month
        logger.info("Start balance for %s in %s set to %s from bank data (%s)",
                    account_id, month_key, balance, source_date)

    return ledger.replace_months(updated), sorted(updated)
