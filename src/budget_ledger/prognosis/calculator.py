"""
Forward projection of account balances across budget months.

Months are swept in ascending month-key order with one running balance per
account. A manually set balance for a month replaces the carried balance at
that point; every month's end balance is carried into the next month.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from budget_ledger.domain.enums import FinancedFrom
from budget_ledger.domain.models import Account, Ledger, MonthData
from budget_ledger.logging_setup import get_logger

ZERO = Decimal("0")


@dataclass
class Prognosis:
    """Projected start/end balance per month key and account id"""
    start_balances_by_month: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    end_balances_by_month: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    failed_months: List[str] = field(default_factory=list)

    def start_balance(self, month_key: str, account_id: str) -> Optional[Decimal]:
        return self.start_balances_by_month.get(month_key, {}).get(account_id)

    def end_balance(self, month_key: str, account_id: str) -> Optional[Decimal]:
        return self.end_balances_by_month.get(month_key, {}).get(account_id)

    @property
    def month_keys(self) -> List[str]:
        return sorted(self.start_balances_by_month)


def _deposits(month: MonthData, account_id: str) -> Decimal:
    """Savings deposits (group plus sub-items) and cost group transfers into the account"""
    total = ZERO
    for group in month.savings_groups:
        if group.account_id == account_id:
            total += group.amount + sum((sub.amount for sub in group.sub_categories), ZERO)
    for group in month.cost_groups:
        if group.account_id == account_id and group.financed_from != FinancedFrom.INDIVIDUAL:
            total += group.amount
    return total


def _individual_costs(month: MonthData, account_id: str) -> Decimal:
    """Individually financed cost items paid from the account, across all cost groups"""
    total = ZERO
    for group in month.cost_groups:
        for sub in group.sub_categories:
            if sub.account_id == account_id and sub.financed_from == FinancedFrom.INDIVIDUAL:
                total += sub.amount
    return total


def month_end_balance(month: MonthData, account_id: str, start: Decimal) -> Decimal:
    """End balance of one account for one month, given its start balance"""
    return start + _deposits(month, account_id) - _individual_costs(month, account_id)


def project(
    ledger: Ledger,
    accounts: Sequence[Account],
    logger: Optional[logging.Logger] = None,
) -> Prognosis:
    """
    Project start and end balances for every account in every month.

    A month that cannot be computed is logged, listed in ``failed_months`` and
    left out of the balance maps; the sweep continues with the running
    balances it had before that month.

    Args:
        ledger: Ledger to project
        accounts: Accounts to project balances for
        logger: Optional logger, defaults to the module logger

    Returns:
        Prognosis keyed by month key, then account id
    """
    logger = logger or get_logger(__name__)
    prognosis = Prognosis()

    month_keys = ledger.month_keys()
    if not month_keys or not accounts:
        return prognosis

    running: Dict[str, Decimal] = {}
    first_month = ledger.get(month_keys[0])
    for account in accounts:
        if first_month is not None and first_month.has_manual_balance(account.id):
            running[account.id] = first_month.account_balances.get(account.id, ZERO)
        else:
            running[account.id] = ZERO

    for month_key in month_keys:
        try:
            month = ledger.get(month_key)
            if month is None:
                raise ValueError(f"No month data stored for {month_key}")

            starts: Dict[str, Decimal] = {}
            ends: Dict[str, Decimal] = {}
            for account in accounts:
                if month.has_manual_balance(account.id):
                    start = month.account_balances.get(account.id, ZERO)
                    logger.debug("%s %s: manual start balance %s", month_key, account.id, start)
                else:
                    start = running[account.id]
                starts[account.id] = start
                ends[account.id] = month_end_balance(month, account.id, start)
        except Exception as e:
            logger.error("Prognosis failed for %s, keeping running balances: %s", month_key, e)
            prognosis.failed_months.append(month_key)
            continue

        # Only commit once every account of the month has been computed
        prognosis.start_balances_by_month[month_key] = starts
        prognosis.end_balances_by_month[month_key] = ends
        running.update(ends)

    logger.info(
        "Projected %d months for %d accounts (%d failed)",
        len(prognosis.start_balances_by_month), len(accounts), len(prognosis.failed_months),
    )
    return prognosis


def apply_prognosis(ledger: Ledger, prognosis: Prognosis) -> Ledger:
    """
    Write projected balances into each month's estimated balance maps.

    Only months present in both the ledger and the prognosis are updated;
    the input ledger is left unchanged.
    """
    updated: Dict[str, MonthData] = {}
    for month_key in prognosis.month_keys:
        if month_key not in ledger or ledger.get(month_key) is None:
            continue
        month = ledger.month_or_empty(month_key)
        month.account_estimated_start_balances = dict(prognosis.start_balances_by_month[month_key])
        month.account_estimated_final_balances = dict(prognosis.end_balances_by_month[month_key])
        updated[month_key] = month
    return ledger.replace_months(updated)
