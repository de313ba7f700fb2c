"""
Smart merge of freshly imported bank rows into the ledger.

A re-import replaces the account's transactions inside the file's date range,
but any row that is the same real-world event as a stored transaction (same
fingerprint) keeps its identity, and manual edits on it survive.
"""
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from budget_ledger.categorization.categorizer import CategorizationEngine
from budget_ledger.categorization.rules import CategoryRule
from budget_ledger.domain.enums import TransactionStatus
from budget_ledger.domain.models import Ledger, MonthData, ParsedRow, Transaction
from budget_ledger.domain.values import (
    MalformedRowError,
    normalize_date,
    parse_amount,
    parse_optional_amount,
)
from budget_ledger.logging_setup import get_logger
from budget_ledger.reconciliation.fingerprint import fingerprint


@dataclass
class ReconcileResult:
    """
    Outcome of one reconciliation pass.

    ``ledger`` is the updated ledger; the lists describe what happened to
    individual transactions so callers can report without parsing logs.
    """
    ledger: Ledger
    account_id: str
    date_range: Optional[Tuple[str, str]] = None
    touched_months: List[str] = field(default_factory=list)
    new_transactions: List[Transaction] = field(default_factory=list)
    matched: List[Transaction] = field(default_factory=list)
    preserved: List[Transaction] = field(default_factory=list)
    removed: List[Transaction] = field(default_factory=list)
    dropped_manual: List[Transaction] = field(default_factory=list)
    skipped_rows: int = 0
    fingerprint_collisions: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.touched_months)


def _normalize_row(row: ParsedRow, account_id: str) -> ParsedRow:
    """
    Validate a parsed row and normalize its values.

    Raises:
        MalformedRowError: If the date or amount cannot be read
    """
    return ParsedRow(
        account_id=account_id,
        date=normalize_date(row.date),
        description=(row.description or "").strip(),
        amount=parse_amount(row.amount),
        bank_category=(row.bank_category or "").strip(),
        bank_sub_category=(row.bank_sub_category or "").strip(),
        balance_after=parse_optional_amount(row.balance_after),
        type=row.type,
        file_source=row.file_source,
    )


class ReconciliationMerger:
    """
    Replaces a date-range slice of one account's ledger with imported rows.

    Usage:
        merger = ReconciliationMerger(CategorizationEngine(rules=rules))
        result = merger.reconcile(rows, "A1", ledger)
        ledger = result.ledger
    """

    def __init__(
        self,
        engine: Optional[CategorizationEngine] = None,
        id_factory: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.engine = engine if engine is not None else CategorizationEngine(rules=[])
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.logger = logger or get_logger(__name__)

    def reconcile(
        self,
        parsed_rows: Iterable[ParsedRow],
        account_id: str,
        ledger: Ledger,
    ) -> ReconcileResult:
        """
        Merge parsed rows for one account into the ledger.

        Args:
            parsed_rows: Column-mapped rows from a bank export
            account_id: Account the export belongs to
            ledger: Current ledger (not modified)

        Returns:
            ReconcileResult holding the new ledger and a per-row account of the merge
        """
        result = ReconcileResult(ledger=ledger, account_id=account_id)

        rows = self._valid_rows(parsed_rows, account_id, result)
        if not rows:
            self.logger.info("Nothing to reconcile for account %s", account_id)
            return result

        # Plain string comparison on YYYY-MM-DD keeps time zones out of it
        min_date = min(row.date for row in rows)
        max_date = max(row.date for row in rows)
        result.date_range = (min_date, max_date)

        existing = ledger.all_transactions()
        candidates = [
            txn for txn in existing
            if txn.account_id == account_id and min_date <= txn.date[:10] <= max_date
        ]

        # Match against the whole ledger, not only the replaced window
        existing_by_fingerprint: Dict[str, Transaction] = {}
        for txn in existing:
            existing_by_fingerprint.setdefault(fingerprint(txn), txn)

        merged = self._merge_rows(rows, existing_by_fingerprint, result)
        consumed_ids = {txn.id for txn in result.matched + result.preserved}

        result.removed = [txn for txn in candidates if txn.id not in consumed_ids]
        result.dropped_manual = [txn for txn in result.removed if txn.is_manually_changed]
        for txn in result.dropped_manual:
            message = (
                f"Manually changed transaction {txn.id} ({txn.date}, {txn.description!r}) "
                f"had no match in the import and was removed"
            )
            result.warnings.append(message)
            self.logger.warning(message)

        replaced_ids = consumed_ids | {txn.id for txn in result.removed}
        result.ledger, result.touched_months = self._rebuild_months(ledger, replaced_ids, merged)

        self.logger.info(
            "Reconciled account %s %s..%s: %d new, %d matched, %d preserved, "
            "%d removed, %d skipped, %d collisions",
            account_id, min_date, max_date,
            len(result.new_transactions), len(result.matched), len(result.preserved),
            len(result.removed), result.skipped_rows, result.fingerprint_collisions,
        )
        return result

    def _valid_rows(
        self,
        parsed_rows: Iterable[ParsedRow],
        account_id: str,
        result: ReconcileResult,
    ) -> List[ParsedRow]:
        """Normalize rows, skipping (and reporting) the unreadable ones"""
        rows = []
        for index, row in enumerate(parsed_rows, start=1):
            try:
                rows.append(_normalize_row(row, account_id))
            except MalformedRowError as e:
                result.skipped_rows += 1
                message = f"Skipping row {index}: {e}"
                result.warnings.append(message)
                self.logger.warning(message)
        return rows

    def _merge_rows(
        self,
        rows: Sequence[ParsedRow],
        existing_by_fingerprint: Dict[str, Transaction],
        result: ReconcileResult,
    ) -> List[Transaction]:
        merged: List[Transaction] = []
        seen: Set[str] = set()
        imported_at = datetime.now().isoformat()

        for row in rows:
            key = fingerprint(row)
            if key in seen:
                result.fingerprint_collisions += 1
                message = f"Duplicate row in import ignored: {row.date} {row.amount} {row.description!r}"
                result.warnings.append(message)
                self.logger.warning(message)
                continue
            seen.add(key)

            existing = existing_by_fingerprint.get(key)
            if existing is None:
                txn = self.engine.apply(self._new_transaction(row, imported_at))
                result.new_transactions.append(txn)
            elif existing.is_manually_changed:
                txn = self._refresh_bank_fields(existing, row)
                result.preserved.append(txn)
            else:
                txn = self.engine.apply(self._refresh_bank_fields(existing, row))
                result.matched.append(txn)

            merged.append(txn)

        return merged

    def _new_transaction(self, row: ParsedRow, imported_at: str) -> Transaction:
        return Transaction(
            id=self.id_factory(),
            account_id=row.account_id,
            date=row.date,
            description=row.description,
            amount=row.amount,
            type=row.type,
            status=TransactionStatus.RED,
            bank_category=row.bank_category,
            bank_sub_category=row.bank_sub_category,
            balance_after=row.balance_after,
            imported_at=imported_at,
            file_source=row.file_source,
        )

    @staticmethod
    def _refresh_bank_fields(existing: Transaction, row: ParsedRow) -> Transaction:
        """Bank-supplied fields come from the file; user fields stay as they are"""
        return replace(
            existing,
            date=row.date,
            amount=row.amount,
            description=row.description,
            bank_category=row.bank_category,
            bank_sub_category=row.bank_sub_category,
            balance_after=row.balance_after,
            file_source=row.file_source or existing.file_source,
        )

    @staticmethod
    def _rebuild_months(
        ledger: Ledger,
        replaced_ids: Set[str],
        merged: List[Transaction],
    ) -> Tuple[Ledger, List[str]]:
        """
        Replace the transaction list of every touched month wholesale.

        Untouched transactions stay in the bucket they are stored in; merged
        transactions go to the bucket of their own date, so a file that
        straddles a month boundary lands in both months.
        """
        touched: Set[str] = {txn.month_key for txn in merged}
        for month_key in ledger.month_keys():
            month = ledger.get(month_key)
            if month is not None and any(txn.id in replaced_ids for txn in month.transactions):
                touched.add(month_key)

        updated: Dict[str, MonthData] = {}
        for month_key in sorted(touched):
            month = ledger.month_or_empty(month_key)
            kept = [txn for txn in month.transactions if txn.id not in replaced_ids]
            incoming = [txn for txn in merged if txn.month_key == month_key]
            month.transactions = sorted(kept + incoming, key=lambda txn: txn.date)
            updated[month_key] = month

        return ledger.replace_months(updated), sorted(touched)


def reconcile(
    parsed_rows: Iterable[ParsedRow],
    account_id: str,
    ledger: Ledger,
    rules: Sequence[CategoryRule] = (),
    logger: Optional[logging.Logger] = None,
) -> ReconcileResult:
    """Reconcile rows against a ledger with the given rules; see ReconciliationMerger"""
    engine = CategorizationEngine(rules=rules, logger=logger)
    return ReconciliationMerger(engine, logger=logger).reconcile(parsed_rows, account_id, ledger)
