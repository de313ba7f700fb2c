import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from budget_ledger.categorization import CategorizationEngine
from budget_ledger.config.settings import ConfigLoader
from budget_ledger.domain.models import Account, Ledger, ParsedRow, Transaction
from budget_ledger.domain.periods import MonthRange, resolve_range
from budget_ledger.logging_setup import get_logger
from budget_ledger.parsers.factory import ParserFactory
from budget_ledger.prognosis.bank_balances import derive_bank_start_balances
from budget_ledger.prognosis.calculator import Prognosis, apply_prognosis, project
from budget_ledger.reconciliation.merger import ReconcileResult, ReconciliationMerger
from budget_ledger.repositories.base import LedgerStore
from budget_ledger.services.models import ImportResult, PrognosisReport


class LedgerService:
    """
    Orchestrates imports, categorization and balance projection over a store.

    Every operation that changes the ledger runs as one read-modify-write
    sequence under a single lock, so two imports can never partition the
    same stale ledger.
    """

    def __init__(
        self,
        store: LedgerStore,
        categorization_engine: Optional[CategorizationEngine] = None,
        accounts: Optional[List[Account]] = None,
        payday: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self._categorization_engine: Optional[CategorizationEngine] = categorization_engine
        self._accounts: Optional[List[Account]] = accounts
        self.payday = payday if payday is not None else int(ConfigLoader.load_settings()["payday"])
        self.logger = logger or get_logger(__name__)
        self._lock = threading.Lock()

    @property
    def categorization_engine(self) -> CategorizationEngine:
        """Lazy-load categorization engine"""
        if self._categorization_engine is None:
            self._categorization_engine = CategorizationEngine(logger=self.logger)
        return self._categorization_engine

    @property
    def accounts(self) -> List[Account]:
        """Lazy-load configured accounts"""
        if self._accounts is None:
            self._accounts = [Account.from_dict(data) for data in ConfigLoader.load_accounts_config()]
        return self._accounts

    def import_statement(
        self,
        filepath: Path,
        account_id: str,
        file_format: Optional[str] = None,
        dry_run: bool = False,
        column_mapping: Optional[Dict[str, str]] = None,
    ) -> ImportResult:
        """
        Import a bank export file into the ledger.

        Args:
            filepath: The path to the export file
            account_id: Account the export belongs to
            file_format: Registered parser format, defaults to the configured one
            dry_run: Compute the result without writing to the store
            column_mapping: Optional field -> CSV header mapping for exports
                whose headers are not detected automatically

        Returns:
            An ImportResult.
        """
        file_format = file_format or ConfigLoader.load_settings()["default_format"]
        options = {"column_mapping": column_mapping} if column_mapping else {}
        parser = ParserFactory.create_parser(file_format, **options)
        parsed = parser.parse(str(filepath), account_id)

        result = self.import_rows(parsed.rows, account_id, dry_run=dry_run)
        result.skipped_rows += parsed.skipped
        result.warnings = parsed.warnings + result.warnings
        result.total_parsed += parsed.skipped
        result.filepath = str(filepath)
        result.file_format = file_format
        return result

    def import_rows(
        self,
        rows: Iterable[ParsedRow],
        account_id: str,
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Reconcile parsed rows into the stored ledger.

        Writes every touched month, fills start balances from bank data and
        refreshes the balance projection, unless ``dry_run`` is set.
        """
        rows = list(rows)

        with self._lock:
            ledger = self.store.load_ledger()
            merger = ReconciliationMerger(self.categorization_engine, logger=self.logger)
            reconciled = merger.reconcile(rows, account_id, ledger)

            balance_months: List[str] = []
            if reconciled.changed and not dry_run:
                ledger, balance_months = derive_bank_start_balances(
                    reconciled.ledger, account_id, self.payday, logger=self.logger
                )
                ledger, _ = self._project(ledger)

                # The projection updates estimated balances in every month
                self.store.save_months(ledger, ledger.month_keys())

        if dry_run:
            self.logger.info("Dry run for account %s, nothing written", account_id)

        return self._import_result(reconciled, len(rows), balance_months, dry_run)

    def recalculate_prognosis(self) -> PrognosisReport:
        """Recompute and store projected balances for all months"""
        with self._lock:
            ledger, prognosis = self._project(self.store.load_ledger())
            self.store.save_months(ledger, prognosis.month_keys)

        names = {account.id: account.name for account in self._accounts_for(ledger)}
        return PrognosisReport(prognosis=prognosis, account_names=names)

    def recategorize(self, overwrite: bool = False) -> int:
        """
        Re-run the categorization rules over stored transactions.

        Manually changed and approved transactions are left alone.

        Args:
            overwrite: If True, re-categorize already categorized transactions

        Returns:
            Number of transactions whose classification changed
        """
        changed = 0
        with self._lock:
            ledger = self.store.load_ledger()
            for month_key in ledger.month_keys():
                month = ledger.month_or_empty(month_key)
                categorized = self.categorization_engine.categorize_many(
                    month.transactions,
                    overwrite=overwrite,
                )
                month_changes = sum(1 for old, new in zip(month.transactions, categorized) if old != new)
                if month_changes:
                    month.transactions = categorized
                    self.store.set(month_key, month)
                    changed += month_changes

        self.logger.info("Recategorized %d transactions", changed)
        return changed

    def get_month_range(self, month_key: str, payday: Optional[int] = None) -> MonthRange:
        """Date interval of a budget month, under the configured payday unless one is given"""
        return resolve_range(month_key, payday or self.payday)

    def get_transactions(
        self,
        month_key: str,
        account_id: Optional[str] = None,
        payday: Optional[int] = None,
    ) -> List[Transaction]:
        """
        Transactions dated inside a budget month, across calendar buckets.

        Args:
            month_key: Budget month (YYYY-MM)
            account_id: Only include transactions of this account
            payday: Payday override

        Returns:
            Matching transactions sorted by date
        """
        month_range = self.get_month_range(month_key, payday)
        ledger = self.store.load_ledger()

        transactions = [
            txn for txn in ledger.all_transactions()
            if month_range.start_date <= txn.date <= month_range.end_date
            and (account_id is None or txn.account_id == account_id)
        ]
        return sorted(transactions, key=lambda txn: txn.date)

    def _accounts_for(self, ledger: Ledger) -> List[Account]:
        """Configured accounts, or one per account id seen in the ledger"""
        if self.accounts:
            return self.accounts
        account_ids = sorted({txn.account_id for txn in ledger.all_transactions()})
        return [Account(id=account_id, name=account_id) for account_id in account_ids]

    def _project(self, ledger: Ledger) -> Tuple[Ledger, Prognosis]:
        prognosis = project(ledger, self._accounts_for(ledger), logger=self.logger)
        for month_key in prognosis.failed_months:
            self.logger.warning("Balances for %s could not be projected", month_key)
        return apply_prognosis(ledger, prognosis), prognosis

    @staticmethod
    def _import_result(
        reconciled: ReconcileResult,
        total_parsed: int,
        balance_months: List[str],
        dry_run: bool,
    ) -> ImportResult:
        return ImportResult(
            account_id=reconciled.account_id,
            total_parsed=total_parsed,
            new_transactions=len(reconciled.new_transactions),
            matched=len(reconciled.matched) + len(reconciled.preserved),
            preserved_manual=len(reconciled.preserved),
            skipped_rows=reconciled.skipped_rows,
            fingerprint_collisions=reconciled.fingerprint_collisions,
            removed=len(reconciled.removed),
            imported=list(reconciled.new_transactions),
            dropped_manual=list(reconciled.dropped_manual),
            warnings=list(reconciled.warnings),
            touched_months=list(reconciled.touched_months),
            balance_months=balance_months,
            date_range=reconciled.date_range,
            dry_run=dry_run,
        )
