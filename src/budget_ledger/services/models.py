"""
Service layer models - DTOs for service operations.

These models represent the results of service operations, not domain entities.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from budget_ledger.domain.models import Transaction
from budget_ledger.prognosis.calculator import Prognosis


@dataclass
class ImportResult:
    """
    Result of importing bank rows into the ledger.

    Provides detailed feedback about what happened during import:
    - How many rows were read and how many became new transactions
    - How many matched stored transactions, and how many of those were manual edits
    - Which rows were skipped and why
    """
    account_id: str
    total_parsed: int
    new_transactions: int
    matched: int
    preserved_manual: int
    skipped_rows: int = 0
    fingerprint_collisions: int = 0
    removed: int = 0

    imported: List[Transaction] = field(default_factory=list)
    dropped_manual: List[Transaction] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    touched_months: List[str] = field(default_factory=list)
    balance_months: List[str] = field(default_factory=list)
    date_range: Optional[Tuple[str, str]] = None

    filepath: str = ""
    file_format: str = ""
    dry_run: bool = False

    @property
    def success(self) -> bool:
        """Import is successful if at least one row made it into the ledger"""
        return (self.new_transactions + self.matched + self.preserved_manual) > 0

    @property
    def partial_success(self) -> bool:
        """Some rows imported but some were skipped"""
        return self.success and self.skipped_rows > 0

    def __str__(self) -> str:
        "Human-readable summary"
        lines = [
            f"Import summary for account {self.account_id}:",
            f" File: {self.filepath or '-'}",
            f" New transactions: {self.new_transactions}",
            f" Matched: {self.matched} ({self.preserved_manual} manual edits kept)",
        ]

        if self.skipped_rows:
            lines.append(f" Skipped rows: {self.skipped_rows}")
        if self.dropped_manual:
            lines.append(f" Manual edits removed: {len(self.dropped_manual)}")

        return "\n".join(lines)

    def __post_init__(self):
        """Validate counts match lists"""
        if self.new_transactions != len(self.imported):
            raise ValueError(
                f"Count mismatch: new_transactions={self.new_transactions} "
                f"but len(imported)={len(self.imported)}"
            )


@dataclass
class PrognosisReport:
    """Projected balances for presentation, one row per month and account"""
    prognosis: Prognosis
    account_names: Dict[str, str] = field(default_factory=dict)

    def rows(self) -> List[Tuple[str, str, Decimal, Decimal]]:
        """(month key, account name, start, end) in month order"""
        result = []
        for month_key in self.prognosis.month_keys:
            starts = self.prognosis.start_balances_by_month[month_key]
            ends = self.prognosis.end_balances_by_month[month_key]
            for account_id, start in starts.items():
                name = self.account_names.get(account_id, account_id)
                result.append((month_key, name, start, ends[account_id]))
        return result

    @property
    def failed_months(self) -> List[str]:
        return self.prognosis.failed_months
