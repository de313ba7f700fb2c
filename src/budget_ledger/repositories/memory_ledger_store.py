from typing import Dict, List, Optional

from budget_ledger.domain.models import MonthData
from budget_ledger.repositories.base import LedgerStore


class InMemoryLedgerStore(LedgerStore):
    """Ledger store backed by a dict, for tests and embedding"""

    def __init__(self, months: Optional[Dict[str, MonthData]] = None):
        self._months: Dict[str, MonthData] = {}
        for month_key, month in (months or {}).items():
            self.set(month_key, month)

    def get(self, month_key: str) -> Optional[MonthData]:
        month = self._months.get(month_key)
        return month.copy() if month is not None else None

    def set(self, month_key: str, month_data: MonthData) -> None:
        # Stored copies keep callers from changing the store through a reference
        self._months[month_key] = month_data.copy()

    def month_keys(self) -> List[str]:
        return sorted(self._months)

    def __len__(self) -> int:
        return len(self._months)
