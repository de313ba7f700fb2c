from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from budget_ledger.domain.models import Ledger, MonthData


class LedgerStoreError(Exception):
    """Raised when month data cannot be read from or written to the store."""
    pass


class MonthDataNotFoundError(LedgerStoreError):
    """Raised when a month key that must exist is not in the store."""
    pass


class LedgerStore(ABC):
    """
    Abstract key-value store of month data, keyed by ``YYYY-MM``.

    The store only reads and replaces whole months; every change to a month
    is a wholesale ``set`` of its MonthData.
    """

    @abstractmethod
    def get(self, month_key: str) -> Optional[MonthData]:
        """
        Retrieve the data stored for a month.

        Args:
            month_key: Month key (YYYY-MM)

        Returns:
            MonthData if stored, None otherwise

        Raises:
            LedgerStoreError: If the stored data cannot be decoded
        """
        pass

    @abstractmethod
    def set(self, month_key: str, month_data: MonthData) -> None:
        """
        Replace the data stored for a month.

        Args:
            month_key: Month key (YYYY-MM)
            month_data: Complete data of the month
        """
        pass

    @abstractmethod
    def month_keys(self) -> List[str]:
        """Return all stored month keys in ascending order"""
        pass

    def require(self, month_key: str) -> MonthData:
        """
        Retrieve a month that must exist.

        Raises:
            MonthDataNotFoundError: If nothing is stored for the month
        """
        month = self.get(month_key)
        if month is None:
            raise MonthDataNotFoundError(f"No data stored for month {month_key}")
        return month

    def load_ledger(self) -> Ledger:
        """Read every stored month into a Ledger"""
        months: Dict[str, MonthData] = {}
        for month_key in self.month_keys():
            month = self.get(month_key)
            if month is not None:
                months[month_key] = month
        return Ledger(months)

    def save_months(self, ledger: Ledger, month_keys: List[str]) -> None:
        """Write the given months of a ledger back, one key at a time"""
        for month_key in month_keys:
            month = ledger.get(month_key)
            if month is not None:
                self.set(month_key, month)
