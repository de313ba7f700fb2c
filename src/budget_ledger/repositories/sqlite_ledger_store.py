import json
import sqlite3
from typing import List, Optional

from budget_ledger.database.connection import DatabaseManager
from budget_ledger.domain.models import MonthData
from budget_ledger.repositories.base import LedgerStore, LedgerStoreError


class SQLiteLedgerStore(LedgerStore):
    """
    SQLite implementation of the LedgerStore.

    Each month is one row holding the month's JSON document; a ``set``
    replaces the whole document in a single statement.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def get(self, month_key: str) -> Optional[MonthData]:
        """Retrieve a month, or None if it was never written"""
        conn = self.db.get_connection()
        cursor = conn.execute(
            "SELECT month_key, data FROM month_data WHERE month_key = ?",
            (month_key,)
        )
        row = cursor.fetchone()

        if row is None:
            return None

        return self._row_to_month(row)

    def set(self, month_key: str, month_data: MonthData) -> None:
        """Insert or replace the document of a month."""
        if month_data.month_key != month_key:
            raise LedgerStoreError(
                f"Month data for {month_data.month_key} cannot be stored under {month_key}"
            )

        payload = json.dumps(month_data.to_dict(), ensure_ascii=False)
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO month_data (month_key, data, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(month_key) DO UPDATE SET
                        data = excluded.data,
                        updated_at = excluded.updated_at
                    """,
                    (month_key, payload),
                )
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Failed to store month {month_key}: {e}") from e

    def month_keys(self) -> List[str]:
        conn = self.db.get_connection()
        cursor = conn.execute("SELECT month_key FROM month_data ORDER BY month_key")
        return [row["month_key"] for row in cursor.fetchall()]

    def _row_to_month(self, row: sqlite3.Row) -> MonthData:
        """Convert database row to MonthData."""
        try:
            return MonthData.from_dict(row["month_key"], json.loads(row["data"]))
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            raise LedgerStoreError(f"Corrupt data stored for month {row['month_key']}: {e}") from e
