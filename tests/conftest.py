import pytest
from decimal import Decimal
from pathlib import Path
from typing import Callable

from budget_ledger.categorization.rules import CategoryRule, RuleAction, TextContains
from budget_ledger.domain.enums import TransactionStatus, TransactionType
from budget_ledger.domain.models import Ledger, MonthData, ParsedRow, Transaction


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Build a stored transaction with sensible defaults"""
    counter = {"next": 0}

    def _make(**overrides) -> Transaction:
        counter["next"] += 1
        values = dict(
            id=f"txn-{counter['next']}",
            account_id="A1",
            date="2024-11-20",
            description="ICA Supermarket",
            amount=Decimal("-500"),
            type=TransactionType.TRANSACTION,
            status=TransactionStatus.RED,
        )
        values.update(overrides)
        return Transaction(**values)

    return _make


@pytest.fixture
def make_row() -> Callable[..., ParsedRow]:
    """Build a parsed bank row with sensible defaults"""
    def _make(**overrides) -> ParsedRow:
        values = dict(
            account_id="A1",
            date="2024-11-20",
            description="ICA Supermarket",
            amount="-500",
        )
        values.update(overrides)
        return ParsedRow(**values)

    return _make


@pytest.fixture
def ica_rule() -> CategoryRule:
    """The grocery rule: anything mentioning ICA is food"""
    return CategoryRule(
        id="ica",
        priority=1,
        condition=TextContains("ICA"),
        action=RuleAction(
            app_category_id="Mat",
            positive_type=TransactionType.TRANSACTION,
            negative_type=TransactionType.TRANSACTION,
        ),
    )


@pytest.fixture
def ledger_of() -> Callable[..., Ledger]:
    """Build a ledger by bucketing transactions on their own month key"""
    def _build(*transactions: Transaction) -> Ledger:
        months = {}
        for txn in transactions:
            months.setdefault(txn.month_key, MonthData(month_key=txn.month_key)).transactions.append(txn)
        return Ledger(months)

    return _build


@pytest.fixture
def write_csv(tmp_path) -> Callable[..., Path]:
    """Write CSV text to a file under tmp_path"""
    def _write(content: str, name: str = "export.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_bytes(content.encode(encoding))
        return path

    return _write


@pytest.fixture
def swedish_export() -> str:
    """A semicolon separated export as a Swedish bank writes it"""
    return (
        "Datum;Beskrivning;Kategori;Underkategori;Belopp;Saldo\n"
        "2024-11-20;ICA Supermarket;Mat;Livsmedel;-500,00;10 000,00\n"
        "2024-11-22;Överföring sparkonto;Överföring;Sparande;-1 000,00;9 000,00\n"
        "2024-11-25;Lön;Inkomst;Lön;25 000,00;34 000,00\n"
    )
