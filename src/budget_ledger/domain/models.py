from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from budget_ledger.domain.enums import FinancedFrom, GroupType, TransactionStatus, TransactionType


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _balance_map(raw: Optional[Dict[str, Any]]) -> Dict[str, Decimal]:
    return {key: Decimal(str(value)) for key, value in (raw or {}).items() if value is not None}


def _dump_balance_map(balances: Dict[str, Decimal]) -> Dict[str, str]:
    return {key: str(value) for key, value in balances.items()}


@dataclass
class Transaction:
    """One bank ledger line, owned by the month bucket of its date"""
    id: str
    account_id: str
    date: str # YYYY-MM-DD
    description: str
    amount: Decimal
    type: TransactionType = TransactionType.TRANSACTION
    status: TransactionStatus = TransactionStatus.RED
    bank_category: str = ""
    bank_sub_category: str = ""
    user_description: Optional[str] = None
    app_category_id: Optional[str] = None
    app_sub_category_id: Optional[str] = None
    is_manually_changed: bool = False
    balance_after: Optional[Decimal] = None
    linked_transaction_id: Optional[str] = None
    savings_target_id: Optional[str] = None
    corrected_amount: Optional[Decimal] = None
    imported_at: Optional[str] = None
    file_source: Optional[str] = None

    @property
    def month_key(self) -> str:
        """Calendar month bucket (YYYY-MM) this transaction belongs to"""
        return self.date[:7]

    @property
    def display_description(self) -> str:
        return self.user_description or self.description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "date": self.date,
            "description": self.description,
            "amount": str(self.amount),
            "type": self.type.value,
            "status": self.status.value,
            "bankCategory": self.bank_category,
            "bankSubCategory": self.bank_sub_category,
            "userDescription": self.user_description,
            "appCategoryId": self.app_category_id,
            "appSubCategoryId": self.app_sub_category_id,
            "isManuallyChanged": self.is_manually_changed,
            "balanceAfter": _str_or_none(self.balance_after),
            "linkedTransactionId": self.linked_transaction_id,
            "savingsTargetId": self.savings_target_id,
            "correctedAmount": _str_or_none(self.corrected_amount),
            "importedAt": self.imported_at,
            "fileSource": self.file_source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            account_id=data["accountId"],
            date=str(data["date"])[:10],
            description=data.get("description") or "",
            amount=Decimal(str(data["amount"])),
            type=TransactionType(data.get("type") or TransactionType.TRANSACTION.value),
            status=TransactionStatus(data.get("status") or TransactionStatus.RED.value),
            bank_category=data.get("bankCategory") or "",
            bank_sub_category=data.get("bankSubCategory") or "",
            user_description=data.get("userDescription"),
            app_category_id=data.get("appCategoryId"),
            app_sub_category_id=data.get("appSubCategoryId"),
            # older payloads stored the flag as the string "true"/"false"
            is_manually_changed=str(data.get("isManuallyChanged", False)).lower() == "true",
            balance_after=_decimal_or_none(data.get("balanceAfter")),
            linked_transaction_id=data.get("linkedTransactionId"),
            savings_target_id=data.get("savingsTargetId"),
            corrected_amount=_decimal_or_none(data.get("correctedAmount")),
            imported_at=data.get("importedAt"),
            file_source=data.get("fileSource"),
        )

    def __repr__(self):
        return f"Transaction({self.date}, {self.description[:30]}, {self.amount}, {self.status.value})"


@dataclass
class ParsedRow:
    """
    A column-mapped bank row, as produced by a statement parser.

    ``date`` and ``amount`` may still be raw text; the reconciliation
    merger validates them and skips rows it cannot read.
    """
    account_id: str
    date: Any
    description: str
    amount: Any
    bank_category: str = ""
    bank_sub_category: str = ""
    balance_after: Any = None
    type: TransactionType = TransactionType.TRANSACTION
    file_source: Optional[str] = None


@dataclass
class Account:
    id: str
    name: str
    start_balance: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            start_balance=Decimal(str(data.get("startBalance", 0))),
        )


@dataclass
class SubCategory:
    id: str
    name: str
    amount: Decimal
    account_id: Optional[str] = None
    financed_from: Optional[FinancedFrom] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": str(self.amount),
            "accountId": self.account_id,
            "financedFrom": self.financed_from.value if self.financed_from else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubCategory":
        financed_from = data.get("financedFrom")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            amount=Decimal(str(data.get("amount") or 0)),
            account_id=data.get("accountId"),
            financed_from=FinancedFrom(financed_from) if financed_from else None,
        )


@dataclass
class BudgetGroup:
    """A budgeted cost or savings group with optional sub-items"""
    id: str
    name: str
    amount: Decimal
    type: GroupType
    account_id: Optional[str] = None
    financed_from: Optional[FinancedFrom] = None
    sub_categories: List[SubCategory] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": str(self.amount),
            "type": self.type.value,
            "accountId": self.account_id,
            "financedFrom": self.financed_from.value if self.financed_from else None,
            "subCategories": [sub.to_dict() for sub in self.sub_categories],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BudgetGroup":
        financed_from = data.get("financedFrom")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            amount=Decimal(str(data.get("amount") or 0)),
            type=GroupType(data.get("type", GroupType.COST.value)),
            account_id=data.get("accountId"),
            financed_from=FinancedFrom(financed_from) if financed_from else None,
            sub_categories=[SubCategory.from_dict(sub) for sub in data.get("subCategories") or []],
        )


@dataclass
class MonthData:
    """Everything stored for one month key: transactions, budget groups and balances"""
    month_key: str
    transactions: List[Transaction] = field(default_factory=list)
    cost_groups: List[BudgetGroup] = field(default_factory=list)
    savings_groups: List[BudgetGroup] = field(default_factory=list)
    account_balances: Dict[str, Decimal] = field(default_factory=dict)
    account_balances_set: Dict[str, bool] = field(default_factory=dict)
    account_bank_balances_set: Dict[str, bool] = field(default_factory=dict)  # balance read from bank data
    account_estimated_start_balances: Dict[str, Decimal] = field(default_factory=dict)
    account_start_balances_set: Dict[str, bool] = field(default_factory=dict)
    account_estimated_final_balances: Dict[str, Decimal] = field(default_factory=dict)
    account_estimated_final_balances_set: Dict[str, bool] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def has_manual_balance(self, account_id: str) -> bool:
        return bool(self.account_balances_set.get(account_id))

    def has_user_balance(self, account_id: str) -> bool:
        """A balance typed in by the user, as opposed to one filled from bank data"""
        return self.has_manual_balance(account_id) and not self.account_bank_balances_set.get(account_id)

    def copy(self) -> "MonthData":
        """Shallow copy with fresh containers, safe to modify"""
        return replace(
            self,
            transactions=list(self.transactions),
            cost_groups=list(self.cost_groups),
            savings_groups=list(self.savings_groups),
            account_balances=dict(self.account_balances),
            account_balances_set=dict(self.account_balances_set),
            account_bank_balances_set=dict(self.account_bank_balances_set),
            account_estimated_start_balances=dict(self.account_estimated_start_balances),
            account_start_balances_set=dict(self.account_start_balances_set),
            account_estimated_final_balances=dict(self.account_estimated_final_balances),
            account_estimated_final_balances_set=dict(self.account_estimated_final_balances_set),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthKey": self.month_key,
            "transactions": [txn.to_dict() for txn in self.transactions],
            "costGroups": [group.to_dict() for group in self.cost_groups],
            "savingsGroups": [group.to_dict() for group in self.savings_groups],
            "accountBalances": _dump_balance_map(self.account_balances),
            "accountBalancesSet": dict(self.account_balances_set),
            "accountBankBalancesSet": dict(self.account_bank_balances_set),
            "accountEstimatedStartBalances": _dump_balance_map(self.account_estimated_start_balances),
            "accountStartBalancesSet": dict(self.account_start_balances_set),
            "accountEstimatedFinalBalances": _dump_balance_map(self.account_estimated_final_balances),
            "accountEstimatedFinalBalancesSet": dict(self.account_estimated_final_balances_set),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, month_key: str, data: Dict[str, Any]) -> "MonthData":
        return cls(
            month_key=month_key,
            transactions=[Transaction.from_dict(txn) for txn in data.get("transactions") or []],
            cost_groups=[BudgetGroup.from_dict(g) for g in data.get("costGroups") or []],
            savings_groups=[BudgetGroup.from_dict(g) for g in data.get("savingsGroups") or []],
            account_balances=_balance_map(data.get("accountBalances")),
            account_balances_set=dict(data.get("accountBalancesSet") or {}),
            account_bank_balances_set=dict(data.get("accountBankBalancesSet") or {}),
            account_estimated_start_balances=_balance_map(data.get("accountEstimatedStartBalances")),
            account_start_balances_set=dict(data.get("accountStartBalancesSet") or {}),
            account_estimated_final_balances=_balance_map(data.get("accountEstimatedFinalBalances")),
            account_estimated_final_balances_set=dict(data.get("accountEstimatedFinalBalancesSet") or {}),
            created_at=data.get("createdAt") or datetime.now().isoformat(),
        )


class Ledger:
    """
    The month-key -> MonthData map that every core operation works on.

    A Ledger is passed in and returned explicitly; operations that change it
    build a new Ledger via ``replace_months`` instead of mutating shared state.
    """

    def __init__(self, months: Optional[Dict[str, MonthData]] = None):
        self._months: Dict[str, MonthData] = dict(months or {})

    def get(self, month_key: str) -> Optional[MonthData]:
        return self._months.get(month_key)

    def month_or_empty(self, month_key: str) -> MonthData:
        """Copy of the stored month, or a new empty month if none exists yet"""
        existing = self._months.get(month_key)
        return existing.copy() if existing else MonthData(month_key=month_key)

    def month_keys(self) -> List[str]:
        """All month keys in chronological (lexicographic) order"""
        return sorted(self._months)

    def all_transactions(self) -> List[Transaction]:
        transactions = []
        for month_key in self.month_keys():
            month = self._months[month_key]
            if month is not None:
                transactions.extend(month.transactions)
        return transactions

    def replace_months(self, months: Dict[str, MonthData]) -> "Ledger":
        """Return a new Ledger with the given months replaced wholesale"""
        merged = dict(self._months)
        merged.update(months)
        return Ledger(merged)

    def __contains__(self, month_key: str) -> bool:
        return month_key in self._months

    def __iter__(self) -> Iterator[str]:
        return iter(self.month_keys())

    def __len__(self) -> int:
        return len(self._months)

    def __repr__(self) -> str:
        return f"Ledger({len(self._months)} months, {len(self.all_transactions())} transactions)"
