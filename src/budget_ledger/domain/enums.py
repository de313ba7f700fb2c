from enum import Enum

class TransactionType(Enum):
    """What a ledger line represents in the household budget"""
    TRANSACTION = "Transaction"
    INTERNAL_TRANSFER = "InternalTransfer"
    SAVINGS = "Savings"
    COST_COVERAGE = "CostCoverage"
    EXPENSE_CLAIM = "ExpenseClaim"


class TransactionStatus(Enum):
    """Review state of a transaction"""
    GREEN = "green" # approved
    YELLOW = "yellow" # auto-categorized, unreviewed
    RED = "red" # needs review


class FinancedFrom(Enum):
    """How a budgeted cost is paid for"""
    RUNNING = "Löpande kostnad"
    INDIVIDUAL = "Enskild kostnad"


class GroupType(Enum):
    COST = "cost"
    SAVINGS = "savings"
