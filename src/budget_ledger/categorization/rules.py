from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from budget_ledger.categorization.base import CategorizationRule, Classification
from budget_ledger.domain.enums import TransactionStatus, TransactionType
from budget_ledger.domain.models import Transaction


class InvalidRuleError(ValueError):
    """Raised when a category rule is incomplete or malformed."""
    pass


def _fold(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class RuleCondition(ABC):
    """
    What a category rule looks for in a transaction.

    Each condition kind is its own class and evaluates itself, so the
    engine never inspects condition payloads.
    """

    kind: str = ""

    @abstractmethod
    def matches(self, transaction: Transaction) -> bool:
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleCondition":
        pass


@dataclass(frozen=True)
class TextContains(RuleCondition):
    """Case-insensitive substring test against the bank description"""
    value: str
    kind = "textContains"

    def __post_init__(self):
        if not _fold(self.value):
            raise InvalidRuleError("textContains needs a non-empty value")

    def matches(self, transaction: Transaction) -> bool:
        return _fold(self.value) in (transaction.description or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextContains":
        return cls(value=data.get("value") or "")


@dataclass(frozen=True)
class TextStartsWith(RuleCondition):
    """Case-insensitive prefix test against the bank description"""
    value: str
    kind = "textStartsWith"

    def __post_init__(self):
        if not _fold(self.value):
            raise InvalidRuleError("textStartsWith needs a non-empty value")

    def matches(self, transaction: Transaction) -> bool:
        return (transaction.description or "").strip().lower().startswith(_fold(self.value))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextStartsWith":
        return cls(value=data.get("value") or "")


@dataclass(frozen=True)
class CategoryMatch(RuleCondition):
    """Exact (case-insensitive) match on the bank category, and sub-category if given"""
    bank_category: str
    bank_sub_category: Optional[str] = None
    kind = "categoryMatch"

    def __post_init__(self):
        if not _fold(self.bank_category):
            raise InvalidRuleError("categoryMatch needs a bank category")

    def matches(self, transaction: Transaction) -> bool:
        if _fold(transaction.bank_category) != _fold(self.bank_category):
            return False
        if self.bank_sub_category:
            return _fold(transaction.bank_sub_category) == _fold(self.bank_sub_category)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "bankCategory": self.bank_category,
            "bankSubCategory": self.bank_sub_category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryMatch":
        return cls(
            bank_category=data.get("bankCategory") or "",
            bank_sub_category=data.get("bankSubCategory") or None,
        )


CONDITION_TYPES: Dict[str, Type[RuleCondition]] = {
    condition.kind: condition
    for condition in (TextContains, TextStartsWith, CategoryMatch)
}


def condition_from_dict(data: Dict[str, Any]) -> RuleCondition:
    """
    Build a condition from its JSON form.

    Raises:
        InvalidRuleError: If the condition type is missing or unknown
    """
    kind = (data or {}).get("type")
    if kind not in CONDITION_TYPES:
        available = ', '.join(CONDITION_TYPES)
        raise InvalidRuleError(f"Unknown condition type '{kind}'. Available types: {available}")
    return CONDITION_TYPES[kind].from_dict(data)


@dataclass(frozen=True)
class RuleAction:
    """What a matching rule assigns"""
    app_category_id: str
    app_sub_category_id: Optional[str] = None
    positive_type: TransactionType = TransactionType.TRANSACTION
    negative_type: TransactionType = TransactionType.TRANSACTION
    applicable_account_ids: Tuple[str, ...] = ()
    auto_approve: bool = False

    def __post_init__(self):
        # an action without a main category can never be a match
        if not self.app_category_id:
            raise InvalidRuleError("Rule action must specify an app category")

    def applies_to(self, account_id: str) -> bool:
        return not self.applicable_account_ids or account_id in self.applicable_account_ids

    def type_for(self, transaction: Transaction) -> TransactionType:
        return self.positive_type if transaction.amount >= 0 else self.negative_type

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appMainCategoryId": self.app_category_id,
            "appSubCategoryId": self.app_sub_category_id,
            "positiveTransactionType": self.positive_type.value,
            "negativeTransactionType": self.negative_type.value,
            "applicableAccountIds": list(self.applicable_account_ids),
            "autoApproval": self.auto_approve,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleAction":
        default_type = TransactionType.TRANSACTION.value
        try:
            return cls(
                app_category_id=data.get("appMainCategoryId") or "",
                app_sub_category_id=data.get("appSubCategoryId") or None,
                positive_type=TransactionType(data.get("positiveTransactionType") or default_type),
                negative_type=TransactionType(data.get("negativeTransactionType") or default_type),
                applicable_account_ids=tuple(data.get("applicableAccountIds") or ()),
                auto_approve=bool(data.get("autoApproval", False)),
            )
        except ValueError as e:
            if isinstance(e, InvalidRuleError):
                raise
            raise InvalidRuleError(f"Invalid rule action: {e}")


@dataclass(frozen=True)
class CategoryRule:
    """
    A prioritized condition/action pair.

    Lower ``priority`` values are evaluated first.

    Config format (categorization_rules.json):
        {
            "rules": [
                {
                    "id": "ica",
                    "priority": 1,
                    "condition": {"type": "textContains", "value": "ICA"},
                    "action": {
                        "appMainCategoryId": "Mat",
                        "positiveTransactionType": "Transaction",
                        "negativeTransactionType": "Transaction"
                    },
                    "isActive": true
                }
            ]
        }
    """
    id: str
    priority: int
    condition: RuleCondition
    action: RuleAction
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority,
            "condition": self.condition.to_dict(),
            "action": self.action.to_dict(),
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "CategoryRule":
        if "condition" not in data or "action" not in data:
            raise InvalidRuleError(f"Rule {data.get('id', index)} needs both a condition and an action")

        is_active = data.get("isActive", True)
        return cls(
            id=str(data.get("id") or f"rule-{index}"),
            priority=int(data.get("priority", 100)),
            condition=condition_from_dict(data["condition"]),
            action=RuleAction.from_dict(data["action"]),
            # stored rules sometimes carry the flag as a string
            is_active=str(is_active).lower() == "true",
        )


def rules_from_config(config: Dict[str, Any]) -> List[CategoryRule]:
    """Build rules from a ``{"rules": [...]}`` config dict"""
    return [
        CategoryRule.from_dict(rule_def, index)
        for index, rule_def in enumerate(config.get("rules", []))
    ]


class MatchingRule(CategorizationRule):
    """Chain link for a single CategoryRule"""

    def __init__(self, rule: CategoryRule):
        super().__init__()
        self.rule = rule

    def _matches(self, transaction: Transaction) -> bool:
        if not self.rule.is_active:
            return False
        if not self.rule.action.applies_to(transaction.account_id):
            return False
        return self.rule.condition.matches(transaction)

    def _get_classification(self, transaction: Transaction) -> Classification:
        action = self.rule.action
        status = TransactionStatus.GREEN if action.auto_approve else TransactionStatus.YELLOW
        return Classification(
            app_category_id=action.app_category_id,
            app_sub_category_id=action.app_sub_category_id,
            type=action.type_for(transaction),
            status=status,
            rule_id=self.rule.id,
        )

    def __repr__(self) -> str:
        return f"MatchingRule(id={self.rule.id}, priority={self.rule.priority}, {self.rule.condition.kind})"


class DefaultRule(CategorizationRule):
    """
    Fallback link that always matches.

    Should be the last link in the chain. Leaves the transaction
    uncategorized and flags it for review.
    """

    def _matches(self, _: Transaction) -> bool:
        """Always matches"""
        return True

    def _get_classification(self, transaction: Transaction) -> Classification:
        return Classification(
            app_category_id=None,
            app_sub_category_id=None,
            type=transaction.type,
            status=TransactionStatus.RED,
        )

    def __repr__(self) -> str:
        return "DefaultRule(uncategorized, red)"
