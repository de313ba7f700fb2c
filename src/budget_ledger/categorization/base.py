from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from budget_ledger.domain.enums import TransactionStatus, TransactionType
from budget_ledger.domain.models import Transaction


@dataclass(frozen=True)
class Classification:
    """Outcome of running one transaction through the rule chain"""
    app_category_id: Optional[str]
    app_sub_category_id: Optional[str]
    type: TransactionType
    status: TransactionStatus
    rule_id: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.rule_id is not None


class CategorizationRule(ABC):
    """
    Abstract base class for all links in the categorization chain.

    Implements Chain of Responsibility:
    - Each link tries to classify a transaction
    - If it can't it passes to the next link
    - Links are tried in priority order

    Usage:
        Create chain: lowest priority value -> ... -> default
        ```
        first = MatchingRule(rule_a)
        second = MatchingRule(rule_b)
        fallback = DefaultRule()

        first.set_next(second).set_next(fallback)

        classification = first.categorize(transaction)
        ```
    """

    def __init__(self):
        self._next_rule: Optional['CategorizationRule'] = None

    def set_next(self, rule: 'CategorizationRule') -> 'CategorizationRule':
        """
        Set the next link in the chain.

        Args:
            rule: The link to try if this one doesn't match

        Returns:
            The link that was set (for chaining)

        Example:
            `rule1.set_next(rule2).set_next(rule3)`
        """
        self._next_rule = rule
        return rule

    @abstractmethod
    def _matches(self, transaction: Transaction) -> bool:
        """
        Check if this link matches the transaction.

        Args:
            transaction: Transaction to check

        Returns:
            True if this link can classify the transaction
        """
        pass

    @abstractmethod
    def _get_classification(self, transaction: Transaction) -> Classification:
        """
        Build the classification for a matched transaction.

        Called only if _matches() returns True.
        """
        pass

    def categorize(self, transaction: Transaction) -> Optional[Classification]:
        """
        Attempt to classify a transaction.

        First match wins: once a link matches, later links are never consulted.

        Args:
            transaction: Transaction to classify

        Returns:
            Classification, or None if no link matched
        """
        if self._matches(transaction):
            return self._get_classification(transaction)

        if self._next_rule:
            return self._next_rule.categorize(transaction)

        return None

    def __repr__(self):
        return f"{self.__class__.__name__}()"
