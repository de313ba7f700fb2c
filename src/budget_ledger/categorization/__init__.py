"""
Categorization system for the household ledger.

Assigns an application category, transaction type and review status to
transactions using a chain of responsibility of prioritized rules.

Quick Start:
    >>> from budget_ledger.categorization import CategorizationEngine
    >>>
    >>> engine = CategorizationEngine()
    >>> classification = engine.classify(transaction)
    >>> print(classification.app_category_id, classification.status)
"""
from budget_ledger.categorization.categorizer import CategorizationEngine, classify
from budget_ledger.categorization.base import CategorizationRule, Classification
from budget_ledger.categorization.rules import (
    CategoryMatch,
    CategoryRule,
    DefaultRule,
    InvalidRuleError,
    MatchingRule,
    RuleAction,
    RuleCondition,
    TextContains,
    TextStartsWith,
    rules_from_config,
)
from budget_ledger.categorization import categories

__all__ = [
    "CategorizationEngine",
    "CategorizationRule",
    "Classification",
    "CategoryMatch",
    "CategoryRule",
    "DefaultRule",
    "InvalidRuleError",
    "MatchingRule",
    "RuleAction",
    "RuleCondition",
    "TextContains",
    "TextStartsWith",
    "classify",
    "rules_from_config",
    "categories",
]
