import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from budget_ledger.categorization.base import CategorizationRule, Classification
from budget_ledger.categorization.rules import (
    CategoryRule,
    DefaultRule,
    MatchingRule,
    rules_from_config,
)
from budget_ledger.config.settings import ConfigLoader
from budget_ledger.domain.enums import TransactionStatus
from budget_ledger.domain.models import Transaction
from budget_ledger.logging_setup import get_logger


class CategorizationEngine:
    """
    Main engine for categorizing transactions.

    Builds a chain of rule links:
    1. Active category rules, ascending by priority
    2. Default (uncategorized, needs review)

    The first matching link decides; lower-priority rules are never consulted.

    Usage:
        # Production - loads categorization_rules.json via ConfigLoader
        engine = CategorizationEngine()

        # Testing - inject rules or a raw config
        engine = CategorizationEngine(rules=[rule])
        engine = CategorizationEngine(config={"rules": [...]})

        classification = engine.classify(transaction)
    """

    def __init__(
        self,
        rules: Optional[Sequence[CategoryRule]] = None,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize categorization engine.

        Args:
            rules: Optional list of rules. Takes precedence over config.
            config: Optional config dict. If neither rules nor config is
                given, loads from ConfigLoader.
            logger: Optional logger, defaults to the module logger
        """
        self.logger = logger or get_logger(__name__)
        self._rule_chain: Optional[CategorizationRule] = None

        if rules is None:
            rules = rules_from_config(config if config is not None else ConfigLoader.load_rules_config())
        self.rules: List[CategoryRule] = list(rules)

        self._build_rule_chain()

    def _build_rule_chain(self) -> None:
        """Link active rules in priority order, ending with the default link"""
        active = [rule for rule in self.rules if rule.is_active]
        # sorted() is stable, so equal priorities keep their configured order
        active = sorted(active, key=lambda rule: rule.priority)

        links: List[CategorizationRule] = [MatchingRule(rule) for rule in active]
        links.append(DefaultRule())

        self._rule_chain = links[0]
        for i in range(len(links) - 1):
            links[i].set_next(links[i + 1])

    def classify(self, transaction: Transaction) -> Classification:
        """
        Classify a single transaction.

        Args:
            transaction: Transaction to classify

        Returns:
            Classification with category, type and status

        Example:
            ```
            >>> engine = CategorizationEngine(rules=[ica_rule])
            >>> engine.classify(txn).app_category_id
            'Mat'
            ```
        """
        if not self._rule_chain:
            raise RuntimeError("Rule chain not initialized")

        classification = self._rule_chain.categorize(transaction)

        assert classification is not None, "Rule chain should never return None"

        if classification.matched:
            self.logger.debug("Rule %s matched transaction %s", classification.rule_id, transaction.id)

        return classification

    def apply(self, transaction: Transaction) -> Transaction:
        """Return a copy of the transaction with its classification applied"""
        classification = self.classify(transaction)
        return replace(
            transaction,
            app_category_id=classification.app_category_id,
            app_sub_category_id=classification.app_sub_category_id,
            type=classification.type,
            status=classification.status,
        )

    def categorize_many(
        self,
        transactions: List[Transaction],
        overwrite: bool = False
    ) -> List[Transaction]:
        """
        Re-run the rules over stored transactions.

        Manually changed and approved (green) transactions are never touched.

        Args:
            transactions: Transactions to categorize
            overwrite: If True, re-categorize transactions that already have
                a category. If False, only uncategorized ones.

        Returns:
            List of transactions, categorized where applicable, in input order
        """
        categorized = []

        for txn in transactions:
            if txn.is_manually_changed or txn.status == TransactionStatus.GREEN:
                categorized.append(txn)
                continue

            if not overwrite and txn.app_category_id:
                categorized.append(txn)
                continue

            categorized.append(self.apply(txn))

        return categorized

    def get_rule_chain_info(self) -> str:
        """
        Get information about the current rule chain.

        Returns:
            String description of the chain, one link per line.
        """
        if not self._rule_chain:
            return "No rules loaded"

        rules = []
        current = self._rule_chain
        position = 1

        while current:
            rules.append(f"{position}. {current}")
            current = current._next_rule
            position += 1

        return "\n".join(rules)

    def __repr__(self) -> str:
        num_rules = 0
        current = self._rule_chain
        while current:
            num_rules += 1
            current = current._next_rule

        return f"CategorizationEngine({num_rules} rules in chain)"


def classify(transaction: Transaction, rules: Sequence[CategoryRule]) -> Classification:
    """
    Classify one transaction against a rule set.

    Convenience wrapper for one-off calls; build a CategorizationEngine
    once when classifying many transactions.
    """
    return CategorizationEngine(rules=rules).classify(transaction)
