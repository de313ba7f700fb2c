import pytest
from decimal import Decimal

from budget_ledger.categorization import (
    CategorizationEngine,
    CategoryMatch,
    CategoryRule,
    InvalidRuleError,
    RuleAction,
    TextContains,
    TextStartsWith,
    categories,
    classify,
    rules_from_config,
)
from budget_ledger.domain.enums import TransactionStatus, TransactionType


def _rule(rule_id, priority, condition, category, **action) -> CategoryRule:
    return CategoryRule(
        id=rule_id,
        priority=priority,
        condition=condition,
        action=RuleAction(app_category_id=category, **action),
    )


@pytest.mark.unit
class TestClassify:
    """First-match rule evaluation"""

    def test_ica_rule_gives_yellow_food(self, make_transaction, ica_rule):
        # Arrange
        txn = make_transaction(description="ICA Supermarket", amount=Decimal("-500"))

        # Act
        classification = classify(txn, [ica_rule])

        # Assert
        assert classification.app_category_id == "Mat"
        assert classification.type == TransactionType.TRANSACTION
        assert classification.status == TransactionStatus.YELLOW
        assert classification.rule_id == "ica"

    def test_lower_priority_value_wins(self, make_transaction):
        # Arrange
        general = _rule("general", 10, TextContains("ica"), "Shopping")
        specific = _rule("specific", 1, TextContains("supermarket"), "Mat")
        txn = make_transaction(description="ICA Supermarket")

        # Act
        classification = classify(txn, [general, specific])

        # Assert
        assert classification.app_category_id == "Mat"

    def test_equal_priority_keeps_configured_order(self, make_transaction):
        first = _rule("first", 5, TextContains("ica"), "Mat")
        second = _rule("second", 5, TextContains("ica"), "Shopping")

        assert classify(make_transaction(), [first, second]).rule_id == "first"

    def test_no_match_is_red_and_uncategorized(self, make_transaction, ica_rule):
        # Arrange
        txn = make_transaction(description="Spotify", type=TransactionType.SAVINGS)

        # Act
        classification = classify(txn, [ica_rule])

        # Assert
        assert classification.app_category_id is None
        assert classification.status == TransactionStatus.RED
        assert classification.type == TransactionType.SAVINGS
        assert not classification.matched

    def test_inactive_rules_are_skipped(self, make_transaction):
        inactive = CategoryRule(
            id="off",
            priority=1,
            condition=TextContains("ica"),
            action=RuleAction(app_category_id="Mat"),
            is_active=False,
        )

        assert classify(make_transaction(), [inactive]).status == TransactionStatus.RED

    def test_account_filter(self, make_transaction):
        # Arrange
        rule = _rule("a2-only", 1, TextContains("ica"), "Mat", applicable_account_ids=("A2",))

        # Act / Assert
        assert classify(make_transaction(account_id="A1"), [rule]).app_category_id is None
        assert classify(make_transaction(account_id="A2"), [rule]).app_category_id == "Mat"

    def test_type_follows_amount_sign(self, make_transaction):
        # Arrange
        rule = _rule(
            "transfer", 1, TextContains("sparkonto"), "Sparande",
            positive_type=TransactionType.INTERNAL_TRANSFER,
            negative_type=TransactionType.SAVINGS,
        )

        # Act
        outgoing = classify(make_transaction(description="Till sparkonto", amount=Decimal("-100")), [rule])
        incoming = classify(make_transaction(description="Från sparkonto", amount=Decimal("100")), [rule])
        zero = classify(make_transaction(description="sparkonto", amount=Decimal("0")), [rule])

        # Assert
        assert outgoing.type == TransactionType.SAVINGS
        assert incoming.type == TransactionType.INTERNAL_TRANSFER
        assert zero.type == TransactionType.INTERNAL_TRANSFER

    def test_auto_approve_gives_green(self, make_transaction):
        rule = _rule("rent", 1, TextStartsWith("hyra"), "Boende", auto_approve=True)

        classification = classify(make_transaction(description="Hyra november"), [rule])

        assert classification.status == TransactionStatus.GREEN


@pytest.mark.unit
class TestConditions:

    def test_text_contains_is_case_insensitive(self, make_transaction):
        assert TextContains("ica").matches(make_transaction(description="ICA MAXI"))

    def test_text_starts_with(self, make_transaction):
        condition = TextStartsWith("swish")

        assert condition.matches(make_transaction(description="Swish till Anna"))
        assert not condition.matches(make_transaction(description="Betalning Swish"))

    def test_category_match_with_sub_category(self, make_transaction):
        # Arrange
        condition = CategoryMatch("Mat", "Livsmedel")

        # Act / Assert
        assert condition.matches(make_transaction(bank_category="mat", bank_sub_category="LIVSMEDEL"))
        assert not condition.matches(make_transaction(bank_category="Mat", bank_sub_category="Restaurang"))

    def test_category_match_without_sub_category(self, make_transaction):
        condition = CategoryMatch("Mat")

        assert condition.matches(make_transaction(bank_category="Mat", bank_sub_category="Restaurang"))

    def test_empty_condition_value_is_rejected(self):
        with pytest.raises(InvalidRuleError):
            TextContains("  ")


@pytest.mark.unit
class TestRuleConfig:
    """Loading rules from the camelCase JSON form"""

    def test_action_without_category_is_rejected(self):
        with pytest.raises(InvalidRuleError):
            RuleAction(app_category_id="")

    def test_rules_from_config(self):
        # Arrange
        config = {
            "rules": [
                {
                    "id": "ica",
                    "priority": 1,
                    "condition": {"type": "textContains", "value": "ICA"},
                    "action": {
                        "appMainCategoryId": "Mat",
                        "appSubCategoryId": "Livsmedel",
                        "positiveTransactionType": "Transaction",
                        "negativeTransactionType": "Transaction",
                        "applicableAccountIds": ["A1"],
                        "autoApproval": True,
                    },
                    "isActive": "true",
                }
            ]
        }

        # Act
        rules = rules_from_config(config)

        # Assert
        assert len(rules) == 1
        rule = rules[0]
        assert rule.condition == TextContains("ICA")
        assert rule.action.app_sub_category_id == "Livsmedel"
        assert rule.action.applicable_account_ids == ("A1",)
        assert rule.action.auto_approve is True
        assert rule.is_active is True

    def test_rule_round_trips_through_dict(self, ica_rule):
        assert CategoryRule.from_dict(ica_rule.to_dict()) == ica_rule

    def test_unknown_condition_type(self):
        config = {"rules": [{"condition": {"type": "regex", "value": "x"}, "action": {"appMainCategoryId": "Mat"}}]}

        with pytest.raises(InvalidRuleError, match="Unknown condition type"):
            rules_from_config(config)

    def test_missing_action_category_in_config(self):
        config = {"rules": [{"condition": {"type": "textContains", "value": "x"}, "action": {}}]}

        with pytest.raises(InvalidRuleError):
            rules_from_config(config)

    def test_unknown_transaction_type(self):
        config = {"rules": [{
            "condition": {"type": "textContains", "value": "x"},
            "action": {"appMainCategoryId": "Mat", "negativeTransactionType": "Debit"},
        }]}

        with pytest.raises(InvalidRuleError):
            rules_from_config(config)


@pytest.mark.unit
class TestCategorizationEngine:

    def test_engine_from_config(self, make_transaction):
        # Arrange
        engine = CategorizationEngine(config={"rules": [{
            "id": "ica",
            "priority": 1,
            "condition": {"type": "textContains", "value": "ICA"},
            "action": {"appMainCategoryId": "Mat"},
        }]})

        # Act
        txn = engine.apply(make_transaction())

        # Assert
        assert txn.app_category_id == "Mat"
        assert txn.status == TransactionStatus.YELLOW

    def test_load_without_config_doesnt_crash(self, make_transaction):
        """The packaged default rule set loads and leaves transactions for review"""
        engine = CategorizationEngine()

        assert engine.classify(make_transaction()) is not None

    def test_categorize_many_skips_manual_and_approved(self, make_transaction, ica_rule):
        # Arrange
        engine = CategorizationEngine(rules=[ica_rule])
        manual = make_transaction(is_manually_changed=True, app_category_id="Nöje")
        approved = make_transaction(status=TransactionStatus.GREEN)
        fresh = make_transaction()

        # Act
        result = engine.categorize_many([manual, approved, fresh])

        # Assert
        assert result[0] is manual
        assert result[1] is approved
        assert result[2].app_category_id == "Mat"

    def test_categorize_many_overwrite(self, make_transaction, ica_rule):
        engine = CategorizationEngine(rules=[ica_rule])
        categorized = make_transaction(app_category_id="Shopping", status=TransactionStatus.YELLOW)

        assert engine.categorize_many([categorized])[0].app_category_id == "Shopping"
        assert engine.categorize_many([categorized], overwrite=True)[0].app_category_id == "Mat"

    def test_rule_chain_info_lists_default_last(self, ica_rule):
        engine = CategorizationEngine(rules=[ica_rule])

        info = engine.get_rule_chain_info().splitlines()

        assert len(info) == 2
        assert "ica" in info[0]
        assert "DefaultRule" in info[1]


@pytest.mark.unit
class TestCategoryLabel:

    def test_labels(self):
        assert categories.category_label(None) == categories.UNCATEGORIZED
        assert categories.category_label("Mat") == "Mat"
        assert categories.category_label("Mat", "Livsmedel") == "Mat / Livsmedel"
