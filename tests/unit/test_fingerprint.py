import pytest
from datetime import date
from decimal import Decimal

from budget_ledger.domain.models import ParsedRow
from budget_ledger.domain.values import MalformedRowError, normalize_date, parse_amount
from budget_ledger.reconciliation.encoding import repair_encoding
from budget_ledger.reconciliation.fingerprint import fingerprint


@pytest.mark.unit
class TestFingerprint:
    """Identity of the same bank event across parses"""

    def test_stored_and_parsed_forms_agree(self, make_transaction, make_row):
        # Arrange
        stored = make_transaction(date="2024-11-20", amount=Decimal("-500.00"), description="ICA Supermarket")
        parsed = make_row(date="2024-11-20T00:00:00", amount="-500,00", description="  ica   SUPERMARKET ")

        # Act / Assert
        assert fingerprint(stored) == fingerprint(parsed)

    def test_format(self, make_row):
        assert fingerprint(make_row()) == "A1|2024-11-20|-500.00|ica supermarket"

    def test_account_is_part_of_identity(self, make_row):
        assert fingerprint(make_row(account_id="A1")) != fingerprint(make_row(account_id="A2"))

    def test_amount_is_part_of_identity(self, make_row):
        assert fingerprint(make_row(amount="-500")) != fingerprint(make_row(amount="-50"))

    def test_missing_description_is_empty_component(self, make_row):
        # Act
        result = fingerprint(make_row(description=None))

        # Assert
        assert result == "A1|2024-11-20|-500.00|"

    def test_unreadable_fields_do_not_raise(self):
        row = ParsedRow(account_id=None, date="not a date", description="x", amount="abc")

        assert fingerprint(row) == "|||x"

    def test_date_objects_are_normalized(self, make_row):
        assert fingerprint(make_row(date=date(2024, 11, 20))) == fingerprint(make_row())


@pytest.mark.unit
class TestValueParsing:

    @pytest.mark.parametrize("raw, expected", [
        ("-500,00", Decimal("-500.00")),
        ("1 234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("4,000", Decimal("4000")),
        ("−75,5", Decimal("-75.5")),
        ("120 kr", Decimal("120")),
        (42, Decimal("42")),
        ("1.234,56", Decimal("1234.56")),
        ("-12.345.678,90", Decimal("-12345678.90")),
        (Decimal("1.10"), Decimal("1.10")),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", None, True, "NaN", "1.234,5,6", "1,234.5.6"])
    def test_parse_amount_rejects(self, raw):
        with pytest.raises(MalformedRowError):
            parse_amount(raw)

    @pytest.mark.parametrize("raw", ["2024-13-01", "20/11/2024", "", None, "1800-01-01"])
    def test_normalize_date_rejects(self, raw):
        with pytest.raises(MalformedRowError):
            normalize_date(raw)

    def test_repair_encoding(self):
        assert repair_encoding("Ã–verfÃ¶ring till sparkonto�") == "Överföring till sparkonto"
        assert repair_encoding("KÃ¥rnÃ¤ Ã„ Ã…") == "Kårnä Ä Å"
