import pytest
import typer

from budget_ledger.cli import parse_column_mapping


@pytest.mark.unit
class TestColumnMappingOption:

    def test_parses_repeated_values(self):
        mapping = parse_column_mapping(["date=Bokföringsdag", " amount = Summa "])

        assert mapping == {"date": "Bokföringsdag", "amount": "Summa"}

    def test_no_values(self):
        assert parse_column_mapping(None) == {}

    @pytest.mark.parametrize("value", ["date", "date=", "saldo=Saldo"])
    def test_rejects_invalid_values(self, value):
        with pytest.raises(typer.BadParameter):
            parse_column_mapping([value])
