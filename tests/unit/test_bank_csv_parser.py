import pytest

from budget_ledger.domain.enums import TransactionType
from budget_ledger.parsers.bank_csv import BankCsvParser, CommaCsvParser


@pytest.fixture
def parser() -> BankCsvParser:
    """Create a parser instance for each test"""
    return BankCsvParser()


@pytest.mark.unit
class TestBankCsvParserValidation:

    def test_missing_file(self, parser, tmp_path):
        with pytest.raises(FileNotFoundError):
            parser.validate_file(str(tmp_path / "missing.csv"))

    def test_wrong_extension(self, parser, write_csv, swedish_export):
        path = write_csv(swedish_export, name="export.xlsx")

        with pytest.raises(ValueError, match="File must be one of"):
            parser.validate_file(str(path))

    def test_missing_required_columns(self, parser, write_csv):
        path = write_csv("Datum;Belopp\n2024-11-20;-500,00\n")

        with pytest.raises(ValueError, match="Missing required columns"):
            parser.validate_file(str(path))

    def test_empty_file(self, parser, write_csv):
        path = write_csv("")

        with pytest.raises(ValueError):
            parser.validate_file(str(path))


@pytest.mark.unit
class TestBankCsvParser:
    """Parsing of Swedish semicolon exports"""

    def test_parses_rows_with_raw_values(self, parser, write_csv, swedish_export):
        # Arrange
        path = write_csv(swedish_export)

        # Act
        result = parser.parse(str(path), "A1")

        # Assert
        assert len(result.rows) == 3
        first = result.rows[0]
        assert first.account_id == "A1"
        assert first.date == "2024-11-20"
        assert first.description == "ICA Supermarket"
        assert first.amount == "-500,00"
        assert first.balance_after == "10 000,00"
        assert first.bank_category == "Mat"
        assert first.bank_sub_category == "Livsmedel"
        assert first.file_source == "export.csv"

    def test_detects_internal_transfers(self, parser, write_csv, swedish_export):
        # Act
        rows = parser.parse(str(write_csv(swedish_export)), "A1").rows

        # Assert
        assert rows[0].type == TransactionType.TRANSACTION
        assert rows[1].type == TransactionType.INTERNAL_TRANSFER

    def test_repairs_mojibake(self, parser, write_csv):
        # Arrange
        content = "Datum;Text;Belopp;Kategori\n2024-11-22;Ã–verfÃ¶ring;-100,00;Ã–verfÃ¶ring\n"

        # Act
        rows = parser.parse(str(write_csv(content)), "A1").rows

        # Assert
        assert rows[0].description == "Överföring"
        assert rows[0].type == TransactionType.INTERNAL_TRANSFER

    def test_latin1_file_drops_undecodable_bytes(self, parser, write_csv):
        content = "Datum;Beskrivning;Belopp\n2024-11-20;Kaffe på stan;-45,00\n"

        rows = parser.parse(str(write_csv(content, encoding="latin-1")), "A1").rows

        assert rows[0].description == "Kaffe p stan"

    def test_english_headers(self, parser, write_csv):
        content = "Date;Description;Amount;Balance\n2024-11-20;Coffee;-45.00;955.00\n"

        rows = parser.parse(str(write_csv(content)), "A1").rows

        assert rows[0].description == "Coffee"
        assert rows[0].balance_after == "955.00"

    def test_explicit_column_mapping(self, write_csv):
        # Arrange
        content = "Bokföringsdag;Rubrik;Summa\n2024-11-20;ICA;-500,00\n"
        parser = BankCsvParser(column_mapping={"date": "Bokföringsdag", "description": "Rubrik", "amount": "Summa"})

        # Act
        rows = parser.parse(str(write_csv(content)), "A1").rows

        # Assert
        assert rows[0].description == "ICA"
        assert rows[0].amount == "-500,00"

    def test_parse_reads_file_once(self, parser, write_csv, swedish_export, mocker):
        spy = mocker.spy(parser, "_read_frame")

        parser.parse(str(write_csv(swedish_export)), "A1")

        assert spy.call_count == 1

    def test_mapped_column_must_exist(self, write_csv, swedish_export):
        parser = BankCsvParser(column_mapping={"amount": "Summa"})

        with pytest.raises(ValueError, match="Mapped column 'Summa'"):
            parser.parse(str(write_csv(swedish_export)), "A1")

    def test_sub_category_not_taken_as_category(self, parser, write_csv):
        content = "Underkategori;Datum;Text;Belopp;Kategori\nLivsmedel;2024-11-20;ICA;-1,00;Mat\n"

        row = parser.parse(str(write_csv(content)), "A1").rows[0]

        assert row.bank_category == "Mat"
        assert row.bank_sub_category == "Livsmedel"

    def test_short_rows_keep_empty_cells(self, parser, write_csv):
        """Missing cells stay empty; the merger decides whether the row is usable"""
        content = "Datum;Beskrivning;Belopp;Saldo\n2024-11-20;ICA\n2024-11-21;Coop;-20,00;100,00\n"

        rows = parser.parse(str(write_csv(content)), "A1").rows

        assert len(rows) == 2
        assert rows[0].amount == ""
        assert rows[0].balance_after is None

    def test_header_only_file_has_no_rows(self, parser, write_csv):
        result = parser.parse(str(write_csv("Datum;Beskrivning;Belopp\n")), "A1")

        assert result.rows == []


@pytest.mark.unit
class TestCommaCsvParser:

    def test_parses_comma_separated(self, write_csv):
        # Arrange
        content = 'Date,Description,Amount\n2024-11-20,"Coffee, large",-45.00\n'

        # Act
        rows = CommaCsvParser().parse(str(write_csv(content)), "A1").rows

        # Assert
        assert rows[0].description == "Coffee, large"
        assert rows[0].amount == "-45.00"

    def test_rejects_txt_files(self, write_csv):
        path = write_csv("Date,Description,Amount\n", name="export.txt")

        with pytest.raises(ValueError):
            CommaCsvParser().validate_file(str(path))
