import io
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from budget_ledger.domain.enums import TransactionType
from budget_ledger.domain.models import ParsedRow
from budget_ledger.logging_setup import get_logger
from budget_ledger.parsers.base import ParseResult, StatementParser
from budget_ledger.reconciliation.encoding import repair_encoding

logger = get_logger(__name__)

# Row fields a column mapping can assign, in the order they are detected
DATE = "date"
AMOUNT = "amount"
DESCRIPTION = "description"
BALANCE_AFTER = "balance_after"
BANK_CATEGORY = "bank_category"
BANK_SUB_CATEGORY = "bank_sub_category"

REQUIRED_FIELDS = (DATE, AMOUNT, DESCRIPTION)

INTERNAL_TRANSFER_MARKER = "överföring"


class BankCsvParser(StatementParser):
    """
    Parser for delimited bank exports (Swedish semicolon format by default).

    Handles:
    - Latin-1/UTF-8 mojibake in exported text
    - Header auto-detection in Swedish or English
    - An explicit column mapping when the headers are not recognizable
    - Internal transfers, flagged by the bank's "Överföring" category

    Date and amount cells are passed on as raw text; the reconciliation
    step validates them, so an unreadable cell costs one row, not the file.

    Example:
        parser = BankCsvParser()
        result = parser.parse('export.csv', 'A1')
    """

    SEPARATOR = ";"
    EXTENSIONS = (".csv", ".txt")

    # Substrings that identify a column, checked against lowercased headers
    HEADER_KEYWORDS: Dict[str, tuple] = {
        DATE: ("datum", "date"),
        AMOUNT: ("belopp", "amount"),
        DESCRIPTION: ("beskrivning", "text", "description"),
        BALANCE_AFTER: ("saldo", "balance"),
        BANK_SUB_CATEGORY: ("underkategori", "subcategory", "sub category"),
        BANK_CATEGORY: ("kategori", "category"),
    }

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None):
        """
        Args:
            column_mapping: Optional field -> CSV header mapping, e.g.
                {"date": "Bokföringsdag", "amount": "Belopp", "description": "Rubrik"}.
                Fields it leaves out are auto-detected.
        """
        self.column_mapping = dict(column_mapping or {})

    def validate_file(self, filepath: str) -> None:
        """
        Check that the file exists, has a supported extension and that the
        date, amount and description columns can be located.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the file is not a readable bank export
        """
        path = self._check_path(filepath)
        df = self._read_frame(path)
        self._resolve_columns(list(df.columns))

    def parse(self, filepath: str, account_id: str) -> ParseResult:
        """
        Parse a bank export into rows for the given account.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file is invalid or required columns are missing
        """
        path = self._check_path(filepath)
        df = self._read_frame(path)
        columns = self._resolve_columns(list(df.columns))

        result = ParseResult(columns=[str(col) for col in df.columns])
        for index, row in df.iterrows():
            if all(str(value).strip() == "" for value in row.values):
                continue

            try:
                result.rows.append(self._parse_row(row, columns, account_id, path.name))
            except (KeyError, TypeError) as e:
                # pandas row index starts at 0 below the header line
                message = f"Skipping line {index + 2}: {e}"
                result.skipped += 1
                result.warnings.append(message)
                logger.warning(message)

        if not result.rows:
            logger.warning("No rows found in %s", path.name)

        logger.info("Parsed %d rows from %s (%d skipped)", len(result.rows), path.name, result.skipped)
        return result

    def _check_path(self, filepath: str) -> Path:
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(f"File does not exist on path {path}")

        if path.suffix.lower() not in self.EXTENSIONS:
            raise ValueError(f"File must be one of {', '.join(self.EXTENSIONS)}, got {path.suffix}")

        return path

    def _read_frame(self, path: Path) -> pd.DataFrame:
        """Read the file as text cells, after repairing its encoding"""
        raw = path.read_bytes().decode("utf-8", errors="replace")
        text = repair_encoding(raw.lstrip("\ufeff"))

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=self.SEPARATOR,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            raise ValueError(f"File is empty: {path.name}")
        except pd.errors.ParserError as e:
            raise ValueError(f"Failed to read {path.name}: {e}")

        df.columns = [str(col).strip() for col in df.columns]
        return df.fillna("")

    def _resolve_columns(self, headers: List[str]) -> Dict[str, str]:
        """
        Map row fields to CSV headers.

        Explicit mappings win; remaining fields are detected by keyword,
        never reusing a header already taken by another field.

        Raises:
            ValueError: If date, amount or description cannot be located
        """
        resolved: Dict[str, str] = {}

        for field_name, header in self.column_mapping.items():
            if header not in headers:
                raise ValueError(
                    f"Mapped column '{header}' for {field_name} not found. "
                    f"Available columns: {headers}"
                )
            resolved[field_name] = header

        for field_name, keywords in self.HEADER_KEYWORDS.items():
            if field_name in resolved:
                continue
            taken = set(resolved.values())
            header = self._find_header(headers, keywords, taken)
            if header is not None:
                resolved[field_name] = header

        missing = [name for name in REQUIRED_FIELDS if name not in resolved]
        if missing:
            raise ValueError(
                f"Missing required columns: {missing}. "
                f"Available columns: {headers}"
            )

        return resolved

    @staticmethod
    def _find_header(headers: List[str], keywords: tuple, taken: set) -> Optional[str]:
        candidates = [header for header in headers if header not in taken]

        # Exact names first, so "Kategori" is not confused with "Underkategori"
        for header in candidates:
            if header.lower() in keywords:
                return header

        for header in candidates:
            lowered = header.lower()
            if any(keyword in lowered for keyword in keywords):
                return header

        return None

    def _parse_row(
        self,
        row: pd.Series,
        columns: Dict[str, str],
        account_id: str,
        file_source: str,
    ) -> ParsedRow:
        def cell(field_name: str) -> str:
            header = columns.get(field_name)
            return str(row[header]).strip() if header else ""

        bank_category = cell(BANK_CATEGORY)
        balance = cell(BALANCE_AFTER)

        return ParsedRow(
            account_id=account_id,
            date=cell(DATE),
            description=cell(DESCRIPTION),
            amount=cell(AMOUNT),
            bank_category=bank_category,
            bank_sub_category=cell(BANK_SUB_CATEGORY),
            balance_after=balance or None,
            type=self._detect_type(bank_category),
            file_source=file_source,
        )

    @staticmethod
    def _detect_type(bank_category: str) -> TransactionType:
        if INTERNAL_TRANSFER_MARKER in bank_category.lower():
            return TransactionType.INTERNAL_TRANSFER
        return TransactionType.TRANSACTION

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sep={self.SEPARATOR!r})"


class CommaCsvParser(BankCsvParser):
    """Comma separated exports with the same header conventions"""

    SEPARATOR = ","
    EXTENSIONS = (".csv",)
