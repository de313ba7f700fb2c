from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from budget_ledger.domain.models import ParsedRow


@dataclass
class ParseResult:
    """Rows read from a statement file, plus what had to be left out"""
    rows: List[ParsedRow] = field(default_factory=list)
    skipped: int = 0
    warnings: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)


class StatementParser(ABC):
    """
    Abstract base class for all statement parsers.

    This implements the Strategy pattern - each export format gets its own
    concrete parser that implements this interface.
    """

    @abstractmethod
    def parse(self, filepath: str, account_id: str) -> ParseResult:
        """
        Parse a statement file into column-mapped rows for one account.

        Args:
            filepath: Path to the statement file
            account_id: Account the statement belongs to

        Returns:
            ParseResult with the rows in file order

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is invalid
        """
        pass

    @abstractmethod
    def validate_file(self, filepath: str) -> None:
        """
        Validate that the file matches the expected format.

        Args:
            filepath: Path to the statement file

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is invalid
        """
        pass
