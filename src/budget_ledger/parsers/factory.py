import importlib
from typing import Any, Dict, List, Optional, Type

from budget_ledger.config.settings import ConfigLoader
from budget_ledger.parsers.base import StatementParser


class ParserFactory:
    """
    Factory for creating statement parsers.

    Uses a registry pattern to map export format identifiers to statement parser classes.
    """

    _locked = False
    _registry: Dict[str, Type[StatementParser]] = {}

    @classmethod
    def register(cls, file_format: str, parser_class: Type[StatementParser]) -> None:
        """
        Register a parser for an export format

        Args:
            file_format: Unique identifier for the format (e.g. 'semicolon', 'comma')
            parser_class: The parser class

        Raises:
            ValueError: If parser is already registered
            TypeError: If parser_class doesn't inherit from StatementParser
            RuntimeError: If the parser registry is locked

        Example:
            ParserFactory.register('semicolon', BankCsvParser)
        """
        if cls._locked:
            raise RuntimeError("Registry is locked, cannot add more parsers")

        if file_format in cls._registry:
            raise ValueError(f"Parser for '{file_format}' is already registered")

        if not issubclass(parser_class, StatementParser):
            raise TypeError(f"{parser_class} must inherit from StatementParser")

        cls._registry[file_format] = parser_class

    @classmethod
    def lock_registry(cls):
        """Prevent further registration (call after app initialization)"""
        cls._locked = True

    @classmethod
    def is_loaded(cls) -> bool:
        return cls._locked

    @classmethod
    def create_parser(cls, file_format: str, **options: Any) -> StatementParser:
        """
        Create a parser instance for the specified export format.

        Args:
            file_format: Registered format identifier
            **options: Keyword arguments for the parser, e.g. ``column_mapping``

        Raises:
            ValueError: If no parser registered for this format

        Example:
            parser = ParserFactory.create_parser('semicolon')
            result = parser.parse('export.csv', 'A1')
        """
        if file_format not in cls._registry:
            available = ', '.join(cls._registry.keys())
            raise ValueError(
                f"No parser registered for '{file_format}'. "
                f"Available parsers: {available}"
            )

        return cls._registry[file_format](**options)

    @classmethod
    def get_available_formats(cls) -> List[str]:
        """Return list of all registered format identifiers"""
        return list(cls._registry.keys())

    @classmethod
    def load_parsers_from_config(
        cls,
        config: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Load and register parsers from configuration

        Args:
            config: Optional config dict. If None, loads from ConfigLoader.
                Useful for testing with custom configs.

            Example (production):
                ParserFactory.load_parsers_from_config()

            Example (testing):
                test_config = {"parsers": [...]}
                ParserFactory.load_parsers_from_config(config=test_config)
        """
        if config is None:
            config = ConfigLoader.load_parsers_config()

        for parser_config in config['parsers']:
            module_path, class_name = str(parser_config['class']).rsplit('.', 1)
            module = importlib.import_module(module_path)
            parser_class = getattr(module, class_name)

            cls.register(parser_config['format'], parser_class)

        cls.lock_registry()
