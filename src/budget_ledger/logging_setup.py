"""
Logging configuration for the ``budget_ledger`` package.

- ``configure_logging(level)`` attaches one ``StreamHandler`` to the package
  logger. Entry points (the CLI) call it once at startup.
- ``get_logger(name)`` returns a logger and makes sure the package logger has
  a ``NullHandler`` when nothing has been configured, so library use stays silent.

Library modules never attach handlers themselves.
"""
import logging
import os
import sys
from typing import IO, Optional, Union

PACKAGE_LOGGER_NAME = "budget_ledger"
LOG_LEVEL_ENV = "BUDGET_LEDGER_LOG_LEVEL"

_configured = False


def _parse_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        return _parse_level(env_level)
    return logging.WARNING


def configure_logging(
    level: Union[int, str, None] = None,
    fmt: Optional[str] = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """
    Configure the package logger exactly once.

    Args:
        level: Level as int or name ("INFO"). If None, uses the
            BUDGET_LEDGER_LOG_LEVEL environment variable, else WARNING.
        fmt: Optional format string
        stream: Output stream for the handler
    """
    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    numeric_level = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s"))

    logger.setLevel(numeric_level)
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, with a NullHandler on the package logger until configured"""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not _configured and not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
