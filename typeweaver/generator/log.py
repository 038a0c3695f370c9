"""Logging configuration for typeweaver.

All modules log below the ``typeweaver`` logger. Nothing is printed until
``setup_logging`` installs a handler (the CLI does this on startup).
"""

import logging
import os

from rich.logging import RichHandler

LOG_LEVEL_ENV = "TYPEWEAVER_LOG_LEVEL"


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure the ``typeweaver`` logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to $TYPEWEAVER_LOG_LEVEL, then WARNING.
        log_file: Optional file path for plain-text log output.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")

    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger("typeweaver")
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = RichHandler(show_path=False, markup=False)
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component, e.g. ``get_logger("resolver")``."""
    return logging.getLogger(f"typeweaver.{name}")
