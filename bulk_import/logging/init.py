from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line written by the application logger starts with its label:
INFO, WARN, ERROR or SUMMARY. SUMMARY is a custom level between INFO and
WARNING used for the final outcome line of an import. Output goes to stdout
so the CLI output contract covers all labels.

Modules log through ``logging.getLogger(__name__)``; their records
propagate to the ``bulk_import`` logger, which forwards them to the
application handler.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "enable_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "crm_bulk_import"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formats records as ``LABEL message``."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging() -> logging.Logger:
    """Configure the application logger (idempotent) and return it.

    The package logger ``bulk_import`` shares the same handler so module
    level loggers are printed with the same labels.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())

    logger = logging.getLogger(LOGGER_NAME)
    package_logger = logging.getLogger("bulk_import")
    for lg in (logger, package_logger):
        lg.setLevel(logging.INFO)
        for existing in lg.handlers[:]:
            lg.removeHandler(existing)
        lg.addHandler(handler)
        # avoid duplicate output through the root logger
        lg.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def enable_debug(logger: logging.Logger) -> None:
    """Lower the application and package loggers (and their handlers) to DEBUG."""
    for lg in (logger, logging.getLogger("bulk_import")):
        lg.setLevel(logging.DEBUG)
        for h in lg.handlers:
            h.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    """Log ``message`` at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes.

    Handlers are detached so a later setup_logging binds to the current
    sys.stdout (pytest swaps it per test).
    """
    global _logger
    _logger = None
    for lg in (logging.getLogger(LOGGER_NAME), logging.getLogger("bulk_import")):
        for existing in lg.handlers[:]:
            lg.removeHandler(existing)
        lg.setLevel(logging.NOTSET)
        lg.propagate = True
