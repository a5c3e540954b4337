"""Logging configuration for the command line agent.

The library modules only create loggers; handlers are installed here.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers kept at warning unless something goes wrong
_QUIET_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "bleak")


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Configure the root logger.

    Args:
        verbose: Enable DEBUG level logging (default: INFO)
        log_file: Optional file path for log output in addition to stdout
    """
    level = logging.DEBUG if verbose else logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
