from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

# Parent of every module-level logger in this package.
PACKAGE_LOGGER = __name__.rsplit(".", 2)[0]


def setup_logging(level: Optional[str] = None, *, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger once.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...). Defaults to INFO.
        log_file: Optional path of a rotating log file in addition to stdout.

    Returns:
        The package logger every module logger propagates to.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        return logger

    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=10485760, backupCount=5)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    return logger
