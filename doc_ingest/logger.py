"""
Logging for doc_ingest.

All modules log through children of the "doc_ingest" logger
(get_module_logger("fetcher") → "doc_ingest.fetcher"), so one call to
setup_logger controls the whole pipeline.  The initial level comes from
DOC_INGEST_LOG_LEVEL (name or number), falling back to INFO.
"""

import logging
import os
import sys
from typing import Optional, Union

PACKAGE_LOGGER = "doc_ingest"
LOG_LEVEL_ENV = "DOC_INGEST_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Union[int, str, None]) -> int:
    """Turn 'debug', 'WARNING', '10' or 10 into a logging level; None → env or INFO."""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level

    text = level.strip()
    if text.isdigit():
        return int(text)
    named = logging.getLevelName(text.upper())
    if not isinstance(named, int):
        raise ValueError(f"Unknown log level: {level}")
    return named


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger and return it.

    Handlers go to stdout and, if log_file is given, to that file.  Repeat
    calls change the level of the existing handlers without adding more.
    """
    level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """Child logger "doc_ingest.<module_name>"; inherits the package handlers."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{module_name}")
