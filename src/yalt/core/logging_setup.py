"""
Logging for the ``yalt`` logger tree.

Yalt modules log through ``get_logger`` under ``yalt.*``. ``configure_logging``
applies ``logging.level`` from the settings to that tree and, when
``logging.file`` is set, also writes it to that file. Console output stays
with the application's root handlers.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

from src.yalt.core.config import LoggingConfig, get_settings

LOGGER_NAME = "yalt"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class MillisecondFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime(datefmt or LOG_DATE_FORMAT)
        return f"{stamp}.{int(record.msecs):03d}"


class YaltFileHandler(logging.FileHandler):
    """File handler owned by configure_logging."""


def get_logger(name: str | None = None) -> logging.Logger:
    """'store' -> the 'yalt.store' logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def configure_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """
    Apply a logging config to the ``yalt`` logger.

    Safe to call repeatedly: the file handler is kept while the path is
    unchanged and replaced otherwise. An unknown level falls back to INFO.

    Args:
        config: Defaults to the ``logging`` section of the current settings.
    """
    if config is None:
        config = get_settings().logging

    logger = get_logger()
    level = logging.getLevelName(config.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)

    target = os.path.abspath(config.file) if config.file else None
    for handler in list(logger.handlers):
        if not isinstance(handler, YaltFileHandler):
            continue
        if handler.baseFilename == target:
            return logger
        logger.removeHandler(handler)
        handler.close()

    if target:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        file_handler = YaltFileHandler(target, encoding="utf-8")
        file_handler.setFormatter(MillisecondFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger
