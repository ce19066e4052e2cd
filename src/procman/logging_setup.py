"""Central logging configuration for procman."""

import logging
import os
from typing import Any

LOGGER_NAME = "procman"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_from_value(value: Any, fallback: int = logging.INFO) -> int:
    if value is None:
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        level = logging.getLevelName(value.upper())
        if isinstance(level, int):
            return level
    return fallback


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def _file_handlers(target_logger: logging.Logger) -> list[logging.FileHandler]:
    return [h for h in target_logger.handlers if isinstance(h, logging.FileHandler)]


def add_file_handler(log_file: str, target_logger: logging.Logger | None = None) -> bool:
    """
    Append log records to log_file.

    Returns:
        False if the file cannot be opened or is already being written.
    """
    target_logger = target_logger or logging.getLogger(LOGGER_NAME)
    path = os.path.abspath(log_file)
    if any(h.baseFilename == path for h in _file_handlers(target_logger)):
        return False
    try:
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError:
        return False
    handler.setFormatter(_formatter())
    handler.setLevel(target_logger.level)
    target_logger.addHandler(handler)
    return True


def setup_logging(log_file: str | None = None, level: Any = logging.INFO) -> logging.Logger:
    """
    Configure the procman logger.

    Only file output is installed: the terminal belongs to the UI. Without a
    log file a NullHandler keeps records from reaching the last-resort
    stderr handler.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.propagate = False
    derived_level = level_from_value(level)

    if not package_logger.handlers:
        if not log_file or not add_file_handler(log_file, package_logger):
            package_logger.addHandler(logging.NullHandler())

    package_logger.setLevel(derived_level)
    for handler in package_logger.handlers:
        handler.setLevel(derived_level)
    return package_logger


def shutdown_logging(target_logger: logging.Logger | None = None) -> None:
    """Flush and close every handler of the procman logger."""
    target_logger = target_logger or logging.getLogger(LOGGER_NAME)
    for handler in list(target_logger.handlers):
        handler.flush()
        handler.close()
        target_logger.removeHandler(handler)
