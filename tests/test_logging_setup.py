import logging

import pytest

from procman.logging_setup import (
    LOGGER_NAME,
    add_file_handler,
    level_from_value,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def package_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    for handler in saved[0]:
        logger.removeHandler(handler)
    yield logger
    shutdown_logging(logger)
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def test_level_from_value():
    assert level_from_value("warning") == logging.WARNING
    assert level_from_value(logging.ERROR) == logging.ERROR
    assert level_from_value(None) == logging.INFO
    assert level_from_value("chatty", fallback=logging.DEBUG) == logging.DEBUG


def test_setup_logging_writes_to_file(tmp_path, package_logger):
    log_file = tmp_path / "procman.log"

    logger = setup_logging(str(log_file), "DEBUG")
    logging.getLogger("procman.monitor").info("Monitoring started with sorting by cpu.")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert not logger.propagate
    line = log_file.read_text().strip()
    assert line.endswith("[INFO] Monitoring started with sorting by cpu.")


def test_setup_logging_without_file_is_silent(package_logger):
    logger = setup_logging(None, "INFO")
    assert [type(h) for h in logger.handlers] == [logging.NullHandler]


def test_add_file_handler_rejects_duplicates(tmp_path, package_logger):
    path = str(tmp_path / "process_log.txt")
    assert add_file_handler(path, package_logger)
    assert not add_file_handler(path, package_logger)


def test_add_file_handler_unwritable(tmp_path, package_logger):
    assert not add_file_handler(str(tmp_path / "missing" / "dir" / "log.txt"), package_logger)


def test_shutdown_logging_removes_handlers(tmp_path, package_logger):
    setup_logging(str(tmp_path / "a.log"))
    shutdown_logging()
    assert package_logger.handlers == []
