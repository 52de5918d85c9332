"""
Tests for logging_utils module.
"""

import logging
import sys
import os

import pytest

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logging_utils import (
    ROOT_LOGGER_NAME,
    get_logger,
    configure_logging,
    set_quiet,
    set_verbose,
)


@pytest.fixture(autouse=True)
def restore_level():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    level = root.level
    yield
    root.setLevel(level)


class TestGetLogger:
    """Test get_logger function."""

    def test_returns_logger(self):
        logger = get_logger("test_module")
        assert isinstance(logger, logging.Logger)

    def test_logger_name_prefixed(self):
        logger = get_logger("mymodule")
        assert logger.name == "arch.mymodule"

    def test_strips_src_prefix(self):
        logger = get_logger("src.session")
        assert logger.name == "arch.session"

    def test_multiple_calls_same_logger(self):
        logger1 = get_logger("same_module")
        logger2 = get_logger("same_module")
        assert logger1 is logger2


class TestConfigureLogging:
    """Test configure_logging function."""

    def test_configures_once(self):
        # Multiple calls should not add multiple handlers
        root = logging.getLogger(ROOT_LOGGER_NAME)
        initial_handlers = len(root.handlers)

        configure_logging()
        configure_logging()
        configure_logging()

        assert len(root.handlers) <= initial_handlers + 1

    def test_returns_the_single_handler(self):
        handler = configure_logging()

        assert configure_logging(logging.DEBUG) is handler
        assert handler in logging.getLogger(ROOT_LOGGER_NAME).handlers

    def test_module_loggers_share_the_handler(self):
        handler = configure_logging()
        logger = get_logger("session")

        assert logger.handlers == []
        assert logger.parent is logging.getLogger(ROOT_LOGGER_NAME)
        assert handler in logger.parent.handlers


class TestLevels:
    """Test set_verbose and set_quiet."""

    def test_set_verbose_true(self):
        set_verbose(True)
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_set_verbose_false(self):
        set_verbose(False)
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.INFO

    def test_set_quiet(self):
        set_quiet()
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.WARNING

    def test_quiet_hides_info(self, caplog):
        set_quiet()
        logger = get_logger("quiet_test")

        logger.info("hidden")
        logger.warning("shown")

        messages = [r.message for r in caplog.records if r.name == "arch.quiet_test"]
        assert messages == ["shown"]
