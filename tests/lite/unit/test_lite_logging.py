"""Tests for calexpand_lite.lite_logging module."""

import logging

import pytest
from colorlog import ColoredFormatter

from calexpand_lite.lite_logging import LITE_MODULES, configure_lite_logging, get_logging_status

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def reset_lite_loggers():
    """Return package loggers to NOTSET after each test."""
    yield
    for name in LITE_MODULES:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestConfigureLiteLogging:
    """Tests for configure_lite_logging function."""

    def test_default_production_mode(self):
        configure_lite_logging()

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("calexpand_lite").level == logging.INFO
        assert logging.getLogger("calexpand_lite.lite_occurrence_generator").level == logging.INFO

    def test_debug_mode(self):
        configure_lite_logging(debug_mode=True)

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("calexpand_lite").level == logging.DEBUG

    def test_env_debug(self, monkeypatch):
        monkeypatch.setenv("CALEXPAND_DEBUG", "true")

        configure_lite_logging()

        assert logging.getLogger("calexpand_lite").level == logging.DEBUG

    def test_force_debug_overrides_env(self, monkeypatch):
        monkeypatch.setenv("CALEXPAND_DEBUG", "1")

        configure_lite_logging(debug_mode=True, force_debug=False)

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("calexpand_lite").level == logging.INFO

    def test_env_log_level_sets_root(self, monkeypatch):
        monkeypatch.setenv("CALEXPAND_LOG_LEVEL", "warning")

        configure_lite_logging()

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("calexpand_lite").level == logging.INFO

    def test_invalid_env_log_level_is_ignored(self, monkeypatch):
        monkeypatch.setenv("CALEXPAND_LOG_LEVEL", "LOUD")

        configure_lite_logging()

        assert logging.getLogger().level == logging.INFO

    def test_installs_colored_handler_when_none(self, monkeypatch):
        monkeypatch.setattr(logging.getLogger(), "handlers", [])

        configure_lite_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, ColoredFormatter)

    def test_keeps_existing_handlers(self, monkeypatch):
        existing = logging.NullHandler()
        monkeypatch.setattr(logging.getLogger(), "handlers", [existing])

        configure_lite_logging()

        assert logging.getLogger().handlers == [existing]


class TestGetLoggingStatus:
    def test_reports_every_package_logger(self):
        configure_lite_logging(debug_mode=True)

        status = get_logging_status()

        assert status["root"] == "DEBUG"
        for name in LITE_MODULES:
            assert status[name] == "DEBUG"

    @pytest.mark.parametrize("name", ["calexpand_lite.lite_datetime_utils", "calexpand_lite.__main__"])
    def test_includes_datetime_utils_and_cli_loggers(self, name):
        configure_lite_logging(debug_mode=True)

        assert get_logging_status()[name] == "DEBUG"
        assert logging.getLogger(name).level == logging.DEBUG
