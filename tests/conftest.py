"""Shared pytest configuration for calexpand tests."""

import logging

import pytest


def pytest_configure(config):
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "fast: Tests that complete in well under a second")


@pytest.fixture(autouse=True)
def restore_logging_levels():
    """Keep logger levels changed by logging tests from leaking into other tests."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = list(root.handlers)
    yield
    root.setLevel(original_level)
    for handler in list(root.handlers):
        if handler not in original_handlers:
            root.removeHandler(handler)
