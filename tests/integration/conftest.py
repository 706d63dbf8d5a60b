"""Configuration and fixtures for integration tests."""

import sys

import pytest


def pytest_configure(config):
    """Configure pytest for integration testing."""
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Skip process tests on Windows, where the fake envoy can't be executed."""
    if sys.platform != "win32":
        return
    skip_windows = pytest.mark.skip(reason="process tests need a POSIX shebang")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_windows)
