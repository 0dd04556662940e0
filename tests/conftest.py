"""Pytest configuration and shared fixtures."""
from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from host_monitor.config import CollectorConfig


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "windows: mark test as Windows-specific"
    )
    config.addinivalue_line(
        "markers", "linux: mark test as Linux-specific"
    )
    config.addinivalue_line(
        "markers", "darwin: mark test as macOS-specific"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )


@pytest.fixture
def mock_windows():
    """Mock Windows platform detection."""
    with patch("platform.system", return_value="Windows"):
        yield


@pytest.fixture
def mock_linux():
    """Mock Linux platform detection."""
    with patch("platform.system", return_value="Linux"):
        yield


@pytest.fixture
def mock_darwin():
    """Mock macOS platform detection."""
    with patch("platform.system", return_value="Darwin"):
        yield


@pytest.fixture
def collector_config():
    """Collector config with a short command timeout."""
    return CollectorConfig(command_timeout_s=5.0)


@pytest.fixture
def completed():
    """Factory for fake subprocess.CompletedProcess results."""

    def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> Mock:
        return Mock(stdout=stdout, stderr=stderr, returncode=returncode)

    return _completed
