"""Fixtures and configuration for pytest."""

from pathlib import Path

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "cli: mark test as a command line test")


@pytest.fixture
def examples_dir() -> Path:
    """Directory holding the example program modules."""
    return Path(__file__).parent.parent / "examples"
