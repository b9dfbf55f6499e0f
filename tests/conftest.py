"""
Pytest configuration and shared fixtures for RuntimeKit tests.
"""

import pytest
import tempfile
from pathlib import Path
from typing import Generator

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.runtimes import (
    fake_registry,
    fakelang_archive,
    fake_python_runtime,
)

from runtimekit.core.platform import clear_platform_cache


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Point HOME and RUNTIMEKIT_HOME at a temporary directory."""
    fake_home = temp_dir / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.setenv("RUNTIMEKIT_HOME", str(fake_home / ".runtimekit"))

    return fake_home


@pytest.fixture(autouse=True)
def reset_platform_cache():
    """Platform detection is cached per process; tests patch it."""
    clear_platform_cache()
    yield
    clear_platform_cache()
