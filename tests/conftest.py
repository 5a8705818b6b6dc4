"""Shared test configuration for agentproxy tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from agentproxy.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    # Reuse the application logging pipeline so structlog processors behave
    # identically in tests.
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Run a test with HOME, XDG config and cwd inside a temporary directory.

    Also clears the environment variables that point at a config file so
    settings discovery only sees what the test creates.
    """
    home_dir = tmp_path / "home"
    config_dir = tmp_path / "config"
    home_dir.mkdir()
    config_dir.mkdir()

    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.delenv("AGENTPROXY_CONFIG", raising=False)
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
