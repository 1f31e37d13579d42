"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from tokenworker.config import Config, SchedulerConfig, TransportConfig, reset_config

# Configure pytest-asyncio
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def _isolate_config():
    """Never let a cached config leak between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def fast_config() -> Config:
    """Config with a 1ms tick and small quanta."""
    return Config(
        scheduler=SchedulerConfig(interval_ms=1.0, lines_per_quantum=2),
        transport=TransportConfig(drain_timeout=0.1),
    )
