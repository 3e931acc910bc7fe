"""Pytest configuration and fixtures."""

import pytest

RELAY_ENV_VARS = (
    "CAPITAL_API_KEY",
    "CAPITAL_EMAIL",
    "CAPITAL_PASSWORD",
    "CAPITAL_API_URL",
    "CAPITAL_STREAM_URL",
    "RELAY_EPIC",
    "RELAY_SESSION_FILE",
    "PORT",
    "HOST",
    "LOG_LEVEL",
)


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def clean_env(monkeypatch):
    """Strip relay variables from the process environment."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
