"""Pytest configuration and shared fixtures."""

import asyncio

import pytest

from typed_emitter.logging_config import configure_logging


def pytest_configure(config):
    """Configure pytest markers and quiet logging."""
    config.addinivalue_line("markers", "event_loop: scenario runs inside asyncio.run")
    configure_logging(level="WARNING", colors=False)


async def _drain(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    """Coroutine function letting started listener tasks and their callbacks run."""
    return _drain


@pytest.fixture
def calls():
    """Ordered record of listener invocations."""
    return []
