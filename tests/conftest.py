"""Pytest configuration shared across the suite."""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    """Route tests drive the ASGI app through AnyIO; asyncio only."""
    return "asyncio"
