"""Shared test fixtures.

Settings are read at import time, so the environment is prepared before any
src module is imported.
"""

# ruff: noqa: E402  -- environment must be set before src imports

import os

os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use-in-production")
os.environ.setdefault("STORE_BACKEND", "memory")

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.wiring import Engine, build_memory_engine, get_engine


@pytest.fixture
def engine() -> Engine:
    """Fresh Ledger + Catalog + Orchestrator over in-memory stores."""
    return build_memory_engine()


@pytest.fixture
def fake_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.incr.return_value = 1
    return redis


@pytest.fixture
async def client(
    engine: Engine, fake_redis: AsyncMock, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the memory engine."""
    monkeypatch.setattr(
        "src.bw_gateway.middleware.rate_limit.get_redis",
        AsyncMock(return_value=fake_redis),
    )
    app.dependency_overrides[get_engine] = lambda: engine
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_engine, None)
