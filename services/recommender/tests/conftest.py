"""
Shared test fixtures for the recommender test suite.

Provides:
- async FastAPI test client (Redis and Anthropic mocked, no network)
- a fresh SessionRegistry per test
- a mock Anthropic client factory returning canned reasoning text
"""

import json
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "redis://localhost:26379/0")
os.environ.setdefault("SENTRY_DSN", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")


# ---------------------------------------------------------------------------
# Redis / Anthropic mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_redis():
    """In-memory mock Redis client for persistence and rate limiter tests."""
    redis = AsyncMock()
    # Pipeline commands buffer synchronously; only execute() is awaited
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[None, 0, None, None])
    redis.pipeline = MagicMock(return_value=pipe)
    redis.ping = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    return redis


def make_anthropic_client(payload=None, side_effect=None):
    """Mock AsyncAnthropic whose messages.create returns ``payload`` as text."""
    response = MagicMock()
    text = payload if isinstance(payload, str) else json.dumps(payload or {})
    response.content = [MagicMock(text=text)]
    response.usage = MagicMock(input_tokens=120, output_tokens=80)

    client = AsyncMock()
    client.messages = AsyncMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


@pytest.fixture
def anthropic_factory():
    return make_anthropic_client


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
async def app(mock_redis):
    """Test app with mocked dependencies injected into app.state."""
    from services.recommender.config import settings
    from services.recommender.main import app as _app
    from services.recommender.profile.session import ProfileStore, SessionRegistry

    _app.state.redis = mock_redis
    _app.state.settings = settings
    _app.state.sessions = SessionRegistry(ProfileStore(mock_redis))
    _app.state.anthropic = None
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
