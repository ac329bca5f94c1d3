"""
Shared test fixtures.

Database tests run against in-memory SQLite (aiosqlite); Strava HTTP is
faked with httpx.MockTransport.
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STRAVA_CLIENT_ID", "12345")
os.environ.setdefault("STRAVA_CLIENT_SECRET", "test-secret")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("FRONTEND_ORIGIN", "https://app.example.com")
os.environ.setdefault("CORS_ORIGINS", "https://app.example.com,http://localhost:5173")

import json
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tempo_guide.config import StravaCredentials
from tempo_guide.features.strava import StravaClient, StravaOAuth, StravaRateLimiter, TokenCipher
from tempo_guide.models import Base, import_all_models


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine():
    import_all_models()
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 3, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Strava fakes
# =============================================================================

class FakeStrava:
    """
    Routes Strava requests to per-path handlers.

    Handlers take the httpx.Request and return (status, json_body).
    Unrouted requests answer 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, handler: Callable) -> None:
        self.routes[(method, path)] = handler

    def reply(self, method: str, path: str, status: int, body=None) -> None:
        self.on(method, path, lambda request: (status, body))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Record Not Found"})
        result = handler(request)
        if isinstance(result, Exception):
            raise result
        status, body = result
        return httpx.Response(status, content=json.dumps(body if body is not None else {}))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def strava():
    return FakeStrava()


@pytest.fixture
def credentials():
    return StravaCredentials(client_id="12345", client_secret="test-secret")


@pytest.fixture
def oauth(credentials, strava):
    return StravaOAuth(credentials, transport=strava.transport)


@pytest.fixture
def strava_client(credentials, strava):
    return StravaClient(credentials, transport=strava.transport, limiter=StravaRateLimiter())


@pytest.fixture
def cipher():
    return TokenCipher(TokenCipher.generate_key())


def token_response(
    access_token: str = "access-1",
    refresh_token: str = "refresh-1",
    expires_in: int = 21600,
    athlete_id: Optional[int] = 777
) -> dict:
    body = {
        "token_type": "Bearer",
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_in": expires_in,
    }
    if athlete_id is not None:
        body["athlete"] = {"id": athlete_id, "firstname": "Test"}
    return body


@pytest.fixture
def make_token_response():
    return token_response
