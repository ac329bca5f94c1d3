"""
Tests for StateTokenStore.

Tests issuance, single-use consumption and expiry.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tempo_guide.features.strava import (
    OAuthStateToken,
    OAuthStateTokenRepository,
    StateTokenClaim,
    StateTokenStore,
)
from tempo_guide.models import Base, import_all_models
from tempo_guide.shared.errors import (
    StateTokenAlreadyUsed,
    StateTokenExpired,
    StateTokenNotFound,
)


@pytest.fixture
def store(db, clock):
    return StateTokenStore(db, ttl=timedelta(minutes=15), clock=clock)


class TestIssue:
    """Tests for StateTokenStore.issue."""

    async def test_issue_persists_token(self, store, db, clock):
        token = await store.issue("user-1", "https://app.example.com/settings")

        record = await db.get(OAuthStateToken, 1)
        assert record.token == token
        assert record.user_id == "user-1"
        assert record.redirect_url == "https://app.example.com/settings"
        assert record.used_at is None
        assert record.expires_at == clock.now + timedelta(minutes=15)

    async def test_tokens_are_unique_and_unguessable(self, store):
        tokens = {await store.issue("user-1", None) for _ in range(5)}
        assert len(tokens) == 5
        assert all(len(t) >= 40 for t in tokens)


class TestValidateAndConsume:
    """Tests for StateTokenStore.validate_and_consume."""

    async def test_returns_bound_claim(self, store):
        token = await store.issue("user-1", "https://app.example.com")

        claim = await store.validate_and_consume(token)

        assert claim.user_id == "user-1"
        assert claim.redirect_url == "https://app.example.com"

    async def test_second_consume_fails_with_already_used(self, store):
        token = await store.issue("user-1", None)

        await store.validate_and_consume(token)
        with pytest.raises(StateTokenAlreadyUsed):
            await store.validate_and_consume(token)

    async def test_unknown_token(self, store):
        with pytest.raises(StateTokenNotFound):
            await store.validate_and_consume("no-such-token")

    async def test_empty_token(self, store):
        with pytest.raises(StateTokenNotFound):
            await store.validate_and_consume("")

    async def test_expired_token(self, store, clock):
        token = await store.issue("user-1", None)
        clock.advance(minutes=16)

        with pytest.raises(StateTokenExpired):
            await store.validate_and_consume(token)

    async def test_expired_wins_over_used(self, store, clock):
        token = await store.issue("user-1", None)
        await store.validate_and_consume(token)
        clock.advance(minutes=16)

        with pytest.raises(StateTokenExpired):
            await store.validate_and_consume(token)

    async def test_valid_right_at_expiry(self, store, clock):
        token = await store.issue("user-1", None)
        clock.advance(minutes=15)

        claim = await store.validate_and_consume(token)
        assert claim.user_id == "user-1"

    async def test_conditional_update_consumes_once(self, store, db, clock):
        token = await store.issue("user-1", None)
        repo = OAuthStateTokenRepository(db)

        first = await repo.mark_used(token, clock.now)
        second = await repo.mark_used(token, clock.now)

        assert first is True
        assert second is False


@pytest.fixture
async def file_sessions(tmp_path):
    """Session factory over a file database so each session has its own connection."""
    import_all_models()
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'state.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class TestConcurrentConsume:
    """Several sessions racing on one token."""

    async def test_only_one_caller_wins(self, file_sessions, clock):
        async with file_sessions() as session:
            token = await StateTokenStore(session, clock=clock).issue("user-1", None)

        async def consume():
            async with file_sessions() as session:
                try:
                    return await StateTokenStore(session, clock=clock).validate_and_consume(token)
                except StateTokenAlreadyUsed as e:
                    return e

        outcomes = await asyncio.gather(*(consume() for _ in range(5)))

        claims = [o for o in outcomes if isinstance(o, StateTokenClaim)]
        rejected = [o for o in outcomes if isinstance(o, StateTokenAlreadyUsed)]
        assert len(claims) == 1
        assert claims[0].user_id == "user-1"
        assert len(rejected) == 4

    async def test_lost_race_after_read(self, file_sessions, clock):
        async with file_sessions() as session:
            token = await StateTokenStore(session, clock=clock).issue("user-1", None)

        async with file_sessions() as slow, file_sessions() as fast:
            # slow has already read the token as unused
            stale = await OAuthStateTokenRepository(slow).get_by_token(token)
            assert stale.used_at is None

            await StateTokenStore(fast, clock=clock).validate_and_consume(token)

            with pytest.raises(StateTokenAlreadyUsed):
                await StateTokenStore(slow, clock=clock).validate_and_consume(token)
