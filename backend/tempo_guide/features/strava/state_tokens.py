"""
OAuth state token store.

Issues and consumes the single-use, short-lived tokens that bind an
in-flight Strava authorization to a user and a return URL.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.errors import (
    PersistenceError,
    StateTokenAlreadyUsed,
    StateTokenExpired,
    StateTokenNotFound,
)
from .repository import OAuthStateTokenRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateTokenClaim:
    """Identity and return target bound to a consumed state token."""

    user_id: str
    redirect_url: Optional[str]


class StateTokenStore:
    """
    Single-use state tokens.

    Usage:
        store = StateTokenStore(db)
        token = await store.issue(user_id, "https://app.example.com")
        claim = await store.validate_and_consume(token)
    """

    TOKEN_BYTES = 32
    MAX_ISSUE_ATTEMPTS = 3

    def __init__(
        self,
        db: AsyncSession,
        ttl: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.ttl = ttl
        self._clock = clock
        self.repo = OAuthStateTokenRepository(db)

    async def issue(self, user_id: str, redirect_url: Optional[str]) -> str:
        """
        Create and persist a new state token.

        Raises:
            PersistenceError: If the token could not be stored; the caller
                must not redirect to Strava
        """
        for _ in range(self.MAX_ISSUE_ATTEMPTS):
            token = secrets.token_urlsafe(self.TOKEN_BYTES)
            now = self._clock()
            try:
                await self.repo.create(
                    token=token,
                    user_id=user_id,
                    redirect_url=redirect_url,
                    created_at=now,
                    expires_at=now + self.ttl,
                )
                await self.db.commit()
                return token
            except IntegrityError:
                # Token value collided with an existing row; draw again
                await self.db.rollback()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to store OAuth state token for user {user_id}: {e}")
                raise PersistenceError("Failed to generate secure state token") from e

        raise PersistenceError("Failed to generate a unique state token")

    async def validate_and_consume(self, token: str) -> StateTokenClaim:
        """
        Validate a state token and mark it used.

        Checks run in order: existence, expiry, prior use. Expiry wins over
        prior use so a stale token always reports StateTokenExpired.

        Raises:
            StateTokenNotFound: No such token
            StateTokenExpired: Past expires_at
            StateTokenAlreadyUsed: Consumed before (including by a
                concurrent caller that won the race)
        """
        record = await self.repo.get_by_token(token) if token else None
        if record is None:
            raise StateTokenNotFound("Invalid state token")

        now = self._clock()
        if record.is_expired(now):
            raise StateTokenExpired("State token expired")
        if record.used_at is not None:
            raise StateTokenAlreadyUsed("State token already used")

        claim = StateTokenClaim(user_id=record.user_id, redirect_url=record.redirect_url)

        try:
            consumed = await self.repo.mark_used(token, now)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("Failed to consume state token") from e

        if not consumed:
            raise StateTokenAlreadyUsed("State token already used")

        return claim
