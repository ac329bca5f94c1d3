"""
Strava token vault.

Persists encrypted access/refresh tokens per user and hands out a valid
access token, refreshing it through the OAuth token endpoint when the
stored one has expired.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.errors import NotConnected, PersistenceError, RefreshFailed
from .cipher import TokenCipher
from .models import StravaToken
from .oauth import StravaOAuth, StravaOAuthError
from .repository import StravaTokenRepository

logger = logging.getLogger(__name__)


def token_expiry(token_data: dict, now: datetime) -> datetime:
    """
    Absolute (naive UTC) expiry for a token endpoint response.

    Prefers the relative expires_in; falls back to the epoch expires_at.
    """
    expires_in = token_data.get("expires_in")
    if expires_in is not None:
        return now + timedelta(seconds=int(expires_in))
    expires_at = token_data.get("expires_at")
    if expires_at is not None:
        return datetime.fromtimestamp(int(expires_at), tz=timezone.utc).replace(tzinfo=None)
    # No expiry supplied: treat as already expired so the next use refreshes
    return now


class TokenVault:
    """
    Encrypted per-user token storage with refresh.

    Usage:
        vault = TokenVault(db, oauth, cipher)
        await vault.store_tokens(user_id, token_data)
        access_token = await vault.get_valid_access_token(user_id)
    """

    def __init__(
        self,
        db: AsyncSession,
        oauth: StravaOAuth,
        cipher: TokenCipher,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.oauth = oauth
        self.cipher = cipher
        self._clock = clock
        self.repo = StravaTokenRepository(db)

    async def get_record(self, user_id: str) -> Optional[StravaToken]:
        return await self.repo.get_by_user_id(user_id)

    async def store_tokens(
        self,
        user_id: str,
        token_data: dict,
        scope: Optional[str] = None
    ) -> StravaToken:
        """
        Upsert the user's token row from a token endpoint response.

        Flushes only; the caller commits so the write can share a
        transaction with the profile flag update.
        """
        athlete = token_data.get("athlete") or {}
        fields = dict(
            access_token_encoded=self.cipher.encode(token_data["access_token"]),
            refresh_token_encoded=self.cipher.encode(token_data["refresh_token"]),
            expires_at=token_expiry(token_data, self._clock()),
        )
        if athlete.get("id") is not None:
            fields["strava_athlete_id"] = str(athlete["id"])
        if scope is not None:
            fields["scope"] = scope
        return await self.repo.upsert(user_id, **fields)

    async def get_valid_access_token(self, user_id: str) -> str:
        """
        Get a usable access token, refreshing it if expired.

        Raises:
            NotConnected: No token row for the user
            RefreshFailed: Strava rejected the refresh; stored tokens are
                left untouched and the user must reconnect
        """
        token = await self.repo.get_by_user_id(user_id)
        if not token:
            raise NotConnected("User not connected to Strava")

        if not token.is_expired(self._clock()):
            return self.cipher.decode(token.access_token_encoded)

        logger.info(f"Refreshing Strava token for user {user_id}")
        return await self.refresh(token)

    async def refresh(self, token: StravaToken) -> str:
        """Exchange the stored refresh token and overwrite the row."""
        refresh_token = self.cipher.decode(token.refresh_token_encoded)
        try:
            new_tokens = await self.oauth.refresh_token(refresh_token)
        except StravaOAuthError as e:
            logger.warning(f"Strava token refresh failed for user {token.user_id}: {e}")
            raise RefreshFailed("Failed to refresh Strava token") from e

        if not new_tokens.get("access_token") or not new_tokens.get("refresh_token"):
            logger.warning(f"Strava refresh response incomplete for user {token.user_id}")
            raise RefreshFailed("Strava returned an incomplete token response")

        try:
            await self.repo.update_tokens(
                token,
                access_token_encoded=self.cipher.encode(new_tokens["access_token"]),
                refresh_token_encoded=self.cipher.encode(new_tokens["refresh_token"]),
                expires_at=token_expiry(new_tokens, self._clock()),
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("Failed to save refreshed Strava tokens") from e

        return new_tokens["access_token"]

    async def delete(self, user_id: str) -> bool:
        """Delete the user's token row (flush only). Returns True if one existed."""
        return await self.repo.delete_for_user(user_id) > 0
