"""
Strava disconnect flow.

Revokes the connection and purges imported data. Idempotent: running it
for a user that is not connected succeeds and changes nothing.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.features.audit import AuditEvent, AuditLogRepository
from tempo_guide.features.users import ProfileRepository
from tempo_guide.shared.errors import PersistenceError
from .oauth import StravaOAuth
from .repository import (
    StravaActivityLapRepository,
    StravaActivityRepository,
    StravaActivitySplitRepository,
    StravaBestEffortRepository,
    StravaStatsRepository,
)
from .vault import TokenVault

logger = logging.getLogger(__name__)


@dataclass
class DisconnectResult:
    """What a disconnect run managed to do."""

    was_connected: bool = False
    deauthorized: bool = False
    purged: dict[str, int] = field(default_factory=dict)
    failed_steps: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_steps

    def to_response(self) -> dict:
        return {
            "success": True,
            "wasConnected": self.was_connected,
            "deauthorized": self.deauthorized,
            "purged": self.purged,
            "complete": self.complete,
        }


class DisconnectService:
    """
    Disconnects a user from Strava.

    Order:
    1. Revoke access at Strava (best-effort)
    2. Clear profile flags and delete the token row (one transaction)
    3. Purge splits, laps, activities, best efforts and stats (each step
       independent)

    A failure in step 3 is logged and leaves earlier steps in place.
    """

    def __init__(self, db: AsyncSession, oauth: StravaOAuth, vault: TokenVault):
        self.db = db
        self.oauth = oauth
        self.vault = vault
        self.profiles = ProfileRepository(db)
        self.audit = AuditLogRepository(db)
        self._purge_steps = (
            ("splits", StravaActivitySplitRepository(db)),
            ("laps", StravaActivityLapRepository(db)),
            ("activities", StravaActivityRepository(db)),
            ("best_efforts", StravaBestEffortRepository(db)),
            ("stats", StravaStatsRepository(db)),
        )

    async def disconnect(self, user_id: str) -> DisconnectResult:
        """
        Disconnect the user.

        Raises:
            PersistenceError: Flags/token row could not be cleared
        """
        result = DisconnectResult()
        result.deauthorized = await self._deauthorize(user_id)

        try:
            await self.profiles.clear_strava_connection(user_id)
            result.was_connected = await self.vault.delete(user_id)
            await self.audit.record(
                AuditEvent.STRAVA_DISCONNECTED,
                user_id=user_id,
                details={"had_token": result.was_connected},
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to clear Strava connection for user {user_id}: {e}")
            raise PersistenceError("Failed to disconnect Strava") from e

        for name, repo in self._purge_steps:
            try:
                result.purged[name] = await repo.delete_for_user(user_id)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                result.failed_steps.append(name)
                logger.error(f"Failed to purge Strava {name} for user {user_id}: {e}")

        logger.info(f"Strava disconnected for user {user_id} (purged {result.purged})")
        return result

    async def _deauthorize(self, user_id: str) -> bool:
        record = await self.vault.get_record(user_id)
        if not record:
            return False
        try:
            access_token = self.vault.cipher.decode(record.access_token_encoded)
            return await self.oauth.deauthorize(access_token)
        except Exception as e:
            logger.warning(f"Strava deauthorization failed for user {user_id}: {e}")
            return False
