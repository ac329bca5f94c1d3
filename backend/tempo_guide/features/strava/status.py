"""
Strava connection status.

Reads the profile flags and reconciles them with the token row, which is
the authority on whether a user is connected.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.features.users import ProfileRepository
from .repository import StravaActivityRepository, StravaTokenRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    athlete_id: Optional[str]
    connected_at: Optional[datetime]
    activities_count: int
    repaired: bool = False

    def to_response(self) -> dict:
        return {
            "connected": self.connected,
            "athleteId": self.athlete_id,
            "connectedAt": self.connected_at.isoformat() if self.connected_at else None,
            "activitiesCount": self.activities_count,
            "repaired": self.repaired,
        }


class ConnectionStatusService:
    """
    Reports and repairs connection state.

    Usage:
        status = await ConnectionStatusService(db).get_status(user_id)
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profiles = ProfileRepository(db)
        self.tokens = StravaTokenRepository(db)
        self.activities = StravaActivityRepository(db)

    async def get_status(self, user_id: str) -> ConnectionStatus:
        profile = await self.profiles.get_by_user_id(user_id)
        token = await self.tokens.get_by_user_id(user_id)

        connected = token is not None
        flagged = bool(profile and profile.strava_connected)
        athlete_id = token.strava_athlete_id if token else None
        connected_at = profile.strava_connected_at if flagged else None
        repaired = False

        if connected and not flagged:
            # Token saved but flags never set
            logger.warning(f"Repairing Strava flags for user {user_id}: token present, flag unset")
            connected_at = token.created_at
            repaired = await self._repair(
                self.profiles.mark_strava_connected(user_id, athlete_id, connected_at=connected_at),
                user_id,
            )
        elif flagged and not connected:
            logger.warning(f"Repairing Strava flags for user {user_id}: flag set, no token")
            connected_at = None
            repaired = await self._repair(
                self.profiles.clear_strava_connection(user_id), user_id
            )

        return ConnectionStatus(
            connected=connected,
            athlete_id=athlete_id,
            connected_at=connected_at,
            activities_count=await self.activities.count_user_activities(user_id),
            repaired=repaired,
        )

    async def _repair(self, update: Awaitable, user_id: str) -> bool:
        try:
            await update
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to repair Strava flags for user {user_id}: {e}")
            return False
