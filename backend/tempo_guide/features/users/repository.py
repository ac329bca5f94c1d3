"""
Profile repository.

Data access layer for the Profile model.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.repository import BaseRepository
from .models import Profile


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Profile)

    async def get_by_user_id(self, user_id: str) -> Profile | None:
        """
        Get profile by auth-provider user ID.

        Args:
            user_id: User's ID

        Returns:
            Profile if found, None otherwise
        """
        return await self.get_by(user_id=user_id)

    async def get_or_create(self, user_id: str, **kwargs) -> tuple[Profile, bool]:
        """
        Get existing profile or create new one.

        Returns:
            Tuple of (profile, created)
        """
        profile = await self.get_by_user_id(user_id)
        if profile:
            return profile, False
        profile = await self.create(user_id=user_id, **kwargs)
        return profile, True

    async def mark_strava_connected(
        self,
        user_id: str,
        athlete_id: str,
        connected_at: datetime | None = None
    ) -> Profile:
        """Set the connection flags (creating the profile if needed)."""
        profile, _ = await self.get_or_create(user_id)
        return await self.update(
            profile,
            strava_connected=True,
            strava_athlete_id=athlete_id,
            strava_connected_at=connected_at or datetime.utcnow(),
        )

    async def clear_strava_connection(self, user_id: str) -> Profile | None:
        """Reset the connection flags. Returns None if there is no profile."""
        profile = await self.get_by_user_id(user_id)
        if not profile:
            return None
        return await self.update(
            profile,
            strava_connected=False,
            strava_athlete_id=None,
            strava_connected_at=None,
        )
