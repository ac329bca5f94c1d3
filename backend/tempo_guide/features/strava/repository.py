"""
Strava repositories.

Data access layer for Strava-related models.
"""

from datetime import datetime

from sqlalchemy import delete, select, update, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.repository import BaseRepository
from .models import (
    OAuthStateToken,
    StravaToken,
    StravaActivity,
    StravaBestEffort,
    StravaStats,
    StravaActivitySplit,
    StravaActivityLap,
)


class OAuthStateTokenRepository(BaseRepository[OAuthStateToken]):
    """Repository for OAuth state tokens."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, OAuthStateToken)

    async def get_by_token(self, token: str) -> OAuthStateToken | None:
        return await self.get_by(token=token)

    async def mark_used(self, token: str, used_at: datetime) -> bool:
        """
        Conditionally mark a token used.

        The UPDATE only matches while used_at is still NULL, so of several
        concurrent callers exactly one sees a matched row.

        Returns:
            True if this call consumed the token
        """
        result = await self.db.execute(
            update(OAuthStateToken)
            .where(OAuthStateToken.token == token)
            .where(OAuthStateToken.used_at.is_(None))
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class StravaTokenRepository(BaseRepository[StravaToken]):
    """Repository for Strava OAuth tokens."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaToken)

    async def get_by_user_id(self, user_id: str) -> StravaToken | None:
        """
        Get token for user.

        Args:
            user_id: User's ID

        Returns:
            StravaToken if found, None otherwise
        """
        return await self.get_by(user_id=user_id)

    async def upsert(self, user_id: str, **fields) -> StravaToken:
        """Insert or overwrite the single token row for a user."""
        existing = await self.get_by_user_id(user_id)
        if existing:
            return await self.update(existing, updated_at=datetime.utcnow(), **fields)
        return await self.create(user_id=user_id, **fields)

    async def update_tokens(
        self,
        token: StravaToken,
        access_token_encoded: str,
        refresh_token_encoded: str,
        expires_at: datetime
    ) -> StravaToken:
        """
        Update OAuth tokens after refresh.

        Args:
            token: Existing token entity
            access_token_encoded: New encrypted access token
            refresh_token_encoded: New encrypted refresh token
            expires_at: Token expiration (naive UTC)

        Returns:
            Updated token
        """
        return await self.update(
            token,
            access_token_encoded=access_token_encoded,
            refresh_token_encoded=refresh_token_encoded,
            expires_at=expires_at,
            updated_at=datetime.utcnow()
        )

    async def delete_for_user(self, user_id: str) -> int:
        return await self.delete_where(user_id=user_id)


class StravaActivityRepository(BaseRepository[StravaActivity]):
    """Repository for imported Strava activities."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaActivity)

    async def get_user_activities(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0
    ) -> list[StravaActivity]:
        """
        Get user activities with pagination.

        Returns:
            List of activities ordered by date (newest first)
        """
        result = await self.db.execute(
            select(StravaActivity)
            .where(StravaActivity.user_id == user_id)
            .order_by(desc(StravaActivity.start_date))
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_user_activities(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(StravaActivity)
            .where(StravaActivity.user_id == user_id)
        )
        return result.scalar() or 0

    async def replace_for_user(
        self,
        user_id: str,
        rows: list[dict],
        batch_size: int = 50
    ) -> int:
        """
        Delete all of a user's activities, then insert rows in batches.

        Readers in other sessions may see zero rows until the caller commits.
        """
        await self.delete_where(user_id=user_id)
        return await self.insert_in_batches(rows, batch_size=batch_size)

    async def delete_for_user(self, user_id: str) -> int:
        return await self.delete_where(user_id=user_id)


class StravaBestEffortRepository(BaseRepository[StravaBestEffort]):
    """Repository for best efforts."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaBestEffort)

    async def get_user_best_efforts(self, user_id: str) -> list[StravaBestEffort]:
        result = await self.db.execute(
            select(StravaBestEffort)
            .where(StravaBestEffort.user_id == user_id)
            .order_by(StravaBestEffort.distance, StravaBestEffort.elapsed_time)
        )
        return list(result.scalars().all())

    async def upsert(self, user_id: str, effort_key: str, **fields) -> StravaBestEffort:
        """Insert or update the effort keyed by (user_id, effort_key)."""
        existing = await self.get_by(user_id=user_id, effort_key=effort_key)
        if existing:
            return await self.update(existing, **fields)
        return await self.create(user_id=user_id, effort_key=effort_key, **fields)

    async def delete_for_user(self, user_id: str, source: str | None = None) -> int:
        if source:
            return await self.delete_where(user_id=user_id, source=source)
        return await self.delete_where(user_id=user_id)


class StravaStatsRepository(BaseRepository[StravaStats]):
    """Repository for aggregate stats."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaStats)

    async def replace_for_user(self, user_id: str, rows: list[dict]) -> int:
        await self.delete_where(user_id=user_id)
        return await self.insert_in_batches(
            ({"user_id": user_id, **row} for row in rows)
        )

    async def delete_for_user(self, user_id: str) -> int:
        return await self.delete_where(user_id=user_id)


class _ActivityDetailRepository(BaseRepository):
    """Rows derived from one activity's detail (splits, laps)."""

    order_column: str

    async def get_for_activity(self, user_id: str, strava_activity_id: int) -> list:
        result = await self.db.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .where(self.model.strava_activity_id == strava_activity_id)
            .order_by(getattr(self.model, self.order_column))
        )
        return list(result.scalars().all())

    async def replace_for_activities(
        self,
        user_id: str,
        strava_activity_ids: list[int],
        rows: list[dict],
        batch_size: int = 50
    ) -> int:
        """Delete rows of the given activities, then insert the new ones."""
        if strava_activity_ids:
            await self.db.execute(
                delete(self.model)
                .where(self.model.user_id == user_id)
                .where(self.model.strava_activity_id.in_(strava_activity_ids))
            )
        return await self.insert_in_batches(rows, batch_size=batch_size)

    async def prune(self, user_id: str, keep_activity_ids: list[int]) -> int:
        """Delete rows whose activity is no longer imported."""
        result = await self.db.execute(
            delete(self.model)
            .where(self.model.user_id == user_id)
            .where(self.model.strava_activity_id.not_in(keep_activity_ids))
        )
        return result.rowcount or 0

    async def delete_for_user(self, user_id: str) -> int:
        return await self.delete_where(user_id=user_id)


class StravaActivitySplitRepository(_ActivityDetailRepository):
    """Repository for per-kilometer splits."""

    order_column = "split_number"

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaActivitySplit)


class StravaActivityLapRepository(_ActivityDetailRepository):
    """Repository for activity laps."""

    order_column = "lap_number"

    def __init__(self, db: AsyncSession):
        super().__init__(db, StravaActivityLap)
