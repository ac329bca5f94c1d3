"""
Strava import orchestration.

Main entry point for importing a user's running history.

Import Flow:
1. Get a valid access token (refreshing if needed)
2. Fetch aggregate stats, replace strava_stats rows
3. Paginate activities from the look-back window, keep runs,
   replace strava_activities rows in batches
4. Fetch detail for recent activities with achievements and store the
   provider-reported best efforts, per-kilometer splits and laps
5. Recalculate best efforts per standard distance and upsert them

Every step after 1 degrades gracefully: failures are logged and the
import reports whatever was achieved.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.features.users import ProfileRepository
from tempo_guide.shared.errors import PersistenceError
from ..client import StravaClient
from ..repository import (
    StravaActivityLapRepository,
    StravaActivityRepository,
    StravaActivitySplitRepository,
    StravaBestEffortRepository,
    StravaStatsRepository,
)
from ..vault import TokenVault
from .activities import ActivityFetcher, select_running_activities
from .best_efforts import SOURCE_STRAVA, calculate_best_efforts, extract_provider_efforts
from .config import ImportConfig
from .splits import map_laps, map_splits

logger = logging.getLogger(__name__)

# strava_stats.period_type -> key in the athlete stats response
STATS_PERIODS = {
    "recent": "recent_run_totals",
    "ytd": "ytd_run_totals",
    "all": "all_run_totals",
}


def map_stats(stats: dict) -> list[dict]:
    """Map an athlete stats response to one row per period."""
    rows = []
    for period_type, key in STATS_PERIODS.items():
        totals = stats.get(key) or {}
        rows.append({
            "period_type": period_type,
            "count": totals.get("count", 0),
            "distance": totals.get("distance", 0.0),
            "moving_time": totals.get("moving_time", 0),
            "elevation_gain": totals.get("elevation_gain", 0.0),
            "achievement_count": totals.get("achievement_count"),
        })
    return rows


@dataclass
class ImportResult:
    """Outcome of one import run."""

    activities_count: int = 0
    stats: Optional[dict] = None
    provider_efforts_count: int = 0
    splits_count: int = 0
    laps_count: int = 0
    calculated_efforts_count: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "success": True,
            "activitiesCount": self.activities_count,
            "statsData": self.stats,
        }


class ActivityImporter:
    """
    Imports a user's Strava stats, runs and best efforts.

    Usage:
        importer = ActivityImporter(db, vault, client)
        result = await importer.import_activities(user_id)
    """

    def __init__(
        self,
        db: AsyncSession,
        vault: TokenVault,
        client: StravaClient,
        config: type[ImportConfig] = ImportConfig,
        clock: Callable[[], datetime] = datetime.utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.db = db
        self.vault = vault
        self.client = client
        self.config = config
        self._clock = clock
        self._sleep = sleep
        self.fetcher = ActivityFetcher(client, config)
        self.activities = StravaActivityRepository(db)
        self.best_efforts = StravaBestEffortRepository(db)
        self.stats = StravaStatsRepository(db)
        self.splits = StravaActivitySplitRepository(db)
        self.laps = StravaActivityLapRepository(db)

    async def import_activities(self, user_id: str) -> ImportResult:
        """
        Run a full import for a user.

        Raises:
            NotConnected: User has no stored Strava tokens
            RefreshFailed: Token expired and could not be refreshed
            PersistenceError: Imported activities could not be saved
        """
        access_token = await self.vault.get_valid_access_token(user_id)
        result = ImportResult()

        result.stats = await self._import_stats(user_id, access_token, result)

        since = self._clock() - timedelta(days=self.config.LOOKBACK_DAYS)
        fetched = await self.fetcher.fetch_all(access_token, after=since)
        rows = select_running_activities(user_id, fetched)

        try:
            result.activities_count = await self.activities.replace_for_user(
                user_id, rows, batch_size=self.config.INSERT_BATCH_SIZE
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save activities for user {user_id}: {e}")
            raise PersistenceError("Failed to save imported activities") from e

        recent = sorted(rows, key=lambda r: r["start_date"], reverse=True)

        await self._import_activity_details(user_id, access_token, recent, result)
        result.calculated_efforts_count = await self._update_calculated_efforts(
            user_id, recent[:self.config.BEST_EFFORT_RECENT_ACTIVITIES], result
        )

        logger.info(
            f"Strava import for user {user_id}: {result.activities_count} activities, "
            f"{result.provider_efforts_count} reported efforts, "
            f"{result.splits_count} splits, {result.laps_count} laps, "
            f"{result.calculated_efforts_count} calculated efforts"
        )
        return result

    async def _athlete_id(self, user_id: str) -> Optional[str]:
        record = await self.vault.get_record(user_id)
        if record and record.strava_athlete_id:
            return record.strava_athlete_id
        profile = await ProfileRepository(self.db).get_by_user_id(user_id)
        return profile.strava_athlete_id if profile else None

    async def _import_stats(
        self,
        user_id: str,
        access_token: str,
        result: ImportResult
    ) -> Optional[dict]:
        athlete_id = await self._athlete_id(user_id)
        if not athlete_id:
            result.warnings.append("stats skipped: athlete id unknown")
            logger.warning(f"No Strava athlete id for user {user_id}, skipping stats")
            return None

        try:
            stats = await self.client.get_athlete_stats(access_token, athlete_id)
        except Exception as e:
            result.warnings.append("stats fetch failed")
            logger.warning(f"Failed to fetch Strava stats for user {user_id}: {e}")
            return None

        try:
            await self.stats.replace_for_user(user_id, map_stats(stats))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            result.warnings.append("stats save failed")
            logger.error(f"Failed to save Strava stats for user {user_id}: {e}")

        return stats

    async def _import_activity_details(
        self,
        user_id: str,
        access_token: str,
        recent: list[dict],
        result: ImportResult
    ) -> None:
        with_achievements = [
            r for r in recent if (r.get("achievement_count") or 0) > 0
        ][:self.config.DETAIL_FETCH_LIMIT]

        efforts: list[dict] = []
        splits: list[dict] = []
        laps: list[dict] = []
        fetched_ids: list[int] = []
        for i, row in enumerate(with_achievements):
            if i > 0:
                await self._sleep(self.config.DETAIL_FETCH_DELAY)
            activity_id = row["strava_activity_id"]
            try:
                detail = await self.client.get_activity(access_token, activity_id)
            except Exception as e:
                logger.warning(f"Failed to fetch detail for activity {activity_id}: {e}")
                continue
            fetched_ids.append(activity_id)
            efforts.extend(extract_provider_efforts(user_id, detail))
            splits.extend(map_splits(user_id, activity_id, detail))
            laps.extend(map_laps(user_id, activity_id, detail))

        if with_achievements:
            result.provider_efforts_count = await self._save_provider_efforts(
                user_id, efforts, result
            )

        kept_ids = [r["strava_activity_id"] for r in recent]
        batch_size = self.config.INSERT_BATCH_SIZE
        try:
            await self.splits.prune(user_id, kept_ids)
            await self.laps.prune(user_id, kept_ids)
            result.splits_count = await self.splits.replace_for_activities(
                user_id, fetched_ids, splits, batch_size=batch_size
            )
            result.laps_count = await self.laps.replace_for_activities(
                user_id, fetched_ids, laps, batch_size=batch_size
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            result.splits_count = result.laps_count = 0
            result.warnings.append("splits and laps save failed")
            logger.error(f"Failed to save splits and laps for user {user_id}: {e}")

    async def _save_provider_efforts(
        self,
        user_id: str,
        efforts: list[dict],
        result: ImportResult
    ) -> int:
        try:
            await self.best_efforts.delete_for_user(user_id, source=SOURCE_STRAVA)
            count = await self.best_efforts.insert_in_batches(
                efforts, batch_size=self.config.INSERT_BATCH_SIZE
            )
            await self.db.commit()
            return count
        except SQLAlchemyError as e:
            await self.db.rollback()
            result.warnings.append("reported best efforts save failed")
            logger.error(f"Failed to save reported best efforts for user {user_id}: {e}")
            return 0

    async def _update_calculated_efforts(
        self,
        user_id: str,
        recent: list[dict],
        result: ImportResult
    ) -> int:
        efforts = calculate_best_efforts(recent)
        try:
            for effort in efforts:
                fields = {k: v for k, v in effort.items() if k != "effort_key"}
                await self.best_efforts.upsert(user_id, effort["effort_key"], **fields)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            result.warnings.append("calculated best efforts save failed")
            logger.error(f"Failed to save calculated best efforts for user {user_id}: {e}")
            return 0
        return len(efforts)
