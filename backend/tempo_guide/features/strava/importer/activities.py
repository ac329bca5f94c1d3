"""
Activity fetching and mapping.

Handles paginating the Strava activity list, filtering to running
activities and mapping them to StravaActivity rows.
"""

import logging
from datetime import datetime
from typing import Optional

from tempo_guide.shared.constants import RUNNING_ACTIVITY_TYPES, RUNNING_NAME_HINT
from ..client import StravaClient
from .config import ImportConfig

logger = logging.getLogger(__name__)


def parse_strava_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Strava ISO-8601 timestamp ("2025-03-01T07:00:00Z") to naive UTC."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def is_running_activity(data: dict) -> bool:
    """
    Check whether a Strava activity counts as a run.

    Matches on type or sport_type, falling back to the activity name
    containing "run" (case-insensitive).
    """
    if data.get("type") in RUNNING_ACTIVITY_TYPES:
        return True
    if data.get("sport_type") in RUNNING_ACTIVITY_TYPES:
        return True
    return RUNNING_NAME_HINT in (data.get("name") or "").lower()


def map_activity(user_id: str, data: dict) -> dict:
    """Map a Strava summary activity to StravaActivity column values."""
    return {
        "user_id": user_id,
        "strava_activity_id": data["id"],
        "name": data.get("name"),
        "activity_type": data.get("type") or data.get("sport_type") or "Unknown",
        "start_date": parse_strava_datetime(data.get("start_date")),
        "distance": data.get("distance"),
        "moving_time": data.get("moving_time"),
        "elapsed_time": data.get("elapsed_time"),
        "total_elevation_gain": data.get("total_elevation_gain"),
        "average_speed": data.get("average_speed"),
        "max_speed": data.get("max_speed"),
        "average_heartrate": data.get("average_heartrate"),
        "max_heartrate": data.get("max_heartrate"),
        "average_cadence": data.get("average_cadence"),
        "average_watts": data.get("average_watts"),
        "weighted_average_watts": data.get("weighted_average_watts"),
        "kilojoules": data.get("kilojoules"),
        "suffer_score": data.get("suffer_score"),
        "kudos_count": data.get("kudos_count"),
        "achievement_count": data.get("achievement_count"),
    }


def select_running_activities(user_id: str, activities: list[dict]) -> list[dict]:
    """
    Filter to runs, map them, and drop repeated activity ids.

    Pages can overlap when new activities arrive mid-import, so the first
    occurrence of an id wins.
    """
    rows = []
    seen: set[int] = set()
    for data in activities:
        if data.get("id") is None or data["id"] in seen:
            continue
        if not data.get("start_date") or not is_running_activity(data):
            continue
        seen.add(data["id"])
        rows.append(map_activity(user_id, data))
    return rows


class ActivityFetcher:
    """
    Paginates the athlete activity list.

    Stops at the first empty page, after MAX_PAGES pages, or once
    MAX_ACTIVITIES items have been collected. A failed page stops
    pagination and the pages fetched so far are kept.
    """

    def __init__(self, client: StravaClient, config: type[ImportConfig] = ImportConfig):
        self.client = client
        self.config = config

    async def fetch_all(self, access_token: str, after: datetime) -> list[dict]:
        activities: list[dict] = []

        for page in range(1, self.config.MAX_PAGES + 1):
            try:
                batch = await self.client.list_activities(
                    access_token,
                    after=after,
                    page=page,
                    per_page=self.config.ACTIVITIES_PER_PAGE,
                )
            except Exception as e:
                logger.warning(f"Activity page {page} failed, keeping {len(activities)} fetched: {e}")
                break

            if not batch:
                break

            activities.extend(batch)
            if len(activities) >= self.config.MAX_ACTIVITIES:
                activities = activities[:self.config.MAX_ACTIVITIES]
                break

        logger.info(f"Fetched {len(activities)} activities")
        return activities
