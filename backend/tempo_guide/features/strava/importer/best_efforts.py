"""
Best effort derivation.

Two sources feed the strava_best_efforts table:
- calculated: fastest recent activity whose distance falls inside a
  tolerance band around a standard race distance
- strava: best_efforts sub-records reported in activity detail
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from tempo_guide.shared.constants import StravaActivityType
from .activities import parse_strava_datetime

SOURCE_CALCULATED = "calculated"
SOURCE_STRAVA = "strava"


@dataclass(frozen=True)
class TargetDistance:
    """A standard race distance with its accepted tolerance (fraction)."""

    name: str
    slug: str
    meters: float
    tolerance: float

    @property
    def min_meters(self) -> float:
        return self.meters * (1 - self.tolerance)

    @property
    def max_meters(self) -> float:
        return self.meters * (1 + self.tolerance)

    def matches(self, distance: float) -> bool:
        return self.min_meters <= distance <= self.max_meters

    @property
    def effort_key(self) -> str:
        return f"{SOURCE_CALCULATED}-{self.slug}"


# Tighter bands for longer, more standardized distances
TARGET_DISTANCES: tuple[TargetDistance, ...] = (
    TargetDistance("1K", "1k", 1000.0, 0.15),
    TargetDistance("5K", "5k", 5000.0, 0.10),
    TargetDistance("10K", "10k", 10000.0, 0.08),
    TargetDistance("Half Marathon", "half-marathon", 21097.5, 0.05),
    TargetDistance("Marathon", "marathon", 42195.0, 0.05),
)


def calculate_best_efforts(
    activities: Iterable[dict],
    targets: Iterable[TargetDistance] = TARGET_DISTANCES
) -> list[dict]:
    """
    Pick the fastest qualifying activity per target distance.

    Candidates must be of type Run with positive distance and moving_time.
    The minimum moving_time inside the band wins; ties keep the first seen.

    Args:
        activities: Mapped activity rows (see map_activity)
        targets: Distances to evaluate

    Returns:
        Best effort rows ready for upsert, one per target with a match
    """
    candidates = [
        a for a in activities
        if a.get("activity_type") == StravaActivityType.RUN.value
        and (a.get("distance") or 0) > 0
        and (a.get("moving_time") or 0) > 0
    ]

    efforts = []
    for target in targets:
        best: Optional[dict] = None
        for activity in candidates:
            if not target.matches(activity["distance"]):
                continue
            if best is None or activity["moving_time"] < best["moving_time"]:
                best = activity
        if best is None:
            continue
        efforts.append({
            "effort_key": target.effort_key,
            "source": SOURCE_CALCULATED,
            "strava_activity_id": best["strava_activity_id"],
            "name": target.name,
            "distance": target.meters,
            "elapsed_time": best["moving_time"],
            "moving_time": best["moving_time"],
            "start_date": best.get("start_date"),
        })
    return efforts


def extract_provider_efforts(user_id: str, activity_detail: dict) -> list[dict]:
    """Map the best_efforts array of a detailed activity to rows."""
    rows = []
    for effort in activity_detail.get("best_efforts") or []:
        if effort.get("id") is None or not effort.get("elapsed_time"):
            continue
        rows.append({
            "user_id": user_id,
            "effort_key": f"{SOURCE_STRAVA}-{effort['id']}",
            "source": SOURCE_STRAVA,
            "strava_activity_id": activity_detail.get("id"),
            "name": effort.get("name") or "Unknown",
            "distance": effort.get("distance") or 0.0,
            "elapsed_time": effort["elapsed_time"],
            "moving_time": effort.get("moving_time"),
            "start_date": parse_strava_datetime(effort.get("start_date")),
            "achievement_rank": effort.get("achievement_rank"),
            "pr_rank": effort.get("pr_rank"),
        })
    return rows
