"""
Strava import module.

Usage:
    from tempo_guide.features.strava.importer import ActivityImporter
"""

from .config import ImportConfig
from .activities import ActivityFetcher, is_running_activity, map_activity, select_running_activities
from .best_efforts import TARGET_DISTANCES, TargetDistance, calculate_best_efforts, extract_provider_efforts
from .splits import map_laps, map_splits
from .service import ActivityImporter, ImportResult, map_stats

__all__ = [
    "ImportConfig",
    "ActivityFetcher",
    "is_running_activity",
    "map_activity",
    "select_running_activities",
    "TARGET_DISTANCES",
    "TargetDistance",
    "calculate_best_efforts",
    "extract_provider_efforts",
    "map_splits",
    "map_laps",
    "ActivityImporter",
    "ImportResult",
    "map_stats",
]
