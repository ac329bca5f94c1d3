"""
Unified constants for activity types and units.

Single source of truth for Strava activity naming and unit conversion
across the application.
"""

from enum import Enum


class StravaActivityType(str, Enum):
    """
    Activity types from Strava API.

    These are Strava's naming conventions, not ours.
    """
    RUN = "Run"
    TRAIL_RUN = "TrailRun"
    VIRTUAL_RUN = "VirtualRun"


# Types (type or sport_type) imported as running activities
RUNNING_ACTIVITY_TYPES: frozenset[str] = frozenset(t.value for t in StravaActivityType)

# Fallback: activity name contains this (case-insensitive)
RUNNING_NAME_HINT = "run"


# =============================================================================
# Units
# =============================================================================

METERS_PER_KM = 1000.0
KM_PER_MILE = 1.609344
