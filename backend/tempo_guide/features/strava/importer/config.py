"""
Strava import configuration constants.

Contains all configuration values for import behavior.
"""


class ImportConfig:
    """Configuration for import behavior."""

    # How far back to fetch activities (days, ~6 months)
    LOOKBACK_DAYS = 182

    # Activities per list call (Strava max is 200)
    ACTIVITIES_PER_PAGE = 200

    # Safety caps on pagination
    MAX_PAGES = 5
    MAX_ACTIVITIES = 500

    # Rows per INSERT batch
    INSERT_BATCH_SIZE = 50

    # ==========================================================================
    # Activity detail (reported best efforts, splits, laps)
    # ==========================================================================
    # Only the most recent activities with achievement_count > 0 are fetched
    # in detail, one call at a time.
    DETAIL_FETCH_LIMIT = 20

    # Delay between detail calls (seconds) to respect rate limits
    DETAIL_FETCH_DELAY = 0.2

    # ==========================================================================
    # Calculated best efforts
    # ==========================================================================
    # Number of most recent activities scanned per run
    BEST_EFFORT_RECENT_ACTIVITIES = 10
