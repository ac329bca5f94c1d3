"""
Strava-related database models.

Models:
- OAuthStateToken: Single-use state binding an OAuth handshake to a user
- StravaToken: Encrypted OAuth tokens for Strava API
- StravaActivity: Imported running activity
- StravaBestEffort: Fastest time per standard distance
- StravaStats: Aggregate run totals per period
- StravaActivitySplit: Per-kilometer splits of an imported activity
- StravaActivityLap: Laps of an imported activity
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, Integer, Float, BigInteger, Text, UniqueConstraint, Index
)

from tempo_guide.models.base import Base
from tempo_guide.shared.constants import METERS_PER_KM


class OAuthStateToken(Base):
    """
    OAuth state token.

    Consumable exactly once (used_at goes from NULL to a timestamp) and only
    before expires_at. Rows are kept after use for audit.
    """

    __tablename__ = "oauth_state_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    redirect_url = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    used_at = Column(DateTime, nullable=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at

    def __repr__(self):
        return f"<OAuthStateToken user_id={self.user_id} used={self.used_at is not None}>"


class StravaToken(Base):
    """
    Strava OAuth token storage.

    At most one row per user. Token columns hold ciphertext produced by
    TokenCipher, never the raw provider tokens.
    """

    __tablename__ = "strava_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), unique=True, nullable=False, index=True)

    # Strava athlete info
    strava_athlete_id = Column(String(20), nullable=True)

    # Encrypted OAuth tokens
    access_token_encoded = Column(Text, nullable=False)
    refresh_token_encoded = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    # Token scope
    scope = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if access token is expired."""
        return (now or datetime.utcnow()) >= self.expires_at

    def __repr__(self):
        return f"<StravaToken user_id={self.user_id} athlete_id={self.strava_athlete_id}>"


class StravaActivity(Base):
    """
    Imported Strava running activity.

    One row per (user, Strava activity id). Replaced wholesale on each
    import run.
    """

    __tablename__ = "strava_activities"
    __table_args__ = (
        UniqueConstraint("user_id", "strava_activity_id", name="uq_strava_activities_user_activity"),
        Index("ix_strava_activities_user_date", "user_id", "start_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)

    # Strava identifiers
    strava_activity_id = Column(BigInteger, nullable=False)

    # Activity info
    name = Column(String(255), nullable=True)
    activity_type = Column(String(50), nullable=False)
    start_date = Column(DateTime, nullable=False)

    # Core metrics
    distance = Column(Float, nullable=True)          # meters
    moving_time = Column(Integer, nullable=True)     # seconds
    elapsed_time = Column(Integer, nullable=True)    # seconds
    total_elevation_gain = Column(Float, nullable=True)
    average_speed = Column(Float, nullable=True)     # m/s
    max_speed = Column(Float, nullable=True)

    # Heart rate / power / cadence
    average_heartrate = Column(Float, nullable=True)
    max_heartrate = Column(Float, nullable=True)
    average_cadence = Column(Float, nullable=True)
    average_watts = Column(Float, nullable=True)
    weighted_average_watts = Column(Float, nullable=True)
    kilojoules = Column(Float, nullable=True)

    # Strava computed / engagement
    suffer_score = Column(Integer, nullable=True)
    kudos_count = Column(Integer, nullable=True)
    achievement_count = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<StravaActivity {self.strava_activity_id} {self.activity_type} {self.distance}m>"

    @property
    def distance_km(self) -> float:
        """Distance in kilometers."""
        return round(self.distance / METERS_PER_KM, 2) if self.distance else 0

    @property
    def pace_min_per_km(self) -> float | None:
        """Average pace in min/km."""
        if not self.distance or not self.moving_time:
            return None
        return round((self.moving_time / 60) / (self.distance / METERS_PER_KM), 2)


class StravaBestEffort(Base):
    """
    Best effort over a named distance.

    source = "strava": effort reported by Strava in activity detail,
        effort_key is Strava's effort id.
    source = "calculated": fastest qualifying activity for a standard
        distance, effort_key is "calculated-<slug>" so reruns upsert.
    """

    __tablename__ = "strava_best_efforts"
    __table_args__ = (
        UniqueConstraint("user_id", "effort_key", name="uq_strava_best_efforts_user_key"),
        Index("ix_strava_best_efforts_user_distance", "user_id", "distance"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)

    effort_key = Column(String(64), nullable=False)
    source = Column(String(20), nullable=False, default="calculated")
    strava_activity_id = Column(BigInteger, nullable=True)

    name = Column(String(50), nullable=False)        # "5K", "Half Marathon", ...
    distance = Column(Float, nullable=False)         # meters
    elapsed_time = Column(Integer, nullable=False)   # seconds
    moving_time = Column(Integer, nullable=True)
    start_date = Column(DateTime, nullable=True)
    achievement_rank = Column(Integer, nullable=True)
    pr_rank = Column(Integer, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<StravaBestEffort {self.name} {self.elapsed_time}s ({self.source})>"


class StravaStats(Base):
    """Aggregate run totals for one period (recent, ytd, all)."""

    __tablename__ = "strava_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "period_type", name="uq_strava_stats_user_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)

    period_type = Column(String(10), nullable=False)
    count = Column(Integer, nullable=True)
    distance = Column(Float, nullable=True)
    moving_time = Column(Integer, nullable=True)
    elevation_gain = Column(Float, nullable=True)
    achievement_count = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<StravaStats {self.period_type} count={self.count}>"


class StravaActivitySplit(Base):
    """
    Per-kilometer split from a Strava activity's detail (splits_metric).

    Keyed by the Strava activity id rather than the local row id, since
    strava_activities rows are replaced on every import.
    """

    __tablename__ = "strava_activity_splits"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "strava_activity_id", "split_number",
            name="uq_strava_activity_splits_user_activity_split"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    strava_activity_id = Column(BigInteger, nullable=False, index=True)

    # Split info
    split_number = Column(Integer, nullable=False)  # 1, 2, 3...
    distance_m = Column(Float, nullable=False)      # Usually ~1000m

    # Time metrics
    moving_time_s = Column(Integer, nullable=True)
    elapsed_time_s = Column(Integer, nullable=False)

    elevation_diff_m = Column(Float, nullable=True)  # +/- meters

    # Performance
    average_speed_mps = Column(Float, nullable=True)
    average_grade_adjusted_speed_mps = Column(Float, nullable=True)
    average_heartrate = Column(Float, nullable=True)
    pace_zone = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Split #{self.split_number} {self.distance_m}m {self.elevation_diff_m}m>"

    @property
    def pace_min_per_km(self) -> float | None:
        if not self.distance_m or not self.moving_time_s:
            return None
        return round((self.moving_time_s / 60) / (self.distance_m / METERS_PER_KM), 2)


class StravaActivityLap(Base):
    """Lap (manual or auto) from a Strava activity's detail."""

    __tablename__ = "strava_activity_laps"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "strava_activity_id", "lap_number",
            name="uq_strava_activity_laps_user_activity_lap"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    strava_activity_id = Column(BigInteger, nullable=False, index=True)

    lap_number = Column(Integer, nullable=False)
    name = Column(String(100), nullable=True)
    distance_m = Column(Float, nullable=False)
    moving_time_s = Column(Integer, nullable=True)
    elapsed_time_s = Column(Integer, nullable=False)

    average_speed_mps = Column(Float, nullable=True)
    max_speed_mps = Column(Float, nullable=True)
    average_heartrate = Column(Float, nullable=True)
    max_heartrate = Column(Float, nullable=True)
    average_cadence = Column(Float, nullable=True)
    average_watts = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Lap #{self.lap_number} {self.distance_m}m {self.elapsed_time_s}s>"
