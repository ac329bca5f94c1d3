"""
User-related models.

Models:
- Profile: Runner profile with Strava connection flags

Users themselves live in the external authentication provider; the
profile is keyed by that provider's user id.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Float, Date, Text
import uuid

from tempo_guide.models.base import Base


class Profile(Base):
    """
    Runner profile.

    Holds onboarding answers and the Strava connection flags. The flags
    must agree with the presence of a StravaToken row for the same user.
    """

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), unique=True, index=True, nullable=False)

    # Onboarding
    display_name = Column(String(100), nullable=True)
    goal = Column(Text, nullable=True)
    race_date = Column(Date, nullable=True)
    race_distance_km = Column(Float, nullable=True)
    days_per_week = Column(Integer, nullable=True)

    # Strava connection flags
    strava_connected = Column(Boolean, default=False, nullable=False)
    strava_athlete_id = Column(String(20), nullable=True)
    strava_connected_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Profile user_id={self.user_id} strava={self.strava_connected}>"
