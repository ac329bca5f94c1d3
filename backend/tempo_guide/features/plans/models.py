"""
Training plan models.

Models:
- TrainingPlan: Plan document (day blocks, enriched over time)
- TrainingDay: One parsed day of a plan
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column, String, DateTime, Date, Boolean, Integer, Float, Text, ForeignKey,
    UniqueConstraint, Index
)

from tempo_guide.models.base import Base


class TrainingPlan(Base):
    """
    Training plan document.

    plan_text holds the day blocks (===DAY_START=== ... ===DAY_END===)
    that the enhancement step rewrites in place.
    """

    __tablename__ = "training_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)

    title = Column(String(200), nullable=True)
    plan_text = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<TrainingPlan {self.id} user_id={self.user_id}>"


class TrainingDay(Base):
    """
    One day of a training plan.

    Essential fields come from the plan parser; detailed fields are filled
    by the enhancement step, which also sets detailed_fields_generated.
    """

    __tablename__ = "training_days"
    __table_args__ = (
        UniqueConstraint("training_plan_id", "date", name="uq_training_days_plan_date"),
        Index("ix_training_days_user_date", "user_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    training_plan_id = Column(
        String(36),
        ForeignKey("training_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(String(36), nullable=False)
    date = Column(Date, nullable=False)

    # Essential fields (parser)
    training_session = Column(Text, nullable=False)   # Rest, Easy Run, Tempo, ...
    mileage_breakdown = Column(Text, nullable=True)
    pace_targets = Column(Text, nullable=True)
    estimated_distance_km = Column(Float, nullable=True)
    estimated_avg_pace_min_per_km = Column(String(20), nullable=True)  # "5:30"
    estimated_moving_time = Column(String(20), nullable=True)          # "1:25"

    # Detailed fields (enhancement)
    heart_rate_zones = Column(Text, nullable=True)
    purpose = Column(Text, nullable=True)
    session_load = Column(String(20), nullable=True)  # Low / Medium / High
    notes = Column(Text, nullable=True)
    what_to_eat_drink = Column(Text, nullable=True)
    additional_training = Column(Text, nullable=True)
    recovery_training = Column(Text, nullable=True)
    estimated_elevation_gain_m = Column(Integer, nullable=True)
    estimated_avg_power_w = Column(Integer, nullable=True)
    estimated_cadence_spm = Column(Integer, nullable=True)
    estimated_calories = Column(Integer, nullable=True)
    daily_nutrition_advice = Column(Text, nullable=True)

    detailed_fields_generated = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<TrainingDay {self.date} {self.training_session}>"
