"""
Training plan repositories.
"""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.repository import BaseRepository
from .models import TrainingPlan, TrainingDay


class TrainingPlanRepository(BaseRepository[TrainingPlan]):
    """Repository for plan documents."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, TrainingPlan)

    async def get_for_user(self, plan_id: str, user_id: str) -> TrainingPlan | None:
        """Get a plan only if it belongs to the user."""
        return await self.get_by(id=plan_id, user_id=user_id)

    async def set_text(self, plan: TrainingPlan, plan_text: str) -> TrainingPlan:
        return await self.update(plan, plan_text=plan_text, updated_at=datetime.utcnow())


class TrainingDayRepository(BaseRepository[TrainingDay]):
    """Repository for parsed training days."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, TrainingDay)

    async def get_plan_days(self, plan_id: str) -> list[TrainingDay]:
        result = await self.db.execute(
            select(TrainingDay)
            .where(TrainingDay.training_plan_id == plan_id)
            .order_by(TrainingDay.date)
        )
        return list(result.scalars().all())

    async def get_plan_day(self, plan_id: str, day: date) -> TrainingDay | None:
        return await self.get_by(training_plan_id=plan_id, date=day)

    async def replace_for_plan(self, plan_id: str, rows: list[dict]) -> int:
        """
        Delete all days of a plan, then insert rows.

        Readers in other sessions may see zero rows until the caller commits.
        """
        await self.delete_where(training_plan_id=plan_id)
        return await self.insert_in_batches(rows)
