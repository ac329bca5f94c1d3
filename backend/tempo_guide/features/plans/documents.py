"""
Plan document storage.

Every change to a plan's text goes through PlanDocumentService so that
subscribers are notified of each committed update.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.errors import NotFound, PersistenceError
from .events import PlanUpdate, PlanUpdateBroker
from .models import TrainingPlan
from .repository import TrainingPlanRepository

logger = logging.getLogger(__name__)


class PlanDocumentService:
    """
    Create, read and rewrite plan documents.

    Usage:
        docs = PlanDocumentService(db, broker)
        plan = await docs.create(user_id, plan_text)
        plan = await docs.replace_text(user_id, plan.id, new_text)
    """

    def __init__(
        self,
        db: AsyncSession,
        broker: PlanUpdateBroker,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.broker = broker
        self._clock = clock
        self.plans = TrainingPlanRepository(db)

    async def get(self, user_id: str, plan_id: str) -> TrainingPlan:
        """
        Raises:
            NotFound: No such plan for this user
        """
        plan = await self.plans.get_for_user(plan_id, user_id)
        if not plan:
            raise NotFound(f"Training plan {plan_id} not found")
        return plan

    async def create(
        self,
        user_id: str,
        plan_text: str,
        title: Optional[str] = None
    ) -> TrainingPlan:
        try:
            plan = await self.plans.create(user_id=user_id, plan_text=plan_text, title=title)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("Failed to save training plan") from e
        logger.info(f"Created training plan {plan.id} for user {user_id}")
        return plan

    async def replace_text(self, user_id: str, plan_id: str, plan_text: str) -> TrainingPlan:
        """Overwrite the document and notify subscribers after commit."""
        plan = await self.get(user_id, plan_id)
        try:
            await self.plans.set_text(plan, plan_text)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("Failed to update training plan") from e

        self.publish(plan)
        return plan

    def publish(self, plan: TrainingPlan) -> int:
        notified = self.broker.publish(
            PlanUpdate(
                plan_id=plan.id,
                plan_text=plan.plan_text,
                updated_at=plan.updated_at or self._clock(),
            )
        )
        logger.debug(f"Plan {plan.id} update sent to {notified} subscribers")
        return notified
