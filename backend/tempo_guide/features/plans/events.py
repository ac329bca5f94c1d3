"""
Plan update notifications.

In-process publish/subscribe for plan document changes. Every write to a
plan document publishes the new text; subscribers receive each update on
their own queue.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanUpdate:
    plan_id: str
    plan_text: str
    updated_at: datetime


class PlanUpdateBroker:
    """
    Fan-out of plan updates to subscribers.

    Usage:
        async with broker.subscribe(plan_id) as updates:
            update = await updates.get()
    """

    def __init__(self, max_queue_size: int = 100):
        self._max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscriber_count(self, plan_id: str) -> int:
        return len(self._subscribers.get(plan_id, ()))

    @asynccontextmanager
    async def subscribe(self, plan_id: str) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[plan_id].add(queue)
        try:
            yield queue
        finally:
            self._subscribers[plan_id].discard(queue)
            if not self._subscribers[plan_id]:
                del self._subscribers[plan_id]

    def publish(self, update: PlanUpdate) -> int:
        """
        Deliver an update to every subscriber of its plan.

        A full queue drops its oldest update so slow readers always end on
        the latest document.

        Returns:
            Number of subscribers notified
        """
        queues = list(self._subscribers.get(update.plan_id, ()))
        for queue in queues:
            if queue.full():
                queue.get_nowait()
                logger.warning(f"Dropped stale update for plan {update.plan_id}")
            queue.put_nowait(update)
        return len(queues)


# Global broker instance
plan_update_broker = PlanUpdateBroker()
