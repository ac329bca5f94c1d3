"""
Audit log repository.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.repository import BaseRepository
from .models import SecurityAuditEvent

logger = logging.getLogger(__name__)


class AuditLogRepository(BaseRepository[SecurityAuditEvent]):
    """Append-only access to the security audit log."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, SecurityAuditEvent)

    async def record(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SecurityAuditEvent:
        """Append an audit event (flushed, committed by the caller)."""
        event = SecurityAuditEvent(
            user_id=user_id,
            event_type=event_type,
            event_details=details or {},
            ip_address=ip_address or "unknown",
            user_agent=user_agent or "unknown",
        )
        self.db.add(event)
        await self.db.flush()
        logger.info(f"Audit event {event_type} for user {user_id}")
        return event
