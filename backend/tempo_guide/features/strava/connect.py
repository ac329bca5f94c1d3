"""
Strava connect flow.

Starts an OAuth handshake: issues a state token, records the attempt in
the security audit log, and builds the Strava authorization URL.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.features.audit import AuditEvent, AuditLogRepository
from tempo_guide.shared.errors import ValidationError
from tempo_guide.shared.urls import is_allowed_origin
from .oauth import StravaOAuth
from .state_tokens import StateTokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Caller network details recorded in the audit log."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ConnectFlow:
    """
    Builds the Strava authorization redirect for an authenticated user.

    Usage:
        flow = ConnectFlow(db, oauth, state_store, callback_path, allowed_origins)
        url = await flow.begin_connect(user_id, "https://app.example.com")
    """

    def __init__(
        self,
        db: AsyncSession,
        oauth: StravaOAuth,
        state_store: StateTokenStore,
        callback_path: str,
        allowed_origins: list[str]
    ):
        self.db = db
        self.oauth = oauth
        self.state_store = state_store
        self.callback_path = callback_path
        self.allowed_origins = allowed_origins
        self.audit = AuditLogRepository(db)

    def callback_uri(self, frontend_origin: str) -> str:
        return f"{frontend_origin.rstrip('/')}/{self.callback_path.lstrip('/')}"

    async def begin_connect(
        self,
        user_id: str,
        frontend_origin: str,
        redirect_url: Optional[str] = None,
        context: RequestContext = RequestContext()
    ) -> str:
        """
        Start the OAuth handshake.

        Args:
            user_id: Authenticated caller
            frontend_origin: Origin the callback URI is derived from
            redirect_url: Where to send the browser after the callback
                (defaults to frontend_origin)
            context: Caller IP / user agent for the audit log

        Returns:
            Strava authorization URL with the state token embedded

        Raises:
            ValidationError: Origin or redirect target is not allowed
            PersistenceError: State token could not be stored
        """
        if not user_id:
            raise ValidationError("User ID is required")

        return_to = redirect_url or frontend_origin
        for url in (frontend_origin, return_to):
            if not is_allowed_origin(url, self.allowed_origins):
                raise ValidationError(f"Redirect target not allowed: {url}")

        state = await self.state_store.issue(user_id, return_to)

        await self._audit(user_id, frontend_origin, return_to, context)

        auth_url = self.oauth.get_authorization_url(
            redirect_uri=self.callback_uri(frontend_origin),
            state=state,
        )
        logger.info(f"Strava OAuth initiated for user {user_id}")
        return auth_url

    async def _audit(
        self,
        user_id: str,
        frontend_origin: str,
        redirect_url: str,
        context: RequestContext
    ) -> None:
        try:
            await self.audit.record(
                AuditEvent.STRAVA_AUTH_INITIATED,
                user_id=user_id,
                details={"origin": frontend_origin, "redirect_url": redirect_url},
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to write audit event for user {user_id}: {e}")
