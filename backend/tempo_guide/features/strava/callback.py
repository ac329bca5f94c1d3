"""
Strava OAuth callback handler.

Processes the browser redirect coming back from Strava as an explicit
state machine:

    RECEIVED_CALLBACK -> STATE_VALIDATED -> CODE_EXCHANGED
        -> TOKENS_PERSISTED -> PROFILE_UPDATED -> REDIRECTED

Every terminal failure carries exactly one CallbackFailure whose value is
the error code appended to the frontend redirect.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.features.audit import AuditEvent, AuditLogRepository
from tempo_guide.features.users import ProfileRepository
from tempo_guide.shared.errors import PersistenceError, StateTokenError
from tempo_guide.shared.urls import with_query
from .oauth import StravaOAuth, StravaOAuthError
from .state_tokens import StateTokenClaim, StateTokenStore
from .vault import TokenVault

logger = logging.getLogger(__name__)


class CallbackState(str, Enum):
    """Progress of one callback request."""

    RECEIVED_CALLBACK = "received_callback"
    STATE_VALIDATED = "state_validated"
    CODE_EXCHANGED = "code_exchanged"
    TOKENS_PERSISTED = "tokens_persisted"
    PROFILE_UPDATED = "profile_updated"
    REDIRECTED = "redirected"


class CallbackFailure(str, Enum):
    """Terminal failure reasons; values are the frontend error codes."""

    ACCESS_DENIED = "access_denied"
    INVALID_STATE = "invalid_state"
    STATE_REUSED = "state_reused"
    STATE_EXPIRED = "state_expired"
    CONNECTION_FAILED = "strava_connection_failed"

    @classmethod
    def from_state_error(cls, error: StateTokenError) -> "CallbackFailure":
        return cls(error.redirect_code)


@dataclass(frozen=True)
class CallbackOutcome:
    """Where to send the browser, and how far the handshake got."""

    redirect_url: str
    reached: CallbackState
    failure: Optional[CallbackFailure] = None
    user_id: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.failure is None


class _Abort(Exception):
    """Internal: stop the machine with a failure reason."""

    def __init__(self, failure: CallbackFailure):
        super().__init__(failure.value)
        self.failure = failure


class CallbackHandler:
    """
    Completes a Strava connection from the OAuth redirect.

    Usage:
        handler = CallbackHandler(db, oauth, state_store, vault, settings.frontend_origin)
        outcome = await handler.handle(code=code, state=state, error=error)
        return RedirectResponse(outcome.redirect_url)
    """

    def __init__(
        self,
        db: AsyncSession,
        oauth: StravaOAuth,
        state_store: StateTokenStore,
        vault: TokenVault,
        default_redirect: str,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.oauth = oauth
        self.state_store = state_store
        self.vault = vault
        self.default_redirect = default_redirect
        self._clock = clock
        self.profiles = ProfileRepository(db)
        self.audit = AuditLogRepository(db)

    async def handle(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        scope: Optional[str] = None
    ) -> CallbackOutcome:
        """
        Run the callback state machine. Never raises for expected failures.

        Args:
            code: Authorization code from Strava
            state: State token issued at connect time
            error: Error reported by Strava (e.g. the user denied access)
            scope: Scope actually granted by the user
        """
        reached = CallbackState.RECEIVED_CALLBACK
        claim: Optional[StateTokenClaim] = None

        try:
            if error:
                logger.info(f"Strava authorization returned error: {error}")
                raise _Abort(CallbackFailure.ACCESS_DENIED)
            if not code or not state:
                logger.warning("Strava callback missing code or state")
                raise _Abort(CallbackFailure.CONNECTION_FAILED)

            claim = await self._validate_state(state)
            reached = CallbackState.STATE_VALIDATED

            token_data = await self._exchange(code, claim.user_id)
            reached = CallbackState.CODE_EXCHANGED

            await self._store_tokens(claim.user_id, token_data, scope)
            reached = CallbackState.TOKENS_PERSISTED

            await self._update_profile(claim.user_id, token_data, scope)
            reached = CallbackState.PROFILE_UPDATED

        except _Abort as abort:
            target = (claim.redirect_url if claim else None) or self.default_redirect
            logger.info(
                f"Strava callback failed after {reached.value}: {abort.failure.value}"
            )
            return CallbackOutcome(
                redirect_url=with_query(target, error=abort.failure.value),
                reached=reached,
                failure=abort.failure,
                user_id=claim.user_id if claim else None,
            )

        target = claim.redirect_url or self.default_redirect
        logger.info(f"Strava connected for user {claim.user_id}")
        return CallbackOutcome(
            redirect_url=with_query(target, strava="connected"),
            reached=CallbackState.REDIRECTED,
            user_id=claim.user_id,
        )

    async def _validate_state(self, state: str) -> StateTokenClaim:
        try:
            return await self.state_store.validate_and_consume(state)
        except StateTokenError as e:
            logger.warning(f"Strava callback state rejected: {e}")
            raise _Abort(CallbackFailure.from_state_error(e)) from e
        except PersistenceError as e:
            logger.error(f"Strava callback state check failed: {e}")
            raise _Abort(CallbackFailure.CONNECTION_FAILED) from e

    async def _exchange(self, code: str, user_id: str) -> dict:
        try:
            token_data = await self.oauth.exchange_code(code)
        except StravaOAuthError as e:
            logger.error(f"Strava code exchange failed for user {user_id}: {e}")
            raise _Abort(CallbackFailure.CONNECTION_FAILED) from e

        if not token_data.get("access_token") or not token_data.get("refresh_token"):
            logger.error(f"Strava token response incomplete for user {user_id}")
            raise _Abort(CallbackFailure.CONNECTION_FAILED)
        return token_data

    async def _store_tokens(self, user_id: str, token_data: dict, scope: Optional[str]) -> None:
        try:
            await self.vault.store_tokens(user_id, token_data, scope=scope)
        except (SQLAlchemyError, PersistenceError) as e:
            await self.db.rollback()
            logger.error(f"Failed to store Strava tokens for user {user_id}: {e}")
            raise _Abort(CallbackFailure.CONNECTION_FAILED) from e

    async def _update_profile(self, user_id: str, token_data: dict, scope: Optional[str]) -> None:
        """Set connection flags and commit together with the flushed token row."""
        athlete_id = (token_data.get("athlete") or {}).get("id")
        athlete_id = str(athlete_id) if athlete_id is not None else None
        try:
            await self.profiles.mark_strava_connected(
                user_id, athlete_id, connected_at=self._clock()
            )
            await self.audit.record(
                AuditEvent.STRAVA_CONNECTED,
                user_id=user_id,
                details={"athlete_id": athlete_id, "scope": scope},
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save Strava connection for user {user_id}: {e}")
            raise _Abort(CallbackFailure.CONNECTION_FAILED) from e
