"""
Strava Routes

Endpoints for Strava integration:
- /strava/connect - Start OAuth flow (returns authorization URL)
- /auth/strava/callback - Handle OAuth callback (always redirects)
- /strava/import - Import stats, runs and best efforts
- /strava/disconnect - Disconnect Strava and purge imported data
- /strava/status - Connection status (repairs inconsistent flags)
- /strava/activities - Imported runs
- /strava/activities/{id}/splits - Splits and laps of one imported run
- /strava/best-efforts - Best times per distance
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.api.deps import (
    get_current_user_id,
    get_optional_strava_oauth,
    get_optional_token_cipher,
    get_strava_client,
    get_strava_oauth,
    get_token_cipher,
)
from tempo_guide.config import settings
from tempo_guide.db.session import get_async_db
from tempo_guide.features.strava import (
    CallbackFailure,
    CallbackHandler,
    ConnectFlow,
    ConnectionStatusService,
    DisconnectService,
    RequestContext,
    StateTokenStore,
    StravaActivityLapRepository,
    StravaActivityRepository,
    StravaActivitySplitRepository,
    StravaBestEffortRepository,
    StravaClient,
    StravaOAuth,
    TokenCipher,
    TokenVault,
)
from tempo_guide.features.strava.importer import ActivityImporter
from tempo_guide.shared.urls import with_query

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class ConnectRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    frontend_origin: Optional[str] = Field(default=None, alias="frontendOrigin")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")


class ConnectResponse(BaseModel):
    url: str


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    strava_activity_id: int
    name: Optional[str] = None
    activity_type: str
    start_date: datetime
    distance: Optional[float] = None
    distance_km: Optional[float] = None
    moving_time: Optional[int] = None
    elapsed_time: Optional[int] = None
    total_elevation_gain: Optional[float] = None
    average_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_cadence: Optional[float] = None
    average_watts: Optional[float] = None
    suffer_score: Optional[int] = None
    kudos_count: Optional[int] = None
    achievement_count: Optional[int] = None
    pace_min_per_km: Optional[float] = None


class ActivitiesResponse(BaseModel):
    activities: list[ActivityOut]
    total: int


class SplitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    split_number: int
    distance_m: float
    moving_time_s: Optional[int] = None
    elapsed_time_s: int
    elevation_diff_m: Optional[float] = None
    average_speed_mps: Optional[float] = None
    average_heartrate: Optional[float] = None
    pace_zone: Optional[int] = None
    pace_min_per_km: Optional[float] = None


class LapOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lap_number: int
    name: Optional[str] = None
    distance_m: float
    moving_time_s: Optional[int] = None
    elapsed_time_s: int
    average_speed_mps: Optional[float] = None
    max_speed_mps: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_cadence: Optional[float] = None
    average_watts: Optional[float] = None


class ActivitySplitsResponse(BaseModel):
    strava_activity_id: int
    splits: list[SplitOut]
    laps: list[LapOut]


class BestEffortOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    source: str
    distance: float
    elapsed_time: int
    moving_time: Optional[int] = None
    strava_activity_id: Optional[int] = None
    start_date: Optional[datetime] = None
    pr_rank: Optional[int] = None


class BestEffortsResponse(BaseModel):
    best_efforts: list[BestEffortOut]


# =============================================================================
# Helpers
# =============================================================================

def _request_context(request: Request) -> RequestContext:
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else None
    if not ip and request.client:
        ip = request.client.host
    return RequestContext(ip_address=ip, user_agent=request.headers.get("user-agent"))


def _state_store(db: AsyncSession) -> StateTokenStore:
    return StateTokenStore(db, ttl=timedelta(minutes=settings.state_token_ttl_minutes))


def _allowed_origins() -> list[str]:
    return [settings.frontend_origin, *settings.cors_origins]


# =============================================================================
# OAuth Flow
# =============================================================================

@router.post("/strava/connect", response_model=ConnectResponse)
async def strava_connect(
    request: Request,
    body: Optional[ConnectRequest] = None,
    user_id: str = Depends(get_current_user_id),
    oauth: StravaOAuth = Depends(get_strava_oauth),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Start the Strava OAuth flow.

    The frontend navigates the browser to the returned URL.
    """
    body = body or ConnectRequest()
    flow = ConnectFlow(
        db,
        oauth,
        _state_store(db),
        callback_path=settings.strava_callback_path,
        allowed_origins=_allowed_origins(),
    )
    url = await flow.begin_connect(
        user_id,
        frontend_origin=body.frontend_origin or request.headers.get("origin") or settings.frontend_origin,
        redirect_url=body.redirect_url,
        context=_request_context(request),
    )
    return ConnectResponse(url=url)


@router.get("/auth/strava/callback")
async def strava_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    scope: Optional[str] = Query(None),
    oauth: Optional[StravaOAuth] = Depends(get_optional_strava_oauth),
    cipher: Optional[TokenCipher] = Depends(get_optional_token_cipher),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Handle Strava OAuth callback.

    Always answers with a redirect to the frontend carrying either
    ?strava=connected or ?error=<code>.
    """
    if oauth is None or cipher is None:
        logger.error("Strava callback received but Strava integration is not configured")
        return RedirectResponse(
            url=with_query(settings.frontend_origin, error=CallbackFailure.CONNECTION_FAILED.value),
            status_code=302,
        )

    handler = CallbackHandler(
        db,
        oauth,
        _state_store(db),
        TokenVault(db, oauth, cipher),
        default_redirect=settings.frontend_origin,
    )
    outcome = await handler.handle(code=code, state=state, error=error, scope=scope)
    return RedirectResponse(url=outcome.redirect_url, status_code=302)


# =============================================================================
# Import
# =============================================================================

@router.post("/strava/import")
async def strava_import(
    user_id: str = Depends(get_current_user_id),
    oauth: StravaOAuth = Depends(get_strava_oauth),
    client: StravaClient = Depends(get_strava_client),
    cipher: TokenCipher = Depends(get_token_cipher),
    db: AsyncSession = Depends(get_async_db)
):
    """Import stats, runs from the last 6 months, and best efforts."""
    importer = ActivityImporter(db, TokenVault(db, oauth, cipher), client)
    result = await importer.import_activities(user_id)
    return result.to_response()


# =============================================================================
# Status & Disconnect
# =============================================================================

@router.get("/strava/status")
async def strava_status(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Check Strava connection status."""
    status = await ConnectionStatusService(db).get_status(user_id)
    return status.to_response()


@router.post("/strava/disconnect")
async def strava_disconnect(
    user_id: str = Depends(get_current_user_id),
    oauth: StravaOAuth = Depends(get_strava_oauth),
    cipher: TokenCipher = Depends(get_token_cipher),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Disconnect Strava account.

    - Revokes access at Strava
    - Clears profile flags and deletes stored tokens
    - Purges imported activities, best efforts and stats
    """
    service = DisconnectService(db, oauth, TokenVault(db, oauth, cipher))
    result = await service.disconnect(user_id)
    return result.to_response()


# =============================================================================
# Imported Data
# =============================================================================

@router.get("/strava/activities", response_model=ActivitiesResponse)
async def strava_activities(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Imported runs, newest first."""
    repo = StravaActivityRepository(db)
    activities = await repo.get_user_activities(user_id, limit=limit, offset=offset)
    return ActivitiesResponse(
        activities=[ActivityOut.model_validate(a) for a in activities],
        total=await repo.count_user_activities(user_id),
    )


@router.get("/strava/activities/{strava_activity_id}/splits", response_model=ActivitySplitsResponse)
async def strava_activity_splits(
    strava_activity_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    splits = await StravaActivitySplitRepository(db).get_for_activity(user_id, strava_activity_id)
    laps = await StravaActivityLapRepository(db).get_for_activity(user_id, strava_activity_id)
    return ActivitySplitsResponse(
        strava_activity_id=strava_activity_id,
        splits=[SplitOut.model_validate(s) for s in splits],
        laps=[LapOut.model_validate(lap) for lap in laps],
    )

@router.get("/strava/best-efforts", response_model=BestEffortsResponse)
async def strava_best_efforts(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Best efforts, shortest distance first."""
    efforts = await StravaBestEffortRepository(db).get_user_best_efforts(user_id)
    return BestEffortsResponse(best_efforts=[BestEffortOut.model_validate(e) for e in efforts])
