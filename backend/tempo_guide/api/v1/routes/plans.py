"""
Training Plan Routes

Endpoints:
- POST /plans - Store a plan document
- GET /plans/{plan_id} - Plan document with its parsed days
- PUT /plans/{plan_id}/document - Replace the document text
- POST /plans/parse - Parse a plan listing into training days
- POST /plans/{plan_id}/days/{day_index}/enhance - Merge enrichment fields into one day
- GET /plans/{plan_id}/progress - Enhancement progress snapshot
- GET /plans/{plan_id}/progress/stream - Enhancement progress as server-sent events
"""

import json
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.api.deps import get_current_user_id, get_plan_broker
from tempo_guide.db.session import get_async_db
from tempo_guide.features.plans import (
    DayEnhancementService,
    EnhancementTracker,
    PlanDocumentService,
    PlanParser,
    PlanUpdateBroker,
    TrainingDayRepository,
    enhancement_progress,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class PlanCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_text: str = Field(alias="planText")
    title: Optional[str] = None


class PlanDocumentUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_text: str = Field(alias="planText")


class ParseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(default="", alias="planId")
    plan_text: str = Field(default="", alias="planText")


class EnhanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enhanced_fields: str = Field(alias="enhancedFields")


class TrainingDayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    training_session: str
    mileage_breakdown: Optional[str] = None
    pace_targets: Optional[str] = None
    estimated_distance_km: Optional[float] = None
    estimated_avg_pace_min_per_km: Optional[str] = None
    estimated_moving_time: Optional[str] = None
    heart_rate_zones: Optional[str] = None
    purpose: Optional[str] = None
    session_load: Optional[str] = None
    notes: Optional[str] = None
    what_to_eat_drink: Optional[str] = None
    additional_training: Optional[str] = None
    recovery_training: Optional[str] = None
    estimated_elevation_gain_m: Optional[int] = None
    estimated_avg_power_w: Optional[int] = None
    estimated_cadence_spm: Optional[int] = None
    estimated_calories: Optional[int] = None
    daily_nutrition_advice: Optional[str] = None
    detailed_fields_generated: bool = False


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: Optional[str] = None
    plan_text: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    days: list[TrainingDayOut] = []


# =============================================================================
# Plan documents
# =============================================================================

@router.post("/plans", response_model=PlanOut, status_code=201)
async def create_plan(
    body: PlanCreate,
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    plan = await PlanDocumentService(db, broker).create(user_id, body.plan_text, title=body.title)
    return PlanOut.model_validate(plan)


@router.get("/plans/{plan_id}", response_model=PlanOut)
async def get_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    plan = await PlanDocumentService(db, broker).get(user_id, plan_id)
    days = await TrainingDayRepository(db).get_plan_days(plan.id)
    out = PlanOut.model_validate(plan)
    out.days = [TrainingDayOut.model_validate(d) for d in days]
    return out


@router.put("/plans/{plan_id}/document", response_model=PlanOut)
async def replace_plan_document(
    plan_id: str,
    body: PlanDocumentUpdate,
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    """Replace the document text and notify progress subscribers."""
    plan = await PlanDocumentService(db, broker).replace_text(user_id, plan_id, body.plan_text)
    return PlanOut.model_validate(plan)


# =============================================================================
# Parsing & enhancement
# =============================================================================

@router.post("/plans/parse")
async def parse_plan(
    body: ParseRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Parse a plan listing into training days.

    Replaces any days previously parsed for the plan.
    """
    count = await PlanParser(db).parse(user_id, body.plan_id, body.plan_text)
    return {
        "success": True,
        "parsedDays": count,
        "message": "Training plan parsed and saved successfully",
    }


@router.post("/plans/{plan_id}/days/{day_index}/enhance")
async def enhance_plan_day(
    plan_id: str,
    body: EnhanceRequest,
    day_index: int = Path(..., ge=0),
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    """Merge generated "field: value" lines into one day of the plan."""
    result = await DayEnhancementService(db, broker).enhance_day(
        user_id, plan_id, day_index, body.enhanced_fields
    )
    return result.to_response()


# =============================================================================
# Progress
# =============================================================================

@router.get("/plans/{plan_id}/progress")
async def plan_progress(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    plan = await PlanDocumentService(db, broker).get(user_id, plan_id)
    return enhancement_progress(plan.plan_text).to_response()


@router.get("/plans/{plan_id}/progress/stream")
async def plan_progress_stream(
    plan_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    broker: PlanUpdateBroker = Depends(get_plan_broker),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Server-sent events: one "progress" event now, then one per plan update.

    The stream ends once every day is enhanced or the client disconnects.
    """
    plan = await PlanDocumentService(db, broker).get(user_id, plan_id)
    tracker = EnhancementTracker(broker)

    async def events():
        async for progress in tracker.watch(plan_id, plan.plan_text, until_complete=True):
            if await request.is_disconnected():
                logger.debug(f"Progress stream for plan {plan_id} closed by client")
                break
            yield f"event: progress\ndata: {json.dumps(progress.to_response())}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
