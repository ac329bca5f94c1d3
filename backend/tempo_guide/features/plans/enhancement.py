"""
Plan enhancement.

A plan document is a sequence of day blocks:

    ===DAY_START===
    date: 2025-03-01
    training_session: Easy Run
    ...
    ===DAY_END===

A day counts as enhanced once its block carries all three required
section headers. Enhancement rewrites one block with the merged fields
and the full section layout.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.errors import NotFound, PersistenceError, ValidationError
from .documents import PlanDocumentService
from .events import PlanUpdateBroker
from .repository import TrainingDayRepository

logger = logging.getLogger(__name__)

DAY_START = "===DAY_START==="
DAY_END = "===DAY_END==="

WORKOUT_OVERVIEW = "🏃‍♂️ WORKOUT OVERVIEW"
WORKOUT_STRUCTURE = "📊 WORKOUT STRUCTURE"
TRAINING_NOTES = "📝 TRAINING NOTES"
NUTRITION_RECOVERY = "🍎 NUTRITION & RECOVERY"
ESTIMATED_METRICS = "📈 ESTIMATED METRICS"
DAILY_NUTRITION = "🥗 DAILY NUTRITION"

REQUIRED_SECTIONS = (WORKOUT_OVERVIEW, WORKOUT_STRUCTURE, NUTRITION_RECOVERY)

# Section -> (field, default when missing)
BLOCK_LAYOUT: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (WORKOUT_OVERVIEW, (
        ("training_session", ""),
        ("purpose", ""),
        ("session_load", ""),
    )),
    (WORKOUT_STRUCTURE, (
        ("mileage_breakdown", "Not specified"),
        ("pace_targets", "Not specified"),
        ("heart_rate_zones", "Not specified"),
    )),
    (TRAINING_NOTES, (
        ("notes", ""),
    )),
    (NUTRITION_RECOVERY, (
        ("what_to_eat_drink", "Standard hydration"),
        ("additional_training", "0"),
        ("recovery_training", "Light stretching"),
    )),
    (ESTIMATED_METRICS, (
        ("estimated_distance_km", "0"),
        ("estimated_avg_pace_min_per_km", "0:00"),
        ("estimated_moving_time", "0:00"),
        ("estimated_elevation_gain_m", "0"),
        ("estimated_avg_power_w", "0"),
        ("estimated_cadence_spm", "0"),
        ("estimated_calories", "0"),
    )),
    (DAILY_NUTRITION, (
        ("daily_nutrition_advice", "Balanced diet with adequate carbs and protein"),
    )),
)

# Rendered placeholder per field; reads back as absent
FIELD_DEFAULTS = {
    name: default
    for _, section_fields in BLOCK_LAYOUT
    for name, default in section_fields
}

# TrainingDay columns filled from an enhanced block
DETAIL_TEXT_FIELDS = (
    "purpose",
    "session_load",
    "mileage_breakdown",
    "pace_targets",
    "heart_rate_zones",
    "notes",
    "what_to_eat_drink",
    "additional_training",
    "recovery_training",
    "daily_nutrition_advice",
)
DETAIL_INT_FIELDS = (
    "estimated_elevation_gain_m",
    "estimated_avg_power_w",
    "estimated_cadence_spm",
    "estimated_calories",
)

_INT_RE = re.compile(r"\d+")


# =============================================================================
# Progress
# =============================================================================

@dataclass(frozen=True)
class EnhancementProgress:
    enhanced: int
    total: int
    percentage: int

    @property
    def is_complete(self) -> bool:
        return self.enhanced >= self.total

    def to_response(self) -> dict:
        return {
            "enhanced": self.enhanced,
            "total": self.total,
            "percentage": self.percentage,
            "isUpdating": not self.is_complete,
        }


def split_day_blocks(plan_text: str) -> list[str]:
    """Blocks following each DAY_START marker (text before the first is dropped)."""
    return plan_text.split(DAY_START)[1:]


def is_enhanced(block: str) -> bool:
    return all(section in block for section in REQUIRED_SECTIONS)


def enhancement_progress(plan_text: str) -> EnhancementProgress:
    """
    Count enhanced day blocks.

    Percentage rounds half up; a document with no blocks reports 0.
    """
    blocks = split_day_blocks(plan_text or "")
    total = len(blocks)
    enhanced = sum(1 for block in blocks if is_enhanced(block))
    percentage = math.floor(enhanced * 100 / total + 0.5) if total else 0
    return EnhancementProgress(enhanced=enhanced, total=total, percentage=percentage)


class EnhancementTracker:
    """
    Live enhancement progress driven by plan update notifications.

    Usage:
        tracker = EnhancementTracker(broker)
        async for progress in tracker.watch(plan_id, plan.plan_text):
            ...
    """

    def __init__(self, broker: PlanUpdateBroker):
        self.broker = broker

    async def watch(
        self,
        plan_id: str,
        initial_text: Optional[str] = None,
        until_complete: bool = False
    ) -> AsyncIterator[EnhancementProgress]:
        """
        Yield progress for the initial text, then once per update.

        With until_complete, stops after the first fully enhanced result.
        """
        async with self.broker.subscribe(plan_id) as updates:
            if initial_text is not None:
                progress = enhancement_progress(initial_text)
                yield progress
                if until_complete and progress.is_complete:
                    return

            while True:
                update = await updates.get()
                progress = enhancement_progress(update.plan_text)
                logger.debug(
                    f"Plan {plan_id} enhancement progress: "
                    f"{progress.enhanced}/{progress.total} days enhanced"
                )
                yield progress
                if until_complete and progress.is_complete:
                    return


# =============================================================================
# Enhancing one day
# =============================================================================

def parse_fields(text: str) -> dict[str, str]:
    """Collect "field: value" lines (later lines win)."""
    fields = {}
    for raw in text.splitlines():
        line = raw.strip()
        if ": " not in line:
            continue
        name, _, value = line.partition(": ")
        fields[name.strip()] = value.strip()
    return fields


def render_day_block(fields: dict[str, str]) -> str:
    """Render a day block body (everything after DAY_START, through DAY_END)."""
    lines = [f"date: {fields.get('date', '')}"]
    for section, section_fields in BLOCK_LAYOUT:
        lines.append("")
        lines.append(section)
        for name, default in section_fields:
            lines.append(f"{name}: {fields.get(name) or default}")
    return "\n" + "\n".join(lines) + "\n" + DAY_END


def apply_day_enhancement(
    plan_text: str,
    day_index: int,
    enhanced_fields: str
) -> tuple[str, dict[str, str]]:
    """
    Merge enhanced fields into one day block.

    Args:
        plan_text: Current plan document
        day_index: Zero-based day block index
        enhanced_fields: "field: value" lines to merge over the block

    Returns:
        (new plan text, merged fields of the day)

    Raises:
        NotFound: No block at day_index
    """
    preamble, *blocks = plan_text.split(DAY_START)
    if day_index < 0 or day_index >= len(blocks):
        raise NotFound(f"Day {day_index + 1} not found in plan")

    body, _, trailer = blocks[day_index].partition(DAY_END)
    merged = parse_fields(body)
    merged.update(parse_fields(enhanced_fields))

    blocks[day_index] = render_day_block(merged) + trailer
    return preamble + DAY_START + DAY_START.join(blocks), merged


def _field_value(fields: dict[str, str], name: str) -> Optional[str]:
    value = fields.get(name)
    if not value or value == FIELD_DEFAULTS.get(name):
        return None
    return value


def _to_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = _INT_RE.search(value.replace(",", ""))
    if not match or int(match.group()) == 0:
        return None
    return int(match.group())


@dataclass(frozen=True)
class DayEnhancementResult:
    day_index: int
    fields_count: int
    progress: EnhancementProgress
    training_day_updated: bool

    def to_response(self) -> dict:
        return {
            "success": True,
            "dayIndex": self.day_index,
            "enhancedFields": self.fields_count,
            "trainingDayUpdated": self.training_day_updated,
            "progress": self.progress.to_response(),
            "message": f"Day {self.day_index + 1} enhanced successfully",
        }


class DayEnhancementService:
    """
    Applies enrichment fields to one day of a plan.

    Rewrites the day block in the plan document, fills the matching
    TrainingDay row, and publishes the new document.
    """

    def __init__(self, db: AsyncSession, broker: PlanUpdateBroker):
        self.db = db
        self.documents = PlanDocumentService(db, broker)
        self.days = TrainingDayRepository(db)

    async def enhance_day(
        self,
        user_id: str,
        plan_id: str,
        day_index: int,
        enhanced_fields: str
    ) -> DayEnhancementResult:
        """
        Raises:
            ValidationError: No "field: value" lines supplied
            NotFound: Plan or day block does not exist
            PersistenceError: Plan or day could not be saved
        """
        new_fields = parse_fields(enhanced_fields or "")
        if not new_fields:
            raise ValidationError("No enhanced fields supplied")

        plan = await self.documents.get(user_id, plan_id)
        new_text, merged = apply_day_enhancement(plan.plan_text, day_index, enhanced_fields)

        try:
            await self.documents.plans.set_text(plan, new_text)
            day_updated = await self._fill_training_day(plan_id, merged)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save enhanced day {day_index + 1} of plan {plan_id}: {e}")
            raise PersistenceError("Failed to update training plan") from e

        self.documents.publish(plan)
        logger.info(f"Enhanced day {day_index + 1} of plan {plan_id}")
        return DayEnhancementResult(
            day_index=day_index,
            fields_count=len(new_fields),
            progress=enhancement_progress(new_text),
            training_day_updated=day_updated,
        )

    async def _fill_training_day(self, plan_id: str, fields: dict[str, str]) -> bool:
        try:
            day = date.fromisoformat(fields.get("date", ""))
        except ValueError:
            logger.warning(f"Enhanced block of plan {plan_id} has no valid date")
            return False

        training_day = await self.days.get_plan_day(plan_id, day)
        if not training_day:
            logger.info(f"No parsed training day {day} for plan {plan_id}")
            return False

        values = {}
        for name in DETAIL_TEXT_FIELDS:
            value = _field_value(fields, name)
            if value:
                values[name] = value
        values.update({name: _to_int(_field_value(fields, name)) for name in DETAIL_INT_FIELDS})
        await self.days.update(training_day, detailed_fields_generated=True, **values)
        return True
