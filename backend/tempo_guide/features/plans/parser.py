"""
Training plan parser.

Converts the pipe-delimited plan listing produced by the plan generator
into TrainingDay rows. One line per day:

    date|training_session|mileage_breakdown|pace_targets|estimated_distance|avg_pace|moving_time

Lines without "|" are ignored; lines with the wrong number of fields or an
unreadable date are skipped with a warning.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tempo_guide.shared.constants import KM_PER_MILE
from tempo_guide.shared.errors import PersistenceError, PlanParseError
from .repository import TrainingDayRepository, TrainingPlanRepository

logger = logging.getLogger(__name__)

FIELD_DELIMITER = "|"
FIELD_COUNT = 7

# Values the generator writes for "nothing here"
ABSENT_VALUES = frozenset({"", "N/A", "n/a", "NA", "0", "0.0", "0:00"})

_DISTANCE_RE = re.compile(
    r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>km|kms|kilometers?|kilometres?|mi|miles?)?\s*$",
    re.IGNORECASE,
)


def absent_to_none(value: str) -> Optional[str]:
    value = value.strip()
    return None if value in ABSENT_VALUES else value


def parse_distance_km(value: str) -> Optional[float]:
    """
    Parse a distance to kilometres.

    Examples:
        "8" -> 8.0
        "10.5 km" -> 10.5
        "4 miles" -> 6.437
        "N/A" -> None
    """
    if absent_to_none(value) is None:
        return None
    match = _DISTANCE_RE.match(value)
    if not match:
        return None
    distance = float(match.group("value"))
    unit = (match.group("unit") or "km").lower()
    if unit.startswith("mi"):
        distance *= KM_PER_MILE
    distance = round(distance, 3)
    return distance if distance > 0 else None


@dataclass
class ParsedPlan:
    """Result of parsing plan text: valid rows plus skipped lines."""

    days: list[dict] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def parse_plan_line(line: str) -> Optional[dict]:
    """Parse one delimited line. Returns None if it is malformed."""
    parts = [part.strip() for part in line.split(FIELD_DELIMITER)]
    if len(parts) != FIELD_COUNT:
        return None

    date_str, session, mileage, paces, distance, avg_pace, moving_time = parts
    try:
        day = date.fromisoformat(date_str)
    except ValueError:
        return None
    if not session:
        return None

    return {
        "date": day,
        "training_session": session,
        "mileage_breakdown": absent_to_none(mileage),
        "pace_targets": absent_to_none(paces),
        "estimated_distance_km": parse_distance_km(distance),
        "estimated_avg_pace_min_per_km": absent_to_none(avg_pace),
        "estimated_moving_time": absent_to_none(moving_time),
        "detailed_fields_generated": False,
    }


def parse_plan_text(plan_text: str) -> ParsedPlan:
    """
    Parse a whole plan listing.

    A date repeated within one listing keeps its first line.
    """
    result = ParsedPlan()
    seen: set[date] = set()

    for raw in plan_text.strip().splitlines():
        line = raw.strip()
        if not line or FIELD_DELIMITER not in line:
            continue

        day = parse_plan_line(line)
        if day is None:
            logger.warning(f"Skipping malformed plan line: {line}")
            result.skipped.append(line)
            continue
        if day["date"] in seen:
            logger.warning(f"Skipping duplicate plan date: {line}")
            result.skipped.append(line)
            continue

        seen.add(day["date"])
        result.days.append(day)

    return result


class PlanParser:
    """
    Parses plan text and replaces the plan's TrainingDay rows.

    Usage:
        parser = PlanParser(db)
        count = await parser.parse(user_id, plan_id, plan_text)
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.plans = TrainingPlanRepository(db)
        self.days = TrainingDayRepository(db)

    async def parse(self, user_id: str, plan_id: str, plan_text: str) -> int:
        """
        Parse and store training days.

        Returns:
            Number of stored days

        Raises:
            PlanParseError: Missing input, unknown plan or no valid lines
            PersistenceError: Rows could not be written
        """
        if not plan_id or not plan_text:
            raise PlanParseError("Plan ID and text are required")

        plan = await self.plans.get_for_user(plan_id, user_id)
        if not plan:
            raise PlanParseError(f"Training plan {plan_id} not found")

        logger.info(f"Parsing training plan {plan_id} ({len(plan_text)} chars)")
        parsed = parse_plan_text(plan_text)
        if not parsed.days:
            raise PlanParseError("No valid training days found in the plan text")

        rows = [
            {"training_plan_id": plan_id, "user_id": user_id, **day}
            for day in parsed.days
        ]
        try:
            count = await self.days.replace_for_plan(plan_id, rows)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save training days for plan {plan_id}: {e}")
            raise PersistenceError("Failed to save parsed training days to database") from e

        logger.info(
            f"Saved {count} training days for plan {plan_id} "
            f"({len(parsed.skipped)} lines skipped)"
        )
        return count
