"""
Training plans module.

Usage:
    from tempo_guide.features.plans import PlanParser, enhancement_progress

Components:
- PlanParser: pipe-delimited plan listing -> TrainingDay rows
- PlanDocumentService: plan document storage with update notifications
- DayEnhancementService: merges enrichment fields into one day
- EnhancementTracker: live enhancement progress
"""

from .models import TrainingPlan, TrainingDay
from .repository import TrainingPlanRepository, TrainingDayRepository
from .parser import PlanParser, ParsedPlan, parse_plan_text, parse_distance_km
from .events import PlanUpdate, PlanUpdateBroker, plan_update_broker
from .documents import PlanDocumentService
from .enhancement import (
    EnhancementProgress,
    EnhancementTracker,
    DayEnhancementService,
    DayEnhancementResult,
    enhancement_progress,
    apply_day_enhancement,
)

__all__ = [
    "TrainingPlan",
    "TrainingDay",
    "TrainingPlanRepository",
    "TrainingDayRepository",
    "PlanParser",
    "ParsedPlan",
    "parse_plan_text",
    "parse_distance_km",
    "PlanUpdate",
    "PlanUpdateBroker",
    "plan_update_broker",
    "PlanDocumentService",
    "EnhancementProgress",
    "EnhancementTracker",
    "DayEnhancementService",
    "DayEnhancementResult",
    "enhancement_progress",
    "apply_day_enhancement",
]
