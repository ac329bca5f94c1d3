"""
Shared utilities (NOT business logic).

Usage:
    from tempo_guide.shared import BaseRepository, with_query
    from tempo_guide.shared.errors import ValidationError
"""
from .repository import BaseRepository
from .urls import origin_of, is_allowed_origin, with_query
from .constants import (
    StravaActivityType,
    RUNNING_ACTIVITY_TYPES,
    RUNNING_NAME_HINT,
    METERS_PER_KM,
    KM_PER_MILE,
)

__all__ = [
    "BaseRepository",
    "origin_of",
    "is_allowed_origin",
    "with_query",
    "StravaActivityType",
    "RUNNING_ACTIVITY_TYPES",
    "RUNNING_NAME_HINT",
    "METERS_PER_KM",
    "KM_PER_MILE",
]
