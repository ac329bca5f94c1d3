"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy.

Feature models live in their feature packages; this module only
re-exports them so metadata is complete when tables are created.
"""

from tempo_guide.models.base import Base


def import_all_models() -> None:
    """Import every feature model module so Base.metadata is populated."""
    from tempo_guide.features.users import models as _users  # noqa: F401
    from tempo_guide.features.audit import models as _audit  # noqa: F401
    from tempo_guide.features.strava import models as _strava  # noqa: F401
    from tempo_guide.features.plans import models as _plans  # noqa: F401


__all__ = ["Base", "import_all_models"]
