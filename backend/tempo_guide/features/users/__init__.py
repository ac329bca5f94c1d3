"""
User profile module.

Usage:
    from tempo_guide.features.users import Profile, ProfileRepository
"""

from .models import Profile
from .repository import ProfileRepository

__all__ = [
    "Profile",
    "ProfileRepository",
]
