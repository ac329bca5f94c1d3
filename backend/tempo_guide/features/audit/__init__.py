"""
Security audit module.

Usage:
    from tempo_guide.features.audit import AuditLogRepository, AuditEvent
"""

from .models import SecurityAuditEvent
from .repository import AuditLogRepository


class AuditEvent:
    """Audit event type names."""

    STRAVA_AUTH_INITIATED = "strava_auth_initiated"
    STRAVA_CONNECTED = "strava_connected"
    STRAVA_DISCONNECTED = "strava_disconnected"


__all__ = [
    "SecurityAuditEvent",
    "AuditLogRepository",
    "AuditEvent",
]
