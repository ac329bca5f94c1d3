"""
Security audit log model.

Append-only record of security-relevant events (OAuth initiation,
connection, disconnection). Never read back by the OAuth flow.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, Text

from tempo_guide.models.base import Base


class SecurityAuditEvent(Base):
    """Single audit log entry."""

    __tablename__ = "security_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=True, index=True)

    event_type = Column(String(50), nullable=False)
    event_details = Column(JSON, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<SecurityAuditEvent {self.event_type} user={self.user_id}>"
