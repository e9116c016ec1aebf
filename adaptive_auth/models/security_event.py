"""Append-only security audit records."""
from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from adaptive_auth.core.database import Base
from adaptive_auth.utils.helpers import utcnow


class SecurityEvent(Base):
    __tablename__ = "security_events"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    event_type = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=False)
    severity = Column(String(16), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    location = Column(String(255), nullable=True)
    country = Column(String(64), nullable=True)
    risk_score = Column(Float, default=0.0, nullable=False)
    connection_id = Column(String(128), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
