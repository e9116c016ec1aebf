"""Portal session issued after a favourable policy decision."""
from datetime import datetime
from typing import Optional
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from adaptive_auth.core.database import Base
from adaptive_auth.models.base import TimestampMixin, UUIDMixin
from adaptive_auth.utils.helpers import utcnow


class UserSession(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "user_sessions"

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    session_token = Column(String(128), nullable=False, unique=True, index=True)

    # Session metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    risk_level = Column(String(16), nullable=True)
    restrictions = Column(JSON, nullable=True)

    # Invalidation
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    invalidated_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="sessions")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return bool(self.is_active) and not self.is_expired(now)

    @property
    def permitted_operations(self) -> Optional[list]:
        """None means unrestricted."""
        if not self.restrictions:
            return None
        return self.restrictions.get("permitted_operations")

    def __repr__(self):
        return f"<UserSession {self.id} user={self.user_id} active={self.is_active}>"
