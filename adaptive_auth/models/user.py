from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from adaptive_auth.core.database import Base
from adaptive_auth.models.base import TimestampMixin


class User(TimestampMixin, Base):
    """Local mirror of an identity-provider subject."""
    __tablename__ = "users"

    # The identity provider's subject (UUID string)
    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    username = Column(String(150), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email or self.id}>"
