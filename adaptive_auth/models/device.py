"""Known client devices per user."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, UniqueConstraint
from adaptive_auth.core.database import Base
from adaptive_auth.models.base import TimestampMixin
from adaptive_auth.utils.helpers import utcnow


class DeviceFingerprint(TimestampMixin, Base):
    __tablename__ = "device_fingerprints"
    __table_args__ = (
        UniqueConstraint("user_id", "fingerprint", name="uq_device_user_fingerprint"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    fingerprint = Column(String(255), nullable=False)

    device_name = Column(String(255), nullable=True)
    device_type = Column(String(50), nullable=True)  # desktop, mobile, tablet
    browser = Column(String(100), nullable=True)
    os = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)
    location = Column(String(255), nullable=True)

    is_trusted = Column(Boolean, default=False, nullable=False)
    first_seen = Column(DateTime, default=utcnow, nullable=False)
    last_seen = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<DeviceFingerprint {self.id} user={self.user_id} trusted={self.is_trusted}>"
