"""TOTP enrollment and single-use backup codes."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from adaptive_auth.core.database import Base
from adaptive_auth.utils.helpers import utcnow


class MFASetup(Base):
    __tablename__ = "mfa_setups"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), unique=True, nullable=False, index=True)
    secret = Column(String(64), nullable=False)
    enabled = Column(Boolean, default=False, nullable=False)
    setup_at = Column(DateTime, default=utcnow, nullable=False)
    enabled_at = Column(DateTime, nullable=True)

    backup_codes = relationship("MFABackupCode", back_populates="mfa_setup", cascade="all, delete-orphan")


class MFABackupCode(Base):
    __tablename__ = "mfa_backup_codes"

    id = Column(Integer, primary_key=True)
    mfa_setup_id = Column(Integer, ForeignKey("mfa_setups.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    mfa_setup = relationship("MFASetup", back_populates="backup_codes")
