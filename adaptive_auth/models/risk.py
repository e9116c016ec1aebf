"""Risk assessment snapshots and tunable scoring thresholds."""
from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, JSON
from adaptive_auth.core.database import Base
from adaptive_auth.utils.helpers import utcnow


class RiskAssessment(Base):
    __tablename__ = "risk_assessments"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    session_id = Column(String(128), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)

    country = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)
    is_vpn = Column(Boolean, default=False, nullable=False)
    is_tor = Column(Boolean, default=False, nullable=False)

    device_fingerprint = Column(String(255), nullable=True)
    behavior_signals = Column(JSON, nullable=True)

    risk_score = Column(Float, nullable=False)
    risk_level = Column(String(16), nullable=False)
    risk_factors = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


THRESHOLD_DEFAULTS = {
    "vpn_risk": 0.3,
    "tor_risk": 0.9,
    "new_device_risk": 0.7,
    "suspicious_agent_risk": 0.3,
    "off_hours_risk": 0.4,
    "behavior_risk": 0.5,
    "location_risk": 0.6,
    "behavior_tolerance": 0.35,
    "low_threshold": 0.3,
    "medium_threshold": 0.6,
    "high_threshold": 0.8,
}


class RiskThresholds(Base):
    __tablename__ = "risk_thresholds"

    id = Column(Integer, primary_key=True)
    scope = Column(String(64), unique=True, nullable=False, default="global")

    vpn_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["vpn_risk"])
    tor_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["tor_risk"])
    new_device_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["new_device_risk"])
    suspicious_agent_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["suspicious_agent_risk"])
    off_hours_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["off_hours_risk"])
    behavior_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["behavior_risk"])
    location_risk = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["location_risk"])
    behavior_tolerance = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["behavior_tolerance"])
    low_threshold = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["low_threshold"])
    medium_threshold = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["medium_threshold"])
    high_threshold = Column(Float, nullable=False, default=THRESHOLD_DEFAULTS["high_threshold"])

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
