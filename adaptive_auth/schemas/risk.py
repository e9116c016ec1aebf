"""Risk signal, assessment and threshold schemas."""
from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from adaptive_auth.models.risk import THRESHOLD_DEFAULTS


class LocationInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    country: Optional[str] = Field(None, max_length=64)
    city: Optional[str] = Field(None, max_length=128)
    is_vpn: bool = False
    is_tor: bool = False

    def describe(self) -> Optional[str]:
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) or None


class BehaviorSignals(BaseModel):
    """Deviation ratios against the user's own baseline (0.2 = 20% off)."""
    model_config = ConfigDict(extra="forbid")

    typing_deviation: Optional[float] = Field(None, ge=0)
    mouse_deviation: Optional[float] = Field(None, ge=0)

    def max_deviation(self) -> Optional[float]:
        values = [v for v in (self.typing_deviation, self.mouse_deviation) if v is not None]
        return max(values) if values else None


class AuthSignals(BaseModel):
    """Everything the risk engine looks at for one attempt."""
    model_config = ConfigDict(extra="forbid")

    user_id: str
    session_id: Optional[str] = Field(None, max_length=128)
    ip_address: Optional[str] = Field(None, max_length=45)
    user_agent: Optional[str] = Field(None, max_length=512)
    device_fingerprint: Optional[str] = Field(None, max_length=255)
    location: LocationInfo = Field(default_factory=LocationInfo)
    behavior: BehaviorSignals = Field(default_factory=BehaviorSignals)
    local_hour: Optional[int] = Field(None, ge=0, le=23)

    device_name: Optional[str] = Field(None, max_length=255)
    device_type: Optional[str] = Field(None, max_length=50)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)


class RiskFactor(BaseModel):
    type: str
    description: str
    weight: float
    score: float
    severity: str

    @property
    def contribution(self) -> float:
        return self.weight * self.score


class RiskAssessmentRead(BaseModel):
    id: int
    user_id: str
    session_id: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    country: Optional[str]
    city: Optional[str]
    is_vpn: bool
    is_tor: bool
    device_fingerprint: Optional[str]
    behavior_signals: Optional[Dict[str, float]]
    risk_score: float
    risk_level: str
    risk_factors: List[RiskFactor]
    recommendations: List[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RiskHistoryResponse(BaseModel):
    assessments: List[RiskAssessmentRead]
    count: int


class RiskThresholdSet(BaseModel):
    """Immutable threshold values handed to one evaluation."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    vpn_risk: float = Field(THRESHOLD_DEFAULTS["vpn_risk"], ge=0, le=1)
    tor_risk: float = Field(THRESHOLD_DEFAULTS["tor_risk"], ge=0, le=1)
    new_device_risk: float = Field(THRESHOLD_DEFAULTS["new_device_risk"], ge=0, le=1)
    suspicious_agent_risk: float = Field(THRESHOLD_DEFAULTS["suspicious_agent_risk"], ge=0, le=1)
    off_hours_risk: float = Field(THRESHOLD_DEFAULTS["off_hours_risk"], ge=0, le=1)
    behavior_risk: float = Field(THRESHOLD_DEFAULTS["behavior_risk"], ge=0, le=1)
    location_risk: float = Field(THRESHOLD_DEFAULTS["location_risk"], ge=0, le=1)
    behavior_tolerance: float = Field(THRESHOLD_DEFAULTS["behavior_tolerance"], ge=0, le=1)
    low_threshold: float = Field(THRESHOLD_DEFAULTS["low_threshold"], ge=0, le=1)
    medium_threshold: float = Field(THRESHOLD_DEFAULTS["medium_threshold"], ge=0, le=1)
    high_threshold: float = Field(THRESHOLD_DEFAULTS["high_threshold"], ge=0, le=1)

    @model_validator(mode="after")
    def boundaries_increase(self):
        if not (self.low_threshold < self.medium_threshold < self.high_threshold):
            raise ValueError("thresholds must satisfy low_threshold < medium_threshold < high_threshold")
        return self


class RiskThresholdsUpdate(BaseModel):
    """Partial update: only the fields present are changed."""
    model_config = ConfigDict(extra="forbid")

    vpn_risk: Optional[float] = Field(None, ge=0, le=1)
    tor_risk: Optional[float] = Field(None, ge=0, le=1)
    new_device_risk: Optional[float] = Field(None, ge=0, le=1)
    suspicious_agent_risk: Optional[float] = Field(None, ge=0, le=1)
    off_hours_risk: Optional[float] = Field(None, ge=0, le=1)
    behavior_risk: Optional[float] = Field(None, ge=0, le=1)
    location_risk: Optional[float] = Field(None, ge=0, le=1)
    behavior_tolerance: Optional[float] = Field(None, ge=0, le=1)
    low_threshold: Optional[float] = Field(None, ge=0, le=1)
    medium_threshold: Optional[float] = Field(None, ge=0, le=1)
    high_threshold: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("*")
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v
