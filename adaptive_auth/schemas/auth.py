"""Evaluate request/response schemas."""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from adaptive_auth.schemas.decision import SessionRestrictions
from adaptive_auth.schemas.risk import BehaviorSignals, LocationInfo


class EvaluateRequest(BaseModel):
    """Signals for one login or session-continuation attempt.

    The user id comes from the identity provider token, not the body.
    A WebAuthn pass arrives as a signed assertion header, never as a body field.
    """
    model_config = ConfigDict(extra="forbid")

    device_fingerprint: Optional[str] = Field(None, max_length=255)
    location: LocationInfo = Field(default_factory=LocationInfo)
    behavior: BehaviorSignals = Field(default_factory=BehaviorSignals)
    local_hour: Optional[int] = Field(None, ge=0, le=23)

    device_name: Optional[str] = Field(None, max_length=255)
    device_type: Optional[str] = Field(None, max_length=50)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)

    mfa_code: Optional[str] = Field(None, min_length=6, max_length=12)

    def signals(self) -> dict:
        return self.model_dump(exclude={"mfa_code"})


class EvaluateResponse(BaseModel):
    action: str
    risk_score: float
    risk_level: str
    required_actions: List[str]
    reasoning: List[str]
    session_restrictions: SessionRestrictions
    assessment_id: Optional[int] = None
    session_token: Optional[str] = None
    session_expires_at: Optional[datetime] = None
