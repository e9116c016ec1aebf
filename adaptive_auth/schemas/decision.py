"""Policy decision schemas."""
from typing import Optional, List

from pydantic import BaseModel, ConfigDict


class SessionRestrictions(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_session_duration: int  # seconds
    require_mfa: bool = False
    # None means every operation is permitted
    permitted_operations: Optional[List[str]] = None


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    risk_score: float
    risk_level: str
    required_actions: List[str] = []
    session_restrictions: SessionRestrictions
    reasoning: List[str] = []
