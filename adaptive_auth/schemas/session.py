"""Session schemas."""
from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict


class SessionRead(BaseModel):
    id: str
    user_id: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime
    expires_at: datetime
    is_active: bool
    risk_level: Optional[str]
    restrictions: Optional[Dict[str, Any]]

    model_config = ConfigDict(from_attributes=True)


class SessionTokenResponse(SessionRead):
    session_token: str


class SessionStats(BaseModel):
    active_sessions: int
    expired_sessions: int
    sessions_today: int
