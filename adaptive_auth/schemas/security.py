"""Security event schemas."""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict


class SecurityEventRead(BaseModel):
    id: int
    user_id: str
    event_type: str
    description: str
    severity: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    location: Optional[str]
    risk_score: float
    connection_id: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SecurityEventList(BaseModel):
    events: List[SecurityEventRead]
    count: int
