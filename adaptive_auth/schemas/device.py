"""Device trust schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceRegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fingerprint: str = Field(..., min_length=1, max_length=255)
    device_name: Optional[str] = Field(None, max_length=255)
    device_type: Optional[str] = Field(None, max_length=50)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)


class DeviceRead(BaseModel):
    id: int
    fingerprint: str
    device_name: Optional[str]
    device_type: Optional[str]
    browser: Optional[str]
    os: Optional[str]
    ip_address: Optional[str]
    location: Optional[str]
    is_trusted: bool
    first_seen: datetime
    last_seen: datetime

    model_config = ConfigDict(from_attributes=True)
