"""MFA request/response schemas."""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class MFACodeRequest(BaseModel):
    """A TOTP code (6 digits) or a backup code."""
    code: str = Field(..., min_length=6, max_length=12)


class MFASetupResponse(BaseModel):
    secret: str
    qr_payload: str
    qr_code_data_url: str
    backup_codes: List[str]


class MFAStatusResponse(BaseModel):
    enabled: bool
    setup_at: Optional[datetime] = None
    backup_codes_remaining: int = 0


class BackupCodesResponse(BaseModel):
    backup_codes: List[str]
