"""TOTP enrollment and verification endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from adaptive_auth.core.constants import Operation
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import require_operation
from adaptive_auth.dependencies.rate_limit import rate_limit
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.mfa import (
    BackupCodesResponse, MFACodeRequest, MFASetupResponse, MFAStatusResponse,
)
from adaptive_auth.services.mfa_service import MFAService
from adaptive_auth.utils.helpers import format_response

router = APIRouter(prefix="/mfa", tags=["mfa"])


@router.post("/setup", response_model=MFASetupResponse)
async def setup(
    session: UserSession = Depends(require_operation(Operation.MFA_MANAGE)),
    db: Session = Depends(get_db),
):
    account = session.user.email if session.user and session.user.email else session.user_id
    return MFAService.setup_mfa(db, session.user_id, account_name=account)


@router.post("/verify-setup", status_code=200)
async def verify_setup(
    payload: MFACodeRequest,
    session: UserSession = Depends(require_operation(Operation.MFA_MANAGE)),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    MFAService.verify_setup(db, session.user_id, payload.code)
    return format_response({"enabled": True})


@router.post("/verify", status_code=200)
async def verify(
    payload: MFACodeRequest,
    session: UserSession = Depends(require_operation(Operation.MFA_VERIFY)),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    MFAService.verify_code(db, session.user_id, payload.code)
    return format_response({"verified": True})


@router.post("/disable", status_code=200)
async def disable(
    payload: MFACodeRequest,
    session: UserSession = Depends(require_operation(Operation.MFA_MANAGE)),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    MFAService.disable_mfa(db, session.user_id, payload.code)
    return format_response({"enabled": False})


@router.post("/backup-codes", response_model=BackupCodesResponse)
async def regenerate_backup_codes(
    payload: MFACodeRequest,
    session: UserSession = Depends(require_operation(Operation.MFA_MANAGE)),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    return {"backup_codes": MFAService.regenerate_backup_codes(db, session.user_id, payload.code)}


@router.get("/status", response_model=MFAStatusResponse)
async def status(
    session: UserSession = Depends(require_operation(Operation.MFA_READ)),
    db: Session = Depends(get_db),
):
    return MFAService.get_mfa_status(db, session.user_id)
