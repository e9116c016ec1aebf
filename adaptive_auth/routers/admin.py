"""Admin endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import get_current_admin
from adaptive_auth.dependencies.rate_limit import rate_limit
from adaptive_auth.schemas.session import SessionStats
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.utils.helpers import format_response

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sessions/stats", response_model=SessionStats)
async def session_stats(
    current_admin=Depends(get_current_admin),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    return SessionService.get_session_stats(db)


@router.post("/sessions/cleanup", status_code=200)
async def cleanup_sessions(
    current_admin=Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    deleted = SessionService.cleanup_expired_sessions(db)
    return format_response({"deleted": deleted})
