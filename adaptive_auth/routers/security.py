"""Security event log endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from adaptive_auth.core.constants import Operation
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import require_operation
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.security import SecurityEventList
from adaptive_auth.services.security_event_service import SecurityEventService

router = APIRouter(prefix="/security", tags=["security"])


@router.get("/events", response_model=SecurityEventList)
async def list_events(
    limit: int = Query(50, ge=1, le=500),
    session: UserSession = Depends(require_operation(Operation.SECURITY_READ)),
    db: Session = Depends(get_db),
):
    events = SecurityEventService.get_security_events(db, session.user_id, limit)
    return {"events": events, "count": len(events)}
