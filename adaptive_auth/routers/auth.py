from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from adaptive_auth.core.constants import EventType, Operation, Severity
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import (
    get_current_identity, get_webauthn_verdict, require_operation, session_token_header,
)
from adaptive_auth.dependencies.rate_limit import rate_limit
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.auth import EvaluateRequest, EvaluateResponse
from adaptive_auth.schemas.session import SessionRead
from adaptive_auth.services.auth_pipeline import AuthPipeline, RequestContext
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.helpers import format_response, get_client_ip

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/evaluate", response_model=EvaluateResponse, status_code=200)
async def evaluate(
    payload: EvaluateRequest,
    request: Request,
    identity=Depends(get_current_identity),
    webauthn_verified: bool = Depends(get_webauthn_verdict),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit),
):
    """
    Score an authentication attempt and apply the policy decision
    - allow / monitor issue a session token
    - challenge issues a short session limited to MFA enrollment and verification,
      and lists the required follow-up actions; evaluate again with `mfa_code` once done
    - deny issues nothing
    """
    ctx = RequestContext(
        user_id=identity["sub"],
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    result = AuthPipeline.evaluate(
        db,
        ctx,
        payload.signals(),
        mfa_code=payload.mfa_code,
        webauthn_verified=webauthn_verified,
    )
    decision = result.decision
    return EvaluateResponse(
        action=decision.action,
        risk_score=decision.risk_score,
        risk_level=decision.risk_level,
        required_actions=decision.required_actions,
        reasoning=decision.reasoning,
        session_restrictions=decision.session_restrictions,
        assessment_id=result.assessment.id if result.assessment else None,
        session_token=result.session.session_token if result.session else None,
        session_expires_at=result.session.expires_at if result.session else None,
    )


@router.get("/session", response_model=SessionRead)
async def current_session(
    session: UserSession = Depends(require_operation(Operation.SESSION_READ)),
):
    return session


@router.post("/session/refresh", response_model=SessionRead)
async def refresh_session(
    session: UserSession = Depends(require_operation(Operation.SESSION_READ)),
    db: Session = Depends(get_db),
):
    return SessionService.refresh_session(db, session.session_token)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(session_token_header),
    db: Session = Depends(get_db),
):
    """Invalidate the current session. Unknown or already closed tokens succeed too."""
    if token:
        SessionService.invalidate_session(db, token)
    return format_response({"message": "Logged out"})


@router.post("/logout-all", status_code=200)
async def logout_all(
    request: Request,
    session: UserSession = Depends(require_operation(Operation.SESSION_LOGOUT)),
    db: Session = Depends(get_db),
):
    count = SessionService.invalidate_all_user_sessions(db, session.user_id)
    SecurityEventService.record_event(
        db,
        user_id=session.user_id,
        event_type=EventType.SESSIONS_REVOKED,
        description=f"All sessions revoked ({count})",
        severity=Severity.MEDIUM,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return format_response({"invalidated": count})


@router.get("/sessions", response_model=list[SessionRead])
async def list_sessions(
    session: UserSession = Depends(require_operation(Operation.SESSION_READ)),
    db: Session = Depends(get_db),
):
    return SessionService.get_user_sessions(db, session.user_id)
