"""Lightweight session-token middleware.

Performs a best-effort check of the session token header and attaches the
session's user id and allow-list to `request.state`. Route-level dependencies
(`get_current_session`, `require_operation`) still enforce access; this only
rejects inactive or expired tokens early.
"""
from starlette.requests import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from adaptive_auth.core.config import settings
from adaptive_auth.core.database import SessionLocal
from adaptive_auth.models.session import UserSession
from adaptive_auth.utils.helpers import utcnow


class SessionTokenMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        token = request.headers.get(settings.SESSION_TOKEN_HEADER)
        # logout must stay idempotent for stale tokens
        if not token or request.url.path == "/auth/logout":
            return await call_next(request)

        db = SessionLocal()
        try:
            session = db.query(UserSession).filter(
                UserSession.session_token == token,
                UserSession.is_active == True,
            ).first()
            if not session:
                return JSONResponse(status_code=404, content={"detail": "Session not found"})
            if session.expires_at <= utcnow():
                return JSONResponse(status_code=401, content={"detail": "Session expired"})

            request.state.session_user_id = session.user_id
            request.state.permitted_operations = session.permitted_operations
        finally:
            db.close()

        return await call_next(request)
