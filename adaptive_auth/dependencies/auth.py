from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from adaptive_auth.core.config import settings
from adaptive_auth.core.constants import Operation
from adaptive_auth.core.database import get_db
from adaptive_auth.core.security import decode_idp_token, decode_webauthn_assertion
from adaptive_auth.models.session import UserSession
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.services.user_service import UserService
from adaptive_auth.utils.errors import (
    InvalidInputError, OperationNotPermittedError, UnauthorizedError,
)
from adaptive_auth.utils.helpers import parse_user_id
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
session_token_header = APIKeyHeader(name=settings.SESSION_TOKEN_HEADER, auto_error=False)
webauthn_assertion_header = APIKeyHeader(name=settings.WEBAUTHN_ASSERTION_HEADER, auto_error=False)


def get_identity_from_token(token: str, db: Session) -> dict:
    """
    Verify an identity provider token and return its claims.
    The local user mirror is created or refreshed on the way.
    """
    payload = decode_idp_token(token)
    if payload is None:
        raise UnauthorizedError("Invalid token")

    try:
        user_id = parse_user_id(payload.get("sub"))
    except InvalidInputError:
        raise UnauthorizedError("Invalid token payload")

    UserService.ensure_user(
        db,
        user_id,
        email=payload.get("email"),
        username=payload.get("preferred_username"),
    )
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return {**payload, "sub": user_id, "roles": list(roles)}


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
):
    """Verify the IdP bearer token and return its claims"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing bearer token")
    return get_identity_from_token(credentials.credentials, db)


async def get_current_admin(
    identity=Depends(get_current_identity),
):
    """Verify current identity carries the admin role"""
    if settings.ADMIN_ROLE not in identity.get("roles", []):
        raise OperationNotPermittedError("Admin access required")
    return identity


async def get_current_session(
    token: Optional[str] = Depends(session_token_header),
    db: Session = Depends(get_db),
) -> UserSession:
    """Resolve the portal session from the session token header"""
    if not token:
        raise UnauthorizedError("Missing session token")
    return SessionService.get_session_by_token(db, token)


def require_operation(operation: Operation):
    """Dependency factory: the session's allow-list must include `operation`."""

    async def _check(session: UserSession = Depends(get_current_session)) -> UserSession:
        permitted = session.permitted_operations
        if permitted is not None and operation.value not in permitted:
            raise OperationNotPermittedError(f"Operation '{operation.value}' not permitted for this session")
        return session

    return _check


async def get_webauthn_verdict(
    assertion: Optional[str] = Depends(webauthn_assertion_header),
    identity=Depends(get_current_identity),
) -> bool:
    """
    Whether a WebAuthn ceremony passed for this attempt.
    Only a signed assertion from the ceremony handler, issued to the same subject, counts.
    """
    if not assertion:
        return False
    claims = decode_webauthn_assertion(assertion)
    if claims is None:
        logger.warning(f"Rejected WebAuthn assertion for user {identity['sub']}: bad signature or expired")
        return False
    try:
        subject = parse_user_id(claims.get("sub"))
    except InvalidInputError:
        subject = None
    if subject != identity["sub"]:
        logger.warning(f"Rejected WebAuthn assertion for user {identity['sub']}: issued to another subject")
        return False
    return True
