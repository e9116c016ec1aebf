from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from adaptive_auth.core.config import settings
from adaptive_auth.core.security import generate_session_token
from adaptive_auth.models.session import UserSession
from adaptive_auth.models.user import User
from adaptive_auth.schemas.decision import SessionRestrictions
from adaptive_auth.utils.errors import InternalError, NotFoundError, SessionExpiredError
from adaptive_auth.utils.helpers import local_day_start_utc, parse_user_id, utcnow
import logging

logger = logging.getLogger(__name__)


class SessionService:

    @staticmethod
    def _lifetime(restrictions: Optional[dict]) -> timedelta:
        seconds = (restrictions or {}).get("max_session_duration") or 0
        if seconds > 0:
            return timedelta(seconds=seconds)
        return timedelta(hours=settings.SESSION_DURATION_HOURS)

    @staticmethod
    def create_session(
        db: Session,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        restrictions: Optional[SessionRestrictions] = None,
        risk_level: Optional[str] = None,
    ) -> UserSession:
        """
        Issue a new portal session.
        - Lifetime comes from the restrictions, or the standard duration
        - Only the newest MAX_SESSIONS_PER_USER sessions stay active
        """
        user_id = parse_user_id(user_id)
        lifetime = SessionService._lifetime(restrictions.model_dump() if restrictions else None)

        now = utcnow()
        session = UserSession(
            user_id=user_id,
            session_token=generate_session_token(),
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=now + lifetime,
            risk_level=risk_level,
            restrictions=restrictions.model_dump() if restrictions else None,
            is_active=True,
        )
        db.add(session)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Session token collision for user {user_id}", exc_info=e)
            raise InternalError("Could not issue session")
        db.refresh(session)

        SessionService._enforce_session_limit(db, user_id)
        logger.info(f"Session {session.id} created for user {user_id}, expires {session.expires_at.isoformat()}")
        return session

    @staticmethod
    def _enforce_session_limit(db: Session, user_id: str) -> int:
        active = (
            db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.is_active == True)
            .order_by(UserSession.created_at.desc())
            .with_for_update()
            .all()
        )
        stale = active[settings.MAX_SESSIONS_PER_USER:]
        if not stale:
            db.commit()
            return 0
        now = utcnow()
        for s in stale:
            s.is_active = False
            s.invalidated_at = now
        db.commit()
        logger.info(f"Deactivated {len(stale)} older session(s) for user {user_id}")
        return len(stale)

    @staticmethod
    def get_session_by_token(db: Session, token: str) -> UserSession:
        """Active, unexpired session with its user loaded."""
        if not token:
            raise NotFoundError("Session not found")
        session = (
            db.query(UserSession)
            .options(joinedload(UserSession.user))
            .filter(UserSession.session_token == token, UserSession.is_active == True)
            .first()
        )
        if not session:
            raise NotFoundError("Session not found")
        if session.is_expired():
            raise SessionExpiredError()
        return session

    @staticmethod
    def validate_session(db: Session, token: str) -> User:
        session = SessionService.get_session_by_token(db, token)
        if session.user is None:
            raise NotFoundError("Session user not found")
        return session.user

    @staticmethod
    def refresh_session(db: Session, token: str) -> UserSession:
        """
        Extend the expiry to at least now + the session's lifetime.
        - Restricted sessions extend by their own max_session_duration only
        - Never moves the expiry backwards
        """
        session = (
            db.query(UserSession)
            .filter(UserSession.session_token == token, UserSession.is_active == True)
            .with_for_update()
            .first()
        )
        if not session:
            db.rollback()
            raise NotFoundError("Session not found")
        now = utcnow()
        if session.is_expired(now):
            db.rollback()
            raise SessionExpiredError()

        proposed = now + SessionService._lifetime(session.restrictions)
        if proposed > session.expires_at:
            session.expires_at = proposed
        db.commit()
        db.refresh(session)
        return session

    @staticmethod
    def invalidate_session(db: Session, token: str) -> None:
        """Deactivate a session. Unknown or already inactive tokens are a no-op."""
        session = (
            db.query(UserSession)
            .filter(UserSession.session_token == token, UserSession.is_active == True)
            .first()
        )
        if not session:
            return
        session.is_active = False
        session.invalidated_at = utcnow()
        db.commit()
        logger.info(f"Session {session.id} invalidated")

    @staticmethod
    def invalidate_all_user_sessions(db: Session, user_id: str) -> int:
        user_id = parse_user_id(user_id)
        count = (
            db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.is_active == True)
            .update(
                {UserSession.is_active: False, UserSession.invalidated_at: utcnow()},
                synchronize_session=False,
            )
        )
        db.commit()
        logger.info(f"Invalidated {count} session(s) for user {user_id}")
        return count

    @staticmethod
    def get_user_sessions(db: Session, user_id: str) -> List[UserSession]:
        user_id = parse_user_id(user_id)
        return (
            db.query(UserSession)
            .filter(
                UserSession.user_id == user_id,
                UserSession.is_active == True,
                UserSession.expires_at > utcnow(),
            )
            .order_by(UserSession.created_at.desc())
            .all()
        )

    @staticmethod
    def cleanup_expired_sessions(db: Session, now=None) -> int:
        """Delete sessions that expired, or were invalidated, more than the retention window ago."""
        now = now or utcnow()
        cutoff = now - timedelta(days=settings.SESSION_RETENTION_DAYS)
        deleted = (
            db.query(UserSession)
            .filter(
                or_(
                    UserSession.expires_at < cutoff,
                    and_(UserSession.is_active == False, UserSession.invalidated_at < cutoff),
                )
            )
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info(f"Session cleanup removed {deleted} row(s) older than {cutoff.isoformat()}")
        return deleted

    @staticmethod
    def get_session_stats(db: Session, today: Optional[date] = None) -> dict:
        now = utcnow()
        active = (
            db.query(UserSession)
            .filter(UserSession.is_active == True, UserSession.expires_at > now)
            .count()
        )
        expired = db.query(UserSession).filter(UserSession.expires_at <= now).count()
        sessions_today = (
            db.query(UserSession)
            .filter(UserSession.created_at >= local_day_start_utc(today))
            .count()
        )
        return {
            "active_sessions": active,
            "expired_sessions": expired,
            "sessions_today": sessions_today,
        }
