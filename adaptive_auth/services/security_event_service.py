from typing import List, Optional

from sqlalchemy.orm import Session

from adaptive_auth.core.constants import SUCCESSFUL_LOGIN_EVENTS, Severity
from adaptive_auth.models.security_event import SecurityEvent
from adaptive_auth.utils.errors import InvalidInputError
from adaptive_auth.utils.helpers import parse_user_id
import logging

logger = logging.getLogger(__name__)

_SEVERITIES = {s.value for s in Severity}


class SecurityEventService:
    """Append-only security event log. Rows are never updated or deleted here."""

    @staticmethod
    def record_event(
        db: Session,
        user_id: str,
        event_type: str,
        description: str,
        severity: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        location: Optional[str] = None,
        country: Optional[str] = None,
        risk_score: float = 0.0,
        connection_id: Optional[str] = None,
    ) -> SecurityEvent:
        user_id = parse_user_id(user_id)
        severity = getattr(severity, "value", severity)
        event_type = getattr(event_type, "value", event_type)
        if severity not in _SEVERITIES:
            raise InvalidInputError(f"Unknown severity: {severity}")

        event = SecurityEvent(
            user_id=user_id,
            event_type=event_type,
            description=description,
            severity=severity,
            ip_address=ip_address,
            user_agent=user_agent,
            location=location,
            country=country,
            risk_score=risk_score,
            connection_id=connection_id,
        )
        db.add(event)
        db.commit()
        db.refresh(event)

        log = logger.warning if severity in (Severity.HIGH.value, Severity.CRITICAL.value) else logger.info
        log(f"Security event {event_type} ({severity}) for user {user_id}: {description}")
        return event

    @staticmethod
    def get_security_events(db: Session, user_id: str, limit: int = 50) -> List[SecurityEvent]:
        user_id = parse_user_id(user_id)
        q = (
            db.query(SecurityEvent)
            .filter(SecurityEvent.user_id == user_id)
            .order_by(SecurityEvent.created_at.desc(), SecurityEvent.id.desc())
        )
        if limit and limit > 0:
            q = q.limit(limit)
        return q.all()

    @staticmethod
    def get_successful_login_countries(db: Session, user_id: str) -> List[str]:
        """Countries the user has previously been let in from."""
        rows = (
            db.query(SecurityEvent.country)
            .filter(
                SecurityEvent.user_id == user_id,
                SecurityEvent.event_type.in_(SUCCESSFUL_LOGIN_EVENTS),
                SecurityEvent.country.isnot(None),
            )
            .distinct()
            .all()
        )
        return sorted(r[0] for r in rows)

