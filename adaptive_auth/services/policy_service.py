from typing import List, Optional

from sqlalchemy.orm import Session

from adaptive_auth.core.config import settings
from adaptive_auth.core.constants import (
    CHALLENGE_OPERATIONS, DECISION_EVENTS, MONITOR_OPERATIONS,
    DecisionAction, RequiredAction, RiskLevel,
)
from adaptive_auth.models.risk import RiskAssessment
from adaptive_auth.schemas.decision import Decision, SessionRestrictions
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.errors import InvariantViolation
import logging

logger = logging.getLogger(__name__)

EVALUATION_FAILED = "Risk evaluation failed"


def _hours(h: int) -> int:
    return int(h) * 3600


def _restrictions(action: DecisionAction) -> SessionRestrictions:
    if action == DecisionAction.ALLOW:
        return SessionRestrictions(
            max_session_duration=_hours(settings.SESSION_DURATION_HOURS),
            require_mfa=False,
            permitted_operations=None,
        )
    if action == DecisionAction.MONITOR:
        return SessionRestrictions(
            max_session_duration=_hours(settings.MONITOR_SESSION_HOURS),
            require_mfa=False,
            permitted_operations=[op.value for op in MONITOR_OPERATIONS],
        )
    if action == DecisionAction.CHALLENGE:
        return SessionRestrictions(
            max_session_duration=_hours(settings.CHALLENGE_SESSION_HOURS),
            require_mfa=True,
            permitted_operations=[op.value for op in CHALLENGE_OPERATIONS],
        )
    return SessionRestrictions(max_session_duration=0, require_mfa=False, permitted_operations=[])


def decide_action(
    risk_level: str,
    device_trusted: bool,
    mfa_enabled: bool,
    mfa_verified: bool = False,
) -> tuple:
    """
    Pure decision table. Returns (action, required_actions).

    critical always denies. A high-risk attempt is challenged unless a second
    factor was already verified for it, in which case it is monitored.
    """
    if risk_level == RiskLevel.CRITICAL.value:
        return DecisionAction.DENY, []

    if risk_level == RiskLevel.HIGH.value:
        if mfa_verified:
            return DecisionAction.MONITOR, []
        if not device_trusted:
            return DecisionAction.CHALLENGE, [
                RequiredAction.MFA_REQUIRED.value,
                RequiredAction.DEVICE_VERIFICATION.value,
            ]
        if not mfa_enabled:
            return DecisionAction.CHALLENGE, [RequiredAction.MFA_ENROLLMENT.value]
        return DecisionAction.CHALLENGE, [RequiredAction.MFA_REQUIRED.value]

    if risk_level == RiskLevel.MEDIUM.value:
        return DecisionAction.MONITOR, []

    if risk_level == RiskLevel.LOW.value:
        return DecisionAction.ALLOW, []

    raise InvariantViolation(f"Unknown risk level: {risk_level!r}")


class PolicyService:

    @staticmethod
    def build_decision(
        assessment: RiskAssessment,
        device_trusted: bool,
        mfa_enabled: bool,
        mfa_verified: bool = False,
    ) -> Decision:
        score = assessment.risk_score
        if score is None or not (0.0 <= score <= 1.0):
            raise InvariantViolation(f"Risk score out of range on assessment {assessment.id}: {score!r}")

        action, required = decide_action(assessment.risk_level, device_trusted, mfa_enabled, mfa_verified)

        reasoning: List[str] = [f["description"] for f in (assessment.risk_factors or [])]
        if action == DecisionAction.MONITOR and mfa_verified and assessment.risk_level == RiskLevel.HIGH.value:
            reasoning.append("Second factor verified for this attempt")

        return Decision(
            action=action.value,
            risk_score=score,
            risk_level=assessment.risk_level,
            required_actions=required,
            session_restrictions=_restrictions(action),
            reasoning=reasoning,
        )

    @staticmethod
    def decide(
        db: Session,
        assessment: RiskAssessment,
        device_trusted: bool,
        mfa_enabled: bool,
        mfa_verified: bool = False,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> Decision:
        """Turn an assessment into a decision and write its single security event."""
        decision = PolicyService.build_decision(assessment, device_trusted, mfa_enabled, mfa_verified)
        PolicyService.record_decision(db, assessment, decision, ip_address, user_agent, connection_id)
        return decision

    @staticmethod
    def record_decision(
        db: Session,
        assessment: RiskAssessment,
        decision: Decision,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> None:
        PolicyService._record(
            db,
            user_id=assessment.user_id,
            decision=decision,
            ip_address=ip_address or assessment.ip_address,
            user_agent=user_agent or assessment.user_agent,
            location=", ".join(p for p in (assessment.city, assessment.country) if p) or None,
            country=assessment.country,
            connection_id=connection_id or assessment.session_id,
        )
        logger.info(
            f"Policy decision for user {assessment.user_id}: {decision.action} "
            f"(level={decision.risk_level}, score={decision.risk_score})"
        )

    @staticmethod
    def fail_closed(
        db: Session,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> Decision:
        """Deny decision used when the evaluation itself could not complete."""
        decision = Decision(
            action=DecisionAction.DENY.value,
            risk_score=1.0,
            risk_level=RiskLevel.CRITICAL.value,
            required_actions=[],
            session_restrictions=_restrictions(DecisionAction.DENY),
            reasoning=[EVALUATION_FAILED],
        )
        PolicyService._record(
            db,
            user_id=user_id,
            decision=decision,
            ip_address=ip_address,
            user_agent=user_agent,
            connection_id=connection_id,
        )
        logger.error(f"Risk evaluation for user {user_id} failed; access denied")
        return decision

    @staticmethod
    def _record(db, user_id, decision: Decision, ip_address=None, user_agent=None,
                location=None, country=None, connection_id=None):
        event_type, severity = DECISION_EVENTS[DecisionAction(decision.action)]
        detail = "; ".join(decision.reasoning) or "no risk factors"
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=event_type,
            description=f"Login {decision.action} at {decision.risk_level} risk: {detail}",
            severity=severity,
            ip_address=ip_address,
            user_agent=user_agent,
            location=location,
            country=country,
            risk_score=decision.risk_score,
            connection_id=connection_id,
        )
