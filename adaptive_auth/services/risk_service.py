from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adaptive_auth.core.constants import (
    BASELINE_RISK, OFF_HOURS_END, OFF_HOURS_START, SUSPICIOUS_AGENT_MARKERS,
    EventType, RiskLevel, Severity,
)
from adaptive_auth.models.risk import RiskAssessment, RiskThresholds
from adaptive_auth.schemas.risk import AuthSignals, RiskFactor, RiskThresholdSet, RiskThresholdsUpdate
from adaptive_auth.services.device_service import DeviceService
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.errors import InvalidInputError, NotFoundError
from adaptive_auth.utils.helpers import Deadline, parse_user_id
import logging

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "global"


def score_to_level(score: float, thresholds: RiskThresholdSet) -> str:
    if score < thresholds.low_threshold:
        return RiskLevel.LOW.value
    if score < thresholds.medium_threshold:
        return RiskLevel.MEDIUM.value
    if score < thresholds.high_threshold:
        return RiskLevel.HIGH.value
    return RiskLevel.CRITICAL.value


def is_suspicious_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    agent = user_agent.lower()
    return any(marker in agent for marker in SUSPICIOUS_AGENT_MARKERS)


def generate_recommendations(
score: float, signals: AuthSignals, factors: List[RiskFactor]) -> List[str]:
    recommendations = []

    if score > 0.5:
        recommendations.append("Enable additional MFA methods")
        recommendations.append("Monitor session activity closely")

    if signals.location.is_vpn or signals.location.is_tor:
        recommendations.append("Verify user identity through alternative means")
        recommendations.append("Consider blocking anonymous network access")

    if any(f.type == "device" for f in factors):
        recommendations.append("Send device registration notification to user")
        recommendations.append("Require device verification")

    if not recommendations:
        recommendations.append("Continue with standard security monitoring")

    return recommendations


class RiskService:

    @staticmethod
    def parse_signals(payload: Union[AuthSignals, Dict[str, Any]]) -> AuthSignals:
        """Validate a raw signal payload. Unknown or malformed keys are rejected here."""
        if isinstance(payload, AuthSignals):
            return payload
        try:
            return AuthSignals.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid risk signals: {e.errors()[0]['msg']}")

    @staticmethod
    def collect_factors(
        db: Session,
        signals: AuthSignals,
        thresholds: RiskThresholdSet,
        deadline: Optional[Deadline] = None,
    ) -> List[RiskFactor]:
        """Build the ordered list of risk factors for one attempt."""
        factors: List[RiskFactor] = []
        location = signals.location

        if location.is_vpn:
            factors.append(RiskFactor(
                type="network",
                description="VPN usage detected",
                weight=thresholds.vpn_risk,
                score=1.0,
                severity=Severity.MEDIUM.value,
            ))

        if location.is_tor:
            factors.append(RiskFactor(
                type="network",
                description="Tor network usage detected",
                weight=thresholds.tor_risk,
                score=1.0,
                severity=Severity.HIGH.value,
            ))

        is_new = DeviceService.is_new_device(db, signals.user_id, signals.device_fingerprint)
        if deadline:
            deadline.check("device lookup")
        if is_new:
            factors.append(RiskFactor(
                type="device",
                description="New device detected" if signals.device_fingerprint else "No device fingerprint supplied",
                weight=thresholds.new_device_risk,
                score=1.0,
                severity=Severity.MEDIUM.value,
            ))

        if is_suspicious_agent(signals.user_agent):
            factors.append(RiskFactor(
                type="device",
                description="Suspicious user agent",
                weight=thresholds.suspicious_agent_risk,
                score=1.0,
                severity=Severity.MEDIUM.value,
            ))

        if location.country:
            known = SecurityEventService.get_successful_login_countries(db, signals.user_id)
            if deadline:
                deadline.check("location history lookup")
            # A first ever login has nothing to compare against
            if known and location.country not in known:
                factors.append(RiskFactor(
                    type="location",
                    description=f"Login from a country not previously used ({location.country})",
                    weight=thresholds.location_risk,
                    score=1.0,
                    severity=Severity.MEDIUM.value,
                ))

        deviation = signals.behavior.max_deviation()
        if deviation is not None and deviation > thresholds.behavior_tolerance:
            factors.append(RiskFactor(
                type="behavior",
                description="Unusual typing or mouse pattern detected",
                weight=thresholds.behavior_risk,
                score=min(1.0, deviation),
                severity=Severity.LOW.value,
            ))

        if signals.local_hour is not None and (
            signals.local_hour < OFF_HOURS_START or signals.local_hour > OFF_HOURS_END
        ):
            factors.append(RiskFactor(
                type="temporal",
                description="Login outside typical hours",
                weight=thresholds.off_hours_risk,
                score=1.0,
                severity=Severity.LOW.value,
            ))

        return factors

    @staticmethod
    def score(factors: List[RiskFactor]) -> float:
        total = BASELINE_RISK + sum(f.contribution for f in factors)
        return round(min(max(total, 0.0), 1.0), 4)

    @staticmethod
    def evaluate(
        db: Session,
        signals: Union[AuthSignals, Dict[str, Any]],
        thresholds: RiskThresholdSet,
        deadline: Optional[Deadline] = None,
    ) -> RiskAssessment:
        """
        Score one authentication attempt and persist the snapshot.
        - Factors are additive on top of a small baseline
        - Score is clamped to [0, 1] and bucketed with the given thresholds
        """
        signals = RiskService.parse_signals(signals)
        user_id = parse_user_id(signals.user_id)
        signals = signals.model_copy(update={"user_id": user_id})

        factors = RiskService.collect_factors(db, signals, thresholds, deadline)
        score = RiskService.score(factors)
        level = score_to_level(score, thresholds)

        assessment = RiskAssessment(
            user_id=user_id,
            session_id=signals.session_id,
            ip_address=signals.ip_address,
            user_agent=signals.user_agent,
            country=signals.location.country,
            city=signals.location.city,
            is_vpn=signals.location.is_vpn,
            is_tor=signals.location.is_tor,
            device_fingerprint=signals.device_fingerprint,
            behavior_signals=signals.behavior.model_dump(exclude_none=True),
            risk_score=score,
            risk_level=level,
            risk_factors=[f.model_dump() for f in factors],
            recommendations=generate_recommendations(score, signals, factors),
        )
        db.add(assessment)
        db.commit()
        db.refresh(assessment)

        logger.info(f"Risk assessment {assessment.id} for user {user_id}: score={score} level={level}")
        return assessment

    # ---------------- History ----------------

    @staticmethod
    def get_latest_risk_assessment(db: Session, user_id: str) -> RiskAssessment:
        user_id = parse_user_id(user_id)
        assessment = (
            db.query(RiskAssessment)
            .filter(RiskAssessment.user_id == user_id)
            .order_by(RiskAssessment.created_at.desc(), RiskAssessment.id.desc())
            .first()
        )
        if not assessment:
            raise NotFoundError("No risk assessment found for user")
        return assessment

    @staticmethod
    def get_risk_assessment_history(db: Session, user_id: str, limit: int = 50) -> List[RiskAssessment]:
        """Newest first; equal timestamps fall back to insertion order. Unknown users get []."""
        user_id = parse_user_id(user_id)
        q = (
            db.query(RiskAssessment)
            .filter(RiskAssessment.user_id == user_id)
            .order_by(RiskAssessment.created_at.desc(), RiskAssessment.id.desc())
        )
        if limit and limit > 0:
            q = q.limit(limit)
        return q.all()

    # ---------------- Thresholds ----------------

    @staticmethod
    def get_thresholds(db: Session, scope: str = DEFAULT_SCOPE) -> RiskThresholdSet:
        row = db.query(RiskThresholds).filter(RiskThresholds.scope == scope).first()
        if row is None:
            return RiskThresholdSet()
        return RiskThresholdSet.model_validate(row)

    @staticmethod
    def _merge_thresholds(row: Optional[RiskThresholds], changes: Dict[str, float]) -> RiskThresholdSet:
        current = RiskThresholdSet.model_validate(row) if row is not None else RiskThresholdSet()
        try:
            return RiskThresholdSet.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidInputError(f"Invalid threshold update: {e.errors()[0]['msg']}")

    @staticmethod
    def update_risk_thresholds(
        db: Session,
        updates: Union[RiskThresholdsUpdate, Dict[str, float]],
        scope: str = DEFAULT_SCOPE,
        actor_id: Optional[str] = None,
    ) -> RiskThresholdSet:
        """
        Partial update of one scope's thresholds.
        - Only the named fields change
        - The merged result must keep low < medium < high
        """
        if not isinstance(updates, RiskThresholdsUpdate):
            try:
                updates = RiskThresholdsUpdate.model_validate(updates)
            except ValidationError as e:
                raise InvalidInputError(f"Invalid threshold update: {e.errors()[0]['msg']}")
        changes = updates.model_dump(exclude_unset=True)

        row = db.query(RiskThresholds).filter(RiskThresholds.scope == scope).first()
        merged = RiskService._merge_thresholds(row, changes)
        if row is None:
            db.add(RiskThresholds(scope=scope, **merged.model_dump()))
        else:
            for field, value in changes.items():
                setattr(row, field, value)
        try:
            db.commit()
        except IntegrityError:
            # Another writer created the scope row first; merge onto theirs
            db.rollback()
            row = db.query(RiskThresholds).filter(RiskThresholds.scope == scope).one()
            RiskService._merge_thresholds(row, changes)
            for field, value in changes.items():
                setattr(row, field, value)
            db.commit()

        logger.info(f"Risk thresholds for scope '{scope}' updated: {sorted(changes)}")
        if actor_id:
            SecurityEventService.record_event(
                db,
                user_id=actor_id,
                event_type=EventType.RISK_THRESHOLDS_UPDATED,
                description=f"Risk thresholds for scope '{scope}' updated: {', '.join(sorted(changes))}",
                severity=Severity.INFO,
            )
        return RiskService.get_thresholds(db, scope)
