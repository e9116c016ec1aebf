"""Risk -> decision -> session pipeline for one authentication attempt."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_auth.core.config import settings
from adaptive_auth.core.constants import DecisionAction, RiskLevel
from adaptive_auth.models.risk import RiskAssessment
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.decision import Decision
from adaptive_auth.schemas.risk import AuthSignals
from adaptive_auth.services.device_service import DeviceService
from adaptive_auth.services.mfa_service import MFAService
from adaptive_auth.services.policy_service import PolicyService
from adaptive_auth.services.risk_service import RiskService
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.services.user_service import UserService
from adaptive_auth.utils.errors import InternalError, UnauthorizedError
from adaptive_auth.utils.helpers import Deadline, parse_user_id
import logging

logger = logging.getLogger(__name__)

SESSION_ACTIONS = (
    DecisionAction.ALLOW.value,
    DecisionAction.MONITOR.value,
    DecisionAction.CHALLENGE.value,
)


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class PipelineResult:
    decision: Decision
    assessment: Optional[RiskAssessment] = None
    session: Optional[UserSession] = None


class AuthPipeline:

    @staticmethod
    def _second_factor(
        db: Session,
        ctx: RequestContext,
        mfa_enabled: bool,
        mfa_code: Optional[str],
        webauthn_verified: bool,
    ) -> bool:
        if webauthn_verified:
            return True
        if not (mfa_enabled and mfa_code):
            return False
        try:
            return MFAService.verify_code(db, ctx.user_id, mfa_code)
        except UnauthorizedError:
            # failure is already on the security log; the attempt stays challenged
            return False

    @staticmethod
    def evaluate(
        db: Session,
        ctx: RequestContext,
        signals: Union[AuthSignals, Dict[str, Any]],
        mfa_code: Optional[str] = None,
        webauthn_verified: bool = False,
    ) -> PipelineResult:
        """
        Evaluate one attempt end to end.

        Store failures, internal errors and budget overruns deny the attempt,
        including failures while the session is being issued.
        Input errors and invariant violations propagate.

        `webauthn_verified` is the verdict of a checked ceremony assertion,
        never a value taken from the request body.
        """
        user_id = parse_user_id(ctx.user_id)
        ctx = RequestContext(user_id, ctx.ip_address, ctx.user_agent, ctx.request_id)

        if isinstance(signals, dict):
            signals = {"user_id": user_id, **signals}
        signals = RiskService.parse_signals(signals)
        if parse_user_id(signals.user_id) != user_id:
            signals = signals.model_copy(update={"user_id": user_id})
        if signals.ip_address is None and ctx.ip_address:
            signals = signals.model_copy(update={"ip_address": ctx.ip_address})
        if signals.user_agent is None and ctx.user_agent:
            signals = signals.model_copy(update={"user_agent": ctx.user_agent})
        if signals.session_id is None:
            signals = signals.model_copy(update={"session_id": ctx.request_id})

        deadline = Deadline(settings.EVALUATION_BUDGET_MS)
        session = None
        issued_token = None
        try:
            thresholds = RiskService.get_thresholds(db)
            deadline.check("threshold lookup")

            assessment = RiskService.evaluate(db, signals, thresholds, deadline)
            deadline.check("risk assessment")

            device_trusted = DeviceService.is_trusted_device(db, user_id, signals.device_fingerprint)
            mfa_enabled = MFAService.is_mfa_enabled(db, user_id)
            deadline.check("trust lookup")

            second_factor = False
            if assessment.risk_level == RiskLevel.HIGH.value:
                second_factor = AuthPipeline._second_factor(db, ctx, mfa_enabled, mfa_code, webauthn_verified)

            decision = PolicyService.build_decision(
                assessment,
                device_trusted=device_trusted,
                mfa_enabled=mfa_enabled,
                mfa_verified=second_factor,
            )
            if decision.action in SESSION_ACTIONS:
                UserService.ensure_user(db, user_id)
                session = SessionService.create_session(
                    db,
                    user_id,
                    ip_address=ctx.ip_address,
                    user_agent=ctx.user_agent,
                    restrictions=decision.session_restrictions,
                    risk_level=decision.risk_level,
                )
                issued_token = session.session_token
                # challenge sessions only reach MFA, so the device stays unknown
                if decision.action != DecisionAction.CHALLENGE.value:
                    AuthPipeline._register_device(db, user_id, signals)
            PolicyService.record_decision(
                db,
                assessment,
                decision,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                connection_id=ctx.request_id,
            )
        except (SQLAlchemyError, InternalError) as e:
            db.rollback()
            logger.error(f"Evaluation {ctx.request_id} for user {user_id} failed", exc_info=e)
            if issued_token:
                SessionService.invalidate_session(db, issued_token)
            decision = PolicyService.fail_closed(
                db, user_id, ip_address=ctx.ip_address, user_agent=ctx.user_agent, connection_id=ctx.request_id,
            )
            return PipelineResult(decision=decision)

        return PipelineResult(decision=decision, assessment=assessment, session=session)

    @staticmethod
    def _register_device(db: Session, user_id: str, signals: AuthSignals) -> None:
        if not signals.device_fingerprint:
            return
        DeviceService.register_device_fingerprint(
            db,
            user_id,
            signals.device_fingerprint,
            device_name=signals.device_name,
            device_type=signals.device_type,
            browser=signals.browser,
            os=signals.os,
            ip_address=signals.ip_address,
            location=signals.location.describe(),
        )
