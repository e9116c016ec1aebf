"""End-to-end tests for risk -> decision -> session."""
from datetime import timedelta
from unittest.mock import patch

import pyotp
import pytest
from sqlalchemy.exc import OperationalError

from adaptive_auth.core.config import settings
from adaptive_auth.models.device import DeviceFingerprint
from adaptive_auth.models.risk import RiskAssessment
from adaptive_auth.models.security_event import SecurityEvent
from adaptive_auth.models.session import UserSession
from adaptive_auth.services.auth_pipeline import AuthPipeline, RequestContext
from adaptive_auth.services.device_service import DeviceService
from adaptive_auth.services.mfa_service import MFAService
from adaptive_auth.services.risk_service import RiskService
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.utils.errors import InvalidInputError, InvariantViolation


def _ctx(user_id):
    return RequestContext(user_id=user_id, ip_address="203.0.113.10", user_agent="pytest-browser")


def _signals(**overrides):
    base = {
        "device_fingerprint": "fp-laptop",
        "location": {"country": "DE", "city": "Berlin"},
        "local_hour": 11,
    }
    base.update(overrides)
    return base


def _login_events(db, user_id):
    return (
        db.query(SecurityEvent)
        .filter(SecurityEvent.user_id == user_id, SecurityEvent.event_type.like("login_%"))
        .all()
    )


def _trusted_device(db, user_id, fingerprint="fp-laptop"):
    device = DeviceService.register_device_fingerprint(db, user_id, fingerprint)
    DeviceService.trust_device(db, user_id, device.id)


def _enable_mfa(db, user_id):
    setup = MFAService.setup_mfa(db, user_id)
    MFAService.verify_setup(db, user_id, pyotp.TOTP(setup["secret"]).now())
    return setup


def test_tor_on_new_device_without_mfa_is_denied(db_session, user_id):
    result = AuthPipeline.evaluate(
        db_session, _ctx(user_id), _signals(device_fingerprint="fp-new", location={"country": "DE", "is_tor": True}),
    )

    assert result.decision.action == "deny"
    assert result.decision.risk_level == "critical"
    assert result.session is None

    events = db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).all()
    assert [(e.event_type, e.severity) for e in events] == [("login_denied", "critical")]
    assert db_session.query(UserSession).count() == 0
    assert DeviceService.is_new_device(db_session, user_id, "fp-new") is True


def test_trusted_device_with_mfa_is_allowed(db_session, user, user_id):
    _trusted_device(db_session, user_id)
    _enable_mfa(db_session, user_id)
    events_before = db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).count()

    ctx = _ctx(user_id)
    result = AuthPipeline.evaluate(db_session, ctx, _signals())

    assert result.decision.action == "allow"
    assert result.decision.session_restrictions.permitted_operations is None
    session = result.session
    assert session is not None
    lifetime = session.expires_at - session.created_at
    assert timedelta(hours=23, minutes=59) < lifetime <= timedelta(hours=24, seconds=1)
    assert session.ip_address == "203.0.113.10"

    events = db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).count()
    assert events - events_before == 1
    login = _login_events(db_session, user_id)
    assert [(e.event_type, e.severity) for e in login] == [("login_allowed", "low")]
    assert login[0].connection_id == ctx.request_id


def test_new_device_is_challenged_and_not_registered(db_session, user_id):
    result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())

    assert result.decision.action == "challenge"
    assert result.decision.required_actions == ["mfa_required", "device_verification"]
    assert result.decision.reasoning == ["New device detected"]
    assert db_session.query(DeviceFingerprint).count() == 0
    assert [e.event_type for e in _login_events(db_session, user_id)] == ["login_challenged"]

    # a short session that can only enroll or verify MFA
    session = result.session
    assert session is not None
    assert session.permitted_operations == ["session:logout", "mfa:read", "mfa:verify", "mfa:manage"]
    assert session.expires_at - session.created_at <= timedelta(hours=2, seconds=1)


def test_second_factor_turns_challenge_into_monitor(db_session, user_id):
    setup = _enable_mfa(db_session, user_id)

    result = AuthPipeline.evaluate(
        db_session, _ctx(user_id), _signals(), mfa_code=pyotp.TOTP(setup["secret"]).now(),
    )

    assert result.decision.action == "monitor"
    assert result.session is not None
    assert result.session.permitted_operations == result.decision.session_restrictions.permitted_operations
    lifetime = result.session.expires_at - result.session.created_at
    assert lifetime <= timedelta(hours=4, seconds=1)

    # the device is now known, so the next attempt scores low
    assert DeviceService.is_new_device(db_session, user_id, "fp-laptop") is False
    follow_up = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())
    assert follow_up.decision.action == "allow"


def test_webauthn_pass_counts_as_second_factor(db_session, user_id):
    result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals(), webauthn_verified=True)
    assert result.decision.action == "monitor"
    assert result.session is not None


def test_wrong_mfa_code_keeps_challenge(db_session, user_id):
    setup = _enable_mfa(db_session, user_id)
    current = pyotp.TOTP(setup["secret"]).now()
    wrong = "000000" if current != "000000" else "111111"

    result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals(), mfa_code=wrong)

    assert result.decision.action == "challenge"
    types = [e.event_type for e in db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id)]
    assert "mfa_verification_failed" in types
    assert [e.event_type for e in _login_events(db_session, user_id)] == ["login_challenged"]


def test_medium_risk_is_monitored(db_session, user_id):
    _trusted_device(db_session, user_id)
    result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals(location={"country": "DE", "is_vpn": True}))

    assert result.decision.action == "monitor"
    assert result.decision.risk_score == pytest.approx(0.35)
    assert result.session.risk_level == "medium"


def test_store_failure_fails_closed(db_session, user_id):
    boom = OperationalError("SELECT 1", {}, Exception("database unavailable"))
    with patch.object(RiskService, "get_thresholds", side_effect=boom):
        result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())

    assert result.decision.action == "deny"
    assert result.decision.reasoning == ["Risk evaluation failed"]
    assert result.session is None
    assert result.assessment is None
    login = _login_events(db_session, user_id)
    assert [(e.event_type, e.severity) for e in login] == [("login_denied", "critical")]


def test_budget_overrun_fails_closed(db_session, user_id, monkeypatch):
    monkeypatch.setattr(settings, "EVALUATION_BUDGET_MS", -1)
    result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())

    assert result.decision.action == "deny"
    assert result.decision.reasoning == ["Risk evaluation failed"]
    assert db_session.query(UserSession).count() == 0


def test_invariant_violation_propagates(db_session, user_id):
    broken = RiskAssessment(
        id=1, user_id=user_id, risk_score=1.5, risk_level="critical", risk_factors=[], recommendations=[],
    )
    with patch.object(RiskService, "evaluate", return_value=broken):
        with pytest.raises(InvariantViolation):
            AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())


def test_malformed_signals_rejected(db_session, user_id):
    with pytest.raises(InvalidInputError):
        AuthPipeline.evaluate(db_session, _ctx(user_id), _signals(local_hour=30))
    with pytest.raises(InvalidInputError):
        AuthPipeline.evaluate(db_session, RequestContext(user_id="not-a-uuid"), _signals())


def test_thresholds_read_once_per_evaluation(db_session, user_id):
    with patch.object(RiskService, "get_thresholds", wraps=RiskService.get_thresholds) as spy:
        AuthPipeline.evaluate(db_session, _ctx(user_id), _signals())
    assert spy.call_count == 1


def test_session_issue_failure_fails_closed(db_session, user, user_id):
    _trusted_device(db_session, user_id)
    boom = OperationalError("INSERT INTO user_sessions", {}, Exception("disk I/O error"))
    with patch.object(SessionService, "create_session", side_effect=boom):
        result = AuthPipeline.evaluate(db_session, _ctx(user_id), _signals(device_fingerprint="fp-laptop"))

    assert result.decision.action == "deny"
    assert result.decision.reasoning == ["Risk evaluation failed"]
    assert result.session is None
    login = _login_events(db_session, user_id)
    assert [(e.event_type, e.severity) for e in login] == [("login_denied", "critical")]
    assert SecurityEventService.get_successful_login_countries(db_session, user_id) == []


def test_device_registration_failure_revokes_issued_session(db_session, user_id):
    setup = _enable_mfa(db_session, user_id)
    boom = OperationalError("INSERT INTO device_fingerprints", {}, Exception("database is locked"))
    with patch.object(DeviceService, "register_device_fingerprint", side_effect=boom):
        result = AuthPipeline.evaluate(
            db_session, _ctx(user_id), _signals(), mfa_code=pyotp.TOTP(setup["secret"]).now(),
        )

    assert result.decision.action == "deny"
    assert result.session is None
    assert db_session.query(UserSession).filter(UserSession.is_active == True).count() == 0
    assert [e.event_type for e in _login_events(db_session, user_id)] == ["login_denied"]
