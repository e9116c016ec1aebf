"""Tests for the policy decision engine."""
import pytest

from adaptive_auth.core.constants import CHALLENGE_OPERATIONS, MONITOR_OPERATIONS
from adaptive_auth.models.risk import RiskAssessment
from adaptive_auth.models.security_event import SecurityEvent
from adaptive_auth.services.policy_service import PolicyService, decide_action
from adaptive_auth.utils.errors import InvariantViolation


def _assessment(db, user_id, score, level, factors=None):
    a = RiskAssessment(
        user_id=user_id,
        risk_score=score,
        risk_level=level,
        risk_factors=factors or [],
        recommendations=[],
        country="DE",
        city="Berlin",
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


@pytest.mark.parametrize("trusted", [True, False])
@pytest.mark.parametrize("mfa_enabled", [True, False])
@pytest.mark.parametrize("mfa_verified", [True, False])
def test_critical_always_denies(trusted, mfa_enabled, mfa_verified):
    action, required = decide_action("critical", trusted, mfa_enabled, mfa_verified)
    assert action.value == "deny"
    assert required == []


def test_high_untrusted_device_is_challenged_for_mfa_and_device():
    action, required = decide_action("high", device_trusted=False, mfa_enabled=True)
    assert action.value == "challenge"
    assert required == ["mfa_required", "device_verification"]


def test_high_trusted_without_mfa_requires_enrollment():
    action, required = decide_action("high", device_trusted=True, mfa_enabled=False)
    assert action.value == "challenge"
    assert required == ["mfa_enrollment"]


def test_high_trusted_with_mfa_requires_code():
    action, required = decide_action("high", device_trusted=True, mfa_enabled=True)
    assert action.value == "challenge"
    assert required == ["mfa_required"]


def test_high_with_verified_second_factor_is_monitored():
    action, required = decide_action("high", device_trusted=False, mfa_enabled=True, mfa_verified=True)
    assert action.value == "monitor"
    assert required == []


def test_medium_and_low():
    assert decide_action("medium", False, False)[0].value == "monitor"
    assert decide_action("low", False, False)[0].value == "allow"


def test_unknown_level_is_invariant_violation():
    with pytest.raises(InvariantViolation):
        decide_action("extreme", True, True)


def test_restrictions_per_action(db_session, user_id):
    low = PolicyService.build_decision(_assessment(db_session, user_id, 0.05, "low"), True, True)
    assert low.session_restrictions.max_session_duration == 24 * 3600
    assert low.session_restrictions.permitted_operations is None

    medium = PolicyService.build_decision(_assessment(db_session, user_id, 0.4, "medium"), True, True)
    assert medium.session_restrictions.max_session_duration == 4 * 3600
    assert medium.session_restrictions.permitted_operations == [op.value for op in MONITOR_OPERATIONS]

    high = PolicyService.build_decision(_assessment(db_session, user_id, 0.7, "high"), False, False)
    assert high.session_restrictions.max_session_duration == 2 * 3600
    assert high.session_restrictions.require_mfa is True
    assert high.session_restrictions.permitted_operations == [op.value for op in CHALLENGE_OPERATIONS]

    critical = PolicyService.build_decision(_assessment(db_session, user_id, 0.9, "critical"), True, True)
    assert critical.session_restrictions.max_session_duration == 0
    assert critical.session_restrictions.permitted_operations == []


def test_reasoning_follows_factor_order(db_session, user_id):
    factors = [
        {"type": "network", "description": "VPN usage detected", "weight": 0.3, "score": 1.0, "severity": "medium"},
        {"type": "device", "description": "New device detected", "weight": 0.7, "score": 1.0, "severity": "medium"},
    ]
    decision = PolicyService.build_decision(_assessment(db_session, user_id, 1.0, "critical", factors), False, False)
    assert decision.reasoning == ["VPN usage detected", "New device detected"]


@pytest.mark.parametrize("score", [-0.1, 1.2])
def test_out_of_range_score_is_invariant_violation(db_session, user_id, score):
    with pytest.raises(InvariantViolation):
        PolicyService.build_decision(_assessment(db_session, user_id, score, "low"), True, True)


@pytest.mark.parametrize("score,level,event_type,severity", [
    (0.05, "low", "login_allowed", "low"),
    (0.4, "medium", "login_monitored", "medium"),
    (0.7, "high", "login_challenged", "high"),
    (0.95, "critical", "login_denied", "critical"),
])
def test_each_decision_writes_exactly_one_event(db_session, user_id, score, level, event_type, severity):
    decision = PolicyService.decide(db_session, _assessment(db_session, user_id, score, level), False, False)

    events = db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).all()
    assert len(events) == 1
    assert events[0].event_type == event_type
    assert events[0].severity == severity
    assert events[0].risk_score == pytest.approx(score)
    assert events[0].country == "DE"
    assert decision.risk_level == level


def test_fail_closed_denies_with_critical_event(db_session, user_id):
    decision = PolicyService.fail_closed(db_session, user_id)

    assert decision.action == "deny"
    assert decision.reasoning == ["Risk evaluation failed"]
    events = db_session.query(SecurityEvent).filter(SecurityEvent.user_id == user_id).all()
    assert [(e.event_type, e.severity) for e in events] == [("login_denied", "critical")]
