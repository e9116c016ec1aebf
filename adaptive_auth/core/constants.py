"""Application constants: risk levels, decision actions, event types and operations."""
from enum import Enum


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DecisionAction(str, Enum):
    ALLOW = "allow"
    MONITOR = "monitor"
    CHALLENGE = "challenge"
    DENY = "deny"


class RequiredAction(str, Enum):
    MFA_REQUIRED = "mfa_required"
    MFA_ENROLLMENT = "mfa_enrollment"
    DEVICE_VERIFICATION = "device_verification"


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EventType(str, Enum):
    LOGIN_ALLOWED = "login_allowed"
    LOGIN_MONITORED = "login_monitored"
    LOGIN_CHALLENGED = "login_challenged"
    LOGIN_DENIED = "login_denied"
    DEVICE_TRUSTED = "device_trusted"
    DEVICE_REVOKED = "device_revoked"
    MFA_SETUP_STARTED = "mfa_setup_started"
    MFA_ENABLED = "mfa_enabled"
    MFA_DISABLED = "mfa_disabled"
    MFA_VERIFICATION_FAILED = "mfa_verification_failed"
    BACKUP_CODE_USED = "backup_code_used"
    BACKUP_CODES_REGENERATED = "backup_codes_regenerated"
    SESSIONS_REVOKED = "sessions_revoked"
    RISK_THRESHOLDS_UPDATED = "risk_thresholds_updated"


class Operation(str, Enum):
    """Portal operations a session's allow-list can name."""
    SESSION_READ = "session:read"
    SESSION_LOGOUT = "session:logout"
    RISK_READ = "risk:read"
    DEVICES_READ = "devices:read"
    DEVICES_WRITE = "devices:write"
    MFA_READ = "mfa:read"
    MFA_VERIFY = "mfa:verify"
    MFA_MANAGE = "mfa:manage"
    SECURITY_READ = "security:read"


DECISION_EVENTS = {
    DecisionAction.ALLOW: (EventType.LOGIN_ALLOWED, Severity.LOW),
    DecisionAction.MONITOR: (EventType.LOGIN_MONITORED, Severity.MEDIUM),
    DecisionAction.CHALLENGE: (EventType.LOGIN_CHALLENGED, Severity.HIGH),
    DecisionAction.DENY: (EventType.LOGIN_DENIED, Severity.CRITICAL),
}

# Events whose location counts as a place the user has successfully signed in from
SUCCESSFUL_LOGIN_EVENTS = (EventType.LOGIN_ALLOWED.value, EventType.LOGIN_MONITORED.value)

MONITOR_OPERATIONS = (
    Operation.SESSION_READ,
    Operation.SESSION_LOGOUT,
    Operation.RISK_READ,
    Operation.DEVICES_READ,
    Operation.MFA_READ,
    Operation.MFA_VERIFY,
    Operation.SECURITY_READ,
)

CHALLENGE_OPERATIONS = (
    Operation.SESSION_LOGOUT,
    Operation.MFA_READ,
    Operation.MFA_VERIFY,
    Operation.MFA_MANAGE,
)

BASELINE_RISK = 0.05
OFF_HOURS_START = 6   # hours before this are off-hours
OFF_HOURS_END = 22    # hours after this are off-hours

# Lower-case substrings of user agents sent by scripts and crawlers
SUSPICIOUS_AGENT_MARKERS = (
    "bot", "crawler", "spider", "scraper",
    "curl", "wget", "python", "automation",
)
