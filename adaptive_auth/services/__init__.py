"""Service layer package."""

__all__ = [
    "device_service",
    "security_event_service",
    "risk_service",
    "policy_service",
    "session_service",
    "mfa_service",
    "user_service",
    "auth_pipeline",
]
