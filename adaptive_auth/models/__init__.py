"""Models package placeholder."""

__all__ = [
    "base",
    "user",
    "session",
    "device",
    "risk",
    "security_event",
    "mfa",
]
