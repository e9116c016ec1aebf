import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

class Settings:
    ENV: str = os.getenv("ENV", "local")

    # Database
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"
    DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", 20))
    DATABASE_MAX_OVERFLOW: int = int(os.getenv("DATABASE_MAX_OVERFLOW", 10))

    # Identity provider tokens (verified, never issued here)
    IDP_JWT_KEY: Optional[str] = os.getenv("IDP_JWT_KEY")
    IDP_JWT_ALGORITHM: str = os.getenv("IDP_JWT_ALGORITHM", "HS256")
    IDP_JWT_AUDIENCE: Optional[str] = os.getenv("IDP_JWT_AUDIENCE") or None
    ADMIN_ROLE: str = os.getenv("ADMIN_ROLE", "admin")

    # WebAuthn verdicts, signed by the ceremony handler after it checks the authenticator
    WEBAUTHN_ASSERTION_KEY: Optional[str] = os.getenv("WEBAUTHN_ASSERTION_KEY")
    WEBAUTHN_ASSERTION_ALGORITHM: str = os.getenv("WEBAUTHN_ASSERTION_ALGORITHM", "HS256")
    WEBAUTHN_ASSERTION_HEADER: str = os.getenv("WEBAUTHN_ASSERTION_HEADER", "X-WebAuthn-Assertion")
    WEBAUTHN_ASSERTION_MAX_AGE_SECONDS: int = int(os.getenv("WEBAUTHN_ASSERTION_MAX_AGE_SECONDS", 120))

    # Sessions
    SESSION_DURATION_HOURS: int = int(os.getenv("SESSION_DURATION_HOURS", 24))
    MONITOR_SESSION_HOURS: int = int(os.getenv("MONITOR_SESSION_HOURS", 4))
    CHALLENGE_SESSION_HOURS: int = int(os.getenv("CHALLENGE_SESSION_HOURS", 2))
    SESSION_RETENTION_DAYS: int = int(os.getenv("SESSION_RETENTION_DAYS", 7))
    MAX_SESSIONS_PER_USER: int = int(os.getenv("MAX_SESSIONS_PER_USER", 5))
    SESSION_CLEANUP_INTERVAL_MINUTES: int = int(os.getenv("SESSION_CLEANUP_INTERVAL_MINUTES", 60))
    SESSION_TOKEN_HEADER: str = os.getenv("SESSION_TOKEN_HEADER", "X-Session-Token")

    # Risk evaluation
    EVALUATION_BUDGET_MS: int = int(os.getenv("EVALUATION_BUDGET_MS", 2000))
    RISK_HISTORY_DEFAULT_LIMIT: int = int(os.getenv("RISK_HISTORY_DEFAULT_LIMIT", 50))

    # MFA
    MFA_ISSUER: str = os.getenv("MFA_ISSUER", "Adaptive Auth SSO")
    MFA_BACKUP_CODE_COUNT: int = int(os.getenv("MFA_BACKUP_CODE_COUNT", 10))
    MFA_VALID_WINDOW: int = int(os.getenv("MFA_VALID_WINDOW", 1))

    # CORS
    BACKEND_CORS_ORIGINS: Optional[str] = os.getenv("BACKEND_CORS_ORIGINS")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "True").lower() == "true"
    RATE_LIMIT_REQUESTS: int = int(os.getenv("RATE_LIMIT_REQUESTS", 100))
    RATE_LIMIT_PERIOD_SECONDS: int = int(os.getenv("RATE_LIMIT_PERIOD_SECONDS", 60))

    # Redis / Celery
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", REDIS_URL)
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")



settings = Settings()
