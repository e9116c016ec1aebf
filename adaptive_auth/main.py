from fastapi import FastAPI
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from sqlalchemy.exc import SQLAlchemyError

from adaptive_auth.core.logger import setup_logging
from adaptive_auth.middleware.cors import configure_cors
from adaptive_auth.middleware.logging import RequestLoggerMiddleware
from adaptive_auth.middleware.auth import SessionTokenMiddleware
from adaptive_auth.middleware import error_handler

# Routers
from adaptive_auth.routers import auth as auth_router
from adaptive_auth.routers import risk as risk_router
from adaptive_auth.routers import devices as devices_router
from adaptive_auth.routers import mfa as mfa_router
from adaptive_auth.routers import security as security_router
from adaptive_auth.routers import admin as admin_router
from adaptive_auth.routers import health as health_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    setup_logging()
    description = (
        "Adaptive Authentication API.\n\n"
        "Scores sign-in attempts, applies risk-based access policy and manages the resulting portal sessions."
    )

    openapi_tags = [
        {"name": "authentication", "description": "Evaluate sign-in attempts and manage portal sessions."},
        {"name": "risk", "description": "Risk assessment history and scoring thresholds."},
        {"name": "devices", "description": "Known devices and device trust."},
        {"name": "mfa", "description": "TOTP enrollment, verification and backup codes."},
        {"name": "security", "description": "Security event log."},
        {"name": "admin", "description": "Session statistics and maintenance."},
        {"name": "health", "description": "Health checks and service status endpoints."},
    ]

    app = FastAPI(
        title="Adaptive Auth API",
        version="0.1.0",
        description=description,
        openapi_tags=openapi_tags,
    )

    # Middleware
    configure_cors(app)
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(SessionTokenMiddleware)

    # Exception handlers
    app.add_exception_handler(FastAPIHTTPException, error_handler.http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, error_handler.database_exception_handler)

    # Include routers
    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(risk_router.router)
    app.include_router(devices_router.router)
    app.include_router(mfa_router.router)
    app.include_router(security_router.router)
    app.include_router(admin_router.router)

    return app


app = create_app()
