"""Celery application for background work.

Run with:
  celery -A adaptive_auth.worker worker --beat --loglevel=info
"""
from celery import Celery

from adaptive_auth.core.config import settings
from adaptive_auth.core.logger import setup_logging

setup_logging()

celery_app = Celery(
    "adaptive_auth",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["adaptive_auth.tasks.session_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_hijack_root_logger=False,
    beat_schedule={
        "cleanup-expired-sessions": {
            "task": "adaptive_auth.tasks.session_tasks.cleanup_expired_sessions",
            "schedule": settings.SESSION_CLEANUP_INTERVAL_MINUTES * 60.0,
        },
    },
)

app = celery_app
