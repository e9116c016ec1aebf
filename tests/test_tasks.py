"""Tests for the background session sweep."""
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.exc import OperationalError

from adaptive_auth.core.config import settings
from adaptive_auth.models.session import UserSession
from adaptive_auth.services.session_service import SessionService
from adaptive_auth.services.user_service import UserService
from adaptive_auth.tasks.session_tasks import cleanup_expired_sessions
from adaptive_auth.utils.helpers import utcnow


@pytest.fixture
def aged_sessions(db_session):
    """One long-expired session, one recently expired and one live."""
    user_id = str(uuid.uuid4())
    UserService.ensure_user(db_session, user_id)
    now = utcnow()
    old = now - timedelta(days=settings.SESSION_RETENTION_DAYS + 1)
    rows = [
        UserSession(user_id=user_id, session_token=uuid.uuid4().hex, expires_at=old, is_active=True),
        UserSession(user_id=user_id, session_token=uuid.uuid4().hex, expires_at=now - timedelta(hours=1), is_active=True),
        UserSession(user_id=user_id, session_token=uuid.uuid4().hex, expires_at=now + timedelta(hours=1), is_active=True),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return user_id


def test_cleanup_task_deletes_only_rows_past_retention(db_session, aged_sessions):
    with patch('adaptive_auth.tasks.session_tasks.SessionLocal', return_value=db_session):
        deleted = cleanup_expired_sessions()

    assert deleted == 1
    assert db_session.query(UserSession).filter(UserSession.user_id == aged_sessions).count() == 2


def test_cleanup_task_is_idempotent(db_session, aged_sessions):
    with patch('adaptive_auth.tasks.session_tasks.SessionLocal', return_value=db_session):
        assert cleanup_expired_sessions() == 1
        assert cleanup_expired_sessions() == 0


def test_cleanup_task_stops_at_soft_time_limit(db_session):
    with patch('adaptive_auth.tasks.session_tasks.SessionLocal', return_value=db_session), \
         patch.object(SessionService, 'cleanup_expired_sessions', side_effect=SoftTimeLimitExceeded()):
        assert cleanup_expired_sessions() == 0


def test_cleanup_task_retries_on_database_error(db_session):
    boom = OperationalError("DELETE", {}, Exception("database unavailable"))
    with patch('adaptive_auth.tasks.session_tasks.SessionLocal', return_value=db_session), \
         patch.object(SessionService, 'cleanup_expired_sessions', side_effect=boom):
        # called directly, Celery's retry re-raises the original error
        with pytest.raises(OperationalError):
            cleanup_expired_sessions()


def test_beat_schedule_registers_sweep():
    from adaptive_auth.worker import celery_app

    entry = celery_app.conf.beat_schedule["cleanup-expired-sessions"]
    assert entry["task"] == "adaptive_auth.tasks.session_tasks.cleanup_expired_sessions"
    assert entry["schedule"] == settings.SESSION_CLEANUP_INTERVAL_MINUTES * 60
