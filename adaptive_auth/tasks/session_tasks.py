from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from adaptive_auth.core.database import SessionLocal
from adaptive_auth.services.session_service import SessionService
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, soft_time_limit=300, time_limit=360)
def cleanup_expired_sessions(self):
    """
    Delete sessions past the retention window.
    Scheduled via Celery Beat; overlapping runs delete disjoint or empty sets.
    """
    db = SessionLocal()
    try:
        deleted = SessionService.cleanup_expired_sessions(db)
        logger.info(f"Session sweep finished: {deleted} row(s) deleted")
        return deleted
    except SoftTimeLimitExceeded:
        db.rollback()
        logger.warning("Session sweep hit its soft time limit; remaining rows wait for the next run")
        return 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error in cleanup_expired_sessions: {e}")
        raise self.retry(exc=e, countdown=60)
    finally:
        db.close()
