from datetime import timedelta
from pennytrail.core.config import settings
from pennytrail.core.database import SessionLocal
from pennytrail.core.logger import get_logger
from pennytrail.services.user_service import release_stale_sync_locks

logger = get_logger("sync_lock_checker")


def release_stale_locks() -> int:
    db = SessionLocal()
    timeout = timedelta(minutes=settings.SYNC_LOCK_TIMEOUT_MINUTES)

    try:
        released = release_stale_sync_locks(db, timeout)
        if released:
            logger.info(f"Released {released} sync lock(s) older than {timeout}.")
        return released
    finally:
        db.close()

# Celery wrapper
from pennytrail.worker_app import celery_app

@celery_app.task(bind=True, max_retries=3, name="pennytrail.tasks.sync_lock_checker.release_stale_sync_locks_task")
def release_stale_sync_locks_task(self):
    try:
        return release_stale_locks()
    except Exception as e:
        # Retry after 10 seconds
        raise self.retry(exc=e, countdown=10)
