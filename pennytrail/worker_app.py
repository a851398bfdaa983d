from celery import Celery
from celery.signals import worker_ready
from datetime import timedelta
from pennytrail.core.config import settings

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Autodiscover task modules
celery_app.autodiscover_tasks(["pennytrail.tasks"])

# Force import so Celery registers tasks
import pennytrail.tasks.mail_sync
import pennytrail.tasks.sync_lock_checker


celery_app.conf.beat_schedule = {

    # --------------------------------------------------------
    # Release sync flags left behind by crashed workers
    # --------------------------------------------------------
    "release-stale-sync-locks": {
        "task": "pennytrail.tasks.sync_lock_checker.release_stale_sync_locks_task",
        "schedule": timedelta(seconds=int(settings.SYNC_LOCK_SWEEP_INTERVAL)),
    },

}


@worker_ready.connect
def reconcile_sync_locks(sender=None, **kwargs):
    pennytrail.tasks.sync_lock_checker.release_stale_locks()
