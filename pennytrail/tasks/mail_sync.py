import asyncio
from dataclasses import asdict
from pennytrail.core.clients import get_classification_client, get_extraction_client, get_mail_fetcher
from pennytrail.core.database import SessionLocal
from pennytrail.core.exceptions import ServiceConfigurationError, SyncInProgressError
from pennytrail.core.logger import get_logger
from pennytrail.services.pipeline.processing import ProcessingOrchestrator
from pennytrail.services.pipeline.sync import SyncOrchestrator
from pennytrail.worker_app import celery_app

logger = get_logger("mail_sync")


@celery_app.task(bind=True, max_retries=3, name="pennytrail.tasks.mail_sync.sync_mailbox")
def sync_mailbox(self, user_id: int, max_results: int = 50, full_resync: bool = False):
    db = SessionLocal()
    try:
        orchestrator = SyncOrchestrator(get_mail_fetcher())
        report = asyncio.run(orchestrator.sync(db, user_id, max_results=max_results, full_resync=full_resync))
        logger.info(f"[user {user_id}] Stored {report.stored} new email(s).")
        return asdict(report)

    except SyncInProgressError as exc:
        logger.warning(f"[user {user_id}] {exc}")
        return None

    except ValueError as exc:
        logger.error(f"[user {user_id}] {exc}")
        return None

    except Exception as exc:
        logger.error(f"[user {user_id}] Unexpected error: {exc}")
        raise self.retry(exc=exc, countdown=10)

    finally:
        db.close()
        logger.info(f"[user {user_id}] DB session closed.")


@celery_app.task(bind=True, max_retries=3, name="pennytrail.tasks.mail_sync.process_mailbox")
def process_mailbox(self, user_id: int, batch_size: int = 10):
    db = SessionLocal()
    try:
        orchestrator = ProcessingOrchestrator(get_classification_client(), get_extraction_client())
        report = asyncio.run(orchestrator.process(db, user_id, limit=batch_size))
        return asdict(report)

    except ServiceConfigurationError as exc:
        logger.error(f"[user {user_id}] {exc}")
        raise

    except Exception as exc:
        logger.error(f"[user {user_id}] Unexpected error: {exc}")
        raise self.retry(exc=exc, countdown=10)

    finally:
        db.close()
        logger.info(f"[user {user_id}] DB session closed.")
