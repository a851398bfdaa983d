import argparse
import asyncio

from pennytrail.core.clients import get_classification_client, get_extraction_client, get_mail_fetcher
from pennytrail.core.database import SessionLocal
from pennytrail.core.exceptions import SyncInProgressError
from pennytrail.core.logger import get_logger
from pennytrail.services.pipeline.processing import ProcessingOrchestrator
from pennytrail.services.pipeline.sync import SyncOrchestrator

logger = get_logger("backfill_emails")


async def backfill_user(db, user_id: int, max_results: int, full_resync: bool, process_limit: int):
    """
    Sync one mailbox and then drain its unprocessed emails, in the foreground.
    """
    report = await SyncOrchestrator(get_mail_fetcher()).sync(
        db, user_id, max_results=max_results, full_resync=full_resync
    )
    logger.info(f"[user {user_id}] Sync: stored={report.stored} failed={report.failed} error={report.error}")

    if process_limit <= 0:
        return

    processor = ProcessingOrchestrator(get_classification_client(), get_extraction_client())
    while True:
        result = await processor.process(db, user_id, limit=process_limit)
        if not result.processed:
            break
        logger.info(
            f"[user {user_id}] Processed {result.processed} email(s), "
            f"{result.transactions_created} transaction(s) created"
        )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Backfill Gmail messages for one or more users")
    parser.add_argument("user_ids", type=int, nargs="+")
    parser.add_argument("--max-results", type=int, default=500)
    parser.add_argument("--full-resync", action="store_true")
    parser.add_argument("--process-limit", type=int, default=10, help="0 skips classification")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        for user_id in args.user_ids:
            try:
                asyncio.run(backfill_user(db, user_id, args.max_results, args.full_resync, args.process_limit))
            except SyncInProgressError as exc:
                logger.warning(str(exc))
    finally:
        db.close()


if __name__ == "__main__":
    main()
