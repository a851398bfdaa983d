import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from pennytrail.core.config import settings
from pennytrail.core.exceptions import MailFetchError, SyncInProgressError
from pennytrail.services.email_service import get_existing_message_ids, store_message
from pennytrail.services.pipeline.batching import run_in_batches
from pennytrail.services.user_service import (
    acquire_sync_lock,
    get_user,
    increment_counters,
    release_stale_sync_locks,
    release_sync_lock,
)

logger = logging.getLogger(__name__)

__all__ = ["SyncReport", "SyncOrchestrator", "release_stale_sync_locks"]


@dataclass
class SyncReport:
    user_id: int
    listed: int = 0
    new: int = 0
    stored: int = 0
    failed: int = 0
    error: Optional[str] = None


class SyncOrchestrator:
    """
    Pulls new mail for one user and stores it.

    The user's ``sync_in_progress`` flag guards the whole run: a second sync
    for the same user is refused with ``SyncInProgressError`` and the flag is
    cleared on every exit path. The cursor (``last_sync_at``) only moves when
    every listed message was fetched, so failed ids are listed again next time.
    """

    def __init__(self, fetcher, fetch_batch_size: int = None, fetch_pause: float = None):
        self.fetcher = fetcher
        self.fetch_batch_size = fetch_batch_size or settings.SYNC_FETCH_BATCH_SIZE
        self.fetch_pause = settings.SYNC_FETCH_PAUSE if fetch_pause is None else fetch_pause

    async def sync(self, db: Session, user_id: int, max_results: int = 50, full_resync: bool = False) -> SyncReport:
        user = get_user(db, user_id)
        if not user:
            raise ValueError(f"User {user_id} not found")

        if not acquire_sync_lock(db, user_id):
            raise SyncInProgressError(user_id)

        report = SyncReport(user_id=user_id)
        started_at = datetime.now(timezone.utc)
        completed_at = None

        try:
            # Fully loaded here; no commit happens until every fetch has finished
            db.refresh(user)
            since = None if full_resync else user.last_sync_at
            logger.info(f"[user {user_id}] Sync started (since={since}, max_results={max_results})")

            try:
                message_ids = await asyncio.to_thread(self.fetcher.list_new_messages, user, since, max_results)
            except MailFetchError as exc:
                logger.error(f"[user {user_id}] Listing messages failed: {exc}")
                report.error = str(exc)
                return report

            report.listed = len(message_ids)
            existing = get_existing_message_ids(db, message_ids)
            new_ids = [message_id for message_id in message_ids if message_id not in existing]
            report.new = len(new_ids)

            outcomes = await run_in_batches(
                new_ids,
                lambda message_id: asyncio.to_thread(self.fetcher.fetch_message, user, message_id),
                self.fetch_batch_size,
                self.fetch_pause,
            )

            for outcome in outcomes:
                if not outcome.ok:
                    logger.warning(f"[user {user_id}] Could not fetch {outcome.item}: {outcome.error}")
                    report.failed += 1
                    continue
                try:
                    stored = store_message(db, user_id, outcome.value)
                except Exception as exc:
                    db.rollback()
                    logger.error(f"[user {user_id}] Could not store {outcome.item}: {exc}")
                    report.failed += 1
                    continue
                if stored:
                    report.stored += 1

            increment_counters(db, user_id, total_emails=report.stored)

            if report.failed:
                report.error = f"{report.failed} message(s) could not be fetched or stored"
            else:
                completed_at = started_at

            logger.info(
                f"[user {user_id}] Sync finished: listed={report.listed} new={report.new} "
                f"stored={report.stored} failed={report.failed}"
            )
            return report

        finally:
            # Clears any failed transaction so the flag can always be released
            db.rollback()
            release_sync_lock(db, user_id, completed_at=completed_at)
