import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from pennytrail.core.config import settings
from pennytrail.core.constants import ClassificationStatus
from pennytrail.core.exceptions import ServiceConfigurationError
from pennytrail.services.email_service import find_unprocessed, mark_processed, record_processing_error
from pennytrail.services.pipeline.batching import run_in_batches
from pennytrail.services.transaction_service import create_from_extraction
from pennytrail.services.user_service import increment_counters

logger = logging.getLogger(__name__)


@dataclass
class ProcessingReport:
    user_id: int
    processed: int = 0
    transactional: int = 0
    transactions_created: int = 0
    classification_errors: int = 0
    extraction_errors: int = 0


def _content(email) -> str:
    return email.body_plain or email.body or ""


def _raise_configuration_error(outcomes) -> None:
    for outcome in outcomes:
        if isinstance(outcome.error, ServiceConfigurationError):
            raise outcome.error


class ProcessingOrchestrator:
    """Classifies unprocessed emails and turns transactional ones into transactions."""

    def __init__(
        self,
        classifier,
        extractor,
        classify_batch_size: int = None,
        classify_pause: float = None,
        extract_batch_size: int = None,
        extract_pause: float = None,
    ):
        self.classifier = classifier
        self.extractor = extractor
        self.classify_batch_size = classify_batch_size or settings.CLASSIFY_BATCH_SIZE
        self.classify_pause = settings.CLASSIFY_PAUSE if classify_pause is None else classify_pause
        self.extract_batch_size = extract_batch_size or settings.EXTRACT_BATCH_SIZE
        self.extract_pause = settings.EXTRACT_PAUSE if extract_pause is None else extract_pause

    async def process(self, db: Session, user_id: int, limit: int = 10) -> ProcessingReport:
        report = ProcessingReport(user_id=user_id)
        emails = find_unprocessed(db, user_id, limit=limit)
        if not emails:
            logger.info(f"[user {user_id}] No unprocessed emails")
            return report

        logger.info(f"[user {user_id}] Processing {len(emails)} email(s)")

        # Content is read up front; each commit below expires the loaded rows
        work = [(email, _content(email)) for email in emails]

        classified = await run_in_batches(
            work,
            lambda item: asyncio.to_thread(self.classifier.classify, item[1]),
            self.classify_batch_size,
            self.classify_pause,
        )
        _raise_configuration_error(classified)

        to_extract = []
        for outcome in classified:
            email, content = outcome.item

            if not outcome.ok:
                report.classification_errors += 1
                mark_processed(db, email, ClassificationStatus.UNKNOWN, error=str(outcome.error))
                report.processed += 1
                continue

            result = outcome.value
            if result.error:
                report.classification_errors += 1
            status = ClassificationStatus.TRANSACTIONAL if result.is_transactional else ClassificationStatus.NON_TRANSACTIONAL
            mark_processed(db, email, status, confidence=result.confidence, error=result.error)
            report.processed += 1

            if result.is_transactional:
                report.transactional += 1
                to_extract.append((email, content))

        if not to_extract:
            return report

        extracted = await run_in_batches(
            to_extract,
            lambda item: asyncio.to_thread(self.extractor.extract, item[1]),
            self.extract_batch_size,
            self.extract_pause,
        )
        _raise_configuration_error(extracted)

        for outcome in extracted:
            email, _ = outcome.item
            error = str(outcome.error) if not outcome.ok else outcome.value.error
            if error:
                logger.error(f"[email {email.id}] Extraction failed: {error}")
                report.extraction_errors += 1
                record_processing_error(db, email, f"extraction: {error}")
                continue

            created = 0
            for candidate in outcome.value.candidates:
                try:
                    create_from_extraction(db, email, candidate)
                    created += 1
                except ValueError as exc:
                    logger.warning(f"[email {email.id}] Skipping candidate: {exc}")
                except Exception as exc:
                    db.rollback()
                    logger.error(f"[email {email.id}] Could not store transaction: {exc}")
                    report.extraction_errors += 1
                    record_processing_error(db, email, f"extraction: {exc}")
                    break

            if created:
                report.transactions_created += created
                increment_counters(db, user_id, transactional_emails=1)
                logger.info(f"[email {email.id}] Created {created} transaction(s)")

        logger.info(
            f"[user {user_id}] Processing finished: processed={report.processed} "
            f"transactional={report.transactional} transactions={report.transactions_created}"
        )
        return report
