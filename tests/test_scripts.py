"""Tests for the operational scripts."""

from unittest.mock import patch

import pytest

from pennytrail.core.security import hash_api_token
from pennytrail.models.email_message import EmailMessage
from pennytrail.scripts import backfill_emails
from pennytrail.scripts.create_user import register_user
from pennytrail.services.classification_client import ClassificationResult
from pennytrail.services.extraction_client import ExtractionResult
from pennytrail.services.user_service import get_user_by_api_token


def test_register_user_stores_only_the_hash(db_session):
    user, api_token = register_user(db_session, "new@example.com", "New", access_token="ya29", refresh_token="1//r")

    assert user.api_token_hash == hash_api_token(api_token)
    assert get_user_by_api_token(db_session, api_token).email == "new@example.com"
    assert user.refresh_token == "1//r"


class ListFetcher:
    def __init__(self, message_record, ids):
        self.message_record = message_record
        self.ids = ids

    def list_new_messages(self, user, since=None, max_results=50):
        return self.ids

    def fetch_message(self, user, message_id):
        return self.message_record(message_id, body="newsletter")


class NegativeClassifier:
    def classify(self, text):
        return ClassificationResult(is_transactional=False, confidence=0.7)


class UnusedExtractor:
    def extract(self, text):
        return ExtractionResult()


@pytest.mark.asyncio
async def test_backfill_syncs_then_drains_processing(db_session, user, message_record):
    with patch.object(backfill_emails, "get_mail_fetcher", return_value=ListFetcher(message_record, ["a", "b", "c"])), \
            patch.object(backfill_emails, "get_classification_client", return_value=NegativeClassifier()), \
            patch.object(backfill_emails, "get_extraction_client", return_value=UnusedExtractor()):
        await backfill_emails.backfill_user(db_session, user.id, max_results=10, full_resync=True, process_limit=2)

    emails = db_session.query(EmailMessage).all()
    assert len(emails) == 3
    assert all(e.processed for e in emails)
