"""Test configuration and fixtures."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CLASSIFICATION_SERVICE_URL"] = "http://classifier.test/classify"
os.environ["EXTRACTION_SERVICE_URL"] = "http://extractor.test/extract"
os.environ["MODEL_RETRY_DELAY"] = "0"
os.environ["SYNC_FETCH_PAUSE"] = "0"
os.environ["CLASSIFY_PAUSE"] = "0"
os.environ["EXTRACT_PAUSE"] = "0"

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pennytrail.core.database import Base
from pennytrail.models.user import User
from pennytrail.services.user_service import create_user

TEST_API_TOKEN = "test-api-token"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session bound to a fresh in-memory database."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api_token() -> str:
    return TEST_API_TOKEN


@pytest.fixture
def user(db_session) -> User:
    return create_user(
        db_session,
        email="owner@example.com",
        name="Owner",
        api_token=TEST_API_TOKEN,
        access_token="ya29.access",
        refresh_token="1//refresh",
    )


@pytest.fixture
def other_user(db_session) -> User:
    return create_user(db_session, email="someone@example.com", name="Someone", api_token="other-token")


@pytest.fixture
def message_record():
    """Factory for records shaped like GmailFetcher.fetch_message output."""
    def make(message_id: str, body: str = "Your receipt: $12.00 at Acme", **overrides) -> dict:
        record = {
            "message_id": message_id,
            "thread_id": f"thread-{message_id}",
            "subject": f"Subject {message_id}",
            "sender": "billing@acme.test",
            "recipient": "owner@example.com",
            "received_at": datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc),
            "body": body,
            "body_plain": body,
            "labels": ["INBOX"],
            "attachments": [],
        }
        record.update(overrides)
        return record
    return make
