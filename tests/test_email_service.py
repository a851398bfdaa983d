"""Tests for stored email messages."""

from datetime import datetime, timezone

import pytest

from pennytrail.core.constants import ClassificationStatus
from pennytrail.models.email_message import EmailMessage
from pennytrail.services.email_service import (
    find_unprocessed,
    get_existing_message_ids,
    list_emails,
    mark_processed,
    store_message,
)


def test_store_message_inserts_once(db_session, user, message_record):
    first = store_message(db_session, user.id, message_record("m1"))
    second = store_message(db_session, user.id, message_record("m1", subject="Changed"))

    assert first is not None
    assert first.processed is False
    assert first.classification == ClassificationStatus.UNKNOWN.value
    assert second is None
    assert db_session.query(EmailMessage).count() == 1
    assert db_session.query(EmailMessage).one().subject == "Subject m1"


def test_store_message_requires_external_id(db_session, user, message_record):
    with pytest.raises(ValueError):
        store_message(db_session, user.id, message_record(None))


def test_existing_ids(db_session, user, message_record):
    store_message(db_session, user.id, message_record("m1"))
    store_message(db_session, user.id, message_record("m2"))

    assert get_existing_message_ids(db_session, ["m1", "m3", "m2"]) == {"m1", "m2"}
    assert get_existing_message_ids(db_session, []) == set()


def test_find_unprocessed_newest_first(db_session, user, message_record):
    store_message(db_session, user.id, message_record("old", received_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
    store_message(db_session, user.id, message_record("new", received_at=datetime(2024, 2, 1, tzinfo=timezone.utc)))
    done = store_message(db_session, user.id, message_record("done"))
    mark_processed(db_session, done, ClassificationStatus.NON_TRANSACTIONAL, confidence=0.9)

    assert [e.message_id for e in find_unprocessed(db_session, user.id)] == ["new", "old"]
    assert [e.message_id for e in find_unprocessed(db_session, user.id, limit=1)] == ["new"]


def test_list_emails_filters(db_session, user, other_user, message_record):
    receipt = store_message(db_session, user.id, message_record("r1", subject="Your Uber receipt"))
    store_message(db_session, user.id, message_record("n1", subject="Weekly newsletter", sender="news@paper.test"))
    store_message(db_session, other_user.id, message_record("x1", subject="Another receipt"))
    mark_processed(db_session, receipt, ClassificationStatus.TRANSACTIONAL, confidence=0.95)

    items, total = list_emails(db_session, user.id)
    assert total == 2

    items, total = list_emails(db_session, user.id, classification=ClassificationStatus.TRANSACTIONAL)
    assert [e.message_id for e in items] == ["r1"]

    items, total = list_emails(db_session, user.id, search="paper")
    assert [e.message_id for e in items] == ["n1"]

    items, total = list_emails(db_session, user.id, skip=1, limit=1)
    assert total == 2
    assert len(items) == 1
