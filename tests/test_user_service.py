"""Tests for users and the sync cursor."""

from datetime import datetime, timedelta, timezone

from pennytrail.core.security import hash_api_token
from pennytrail.services.user_service import (
    acquire_sync_lock,
    get_user_by_api_token,
    increment_counters,
    release_stale_sync_locks,
    release_sync_lock,
)


def test_api_token_is_stored_hashed(db_session, user, api_token):
    assert user.api_token_hash == hash_api_token(api_token)
    assert user.api_token_hash != api_token
    assert get_user_by_api_token(db_session, api_token).id == user.id
    assert get_user_by_api_token(db_session, "wrong") is None
    assert get_user_by_api_token(db_session, "") is None


def test_sync_lock_is_exclusive(db_session, user):
    assert acquire_sync_lock(db_session, user.id) is True
    assert acquire_sync_lock(db_session, user.id) is False

    db_session.refresh(user)
    assert user.sync_in_progress is True
    assert user.sync_started_at is not None

    release_sync_lock(db_session, user.id)
    db_session.refresh(user)
    assert user.sync_in_progress is False
    assert user.sync_started_at is None
    assert user.last_sync_at is None

    assert acquire_sync_lock(db_session, user.id) is True


def test_release_with_completion_advances_cursor(db_session, user):
    completed = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    acquire_sync_lock(db_session, user.id)
    release_sync_lock(db_session, user.id, completed_at=completed)

    db_session.refresh(user)
    assert user.last_sync_at.replace(tzinfo=timezone.utc) == completed


def test_locks_are_per_user(db_session, user, other_user):
    assert acquire_sync_lock(db_session, user.id) is True
    assert acquire_sync_lock(db_session, other_user.id) is True


def test_increment_counters(db_session, user):
    increment_counters(db_session, user.id, total_emails=3)
    increment_counters(db_session, user.id, transactional_emails=1)
    increment_counters(db_session, user.id, total_emails=2, transactional_emails=1)

    db_session.refresh(user)
    assert user.total_emails == 5
    assert user.transactional_emails == 2


def test_release_stale_sync_locks(db_session, user, other_user):
    acquire_sync_lock(db_session, user.id)
    acquire_sync_lock(db_session, other_user.id)

    db_session.refresh(user)
    user.sync_started_at = datetime.now(timezone.utc) - timedelta(hours=2)
    db_session.commit()

    released = release_stale_sync_locks(db_session, timedelta(minutes=30))

    assert released == 1
    db_session.refresh(user)
    db_session.refresh(other_user)
    assert user.sync_in_progress is False
    assert other_user.sync_in_progress is True
