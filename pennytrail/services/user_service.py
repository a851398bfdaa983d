import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from pennytrail.core.security import hash_api_token
from pennytrail.models.user import User

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_api_token(db: Session, token: str) -> Optional[User]:
    if not token:
        return None
    return db.query(User).filter(User.api_token_hash == hash_api_token(token)).first()


def create_user(db: Session, email: str, name: str, api_token: str = None, **fields) -> User:
    user = User(
        email=email,
        name=name,
        api_token_hash=hash_api_token(api_token) if api_token else None,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ==================== SYNC CURSOR ====================

def acquire_sync_lock(db: Session, user_id: int) -> bool:
    """Set the in-progress flag if it is clear. Returns False when another sync holds it."""
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.sync_in_progress.is_(False))
        .values(sync_in_progress=True, sync_started_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def release_sync_lock(db: Session, user_id: int, completed_at: Optional[datetime] = None) -> None:
    """Clear the in-progress flag; advance the cursor only when ``completed_at`` is given."""
    values = {"sync_in_progress": False, "sync_started_at": None}
    if completed_at is not None:
        values["last_sync_at"] = completed_at
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def increment_counters(db: Session, user_id: int, total_emails: int = 0, transactional_emails: int = 0) -> None:
    if not total_emails and not transactional_emails:
        return
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            total_emails=User.total_emails + total_emails,
            transactional_emails=User.transactional_emails + transactional_emails,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()


def release_stale_sync_locks(db: Session, timeout: timedelta) -> int:
    """Clear in-progress flags older than ``timeout``, left behind by crashed workers."""
    cutoff = datetime.now(timezone.utc) - timeout
    result = db.execute(
        update(User)
        .where(
            User.sync_in_progress.is_(True),
            (User.sync_started_at.is_(None)) | (User.sync_started_at <= cutoff),
        )
        .values(sync_in_progress=False, sync_started_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.warning(f"Released {result.rowcount} stale sync lock(s)")
    return result.rowcount
