import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pennytrail.core.constants import ClassificationStatus
from pennytrail.models.email_message import EmailMessage

logger = logging.getLogger(__name__)


def get_email_by_message_id(db: Session, message_id: str) -> Optional[EmailMessage]:
    return db.query(EmailMessage).filter(EmailMessage.message_id == message_id).first()


def get_existing_message_ids(db: Session, message_ids: List[str]) -> set:
    if not message_ids:
        return set()
    rows = db.query(EmailMessage.message_id).filter(EmailMessage.message_id.in_(message_ids)).all()
    return {row[0] for row in rows}


def store_message(db: Session, user_id: int, record: dict) -> Optional[EmailMessage]:
    """
    Insert a fetched message unless its external id is already stored.
    Returns the new row, or None for a duplicate. Existing rows are never touched.
    """
    message_id = record.get("message_id")
    if not message_id:
        raise ValueError("Fetched message has no external id")

    if get_email_by_message_id(db, message_id):
        logger.info(f"[user {user_id}] Skipping duplicate email: {message_id}")
        return None

    email = EmailMessage(user_id=user_id, **record)
    db.add(email)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"[user {user_id}] Email {message_id} stored concurrently, skipping")
        return None
    db.refresh(email)
    return email


def get_email_for_user(db: Session, user_id: int, email_id: int) -> Optional[EmailMessage]:
    return (
        db.query(EmailMessage)
        .filter(EmailMessage.id == email_id, EmailMessage.user_id == user_id)
        .first()
    )


def find_unprocessed(db: Session, user_id: int, limit: int = 50) -> List[EmailMessage]:
    return (
        db.query(EmailMessage)
        .filter(EmailMessage.user_id == user_id, EmailMessage.processed.is_(False))
        .order_by(EmailMessage.received_at.desc())
        .limit(limit)
        .all()
    )


def mark_processed(
    db: Session,
    email: EmailMessage,
    classification: ClassificationStatus,
    confidence: Optional[float] = None,
    error: Optional[str] = None,
) -> EmailMessage:
    email.processed = True
    email.classification = classification.value
    email.classification_confidence = confidence
    email.processing_error = error
    db.add(email)
    db.commit()
    db.refresh(email)
    return email


def record_processing_error(db: Session, email: EmailMessage, error: str) -> EmailMessage:
    email.processing_error = error
    db.add(email)
    db.commit()
    db.refresh(email)
    return email


def list_emails(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 20,
    classification: Optional[ClassificationStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
):
    query = db.query(EmailMessage).filter(EmailMessage.user_id == user_id)

    if classification:
        query = query.filter(EmailMessage.classification == classification.value)
    if start_date:
        query = query.filter(EmailMessage.received_at >= start_date)
    if end_date:
        query = query.filter(EmailMessage.received_at <= end_date)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(EmailMessage.subject.ilike(pattern), EmailMessage.sender.ilike(pattern)))

    total = query.count()
    items = query.order_by(EmailMessage.received_at.desc()).offset(skip).limit(limit).all()
    return items, total
