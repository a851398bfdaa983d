import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pennytrail.core.config import settings
from pennytrail.core.constants import TransactionType, normalize_transaction_type
from pennytrail.core.exceptions import TransactionNotFoundError, TransactionPermissionError
from pennytrail.models.email_message import EmailMessage
from pennytrail.models.transaction import Transaction
from pennytrail.schemas.transaction import TransactionCreate, TransactionUpdate
from pennytrail.services.extraction_client import ExtractionCandidate

logger = logging.getLogger(__name__)


def _raw_extraction(candidate: ExtractionCandidate) -> dict:
    return {
        "amount": candidate.amount,
        "date": candidate.date.isoformat() if candidate.date else None,
        "type": candidate.type,
        "merchant": candidate.merchant,
        "currency": candidate.currency,
        "confidence": candidate.confidence,
        "response": candidate.raw_response,
    }


def create_from_extraction(db: Session, email: EmailMessage, candidate: ExtractionCandidate) -> Transaction:
    """Persist one extracted candidate against its source email. The owner is always the email's owner."""
    if candidate.amount is None or candidate.amount <= 0:
        raise ValueError("Extracted amount must be positive")

    transaction_date = candidate.date
    if transaction_date is None and email.received_at is not None:
        transaction_date = email.received_at.date()

    transaction = Transaction(
        user_id=email.user_id,
        email_id=email.id,
        amount=Decimal(str(candidate.amount)),
        currency=candidate.currency or settings.DEFAULT_CURRENCY,
        transaction_date=transaction_date,
        transaction_type=normalize_transaction_type(candidate.type).value,
        merchant=candidate.merchant,
        extraction_confidence=candidate.confidence,
        raw_extraction=_raw_extraction(candidate),
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def create_transaction(db: Session, user_id: int, data: TransactionCreate) -> Transaction:
    transaction = Transaction(
        user_id=user_id,
        amount=data.amount,
        currency=data.currency or settings.DEFAULT_CURRENCY,
        transaction_date=data.transaction_date,
        transaction_type=data.transaction_type.value,
        merchant=data.merchant,
        category=data.category,
        description=data.description,
        verified=True,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def get_owned_transaction(db: Session, user_id: int, transaction_id: int) -> Transaction:
    transaction = db.get(Transaction, transaction_id)
    if not transaction:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    if transaction.user_id != user_id:
        raise TransactionPermissionError(f"Transaction {transaction_id} belongs to another user")
    return transaction


def update_transaction(db: Session, user_id: int, transaction_id: int, data: TransactionUpdate) -> Transaction:
    transaction = get_owned_transaction(db, user_id, transaction_id)

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        if field == "transaction_type":
            value = TransactionType(value).value
        setattr(transaction, field, value)

    db.commit()
    db.refresh(transaction)
    return transaction


def delete_transaction(db: Session, user_id: int, transaction_id: int) -> Transaction:
    transaction = get_owned_transaction(db, user_id, transaction_id)
    db.delete(transaction)
    db.commit()
    return transaction


def list_transactions(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 20,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    transaction_type: Optional[TransactionType] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
):
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if start_date:
        query = query.filter(Transaction.transaction_date >= start_date)
    if end_date:
        query = query.filter(Transaction.transaction_date <= end_date)
    if transaction_type:
        query = query.filter(Transaction.transaction_type == transaction_type.value)
    if min_amount is not None:
        query = query.filter(Transaction.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Transaction.amount <= max_amount)

    total = query.count()
    items = (
        query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def list_for_email(db: Session, email_id: int):
    return db.query(Transaction).filter(Transaction.email_id == email_id).all()


def get_statistics(db: Session, user_id: int, year: int) -> dict:
    totals = (
        db.query(Transaction.currency, func.sum(Transaction.amount), func.count(Transaction.id))
        .filter(Transaction.user_id == user_id)
        .group_by(Transaction.currency)
        .all()
    )
    by_type = (
        db.query(Transaction.transaction_type, func.sum(Transaction.amount), func.count(Transaction.id))
        .filter(Transaction.user_id == user_id)
        .group_by(Transaction.transaction_type)
        .all()
    )

    monthly = defaultdict(lambda: {"total_amount": Decimal("0"), "count": 0})
    in_year = (
        db.query(Transaction.transaction_date, Transaction.amount)
        .filter(
            Transaction.user_id == user_id,
            Transaction.transaction_date >= date(year, 1, 1),
            Transaction.transaction_date < date(year + 1, 1, 1),
        )
        .all()
    )
    for tx_date, amount in in_year:
        bucket = monthly[tx_date.month]
        bucket["total_amount"] += Decimal(str(amount))
        bucket["count"] += 1

    return {
        "year": year,
        "totals": [
            {"currency": currency, "total_amount": Decimal(str(total or 0)), "count": count}
            for currency, total, count in totals
        ],
        "by_type": [
            {"transaction_type": tx_type, "total_amount": Decimal(str(total or 0)), "count": count}
            for tx_type, total, count in by_type
        ],
        "monthly": [
            {"month": month, **monthly[month]}
            for month in sorted(monthly)
        ],
    }
