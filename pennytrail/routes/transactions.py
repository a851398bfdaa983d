import logging
from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from pennytrail.core.auth_dependencies import get_current_user
from pennytrail.core.constants import TransactionType
from pennytrail.core.database import get_db
from pennytrail.core.exceptions import TransactionNotFoundError, TransactionPermissionError
from pennytrail.models.user import User
from pennytrail.schemas.transaction import (
    Pagination,
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatsResponse,
    TransactionUpdate,
)
from pennytrail.services import transaction_service

logger = logging.getLogger(__name__)

transaction_router = APIRouter(prefix="/api/v1/transactions", tags=["Transactions"])


def _raise_for(error: Exception):
    if isinstance(error, TransactionNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))


@transaction_router.get("", response_model=TransactionListResponse)
def read_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = transaction_service.list_transactions(
        db,
        current_user.id,
        skip=(page - 1) * limit,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    return {"transactions": items, "pagination": Pagination.build(page, limit, total)}


@transaction_router.get("/stats", response_model=TransactionStatsResponse)
def read_transaction_stats(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Totals per currency and per type, plus a monthly breakdown for `year`
    (defaults to the current year).
    """
    return transaction_service.get_statistics(db, current_user.id, year or date.today().year)


@transaction_router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Manual entry; manually entered transactions are marked verified."""
    transaction = transaction_service.create_transaction(db, current_user.id, data)
    logger.info(f"[user {current_user.id}] Created transaction {transaction.id}")
    return transaction


@transaction_router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return transaction_service.update_transaction(db, current_user.id, transaction_id, data)
    except (TransactionNotFoundError, TransactionPermissionError) as e:
        _raise_for(e)


@transaction_router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        transaction_service.delete_transaction(db, current_user.id, transaction_id)
    except (TransactionNotFoundError, TransactionPermissionError) as e:
        _raise_for(e)
    return {"message": "Transaction deleted successfully"}
