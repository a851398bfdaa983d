import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from pennytrail.core.auth_dependencies import get_current_user
from pennytrail.core.constants import ClassificationStatus
from pennytrail.core.database import get_db
from pennytrail.models.user import User
from pennytrail.schemas.email_message import (
    EmailDetailResponse,
    EmailMessageListResponse,
    ProcessRequest,
    ProcessStartedResponse,
    SyncRequest,
    SyncStartedResponse,
    SyncStatusResponse,
)
from pennytrail.schemas.transaction import Pagination
from pennytrail.services.email_service import find_unprocessed, get_email_for_user, list_emails
from pennytrail.services.transaction_service import list_for_email
from pennytrail.tasks.mail_sync import process_mailbox, sync_mailbox

logger = logging.getLogger(__name__)

email_router = APIRouter(prefix="/api/v1/emails", tags=["Emails"])


@email_router.post("/sync", response_model=SyncStartedResponse, status_code=status.HTTP_202_ACCEPTED)
def start_sync(
    request: Optional[SyncRequest] = None,
    current_user: User = Depends(get_current_user),
):
    """
    Queue a Gmail sync for the current user.

    - Returns **409** while a sync is already running
    - `full_resync` ignores the last sync timestamp
    """
    request = request or SyncRequest()
    if current_user.sync_in_progress:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Sync already in progress",
        )

    task = sync_mailbox.delay(current_user.id, request.max_results, request.full_resync)
    logger.info(f"[user {current_user.id}] Sync queued as task {task.id}")
    return {"message": "Email sync started", "sync_in_progress": True, "task_id": task.id}


@email_router.get("/sync/status", response_model=SyncStatusResponse)
def get_sync_status(current_user: User = Depends(get_current_user)):
    return current_user


@email_router.post("/process", response_model=ProcessStartedResponse, status_code=status.HTTP_202_ACCEPTED)
def start_processing(
    request: Optional[ProcessRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Queue classification and extraction for unprocessed emails."""
    request = request or ProcessRequest()
    pending = find_unprocessed(db, current_user.id, limit=request.batch_size)
    if not pending:
        return {"message": "No unprocessed emails found", "email_count": 0}

    task = process_mailbox.delay(current_user.id, request.batch_size)
    return {
        "message": f"Processing {len(pending)} emails",
        "email_count": len(pending),
        "task_id": task.id,
    }


@email_router.get("", response_model=EmailMessageListResponse)
def read_emails(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    classification: Optional[ClassificationStatus] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, description="Matches subject or sender"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = list_emails(
        db,
        current_user.id,
        skip=(page - 1) * limit,
        limit=limit,
        classification=classification,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return {"emails": items, "pagination": Pagination.build(page, limit, total)}


@email_router.get("/{email_id}", response_model=EmailDetailResponse)
def read_email(
    email_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    email = get_email_for_user(db, current_user.id, email_id)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Email with ID {email_id} not found"
        )
    return {"email": email, "transactions": list_for_email(db, email.id)}
