from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

from pennytrail.core.constants import ClassificationStatus
from pennytrail.schemas.transaction import Pagination, TransactionResponse


class AttachmentInfo(BaseModel):
    filename: str
    mime_type: Optional[str] = None
    size: int = 0


class EmailMessageSummary(BaseModel):
    """Schema returned in list responses"""
    id: int
    message_id: str = Field(..., description="Unique Gmail message ID")
    subject: str
    sender: str
    received_at: Optional[datetime]
    classification: ClassificationStatus
    classification_confidence: Optional[float]
    processed: bool

    model_config = ConfigDict(from_attributes=True)


class EmailMessageResponse(EmailMessageSummary):
    """Full email returned by the detail endpoint"""
    thread_id: Optional[str]
    recipient: Optional[str]
    body: str
    body_plain: Optional[str]
    labels: Optional[List[str]] = None
    attachments: Optional[List[AttachmentInfo]] = None
    processing_error: Optional[str]


class EmailMessageListResponse(BaseModel):
    emails: List[EmailMessageSummary]
    pagination: Pagination


class EmailDetailResponse(BaseModel):
    email: EmailMessageResponse
    transactions: List[TransactionResponse]


class SyncRequest(BaseModel):
    max_results: int = Field(50, ge=1, le=500, description="Upper bound on messages listed from Gmail")
    full_resync: bool = Field(False, description="Ignore the sync cursor and list all messages")


class SyncStartedResponse(BaseModel):
    message: str
    sync_in_progress: bool
    task_id: Optional[str] = None


class SyncStatusResponse(BaseModel):
    sync_in_progress: bool
    last_sync_at: Optional[datetime]
    total_emails: int
    transactional_emails: int

    model_config = ConfigDict(from_attributes=True)


class ProcessRequest(BaseModel):
    batch_size: int = Field(10, ge=1, le=100, description="Number of unprocessed emails to handle")


class ProcessStartedResponse(BaseModel):
    message: str
    email_count: int
    task_id: Optional[str] = None
