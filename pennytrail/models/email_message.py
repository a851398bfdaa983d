from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float, JSON, ForeignKey, Index, func
from sqlalchemy.orm import relationship
from pennytrail.core.database import Base
from pennytrail.core.constants import ClassificationStatus


class EmailMessage(Base):
    __tablename__ = 'email_messages'

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message_id = Column(String, unique=True, index=True, nullable=False)  # Gmail message id
    thread_id = Column(String, nullable=True)
    subject = Column(String, nullable=False, default="No Subject")
    sender = Column(String, nullable=False, default="Unknown Sender")
    recipient = Column(String, nullable=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now())
    body = Column(Text, nullable=False, default="")
    body_plain = Column(Text, nullable=True)
    labels = Column(JSON, default=list)
    attachments = Column(JSON, default=list)

    classification = Column(String(20), default=ClassificationStatus.UNKNOWN.value, nullable=False, index=True)
    classification_confidence = Column(Float, nullable=True)
    processed = Column(Boolean, default=False, nullable=False, index=True)
    processing_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="emails")
    transactions = relationship("Transaction", back_populates="email")

    __table_args__ = (
        Index("ix_email_messages_user_received", "user_id", "received_at"),
        Index("ix_email_messages_user_processed", "user_id", "processed"),
    )


import pennytrail.models.user  # noqa: E402,F401
import pennytrail.models.transaction  # noqa: E402,F401
