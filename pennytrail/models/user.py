from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, func
from sqlalchemy.orm import relationship
from pennytrail.core.database import Base


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False)
    google_id = Column(String(100), unique=True, nullable=True)

    # Gmail OAuth tokens (obtained outside this service)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)

    api_token_hash = Column(String(64), unique=True, nullable=True, index=True)

    # Sync cursor
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    sync_in_progress = Column(Boolean, default=False, nullable=False)
    sync_started_at = Column(DateTime(timezone=True), nullable=True)
    total_emails = Column(Integer, default=0, nullable=False)
    transactional_emails = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    emails = relationship("EmailMessage", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")


# Related mappers must be registered before relationships resolve
import pennytrail.models.email_message  # noqa: E402,F401
import pennytrail.models.transaction  # noqa: E402,F401
