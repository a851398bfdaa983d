from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, Boolean, Float, JSON, ForeignKey, Index, func
from sqlalchemy.orm import relationship
from pennytrail.core.database import Base
from pennytrail.core.constants import TransactionType


class Transaction(Base):
    __tablename__ = 'transactions'

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email_id = Column(Integer, ForeignKey("email_messages.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    transaction_date = Column(Date, nullable=True)
    transaction_type = Column(String(20), nullable=False, default=TransactionType.OTHER.value, index=True)
    merchant = Column(String(255), nullable=True)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    extraction_confidence = Column(Float, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    raw_extraction = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="transactions")
    email = relationship("EmailMessage", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
        Index("ix_transactions_user_type", "user_id", "transaction_type"),
    )


import pennytrail.models.user  # noqa: E402,F401
import pennytrail.models.email_message  # noqa: E402,F401
