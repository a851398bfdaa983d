from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pennytrail.core.constants import TransactionType


# -------------------------- BASE SCHEMAS -----------------------------------

class TransactionBase(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Transaction amount, strictly positive")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO 4217 currency code")
    transaction_date: Optional[date] = Field(None, description="Date the transaction happened")
    transaction_type: TransactionType = Field(TransactionType.OTHER, description="Transaction category tag")
    merchant: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value):
        return value.upper() if value else value


# -------------------------- CREATE / UPDATE SCHEMAS ------------------------

class TransactionCreate(TransactionBase):
    """Manually entered transaction"""
    pass


class TransactionUpdate(BaseModel):
    """Owner corrections to an extracted or manual transaction"""
    amount: Optional[Decimal] = Field(None, gt=0)
    transaction_date: Optional[date] = None
    transaction_type: Optional[TransactionType] = None
    merchant: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    verified: Optional[bool] = None


# -------------------------- RESPONSE SCHEMAS -------------------------------

class TransactionResponse(BaseModel):
    id: int
    user_id: int
    email_id: Optional[int]
    amount: Decimal
    currency: str
    transaction_date: Optional[date]
    transaction_type: TransactionType
    merchant: Optional[str]
    category: Optional[str]
    description: Optional[str]
    extraction_confidence: Optional[float]
    verified: bool
    raw_extraction: Optional[Any] = None
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total=total,
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        )


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    pagination: Pagination


class AmountSummary(BaseModel):
    total_amount: Decimal
    count: int


class CurrencyTotal(AmountSummary):
    currency: str


class TypeTotal(AmountSummary):
    transaction_type: str


class MonthTotal(AmountSummary):
    month: int


class TransactionStatsResponse(BaseModel):
    year: int
    totals: List[CurrencyTotal]
    by_type: List[TypeTotal]
    monthly: List[MonthTotal]
