import re
from enum import Enum


class ClassificationStatus(str, Enum):
    UNKNOWN = 'unknown'
    TRANSACTIONAL = 'transactional'
    NON_TRANSACTIONAL = 'non_transactional'


class TransactionType(str, Enum):
    BILL_PAYMENT = 'bill_payment'
    PURCHASE = 'purchase'
    SUBSCRIPTION = 'subscription'
    REFUND = 'refund'
    TRANSFER = 'transfer'
    ENTERTAINMENT = 'entertainment'
    FUEL = 'fuel'
    OTHER = 'other'


def normalize_transaction_type(value) -> TransactionType:
    """Map a free-form type tag onto the fixed enumeration, falling back to OTHER."""
    if isinstance(value, TransactionType):
        return value
    if not value or not isinstance(value, str):
        return TransactionType.OTHER
    try:
        return TransactionType(value.strip().lower())
    except ValueError:
        return TransactionType.OTHER


# Labels from the classification service are matched by substring
TRANSACTIONAL_KEYWORDS = (
    "transactional",
    "transaction",
    "payment",
    "receipt",
    "invoice",
    "bill",
    "purchase",
    "order",
    "financial",
    "money",
    "charge",
    "paid",
    "refund",
    "1",
    "true",
)

# Whole negation token only, so "notification_payment" still counts
NEGATED_LABEL = re.compile(r"^(non|not)[\s_-]")

USER_AGENT = "PennyTrailBackend/1.0"
