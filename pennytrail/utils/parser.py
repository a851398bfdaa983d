import logging
import re
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from typing import Optional

logger = logging.getLogger(__name__)

_CURRENCY_NOISE = re.compile(r"[$€£¥₹,\s]")
# Unsigned: amounts are magnitudes and the direction comes from the transaction type
_NUMBER = re.compile(r"\d+\.?\d*")

# Tried in order when native parsing fails
_DATE_PATTERNS = [
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), ("%m/%d/%Y", "%d/%m/%Y")),
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), ("%Y-%m-%d",)),
    (re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), ("%m-%d-%Y", "%d-%m-%Y")),
]

_MERCHANT_PREFIX = re.compile(r"^(from|to|at|@)\s+", re.IGNORECASE)
_MERCHANT_SUFFIX = re.compile(r"\s+(inc|llc|ltd|corp|co)\.?$", re.IGNORECASE)

CURRENCY_ALIASES = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "DOLLAR": "USD",
    "DOLLARS": "USD",
    "EURO": "EUR",
    "EUROS": "EUR",
    "POUND": "GBP",
    "POUNDS": "GBP",
    "YEN": "JPY",
    "RUPEE": "INR",
    "RUPEES": "INR",
}


def parse_amount(value) -> Optional[float]:
    """
    Parse a monetary amount such as "$1,234.50" or 12.
    Returns None when no positive number can be read.
    """
    if value is None or isinstance(value, bool):
        return None

    cleaned = _CURRENCY_NOISE.sub("", str(value))
    match = _NUMBER.search(cleaned)
    if not match:
        return None

    try:
        amount = float(match.group(0))
    except ValueError:
        logger.warning(f"Error parsing amount: {value!r}")
        return None
    return amount if amount > 0 else None


def _parse_native(text: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text).date()
    except (TypeError, ValueError, IndexError):
        return None


def parse_date(value) -> Optional[date]:
    """
    Parse a transaction date. ISO 8601 and RFC 2822 strings are read first,
    then MM/DD/YYYY (or DD/MM/YYYY), YYYY-MM-DD and MM-DD-YYYY (or DD-MM-YYYY)
    anywhere in the text. Unparseable input gives None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    parsed = _parse_native(text)
    if parsed:
        return parsed

    for pattern, formats in _DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        for fmt in formats:
            try:
                return datetime.strptime(match.group(0), fmt).date()
            except ValueError:
                continue
    return None


def parse_merchant(value) -> Optional[str]:
    if not value:
        return None
    cleaned = str(value).strip()
    cleaned = _MERCHANT_PREFIX.sub("", cleaned)
    cleaned = _MERCHANT_SUFFIX.sub("", cleaned).strip()
    return cleaned or None


def parse_currency(value) -> Optional[str]:
    """Map a currency symbol, name or ISO code to a 3-letter code."""
    if not value:
        return None
    text = str(value).strip().upper()
    if text in CURRENCY_ALIASES:
        return CURRENCY_ALIASES[text]
    if re.fullmatch(r"[A-Z]{3}", text):
        return text
    return None


def parse_confidence(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, min(1.0, number))
