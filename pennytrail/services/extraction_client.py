import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

import requests

from pennytrail.core.config import settings
from pennytrail.core.constants import USER_AGENT
from pennytrail.core.exceptions import ServiceConfigurationError
from pennytrail.services.pipeline.batching import run_in_batches
from pennytrail.utils.parser import parse_amount, parse_confidence, parse_currency, parse_date, parse_merchant

logger = logging.getLogger(__name__)

EMPTY_CONTENT = "empty content"
UNKNOWN_FORMAT = "unknown response format"


@dataclass
class ExtractionCandidate:
    amount: float
    date: Optional[date] = None
    type: Optional[str] = None
    merchant: Optional[str] = None
    currency: Optional[str] = None
    confidence: Optional[float] = None
    raw_response: Any = None


@dataclass
class ExtractionResult:
    candidates: List[ExtractionCandidate] = field(default_factory=list)
    error: Optional[str] = None
    raw_response: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_extraction_response(data) -> ExtractionResult:
    """
    Read ``{"success": bool, "results": [{success, final_amount, transaction_date,
    transaction_type, merchant}, ...]}``. Candidates that failed or carry no
    positive amount are dropped.
    """
    if not isinstance(data, dict):
        logger.warning(f"Unknown extraction response format: {data!r}")
        return ExtractionResult(error=UNKNOWN_FORMAT, raw_response=data)

    if not data.get("success"):
        logger.info("Extraction service reported no transaction")
        return ExtractionResult(raw_response=data)

    candidates = []
    for item in data.get("results") or []:
        if not isinstance(item, dict) or not item.get("success"):
            continue

        amount = parse_amount(item.get("final_amount"))
        if amount is None:
            logger.warning("Invalid or missing amount in extraction result")
            continue

        candidates.append(
            ExtractionCandidate(
                amount=amount,
                date=parse_date(item.get("transaction_date")),
                type=item.get("transaction_type"),
                merchant=parse_merchant(item.get("merchant")),
                currency=parse_currency(item.get("currency")),
                confidence=parse_confidence(item.get("confidence", item.get("score"))),
                raw_response=data,
            )
        )
    return ExtractionResult(candidates=candidates, raw_response=data)


class ExtractionClient:
    """HTTP client for the structured transaction extraction service."""

    def __init__(
        self,
        service_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        max_chars: Optional[int] = None,
    ):
        self.service_url = service_url if service_url is not None else settings.EXTRACTION_SERVICE_URL
        self.timeout = timeout if timeout is not None else settings.EXTRACTION_TIMEOUT
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.MODEL_RETRY_ATTEMPTS
        self.retry_delay = retry_delay if retry_delay is not None else settings.MODEL_RETRY_DELAY
        self.max_chars = max_chars if max_chars is not None else settings.EXTRACTION_MAX_CHARS

    def extract(self, text: str) -> ExtractionResult:
        if not self.service_url:
            raise ServiceConfigurationError("Extraction service URL not configured")

        if not text or not text.strip():
            logger.warning("Empty email content provided for extraction")
            return ExtractionResult(error=EMPTY_CONTENT)

        payload = {"text": text[: self.max_chars]}
        last_error = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                logger.info(f"Extracting transaction details (attempt {attempt}/{self.retry_attempts})")
                response = requests.post(
                    self.service_url,
                    json=payload,
                    timeout=self.timeout,
                    headers={"User-Agent": USER_AGENT},
                )
                response.raise_for_status()
                result = parse_extraction_response(response.json())
                logger.info(f"Extraction completed with {len(result.candidates)} candidate(s)")
                return result
            except (requests.RequestException, ValueError) as e:
                last_error = str(e)
                status = getattr(getattr(e, "response", None), "status_code", None)
                logger.error(f"Extraction attempt {attempt} failed: {e} (status: {status})")
                if attempt < self.retry_attempts:
                    time.sleep(self.retry_delay * attempt)

        return ExtractionResult(error=last_error)

    async def batch_extract(self, texts: List[str]) -> List[ExtractionResult]:
        outcomes = await run_in_batches(
            texts,
            lambda text: asyncio.to_thread(self.extract, text),
            batch_size=settings.EXTRACT_BATCH_SIZE,
            pause=settings.EXTRACT_PAUSE,
        )
        results = []
        for index, outcome in enumerate(outcomes):
            if outcome.ok:
                results.append(outcome.value)
            else:
                logger.error(f"Batch extraction failed for email {index}: {outcome.error}")
                results.append(ExtractionResult(error=str(outcome.error)))
        return results

    def health_check(self) -> dict:
        if not self.service_url:
            return {"status": "error", "detail": "Service URL not configured"}
        try:
            response = requests.get(f"{self.service_url.rstrip('/')}/health", timeout=settings.HEALTH_CHECK_TIMEOUT)
            response.raise_for_status()
            return {"status": "healthy", "detail": {"service_url": self.service_url, "status_code": response.status_code}}
        except requests.RequestException as e:
            logger.error(f"Extraction service health check failed: {e}")
            return {"status": "error", "detail": str(e)}
