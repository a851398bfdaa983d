import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

from pennytrail.core.config import settings
from pennytrail.core.constants import NEGATED_LABEL, TRANSACTIONAL_KEYWORDS, USER_AGENT
from pennytrail.core.exceptions import ServiceConfigurationError
from pennytrail.services.pipeline.batching import run_in_batches

logger = logging.getLogger(__name__)

EMPTY_CONTENT = "empty content"
UNKNOWN_FORMAT = "unknown response format"
DEFAULT_CONFIDENCE = 0.5


@dataclass
class ClassificationResult:
    is_transactional: bool
    confidence: float
    error: Optional[str] = None
    raw_response: Any = None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_transactional_label(label) -> bool:
    if not label or not isinstance(label, str):
        return False
    label_lower = label.strip().lower()
    if NEGATED_LABEL.match(label_lower):
        return False
    return any(keyword in label_lower for keyword in TRANSACTIONAL_KEYWORDS)


def _labelled_confidence(data: dict) -> float:
    for key in ("confidence", "score"):
        if _is_number(data.get(key)):
            return float(data[key])
    return DEFAULT_CONFIDENCE


def parse_classification_response(data) -> ClassificationResult:
    """
    Normalize the known response shapes, tried in this order:

    1. ``[{"label": ..., "score": <number>}, ...]``
    2. ``{"prediction" | "label": ..., "confidence" | "score": ...}``
    3. a bare boolean
    4. a bare number, transactional when above 0.5
    """
    if isinstance(data, list) and data:
        first = data[0]
        if isinstance(first, dict) and first.get("label") and _is_number(first.get("score")):
            return ClassificationResult(
                is_transactional=is_transactional_label(first["label"]),
                confidence=float(first["score"]),
                raw_response=data,
            )

    if isinstance(data, dict):
        label = data.get("prediction") or data.get("label")
        if label:
            return ClassificationResult(
                is_transactional=is_transactional_label(str(label)),
                confidence=_labelled_confidence(data),
                raw_response=data,
            )

    if isinstance(data, bool):
        return ClassificationResult(is_transactional=data, confidence=DEFAULT_CONFIDENCE, raw_response=data)

    if _is_number(data):
        return ClassificationResult(is_transactional=data > 0.5, confidence=abs(float(data)), raw_response=data)

    logger.warning(f"Unknown classification response format: {data!r}")
    return ClassificationResult(is_transactional=False, confidence=0.0, error=UNKNOWN_FORMAT, raw_response=data)


class ClassificationClient:
    """HTTP client for the transactional/non-transactional text classifier."""

    def __init__(
        self,
        service_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        max_chars: Optional[int] = None,
    ):
        self.service_url = service_url if service_url is not None else settings.CLASSIFICATION_SERVICE_URL
        self.timeout = timeout if timeout is not None else settings.CLASSIFICATION_TIMEOUT
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.MODEL_RETRY_ATTEMPTS
        self.retry_delay = retry_delay if retry_delay is not None else settings.MODEL_RETRY_DELAY
        self.max_chars = max_chars if max_chars is not None else settings.CLASSIFICATION_MAX_CHARS

    def classify(self, text: str) -> ClassificationResult:
        if not self.service_url:
            raise ServiceConfigurationError("Classification service URL not configured")

        if not text or not text.strip():
            logger.warning("Empty email content provided for classification")
            return ClassificationResult(is_transactional=False, confidence=0.0, error=EMPTY_CONTENT)

        payload = {"text": text[: self.max_chars]}
        last_error = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                logger.info(f"Classifying email (attempt {attempt}/{self.retry_attempts})")
                response = requests.post(
                    self.service_url,
                    json=payload,
                    timeout=self.timeout,
                    headers={"User-Agent": USER_AGENT},
                )
                response.raise_for_status()
                result = parse_classification_response(response.json())
                logger.info(
                    f"Classification completed: "
                    f"{'Transactional' if result.is_transactional else 'Non-transactional'} "
                    f"(confidence: {result.confidence})"
                )
                return result
            except (requests.RequestException, ValueError) as e:
                last_error = str(e)
                status = getattr(getattr(e, "response", None), "status_code", None)
                logger.error(f"Classification attempt {attempt} failed: {e} (status: {status})")
                if attempt < self.retry_attempts:
                    time.sleep(self.retry_delay * attempt)

        return ClassificationResult(is_transactional=False, confidence=0.0, error=last_error)

    async def batch_classify(self, texts: List[str]) -> List[ClassificationResult]:
        outcomes = await run_in_batches(
            texts,
            lambda text: asyncio.to_thread(self.classify, text),
            batch_size=settings.CLASSIFY_BATCH_SIZE,
            pause=settings.CLASSIFY_PAUSE,
        )
        results = []
        for index, outcome in enumerate(outcomes):
            if outcome.ok:
                results.append(outcome.value)
            else:
                logger.error(f"Batch classification failed for email {index}: {outcome.error}")
                results.append(ClassificationResult(is_transactional=False, confidence=0.0, error=str(outcome.error)))
        return results

    def health_check(self) -> dict:
        if not self.service_url:
            return {"status": "error", "detail": "Service URL not configured"}
        try:
            response = requests.get(f"{self.service_url.rstrip('/')}/health", timeout=settings.HEALTH_CHECK_TIMEOUT)
            response.raise_for_status()
            return {"status": "healthy", "detail": {"service_url": self.service_url, "status_code": response.status_code}}
        except requests.RequestException as e:
            logger.error(f"Classification service health check failed: {e}")
            return {"status": "error", "detail": str(e)}
