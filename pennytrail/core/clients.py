from functools import lru_cache

from pennytrail.services.classification_client import ClassificationClient
from pennytrail.services.extraction_client import ExtractionClient
from pennytrail.services.gmail_service import GmailFetcher


@lru_cache()
def get_classification_client() -> ClassificationClient:
    return ClassificationClient()


@lru_cache()
def get_extraction_client() -> ExtractionClient:
    return ExtractionClient()


@lru_cache()
def get_mail_fetcher() -> GmailFetcher:
    return GmailFetcher()
