from fastapi import APIRouter, Depends

from pennytrail.core.clients import get_classification_client, get_extraction_client
from pennytrail.core.config import settings
from pennytrail.services.classification_client import ClassificationClient
from pennytrail.services.extraction_client import ExtractionClient

health_router = APIRouter(prefix="/health", tags=["Health"])


@health_router.get("")
def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}


@health_router.get("/services")
def services_health(
    classifier: ClassificationClient = Depends(get_classification_client),
    extractor: ExtractionClient = Depends(get_extraction_client),
):
    """Check that both model services respond."""
    return {
        "classification": classifier.health_check(),
        "extraction": extractor.health_check(),
    }
