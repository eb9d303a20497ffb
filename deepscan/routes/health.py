"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - Front-end to check API connectivity before enabling the upload button

The service has no database; "ok" means the process is alive. The
configured vendor is reported so the UI can label which API the user's
key must belong to.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from deepscan.ai.registry import ADAPTERS
from deepscan.core.config import settings
from deepscan.models.detection import Vendor

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    vendor: Vendor
    async_detection: bool


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """Returns the liveness status of the API and the configured vendor."""
    adapter_cls = ADAPTERS[settings.detection_vendor]
    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
        vendor=settings.detection_vendor,
        async_detection=adapter_cls.supports_async,
    )
