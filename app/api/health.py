"""
Health check endpoint for the Collections Triage Service.
"""
import time
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.core.config import Settings
from app.core.dependencies import get_app_settings, get_store
from app.core.logging import get_logger
from app.services.store import EntityKind, EntityStore

router = APIRouter(prefix="/api", tags=["health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    uptime_seconds: float
    timestamp: datetime
    service_name: str
    records: Dict[str, int]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Basic health check endpoint.

    Returns service status, version, uptime and the number of records held
    per entity kind.
    """
    start_time = getattr(request.app.state, "start_time", time.time())
    response = HealthResponse(
        status="healthy",
        version=settings.service_version,
        uptime_seconds=time.time() - start_time,
        timestamp=datetime.utcnow(),
        service_name=settings.service_name,
        records={kind.value: store.count(kind) for kind in EntityKind},
    )

    logger.debug("Health check completed", uptime_seconds=response.uptime_seconds)
    return response
