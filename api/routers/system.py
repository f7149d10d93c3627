"""System router - health check."""

import logging

from fastapi import APIRouter

from api.schemas.auth import HealthResponse
from storage.database import get_backend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])

API_VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Report which backend is active. Does not touch the database."""
    backend = get_backend()
    info = backend.describe()
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        backend=info["backend"],
        location=info.get("location"),
        schema_ready=backend.schema_ready,
    )
