"""
Health check endpoint for monitoring.
"""

from __future__ import annotations

from fastapi import APIRouter

from fin_chat.config import settings
from fin_chat.models.responses import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic liveness check. Does not touch the database or external APIs."""
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        service=settings.app_name,
    )
