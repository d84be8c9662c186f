"""Health check endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from guidesync.api.deps import get_guide_service
from guidesync.config import APP_VERSION
from guidesync.services.guide_service import GuideService

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    namespaces: list[str]


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    service: Annotated[GuideService, Depends(get_guide_service)],
) -> HealthResponse:
    """Health check endpoint for monitoring."""
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        namespaces=service.available_namespaces(),
    )
