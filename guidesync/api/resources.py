"""Resource API endpoints: list and read URI-addressed guide resources."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from guidesync.api.deps import get_registry
from guidesync.schemas.guides import (
    ResourceContentResponse,
    ResourceListResponse,
    ResourceMetadata,
)
from guidesync.services.registry import ResourceRegistry

router = APIRouter(prefix="/api/resources", tags=["resources"])


@router.get("", response_model=ResourceListResponse, response_model_exclude_none=True)
async def list_resources(
    registry: Annotated[ResourceRegistry, Depends(get_registry)],
) -> ResourceListResponse:
    """Metadata for every registered resource."""
    return ResourceListResponse(
        resources=[ResourceMetadata.model_validate(r.metadata()) for r in registry.resources()]
    )


@router.get("/read", response_model=ResourceContentResponse, response_model_by_alias=True)
async def read_resource(
    uri: Annotated[str, Query(min_length=1)],
    registry: Annotated[ResourceRegistry, Depends(get_registry)],
) -> ResourceContentResponse:
    """Read one concrete resource URI, such as ``rails://guides/routing``."""
    resource = registry.find(uri)
    return ResourceContentResponse(
        uri=uri,
        mime_type=resource.mime_type,
        text=resource.instance(uri).content(),
    )
