"""Guide API endpoints: read-only views over synchronized namespaces."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from guidesync.api.deps import get_guide_service
from guidesync.schemas.guides import NamespaceListResponse, NamespaceResponse
from guidesync.services.guide_service import GuideService

MARKDOWN = "text/markdown"

router = APIRouter(prefix="/api/guides", tags=["guides"])


@router.get("", response_model=NamespaceListResponse)
async def list_namespaces(
    service: Annotated[GuideService, Depends(get_guide_service)],
) -> NamespaceListResponse:
    """List configured namespaces with their sync state."""
    return NamespaceListResponse(
        namespaces=[
            NamespaceResponse(
                name=summary.name,
                framework_name=summary.framework_name,
                description=summary.description,
                remote=summary.remote,
                state=summary.state,
                guide_count=summary.guide_count,
            )
            for summary in service.describe_namespaces()
        ]
    )


@router.get("/{namespace}", response_class=PlainTextResponse)
async def guide_index(
    namespace: str,
    service: Annotated[GuideService, Depends(get_guide_service)],
) -> PlainTextResponse:
    """Markdown index of every guide in a namespace."""
    return PlainTextResponse(service.render_index(namespace), media_type=MARKDOWN)


@router.get("/{namespace}/{name:path}", response_class=PlainTextResponse)
async def load_guide(
    namespace: str,
    name: str,
    service: Annotated[GuideService, Depends(get_guide_service)],
) -> PlainTextResponse:
    """Resolve a loosely specified guide name and return the rendered guide."""
    return PlainTextResponse(service.resolve_and_render(namespace, name), media_type=MARKDOWN)
