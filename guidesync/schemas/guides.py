"""Guide and resource schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NamespaceResponse(BaseModel):
    """A configured namespace and whether it has been synchronized."""

    name: str
    framework_name: str
    description: str | None = None
    remote: bool
    state: str
    guide_count: int


class NamespaceListResponse(BaseModel):
    """All configured namespaces."""

    namespaces: list[NamespaceResponse]


class ResourceMetadata(BaseModel):
    """A registered resource, addressed by a fixed URI or a URI template."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str | None = None
    uri_template: str | None = Field(default=None, alias="uriTemplate")
    name: str
    description: str
    mime_type: str = Field(alias="mimeType")


class ResourceListResponse(BaseModel):
    """Every registered resource."""

    resources: list[ResourceMetadata]


class ResourceContentResponse(BaseModel):
    """Content read from one concrete resource URI."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str = Field(alias="mimeType")
    text: str
