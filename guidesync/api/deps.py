"""Shared API dependencies: settings, guide service, resource registry."""

from __future__ import annotations

from fastapi import Request

from guidesync.config import Settings
from guidesync.services.guide_service import GuideService
from guidesync.services.registry import ResourceRegistry


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_guide_service(request: Request) -> GuideService:
    """Get the guide service from app state."""
    service: GuideService = request.app.state.guide_service
    return service


def get_registry(request: Request) -> ResourceRegistry:
    """Get the resource registry from app state."""
    registry: ResourceRegistry = request.app.state.registry
    return registry
