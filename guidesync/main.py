"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import yaml
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from guidesync.api.guides import router as guides_router
from guidesync.api.health import router as health_router
from guidesync.api.resources import router as resources_router
from guidesync.config import APP_VERSION, Settings
from guidesync.exceptions import (
    ManifestCorruptError,
    NamespaceConfigError,
    ResourceNotFoundError,
    UnknownNamespaceError,
)
from guidesync.services.guide_service import GuideService

if TYPE_CHECKING:
    from pathlib import Path
    from typing import TextIO

logger = logging.getLogger(__name__)


def configure_logging(
    debug: bool,
    log_file: Path | None = None,
    *,
    default_level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Configure application logging.

    The CLI passes ``default_level=logging.WARNING`` and ``stream=sys.stderr``
    so log records stay out of printed guide output.
    """
    level = logging.DEBUG if debug else default_level
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=handlers,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)


def create_app(settings: Settings | None = None, service: GuideService | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()
    if service is None:
        service = GuideService(settings)

    app = FastAPI(
        title="guidesync",
        description="Synchronized framework guides, served from disk",
        version=APP_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.guide_service = service
    app.state.registry = service.registry

    app.include_router(health_router)
    app.include_router(guides_router)
    app.include_router(resources_router)

    # Global exception handlers

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(UnknownNamespaceError)
    async def unknown_namespace_handler(
        request: Request, exc: UnknownNamespaceError
    ) -> JSONResponse:
        logger.warning("Unknown namespace in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=404,
            content={"detail": str(exc), "available": exc.available},
        )

    @app.exception_handler(NamespaceConfigError)
    async def namespace_config_handler(
        request: Request, exc: NamespaceConfigError
    ) -> JSONResponse:
        logger.error("NamespaceConfigError in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(
        request: Request, exc: ResourceNotFoundError
    ) -> JSONResponse:
        logger.warning("Resource not found in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ManifestCorruptError)
    async def manifest_corrupt_handler(
        request: Request, exc: ManifestCorruptError
    ) -> JSONResponse:
        logger.error(
            "ManifestCorruptError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Manifest integrity error"},
        )

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
        if isinstance(exc, (ConnectionError, TimeoutError)):
            raise exc
        logger.error("OSError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage operation failed"},
        )

    @app.exception_handler(yaml.YAMLError)
    async def yaml_error_handler(request: Request, exc: yaml.YAMLError) -> JSONResponse:
        logger.error("YAMLError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Invalid manifest format"},
        )

    @app.exception_handler(UnicodeDecodeError)
    async def unicode_error_handler(request: Request, exc: UnicodeDecodeError) -> JSONResponse:
        logger.error(
            "UnicodeDecodeError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Invalid content encoding"},
        )

    return app


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings = Settings()
    configure_logging(settings.debug, settings.log_file)
    logger.info("Starting guidesync server (config_dir=%s)", settings.config_dir)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
    )
