"""Shared test fixtures for guidesync."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from guidesync.config import Settings
from guidesync.filesystem.manifest_store import (
    DOWNLOADED_AT,
    IMPORTED_AT,
    LOCAL_ORIGIN,
    FileEntry,
    Manifest,
    ManifestStore,
    hash_content,
)
from guidesync.filesystem.metadata import extract_metadata
from guidesync.filesystem.namespaces import (
    LAYOUT_FLAT,
    NamespaceDef,
    load_namespaces,
)
from guidesync.main import create_app
from guidesync.services.guide_service import GuideService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Iterator
    from pathlib import Path

DOCS_BASE_URL = "https://docs.example.test/guides"


def seed_namespace(
    store: ManifestStore,
    namespace: str,
    files: dict[str, str],
    *,
    source_origin: str | None = DOCS_BASE_URL,
) -> Manifest:
    """Write *files* into a namespace folder and record them in its manifest."""
    local = source_origin == LOCAL_ORIGIN
    manifest = Manifest(resource_name=namespace, source_origin=source_origin)
    for filename, content in files.items():
        path = store.resolve_path(namespace, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        metadata = extract_metadata(content, filename)
        manifest.files[filename] = FileEntry(
            hash=hash_content(content),
            size=len(content.encode("utf-8")),
            title=metadata.title,
            description=metadata.description,
            original_filename=filename if local else None,
            synced_at="2026-01-02T10:00:00+00:00",
            timestamp_key=IMPORTED_AT if local else DOWNLOADED_AT,
        )
    store.save(manifest)
    return manifest


def guide(title: str, body: str = "Body text.") -> str:
    return f"# {title}\n\n{body}\n"


@dataclass
class FakeRemote:
    """Serves canned responses keyed by URL path through ``httpx.MockTransport``."""

    pages: dict[str, bytes | int] = field(default_factory=dict)
    requests: list[str] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        page = self.pages.get(request.url.path, 404)
        if isinstance(page, int):
            return httpx.Response(page, content=b"error")
        return httpx.Response(200, content=page)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    return tmp_path / "config"


@pytest.fixture
def store(config_dir: Path) -> ManifestStore:
    return ManifestStore(config_dir)


@pytest.fixture
def settings(config_dir: Path) -> Settings:
    """Test settings pointing at a temporary config directory."""
    return Settings(config_dir=config_dir, _env_file=None)


@pytest.fixture
def namespaces() -> dict[str, NamespaceDef]:
    """The bundled namespace definitions."""
    return load_namespaces()


@pytest.fixture
def docs_namespace() -> NamespaceDef:
    """A small flat remote namespace served by ``FakeRemote``."""
    return NamespaceDef(
        name="docs",
        framework_name="Docs",
        base_url=DOCS_BASE_URL,
        description="Test documentation",
        version="1.0",
        files=["getting_started.md", "routing.md", "logo.png"],
        layout=LAYOUT_FLAT,
        download_command="guidesync download docs",
    )


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def http_client(remote: FakeRemote) -> Iterator[httpx.Client]:
    client = remote.client()
    yield client
    client.close()


@asynccontextmanager
async def create_test_client(
    settings: Settings, service: GuideService | None = None
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client over the ASGI app, without a network socket."""
    app = create_app(settings, service or GuideService(settings))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
