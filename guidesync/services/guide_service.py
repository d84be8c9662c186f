"""Guide service: the operations exposed to the CLI and the HTTP API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from guidesync.exceptions import ManifestCorruptError, NamespaceConfigError
from guidesync.filesystem.manifest_store import ManifestStore
from guidesync.filesystem.namespaces import CUSTOM_NAMESPACE, get_namespace, load_namespaces
from guidesync.services.downloader import ResourceDownloader
from guidesync.services.importer import ResourceImporter
from guidesync.services.registry import ResourceRegistry, build_registry
from guidesync.services.rendering import render_index, render_missing_manifest, render_multiple
from guidesync.services.resolver import Ambiguous

if TYPE_CHECKING:
    import httpx

    from guidesync.config import Settings
    from guidesync.filesystem.namespaces import NamespaceDef
    from guidesync.services.registry import GuideResource
    from guidesync.services.sync_service import SyncResult

logger = logging.getLogger(__name__)

STATE_SYNCED = "synced"
STATE_NOT_SYNCED = "not synced"
STATE_CORRUPT = "corrupt"


@dataclass(frozen=True)
class NamespaceSummary:
    """Configuration and on-disk state of one namespace."""

    name: str
    framework_name: str
    description: str | None
    remote: bool
    state: str
    guide_count: int


class GuideService:
    """Synchronizes namespaces and serves their guides from disk."""

    def __init__(
        self,
        settings: Settings,
        *,
        namespaces: dict[str, NamespaceDef] | None = None,
        store: ManifestStore | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings
        self.namespaces = (
            namespaces if namespaces is not None else load_namespaces(settings.resources_file)
        )
        self.store = store or ManifestStore(settings.config_dir)
        self.client = client
        self.registry: ResourceRegistry = build_registry(self.store, self.namespaces)

    def get_namespace(self, namespace: str) -> NamespaceDef:
        return get_namespace(self.namespaces, namespace)

    def available_namespaces(self) -> list[str]:
        return sorted(self.namespaces)

    def describe_namespaces(self) -> list[NamespaceSummary]:
        """Summarize every namespace; a corrupt manifest is reported, not raised."""
        summaries = []
        for name in self.available_namespaces():
            namespace = self.namespaces[name]
            state = STATE_NOT_SYNCED
            guide_count = 0
            if self.store.exists(name):
                try:
                    guide_count = len(self.store.load(name).guide_names())
                    state = STATE_SYNCED
                except ManifestCorruptError as exc:
                    logger.error("%s", exc)
                    state = STATE_CORRUPT
            summaries.append(
                NamespaceSummary(
                    name=name,
                    framework_name=namespace.framework_name,
                    description=namespace.description,
                    remote=namespace.is_remote,
                    state=state,
                    guide_count=guide_count,
                )
            )
        return summaries

    # Synchronization

    def sync(self, namespace: str, *, force: bool = False, verbose: bool = False) -> SyncResult:
        """Download every configured file of a remote namespace."""
        definition = self.get_namespace(namespace)
        with ResourceDownloader(
            definition,
            self.store,
            client=self.client,
            force=force,
            verbose=verbose,
            timeout=self.settings.http_timeout,
        ) as downloader:
            return downloader.download()

    def download(
        self, namespace: str, force: bool = False, verbose: bool = False
    ) -> dict[str, int]:
        return self.sync(namespace, force=force, verbose=verbose).as_counts()

    def import_source(
        self,
        source_path: Path | str,
        namespace: str = CUSTOM_NAMESPACE,
        *,
        force: bool = False,
        verbose: bool = False,
    ) -> SyncResult:
        """Import local markdown files into a local (non-remote) namespace."""
        definition = self.get_namespace(namespace)
        if definition.is_remote:
            msg = (
                f"Namespace {definition.name!r} is synchronized from {definition.base_url}; "
                f"import into '{CUSTOM_NAMESPACE}' instead"
            )
            raise NamespaceConfigError(msg)
        importer = ResourceImporter(
            definition.name, self.store, Path(source_path), force=force, verbose=verbose
        )
        return importer.import_files()

    def import_files(
        self,
        source_path: Path | str,
        namespace: str = CUSTOM_NAMESPACE,
        force: bool = False,
        verbose: bool = False,
    ) -> dict[str, int]:
        return self.import_source(source_path, namespace, force=force, verbose=verbose).as_counts()

    # Serving

    def render_index(self, namespace: str) -> str:
        definition = self.get_namespace(namespace)
        if not self.store.exists(definition.name):
            logger.error("No manifest for namespace %s", definition.name)
            return render_missing_manifest(definition)
        return render_index(self.store.load(definition.name), definition)

    def resolve_and_render(self, namespace: str, name: str | None) -> str:
        """Resolve a guide name and render the result.

        Small ambiguous sets (up to ``settings.ambiguous_autoload_limit``)
        are loaded and concatenated; larger ones render a disambiguation
        list.  An empty name renders the namespace index.
        """
        definition = self.get_namespace(namespace)
        name = (name or "").strip()
        if not name:
            return self.render_index(definition.name)

        resource = self.registry.guide_resource(definition.name)
        looked_up = resource.lookup(name)
        if looked_up is None:
            logger.error("No manifest for namespace %s", definition.name)
            return render_missing_manifest(definition)

        manifest, outcome = looked_up
        if (
            isinstance(outcome, Ambiguous)
            and len(outcome.candidates) <= self.settings.ambiguous_autoload_limit
        ):
            logger.info("Loading %d guides matching %r", len(outcome.candidates), name)
            return render_multiple(name, self._load_candidates(resource, outcome.candidates))
        return resource.render_outcome(name, manifest, outcome)

    def _load_candidates(
        self, resource: GuideResource, candidates: list[str]
    ) -> list[tuple[str, str]]:
        loaded = []
        for filename in candidates:
            try:
                content = resource.load_guide(filename)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to load %s: %s", filename, exc)
                content = ""
            loaded.append((filename.removesuffix(".md"), content))
        return loaded
