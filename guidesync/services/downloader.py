"""Remote synchronization: fetch a namespace's files and record them in its manifest."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from guidesync.exceptions import NamespaceConfigError
from guidesync.filesystem.manifest_store import (
    DOWNLOADED_AT,
    FileEntry,
    Manifest,
    ManifestStore,
    hash_file,
    now_iso,
)
from guidesync.filesystem.metadata import extract_metadata, is_markdown
from guidesync.services.sync_service import (
    ProgressReporter,
    SyncOutcome,
    SyncResult,
    safe_destination,
    write_atomic,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from guidesync.filesystem.metadata import DocumentMetadata
    from guidesync.filesystem.namespaces import NamespaceDef

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ResourceDownloader:
    """Downloads the files of one remote namespace, skipping unchanged ones.

    A file is skipped without any network call when it exists on disk and its
    hash still equals the hash recorded in the manifest.  Failed fetches leave
    any existing manifest entry untouched.  The manifest is saved once, after
    every file has been processed.
    """

    def __init__(
        self,
        namespace: NamespaceDef,
        store: ManifestStore,
        *,
        client: httpx.Client | None = None,
        force: bool = False,
        verbose: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if namespace.base_url is None:
            msg = (
                f"Namespace {namespace.name!r} has no base_url to download from. "
                f"Use '{namespace.download_command}' instead."
            )
            raise NamespaceConfigError(msg)
        self.namespace = namespace
        self.base_url = namespace.base_url
        self.store = store
        self.force = force
        self.reporter = ProgressReporter(verbose)
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        """Close the HTTP client if this downloader created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> ResourceDownloader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def download(self, files: Iterable[str] | None = None) -> SyncResult:
        """Fetch every configured file (or just *files*) and persist the manifest."""
        namespace_dir = self.store.namespace_dir(self.namespace.name)
        namespace_dir.mkdir(parents=True, exist_ok=True)
        manifest = self.store.load(
            self.namespace.name,
            source_origin=self.base_url,
            description=self.namespace.description,
            version=self.namespace.version,
        )

        self.reporter.info(f"Downloading {self.namespace.name} resources...")
        result = SyncResult(written_outcome=SyncOutcome.DOWNLOADED)
        for filename in self.namespace.files if files is None else files:
            self._download_file(manifest, namespace_dir, filename, result)

        self.store.save(manifest)
        counts = result.as_counts()
        logger.info(
            "Synced %s: %d downloaded, %d skipped, %d failed",
            self.namespace.name,
            counts["downloaded"],
            counts["skipped"],
            counts["failed"],
        )
        return result

    def _download_file(
        self,
        manifest: Manifest,
        namespace_dir: Path,
        filename: str,
        result: SyncResult,
    ) -> None:
        destination = safe_destination(namespace_dir, filename)
        if destination is None:
            self.reporter.warning(f"Downloading {filename}... failed (invalid path)")
            result.record(filename, SyncOutcome.FAILED, "invalid path")
            return

        existing = manifest.files.get(filename)
        if not self.force and existing is not None and destination.is_file():
            if hash_file(destination) == existing.hash:
                self.reporter.info(f"Skipping {filename} (unchanged)")
                result.record(filename, SyncOutcome.SKIPPED)
                return

        url = f"{self.base_url}/{filename}"
        try:
            response = self.client.get(url)
        except httpx.HTTPError as exc:
            self.reporter.warning(f"Downloading {filename}... failed ({exc})")
            result.record(filename, SyncOutcome.FAILED, str(exc))
            return

        if not response.is_success:
            detail = f"HTTP {response.status_code}"
            self.reporter.warning(f"Downloading {filename}... failed ({detail})")
            result.record(filename, SyncOutcome.FAILED, detail)
            return

        try:
            metadata: DocumentMetadata | None = None
            if is_markdown(filename):
                text = response.content.decode("utf-8", errors="replace")
                metadata = extract_metadata(text, filename)
            write_atomic(destination, response.content)
            entry = FileEntry(
                hash=hash_file(destination),
                size=destination.stat().st_size,
                synced_at=now_iso(),
                timestamp_key=DOWNLOADED_AT,
            )
        except (OSError, ValueError) as exc:
            self.reporter.warning(f"Downloading {filename}... failed ({exc})")
            result.record(filename, SyncOutcome.FAILED, str(exc))
            return

        if metadata is not None:
            entry.title = metadata.title
            entry.description = metadata.description
        manifest.files[filename] = entry

        self.reporter.info(f"Downloading {filename}... done")
        result.record(filename, SyncOutcome.DOWNLOADED)
