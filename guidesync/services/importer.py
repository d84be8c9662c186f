"""Local import: copy markdown files into a namespace under normalized names."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from guidesync.exceptions import SourcePathError
from guidesync.filesystem.manifest_store import (
    IMPORTED_AT,
    LOCAL_ORIGIN,
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
    write_atomic,
)

logger = logging.getLogger(__name__)

UNTITLED = "untitled"
LOCAL_DESCRIPTION = "Custom imported documentation"

_ORDERING_PREFIX_RE = re.compile(r"^(?:\d+(?=[^a-z0-9])[^a-z0-9]+)+")


def normalize_filename(filename: str) -> str:
    """Normalize an imported filename into a filesystem-safe, search-friendly key.

    - Drop the extension and lowercase
    - Strip leading ordering prefixes such as ``01 - `` or ``2.``
    - Replace characters outside ``[a-z0-9_.-]`` with underscores
    - Collapse repeated underscores, strip leading/trailing ones
    - Fall back to ``untitled`` for an empty result
    - Re-append the (lowercased) extension
    """
    path = Path(filename)
    extension = path.suffix.lower()
    basename = path.name[: -len(path.suffix)] if path.suffix else path.name

    normalized = basename.lower()
    unprefixed = _ORDERING_PREFIX_RE.sub("", normalized)
    if re.search(r"[a-z0-9]", unprefixed):
        normalized = unprefixed
    normalized = re.sub(r"[^a-z0-9_.\-]", "_", normalized)
    normalized = re.sub(r"_+", "_", normalized)
    normalized = normalized.strip("_")

    if not normalized:
        normalized = UNTITLED
    return f"{normalized}{extension}"


def collect_markdown_files(source: Path) -> list[Path]:
    """List markdown files at *source*: the file itself, or a directory's immediate children."""
    if source.is_file():
        return [source] if is_markdown(source.name) else []
    if source.is_dir():
        return sorted(p for p in source.iterdir() if p.is_file() and is_markdown(p.name))
    return []


class ResourceImporter:
    """Imports local markdown files into a namespace (``custom`` by default).

    Files are skipped when the stored copy and its manifest entry both match
    the source hash.  The file is written before its entry is recorded, so a
    failed copy never leaves an entry pointing at a missing or truncated file.
    """

    def __init__(
        self,
        namespace: str,
        store: ManifestStore,
        source_path: Path | str,
        *,
        force: bool = False,
        verbose: bool = False,
    ) -> None:
        self.namespace = namespace
        self.store = store
        self.source_path = Path(source_path).expanduser()
        self.force = force
        self.reporter = ProgressReporter(verbose)
        self._validate_source_path()

    def _validate_source_path(self) -> None:
        if not self.source_path.exists():
            msg = f"Source path not found: {self.source_path}"
            raise SourcePathError(msg)
        if not os.access(self.source_path, os.R_OK):
            msg = f"Source path not readable: {self.source_path}"
            raise SourcePathError(msg)

    def import_files(self) -> SyncResult:
        """Import every candidate file and persist the manifest once."""
        namespace_dir = self.store.namespace_dir(self.namespace)
        namespace_dir.mkdir(parents=True, exist_ok=True)
        manifest = self.store.load(
            self.namespace, source_origin=LOCAL_ORIGIN, description=LOCAL_DESCRIPTION
        )

        self.reporter.info(f"Importing {self.namespace} files from {self.source_path}...")
        result = SyncResult(written_outcome=SyncOutcome.IMPORTED)
        candidates = collect_markdown_files(self.source_path)
        if not candidates:
            self.reporter.info(f"No markdown files found in {self.source_path}")

        for source_file in candidates:
            self._import_file(manifest, namespace_dir, source_file, result)

        self.store.save(manifest)
        counts = result.as_counts()
        logger.info(
            "Imported into %s: %d imported, %d skipped, %d failed",
            self.namespace,
            counts["imported"],
            counts["skipped"],
            counts["failed"],
        )
        return result

    def _import_file(
        self,
        manifest: Manifest,
        namespace_dir: Path,
        source_file: Path,
        result: SyncResult,
    ) -> None:
        original_filename = source_file.name
        normalized = normalize_filename(original_filename)
        destination = namespace_dir / normalized

        try:
            if not self.force and destination.is_file():
                existing = manifest.files.get(normalized)
                source_hash = hash_file(source_file)
                if (
                    existing is not None
                    and existing.hash == source_hash
                    and hash_file(destination) == source_hash
                ):
                    self.reporter.info(f"Skipping {original_filename} (unchanged)")
                    result.record(original_filename, SyncOutcome.SKIPPED)
                    return

            data = source_file.read_bytes()
            metadata = extract_metadata(data.decode("utf-8", errors="replace"), original_filename)
            write_atomic(destination, data)
            entry = FileEntry(
                hash=hash_file(destination),
                size=destination.stat().st_size,
                original_filename=original_filename,
                synced_at=now_iso(),
                timestamp_key=IMPORTED_AT,
            )
        except (OSError, ValueError) as exc:
            self.reporter.warning(f"Importing {original_filename}... failed ({exc})")
            result.record(original_filename, SyncOutcome.FAILED, str(exc))
            return

        entry.title = metadata.title
        entry.description = metadata.description
        manifest.files[normalized] = entry

        self.reporter.info(f"Importing {original_filename} -> {normalized}... done")
        result.record(original_filename, SyncOutcome.IMPORTED, normalized)
