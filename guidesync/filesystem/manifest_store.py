"""Per-namespace manifest persistence: file hashes, sizes and extracted metadata."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import pendulum
import yaml

from guidesync.exceptions import ManifestCorruptError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.yaml"
LOCAL_ORIGIN = "local"

DOWNLOADED_AT = "downloaded_at"
IMPORTED_AT = "imported_at"
_TIMESTAMP_KEYS = (DOWNLOADED_AT, IMPORTED_AT)


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def normalize_timestamp(value: object) -> str | None:
    """Coerce a persisted timestamp into an ISO 8601 string.

    YAML may hand back ``datetime``/``date`` objects for unquoted values, and
    older manifests store lax strings such as ``2025-01-02 10:00:00 +0100``.
    Values that cannot be parsed are kept verbatim.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz="UTC").isoformat()
    text = str(value).strip()
    try:
        parsed = pendulum.parse(text, tz="UTC", strict=False)
    except ValueError:
        return text
    if isinstance(parsed, pendulum.DateTime):
        return parsed.isoformat()
    return text


def hash_file(path: Path) -> str:
    """Compute SHA-256 hash of a file."""
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha.update(chunk)
    return sha.hexdigest()


def hash_content(content: str | bytes) -> str:
    """Compute SHA-256 hash of content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


@dataclass
class FileEntry:
    """Manifest record for a single stored document."""

    hash: str
    size: int
    title: str | None = None
    description: str | None = None
    original_filename: str | None = None
    synced_at: str | None = None
    timestamp_key: str = DOWNLOADED_AT

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.original_filename is not None:
            data["original_filename"] = self.original_filename
        data["hash"] = self.hash
        data["size"] = self.size
        if self.synced_at is not None:
            data[self.timestamp_key] = self.synced_at
        if self.title is not None:
            data["title"] = self.title
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileEntry:
        raw_hash = data.get("hash")
        if not isinstance(raw_hash, str) or not raw_hash:
            msg = "entry is missing a 'hash' string"
            raise ValueError(msg)
        raw_size = data.get("size")
        if isinstance(raw_size, bool) or not isinstance(raw_size, int):
            msg = "entry is missing an integer 'size'"
            raise ValueError(msg)

        timestamp_key = DOWNLOADED_AT
        synced_at = None
        for key in _TIMESTAMP_KEYS:
            if key in data:
                timestamp_key = key
                synced_at = normalize_timestamp(data[key])
                break

        return cls(
            hash=raw_hash,
            size=raw_size,
            title=_optional_str(data.get("title")),
            description=_optional_str(data.get("description")),
            original_filename=_optional_str(data.get("original_filename")),
            synced_at=synced_at,
            timestamp_key=timestamp_key,
        )


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


@dataclass
class Manifest:
    """Persisted index of a namespace's documents."""

    resource_name: str
    source_origin: str | None = None
    description: str | None = None
    version: str | None = None
    files: dict[str, FileEntry] = field(default_factory=dict)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @property
    def is_local(self) -> bool:
        return self.source_origin == LOCAL_ORIGIN

    def markdown_entries(self) -> list[tuple[str, FileEntry]]:
        """Return ``(filename, entry)`` pairs for markdown documents, in manifest order."""
        return [(name, entry) for name, entry in self.files.items() if name.endswith(".md")]

    def guide_names(self) -> list[str]:
        """Return markdown keys without their ``.md`` suffix."""
        return [name.removesuffix(".md") for name, _ in self.markdown_entries()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource": self.resource_name,
            "base_url": self.source_origin,
            "description": self.description,
            "version": self.version,
            "files": {name: entry.to_dict() for name, entry in self.files.items()},
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_name: str) -> Manifest:
        raw_files = data.get("files") or {}
        if not isinstance(raw_files, dict):
            msg = "'files' must be a mapping"
            raise ValueError(msg)

        files: dict[str, FileEntry] = {}
        for filename, raw_entry in raw_files.items():
            if not isinstance(raw_entry, dict):
                msg = f"entry for {filename!r} must be a mapping"
                raise ValueError(msg)
            try:
                files[str(filename)] = FileEntry.from_dict(raw_entry)
            except ValueError as exc:
                msg = f"{filename}: {exc}"
                raise ValueError(msg) from exc

        version = data.get("version")
        return cls(
            resource_name=str(data.get("resource") or default_name),
            source_origin=_optional_str(data.get("base_url")),
            description=_optional_str(data.get("description")),
            version=str(version) if version is not None else None,
            files=files,
            created_at=normalize_timestamp(data.get("created_at")) or now_iso(),
            updated_at=normalize_timestamp(data.get("updated_at")) or now_iso(),
        )


@dataclass
class ManifestStore:
    """Reads and writes namespace manifests under ``<config_dir>/resources``."""

    config_dir: Path

    @property
    def resources_dir(self) -> Path:
        return self.config_dir / "resources"

    def namespace_dir(self, namespace: str) -> Path:
        return self.resources_dir / namespace

    def manifest_path(self, namespace: str) -> Path:
        return self.namespace_dir(namespace) / MANIFEST_FILE

    def resolve_path(self, namespace: str, filename: str) -> Path:
        """Return the on-disk path for a manifest key. Performs no I/O."""
        return self.namespace_dir(namespace) / filename

    def exists(self, namespace: str) -> bool:
        return self.manifest_path(namespace).is_file()

    def load(
        self,
        namespace: str,
        *,
        source_origin: str | None = None,
        description: str | None = None,
        version: str | None = None,
    ) -> Manifest:
        """Load a namespace manifest, or return a fresh empty one if none exists.

        Raises ManifestCorruptError if the file exists but cannot be parsed.
        """
        path = self.manifest_path(namespace)
        if not path.exists():
            logger.debug("No manifest at %s, starting empty", path)
            return Manifest(
                resource_name=namespace,
                source_origin=source_origin,
                description=description,
                version=version,
            )

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ManifestCorruptError(path, f"invalid YAML ({exc})") from exc
        except UnicodeDecodeError as exc:
            raise ManifestCorruptError(path, "not valid UTF-8") from exc

        if not isinstance(data, dict):
            raise ManifestCorruptError(path, "top level is not a mapping")
        try:
            return Manifest.from_dict(data, default_name=namespace)
        except ValueError as exc:
            raise ManifestCorruptError(path, str(exc)) from exc

    def save(self, manifest: Manifest) -> None:
        """Refresh ``updated_at`` and rewrite the manifest file as a whole."""
        manifest.updated_at = now_iso()
        path = self.manifest_path(manifest.resource_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = yaml.safe_dump(
            manifest.to_dict(), sort_keys=False, allow_unicode=True, default_flow_style=False
        )

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".manifest-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved manifest %s (%d files)", path, len(manifest.files))

    def read_text(self, namespace: str, filename: str) -> str:
        """Read a stored document from disk.

        Documents are stored as fetched, so bytes that are not UTF-8 are
        replaced rather than failing the read.
        """
        return self.resolve_path(namespace, filename).read_text(
            encoding="utf-8", errors="replace"
        )
