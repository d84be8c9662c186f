"""Application-level exception types.

Convention:
- Configuration errors (``NamespaceConfigError``, ``UnknownNamespaceError``)
  are fatal to the requested operation and carry enough context to tell the
  caller what would have been valid.
- Integrity errors (``ManifestCorruptError``) are fatal to every operation on
  the affected namespace.  A manifest that cannot be parsed is never treated
  as empty, since that would hide data loss behind a fresh sync.
- Per-file source failures (HTTP errors, unreadable files) are *not*
  exceptions at this level; the synchronizers catch them per file and report
  them as ``failed`` outcomes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path


class GuideSyncError(Exception):
    """Base class for guidesync errors."""


class NamespaceConfigError(GuideSyncError):
    """Raised when a namespace definition is missing or malformed."""


class UnknownNamespaceError(NamespaceConfigError):
    """Raised when a caller asks for a namespace that is not defined."""

    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        self.available = sorted(available)
        super().__init__(f"Unknown resource: {name}. Available: {', '.join(self.available)}")


class ManifestCorruptError(GuideSyncError):
    """Raised when a persisted manifest cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Manifest {path} is corrupt: {reason}")


class SourcePathError(GuideSyncError):
    """Raised when an import source path is missing or unreadable."""


class ResourceNotFoundError(GuideSyncError):
    """Raised when no registered resource matches a URI."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Resource not found: {uri}")
