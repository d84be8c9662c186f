"""Outcome bookkeeping shared by the remote and local synchronizers."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)


class SyncOutcome(StrEnum):
    """Per-file result of a synchronization run."""

    DOWNLOADED = "downloaded"
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FileOutcome:
    """What happened to one candidate file."""

    filename: str
    outcome: SyncOutcome
    detail: str = ""


@dataclass
class SyncResult:
    """Aggregate result of one synchronization run."""

    written_outcome: SyncOutcome
    files: list[FileOutcome] = field(default_factory=list)

    def record(self, filename: str, outcome: SyncOutcome, detail: str = "") -> None:
        self.files.append(FileOutcome(filename=filename, outcome=outcome, detail=detail))

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for f in self.files if f.outcome == outcome)

    def as_counts(self) -> dict[str, int]:
        """Counts keyed ``downloaded``/``imported``, ``skipped`` and ``failed``."""
        return {
            str(self.written_outcome): self.count(self.written_outcome),
            str(SyncOutcome.SKIPPED): self.count(SyncOutcome.SKIPPED),
            str(SyncOutcome.FAILED): self.count(SyncOutcome.FAILED),
        }

    @property
    def all_failed(self) -> bool:
        return bool(self.files) and self.count(SyncOutcome.FAILED) == len(self.files)


def safe_destination(namespace_dir: Path, filename: str) -> Path | None:
    """Resolve a manifest key within the namespace folder, returning None on traversal."""
    if not filename or filename.startswith("/"):
        return None
    destination = (namespace_dir / filename).resolve()
    if not destination.is_relative_to(namespace_dir.resolve()):
        return None
    return destination


def write_atomic(destination: Path, data: bytes) -> None:
    """Write *data* next to *destination* and move it into place.

    A failed write leaves any previous file at *destination* untouched.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=".sync-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, destination)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ProgressReporter:
    """Logs per-file progress and echoes it to stdout in verbose mode."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def info(self, message: str) -> None:
        logger.info(message)
        if self.verbose:
            print(message)

    def warning(self, message: str) -> None:
        logger.warning(message)
        if self.verbose:
            print(message)
