"""Guide name resolution: exact candidates first, then forgiving fuzzy matching.

The resolver never guesses.  It returns exactly one of:

- ``Unique`` when an exact candidate exists, or fuzzy matching finds one file
- ``Ambiguous`` when fuzzy matching finds several files
- ``NoMatch`` otherwise, carrying "did you mean" suggestions

Exact matching is case-sensitive against manifest keys; fuzzy matching is
case-insensitive.  What to do with an ambiguous result is up to the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from guidesync.filesystem.namespaces import SECTION_FOLDERS

if TYPE_CHECKING:
    from collections.abc import Callable

    from guidesync.filesystem.manifest_store import FileEntry, Manifest
    from guidesync.filesystem.namespaces import NamespaceDef

MAX_SUGGESTIONS = 10

_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9_/.\-]")
_SEPARATORS_RE = re.compile(r"[_-]")


@dataclass(frozen=True)
class ResolveOptions:
    """Per-namespace resolution behaviour."""

    supports_sections: bool = False
    filename_variants: Callable[[str], list[str]] | None = None
    hierarchical: bool = False

    @classmethod
    def for_namespace(cls, namespace: NamespaceDef) -> ResolveOptions:
        return cls(
            supports_sections=namespace.supports_sections,
            filename_variants=namespace.filename_variants,
            hierarchical=namespace.hierarchical,
        )


@dataclass(frozen=True)
class Unique:
    filename: str
    entry: FileEntry


@dataclass(frozen=True)
class Ambiguous:
    candidates: list[str]

    @property
    def guide_names(self) -> list[str]:
        return [c.removesuffix(".md") for c in self.candidates]


@dataclass(frozen=True)
class NoMatch:
    suggestions: list[str] = field(default_factory=list)


ResolutionOutcome = Unique | Ambiguous | NoMatch


def normalize_name(raw_name: str) -> str:
    """Drop characters outside ``[A-Za-z0-9_/.-]``."""
    return _DISALLOWED_RE.sub("", raw_name)


def _strip_separators(value: str) -> str:
    return _SEPARATORS_RE.sub("", value)


def _last_segment(value: str) -> str:
    return value.rsplit("/", maxsplit=1)[-1]


def _contains_either_way(a: str, b: str) -> bool:
    return a in b or b in a


def exact_candidates(name: str, options: ResolveOptions) -> list[str]:
    """Ordered, de-duplicated filenames to probe before fuzzy matching."""
    candidates = [f"{name}.md"]
    if options.supports_sections:
        candidates.extend(f"{section}/{name}.md" for section in SECTION_FOLDERS)
    if options.filename_variants is not None:
        candidates.extend(options.filename_variants(name))
    return list(dict.fromkeys(candidates))


def _matches_term(base: str, term: str) -> bool:
    if not base or not term:
        return False
    if _contains_either_way(base, term):
        return True
    stripped_base = _strip_separators(base)
    stripped_term = _strip_separators(term)
    return bool(stripped_base and stripped_term) and _contains_either_way(
        stripped_base, stripped_term
    )


def fuzzy_matches(name: str, manifest: Manifest, options: ResolveOptions) -> list[str]:
    """Markdown keys loosely matching *name*, in manifest order.

    Compares the last path segment of the name with each file's last path
    segment.  Hierarchical namespaces also compare against the full relative
    path, so ``commands/deploy`` can pick out one of several ``deploy`` files.
    """
    lowered = name.lower()
    term = _last_segment(lowered)
    entries = [
        (filename, filename.removesuffix(".md").lower())
        for filename, _ in manifest.markdown_entries()
    ]

    if options.hierarchical:
        if "/" in lowered:
            by_path = [f for f, full in entries if _contains_either_way(full, lowered)]
            if by_path:
                return by_path
        return [
            f
            for f, full in entries
            if _matches_term(_last_segment(full), term) or lowered in full
        ]

    return [f for f, full in entries if _matches_term(_last_segment(full), term)]


def find_suggestions(
    name: str, available_guides: list[str], limit: int = MAX_SUGGESTIONS
) -> list[str]:
    """Guide names loosely resembling *name*, for "did you mean" hints.

    Works on last path segments only and accepts separator-stripped overlap
    in either direction, so ``routeing`` still suggests ``routing``.
    """
    term = _last_segment(name.lower())
    if not term:
        return []
    stripped_term = _strip_separators(term)

    suggestions: list[str] = []
    for guide in available_guides:
        base = _last_segment(guide.lower())
        stripped_base = _strip_separators(base)
        if (
            _contains_either_way(base, term)
            or _contains_either_way(stripped_base, stripped_term)
            or _shares_stem(stripped_base, stripped_term)
        ):
            suggestions.append(guide)
        if len(suggestions) >= limit:
            break
    return suggestions


def _shares_stem(a: str, b: str, min_length: int = 4) -> bool:
    """True when *a* and *b* start with the same *min_length* characters."""
    if len(a) < min_length or len(b) < min_length:
        return False
    return a[:min_length] == b[:min_length]


def resolve(raw_name: str, manifest: Manifest, options: ResolveOptions) -> ResolutionOutcome:
    """Resolve a loosely specified guide name against a manifest."""
    name = normalize_name(raw_name).strip("/")
    if not name:
        return NoMatch()

    for candidate in exact_candidates(name, options):
        entry = manifest.files.get(candidate)
        if entry is not None:
            return Unique(candidate, entry)

    matches = fuzzy_matches(name, manifest, options)
    if len(matches) == 1:
        return Unique(matches[0], manifest.files[matches[0]])
    if matches:
        return Ambiguous(matches)
    return NoMatch(find_suggestions(name, manifest.guide_names()))
