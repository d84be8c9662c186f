"""Title and description extraction for synchronized markdown guides."""

from __future__ import annotations

import re
from dataclasses import dataclass

import frontmatter
import yaml

MAX_DESCRIPTION_LENGTH = 200
UNTITLED = "Untitled Guide"

_H1_RE = re.compile(r"^#\s+(.+)$")
_ATX_HEADING_RE = re.compile(r"^#{1,6}(\s|$)")
_UNDERLINE_RE = re.compile(r"^=+$")
_FRONTMATTER_FENCE_RE = re.compile(r"\A---\s*\n.*?\n---\s*(?:\n|\Z)", re.DOTALL)
_ORDERING_PREFIX_RE = re.compile(r"^\d+(?=[\W_]|$)[\W_]*")

# Applied after title-casing, whole words only.
ACRONYMS: tuple[tuple[str, str], ...] = (
    ("api", "API"),
    ("html", "HTML"),
    ("css", "CSS"),
    ("js", "JavaScript"),
    ("ui", "UI"),
    ("url", "URL"),
    ("rest", "REST"),
    ("json", "JSON"),
    ("xml", "XML"),
    ("sql", "SQL"),
)
_ACRONYM_RES = tuple(
    (re.compile(rf"\b{word}\b", re.IGNORECASE), replacement) for word, replacement in ACRONYMS
)


@dataclass(frozen=True)
class DocumentMetadata:
    """Derived metadata for one document."""

    title: str
    description: str | None = None

    def as_dict(self) -> dict[str, str]:
        data = {"title": self.title}
        if self.description:
            data["description"] = self.description
        return data


def is_markdown(filename: str) -> bool:
    """Return True for files with a ``.md`` extension (any case)."""
    return filename.lower().endswith(".md")


def _is_underline(line: str) -> bool:
    return bool(_UNDERLINE_RE.match(line.strip()))


def extract_title(content: str) -> str | None:
    """Find the document title in markdown content.

    Prefers the first ``# Title`` line, then a line underlined with ``===``.
    Returns None when neither is present.
    """
    lines = content.splitlines()
    for line in lines:
        match = _H1_RE.match(line.strip())
        if match:
            return match.group(1).strip()

    for current, following in zip(lines, lines[1:]):
        if current.strip() and _is_underline(following):
            return current.strip()
    return None


def humanize_filename(filename: str) -> str:
    """Turn a filename such as ``01-json_api.md`` into ``JSON API``."""
    name = filename.rsplit("/", maxsplit=1)[-1]
    if is_markdown(name):
        name = name[: -len(".md")]
    name = re.sub(r"[_-]", " ", name)
    name = _ORDERING_PREFIX_RE.sub("", name.strip())

    title = " ".join(word.capitalize() for word in name.split())
    for pattern, replacement in _ACRONYM_RES:
        title = pattern.sub(replacement, title)
    return title.strip() or UNTITLED


def strip_front_matter(content: str) -> str:
    """Remove a leading ``---`` fenced front matter block."""
    try:
        return frontmatter.loads(content).content
    except (yaml.YAMLError, ValueError):
        # Fence present but the block does not load (bad YAML or an
        # impossible date); drop it anyway.
        return _FRONTMATTER_FENCE_RE.sub("", content.lstrip(), count=1)


def extract_description(content: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str | None:
    """Build a short plain-text description from the body of a document.

    Front matter, heading lines and underline-style headings are dropped and
    whitespace collapsed.  Longer text is cut at the last space within
    *max_length* characters and suffixed with ``...``.
    """
    lines = strip_front_matter(content).splitlines()
    kept: list[str] = []
    skip_next = False
    for index, line in enumerate(lines):
        if skip_next:
            skip_next = False
            continue
        stripped = line.strip()
        if _ATX_HEADING_RE.match(stripped):
            continue
        if stripped and index + 1 < len(lines) and _is_underline(lines[index + 1]):
            skip_next = True
            continue
        if stripped and _is_underline(stripped):
            continue
        kept.append(stripped)

    text = re.sub(r"\s+", " ", " ".join(kept)).strip()
    if not text:
        return None

    if len(text) > max_length:
        cut = text.rfind(" ", 0, max_length + 1)
        if cut <= 0:
            cut = max_length
        text = text[:cut].rstrip() + "..."
    return text


def extract_metadata(content: str, fallback_name: str) -> DocumentMetadata:
    """Derive title and description for a document.

    *fallback_name* is the filename used to build a title when the content
    has none.  Deterministic and free of side effects.
    """
    title = extract_title(content)
    if not title:
        title = humanize_filename(fallback_name)
    return DocumentMetadata(title=title, description=extract_description(content))
