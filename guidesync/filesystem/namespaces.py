"""Namespace definitions: where each guide set comes from and how it is laid out."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from guidesync.exceptions import NamespaceConfigError, UnknownNamespaceError

if TYPE_CHECKING:
    from collections.abc import Callable

BUNDLED_RESOURCES_FILE = Path(__file__).resolve().parent.parent / "resources.toml"

CUSTOM_NAMESPACE = "custom"

LAYOUT_FLAT = "flat"
LAYOUT_SECTIONED = "sectioned"
LAYOUT_HIERARCHICAL = "hierarchical"
_LAYOUTS = frozenset({LAYOUT_FLAT, LAYOUT_SECTIONED, LAYOUT_HIERARCHICAL})

SECTION_FOLDERS: tuple[str, ...] = ("handbook", "reference")


@dataclass(frozen=True)
class ExampleGuide:
    """A guide name shown in usage examples."""

    guide: str
    comment: str = ""


@dataclass
class NamespaceDef:
    """A documentation collection and the capabilities it declares.

    Hooks are plain optional callables set once at load time; nothing probes
    for them later.
    """

    name: str
    framework_name: str
    base_url: str | None = None
    description: str | None = None
    version: str | None = None
    files: list[str] = field(default_factory=list)
    layout: str = LAYOUT_FLAT
    sections: tuple[str, ...] = ()
    example_guides: list[ExampleGuide] = field(default_factory=list)
    download_command: str = ""
    filename_variants: Callable[[str], list[str]] | None = None
    section_for: Callable[[str], str] | None = None

    @property
    def is_remote(self) -> bool:
        return self.base_url is not None

    @property
    def supports_sections(self) -> bool:
        return self.layout == LAYOUT_SECTIONED

    @property
    def hierarchical(self) -> bool:
        return self.layout == LAYOUT_HIERARCHICAL

    def section_label(self, filename: str) -> str | None:
        """Section name shown in guide headers, or None for flat namespaces."""
        if self.section_for is None:
            return None
        return self.section_for(filename)


def sectioned_label(filename: str) -> str:
    """Label for the ``handbook/``/``reference/`` convention."""
    if filename.startswith("handbook/"):
        return "Handbook"
    if filename.startswith("reference/"):
        return "Reference"
    return "Documentation"


def hierarchical_label(sections: tuple[str, ...], filename: str) -> str:
    """Label a file by its top-level folder when that folder is a declared section."""
    head, sep, _ = filename.partition("/")
    if sep and head in sections:
        return head.replace("_", " ").replace("-", " ").title()
    return "Documentation"


def hierarchical_filename_variants(sections: tuple[str, ...], name: str) -> list[str]:
    """Extra exact-match candidates for folder-per-section guide sets.

    A path-qualified name is probed as given and with ``.md``.  A bare name
    is probed inside every section folder, as a section's ``index.md`` when
    it names a section, and as its own folder's ``index.md``.
    """
    if "/" in name:
        return [name, f"{name}.md"]

    variants: list[str] = []
    for section in sections:
        variants.append(f"{section}/{name}.md")
        if name == section:
            variants.append(f"{section}/index.md")
    variants.append(f"{name}/index.md")
    return variants


def _default_custom() -> NamespaceDef:
    return NamespaceDef(
        name=CUSTOM_NAMESPACE,
        framework_name="Custom",
        description="Custom imported documentation",
        download_command="guidesync import /path/to/files",
        example_guides=[
            ExampleGuide("api_documentation", "Load API documentation"),
            ExampleGuide("setup_guide", "Load setup instructions"),
            ExampleGuide("user_manual", "Load user manual"),
        ],
    )


def _require_str_list(name: str, key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"Namespace {name!r}: '{key}' must be a list of strings"
        raise NamespaceConfigError(msg)
    return list(value)


def _parse_namespace(name: str, data: Any) -> NamespaceDef:
    if not isinstance(data, dict):
        msg = f"Namespace {name!r} must be a table"
        raise NamespaceConfigError(msg)

    layout = data.get("layout", LAYOUT_FLAT)
    if layout not in _LAYOUTS:
        msg = f"Namespace {name!r}: unknown layout {layout!r} (expected one of {sorted(_LAYOUTS)})"
        raise NamespaceConfigError(msg)

    base_url = data.get("base_url")
    if base_url is not None:
        base_url = str(base_url).rstrip("/")

    files = _require_str_list(name, "files", data.get("files"))
    if base_url is not None and not files:
        msg = f"Namespace {name!r} has a base_url but no files to fetch"
        raise NamespaceConfigError(msg)

    examples: list[ExampleGuide] = []
    for example in data.get("examples", []):
        if not isinstance(example, dict) or "guide" not in example:
            msg = f"Namespace {name!r}: every example needs a 'guide' key"
            raise NamespaceConfigError(msg)
        examples.append(ExampleGuide(str(example["guide"]), str(example.get("comment", ""))))

    sections: tuple[str, ...] = ()
    filename_variants = None
    section_for: Callable[[str], str] | None = None
    if layout == LAYOUT_SECTIONED:
        sections = SECTION_FOLDERS
        section_for = sectioned_label
    elif layout == LAYOUT_HIERARCHICAL:
        sections = tuple(_require_str_list(name, "sections", data.get("sections")))
        if not sections:
            msg = f"Namespace {name!r}: hierarchical layout requires 'sections'"
            raise NamespaceConfigError(msg)
        filename_variants = partial(hierarchical_filename_variants, sections)
        section_for = partial(hierarchical_label, sections)

    version = data.get("version")
    return NamespaceDef(
        name=name,
        framework_name=str(data.get("framework_name", name.title())),
        base_url=base_url,
        description=data.get("description"),
        version=str(version) if version is not None else None,
        files=files,
        layout=layout,
        sections=sections,
        example_guides=examples,
        download_command=str(data.get("download_command", f"guidesync download {name}")),
        filename_variants=filename_variants,
        section_for=section_for,
    )


def load_namespaces(path: Path | None = None) -> dict[str, NamespaceDef]:
    """Parse namespace definitions from a TOML file.

    Defaults to the bundled ``resources.toml``.  The ``custom`` namespace is
    always available as the local import target.
    """
    resources_path = path or BUNDLED_RESOURCES_FILE
    if not resources_path.exists():
        msg = f"Resource configuration file not found: {resources_path}"
        raise NamespaceConfigError(msg)

    try:
        data = tomllib.loads(resources_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in resource configuration {resources_path}: {exc}"
        raise NamespaceConfigError(msg) from exc

    namespaces = {name: _parse_namespace(name, table) for name, table in data.items()}
    if CUSTOM_NAMESPACE not in namespaces:
        namespaces[CUSTOM_NAMESPACE] = _default_custom()
    elif namespaces[CUSTOM_NAMESPACE].is_remote:
        msg = "The 'custom' namespace is reserved for local imports and cannot have a base_url"
        raise NamespaceConfigError(msg)
    return namespaces


def get_namespace(namespaces: dict[str, NamespaceDef], name: str) -> NamespaceDef:
    """Look up a namespace, raising UnknownNamespaceError with the valid names."""
    key = name.strip().lower()
    try:
        return namespaces[key]
    except KeyError:
        raise UnknownNamespaceError(name, namespaces) from None
