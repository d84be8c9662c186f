"""Tests for namespace definitions loaded from TOML."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from guidesync.exceptions import NamespaceConfigError, UnknownNamespaceError
from guidesync.filesystem.namespaces import (
    CUSTOM_NAMESPACE,
    LAYOUT_HIERARCHICAL,
    LAYOUT_SECTIONED,
    NamespaceDef,
    get_namespace,
    hierarchical_filename_variants,
    hierarchical_label,
    load_namespaces,
    sectioned_label,
)

if TYPE_CHECKING:
    from pathlib import Path


def _write_toml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "resources.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestBundledNamespaces:
    def test_bundled_namespaces(self, namespaces: dict[str, NamespaceDef]) -> None:
        assert set(namespaces) == {"rails", "turbo", "stimulus", "kamal", CUSTOM_NAMESPACE}

    def test_remote_namespaces_have_files(self, namespaces: dict[str, NamespaceDef]) -> None:
        for namespace in namespaces.values():
            if namespace.is_remote:
                assert namespace.files
                assert not namespace.base_url.endswith("/")
                assert namespace.download_command == f"guidesync download {namespace.name}"

    def test_custom_is_local(self, namespaces: dict[str, NamespaceDef]) -> None:
        custom = namespaces[CUSTOM_NAMESPACE]
        assert not custom.is_remote
        assert custom.download_command == "guidesync import /path/to/files"

    def test_layouts_declare_hooks(self, namespaces: dict[str, NamespaceDef]) -> None:
        assert namespaces["rails"].section_for is None
        assert namespaces["rails"].filename_variants is None
        assert namespaces["turbo"].layout == LAYOUT_SECTIONED
        assert namespaces["turbo"].supports_sections
        kamal = namespaces["kamal"]
        assert kamal.layout == LAYOUT_HIERARCHICAL
        assert kamal.hierarchical
        assert kamal.filename_variants is not None
        assert kamal.section_label("commands/deploy.md") == "Commands"


class TestLoadNamespaces:
    def test_custom_added_when_missing(self, tmp_path: Path) -> None:
        path = _write_toml(
            tmp_path,
            '[docs]\nbase_url = "https://x.test/docs/"\nfiles = ["a.md"]\n',
        )
        namespaces = load_namespaces(path)
        assert set(namespaces) == {"docs", CUSTOM_NAMESPACE}
        assert namespaces["docs"].base_url == "https://x.test/docs"
        assert namespaces["docs"].framework_name == "Docs"
        assert namespaces["docs"].download_command == "guidesync download docs"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(NamespaceConfigError, match="not found"):
            load_namespaces(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = _write_toml(tmp_path, "[docs\n")
        with pytest.raises(NamespaceConfigError, match="Invalid TOML"):
            load_namespaces(path)

    def test_unknown_layout(self, tmp_path: Path) -> None:
        path = _write_toml(tmp_path, '[docs]\nlayout = "spiral"\n')
        with pytest.raises(NamespaceConfigError, match="unknown layout"):
            load_namespaces(path)

    def test_remote_without_files(self, tmp_path: Path) -> None:
        path = _write_toml(tmp_path, '[docs]\nbase_url = "https://x.test"\n')
        with pytest.raises(NamespaceConfigError, match="no files"):
            load_namespaces(path)

    def test_hierarchical_requires_sections(self, tmp_path: Path) -> None:
        path = _write_toml(
            tmp_path,
            '[docs]\nbase_url = "https://x.test"\nfiles = ["a/b.md"]\nlayout = "hierarchical"\n',
        )
        with pytest.raises(NamespaceConfigError, match="requires 'sections'"):
            load_namespaces(path)

    def test_files_must_be_strings(self, tmp_path: Path) -> None:
        path = _write_toml(tmp_path, '[docs]\nbase_url = "https://x.test"\nfiles = [1, 2]\n')
        with pytest.raises(NamespaceConfigError, match="list of strings"):
            load_namespaces(path)

    def test_example_needs_guide(self, tmp_path: Path) -> None:
        path = _write_toml(tmp_path, '[docs]\nexamples = [{ comment = "x" }]\n')
        with pytest.raises(NamespaceConfigError, match="'guide'"):
            load_namespaces(path)

    def test_custom_cannot_be_remote(self, tmp_path: Path) -> None:
        path = _write_toml(
            tmp_path, '[custom]\nbase_url = "https://x.test"\nfiles = ["a.md"]\n'
        )
        with pytest.raises(NamespaceConfigError, match="reserved"):
            load_namespaces(path)


class TestGetNamespace:
    def test_case_insensitive(self, namespaces: dict[str, NamespaceDef]) -> None:
        assert get_namespace(namespaces, " Rails ").name == "rails"

    def test_unknown_lists_valid_names(self, namespaces: dict[str, NamespaceDef]) -> None:
        with pytest.raises(UnknownNamespaceError) as exc_info:
            get_namespace(namespaces, "django")
        assert exc_info.value.available == sorted(namespaces)
        assert "Unknown resource: django" in str(exc_info.value)
        assert "rails" in str(exc_info.value)


class TestLayoutHooks:
    def test_sectioned_label(self) -> None:
        assert sectioned_label("handbook/02_drive.md") == "Handbook"
        assert sectioned_label("reference/frames.md") == "Reference"
        assert sectioned_label("overview.md") == "Documentation"

    def test_hierarchical_label(self) -> None:
        sections = ("commands", "hooks")
        assert hierarchical_label(sections, "hooks/overview.md") == "Hooks"
        assert hierarchical_label(sections, "misc/overview.md") == "Documentation"
        assert hierarchical_label(sections, "overview.md") == "Documentation"

    def test_variants_for_path_qualified_name(self) -> None:
        assert hierarchical_filename_variants(("commands",), "commands/deploy") == [
            "commands/deploy",
            "commands/deploy.md",
        ]

    def test_variants_for_bare_name(self) -> None:
        assert hierarchical_filename_variants(("commands", "hooks"), "hooks") == [
            "commands/hooks.md",
            "hooks/hooks.md",
            "hooks/index.md",
            "hooks/index.md",
        ]
