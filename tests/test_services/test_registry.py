"""Tests for URI templates and the guide resource registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from guidesync.exceptions import ResourceNotFoundError
from guidesync.services.registry import (
    MAX_CACHED_INSTANCES,
    GuideIndexResource,
    GuideResource,
    ResourceRegistry,
    TemplatedResource,
    UriTemplate,
    build_registry,
    guide_uri,
    index_uri,
)
from tests.conftest import guide, seed_namespace

if TYPE_CHECKING:
    from guidesync.filesystem.manifest_store import ManifestStore
    from guidesync.filesystem.namespaces import NamespaceDef


class _StaticResource(TemplatedResource):
    def __init__(self, uri: str, text: str, *, max_instances: int = MAX_CACHED_INSTANCES) -> None:
        super().__init__(uri, "static", "A static resource", max_instances=max_instances)
        self.text = text
        self.calls = 0

    def render(self, params: dict[str, str]) -> str:
        self.calls += 1
        return f"{self.text}:{params.get('name', '')}"


class _FailingResource(TemplatedResource):
    def __init__(self, uri: str, error: Exception) -> None:
        super().__init__(uri, "failing", "Always fails")
        self.error = error

    def render(self, params: dict[str, str]) -> str:
        raise self.error


class TestUriTemplate:
    def test_plain_uri(self) -> None:
        template = UriTemplate("rails://guides")
        assert not template.templated
        assert template.match("rails://guides")
        assert not template.match("rails://guides/routing")
        assert template.extract("rails://guides") == {}

    def test_placeholder(self) -> None:
        template = UriTemplate("rails://guides/{name}")
        assert template.templated
        assert template.variables == ["name"]
        assert template.extract("rails://guides/routing") == {"name": "routing"}

    def test_placeholder_spans_slashes(self) -> None:
        template = UriTemplate("turbo://guides/{name}")
        assert template.extract("turbo://guides/handbook/02_drive") == {
            "name": "handbook/02_drive"
        }

    def test_placeholder_must_be_non_empty(self) -> None:
        template = UriTemplate("rails://guides/{name}")
        assert not template.match("rails://guides/")
        assert not template.match("rails://guides")

    def test_percent_decoding_and_expand(self) -> None:
        template = UriTemplate("custom://guides/{name}")
        uri = template.expand(name="my guide")
        assert uri == "custom://guides/my%20guide"
        assert template.extract(uri) == {"name": "my guide"}

    def test_literal_parts_are_escaped(self) -> None:
        template = UriTemplate("a.b://guides")
        assert not template.match("axb://guides")

    def test_other_namespace_does_not_match(self) -> None:
        assert not UriTemplate("rails://guides/{name}").match("turbo://guides/drive")

    def test_extract_mismatch_raises(self) -> None:
        with pytest.raises(ResourceNotFoundError):
            UriTemplate("rails://guides").extract("turbo://guides")

    def test_at_most_one_placeholder(self) -> None:
        with pytest.raises(ValueError, match="at most one placeholder"):
            UriTemplate("x://{a}/{b}")


class TestTemplatedResource:
    def test_instance_cached_per_uri(self) -> None:
        resource = _StaticResource("x://guides/{name}", "text")
        first = resource.instance("x://guides/a")
        assert resource.instance("x://guides/a") is first
        assert resource.instance("x://guides/b") is not first
        assert first.params == {"name": "a"}

    def test_instance_cache_is_bounded(self) -> None:
        resource = _StaticResource("x://guides/{name}", "text")
        for index in range(1000):
            resource.instance(f"x://guides/g{index}")
        assert resource.cached_instances == MAX_CACHED_INSTANCES

    def test_least_recently_used_instance_is_evicted(self) -> None:
        resource = _StaticResource("x://guides/{name}", "text", max_instances=2)
        a = resource.instance("x://guides/a")
        b = resource.instance("x://guides/b")
        assert resource.instance("x://guides/a") is a

        resource.instance("x://guides/c")

        assert resource.cached_instances == 2
        assert resource.instance("x://guides/a") is a
        assert resource.instance("x://guides/b") is not b

    def test_content_renders_each_call(self) -> None:
        resource = _StaticResource("x://guides/{name}", "text")
        instance = resource.instance("x://guides/a")
        assert instance.content() == "text:a"
        assert instance.content() == "text:a"
        assert resource.calls == 2

    def test_metadata(self) -> None:
        fixed = _StaticResource("x://guides", "t").metadata()
        templated = _StaticResource("x://guides/{name}", "t").metadata()
        assert fixed == {
            "uri": "x://guides",
            "name": "static",
            "description": "A static resource",
            "mimeType": "text/markdown",
        }
        assert templated["uriTemplate"] == "x://guides/{name}"
        assert "uri" not in templated

    def test_storage_errors_render_error_document(self) -> None:
        resource = _FailingResource("x://guides", PermissionError("denied"))
        text = resource.instance().content()
        assert text.startswith("# Error Loading Guide")
        assert "denied" in text


class TestResourceRegistry:
    def test_exact_match_before_template(self) -> None:
        registry = ResourceRegistry()
        templated = _StaticResource("x://{name}", "templated")
        fixed = _StaticResource("x://guides", "fixed")
        registry.register(templated)
        registry.register(fixed)
        assert registry.find("x://guides") is fixed
        assert registry.find("x://other") is templated

    def test_unknown_uri(self) -> None:
        registry = ResourceRegistry()
        registry.register(_StaticResource("x://guides", "fixed"))
        with pytest.raises(ResourceNotFoundError, match="y://guides"):
            registry.read("y://guides")

    def test_duplicate_registration(self) -> None:
        registry = ResourceRegistry()
        registry.register(_StaticResource("x://guides", "a"))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(_StaticResource("x://guides", "b"))

    def test_read(self) -> None:
        registry = ResourceRegistry()
        registry.register(_StaticResource("x://guides/{name}", "t"))
        assert registry.read("x://guides/abc") == "t:abc"
        assert registry.instance("x://guides/abc") is registry.instance("x://guides/abc")


class TestGuideResources:
    def test_build_registry_covers_every_namespace(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        registry = build_registry(store, namespaces)
        uris = {r.uri for r in registry.resources()}
        for name in namespaces:
            assert index_uri(name) in uris
            assert f"{name}://guides/{{name}}" in uris
        assert isinstance(registry.find("rails://guides"), GuideIndexResource)
        assert isinstance(registry.find("rails://guides/routing"), GuideResource)
        assert registry.guide_resource("kamal").namespace.name == "kamal"

    def test_missing_manifest(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        registry = build_registry(store, namespaces)
        expected = "No Rails guides found. Run 'guidesync download rails' first."
        assert registry.read("rails://guides") == expected
        assert registry.read("rails://guides/routing") == expected
        assert not store.exists("rails")

    def test_index_and_guide(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        seed_namespace(
            store,
            "rails",
            {"routing.md": guide("Rails Routing", "Routes."), "caching.md": guide("Caching")},
        )
        registry = build_registry(store, namespaces)

        index = registry.read("rails://guides")
        assert "## Rails Routing" in index
        assert "## Caching" in index

        text = registry.read(guide_uri("rails", "routing"))
        assert text.startswith("# Rails Routing\n")
        assert text.endswith("# Rails Routing\n\nRoutes.\n")

    def test_sees_manifest_changes_without_rebuilding(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        registry = build_registry(store, namespaces)
        instance = registry.instance("rails://guides/routing")
        assert "No Rails guides found" in instance.content()

        seed_namespace(store, "rails", {"routing.md": guide("Routing")})
        assert instance.content().startswith("# Routing\n")

    def test_path_qualified_guide(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        seed_namespace(
            store,
            "turbo",
            {"handbook/02_drive.md": guide("Navigate"), "reference/drive.md": guide("Drive")},
        )
        registry = build_registry(store, namespaces)
        text = registry.read("turbo://guides/handbook/02_drive")
        assert "**Source:** Turbo Handbook" in text
        assert "**File:** handbook/02_drive.md" in text

    def test_ambiguous_and_not_found(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        seed_namespace(store, "custom", {"foo_bar.md": "a", "foo_baz.md": "b"})
        registry = build_registry(store, namespaces)
        assert registry.read("custom://guides/foo").startswith("# Multiple Guides Found\n")
        assert registry.read("custom://guides/zebra").startswith("# Guide Not Found\n")

    def test_corrupt_manifest_renders_error(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        path = store.manifest_path("rails")
        path.parent.mkdir(parents=True)
        path.write_text("files: [broken\n", encoding="utf-8")
        registry = build_registry(store, namespaces)

        for uri in ("rails://guides", "rails://guides/routing"):
            text = registry.read(uri)
            assert text.startswith("# Error Loading Guide")
            assert "is corrupt" in text
        assert path.read_text(encoding="utf-8") == "files: [broken\n"

    def test_listed_file_missing_on_disk(
        self, store: ManifestStore, namespaces: dict[str, NamespaceDef]
    ) -> None:
        seed_namespace(store, "rails", {"routing.md": guide("Routing")})
        store.resolve_path("rails", "routing.md").unlink()
        registry = build_registry(store, namespaces)
        text = registry.read("rails://guides/routing")
        assert text.startswith("# Error Loading Guide")
        assert "missing on disk" in text
