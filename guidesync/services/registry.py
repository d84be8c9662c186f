"""URI-addressable guide resources (``<namespace>://guides[/{name}]``)."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

from guidesync.exceptions import ManifestCorruptError, ResourceNotFoundError
from guidesync.services.rendering import (
    render_ambiguous,
    render_error,
    render_guide,
    render_index,
    render_missing_manifest,
    render_not_found,
)
from guidesync.services.resolver import (
    Ambiguous,
    NoMatch,
    ResolutionOutcome,
    ResolveOptions,
    Unique,
    resolve,
)

if TYPE_CHECKING:
    from guidesync.filesystem.manifest_store import Manifest, ManifestStore
    from guidesync.filesystem.namespaces import NamespaceDef

logger = logging.getLogger(__name__)

MAX_CACHED_INSTANCES = 256

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class UriTemplate:
    """A URI pattern with at most one ``{placeholder}`` segment.

    The placeholder matches any non-empty remainder, including ``/``, so
    path-qualified guide names such as ``handbook/02_drive`` work.
    """

    def __init__(self, pattern: str) -> None:
        variables = _PLACEHOLDER_RE.findall(pattern)
        if len(variables) > 1:
            msg = f"URI template may contain at most one placeholder: {pattern!r}"
            raise ValueError(msg)
        self.pattern = pattern
        self.variables: list[str] = variables

        regex = ""
        position = 0
        for match in _PLACEHOLDER_RE.finditer(pattern):
            regex += re.escape(pattern[position : match.start()])
            regex += f"(?P<{match.group(1)}>.+)"
            position = match.end()
        regex += re.escape(pattern[position:])
        self._regex = re.compile(f"^{regex}$")

    @property
    def templated(self) -> bool:
        return bool(self.variables)

    def match(self, uri: str) -> bool:
        return self._regex.match(uri) is not None

    def extract(self, uri: str) -> dict[str, str]:
        """Return placeholder values (percent-decoded) for a matching URI."""
        match = self._regex.match(uri)
        if match is None:
            raise ResourceNotFoundError(uri)
        return {key: unquote(value) for key, value in match.groupdict().items()}

    def expand(self, **params: str) -> str:
        uri = self.pattern
        for variable in self.variables:
            uri = uri.replace(f"{{{variable}}}", quote(params[variable], safe="/"))
        return uri

    def __repr__(self) -> str:
        return f"UriTemplate({self.pattern!r})"


@dataclass(eq=False)
class ResourceInstance:
    """A resource bound to one concrete URI."""

    uri: str
    params: dict[str, str]
    resource: TemplatedResource

    def content(self) -> str:
        return self.resource.read_content(self.params)


class TemplatedResource(ABC):
    """Base for resources addressed by a URI template.

    ``instance(uri)`` caches one ``ResourceInstance`` per concrete URI,
    keeping the *max_instances* most recently used.  Content is rendered on
    every ``content()`` call, so a manifest rewritten by a sync run is picked up immediately.
    """

    mime_type = "text/markdown"

    def __init__(
        self,
        uri: str,
        name: str,
        description: str,
        *,
        max_instances: int = MAX_CACHED_INSTANCES,
    ) -> None:
        self.uri_template = UriTemplate(uri)
        self.name = name
        self.description = description
        self.max_instances = max_instances
        self._instances: OrderedDict[str, ResourceInstance] = OrderedDict()

    @property
    def uri(self) -> str:
        return self.uri_template.pattern

    @property
    def templated(self) -> bool:
        return self.uri_template.templated

    def match(self, uri: str) -> bool:
        return self.uri_template.match(uri)

    def instance(self, uri: str | None = None) -> ResourceInstance:
        uri = self.uri if uri is None else uri
        cached = self._instances.get(uri)
        if cached is not None:
            self._instances.move_to_end(uri)
            return cached
        cached = ResourceInstance(uri=uri, params=self.uri_template.extract(uri), resource=self)
        self._instances[uri] = cached
        while len(self._instances) > self.max_instances:
            self._instances.popitem(last=False)
        return cached

    @property
    def cached_instances(self) -> int:
        return len(self._instances)

    def metadata(self) -> dict[str, Any]:
        key = "uriTemplate" if self.templated else "uri"
        return {
            key: self.uri,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
        }

    def read_content(self, params: dict[str, str]) -> str:
        """Render content, turning storage failures into an error document."""
        try:
            return self.render(params)
        except ManifestCorruptError as exc:
            logger.error("Manifest integrity error while reading %s: %s", self.uri, exc)
            return render_error(str(exc))
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Storage error while reading %s: %s", self.uri, exc)
            return render_error(f"Error loading guide: {exc}")

    @abstractmethod
    def render(self, params: dict[str, str]) -> str:
        """Produce the resource content for the given placeholder values."""


class GuideIndexResource(TemplatedResource):
    """``<namespace>://guides``: index of every guide in a namespace."""

    def __init__(self, namespace: NamespaceDef, store: ManifestStore) -> None:
        super().__init__(
            f"{namespace.name}://guides",
            f"{namespace.framework_name} Guides",
            f"Access to available {namespace.framework_name} guides",
        )
        self.namespace = namespace
        self.store = store

    def render(self, params: dict[str, str]) -> str:
        if not self.store.exists(self.namespace.name):
            logger.error("No manifest for namespace %s", self.namespace.name)
            return render_missing_manifest(self.namespace)
        logger.debug("Loading %s guides index", self.namespace.name)
        return render_index(self.store.load(self.namespace.name), self.namespace)


class GuideResource(TemplatedResource):
    """``<namespace>://guides/{name}``: one guide resolved from a loose name."""

    def __init__(self, namespace: NamespaceDef, store: ManifestStore) -> None:
        super().__init__(
            f"{namespace.name}://guides/{{name}}",
            f"{namespace.framework_name} Guides",
            f"Access to specific {namespace.framework_name} documentation",
        )
        self.namespace = namespace
        self.store = store
        self.options = ResolveOptions.for_namespace(namespace)

    def lookup(self, name: str) -> tuple[Manifest, ResolutionOutcome] | None:
        """Resolve *name*, or return None when the namespace has never been synced."""
        if not self.store.exists(self.namespace.name):
            return None
        manifest = self.store.load(self.namespace.name)
        return manifest, resolve(name, manifest, self.options)

    def load_guide(self, filename: str) -> str:
        return self.store.read_text(self.namespace.name, filename)

    def render_outcome(self, name: str, manifest: Manifest, outcome: ResolutionOutcome) -> str:
        if isinstance(outcome, Unique):
            path = self.store.resolve_path(self.namespace.name, outcome.filename)
            if not path.is_file():
                logger.error(
                    "Manifest entry %s in %s has no file on disk", outcome.filename, self.namespace.name
                )
                return render_error(
                    f"Guide file '{outcome.filename}' is listed in the {self.namespace.name} "
                    f"manifest but missing on disk. Run '{self.namespace.download_command}' again."
                )
            logger.debug("Loading guide: %s", outcome.filename)
            return render_guide(
                self.load_guide(outcome.filename), name, outcome.entry, outcome.filename, self.namespace
            )
        if isinstance(outcome, Ambiguous):
            logger.info("Guide name %r is ambiguous: %s", name, ", ".join(outcome.candidates))
            return render_ambiguous(name, outcome.guide_names, self.namespace)
        logger.warning("Guide not found: %s", name)
        suggestions = outcome.suggestions if isinstance(outcome, NoMatch) else []
        return render_not_found(name, manifest, suggestions, self.namespace)

    def render(self, params: dict[str, str]) -> str:
        name = params.get("name", "").strip()
        if not name:
            return f"Provide a name for a {self.namespace.framework_name} guide"
        looked_up = self.lookup(name)
        if looked_up is None:
            logger.error("No manifest for namespace %s", self.namespace.name)
            return render_missing_manifest(self.namespace)
        manifest, outcome = looked_up
        return self.render_outcome(name, manifest, outcome)


@dataclass
class ResourceRegistry:
    """Routes URIs to the resource whose template matches them."""

    _resources: list[TemplatedResource] = field(default_factory=list)

    def register(self, resource: TemplatedResource) -> None:
        if any(r.uri == resource.uri for r in self._resources):
            msg = f"Resource already registered: {resource.uri}"
            raise ValueError(msg)
        self._resources.append(resource)

    def resources(self) -> list[TemplatedResource]:
        return list(self._resources)

    def find(self, uri: str) -> TemplatedResource:
        """Exact non-templated URIs win over template matches."""
        for resource in self._resources:
            if not resource.templated and resource.uri == uri:
                return resource
        for resource in self._resources:
            if resource.templated and resource.match(uri):
                return resource
        raise ResourceNotFoundError(uri)

    def instance(self, uri: str) -> ResourceInstance:
        return self.find(uri).instance(uri)

    def read(self, uri: str) -> str:
        return self.instance(uri).content()

    def guide_resource(self, namespace: str) -> GuideResource:
        resource = self.find(guide_uri(namespace, "_"))
        if not isinstance(resource, GuideResource):
            raise ResourceNotFoundError(guide_uri(namespace, "_"))
        return resource


def index_uri(namespace: str) -> str:
    return f"{namespace}://guides"


def guide_uri(namespace: str, name: str) -> str:
    return f"{namespace}://guides/{quote(name, safe='/')}"


def build_registry(store: ManifestStore, namespaces: dict[str, NamespaceDef]) -> ResourceRegistry:
    """Register the index and single-guide resources for every namespace."""
    registry = ResourceRegistry()
    for namespace in namespaces.values():
        registry.register(GuideIndexResource(namespace, store))
        registry.register(GuideResource(namespace, store))
    logger.debug("Registered guide resources for %s", ", ".join(namespaces))
    return registry
