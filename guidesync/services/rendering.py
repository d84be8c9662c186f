"""Markdown documents for every resolution outcome and for namespace indexes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from guidesync.filesystem.metadata import humanize_filename

if TYPE_CHECKING:
    from guidesync.filesystem.manifest_store import FileEntry, Manifest
    from guidesync.filesystem.namespaces import NamespaceDef

MAX_LISTED_CANDIDATES = 10
MAX_EXAMPLE_INVOCATIONS = 3

_SECTION_HEADINGS = {
    "Handbook": "Handbook (Main Documentation)",
    "Reference": "Reference (API Documentation)",
}


def load_guide_invocation(namespace: str, guide: str | None = None) -> str:
    """The tool call a requester can use to follow up."""
    if guide is None:
        return f'load_guide guides: "{namespace}"'
    return f'load_guide guides: "{namespace}", guide: "{guide}"'


def _fallback_title(guide_name: str) -> str:
    return humanize_filename(guide_name)


def render_guide(
    content: str,
    guide_name: str,
    entry: FileEntry,
    filename: str,
    namespace: NamespaceDef,
) -> str:
    """Prefix a guide's raw content with a header describing where it came from."""
    title = entry.title or _fallback_title(guide_name)
    section = namespace.section_label(filename)

    lines = [f"# {title}", ""]
    if section is not None:
        lines.append(f"**Source:** {namespace.framework_name} {section}")
    else:
        lines.append(f"**Source:** {namespace.framework_name} Guides")
    lines.append(f"**Guide:** {guide_name}")
    if section is not None:
        lines.append(f"**File:** {filename}")
    if entry.original_filename:
        lines.append(f"**Original file:** {entry.original_filename}")
    lines.extend(["", "---", "", ""])
    return "\n".join(lines) + content


def _group_by_section(
    guide_names: list[str], namespace: NamespaceDef
) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for guide in guide_names:
        label = namespace.section_label(f"{guide}.md") or "Documentation"
        groups.setdefault(label, []).append(guide)
    return groups


def _short_name(guide: str, namespace: NamespaceDef) -> str:
    if namespace.supports_sections:
        return guide.split("/", maxsplit=1)[-1]
    return guide


def render_available_guides(guide_names: list[str], namespace: NamespaceDef) -> str:
    """List guide names, grouped by section where the namespace has sections."""
    if not guide_names:
        return "No guides are available yet.\n\n"

    lines = [f"## Available {namespace.framework_name} Guides:", ""]
    if namespace.section_for is None:
        lines.extend(f"- {guide}" for guide in guide_names)
        lines.append("")
    else:
        for label, guides in _group_by_section(guide_names, namespace).items():
            lines.append(f"### {label}:")
            lines.extend(f"- {_short_name(guide, namespace)}" for guide in guides)
            lines.append("")
    return "\n".join(lines) + "\n"


def render_not_found(
    guide_name: str,
    manifest: Manifest,
    suggestions: list[str],
    namespace: NamespaceDef,
) -> str:
    """Explain a miss, offering suggestions or the full list of guides."""
    message = "# Guide Not Found\n\n"
    message += f"Guide '{guide_name}' not found in {namespace.framework_name} guides.\n\n"

    if suggestions:
        message += "## Did you mean one of these?\n\n"
        message += "".join(f"- {suggestion}\n" for suggestion in suggestions)
        invocation = load_guide_invocation(namespace.name, suggestions[0])
        message += f"\n**Try:** `{invocation}`\n"
    else:
        message += render_available_guides(manifest.guide_names(), namespace)
        message += (
            f"Use `{load_guide_invocation(namespace.name)}` "
            "to see all available guides with descriptions.\n"
        )
    return message


def render_ambiguous(
    guide_name: str,
    candidates: list[str],
    namespace: NamespaceDef,
    limit: int = MAX_LISTED_CANDIDATES,
) -> str:
    """List the guides a name could refer to, with follow-up invocations."""
    message = "# Multiple Guides Found\n\n"
    message += (
        f"Found {len(candidates)} guides matching '{guide_name}' "
        f"in {namespace.name} guides:\n\n"
    )
    for index, candidate in enumerate(candidates[:limit], start=1):
        message += f"{index}. {candidate}\n"
    if len(candidates) > limit:
        message += f"... and {len(candidates) - limit} more\n"

    message += "\n## To load a specific guide, use the exact name:\n```\n"
    for candidate in candidates[:MAX_EXAMPLE_INVOCATIONS]:
        message += load_guide_invocation(namespace.name, candidate) + "\n"
    message += "```\n"
    return message


def render_multiple(guide_name: str, loaded: list[tuple[str, str]]) -> str:
    """Concatenate several guides matching one name.

    *loaded* holds ``(guide_name, raw_content)`` pairs; empty content is
    shown as a load failure.
    """
    parts = [
        f"# Multiple Guides Found for '{guide_name}'",
        "",
        f"Found {len(loaded)} matching guides. Loading all:\n",
    ]
    for index, (name, content) in enumerate(loaded, start=1):
        parts.extend(["---", "", f"## {index}. {name}", ""])
        parts.append(content.strip() if content.strip() else "*Failed to load this guide*")
        if index < len(loaded):
            parts.append("")
    return "\n".join(parts)


def _format_index_entry(
    title: str, short_name: str, full_name: str, description: str | None, nested: bool
) -> str:
    heading = "###" if nested else "##"
    if short_name != full_name:
        names = f"`{short_name}` or `{full_name}`"
    else:
        names = f"`{short_name}`"
    lines = [f"{heading} {title}", f"**Guide name:** {names}"]
    if description:
        lines.append(f"**Description:** {description}")
    return "\n".join(lines) + "\n"


def _format_usage_examples(namespace: NamespaceDef) -> str:
    usage = "\n## Example Usage:\n```\n"
    for example in namespace.example_guides:
        line = load_guide_invocation(namespace.name, example.guide)
        if example.comment:
            line += f" # {example.comment}"
        usage += line + "\n"
    usage += "```\n"
    return usage


def render_index(manifest: Manifest, namespace: NamespaceDef) -> str:
    """Index document listing every guide with its title and description."""
    framework = namespace.framework_name
    parts = [
        f"# Available {framework} Guides\n",
        f"Use the `load_guide` tool with `guides: \"{namespace.name}\"` and "
        '`guide: "guide_name"` to load a specific guide.\n',
    ]
    if namespace.section_for is not None:
        parts.append(
            "You can use either the full path (e.g., `handbook/01_introduction`) "
            "or just the filename (e.g., `01_introduction`).\n"
        )

    entries = manifest.markdown_entries()
    if not entries:
        parts.append("No guides are available yet.\n")
    elif namespace.section_for is None:
        for filename, entry in entries:
            guide = filename.removesuffix(".md")
            title = entry.title or _fallback_title(guide)
            parts.append(_format_index_entry(title, guide, guide, entry.description, False))
    else:
        grouped: dict[str, list[tuple[str, FileEntry]]] = {}
        for filename, entry in entries:
            label = namespace.section_label(filename) or "Documentation"
            grouped.setdefault(label, []).append((filename, entry))
        for label, items in grouped.items():
            parts.append(f"\n## {_SECTION_HEADINGS.get(label, label)}\n")
            for filename, entry in items:
                guide = filename.removesuffix(".md")
                title = entry.title or _fallback_title(guide)
                short = guide.rsplit("/", maxsplit=1)[-1]
                parts.append(_format_index_entry(title, short, guide, entry.description, True))

    parts.append(_format_usage_examples(namespace))
    return "\n".join(parts)


def render_missing_manifest(namespace: NamespaceDef) -> str:
    return (
        f"No {namespace.framework_name} guides found. "
        f"Run '{namespace.download_command}' first."
    )


def render_error(message: str) -> str:
    """Troubleshooting document for failures reached while serving a guide."""
    return (
        "# Error Loading Guide\n\n"
        f"{message}\n\n"
        "## Troubleshooting:\n"
        "- Ensure guides are downloaded: `guidesync download <namespace>`\n"
        "- For custom guides: `guidesync import /path/to/guides`\n"
        "- If a manifest is corrupt, repair or remove its `manifest.yaml` and sync again\n"
        "- Use `guidesync list` to see configured namespaces\n"
    )
