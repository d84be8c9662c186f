"""Command-line interface for synchronizing and reading guides."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from guidesync.config import Settings
from guidesync.exceptions import GuideSyncError
from guidesync.filesystem.namespaces import CUSTOM_NAMESPACE
from guidesync.main import configure_logging
from guidesync.services.guide_service import GuideService
from guidesync.services.sync_service import SyncOutcome, SyncResult


def print_summary(namespace: str, result: SyncResult) -> None:
    """Print per-run counts and any failed files."""
    counts = result.as_counts()
    written = str(result.written_outcome)
    print(
        f"{namespace}: {counts[written]} {written}, "
        f"{counts['skipped']} skipped, {counts['failed']} failed"
    )
    for outcome in result.files:
        if outcome.outcome == SyncOutcome.FAILED:
            print(f"  Failed: {outcome.filename} ({outcome.detail or 'unknown error'})")


def cmd_download(service: GuideService, args: argparse.Namespace) -> int:
    if args.all:
        names = [n for n in service.available_namespaces() if service.namespaces[n].is_remote]
    else:
        names = args.namespaces
    if not names:
        print("Error: name at least one namespace, or pass --all")
        return 1

    exit_code = 0
    for name in names:
        result = service.sync(name, force=args.force, verbose=args.verbose)
        print_summary(name, result)
        if result.all_failed:
            exit_code = 1
    return exit_code


def cmd_import(service: GuideService, args: argparse.Namespace) -> int:
    result = service.import_source(
        args.path, args.namespace, force=args.force, verbose=args.verbose
    )
    print_summary(args.namespace, result)
    return 1 if result.all_failed else 0


def cmd_list(service: GuideService, args: argparse.Namespace) -> int:
    print("Namespaces:")
    for summary in service.describe_namespaces():
        source = "remote" if summary.remote else "local"
        line = f"  {summary.name:<12} {summary.framework_name:<20} {source:<7} {summary.state}"
        if summary.guide_count:
            line += f" ({summary.guide_count} guides)"
        print(line)
    return 0


def cmd_load(service: GuideService, args: argparse.Namespace) -> int:
    print(service.resolve_and_render(args.namespace, args.guide))
    return 0


_COMMANDS = {
    "download": cmd_download,
    "import": cmd_import,
    "list": cmd_list,
    "load": cmd_load,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guidesync",
        description="Synchronize framework guides to disk and read them back",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory holding synchronized resources (default: ~/.config/guidesync)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    download = subparsers.add_parser("download", help="Download remote namespaces")
    download.add_argument("namespaces", nargs="*", help="Namespaces to download")
    download.add_argument("--all", action="store_true", help="Download every remote namespace")
    download.add_argument("--force", "-f", action="store_true", help="Re-download unchanged files")
    download.add_argument("--verbose", "-v", action="store_true", help="Show per-file progress")

    import_ = subparsers.add_parser("import", help="Import local markdown files")
    import_.add_argument("path", type=Path, help="Markdown file or directory to import")
    import_.add_argument(
        "--namespace",
        "-n",
        default=CUSTOM_NAMESPACE,
        help=f"Target namespace (default: {CUSTOM_NAMESPACE})",
    )
    import_.add_argument("--force", "-f", action="store_true", help="Re-import unchanged files")
    import_.add_argument("--verbose", "-v", action="store_true", help="Show per-file progress")

    subparsers.add_parser("list", help="Show namespaces and their sync state")

    load = subparsers.add_parser("load", help="Print a guide, or a namespace index")
    load.add_argument("namespace", help="Namespace to read from")
    load.add_argument("guide", nargs="?", default=None, help="Guide name (omit for the index)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    overrides: dict[str, object] = {}
    if args.config_dir is not None:
        overrides["config_dir"] = args.config_dir.expanduser()
    if args.debug:
        overrides["debug"] = True

    try:
        settings = Settings(**overrides)
        configure_logging(
            settings.debug,
            settings.log_file,
            default_level=logging.WARNING,
            stream=sys.stderr,
        )
        service = GuideService(settings)
        exit_code = _COMMANDS[args.command](service, args)
    except GuideSyncError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
