"""Command-line interface for folder-sync.

The archive argument is a directory opened as a store; pass
``--read-only`` to treat it as an archive you do not own.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .errors import FolderSyncError
from .logger import setup_logging
from .safety import assert_safe_path
from .settings import Settings
from .sync import Archive, FolderSync, LocalStore, SyncOptions
from .textdiff import format_line_changes

logger = logging.getLogger(__name__)


def _open_archive(args: argparse.Namespace) -> Archive:
    root = Path(args.archive).expanduser().resolve()
    return Archive(
        key=str(root),
        store=LocalStore(root, writable=not args.read_only),
        local_sync_path=str(Path(args.folder).expanduser().resolve()),
    )


def _sync_options(args: argparse.Namespace) -> SyncOptions:
    return SyncOptions(
        shallow=not args.deep,
        compare_content=not args.no_content,
        paths=tuple(args.path) if args.path else None,
        add_only=args.add_only,
    )


async def main(args: argparse.Namespace, settings: Settings) -> int:
    """Run the selected sub-command.

    Returns:
        Process exit status.
    """
    if args.command == "check-path":
        assert_safe_path(args.folder)
        print(f"OK: {args.folder} can be used as a sync folder")
        return 0

    engine = FolderSync(settings)
    engine.add_listener(
        lambda event: logger.info(
            "Synced %s -> %s", event.archive_key, event.direction.value
        )
    )
    archive = _open_archive(args)

    try:
        if args.command == "push":
            await engine.sync_folder_to_archive(archive, _sync_options(args))
        elif args.command == "pull":
            await engine.sync_archive_to_folder(archive, _sync_options(args))
        elif args.command == "merge":
            await engine.merge_archive_and_folder(
                archive, archive.local_sync_path or args.folder
            )
        elif args.command == "diff":
            changes = await engine.diff_listing(archive, _sync_options(args))
            for change in changes or []:
                print(f"{change.change.value:<7} {change.type.value:<4} {change.path}")
        elif args.command == "diff-file":
            lines = await engine.diff_file(archive, args.file)
            print(format_line_changes(lines or []))
        elif args.command == "watch":
            folder = archive.local_sync_path or args.folder
            archive.local_sync_path = None
            await engine.link_folder(archive, folder)
            print(
                f"Watching {folder} (Ctrl-C to stop)",
                file=sys.stderr,
                flush=True,
            )
            await asyncio.Event().wait()
    finally:
        await engine.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folder-sync",
        description="Keep a local folder and an archive directory in sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push folder changes into the archive (deep compare)
  folder-sync push ~/site /srv/archives/site --deep

  # Pull only the manifest from the archive
  folder-sync pull ~/site /srv/archives/site --path /dat.json

  # Link the folder and keep syncing it as it changes
  folder-sync watch ~/site /srv/archives/site
        """,
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--debug-format",
        choices=("text", "json"),
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"folder-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    def add_pair(p: argparse.ArgumentParser) -> None:
        p.add_argument("folder", help="Local folder")
        p.add_argument("archive", help="Archive directory")
        p.add_argument(
            "--read-only",
            action="store_true",
            help="Treat the archive as not writable",
        )

    def add_options(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--deep",
            action="store_true",
            help="List the contents of added and removed folders",
        )
        p.add_argument(
            "--no-content",
            action="store_true",
            help="Compare size and mtime only, not file content",
        )
        p.add_argument(
            "--path",
            action="append",
            help="Only sync this path (repeatable; overrides .datignore)",
        )
        p.add_argument(
            "--add-only",
            action="store_true",
            help="Never modify or delete files on the destination",
        )

    for name, help_text in (
        ("push", "Sync folder -> archive"),
        ("pull", "Sync archive -> folder"),
        ("diff", "List what push would change"),
    ):
        p = sub.add_parser(name, help=help_text)
        add_pair(p)
        add_options(p)

    add_pair(sub.add_parser("merge", help="Merge archive into folder, folder wins"))
    add_pair(sub.add_parser("watch", help="Link folder and sync on change"))

    p = sub.add_parser("diff-file", help="Line diff of one file")
    add_pair(p)
    p.add_argument("file", help="Path of the file inside the folder")

    p = sub.add_parser("check-path", help="Check a folder can be synced")
    p.add_argument("folder", help="Local folder")

    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()

    load_dotenv()
    config = build_config(load_hierarchical_config())
    setup_logging(
        debug=args.debug,
        log_file=args.log_file or config.logging.file,
        debug_format=args.debug_format,
        level=config.logging.level,
    )

    try:
        sys.exit(asyncio.run(main(args, Settings(config))))
    except FolderSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
