"""Command-line entry point: ``featured-image``.

Sub-commands::

    featured-image resolve    VAULT NOTE...   print each note's feature image
    featured-image references VAULT NOTE...   print every image a note references
    featured-image sweep      VAULT           remove unused downloaded images
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from featured_image.collaborators import always_confirm
from featured_image.collector import ReferenceCollector
from featured_image.config import ConfigError, load_settings
from featured_image.downloads import HttpDownloader
from featured_image.index import VaultIndex
from featured_image.maintenance import AssetGarbageCollector, SweepStatus
from featured_image.resolver import FeatureResolver

logger = logging.getLogger("featured_image.cli")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("vault", type=Path, help="Vault root directory")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML settings file (default: <vault>/featured-image.toml when present)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="featured-image", description=__doc__.splitlines()[0])
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="Print the feature image of notes")
    _add_common_arguments(resolve_parser)
    resolve_parser.add_argument("notes", nargs="+", help="Vault-relative note paths")

    refs_parser = subparsers.add_parser("references", help="Print the images referenced by notes")
    _add_common_arguments(refs_parser)
    refs_parser.add_argument("notes", nargs="*", help="Vault-relative note paths (default: all notes)")

    sweep_parser = subparsers.add_parser("sweep", help="Remove unused downloaded images")
    _add_common_arguments(sweep_parser)
    sweep_parser.add_argument("--dry-run", action="store_true", help="Report without deleting anything")
    sweep_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


def _prompt(title: str, message: str) -> bool:
    answer = input(f"{title}\n{message} [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _run_resolve(args: argparse.Namespace, resolver: FeatureResolver) -> int:
    status = 0
    for path in args.notes:
        try:
            reference = resolver.resolve_path(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read %s: %s", path, exc)
            status = 1
            continue
        print(f"{path}\t{reference.value or ''}")
    return status


def _run_references(args: argparse.Namespace, index: VaultIndex, collector: ReferenceCollector) -> int:
    paths = args.notes or index.list_notes()
    used: set[str] = set()
    for path in paths:
        try:
            note = index.read_note(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read %s: %s", path, exc)
            continue
        collector.collect_into(note, used)
    for ref in sorted(used):
        print(ref)
    return 0


def _run_sweep(args: argparse.Namespace, sweeper: AssetGarbageCollector) -> int:
    if args.dry_run:
        sweeper.settings.dry_run = True
    report = sweeper.sweep(confirm=always_confirm if args.yes else _prompt)
    if report.status in (SweepStatus.DRY_RUN, SweepStatus.COMPLETED):
        for row in report.to_frame().iter_rows(named=True):
            print(f"{row['category']}\t{row['path']}")
    logger.info(report.summary())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    config_path = args.config
    if config_path is None and (args.vault / "featured-image.toml").exists():
        config_path = args.vault / "featured-image.toml"
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        print(f"featured-image: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug_mode else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    index = VaultIndex(args.vault)
    index.build()

    if args.command == "references":
        collaborators = index.collaborators()
        return _run_references(args, index, ReferenceCollector(settings, collaborators))
    if args.command == "sweep":
        return _run_sweep(args, AssetGarbageCollector(settings, index.collaborators()))

    with HttpDownloader(index, settings) as downloader:
        resolver = FeatureResolver(settings, index.collaborators(downloader))
        return _run_resolve(args, resolver)


if __name__ == "__main__":
    sys.exit(main())
