"""Command-line host for the link archiver."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .clients import create_http_client
from .config import Settings, load_settings, validate_settings
from .dedup import DedupCache
from .errors import ConfigInvalid
from .extractor import LinkExtractor
from .filters import FilterChain
from .logging import configure_logging
from .models import PipelineStatus
from .pipeline import ArchivePipeline, ClientFactory
from .status import LoggingStatusReporter

MARKDOWN_SUFFIX = ".md"

FAILED_STATUSES = {
    PipelineStatus.CONFIG_INVALID,
    PipelineStatus.LOGIN_FAILED,
    PipelineStatus.SUBMISSION_FAILED,
}


def iter_markdown_files(paths: Sequence[str]) -> Iterator[Path]:
    """Yield the given files, walking directories for Markdown files."""
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            yield from sorted(p for p in path.rglob(f"*{MARKDOWN_SUFFIX}") if p.is_file())
        elif path.is_file():
            yield path
        else:
            print(f"Skipping missing path: {path}", file=sys.stderr)


def _print_status(text: str) -> None:
    if text:
        print(text, file=sys.stderr)


async def _archive(
    settings: Settings,
    files: List[Path],
    client_factory: ClientFactory = create_http_client,
) -> int:
    reporter = LoggingStatusReporter(callback=_print_status)
    exit_code = 0
    async with ArchivePipeline(
        settings, status=reporter, client_factory=client_factory
    ) as pipeline:
        for path in files:
            text = path.read_text(encoding="utf-8")
            result = await pipeline.archive_text(text, force=False)
            print(f"{path}: {len(result.accepted)} new link(s), {result.status.value}")
            if result.status in FAILED_STATUSES:
                exit_code = 1
        final = await pipeline.flush(force=True)
        if final.status in FAILED_STATUSES:
            exit_code = 1
        elif final.submitted:
            print(f"Archived {len(final.submitted)} link(s) ({final.status.value})")
    return exit_code


def cmd_archive(args: argparse.Namespace, settings: Settings) -> int:
    """Archive links found in Markdown files."""
    files = list(iter_markdown_files(args.paths))
    if not files:
        print("No Markdown files found", file=sys.stderr)
        return 1
    return asyncio.run(_archive(settings, files))


def cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """List candidate links and filter decisions without submitting."""
    extractor = LinkExtractor()
    path = settings.dedup_cache_path
    try:
        cache = DedupCache.load(path) if path is not None else DedupCache()
    except (OSError, ValueError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    chain = FilterChain(cache)
    for md_file in iter_markdown_files(args.paths):
        text = md_file.read_text(encoding="utf-8")
        for decision in chain.evaluate_all(extractor.extract(text), settings):
            print(f"{decision.reason.value}\t{decision.candidate.raw}\t{md_file}")
    return 0


def cmd_check_config(args: argparse.Namespace, settings: Settings) -> int:
    """Validate settings."""
    try:
        validate_settings(settings)
    except ConfigInvalid as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"✅ Settings OK ({settings.base_uri})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="link-archiver",
        description="Submit links found in Markdown notes to an ArchiveBox instance",
    )
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--log-level", help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    archive_parser = subparsers.add_parser("archive", help="Archive links in Markdown files")
    archive_parser.add_argument("paths", nargs="+", help="Files or directories")
    archive_parser.set_defaults(func=cmd_archive)

    extract_parser = subparsers.add_parser("extract", help="Show links and filter decisions")
    extract_parser.add_argument("paths", nargs="+", help="Files or directories")
    extract_parser.set_defaults(func=cmd_extract)

    check_parser = subparsers.add_parser("check-config", help="Validate settings")
    check_parser.set_defaults(func=cmd_check_config)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"log_level": args.log_level} if args.log_level else {}
    try:
        settings = load_settings(args.config, **overrides)
    except (FileNotFoundError, ValueError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_format)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
