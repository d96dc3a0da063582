"""
Command-line entry point: crawl an input file into per-category TSV files.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from meta_crawler.config import CrawlerSettings, get_crawler_settings
from meta_crawler.engine import CategoryCrawlEngine
from meta_crawler.errors import ArtifactWriteError
from meta_crawler.logging_utils import configure_logging
from meta_crawler.storage import DirectoryArtifactStorage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meta-crawl",
        description="Fetch page titles and meta descriptions into one TSV file per category.",
    )
    parser.add_argument("input_file", help="Newline-delimited JSON records ({\"url\", \"categories\"}).")
    parser.add_argument("output_dir", help="Existing directory receiving <category>.tsv files.")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker thread count (defaults to META_CRAWL_WORKERS or the CPU count).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (defaults to META_CRAWL_TIMEOUT_SECONDS or 15).",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print a JSON run summary to stdout when done.",
    )
    return parser


def _validate_paths(input_file: str, output_dir: str) -> str | None:
    input_path = Path(input_file)
    if not input_path.is_file() or not os.access(input_path, os.R_OK):
        return f"cannot open the input file: {input_file}"
    if not Path(output_dir).is_dir():
        return f"no such output path: {output_dir}"
    return None


def _apply_overrides(settings: CrawlerSettings, args: argparse.Namespace) -> CrawlerSettings:
    overrides: dict[str, object] = {}
    if args.workers is not None:
        overrides["worker_count"] = max(1, args.workers)
    if args.timeout is not None:
        overrides["timeout_seconds"] = max(1.0, args.timeout)
    return dataclasses.replace(settings, **overrides) if overrides else settings


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    error = _validate_paths(args.input_file, args.output_dir)
    if error:
        print(error, file=sys.stderr)
        return 1

    settings = _apply_overrides(get_crawler_settings(), args)
    configure_logging(settings.log_level)

    storage = DirectoryArtifactStorage(output_dir=args.output_dir)
    with CategoryCrawlEngine(settings=settings, storage=storage) as engine:
        try:
            summary = engine.run_file(args.input_file)
        except ArtifactWriteError as exc:
            print(str(exc), file=sys.stderr)
            return 1

    if args.summary:
        print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
