"""Command-line entry point for the image rewriter."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .config import PLACEHOLDER_STRATEGIES, ImageOptions, load_options
from .rewriter import ImageRewriter

logger = logging.getLogger("svelte_image.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("rewrite", *argv)


def _add_rewrite_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("files", nargs="+", type=Path, help="Component files to rewrite")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with options (camelCase keys, e.g. sizes, breakpoints, tagName)",
    )
    parser.add_argument(
        "--in-place",
        action="store_true",
        help="Overwrite each file instead of printing the result to STDOUT",
    )
    parser.add_argument(
        "--source-dir",
        default=None,
        help="Source root used to resolve image paths (default: ./src/)",
    )
    parser.add_argument(
        "--public-dir",
        default=None,
        help="Directory served as the site root (default: ./static/)",
    )
    parser.add_argument(
        "--placeholder",
        choices=PLACEHOLDER_STRATEGIES,
        default=None,
        help="Placeholder strategy for image components",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Optimize images referenced from Svelte component markup.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rewrite_parser = subparsers.add_parser(
        "rewrite", help="Rewrite image references in component files"
    )
    _add_rewrite_arguments(rewrite_parser)

    subparsers.add_parser("defaults", help="Print the default options as JSON")

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


async def _rewrite_files(rewriter: ImageRewriter, files: List[Path]) -> List[str]:
    sources = [path.read_text(encoding="utf-8") for path in files]
    return list(
        await asyncio.gather(
            *(
                rewriter.rewrite_async(source, str(path))
                for path, source in zip(files, sources)
            )
        )
    )


def _run_rewrite(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        options = load_options(
            args.config,
            source_dir=args.source_dir,
            public_dir=args.public_dir,
            placeholder=args.placeholder,
        )
    except (OSError, ValueError) as exc:
        logger.error("Invalid options: %s", exc)
        return 2

    missing = [path for path in args.files if not path.is_file()]
    if missing:
        for path in missing:
            logger.error("File not found: %s", path)
        return 1

    files = [path.resolve() for path in args.files]
    rewriter = ImageRewriter(options)
    overall_start = time.perf_counter()
    outputs = asyncio.run(_rewrite_files(rewriter, files))
    total_elapsed = time.perf_counter() - overall_start

    changed = 0
    for path, output in zip(files, outputs):
        original = path.read_text(encoding="utf-8")
        if output != original:
            changed += 1
        if args.in_place:
            if output != original:
                path.write_text(output, encoding="utf-8")
                logger.info("Saved %s", path)
        else:
            sys.stdout.write(output)
    sys.stdout.flush()

    logger.info(
        "Finished in %.2fs (%d/%d files changed)",
        total_elapsed,
        changed,
        len(files),
    )
    return 0


def _run_defaults() -> int:
    sys.stdout.write(json.dumps(ImageOptions().to_mapping(), indent=2) + "\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "defaults":
        return _run_defaults()
    return _run_rewrite(args)


if __name__ == "__main__":
    sys.exit(main())
