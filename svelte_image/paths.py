"""Resolve attribute values to readable image files and output locations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import ImageOptions
from .errors import RemoteFetchError, SkipReason
from .images import download_image
from .models import (
    AttributeValue,
    DynamicValue,
    Process,
    ProcessingDecision,
    ResolvedPath,
    Skip,
)
from .utils import has_allowed_extension, is_external, write_bytes_atomic

logger = logging.getLogger("svelte_image.paths")

Downloader = Callable[[str, Path, float], Optional[Path]]


def resolve_source(
    value: Optional[AttributeValue],
    parent_dir: Path,
    options: ImageOptions,
    extensions: Sequence[str] = (),
    downloader: Downloader = download_image,
) -> ProcessingDecision:
    """Turn a ``src`` value into a staged, readable image or a skip."""
    if value is None:
        return Skip(SkipReason.BLANK_VALUE, "no src attribute")
    if isinstance(value, DynamicValue):
        return Skip(SkipReason.DYNAMIC_VALUE, value.kind)
    raw = value.text.strip()
    if not raw:
        return Skip(SkipReason.BLANK_VALUE)
    if raw.lower().startswith("data:"):
        return Skip(SkipReason.INLINE_DATA)
    if not has_allowed_extension(raw, extensions):
        return Skip(
            SkipReason.EXTENSION_REJECTED,
            f"{raw} is not one of {', '.join(extensions)}",
        )

    if is_external(raw):
        if not options.optimize_remote:
            return Skip(SkipReason.EXTERNAL_DISABLED, raw)
        try:
            local = downloader(raw, options.download_root, options.remote_timeout)
        except RemoteFetchError as exc:
            logger.warning("%s", exc)
            return Skip(SkipReason.REMOTE_FETCH_FAILED, raw)
        if local is None:
            return Skip(SkipReason.REMOTE_NOT_AN_IMAGE, raw)
        return stage(Path(local), options)

    found = find_local_file(raw, parent_dir, Path(options.source_dir))
    if found is None:
        return Skip(SkipReason.FILE_NOT_FOUND, str(Path(options.source_dir) / raw))
    return stage(found, options)


def find_local_file(raw: str, parent_dir: Path, source_dir: Path) -> Optional[Path]:
    """Look next to the component first, then under the source root."""
    relative_to_parent = (parent_dir / raw).resolve()
    if _is_file(relative_to_parent):
        return relative_to_parent
    # A leading slash means "rooted at the source directory".
    rooted = raw[1:] if raw.startswith("/") and not raw.startswith("//") else raw
    relative_to_source = (source_dir / rooted).resolve()
    if _is_file(relative_to_source):
        return relative_to_source
    return None


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def build_resolved_path(in_path: Path, options: ImageOptions) -> ResolvedPath:
    return ResolvedPath(
        in_path=in_path,
        out_dir=options.output_root,
        url_prefix=options.url_prefix,
        alt_extension=options.alt_format_options.extension,
    )


def stage(in_path: Path, options: ImageOptions) -> Process:
    """Copy the source into the output area and describe its outputs."""
    resolved = build_resolved_path(in_path, options)
    resolved.out_dir.mkdir(parents=True, exist_ok=True)
    target = resolved.out_path
    if not (target.exists() and target.samefile(in_path)):
        write_bytes_atomic(target, in_path.read_bytes())
    return Process(resolved)
