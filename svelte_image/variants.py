"""Derive sized variants and single optimized files for resolved images."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from .backend import PillowBackend
from .config import ImageOptions
from .models import ImageMetadata, ResolvedPath, Variant

logger = logging.getLogger("svelte_image.variants")


def candidate_sizes(configured: Sequence[int], natural_width: int) -> List[int]:
    """Target widths for an image ``natural_width`` pixels wide.

    Falls back to the natural width when even the smallest configured size
    would upscale; otherwise sizes larger than the image are dropped.
    """
    if not configured or min(configured) > natural_width:
        return [natural_width]
    return [size for size in configured if size <= natural_width]


async def generate_variants(
    resolved: ResolvedPath,
    options: ImageOptions,
    backend: PillowBackend,
) -> List[Variant]:
    """Produce (or reuse) one variant per candidate size, in size order."""
    meta = await asyncio.to_thread(backend.read_metadata, resolved.in_path)
    sizes = candidate_sizes(options.sizes, meta.width)
    resolved.out_dir.mkdir(parents=True, exist_ok=True)
    results = await asyncio.gather(
        *(
            asyncio.to_thread(_variant_for_size, resolved, size, meta, options, backend)
            for size in sizes
        )
    )
    variants = [variant for variant in results if variant is not None]
    logger.debug(
        "%s: %d variant(s) at %s",
        resolved.filename,
        len(variants),
        ", ".join(f"{v.size}w" for v in variants),
    )
    return variants


def _variant_for_size(
    resolved: ResolvedPath,
    size: int,
    meta: ImageMetadata,
    options: ImageOptions,
    backend: PillowBackend,
) -> Optional[Variant]:
    if size > meta.width:
        return None
    outputs = resolved.size_outputs(size)

    alt_available = False
    if options.alt_format:
        if not outputs.alt_out_path.exists():
            backend.encode_alt_format(
                resolved.in_path, size, outputs.alt_out_path, options.alt_format_options
            )
        alt_available = True

    if outputs.out_path.exists():
        logger.debug("Reusing %s", outputs.out_path.name)
        produced = backend.read_metadata(outputs.out_path)
    else:
        produced = backend.derive_raster(resolved.in_path, size, outputs.out_path, options)
    return Variant(
        size=size,
        width=produced.width,
        height=produced.height,
        url=outputs.out_url,
        alt_available=alt_available,
    )


async def optimize_single(
    resolved: ResolvedPath,
    options: ImageOptions,
    backend: PillowBackend,
) -> str:
    """Inline small images, otherwise write one optimized copy.

    Returns the value that replaces the ``src`` attribute: a data URI or the
    URL of the optimized file.
    """
    byte_size = resolved.in_path.stat().st_size
    if options.inline_below and byte_size < options.inline_below:
        logger.debug("Inlining %s (%d bytes)", resolved.filename, byte_size)
        return await asyncio.to_thread(backend.inline_data_uri, resolved.in_path)

    resolved.out_dir.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(
        backend.write_optimized, resolved.in_path, resolved.out_path, options
    )
    return resolved.out_url
