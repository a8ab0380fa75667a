"""Render variant sets into attribute values."""

from __future__ import annotations

import posixpath
from typing import List, Sequence

from .models import Variant


def srcset(variants: Sequence[Variant], breakpoints: Sequence[int]) -> str:
    """``"<url> <breakpoint>w"`` entries paired by position."""
    return ",".join(_srcset_lines(variants, breakpoints))


def alt_srcset(
    variants: Sequence[Variant], breakpoints: Sequence[int], extension: str
) -> str:
    """Like :func:`srcset`, pointing at the alternate-format files."""
    lines = _srcset_lines(
        variants, breakpoints, transform=lambda url: swap_extension(url, extension)
    )
    return ",".join(lines)


def _srcset_lines(variants, breakpoints, transform=None) -> List[str]:
    if len(breakpoints) < len(variants):
        raise ValueError(
            f"{len(variants)} variants but only {len(breakpoints)} breakpoints"
        )
    lines = []
    for variant, breakpoint in zip(variants, breakpoints):
        url = variant.url.replace("\\", "/")
        if transform is not None:
            url = transform(url)
        lines.append(f"{url} {breakpoint}w")
    return lines


def swap_extension(url: str, extension: str) -> str:
    """Replace only the trailing file extension of ``url``."""
    head, tail = posixpath.split(url)
    stem, dot, _ = tail.rpartition(".")
    if not dot or not stem:
        stem = tail
    return posixpath.join(head, f"{stem}.{extension}")


def aspect_ratio(variant: Variant) -> float:
    """Height as a percentage of width."""
    return variant.height / variant.width * 100


def format_ratio(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value)}%"
    return f"{value!r}%"


def alt_attribute_name(extension: str) -> str:
    return "srcset" + extension[:1].upper() + extension[1:].lower()


def component_attributes(
    variants: Sequence[Variant],
    breakpoints: Sequence[int],
    alt_extension: str = "",
) -> str:
    """Attribute text inserted after an image component's ``src``."""
    parts = [
        f'srcset="{srcset(variants, breakpoints)}"',
        f'ratio="{format_ratio(aspect_ratio(variants[0]))}"',
    ]
    if alt_extension:
        name = alt_attribute_name(alt_extension)
        parts.append(f'{name}="{alt_srcset(variants, breakpoints, alt_extension)}"')
    return " " + " ".join(parts)
