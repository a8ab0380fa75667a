"""Placeholder strategies: blurred raster or traced, minified SVG."""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import List, Optional

import potrace
from PIL import Image
from scour import scour

from .backend import PillowBackend
from .config import ImageOptions, TraceOptions
from .errors import BackendProcessingError

logger = logging.getLogger("svelte_image.placeholders")

SVG_DATA_URI_PREFIX = "data:image/svg+xml;base64,"


class PotraceTracer:
    """Traces a thresholded bitmap into an SVG document."""

    def trace(self, image: Image.Image, options: TraceOptions) -> str:
        threshold = options.threshold
        # Dark pixels become the traced shape.
        bitmap = image.point(lambda value: 0 if value < threshold else 255)
        plist = potrace.Bitmap(bitmap).trace(turdsize=options.turd_size)
        width, height = image.size
        return (
            '<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
            f'<rect x="0" y="0" width="100%" height="100%" fill="{options.background}"/>'
            f'<path stroke="none" fill="{options.color}" fill-rule="evenodd" '
            f'd="{path_data(plist)}"/>'
            "</svg>"
        )


def path_data(plist) -> str:
    """Render potrace curves as SVG path commands."""
    parts: List[str] = []
    for curve in plist:
        start = curve.start_point
        parts.append(f"M{start.x},{start.y}")
        for segment in curve.segments:
            if segment.is_corner:
                corner, end = segment.c, segment.end_point
                parts.append(f"L{corner.x},{corner.y}L{end.x},{end.y}")
            else:
                c1, c2, end = segment.c1, segment.c2, segment.end_point
                parts.append(f"C{c1.x},{c1.y} {c2.x},{c2.y} {end.x},{end.y}")
        parts.append("z")
    return "".join(parts)


class ScourMinifier:
    """Shrinks SVG markup with scour."""

    def __init__(self, precision: int = 3) -> None:
        self.precision = precision

    def minify(self, svg: str) -> str:
        options = scour.sanitizeOptions()
        options.digits = self.precision
        options.strip_xml_prolog = True
        options.strip_comments = True
        options.remove_metadata = True
        options.shorten_ids = True
        options.indent_type = "none"
        options.newlines = False
        return scour.scourString(svg, options)


class BlurPlaceholder:
    """Tiny PNG rendition embedded as a data URI."""

    def __init__(self, backend: PillowBackend, width: int = 64) -> None:
        self.backend = backend
        self.width = width

    def render(self, path: Path) -> str:
        return self.backend.placeholder_data_uri(path, self.width)


class TracePlaceholder:
    """Traced silhouette, minified and embedded as an SVG data URI."""

    def __init__(
        self,
        backend: PillowBackend,
        options: TraceOptions,
        tracer: Optional[PotraceTracer] = None,
        minifier: Optional[ScourMinifier] = None,
    ) -> None:
        self.backend = backend
        self.options = options
        self.tracer = tracer or PotraceTracer()
        self.minifier = minifier or ScourMinifier()

    def render(self, path: Path) -> str:
        image = self.backend.grayscale(path, self.options.size)
        try:
            svg = self.tracer.trace(image, self.options)
            svg = self.minifier.minify(svg)
        except BackendProcessingError:
            raise
        except Exception as exc:  # noqa: BLE001 - third-party tracer failures
            raise BackendProcessingError(f"Cannot trace {path}: {exc}") from exc
        encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
        return SVG_DATA_URI_PREFIX + encoded


def build_placeholder(options: ImageOptions, backend: PillowBackend):
    """Pick the placeholder strategy named by ``options.placeholder``."""
    if options.placeholder == "blur":
        return BlurPlaceholder(backend, options.placeholder_width)
    logger.debug("Using traced placeholders (threshold=%d)", options.trace_options.threshold)
    return TracePlaceholder(backend, options.trace_options)
