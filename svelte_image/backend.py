"""Raster image backend built on Pillow."""

from __future__ import annotations

import base64
import io
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Tuple

from PIL import Image, UnidentifiedImageError

from .config import AltFormatOptions, ImageOptions
from .errors import BackendProcessingError
from .images import detect_mime_type
from .models import ImageMetadata
from .utils import write_bytes_atomic

logger = logging.getLogger("svelte_image.backend")

_RGB_ONLY_FORMATS = {"JPEG"}
_SAFE_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I"}


def scaled_size(size: Tuple[int, int], width: int) -> Tuple[int, int]:
    """Size for ``width`` pixels keeping the aspect ratio."""
    natural_width, natural_height = size
    scale = width / float(natural_width)
    return max(1, int(width)), max(1, int(round(natural_height * scale)))


class PillowBackend:
    """Reads, resizes and re-encodes images with Pillow."""

    def read_metadata(self, path: Path) -> ImageMetadata:
        try:
            with Image.open(path) as image:
                width, height = image.size
                fmt = image.format
        except (OSError, UnidentifiedImageError) as exc:
            raise BackendProcessingError(f"Cannot read image {path}: {exc}") from exc
        return ImageMetadata(
            width=width, height=height, byte_size=path.stat().st_size, format=fmt
        )

    def derive_raster(
        self, path: Path, width: int, dest: Path, options: ImageOptions
    ) -> ImageMetadata:
        """Resize ``path`` to ``width`` and re-encode it in its own format."""
        with self._open(path) as image:
            fmt = image.format or "PNG"
            resized = self._resize(image, width)
            data = self._encode(resized, fmt, _encoder_options(fmt, options))
        write_bytes_atomic(dest, data)
        logger.debug("Wrote %s (%dx%d)", dest, resized.width, resized.height)
        return ImageMetadata(
            width=resized.width, height=resized.height, byte_size=len(data), format=fmt
        )

    def encode_alt_format(
        self, path: Path, width: int, dest: Path, alt_options: AltFormatOptions
    ) -> Path:
        """Write a ``width`` pixel copy of ``path`` in the alternate format."""
        fmt = alt_options.format.upper()
        with self._open(path) as image:
            resized = self._resize(image, width)
            if resized.mode not in ("RGB", "RGBA"):
                resized = resized.convert("RGBA")
            params: Dict[str, Any] = {"quality": alt_options.quality}
            if fmt == "WEBP":
                params["lossless"] = alt_options.lossless
            data = self._encode(resized, fmt, params)
        write_bytes_atomic(dest, data)
        return dest

    def write_optimized(self, path: Path, dest: Path, options: ImageOptions) -> Path:
        """Re-encode ``path`` at its natural size."""
        with self._open(path) as image:
            fmt = image.format or "PNG"
            params = _encoder_options(fmt, options)
            if fmt == "WEBP":
                params["lossless"] = True
            data = self._encode(image, fmt, params)
        write_bytes_atomic(dest, data)
        return dest

    def inline_data_uri(self, path: Path) -> str:
        """Embed the file's bytes as a data URI."""
        data = path.read_bytes()
        mime = detect_mime_type(data) or mimetypes.guess_type(path.name)[0]
        if not mime:
            raise BackendProcessingError(f"Cannot determine the image type of {path}")
        return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"

    def placeholder_data_uri(self, path: Path, width: int) -> str:
        """Low resolution PNG rendition used as a blurred placeholder."""
        with self._open(path) as image:
            small = self._resize(image, min(width, image.width))
            if small.mode not in _SAFE_PNG_MODES:
                small = small.convert("RGBA")
            data = self._encode(small, "PNG", {})
        return "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    def grayscale(self, path: Path, width: int) -> Image.Image:
        """Grayscale copy of ``path`` resized to ``width``, for tracing."""
        with self._open(path) as image:
            if image.mode in ("RGBA", "LA", "P"):
                # Transparent areas trace as background.
                rgba = image.convert("RGBA")
                flattened = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
                flattened.alpha_composite(rgba)
                image = flattened
            return self._resize(image, width).convert("L")

    def _open(self, path: Path) -> Image.Image:
        try:
            image = Image.open(path)
            image.load()
        except (OSError, UnidentifiedImageError) as exc:
            raise BackendProcessingError(f"Cannot read image {path}: {exc}") from exc
        return image

    def _resize(self, image: Image.Image, width: int) -> Image.Image:
        if width == image.width:
            return image.copy()
        return image.resize(scaled_size(image.size, width), Image.Resampling.LANCZOS)

    def _encode(self, image: Image.Image, fmt: str, params: Dict[str, Any]) -> bytes:
        if fmt in _RGB_ONLY_FORMATS and image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        try:
            image.save(buffer, format=fmt, **params)
        except (OSError, KeyError, ValueError) as exc:
            raise BackendProcessingError(f"Cannot encode image as {fmt}: {exc}") from exc
        return buffer.getvalue()


def _encoder_options(fmt: str, options: ImageOptions) -> Dict[str, Any]:
    fmt = fmt.upper()
    if fmt == "JPEG":
        return {"quality": options.quality, "optimize": True, "progressive": False}
    if fmt == "PNG":
        return {"compress_level": options.compression_level}
    if fmt == "WEBP":
        return {"quality": options.quality}
    return {}
