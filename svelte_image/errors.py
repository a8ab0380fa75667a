"""Exceptions and skip reasons raised while rewriting image references."""

from __future__ import annotations

from enum import Enum


class SkipReason(str, Enum):
    """Why a candidate node was left untouched."""

    NOT_ELIGIBLE = "not eligible"
    DYNAMIC_VALUE = "dynamic value"
    BLANK_VALUE = "blank src"
    EXTENSION_REJECTED = "extension not allowed"
    EXTERNAL_DISABLED = "external, remote optimization disabled"
    REMOTE_FETCH_FAILED = "fetch failed"
    REMOTE_NOT_AN_IMAGE = "not an image"
    FILE_NOT_FOUND = "file not found"
    INLINE_DATA = "already inlined"
    BACKEND_FAILED = "backend processing failed"

    def __str__(self) -> str:
        return self.value


class ImageRewriteError(Exception):
    """Base class for errors raised by the rewrite engine."""


class RemoteFetchError(ImageRewriteError):
    """A remote image could not be downloaded."""


class BackendProcessingError(ImageRewriteError):
    """The raster or vector backend failed to produce an output."""


class DocumentParseError(ImageRewriteError):
    """The component markup could not be parsed."""


class EditConflictError(ImageRewriteError):
    """Edits were out of order, overlapping, or outside the source text."""
