"""Data models used throughout the rewrite pipeline."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from .errors import SkipReason


class NodeKind(str, Enum):
    """Markup node kinds that may carry image references."""

    ELEMENT = "Element"
    FRAGMENT = "Fragment"
    INLINE_COMPONENT = "InlineComponent"


@dataclass(frozen=True)
class StaticValue:
    """Literal attribute text with its offsets in the original source."""

    text: str
    start: int
    end: int


@dataclass(frozen=True)
class DynamicValue:
    """Expression or shorthand attribute value; carries no literal data."""

    kind: str


AttributeValue = Union[StaticValue, DynamicValue]


@dataclass(frozen=True)
class Attribute:
    """A single attribute and the span it occupies in the original source."""

    name: str
    value: AttributeValue
    start: int
    end: int

    @property
    def is_dynamic(self) -> bool:
        return isinstance(self.value, DynamicValue)


@dataclass(frozen=True)
class Node:
    """Markup element, fragment, or component instance."""

    kind: NodeKind
    name: str
    attributes: Tuple[Attribute, ...] = ()
    children: Tuple["Node", ...] = ()
    start: int = 0
    end: int = 0

    def attribute(self, name: str) -> Optional[Attribute]:
        """Return the first attribute called ``name``, if present."""
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None


@dataclass(frozen=True)
class SourceDocument:
    """Immutable original text together with its parsed tree."""

    text: str
    root: Node


@dataclass(frozen=True)
class SizeOutputs:
    """Output locations for one target width."""

    out_path: Path
    out_url: str
    alt_out_path: Path


@dataclass(frozen=True)
class ResolvedPath:
    """A readable input image and where its derived files are written."""

    in_path: Path
    out_dir: Path
    url_prefix: str
    alt_extension: str = "webp"

    @property
    def filename(self) -> str:
        return self.in_path.name

    @property
    def out_path(self) -> Path:
        return self.out_dir / self.filename

    @property
    def out_url(self) -> str:
        return posixpath.join(self.url_prefix, self.filename)

    def size_outputs(self, size: int) -> SizeOutputs:
        """Deterministic names for the variant of ``size`` pixels."""
        stem = self.in_path.stem
        sized = f"{stem}-{size}{self.in_path.suffix}"
        return SizeOutputs(
            out_path=self.out_dir / sized,
            out_url=posixpath.join(self.url_prefix, sized),
            alt_out_path=self.out_dir / f"{stem}-{size}.{self.alt_extension}",
        )


@dataclass(frozen=True)
class Skip:
    """Terminal decision: leave the node untouched."""

    reason: SkipReason
    detail: str = ""

    def describe(self) -> str:
        return f"{self.reason}: {self.detail}" if self.detail else str(self.reason)


@dataclass(frozen=True)
class Process:
    """Terminal decision: optimize the resolved image."""

    resolved: ResolvedPath


ProcessingDecision = Union[Skip, Process]


@dataclass(frozen=True)
class ImageMetadata:
    """Natural dimensions and on-disk size of an image."""

    width: int
    height: int
    byte_size: int
    format: Optional[str] = None


@dataclass(frozen=True)
class Variant:
    """One resized rendition of a source image."""

    size: int
    width: int
    height: int
    url: str
    alt_available: bool = False


@dataclass(frozen=True)
class EditOperation:
    """Replace ``[start, end)`` of the original text with ``replacement``."""

    start: int
    end: int
    replacement: str


@dataclass
class OffsetAccumulator:
    """Running correction between original and materialized positions."""

    delta: int = 0
    applied: int = field(default=0, repr=False)

    def locate(self, edit: EditOperation) -> Tuple[int, int]:
        """Return where ``edit`` lands in the text as currently materialized."""
        return edit.start + self.delta, edit.end + self.delta

    def advance(self, edit: EditOperation) -> None:
        self.delta += len(edit.replacement) - (edit.end - edit.start)
        self.applied += 1
