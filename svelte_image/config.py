"""Configuration objects and defaults for the image rewriter."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

PLACEHOLDER_STRATEGIES = ("trace", "blur")


@dataclass(frozen=True)
class AltFormatOptions:
    """Encoder settings for the alternate compact format."""

    format: str = "webp"
    quality: int = 75
    lossless: bool = False

    @property
    def extension(self) -> str:
        return self.format.lower()


@dataclass(frozen=True)
class TraceOptions:
    """Settings for the traced SVG placeholder."""

    background: str = "#fff"
    color: str = "#002fa7"
    threshold: int = 120
    size: int = 500
    turd_size: int = 2


@dataclass(frozen=True)
class ImageOptions:
    """Immutable settings shared by every rewrite call."""

    optimize_all: bool = True
    img_tag_extensions: Tuple[str, ...] = ("jpg", "jpeg", "png")
    component_extensions: Tuple[str, ...] = ()
    inline_below: int = 10000
    compression_level: int = 8
    quality: int = 70
    tag_name: str = "Image"
    sizes: Tuple[int, ...] = (400, 800, 1200)
    breakpoints: Tuple[int, ...] = (375, 768, 1024)
    output_dir: str = "g/"
    public_dir: str = "./static/"
    source_dir: str = "./src/"
    placeholder: str = "trace"
    alt_format: bool = True
    alt_format_options: AltFormatOptions = field(default_factory=AltFormatOptions)
    trace_options: TraceOptions = field(default_factory=TraceOptions)
    optimize_remote: bool = True
    remote_timeout: float = 15.0
    download_dir: Optional[str] = None
    placeholder_width: int = 64

    def __post_init__(self) -> None:
        # Lists from JSON or keyword arguments are frozen into tuples.
        for name in ("img_tag_extensions", "component_extensions", "sizes", "breakpoints"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        if isinstance(self.alt_format_options, Mapping):
            object.__setattr__(
                self, "alt_format_options", _alt_format_options(self.alt_format_options)
            )
        if isinstance(self.trace_options, Mapping):
            object.__setattr__(self, "trace_options", _trace_options(self.trace_options))
        self._validate()

    def _validate(self) -> None:
        if self.placeholder not in PLACEHOLDER_STRATEGIES:
            raise ValueError(
                f"placeholder must be one of {', '.join(PLACEHOLDER_STRATEGIES)}, "
                f"got {self.placeholder!r}"
            )
        if any(size <= 0 for size in self.sizes):
            raise ValueError(f"sizes must be positive, got {list(self.sizes)}")
        if len(self.breakpoints) < len(self.sizes):
            raise ValueError(
                "every size needs a breakpoint "
                f"({len(self.sizes)} sizes, {len(self.breakpoints)} breakpoints)"
            )
        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 0-9, got {self.compression_level}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"quality must be 1-100, got {self.quality}")
        if not self.tag_name:
            raise ValueError("tag_name must not be empty")

    @property
    def output_root(self) -> Path:
        """Directory that receives generated files."""
        return (Path(self.public_dir) / self.output_dir).resolve()

    @property
    def url_prefix(self) -> str:
        return self.output_dir.replace("\\", "/").rstrip("/")

    @property
    def download_root(self) -> Path:
        return Path(self.download_dir or self.source_dir).resolve()

    def with_overrides(self, **overrides: Any) -> "ImageOptions":
        return replace(self, **overrides)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ImageOptions":
        """Build options from camelCase or snake_case keys."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown option: {key}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_mapping(self) -> Dict[str, Any]:
        """Return the options keyed the way configuration files spell them."""
        reverse = {name: alias for alias, name in _CANONICAL_ALIASES.items()}
        data = asdict(self)
        return {reverse.get(key, key): _jsonable(value) for key, value in data.items()}


_CANONICAL_ALIASES = {
    "optimizeAll": "optimize_all",
    "imgTagExtensions": "img_tag_extensions",
    "componentExtensions": "component_extensions",
    "inlineBelow": "inline_below",
    "compressionLevel": "compression_level",
    "quality": "quality",
    "tagName": "tag_name",
    "sizes": "sizes",
    "breakpoints": "breakpoints",
    "outputDir": "output_dir",
    "publicDir": "public_dir",
    "sourceDir": "source_dir",
    "placeholder": "placeholder",
    "altFormat": "alt_format",
    "altFormatOptions": "alt_format_options",
    "traceOptions": "trace_options",
    "optimizeRemote": "optimize_remote",
    "remoteTimeout": "remote_timeout",
    "downloadDir": "download_dir",
    "placeholderWidth": "placeholder_width",
}

_ALIASES = {
    **_CANONICAL_ALIASES,
    "webp": "alt_format",
    "webpOptions": "alt_format_options",
    "trace": "trace_options",
}


def _alt_format_options(data: Mapping[str, Any]) -> AltFormatOptions:
    values = dict(data)
    # "force" is accepted in option files and has no effect.
    values.pop("force", None)
    return AltFormatOptions(**values)


def _trace_options(data: Mapping[str, Any]) -> TraceOptions:
    values = dict(data)
    if "turdSize" in values:
        values["turd_size"] = values.pop("turdSize")
    return TraceOptions(**values)


def _jsonable(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value


def load_options(path: Optional[Path] = None, **overrides: Any) -> ImageOptions:
    """Read options from a JSON file, then apply keyword overrides."""
    data: Dict[str, Any] = {}
    if path is not None:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Options file {path} must contain a JSON object")
    options = ImageOptions.from_mapping(data)
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return options.with_overrides(**overrides) if overrides else options
