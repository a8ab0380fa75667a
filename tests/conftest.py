"""Shared fixtures for the rewrite engine tests."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import pytest
from PIL import Image

from svelte_image.config import ImageOptions


@dataclass
class Project:
    root: Path
    source_dir: Path
    public_dir: Path

    @property
    def output_dir(self) -> Path:
        return self.public_dir / "g"


class FakePlaceholder:
    """Placeholder strategy that records calls instead of tracing."""

    def __init__(self, value: str = "data:placeholder") -> None:
        self.value = value
        self.rendered = []

    def render(self, path: Path) -> str:
        self.rendered.append(path)
        return self.value


def make_image(
    path: Path,
    size: Tuple[int, int] = (1000, 500),
    fmt: str = "JPEG",
    color=(200, 40, 40),
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = tuple(color) + ((255,) if mode == "RGBA" else ())
    Image.new(mode, size, fill).save(path, format=fmt)
    return path


def png_bytes(size: Tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (0, 128, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def project(tmp_path: Path) -> Project:
    source_dir = tmp_path / "src"
    public_dir = tmp_path / "static"
    source_dir.mkdir()
    public_dir.mkdir()
    return Project(root=tmp_path, source_dir=source_dir, public_dir=public_dir)


@pytest.fixture()
def options(project: Project) -> ImageOptions:
    """Default options rooted in the temporary project."""

    return ImageOptions(
        source_dir=str(project.source_dir),
        public_dir=str(project.public_dir),
        placeholder="blur",
    )
