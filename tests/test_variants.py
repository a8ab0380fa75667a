"""Variant generation and single-file optimization tests."""

from __future__ import annotations

import asyncio
import base64
from unittest.mock import Mock

from PIL import Image

from conftest import make_image, png_bytes
from svelte_image.backend import PillowBackend, scaled_size
from svelte_image.paths import build_resolved_path
from svelte_image.variants import candidate_sizes, generate_variants, optimize_single


def test_candidate_sizes_never_upscale():
    assert candidate_sizes((400, 800, 1200), 1000) == [400, 800]
    assert candidate_sizes((400, 800, 1200), 1200) == [400, 800, 1200]
    assert candidate_sizes((400, 800, 1200), 300) == [300]
    assert candidate_sizes((), 640) == [640]


def test_scaled_size_keeps_aspect_ratio():
    assert scaled_size((1000, 500), 400) == (400, 200)
    assert scaled_size((3, 1000), 1) == (1, 333)
    assert scaled_size((1000, 1), 10) == (10, 1)


def test_generate_variants_writes_each_size(project, options):
    source = make_image(project.source_dir / "photo.jpg", size=(1000, 500))
    resolved = build_resolved_path(source, options)

    variants = asyncio.run(generate_variants(resolved, options, PillowBackend()))

    assert [v.size for v in variants] == [400, 800]
    assert [(v.width, v.height) for v in variants] == [(400, 200), (800, 400)]
    assert [v.url for v in variants] == ["g/photo-400.jpg", "g/photo-800.jpg"]
    assert all(v.alt_available for v in variants)
    for name, width in (("photo-400", 400), ("photo-800", 800)):
        with Image.open(project.output_dir / f"{name}.jpg") as image:
            assert image.size[0] == width
            assert image.format == "JPEG"
        with Image.open(project.output_dir / f"{name}.webp") as image:
            assert image.format == "WEBP"
    assert not (project.output_dir / "photo-1200.jpg").exists()


def test_small_image_gets_single_natural_width_variant(project, options):
    source = make_image(project.source_dir / "small.jpg", size=(300, 200))
    resolved = build_resolved_path(source, options)

    variants = asyncio.run(generate_variants(resolved, options, PillowBackend()))

    assert [(v.size, v.width, v.height, v.url) for v in variants] == [
        (300, 300, 200, "g/small-300.jpg")
    ]


def test_alt_format_can_be_disabled(project, options):
    options = options.with_overrides(alt_format=False)
    source = make_image(project.source_dir / "photo.png", size=(500, 500), fmt="PNG")
    resolved = build_resolved_path(source, options)

    variants = asyncio.run(generate_variants(resolved, options, PillowBackend()))

    assert [v.url for v in variants] == ["g/photo-400.png"]
    assert not variants[0].alt_available
    assert not list(project.output_dir.glob("*.webp"))


def test_existing_outputs_are_reused(project, options):
    source = make_image(project.source_dir / "photo.jpg", size=(1000, 500))
    resolved = build_resolved_path(source, options)
    asyncio.run(generate_variants(resolved, options, PillowBackend()))

    backend = Mock(wraps=PillowBackend())
    variants = asyncio.run(generate_variants(resolved, options, backend))

    assert [(v.width, v.height) for v in variants] == [(400, 200), (800, 400)]
    backend.derive_raster.assert_not_called()
    backend.encode_alt_format.assert_not_called()


def test_small_file_is_inlined(project, options):
    data = png_bytes((16, 16))
    padded = data + b"\0" * (9999 - len(data))
    source = project.source_dir / "icon.png"
    source.write_bytes(padded)
    resolved = build_resolved_path(source, options)

    uri = asyncio.run(optimize_single(resolved, options, PillowBackend()))

    prefix = "data:image/png;base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix) :]) == padded
    assert not project.output_dir.exists()


def test_file_at_threshold_is_written(project, options):
    data = png_bytes((16, 16))
    source = project.source_dir / "icon.png"
    source.write_bytes(data + b"\0" * (10000 - len(data)))
    resolved = build_resolved_path(source, options)

    uri = asyncio.run(optimize_single(resolved, options, PillowBackend()))

    assert uri == "g/icon.png"
    with Image.open(project.output_dir / "icon.png") as image:
        assert image.size == (16, 16)


def test_inlining_disabled(project, options):
    options = options.with_overrides(inline_below=0)
    source = make_image(project.source_dir / "photo.jpg", size=(40, 20))
    resolved = build_resolved_path(source, options)

    uri = asyncio.run(optimize_single(resolved, options, PillowBackend()))

    assert uri == "g/photo.jpg"
    assert (project.output_dir / "photo.jpg").is_file()
