"""Source resolution and staging tests."""

from __future__ import annotations

from pathlib import Path

from conftest import make_image
from svelte_image.errors import RemoteFetchError, SkipReason
from svelte_image.models import DynamicValue, Process, Skip, StaticValue
from svelte_image.paths import build_resolved_path, find_local_file, resolve_source


def _value(text: str) -> StaticValue:
    return StaticValue(text, 0, len(text))


def _no_download(url, folder, timeout):
    raise AssertionError(f"unexpected download of {url}")


def test_missing_and_blank_values_are_skipped(project, options):
    parent = project.source_dir
    assert resolve_source(None, parent, options).reason is SkipReason.BLANK_VALUE
    assert resolve_source(_value("   "), parent, options).reason is SkipReason.BLANK_VALUE


def test_dynamic_values_are_skipped(project, options):
    decision = resolve_source(DynamicValue("MustacheTag"), project.source_dir, options)
    assert isinstance(decision, Skip)
    assert decision.reason is SkipReason.DYNAMIC_VALUE
    assert decision.describe() == "dynamic value: MustacheTag"


def test_inline_data_is_skipped(project, options):
    decision = resolve_source(_value("data:image/png;base64,AAAA"), project.source_dir, options)
    assert decision.reason is SkipReason.INLINE_DATA


def test_extension_gate(project, options):
    make_image(project.source_dir / "anim.gif", fmt="GIF")
    decision = resolve_source(_value("anim.gif"), project.source_dir, options, ("jpg", "png"))
    assert decision.reason is SkipReason.EXTENSION_REJECTED


def test_missing_file(project, options):
    decision = resolve_source(_value("nowhere.jpg"), project.source_dir, options)
    assert decision.reason is SkipReason.FILE_NOT_FOUND
    assert not project.output_dir.exists()


def test_local_file_is_staged_into_output_dir(project, options):
    routes = project.source_dir / "routes"
    source = make_image(routes / "photo.jpg")

    decision = resolve_source(_value("photo.jpg"), routes, options)

    assert isinstance(decision, Process)
    resolved = decision.resolved
    assert resolved.in_path == source.resolve()
    assert resolved.out_path == project.output_dir.resolve() / "photo.jpg"
    assert resolved.out_url == "g/photo.jpg"
    assert resolved.out_path.read_bytes() == source.read_bytes()


def test_component_directory_wins_over_source_root(project, options):
    routes = project.source_dir / "routes"
    nearby = make_image(routes / "logo.png", size=(20, 20), fmt="PNG")
    make_image(project.source_dir / "logo.png", size=(40, 40), fmt="PNG")

    found = find_local_file("logo.png", routes, project.source_dir)

    assert found == nearby.resolve()


def test_rooted_path_resolves_under_source_root(project, options):
    expected = make_image(project.source_dir / "images" / "hero.jpg")
    found = find_local_file("/images/hero.jpg", project.source_dir / "routes", project.source_dir)
    assert found == expected.resolve()


def test_external_without_remote_optimization(project, options):
    options = options.with_overrides(optimize_remote=False)
    decision = resolve_source(
        _value("https://example.com/a.jpg"), project.source_dir, options, (), _no_download
    )
    assert decision.reason is SkipReason.EXTERNAL_DISABLED


def test_remote_download_is_staged(project, options):
    downloaded = make_image(project.root / "cache" / "0abc.jpg")
    calls = []

    def downloader(url, folder, timeout):
        calls.append((url, folder, timeout))
        return downloaded

    decision = resolve_source(
        _value("//cdn.example.com/pic.jpg"), project.source_dir, options, (), downloader
    )

    assert calls == [("//cdn.example.com/pic.jpg", options.download_root, options.remote_timeout)]
    assert isinstance(decision, Process)
    assert decision.resolved.in_path == downloaded
    assert (project.output_dir / "0abc.jpg").read_bytes() == downloaded.read_bytes()


def test_remote_failures_are_skips(project, options):
    def failing(url, folder, timeout):
        raise RemoteFetchError("connection refused")

    def not_an_image(url, folder, timeout):
        return None

    url = _value("https://example.com/a.jpg")
    assert (
        resolve_source(url, project.source_dir, options, (), failing).reason
        is SkipReason.REMOTE_FETCH_FAILED
    )
    assert (
        resolve_source(url, project.source_dir, options, (), not_an_image).reason
        is SkipReason.REMOTE_NOT_AN_IMAGE
    )


def test_size_outputs_are_deterministic(project, options):
    resolved = build_resolved_path(Path("/photos/sunset.beach.jpg"), options)
    outputs = resolved.size_outputs(400)

    assert outputs.out_url == "g/sunset.beach-400.jpg"
    assert outputs.out_path == options.output_root / "sunset.beach-400.jpg"
    assert outputs.alt_out_path == options.output_root / "sunset.beach-400.webp"
