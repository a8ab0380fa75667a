"""Command-line interface tests."""

from __future__ import annotations

import json

from conftest import make_image
from svelte_image.cli import _ensure_command_prefix, main


def _config(project, tmp_path, **extra):
    path = tmp_path / "images.json"
    data = {
        "sourceDir": str(project.source_dir),
        "publicDir": str(project.public_dir),
        "placeholder": "blur",
    }
    data.update(extra)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_prints_options(capsys):
    assert main(["defaults"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["tagName"] == "Image"
    assert data["breakpoints"] == [375, 768, 1024]


def test_command_prefix_defaults_to_rewrite():
    assert list(_ensure_command_prefix(["a.svelte"], ["rewrite", "defaults"])) == [
        "rewrite",
        "a.svelte",
    ]
    assert list(_ensure_command_prefix(["defaults"], ["rewrite", "defaults"])) == ["defaults"]
    assert list(_ensure_command_prefix(["--help"], ["rewrite", "defaults"])) == ["--help"]


def test_rewrite_in_place(project, tmp_path):
    make_image(project.source_dir / "photo.jpg", size=(1000, 500))
    component = project.source_dir / "App.svelte"
    component.write_text('<Image src="photo.jpg" alt="x" />\n', encoding="utf-8")

    code = main(["rewrite", str(component), "--config", str(_config(project, tmp_path)), "--in-place"])

    assert code == 0
    text = component.read_text(encoding="utf-8")
    assert text.startswith('<Image src="data:image/png;base64,')
    assert 'srcset="g/photo-400.jpg 375w,g/photo-800.jpg 768w" ratio="50%"' in text
    assert text.endswith(' alt="x" />\n')


def test_rewrite_to_stdout_without_subcommand(project, tmp_path, capsys):
    make_image(project.source_dir / "icon.png", size=(8, 8), fmt="PNG")
    component = project.source_dir / "App.svelte"
    original = '<img src="icon.png">\n'
    component.write_text(original, encoding="utf-8")

    code = main([str(component), "--config", str(_config(project, tmp_path))])

    assert code == 0
    assert capsys.readouterr().out.startswith('<img src="data:image/png;base64,')
    assert component.read_text(encoding="utf-8") == original


def test_missing_file_fails(project, tmp_path):
    config = _config(project, tmp_path)
    assert main(["rewrite", str(tmp_path / "nope.svelte"), "--config", str(config)]) == 1


def test_invalid_config_fails(project, tmp_path):
    component = project.source_dir / "App.svelte"
    component.write_text("<p></p>", encoding="utf-8")
    config = _config(project, tmp_path, quality=500)
    assert main(["rewrite", str(component), "--config", str(config)]) == 2
