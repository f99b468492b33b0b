"""End-to-end tests for the build pipeline and the HTML artifact it writes.

The artifact is parsed with BeautifulSoup and the JSON sidecar decoded into
typed msgspec structs, so assertions read against the document's structure
rather than raw text.
"""

from __future__ import annotations

from pathlib import Path

import msgspec
import msgspec.json as msgspec_json
import pytest
from bs4 import BeautifulSoup

from pagedmd import BuildOptions, build_document, run_build
from pagedmd._constants import BUILD_META_FILENAME
from pagedmd.artifact import ArtifactWriter
from pagedmd.config import ManifestValidationError
from pagedmd.plugins import PluginConfigError


class StyleEntry(msgspec.Struct):
    tier: str
    label: str


class BuildMeta(msgspec.Struct):
    title: str
    sections: list[str]
    styles: list[StyleEntry]
    plugins: list[str]
    warnings: list[str]
    generated_at: str


def _project(tmp_path: Path, manifest: str | None = None) -> Path:
    project = tmp_path / "book"
    project.mkdir()
    if manifest is not None:
        (project / "manifest.yaml").write_text(
            manifest.strip() + "\n", encoding="utf-8"
        )
    (project / "a.md").write_text("# Alpha\n\nRoll 1d6.\n", encoding="utf-8")
    (project / "b.md").write_text("# Beta\n", encoding="utf-8")
    return project


def _soup(path: Path) -> BeautifulSoup:
    return BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")


def _meta(path: Path) -> BuildMeta:
    raw = (path.parent / BUILD_META_FILENAME).read_bytes()
    return msgspec_json.decode(raw, type=BuildMeta)


MANIFEST = """
title: The Field Guide
authors: [Ada, Grace]
description: Notes from the field
files: [b.md, a.md]
plugins:
  - name: ttrpg
    priority: 200
styles: [custom.css]
page:
  size: A5
  bleed: 3mm
  margins: {top: 1in, bottom: 1.2in, inside: 0.9in, outside: 0.6in}
metadata:
  isbn: 978-3-16-148410-0
"""


def test_build_writes_default_artifact(tmp_path: Path) -> None:
    project = _project(tmp_path, MANIFEST)
    (project / "custom.css").write_text(".custom { color: navy; }\n", encoding="utf-8")

    result = run_build(BuildOptions(input=project))

    assert result.output_path == project / "build" / "index.html"
    soup = _soup(result.output_path)
    assert soup.title.text == "The Field Guide"
    assert [tag["content"] for tag in soup.select('meta[name="author"]')] == [
        "Ada",
        "Grace",
    ]
    assert soup.select_one('meta[name="description"]')["content"] == (
        "Notes from the field"
    )
    assert [article["id"] for article in soup.select("article")] == ["b", "a"]
    assert soup.select_one("article#a .dice-notation") is not None

    tiers = [style["data-pagedmd-tier"] for style in soup.select("style")]
    assert tiers == ["page", "foundation", "foundation", "plugin", "custom"]
    page_css = soup.select_one('style[data-pagedmd-tier="page"]').text
    assert "size: A5;" in page_css
    assert "bleed: 3mm;" in page_css
    assert "--page-margin-inside: 0.9in;" in page_css
    isbn = soup.select_one('meta[name="dcterms.identifier"]')
    assert isbn["content"] == "urn:isbn:978-3-16-148410-0"


def test_build_writes_metadata_sidecar(tmp_path: Path) -> None:
    project = _project(tmp_path, MANIFEST)
    (project / "custom.css").write_text(".custom {}\n", encoding="utf-8")

    result = run_build(BuildOptions(input=project))

    meta = _meta(result.output_path)
    assert meta.title == "The Field Guide"
    assert meta.sections == ["b", "a"]
    assert meta.plugins == ["ttrpg"]
    assert [style.tier for style in meta.styles] == [
        "foundation",
        "foundation",
        "plugin",
        "custom",
    ]
    assert meta.styles[2].label == "ttrpg (priority 200)"
    assert meta.warnings == []


def test_build_without_manifest_uses_defaults(tmp_path: Path) -> None:
    project = _project(tmp_path)
    output = tmp_path / "out" / "doc.html"

    result = run_build(BuildOptions(input=project, output=output, title="CLI"))

    assert result.output_path == output
    soup = _soup(output)
    assert soup.title.text == "CLI"
    assert [article["id"] for article in soup.select("article")] == ["a", "b"]


def test_rebuild_replaces_own_artifact(tmp_path: Path) -> None:
    project = _project(tmp_path)
    run_build(BuildOptions(input=project))
    (project / "c.md").write_text("# Gamma\n", encoding="utf-8")

    result = run_build(BuildOptions(input=project))

    assert result.document.slugs == ["a", "b", "c"]


def test_foreign_output_needs_force(tmp_path: Path) -> None:
    project = _project(tmp_path)
    output = tmp_path / "hand-made.html"
    output.write_text("<p>keep me</p>\n", encoding="utf-8")

    with pytest.raises(FileExistsError, match="--force"):
        run_build(BuildOptions(input=project, output=output))
    assert output.read_text(encoding="utf-8") == "<p>keep me</p>\n"

    run_build(BuildOptions(input=project, output=output, force=True))
    assert "<article" in output.read_text(encoding="utf-8")


def test_failed_build_leaves_previous_artifact(tmp_path: Path) -> None:
    project = _project(tmp_path)
    first = run_build(BuildOptions(input=project))
    before = first.output_path.read_text(encoding="utf-8")
    (project / "manifest.yaml").write_text("title: T\n", encoding="utf-8")

    with pytest.raises(ManifestValidationError):
        run_build(BuildOptions(input=project))

    assert first.output_path.read_text(encoding="utf-8") == before


def test_unknown_builtin_aborts_the_build(tmp_path: Path) -> None:
    project = _project(
        tmp_path,
        """
title: T
authors: [A]
plugins:
  - type: builtin
    name: ttrpg-typo
""",
    )

    with pytest.raises(PluginConfigError, match="ttrpg-typo"):
        build_document(project)


def test_single_markdown_file_input(tmp_path: Path) -> None:
    project = _project(tmp_path, MANIFEST)
    (project / "custom.css").write_text(".custom {}\n", encoding="utf-8")

    result = run_build(BuildOptions(input=project / "a.md"))

    assert result.output_path == project / "build" / "index.html"
    soup = _soup(result.output_path)
    assert soup.title.text == "The Field Guide"
    assert [article["id"] for article in soup.select("article")] == ["a"]
    assert soup.select_one("article#a .dice-notation") is not None
    assert _meta(result.output_path).sections == ["a"]


def test_non_markdown_file_input_is_rejected(tmp_path: Path) -> None:
    project = _project(tmp_path)
    notes = project / "notes.txt"
    notes.write_text("plain\n", encoding="utf-8")

    with pytest.raises(FileNotFoundError, match="not a markdown file"):
        build_document(notes)


def test_missing_source_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="not found"):
        build_document(tmp_path / "nowhere")


def test_writer_escapes_metadata(tmp_path: Path) -> None:
    project = _project(tmp_path)
    document = build_document(project, BuildOptions(title='Fish & "Chips"'))

    output = ArtifactWriter().write(document, tmp_path / "escaped.html")

    html = output.read_text(encoding="utf-8")
    assert "<title>Fish &amp; &#34;Chips&#34;</title>" in html
    assert _soup(output).title.text == 'Fish & "Chips"'
