from __future__ import annotations

from pathlib import Path

import pytest

from pagedmd.config import (
    ManifestError,
    ManifestValidationError,
    load_manifest,
    validate_manifest,
)


def _write_manifest(tmp_path: Path, body: str) -> Path:
    (tmp_path / "manifest.yaml").write_text(body.strip() + "\n", encoding="utf-8")
    return tmp_path


def _issue_fields(error: ManifestValidationError) -> list[str]:
    return [issue.field for issue in error.issues]


def test_missing_manifest_returns_none(tmp_path: Path) -> None:
    assert load_manifest(tmp_path) is None


def test_loads_full_manifest(tmp_path: Path) -> None:
    project = _write_manifest(
        tmp_path,
        """
title: The Field Guide
authors:
  - Ada
  - Grace
description: A guide to the field
page:
  size: A5
  bleed: 3mm
  margins:
    top: 1in
    bottom: 1in
    inside: 0.8in
    outside: 0.6in
styles:
  - styles/book.css
files:
  - intro.md
  - chapters/one.md
plugins:
  - ttrpg
  - path: ./plugins/glossary.py
    priority: 200
    options:
      strict_terms: true
extensions:
  - containers
disableDefaultStyles: true
metadata:
  author: Ada
  date: 2024-03-01
  isbn: 978-3-16-148410-0
""",
    )

    manifest = load_manifest(project)

    assert manifest is not None
    assert manifest.title == "The Field Guide"
    assert manifest.authors == ["Ada", "Grace"]
    assert manifest.page is not None
    assert manifest.page.size == "A5"
    assert manifest.page.bleed == "3mm"
    assert manifest.page.margins.inside == "0.8in"
    assert manifest.styles == ["styles/book.css"]
    assert manifest.files == ["intro.md", "chapters/one.md"]
    assert manifest.plugins[0] == "ttrpg"
    assert manifest.plugins[1]["priority"] == 200
    assert manifest.extensions == ["containers"]
    assert manifest.disable_default_styles is True
    assert manifest.metadata is not None
    assert manifest.metadata.date == "2024-03-01"
    assert manifest.metadata.isbn == "978-3-16-148410-0"


def test_files_absent_means_discovery(tmp_path: Path) -> None:
    project = _write_manifest(tmp_path, "title: T\nauthors: [A]")

    manifest = load_manifest(project)

    assert manifest is not None
    assert manifest.files is None
    assert manifest.page is None


def test_reports_every_violated_field(tmp_path: Path) -> None:
    project = _write_manifest(
        tmp_path,
        """
authors: []
styles:
  - ../outside.css
files: not-a-list
disableDefaultStyles: "yes"
""",
    )

    with pytest.raises(ManifestValidationError) as excinfo:
        load_manifest(project)

    fields = _issue_fields(excinfo.value)
    assert "title" in fields
    assert "authors" in fields
    assert "styles.0" in fields
    assert "files" in fields
    assert "disableDefaultStyles" in fields
    assert str(excinfo.value).startswith("Invalid manifest.yaml:")


def test_partial_margins_are_rejected(tmp_path: Path) -> None:
    raw = {
        "title": "T",
        "authors": ["A"],
        "page": {"margins": {"top": "1in", "bottom": "1in"}},
    }

    with pytest.raises(ManifestValidationError) as excinfo:
        validate_manifest(raw, tmp_path / "manifest.yaml")

    assert _issue_fields(excinfo.value) == [
        "page.margins.inside",
        "page.margins.outside",
    ]


@pytest.mark.parametrize(
    ("entry", "field"),
    [
        ({"type": "marketplace", "name": "x"}, "plugins.0.type"),
        ({"path": "../escape.py"}, "plugins.0.path"),
        ({"url": "ftp://cdn.example/p.py"}, "plugins.0.url"),
        ({"name": "ttrpg", "priority": 5000}, "plugins.0.priority"),
        ({"name": "ttrpg", "priority": True}, "plugins.0.priority"),
        ({"name": "ttrpg", "enabled": "no"}, "plugins.0.enabled"),
        ({"name": "ttrpg", "options": ["a"]}, "plugins.0.options"),
        ({"priority": 10}, "plugins.0"),
        ({"name": "ttrpg", "colour": "red"}, "plugins.0"),
        ("../escape.py", "plugins.0"),
        ("/opt/plugins/evil.py", "plugins.0"),
    ],
)
def test_invalid_plugin_entries(
    tmp_path: Path, entry: object, field: str
) -> None:
    raw = {"title": "T", "authors": ["A"], "plugins": [entry]}

    with pytest.raises(ManifestValidationError) as excinfo:
        validate_manifest(raw, tmp_path / "manifest.yaml")

    assert field in _issue_fields(excinfo.value)


def test_unknown_legacy_extension_is_rejected(tmp_path: Path) -> None:
    raw = {"title": "T", "authors": ["A"], "extensions": ["ttrpg", "nope"]}

    with pytest.raises(ManifestValidationError) as excinfo:
        validate_manifest(raw, tmp_path / "manifest.yaml")

    assert _issue_fields(excinfo.value) == ["extensions.1"]


def test_unparseable_yaml_raises_manifest_error(tmp_path: Path) -> None:
    project = _write_manifest(tmp_path, "title: [unclosed")

    with pytest.raises(ManifestError, match="Failed to parse"):
        load_manifest(project)


def test_non_mapping_manifest_raises(tmp_path: Path) -> None:
    project = _write_manifest(tmp_path, "- just\n- a list")

    with pytest.raises(ManifestError, match="must be a mapping"):
        load_manifest(project)
