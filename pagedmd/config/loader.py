"""Load ``manifest.yaml`` into typed dataclasses."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from pagedmd._constants import (
    DEFAULT_PAGE_MARGIN,
    DEFAULT_PAGE_SIZE,
    MANIFEST_FILENAME,
)
from pagedmd.plugins.builtins import available_builtins

from .helpers import _IssueCollector
from .models import (
    DocumentMetadata,
    ManifestConfig,
    ManifestError,
    ManifestValidationError,
    PageFormat,
    PageMargins,
    PluginEntry,
)

logger = logging.getLogger(__name__)

MARGIN_EDGES = ("top", "bottom", "inside", "outside")


def load_manifest(project_dir: Path) -> ManifestConfig | None:
    """Load and validate the manifest stored in ``project_dir``.

    Parameters
    ----------
    project_dir : Path
        Directory expected to contain ``manifest.yaml``.

    Returns
    -------
    ManifestConfig or None
        Validated manifest, or ``None`` when the directory has no manifest
        (callers then fall back to defaults).

    Raises
    ------
    ManifestError
        If the file cannot be parsed or its top level is not a mapping.
    ManifestValidationError
        If any field violates the schema; every violation is listed.

    Examples
    --------
    >>> from pathlib import Path
    >>> from pagedmd.config import load_manifest
    >>> manifest = load_manifest(Path("book"))  # doctest: +SKIP
    >>> manifest.title  # doctest: +SKIP
    'The Field Guide'
    """
    path = project_dir / MANIFEST_FILENAME
    if not path.is_file():
        logger.debug("no %s in %s; using defaults", MANIFEST_FILENAME, project_dir)
        return None

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle)
    except YAMLError as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ManifestError(msg) from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        msg = f"Top-level YAML structure of {path} must be a mapping."
        raise ManifestError(msg)
    return validate_manifest(dict(loaded), path)


def validate_manifest(raw: typ.Mapping[str, typ.Any], path: Path) -> ManifestConfig:
    """Validate a parsed manifest mapping, collecting every field issue."""
    issues = _IssueCollector()
    title = issues.required_str(raw, "title")
    authors = issues.string_list(raw.get("authors"), "authors", min_items=1)
    description = issues.optional_str(raw, "description", "description")

    page = _build_page_format(raw.get("page"), issues)

    styles = issues.string_list(raw.get("styles", []), "styles", relative_paths=True)
    files = None
    if raw.get("files") is not None:
        files = issues.string_list(raw["files"], "files", relative_paths=True)

    plugins: list[PluginEntry] = []
    raw_plugins = raw.get("plugins")
    if raw_plugins is not None:
        if isinstance(raw_plugins, list):
            for index, entry in enumerate(raw_plugins):
                parsed = issues.plugin_entry(entry, f"plugins.{index}")
                if parsed is not None:
                    plugins.append(parsed)
        else:
            issues.add("plugins", "must be a list")

    extensions = _build_extensions(raw.get("extensions"), issues)
    disable_default_styles = issues.optional_bool(
        raw, "disableDefaultStyles", "disableDefaultStyles", default=False
    )
    metadata = _build_metadata(raw.get("metadata"), issues)

    if issues.issues:
        raise ManifestValidationError(path, issues.issues)
    return ManifestConfig(
        path=path,
        title=title,
        authors=authors,
        description=description,
        page=page,
        styles=styles,
        files=files,
        plugins=plugins,
        extensions=extensions,
        disable_default_styles=disable_default_styles,
        metadata=metadata,
    )


def _build_page_format(raw: object, issues: _IssueCollector) -> PageFormat | None:
    match raw:
        case None:
            return None
        case dict():
            pass
        case _:
            issues.add("page", "must be a mapping")
            return None
    size = issues.optional_str(raw, "size", "page.size") or DEFAULT_PAGE_SIZE
    bleed = issues.optional_str(raw, "bleed", "page.bleed")
    margins_raw = raw.get("margins")
    margins = PageMargins()
    if isinstance(margins_raw, dict):
        edges = {}
        for edge in MARGIN_EDGES:
            value = issues.optional_str(margins_raw, edge, f"page.margins.{edge}")
            if value is None:
                issues.add(f"page.margins.{edge}", "is required")
            edges[edge] = value or DEFAULT_PAGE_MARGIN
        margins = PageMargins(**edges)
    elif margins_raw is not None:
        issues.add("page.margins", "must be a mapping")
    return PageFormat(size=size, margins=margins, bleed=bleed)


def _build_extensions(raw: object, issues: _IssueCollector) -> list[str]:
    if raw is None:
        return []
    known = available_builtins()
    names = issues.string_list(raw, "extensions")
    for index, name in enumerate(names):
        if name not in known:
            issues.add(f"extensions.{index}", f"must be one of {', '.join(known)}")
    return [name for name in names if name in known]


def _build_metadata(raw: object, issues: _IssueCollector) -> DocumentMetadata | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        issues.add("metadata", "must be a mapping")
        return None
    return DocumentMetadata(
        author=issues.optional_str(raw, "author", "metadata.author"),
        date=_date_text(raw.get("date"))
        or issues.optional_str(raw, "date", "metadata.date"),
        isbn=issues.optional_str(raw, "isbn", "metadata.isbn"),
    )


def _date_text(value: object) -> str | None:
    """Return ISO text for YAML timestamps, which the safe loader parses to dates."""
    isoformat = getattr(value, "isoformat", None)
    return isoformat() if callable(isoformat) else None


__all__ = ["load_manifest", "validate_manifest"]
