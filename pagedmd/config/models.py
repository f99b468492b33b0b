"""Typed dataclasses describing manifests, CLI options and resolved configuration."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path  # noqa: TC003 - used for runtime type metadata

from pagedmd._constants import (
    DEFAULT_FORMAT,
    DEFAULT_PAGE_MARGIN,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TITLE,
)

if typ.TYPE_CHECKING:
    from pagedmd.plugins.models import PluginSpec

PluginEntry = str | dict[str, typ.Any]


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or describes an invalid build."""


@dc.dataclass(frozen=True, slots=True)
class ManifestIssue:
    """A single field-level manifest violation."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ManifestValidationError(ManifestError):
    """Raised when one or more manifest fields fail validation.

    ``issues`` lists every violation found; the message renders them one per
    line so a single run reports everything that needs fixing.
    """

    def __init__(self, path: Path, issues: typ.Sequence[ManifestIssue]) -> None:
        self.path = path
        self.issues = tuple(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"Invalid {path.name}:\n{lines}")


@dc.dataclass(frozen=True, slots=True)
class PageMargins:
    """Page margins as CSS lengths, using book-style inside/outside edges."""

    top: str = DEFAULT_PAGE_MARGIN
    bottom: str = DEFAULT_PAGE_MARGIN
    inside: str = DEFAULT_PAGE_MARGIN
    outside: str = DEFAULT_PAGE_MARGIN


@dc.dataclass(frozen=True, slots=True)
class PageFormat:
    """Physical page geometry emitted as CSS custom properties."""

    size: str = DEFAULT_PAGE_SIZE
    margins: PageMargins = dc.field(default_factory=PageMargins)
    bleed: str | None = None


@dc.dataclass(frozen=True, slots=True)
class DocumentMetadata:
    """Optional bibliographic fields rendered as ``<meta>`` tags."""

    author: str | None = None
    date: str | None = None
    isbn: str | None = None


@dc.dataclass(slots=True)
class ManifestConfig:
    """A validated ``manifest.yaml``.

    Plugin entries stay in their declared form here; they become
    :class:`~pagedmd.plugins.models.PluginSpec` values during resolution.
    """

    path: Path
    title: str
    authors: list[str]
    description: str | None = None
    page: PageFormat | None = None
    styles: list[str] = dc.field(default_factory=list)
    files: list[str] | None = None
    plugins: list[PluginEntry] = dc.field(default_factory=list)
    extensions: list[str] = dc.field(default_factory=list)
    disable_default_styles: bool = False
    metadata: DocumentMetadata | None = None


@dc.dataclass(slots=True)
class BuildOptions:
    """Options supplied on the command line.

    Every field defaults to ``None``, meaning "not supplied"; the resolver only
    lets supplied values override the manifest.
    """

    input: Path | None = None
    output: Path | None = None
    format: str | None = None
    timeout: float | None = None
    verbose: bool | None = None
    debug: bool | None = None
    force: bool | None = None
    strict: bool | None = None
    title: str | None = None
    authors: list[str] | None = None
    description: str | None = None
    styles: list[str] | None = None
    files: list[str] | None = None
    disable_default_styles: bool | None = None


@dc.dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Fully defaulted, immutable configuration for one build pass."""

    title: str = DEFAULT_TITLE
    authors: tuple[str, ...] = ()
    description: str = ""
    page: PageFormat = dc.field(default_factory=PageFormat)
    styles: tuple[str, ...] = ()
    files: tuple[str, ...] | None = None
    plugins: tuple[PluginSpec, ...] = ()
    disable_default_styles: bool = False
    metadata: DocumentMetadata = dc.field(default_factory=DocumentMetadata)
    format: str = DEFAULT_FORMAT
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    verbose: bool = False
    debug: bool = False
    force: bool = False
    strict: bool = False
    input: Path | None = None
    output: Path | None = None


__all__ = [
    "BuildOptions",
    "DocumentMetadata",
    "ManifestConfig",
    "ManifestError",
    "ManifestIssue",
    "ManifestValidationError",
    "PageFormat",
    "PageMargins",
    "PluginEntry",
    "ResolvedConfig",
]
