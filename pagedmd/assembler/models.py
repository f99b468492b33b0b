"""Dataclasses and errors produced by document assembly."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path  # noqa: TC003 - used for runtime type metadata

from pagedmd.styles.cascade import StyleCascade

if typ.TYPE_CHECKING:
    from pagedmd.config.models import DocumentMetadata, PageFormat
    from pagedmd.styles.cascade import StyleChunk


class AssemblyError(RuntimeError):
    """Raised when content files cannot be assembled into a document."""


class ContentFileNotFoundError(AssemblyError):
    """Raised when a manifest-listed content file does not exist."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(f"File not found: {entry}")


class NothingToBuildError(AssemblyError):
    """Raised when the source directory yields no content files."""


@dc.dataclass(frozen=True, slots=True)
class Section:
    """One rendered content file."""

    slug: str
    html: str
    source: Path

    @property
    def article(self) -> str:
        """Return the section wrapped in its ``<article>`` element."""
        return f'<article id="{self.slug}">\n{self.html}\n</article>'


@dc.dataclass(frozen=True, slots=True)
class AssembledDocument:
    """The renderable artifact of one build pass."""

    title: str
    authors: tuple[str, ...]
    sections: tuple[Section, ...]
    merged_styles: tuple[StyleChunk, ...]
    page: PageFormat
    metadata: DocumentMetadata
    description: str = ""
    plugins: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def slugs(self) -> list[str]:
        return [section.slug for section in self.sections]

    @property
    def body_html(self) -> str:
        """Return every section's ``<article>`` in document order."""
        return "\n".join(section.article for section in self.sections)

    @property
    def stylesheet(self) -> str:
        """Return the merged cascade as one stylesheet."""
        return StyleCascade(self.merged_styles).text


__all__ = [
    "AssembledDocument",
    "AssemblyError",
    "ContentFileNotFoundError",
    "NothingToBuildError",
    "Section",
]
