"""Assemble a project's content files into one renderable document.

The assembler decides which Markdown files make up the document (the
manifest's ``files`` list in order, or every ``.md`` file in the source
directory sorted by name), renders each through :class:`MarkdownRenderer`
with the resolved plugins applied, wraps each result in an ``<article>``
keyed by a slug derived from the filename, and attaches the merged style
cascade. It reads files but never writes any.

Typical usage mirrors the build pipeline:

>>> from pathlib import Path
>>> from pagedmd.assembler import DocumentAssembler
>>> from pagedmd.config import resolve_config
>>> from pagedmd.plugins import ResolvedPlugins
>>> assembler = DocumentAssembler(resolve_config(None, None), ResolvedPlugins())
>>> document = assembler.assemble(Path("book"))  # doctest: +SKIP
>>> document.slugs  # doctest: +SKIP
['chapter-one', 'chapter-two']
"""

from __future__ import annotations

import logging
import re
import typing as typ
from pathlib import Path

from pagedmd._constants import CONTENT_SUFFIX
from pagedmd.styles.cascade import StyleCascade, resolve_cascade

from .models import (
    AssembledDocument,
    AssemblyError,
    ContentFileNotFoundError,
    NothingToBuildError,
    Section,
)
from .renderer import MarkdownRenderer

if typ.TYPE_CHECKING:
    from pagedmd.config.models import ResolvedConfig
    from pagedmd.plugins.models import ResolvedPlugins

logger = logging.getLogger(__name__)


def _slugify(stem: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", stem.lower()).strip("-")
    return slug or "section"


def _unique_slug(base: str, used: set[str]) -> str:
    """Generate a unique slug, appending numeric suffixes when needed."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


class DocumentAssembler:
    """Turn a source directory into an :class:`AssembledDocument`."""

    def __init__(
        self,
        config: ResolvedConfig,
        plugins: ResolvedPlugins,
        *,
        cascade: StyleCascade | None = None,
        renderer: MarkdownRenderer | None = None,
    ) -> None:
        """Initialize the assembler.

        Parameters
        ----------
        config : ResolvedConfig
            Resolved configuration for this build pass.
        plugins : ResolvedPlugins
            Plugins in execution order plus their CSS fragments.
        cascade : StyleCascade, optional
            Precomputed style cascade; resolved from ``config`` and
            ``plugins`` during :meth:`assemble` when omitted.
        renderer : MarkdownRenderer, optional
            Renderer to use; one bound to ``plugins`` is created otherwise.
        """
        self.config = config
        self.plugins = plugins
        self.cascade = cascade
        self.renderer = renderer or MarkdownRenderer(plugins.plugins)

    def discover(self, source_dir: Path) -> list[Path]:
        """Return the content files in document order.

        Raises
        ------
        ContentFileNotFoundError
            If a listed file does not exist.
        AssemblyError
            If a listed file resolves outside ``source_dir``.
        """
        if self.config.files is None:
            return sorted(
                (
                    path
                    for path in source_dir.iterdir()
                    if path.is_file()
                    and path.suffix == CONTENT_SUFFIX
                    and not path.name.startswith(".")
                ),
                key=lambda path: path.name,
            )
        root = source_dir.resolve()
        paths: list[Path] = []
        for entry in self.config.files:
            path = (root / entry).resolve()
            if not path.is_relative_to(root):
                msg = f"Content file {entry!r} resolves outside {source_dir}."
                raise AssemblyError(msg)
            if not path.is_file():
                raise ContentFileNotFoundError(entry)
            paths.append(path)
        return paths

    def assemble(self, source_dir: Path) -> AssembledDocument:
        """Render every content file and attach the merged style cascade.

        Raises
        ------
        NothingToBuildError
            If no content files are found.
        ContentFileNotFoundError
            If a listed content file is missing.
        """
        files = self.discover(source_dir)
        if not files:
            msg = f"Nothing to build: no markdown files found in {source_dir}."
            raise NothingToBuildError(msg)

        cascade = self.cascade or resolve_cascade(
            self.config.styles,
            self.plugins.fragments,
            project_root=source_dir,
            disable_default_styles=self.config.disable_default_styles,
            strict=self.config.strict,
            highlight_css=self.renderer.stylesheet,
        )

        used: set[str] = set()
        sections: list[Section] = []
        for path in files:
            slug = _unique_slug(_slugify(path.stem), used)
            html = self.renderer.render(path.read_text(encoding="utf-8"))
            sections.append(Section(slug=slug, html=html, source=path))
            logger.debug("rendered %s as #%s", path.name, slug)

        return AssembledDocument(
            title=self.config.title,
            authors=self.config.authors,
            sections=tuple(sections),
            merged_styles=cascade.chunks,
            page=self.config.page,
            metadata=self.config.metadata,
            description=self.config.description,
            plugins=tuple(self.plugins.names),
            warnings=(*self.plugins.warnings, *cascade.warnings),
        )


def assemble(
    source_dir: Path, config: ResolvedConfig, plugins: ResolvedPlugins
) -> AssembledDocument:
    """Assemble ``source_dir`` with a fresh :class:`DocumentAssembler`."""
    return DocumentAssembler(config, plugins).assemble(source_dir)


__all__ = ["DocumentAssembler", "assemble"]
