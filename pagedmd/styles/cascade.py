"""Resolve ``@import`` graphs and order the document's style cascade.

Every stylesheet is parsed into a :class:`StylesheetNode` whose imports point
at further nodes, then flattened into a single body in which each resolved
``@import`` is replaced by the imported file wrapped in ``From``/``End``
marker comments. The current import chain is passed down the recursion, so
revisiting any file already on the chain is reported as a cycle with the
whole chain in the message.

The final cascade has three tiers applied in a fixed order: bundled
foundation styles (unless disabled), plugin fragments in plugin order, then
the stylesheets the manifest declares.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ
from pathlib import Path

from .bundled import ASSETS_DIR, bundled_path, foundation_css

if typ.TYPE_CHECKING:
    from pagedmd.plugins.models import StyleFragment

logger = logging.getLogger(__name__)

IMPORT_PATTERN = re.compile(
    r"""@import\s+(?:url\(\s*)?['"]([^'"]+)['"]\s*\)?([^;{}\n]*);?"""
)
EXTERNAL_PREFIXES = ("http://", "https://", "//")
VERBATIM_QUALIFIERS = ("layer", "supports(")

Tier = typ.Literal["foundation", "plugin", "custom"]


class StylesheetError(RuntimeError):
    """Raised when the style cascade cannot be resolved."""


class CircularImportError(StylesheetError):
    """Raised when an ``@import`` chain revisits a file already on the chain."""

    def __init__(self, chain: typ.Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__(f"Circular import detected: {' → '.join(self.chain)}")


class MissingStylesheetError(StylesheetError):
    """Raised in strict mode when a declared or imported stylesheet is missing."""

    problem = "Stylesheet not found"

    def __init__(self, target: str, chain: typ.Sequence[str] = ()) -> None:
        self.target = target
        self.chain = tuple(chain)
        origin = f" (imported from {' → '.join(self.chain)})" if self.chain else ""
        super().__init__(f"{self.problem}: {target}{origin}")


class ImportOutsideRootError(MissingStylesheetError):
    """Raised in strict mode when an import leaves the project and the bundle."""

    problem = "Stylesheet import outside the project"


@dc.dataclass(slots=True)
class ImportEdge:
    """One ``@import`` statement and what it resolved to.

    ``node`` is ``None`` for imports kept verbatim (external URLs and layer or
    supports qualifiers) and for files dropped in lenient mode; ``external``
    tells the two apart. ``media`` holds a media query the inlined body is
    wrapped in.
    """

    statement: str
    target: str
    node: StylesheetNode | None = None
    external: bool = False
    media: str = ""


@dc.dataclass(slots=True)
class StylesheetNode:
    """A stylesheet and the stylesheets it imports, in source order."""

    path: Path
    raw_text: str
    imports: list[ImportEdge] = dc.field(default_factory=list)


@dc.dataclass(frozen=True, slots=True)
class StyleChunk:
    """A block of CSS in the final cascade, labelled with its origin."""

    tier: Tier
    label: str
    css: str


@dc.dataclass(frozen=True, slots=True)
class StyleCascade:
    """The ordered style chunks for one document."""

    chunks: tuple[StyleChunk, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Return every chunk concatenated, each preceded by its label."""
        return "\n".join(
            f"/* {chunk.tier}: {chunk.label} */\n{chunk.css.rstrip()}\n"
            for chunk in self.chunks
        )

    def tiers(self) -> list[Tier]:
        return [chunk.tier for chunk in self.chunks]


class CascadeResolver:
    """Resolve stylesheet imports relative to a project directory.

    Parameters
    ----------
    project_root : Path
        Directory declared stylesheets are looked up in and chain names are
        shown relative to.
    strict : bool, optional
        Raise :class:`MissingStylesheetError` for missing files instead of
        logging a warning and skipping them.
    """

    def __init__(self, project_root: Path, *, strict: bool = False) -> None:
        self.project_root = project_root.resolve()
        self.strict = strict
        self.warnings: list[str] = []

    def display_name(self, path: Path) -> str:
        """Return ``path`` relative to the project, ``/``-rooted when bundled."""
        resolved = path.resolve()
        if resolved.is_relative_to(self.project_root):
            return resolved.relative_to(self.project_root).as_posix()
        if resolved.is_relative_to(ASSETS_DIR.resolve()):
            return "/" + resolved.relative_to(ASSETS_DIR.resolve()).as_posix()
        return resolved.as_posix()

    def load(self, path: Path, ancestors: tuple[Path, ...] = ()) -> StylesheetNode:
        """Parse ``path`` and, recursively, everything it imports.

        Raises
        ------
        CircularImportError
            If ``path`` is already on the current import chain.
        MissingStylesheetError
            In strict mode, if an imported file does not exist.
        ImportOutsideRootError
            In strict mode, if an import resolves outside the project and the
            bundled assets.
        """
        resolved = path.resolve()
        if resolved in ancestors:
            chain = [self.display_name(step) for step in (*ancestors, resolved)]
            raise CircularImportError(chain)
        chain = (*ancestors, resolved)
        node = StylesheetNode(
            path=resolved, raw_text=resolved.read_text(encoding="utf-8")
        )
        for found in IMPORT_PATTERN.finditer(node.raw_text):
            target = found[1].strip()
            qualifier = found[2].strip()
            edge = ImportEdge(statement=found[0], target=target, media=qualifier)
            node.imports.append(edge)
            if target.startswith(EXTERNAL_PREFIXES) or qualifier.startswith(
                VERBATIM_QUALIFIERS
            ):
                edge.external = True
                continue
            candidate = self._import_candidate(resolved, target)
            if candidate is None:
                self.report_missing(target, chain, error_type=ImportOutsideRootError)
                continue
            if not candidate.is_file():
                self.report_missing(target, chain)
                continue
            edge.node = self.load(candidate, chain)
        return node

    def _import_candidate(self, importer: Path, target: str) -> Path | None:
        """Return the file ``target`` names, or ``None`` if it escapes its root.

        ``/``-rooted imports must stay inside the bundled assets; relative ones
        inside the project or the bundle.
        """
        assets = ASSETS_DIR.resolve()
        if target.startswith("/"):
            candidate = bundled_path(target).resolve()
            roots: tuple[Path, ...] = (assets,)
        else:
            candidate = (importer.parent / target).resolve()
            roots = (self.project_root, assets)
        if any(candidate.is_relative_to(root) for root in roots):
            return candidate
        return None

    def flatten(self, node: StylesheetNode) -> str:
        """Return ``node``'s text with every resolved import inlined."""
        edges = iter(node.imports)

        def _replace(found: re.Match[str]) -> str:
            edge = next(edges)
            if edge.external:
                return found[0]
            if edge.node is None:
                return ""
            name = self.display_name(edge.node.path)
            body = self.flatten(edge.node).strip()
            if edge.media:
                body = f"@media {edge.media} {{\n{body}\n}}"
            return f"/* From: {name} ({edge.target}) */\n{body}\n/* End: {name} */"

        return IMPORT_PATTERN.sub(_replace, node.raw_text)

    def resolve_file(self, path: Path) -> str:
        """Load and flatten a single stylesheet."""
        return self.flatten(self.load(path))

    def locate_declared(self, declared: str) -> Path | None:
        """Find a manifest-declared stylesheet in the project, then the bundle."""
        for candidate in (self.project_root / declared, bundled_path(declared)):
            if candidate.is_file():
                return candidate
        return None

    def report_missing(
        self,
        target: str,
        chain: tuple[Path, ...],
        *,
        error_type: type[MissingStylesheetError] = MissingStylesheetError,
    ) -> None:
        """Raise in strict mode, otherwise log and record a warning."""
        error = error_type(target, [self.display_name(step) for step in chain])
        if self.strict:
            raise error
        message = str(error)
        logger.warning(message)
        self.warnings.append(message)


def resolve_imports(path: Path, *, project_root: Path, strict: bool = False) -> str:
    """Flatten ``path`` and its imports into one stylesheet body.

    Examples
    --------
    >>> from pathlib import Path
    >>> root = Path("book")
    >>> css = resolve_imports(root / "theme.css", project_root=root)  # doctest: +SKIP
    >>> css.startswith("/* From:")  # doctest: +SKIP
    True
    """
    return CascadeResolver(project_root, strict=strict).resolve_file(path)


def resolve_cascade(
    declared: typ.Sequence[str],
    fragments: typ.Sequence[StyleFragment],
    *,
    project_root: Path,
    disable_default_styles: bool = False,
    strict: bool = False,
    highlight_css: str | None = None,
) -> StyleCascade:
    """Build the ordered foundation, plugin and custom style chunks.

    Parameters
    ----------
    declared : Sequence[str]
        Stylesheet paths from the manifest, in declaration order.
    fragments : Sequence[StyleFragment]
        Plugin CSS, already in plugin execution order.
    project_root : Path
        Directory declared stylesheets are resolved against.
    disable_default_styles : bool, optional
        Omit the bundled foundation tier.
    strict : bool, optional
        Treat missing stylesheets as fatal.
    highlight_css : str, optional
        Code-highlighting rules appended to the foundation tier.

    Returns
    -------
    StyleCascade
        Chunks in application order plus any warnings raised while resolving.

    Raises
    ------
    CircularImportError
        If any declared stylesheet has an import cycle.
    MissingStylesheetError
        In strict mode, if a declared or imported stylesheet is missing.
    """
    resolver = CascadeResolver(project_root, strict=strict)
    chunks: list[StyleChunk] = []
    if not disable_default_styles:
        chunks.append(StyleChunk("foundation", "foundation", foundation_css()))
        if highlight_css:
            chunks.append(StyleChunk("foundation", "code highlighting", highlight_css))
    chunks.extend(
        StyleChunk(
            "plugin", f"{fragment.plugin} (priority {fragment.priority})", fragment.css
        )
        for fragment in fragments
    )
    for name in declared:
        path = resolver.locate_declared(name)
        if path is None:
            resolver.report_missing(name, ())
            continue
        chunks.append(StyleChunk("custom", name, resolver.resolve_file(path)))
    return StyleCascade(tuple(chunks), tuple(resolver.warnings))


__all__ = [
    "CascadeResolver",
    "CircularImportError",
    "ImportEdge",
    "ImportOutsideRootError",
    "MissingStylesheetError",
    "StyleCascade",
    "StyleChunk",
    "StylesheetError",
    "StylesheetNode",
    "resolve_cascade",
    "resolve_imports",
]
