"""Stylesheet import resolution and cascade ordering.

Exports
-------
- :func:`resolve_imports`: flatten one stylesheet and its ``@import`` graph.
- :func:`resolve_cascade`: order foundation, plugin and custom styles.
"""

from .bundled import foundation_css, read_bundled
from .cascade import (
    CascadeResolver,
    CircularImportError,
    ImportOutsideRootError,
    MissingStylesheetError,
    StyleCascade,
    StyleChunk,
    StylesheetError,
    StylesheetNode,
    resolve_cascade,
    resolve_imports,
)

__all__ = [
    "CascadeResolver",
    "CircularImportError",
    "ImportOutsideRootError",
    "MissingStylesheetError",
    "StyleCascade",
    "StyleChunk",
    "StylesheetError",
    "StylesheetNode",
    "foundation_css",
    "read_bundled",
    "resolve_cascade",
    "resolve_imports",
]
