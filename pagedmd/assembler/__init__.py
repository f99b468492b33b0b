"""Combine rendered content files and styles into one document.

Exports
-------
- :class:`DocumentAssembler` and :func:`assemble`: build an
  :class:`AssembledDocument` from a source directory.
- :class:`MarkdownRenderer`: Python-Markdown rendering with the plugin chain.
"""

from .document import DocumentAssembler, assemble
from .models import (
    AssembledDocument,
    AssemblyError,
    ContentFileNotFoundError,
    NothingToBuildError,
    Section,
)
from .renderer import MarkdownRenderer, PluginChainExtension

__all__ = [
    "AssembledDocument",
    "AssemblyError",
    "ContentFileNotFoundError",
    "DocumentAssembler",
    "MarkdownRenderer",
    "NothingToBuildError",
    "PluginChainExtension",
    "Section",
    "assemble",
]
