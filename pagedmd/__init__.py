"""Assemble Markdown projects into paged HTML documents.

A project is a directory holding a ``manifest.yaml`` and Markdown content
files. The build pipeline merges command-line options with the manifest,
loads content plugins, flattens the three-tier style cascade, and writes one
self-contained HTML artifact for a paged-media engine to typeset.

Exports
-------
- ``app``: Cyclopts application with the ``build``, ``watch`` and
  ``plugins`` commands.
- ``main``: Convenience function that invokes the app.
- ``run_build`` / ``build_document``: the pipeline, for programmatic use.

Examples
--------
>>> from pathlib import Path
>>> from pagedmd import BuildOptions, run_build
>>> run_build(BuildOptions(input=Path("book")))  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main
from .config import BuildOptions
from .pipeline import BuildResult, build_document, run_build

__all__ = ["BuildOptions", "BuildResult", "app", "build_document", "main", "run_build"]
