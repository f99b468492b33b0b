"""Load manifests and resolve the effective configuration for a build.

This subpackage parses a project's ``manifest.yaml`` into a validated
:class:`ManifestConfig`, then merges it with command-line options and
defaults into the frozen :class:`ResolvedConfig` every downstream stage
consumes. The entry points are :func:`load_manifest` and
:func:`resolve_config`.

Examples
--------
>>> from pathlib import Path
>>> from pagedmd.config import BuildOptions, load_manifest, resolve_config
>>> manifest = load_manifest(Path("book"))  # doctest: +SKIP
>>> config = resolve_config(BuildOptions(strict=True), manifest)  # doctest: +SKIP
>>> config.strict  # doctest: +SKIP
True
"""

from .loader import load_manifest, validate_manifest
from .models import (
    BuildOptions,
    DocumentMetadata,
    ManifestConfig,
    ManifestError,
    ManifestIssue,
    ManifestValidationError,
    PageFormat,
    PageMargins,
    ResolvedConfig,
)
from .resolver import resolve_config

__all__ = [
    "BuildOptions",
    "DocumentMetadata",
    "ManifestConfig",
    "ManifestError",
    "ManifestIssue",
    "ManifestValidationError",
    "PageFormat",
    "PageMargins",
    "ResolvedConfig",
    "load_manifest",
    "resolve_config",
    "validate_manifest",
]
