"""Run one build pass: load, resolve, load plugins, assemble, write.

Each stage only consumes the output of the previous one, and every pass
starts from scratch, so rebuilding after any change is always safe.

The input is either a project directory or a single Markdown file. A single
file becomes the only section and takes its manifest, plugins and
stylesheets from the directory it lives in.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import time
import typing as typ
from pathlib import Path

from ._constants import (
    BUILD_META_FILENAME,
    CONTENT_SUFFIX,
    DEFAULT_OUTPUT_DIRNAME,
    DEFAULT_OUTPUT_FILENAME,
)
from .artifact import ArtifactWriter
from .assembler import AssembledDocument, DocumentAssembler
from .config import BuildOptions, load_manifest, resolve_config
from .plugins import PluginResolver

if typ.TYPE_CHECKING:
    import requests

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of a successful :func:`run_build`."""

    output_path: Path
    document: AssembledDocument
    duration: float


def _is_content_file(source: Path) -> bool:
    return source.is_file() and source.suffix == CONTENT_SUFFIX


def project_dir(source: Path) -> Path:
    """Return the project directory for a directory or single-file input.

    Examples
    --------
    >>> project_dir(Path("book/chapter.md"))  # doctest: +SKIP
    PosixPath('book')
    """
    return source.parent if _is_content_file(source) else source


def default_output_path(source: Path) -> Path:
    """Return where the artifact goes when no output path is given."""
    return project_dir(source) / DEFAULT_OUTPUT_DIRNAME / DEFAULT_OUTPUT_FILENAME


def build_document(
    source: Path,
    options: BuildOptions | None = None,
    *,
    session: requests.Session | None = None,
) -> AssembledDocument:
    """Assemble the document at ``source`` without writing anything.

    Parameters
    ----------
    source : Path
        Project directory holding ``manifest.yaml`` and the content files, or
        a single ``.md`` file whose directory provides the manifest.
    options : BuildOptions, optional
        Command-line overrides.
    session : requests.Session, optional
        HTTP session used for remote plugins.

    Returns
    -------
    AssembledDocument
        Sections and style cascade ready for the artifact writer.

    Raises
    ------
    FileNotFoundError
        If ``source`` is neither a directory nor a Markdown file.
    ManifestError
        If the manifest is unreadable or invalid.
    PluginError
        For fatal plugin problems, or any load failure in strict mode.
    StylesheetError
        For import cycles, or missing stylesheets in strict mode.
    AssemblyError
        If content files are missing or none are found.
    """
    if not (source.is_dir() or _is_content_file(source)):
        msg = f"Source '{source}' not found or not a markdown file."
        raise FileNotFoundError(msg)
    root = project_dir(source)
    config = resolve_config(options, load_manifest(root))
    if root != source:
        config = dc.replace(config, files=(source.name,))
    plugins = PluginResolver(root, strict=config.strict, session=session).resolve(
        config.plugins
    )
    return DocumentAssembler(config, plugins).assemble(root)


def run_build(
    options: BuildOptions,
    *,
    writer: ArtifactWriter | None = None,
    session: requests.Session | None = None,
) -> BuildResult:
    """Build the document and write the artifact.

    An existing output file is only replaced when it was written by a previous
    build (its metadata sidecar is present) or when ``options.force`` is set.

    Raises
    ------
    FileExistsError
        If the output exists, was not produced by pagedmd, and ``force`` is
        not set.
    """
    started = time.perf_counter()
    source = options.input or Path.cwd()
    output_path = options.output or default_output_path(source)
    if (
        output_path.exists()
        and not options.force
        and not (output_path.parent / BUILD_META_FILENAME).exists()
    ):
        msg = f"Output '{output_path}' already exists; pass --force to overwrite."
        raise FileExistsError(msg)

    document = build_document(source, options, session=session)
    (writer or ArtifactWriter()).write(document, output_path)
    duration = time.perf_counter() - started
    logger.info(
        "built %d section(s) into %s in %.2fs",
        len(document.sections),
        output_path,
        duration,
    )
    return BuildResult(output_path=output_path, document=document, duration=duration)


__all__ = [
    "BuildResult",
    "build_document",
    "default_output_path",
    "project_dir",
    "run_build",
]
