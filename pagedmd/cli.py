"""Cyclopts CLI entrypoint for building paged Markdown documents.

The ``pagedmd`` console script assembles a project directory (a
``manifest.yaml`` plus Markdown content files) into a single HTML artifact
with the merged style cascade, ready for a paged-media engine. ``pagedmd
watch`` keeps rebuilding the artifact as the project changes.

Examples
--------
Build the project in the current directory:

>>> from pagedmd.cli import main
>>> main()  # doctest: +SKIP

Build another project, overwriting a hand-made output file:

>>> from pagedmd.cli import app
>>> app.run(["build", "--input", "book", "--force"])  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import logging
import time
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import DEBOUNCE_SECONDS
from .config import BuildOptions, load_manifest, resolve_config
from .pipeline import project_dir, run_build
from .plugins import PluginResolver, available_builtins
from .watch import RebuildCoordinator

app = App(name="pagedmd", config=cyclopts.config.Env("PAGEDMD_", command=False))  # type: ignore[unknown-argument]

logger = logging.getLogger(__name__)


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(*, verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _options(
    *,
    input: Path | None,  # noqa: A002 - mirrors the --input flag
    output: Path | None,
    format: str | None,  # noqa: A002 - mirrors the --format flag
    timeout: float | None,
    title: str | None,
    strict: bool,
    verbose: bool,
    debug: bool,
    force: bool,
    disable_default_styles: bool,
) -> BuildOptions:
    # Unset flags stay None so the manifest can still supply them.
    return BuildOptions(
        input=input,
        output=output,
        format=format,
        timeout=timeout,
        title=title,
        strict=strict or None,
        verbose=verbose or None,
        debug=debug or None,
        force=force or None,
        disable_default_styles=disable_default_styles or None,
    )


@app.command(help="Assemble a project into a single HTML artifact.")
def build(
    *,
    input: typ.Annotated[  # noqa: A002 - public flag name
        Path | None,
        Parameter(help="Project directory or .md file (defaults to the cwd)"),
    ] = None,
    output: typ.Annotated[
        Path | None,
        Parameter(help="Output file (defaults to <input>/build/index.html)"),
    ] = None,
    format: typ.Annotated[  # noqa: A002 - public flag name
        str | None, Parameter(help="Output format: html, pdf or preview")
    ] = None,
    timeout: typ.Annotated[
        float | None, Parameter(help="Render timeout in seconds")
    ] = None,
    title: typ.Annotated[
        str | None, Parameter(help="Override the manifest title")
    ] = None,
    strict: typ.Annotated[
        bool, Parameter(help="Treat plugin and stylesheet warnings as errors")
    ] = False,
    verbose: typ.Annotated[bool, Parameter(help="Log progress")] = False,
    debug: typ.Annotated[bool, Parameter(help="Log internals")] = False,
    force: typ.Annotated[
        bool, Parameter(help="Overwrite an output file pagedmd did not write")
    ] = False,
    disable_default_styles: typ.Annotated[
        bool, Parameter(help="Skip the bundled foundation styles")
    ] = False,
) -> None:
    """Build the project once and report where the artifact was written.

    Parameters
    ----------
    input : Path or None, optional
        Project directory containing ``manifest.yaml`` and content files, or a
        single Markdown file.
    output : Path or None, optional
        Destination HTML file.
    format : str or None, optional
        Requested output format; the HTML artifact is written for all of them.
    timeout : float or None, optional
        Seconds allowed for an external renderer.
    title : str or None, optional
        Document title overriding the manifest.
    strict : bool, optional
        Fail on plugin load errors and missing stylesheets.
    verbose, debug : bool, optional
        Logging verbosity.
    force : bool, optional
        Replace an existing output file that no previous build produced.
    disable_default_styles : bool, optional
        Leave the foundation tier out of the cascade.

    Raises
    ------
    FileExistsError
        If the output exists and ``force`` is not set.
    """
    _configure_logging(verbose=verbose, debug=debug)
    options = _options(
        input=input,
        output=output,
        format=format,
        timeout=timeout,
        title=title,
        strict=strict,
        verbose=verbose,
        debug=debug,
        force=force,
        disable_default_styles=disable_default_styles,
    )
    result = run_build(options)
    for warning in result.document.warnings:
        logger.warning("%s", warning)
    print(f"wrote {_format_path(result.output_path)}")


@app.command(help="Rebuild the artifact whenever the project changes.")
def watch(
    *,
    input: typ.Annotated[  # noqa: A002 - public flag name
        Path | None,
        Parameter(help="Project directory or .md file (defaults to the cwd)"),
    ] = None,
    output: typ.Annotated[
        Path | None,
        Parameter(help="Output file (defaults to <input>/build/index.html)"),
    ] = None,
    title: typ.Annotated[
        str | None, Parameter(help="Override the manifest title")
    ] = None,
    strict: typ.Annotated[
        bool, Parameter(help="Treat plugin and stylesheet warnings as errors")
    ] = False,
    verbose: typ.Annotated[bool, Parameter(help="Log progress")] = False,
    debug: typ.Annotated[bool, Parameter(help="Log internals")] = False,
    force: typ.Annotated[
        bool, Parameter(help="Overwrite an output file pagedmd did not write")
    ] = False,
    debounce: typ.Annotated[
        float, Parameter(help="Seconds to wait for changes to settle")
    ] = DEBOUNCE_SECONDS,
) -> None:
    """Build once, then rebuild on every settled burst of changes.

    Runs until interrupted. Failed rebuilds are logged and leave the last good
    artifact in place.
    """
    _configure_logging(verbose=verbose, debug=debug)
    source = input or Path.cwd()
    watched_dir = project_dir(source)
    options = _options(
        input=source,
        output=output,
        format=None,
        timeout=None,
        title=title,
        strict=strict,
        verbose=verbose,
        debug=debug,
        force=force,
        disable_default_styles=False,
    )
    initial = run_build(options)
    print(f"wrote {_format_path(initial.output_path)}")
    output_path = initial.output_path

    def rebuild(directory: Path) -> None:
        target = source if directory == watched_dir else directory
        # Replacing our own artifact needs no --force.
        run_build(dc.replace(options, input=target, output=output_path))
        print(f"wrote {_format_path(output_path)}")

    coordinator = RebuildCoordinator(watched_dir, rebuild, debounce=debounce)
    coordinator.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("stopping watch")
    finally:
        coordinator.stop()


@app.command(help="List builtin plugins or check which plugins a project loads.")
def plugins(
    *,
    input: typ.Annotated[  # noqa: A002 - public flag name
        Path | None,
        Parameter(help="Project whose plugins should be resolved"),
    ] = None,
) -> None:
    """Print builtin plugin names, or a project's plugins in execution order."""
    if input is None:
        for name in available_builtins():
            print(name)
        return
    root = project_dir(input)
    config = resolve_config(BuildOptions(input=input), load_manifest(root))
    resolved = PluginResolver(root, strict=config.strict).resolve(config.plugins)
    for plugin in resolved.plugins:
        print(f"{plugin.name} (priority {plugin.priority})")
    for warning in resolved.warnings:
        print(f"warning: {warning}")


def main() -> None:
    """Invoke the Cyclopts application.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


__all__ = ["app", "build", "main", "plugins", "watch"]

if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
