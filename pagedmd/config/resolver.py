"""Merge CLI options, manifest values and defaults into a ``ResolvedConfig``.

Precedence is fixed: a value supplied on the command line always wins, then
the manifest, then the built-in default. :func:`resolve_config` is pure; it
reads nothing from disk and returns a new frozen value every call.
"""

from __future__ import annotations

import typing as typ

from pagedmd._constants import OUTPUT_FORMATS
from pagedmd.plugins.builtins import available_builtins
from pagedmd.plugins.models import PluginError
from pagedmd.plugins.specs import merge_legacy_extensions, normalize_plugin_entry

from .models import (
    BuildOptions,
    DocumentMetadata,
    ManifestConfig,
    ManifestError,
    PageFormat,
    ResolvedConfig,
)

if typ.TYPE_CHECKING:
    from pagedmd.plugins.models import PluginSpec

T = typ.TypeVar("T")

_DEFAULTS = ResolvedConfig()


def _first(*candidates: T | None, default: T) -> T:
    """Return the first candidate that is not ``None``."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return default


def resolve_config(
    cli: BuildOptions | None, manifest: ManifestConfig | None
) -> ResolvedConfig:
    """Resolve the effective configuration for a build pass.

    Parameters
    ----------
    cli : BuildOptions or None
        Options supplied on the command line; ``None`` fields are ignored.
    manifest : ManifestConfig or None
        Validated manifest, or ``None`` when the project has none.

    Returns
    -------
    ResolvedConfig
        Frozen configuration with every field populated.

    Raises
    ------
    ManifestError
        If the output format is unknown or a plugin entry cannot be
        normalized.

    Examples
    --------
    >>> from pagedmd.config import BuildOptions, resolve_config
    >>> resolve_config(BuildOptions(title="CLI Title"), None).title
    'CLI Title'
    >>> resolve_config(None, None).format
    'html'
    """
    options = cli or BuildOptions()
    output_format = _first(options.format, default=_DEFAULTS.format)
    if output_format not in OUTPUT_FORMATS:
        msg = (
            f"Unknown output format {output_format!r}; "
            f"expected one of {', '.join(OUTPUT_FORMATS)}."
        )
        raise ManifestError(msg)

    files = _first(options.files, manifest.files if manifest else None, default=None)
    return ResolvedConfig(
        title=_first(
            options.title, manifest.title if manifest else None, default=_DEFAULTS.title
        ),
        authors=tuple(
            _first(options.authors, manifest.authors if manifest else None, default=())
        ),
        description=_first(
            options.description,
            manifest.description if manifest else None,
            default=_DEFAULTS.description,
        ),
        page=_first(manifest.page if manifest else None, default=PageFormat()),
        styles=tuple(
            _first(options.styles, manifest.styles if manifest else None, default=())
        ),
        files=tuple(files) if files is not None else None,
        plugins=_resolve_plugin_specs(manifest),
        disable_default_styles=_first(
            options.disable_default_styles,
            manifest.disable_default_styles if manifest else None,
            default=_DEFAULTS.disable_default_styles,
        ),
        metadata=_first(
            manifest.metadata if manifest else None, default=DocumentMetadata()
        ),
        format=output_format,
        timeout=_first(options.timeout, default=_DEFAULTS.timeout),
        verbose=_first(options.verbose, default=_DEFAULTS.verbose),
        debug=_first(options.debug, default=_DEFAULTS.debug),
        force=_first(options.force, default=_DEFAULTS.force),
        strict=_first(options.strict, default=_DEFAULTS.strict),
        input=options.input,
        output=options.output,
    )


def _resolve_plugin_specs(
    manifest: ManifestConfig | None,
) -> tuple[PluginSpec, ...]:
    if manifest is None:
        return ()
    builtin_names = available_builtins()
    try:
        specs = [
            normalize_plugin_entry(entry, builtin_names) for entry in manifest.plugins
        ]
    except PluginError as exc:
        msg = f"Invalid plugin entry in {manifest.path.name}: {exc}"
        raise ManifestError(msg) from exc
    return tuple(merge_legacy_extensions(specs, manifest.extensions))


__all__ = ["resolve_config"]
