"""Typed dataclasses and errors describing plugin declarations and loads."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from pagedmd._constants import DEFAULT_PLUGIN_PRIORITY

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown.extensions import Extension

TransformFn = typ.Callable[["Element", typ.Mapping[str, typ.Any]], "Element | None"]


class Provenance(enum.StrEnum):
    """Where a plugin's code comes from."""

    LOCAL = "local"
    PACKAGE = "package"
    BUILTIN = "builtin"
    REMOTE = "remote"


class PluginError(RuntimeError):
    """Base class for plugin declaration and loading failures."""

    def __init__(self, message: str, *, locator: str | None = None) -> None:
        super().__init__(message)
        self.locator = locator


class PluginLoadError(PluginError):
    """Raised when a local, package or remote plugin cannot be loaded.

    Recoverable: the resolver logs and skips it unless running strict.
    """


class PluginConfigError(PluginError):
    """Raised when a plugin declaration names something that cannot exist."""


class PluginSecurityError(PluginError):
    """Raised when a plugin escapes the project root or fails integrity checks."""


@dc.dataclass(frozen=True, slots=True)
class PluginSpec:
    """A normalized plugin declaration.

    ``locator`` is the filesystem path for local plugins, the import name for
    package and builtin plugins, and the URL for remote plugins.
    """

    provenance: Provenance
    locator: str
    enabled: bool = True
    priority: int = DEFAULT_PLUGIN_PRIORITY
    options: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    version: str | None = None
    integrity: str | None = None

    @property
    def display_name(self) -> str:
        """Return a short label used in log messages."""
        return f"{self.provenance}:{self.locator}"


@dc.dataclass(frozen=True, slots=True)
class PluginMetadata:
    """Descriptive metadata a plugin module may expose."""

    name: str
    version: str | None = None
    description: str | None = None


@dc.dataclass(frozen=True, slots=True)
class LoadedPlugin:
    """A plugin whose code has been loaded and whose shape has been validated."""

    spec: PluginSpec
    metadata: PluginMetadata
    transform: TransformFn | None = None
    css: str | None = None
    extensions: tuple[Extension, ...] = ()

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def priority(self) -> int:
        return self.spec.priority

    @property
    def options(self) -> typ.Mapping[str, typ.Any]:
        return self.spec.options


@dc.dataclass(frozen=True, slots=True)
class StyleFragment:
    """CSS contributed by a plugin, tagged with the plugin's priority."""

    plugin: str
    priority: int
    css: str


@dc.dataclass(frozen=True, slots=True)
class ResolvedPlugins:
    """Outcome of resolving a build's plugin declarations.

    ``plugins`` and ``fragments`` are both in execution order: descending
    priority, ties kept in declaration order.
    """

    plugins: tuple[LoadedPlugin, ...] = ()
    fragments: tuple[StyleFragment, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def names(self) -> list[str]:
        """Return the plugin names in execution order."""
        return [plugin.name for plugin in self.plugins]


__all__ = [
    "LoadedPlugin",
    "PluginConfigError",
    "PluginError",
    "PluginLoadError",
    "PluginMetadata",
    "PluginSecurityError",
    "PluginSpec",
    "Provenance",
    "ResolvedPlugins",
    "StyleFragment",
    "TransformFn",
]
