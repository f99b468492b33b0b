"""Declare, classify and load document plugins.

A plugin transforms the element tree of each rendered content file and may
contribute CSS and Python-Markdown extensions. Plugins come from four places,
recorded as their :class:`Provenance`: a ``.py`` file inside the project, an
installed package, the builtin registry, or an http(s) URL.
:class:`PluginResolver` loads them and returns them ordered by priority.

Examples
--------
>>> from pathlib import Path
>>> from pagedmd.plugins import PluginResolver, normalize_plugin_entry
>>> spec = normalize_plugin_entry("ttrpg")
>>> resolved = PluginResolver(Path(".")).resolve([spec])  # doctest: +SKIP
>>> resolved.names  # doctest: +SKIP
['ttrpg']
"""

from .builtins import available_builtins
from .loader import PluginResolver, resolve_plugins
from .models import (
    LoadedPlugin,
    PluginConfigError,
    PluginError,
    PluginLoadError,
    PluginMetadata,
    PluginSecurityError,
    PluginSpec,
    Provenance,
    ResolvedPlugins,
    StyleFragment,
)
from .specs import (
    classify_plugin_entry,
    merge_legacy_extensions,
    normalize_plugin_entry,
)

__all__ = [
    "LoadedPlugin",
    "PluginConfigError",
    "PluginError",
    "PluginLoadError",
    "PluginMetadata",
    "PluginResolver",
    "PluginSecurityError",
    "PluginSpec",
    "Provenance",
    "ResolvedPlugins",
    "StyleFragment",
    "available_builtins",
    "classify_plugin_entry",
    "merge_legacy_extensions",
    "normalize_plugin_entry",
    "resolve_plugins",
]
