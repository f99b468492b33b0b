"""Registry of plugins shipped with pagedmd.

Builtins are referenced by name in a manifest (``plugins: [ttrpg]`` or the
legacy ``extensions: [ttrpg]``). Each entry maps the public name to the
module implementing the plugin contract (``transform``, ``css`` and
``metadata``); modules are imported only when a build asks for them.

Examples
--------
>>> from pagedmd.plugins.builtins import available_builtins
>>> available_builtins()
('containers', 'dimm-city', 'ttrpg')
"""

from __future__ import annotations

BUILTIN_MODULES: dict[str, str] = {
    "containers": "pagedmd.plugins.builtins.containers",
    "dimm-city": "pagedmd.plugins.builtins.dimm_city",
    "ttrpg": "pagedmd.plugins.builtins.ttrpg",
}


def available_builtins() -> tuple[str, ...]:
    """Return the sorted names of the shipped builtin plugins."""
    return tuple(sorted(BUILTIN_MODULES))


__all__ = ["BUILTIN_MODULES", "available_builtins"]
