"""Classify and normalize plugin declarations into :class:`PluginSpec` values.

A manifest may declare a plugin as a bare string (``"ttrpg"``,
``"./plugins/callouts.py"``, ``"https://cdn.example/p.py"``,
``"pagedmd-glossary"``) or as a mapping carrying explicit fields. Provenance
is decided in exactly one place, :func:`classify_plugin_entry`, so the loader
never has to guess.
"""

from __future__ import annotations

import typing as typ

from pagedmd._constants import DEFAULT_PLUGIN_PRIORITY, PLUGIN_SCRIPT_SUFFIX

from .models import PluginConfigError, PluginSpec, Provenance

REMOTE_PREFIXES = ("http://", "https://")
LOCAL_PREFIXES = ("./", "../")


def _default_builtin_names() -> frozenset[str]:
    from .builtins import available_builtins

    return frozenset(available_builtins())


def _classify_locator(value: str, builtin_names: typ.Collection[str]) -> Provenance:
    if value.startswith(REMOTE_PREFIXES):
        return Provenance.REMOTE
    if value.startswith(LOCAL_PREFIXES) or value.endswith(PLUGIN_SCRIPT_SUFFIX):
        return Provenance.LOCAL
    if value in builtin_names:
        return Provenance.BUILTIN
    return Provenance.PACKAGE


def classify_plugin_entry(
    entry: str | typ.Mapping[str, typ.Any],
    builtin_names: typ.Collection[str] | None = None,
) -> Provenance:
    """Return the provenance of a manifest plugin entry.

    Parameters
    ----------
    entry : str or Mapping
        String shorthand or object-form plugin declaration.
    builtin_names : Collection[str], optional
        Names of the builtin plugins; defaults to the shipped registry.

    Returns
    -------
    Provenance
        ``LOCAL`` for relative paths or script files, ``REMOTE`` for http(s)
        URLs, ``BUILTIN`` for registry names, ``PACKAGE`` otherwise. An
        explicit ``type`` on an object entry always wins.

    Raises
    ------
    PluginConfigError
        If an object entry names an unknown ``type`` or carries no locator.

    Examples
    --------
    >>> classify_plugin_entry("./plugins/x.py", ())
    <Provenance.LOCAL: 'local'>
    >>> classify_plugin_entry("ttrpg", {"ttrpg"})
    <Provenance.BUILTIN: 'builtin'>
    """
    names = _default_builtin_names() if builtin_names is None else builtin_names
    if isinstance(entry, str):
        return _classify_locator(entry, names)
    explicit = entry.get("type")
    if explicit is not None:
        try:
            return Provenance(explicit)
        except ValueError as exc:
            msg = f"Unknown plugin type {explicit!r}."
            raise PluginConfigError(msg) from exc
    if entry.get("path"):
        return Provenance.LOCAL
    if entry.get("url"):
        return Provenance.REMOTE
    if entry.get("name"):
        name = str(entry["name"])
        return Provenance.BUILTIN if name in names else Provenance.PACKAGE
    msg = "Plugin entry must declare one of 'path', 'name' or 'url'."
    raise PluginConfigError(msg)


def _locator_for(provenance: Provenance, entry: typ.Mapping[str, typ.Any]) -> str:
    match provenance:
        case Provenance.LOCAL:
            keys = ("path",)
        case Provenance.REMOTE:
            keys = ("url", "path")
        case _:
            keys = ("name", "path")
    for key in keys:
        value = entry.get(key)
        if value:
            return str(value).strip()
    msg = f"{provenance} plugin entry is missing '{keys[0]}'."
    raise PluginConfigError(msg)


def normalize_plugin_entry(
    entry: str | typ.Mapping[str, typ.Any],
    builtin_names: typ.Collection[str] | None = None,
) -> PluginSpec:
    """Build a :class:`PluginSpec` from a manifest plugin entry."""
    names = _default_builtin_names() if builtin_names is None else builtin_names
    provenance = classify_plugin_entry(entry, names)
    if isinstance(entry, str):
        return PluginSpec(provenance=provenance, locator=entry.strip())
    priority = entry.get("priority")
    return PluginSpec(
        provenance=provenance,
        locator=_locator_for(provenance, entry),
        enabled=bool(entry.get("enabled", True)),
        priority=DEFAULT_PLUGIN_PRIORITY if priority is None else int(priority),
        options=dict(entry.get("options") or {}),
        version=entry.get("version"),
        integrity=entry.get("integrity"),
    )


def merge_legacy_extensions(
    specs: typ.Sequence[PluginSpec], extensions: typ.Sequence[str]
) -> list[PluginSpec]:
    """Union ``plugins`` specs with legacy ``extensions`` builtin names.

    Builtins already declared under ``plugins`` keep their declaration; the
    remaining extension names are appended with default priority.
    """
    merged = list(specs)
    declared = {
        spec.locator for spec in specs if spec.provenance is Provenance.BUILTIN
    }
    for name in extensions:
        if name in declared:
            continue
        declared.add(name)
        merged.append(PluginSpec(provenance=Provenance.BUILTIN, locator=name))
    return merged


__all__ = [
    "classify_plugin_entry",
    "merge_legacy_extensions",
    "normalize_plugin_entry",
]
