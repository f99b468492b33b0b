"""Resolve plugin declarations into loaded, ordered plugins.

:class:`PluginResolver` dispatches each :class:`PluginSpec` to the loader for
its provenance, validates the loaded module's shape and wraps it in a
:class:`LoadedPlugin`. Failures split into two classes: problems with a
particular local, package or remote plugin are recoverable (logged and
skipped unless ``strict``), while an unknown builtin name or a security
violation always aborts the build.

The resolved plugins are ordered by descending priority. Ties keep the order
in which they were declared because :func:`sorted` is stable.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import importlib.util
import logging
import sys
import types
import typing as typ
from pathlib import Path

from markdown.extensions import Extension

from pagedmd._constants import PLUGIN_SCRIPT_SUFFIX, REMOTE_FETCH_TIMEOUT_SECONDS

from .builtins import BUILTIN_MODULES
from .models import (
    LoadedPlugin,
    PluginConfigError,
    PluginLoadError,
    PluginMetadata,
    PluginSecurityError,
    PluginSpec,
    Provenance,
    ResolvedPlugins,
    StyleFragment,
)
from .remote import fetch_remote_source, verify_integrity

if typ.TYPE_CHECKING:
    import requests

logger = logging.getLogger(__name__)

Loader = typ.Callable[[PluginSpec], LoadedPlugin]


class PluginResolver:
    """Load the plugins a build declares.

    Parameters
    ----------
    project_root : Path
        Directory local plugin paths are resolved against; they may not escape
        it.
    strict : bool, optional
        Re-raise recoverable load failures instead of skipping the plugin.
    registry : Mapping[str, str], optional
        Builtin name to module path; defaults to the shipped builtins.
    session : requests.Session, optional
        HTTP session used for remote plugins.
    timeout : float, optional
        Timeout in seconds for remote fetches.
    """

    def __init__(
        self,
        project_root: Path,
        *,
        strict: bool = False,
        registry: typ.Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        timeout: float = REMOTE_FETCH_TIMEOUT_SECONDS,
    ) -> None:
        self.project_root = project_root.resolve()
        self.strict = strict
        self.registry = dict(BUILTIN_MODULES if registry is None else registry)
        self.session = session
        self.timeout = timeout
        self._warnings: list[str] = []
        self._loaders: dict[Provenance, Loader] = {
            Provenance.LOCAL: self._load_local,
            Provenance.PACKAGE: self._load_package,
            Provenance.BUILTIN: self._load_builtin,
            Provenance.REMOTE: self._load_remote,
        }

    def resolve(self, specs: typ.Iterable[PluginSpec]) -> ResolvedPlugins:
        """Load every enabled spec and return them in execution order.

        Raises
        ------
        PluginConfigError
            If a builtin name is not registered (enabled or not).
        PluginSecurityError
            If a local path escapes the project root or a remote integrity
            check fails.
        PluginLoadError
            Only when ``strict`` is set and a plugin fails to load.
        """
        self._warnings = []
        loaded: list[LoadedPlugin] = []
        for spec in specs:
            if not spec.enabled:
                self._validate_disabled(spec)
                logger.debug("plugin %s is disabled", spec.display_name)
                continue
            try:
                plugin = self._loaders[spec.provenance](spec)
            except PluginLoadError as exc:
                if self.strict:
                    raise
                self._warn(f"Skipping plugin {spec.display_name}: {exc}")
                continue
            logger.info(
                "loaded plugin %s (priority %d)", plugin.name, plugin.priority
            )
            loaded.append(plugin)

        ordered = sorted(loaded, key=lambda plugin: -plugin.priority)
        fragments = tuple(
            StyleFragment(plugin.name, plugin.priority, plugin.css)
            for plugin in ordered
            if plugin.css
        )
        return ResolvedPlugins(tuple(ordered), fragments, tuple(self._warnings))

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._warnings.append(message)

    def _validate_disabled(self, spec: PluginSpec) -> None:
        match spec.provenance:
            case Provenance.BUILTIN:
                self._builtin_module_name(spec)
            case Provenance.LOCAL:
                self._contained_path(spec)
            case _:
                pass

    def _contained_path(self, spec: PluginSpec) -> Path:
        resolved = (self.project_root / spec.locator).resolve()
        if not resolved.is_relative_to(self.project_root):
            msg = (
                f"Local plugin {spec.locator!r} resolves outside the project root "
                f"{self.project_root}."
            )
            raise PluginSecurityError(msg, locator=spec.locator)
        return resolved

    def _load_local(self, spec: PluginSpec) -> LoadedPlugin:
        path = self._contained_path(spec)
        if not path.is_file():
            msg = f"Local plugin file not found: {spec.locator}"
            raise PluginLoadError(msg, locator=spec.locator)
        if path.suffix != PLUGIN_SCRIPT_SUFFIX:
            msg = f"Local plugin must be a {PLUGIN_SCRIPT_SUFFIX} file: {spec.locator}"
            raise PluginLoadError(msg, locator=spec.locator)
        module = _exec_file_module(path, spec)
        return _wrap_module(module, spec, default_name=path.stem)

    def _load_package(self, spec: PluginSpec) -> LoadedPlugin:
        try:
            module = importlib.import_module(spec.locator)
        except Exception as exc:
            msg = f"Failed to import plugin package {spec.locator!r}: {exc}"
            raise PluginLoadError(msg, locator=spec.locator) from exc
        plugin = _wrap_module(module, spec, default_name=spec.locator)
        if spec.version:
            installed = _installed_version(spec.locator) or plugin.metadata.version
            _check_version(spec, installed)
        return plugin

    def _builtin_module_name(self, spec: PluginSpec) -> str:
        module_name = self.registry.get(spec.locator)
        if module_name is None:
            available = ", ".join(sorted(self.registry)) or "none"
            msg = (
                f"Unknown builtin plugin {spec.locator!r}; "
                f"available builtins: {available}."
            )
            raise PluginConfigError(msg, locator=spec.locator)
        return module_name

    def _load_builtin(self, spec: PluginSpec) -> LoadedPlugin:
        module = importlib.import_module(self._builtin_module_name(spec))
        plugin = _wrap_module(module, spec, default_name=spec.locator)
        if spec.version:
            _check_version(spec, plugin.metadata.version)
        return plugin

    def _load_remote(self, spec: PluginSpec) -> LoadedPlugin:
        payload = fetch_remote_source(
            spec.locator, session=self.session, timeout=self.timeout
        )
        if spec.integrity:
            verify_integrity(payload, spec.integrity, locator=spec.locator)
        else:
            self._warn(
                f"Remote plugin {spec.locator} has no integrity hash; "
                "its contents are not verified."
            )
        try:
            source = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Remote plugin {spec.locator} is not UTF-8 text."
            raise PluginLoadError(msg, locator=spec.locator) from exc
        module = types.ModuleType(_module_name_for(spec.locator))
        module.__file__ = spec.locator
        try:
            exec(compile(source, spec.locator, "exec"), module.__dict__)  # noqa: S102
        except Exception as exc:
            msg = f"Failed to execute remote plugin {spec.locator}: {exc}"
            raise PluginLoadError(msg, locator=spec.locator) from exc
        default_name = spec.locator.rstrip("/").rsplit("/", 1)[-1]
        return _wrap_module(
            module, spec, default_name=default_name.removesuffix(PLUGIN_SCRIPT_SUFFIX)
        )


def _module_name_for(key: str) -> str:
    return f"_pagedmd_plugin_{hash(key) & 0xFFFFFFFF:x}"


def _exec_file_module(path: Path, spec: PluginSpec) -> types.ModuleType:
    """Import a plugin file under a private module name."""
    module_name = _module_name_for(str(path))
    import_spec = importlib.util.spec_from_file_location(module_name, path)
    if import_spec is None or import_spec.loader is None:
        msg = f"Cannot import local plugin {spec.locator}"
        raise PluginLoadError(msg, locator=spec.locator)
    module = importlib.util.module_from_spec(import_spec)
    sys.modules[module_name] = module
    try:
        import_spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        msg = f"Failed to import local plugin {spec.locator}: {exc}"
        raise PluginLoadError(msg, locator=spec.locator) from exc
    return module


def _wrap_module(
    module: types.ModuleType, spec: PluginSpec, *, default_name: str
) -> LoadedPlugin:
    """Validate a plugin module's shape and wrap it.

    A plugin exposes a callable ``transform`` (or ``plugin``) and/or a ``css``
    string and/or ``extensions`` for Python-Markdown; ``metadata`` is
    optional.
    """
    transform = getattr(module, "transform", None) or getattr(module, "plugin", None)
    if transform is not None and not callable(transform):
        msg = f"Plugin {spec.locator} exposes a non-callable transform."
        raise PluginLoadError(msg, locator=spec.locator)

    css = getattr(module, "css", None)
    if css is not None and not isinstance(css, str):
        msg = f"Plugin {spec.locator} exposes css that is not a string."
        raise PluginLoadError(msg, locator=spec.locator)

    raw_extensions = getattr(module, "extensions", None) or ()
    if not isinstance(raw_extensions, list | tuple):
        msg = (
            f"Plugin {spec.locator} extensions must be a list of Markdown "
            "extensions."
        )
        raise PluginLoadError(msg, locator=spec.locator)
    extensions = tuple(raw_extensions)
    if not all(isinstance(extension, Extension) for extension in extensions):
        msg = f"Plugin {spec.locator} lists objects that are not Markdown extensions."
        raise PluginLoadError(msg, locator=spec.locator)

    if transform is None and not css and not extensions:
        msg = f"Plugin {spec.locator} provides no transform, css or extensions."
        raise PluginLoadError(msg, locator=spec.locator)

    raw_metadata = getattr(module, "metadata", None) or {}
    if not isinstance(raw_metadata, typ.Mapping):
        msg = f"Plugin {spec.locator} metadata must be a mapping."
        raise PluginLoadError(msg, locator=spec.locator)
    metadata = PluginMetadata(
        name=str(raw_metadata.get("name") or default_name),
        version=raw_metadata.get("version"),
        description=raw_metadata.get("description"),
    )
    return LoadedPlugin(
        spec=spec,
        metadata=metadata,
        transform=transform,
        css=css or None,
        extensions=extensions,
    )


def _installed_version(module_name: str) -> str | None:
    top_level = module_name.split(".", 1)[0]
    distributions = importlib.metadata.packages_distributions().get(top_level, [])
    for distribution in distributions:
        try:
            return importlib.metadata.version(distribution)
        except importlib.metadata.PackageNotFoundError:
            continue
    return None


def _check_version(spec: PluginSpec, installed: str | None) -> None:
    """Compare an installed version against a ``^``/``~`` prefixed constraint.

    The constraint's prefix marker is stripped and the installed version must
    start with what remains, so ``^1.2`` accepts ``1.2.7``.
    """
    wanted = (spec.version or "").lstrip("^~=v ")
    if not wanted:
        return
    if installed is None:
        msg = f"Cannot determine the installed version of plugin {spec.locator}."
        raise PluginLoadError(msg, locator=spec.locator)
    if not installed.startswith(wanted):
        msg = (
            f"Plugin {spec.locator} version {installed} does not satisfy "
            f"{spec.version}."
        )
        raise PluginLoadError(msg, locator=spec.locator)


def resolve_plugins(
    specs: typ.Iterable[PluginSpec],
    *,
    project_root: Path,
    strict: bool = False,
    session: requests.Session | None = None,
) -> ResolvedPlugins:
    """Resolve ``specs`` with a fresh :class:`PluginResolver`."""
    return PluginResolver(project_root, strict=strict, session=session).resolve(specs)


__all__ = ["PluginResolver", "resolve_plugins"]
