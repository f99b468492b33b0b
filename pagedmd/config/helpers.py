"""Utility helpers shared by the manifest loader and configuration resolver."""

from __future__ import annotations

import posixpath
import typing as typ
from urllib.parse import urlsplit

from pagedmd._constants import MAX_PLUGIN_PRIORITY, MIN_PLUGIN_PRIORITY
from pagedmd.plugins.models import Provenance
from pagedmd.plugins.specs import classify_plugin_entry

from .models import ManifestIssue

PLUGIN_TYPES = ("local", "package", "builtin", "remote")
PLUGIN_FIELDS = frozenset({
    "type",
    "path",
    "name",
    "version",
    "url",
    "integrity",
    "enabled",
    "options",
    "priority",
})


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_contained_relative(path: str) -> bool:
    """Return True when ``path`` is relative and stays below its base directory.

    Examples
    --------
    >>> _is_contained_relative("styles/book.css")
    True
    >>> _is_contained_relative("styles/../../secret.css")
    False
    """
    if not path or path.startswith(("/", "\\")) or ":" in path.split("/", 1)[0]:
        return False
    normalized = posixpath.normpath(path.replace("\\", "/"))
    return normalized != ".." and not normalized.startswith("../")


class _IssueCollector:
    """Accumulate manifest issues so every violation is reported at once."""

    def __init__(self) -> None:
        self.issues: list[ManifestIssue] = []

    def add(self, field: str, message: str) -> None:
        self.issues.append(ManifestIssue(field, message))

    def required_str(self, raw: typ.Mapping[str, typ.Any], key: str) -> str:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            self.add(key, "must be a non-empty string")
            return ""
        return value.strip()

    def optional_str(
        self, raw: typ.Mapping[str, typ.Any], key: str, field: str
    ) -> str | None:
        value = raw.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            self.add(field, "must be a string")
            return None
        return _optional_str(value)

    def optional_bool(
        self, raw: typ.Mapping[str, typ.Any], key: str, field: str, *, default: bool
    ) -> bool:
        value = raw.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            self.add(field, "must be a boolean")
            return default
        return value

    def string_list(
        self,
        value: object,
        field: str,
        *,
        relative_paths: bool = False,
        min_items: int = 0,
    ) -> list[str]:
        if not isinstance(value, list):
            self.add(field, "must be a list")
            return []
        items: list[str] = []
        for index, item in enumerate(value):
            item_field = f"{field}.{index}"
            if not isinstance(item, str) or not item.strip():
                self.add(item_field, "must be a non-empty string")
                continue
            if relative_paths and not _is_contained_relative(item.strip()):
                self.add(item_field, "must be a relative path without '..'")
                continue
            items.append(item.strip())
        if len(value) < min_items:
            self.add(field, f"must contain at least {min_items} item(s)")
        return items

    def plugin_entry(
        self, entry: object, field: str
    ) -> str | dict[str, typ.Any] | None:
        match entry:
            case str() if entry.strip():
                text = entry.strip()
                local = classify_plugin_entry(text) is Provenance.LOCAL
                if local and not _is_contained_relative(text):
                    self.add(field, "must be a relative path without '..'")
                    return None
                return text
            case dict():
                return self._plugin_object(entry, field)
            case _:
                self.add(field, "must be a non-empty string or a mapping")
                return None

    def _plugin_object(
        self, entry: dict[str, typ.Any], field: str
    ) -> dict[str, typ.Any] | None:
        before = len(self.issues)
        unknown = sorted(set(map(str, entry)) - PLUGIN_FIELDS)
        if unknown:
            self.add(field, f"unknown key(s): {', '.join(unknown)}")
        plugin_type = entry.get("type")
        if plugin_type is not None and plugin_type not in PLUGIN_TYPES:
            self.add(f"{field}.type", f"must be one of {', '.join(PLUGIN_TYPES)}")
        for key in ("path", "name", "version", "url", "integrity"):
            self.optional_str(entry, key, f"{field}.{key}")
        path = entry.get("path")
        if isinstance(path, str) and not _is_contained_relative(path.strip()):
            self.add(f"{field}.path", "must be a relative path without '..'")
        url = entry.get("url")
        if isinstance(url, str) and urlsplit(url).scheme not in ("http", "https"):
            self.add(f"{field}.url", "must be an http(s) URL")
        locators = [_optional_str(entry.get(key)) for key in ("path", "name", "url")]
        if not any(locators):
            self.add(field, "must declare one of 'path', 'name' or 'url'")
        self.optional_bool(entry, "enabled", f"{field}.enabled", default=True)
        options = entry.get("options")
        if options is not None and not isinstance(options, dict):
            self.add(f"{field}.options", "must be a mapping")
        priority = entry.get("priority")
        if priority is not None and (
            isinstance(priority, bool)
            or not isinstance(priority, int)
            or not MIN_PLUGIN_PRIORITY <= priority <= MAX_PLUGIN_PRIORITY
        ):
            self.add(
                f"{field}.priority",
                f"must be an integer between {MIN_PLUGIN_PRIORITY} "
                f"and {MAX_PLUGIN_PRIORITY}",
            )
        if len(self.issues) != before:
            return None
        return dict(entry)


__all__ = [
    "PLUGIN_TYPES",
    "_IssueCollector",
    "_is_contained_relative",
    "_optional_str",
]
