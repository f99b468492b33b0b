"""Fenced block containers.

A paragraph reading ``::: name [title]`` opens a container and a paragraph
reading ``:::`` closes it; everything between is wrapped in
``<div class="container container-name">``. When the fence lines sit in the
same paragraph as the content (no blank lines), the paragraph itself is
unwrapped into the container.

Options: ``names`` restricts the accepted container names (default: any).
"""

from __future__ import annotations

import re
import typing as typ
from xml.etree.ElementTree import Element, SubElement

from pagedmd.styles.bundled import read_bundled

metadata = {
    "name": "containers",
    "version": "1.0.0",
    "description": "Generic ::: fenced block containers.",
}
css = read_bundled("plugins/containers-components.css")

OPEN_PATTERN = re.compile(
    r"^:{3,}[ \t]*(?P<name>[A-Za-z][\w-]*)[ \t]*(?P<title>[^\n]*)$"
)
CLOSE_PATTERN = re.compile(r"^:{3,}$")
INLINE_BLOCK_PATTERN = re.compile(
    r"^:{3,}[ \t]*(?P<name>[A-Za-z][\w-]*)[ \t]*(?P<title>[^\n]*)\n"
    r"(?P<body>.*)\n:{3,}$",
    re.DOTALL,
)


def _plain_text(element: Element) -> str | None:
    """Return the paragraph text when it has no inline children."""
    if element.tag != "p" or len(element) or element.text is None:
        return None
    return element.text.strip()


def _container(name: str, title: str) -> Element:
    div = Element("div", {"class": f"container container-{name}"})
    if title.strip():
        heading = SubElement(div, "p", {"class": "container-title"})
        heading.text = title.strip()
    return div


def _accepts(name: str, names: typ.Collection[str] | None) -> bool:
    return names is None or name in names


def wrap_containers(root: Element, names: typ.Collection[str] | None = None) -> int:
    """Wrap fenced container regions found among any element's children.

    Returns the number of containers created.
    """
    return sum(_wrap_children(parent, names) for parent in list(root.iter()))


def _wrap_children(parent: Element, names: typ.Collection[str] | None) -> int:
    children = list(parent)
    rebuilt: list[Element] = []
    created = 0
    index = 0
    while index < len(children):
        child = children[index]
        inline = (
            INLINE_BLOCK_PATTERN.match(child.text or "") if child.tag == "p" else None
        )
        if inline and _accepts(inline["name"], names):
            div = _container(inline["name"], inline["title"])
            child.text = inline["body"]
            div.tail, child.tail = child.tail, None
            div.append(child)
            rebuilt.append(div)
            created += 1
            index += 1
            continue
        text = _plain_text(child)
        opened = OPEN_PATTERN.match(text) if text else None
        close_at = _find_close(children, index + 1) if opened else None
        if opened and close_at is not None and _accepts(opened["name"], names):
            div = _container(opened["name"], opened["title"])
            div.extend(children[index + 1 : close_at])
            div.tail = children[close_at].tail
            created += 1 + _wrap_children(div, names)
            rebuilt.append(div)
            index = close_at + 1
            continue
        rebuilt.append(child)
        index += 1
    if created:
        parent[:] = rebuilt
    return created


def _find_close(children: list[Element], start: int) -> int | None:
    depth = 0
    for position in range(start, len(children)):
        text = _plain_text(children[position])
        if not text:
            continue
        if OPEN_PATTERN.match(text):
            depth += 1
        elif CLOSE_PATTERN.match(text):
            if depth == 0:
                return position
            depth -= 1
    return None


def transform(root: Element, options: typ.Mapping[str, typ.Any]) -> Element:
    """Wrap ``:::`` fenced regions in container divs."""
    names = options.get("names")
    wrap_containers(root, set(names) if names else None)
    return root


__all__ = ["css", "metadata", "transform", "wrap_containers"]
