"""Helpers for rewriting text runs inside a rendered Markdown element tree."""

from __future__ import annotations

import re
import typing as typ
from xml.etree.ElementTree import Element, SubElement

SKIP_TAGS = frozenset({"code", "pre", "script", "style", "kbd"})

ElementBuilder = typ.Callable[[re.Match[str]], Element | None]


def span(class_name: str, text: str | None = None, **attrs: str) -> Element:
    """Return a ``<span>`` with ``class_name`` and optional text and attributes."""
    element = Element("span", {"class": class_name})
    for key, value in attrs.items():
        element.set(key.replace("_", "-"), value)
    element.text = text
    return element


def child_span(parent: Element, class_name: str, text: str) -> Element:
    """Append a text-only ``<span>`` to ``parent``."""
    element = SubElement(parent, "span", {"class": class_name})
    element.text = text
    return element


def replace_text(root: Element, pattern: re.Pattern[str], build: ElementBuilder) -> int:
    """Replace every ``pattern`` match in text runs below ``root``.

    ``build`` turns a match into a replacement element, or returns ``None`` to
    leave that match as plain text. Text inside code, pre and similar tags is
    never touched. Returns the number of replacements made.

    Examples
    --------
    >>> from xml.etree.ElementTree import fromstring, tostring
    >>> tree = fromstring("<p>roll 2d6 now</p>")
    >>> replace_text(tree, re.compile(r"\\dd\\d"), lambda m: span("dice", m[0]))
    1
    >>> tostring(tree, encoding="unicode")
    '<p>roll <span class="dice">2d6</span> now</p>'
    """
    if root.tag in SKIP_TAGS:
        return 0
    count = 0
    head, nodes = _split(root.text, pattern, build)
    root.text = head
    rebuilt = list(nodes)
    count += len(nodes)
    for child in list(root):
        count += replace_text(child, pattern, build)
        tail_head, tail_nodes = _split(child.tail, pattern, build)
        child.tail = tail_head
        rebuilt.append(child)
        rebuilt.extend(tail_nodes)
        count += len(tail_nodes)
    if count:
        root[:] = rebuilt
    return count


def _split(
    text: str | None, pattern: re.Pattern[str], build: ElementBuilder
) -> tuple[str | None, list[Element]]:
    """Split ``text`` into a leading string and replacement elements with tails."""
    if not text:
        return text, []
    head: str | None = None
    nodes: list[Element] = []
    cursor = 0
    for match in pattern.finditer(text):
        element = build(match)
        if element is None:
            continue
        segment = text[cursor : match.start()]
        if nodes:
            nodes[-1].tail = segment or None
        else:
            head = segment
        nodes.append(element)
        cursor = match.end()
    if not nodes:
        return text, []
    nodes[-1].tail = text[cursor:] or None
    return head or None, nodes


__all__ = ["SKIP_TAGS", "child_span", "replace_text", "span"]
