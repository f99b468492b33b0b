"""Tabletop RPG notation for rulebooks and adventure modules.

Recognised inline syntax:

- stat blocks ``{HP:12 DMG:3}``
- dice notation ``1d6``, ``2d10+5``, ``3d8-2``
- cross-references ``@[spell:Fireball]`` or ``@[Fireball]``
- trait and ability callouts ``::trait[Shadow Step]``, ``::ability[Umbral Strike]``
- challenge ratings ``CR:4``

Block-level callouts are blockquotes whose first line is ``[!note]``,
``[!tip]``, ``[!warning]``, ``[!danger]`` or ``[!info]`` with an optional title.

Options (all default ``True``): ``stat_blocks``, ``dice``,
``cross_references``, ``traits``, ``challenge_ratings``, ``callouts``.
"""

from __future__ import annotations

import re
import typing as typ
from xml.etree.ElementTree import Element, SubElement

from pagedmd.styles.bundled import read_bundled

from ._text import child_span, replace_text, span

metadata = {
    "name": "ttrpg",
    "version": "1.0.0",
    "description": "Stat blocks, dice, cross-references and callouts for TTRPG books.",
}
css = read_bundled("plugins/ttrpg-components.css")

INLINE_PATTERN = re.compile(
    r"(?P<stat>\{HP:[^{}\n]*\})"
    r"|(?P<trait>::(?P<trait_kind>trait|ability)\[(?P<trait_text>[^\]\n]+)\])"
    r"|(?P<xref>@\[(?P<xref_body>[^\]\n]+)\])"
    r"|(?<!\w)(?P<cr>CR:(?P<rating>\d+))"
    r"|(?<!\w)(?P<dice>(?P<count>\d+)d(?P<sides>\d+)(?P<modifier>[+-]\d+)?)(?!\w)"
)
CALLOUT_PATTERN = re.compile(
    r"^\s*\[!(?P<kind>note|tip|warning|danger|info)\][ \t]*(?P<title>[^\n]*)\n?",
    re.IGNORECASE,
)
TRAIT_ICONS = {"trait": "⚡", "ability": "\U0001f4ab"}
DICE_ICON = "\U0001f3b2"


def _difficulty(rating: int) -> str:
    if rating <= 3:
        return "easy"
    if rating <= 7:
        return "medium"
    if rating <= 12:
        return "hard"
    return "deadly"


def _stat_block(body: str) -> Element:
    block = span("stat-block")
    for part in body.split():
        label, _, value = part.partition(":")
        if label and value:
            item = SubElement(block, "span", {"class": "stat-item"})
            child_span(item, "stat-label", label)
            child_span(item, "stat-value", value)
    return block


def _cross_reference(body: str) -> Element:
    kind, sep, identifier = body.partition(":")
    if not sep:
        kind, identifier = "ref", body
    kind = kind.strip().lower()
    identifier = identifier.strip()
    anchor = re.sub(r"\s+", "-", identifier.lower())
    link = Element(
        "a",
        {
            "href": f"#{kind}-{anchor}",
            "class": f"xref xref-{kind}",
            "data-ref-type": kind,
            "data-ref-id": identifier,
            "title": f"See {kind}: {identifier}",
        },
    )
    link.text = identifier
    return link


def _inline_builder(options: typ.Mapping[str, typ.Any]):
    enabled = {
        "stat": options.get("stat_blocks", True),
        "trait": options.get("traits", True),
        "xref": options.get("cross_references", True),
        "cr": options.get("challenge_ratings", True),
        "dice": options.get("dice", True),
    }

    def build(found: re.Match[str]) -> Element | None:
        kind = _group_kind(found)
        if not enabled.get(kind, False):
            return None
        match kind:
            case "stat":
                return _stat_block(found["stat"][1:-1])
            case "trait":
                trait_kind = found["trait_kind"]
                element = span(f"callout callout-{trait_kind}")
                child_span(element, "callout-icon", TRAIT_ICONS[trait_kind])
                child_span(element, "callout-content", found["trait_text"])
                return element
            case "xref":
                return _cross_reference(found["xref_body"])
            case "cr":
                rating = found["rating"]
                element = span(
                    f"challenge-rating cr-{_difficulty(int(rating))}", data_cr=rating
                )
                child_span(element, "cr-label", "CR")
                child_span(element, "cr-value", rating)
                return element
            case _:
                formula = found["dice"]
                element = span(
                    "dice-notation", data_dice=formula, title=f"Roll {formula}"
                )
                child_span(element, "dice-icon", DICE_ICON)
                child_span(element, "dice-formula", formula)
                return element

    return build


def _group_kind(found: re.Match[str]) -> str:
    for kind in ("stat", "trait", "xref", "cr", "dice"):
        if found[kind] is not None:
            return kind
    return ""


def _convert_callouts(root: Element) -> None:
    for parent in list(root.iter()):
        for index, child in enumerate(list(parent)):
            if child.tag != "blockquote" or not len(child):
                continue
            first = child[0]
            if first.tag != "p" or not first.text:
                continue
            found = CALLOUT_PATTERN.match(first.text)
            if not found:
                continue
            kind = found["kind"].lower()
            title = found["title"].strip() or kind.capitalize()
            first.text = first.text[found.end() :] or None
            aside = Element("aside", {"class": f"callout callout-{kind}"})
            aside.tail = child.tail
            heading = SubElement(aside, "p", {"class": "callout-title"})
            heading.text = title
            body = SubElement(aside, "div", {"class": "callout-body"})
            for grandchild in list(child):
                if grandchild is first and not first.text and not len(first):
                    continue
                body.append(grandchild)
            parent[index] = aside


def transform(root: Element, options: typ.Mapping[str, typ.Any]) -> Element:
    """Apply TTRPG notation to a rendered content tree."""
    if options.get("callouts", True):
        _convert_callouts(root)
    replace_text(root, INLINE_PATTERN, _inline_builder(options))
    return root


__all__ = ["css", "metadata", "transform"]
