"""Dimm City operations-manual notation.

District badges (``#TechD``, ``#EntD``, ``#CommD``, ``#MarketD``, ``#ArcD``,
``#Dark``, ``#TheDark``) become styled badges, "ROLL A DIE!" prompts are
highlighted, and ``specialty``, ``learning-path`` and ``aug`` fenced
containers are recognised.

Options: ``district_badges`` and ``roll_prompts`` (both default ``True``).
"""

from __future__ import annotations

import re
import typing as typ
from xml.etree.ElementTree import Element

from pagedmd.styles.bundled import read_bundled

from ._text import child_span, replace_text, span
from .containers import wrap_containers

metadata = {
    "name": "dimm-city",
    "version": "1.0.0",
    "description": "District badges, roll prompts and containers for Dimm City.",
}
css = read_bundled("plugins/dimm-city-components.css")

DISTRICTS = {
    "TechD": "Tech District",
    "EntD": "Entertainment District",
    "CommD": "Commercial District",
    "MarketD": "Market District",
    "ArcD": "Archive District",
    "TheDark": "The Dark",
    "Dark": "The Dark",
}
CONTAINER_NAMES = frozenset({"specialty", "learning-path", "aug"})
ROLL_PHRASES = ("ROLL A DIE!", "ROLL THE DIE", "ROLL A DIE")
ROLL_ICON = "\U0001f3b2"

DISTRICT_PATTERN = re.compile(
    r"(?:(?<=\s)|^)#(?P<code>" + "|".join(DISTRICTS) + r")(?!\w)"
)
ROLL_PATTERN = re.compile("|".join(re.escape(phrase) for phrase in ROLL_PHRASES))


def _district_badge(found: re.Match[str]) -> Element:
    code = found["code"]
    return span(
        f"district-badge district-{code.lower()}", code, title=DISTRICTS[code]
    )


def _roll_prompt(found: re.Match[str]) -> Element:
    prompt = span("roll-prompt", title="Time to roll!")
    child_span(prompt, "roll-icon", ROLL_ICON)
    child_span(prompt, "roll-text", found[0])
    return prompt


def transform(root: Element, options: typ.Mapping[str, typ.Any]) -> Element:
    """Apply Dimm City notation to a rendered content tree."""
    wrap_containers(root, CONTAINER_NAMES)
    if options.get("district_badges", True):
        replace_text(root, DISTRICT_PATTERN, _district_badge)
    if options.get("roll_prompts", True):
        replace_text(root, ROLL_PATTERN, _roll_prompt)
    return root


__all__ = ["css", "metadata", "transform"]
