"""Access to the stylesheets bundled inside the package."""

from __future__ import annotations

from pathlib import Path

ASSETS_DIR = Path(__file__).parent / "assets"
FOUNDATION_FILES = (
    "foundation/variables.css",
    "foundation/reset.css",
    "foundation/typography.css",
    "foundation/layout.css",
    "foundation/components.css",
)


def bundled_path(relative: str) -> Path:
    """Return the path of a bundled asset given its ``/``-separated name."""
    return ASSETS_DIR.joinpath(*relative.strip("/").split("/"))


def read_bundled(relative: str) -> str:
    """Return the text of a bundled asset.

    Raises
    ------
    FileNotFoundError
        If no asset with that name ships with the package.
    """
    return bundled_path(relative).read_text(encoding="utf-8")


def foundation_css() -> str:
    """Return the foundation stylesheets concatenated in their fixed order."""
    return "\n".join(read_bundled(name).rstrip() + "\n" for name in FOUNDATION_FILES)


__all__ = [
    "ASSETS_DIR",
    "FOUNDATION_FILES",
    "bundled_path",
    "foundation_css",
    "read_bundled",
]
