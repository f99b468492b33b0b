"""Write an assembled document to disk as a self-contained HTML artifact.

:class:`ArtifactWriter` renders the ``document.jinja`` template with the
assembled sections and style cascade and moves the result into place
atomically, so a preview server or PDF engine reading the output path sees
either the previous artifact or the complete new one, never a partial file.
A JSON sidecar next to the artifact records what went into it.

The writer expects templates under ``pagedmd/templates`` unless a custom
directory is provided. It relies on Jinja2 with autoescape enabled and
produces UTF-8 encoded files.
"""

from __future__ import annotations

import datetime as dt
import json
import os
import tempfile
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import BUILD_META_FILENAME

if typ.TYPE_CHECKING:
    from .assembler.models import AssembledDocument


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to a sibling temporary file, then replace ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


class ArtifactWriter:
    """Render :class:`AssembledDocument` values into HTML files."""

    def __init__(self, *, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("document.jinja")

    def render(self, document: AssembledDocument) -> str:
        """Return the complete HTML for ``document``."""
        html = self.template.render(document=document)
        if not html.endswith("\n"):
            html += "\n"
        return html

    def write(self, document: AssembledDocument, output_path: Path) -> Path:
        """Render ``document`` to ``output_path`` and write its metadata sidecar.

        Parameters
        ----------
        document : AssembledDocument
            Output of the document assembler.
        output_path : Path
            Destination HTML file; parent directories are created.

        Returns
        -------
        Path
            ``output_path``, for chaining into ``wrote ...`` messages.
        """
        _atomic_write(output_path, self.render(document))
        metadata = {
            "title": document.title,
            "sections": document.slugs,
            "styles": [
                {"tier": chunk.tier, "label": chunk.label}
                for chunk in document.merged_styles
            ],
            "plugins": list(document.plugins),
            "warnings": list(document.warnings),
            "generated_at": dt.datetime.now(dt.UTC).isoformat(),
        }
        _atomic_write(
            output_path.parent / BUILD_META_FILENAME, json.dumps(metadata, indent=2)
        )
        return output_path


__all__ = ["ArtifactWriter"]
