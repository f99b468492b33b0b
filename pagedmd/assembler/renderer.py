"""Render Markdown content files to HTML with the plugin chain applied."""

from __future__ import annotations

import re
import typing as typ
from html import escape

from markdown import Markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from pygments.formatters.html import HtmlFormatter

from .models import AssemblyError

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from pagedmd.plugins.models import LoadedPlugin

CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+#.-]+)?[^\n]*\n(.*?)```", re.DOTALL)
FENCED_INDENT_PATTERN = re.compile(r"^[ ]{1,3}([`~]{3,})", re.MULTILINE)
FENCE_LABEL_PATTERN = re.compile(
    r"^([`~]{3,})([A-Za-z0-9_+#.-]+)?(,[^\r\n]+)$", re.MULTILINE
)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')

# After inline patterns (20), before attr_list (8), toc (5) and prettify.
PLUGIN_CHAIN_PRIORITY = 12


class PluginChainExtension(Extension):
    """Run each plugin's ``transform`` over the parsed tree, in order."""

    def __init__(self, plugins: typ.Sequence[LoadedPlugin]) -> None:
        super().__init__()
        self.plugins = tuple(plugins)

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the plugin-chain treeprocessor on the Markdown instance."""
        processor = PluginChainTreeprocessor(md, self.plugins)
        md.treeprocessors.register(
            processor, "pagedmd_plugin_chain", PLUGIN_CHAIN_PRIORITY
        )


class PluginChainTreeprocessor(Treeprocessor):
    """Apply plugin transforms to one document tree."""

    def __init__(self, md: Markdown, plugins: tuple[LoadedPlugin, ...]) -> None:
        super().__init__(md)
        self.plugins = plugins

    def run(self, root: Element) -> Element:
        """Pass ``root`` through every plugin transform, keeping replacements."""
        for plugin in self.plugins:
            if plugin.transform is None:
                continue
            try:
                replaced = plugin.transform(root, plugin.options)
            except Exception as exc:
                msg = f"Plugin {plugin.name} failed while transforming content: {exc}"
                raise AssemblyError(msg) from exc
            if replaced is not None:
                root = replaced
        return root


class MarkdownRenderer:
    """Render content files with consistent extensions and highlighting."""

    def __init__(
        self,
        plugins: typ.Sequence[LoadedPlugin] = (),
        pygments_style: str = "default",
    ) -> None:
        """Initialize a renderer for an ordered plugin list.

        Parameters
        ----------
        plugins : Sequence[LoadedPlugin], optional
            Plugins in execution order; their transforms run inside one
            treeprocessor and their Markdown extensions are registered in the
            same order.
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting.
        """
        self.plugins = tuple(plugins)
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def render(self, text: str) -> str:
        """Render markdown into HTML using the configured extensions."""
        normalized = self._normalize_fenced_blocks(text)
        if not normalized.strip():
            return ""
        extensions: list[Extension | str] = [
            "fenced_code",
            "codehilite",
            "tables",
            "sane_lists",
            "attr_list",
            "toc",
            PluginChainExtension(self.plugins),
        ]
        for plugin in self.plugins:
            extensions.extend(plugin.extensions)
        md = Markdown(
            extensions=extensions,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        html = md.convert(normalized)
        return self._annotate_codehilite(html, normalized)

    def _annotate_codehilite(self, html: str, source_markdown: str) -> str:
        """Attach language metadata to each highlighted block in converted markdown."""
        languages = [
            match.group(1) or "text"
            for match in CODE_BLOCK_PATTERN.finditer(source_markdown)
        ]
        if not languages:
            return html
        lang_iter = iter(languages)

        def _repl(match: re.Match[str]) -> str:
            lang = next(lang_iter, "text")
            return (
                f'<div class="codehilite" data-language="{escape(lang, quote=True)}">'
            )

        return CODEHILITE_OPEN_TAG.sub(_repl, html, len(languages))

    @staticmethod
    def _normalize_fenced_blocks(text: str) -> str:
        without_indent = FENCED_INDENT_PATTERN.sub(r"\1", text)

        def _strip_labels(match: re.Match[str]) -> str:
            fence, language, _extras = match.groups()
            label = language or ""
            return f"{fence}{label}"

        return FENCE_LABEL_PATTERN.sub(_strip_labels, without_indent)


__all__ = [
    "CODE_BLOCK_PATTERN",
    "MarkdownRenderer",
    "PluginChainExtension",
    "PluginChainTreeprocessor",
]
