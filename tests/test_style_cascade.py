from __future__ import annotations

from pathlib import Path

import pytest

from pagedmd.plugins import StyleFragment
from pagedmd.styles import (
    CascadeResolver,
    CircularImportError,
    ImportOutsideRootError,
    MissingStylesheetError,
    foundation_css,
    resolve_cascade,
    resolve_imports,
)


def _css(root: Path, name: str, body: str) -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_imports_are_inlined_with_markers(tmp_path: Path) -> None:
    _css(tmp_path, "styles/colors.css", ":root { --ink: #111; }\n")
    main = _css(
        tmp_path,
        "styles/book.css",
        '@import "colors.css";\nbody { color: var(--ink); }\n',
    )

    css = resolve_imports(main, project_root=tmp_path)

    assert css.startswith("/* From: styles/colors.css (colors.css) */")
    assert ":root { --ink: #111; }" in css
    assert "/* End: styles/colors.css */" in css
    assert "@import" not in css
    assert css.rstrip().endswith("body { color: var(--ink); }")


def test_nested_imports_follow_source_order(tmp_path: Path) -> None:
    _css(tmp_path, "base.css", ".base {}\n")
    _css(tmp_path, "mid.css", "@import url('base.css');\n.mid {}\n")
    _css(tmp_path, "extra.css", ".extra {}\n")
    main = _css(tmp_path, "main.css", '@import "mid.css";\n@import "extra.css";\n')

    css = resolve_imports(main, project_root=tmp_path)

    assert css.index(".base") < css.index(".mid") < css.index(".extra")


def test_diamond_imports_are_not_cycles(tmp_path: Path) -> None:
    _css(tmp_path, "shared.css", ".shared {}\n")
    _css(tmp_path, "left.css", '@import "shared.css";\n')
    _css(tmp_path, "right.css", '@import "shared.css";\n')
    main = _css(tmp_path, "main.css", '@import "left.css";\n@import "right.css";\n')

    css = resolve_imports(main, project_root=tmp_path)

    assert css.count(".shared {}") == 2


def test_cycle_reports_the_whole_chain(tmp_path: Path) -> None:
    a = _css(tmp_path, "A.css", '@import "B.css";\n')
    _css(tmp_path, "B.css", '@import "A.css";\n')

    with pytest.raises(CircularImportError) as excinfo:
        resolve_imports(a, project_root=tmp_path)

    assert excinfo.value.chain == ("A.css", "B.css", "A.css")
    assert str(excinfo.value) == "Circular import detected: A.css → B.css → A.css"


def test_self_import_is_a_cycle(tmp_path: Path) -> None:
    a = _css(tmp_path, "loop.css", '@import "loop.css";\n')

    with pytest.raises(CircularImportError, match="loop.css → loop.css"):
        resolve_imports(a, project_root=tmp_path)


def test_missing_import_is_dropped_with_warning(tmp_path: Path) -> None:
    main = _css(tmp_path, "main.css", '@import "gone.css";\n.main {}\n')
    resolver = CascadeResolver(tmp_path)

    css = resolver.resolve_file(main)

    assert "gone.css" not in css
    assert ".main {}" in css
    assert resolver.warnings == [
        "Stylesheet not found: gone.css (imported from main.css)"
    ]


def test_missing_import_is_fatal_in_strict_mode(tmp_path: Path) -> None:
    main = _css(tmp_path, "main.css", '@import "gone.css";\n')

    with pytest.raises(MissingStylesheetError, match="gone.css"):
        resolve_imports(main, project_root=tmp_path, strict=True)


def test_external_imports_are_kept_verbatim(tmp_path: Path) -> None:
    statement = '@import url("https://fonts.example.com/css?family=Inter");'
    main = _css(tmp_path, "main.css", f"{statement}\n.main {{}}\n")

    css = resolve_imports(main, project_root=tmp_path)

    assert statement in css


def test_flattening_is_idempotent(tmp_path: Path) -> None:
    _css(tmp_path, "base.css", ".base {}\n")
    _css(tmp_path, "print.css", "p { color: red; }\n")
    main = _css(
        tmp_path,
        "main.css",
        '@import "base.css";\n@import "print.css" print;\n'
        '@import url("https://fonts.example.com/inter.css");\n.main {}\n',
    )

    first = resolve_imports(main, project_root=tmp_path)
    flattened = _css(tmp_path, "flat.css", first)
    second = resolve_imports(flattened, project_root=tmp_path)

    assert second == first


def test_media_qualified_import_is_wrapped(tmp_path: Path) -> None:
    _css(tmp_path, "b.css", "p{color:red}\n")
    main = _css(tmp_path, "main.css", '@import "b.css" print;\nbody{}\n')

    css = resolve_imports(main, project_root=tmp_path)

    assert css == (
        "/* From: b.css (b.css) */\n"
        "@media print {\np{color:red}\n}\n"
        "/* End: b.css */\n"
        "body{}\n"
    )


def test_layer_qualified_import_is_kept_verbatim(tmp_path: Path) -> None:
    _css(tmp_path, "b.css", ".b {}\n")
    statement = '@import "b.css" layer(base);'
    main = _css(tmp_path, "main.css", f"{statement}\n")

    css = resolve_imports(main, project_root=tmp_path)

    assert css == f"{statement}\n"


def test_relative_import_outside_project_is_dropped(tmp_path: Path) -> None:
    project = tmp_path / "book"
    _css(tmp_path, "secret.css", "SECRET{}\n")
    main = _css(project, "main.css", '@import "../secret.css";\n.main {}\n')
    resolver = CascadeResolver(project)

    css = resolver.resolve_file(main)

    assert "SECRET" not in css
    assert ".main {}" in css
    assert resolver.warnings == [
        "Stylesheet import outside the project: ../secret.css "
        "(imported from main.css)"
    ]


def test_import_outside_project_is_fatal_in_strict_mode(tmp_path: Path) -> None:
    project = tmp_path / "book"
    _css(tmp_path, "secret.css", "SECRET{}\n")
    main = _css(project, "main.css", '@import "/../../../secret.css";\n')

    with pytest.raises(ImportOutsideRootError, match="secret.css"):
        resolve_imports(main, project_root=project, strict=True)


def test_root_relative_imports_use_bundled_styles(tmp_path: Path) -> None:
    main = _css(tmp_path, "main.css", '@import "/foundation/variables.css";\n')

    css = resolve_imports(main, project_root=tmp_path)

    assert "/* From: /foundation/variables.css" in css


def test_cascade_tier_order(tmp_path: Path) -> None:
    _css(tmp_path, "styles/custom.css", ".custom {}\n")
    fragments = [
        StyleFragment("ttrpg", 300, ".ttrpg {}"),
        StyleFragment("containers", 100, ".containers {}"),
    ]

    cascade = resolve_cascade(
        ["styles/custom.css"],
        fragments,
        project_root=tmp_path,
        highlight_css=".codehilite {}",
    )

    assert cascade.tiers() == ["foundation", "foundation", "plugin", "plugin", "custom"]
    assert cascade.chunks[0].css == foundation_css()
    assert [chunk.label for chunk in cascade.chunks[2:]] == [
        "ttrpg (priority 300)",
        "containers (priority 100)",
        "styles/custom.css",
    ]
    text = cascade.text
    assert text.index(".ttrpg {}") < text.index(".containers {}") < text.index(
        ".custom {}"
    )


def test_disabling_defaults_drops_foundation_tier(tmp_path: Path) -> None:
    cascade = resolve_cascade(
        [],
        [StyleFragment("ttrpg", 100, ".ttrpg {}")],
        project_root=tmp_path,
        disable_default_styles=True,
        highlight_css=".codehilite {}",
    )

    assert cascade.tiers() == ["plugin"]


def test_declared_bundled_theme_is_found(tmp_path: Path) -> None:
    cascade = resolve_cascade(
        ["themes/classic.css"], [], project_root=tmp_path, disable_default_styles=True
    )

    (chunk,) = cascade.chunks
    assert chunk.tier == "custom"
    assert chunk.label == "themes/classic.css"
    assert chunk.css.strip()


def test_project_stylesheet_shadows_bundled_one(tmp_path: Path) -> None:
    _css(tmp_path, "themes/classic.css", ".project-classic {}\n")

    cascade = resolve_cascade(
        ["themes/classic.css"], [], project_root=tmp_path, disable_default_styles=True
    )

    assert cascade.chunks[0].css == ".project-classic {}\n"


def test_missing_declared_stylesheet_warns(tmp_path: Path) -> None:
    cascade = resolve_cascade(
        ["styles/nope.css"], [], project_root=tmp_path, disable_default_styles=True
    )

    assert cascade.chunks == ()
    assert cascade.warnings == ("Stylesheet not found: styles/nope.css",)
