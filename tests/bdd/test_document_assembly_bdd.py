"""Behaviour tests for content ordering and missing content files.

Each scenario writes a throwaway project with a ``manifest.yaml`` and runs the
document assembler against it, so the manifest schema, configuration
resolution and file discovery are exercised together.

Usage
-----
Run ``pytest tests/bdd/test_document_assembly_bdd.py -v``.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from pagedmd.assembler import AssemblyError, DocumentAssembler
from pagedmd.config import load_manifest, resolve_config
from pagedmd.plugins import ResolvedPlugins

FEATURE_FILE = (
    Path(__file__).resolve().parents[2] / "features" / "document_assembly.feature"
)
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    return {}


def _write_manifest(project: Path, files: list[str]) -> None:
    listing = "\n".join(f"  - {name}" for name in files)
    (project / "manifest.yaml").write_text(
        f"title: T\nauthors:\n  - A\nfiles:\n{listing}\n", encoding="utf-8"
    )


TWO_FILES = (
    r'a project whose manifest lists "(?P<first>[^"]+)" then "(?P<second>[^"]+)"'
)


@given(parsers.re(TWO_FILES))
def given_two_files_listed(
    tmp_path: Path, scenario_state: dict[str, object], first: str, second: str
) -> None:
    _write_manifest(tmp_path, [first, second])
    scenario_state["project"] = tmp_path


@given(parsers.re(r'a project whose manifest lists "(?P<only>[^"]+)"$'))
def given_one_file_listed(
    tmp_path: Path, scenario_state: dict[str, object], only: str
) -> None:
    _write_manifest(tmp_path, [only])
    scenario_state["project"] = tmp_path


@given(parsers.parse('the content files "{first}" and "{second}" exist'))
def given_content_files(tmp_path: Path, first: str, second: str) -> None:
    for name in (first, second):
        (tmp_path / name).write_text(f"# {name}\n", encoding="utf-8")


@given(parsers.parse('the content file "{name}" exists'))
def given_content_file(tmp_path: Path, name: str) -> None:
    (tmp_path / name).write_text(f"# {name}\n", encoding="utf-8")


def _assemble(project: Path):
    config = resolve_config(None, load_manifest(project))
    return DocumentAssembler(config, ResolvedPlugins()).assemble(project)


@when("I assemble the project")
def when_assemble(scenario_state: dict[str, object]) -> None:
    project = typ.cast("Path", scenario_state["project"])
    scenario_state["document"] = _assemble(project)


@when("I try to assemble the project")
def when_try_assemble(scenario_state: dict[str, object]) -> None:
    with pytest.raises(AssemblyError) as excinfo:
        _assemble(typ.cast("Path", scenario_state["project"]))
    scenario_state["error"] = excinfo.value


@then(parsers.parse('the sections are "{first}" then "{second}"'))
def then_section_order(
    scenario_state: dict[str, object], first: str, second: str
) -> None:
    document = scenario_state["document"]
    assert document.slugs == [first, second]  # type: ignore[attr-defined]


@then(parsers.parse('assembly fails with "{message}"'))
def then_assembly_fails(scenario_state: dict[str, object], message: str) -> None:
    assert str(scenario_state["error"]) == message
