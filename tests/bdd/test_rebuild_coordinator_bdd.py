"""Behaviour tests for rebuild coalescing in watch mode.

Timers and the filesystem watcher are replaced with in-memory doubles so the
scenarios drive the coordinator's state machine step by step.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from pagedmd.watch import ChangeEvent, CoordinatorState, RebuildCoordinator

FEATURE_FILE = (
    Path(__file__).resolve().parents[2] / "features" / "rebuild_coordinator.feature"
)
scenarios(FEATURE_FILE)


class _Timer:
    def __init__(self, interval: float, callback: typ.Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback

    def start(self) -> None:
        """Timers only fire when a step expires the window."""

    def cancel(self) -> None:
        """Stale callbacks are ignored by the coordinator itself."""


class _Watcher:
    def __init__(
        self, source_dir: Path, callback: typ.Callable[[ChangeEvent], None]
    ) -> None:
        self.source_dir = source_dir
        self.callback = callback

    def start(self) -> None: ...

    def stop(self) -> None: ...


@pytest.fixture
def scenario_state() -> dict[str, typ.Any]:
    return {"timers": [], "rebuilds": 0, "watchers": []}


def _coordinator(
    tmp_path: Path, scenario_state: dict[str, typ.Any], extra_changes: int
) -> RebuildCoordinator:
    def timer_factory(interval: float, callback: typ.Callable[[], None]) -> _Timer:
        timer = _Timer(interval, callback)
        scenario_state["timers"].append(timer)
        return timer

    def watcher_factory(
        source_dir: Path, callback: typ.Callable[[ChangeEvent], None]
    ) -> _Watcher:
        watcher = _Watcher(source_dir, callback)
        scenario_state["watchers"].append(watcher)
        return watcher

    def rebuild(source_dir: Path) -> None:
        scenario_state["rebuilds"] += 1
        if scenario_state["rebuilds"] == 1:
            _emit(scenario_state, source_dir, extra_changes)

    coordinator = RebuildCoordinator(
        tmp_path,
        rebuild,
        timer_factory=timer_factory,
        watcher_factory=watcher_factory,
    )
    coordinator.start()
    return coordinator


def _emit(scenario_state: dict[str, typ.Any], source_dir: Path, count: int) -> None:
    watcher = scenario_state["watchers"][-1]
    for index in range(count):
        watcher.callback(ChangeEvent(source_dir / f"chapter-{index}.md", "change"))


@given("a watched project")
def given_watched_project(
    tmp_path: Path, scenario_state: dict[str, typ.Any]
) -> None:
    scenario_state["coordinator"] = _coordinator(tmp_path, scenario_state, 0)


BUSY_PROJECT = "a watched project whose first rebuild sees {count:d} more changes"


@given(parsers.parse(BUSY_PROJECT))
def given_busy_project(
    tmp_path: Path, scenario_state: dict[str, typ.Any], count: int
) -> None:
    scenario_state["coordinator"] = _coordinator(tmp_path, scenario_state, count)


@when(parsers.parse("{count:d} files change within the debounce window"))
def when_files_change(
    tmp_path: Path, scenario_state: dict[str, typ.Any], count: int
) -> None:
    _emit(scenario_state, tmp_path, count)


@when("the debounce window expires")
def when_window_expires(scenario_state: dict[str, typ.Any]) -> None:
    scenario_state["timers"][-1].callback()


@then(
    parsers.re(r"the project is rebuilt (?P<count>\d+) times?"),
    converters={"count": int},
)
def then_rebuilt(scenario_state: dict[str, typ.Any], count: int) -> None:
    assert scenario_state["rebuilds"] == count


@then("the coordinator is idle")
def then_idle(scenario_state: dict[str, typ.Any]) -> None:
    coordinator = scenario_state["coordinator"]
    assert coordinator.state is CoordinatorState.IDLE
    assert not coordinator.watch_state.pending_changes
