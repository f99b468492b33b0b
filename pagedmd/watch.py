"""Debounced, single-flight rebuilds driven by filesystem changes.

:class:`RebuildCoordinator` owns the only mutable state shared between
watchdog callbacks and debounce timers. Every transition goes through
:meth:`RebuildCoordinator.on_change` or the rebuild completion handler, under
one lock:

``IDLE``/``DEBOUNCING`` + change
    (re)start the debounce window, state becomes ``DEBOUNCING``.
``DEBOUNCING`` + window expiry
    run the rebuild, state becomes ``REBUILDING``.
``REBUILDING`` + change
    record it; the running rebuild is never pre-empted.
``REBUILDING`` completion
    ``DEBOUNCING`` once more if anything was recorded, otherwise ``IDLE``.

Only one rebuild runs at a time, and the artifact always ends up reflecting
the latest state of the project.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import functools
import logging
import os
import threading
import typing as typ
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ._constants import (
    DEBOUNCE_SECONDS,
    DEFAULT_OUTPUT_DIRNAME,
    FAILURE_BACKOFF_SECONDS,
    WATCHED_SUFFIXES,
)

if typ.TYPE_CHECKING:
    from watchdog.events import FileSystemEvent

logger = logging.getLogger(__name__)

ChangeKind = typ.Literal["add", "change", "remove"]


class TimerHandle(typ.Protocol):
    """The part of :class:`threading.Timer` the coordinator relies on."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = typ.Callable[[float, typ.Callable[[], None]], TimerHandle]


class Watcher(typ.Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


WatcherFactory = typ.Callable[[Path, typ.Callable[["ChangeEvent"], None]], Watcher]


class CoordinatorState(enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    REBUILDING = "rebuilding"


@dc.dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A filesystem change relevant to the build."""

    path: Path
    kind: ChangeKind


@dc.dataclass(slots=True)
class WatchState:
    """Mutable coordinator state; only touched while holding its lock."""

    state: CoordinatorState = CoordinatorState.IDLE
    pending_changes: set[Path] = dc.field(default_factory=set)
    debounce_timer: TimerHandle | None = None
    follow_up_queued: bool = False
    switching: bool = False
    stopped: bool = False
    generation: int = 0
    consecutive_failures: int = 0

    @property
    def rebuild_in_flight(self) -> bool:
        return self.state is CoordinatorState.REBUILDING


class RebuildCoordinator:
    """Run ``rebuild`` after bursts of changes under ``source_dir`` settle.

    Parameters
    ----------
    source_dir : Path
        Project directory being watched.
    rebuild : Callable[[Path], object]
        Full pipeline run for a project directory. Exceptions are logged and
        leave the previous artifact in place.
    debounce : float, optional
        Seconds without changes before a rebuild starts.
    timer_factory : Callable, optional
        Creates debounce timers; :class:`threading.Timer` by default.
    watcher_factory : Callable, optional
        Creates the filesystem watcher; :class:`ProjectWatcher` by default.
    """

    def __init__(
        self,
        source_dir: Path,
        rebuild: typ.Callable[[Path], object],
        *,
        debounce: float = DEBOUNCE_SECONDS,
        timer_factory: TimerFactory = threading.Timer,
        watcher_factory: WatcherFactory | None = None,
    ) -> None:
        self.source_dir = source_dir
        self.rebuild = rebuild
        self.debounce = debounce
        self.timer_factory = timer_factory
        self.watcher_factory = watcher_factory or ProjectWatcher
        self.watch_state = WatchState()
        self.rebuild_count = 0
        self._lock = threading.Lock()
        self._settled = threading.Condition(self._lock)
        self._watcher: Watcher | None = None

    @property
    def state(self) -> CoordinatorState:
        return self.watch_state.state

    def start(self) -> None:
        """Begin watching ``source_dir``."""
        with self._lock:
            self.watch_state.stopped = False
            self._watcher = self.watcher_factory(self.source_dir, self.on_change)
        self._watcher.start()
        logger.info("watching %s for changes", self.source_dir)

    def stop(self) -> None:
        """Cancel any pending rebuild and stop watching."""
        with self._lock:
            state = self.watch_state
            state.stopped = True
            self._cancel_timer()
            state.pending_changes.clear()
            state.follow_up_queued = False
            if state.state is CoordinatorState.DEBOUNCING:
                state.state = CoordinatorState.IDLE
            self._settled.notify_all()
            watcher, self._watcher = self._watcher, None
        # Stopping joins the observer thread, which may be waiting on the lock.
        if watcher is not None:
            watcher.stop()

    def on_change(self, event: ChangeEvent) -> None:
        """Record ``event`` and (re)start the debounce window when possible."""
        with self._lock:
            state = self.watch_state
            if state.stopped or state.switching:
                return
            state.pending_changes.add(event.path)
            logger.debug("%s: %s", event.kind, event.path)
            if state.rebuild_in_flight:
                state.follow_up_queued = True
                return
            self._arm_timer()

    def switch_source(self, source_dir: Path) -> bool:
        """Watch ``source_dir`` instead, rebuilding it synchronously first.

        Any pending debounce is cancelled and an in-flight rebuild is allowed
        to finish before the switch. Returns whether the rebuild succeeded.
        """
        with self._lock:
            state = self.watch_state
            state.switching = True
            self._cancel_timer()
            state.pending_changes.clear()
            state.follow_up_queued = False
            self._settled.wait_for(lambda: not state.rebuild_in_flight)
            state.state = CoordinatorState.REBUILDING
            watcher, self._watcher = self._watcher, None

        if watcher is not None:
            watcher.stop()
        self.source_dir = source_dir
        logger.info("switching to %s", source_dir)
        succeeded = self._run_rebuild(source_dir)

        with self._lock:
            state.state = CoordinatorState.IDLE
            state.switching = False
            self._record_outcome(succeeded=succeeded)
            rearm = not state.stopped
            if rearm:
                self._watcher = self.watcher_factory(source_dir, self.on_change)
                watcher = self._watcher
            self._settled.notify_all()
        if rearm and watcher is not None:
            watcher.start()
        return succeeded

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until no rebuild is pending or running."""
        with self._lock:
            return self._settled.wait_for(
                lambda: self.watch_state.state is CoordinatorState.IDLE, timeout
            )

    def current_delay(self) -> float:
        """Return the debounce window, stretched after consecutive failures."""
        failures = self.watch_state.consecutive_failures
        if not failures:
            return self.debounce
        backoff = FAILURE_BACKOFF_SECONDS[
            min(failures, len(FAILURE_BACKOFF_SECONDS)) - 1
        ]
        return max(self.debounce, backoff)

    def _arm_timer(self) -> None:
        state = self.watch_state
        self._cancel_timer()
        state.generation += 1
        timer = self.timer_factory(
            self.current_delay(), functools.partial(self._on_timer, state.generation)
        )
        state.debounce_timer = timer
        state.state = CoordinatorState.DEBOUNCING
        timer.start()

    def _cancel_timer(self) -> None:
        state = self.watch_state
        if state.debounce_timer is not None:
            state.debounce_timer.cancel()
            state.debounce_timer = None
        # Invalidates callbacks from timers that already began firing.
        state.generation += 1

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            state = self.watch_state
            if (
                generation != state.generation
                or state.state is not CoordinatorState.DEBOUNCING
                or state.stopped
            ):
                return
            state.debounce_timer = None
            state.state = CoordinatorState.REBUILDING
            changed = sorted(state.pending_changes)
            state.pending_changes.clear()
            source_dir = self.source_dir
        logger.info("rebuilding after %d change(s)", len(changed))
        succeeded = self._run_rebuild(source_dir)
        self._on_rebuild_complete(succeeded=succeeded)

    def _on_rebuild_complete(self, *, succeeded: bool) -> None:
        with self._lock:
            state = self.watch_state
            self._record_outcome(succeeded=succeeded)
            state.state = CoordinatorState.IDLE
            if state.follow_up_queued and not (state.stopped or state.switching):
                state.follow_up_queued = False
                self._arm_timer()
            self._settled.notify_all()

    def _record_outcome(self, *, succeeded: bool) -> None:
        state = self.watch_state
        if succeeded:
            state.consecutive_failures = 0
        else:
            state.consecutive_failures += 1

    def _run_rebuild(self, source_dir: Path) -> bool:
        self.rebuild_count += 1
        try:
            self.rebuild(source_dir)
        except Exception:
            logger.exception("rebuild of %s failed; keeping last output", source_dir)
            return False
        return True


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: ProjectWatcher) -> None:
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.dispatch(event.src_path, "add", is_directory=event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self.watcher.dispatch(event.src_path, "change", is_directory=event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.dispatch(event.src_path, "remove", is_directory=event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self.watcher.dispatch(event.src_path, "remove", is_directory=event.is_directory)
        self.watcher.dispatch(event.dest_path, "add", is_directory=event.is_directory)


class ProjectWatcher:
    """Report changes to project files under ``source_dir``.

    Hidden paths and anything under the build output directory are dropped,
    as are files whose suffix the build never reads.
    """

    def __init__(
        self,
        source_dir: Path,
        callback: typ.Callable[[ChangeEvent], None],
        *,
        ignored_dirs: typ.Iterable[str] = (DEFAULT_OUTPUT_DIRNAME,),
    ) -> None:
        self.source_dir = source_dir.resolve()
        self.callback = callback
        self.ignored_dirs = frozenset(ignored_dirs)
        self._observer: typ.Any = None

    def is_relevant(self, path: Path) -> bool:
        """Return whether a change to ``path`` should trigger a rebuild."""
        try:
            relative = path.resolve().relative_to(self.source_dir)
        except ValueError:
            return False
        parts = relative.parts
        if not parts or any(part.startswith(".") for part in parts):
            return False
        if parts[0] in self.ignored_dirs:
            return False
        return path.suffix.lower() in WATCHED_SUFFIXES

    def dispatch(
        self, raw_path: str | bytes, kind: ChangeKind, *, is_directory: bool
    ) -> None:
        if is_directory or not raw_path:
            return
        path = Path(os.fsdecode(raw_path))
        if self.is_relevant(path):
            self.callback(ChangeEvent(path=path, kind=kind))

    def start(self) -> None:
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.source_dir), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join()


__all__ = [
    "ChangeEvent",
    "CoordinatorState",
    "ProjectWatcher",
    "RebuildCoordinator",
    "TimerHandle",
    "WatchState",
]
