"""Incremental file watcher.

Keeps a live health score for a project tree. After a baseline batch check
the watcher listens for filesystem events, batches bursts of changes with a
debounce timer, re-analyses only the changed files with the fast-path
:class:`~codehealth.detectors.QuickDetector`, and recomputes the score once
per settled batch.

State machine::

    stopped -> starting -> running -> stopping -> stopped

Usage::

    watcher = FileWatcher("/path/to/project")
    await watcher.start()
    ...
    status = watcher.get_status()
    await watcher.stop()
"""

import asyncio
import contextlib
import logging
import os
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum
from pathlib import Path
from typing import Protocol

from watchfiles import Change, awatch

from .constants import BASELINE_FALLBACK_SCORE, MAX_SCORE, TOP_ISSUES_LIMIT
from .core.config import HealthConfig
from .core.exceptions import FileReadError, WatcherStartError, WatcherStateError
from .core.file_discovery import (
    DEFAULT_IGNORE_PATTERNS,
    find_source_files,
    read_source_file,
    should_ignore,
)
from .core.logging_config import get_event_logger
from .detectors import QuickDetector
from .models import Issue, Trend, WatcherState, WatcherStatus
from .orchestrator import HealthCheck
from .scoring import (
    calculate_trend,
    diff_issues,
    eviction_key,
    group_by_file,
    incremental_score,
)

logger = logging.getLogger(__name__)
event_logger = get_event_logger()


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


FileChange = tuple[ChangeKind, str]


class WatchBackend(Protocol):
    """Source of filesystem change batches."""

    def watch(self, root: Path, stop_event: asyncio.Event) -> AsyncIterator[list[FileChange]]:
        """Yield batches of changes below *root* until *stop_event* is set."""
        ...


_WATCHFILES_KINDS = {
    Change.added: ChangeKind.ADDED,
    Change.modified: ChangeKind.MODIFIED,
    Change.deleted: ChangeKind.DELETED,
}


class WatchfilesBackend:
    """Watch backend built on :func:`watchfiles.awatch`."""

    def __init__(self, debounce_ms: int = 50):
        # watchfiles groups raw OS events itself; keep its window short so
        # the watcher's own debounce decides when a batch settles
        self.debounce_ms = debounce_ms

    async def watch(self, root: Path, stop_event: asyncio.Event) -> AsyncIterator[list[FileChange]]:
        async for changes in awatch(root, stop_event=stop_event, debounce=self.debounce_ms):
            yield [(_WATCHFILES_KINDS[change], path) for change, path in changes]


class FileWatcher:
    """Live health monitor for one project tree.

    Args:
        root: Project root to watch.
        config: Configuration; defaults to :class:`HealthConfig`.
        backend: Watch backend; defaults to :class:`WatchfilesBackend`.
        health_check_factory: Builds the baseline check. Defaults to
            :class:`~codehealth.orchestrator.HealthCheck`.
    """

    def __init__(
        self,
        root: str | Path,
        config: HealthConfig | None = None,
        backend: WatchBackend | None = None,
        health_check_factory: Callable[[Path, HealthConfig], HealthCheck] | None = None,
    ):
        self.root = Path(root).resolve()
        self.config = config or HealthConfig()
        self.backend = backend or WatchfilesBackend()
        self.health_check_factory = health_check_factory or HealthCheck
        self.debounce_seconds = self.config.watcher.debounce_ms / 1000
        self.max_issues = self.config.watcher.max_issues
        self.extensions = tuple(self.config.watcher.extensions)
        self.ignore_patterns = (*DEFAULT_IGNORE_PATTERNS, *self.config.ignore)

        self.state = WatcherState.STOPPED
        self._issues: dict[str, list[Issue]] = {}
        self._pending: set[str] = set()
        self._timer: asyncio.TimerHandle | None = None
        self._lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._watch_task: asyncio.Task | None = None
        self._settle_tasks: set[asyncio.Task] = set()

        self.health_score = MAX_SCORE
        self.previous_score = MAX_SCORE
        self.checks_performed = 0
        self.files_watched = 0
        self.last_check_time: float | None = None

    @property
    def is_running(self) -> bool:
        return self.state is WatcherState.RUNNING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run the baseline check and begin watching.

        Calling ``start`` on a watcher that is not stopped does nothing.

        Raises:
            WatcherStartError: If the root cannot be watched. The watcher is
                left stopped.
        """
        if self.state is not WatcherState.STOPPED:
            logger.info(f"Watcher for {self.root} is already {self.state.value}")
            return

        self.state = WatcherState.STARTING
        try:
            self._validate_root()
            await self._run_baseline()
            self.files_watched = len(
                find_source_files(
                    self.root,
                    extensions=self.extensions,
                    ignore_patterns=self.config.ignore,
                    max_files=self.config.max_files,
                )
            )
            self._stop_event = asyncio.Event()
            self._watch_task = asyncio.create_task(self._consume_changes())
            await self._await_watch_ready()
        except WatcherStartError:
            await self._teardown()
            self.state = WatcherState.STOPPED
            raise
        except Exception as e:
            await self._teardown()
            self.state = WatcherState.STOPPED
            raise WatcherStartError(f"Failed to start watching {self.root}: {e}") from e

        self.state = WatcherState.RUNNING
        logger.info(f"Watching {self.files_watched} files in {self.root}")
        event_logger.info(
            "Watcher started",
            extra={
                "event": "watcher_started",
                "score": self.health_score,
                "issue_count": self.issue_count,
                "files": self.files_watched,
            },
        )

    async def stop(self) -> None:
        """Stop watching.

        Pending changes are discarded; a settle that is already running is
        allowed to finish.
        """
        if self.state is not WatcherState.RUNNING:
            return

        self.state = WatcherState.STOPPING
        await self._teardown()
        self.state = WatcherState.STOPPED
        logger.info(f"Stopped watching {self.root}")
        event_logger.info(
            "Watcher stopped",
            extra={"event": "watcher_stopped", "checks_performed": self.checks_performed},
        )

    def _release(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None

    async def _teardown(self) -> None:
        self._release()
        task, self._watch_task = self._watch_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _await_watch_ready(self) -> None:
        """Let the backend take its first step so setup errors surface here."""
        task = self._watch_task
        await asyncio.sleep(0)
        if task.done():
            error = None if task.cancelled() else task.exception()
            reason = error or "watch ended immediately"
            raise WatcherStartError(f"Failed to watch {self.root}: {reason}") from error
        task.add_done_callback(self._on_watch_done)

    def _on_watch_done(self, task: asyncio.Task) -> None:
        # Runs only when the backend dies on its own; stop() clears the task first.
        if task.cancelled():
            return
        error = task.exception()
        if task is not self._watch_task:
            return
        reason = str(error) if error is not None else "watch ended"
        logger.error(f"Watching {self.root} failed: {reason}")
        event_logger.error(
            "Watcher failed",
            extra={"event": "watcher_failed", "root": str(self.root), "error": reason},
        )
        self._release()
        self._watch_task = None
        self.state = WatcherState.STOPPED

    def _validate_root(self) -> None:
        if not self.root.exists():
            raise WatcherStartError(f"Watch root does not exist: {self.root}")
        if not self.root.is_dir():
            raise WatcherStartError(f"Watch root is not a directory: {self.root}")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise WatcherStartError(f"Watch root is not readable: {self.root}")

    async def _run_baseline(self) -> None:
        score = BASELINE_FALLBACK_SCORE
        issues: list[Issue] = []
        try:
            result = await self.health_check_factory(self.root, self.config).run()
            if result.success:
                score = result.health_score
                issues = [issue for group in result.details.values() for issue in group]
            else:
                logger.warning(f"Baseline check failed, using score {score:g}: {result.summary}")
        except Exception as e:
            logger.warning(f"Baseline check raised, using score {score:g}: {e}")

        self._issues = group_by_file(issues)
        self._enforce_ceiling()
        self.health_score = score
        self.previous_score = score

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def _consume_changes(self) -> None:
        stop_event = self._stop_event
        async for changes in self.backend.watch(self.root, stop_event):
            for kind, path in changes:
                if kind is ChangeKind.DELETED:
                    await self.on_file_deleted(path)
                else:
                    self.on_file_changed(path)

    def on_file_changed(self, path: str | Path) -> None:
        """Queue a changed or added file and re-arm the debounce timer."""
        if not self.is_running:
            return
        relative = self._relative(path)
        if relative is None:
            return

        self._pending.add(relative)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_settled)

    async def on_file_deleted(self, path: str | Path) -> None:
        """Drop a deleted file's issues and recompute immediately."""
        if not self.is_running:
            return
        relative = self._relative(path)
        if relative is None:
            return

        self._pending.discard(relative)
        async with self._lock:
            before = self.get_all_issues()
            self._issues.pop(relative, None)
            self._recompute()
            self._log_settle("file_deleted", [relative], before)

    def _on_settled(self) -> None:
        self._timer = None
        task = asyncio.create_task(self._process_pending())
        self._settle_tasks.add(task)
        task.add_done_callback(self._settle_tasks.discard)

    async def _process_pending(self) -> None:
        async with self._lock:
            files = sorted(self._pending)
            self._pending.clear()
            if not files:
                return

            before = self.get_all_issues()
            for relative in files:
                issues = await self._check_file(relative)
                if issues:
                    self._issues[relative] = issues
                else:
                    self._issues.pop(relative, None)
                self._enforce_ceiling()

            self.checks_performed += 1
            self.last_check_time = time.time()
            self._recompute()
            self._log_settle("files_checked", files, before)

    async def _check_file(self, relative: str) -> list[Issue]:
        try:
            content = await read_source_file(self.root / relative)
        except FileReadError as e:
            logger.warning(str(e))
            return []
        try:
            return QuickDetector().analyze(relative, content)
        except Exception as e:
            logger.warning(f"Quick checks failed on {relative}: {e}")
            return []

    def _relative(self, path: str | Path) -> str | None:
        """Root-relative posix path for a watched file, or ``None`` if not watched."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root)
            except ValueError:
                return None
        if not candidate.name.endswith(self.extensions):
            return None
        if should_ignore(candidate, self.ignore_patterns):
            return None
        return candidate.as_posix()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _enforce_ceiling(self) -> None:
        total = sum(len(issues) for issues in self._issues.values())
        if total <= self.max_issues:
            return
        kept = sorted(self.get_all_issues(), key=eviction_key)[: self.max_issues]
        self._issues = group_by_file(kept)
        logger.debug(f"Evicted {total - self.max_issues} low-priority issues")

    def _recompute(self) -> None:
        self.previous_score = self.health_score
        self.health_score = incremental_score(self.get_all_issues())

    def _log_settle(self, event: str, files: list[str], before: list[Issue]) -> None:
        introduced, resolved = diff_issues(before, self.get_all_issues())
        trend = self.trend
        logger.info(
            f"Health: {self.health_score:g}/100 ({trend.value}, "
            f"+{len(introduced)}/-{len(resolved)} issues)"
        )
        event_logger.info(
            "Watcher settle",
            extra={
                "event": event,
                "files": files,
                "score": self.health_score,
                "previous_score": self.previous_score,
                "trend": trend.value,
                "issue_count": self.issue_count,
                "introduced": len(introduced),
                "resolved": len(resolved),
                "checks_performed": self.checks_performed,
            },
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def trend(self) -> Trend:
        return calculate_trend(self.health_score, self.previous_score)

    @property
    def issue_count(self) -> int:
        return sum(len(issues) for issues in self._issues.values())

    def get_all_issues(self) -> list[Issue]:
        return [issue for issues in self._issues.values() for issue in issues]

    def get_status(self) -> WatcherStatus:
        top = sorted(self.get_all_issues(), key=eviction_key)[:TOP_ISSUES_LIMIT]
        return WatcherStatus(
            is_running=self.is_running,
            state=self.state,
            health_score=self.health_score,
            previous_score=self.previous_score,
            trend=self.trend,
            issue_count=self.issue_count,
            top_issues=top,
            last_check_time=self.last_check_time,
            files_watched=self.files_watched,
            checks_performed=self.checks_performed,
        )

    def reset(self) -> None:
        """Forget all issues and return the score to 100."""
        self._issues.clear()
        self.health_score = MAX_SCORE
        self.previous_score = MAX_SCORE
        self.checks_performed = 0


class WatcherHandle:
    """Caller-owned holder for the active :class:`FileWatcher`.

    Setting a new watcher replaces the previous one; stopping the replaced
    watcher is the caller's job.
    """

    def __init__(self) -> None:
        self._watcher: FileWatcher | None = None

    def set(self, watcher: FileWatcher) -> None:
        self._watcher = watcher

    def get(self) -> FileWatcher | None:
        return self._watcher

    def clear(self) -> None:
        self._watcher = None

    def require(self) -> FileWatcher:
        """Return the held watcher.

        Raises:
            WatcherStateError: If no watcher is held.
        """
        if self._watcher is None:
            raise WatcherStateError("No file watcher is active")
        return self._watcher
