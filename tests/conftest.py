"""Shared fixtures for codehealth tests."""

import asyncio
from pathlib import Path

import pytest

from codehealth.core.config import CheckToggles, HealthConfig, WatcherConfig
from codehealth.models import HealthCheckResult, Issue, Severity
from codehealth.watcher import FileWatcher


@pytest.fixture
def make_issue():
    """Factory for issues with sensible defaults."""

    def _make(
        severity: Severity = Severity.WARNING,
        category: str = "Error Handling",
        file: str = "src/app.ts",
        line: int = 1,
        message: str = "Something is wrong",
        timestamp: float | None = None,
        detector: str = "bugs",
    ) -> Issue:
        kwargs = {
            "file": file,
            "line": line,
            "category": category,
            "message": message,
            "severity": severity,
            "detector": detector,
        }
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        return Issue(**kwargs)

    return _make


@pytest.fixture
def write_project(tmp_path):
    """Write a ``{relative_path: content}`` mapping below ``tmp_path``."""

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _write


def only_checks(*names: str) -> CheckToggles:
    """Toggles with exactly *names* enabled."""
    return CheckToggles(**{field: field in names for field in CheckToggles.model_fields})


@pytest.fixture
def config_for():
    """Build a configuration that runs only the given categories."""

    def _config(*names: str, **overrides) -> HealthConfig:
        return HealthConfig(checks=only_checks(*names), **overrides)

    return _config


class FakeBackend:
    """Watch backend fed by the test through a queue.

    Queueing an exception makes the watch stream fail with it.
    """

    def __init__(self, setup_error: Exception | None = None):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.setup_error = setup_error

    async def watch(self, root, stop_event):
        if self.setup_error is not None:
            raise self.setup_error
        while not stop_event.is_set():
            changes = await self.queue.get()
            if isinstance(changes, Exception):
                raise changes
            yield changes


class StubCheck:
    """Stands in for the baseline health check."""

    def __init__(self, result: HealthCheckResult | None = None, error: Exception | None = None):
        self.result = result
        self.error = error

    async def run(self) -> HealthCheckResult:
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def baseline_check():
    """Build a health check factory with a fixed baseline outcome."""

    def _baseline(score=100.0, issues=(), success=True, error=None):
        result = HealthCheckResult(success=success, health_score=score, details={"bugs": list(issues)})
        return lambda root, config: StubCheck(result, error)

    return _baseline


@pytest.fixture
def make_watcher(baseline_check):
    """Build a watcher with a fake backend and a short debounce."""

    def _make(root, debounce_ms=20, max_issues=1000, factory=None, backend=None) -> FileWatcher:
        config = HealthConfig(watcher=WatcherConfig(debounce_ms=debounce_ms, max_issues=max_issues))
        return FileWatcher(
            root,
            config=config,
            backend=backend or FakeBackend(),
            health_check_factory=factory or baseline_check(),
        )

    return _make
