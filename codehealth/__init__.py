"""Continuous code health monitoring for JavaScript and TypeScript projects."""

from .autofix import AutoFixer
from .core.config import HealthConfig, load_config
from .models import (
    FileFixResult,
    FixCandidate,
    HealthCheckResult,
    Issue,
    Severity,
    Trend,
    WatcherState,
    WatcherStatus,
)
from .orchestrator import HealthCheck
from .scoring import calculate_trend, incremental_score, score_categories
from .watcher import FileWatcher, WatcherHandle

__version__ = "0.1.0"

__all__ = [
    "AutoFixer",
    "FileFixResult",
    "FileWatcher",
    "FixCandidate",
    "HealthCheck",
    "HealthCheckResult",
    "HealthConfig",
    "Issue",
    "Severity",
    "Trend",
    "WatcherHandle",
    "WatcherState",
    "WatcherStatus",
    "calculate_trend",
    "incremental_score",
    "load_config",
    "score_categories",
]
