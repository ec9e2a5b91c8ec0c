"""Batch health check orchestration.

Discovers source files once, reads each once, runs every enabled detector
family over them and turns the collected issues into a
:class:`~codehealth.models.HealthCheckResult`.

Usage::

    result = await HealthCheck("/path/to/project").run()
    print(result.health_score, result.recommendations)
"""

import logging
import time
from collections.abc import Callable, Mapping
from pathlib import Path

from .autofix import AutoFixer
from .core.config import HealthConfig, load_config
from .core.file_discovery import find_source_files, read_source_files
from .core.logging_config import get_event_logger
from .detectors import (
    AccessibilityDetector,
    BugDetector,
    BugDetectorAST,
    ComplexityDetector,
    ConsistencyDetector,
    DeadCodeDetector,
    Detector,
    ImportDetector,
    LargeFileDetector,
    NamingDetector,
    NextJSDetector,
    OutdatedPatternDetector,
    PerformanceDetector,
    ProjectDetector,
    TodoCommentDetector,
    check_directory_structure,
    check_package_health,
)
from .models import HealthCheckResult, Issue
from .scoring import build_recommendations, score_categories

logger = logging.getLogger(__name__)
event_logger = get_event_logger()

IMPORT_ORGANIZATION = "Import Organization"

# Per-file detector families, in reporting order
FILE_DETECTORS: dict[str, Callable[[], Detector]] = {
    "bugs": BugDetector,
    "performance": PerformanceDetector,
    "consistency": ConsistencyDetector,
    "imports": ImportDetector,
    "nextjs": NextJSDetector,
    "accessibility": AccessibilityDetector,
    "dead_code": DeadCodeDetector,
    "large_files": LargeFileDetector,
    "complexity": ComplexityDetector,
    "todo_comments": TodoCommentDetector,
    "outdated_patterns": OutdatedPatternDetector,
    "naming": NamingDetector,
}

PROJECT_CHECKS = ("package_health", "directory_structure")


class HealthCheck:
    """One batch health check over a project tree.

    Args:
        root: Project root directory.
        config: Configuration to use. When omitted, it is loaded from the
            project's ``.codehealth.toml`` or ``pyproject.toml`` at run time.
    """

    def __init__(self, root: str | Path, config: HealthConfig | None = None):
        self.root = Path(root)
        self.config = config

    async def run(self, auto_fix: bool = False) -> HealthCheckResult:
        """Run the check.

        Never raises; an unexpected failure produces a result with
        ``success=False`` and a score of 0.

        Args:
            auto_fix: Feed the findings into the auto-fixer and attach its
                results.
        """
        start = time.monotonic()
        try:
            return await self._run(start, auto_fix)
        except Exception as e:
            logger.exception(f"Health check of {self.root} failed")
            event_logger.error(
                "Health check failed",
                extra={"event": "health_check_failed", "error": str(e)},
            )
            return HealthCheckResult(
                success=False,
                health_score=0,
                summary=f"Health check failed: {e}",
                duration_ms=_elapsed_ms(start),
            )

    async def _run(self, start: float, auto_fix: bool) -> HealthCheckResult:
        config = self.config if self.config is not None else load_config(self.root)
        if not self.root.is_dir():
            raise NotADirectoryError(f"Not a directory: {self.root}")

        paths = find_source_files(
            self.root,
            extensions=config.watcher.extensions,
            ignore_patterns=config.ignore,
            max_files=config.max_files,
        )
        raw_contents = await read_source_files(paths)
        contents = {
            Path(path).relative_to(self.root).as_posix(): text
            for path, text in raw_contents.items()
        }
        logger.info(f"Analyzing {len(contents)} files in {self.root}")

        details: dict[str, list[Issue]] = {}
        for name in config.checks.enabled():
            if name in PROJECT_CHECKS:
                details[name] = self._run_project_check(name, config)
            else:
                details[name] = run_detector(self._make_detector(name, config), contents)

        breakdown = score_categories(details)
        score = breakdown.score
        duration_ms = _elapsed_ms(start)

        result = HealthCheckResult(
            success=True,
            health_score=score,
            recommendations=build_recommendations(details, breakdown),
            summary=f"Health check completed in {duration_ms:.0f}ms - Score: {score:g}/100",
            details=details,
            deductions=breakdown.deductions,
            files_analyzed=len(contents),
            duration_ms=duration_ms,
        )

        if score < config.thresholds.minimum:
            logger.warning(
                f"Health score {score:g} is below the minimum of {config.thresholds.minimum:g}"
            )

        if auto_fix:
            fixer = AutoFixer(
                dry_run=config.autofix.dry_run,
                min_confidence=config.autofix.min_confidence,
                root=self.root,
            )
            fix_input = dict(details)
            fix_input.update(self._fix_only_issues(config, contents))
            result.fixes = await fixer.fix_all(fix_input)
            logger.info(fixer.get_summary())

        event_logger.info(
            "Health check completed",
            extra={
                "event": "health_check",
                "score": score,
                "issue_count": result.issue_count,
                "files": len(contents),
                "duration_ms": duration_ms,
            },
        )
        return result

    def _make_detector(self, name: str, config: HealthConfig) -> Detector:
        if name == "bugs" and config.use_ast_bug_detector:
            return BugDetectorAST()
        return FILE_DETECTORS[name]()

    def _run_project_check(self, name: str, config: HealthConfig) -> list[Issue]:
        try:
            if name == "package_health":
                return check_package_health(self.root)
            return check_directory_structure(self.root, config.ignore)
        except Exception as e:
            logger.warning(f"Project check {name} failed: {e}")
            return []

    def _fix_only_issues(
        self, config: HealthConfig, contents: Mapping[str, str]
    ) -> dict[str, list[Issue]]:
        """Findings that are fixable but not part of the score under *config*."""
        extra: dict[str, list[Issue]] = {}
        if not config.checks.accessibility:
            extra["accessibility"] = run_detector(AccessibilityDetector(), contents)
        organization = [
            issue
            for issue in run_detector(ImportDetector(check_organization=True), contents)
            if issue.category == IMPORT_ORGANIZATION
        ]
        if organization:
            extra["import_organization"] = organization
        return extra


def run_detector(detector: Detector, contents: Mapping[str, str]) -> list[Issue]:
    """Run *detector* over every file in *contents* and return all its issues."""
    issues: list[Issue] = []

    if isinstance(detector, ProjectDetector):
        try:
            issues.extend(detector.analyze_codebase(contents))
        except Exception as e:
            logger.warning(f"{type(detector).__name__} codebase pass failed: {e}")

    for path, text in contents.items():
        try:
            issues.extend(detector.analyze(path, text))
        except Exception as e:
            logger.warning(f"{type(detector).__name__} failed on {path}: {e}")

    return issues


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)
