"""Service facade over the health check, auto-fixer and file watcher.

Renders results as markdown (or JSON) for the MCP tools in
:mod:`codehealth.server`. Errors are raised as
:class:`~codehealth.core.exceptions.CodeHealthError` subclasses and turned
into messages by the caller.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .core.config import HealthConfig, load_config
from .models import FileFixResult, HealthCheckResult, Issue, WatcherStatus
from .orchestrator import HealthCheck
from .watcher import FileWatcher, WatcherHandle

logger = logging.getLogger(__name__)

_TREND_ICONS = {"improving": "↑", "declining": "↓", "stable": "→"}


class HealthService:
    """Entry points used by the MCP server.

    Args:
        handle: Holder for the active watcher. A new one is created when
            omitted.
        watcher_factory: Builds a watcher for a root and configuration.
    """

    def __init__(
        self,
        handle: WatcherHandle | None = None,
        watcher_factory: Callable[[Path, HealthConfig], FileWatcher] | None = None,
    ):
        self.handle = handle or WatcherHandle()
        self.watcher_factory = watcher_factory or (lambda root, config: FileWatcher(root, config))

    async def check(
        self,
        path: str,
        auto_fix: bool | None = None,
        output_format: str = "markdown",
    ) -> str:
        """Run a batch health check on *path*.

        Raises:
            InvalidConfigError: If the project's configuration is invalid.
        """
        root = Path(path)
        config = load_config(root)
        if auto_fix is None:
            auto_fix = config.autofix.enabled

        result = await HealthCheck(root, config).run(auto_fix=auto_fix)
        if output_format == "json":
            return json.dumps(result.to_report(), indent=2)
        return format_health_report(root, result, config)

    async def fix(
        self,
        path: str,
        dry_run: bool = True,
        min_confidence: int | None = None,
    ) -> str:
        """Run a health check and apply fixes at or above *min_confidence*."""
        root = Path(path)
        config = load_config(root)
        autofix = config.autofix.model_copy(
            update={
                "dry_run": dry_run,
                "min_confidence": min_confidence if min_confidence is not None else config.autofix.min_confidence,
            }
        )
        config = config.model_copy(update={"autofix": autofix})

        result = await HealthCheck(root, config).run(auto_fix=True)
        if not result.success:
            return result.summary
        return format_fix_report(result.fixes, dry_run=dry_run, min_confidence=autofix.min_confidence)

    async def watch_start(self, path: str) -> str:
        """Start watching *path*, replacing any watcher already held.

        Raises:
            WatcherStartError: If the watcher cannot start.
        """
        root = Path(path)
        config = load_config(root)

        previous = self.handle.get()
        if previous is not None:
            logger.info(f"Replacing watcher for {previous.root}")
            await previous.stop()
            self.handle.clear()

        watcher = self.watcher_factory(root, config)
        await watcher.start()
        self.handle.set(watcher)
        return format_watcher_status(watcher.root, watcher.get_status(), title="File Watcher Started")

    async def watch_stop(self) -> str:
        """Stop the active watcher.

        Raises:
            WatcherStateError: If no watcher is active.
        """
        watcher = self.handle.require()
        await watcher.stop()
        status = watcher.get_status()
        self.handle.clear()
        return (
            f"Stopped watching {watcher.root} after {status.checks_performed} checks. "
            f"Final score: {status.health_score:g}/100"
        )

    def live_status(self, output_format: str = "markdown") -> str:
        """Report the active watcher's status.

        Raises:
            WatcherStateError: If no watcher is active.
        """
        watcher = self.handle.require()
        status = watcher.get_status()
        if output_format == "json":
            return status.model_dump_json(by_alias=True, indent=2)
        return format_watcher_status(watcher.root, status)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _issue_line(issue: Issue) -> str:
    location = f"{issue.file}:{issue.line}" if issue.line else issue.file
    return f"- [{issue.severity.value}] {location}: {issue.message}"


def format_health_report(root: Path, result: HealthCheckResult, config: HealthConfig) -> str:
    if not result.success:
        return result.summary

    minimum = config.thresholds.minimum
    target = config.thresholds.target
    if result.health_score >= target:
        status = "Healthy"
    elif result.health_score >= minimum:
        status = "Acceptable"
    else:
        status = "Below minimum"

    lines = [
        f"# Code Health Report: {root}",
        "",
        "## Summary",
        f"- Score: {result.health_score:g}/100 ({status}; target {target:g}, minimum {minimum:g})",
        f"- Files analyzed: {result.files_analyzed}",
        f"- Issues found: {result.issue_count}",
        f"- {result.summary}",
        "",
    ]

    deductions = {name: value for name, value in result.deductions.items() if value > 0}
    if deductions:
        lines.append("## Deductions")
        for name, value in sorted(deductions.items(), key=lambda item: -item[1]):
            lines.append(f"- {name}: -{value:g}")
        lines.append("")

    if result.recommendations:
        lines.append("## Recommendations")
        lines.extend(f"- {line}" for line in result.recommendations)
        lines.append("")

    all_issues = [issue for issues in result.details.values() for issue in issues]
    if all_issues:
        top = sorted(all_issues, key=lambda issue: (issue.severity.rank, issue.file, issue.line))[:10]
        lines.append("## Top Issues")
        lines.extend(_issue_line(issue) for issue in top)
        if len(all_issues) > len(top):
            lines.append(f"  ... and {len(all_issues) - len(top)} more")
        lines.append("")

    if result.fixes:
        lines.append(format_fix_report(result.fixes, dry_run=False, min_confidence=None))

    return "\n".join(lines).rstrip() + "\n"


def format_fix_report(
    fixes: list[FileFixResult], dry_run: bool, min_confidence: int | None
) -> str:
    applied = sum(fix.fixes_applied for fix in fixes)
    skipped = sum(len(fix.skipped) for fix in fixes)
    verb = "Would apply" if dry_run else "Applied"

    lines = ["## Auto-Fix" + (" (dry run)" if dry_run else "")]
    if min_confidence is not None:
        lines.append(f"- Minimum confidence: {min_confidence}")
    lines.append(f"- {verb} {applied} fixes in {sum(1 for f in fixes if f.fixes_applied)} files")
    lines.append(f"- Skipped {skipped} low-confidence fixes")

    for fix in fixes:
        lines.append("")
        lines.append(f"### {fix.file}")
        for change in fix.changes:
            lines.append(f"- {change.description} (confidence {change.confidence})")
        for candidate in fix.skipped:
            lines.append(f"- Skipped: {candidate.description} (confidence {candidate.confidence})")

    return "\n".join(lines)


def format_watcher_status(root: Path, status: WatcherStatus, title: str = "Live Health Status") -> str:
    icon = _TREND_ICONS[status.trend.value]
    last_check = (
        datetime.fromtimestamp(status.last_check_time).strftime("%H:%M:%S")
        if status.last_check_time
        else "never"
    )
    lines = [
        f"# {title}: {root}",
        "",
        f"- State: {status.state.value}",
        f"- Health: {status.health_score:g}/100 {icon} (previous {status.previous_score:g})",
        f"- Issues: {status.issue_count}",
        f"- Files watched: {status.files_watched}",
        f"- Checks performed: {status.checks_performed}",
        f"- Last check: {last_check}",
    ]
    if status.top_issues:
        lines.append("")
        lines.append("## Top Issues")
        lines.extend(_issue_line(issue) for issue in status.top_issues)
    return "\n".join(lines)
