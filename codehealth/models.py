"""Pydantic models for code health analysis results.

This module defines the data models shared by the detectors, the scoring
engine, the file watcher and the auto-fixer.
"""

from __future__ import annotations

import hashlib
import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """Severity of an issue.

    Two three-level scales coexist: ``error > warning > info`` for most
    detectors and ``critical > moderate > minor`` for performance findings.
    Both normalise to the same ordinal :attr:`rank`.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    CRITICAL = "critical"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        """Ordinal rank, 0 being the most severe."""
        return _SEVERITY_RANKS[self]


_SEVERITY_RANKS = {
    Severity.ERROR: 0,
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.MODERATE: 1,
    Severity.INFO: 2,
    Severity.MINOR: 2,
}

STANDARD_SCALE = (Severity.ERROR, Severity.WARNING, Severity.INFO)
PERFORMANCE_SCALE = (Severity.CRITICAL, Severity.MODERATE, Severity.MINOR)


class Trend(str, Enum):
    """Direction of the most recent score change."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class WatcherState(str, Enum):
    """Lifecycle states of the file watcher."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class _ReportModel(BaseModel):
    """Base for models serialised with camelCase keys in reports."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Issue(_ReportModel):
    """A single code quality finding.

    Attributes:
        file: Path of the file the issue was found in. Codebase-wide
            findings use a descriptive placeholder instead of a path.
        line: 1-based line number, or 0 for file-level findings.
        category: Fine-grained category tag such as ``"Error Handling"``.
        message: Human-readable description of the problem.
        severity: Severity on the producing detector's scale.
        timestamp: Creation time in epoch seconds.
        suggestion: Optional remediation hint.
        detector: Name of the detector family that produced the issue.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    file: str
    line: int = Field(default=0, ge=0)
    category: str
    message: str
    severity: Severity = Severity.WARNING
    timestamp: float = Field(default_factory=time.time)
    suggestion: str = ""
    detector: str = ""

    @property
    def fingerprint(self) -> str:
        """Stable identity of the finding, independent of when it was seen."""
        key = f"{self.file}|{self.category}|{self.line}|{self.message}"
        return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


class WatcherStatus(_ReportModel):
    """Read-only snapshot of the file watcher."""

    is_running: bool
    state: WatcherState
    health_score: float
    previous_score: float
    trend: Trend
    issue_count: int
    top_issues: list[Issue] = Field(default_factory=list)
    last_check_time: float | None = None
    files_watched: int = 0
    checks_performed: int = 0


class FixCandidate(_ReportModel):
    """A proposed rewrite of a file produced by a fix generator.

    Attributes:
        new_content: Full file content after the fix.
        description: Short description of the change.
        confidence: Estimated safety of the change, 0-100.
        reason: Why the fix is considered safe at that confidence.
        can_revert: Whether the change is a simple reversible edit.
    """

    new_content: str = Field(repr=False)
    description: str
    confidence: int = Field(ge=0, le=100)
    reason: str = ""
    can_revert: bool = True


class FixSummary(_ReportModel):
    """Applied fixes counted per confidence tier."""

    always_safe: int = 0
    safe_with_review: int = 0
    needs_confirmation: int = 0
    manual_only: int = 0


class FileFixResult(_ReportModel):
    """Outcome of fixing a single file."""

    file: str
    fixes_applied: int = 0
    changes: list[FixCandidate] = Field(default_factory=list)
    skipped: list[FixCandidate] = Field(default_factory=list)
    summary: FixSummary = Field(default_factory=FixSummary)


class HealthCheckResult(_ReportModel):
    """Aggregated result of a batch health check.

    Attributes:
        success: ``False`` when the run itself failed.
        health_score: Final score in ``[0, 100]``.
        recommendations: One line per category with a non-zero deduction.
        summary: One-line description of the run.
        details: Issues grouped by detector family.
        deductions: Capped deduction per detector family.
        files_analyzed: Number of files read successfully.
        duration_ms: Wall-clock duration of the run.
        fixes: Auto-fix results when the run applied fixes.
    """

    success: bool
    health_score: float
    recommendations: list[str] = Field(default_factory=list)
    summary: str = ""
    details: dict[str, list[Issue]] = Field(default_factory=dict)
    deductions: dict[str, float] = Field(default_factory=dict)
    files_analyzed: int = 0
    duration_ms: float = 0.0
    fixes: list[FileFixResult] = Field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return sum(len(issues) for issues in self.details.values())

    def to_report(self) -> dict:
        """Return the external result shape.

        Detail groups are keyed ``<category>Issues`` (``bugIssues``,
        ``performanceIssues``, ...).
        """
        report = self.model_dump(
            mode="json", by_alias=True, exclude={"details", "fixes"}
        )
        report["details"] = {
            f"{_detail_prefix(name)}Issues": [
                issue.model_dump(mode="json", by_alias=True) for issue in issues
            ]
            for name, issues in self.details.items()
        }
        if self.fixes:
            report["fixes"] = [
                fix.model_dump(mode="json", by_alias=True, exclude={"changes", "skipped"})
                for fix in self.fixes
            ]
        return report


_DETAIL_PREFIXES = {"bugs": "bug", "imports": "import"}


def _detail_prefix(category: str) -> str:
    return _DETAIL_PREFIXES.get(category, to_camel(category))
