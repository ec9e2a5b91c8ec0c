"""Scoring engine.

Turns issue populations into a bounded 0-100 health score.

Two formulas coexist:

- **Batch** scoring (:func:`score_categories`): each detector family has a
  :class:`CategoryRule` with its own raw formula and cap. Capped deductions
  are summed and subtracted from 100.
- **Incremental** scoring (:func:`incremental_score`): a flat per-issue
  cost by severity rank over the whole issue set, used by the file watcher.

Usage::

    breakdown = score_categories({"bugs": bug_issues, "imports": import_issues})
    breakdown.score          # 100 - sum of capped deductions, clamped
    breakdown.deductions     # {"bugs": 11.0, "imports": 1.5}
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from . import constants
from .constants import (
    CONSISTENCY_ISSUES_PER_POINT,
    INCREMENTAL_RANK_POINTS,
    MAX_DEBUG_POINTS_PER_FILE,
    MAX_SCORE,
    MIN_SCORE,
    OTHER_IMPORT_POINTS,
    TREND_STABILITY_THRESHOLD,
    UNUSED_IMPORT_POINTS,
)
from .detectors.import_detector import UNUSED_IMPORTS
from .detectors.structural import DEAD_CODE, DEBUG_STATEMENTS
from .models import Issue, Severity, Trend

Formula = Callable[[Sequence[Issue]], float]


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


def severity_weighted(weights: Mapping[Severity, float]) -> Formula:
    """Formula charging a fixed weight per issue of each severity."""

    def formula(issues: Sequence[Issue]) -> float:
        return sum(weights.get(issue.severity, 0.0) for issue in issues)

    return formula


def per_issue(points: float) -> Formula:
    """Formula charging the same points for every issue."""

    def formula(issues: Sequence[Issue]) -> float:
        return len(issues) * points

    return formula


def consistency_formula(issues: Sequence[Issue]) -> float:
    """One point per full group of consistency issues."""
    return float(len(issues) // CONSISTENCY_ISSUES_PER_POINT)


def import_formula(issues: Sequence[Issue]) -> float:
    unused = sum(1 for issue in issues if issue.category == UNUSED_IMPORTS)
    return unused * UNUSED_IMPORT_POINTS + (len(issues) - unused) * OTHER_IMPORT_POINTS


def dead_code_formula(issues: Sequence[Issue]) -> float:
    """Two points per marked-unused import plus capped debug output per file."""
    marked = sum(1 for issue in issues if issue.category == DEAD_CODE)
    debug_per_file = Counter(issue.file for issue in issues if issue.category == DEBUG_STATEMENTS)
    debug = sum(min(count, MAX_DEBUG_POINTS_PER_FILE) for count in debug_per_file.values())
    return marked * 2.0 + debug


# ---------------------------------------------------------------------------
# Category rules
# ---------------------------------------------------------------------------


def _count_phrase(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


@dataclass(frozen=True)
class CategoryRule:
    """How one detector family contributes to the batch score.

    Attributes:
        name: Detector family name (``"bugs"``).
        label: Tag used in recommendation lines.
        cap: Upper bound on this family's deduction.
        formula: Raw deduction over the family's issues.
        noun: What a single issue is called in recommendations.
        action: Verb phrase opening the recommendation.
    """

    name: str
    label: str
    cap: float
    formula: Formula
    noun: str = "issue"
    action: str = "Fix"

    def raw_deduction(self, issues: Sequence[Issue]) -> float:
        return self.formula(issues)

    def deduction(self, issues: Sequence[Issue]) -> float:
        """Raw deduction clamped to ``[0, cap]``."""
        return min(max(self.raw_deduction(issues), 0.0), self.cap)

    def recommendation(self, issues: Sequence[Issue]) -> str:
        """Single recommendation line built from severity counts."""
        counts = Counter(issue.severity for issue in issues)
        ordered = sorted(counts.items(), key=lambda item: item[0].rank)
        breakdown = ", ".join(f"{count} {severity.value}" for severity, count in ordered)
        return (
            f"[{self.label}] {self.action} {_count_phrase(len(issues), self.noun)} "
            f"({breakdown})"
        )


SCORING_RULES: dict[str, CategoryRule] = {
    rule.name: rule
    for rule in (
        CategoryRule(
            "bugs", "BUG", constants.BUG_DEDUCTION_CAP,
            severity_weighted({Severity.ERROR: 5.0, Severity.WARNING: 2.0, Severity.INFO: 0.5}),
            noun="potential bug",
        ),
        CategoryRule(
            "performance", "PERF", constants.PERFORMANCE_DEDUCTION_CAP,
            severity_weighted({Severity.CRITICAL: 4.0, Severity.MODERATE: 2.0, Severity.MINOR: 0.5}),
            noun="performance issue", action="Optimize",
        ),
        CategoryRule(
            "consistency", "STYLE", constants.CONSISTENCY_DEDUCTION_CAP,
            consistency_formula,
            noun="consistency issue", action="Align",
        ),
        CategoryRule(
            "imports", "IMPORT", constants.IMPORT_DEDUCTION_CAP,
            import_formula,
            noun="import issue", action="Clean up",
        ),
        CategoryRule(
            "nextjs", "NEXTJS", constants.NEXTJS_DEDUCTION_CAP,
            severity_weighted({Severity.ERROR: 3.0, Severity.WARNING: 1.0, Severity.INFO: 0.2}),
            noun="Next.js pattern issue",
        ),
        CategoryRule(
            "accessibility", "A11Y", constants.ACCESSIBILITY_DEDUCTION_CAP,
            severity_weighted({Severity.ERROR: 2.0, Severity.WARNING: 1.0, Severity.INFO: 0.2}),
            noun="accessibility issue",
        ),
        CategoryRule(
            "dead_code", "DEAD CODE", constants.DEAD_CODE_DEDUCTION_CAP,
            dead_code_formula,
            noun="dead code finding", action="Review",
        ),
        CategoryRule(
            "package_health", "PACKAGE", constants.PACKAGE_HEALTH_DEDUCTION_CAP,
            per_issue(2.0),
            noun="package manifest issue", action="Address",
        ),
        CategoryRule(
            "directory_structure", "STRUCTURE", constants.DIRECTORY_STRUCTURE_DEDUCTION_CAP,
            per_issue(1.0),
            noun="empty directory", action="Clean up",
        ),
        CategoryRule(
            "large_files", "SIZE", constants.LARGE_FILE_DEDUCTION_CAP,
            severity_weighted({Severity.WARNING: 3.0, Severity.INFO: 1.0}),
            noun="oversized file", action="Split",
        ),
        CategoryRule(
            "complexity", "COMPLEXITY", constants.COMPLEXITY_DEDUCTION_CAP,
            severity_weighted({Severity.WARNING: 2.0, Severity.INFO: 1.0}),
            noun="complex function", action="Simplify",
        ),
        CategoryRule(
            "todo_comments", "TODO", constants.TODO_DEDUCTION_CAP,
            severity_weighted({Severity.ERROR: 3.0, Severity.WARNING: 2.0, Severity.INFO: 1.0}),
            noun="TODO/FIXME comment", action="Address",
        ),
        CategoryRule(
            "outdated_patterns", "MODERNIZE", constants.OUTDATED_PATTERN_DEDUCTION_CAP,
            per_issue(1.0),
            noun="outdated code pattern", action="Modernize",
        ),
        CategoryRule(
            "naming", "NAMING", constants.NAMING_DEDUCTION_CAP,
            per_issue(1.0),
            noun="naming inconsistency",
        ),
    )
}


# ---------------------------------------------------------------------------
# Batch scoring
# ---------------------------------------------------------------------------


@dataclass
class ScoreBreakdown:
    """Capped deduction per category and the resulting score."""

    deductions: dict[str, float] = field(default_factory=dict)

    @property
    def total_deduction(self) -> float:
        return sum(self.deductions.values())

    @property
    def score(self) -> float:
        return clamp_score(MAX_SCORE - self.total_deduction)


def clamp_score(value: float) -> float:
    """Clamp *value* into ``[0, 100]``."""
    if math.isnan(value):
        return MIN_SCORE
    return min(MAX_SCORE, max(MIN_SCORE, value))


def score_categories(
    issues_by_category: Mapping[str, Sequence[Issue]],
    rules: Mapping[str, CategoryRule] = SCORING_RULES,
) -> ScoreBreakdown:
    """Compute capped deductions for every category present in *issues_by_category*.

    Categories without a rule are ignored. The result does not depend on the
    order of categories.

    Raises:
        KeyError: Never; unknown categories are skipped.
    """
    breakdown = ScoreBreakdown()
    for name, issues in issues_by_category.items():
        rule = rules.get(name)
        if rule is None:
            continue
        breakdown.deductions[name] = rule.deduction(issues)
    return breakdown


def build_recommendations(
    issues_by_category: Mapping[str, Sequence[Issue]],
    breakdown: ScoreBreakdown,
    rules: Mapping[str, CategoryRule] = SCORING_RULES,
) -> list[str]:
    """One line per category whose deduction is non-zero, largest first."""
    ranked = sorted(
        (name for name, value in breakdown.deductions.items() if value > 0),
        key=lambda name: -breakdown.deductions[name],
    )
    return [rules[name].recommendation(issues_by_category[name]) for name in ranked]


# ---------------------------------------------------------------------------
# Incremental scoring
# ---------------------------------------------------------------------------


def incremental_deduction(issues: Iterable[Issue]) -> float:
    """Flat per-issue cost by severity rank (0.5 / 0.3 / 0.1)."""
    return sum(INCREMENTAL_RANK_POINTS[issue.severity.rank] for issue in issues)


def incremental_score(issues: Iterable[Issue]) -> float:
    return clamp_score(MAX_SCORE - incremental_deduction(issues))


def calculate_trend(current: float, previous: float) -> Trend:
    """Classify the change from *previous* to *current*."""
    delta = current - previous
    if abs(delta) < TREND_STABILITY_THRESHOLD:
        return Trend.STABLE
    return Trend.IMPROVING if delta > 0 else Trend.DECLINING


def eviction_key(issue: Issue) -> tuple[int, float]:
    """Sort key keeping the most severe, then most recent, issues first."""
    return issue.severity.rank, -issue.timestamp


def group_by_file(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    grouped: dict[str, list[Issue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.file].append(issue)
    return dict(grouped)


def diff_issues(
    previous: Iterable[Issue], current: Iterable[Issue]
) -> tuple[list[Issue], list[Issue]]:
    """Return ``(introduced, resolved)`` between two issue populations."""
    before = {issue.fingerprint: issue for issue in previous}
    after = {issue.fingerprint: issue for issue in current}
    introduced = [issue for key, issue in after.items() if key not in before]
    resolved = [issue for key, issue in before.items() if key not in after]
    return introduced, resolved
