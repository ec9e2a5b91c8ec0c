"""Structural checks.

Coarse project-hygiene signals: leftover debug output, oversized files,
overly complex functions, outstanding TODO markers, outdated idioms and
naming slips, plus two project-level checks that look at ``package.json``
and the directory tree rather than at individual files.
"""

import json
import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath

from ..constants import (
    COMPLEXITY_THRESHOLD,
    DEBUG_STATEMENT_ALLOWANCE,
    LARGE_FILE_LINES,
    MAX_DEBUG_ISSUES_PER_FILE,
    MAX_DEPENDENCIES,
    MAX_DEV_DEPENDENCIES,
    MAX_NESTING_DEPTH,
    VERY_LARGE_FILE_LINES,
)
from ..core.file_discovery import find_directories
from ..models import Issue, Severity
from .base import Detector, FileContext, Rule

logger = logging.getLogger(__name__)

DEAD_CODE = "Dead Code"
DEBUG_STATEMENTS = "Debug Statements"
DIRECTORY_STRUCTURE = "Directory Structure"
UNUSED_MARKERS = ("// UNUSED", "/* UNUSED */")

_FUNCTION_START = re.compile(r"^(export\s+)?(default\s+)?(async\s+)?function\s+(\w+)\s*\(")
_BRANCH = re.compile(r"\b(if|for|while|switch|catch|case)\b")
_TERNARY = re.compile(r"\?[^.?].*:")
_LOGICAL = re.compile(r"&&|\|\|")
_TODO = re.compile(r"//\s*(TODO|FIXME|HACK)\b\s*:?\s*(.*)", re.IGNORECASE)
_DECLARATION = re.compile(r"\b(const|let|var)\s+(\w+)\s*=\s*(.*)")

_TODO_SEVERITY = {
    "TODO": Severity.INFO,
    "FIXME": Severity.WARNING,
    "HACK": Severity.ERROR,
}

OUTDATED_PATTERNS = (
    (re.compile(r"class\s+\w+\s+extends\s+(React\.)?Component\b"),
     "Consider migrating to functional components with hooks"),
    (re.compile(r"\b(componentDidMount|componentWillUnmount)\b"),
     "Consider using useEffect hook instead"),
    (re.compile(r"^\s*var\s+\w+"), "Use const/let instead of var"),
    (re.compile(r"\brequire\s*\(\s*['\"]"), "Use ES module import statements instead of require"),
)

_LOCK_FILES = ("package-lock.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb")


def _is_ui_file(ctx: FileContext) -> bool:
    parts = PurePosixPath(ctx.posix).parts
    return "components" in parts or "app" in parts


class DeadCodeDetector(Detector):
    """Imports explicitly marked unused and leftover debug output."""

    name = "dead_code"

    def rules(self) -> list[Rule]:
        return [self.detect_marked_unused, self.detect_debug_statements]

    def detect_marked_unused(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if stripped.startswith("import ") and any(m in stripped for m in UNUSED_MARKERS):
                yield self.issue(
                    ctx, i + 1, DEAD_CODE,
                    "Import marked as unused",
                    Severity.WARNING,
                    "Delete the import",
                )

    def detect_debug_statements(self, ctx: FileContext) -> Iterator[Issue]:
        if "/scripts/" in ctx.posix or ctx.is_test:
            return
        debug_lines = [
            i + 1 for i, line in enumerate(ctx.lines)
            if line.strip().startswith(("console.log(", "console.debug("))
        ]
        if len(debug_lines) <= DEBUG_STATEMENT_ALLOWANCE:
            return
        for line in debug_lines[:MAX_DEBUG_ISSUES_PER_FILE]:
            yield self.issue(
                ctx, line, DEBUG_STATEMENTS,
                "Debug statement left in code",
                Severity.INFO,
                "Remove console.log or replace it with a proper logger",
            )


class LargeFileDetector(Detector):
    """Files that have grown past a comfortable size."""

    name = "large_files"

    def rules(self) -> list[Rule]:
        return [self.detect_large_file]

    def detect_large_file(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.is_test:
            return
        count = len(ctx.lines)
        if count > VERY_LARGE_FILE_LINES:
            yield self.issue(
                ctx, 0, "File Size",
                f"Very large file ({count} lines)",
                Severity.WARNING,
                "Split the file into smaller modules",
            )
        elif count > LARGE_FILE_LINES:
            yield self.issue(
                ctx, 0, "File Size",
                f"Large file ({count} lines)",
                Severity.INFO,
                "Consider splitting the file",
            )


class ComplexityDetector(Detector):
    """Named functions with too many branches or too deep nesting."""

    name = "complexity"

    def rules(self) -> list[Rule]:
        return [self.detect_complex_functions]

    def detect_complex_functions(self, ctx: FileContext) -> Iterator[Issue]:
        lenient = _is_ui_file(ctx)
        threshold = COMPLEXITY_THRESHOLD + 5 if lenient else COMPLEXITY_THRESHOLD
        nesting_threshold = MAX_NESTING_DEPTH + 2 if lenient else MAX_NESTING_DEPTH
        lines = ctx.lines

        for i, line in enumerate(lines):
            match = _FUNCTION_START.match(line.strip())
            if not match:
                continue
            name = match.group(4)
            complexity, nesting = _measure_function(lines, i)
            if complexity <= threshold and nesting <= nesting_threshold:
                continue
            # two points of headroom below the threshold before a function counts double
            excess = complexity - (threshold - 2)
            severity = Severity.WARNING if excess >= 2 else Severity.INFO
            yield self.issue(
                ctx, i + 1, "Complexity",
                f"Function '{name}' is too complex (complexity {complexity}, nesting {nesting})",
                severity,
                "Extract helpers or flatten conditionals",
            )


def _measure_function(lines: list[str], start: int, limit: int = 100) -> tuple[int, int]:
    """Return ``(complexity, max_nesting)`` for the function starting at *start*."""
    complexity = 1
    depth = 0
    max_depth = 0
    opened = False
    for line in lines[start:start + limit]:
        code = line.split("//", 1)[0]
        if _BRANCH.search(code):
            complexity += 1
        if _TERNARY.search(code):
            complexity += 1
        if _LOGICAL.search(code):
            complexity += 1
        depth += code.count("{") - code.count("}")
        max_depth = max(max_depth, depth)
        if "{" in code:
            opened = True
        if opened and depth <= 0:
            break
    return complexity, max_depth


class TodoCommentDetector(Detector):
    """Outstanding TODO, FIXME and HACK markers."""

    name = "todo_comments"

    def rules(self) -> list[Rule]:
        return [self.detect_todo_comments]

    def detect_todo_comments(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            match = _TODO.search(line)
            if not match:
                continue
            kind = match.group(1).upper()
            text = match.group(2).strip() or "(no description)"
            yield self.issue(
                ctx, i + 1, "Outstanding Work",
                f"{kind}: {text}",
                _TODO_SEVERITY[kind],
                "Resolve the comment or track it in the issue tracker",
            )


class OutdatedPatternDetector(Detector):
    """Idioms superseded by modern JavaScript and React."""

    name = "outdated_patterns"

    def rules(self) -> list[Rule]:
        return [self.detect_outdated_patterns]

    def detect_outdated_patterns(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.path.endswith((".ts", ".tsx")):
            return
        for i, line in enumerate(ctx.lines):
            for pattern, reason in OUTDATED_PATTERNS:
                if pattern.search(line):
                    yield self.issue(
                        ctx, i + 1, "Outdated Pattern",
                        f"Outdated pattern: {line.strip()[:80]}",
                        Severity.INFO,
                        reason,
                    )


class NamingDetector(Detector):
    """Plain variables declared in PascalCase."""

    name = "naming"

    def rules(self) -> list[Rule]:
        return [self.detect_pascal_case_variables]

    def detect_pascal_case_variables(self, ctx: FileContext) -> Iterator[Issue]:
        # components and type modules legitimately bind PascalCase names
        if ctx.is_jsx or "types" in PurePosixPath(ctx.posix).parts:
            return
        for i, line in enumerate(ctx.lines):
            match = _DECLARATION.search(line)
            if not match:
                continue
            name, value = match.group(2), match.group(3)
            if not re.match(r"[A-Z]", name) or re.fullmatch(r"[A-Z0-9_]+", name):
                continue
            if re.match(r"(async\s*)?(\(|function\b|class\b|\w+\s*=>|styled|React\.|z\.)", value):
                continue
            yield self.issue(
                ctx, i + 1, "Naming",
                f"Variable '{name}' uses PascalCase",
                Severity.INFO,
                f"Use camelCase: {name[0].lower()}{name[1:]}",
            )


# ---------------------------------------------------------------------------
# Project-level checks
# ---------------------------------------------------------------------------


def check_package_health(root: str | Path) -> list[Issue]:
    """Inspect ``package.json`` for dependency bloat and a missing lock file.

    A project without a readable manifest yields no issues.
    """
    root_path = Path(root)
    manifest = root_path / "package.json"
    if not manifest.is_file():
        logger.debug(f"No package.json in {root_path}, skipping package health")
        return []

    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {manifest}: {e}")
        return []

    issues: list[Issue] = []
    dependencies = len(data.get("dependencies") or {})
    dev_dependencies = len(data.get("devDependencies") or {})

    if dependencies > MAX_DEPENDENCIES:
        issues.append(_project_issue(
            manifest, f"High number of dependencies ({dependencies})",
            Severity.WARNING, "Audit and remove unused dependencies",
        ))
    if dev_dependencies > MAX_DEV_DEPENDENCIES:
        issues.append(_project_issue(
            manifest, f"High number of devDependencies ({dev_dependencies})",
            Severity.WARNING, "Audit and remove unused devDependencies",
        ))
    if (dependencies or dev_dependencies) and not any(
        (root_path / lock).exists() for lock in _LOCK_FILES
    ):
        issues.append(_project_issue(
            manifest, "No lock file found",
            Severity.INFO, "Commit a lock file for reproducible installs",
        ))

    return issues


def check_directory_structure(root: str | Path, ignore_patterns: Iterable[str] = ()) -> list[Issue]:
    """Report empty directories below *root*."""
    issues: list[Issue] = []
    for directory in find_directories(root, ignore_patterns):
        try:
            empty = not any(directory.iterdir())
        except OSError as e:
            logger.warning(f"Could not list {directory}: {e}")
            continue
        if empty:
            issues.append(Issue(
                file=directory.relative_to(root).as_posix(),
                line=0,
                category=DIRECTORY_STRUCTURE,
                message="Empty directory",
                severity=Severity.INFO,
                suggestion="Remove the directory or add its intended contents",
                detector="directory_structure",
            ))
    return issues


def _project_issue(manifest: Path, message: str, severity: Severity, suggestion: str) -> Issue:
    return Issue(
        file=manifest.name,
        line=0,
        category="Package Health",
        message=message,
        severity=severity,
        suggestion=suggestion,
        detector="package_health",
    )
