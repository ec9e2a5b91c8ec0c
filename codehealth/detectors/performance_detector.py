"""Performance detector.

Reports on the ``critical > moderate > minor`` scale: algorithmic blow-ups,
blocking I/O, per-iteration database and network calls, avoidable React
re-renders and memory waste.
"""

import re
from collections.abc import Iterator

from ..models import PERFORMANCE_SCALE, Issue, Severity
from .base import Detector, FileContext, Rule

_LOOP_START = re.compile(r"^\s*(for|while)\s*\(|\.(forEach|map)\(")
_SYNC_FS = re.compile(r"\bfs\.\w+Sync\(")
_DB_CALL = re.compile(r"\b(prisma|db|knex|sequelize)\.|\.(findOne|findMany|findUnique|query)\(")
_LARGE_ARRAY = re.compile(r"new Array\(\s*\d{5,}\s*\)")
_STATE_LITERAL = re.compile(r"useState\(\s*[\[{]")
_INLINE_CONTEXT = re.compile(r"<\w+\.Provider\s+value=\{\{")


class PerformanceDetector(Detector):
    """Heuristic performance detector."""

    name = "performance"
    severity_scale = PERFORMANCE_SCALE

    def rules(self) -> list[Rule]:
        return [
            self.detect_react_issues,
            self.detect_loop_issues,
            self.detect_blocking_io,
            self.detect_query_issues,
            self.detect_memory_issues,
        ]

    def detect_react_issues(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.is_jsx:
            return
        lines = ctx.lines
        for i, line in enumerate(lines):
            if ".map(" in line and "=>" in line:
                rendered = "\n".join(lines[i:i + 3])
                if "<" in rendered and "key=" not in rendered:
                    yield self.issue(
                        ctx, i + 1, "React Performance",
                        "Missing key prop in mapped component",
                        Severity.MODERATE,
                        "Add a stable key prop to each mapped element",
                    )

            if _STATE_LITERAL.search(line):
                yield self.issue(
                    ctx, i + 1, "React Performance",
                    "useState initialized with object/array literal",
                    Severity.MINOR,
                    "Use lazy initialisation: useState(() => initialValue)",
                )

            if _INLINE_CONTEXT.search(line):
                yield self.issue(
                    ctx, i + 1, "React Performance",
                    "Context value created inline causes all consumers to re-render",
                    Severity.MODERATE,
                    "Memoize the context value with useMemo",
                )

    def detect_loop_issues(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line, depth in _loop_depths(ctx.lines):
            if depth == 0:
                continue
            stripped = line.strip()

            if _LOOP_START.search(line) and depth >= 2:
                yield self.issue(
                    ctx, i + 1, "Algorithm Performance",
                    "Nested loops detected - O(n²) or worse complexity",
                    Severity.CRITICAL,
                    "Consider using a Map or Set for lookups",
                )
            if ".indexOf(" in stripped:
                yield self.issue(
                    ctx, i + 1, "Algorithm Performance",
                    "indexOf in loop - O(n²) complexity",
                    Severity.MODERATE,
                    "Build a Set before the loop and use has()",
                )
            if "JSON.parse(" in stripped:
                yield self.issue(
                    ctx, i + 1, "Performance",
                    "JSON.parse in loop is expensive",
                    Severity.MODERATE,
                    "Parse once outside the loop",
                )
            if "new RegExp(" in stripped:
                yield self.issue(
                    ctx, i + 1, "Performance",
                    "RegExp compilation in loop",
                    Severity.MODERATE,
                    "Compile the expression once outside the loop",
                )
            if re.search(r"\bfetch\(", stripped):
                yield self.issue(
                    ctx, i + 1, "Network Performance",
                    "fetch() call inside loop",
                    Severity.CRITICAL,
                    "Batch requests or use Promise.all",
                )
            elif "await" in stripped and _DB_CALL.search(stripped):
                yield self.issue(
                    ctx, i + 1, "Database Performance",
                    "Potential N+1 query - database call in loop",
                    Severity.CRITICAL,
                    "Fetch related records in a single query",
                )

    def detect_blocking_io(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.is_test or "/scripts/" in ctx.posix or ".config." in ctx.name:
            return
        for i, line in enumerate(ctx.lines):
            if _SYNC_FS.search(line):
                yield self.issue(
                    ctx, i + 1, "Performance",
                    "Synchronous file operation blocks event loop",
                    Severity.CRITICAL,
                    "Use the fs.promises API",
                )

    def detect_query_issues(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if re.search(r"SELECT\s+\*", line, re.IGNORECASE):
                yield self.issue(
                    ctx, i + 1, "Database Performance",
                    "SELECT * fetches all columns",
                    Severity.MODERATE,
                    "Select only the columns you need",
                )

    def detect_memory_issues(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if _LARGE_ARRAY.search(line):
                yield self.issue(
                    ctx, i + 1, "Memory Performance",
                    "Large array allocation",
                    Severity.MODERATE,
                    "Stream or paginate instead of preallocating",
                )
            if line.startswith("let "):
                yield self.issue(
                    ctx, i + 1, "Memory Performance",
                    "Global mutable variable",
                    Severity.MINOR,
                    "Scope mutable state to a function or module object",
                )


def _loop_depths(lines: list[str]) -> Iterator[tuple[int, str, int]]:
    """Yield ``(index, line, loops)`` where *loops* counts loops enclosing the line.

    A loop header counts for its own line, so a header inside another loop
    reports 2.
    """
    depth = 0
    loop_depths: list[int] = []
    for i, line in enumerate(lines):
        if _LOOP_START.search(line):
            loop_depths.append(depth)
        yield i, line, len(loop_depths)
        depth += line.count("{") - line.count("}")
        while loop_depths and depth <= loop_depths[-1]:
            loop_depths.pop()
