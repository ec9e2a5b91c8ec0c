"""Consistency detector.

Runs in two passes. :meth:`ConsistencyDetector.analyze_codebase` learns the
dominant conventions of the whole tree (import style, error handling style,
directory layout) and reports files that deviate; :meth:`analyze` then checks
each file for internal inconsistencies.
"""

import re
from collections import Counter, defaultdict
from collections.abc import Iterator, Mapping
from pathlib import PurePosixPath

from ..models import Issue, Severity
from .base import FileContext, ProjectDetector, Rule

CODEBASE_WIDE = "Codebase-wide"

# Share of minority-style imports above which a file is reported
IMPORT_INCONSISTENCY_RATIO = 0.3

# Each error-handling style must exceed this share for the mix to be reported
ERROR_STYLE_MIX_RATIO = 0.2

MAX_FILES_PER_DIRECTORY = 50
MAGIC_NUMBER_ALLOWANCE = 15

_FUNCTION_NAME = re.compile(r"function\s+(\w+)")
_ARROW_NAME = re.compile(r"const\s+(\w+)\s*=\s*(?:async\s*)?\([^)]*\)\s*=>")
_NAMED_EXPORT = re.compile(r"^export (const|function|class|interface|type)\b")
_NUMBER = re.compile(r"\b(\d+)\b")
_ACCEPTED_NUMBERS = frozenset({0, 1, 2, 100, 1000})
_MAGIC_NUMBER_SKIP = (
    "import ", "className=", "viewBox=", "width=", "height=", "<path", "<svg", 'd="M',
)
_MAGIC_NUMBER_CONTEXT_SKIP = ("useState", "setTimeout", "slice(", "Array(", "const ", "//")


class ConsistencyDetector(ProjectDetector):
    """Detects deviations from the codebase's own conventions."""

    name = "consistency"

    def rules(self) -> list[Rule]:
        return [
            self.detect_naming,
            self.detect_error_handling_mix,
            self.detect_export_patterns,
            self.detect_async_mix,
            self.detect_magic_numbers,
        ]

    # ------------------------------------------------------------------
    # Codebase pass
    # ------------------------------------------------------------------

    def analyze_codebase(self, contents: Mapping[str, str]) -> list[Issue]:
        found: list[Issue] = []
        import_styles: dict[str, Counter] = {}
        error_styles: Counter = Counter()

        for path, content in contents.items():
            styles: Counter = Counter()
            for line in content.split("\n"):
                stripped = line.strip()
                if stripped.startswith("import "):
                    if "from '@/" in stripped or 'from "@/' in stripped:
                        styles["absolute"] += 1
                    elif re.search(r"from\s+['\"]\.", stripped):
                        styles["relative"] += 1
                if "try {" in stripped:
                    error_styles["try-catch"] += 1
                if ".catch(" in stripped:
                    error_styles[".catch"] += 1
            if styles:
                import_styles[path] = styles

        found.extend(self._import_inconsistencies(import_styles))
        found.extend(self._error_style_inconsistencies(error_styles))
        found.extend(self._organization_issues(list(contents)))

        self._issues.extend(found)
        return found

    def _import_inconsistencies(self, import_styles: dict[str, Counter]) -> Iterator[Issue]:
        total_absolute = sum(s["absolute"] for s in import_styles.values())
        total_relative = sum(s["relative"] for s in import_styles.values())
        dominant = "absolute" if total_absolute > total_relative else "relative"
        minority = "relative" if dominant == "absolute" else "absolute"

        for path, styles in import_styles.items():
            total = styles["absolute"] + styles["relative"]
            if total < 3:
                continue
            if styles[minority] / total > IMPORT_INCONSISTENCY_RATIO:
                yield self._codebase_issue(
                    path, "Import Consistency",
                    f"Mixes {styles['absolute']} absolute and {styles['relative']} relative imports",
                    f"Codebase predominantly uses {dominant} imports",
                )

    def _error_style_inconsistencies(self, error_styles: Counter) -> Iterator[Issue]:
        total = sum(error_styles.values())
        if not total:
            return
        try_catch = error_styles["try-catch"]
        dot_catch = error_styles[".catch"]
        if try_catch / total > ERROR_STYLE_MIX_RATIO and dot_catch / total > ERROR_STYLE_MIX_RATIO:
            yield self._codebase_issue(
                CODEBASE_WIDE, "Error Handling",
                f"Mixed error handling: {try_catch} try-catch vs {dot_catch} .catch()",
                "Standardize on async/await with try-catch for consistency",
            )

    def _organization_issues(self, paths: list[str]) -> Iterator[Issue]:
        directories: dict[str, list[str]] = defaultdict(list)
        for path in paths:
            posix = PurePosixPath(path.replace("\\", "/"))
            directories[str(posix.parent)].append(posix.name)

        for directory, names in directories.items():
            if len(names) > MAX_FILES_PER_DIRECTORY:
                yield self._codebase_issue(
                    directory, "File Organization",
                    f"{len(names)} files in single directory",
                    "Consider organizing into subdirectories by feature/domain",
                )
            lowered = [n.lower() for n in names]
            has_components = any(n.endswith(".tsx") and "util" not in n for n in lowered)
            has_utils = any("util" in n or "helper" in n for n in lowered)
            if has_components and has_utils and len(names) > 5:
                yield self._codebase_issue(
                    directory, "File Organization",
                    "Directory mixes components and utilities",
                    "Separate components and utilities into different directories",
                )

    def _codebase_issue(self, path: str, category: str, message: str, suggestion: str) -> Issue:
        return Issue(
            file=path,
            line=0,
            category=category,
            message=message,
            severity=Severity.WARNING,
            suggestion=suggestion,
            detector=self.name,
        )

    # ------------------------------------------------------------------
    # Per-file rules
    # ------------------------------------------------------------------

    def detect_naming(self, ctx: FileContext) -> Iterator[Issue]:
        if "component" in ctx.posix.lower() or ctx.is_jsx:
            return
        names: list[str] = []
        for line in ctx.lines:
            for pattern in (_FUNCTION_NAME, _ARROW_NAME):
                match = pattern.search(line)
                if match:
                    names.append(match.group(1))
        camel = [n for n in names if re.fullmatch(r"[a-z][a-zA-Z0-9]*", n)]
        pascal = [n for n in names if re.fullmatch(r"[A-Z][a-zA-Z0-9]*", n)]
        if len(camel) > 3 and pascal:
            yield self.issue(
                ctx, 0, "Naming Consistency",
                "Mixes camelCase and PascalCase function names",
                Severity.WARNING,
                "Use camelCase for functions, PascalCase for components/classes",
            )

    def detect_error_handling_mix(self, ctx: FileContext) -> Iterator[Issue]:
        try_catch = sum("try {" in line for line in ctx.lines)
        dot_catch = sum(".catch(" in line for line in ctx.lines)
        if try_catch and dot_catch and try_catch + dot_catch > 5:
            yield self.issue(
                ctx, 0, "Error Handling",
                f"Mixes try-catch ({try_catch}) and .catch() ({dot_catch}) patterns",
                Severity.WARNING,
                "Standardize on async/await with try-catch for better readability",
            )

    def detect_export_patterns(self, ctx: FileContext) -> Iterator[Issue]:
        stripped = [line.strip() for line in ctx.lines]
        default_exports = sum(s.startswith("export default") for s in stripped)
        named_exports = sum(bool(_NAMED_EXPORT.match(s)) for s in stripped)
        parts = PurePosixPath(ctx.posix).parts

        is_page = ("pages" in parts or "app" in parts) and ctx.name == "page.tsx"
        is_util = "lib" in parts or "utils" in parts

        if is_page and default_exports == 0 and named_exports > 0:
            yield self.issue(
                ctx, 0, "Export Patterns",
                "Page component should use default export",
                Severity.WARNING,
                "Next.js pages require default export",
            )
        if is_util and default_exports > 0 and named_exports == 0:
            yield self.issue(
                ctx, 0, "Export Patterns",
                "Utility module uses default export",
                Severity.WARNING,
                "Prefer named exports for utilities for better tree-shaking",
            )

    def detect_async_mix(self, ctx: FileContext) -> Iterator[Issue]:
        async_count = sum("async " in line or "await " in line for line in ctx.lines)
        then_count = sum(".then(" in line for line in ctx.lines)
        if async_count > 3 and then_count > 2:
            yield self.issue(
                ctx, 0, "Async Patterns",
                "Mixes async/await and Promise chains",
                Severity.WARNING,
                "Prefer async/await for better readability and error handling",
            )

    def detect_magic_numbers(self, ctx: FileContext) -> Iterator[Issue]:
        posix = ctx.posix
        if any(skip in posix for skip in ("/marketing/", "/icons/", "/svg/")):
            return
        if ctx.name in ("page.tsx", "layout.tsx"):
            return

        magic: list[int] = []
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if stripped.startswith(("//", "/*")) or any(s in line for s in _MAGIC_NUMBER_SKIP):
                continue
            if any(s in line for s in _MAGIC_NUMBER_CONTEXT_SKIP):
                continue
            for match in _NUMBER.findall(line):
                value = int(match)
                if value > 10 and value not in _ACCEPTED_NUMBERS:
                    magic.append(i + 1)

        if len(magic) > MAGIC_NUMBER_ALLOWANCE:
            yield self.issue(
                ctx, 0, "Code Quality",
                f"{len(magic)} magic numbers found",
                Severity.WARNING,
                "Extract magic numbers to named constants for clarity",
            )
