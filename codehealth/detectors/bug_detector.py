"""Line-heuristic bug detector for TypeScript and JavaScript.

Flags likely runtime bugs: misused React hooks, unhandled async work, unsafe
typing, swallowed errors, resource leaks, security smells and common logic
errors. Heuristics look at a small window of surrounding lines and favour
precision over recall.
"""

import re
from collections.abc import Iterator

from ..models import Issue, Severity
from .base import Detector, FileContext, Rule

_HOOK_CALL = re.compile(r"\b(useEffect|useCallback|useMemo)\(")
_CONDITIONAL_HOOK = re.compile(r"\b(useState|useEffect|useCallback)\b")
_FETCH_ASSIGN = re.compile(r"^(const|let|var)?\s*\w+\s*=\s*fetch\(")
_NON_NULL = re.compile(r"\w!(\.|\[)")
_ASSIGN_IN_IF = re.compile(r"\bif\s*\([^=!<>]*[^=!<>]=[^=]")
_BOOLEAN_COMPARE = re.compile(r"(===?\s*(true|false)\b)|(\b(true|false)\s*===?)")
_AWAIT_TARGET = re.compile(r"await\s+(\w+)")

_SECRET_PATTERNS = (
    (re.compile(r"api[_-]?key\s*=\s*[\"'][^\"'\s]+[\"']", re.IGNORECASE), "API key"),
    (re.compile(r"secret\s*=\s*[\"'][^\"'\s]{10,}[\"']", re.IGNORECASE), "secret"),
    (re.compile(r"password\s*=\s*[\"'][^\"'\s]+[\"']", re.IGNORECASE), "password"),
    (re.compile(r"token\s*=\s*[\"'][^\"'\s]{20,}[\"']", re.IGNORECASE), "token"),
)

# Path fragments where loose typing is normal (external data, schemas)
_LOOSE_TYPING_PATHS = ("/api/", "/utils/", "/lib/", "Schema", "validation")


class BugDetector(Detector):
    """Heuristic bug detector working on raw source lines."""

    name = "bugs"

    def rules(self) -> list[Rule]:
        return [
            self.detect_react_hook_issues,
            self.detect_async_issues,
            self.detect_type_safety_issues,
            self.detect_error_handling_issues,
            self.detect_resource_leaks,
            self.detect_security_issues,
            self.detect_promise_issues,
            self.detect_logic_errors,
        ]

    # ------------------------------------------------------------------
    # React hooks
    # ------------------------------------------------------------------

    def detect_react_hook_issues(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            if _HOOK_CALL.search(line):
                block = _collect_block(lines, i, limit=30)
                if "[]" in block and re.search(r"\]\s*\)", block):
                    body = block.split("=>", 1)[-1]
                    if re.search(r"\b(?!set|console)[a-z]\w*\(", body):
                        yield self.issue(
                            ctx, i + 1, "React Hooks",
                            "useEffect/useCallback/useMemo with empty deps may be missing dependencies",
                            Severity.WARNING,
                            "Review if external variables should be in dependency array",
                        )

            stripped = line.strip()
            if re.match(r"if\s*\(", stripped) and i < len(lines) - 3:
                following = "\n".join(lines[i + 1:i + 5])
                if _CONDITIONAL_HOOK.search(following):
                    yield self.issue(
                        ctx, i + 1, "React Hooks",
                        "Hook called conditionally - this breaks React rules",
                        Severity.ERROR,
                        "Move hooks to top level of component",
                    )

    # ------------------------------------------------------------------
    # Async / promises
    # ------------------------------------------------------------------

    def detect_async_issues(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            stripped = line.strip()

            if (stripped.startswith("async ") or "async function" in stripped) and "{" in line:
                window = lines[i:i + 40]
                handled = any("try {" in w or "try{" in w or ".catch(" in w for w in window)
                if not handled and not ctx.is_test:
                    if "await" in "\n".join(lines[i:i + 20]):
                        yield self.issue(
                            ctx, i + 1, "Error Handling",
                            "Async function missing error handling",
                            Severity.WARNING,
                            "Add try-catch block or .catch() handler",
                        )

            floating = _FETCH_ASSIGN.match(stripped) or (
                ".then(" in stripped and "return" not in stripped
            )
            if floating and "await" not in stripped and ".catch(" not in stripped:
                yield self.issue(
                    ctx, i + 1, "Async/Await",
                    "Unhandled promise - missing await or .catch()",
                    Severity.WARNING,
                    "Add await or .catch() to handle promise rejection",
                )

            if "return new Promise(" in stripped and "async" in stripped:
                yield self.issue(
                    ctx, i + 1, "Async/Await",
                    "Async function returning new Promise() is redundant",
                    Severity.INFO,
                    "Remove Promise wrapper, async functions return promises automatically",
                )

    def detect_promise_issues(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            stripped = line.strip()

            if "Promise.all(" in stripped or "Promise.allSettled(" in stripped:
                handled = (
                    "await" in stripped
                    or ".catch(" in stripped
                    or (i > 0 and "try" in lines[i - 1])
                )
                if not handled and not ctx.is_test:
                    yield self.issue(
                        ctx, i + 1, "Async/Await",
                        "Promise.all without error handling",
                        Severity.WARNING,
                        "Wrap in try-catch or add .catch() handler",
                    )

            if stripped.startswith("await ") and i < len(lines) - 1:
                following = lines[i + 1].strip()
                if following.startswith("await "):
                    current = _AWAIT_TARGET.search(stripped)
                    nxt = _AWAIT_TARGET.search(following)
                    current_name = current.group(1) if current else None
                    next_name = nxt.group(1) if nxt else None
                    if current_name != next_name and (current_name or "___") not in following:
                        yield self.issue(
                            ctx, i + 1, "Performance",
                            "Sequential awaits could be parallelized",
                            Severity.INFO,
                            "Consider using Promise.all() for independent async operations",
                        )

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def detect_type_safety_issues(self, ctx: FileContext) -> Iterator[Issue]:
        loose_ok = any(fragment in ctx.posix for fragment in _LOOSE_TYPING_PATHS)
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()

            if (
                ": any" in stripped
                and not loose_ok
                and "// @ts-expect-error" not in stripped
                and "Record<string, any>" not in stripped
            ):
                yield self.issue(
                    ctx, i + 1, "Type Safety",
                    'Using "any" type defeats TypeScript benefits',
                    Severity.INFO,
                    'Define proper types or use "unknown" for better type safety',
                )

            if len(_NON_NULL.findall(stripped)) >= 2:
                yield self.issue(
                    ctx, i + 1, "Type Safety",
                    "Multiple non-null assertions - potential runtime error",
                    Severity.WARNING,
                    "Add proper null checks or use optional chaining (?.)",
                )

            if " as any" in stripped or " as unknown" in stripped or "as Record<" in stripped:
                yield self.issue(
                    ctx, i + 1, "Type Safety",
                    "Type assertion may hide type errors",
                    Severity.INFO,
                    "Consider using type guards or proper type definitions",
                )

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    def detect_error_handling_issues(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            stripped = line.strip()

            if "catch" in stripped and ".catch(" not in stripped and i < len(lines) - 1:
                following = lines[i + 1].strip()
                after = lines[i + 2].strip() if i + 2 < len(lines) else ""
                if following == "}" or (following == "{" and after == "}"):
                    if not ctx.is_test:
                        yield self.issue(
                            ctx, i + 1, "Error Handling",
                            "Empty catch block silently swallows errors",
                            Severity.WARNING,
                            "At minimum, log the error or add a comment explaining why it is safe to ignore",
                        )

            if "throw new Error('Error')" in stripped or 'throw new Error("Error")' in stripped:
                yield self.issue(
                    ctx, i + 1, "Error Handling",
                    "Generic error message is not helpful for debugging",
                    Severity.INFO,
                    "Provide descriptive error message with context",
                )

            if stripped.startswith("console.error(") and "/scripts/" not in ctx.posix:
                previous = lines[i - 1].strip() if i > 0 else ""
                following = lines[i + 1].strip() if i < len(lines) - 1 else ""
                if "catch" not in previous and "throw" not in following:
                    yield self.issue(
                        ctx, i + 1, "Error Handling",
                        "console.error without proper error handling",
                        Severity.INFO,
                        "Consider throwing error or returning error state",
                    )

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def detect_resource_leaks(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            window = lines[max(0, i - 20):i + 30]

            if "setInterval(" in line and not any("clearInterval" in w for w in window):
                yield self.issue(
                    ctx, i + 1, "Resource Leak",
                    "setInterval without clearInterval may cause memory leak",
                    Severity.WARNING,
                    "Add cleanup in useEffect return or component unmount",
                )

            if (
                ".addEventListener(" in line
                and "component" in ctx.posix.lower()
                and not any("removeEventListener" in w for w in window)
            ):
                yield self.issue(
                    ctx, i + 1, "Resource Leak",
                    "addEventListener without removeEventListener may cause memory leak",
                    Severity.WARNING,
                    "Remove listener in cleanup function",
                )

            if "createConnection(" in line and "/lib/" not in ctx.posix:
                closing = lines[i:i + 50]
                if not any(".close(" in w or ".end(" in w for w in closing):
                    yield self.issue(
                        ctx, i + 1, "Resource Leak",
                        "Connection opened but never closed",
                        Severity.WARNING,
                        "Ensure connection is properly closed in finally block",
                    )

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------

    def detect_security_issues(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            stripped = line.strip()

            if ("query(" in stripped or "execute(" in stripped) and (
                "${" in stripped or '" + ' in stripped or "' + " in stripped
            ):
                yield self.issue(
                    ctx, i + 1, "Security",
                    "Potential SQL injection - string concatenation in query",
                    Severity.ERROR,
                    "Use parameterized queries or prepared statements",
                )

            if re.search(r"\beval\(", stripped) and not ctx.is_test:
                yield self.issue(
                    ctx, i + 1, "Security",
                    "eval() is dangerous and should be avoided",
                    Severity.ERROR,
                    "Use safer alternatives like JSON.parse",
                )

            if "dangerouslySetInnerHTML" in stripped:
                preceding = lines[max(0, i - 5):i + 1]
                if not any("sanitize" in p or "DOMPurify" in p for p in preceding):
                    yield self.issue(
                        ctx, i + 1, "Security",
                        "dangerouslySetInnerHTML without sanitization - XSS risk",
                        Severity.ERROR,
                        "Sanitize HTML content using DOMPurify or similar",
                    )

            if "process.env" in stripped or "TODO" in stripped or "example" in stripped:
                continue
            for pattern, label in _SECRET_PATTERNS:
                if pattern.search(stripped):
                    yield self.issue(
                        ctx, i + 1, "Security",
                        f"Hardcoded {label} detected",
                        Severity.ERROR,
                        "Move sensitive data to environment variables",
                    )

    # ------------------------------------------------------------------
    # Logic
    # ------------------------------------------------------------------

    def detect_logic_errors(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        skip_unreachable = "/app/" in ctx.posix or "/pages/" in ctx.posix
        for i, line in enumerate(lines):
            stripped = line.strip()

            if (
                _ASSIGN_IN_IF.search(stripped)
                and not re.search(r"[=!<>]=", stripped)
                and "=>" not in stripped
            ):
                yield self.issue(
                    ctx, i + 1, "Logic Error",
                    "Assignment (=) in if condition instead of comparison (===)",
                    Severity.ERROR,
                    "Use === for comparison or wrap assignment in parentheses if intentional",
                )

            if _BOOLEAN_COMPARE.search(stripped):
                yield self.issue(
                    ctx, i + 1, "Code Quality",
                    "Comparing to boolean literal is redundant",
                    Severity.INFO,
                    "Use the boolean directly or negate it with !",
                )

            if re.search(r"\.forEach\(\s*async", stripped):
                yield self.issue(
                    ctx, i + 1, "Logic Error",
                    "async callback in forEach does not wait for promises",
                    Severity.ERROR,
                    "Use for...of loop or Promise.all with map()",
                )

            if stripped.startswith("return ") and stripped.endswith(";") and not skip_unreachable:
                following = _next_code_line(lines, i + 1)
                if following is not None and not following.startswith(
                    ("}", "case ", "default:", "/*")
                ):
                    yield self.issue(
                        ctx, i + 2, "Logic Error",
                        "Unreachable code after return statement",
                        Severity.WARNING,
                        "Remove unreachable code or fix control flow",
                    )


def _collect_block(lines: list[str], start: int, limit: int) -> str:
    """Collect lines from *start* until braces balance (at most *limit* lines)."""
    block: list[str] = []
    depth = 0
    opened = False
    for line in lines[start:start + limit]:
        block.append(line)
        depth += line.count("{") - line.count("}")
        if "(" in line:
            opened = True
        if opened and depth <= 0:
            break
    return "\n".join(block)


def _next_code_line(lines: list[str], start: int) -> str | None:
    for line in lines[start:]:
        stripped = line.strip()
        if stripped and not stripped.startswith("//"):
            return stripped
    return None
