"""Fast-path checks run by the file watcher on every settled change.

A deliberately small, cheap subset of the batch detectors so that a save
can be re-scored in milliseconds.
"""

from collections.abc import Iterator

from ..models import Issue, Severity
from .base import Detector, FileContext, Rule
from .import_detector import UNUSED_IMPORTS, find_unused_symbols, parse_import


class QuickDetector(Detector):
    """Unused imports, empty catch blocks, missing alt text and stray console.log."""

    name = "quick"

    def rules(self) -> list[Rule]:
        return [
            self.check_unused_imports,
            self.check_empty_catch,
            self.check_missing_alt,
            self.check_console_log,
        ]

    def check_unused_imports(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if not stripped.startswith("import ") or stripped.startswith("import type"):
                continue
            symbols, _source = parse_import(stripped)
            unused = find_unused_symbols(ctx.lines, i, symbols)
            if unused:
                yield self.issue(
                    ctx, i + 1, UNUSED_IMPORTS,
                    f"Unused import: {', '.join(unused)}",
                    Severity.WARNING,
                    "Remove the unused import",
                )

    def check_empty_catch(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            if "} catch" not in line:
                continue
            following = next((nxt.strip() for nxt in lines[i + 1:] if nxt.strip()), None)
            if following == "}":
                yield self.issue(
                    ctx, i + 1, "Error Handling",
                    "Empty catch block",
                    Severity.ERROR,
                    "Handle the error or explain why it is safe to ignore",
                )

    def check_missing_alt(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.is_jsx:
            return
        for i, line in enumerate(ctx.lines):
            if ("<img" in line or "<Image" in line) and "alt=" not in line:
                yield self.issue(
                    ctx, i + 1, "Accessibility",
                    "Image missing alt attribute",
                    Severity.WARNING,
                    'Add descriptive alt text, or alt="" for decorative images',
                )

    def check_console_log(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if "console.log" in line and not line.strip().startswith("//"):
                yield self.issue(
                    ctx, i + 1, "Code Cleanup",
                    "console.log statement left in code",
                    Severity.INFO,
                    "Remove debug output before committing",
                )
