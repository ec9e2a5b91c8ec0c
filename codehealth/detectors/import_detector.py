"""Import hygiene detector.

Finds unused, duplicated, suspiciously circular and heavy imports. Import
ordering is available but off by default since it is a stylistic preference
rather than a health problem.
"""

import re
from collections import defaultdict
from collections.abc import Iterator
from pathlib import PurePosixPath

from ..models import Issue, Severity
from .base import Detector, FileContext, Rule

UNUSED_IMPORTS = "Unused Imports"

_NAMED = re.compile(r"import\s+(?:type\s+)?(?:\w+\s*,\s*)?\{([^}]+)\}\s*from")
_DEFAULT = re.compile(r"import\s+(\w+)\s*(?:,|from)")
_NAMESPACE = re.compile(r"import\s+\*\s+as\s+(\w+)")
_SOURCE = re.compile(r"from\s+['\"]([^'\"]+)['\"]")

# Methods whose presence counts as a use of an otherwise unreferenced import
_STATIC_FACTORIES = ("fromEnv", "create", "init", "from")

HEAVY_LIBRARIES = {
    "lodash": "Use native array methods or import specific functions",
    "moment": "Use date-fns or native Intl API",
    "axios": "Use native fetch API",
    "jquery": "Use native DOM methods or React",
}


def parse_import(line: str) -> tuple[list[str], str]:
    """Return the local names bound by an import line and its module source.

    ``import { a, b as c } from 'x'`` gives ``(["a", "c"], "x")``.
    """
    symbols: list[str] = []

    named = _NAMED.search(line)
    if named:
        for part in named.group(1).split(","):
            part = part.strip()
            if not part:
                continue
            pieces = part.split(" as ")
            symbols.append(pieces[-1].strip().removeprefix("type ").strip())

    default = _DEFAULT.search(line)
    if default and default.group(1) != "type":
        symbols.append(default.group(1))

    namespace = _NAMESPACE.search(line)
    if namespace:
        symbols.append(namespace.group(1))

    source = _SOURCE.search(line)
    return symbols, source.group(1) if source else ""


def find_unused_symbols(lines: list[str], import_index: int, symbols: list[str]) -> list[str]:
    """Return the *symbols* never referenced outside line *import_index*."""
    rest = "\n".join(line for idx, line in enumerate(lines) if idx != import_index)
    unused: list[str] = []
    for symbol in symbols:
        escaped = re.escape(symbol)
        if re.search(rf"\b{escaped}\b", rest):
            continue
        factories = "|".join(_STATIC_FACTORIES)
        if re.search(rf"\b{escaped}\.({factories})\(", rest):
            continue
        unused.append(symbol)
    return unused


def import_group(line: str) -> str:
    """Classify an import line as ``external``, ``internal`` (``@/``) or ``relative``."""
    source = _SOURCE.search(line)
    module = source.group(1) if source else ""
    if module.startswith("@/"):
        return "internal"
    if module.startswith("."):
        return "relative"
    return "external"


class ImportDetector(Detector):
    """Detector for import-level problems."""

    name = "imports"

    def __init__(self, check_organization: bool = False) -> None:
        super().__init__()
        self.check_organization = check_organization

    def rules(self) -> list[Rule]:
        rules = [
            self.detect_unused_imports,
            self.detect_circular_dependencies,
            self.detect_duplicate_imports,
            self.detect_heavy_imports,
        ]
        if self.check_organization:
            rules.append(self.detect_import_organization)
        return rules

    def detect_unused_imports(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if not stripped.startswith("import ") or stripped.startswith("import type"):
                continue
            symbols, source = parse_import(stripped)
            if not symbols:
                continue
            unused = find_unused_symbols(ctx.lines, i, symbols)
            if not unused:
                continue
            if len(unused) == len(symbols):
                yield self.issue(
                    ctx, i + 1, UNUSED_IMPORTS,
                    f"Unused import: {', '.join(unused)}",
                    Severity.WARNING,
                    f"Remove unused import from '{source}'",
                )
            else:
                yield self.issue(
                    ctx, i + 1, UNUSED_IMPORTS,
                    f"Unused symbols in import: {', '.join(unused)}",
                    Severity.WARNING,
                    "Remove unused symbols from import",
                )

    def detect_circular_dependencies(self, ctx: FileContext) -> Iterator[Issue]:
        stem = PurePosixPath(ctx.posix).stem
        if not stem or stem == "index":
            return
        for i, line in enumerate(ctx.lines):
            if not line.strip().startswith("import "):
                continue
            _symbols, source = parse_import(line)
            if source.startswith(".") and PurePosixPath(source).name == stem:
                yield self.issue(
                    ctx, i + 1, "Circular Dependencies",
                    "Potential circular dependency detected",
                    Severity.WARNING,
                    "Review import structure to avoid circular dependencies",
                )

    def detect_duplicate_imports(self, ctx: FileContext) -> Iterator[Issue]:
        value_imports: dict[str, list[int]] = defaultdict(list)
        type_imports: dict[str, list[int]] = defaultdict(list)

        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if not stripped.startswith("import "):
                continue
            source = _SOURCE.search(stripped)
            if not source:
                continue
            target = type_imports if stripped.startswith("import type") else value_imports
            target[source.group(1)].append(i + 1)

        for kind, grouped in (("value", value_imports), ("type", type_imports)):
            for source, lines in grouped.items():
                if len(lines) > 1:
                    yield self.issue(
                        ctx, lines[1], "Duplicate Imports",
                        f"Multiple {kind} imports from '{source}'",
                        Severity.WARNING,
                        f"Combine {kind} imports from same source into single statement",
                    )

    def detect_heavy_imports(self, ctx: FileContext) -> Iterator[Issue]:
        parts = PurePosixPath(ctx.posix).parts
        if "app" in parts or "pages" in parts:
            return
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if not stripped.startswith("import "):
                continue
            _symbols, source = parse_import(stripped)
            if source in HEAVY_LIBRARIES and "{" not in stripped:
                yield self.issue(
                    ctx, i + 1, "Heavy Imports",
                    f"Importing entire '{source}' library",
                    Severity.INFO,
                    HEAVY_LIBRARIES[source],
                )
            if source in ("./index", "../index") and stripped.count(",") + 1 > 5:
                yield self.issue(
                    ctx, i + 1, "Heavy Imports",
                    "Large barrel import may import unnecessary code",
                    Severity.INFO,
                    "Import directly from source files for better tree-shaking",
                )

    def detect_import_organization(self, ctx: FileContext) -> Iterator[Issue]:
        order = {"external": 0, "internal": 1, "relative": 2}
        imports: list[tuple[int, str]] = []
        for i, line in enumerate(ctx.lines):
            stripped = line.strip()
            if stripped.startswith("import "):
                imports.append((i + 1, import_group(stripped)))
            elif stripped and not stripped.startswith("//") and imports:
                break

        if len(imports) < 3:
            return
        ranks = [order[group] for _line, group in imports]
        if ranks != sorted(ranks):
            yield self.issue(
                ctx, imports[0][0], "Import Organization",
                "Imports are not grouped by type",
                Severity.INFO,
                "Group imports: external → absolute (@/) → relative (./)",
            )
