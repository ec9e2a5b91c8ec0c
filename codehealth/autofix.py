"""Confidence-gated auto-fixer.

Consumes aggregated issues, groups them by file and asks a registry of fix
generators for a :class:`~codehealth.models.FixCandidate` per issue. Each
candidate carries a confidence estimate; only candidates at or above the
configured threshold are applied, the rest are reported as skipped.

Issues in a file are processed bottom-up so that a fix which inserts or
removes lines never shifts the line numbers of issues still to be handled.
Every generator re-reads its target line from the current content.

Usage::

    fixer = AutoFixer(dry_run=True, min_confidence=95)
    results = await fixer.fix_all(result.details)
    print(fixer.get_summary())
"""

import asyncio
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    ALWAYS_SAFE_CONFIDENCE,
    DEFAULT_MIN_CONFIDENCE,
    NEEDS_CONFIRMATION_CONFIDENCE,
    SAFE_WITH_REVIEW_CONFIDENCE,
)
from .core.exceptions import FileReadError, FixWriteError
from .core.file_discovery import PROTECTED_DIRECTORIES, read_source_file
from .core.logging_config import get_event_logger
from .detectors.import_detector import UNUSED_IMPORTS, import_group
from .detectors.structural import DEAD_CODE, DEBUG_STATEMENTS, DIRECTORY_STRUCTURE, UNUSED_MARKERS
from .models import FileFixResult, FixCandidate, FixSummary, Issue

logger = logging.getLogger(__name__)
event_logger = get_event_logger()

Generator = Callable[[Issue, list[str]], FixCandidate | None]

_IMAGE_TAG = re.compile(r"<(img|Image)\b")
_EMPTY_ARIA_LABEL = re.compile(r"\s*aria-label=(\"\"|''|\{\"\"\}|\{''\})")
_POSITIVE_TAB_INDEX = re.compile(r"tabIndex=\{?[\"']?[1-9]\d*[\"']?\}?")
_CLICKABLE_TAG = re.compile(r"<(div|span|p|li|img)\b")
_CLICK_HANDLER = re.compile(r"onClick=\{([\w.]+)\}")
_PLACEHOLDER = re.compile(r"placeholder=[\"']([^\"']+)[\"']")
_INPUT_ID = re.compile(r"\bid=[\"']([^\"']+)[\"']")
_CONSOLE_LOG = re.compile(r"^console\.log\(.*\);?$")

_DECORATIVE_HINTS = ("icon", "decoration", "bg-")
_GROUP_ORDER = {"external": 0, "internal": 1, "relative": 2}


def classify_confidence(confidence: int) -> str:
    """Map a confidence to its :class:`~codehealth.models.FixSummary` tier field."""
    if confidence >= ALWAYS_SAFE_CONFIDENCE:
        return "always_safe"
    if confidence >= SAFE_WITH_REVIEW_CONFIDENCE:
        return "safe_with_review"
    if confidence >= NEEDS_CONFIRMATION_CONFIDENCE:
        return "needs_confirmation"
    return "manual_only"


def _target(issue: Issue, lines: list[str]) -> int | None:
    index = issue.line - 1
    if 0 <= index < len(lines):
        return index
    return None


def _replace_line(lines: list[str], index: int, new_line: str) -> str:
    updated = list(lines)
    updated[index] = new_line
    return "\n".join(updated)


def _indentation(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def line_terminator(content: str) -> str:
    """Return ``"\\r\\n"`` if most lines in *content* end that way, else ``"\\n"``."""
    crlf = content.count("\r\n")
    return "\r\n" if crlf > content.count("\n") - crlf else "\n"


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def fix_marked_unused_import(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Remove an import line explicitly marked as unused."""
    index = _target(issue, lines)
    if index is None:
        return None
    line = lines[index]
    if not line.strip().startswith("import ") or not any(m in line for m in UNUSED_MARKERS):
        return None
    return FixCandidate(
        new_content="\n".join(lines[:index] + lines[index + 1:]),
        description=f"Removed unused import at line {issue.line}",
        confidence=99,
        reason="The import is explicitly marked as unused",
    )


def fix_empty_aria_label(issue: Issue, lines: list[str]) -> FixCandidate | None:
    index = _target(issue, lines)
    if index is None:
        return None
    new_line = _EMPTY_ARIA_LABEL.sub("", lines[index], count=1)
    if new_line == lines[index]:
        return None
    return FixCandidate(
        new_content=_replace_line(lines, index, new_line),
        description=f"Removed empty aria-label at line {issue.line}",
        confidence=99,
        reason="An empty aria-label hides the element's accessible name",
    )


def fix_positive_tab_index(issue: Issue, lines: list[str]) -> FixCandidate | None:
    index = _target(issue, lines)
    if index is None:
        return None
    new_line = _POSITIVE_TAB_INDEX.sub("tabIndex={0}", lines[index], count=1)
    if new_line == lines[index]:
        return None
    return FixCandidate(
        new_content=_replace_line(lines, index, new_line),
        description=f"Reset positive tabIndex to 0 at line {issue.line}",
        confidence=99,
        reason="tabIndex={0} keeps the element focusable in document order",
    )


def fix_empty_catch(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Document an empty catch block whose closing brace directly follows it."""
    index = _target(issue, lines)
    if index is None or index + 1 >= len(lines):
        return None
    if lines[index + 1].strip() != "}":
        return None
    comment = f"{_indentation(lines[index])}  // Error intentionally ignored - safe to suppress"
    updated = lines[: index + 1] + [comment] + lines[index + 1:]
    return FixCandidate(
        new_content="\n".join(updated),
        description=f"Added comment to empty catch block at line {issue.line}",
        confidence=96,
        reason="Only adds a comment; behaviour is unchanged",
    )


def fix_import_organization(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Reorder the leading import block: external, then ``@/``, then relative."""
    positions: list[int] = []
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("import "):
            positions.append(i)
        elif stripped and not stripped.startswith("//") and positions:
            break

    if len(positions) < 2:
        return None
    imports = [lines[i] for i in positions]
    ordered = sorted(imports, key=lambda line: _GROUP_ORDER[import_group(line.strip())])
    if ordered == imports:
        return None

    updated = list(lines)
    for position, line in zip(positions, ordered):
        updated[position] = line
    return FixCandidate(
        new_content="\n".join(updated),
        description="Organized imports (external, internal, relative)",
        confidence=95,
        reason="Reordering side-effect-free imports does not change behaviour",
    )


def fix_keyboard_access(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Give a clickable non-interactive element a role and an Enter key handler."""
    index = _target(issue, lines)
    if index is None:
        return None
    line = lines[index]
    if "onKeyDown" in line or "role=" in line:
        return None
    handler = _CLICK_HANDLER.search(line)
    tag = _CLICKABLE_TAG.search(line)
    if handler is None or tag is None:
        return None

    attributes = ' role="button"' if "tabIndex" in line else ' role="button" tabIndex={0}'
    new_line = line[: tag.end()] + attributes + line[tag.end():]
    key_handler = f" onKeyDown={{(e) => e.key === 'Enter' && {handler.group(1)}(e)}}"
    new_line = new_line.replace(handler.group(0), handler.group(0) + key_handler, 1)
    return FixCandidate(
        new_content=_replace_line(lines, index, new_line),
        description=f"Added keyboard support to clickable element at line {issue.line}",
        confidence=92,
        reason="Mirrors the existing click handler for the Enter key",
    )


def fix_console_log(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Remove a ``console.log`` call that stands alone on its line."""
    index = _target(issue, lines)
    if index is None or not _CONSOLE_LOG.match(lines[index].strip()):
        return None
    return FixCandidate(
        new_content="\n".join(lines[:index] + lines[index + 1:]),
        description=f"Removed console.log at line {issue.line}",
        confidence=90,
        reason="Debug output has no effect on program behaviour",
    )


def fix_missing_alt(issue: Issue, lines: list[str]) -> FixCandidate | None:
    index = _target(issue, lines)
    if index is None:
        return None
    line = lines[index]
    tag = _IMAGE_TAG.search(line)
    if tag is None or "alt=" in line:
        return None

    decorative = any(hint in line.lower() for hint in _DECORATIVE_HINTS)
    alt = ' alt=""' if decorative else ' alt="TODO: Add descriptive alt text"'
    new_line = line[: tag.end()] + alt + line[tag.end():]
    return FixCandidate(
        new_content=_replace_line(lines, index, new_line),
        description=f"Added alt attribute to image at line {issue.line}",
        confidence=85,
        reason="Decorative images get empty alt text; others need a human-written description",
    )


def fix_placeholder_label(issue: Issue, lines: list[str]) -> FixCandidate | None:
    """Insert a visible label for an input that only has a placeholder."""
    index = _target(issue, lines)
    if index is None:
        return None
    line = lines[index]
    placeholder = _PLACEHOLDER.search(line)
    if placeholder is None or "<input" not in line:
        return None

    text = placeholder.group(1)
    existing_id = _INPUT_ID.search(line)
    if existing_id:
        input_id = existing_id.group(1)
        input_line = line
    else:
        slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "field"
        input_id = f"input-{slug}"
        input_line = line.replace("<input", f'<input id="{input_id}"', 1)

    label = f'{_indentation(line)}<label htmlFor="{input_id}">{text}</label>'
    updated = lines[:index] + [label, input_line] + lines[index + 1:]
    return FixCandidate(
        new_content="\n".join(updated),
        description=f"Added label for input at line {issue.line}",
        confidence=75,
        reason="Label wording is copied from the placeholder and may need review",
    )


def _no_fix(issue: Issue, lines: list[str]) -> FixCandidate | None:
    return None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FixRule:
    """Associates issues (by category and message) with a generator."""

    categories: tuple[str, ...]
    generator: Generator
    message_contains: str = ""

    def matches(self, issue: Issue) -> bool:
        if issue.category not in self.categories:
            return False
        return self.message_contains.lower() in issue.message.lower()


FIX_RULES: tuple[FixRule, ...] = (
    FixRule((UNUSED_IMPORTS, DEAD_CODE), fix_marked_unused_import),
    FixRule(("ARIA", "Type Safety"), fix_empty_aria_label, "empty aria-label"),
    FixRule(("Focus Management",), fix_positive_tab_index, "positive tabIndex"),
    FixRule(("Error Handling",), fix_empty_catch, "Empty catch"),
    FixRule(("Import Organization",), fix_import_organization),
    FixRule(("Keyboard",), fix_keyboard_access, "onClick on non-interactive"),
    FixRule(("Code Cleanup", DEBUG_STATEMENTS), fix_console_log),
    FixRule(("Images", "Accessibility"), fix_missing_alt, "alt"),
    FixRule(("Forms",), fix_placeholder_label, "placeholder"),
    # Hoisting inline objects needs data-flow analysis
    FixRule(("React Performance",), _no_fix, "inline object"),
)


def find_generator(issue: Issue) -> Generator | None:
    """Return the generator registered for *issue*, if any."""
    for rule in FIX_RULES:
        if rule.matches(issue):
            return rule.generator
    return None


# ---------------------------------------------------------------------------
# Fixer
# ---------------------------------------------------------------------------


class AutoFixer:
    """Applies fix candidates whose confidence meets a threshold.

    Args:
        dry_run: Compute fixes without writing files.
        min_confidence: Lowest confidence that is applied.
        root: Directory that relative issue paths are resolved against.
    """

    def __init__(
        self,
        dry_run: bool = False,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        root: str | Path | None = None,
    ):
        self.dry_run = dry_run
        self.min_confidence = min_confidence
        self.root = Path(root) if root is not None else None
        self._results: list[FileFixResult] = []

    async def fix_all(self, issues_by_category: Mapping[str, Sequence[Issue]]) -> list[FileFixResult]:
        """Fix every fixable issue.

        A file that cannot be read or written is logged and left out of the
        results; the remaining files are still processed. Empty directories
        reported by the directory-structure check are removed.

        Returns:
            One result per file or directory that had applied or skipped
            candidates.
        """
        by_file: dict[str, list[Issue]] = {}
        directories: list[Issue] = []
        for issues in issues_by_category.values():
            for issue in issues:
                if issue.category == DIRECTORY_STRUCTURE:
                    directories.append(issue)
                else:
                    by_file.setdefault(issue.file, []).append(issue)

        results: list[FileFixResult] = []
        for file, issues in by_file.items():
            if not any(find_generator(issue) for issue in issues):
                continue
            result = await self._fix_file(file, issues)
            if result is not None:
                results.append(self._record(result))

        for issue in directories:
            result = await self._remove_empty_directory(issue)
            if result is not None:
                results.append(self._record(result))

        self._results.extend(results)
        return results

    async def _fix_file(self, file: str, issues: Sequence[Issue]) -> FileFixResult | None:
        path = self._resolve(file)
        try:
            content = await read_source_file(path, preserve_newlines=True)
        except FileReadError as e:
            logger.warning(f"Skipping fixes for {file}: {e}")
            return None

        # generators work on LF lines; CRLF files get their endings back on write
        newline = line_terminator(content)
        if newline != "\n":
            content = content.replace(newline, "\n")

        result, new_content = self.fix_content(file, content, issues)
        if not result.changes and not result.skipped:
            return None

        if result.fixes_applied and not self.dry_run:
            try:
                await self._write(path, new_content.replace("\n", newline))
            except FixWriteError as e:
                logger.error(str(e))
                return None
        return result

    async def _remove_empty_directory(self, issue: Issue) -> FileFixResult | None:
        """Remove a directory reported as empty, unless it is protected."""
        if any(part in PROTECTED_DIRECTORIES for part in Path(issue.file).parts):
            return None

        result = FileFixResult(file=issue.file)
        candidate = FixCandidate(
            new_content="",
            description=f"Removed empty directory {issue.file}",
            confidence=99,
            reason="The directory has no contents",
            can_revert=True,
        )
        if candidate.confidence < self.min_confidence:
            result.skipped.append(candidate)
            return result

        if not self.dry_run:
            path = self._resolve(issue.file)
            try:
                # rmdir refuses directories that gained contents since the check
                await asyncio.to_thread(path.rmdir)
            except OSError as e:
                logger.warning(f"Could not remove empty directory {path}: {e}")
                return None

        result.changes.append(candidate)
        result.fixes_applied = 1
        setattr(result.summary, classify_confidence(candidate.confidence), 1)
        return result

    def _record(self, result: FileFixResult) -> FileFixResult:
        event_logger.info(
            "Fixes applied" if not self.dry_run else "Fixes computed (dry run)",
            extra={
                "event": "fix",
                "file": result.file,
                "fixes_applied": result.fixes_applied,
                "dry_run": self.dry_run,
            },
        )
        return result

    def fix_content(self, file: str, content: str, issues: Sequence[Issue]) -> tuple[FileFixResult, str]:
        """Compute fixes for one file's *content* without touching the disk.

        Returns:
            The per-file result and the content after all applied fixes.
        """
        result = FileFixResult(file=file)
        summary = FixSummary()

        for issue in sorted(issues, key=lambda issue: issue.line, reverse=True):
            generator = find_generator(issue)
            if generator is None:
                continue
            try:
                candidate = generator(issue, content.split("\n"))
            except Exception as e:
                logger.warning(f"Fix generator {generator.__name__} failed on {file}: {e}")
                continue
            if candidate is None:
                continue

            if candidate.confidence < self.min_confidence:
                result.skipped.append(candidate)
                continue

            content = candidate.new_content
            result.changes.append(candidate)
            tier = classify_confidence(candidate.confidence)
            setattr(summary, tier, getattr(summary, tier) + 1)

        result.fixes_applied = len(result.changes)
        result.summary = summary
        return result, content

    def get_results(self) -> list[FileFixResult]:
        return list(self._results)

    def get_summary(self) -> str:
        fixed = [result for result in self._results if result.fixes_applied]
        total = sum(result.fixes_applied for result in fixed)
        return f"Fixed {total} issues across {len(fixed)} files"

    def _resolve(self, file: str) -> Path:
        path = Path(file)
        if self.root is not None and not path.is_absolute():
            return self.root / path
        return path

    async def _write(self, path: Path, content: str) -> None:
        try:
            await asyncio.to_thread(path.write_bytes, content.encode("utf-8"))
        except OSError as e:
            raise FixWriteError(f"Failed to write fixes to {path}: {e}", path=str(path)) from e
