"""Accessibility detector for JSX markup.

Covers a practical subset of WCAG 2.1 level A/AA checks that can be decided
from a single line of markup. Several of its findings have matching
generators in :mod:`codehealth.autofix`.
"""

import re
from collections.abc import Iterator

from ..models import Issue, Severity
from .base import Detector, FileContext, Rule

_TAB_INDEX = re.compile(r"tabIndex=\{?[\"']?(\d+)")
_EMPTY_ARIA_LABEL = re.compile(r"aria-label=(\"\"|''|\{\"\"\}|\{''\})")
_NON_INTERACTIVE_OPEN = re.compile(r"<(div|span|p|li|img)\b")
_GENERIC_LINK_TEXT = re.compile(r">\s*(click here|read more|here|more)\s*<", re.IGNORECASE)


class AccessibilityDetector(Detector):
    """WCAG-oriented detector for ``.tsx``/``.jsx`` files."""

    name = "accessibility"

    def rules(self) -> list[Rule]:
        return [
            self.detect_image_alt,
            self.detect_keyboard_access,
            self.detect_focus_order,
            self.detect_form_labels,
            self.detect_empty_aria_labels,
            self.detect_media,
            self.detect_link_text,
        ]

    def analyze(self, file_path: str, content: str) -> list[Issue]:
        if not file_path.endswith((".tsx", ".jsx")) or "/api/" in file_path.replace("\\", "/"):
            return []
        return super().analyze(file_path, content)

    def detect_image_alt(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if ("<img" in line or "<Image" in line) and "alt=" not in line:
                yield self.issue(
                    ctx, i + 1, "Images",
                    "Image missing alt attribute",
                    Severity.ERROR,
                    'Add alt="" for decorative images or descriptive alt text for meaningful images',
                )

    def detect_keyboard_access(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if "onClick" not in line or not _NON_INTERACTIVE_OPEN.search(line):
                continue
            has_keyboard = any(
                marker in line for marker in ("onKeyDown", "onKeyPress", 'role="button"', "tabIndex")
            )
            if not has_keyboard:
                yield self.issue(
                    ctx, i + 1, "Keyboard",
                    "onClick on non-interactive element without keyboard handler",
                    Severity.ERROR,
                    "Add onKeyDown handler or use <button> element instead",
                )

    def detect_focus_order(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            match = _TAB_INDEX.search(line)
            if match and int(match.group(1)) > 0:
                yield self.issue(
                    ctx, i + 1, "Focus Management",
                    "Positive tabIndex disrupts natural tab order",
                    Severity.WARNING,
                    "Use tabIndex={0} or tabIndex={-1}, avoid positive values",
                )

    def detect_form_labels(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            if "<input" not in line or 'type="hidden"' in line:
                continue
            nearby = "\n".join(lines[max(0, i - 3):i + 3])
            has_label_element = "<label" in nearby or "htmlFor" in nearby
            has_aria = "aria-label" in line or "aria-labelledby" in line
            has_placeholder = "placeholder=" in line

            if not has_label_element and not has_aria and not has_placeholder:
                yield self.issue(
                    ctx, i + 1, "Forms",
                    "Input field missing label",
                    Severity.ERROR,
                    "Add <label> element or aria-label attribute",
                )
            elif has_placeholder and not has_label_element and not has_aria:
                yield self.issue(
                    ctx, i + 1, "Forms",
                    "Using placeholder as label (insufficient for accessibility)",
                    Severity.WARNING,
                    "Add visible <label> element - placeholders disappear on input",
                )

    def detect_empty_aria_labels(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if _EMPTY_ARIA_LABEL.search(line):
                yield self.issue(
                    ctx, i + 1, "ARIA",
                    "Empty aria-label provides no accessible name",
                    Severity.WARNING,
                    "Remove the attribute or give it meaningful text",
                )

    def detect_media(self, ctx: FileContext) -> Iterator[Issue]:
        lines = ctx.lines
        for i, line in enumerate(lines):
            if "<video" in line:
                element = "\n".join(lines[i:i + 10])
                if "<track" not in element:
                    yield self.issue(
                        ctx, i + 1, "Media",
                        "Video element missing captions (track element)",
                        Severity.ERROR,
                        'Add <track kind="captions"> to the video',
                    )
            if "autoPlay" in line and ("<video" in line or "<audio" in line) and "muted" not in line:
                yield self.issue(
                    ctx, i + 1, "Media",
                    "Auto-playing media with sound",
                    Severity.WARNING,
                    "Mute auto-playing media or remove autoPlay",
                )

    def detect_link_text(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if ("<a " in line or "<Link" in line) and _GENERIC_LINK_TEXT.search(line):
                yield self.issue(
                    ctx, i + 1, "Links",
                    'Link text lacks context (generic "click here" or "read more")',
                    Severity.WARNING,
                    "Describe the link destination in its text",
                )
