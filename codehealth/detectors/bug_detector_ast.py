"""Syntax-tree bug detector.

A drop-in alternative to :class:`~codehealth.detectors.bug_detector.BugDetector`
that inspects the tree-sitter parse tree instead of raw lines. It reports the
same categories with far fewer false positives for the bugs it covers, at the
cost of parsing every file.
"""

import logging
from collections.abc import Iterator

from ..models import Issue, Severity
from ..parsing import (
    ASTEngine,
    ParsedAST,
    contains_node_type,
    is_async_function,
    is_function_node,
    language_for_path,
)
from .base import Detector, FileContext, Rule

logger = logging.getLogger(__name__)

_LOOSE_TYPING_PATHS = ("/api/", "/utils/", "/lib/", "Schema", "validation")


class BugDetectorAST(Detector):
    """Bug detector backed by :class:`~codehealth.parsing.ASTEngine`."""

    name = "bugs"

    def __init__(self, engine: ASTEngine | None = None) -> None:
        super().__init__()
        self.engine = engine or ASTEngine()
        self._cached: tuple[FileContext, ParsedAST] | None = None

    def rules(self) -> list[Rule]:
        return [
            self.detect_empty_catch,
            self.detect_unhandled_async,
            self.detect_assignment_in_condition,
            self.detect_async_foreach,
            self.detect_eval,
            self.detect_unsafe_html,
            self.detect_interval_leaks,
            self.detect_any_type,
        ]

    def _parse(self, ctx: FileContext) -> ParsedAST:
        if self._cached is not None and self._cached[0] is ctx:
            return self._cached[1]
        ast = self.engine.parse(ctx.content, language=language_for_path(ctx.path))
        if ast.has_errors:
            logger.debug(f"Parse errors in {ctx.path}, results may be partial")
        self._cached = (ctx, ast)
        return ast

    def detect_empty_catch(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.is_test:
            return
        ast = self._parse(ctx)
        for clause in self.engine.find_nodes_by_type(ast, "catch_clause"):
            body = clause.child_by_field_name("body")
            if body is not None and body.named_child_count == 0:
                yield self.issue(
                    ctx, clause.start_point.row + 1, "Error Handling",
                    "Empty catch block silently swallows errors",
                    Severity.WARNING,
                    "At minimum, log the error or add a comment explaining why it is safe to ignore",
                )

    def detect_unhandled_async(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.is_test:
            return
        ast = self._parse(ctx)
        for definition in self.engine.find_function_definitions(ast):
            node = definition.node
            if not definition.is_async or node is None:
                continue
            if not contains_node_type(node, "await_expression"):
                continue
            if contains_node_type(node, "try_statement"):
                continue
            if ".catch(" in ast.get_text(node):
                continue
            yield self.issue(
                ctx, definition.line, "Error Handling",
                "Async function missing error handling",
                Severity.WARNING,
                "Add try-catch block or .catch() handler",
            )

    def detect_assignment_in_condition(self, ctx: FileContext) -> Iterator[Issue]:
        ast = self._parse(ctx)
        for statement in self.engine.find_nodes_by_type(ast, "if_statement"):
            condition = statement.child_by_field_name("condition")
            if condition is None:
                continue
            inner = condition.named_children[0] if condition.named_child_count else None
            if inner is not None and inner.type == "assignment_expression":
                yield self.issue(
                    ctx, statement.start_point.row + 1, "Logic Error",
                    "Assignment (=) in if condition instead of comparison (===)",
                    Severity.ERROR,
                    "Use === for comparison or wrap assignment in parentheses if intentional",
                )

    def detect_async_foreach(self, ctx: FileContext) -> Iterator[Issue]:
        ast = self._parse(ctx)
        for call in self.engine.find_function_calls(ast, function_name="forEach"):
            args = call.node.child_by_field_name("arguments") if call.node else None
            if args is None or not args.named_child_count:
                continue
            callback = args.named_children[0]
            if is_function_node(callback) and is_async_function(callback):
                yield self.issue(
                    ctx, call.line, "Logic Error",
                    "async callback in forEach does not wait for promises",
                    Severity.ERROR,
                    "Use for...of loop or Promise.all with map()",
                )

    def detect_eval(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.is_test:
            return
        ast = self._parse(ctx)
        for call in self.engine.find_function_calls(ast, function_name="eval"):
            if call.receiver is None:
                yield self.issue(
                    ctx, call.line, "Security",
                    "eval() is dangerous and should be avoided",
                    Severity.ERROR,
                    "Use safer alternatives like JSON.parse",
                )

    def detect_unsafe_html(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.is_jsx or "sanitize" in ctx.content or "DOMPurify" in ctx.content:
            return
        ast = self._parse(ctx)
        for attribute in self.engine.find_nodes_by_type(ast, "jsx_attribute"):
            if not attribute.named_child_count:
                continue
            if ast.get_text(attribute.named_children[0]) == "dangerouslySetInnerHTML":
                yield self.issue(
                    ctx, attribute.start_point.row + 1, "Security",
                    "dangerouslySetInnerHTML without sanitization - XSS risk",
                    Severity.ERROR,
                    "Sanitize HTML content using DOMPurify or similar",
                )

    def detect_interval_leaks(self, ctx: FileContext) -> Iterator[Issue]:
        ast = self._parse(ctx)
        intervals = self.engine.find_function_calls(ast, function_name="setInterval")
        if not intervals or self.engine.find_function_calls(ast, function_name="clearInterval"):
            return
        for call in intervals:
            yield self.issue(
                ctx, call.line, "Resource Leak",
                "setInterval without clearInterval may cause memory leak",
                Severity.WARNING,
                "Add cleanup in useEffect return or component unmount",
            )

    def detect_any_type(self, ctx: FileContext) -> Iterator[Issue]:
        if ctx.path.endswith((".js", ".jsx")):
            return
        if any(fragment in ctx.posix for fragment in _LOOSE_TYPING_PATHS):
            return
        ast = self._parse(ctx)
        for node in self.engine.find_nodes_by_type(ast, "predefined_type"):
            if ast.get_text(node) == "any":
                yield self.issue(
                    ctx, node.start_point.row + 1, "Type Safety",
                    'Using "any" type defeats TypeScript benefits',
                    Severity.INFO,
                    'Define proper types or use "unknown" for better type safety',
                )
