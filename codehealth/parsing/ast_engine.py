"""AST parsing engine for TypeScript and JavaScript.

Thin wrapper around tree-sitter that parses TS/JS/TSX source into a tree and
offers a handful of structured finders used by the AST bug detector.

Usage::

    engine = ASTEngine()
    ast = engine.parse(source, language=language_for_path("src/app.tsx"))
    for fn in engine.find_function_definitions(ast):
        print(fn.name, fn.is_async, fn.line)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import tree_sitter as ts
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Structured results
# ---------------------------------------------------------------------------


@dataclass
class FunctionCall:
    """A function or method call.

    Attributes:
        name: Called function or method name (``"setInterval"``).
        receiver: Object a method is called on, if any.
        line: 1-based line number.
        node: The ``call_expression`` node.
    """

    name: str
    receiver: str | None = None
    line: int = 0
    node: ts.Node | None = field(default=None, repr=False)


@dataclass
class FunctionDefinition:
    """A function declaration, function expression, arrow function or method.

    Attributes:
        name: Declared name, the assigned variable for anonymous functions,
            or ``"<anonymous>"``.
        line: 1-based line number.
        is_async: ``True`` when declared with ``async``.
        node: The defining node.
    """

    name: str
    line: int = 0
    is_async: bool = False
    node: ts.Node | None = field(default=None, repr=False)


_FUNCTION_NODE_TYPES = frozenset({
    "function_declaration",
    "function_expression",
    "arrow_function",
    "method_definition",
    "generator_function_declaration",
})

# ---------------------------------------------------------------------------
# ParsedAST wrapper
# ---------------------------------------------------------------------------


class ParsedAST:
    """Wrapper around a tree-sitter parse tree.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source string that was parsed.
        language: ``"javascript"``, ``"typescript"`` or ``"tsx"``.
    """

    __slots__ = ("tree", "source_code", "language", "_source_bytes")

    def __init__(self, tree: ts.Tree, source_code: str, language: str) -> None:
        self.tree = tree
        self.source_code = source_code
        self.language = language
        self._source_bytes: bytes = source_code.encode("utf-8")

    @property
    def root_node(self) -> ts.Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        """Return ``True`` if the tree contains any parse errors."""
        return self.tree.root_node.has_error

    def get_text(self, node: ts.Node) -> str:
        """Extract the source text spanned by *node*."""
        return self._source_bytes[node.start_byte:node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def walk(self, visitor: Callable[[ts.Node], bool | None]) -> None:
        """Depth-first walk calling *visitor* on every node.

        Returning ``False`` from the visitor skips that node's children.
        The walk is iterative so deeply nested sources cannot exhaust the
        recursion limit.
        """
        stack = [self.tree.root_node]
        while stack:
            node = stack.pop()
            if visitor(node) is False:
                continue
            stack.extend(reversed(node.children))


def language_for_path(path: str) -> str:
    """Pick the grammar for a file based on its extension."""
    if path.endswith(".tsx"):
        return "tsx"
    if path.endswith(".ts"):
        return "typescript"
    return "javascript"


# ---------------------------------------------------------------------------
# ASTEngine
# ---------------------------------------------------------------------------

_SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})


class ASTEngine:
    """Parses TS/JS source with tree-sitter.

    Languages and parsers are created lazily and cached per engine.
    """

    def __init__(self) -> None:
        self._languages: dict[str, ts.Language] = {}
        self._parsers: dict[str, ts.Parser] = {}

    def _get_language(self, language: str) -> ts.Language:
        if language not in _SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language: {language!r}. "
                f"Supported: {', '.join(sorted(_SUPPORTED_LANGUAGES))}"
            )

        if language not in self._languages:
            if language == "javascript":
                self._languages[language] = ts.Language(ts_js.language())
            elif language == "typescript":
                self._languages[language] = ts.Language(ts_ts.language_typescript())
            else:
                self._languages[language] = ts.Language(ts_ts.language_tsx())

        return self._languages[language]

    def _get_parser(self, language: str) -> ts.Parser:
        if language not in self._parsers:
            self._parsers[language] = ts.Parser(language=self._get_language(language))
        return self._parsers[language]

    def parse(self, source_code: str, language: str = "typescript") -> ParsedAST:
        """Parse *source_code* into a ``ParsedAST``.

        Raises:
            ValueError: If *language* is not supported.
        """
        tree = self._get_parser(language).parse(source_code.encode("utf-8"))
        return ParsedAST(tree=tree, source_code=source_code, language=language)

    # ------------------------------------------------------------------
    # Finders
    # ------------------------------------------------------------------

    def find_nodes_by_type(self, ast: ParsedAST, *node_types: str) -> list[ts.Node]:
        """Return all nodes whose type is one of *node_types*."""
        wanted = set(node_types)
        matches: list[ts.Node] = []

        def _visitor(node: ts.Node) -> None:
            if node.type in wanted:
                matches.append(node)

        ast.walk(_visitor)
        return matches

    def find_function_calls(
        self, ast: ParsedAST, function_name: str | None = None
    ) -> list[FunctionCall]:
        """Find call expressions, optionally only those named *function_name*."""
        calls: list[FunctionCall] = []

        for node in self.find_nodes_by_type(ast, "call_expression"):
            fn_node = node.child_by_field_name("function")
            if fn_node is None:
                continue

            receiver: str | None = None
            if fn_node.type == "member_expression":
                prop = fn_node.child_by_field_name("property")
                obj = fn_node.child_by_field_name("object")
                name = ast.get_text(prop) if prop else ast.get_text(fn_node)
                receiver = ast.get_text(obj) if obj else None
            else:
                name = ast.get_text(fn_node)

            if function_name is not None and name != function_name:
                continue
            calls.append(
                FunctionCall(
                    name=name,
                    receiver=receiver,
                    line=node.start_point.row + 1,
                    node=node,
                )
            )

        return calls

    def find_function_definitions(self, ast: ParsedAST) -> list[FunctionDefinition]:
        """Find every function-like definition."""
        definitions: list[FunctionDefinition] = []

        for node in self.find_nodes_by_type(ast, *_FUNCTION_NODE_TYPES):
            definitions.append(
                FunctionDefinition(
                    name=self._function_name(ast, node),
                    line=node.start_point.row + 1,
                    is_async=is_async_function(node),
                    node=node,
                )
            )

        return definitions

    def _function_name(self, ast: ParsedAST, node: ts.Node) -> str:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return ast.get_text(name_node)
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None:
                return ast.get_text(target)
        return "<anonymous>"


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def is_async_function(node: ts.Node) -> bool:
    """Return ``True`` if a function-like node carries the ``async`` keyword."""
    return any(child.type == "async" for child in node.children)


def contains_node_type(node: ts.Node, node_type: str, stop_at_functions: bool = True) -> bool:
    """Return ``True`` if *node_type* occurs below *node*.

    With *stop_at_functions*, nested function bodies are not searched, so an
    ``await`` inside an inner callback does not count for the outer function.
    """
    stack = list(node.children)
    while stack:
        current = stack.pop()
        if current.type == node_type:
            return True
        if stop_at_functions and current.type in _FUNCTION_NODE_TYPES:
            continue
        stack.extend(current.children)
    return False


def is_function_node(node: ts.Node) -> bool:
    return node.type in _FUNCTION_NODE_TYPES
