"""tree-sitter based parsing of TypeScript and JavaScript sources.

Quick start::

    from codehealth.parsing import ASTEngine

    engine = ASTEngine()
    ast = engine.parse("setInterval(tick, 1000);", language="javascript")
    calls = engine.find_function_calls(ast, function_name="setInterval")
"""

from .ast_engine import (
    ASTEngine,
    FunctionCall,
    FunctionDefinition,
    ParsedAST,
    contains_node_type,
    is_async_function,
    is_function_node,
    language_for_path,
)

__all__ = [
    "ASTEngine",
    "FunctionCall",
    "FunctionDefinition",
    "ParsedAST",
    "contains_node_type",
    "is_async_function",
    "is_function_node",
    "language_for_path",
]
