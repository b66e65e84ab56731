"""
AST rendering for debugging and console output.

`render_ast` builds a rich Tree mirroring the walker's child order
(named arguments included), labelled with `format_node`.
"""

from typing import Union

from rich.text import Text
from rich.tree import Tree as RichTree

from .addresses import cell_name
from .builder import BuildResult
from .nodes import (
    Node,
    NumberNode, StringNode, BooleanNode, Var, CellRef, RangeRef,
    FunctionCall, NamedArgument, Definition, ErrorNode,
)
from .walker import children


def _format_span(node: Node) -> str:
    if node.start is None or node.end is None:
        return "[?]"
    return f"[{node.start}:{node.end}]"


def format_node(node: Node) -> str:
    """One-line label for a node: its type tag, payload and span."""
    if isinstance(node, (NumberNode, StringNode, BooleanNode)):
        detail = f" {node.value!r}"
    elif isinstance(node, Var):
        detail = f" {node.name}"
    elif isinstance(node, CellRef):
        detail = f" {cell_name(node.row, node.col)}"
    elif isinstance(node, RangeRef):
        detail = f" {cell_name(node.start_row, node.start_col)}:{cell_name(node.end_row, node.end_col)}"
    elif isinstance(node, (FunctionCall, NamedArgument, Definition)):
        detail = f" {node.name}" if node.name else ""
    elif isinstance(node, ErrorNode):
        detail = f" {node.message!r}"
    else:
        detail = ""
    return f"{node.type.value}{detail} {_format_span(node)}"


def render_ast(expression: Union[BuildResult, Node]) -> RichTree:
    """
    Render a built formula as a rich Tree.

    Args:
        expression: A BuildResult or any AST node

    Returns:
        rich.tree.Tree, printable with rich.print / Console.print
    """
    root = expression.root if isinstance(expression, BuildResult) else expression
    tree = RichTree(Text(format_node(root)))
    stack = [(root, tree)]
    while stack:
        node, branch = stack.pop()
        for child in children(node, named_args=True):
            stack.append((child, branch.add(Text(format_node(child)))))
    return tree
