"""Pre-order traversal of formula ASTs.

Evaluators, highlighters and dependency analysis all rely on this order:
a node is visited before its children, children in source order.
"""

from typing import Callable, Iterator, List, Union

from .builder import BuildResult
from .nodes import (
    Node,
    ArrayNode, Definition, FunctionCall, NamedArgument, ObjectNode, PipeOp,
)


def children(node: Node, named_args: bool = False) -> List[Node]:
    """Child nodes in source order; leaves return an empty list.

    Named arguments of a call are skipped unless `named_args` is set.
    """
    if isinstance(node, Definition):
        return [node.expr]
    if isinstance(node, FunctionCall):
        if named_args:
            return list(node.args) + list(node.named_args)
        return list(node.args)
    if isinstance(node, NamedArgument):
        return [node.value]
    if isinstance(node, PipeOp):
        return [node.left, node.right]
    if isinstance(node, ArrayNode):
        return list(node.values)
    if isinstance(node, ObjectNode):
        return [entry.value for entry in node.entries]
    return []


def iter_nodes(expression: Union[BuildResult, Node], named_args: bool = False) -> Iterator[Node]:
    """Yield every node of the tree once, in pre-order."""
    root = expression.root if isinstance(expression, BuildResult) else expression
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        # pushed in reverse so the leftmost child is popped first
        stack.extend(reversed(children(node, named_args)))


def walk(
    expression: Union[BuildResult, Node],
    visit: Callable[[Node], None],
    named_args: bool = False,
) -> None:
    """
    Visit every node of a built formula in pre-order.

    Args:
        expression: A BuildResult or any AST node
        visit: Called once per node, parent before children
        named_args: Also descend into named call arguments
    """
    for node in iter_nodes(expression, named_args):
        visit(node)
