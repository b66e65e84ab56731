"""
Formula Tree Builder - CST to AST transformer.

This module maps a Lark parse tree of a formula onto the typed node model
in `cellexpr.nodes`, collecting three side tables along the way:

- nodes:  every created node, in completion order
- inputs: Var/CellRef/RangeRef nodes, for dependency analysis
- tokens: highlight tokens, in source order

Malformed input never raises here. Unrecognized CST shapes become
ErrorNode, omitted call arguments become EmptyArgument, and a tree carrying
an `exception` (see parser.ErrorTree) reports it through its ErrorNode.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from lark import Tree, Token

from .addresses import parse_cell, parse_range
from .logging_config import configure_logger_for_debug
from .nodes import (
    Node,
    NumberNode, StringNode, BooleanNode, Var, CellRef, RangeRef,
    ArrayNode, ObjectNode, ObjectEntry,
    FunctionCall, NamedArgument, EmptyArgument,
    Definition, PipeOp, ErrorNode,
    HighlightToken, TokenKind,
    UNARY_OPERATORS, BINARY_OPERATORS, SELECT,
)

logger = configure_logger_for_debug(__name__)

CSTNode = Union[Tree, Token]
Span = Tuple[Optional[int], Optional[int]]

PARSER_ERROR_MESSAGE = "Parser error."
INVALID_NUMBER_MESSAGE = "Invalid number."

_INT_RE = re.compile(r"^[0-9]+$")


# ============================================================
# BUILD STATE
# ============================================================

@dataclass
class BuildContext:
    """Mutable state of one build: id counter and side tables.

    A fresh context is created for every build; never share one between
    concurrent builds.
    """
    node_id: int = 0
    nodes: List[Node] = field(default_factory=list)
    inputs: List[Node] = field(default_factory=list)
    tokens: List[HighlightToken] = field(default_factory=list)

    def next_id(self) -> int:
        node_id = self.node_id
        self.node_id += 1
        return node_id

    def add_token(self, kind: TokenKind, symbol: Token) -> None:
        self.tokens.append(HighlightToken.from_symbol(kind, symbol))


@dataclass
class BuildResult:
    """A built formula: AST root plus side tables."""
    root: Node
    nodes: List[Node] = field(default_factory=list)
    inputs: List[Node] = field(default_factory=list)
    tokens: List[HighlightToken] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def errors(self) -> List[ErrorNode]:
        return [n for n in self.nodes if isinstance(n, ErrorNode)]

    @property
    def ok(self) -> bool:
        """True when the formula is complete: no ErrorNode, no EmptyArgument."""
        return not any(isinstance(n, (ErrorNode, EmptyArgument)) for n in self.nodes)

    def input_names(self) -> List[str]:
        """Referenced variables, cells and ranges in first-reference order.

        Cells and ranges are named by their source text.
        """
        names = []
        for node in self.inputs:
            if isinstance(node, Var):
                name = node.name
            elif self.source is not None and node.start is not None:
                name = self.source[node.start:node.end]
            else:
                continue
            if name not in names:
                names.append(name)
        return names


# ============================================================
# CST HELPERS
# ============================================================

def get_span(node: Any) -> Span:
    """Source span of a CST node, `end` exclusive; (None, None) if unknown."""
    if isinstance(node, Token):
        if node.start_pos is not None and node.end_pos is not None:
            return node.start_pos, node.end_pos
        return None, None
    if isinstance(node, Tree):
        meta = node.meta
        if not meta.empty:
            return getattr(meta, "start_pos", None), getattr(meta, "end_pos", None)
    return None, None


def get_text(node: Any) -> str:
    """Raw text of a CST node: the concatenated values of its terminals."""
    if isinstance(node, Token):
        return str(node)
    if isinstance(node, Tree):
        return "".join(get_text(child) for child in node.children)
    return ""


def _first_token(node: Tree, *types: str) -> Optional[Token]:
    for child in node.children:
        if isinstance(child, Token) and (not types or child.type in types):
            return child
    return None


def _subtrees(node: Tree) -> List[CSTNode]:
    """Children that carry meaning, i.e. everything except separator commas."""
    return [c for c in node.children if not _is_comma(c)]


def _is_comma(node: Any) -> bool:
    return isinstance(node, Token) and str(node) == ","


def _is_named_argument(node: Any) -> bool:
    return isinstance(node, Tree) and node.data in ("named_argument", "named-argument")


def _unquote(text: str) -> str:
    return text[1:-1]


def _to_number(text: str) -> Union[int, float]:
    if _INT_RE.match(text):
        return int(text)
    return float(text)


# ============================================================
# TREE BUILDER
# ============================================================

class TreeBuilder:
    """
    Transforms formula CST nodes into AST nodes.

    Dispatch is by CST kind: operator kinds lower to FunctionCall, every
    other kind is handled by `_build_<kind>` (with '-' read as '_').
    Kinds without a handler become ErrorNode.

    Usage:
        builder = TreeBuilder()
        root = builder.build(tree)
        builder.context.nodes  # side tables
    """

    def __init__(self, context: Optional[BuildContext] = None):
        self.context = context if context is not None else BuildContext()

    def build(self, node: CSTNode) -> Node:
        """Build the AST node for a CST node, recursively."""
        kind = str(node.data) if isinstance(node, Tree) else str(node.type)
        if kind in UNARY_OPERATORS:
            return self._lower_operator(node, 1)
        if kind in BINARY_OPERATORS:
            return self._lower_operator(node, 2)
        method = getattr(self, f"_build_{kind.replace('-', '_')}", None)
        if method is None:
            return self._error_node(node)
        return method(node)

    def _add(self, node: Node) -> Node:
        self.context.nodes.append(node)
        return node

    def _sequence(self, items: List[CSTNode]) -> List[Node]:
        return [self.build(item) for item in items]

    # --------------------------------------------------------
    # Transparent wrappers
    # --------------------------------------------------------

    def _build_evaluation(self, node: Tree) -> Node:
        return self._unwrap(node)

    def _build_simple(self, node: Tree) -> Node:
        return self._unwrap(node)

    def _build_group(self, node: Tree) -> Node:
        # No extra node for '(..)'
        return self._unwrap(node)

    def _build_start(self, node: Tree) -> Node:
        return self._unwrap(node)

    def _unwrap(self, node: Tree) -> Node:
        children = [c for c in node.children if isinstance(c, Tree)]
        if len(children) != 1:
            return self._error_node(node)
        return self.build(children[0])

    # --------------------------------------------------------
    # Definition
    # --------------------------------------------------------

    def _build_definition(self, node: Tree) -> Node:
        start, end = get_span(node)
        lhs = _first_token(node)
        rhs = node.children[-1] if node.children else None
        if lhs is None or not isinstance(rhs, Tree):
            return self._error_node(node)
        self.context.add_token(TokenKind.OUTPUT_NAME, lhs)
        node_id = self.context.next_id()
        expr = self.build(rhs)
        return self._add(Definition(node_id, start, end, str(lhs), expr))

    # --------------------------------------------------------
    # Member selection
    # --------------------------------------------------------

    def _build_select_id(self, node: Tree) -> Node:
        """`a.b` -> select(a, "b")"""
        start, end = get_span(node)
        if len(node.children) < 2 or not isinstance(node.children[-1], Token):
            return self._error_node(node)
        value = self.build(node.children[0])
        member = self._add(StringNode(self.context.next_id(), start, end, str(node.children[-1])))
        return self._add(FunctionCall(self.context.next_id(), start, end, SELECT, [value, member]))

    def _build_select_expr(self, node: Tree) -> Node:
        """`a[b]` -> select(a, b)"""
        start, end = get_span(node)
        operands = _subtrees(node)
        if len(operands) != 2:
            return self._error_node(node)
        args = self._sequence(operands)
        return self._add(FunctionCall(self.context.next_id(), start, end, SELECT, args))

    # --------------------------------------------------------
    # Operators
    # --------------------------------------------------------

    def _lower_operator(self, node: Tree, arity: int) -> Node:
        start, end = get_span(node)
        operands = _subtrees(node)
        if len(operands) != arity:
            return self._error_node(node)
        args = self._sequence(operands)
        return self._add(FunctionCall(self.context.next_id(), start, end, str(node.data), args))

    def _build_pipe(self, node: Tree) -> Node:
        start, end = get_span(node)
        operands = _subtrees(node)
        if len(operands) != 2:
            return self._error_node(node)
        node_id = self.context.next_id()
        left = self.build(operands[0])
        right = self.build(operands[1])
        return self._add(PipeOp(node_id, start, end, left, right))

    # --------------------------------------------------------
    # Literals
    # --------------------------------------------------------

    def _build_number(self, node: Tree) -> Node:
        start, end = get_span(node)
        token = node.children[0] if len(node.children) == 1 else None
        if not isinstance(token, Token):
            return self._add(ErrorNode(self.context.next_id(), start, end, INVALID_NUMBER_MESSAGE))
        try:
            value = _to_number(str(token))
        except ValueError:
            return self._add(ErrorNode(self.context.next_id(), start, end, INVALID_NUMBER_MESSAGE))
        self.context.add_token(TokenKind.NUMBER_LITERAL, token)
        return self._add(NumberNode(self.context.next_id(), start, end, value))

    _build_int = _build_number
    _build_float = _build_number

    def _build_boolean(self, node: Tree) -> Node:
        start, end = get_span(node)
        token = _first_token(node)
        if token is None:
            return self._error_node(node)
        self.context.add_token(TokenKind.BOOLEAN_LITERAL, token)
        value = str(token) == "true"
        return self._add(BooleanNode(self.context.next_id(), start, end, value))

    def _build_string(self, node: Tree) -> Node:
        start, end = get_span(node)
        token = _first_token(node)
        if token is None:
            return self._error_node(node)
        self.context.add_token(TokenKind.STRING_LITERAL, token)
        return self._add(StringNode(self.context.next_id(), start, end, _unquote(str(token))))

    # --------------------------------------------------------
    # Collections
    # --------------------------------------------------------

    def _build_array(self, node: Tree) -> Node:
        start, end = get_span(node)
        values = []
        for child in node.children:
            if isinstance(child, Tree) and child.data == "items":
                values = self._sequence(_subtrees(child))
        return self._add(ArrayNode(self.context.next_id(), start, end, values))

    def _build_object(self, node: Tree) -> Node:
        start, end = get_span(node)
        entries = []
        for child in node.children:
            if isinstance(child, Tree) and child.data == "entries":
                for entry in child.children:
                    if isinstance(entry, Tree) and entry.data == "entry":
                        self._add_entry(entry, entries)
        return self._add(ObjectNode(self.context.next_id(), start, end, entries))

    def _add_entry(self, entry: Tree, entries: List[ObjectEntry]) -> None:
        # Partial input may leave either side of the pair missing
        key = entry.children[0] if entry.children else None
        value = entry.children[1] if len(entry.children) > 1 else None
        if isinstance(key, Token):
            self.context.add_token(TokenKind.KEY, key)
        if key is None or value is None:
            return
        text = str(key)
        if key.type == "STRING":
            text = _unquote(text)
        entries.append(ObjectEntry(text, self.build(value)))

    # --------------------------------------------------------
    # References
    # --------------------------------------------------------

    def _build_var(self, node: Tree) -> Node:
        start, end = get_span(node)
        var = Var(self.context.next_id(), start, end, get_text(node))
        token = _first_token(node)
        if token is not None:
            self.context.add_token(TokenKind.INPUT_VARIABLE_NAME, token)
        self.context.inputs.append(var)
        return self._add(var)

    def _build_cell(self, node: Tree) -> Node:
        start, end = get_span(node)
        address = parse_cell(get_text(node))
        cell = CellRef(self.context.next_id(), start, end, address.row, address.col)
        self.context.inputs.append(cell)
        return self._add(cell)

    def _build_range(self, node: Tree) -> Node:
        start, end = get_span(node)
        bounds = parse_range(get_text(node))
        ref = RangeRef(
            self.context.next_id(), start, end,
            bounds.start_row, bounds.start_col, bounds.end_row, bounds.end_col,
        )
        self.context.inputs.append(ref)
        return self._add(ref)

    # --------------------------------------------------------
    # Calls
    # --------------------------------------------------------

    def _build__call(self, node: Tree) -> Node:
        # Wrapper around a call; the span stays the wrapper's
        inner = node.children[0] if node.children else None
        if not isinstance(inner, Tree):
            return self._error_node(node)
        return self._build_call(inner, get_span(node))

    def _build_call(self, node: Tree, span: Optional[Span] = None) -> Node:
        start, end = span if span is not None else get_span(node)
        name_token = _first_token(node, "NAME")
        if name_token is not None:
            self.context.add_token(TokenKind.FUNCTION_NAME, name_token)
        args: List[Node] = []
        named_args: List[NamedArgument] = []
        for child in node.children:
            if isinstance(child, Tree) and child.data == "arguments":
                args, named_args = self._argument_sequence(child.children)
        name = str(name_token) if name_token is not None else ""
        return self._add(FunctionCall(self.context.next_id(), start, end, name, args, named_args))

    def _argument_sequence(self, items: List[CSTNode]) -> Tuple[List[Node], List[NamedArgument]]:
        """Build call arguments, keeping omitted positions as EmptyArgument.

        `sum(x,,y)` yields [x, <empty>, y] and `sum(x,)` yields [x, <empty>].
        """
        args: List[Node] = []
        named_args: List[NamedArgument] = []
        previous = None
        for item in items:
            if _is_comma(item):
                if previous is None:
                    args.append(self._empty_argument(item))
                previous = None
            elif _is_named_argument(item):
                named_args.append(self.build(item))
                previous = item
            else:
                args.append(self.build(item))
                previous = item
        if items and previous is None and _is_comma(items[-1]):
            args.append(self._empty_argument(items[-1]))
        return args, named_args

    def _empty_argument(self, comma: Token) -> Node:
        start, end = get_span(comma)
        return self._add(EmptyArgument(self.context.next_id(), start, end))

    def _build_named_argument(self, node: Tree) -> Node:
        start, end = get_span(node)
        name = _first_token(node)
        value = node.children[-1] if node.children else None
        if name is None or not isinstance(value, Tree):
            return self._error_node(node)
        self.context.add_token(TokenKind.KEY, name)
        node_id = self.context.next_id()
        return self._add(NamedArgument(node_id, start, end, str(name), self.build(value)))

    # --------------------------------------------------------
    # Error recovery
    # --------------------------------------------------------

    def _error_node(self, node: CSTNode) -> Node:
        start, end = get_span(node)
        exception = getattr(node, "exception", None)
        if exception is not None:
            message = str(exception)
        else:
            kind = node.data if isinstance(node, Tree) else getattr(node, "type", type(node).__name__)
            logger.debug(f"No AST mapping for CST node '{kind}' at {start}:{end}")
            message = PARSER_ERROR_MESSAGE
        return self._add(ErrorNode(self.context.next_id(), start, end, message))


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def build(tree: CSTNode, source: Optional[str] = None) -> BuildResult:
    """
    Build the AST and side tables for a formula CST.

    Args:
        tree: Lark parse tree (or any tree with the same shape)
        source: The formula text the tree was parsed from, if known

    Returns:
        BuildResult with root node, node list, input list and token list
    """
    context = BuildContext()
    root = TreeBuilder(context).build(tree)
    logger.debug(
        f"Built formula AST: {len(context.nodes)} nodes, "
        f"{len(context.inputs)} inputs, {len(context.tokens)} tokens"
    )
    return BuildResult(
        root=root,
        nodes=context.nodes,
        inputs=context.inputs,
        tokens=context.tokens,
        source=source,
    )
