"""
Formula AST Node Model.

Every node kind produced by the tree builder is a dataclass deriving from
Node. The `type` tag is a class-level NodeType, so the set of kinds is
closed: consumers dispatch on `node.type` (or isinstance) and the walker
enumerates children per kind.

Unary/binary operators and member selection do not get node kinds of their
own; they are lowered to FunctionCall nodes named after the operator (see
OPERATOR_NAMES).
"""

from dataclasses import dataclass, field
from enum import Enum
from numbers import Number
from typing import ClassVar, List, Optional, Tuple, Union

from lark import Token as LarkToken

from .exceptions import IllegalArgumentError


class NodeType(str, Enum):
    """Discriminant tag of an AST node."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    VAR = "var"
    CELL = "cell"
    RANGE = "range"
    ARRAY = "array"
    OBJECT = "object"
    CALL = "call"
    NAMED_ARGUMENT = "named-argument"
    EMPTY_ARGUMENT = "empty-argument"
    DEFINITION = "definition"
    PIPE = "pipe"
    ERROR = "error"


UNARY_OPERATORS = ("not", "positive", "negative")

# In order of precedence, tightest first
BINARY_OPERATORS = (
    "pow",
    "multiply", "divide", "remainder",
    "add", "subtract",
    "less", "less_or_equal", "greater", "greater_or_equal",
    "equal", "not_equal",
    "and",
    "or",
)

SELECT = "select"

OPERATOR_NAMES = frozenset(UNARY_OPERATORS + BINARY_OPERATORS + (SELECT,))


# ============================================================
# NODES
# ============================================================

@dataclass
class Node:
    """Base of all AST nodes.

    `start`/`end` are character offsets into the source, `end` exclusive.
    Both are None when the CST node carried no position.
    """
    id: int
    start: Optional[int]
    end: Optional[int]

    type: ClassVar[NodeType]

    @property
    def span(self) -> Tuple[Optional[int], Optional[int]]:
        return self.start, self.end


@dataclass
class NumberNode(Node):
    value: Union[int, float]

    type: ClassVar[NodeType] = NodeType.NUMBER


@dataclass
class StringNode(Node):
    value: str

    type: ClassVar[NodeType] = NodeType.STRING


@dataclass
class BooleanNode(Node):
    value: bool

    type: ClassVar[NodeType] = NodeType.BOOLEAN


@dataclass
class Var(Node):
    """Free identifier reference."""
    name: str

    type: ClassVar[NodeType] = NodeType.VAR


@dataclass
class CellRef(Node):
    """Single cell, zero-based coordinates."""
    row: int
    col: int

    type: ClassVar[NodeType] = NodeType.CELL


@dataclass
class RangeRef(Node):
    """Rectangular range, zero-based inclusive bounds."""
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    type: ClassVar[NodeType] = NodeType.RANGE


@dataclass
class ArrayNode(Node):
    values: List[Node] = field(default_factory=list)

    type: ClassVar[NodeType] = NodeType.ARRAY


@dataclass
class ObjectEntry:
    key: str
    value: Node


@dataclass
class ObjectNode(Node):
    entries: List[ObjectEntry] = field(default_factory=list)

    type: ClassVar[NodeType] = NodeType.OBJECT


@dataclass
class NamedArgument(Node):
    name: str
    value: Node

    type: ClassVar[NodeType] = NodeType.NAMED_ARGUMENT


@dataclass
class FunctionCall(Node):
    """Call of a function, or a lowered operator (name in OPERATOR_NAMES).

    Anonymous calls have an empty name.
    """
    name: str
    args: List[Node] = field(default_factory=list)
    named_args: List[NamedArgument] = field(default_factory=list)

    type: ClassVar[NodeType] = NodeType.CALL

    @property
    def is_operator(self) -> bool:
        return self.name in OPERATOR_NAMES


@dataclass
class EmptyArgument(Node):
    """Placeholder for an omitted positional argument, e.g. in `sum(x,,y)`."""

    type: ClassVar[NodeType] = NodeType.EMPTY_ARGUMENT


@dataclass
class Definition(Node):
    name: str
    expr: Node

    type: ClassVar[NodeType] = NodeType.DEFINITION


@dataclass
class PipeOp(Node):
    left: Node
    right: Node

    type: ClassVar[NodeType] = NodeType.PIPE


@dataclass
class ErrorNode(Node):
    message: str

    type: ClassVar[NodeType] = NodeType.ERROR


# ============================================================
# HIGHLIGHT TOKENS
# ============================================================

class TokenKind(str, Enum):
    """Semantic category of a highlighted source span."""
    OUTPUT_NAME = "output-name"
    NUMBER_LITERAL = "number-literal"
    BOOLEAN_LITERAL = "boolean-literal"
    STRING_LITERAL = "string-literal"
    KEY = "key"
    INPUT_VARIABLE_NAME = "input-variable-name"
    FUNCTION_NAME = "function-name"


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


@dataclass
class HighlightToken:
    """A source span tagged for syntax highlighting, `end` exclusive."""
    kind: str
    start: int
    end: int
    text: str = ""

    def __post_init__(self):
        if not isinstance(self.kind, str):
            raise IllegalArgumentError('Illegal argument: "kind" must be a string')
        if not _is_number(self.start):
            raise IllegalArgumentError('Illegal argument: "start" must be a number')
        if not _is_number(self.end):
            raise IllegalArgumentError('Illegal argument: "end" must be a number')

    @classmethod
    def from_symbol(cls, kind: str, symbol: LarkToken) -> "HighlightToken":
        """Create a token covering a Lark terminal."""
        return cls(kind, symbol.start_pos, symbol.end_pos, str(symbol))
