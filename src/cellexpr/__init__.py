"""
cellexpr - Abstract syntax layer for spreadsheet formulas

Parses formulas that reference variables, cells ("B3") and ranges
("A1:C4") into a typed AST with source spans, plus the side tables
consumers need: the flat node list, the input references for dependency
analysis, and highlight tokens.

Example::

    from cellexpr import parse_formula, walk

    result = parse_formula("total = sum(A1:A10, bonus)")
    walk(result, lambda node: print(node.type.value))
    print(result.input_names())   # ['A1:A10', 'bonus']
"""

from .addresses import (
    CellAddress,
    RangeAddress,
    column_to_index,
    row_to_index,
    index_to_column,
    cell_name,
    parse_cell,
    parse_range,
)

from .builder import (
    # Classes
    BuildContext,
    BuildResult,
    TreeBuilder,
    # Functions
    build,
    get_span,
    get_text,
)

from .config import (
    ParserConfig,
    load_config,
)

from .exceptions import (
    CellexprError,
    IllegalArgumentError,
    GrammarError,
    GrammarNotFoundError,
)

from .formula import parse_formula

from .nodes import (
    # Node model
    Node,
    NodeType,
    NumberNode,
    StringNode,
    BooleanNode,
    Var,
    CellRef,
    RangeRef,
    ArrayNode,
    ObjectNode,
    ObjectEntry,
    FunctionCall,
    NamedArgument,
    EmptyArgument,
    Definition,
    PipeOp,
    ErrorNode,
    # Highlighting
    HighlightToken,
    TokenKind,
    # Constants
    OPERATOR_NAMES,
)

from .parser import (
    FormulaParser,
    ParseResult,
    ParseError,
    ErrorTree,
    parse_formula_cst,
    pretty_print_tree,
)

from .render import (
    format_node,
    render_ast,
)

from .walker import (
    children,
    iter_nodes,
    walk,
)

__all__ = [
    # Addresses
    "CellAddress",
    "RangeAddress",
    "column_to_index",
    "row_to_index",
    "index_to_column",
    "cell_name",
    "parse_cell",
    "parse_range",
    # Builder
    "BuildContext",
    "BuildResult",
    "TreeBuilder",
    "build",
    "get_span",
    "get_text",
    # Config
    "ParserConfig",
    "load_config",
    # Exceptions
    "CellexprError",
    "IllegalArgumentError",
    "GrammarError",
    "GrammarNotFoundError",
    # Formula
    "parse_formula",
    # Nodes
    "Node",
    "NodeType",
    "NumberNode",
    "StringNode",
    "BooleanNode",
    "Var",
    "CellRef",
    "RangeRef",
    "ArrayNode",
    "ObjectNode",
    "ObjectEntry",
    "FunctionCall",
    "NamedArgument",
    "EmptyArgument",
    "Definition",
    "PipeOp",
    "ErrorNode",
    "HighlightToken",
    "TokenKind",
    "OPERATOR_NAMES",
    # Parser
    "FormulaParser",
    "ParseResult",
    "ParseError",
    "ErrorTree",
    "parse_formula_cst",
    "pretty_print_tree",
    # Rendering
    "format_node",
    "render_ast",
    # Walker
    "children",
    "iter_nodes",
    "walk",
]

__version__ = "0.1.0"
