"""Parse-and-build entry point for formula source text."""

from typing import Optional

from .builder import BuildResult, build
from .config import ParserConfig
from .parser import FormulaParser


def parse_formula(source: str, config: Optional[ParserConfig] = None) -> BuildResult:
    """
    Parse a formula and build its AST.

    Never raises on malformed formulas: a source the grammar rejects yields
    a root ErrorNode carrying the parse error message.

    Args:
        source: Formula source string, e.g. "x = sum(A1:B4, y)"
        config: Optional parser configuration

    Returns:
        BuildResult with root node, node list, input list and token list
    """
    result = FormulaParser(config).parse(source)
    return build(result.tree, source=source)
