"""
Formula Parser - Lark-based front end for cellexpr formulas.

This module turns formula source text into the concrete syntax tree (CST)
consumed by the tree builder. Grammar failures never propagate as
exceptions: they are reported as ParseError records, and the part of the
tree the grammar could not read becomes an ErrorTree, which the builder
turns into an ErrorNode.

Recovery uses Lark's LALR `on_error` hook. Where an expression was
expected, an ERROR placeholder is fed to the parser and the rest of the
formula is read as usual, so `sum(x, ` still yields the call with its
name and first argument. When no placeholder fits, the whole formula is
replaced by a single ErrorTree.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from lark import Lark, Tree, Token
from lark.exceptions import (
    LarkError,
    UnexpectedInput,
    UnexpectedToken,
    UnexpectedCharacters,
)
from lark.tree import Meta

from .config import ParserConfig, load_config
from .exceptions import GrammarError, GrammarNotFoundError
from .logging_config import configure_logger_for_debug

logger = configure_logger_for_debug(__name__)

ERROR_TERMINAL = "ERROR"
END_TERMINAL = "$END"

# Brackets the parser may close on its own at the end of the source
CLOSING_TERMINALS = {"RPAR": ")", "RSQB": "]", "RBRACE": "}"}

CLOSING_HINTS = {
    "RPAR": "Missing closing parenthesis ')'",
    "RSQB": "Missing closing bracket ']'",
    "RBRACE": "Missing closing brace '}'",
}

CHARACTER_HINTS = {
    '"': "Check for unclosed string",
    "'": "Check for unclosed string",
    "&": "Use '&&' for logical and",
    ":": "Ranges are written as two cell addresses, e.g. A1:C4",
    ";": "Separate arguments with ','",
}


# ============================================================
# ERROR TYPES
# ============================================================

@dataclass
class ParseError:
    """Represents a parsing error with location information."""
    message: str
    line: int
    column: int
    context: Optional[str] = None
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        msg = f"Parse error at line {self.line}, column {self.column}: {self.message}"
        if self.context:
            msg += f"\n  Context: {self.context}"
        if self.suggestion:
            msg += f"\n  Suggestion: {self.suggestion}"
        return msg


class ErrorTree(Tree):
    """CST node standing in for source text the grammar rejected.

    Carries the ParseError as its `exception`, which the builder reports
    through an ErrorNode.
    """

    def __init__(self, exception: ParseError, start: int = 0, end: int = 0):
        meta = Meta()
        meta.empty = False
        meta.start_pos = start
        meta.end_pos = end
        super().__init__("error", [], meta)
        self.exception = exception


@dataclass
class ParseResult:
    """Result of parsing a formula.

    `tree` is always set. A failed parse may still carry a mostly complete
    tree with ErrorTree subtrees where the errors were found.
    """
    success: bool
    tree: Optional[Tree] = None
    errors: List[ParseError] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return self.success


def _line_and_column(source: str, pos: int):
    line = source.count("\n", 0, pos) + 1
    column = pos - (source.rfind("\n", 0, pos) + 1) + 1
    return line, column


def _context_line(source: str, line: int) -> Optional[str]:
    lines = source.split("\n")
    if 1 <= line <= len(lines):
        return lines[line - 1].rstrip()
    return None


def _placeholder(kind: str, value: str, source: str, start: int, end: int) -> Token:
    """A token the lexer never produced, positioned in the source."""
    line, column = _line_and_column(source, start)
    end_line, end_column = _line_and_column(source, end)
    return Token(kind, value, start, line, column, end_line, end_column, end)


# ============================================================
# PARSER
# ============================================================

class FormulaParser:
    """
    Parser for cellexpr formulas.

    Compiled Lark instances are cached per ParserConfig, so constructing a
    FormulaParser is cheap after the first one.

    Usage:
        parser = FormulaParser()
        result = parser.parse("sum(A1:B4, x)")
        if not result.success:
            for error in result.errors:
                print(error)
    """

    _parsers: Dict[ParserConfig, Lark] = {}
    _lock = threading.Lock()

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config if config is not None else load_config()

    @property
    def parser(self) -> Lark:
        """Get the Lark parser instance, compiling the grammar on first use."""
        parser = FormulaParser._parsers.get(self.config)
        if parser is not None:
            return parser
        with FormulaParser._lock:
            parser = FormulaParser._parsers.get(self.config)
            if parser is None:
                parser = self._create_parser(self.config)
                FormulaParser._parsers[self.config] = parser
        return parser

    @staticmethod
    def _create_parser(config: ParserConfig) -> Lark:
        grammar_path = Path(config.grammar_path)

        if not grammar_path.exists():
            raise GrammarNotFoundError(
                f"Grammar file not found: {grammar_path}\n"
                "Ensure grammar.lark is installed alongside parser.py"
            )

        with open(grammar_path, "r", encoding="utf-8") as f:
            grammar = f.read()

        logger.debug(f"Compiling formula grammar from {grammar_path}")
        try:
            return Lark(
                grammar,
                start=config.start,
                parser="lalr",
                propagate_positions=True,
                maybe_placeholders=False,
                debug=config.debug,
                cache=config.cache,
            )
        except LarkError as e:
            raise GrammarError(f"Could not compile grammar {grammar_path}: {e}") from e

    @classmethod
    def reset(cls) -> None:
        """Drop cached parsers to force a grammar reload on next use."""
        with cls._lock:
            cls._parsers.clear()

    def parse(self, source: str) -> ParseResult:
        """
        Parse formula source into a CST.

        Args:
            source: Formula source string

        Returns:
            ParseResult containing the tree. Recovered errors appear as
            ErrorTree subtrees; an unrecoverable one makes the tree a
            single ErrorTree spanning the whole source.
        """
        if not source or not source.strip():
            return self._failure(source or "", [ParseError(
                message="Empty expression",
                line=1,
                column=1,
                suggestion="Provide an expression such as `1 + 2` or `x = A1`"
            )])

        errors: List[ParseError] = []
        try:
            tree = self.parser.parse(source, on_error=lambda e: self._recover(e, source, errors))
        except UnexpectedInput as e:
            if not errors:
                errors.append(self._describe(e, source))
            return self._failure(source, errors)

        if not errors:
            return ParseResult(success=True, tree=tree, source=source)

        logger.debug(f"Recovered from {len(errors)} parse error(s) in {source!r}")
        return ParseResult(
            success=False,
            tree=self._attach_errors(tree, errors),
            errors=errors,
            source=source,
        )

    def _failure(self, source: str, errors: List[ParseError]) -> ParseResult:
        logger.debug(f"Formula parse failed: {errors[0]}")
        return ParseResult(
            success=False,
            tree=ErrorTree(errors[0], 0, len(source)),
            errors=errors,
            source=source,
        )

    # ============================================================
    # ERROR RECOVERY
    # ============================================================

    def _recover(self, e: UnexpectedInput, source: str, errors: List[ParseError]) -> bool:
        """`on_error` hook: record the error and patch the parser state.

        Returns False when no ERROR placeholder fits, which ends the parse.
        """
        errors.append(self._describe(e, source))
        marker = str(len(errors) - 1)
        parser = e.interactive_parser

        if ERROR_TERMINAL not in parser.accepts():
            return False

        if isinstance(e, UnexpectedCharacters):
            # Lark skips the offending character after we return
            start = e.pos_in_stream
            parser.feed_token(_placeholder(ERROR_TERMINAL, marker, source, start, start + 1))
            return True

        if e.token.type == END_TERMINAL:
            return self._close_at_end(parser, marker, source)

        start = e.token.start_pos
        parser.feed_token(_placeholder(ERROR_TERMINAL, marker, source, start, start))
        # Replay the rejected token if it fits after the placeholder, else drop it
        if e.token.type in parser.accepts():
            parser.feed_token(e.token)
        return True

    def _close_at_end(self, parser, marker: str, source: str) -> bool:
        end = len(source)
        parser.feed_token(_placeholder(ERROR_TERMINAL, marker, source, end, end))
        accepts = parser.accepts()
        while END_TERMINAL not in accepts:
            closing = next((t for t in CLOSING_TERMINALS if t in accepts), None)
            if closing is None:
                return False
            parser.feed_token(_placeholder(closing, CLOSING_TERMINALS[closing], source, end, end))
            accepts = parser.accepts()
        return True

    @staticmethod
    def _attach_errors(tree: Tree, errors: List[ParseError]) -> Tree:
        """Swap each ERROR placeholder subtree for an ErrorTree carrying its ParseError."""
        for subtree in tree.iter_subtrees():
            for i, child in enumerate(subtree.children):
                if isinstance(child, Tree) and child.data == "error" and not isinstance(child, ErrorTree):
                    token = child.children[0]
                    subtree.children[i] = ErrorTree(errors[int(token)], token.start_pos, token.end_pos)
        return tree

    # ============================================================
    # ERROR MESSAGES
    # ============================================================

    def _describe(self, e: UnexpectedInput, source: str) -> ParseError:
        """Turn a Lark exception into a ParseError."""
        if isinstance(e, UnexpectedToken) and e.token.type == END_TERMINAL:
            return self._end_of_input(e.expected, source)

        line = getattr(e, "line", None) or 1
        column = getattr(e, "column", None) or 1
        context = _context_line(source, line)

        if isinstance(e, UnexpectedCharacters):
            return ParseError(
                message=f"Unexpected character '{e.char}'",
                line=line,
                column=column,
                context=context,
                suggestion=CHARACTER_HINTS.get(e.char),
            )

        if isinstance(e, UnexpectedToken):
            expected = sorted(set(e.expected or ()) - {ERROR_TERMINAL})
            return ParseError(
                message=f"Unexpected token '{e.token}'",
                line=line,
                column=column,
                context=context,
                suggestion=f"Expected one of: {', '.join(expected[:5])}" if expected else None,
            )

        return ParseError(message=str(e), line=line, column=column, context=context)

    def _end_of_input(self, expected, source: str) -> ParseError:
        line, column = _line_and_column(source, len(source))
        expected = set(expected or ()) - {ERROR_TERMINAL}
        hint = next((CLOSING_HINTS[t] for t in CLOSING_HINTS if t in expected), None)
        if hint is None and expected:
            hint = f"Expected: {', '.join(sorted(expected)[:5])}"
        return ParseError(
            message="Unexpected end of expression",
            line=line,
            column=column,
            suggestion=hint,
        )


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def parse_formula_cst(source: str, config: Optional[ParserConfig] = None) -> ParseResult:
    """
    Convenience function to parse a formula into its CST.

    Args:
        source: Formula source string
        config: Optional parser configuration

    Returns:
        ParseResult containing the tree and any errors
    """
    return FormulaParser(config).parse(source)


def pretty_print_tree(tree: Union[Tree, Token], indent: int = 0) -> str:
    """
    Pretty print a parse tree for debugging.

    Args:
        tree: Lark parse tree
        indent: Current indentation level

    Returns:
        Formatted string representation of the tree
    """
    lines = []
    prefix = "  " * indent

    if isinstance(tree, Tree):
        lines.append(f"{prefix}{tree.data}")
        for child in tree.children:
            lines.append(pretty_print_tree(child, indent + 1))
    elif isinstance(tree, Token):
        lines.append(f"{prefix}{tree.type}: {tree.value!r}")
    else:
        lines.append(f"{prefix}{tree!r}")

    return "\n".join(lines)
