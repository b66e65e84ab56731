"""Tests for the rich AST renderer."""

from rich.console import Console

from cellexpr import (
    parse_formula, render_ast, format_node,
    CellRef, EmptyArgument, ErrorNode, StringNode,
)


def _labels(tree, depth=0):
    """Flatten a rich Tree into (depth, label) pairs."""
    pairs = [(depth, str(tree.label))]
    for child in tree.children:
        pairs.extend(_labels(child, depth + 1))
    return pairs


class TestFormatNode:
    def test_cell_uses_address(self):
        assert format_node(CellRef(0, 0, 4, 2, 1)) == "cell B3 [0:4]"

    def test_string_payload(self):
        assert format_node(StringNode(0, 0, 5, "foo")) == "string 'foo' [0:5]"

    def test_missing_span(self):
        assert format_node(ErrorNode(0, None, None, "Parser error.")) == "error 'Parser error.' [?]"

    def test_no_payload(self):
        assert format_node(EmptyArgument(3, 6, 7)) == "empty-argument [6:7]"


class TestRenderAst:
    def test_call_with_named_argument(self):
        tree = render_ast(parse_formula("sum(A1:B2, x, mode=1)"))

        assert _labels(tree) == [
            (0, "call sum [0:21]"),
            (1, "range A1:B2 [4:9]"),
            (1, "var x [11:12]"),
            (1, "named-argument mode [14:20]"),
            (2, "number 1 [19:20]"),
        ]

    def test_definition(self):
        tree = render_ast(parse_formula("y = -x"))

        assert _labels(tree) == [
            (0, "definition y [0:6]"),
            (1, "call negative [4:6]"),
            (2, "var x [5:6]"),
        ]

    def test_printable(self):
        console = Console(record=True, width=80)
        console.print(render_ast(parse_formula("a | b")))

        text = console.export_text()
        assert "pipe [0:5]" in text
        assert "var b [4:5]" in text
