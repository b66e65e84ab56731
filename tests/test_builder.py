"""Tests for the tree builder on hand-built CSTs.

These cover CST shapes the packaged grammar never produces but any
conforming parser may: transparent `simple` wrappers, `_call` wrappers,
anonymous calls, partial object entries, unknown kinds.
"""

import pytest
from lark import Tree, Token
from lark.tree import Meta

from cellexpr import (
    BuildContext, TreeBuilder, build,
    ErrorTree, ParseError,
    CellRef, EmptyArgument, ErrorNode, FunctionCall, NamedArgument, NumberNode,
    ObjectNode, RangeRef, Var,
    IllegalArgumentError, TokenKind,
)
from cellexpr.builder import get_span, get_text


def _tree(data, children, start=None, end=None):
    meta = Meta()
    if start is not None:
        meta.empty = False
        meta.start_pos = start
        meta.end_pos = end
    return Tree(data, children, meta)


def _token(type_, value, start):
    return Token(type_, value, start_pos=start, end_pos=start + len(value))


def _number(text, start):
    return _tree("number", [_token("NUMBER", text, start)], start, start + len(text))


def _var(name, start):
    return _tree("var", [_token("NAME", name, start)], start, start + len(name))


# ============================================================
# CST helpers
# ============================================================

class TestCstHelpers:
    def test_span_of_tree_and_token(self):
        assert get_span(_number("12", 3)) == (3, 5)
        assert get_span(_token("NAME", "abc", 1)) == (1, 4)

    def test_span_unknown(self):
        assert get_span(Tree("x", [])) == (None, None)
        assert get_span(Token("NAME", "x")) == (None, None)

    def test_text_concatenates_terminals(self):
        tree = _tree("range", [_token("CELL", "A1", 0), _token("COLON", ":", 2), _token("CELL", "B2", 3)])

        assert get_text(tree) == "A1:B2"


# ============================================================
# Dispatch
# ============================================================

class TestDispatch:
    def test_simple_is_transparent(self):
        result = build(_tree("simple", [_number("7", 0)], 0, 1))

        assert isinstance(result.root, NumberNode)
        assert result.root.value == 7
        assert result.nodes == [result.root]

    @pytest.mark.parametrize("kind, text, value", [
        ("int", "12", 12),
        ("float", "2.5", 2.5),
    ])
    def test_int_and_float_kinds(self, kind, text, value):
        tree = _tree(kind, [_token("NUMBER", text, 0)], 0, len(text))

        assert build(tree).root == NumberNode(0, 0, len(text), value)

    def test_number_with_unexpected_shape(self):
        tree = _tree("number", [_token("NUMBER", "1", 0), _token("NUMBER", "2", 1)], 0, 2)
        result = build(tree)

        assert result.root == ErrorNode(0, 0, 2, "Invalid number.")
        assert result.tokens == []

    def test_number_with_unparsable_text(self):
        result = build(_tree("number", [_token("NUMBER", "1..2", 0)], 0, 4))

        assert isinstance(result.root, ErrorNode)
        assert result.root.message == "Invalid number."

    def test_unknown_kind_becomes_error_node(self):
        result = build(_tree("mystery", [], 2, 5))

        assert result.root == ErrorNode(0, 2, 5, "Parser error.")

    def test_unknown_kind_without_position(self):
        result = build(Tree("mystery", []))

        assert result.root.start is None
        assert result.root.end is None

    def test_exception_payload_is_reported(self):
        error = ParseError(message="Unexpected token ')'", line=1, column=3)
        result = build(ErrorTree(error, 0, 4))

        assert isinstance(result.root, ErrorNode)
        assert result.root.message == str(error)
        assert (result.root.start, result.root.end) == (0, 4)

    def test_error_inside_valid_tree(self):
        tree = _tree("add", [_number("1", 0), _tree("mystery", [], 2, 3)], 0, 3)
        result = build(tree)

        assert isinstance(result.root, FunctionCall)
        assert isinstance(result.root.args[1], ErrorNode)
        assert result.errors == [result.root.args[1]]

    def test_operator_with_wrong_arity(self):
        result = build(_tree("add", [_number("1", 0)], 0, 1))

        assert isinstance(result.root, ErrorNode)

    def test_cell_and_range(self):
        cell = build(_tree("cell", [_token("CELL", "AA10", 0)], 0, 4))
        rng = build(_tree("range", [_token("RANGE", "B2:D5", 0)], 0, 5))

        assert cell.root == CellRef(0, 0, 4, 9, 26)
        assert rng.root == RangeRef(0, 0, 5, 1, 1, 4, 3)
        assert cell.inputs == [cell.root]
        assert rng.inputs == [rng.root]


# ============================================================
# Calls
# ============================================================

class TestCalls:
    def test_anonymous_wrapped_call(self):
        call = _tree("call", [_tree("arguments", [_var("x", 1)], 1, 2)], 0, 3)
        result = build(_tree("_call", [call], 0, 3))

        root = result.root
        assert isinstance(root, FunctionCall)
        assert root.name == ""
        assert [a.name for a in root.args] == ["x"]
        assert (root.start, root.end) == (0, 3)
        assert TokenKind.FUNCTION_NAME not in [t.kind for t in result.tokens]

    def test_call_without_argument_list(self):
        result = build(_tree("call", [_token("NAME", "pi", 0)], 0, 2))

        assert result.root.name == "pi"
        assert result.root.args == []

    def test_hyphenated_named_argument_kind(self):
        named = _tree("named-argument", [_token("NAME", "n", 2), _number("5", 4)], 2, 5)
        call = _tree("call", [_token("NAME", "f", 0), _tree("arguments", [named], 2, 5)], 0, 6)
        result = build(call)

        assert result.root.args == []
        assert len(result.root.named_args) == 1
        arg = result.root.named_args[0]
        assert isinstance(arg, NamedArgument)
        assert arg.name == "n"
        assert arg.value.value == 5

    def test_empty_arguments_take_comma_span(self):
        comma1 = _token("COMMA", ",", 2)
        comma2 = _token("COMMA", ",", 3)
        call = _tree("call", [
            _token("NAME", "f", 0),
            _tree("arguments", [_var("a", 1), comma1, comma2], 1, 4),
        ], 0, 5)
        args = build(call).root.args

        assert [type(a) for a in args] == [Var, EmptyArgument, EmptyArgument]
        assert [(a.start, a.end) for a in args[1:]] == [(3, 4), (3, 4)]


# ============================================================
# Objects
# ============================================================

class TestObjects:
    def test_partial_entries_are_skipped(self):
        entries = _tree("entries", [
            _tree("entry", [_token("NAME", "a", 1)], 1, 2),
            _tree("entry", [_token("NAME", "b", 4), _number("2", 7)], 4, 8),
        ], 1, 8)
        result = build(_tree("object", [entries], 0, 9))

        assert isinstance(result.root, ObjectNode)
        assert [e.key for e in result.root.entries] == ["b"]
        # a key token is recorded for every key present
        assert [t.text for t in result.tokens if t.kind == TokenKind.KEY] == ["a", "b"]


# ============================================================
# Build contexts
# ============================================================

class TestBuildContext:
    def test_each_build_has_its_own_counter(self):
        first = build(_var("x", 0))
        second = build(_var("y", 0))

        assert first.root.id == 0
        assert second.root.id == 0
        assert first.inputs == [first.root]
        assert second.inputs == [second.root]

    def test_explicit_context_keeps_counting(self):
        context = BuildContext()
        builder = TreeBuilder(context)

        a = builder.build(_var("a", 0))
        b = builder.build(_number("1", 0))

        assert (a.id, b.id) == (0, 1)
        assert context.nodes == [a, b]
        assert context.inputs == [a]
        assert [t.kind for t in context.tokens] == [
            TokenKind.INPUT_VARIABLE_NAME, TokenKind.NUMBER_LITERAL
        ]

    def test_terminal_without_position_is_a_contract_violation(self):
        tree = _tree("var", [Token("NAME", "x")], 0, 1)

        with pytest.raises(IllegalArgumentError):
            build(tree)
