"""Tests for spreadsheet address resolution."""

import pytest

from cellexpr import (
    CellAddress, RangeAddress, IllegalArgumentError,
    column_to_index, row_to_index, index_to_column, cell_name,
    parse_cell, parse_range,
)


class TestColumns:
    @pytest.mark.parametrize("letters, index", [
        ("A", 0),
        ("B", 1),
        ("Z", 25),
        ("AA", 26),
        ("AZ", 51),
        ("BA", 52),
        ("ZZ", 701),
        ("AAA", 702),
        ("b", 1),
    ])
    def test_column_to_index(self, letters, index):
        assert column_to_index(letters) == index

    @pytest.mark.parametrize("index, letters", [(0, "A"), (25, "Z"), (26, "AA"), (701, "ZZ"), (702, "AAA")])
    def test_index_to_column(self, index, letters):
        assert index_to_column(index) == letters

    @pytest.mark.parametrize("letters", ["", "A1", "Ä"])
    def test_invalid_column(self, letters):
        with pytest.raises(IllegalArgumentError):
            column_to_index(letters)


class TestRows:
    def test_row_to_index(self):
        assert row_to_index("1") == 0
        assert row_to_index("10") == 9

    def test_invalid_row(self):
        with pytest.raises(IllegalArgumentError):
            row_to_index("x")


class TestCells:
    def test_parse_cell(self):
        assert parse_cell("B3") == CellAddress(row=2, col=1)
        assert parse_cell("AA100") == CellAddress(row=99, col=26)

    def test_cell_name(self):
        assert cell_name(2, 1) == "B3"
        assert cell_name(99, 26) == "AA100"

    @pytest.mark.parametrize("text", ["3B", "B", "12", "B3:C4"])
    def test_invalid_cell(self, text):
        with pytest.raises(IllegalArgumentError):
            parse_cell(text)


class TestRanges:
    def test_parse_range(self):
        assert parse_range("A1:C4") == RangeAddress(
            start_row=0, start_col=0, end_row=3, end_col=2
        )

    def test_invalid_range(self):
        with pytest.raises(IllegalArgumentError):
            parse_range("A1")
        with pytest.raises(IllegalArgumentError):
            parse_range("A1:B2:C3")
