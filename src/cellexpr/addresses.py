"""Spreadsheet address resolution: "B3" -> (row=2, col=1), "A1:C4" -> bounds."""

import re
from typing import NamedTuple

from .exceptions import IllegalArgumentError

_CELL_RE = re.compile(r"^([A-Za-z]+)([0-9]+)$")


class CellAddress(NamedTuple):
    row: int
    col: int


class RangeAddress(NamedTuple):
    start_row: int
    start_col: int
    end_row: int
    end_col: int


def column_to_index(letters: str) -> int:
    """Base-26 column letters to a zero-based index (A=0, Z=25, AA=26)."""
    if not letters or not letters.isalpha() or not letters.isascii():
        raise IllegalArgumentError(f"Illegal argument: invalid column {letters!r}")
    index = 0
    for ch in letters.upper():
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def row_to_index(digits: str) -> int:
    """Decimal row number to a zero-based index ("1" -> 0)."""
    if not digits or not digits.isdigit():
        raise IllegalArgumentError(f"Illegal argument: invalid row {digits!r}")
    return int(digits) - 1


def index_to_column(index: int) -> str:
    """Inverse of column_to_index."""
    if index < 0:
        raise IllegalArgumentError(f"Illegal argument: negative column index {index}")
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def cell_name(row: int, col: int) -> str:
    """Zero-based coordinates back to an address, e.g. (2, 1) -> "B3"."""
    if row < 0:
        raise IllegalArgumentError(f"Illegal argument: negative row index {row}")
    return f"{index_to_column(col)}{row + 1}"


def parse_cell(text: str) -> CellAddress:
    """Split a cell address into its letter prefix and digit suffix and resolve both."""
    match = _CELL_RE.match(text.strip())
    if not match:
        raise IllegalArgumentError(f"Illegal argument: invalid cell address {text!r}")
    letters, digits = match.groups()
    return CellAddress(row=row_to_index(digits), col=column_to_index(letters))


def parse_range(text: str) -> RangeAddress:
    """Resolve "A1:C4" into inclusive zero-based start/end coordinates."""
    parts = text.split(":")
    if len(parts) != 2:
        raise IllegalArgumentError(f"Illegal argument: invalid range {text!r}")
    start = parse_cell(parts[0])
    end = parse_cell(parts[1])
    return RangeAddress(
        start_row=start.row,
        start_col=start.col,
        end_row=end.row,
        end_col=end.col,
    )
