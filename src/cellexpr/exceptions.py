"""
cellexpr Exception Hierarchy

Contains the exception classes raised for contract violations. Malformed
formulas never raise; they surface as ErrorNode/EmptyArgument values in the
built tree.
"""


class CellexprError(Exception):
    """
    Base exception for all cellexpr operations.
    """
    pass


class IllegalArgumentError(CellexprError, ValueError):
    """
    Raised when calling code passes a value that violates a constructor or
    resolver contract (e.g. a highlight token without numeric offsets).

    This signals a defect in the caller, not a user input error.
    """
    pass


class GrammarError(CellexprError):
    """
    Raised when the formula grammar cannot be loaded or compiled.
    """
    pass


class GrammarNotFoundError(GrammarError, FileNotFoundError):
    """
    Raised when the configured grammar file does not exist.
    """
    pass


__all__ = [
    "CellexprError",
    "IllegalArgumentError",
    "GrammarError",
    "GrammarNotFoundError",
]
