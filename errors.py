"""Error types raised by the table engine.

Every dataset mutation either replaces the snapshot or raises one of these,
leaving the previous state untouched.
"""


class TableError(Exception):
    """Base exception for all table engine failures."""


class CollectError(TableError):
    """Raised when the base plan cannot be materialized."""


class ColumnNotFound(TableError):
    """Raised when an operation references a column absent from the snapshot."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' not found")


class SortError(TableError):
    """Raised when the snapshot cannot be ordered by the requested keys."""


class CastError(TableError):
    """Raised when a column cannot be converted to the requested type."""

    def __init__(self, column: str, cause):
        self.column = column
        self.cause = cause
        super().__init__(f"Cast error on '{column}': {cause}")


class FilterError(TableError):
    """Raised when a predicate cannot be evaluated against the base table."""


class RegexCompileError(TableError):
    """Raised for a malformed search pattern."""

    def __init__(self, pattern: str, cause):
        self.pattern = pattern
        self.cause = cause
        super().__init__(f"Invalid regex pattern '{pattern}': {cause}")


class DuplicateColumn(TableError):
    """Raised when a column order names the same column twice."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' listed more than once")
