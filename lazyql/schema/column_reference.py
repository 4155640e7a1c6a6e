"""Typed column-reference class.

Owns the ``"table.column"`` parsing so callers never split strings
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ColumnReference:
    """A parsed ``table.column`` or bare ``column`` reference.

    Attributes:
        table: Table qualifier, or ``None`` for unqualified references.
        column: Column name.
    """

    table: str | None
    column: str

    @classmethod
    def parse(cls, ref: str) -> ColumnReference:
        """Parse a ``"table.column"`` or bare ``"column"`` string.

        Only the last dot separates the column, so schema-qualified tables
        (``"main.flights.year"``) keep their full qualifier.

        Args:
            ref: The raw column reference string.

        Returns:
            A :class:`ColumnReference` instance.
        """
        if "." in ref:
            table, column = ref.rsplit(".", 1)
            return cls(table=table, column=column)
        return cls(table=None, column=ref)

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.{self.column}"
        return self.column
