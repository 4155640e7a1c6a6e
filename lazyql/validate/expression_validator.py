"""Expression validator.

``ExpressionValidator`` checks, before any planning happens, that every
function and aggregate in an expression has a translation in the target
dialect and that aggregates only appear where the operation allows them.
"""
from __future__ import annotations

from lazyql.compile.expression_builder import BUILTIN_PREDICATES
from lazyql.errors import UnsupportedExpressionError
from lazyql.schema.dialect import Dialect
from lazyql.schema.expressions import (
    AggregateExpr,
    ExpressionBase,
    FuncExpr,
    contains_aggregate,
    walk,
)


class ExpressionValidator:
    """Validates expressions against a dialect's function map.

    Args:
        dialect: The dialect the plan will be rendered for.
    """

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, expr: ExpressionBase, clause: str, allow_aggregates: bool = False) -> None:
        """Raise on the first unsupported construct in ``expr``.

        Args:
            expr: The expression to check.
            clause: Operation name used in error messages (``"filter"``).
            allow_aggregates: Whether aggregate calls may appear.

        Raises:
            UnsupportedExpressionError: If a function has no translation, an
                aggregate appears where it is not allowed, or aggregates
                are nested.
        """
        for node in walk(expr):
            if isinstance(node, FuncExpr):
                self._validate_func(node)
            elif isinstance(node, AggregateExpr):
                self._validate_aggregate(node, clause, allow_aggregates)

    # ------------------------------------------------------------------
    # Node checks
    # ------------------------------------------------------------------

    def _validate_func(self, node: FuncExpr) -> None:
        if node.name in BUILTIN_PREDICATES:
            return
        if self._dialect.function_template(node.name) is None:
            raise UnsupportedExpressionError(
                f"Function '{node.name}' has no translation for dialect '{self._dialect.name}'.",
                function=node.name,
                dialect=self._dialect.name,
            )

    def _validate_aggregate(self, node: AggregateExpr, clause: str, allowed: bool) -> None:
        if not allowed:
            raise UnsupportedExpressionError(
                f"Aggregate '{node.fn}' cannot be used in {clause}; compute it with aggregate() first.",
                function=node.fn,
                dialect=self._dialect.name,
            )
        if node.arg is not None and contains_aggregate(node.arg):
            raise UnsupportedExpressionError(
                f"Aggregate '{node.fn}' contains a nested aggregate.",
                function=node.fn,
                dialect=self._dialect.name,
            )
        if self._dialect.function_template(node.fn) is None:
            raise UnsupportedExpressionError(
                f"Aggregate '{node.fn}' has no translation for dialect '{self._dialect.name}'.",
                function=node.fn,
                dialect=self._dialect.name,
            )
