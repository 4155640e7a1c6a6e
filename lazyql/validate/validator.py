"""Plan validation orchestrator.

``PlanValidator`` is the public entry point.  It walks an operation chain
and applies the focused sub-validators to every node, so capability and
translation failures surface before planning or rendering starts.

Sub-validator hierarchy
-----------------------
PlanValidator
  ├── DialectValidator     (dialect_validator.py)    - join capability flags
  └── ExpressionValidator  (expression_validator.py) - functions, aggregates
"""
from __future__ import annotations

from lazyql.errors import CompilationError
from lazyql.schema.dialect import Dialect
from lazyql.schema.operations import (
    AggregateOp,
    DistinctOp,
    FilterOp,
    JoinOp,
    LimitOp,
    ProjectOp,
    SortOp,
)
from lazyql.schema.table import TableRef
from lazyql.validate.dialect_validator import DialectValidator
from lazyql.validate.expression_validator import ExpressionValidator


class PlanValidator:
    """Validates an operation chain against a :class:`Dialect`.

    Raises the first violation as a subclass of
    :class:`~lazyql.errors.CompilationError`.

    Args:
        dialect: The dialect the plan will be rendered for.
    """

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, node: object) -> None:
        """Validate every node reachable from ``node``.

        Raises:
            UnsupportedExpressionError: On an untranslatable expression.
            DialectCapabilityError: On an unsupported join kind.
            CompilationError: On an unknown node type.
        """
        sub_validators = self._make_sub_validators()
        pending: list[object] = [node]
        while pending:
            current = pending.pop()
            if isinstance(current, TableRef):
                continue
            if isinstance(current, JoinOp):
                sub_validators["dialect"].validate_join(current)
                if current.on is not None:
                    sub_validators["expr"].validate(current.on, "a join condition")
                pending.extend((current.right, current.left))
                continue
            self._validate_node(current, sub_validators)
            pending.append(current.source)  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Node validation helpers
    # ------------------------------------------------------------------

    def _validate_node(self, node: object, sv: dict) -> None:
        expr_validator: ExpressionValidator = sv["expr"]
        if isinstance(node, ProjectOp):
            for out in node.outputs:
                expr_validator.validate(out.expr, "a projection")
        elif isinstance(node, FilterOp):
            expr_validator.validate(node.predicate, "a filter")
        elif isinstance(node, SortOp):
            for key in node.keys:
                expr_validator.validate(key.expr, "a sort key")
        elif isinstance(node, AggregateOp):
            for key in node.group_keys:
                expr_validator.validate(key.expr, "a group key")
            for agg in node.aggregates:
                expr_validator.validate(agg.expr, "an aggregate", allow_aggregates=True)
        elif not isinstance(node, (DistinctOp, LimitOp)):
            raise CompilationError(f"Unknown plan node: {type(node).__name__}")

    # ------------------------------------------------------------------
    # Sub-validator wiring
    # ------------------------------------------------------------------

    def _make_sub_validators(self) -> dict:
        """Construct sub-validators for one validation run."""
        return {
            "dialect": DialectValidator(self._dialect),
            "expr": ExpressionValidator(self._dialect),
        }
