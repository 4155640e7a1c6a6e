"""Expression SQL translation and type inference.

``ExpressionTranslator`` turns canonical expression trees (every column
qualified with its owning relation, see :mod:`lazyql.compile.scope`) into
SQL fragments for one dialect.  It decides per column whether the qualifier
must be printed, inserts integer-division casts, and renders NULL
comparisons with ``IS NULL``.

:func:`infer_kind` is the small, dialect-independent type inference used by
both the translator and the planner.
"""
from __future__ import annotations

import datetime
import decimal
from collections.abc import Iterable

from lazyql.compile.context import CompilationContext, RuntimeContext
from lazyql.compile.scope import Scope
from lazyql.errors import CompilationError
from lazyql.schema.expressions import (
    AggregateExpr,
    BinaryExpr,
    CaseExpr,
    ColumnExpr,
    ExpressionBase,
    FuncExpr,
    LiteralExpr,
    ParamExpr,
    UnaryExpr,
)
from lazyql.schema.operators import (
    ARITHMETIC_OPS,
    BOOLEAN,
    COMPARISON_OPS,
    FLOAT,
    INTEGER,
    LOGICAL_OPS,
    NON_ASSOCIATIVE_OPS,
    PRECEDENCE,
    STRING,
    TEMPORAL,
)

#: Functions rendered directly by the translator rather than via templates.
BUILTIN_PREDICATES: frozenset[str] = frozenset({"in", "between"})

_NUMERIC = (INTEGER, FLOAT)

_FUNCTION_KINDS: dict[str, str] = {
    "as_integer": INTEGER,
    "as_float": FLOAT,
    "as_string": STRING,
    "length": INTEGER,
    "lower": STRING,
    "upper": STRING,
    "trim": STRING,
    "substr": STRING,
    "concat": STRING,
    "year": INTEGER,
    "month": INTEGER,
    "day": INTEGER,
    "sqrt": FLOAT,
    "exp": FLOAT,
    "ln": FLOAT,
    "power": FLOAT,
    "in": BOOLEAN,
    "between": BOOLEAN,
}

# Functions whose result has the type of their first argument.
_PASSTHROUGH_KINDS: frozenset[str] = frozenset({"abs", "round", "floor", "ceil", "nullif"})


# ---------------------------------------------------------------------------
# Type inference
# ---------------------------------------------------------------------------


def infer_kind(expr: ExpressionBase) -> str | None:
    """Infer the type kind of ``expr`` (``None`` when unknown).

    Args:
        expr: A canonical expression.

    Returns:
        One of ``integer``, ``float``, ``string``, ``boolean``,
        ``temporal``, or ``None``.
    """
    if isinstance(expr, ColumnExpr):
        return expr.dtype
    if isinstance(expr, LiteralExpr):
        return _literal_kind(expr.value)
    if isinstance(expr, ParamExpr):
        return None
    if isinstance(expr, UnaryExpr):
        return infer_kind(expr.operand) if expr.op == "-" else BOOLEAN
    if isinstance(expr, BinaryExpr):
        if expr.op not in ARITHMETIC_OPS:
            return BOOLEAN
        left, right = infer_kind(expr.left), infer_kind(expr.right)
        if expr.op == "/":
            return FLOAT if left in _NUMERIC and right in _NUMERIC else None
        if left == INTEGER and right == INTEGER:
            return INTEGER
        if left in _NUMERIC and right in _NUMERIC:
            return FLOAT
        return None
    if isinstance(expr, FuncExpr):
        if expr.name in _FUNCTION_KINDS:
            return _FUNCTION_KINDS[expr.name]
        if expr.name in _PASSTHROUGH_KINDS and expr.args:
            return infer_kind(expr.args[0])
        if expr.name == "coalesce":
            return _first_known(infer_kind(a) for a in expr.args)
        return None
    if isinstance(expr, CaseExpr):
        outcomes = [b.then for b in expr.branches]
        if expr.default is not None:
            outcomes.append(expr.default)
        return _first_known(infer_kind(o) for o in outcomes)
    if isinstance(expr, AggregateExpr):
        if expr.fn == "count":
            return INTEGER
        if expr.fn in ("mean", "sd", "var", "median"):
            return FLOAT
        return infer_kind(expr.arg) if expr.arg is not None else None
    raise CompilationError(f"Unknown expression type: {type(expr).__name__}", clause="expression")


def _literal_kind(value: object) -> str | None:
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, (float, decimal.Decimal)):
        return FLOAT
    if isinstance(value, str):
        return STRING
    if isinstance(value, (datetime.date, datetime.time)):
        return TEMPORAL
    return None


def _first_known(kinds: Iterable[str | None]) -> str | None:
    for kind in kinds:
        if kind is not None:
            return kind
    return None


def _is_null(expr: ExpressionBase) -> bool:
    return isinstance(expr, LiteralExpr) and expr.value is None


# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------


class ExpressionTranslator:
    """Compiles canonical expression nodes to SQL for one scope.

    Args:
        ctx: Static compilation context (compiler).
        runtime: Shared per-render state (parameter names).
        scope: The scope the expressions were resolved against; decides
            which columns print their relation qualifier.
        shadowed: Column names that must always be qualified because an
            output alias of the same name would capture them (ORDER BY and
            GROUP BY resolve output aliases first in several databases).
    """

    def __init__(
        self,
        ctx: CompilationContext,
        runtime: RuntimeContext,
        scope: Scope,
        shadowed: frozenset[str] = frozenset(),
    ) -> None:
        self._ctx = ctx
        self._runtime = runtime
        self._scope = scope
        self._shadowed = shadowed

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(self, expr: ExpressionBase) -> str:
        """Compile an expression to a SQL fragment."""
        if isinstance(expr, ColumnExpr):
            return self._build_column(expr)
        if isinstance(expr, LiteralExpr):
            return self._ctx.compiler.render_literal(expr.value)
        if isinstance(expr, ParamExpr):
            self._runtime.add_param(expr.name)
            return self._ctx.compiler.param_placeholder(expr.name)
        if isinstance(expr, UnaryExpr):
            return self._build_unary(expr)
        if isinstance(expr, BinaryExpr):
            return self._build_binary(expr)
        if isinstance(expr, FuncExpr):
            return self._build_func(expr)
        if isinstance(expr, CaseExpr):
            return self._build_case(expr)
        if isinstance(expr, AggregateExpr):
            return self._build_aggregate(expr)
        raise CompilationError(
            f"Unknown expression type: {type(expr).__name__}", clause="expression"
        )

    def translate_predicate(self, expr: ExpressionBase) -> str:
        """Compile a predicate for a clause that wraps it in parentheses.

        Logical connectives already carry their own parentheses.
        """
        sql = self.translate(expr)
        if isinstance(expr, BinaryExpr) and expr.op in LOGICAL_OPS:
            return sql
        return f"({sql})"

    # ------------------------------------------------------------------
    # Node compilers
    # ------------------------------------------------------------------

    def _build_column(self, col: ColumnExpr) -> str:
        quote = self._ctx.compiler.quote_identifier
        qualify = col.qualifier is not None and (
            self._scope.needs_qualifier(col) or col.name in self._shadowed
        )
        if qualify:
            return f"{quote(col.qualifier)}.{quote(col.name)}"
        return quote(col.name)

    def _build_unary(self, expr: UnaryExpr) -> str:
        operand = self.translate(expr.operand)
        if expr.op == "-":
            # ``--`` starts a line comment.
            if isinstance(expr.operand, (BinaryExpr, UnaryExpr)) or operand.startswith("-"):
                return f"-({operand})"
            return f"-{operand}"
        if expr.op == "NOT":
            if isinstance(expr.operand, BinaryExpr) and expr.operand.op in LOGICAL_OPS:
                return f"NOT {operand}"
            return f"NOT ({operand})"
        # IS NULL / IS NOT NULL
        if isinstance(expr.operand, (BinaryExpr, UnaryExpr)) and not (
            isinstance(expr.operand, BinaryExpr) and expr.operand.op in LOGICAL_OPS
        ):
            operand = f"({operand})"
        return f"{operand} {expr.op}"

    def _build_binary(self, expr: BinaryExpr) -> str:
        op = expr.op
        if op in LOGICAL_OPS:
            return f"({self.translate(expr.left)} {op} {self.translate(expr.right)})"

        if op in ("=", "<>") and (_is_null(expr.left) or _is_null(expr.right)):
            subject = expr.right if _is_null(expr.left) else expr.left
            if _is_null(subject):
                return "TRUE" if op == "=" else "FALSE"
            test = "IS NULL" if op == "=" else "IS NOT NULL"
            return f"{self._wrap(subject, None, False)} {test}"

        left = self._wrap(expr.left, op, False)
        right = self._wrap(expr.right, op, True)
        if op == "/" and self._needs_float_cast(expr):
            left = self._ctx.compiler.cast_to_float(self.translate(expr.left))
        return f"{left} {self._ctx.compiler.render_operator(op)} {right}"

    def _wrap(self, child: ExpressionBase, parent_op: str | None, right_side: bool) -> str:
        """Translate a binary operand, parenthesizing it where precedence requires."""
        sql = self.translate(child)
        if right_side and parent_op == "-" and sql.startswith("-"):
            return f"({sql})"
        if not isinstance(child, BinaryExpr) or child.op in LOGICAL_OPS:
            return sql
        if parent_op is None:
            return f"({sql})"
        child_prec, parent_prec = PRECEDENCE[child.op], PRECEDENCE[parent_op]
        if child_prec < parent_prec:
            return f"({sql})"
        if child_prec == parent_prec:
            if parent_op in COMPARISON_OPS or parent_op == "LIKE":
                return f"({sql})"
            if right_side and (parent_op in NON_ASSOCIATIVE_OPS or child.op != parent_op):
                return f"({sql})"
        return sql

    def _needs_float_cast(self, expr: BinaryExpr) -> bool:
        if not self._ctx.dialect.integer_division_requires_cast:
            return False
        return infer_kind(expr.left) == INTEGER and infer_kind(expr.right) == INTEGER

    def _build_func(self, expr: FuncExpr) -> str:
        if expr.name == "in":
            return self._build_in(expr)
        if expr.name == "between":
            if len(expr.args) != 3:
                raise CompilationError("between() takes exactly three arguments.", clause="expression")
            value, low, high = (self._wrap(a, None, False) for a in expr.args)
            return f"{value} BETWEEN {low} AND {high}"
        args = [self.translate(a) for a in expr.args]
        return self._ctx.compiler.build_func_call(expr.name, args)

    def _build_in(self, expr: FuncExpr) -> str:
        if not expr.args:
            raise CompilationError("in() needs a value to test.", clause="expression")
        subject = self._wrap(expr.args[0], None, False)
        candidates = expr.args[1:]
        has_null = any(_is_null(c) for c in candidates)
        values = [self.translate(c) for c in candidates if not _is_null(c)]
        if not values:
            return f"{subject} IS NULL" if has_null else self._ctx.compiler.render_literal(False)
        membership = f"{subject} IN ({', '.join(values)})"
        if has_null:
            return f"({membership} OR {subject} IS NULL)"
        return membership

    def _build_case(self, expr: CaseExpr) -> str:
        parts = ["CASE"]
        for branch in expr.branches:
            parts.append(f"WHEN {self.translate(branch.when)} THEN {self.translate(branch.then)}")
        if expr.default is not None:
            parts.append(f"ELSE {self.translate(expr.default)}")
        parts.append("END")
        return " ".join(parts)

    def _build_aggregate(self, expr: AggregateExpr) -> str:
        if expr.arg is None:
            arg = "*"
        else:
            arg = self.translate(expr.arg)
            if expr.distinct:
                arg = f"DISTINCT {arg}"
        return self._ctx.compiler.build_func_call(expr.fn, [arg])
