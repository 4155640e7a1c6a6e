"""Expression-building helpers.

These are the public constructors for the expression model::

    from lazyql.functions import col, count, mean

    col("arr_delay") > 0
    mean(col("price") / col("carat"))
    count()

Bare strings passed to these helpers are column names, except in
:func:`lit`, where they are string literals.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from lazyql.schema.expressions import (
    AggregateExpr,
    CaseBranch,
    CaseExpr,
    ColumnExpr,
    FuncExpr,
    LiteralExpr,
    ParamExpr,
    SortKey,
    to_expression,
    to_operand,
)

__all__ = [
    "col",
    "lit",
    "param",
    "func",
    "case_when",
    "if_else",
    "coalesce",
    "count",
    "count_distinct",
    "sum",
    "mean",
    "min",
    "max",
    "sd",
    "var",
    "median",
    "asc",
    "desc",
]


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


def col(name: str, dtype: str | None = None) -> ColumnExpr:
    """Reference a column, optionally qualified (``"flights.tailnum"``).

    Args:
        name: Column name, or ``"table.column"``.
        dtype: Optional type kind (``"integer"``, ``"float"``, ``"string"``,
            ``"boolean"``, ``"temporal"``) for tables with unknown columns.
    """
    return ColumnExpr.parse(name, dtype=dtype)


def lit(value: Any) -> LiteralExpr:
    """Wrap a Python value as a SQL literal."""
    return LiteralExpr(value=value)


def param(name: str) -> ParamExpr:
    """A named bind parameter whose value is supplied at ``collect`` time."""
    return ParamExpr(name=name)


# ---------------------------------------------------------------------------
# Scalar functions
# ---------------------------------------------------------------------------


def func(name: str, *args: Any) -> FuncExpr:
    """Call a scalar function by its dialect-independent name.

    The name must have a translation in the target dialect's function map;
    otherwise rendering raises ``UnsupportedExpressionError``.
    """
    return FuncExpr(name=name, args=tuple(to_expression(a) for a in args))


def case_when(
    *branches: tuple[Any, Any],
    default: Any = None,
) -> CaseExpr:
    """Searched CASE: ``case_when((cond, value), ..., default=other)``.

    ``value`` and ``default`` are literals unless they are expressions.
    """
    if not branches:
        raise ValueError("case_when() requires at least one (condition, value) branch")
    return CaseExpr(
        branches=tuple(
            CaseBranch(when=to_expression(when), then=to_operand(then)) for when, then in branches
        ),
        default=None if default is None else to_operand(default),
    )


def if_else(condition: Any, true: Any, false: Any) -> CaseExpr:
    """Two-way conditional; rows where ``condition`` is NULL give NULL."""
    condition = to_expression(condition)
    return case_when((condition, true), (~condition, false))


def coalesce(*args: Any) -> FuncExpr:
    """First non-NULL argument.  Strings are column names."""
    if not args:
        raise ValueError("coalesce() requires at least one argument")
    return FuncExpr(name="coalesce", args=tuple(to_expression(a) for a in args))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def count(arg: Any = None) -> AggregateExpr:
    """Row count (``COUNT(*)``), or non-NULL count of ``arg``."""
    return AggregateExpr(fn="count", arg=None if arg is None else to_expression(arg))


def count_distinct(arg: Any) -> AggregateExpr:
    return AggregateExpr(fn="count", arg=to_expression(arg), distinct=True)


def _aggregate(fn: str, arg: Any) -> AggregateExpr:
    return AggregateExpr(fn=fn, arg=to_expression(arg))


def sum(arg: Any) -> AggregateExpr:  # noqa: A001
    return _aggregate("sum", arg)


def mean(arg: Any) -> AggregateExpr:
    return _aggregate("mean", arg)


def min(arg: Any) -> AggregateExpr:  # noqa: A001
    return _aggregate("min", arg)


def max(arg: Any) -> AggregateExpr:  # noqa: A001
    return _aggregate("max", arg)


def sd(arg: Any) -> AggregateExpr:
    """Sample standard deviation."""
    return _aggregate("sd", arg)


def var(arg: Any) -> AggregateExpr:
    """Sample variance."""
    return _aggregate("var", arg)


def median(arg: Any) -> AggregateExpr:
    return _aggregate("median", arg)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def asc(expr: Any) -> SortKey:
    return SortKey(expr=to_expression(expr), direction="ASC")


def desc(expr: Any) -> SortKey:
    return SortKey(expr=to_expression(expr), direction="DESC")


def as_sort_keys(keys: Sequence[Any]) -> tuple[SortKey, ...]:
    """Coerce column names / expressions / SortKeys into SortKeys (ascending by default)."""
    return tuple(k if isinstance(k, SortKey) else asc(k) for k in keys)

