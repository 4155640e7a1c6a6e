"""Lazy query plans and the builder API.

A :class:`Plan` wraps the head node of an immutable operation chain.  Every
builder method returns a new Plan whose head points at the old one, so
plans can be branched freely::

    from lazyql import table
    from lazyql.functions import col, count, mean

    flights = table("flights")
    delayed = flights.filter(col("arr_delay") > 0)
    by_dest = delayed.aggregate("dest", n=count(), delay=mean("arr_delay"))

    print(by_dest.render("postgres"))

Nothing touches a database until :meth:`Plan.collect` (or
:meth:`Plan.acollect`) hands the rendered SQL to an executor.

Every method is also available as a module-level function taking the plan
as its first argument (``filter(plan, predicate)``).
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from lazyql.compile.base import RenderedQuery
from lazyql.compile.builder import QueryBuilder
from lazyql.compile.registry import DialectRegistry
from lazyql.errors import PlanError
from lazyql.execute.base import aexecute_rendered, execute_rendered
from lazyql.functions import as_sort_keys
from lazyql.schema.dialect import Dialect
from lazyql.schema.expressions import (
    BinaryExpr,
    ColumnExpr,
    ExpressionBase,
    contains_aggregate,
    iter_columns,
    to_expression,
)
from lazyql.schema.operations import (
    AggregateOp,
    DistinctOp,
    FilterOp,
    JoinOp,
    LimitOp,
    NamedExpr,
    Node,
    ProjectOp,
    SortOp,
    iter_tables,
)
from lazyql.schema.table import ColumnInfo, TableRef
from lazyql.validate.validator import PlanValidator

if TYPE_CHECKING:
    import pyarrow as pa

    from lazyql.execute.base import AsyncQueryExecutor, QueryExecutor

logger = logging.getLogger(__name__)


class Plan(BaseModel):
    """An immutable, lazily evaluated relational query.

    Attributes:
        node: Head of the operation chain (a TableRef or an operation).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    node: Node

    @property
    def tables(self) -> list[TableRef]:
        """Base tables referenced by the plan, left to right."""
        return list(iter_tables(self.node))

    # ------------------------------------------------------------------
    # Builder API
    # ------------------------------------------------------------------

    def project(self, *columns: Any, **named: Any) -> Plan:
        """Select, rename, reorder and compute columns.

        Positional arguments are column names (``"dest"``,
        ``"flights.dest"``), column expressions, or ``{name: expr}``
        mappings.  Keyword arguments bind an output name to an expression;
        a string value renames a column (``project(destination="dest")``).
        """
        outputs = _named_exprs(columns, named, "project")
        if not outputs:
            raise PlanError("project() needs at least one column.", operation="project")
        return self._chain(ProjectOp, "project", outputs=outputs)

    def derive(self, **exprs: Any) -> Plan:
        """Add or replace computed columns, keeping all existing ones.

        An expression may reference a name introduced earlier in the same
        call; the call is then split into successive projections.
        """
        if not exprs:
            raise PlanError("derive() needs at least one expression.", operation="derive")
        plan = self
        batch: list[NamedExpr] = []
        for out in _named_exprs((), exprs, "derive"):
            introduced = {b.name for b in batch}
            if any(c.qualifier is None and c.name in introduced for c in iter_columns(out.expr)):
                plan = plan._chain(ProjectOp, "derive", outputs=tuple(batch), keep_existing=True)
                batch = []
            batch.append(out)
        return plan._chain(ProjectOp, "derive", outputs=tuple(batch), keep_existing=True)

    def filter(self, *predicates: Any) -> Plan:
        """Keep rows where every predicate is TRUE (NULL counts as false)."""
        if not predicates:
            raise PlanError("filter() needs at least one predicate.", operation="filter")
        combined = to_expression(predicates[0])
        for pred in predicates[1:]:
            combined = BinaryExpr(op="AND", left=combined, right=to_expression(pred))
        return self._chain(FilterOp, "filter", predicate=combined)

    def sort(self, *keys: Any) -> Plan:
        """Order rows; replaces any earlier ordering.

        Keys are column names, expressions (ascending) or
        :func:`~lazyql.functions.asc` / :func:`~lazyql.functions.desc`.
        """
        if not keys:
            raise PlanError("sort() needs at least one key.", operation="sort")
        return self._chain(SortOp, "sort", keys=as_sort_keys(keys))

    def aggregate(
        self,
        group_keys: Any = (),
        aggregates: Mapping[str, Any] | None = None,
        **named: Any,
    ) -> Plan:
        """Group rows and compute aggregates per group.

        Args:
            group_keys: A column name, an expression, a ``{name: expr}``
                mapping, or a sequence of those.  Empty for one global row.
            aggregates: ``{name: aggregate expression}``.
            **named: More aggregates by keyword.
        """
        if isinstance(group_keys, (str, Mapping, ExpressionBase)):
            group_keys = (group_keys,)
        keys = _named_exprs(tuple(group_keys), {}, "aggregate")
        aggs = _named_exprs((), {**(aggregates or {}), **named}, "aggregate")
        if not aggs:
            raise PlanError("aggregate() needs at least one aggregate.", operation="aggregate")
        for agg in aggs:
            if not contains_aggregate(agg.expr):
                raise PlanError(
                    f"Aggregate output '{agg.name}' contains no aggregate function.",
                    operation="aggregate",
                )
        return self._chain(AggregateOp, "aggregate", group_keys=keys, aggregates=aggs)

    def join(
        self,
        other: Plan | TableRef,
        how: str = "inner",
        on: Any = None,
        by: str | Sequence[str] | None = None,
        suffixes: tuple[str, str] = ("_x", "_y"),
    ) -> Plan:
        """Join with another plan.

        Args:
            other: Right-hand plan or table.
            how: ``inner``, ``left``, ``right`` or ``full``.
            on: Join predicate over qualified columns
                (``col("flights.tailnum") == col("planes.tailnum")``).
            by: Same-named key column(s); the keys appear once in the output.
            suffixes: Appended to colliding left / right column names.
        """
        right = other.node if isinstance(other, Plan) else other
        if isinstance(by, str):
            by = (by,)
        try:
            node = JoinOp(
                left=self.node,
                right=right,
                how=how,
                on=None if on is None else to_expression(on),
                by=tuple(by or ()),
                suffixes=suffixes,
            )
        except ValidationError as exc:
            raise PlanError(f"Invalid join: {exc}", operation="join") from exc
        return Plan(node=node)

    def distinct(self, *columns: Any) -> Plan:
        """Drop duplicate rows, optionally after selecting ``columns``."""
        plan = self.project(*columns) if columns else self
        return Plan(node=DistinctOp(source=plan.node))

    def limit(self, n: int) -> Plan:
        """Keep at most ``n`` rows."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise PlanError(f"limit() needs a non-negative integer, got {n!r}.", operation="limit")
        return Plan(node=LimitOp(source=self.node, n=n))

    # ------------------------------------------------------------------
    # Compilation and execution
    # ------------------------------------------------------------------

    def render(self, dialect: str | Dialect = "ansi") -> RenderedQuery:
        """Compile the plan to SQL.  Pure: no I/O, deterministic.

        Raises:
            UnresolvedColumnError: If a name is not visible where used.
            AmbiguousColumnError: If a join leaves a name ambiguous.
            UnsupportedExpressionError: If a function has no translation.
            DialectCapabilityError: If the dialect lacks a required join.
        """
        resolved = DialectRegistry.resolve(dialect)
        PlanValidator(resolved).validate(self.node)
        return QueryBuilder(DialectRegistry.create(resolved)).build(self.node)

    def collect(
        self,
        executor: QueryExecutor,
        dialect: str | Dialect | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> pa.Table:
        """Render, execute through ``executor`` and materialize the rows.

        Args:
            executor: Execution collaborator (see :mod:`lazyql.execute`).
            dialect: Target dialect; defaults to the executor's ``dialect``
                attribute, then ``"ansi"``.
            params: Values for :func:`~lazyql.functions.param` placeholders.

        Raises:
            MissingParamError: If a parameter has no value.
            ExecutionError: If the executor fails.
        """
        query = self.render(_executor_dialect(executor, dialect))
        return execute_rendered(executor, query, params)

    async def acollect(
        self,
        executor: AsyncQueryExecutor,
        dialect: str | Dialect | None = None,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> pa.Table:
        """Async :meth:`collect`; ``timeout`` bounds the execution call only."""
        query = self.render(_executor_dialect(executor, dialect))
        return await aexecute_rendered(executor, query, params, timeout=timeout)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _chain(self, op_cls: type[BaseModel], operation: str, **fields: Any) -> Plan:
        try:
            node = op_cls(source=self.node, **fields)
        except ValidationError as exc:
            raise PlanError(f"Invalid {operation}(): {exc}", operation=operation) from exc
        return Plan(node=node)


# ---------------------------------------------------------------------------
# Module-level builder API
# ---------------------------------------------------------------------------


def table(
    name: str,
    columns: Sequence[str | ColumnInfo] | Mapping[str, str] | None = None,
    schema: str | None = None,
    alias: str | None = None,
) -> Plan:
    """Start a plan from a remote table.

    Args:
        name: Table name.
        columns: Declared columns (names, ``{name: sql_type}`` or
            :class:`ColumnInfo` items).  ``None`` leaves them unknown.
        schema: Optional database schema.
        alias: Optional alias used to qualify this table's columns.
    """
    try:
        ref = TableRef(name=name, columns=columns, schema_name=schema, alias=alias)
    except ValidationError as exc:
        raise PlanError(f"Invalid table '{name}': {exc}", operation="table") from exc
    return Plan(node=ref)


def project(plan: Plan, *columns: Any, **named: Any) -> Plan:
    return plan.project(*columns, **named)


def derive(plan: Plan, **exprs: Any) -> Plan:
    return plan.derive(**exprs)


def filter(plan: Plan, *predicates: Any) -> Plan:  # noqa: A001
    return plan.filter(*predicates)


def sort(plan: Plan, *keys: Any) -> Plan:
    return plan.sort(*keys)


def aggregate(
    plan: Plan,
    group_keys: Any = (),
    aggregates: Mapping[str, Any] | None = None,
    **named: Any,
) -> Plan:
    return plan.aggregate(group_keys, aggregates, **named)


def join(
    plan: Plan,
    other: Plan | TableRef,
    how: str = "inner",
    on: Any = None,
    by: str | Sequence[str] | None = None,
    suffixes: tuple[str, str] = ("_x", "_y"),
) -> Plan:
    return plan.join(other, how=how, on=on, by=by, suffixes=suffixes)


def distinct(plan: Plan, *columns: Any) -> Plan:
    return plan.distinct(*columns)


def limit(plan: Plan, n: int) -> Plan:
    return plan.limit(n)


def render(plan: Plan, dialect: str | Dialect = "ansi") -> RenderedQuery:
    return plan.render(dialect)


def collect(
    plan: Plan,
    executor: QueryExecutor,
    dialect: str | Dialect | None = None,
    params: Mapping[str, Any] | None = None,
) -> pa.Table:
    return plan.collect(executor, dialect=dialect, params=params)


async def acollect(
    plan: Plan,
    executor: AsyncQueryExecutor,
    dialect: str | Dialect | None = None,
    params: Mapping[str, Any] | None = None,
    timeout: float | None = None,
) -> pa.Table:
    return await plan.acollect(executor, dialect=dialect, params=params, timeout=timeout)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _named_exprs(
    positional: Sequence[Any],
    named: Mapping[str, Any],
    operation: str,
) -> tuple[NamedExpr, ...]:
    """Normalize builder arguments into unique named expressions."""
    outputs: list[NamedExpr] = []
    for item in positional:
        if isinstance(item, NamedExpr):
            outputs.append(item)
        elif isinstance(item, Mapping):
            outputs.extend(NamedExpr(name=k, expr=to_expression(v)) for k, v in item.items())
        else:
            expr = to_expression(item)
            if not isinstance(expr, ColumnExpr):
                raise PlanError(
                    f"{operation}() got an unnamed expression; pass it as name=expr.",
                    operation=operation,
                )
            outputs.append(NamedExpr(name=expr.name, expr=expr))
    outputs.extend(NamedExpr(name=k, expr=to_expression(v)) for k, v in named.items())

    seen: set[str] = set()
    for out in outputs:
        if out.name in seen:
            raise PlanError(f"{operation}() got duplicate output name '{out.name}'.", operation=operation)
        seen.add(out.name)
    return tuple(outputs)


def _executor_dialect(executor: Any, dialect: str | Dialect | None) -> Dialect:
    """Pick the dialect for ``executor`` and align its placeholder style."""
    resolved = DialectRegistry.resolve(dialect or getattr(executor, "dialect", None) or "ansi")
    style = getattr(executor, "param_style", None)
    if style is not None and style != resolved.param_style:
        logger.debug("Using %s placeholders for executor %s", style, type(executor).__name__)
        resolved = resolved.model_copy(update={"param_style": style})
    return resolved
