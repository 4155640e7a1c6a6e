"""Core plan → SQL compilation logic.

``QueryBuilder`` is the top-level orchestrator.  It runs the
:class:`~lazyql.compile.planner.SubqueryPlanner` over the operation chain,
then wires together the clause-level sub-builders to render each (possibly
nested) clause set.  All dialect-specific behaviour is delegated to the
injected ``SQLCompiler``.

Sub-builder hierarchy
---------------------
QueryBuilder
  ├── SubqueryPlanner       (planner.py)
  ├── SelectClauseBuilder   (clause_builders.py)
  ├── FromClauseBuilder     (clause_builders.py)
  ├── JoinClauseBuilder     (clause_builders.py)
  ├── WhereClauseBuilder    (clause_builders.py)
  ├── GroupByClauseBuilder  (clause_builders.py)
  └── OrderByClauseBuilder  (clause_builders.py)

Runtime context sharing
-----------------------
A single :class:`~lazyql.compile.context.RuntimeContext` is created per
``build()`` call and threaded through the planner and every sub-builder, so
subquery aliases are numbered once for the whole statement and runtime
parameters are collected in order of appearance.
"""

from __future__ import annotations

import logging

from lazyql.compile.base import RenderedQuery, SQLCompiler
from lazyql.compile.clause_builders import (
    FromClauseBuilder,
    GroupByClauseBuilder,
    JoinClauseBuilder,
    OrderByClauseBuilder,
    SelectClauseBuilder,
    WhereClauseBuilder,
)
from lazyql.compile.context import CompilationContext, RuntimeContext
from lazyql.compile.planner import ClauseSet, JoinSource, SubqueryPlanner
from lazyql.schema.operations import iter_tables
from lazyql.schema.table import TableRef

logger = logging.getLogger(__name__)


class QueryBuilder:
    """Compiles a validated operation chain to SQL.

    Args:
        compiler: Dialect-specific compiler instance.
    """

    def __init__(self, compiler: SQLCompiler) -> None:
        self._ctx = CompilationContext(compiler=compiler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, node: object) -> RenderedQuery:
        """Compile ``node`` (a TableRef or operation) to SQL.

        Args:
            node: Head of a validated operation chain.

        Returns:
            :class:`~lazyql.compile.base.RenderedQuery` with the statement,
            the referenced tables and the runtime parameter names.

        Raises:
            CompilationError: (or subclass) if the chain cannot be rendered.
                No SQL is returned in that case.
        """
        runtime = RuntimeContext()
        clause_set = SubqueryPlanner(self._ctx, runtime).plan(node)
        sub_builders = self._make_sub_builders(runtime)
        sql = self._build_core_query(clause_set, sub_builders)
        logger.debug("Rendered %s SQL:\n%s", self._ctx.compiler.dialect_name, sql)
        return RenderedQuery(
            sql=sql,
            tables=_unique_tables(node),
            params=tuple(runtime.params),
            dialect=self._ctx.compiler.dialect_name,
        )

    def plan(self, node: object) -> ClauseSet:
        """Return the planned clause set without rendering it."""
        return SubqueryPlanner(self._ctx, RuntimeContext()).plan(node)

    # ------------------------------------------------------------------
    # Core query (SELECT … LIMIT)
    # ------------------------------------------------------------------

    def _build_core_query(self, cs: ClauseSet, sub_builders: dict) -> str:
        parts: list[str] = []

        parts.append(sub_builders["select"].build(cs))
        parts.append(f"FROM {sub_builders['from'].build(cs.source)}")

        if isinstance(cs.source, JoinSource):
            parts.append(sub_builders["join"].build(cs))

        if cs.where:
            parts.append(sub_builders["where"].build(cs))

        if cs.group_by:
            parts.append(sub_builders["group_by"].build(cs))

        if cs.order_by:
            parts.append(sub_builders["order_by"].build(cs))

        if cs.limit is not None:
            parts.append(self._ctx.compiler.limit_clause(cs.limit))

        return "\n".join(parts)

    # ------------------------------------------------------------------
    # Sub-builder wiring
    # ------------------------------------------------------------------

    def _make_sub_builders(self, runtime: RuntimeContext) -> dict:
        """Construct and wire the sub-builder graph for one compilation run."""
        sub_builders: dict = {
            "select": SelectClauseBuilder(self._ctx, runtime),
            "where": WhereClauseBuilder(self._ctx, runtime),
            "group_by": GroupByClauseBuilder(self._ctx, runtime),
            "order_by": OrderByClauseBuilder(self._ctx, runtime),
        }

        # Nested clause sets share the outer runtime context.
        def build_fn(cs: ClauseSet) -> str:
            return self._build_core_query(cs, sub_builders)

        sub_builders["from"] = FromClauseBuilder(self._ctx, build_fn)
        sub_builders["join"] = JoinClauseBuilder(self._ctx, runtime, sub_builders["from"])
        return sub_builders


def _unique_tables(node: object) -> tuple[TableRef, ...]:
    tables: list[TableRef] = []
    for table in iter_tables(node):  # type: ignore[arg-type]
        if table not in tables:
            tables.append(table)
    return tuple(tables)
