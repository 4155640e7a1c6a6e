"""Clause-level SQL builders.

Each class handles exactly one SQL clause of a planned
:class:`~lazyql.compile.planner.ClauseSet`.  ``FromClauseBuilder`` receives a
*shared build function* (``Callable[[ClauseSet], str]``) so nested clause
sets are rendered with the same :class:`RuntimeContext` as the outer
statement.

Classes
-------
SelectClauseBuilder   - ``SELECT [DISTINCT] <items>``
FromClauseBuilder     - ``FROM <table | subquery>``
JoinClauseBuilder     - ``{INNER|LEFT|RIGHT|FULL} JOIN … ON (…)``
WhereClauseBuilder    - ``WHERE <predicates>``
GroupByClauseBuilder  - ``GROUP BY <keys>``
OrderByClauseBuilder  - ``ORDER BY <keys>``
"""
from __future__ import annotations

from typing import Callable, Union

from lazyql.compile.context import CompilationContext, RuntimeContext
from lazyql.compile.expression_builder import ExpressionTranslator
from lazyql.compile.planner import (
    ClauseSet,
    JoinSource,
    SelectItem,
    StarItem,
    SubquerySource,
    TableSource,
)
from lazyql.errors import CompilationError
from lazyql.schema.expressions import ColumnExpr

_JOIN_KEYWORDS: dict[str, str] = {
    "inner": "INNER JOIN",
    "left": "LEFT JOIN",
    "right": "RIGHT JOIN",
    "full": "FULL JOIN",
}


def shadowed_names(cs: ClauseSet) -> frozenset[str]:
    """Output aliases that differ from the source column of the same name."""
    return frozenset(
        item.name
        for item in cs.items
        if not (isinstance(item.expr, ColumnExpr) and item.expr.name == item.name)
    )


class SelectClauseBuilder:
    """Builds the ``SELECT [DISTINCT] …`` clause."""

    def __init__(self, ctx: CompilationContext, runtime: RuntimeContext) -> None:
        self._ctx = ctx
        self._runtime = runtime

    def build(self, cs: ClauseSet) -> str:
        translator = ExpressionTranslator(self._ctx, self._runtime, cs.scope)
        outputs = list(cs.outputs)
        parts: list[str] = []

        prefix = self._identity_prefix(cs)
        if prefix:
            parts.append("*")
            outputs = outputs[prefix:]

        for output in outputs:
            if isinstance(output, StarItem):
                parts.append(self._build_star(cs, output))
            else:
                parts.append(self._build_item(output, translator))

        keyword = "SELECT DISTINCT" if cs.distinct else "SELECT"
        return f"{keyword} {', '.join(parts)}"

    def _build_item(self, item: SelectItem, translator: ExpressionTranslator) -> str:
        expr_sql = translator.translate(item.expr)
        if isinstance(item.expr, ColumnExpr) and item.expr.name == item.name:
            return expr_sql
        return f"{expr_sql} AS {self._ctx.compiler.quote_identifier(item.name)}"

    def _build_star(self, cs: ClauseSet, star: StarItem) -> str:
        if len(cs.scope.relations) == 1:
            return "*"
        return f"{self._ctx.compiler.quote_identifier(star.relation)}.*"

    @staticmethod
    def _identity_prefix(cs: ClauseSet) -> int:
        """Length of the leading outputs that ``*`` can stand for (0 if none).

        Only a single-relation source qualifies; its known columns must lead
        the select list unchanged and in order, followed by its star when the
        relation is open.
        """
        if len(cs.scope.relations) != 1:
            return 0
        slots = cs.scope.slots
        outputs = cs.outputs
        if len(outputs) < len(slots):
            return 0
        for slot, output in zip(slots, outputs):
            if not isinstance(output, SelectItem) or output.name != slot.name:
                return 0
            expr = output.expr
            if not isinstance(expr, ColumnExpr) or expr.name != slot.name or expr.qualifier != slot.relation:
                return 0
        count = len(slots)
        if cs.scope.is_open:
            if len(outputs) <= count or not isinstance(outputs[count], StarItem):
                return 0
            count += 1
        return count


class FromClauseBuilder:
    """Builds the ``FROM <table | subquery>`` fragment.

    For subquery sources, compilation is delegated to ``build_fn``, which
    uses the **shared** ``RuntimeContext`` so parameter names are collected
    for the whole statement.
    """

    def __init__(
        self,
        ctx: CompilationContext,
        build_fn: Callable[[ClauseSet], str],
    ) -> None:
        self._ctx = ctx
        self._build_fn = build_fn

    def build(self, source: Union[TableSource, SubquerySource, JoinSource]) -> str:
        if isinstance(source, JoinSource):
            return self.build(source.left)
        quote = self._ctx.compiler.quote_identifier
        if isinstance(source, TableSource):
            table_sql = self._ctx.compiler.quote_table(source.table)
            if source.table.alias:
                table_sql = f"{table_sql} AS {quote(source.table.alias)}"
            return table_sql
        if isinstance(source, SubquerySource):
            sub_sql = self._build_fn(source.clause_set)
            return f"(\n{sub_sql}\n) AS {quote(source.alias)}"
        raise CompilationError(f"Unknown FROM source: {type(source).__name__}", clause="FROM")


class JoinClauseBuilder:
    """Builds a single ``JOIN … ON (…)`` fragment."""

    def __init__(
        self,
        ctx: CompilationContext,
        runtime: RuntimeContext,
        from_builder: FromClauseBuilder,
    ) -> None:
        self._ctx = ctx
        self._runtime = runtime
        self._from = from_builder

    def build(self, cs: ClauseSet) -> str:
        source = cs.source
        if not isinstance(source, JoinSource):
            raise CompilationError("Clause set has no join source.", clause="JOIN")
        keyword = _JOIN_KEYWORDS.get(source.how)
        if keyword is None:
            raise CompilationError(f"Unknown join type '{source.how}'.", clause="JOIN")
        right_sql = self._from.build(source.right)
        translator = ExpressionTranslator(self._ctx, self._runtime, cs.scope)
        on_sql = translator.translate_predicate(source.on)
        return f"{keyword} {right_sql} ON {on_sql}"


class WhereClauseBuilder:
    """Builds ``WHERE``; several predicates are AND-ed, each parenthesized."""

    def __init__(self, ctx: CompilationContext, runtime: RuntimeContext) -> None:
        self._ctx = ctx
        self._runtime = runtime

    def build(self, cs: ClauseSet) -> str:
        translator = ExpressionTranslator(self._ctx, self._runtime, cs.scope)
        if len(cs.where) == 1:
            return f"WHERE {translator.translate(cs.where[0])}"
        parts = [translator.translate_predicate(p) for p in cs.where]
        return f"WHERE {' AND '.join(parts)}"


class GroupByClauseBuilder:
    """Builds ``GROUP BY``; columns shadowed by an output alias are qualified."""

    def __init__(self, ctx: CompilationContext, runtime: RuntimeContext) -> None:
        self._ctx = ctx
        self._runtime = runtime

    def build(self, cs: ClauseSet) -> str:
        translator = ExpressionTranslator(
            self._ctx, self._runtime, cs.scope, shadowed=shadowed_names(cs)
        )
        return f"GROUP BY {', '.join(translator.translate(k) for k in cs.group_by)}"


class OrderByClauseBuilder:
    """Builds ``ORDER BY``.

    A key equal to a computed select item is written as that item's alias;
    other columns shadowed by an output alias are qualified.
    """

    def __init__(self, ctx: CompilationContext, runtime: RuntimeContext) -> None:
        self._ctx = ctx
        self._runtime = runtime

    def build(self, cs: ClauseSet) -> str:
        translator = ExpressionTranslator(
            self._ctx, self._runtime, cs.scope, shadowed=shadowed_names(cs)
        )
        parts: list[str] = []
        for key in cs.order_by:
            item = cs.find_item(key.expr)
            if item is not None and item.name in shadowed_names(cs):
                key_sql = self._ctx.compiler.quote_identifier(item.name)
            else:
                key_sql = translator.translate(key.expr)
            parts.append(f"{key_sql} {key.direction}")
        return f"ORDER BY {', '.join(parts)}"
