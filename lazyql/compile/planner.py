"""Subquery planner: operation chain → nested clause sets.

``SubqueryPlanner`` walks a plan from its base table outwards and folds each
operation into the current :class:`ClauseSet` until folding would let an
expression see a name its clause set defines itself.  At that point the
current clause set is closed, wrapped as a subquery with a generated alias,
and planning continues on top of it.

Canonical form
--------------
Every expression stored in a clause set is *canonical*: each column is
qualified with the relation (table name/alias or subquery alias) of the
clause set's source that owns it.  User expressions reference the
*outputs* of the clause set built so far; :meth:`SubqueryPlanner._rebase`
maps them onto the source by substituting pass-through and renamed outputs.
A reference to a computed output cannot be substituted and forces a wrap.

Folding rules
-------------
project    folds; a computed output referenced inside a new expression
           wraps.  Over a DISTINCT clause set it always wraps.
filter     folds into WHERE; wraps over aggregated or limited clause sets
           and when the predicate references a computed output.
aggregate  folds into WHERE + GROUP BY; wraps over aggregated, distinct or
           limited clause sets and on computed references.  Drops ordering.
sort       replaces the ordering; wraps over a limited clause set.
           A wrap carries keys its inner select list does not expose as
           extra ``qNN_orderN`` outputs that the outer select omits.
distinct   sets DISTINCT; wraps over a limited clause set.
limit      keeps the smaller of the existing and new limit.
join       materializes both sides (bare tables stay tables) and emits a
           disambiguating projection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Union

from lazyql.compile.context import CompilationContext, RuntimeContext
from lazyql.compile.expression_builder import infer_kind
from lazyql.compile.scope import ColumnSlot, OpenRelation, Scope
from lazyql.errors import AmbiguousColumnError, CompilationError, UnresolvedColumnError
from lazyql.schema.expressions import (
    BinaryExpr,
    ColumnExpr,
    ExpressionBase,
    FuncExpr,
    SortKey,
    contains_aggregate,
    iter_columns,
    replace_columns,
    same_expression,
)
from lazyql.schema.operations import (
    AggregateOp,
    DistinctOp,
    FilterOp,
    JoinOp,
    LimitOp,
    NamedExpr,
    ProjectOp,
    SortOp,
)
from lazyql.schema.table import TableRef

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Clause-set model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableSource:
    """A base table in FROM."""

    table: TableRef

    @property
    def relation(self) -> str:
        return self.table.ref_name


@dataclass(frozen=True, eq=False)
class SubquerySource:
    """A nested clause set in FROM, rendered as ``(...) AS alias``."""

    clause_set: ClauseSet
    alias: str

    @property
    def relation(self) -> str:
        return self.alias


@dataclass(frozen=True, eq=False)
class JoinSource:
    """Two materialized sides joined on a canonical predicate."""

    left: Union[TableSource, SubquerySource]
    right: Union[TableSource, SubquerySource]
    how: str
    on: ExpressionBase


@dataclass(frozen=True, eq=False)
class SelectItem:
    """One named output column of a clause set.

    Attributes:
        name: Output column name.
        expr: Canonical expression over the clause set's source.
        dtype: Inferred type kind.
        origins: ``(table, column)`` pairs the column can still be
            referenced by with a qualified name.
    """

    name: str
    expr: ExpressionBase
    dtype: str | None = None
    origins: frozenset[tuple[str, str]] = frozenset()

    @property
    def is_column(self) -> bool:
        """True for pass-through and renamed columns (substitutable)."""
        return isinstance(self.expr, ColumnExpr)


@dataclass(frozen=True)
class StarItem:
    """All (unknown) columns of an open relation, rendered as ``*`` / ``rel.*``."""

    relation: str


OutputItem = Union[SelectItem, StarItem]
Source = Union[TableSource, SubquerySource, JoinSource]


@dataclass(frozen=True, eq=False)
class ClauseSet:
    """A flat compilation unit renderable as one SELECT statement.

    Attributes:
        source: FROM source.
        scope: Columns visible from ``source``.
        outputs: Ordered select list.
        where: Canonical predicates, AND-ed together.
        group_by: Canonical grouping expressions.
        aggregated: True once an aggregate was folded in.
        order_by: Canonical ordering keys.
        distinct: SELECT DISTINCT.
        limit: Row limit.
        roots: Base table names whose rows this clause set still describes
            one to one (empty after a join); computed outputs may be
            qualified with them.
    """

    source: Source
    scope: Scope
    outputs: tuple[OutputItem, ...]
    where: tuple[ExpressionBase, ...] = ()
    group_by: tuple[ExpressionBase, ...] = ()
    aggregated: bool = False
    order_by: tuple[SortKey, ...] = ()
    distinct: bool = False
    limit: int | None = None
    roots: frozenset[str] = field(default_factory=frozenset)

    @property
    def items(self) -> list[SelectItem]:
        return [o for o in self.outputs if isinstance(o, SelectItem)]

    @property
    def stars(self) -> list[StarItem]:
        return [o for o in self.outputs if isinstance(o, StarItem)]

    @property
    def output_names(self) -> list[str]:
        return [i.name for i in self.items]

    def find_item(self, expr: ExpressionBase) -> SelectItem | None:
        """Return the output whose expression is structurally ``expr``."""
        for item in self.items:
            if same_expression(item.expr, expr):
                return item
        return None


def identity_outputs(scope: Scope) -> tuple[OutputItem, ...]:
    """Select list that passes every column of ``scope`` through unchanged."""
    items: list[OutputItem] = [
        SelectItem(
            name=s.name,
            expr=s.as_column(),
            dtype=s.dtype,
            origins=s.origins | {(s.relation, s.name)},
        )
        for s in scope.slots
    ]
    items.extend(StarItem(r.relation) for r in scope.open_relations)
    return tuple(items)


def is_identity(cs: ClauseSet) -> bool:
    """True when ``cs`` selects exactly its source's columns, unchanged."""
    expected = identity_outputs(cs.scope)
    if len(expected) != len(cs.outputs):
        return False
    for want, have in zip(expected, cs.outputs):
        if isinstance(want, StarItem):
            if not isinstance(have, StarItem) or have.relation != want.relation:
                return False
        elif not isinstance(have, SelectItem) or have.name != want.name:
            return False
        elif not same_expression(have.expr, want.expr):
            return False
    return True


class _NeedsWrap(Exception):
    """Internal signal: an expression references a computed output."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


class SubqueryPlanner:
    """Partitions an operation chain into nested clause sets.

    Args:
        ctx: Static compilation context (compiler and dialect).
        runtime: Per-render state; supplies deterministic subquery aliases.
    """

    def __init__(self, ctx: CompilationContext, runtime: RuntimeContext) -> None:
        self._ctx = ctx
        self._runtime = runtime

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, node: object) -> ClauseSet:
        """Plan ``node`` (a TableRef or operation) into a clause set.

        Raises:
            UnresolvedColumnError: If an expression references an unknown name.
            AmbiguousColumnError: If a name matches several join sides.
            CompilationError: For unknown node types.
        """
        if isinstance(node, TableRef):
            return self._plan_table(node)
        if isinstance(node, ProjectOp):
            return self._plan_project(node)
        if isinstance(node, FilterOp):
            return self._plan_filter(node)
        if isinstance(node, SortOp):
            return self._plan_sort(node)
        if isinstance(node, AggregateOp):
            return self._plan_aggregate(node)
        if isinstance(node, JoinOp):
            return self._plan_join(node)
        if isinstance(node, DistinctOp):
            return self._plan_distinct(node)
        if isinstance(node, LimitOp):
            return self._plan_limit(node)
        raise CompilationError(f"Unknown plan node: {type(node).__name__}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _plan_table(self, table: TableRef) -> ClauseSet:
        scope = Scope.for_table(table)
        return ClauseSet(
            source=TableSource(table),
            scope=scope,
            outputs=identity_outputs(scope),
            roots=frozenset({table.name, table.ref_name}),
        )

    def _plan_filter(self, op: FilterOp) -> ClauseSet:
        cs = self.plan(op.source)
        if cs.aggregated or cs.limit is not None:
            cs = self._wrap(cs, "filter after aggregate or limit")
        try:
            predicate = self._rebase(op.predicate, cs)
        except _NeedsWrap as exc:
            cs = self._wrap(cs, f"filter references computed column '{exc.name}'")
            predicate = self._rebase(op.predicate, cs)
        return replace(cs, where=cs.where + (predicate,))

    def _plan_project(self, op: ProjectOp) -> ClauseSet:
        cs = self.plan(op.source)
        if cs.distinct:
            cs = self._wrap(cs, "projection over DISTINCT")
        try:
            return self._fold_project(op, cs)
        except _NeedsWrap as exc:
            cs = self._wrap(cs, f"projection references computed column '{exc.name}'")
            return self._fold_project(op, cs)

    def _fold_project(self, op: ProjectOp, cs: ClauseSet) -> ClauseSet:
        new_items = [self._project_item(out, cs) for out in op.outputs]
        if not op.keep_existing:
            return replace(cs, outputs=tuple(new_items))

        outputs = list(cs.outputs)
        for item in new_items:
            position = next(
                (i for i, o in enumerate(outputs) if isinstance(o, SelectItem) and o.name == item.name),
                None,
            )
            if position is not None:
                outputs[position] = item
                continue
            if cs.stars and any(c.name == item.name for c in iter_columns(item.expr)):
                raise AmbiguousColumnError(
                    f"Cannot replace column '{item.name}' of a relation with unknown "
                    "columns; declare the table's columns or use a new name.",
                    column=item.name,
                    relations=[s.relation for s in cs.stars],
                )
            outputs.append(item)
        return replace(cs, outputs=tuple(outputs))

    def _project_item(self, out: NamedExpr, cs: ClauseSet) -> SelectItem:
        if isinstance(out.expr, ColumnExpr):
            # A bare reference copies the referenced output, computed or not.
            target = self._lookup(cs, out.expr)
            if isinstance(target, SelectItem):
                return SelectItem(out.name, target.expr, target.dtype, target.origins)
            return SelectItem(out.name, target, target.dtype, self._star_origins(cs, target))
        expr = self._rebase(out.expr, cs)
        return SelectItem(out.name, expr, infer_kind(expr), self._computed_origins(cs, out.name))

    def _plan_aggregate(self, op: AggregateOp) -> ClauseSet:
        cs = self.plan(op.source)
        if cs.aggregated or cs.distinct or cs.limit is not None:
            cs = self._wrap(cs, "aggregate over aggregate, distinct or limit")
        try:
            return self._fold_aggregate(op, cs)
        except _NeedsWrap as exc:
            cs = self._wrap(cs, f"aggregate references computed column '{exc.name}'")
            return self._fold_aggregate(op, cs)

    def _fold_aggregate(self, op: AggregateOp, cs: ClauseSet) -> ClauseSet:
        keys: list[SelectItem] = []
        for key in op.group_keys:
            expr = self._rebase(key.expr, cs)
            origins = self._computed_origins(cs, key.name)
            if isinstance(key.expr, ColumnExpr):
                target = self._lookup(cs, key.expr)
                if isinstance(target, SelectItem):
                    origins = target.origins | origins
                else:
                    origins = self._star_origins(cs, target) | origins
            keys.append(SelectItem(key.name, expr, infer_kind(expr), origins))
        aggregates: list[SelectItem] = []
        for agg in op.aggregates:
            expr = self._rebase(agg.expr, cs)
            aggregates.append(
                SelectItem(agg.name, expr, infer_kind(expr), self._computed_origins(cs, agg.name))
            )
        if cs.order_by:
            logger.debug("Dropping ordering before aggregate")
        return replace(
            cs,
            outputs=tuple(keys + aggregates),
            group_by=tuple(k.expr for k in keys),
            aggregated=True,
            order_by=(),
        )

    def _plan_sort(self, op: SortOp) -> ClauseSet:
        cs = self.plan(op.source)
        if cs.limit is not None:
            cs = self._wrap(cs, "sort after limit")
        keys = self._sort_keys(op, cs)
        if cs.distinct and any(cs.find_item(k.expr) is None for k in keys):
            cs = self._wrap(cs, "DISTINCT ordering by an unselected expression")
            keys = self._sort_keys(op, cs)
        return replace(cs, order_by=keys)

    def _sort_keys(self, op: SortOp, cs: ClauseSet) -> tuple[SortKey, ...]:
        return tuple(
            SortKey(expr=self._rebase(k.expr, cs, allow_computed=True), direction=k.direction)
            for k in op.keys
        )

    def _plan_distinct(self, op: DistinctOp) -> ClauseSet:
        cs = self.plan(op.source)
        if cs.distinct:
            return cs
        if cs.limit is not None:
            cs = self._wrap(cs, "distinct after limit")
        kept = tuple(k for k in cs.order_by if cs.find_item(k.expr) is not None)
        if len(kept) < len(cs.order_by):
            logger.warning(
                "Dropping %d ordering key(s) not in the DISTINCT select list",
                len(cs.order_by) - len(kept),
            )
        return replace(cs, distinct=True, order_by=kept)

    def _plan_limit(self, op: LimitOp) -> ClauseSet:
        cs = self.plan(op.source)
        limit = op.n if cs.limit is None else min(cs.limit, op.n)
        return replace(cs, limit=limit)

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def _plan_join(self, op: JoinOp) -> ClauseSet:
        left, left_scope = self._materialize(self.plan(op.left))
        right, right_scope = self._materialize(self.plan(op.right))

        if left.relation == right.relation:
            raise AmbiguousColumnError(
                f"Both sides of the join are named '{left.relation}'; "
                "give one side an alias (table(..., alias=...)).",
                relations=[left.relation],
            )
        if right_scope.is_open:
            raise AmbiguousColumnError(
                f"The columns of join input '{right.relation}' are unknown, so "
                "collisions with the left side cannot be resolved; declare them.",
                relations=[right.relation],
            )

        scope = left_scope.merge(right_scope)
        if op.on is not None:
            on = replace_columns(op.on, scope.resolve)
        else:
            on = self._by_predicate(op.by, left_scope, right_scope)

        outputs = self._join_outputs(op, left_scope, right_scope, on)
        return ClauseSet(
            source=JoinSource(left=left, right=right, how=op.how, on=on),
            scope=scope,
            outputs=outputs,
        )

    def _materialize(self, cs: ClauseSet) -> tuple[Union[TableSource, SubquerySource], Scope]:
        if isinstance(cs.source, TableSource) and is_identity(cs) and not (
            cs.where or cs.aggregated or cs.distinct or cs.limit is not None
        ):
            return cs.source, cs.scope
        alias = self._runtime.next_alias()
        logger.debug("Materializing join input as %s", alias)
        inner = cs if cs.limit is not None else replace(cs, order_by=())
        return SubquerySource(inner, alias), self._output_scope(cs, alias)

    @staticmethod
    def _by_predicate(by: tuple[str, ...], left: Scope, right: Scope) -> ExpressionBase:
        predicate: ExpressionBase | None = None
        for key in by:
            eq = BinaryExpr(
                op="=",
                left=left.resolve(ColumnExpr(name=key)),
                right=right.resolve(ColumnExpr(name=key)),
            )
            predicate = eq if predicate is None else BinaryExpr(op="AND", left=predicate, right=eq)
        if predicate is None:
            raise CompilationError("Join needs at least one key.", clause="JOIN")
        return predicate

    def _join_outputs(
        self,
        op: JoinOp,
        left: Scope,
        right: Scope,
        on: ExpressionBase,
    ) -> tuple[OutputItem, ...]:
        left_suffix, right_suffix = op.suffixes
        by = set(op.by)
        left_names = {s.name for s in left.slots}
        right_names = {s.name for s in right.slots}

        # (slot, suffix applied on collision); an open left side is emitted
        # as ``left.*``, which already covers its known columns.  Its other
        # names are unknown, so every non-key right column is suffixed.
        planned: list[tuple[ColumnSlot, str | None]] = []
        if left.is_open:
            if by and op.how in ("right", "full"):
                raise AmbiguousColumnError(
                    f"A {op.how} join with by= needs the left side's columns to be known.",
                    relations=list(left.relations),
                )
            left_relations = {r.relation for r in left.open_relations}
            left_names |= by
            left_names |= {c.name for c in iter_columns(on) if c.qualifier in left_relations}
        else:
            for slot in left.slots:
                collides = slot.name in right_names and slot.name not in by
                planned.append((slot, left_suffix if collides else None))
        left_count = len(planned)
        for slot in right.slots:
            if slot.name in by:
                continue
            collides = left.is_open or slot.name in left_names
            planned.append((slot, right_suffix if collides else None))

        taken = {slot.name for slot, suffix in planned if suffix is None}
        if left.is_open:
            taken |= left_names
        names: list[str] = []
        for slot, suffix in planned:
            name = slot.name
            if suffix is not None:
                name += suffix
                while name in taken:
                    name += suffix
                taken.add(name)
            names.append(name)

        outputs: list[OutputItem] = [StarItem(r.relation) for r in left.open_relations]
        for index, ((slot, _), name) in enumerate(zip(planned, names)):
            if index < left_count and slot.name in by:
                outputs.append(self._join_key_item(slot, right, op.how))
                continue
            outputs.append(
                SelectItem(name, slot.as_column(), slot.dtype, slot.origins | {(slot.relation, slot.name)})
            )
        return tuple(outputs)

    @staticmethod
    def _join_key_item(left_slot: ColumnSlot, right: Scope, how: str) -> SelectItem:
        right_col = right.resolve(ColumnExpr(name=left_slot.name))
        right_slot = next(s for s in right.slots if s.name == left_slot.name)
        origins = (
            left_slot.origins
            | right_slot.origins
            | {(left_slot.relation, left_slot.name), (right_slot.relation, right_slot.name)}
        )
        if how == "right":
            expr: ExpressionBase = right_col
        elif how == "full":
            expr = FuncExpr(name="coalesce", args=(left_slot.as_column(), right_col))
        else:
            expr = left_slot.as_column()
        return SelectItem(left_slot.name, expr, infer_kind(expr), origins)

    # ------------------------------------------------------------------
    # Wrapping
    # ------------------------------------------------------------------

    def _wrap(self, cs: ClauseSet, reason: str) -> ClauseSet:
        """Close ``cs`` as a subquery and return a fresh clause set over it.

        Ordering keys the inner select list does not expose are added to it
        under generated names and left out of the outer select list.
        """
        alias = self._runtime.next_alias()
        logger.debug("Wrapping clause set as %s: %s", alias, reason)
        cs, hidden = self._expose_ordering(cs, alias)
        scope = self._output_scope(cs, alias)
        order_by = self._hoist_ordering(cs, alias)
        inner = cs if cs.limit is not None else replace(cs, order_by=())
        outputs = tuple(
            o for o in identity_outputs(scope) if not (isinstance(o, SelectItem) and o.name in hidden)
        )
        return ClauseSet(
            source=SubquerySource(inner, alias),
            scope=scope,
            outputs=outputs,
            order_by=order_by,
            roots=cs.roots,
        )

    def _expose_ordering(self, cs: ClauseSet, alias: str) -> tuple[ClauseSet, frozenset[str]]:
        """Add unexposed ordering keys of ``cs`` to its select list.

        Not possible under DISTINCT (an extra column changes the rows) or
        when a star passes an open relation through (the column would leak
        into ``alias.*``); :meth:`_hoist_ordering` drops such keys.
        """
        if cs.distinct or cs.stars:
            return cs, frozenset()
        taken = set(cs.output_names)
        extra: list[SelectItem] = []
        for key in cs.order_by:
            if self._hoistable(cs, key.expr, alias):
                continue
            name = f"{alias}_order{len(extra) + 1}"
            while name in taken:
                name += "_"
            taken.add(name)
            extra.append(SelectItem(name, key.expr, infer_kind(key.expr)))
        if not extra:
            return cs, frozenset()
        logger.debug("Exposing %d ordering key(s) through subquery %s", len(extra), alias)
        return replace(cs, outputs=cs.outputs + tuple(extra)), frozenset(i.name for i in extra)

    def _hoistable(self, cs: ClauseSet, expr: ExpressionBase, alias: str) -> bool:
        if cs.find_item(expr) is not None:
            return True
        if contains_aggregate(expr):
            return False
        try:
            replace_columns(expr, lambda c: self._exposed(cs, c, alias))
        except _NeedsWrap:
            return False
        return True

    @staticmethod
    def _output_scope(cs: ClauseSet, alias: str) -> Scope:
        slots = tuple(
            ColumnSlot(name=i.name, relation=alias, dtype=i.dtype, origins=i.origins)
            for i in cs.items
        )
        if not cs.stars:
            return Scope(slots=slots)
        origins: set[str] = set(cs.roots)
        for star in cs.stars:
            origins.add(star.relation)
            for rel in cs.scope.open_relations:
                if rel.relation == star.relation:
                    origins |= rel.origins
        return Scope(slots=slots, open_relations=(OpenRelation(alias, frozenset(origins)),))

    def _hoist_ordering(self, cs: ClauseSet, alias: str) -> tuple[SortKey, ...]:
        hoisted: list[SortKey] = []
        for key in cs.order_by:
            item = cs.find_item(key.expr)
            if item is not None:
                expr: ExpressionBase = ColumnExpr(name=item.name, qualifier=alias, dtype=item.dtype)
            elif self._hoistable(cs, key.expr, alias):
                expr = replace_columns(key.expr, lambda c: self._exposed(cs, c, alias))
            else:
                # DISTINCT or an open relation prevents exposing the key.
                logger.warning(
                    "Dropping ordering key that is not exposed by subquery %s", alias
                )
                continue
            hoisted.append(SortKey(expr=expr, direction=key.direction))
        return tuple(hoisted)

    @staticmethod
    def _exposed(cs: ClauseSet, col: ColumnExpr, alias: str) -> ColumnExpr:
        for item in cs.items:
            if same_expression(item.expr, col):
                return ColumnExpr(name=item.name, qualifier=alias, dtype=item.dtype)
        if any(s.relation == col.qualifier for s in cs.stars) and col.name not in cs.output_names:
            return ColumnExpr(name=col.name, qualifier=alias, dtype=col.dtype)
        raise _NeedsWrap(col.name)

    # ------------------------------------------------------------------
    # Name resolution against the outputs built so far
    # ------------------------------------------------------------------

    def _rebase(self, expr: ExpressionBase, cs: ClauseSet, allow_computed: bool = False) -> ExpressionBase:
        """Rewrite a user expression over ``cs``'s outputs into canonical form.

        Raises:
            _NeedsWrap: If a computed output is referenced and
                ``allow_computed`` is false.
        """

        def substitute(col: ColumnExpr) -> ExpressionBase:
            target = self._lookup(cs, col)
            if isinstance(target, ColumnExpr):
                return target
            if target.is_column or allow_computed:
                return target.expr
            raise _NeedsWrap(target.name)

        return replace_columns(expr, substitute)

    def _lookup(self, cs: ClauseSet, col: ColumnExpr) -> SelectItem | ColumnExpr:
        """Find the output a user reference denotes.

        Returns:
            The matching :class:`SelectItem`, or a canonical column of an
            open relation passed through by a :class:`StarItem`.
        """
        if col.qualifier is None:
            for item in cs.items:
                if item.name == col.name:
                    return item
            candidates = cs.stars
        else:
            matches = [i for i in cs.items if (col.qualifier, col.name) in i.origins]
            if len(matches) == 1:
                return matches[0]
            if len(matches) > 1:
                raise AmbiguousColumnError(
                    f"Column '{col.qualifier}.{col.name}' is exposed as "
                    f"{[m.name for m in matches]}; reference one of those names.",
                    column=f"{col.qualifier}.{col.name}",
                )
            candidates = [
                s
                for s in cs.stars
                for rel in cs.scope.open_relations
                if rel.relation == s.relation and rel.matches(col.qualifier)
            ]
            if not candidates and col.qualifier in cs.roots:
                candidates = cs.stars

        if len(candidates) == 1:
            return ColumnExpr(name=col.name, qualifier=candidates[0].relation, dtype=col.dtype)
        if len(candidates) > 1:
            relations = [s.relation for s in candidates]
            raise AmbiguousColumnError(
                f"Column '{col.name}' may come from any of {relations}; qualify it.",
                column=col.name,
                relations=relations,
            )
        raise UnresolvedColumnError(
            str(col.reference), cs.output_names, open_scope=bool(cs.stars)
        )

    # ------------------------------------------------------------------
    # Lineage helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _computed_origins(cs: ClauseSet, name: str) -> frozenset[tuple[str, str]]:
        return frozenset((root, name) for root in cs.roots)

    @staticmethod
    def _star_origins(cs: ClauseSet, col: ColumnExpr) -> frozenset[tuple[str, str]]:
        origins = {(col.qualifier, col.name)}
        for rel in cs.scope.open_relations:
            if rel.relation == col.qualifier:
                origins |= {(o, col.name) for o in rel.origins}
        return frozenset(origins)
