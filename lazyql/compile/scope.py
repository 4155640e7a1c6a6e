"""Column scopes: which names an expression may reference.

A :class:`Scope` describes the columns visible from one clause set's
source.  Every visible column is a :class:`ColumnSlot` owned by exactly one
*relation* (a table name/alias or a generated subquery alias).  Relations
whose columns are unknown are recorded as :class:`OpenRelation` and accept
any name.

Slots remember their *origins* (``(table, column)`` pairs they were derived
from), so a reference such as ``flights.tailnum`` still resolves after the
``flights`` table has been wrapped in a subquery or renamed by a join.
"""
from __future__ import annotations

from dataclasses import dataclass

from lazyql.errors import AmbiguousColumnError, UnresolvedColumnError
from lazyql.schema.expressions import ColumnExpr
from lazyql.schema.table import TableRef


@dataclass(frozen=True)
class ColumnSlot:
    """A column visible in a scope.

    Attributes:
        name: The column's name in this scope.
        relation: The relation that exposes it.
        dtype: Type kind, or ``None`` when unknown.
        origins: ``(table, column)`` pairs this column derives from.
    """

    name: str
    relation: str
    dtype: str | None = None
    origins: frozenset[tuple[str, str]] = frozenset()

    def as_column(self) -> ColumnExpr:
        """Return the canonical (relation-qualified) reference to this slot."""
        return ColumnExpr(name=self.name, qualifier=self.relation, dtype=self.dtype)


@dataclass(frozen=True)
class OpenRelation:
    """A relation whose columns are unknown.

    Attributes:
        relation: Relation name used for qualification.
        origins: Table names whose columns flow through it unchanged.
    """

    relation: str
    origins: frozenset[str] = frozenset()

    def matches(self, qualifier: str) -> bool:
        return qualifier == self.relation or qualifier in self.origins


@dataclass(frozen=True)
class Scope:
    """The set of columns visible from a clause set's source."""

    slots: tuple[ColumnSlot, ...] = ()
    open_relations: tuple[OpenRelation, ...] = ()

    @classmethod
    def for_table(cls, table: TableRef) -> Scope:
        """Build the scope exposed by a base table."""
        relation = table.ref_name
        if table.columns is None:
            return cls(open_relations=(OpenRelation(relation, frozenset({table.name})),))
        slots = tuple(
            ColumnSlot(
                name=c.name,
                relation=relation,
                dtype=c.kind,
                origins=frozenset({(relation, c.name), (table.name, c.name)}),
            )
            for c in table.columns
        )
        return cls(slots=slots)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def relations(self) -> tuple[str, ...]:
        """Relation names in order of first appearance."""
        seen: list[str] = []
        for slot in self.slots:
            if slot.relation not in seen:
                seen.append(slot.relation)
        for rel in self.open_relations:
            if rel.relation not in seen:
                seen.append(rel.relation)
        return tuple(seen)

    @property
    def is_open(self) -> bool:
        return bool(self.open_relations)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.slots]

    def is_ambiguous(self, name: str) -> bool:
        """True when ``name`` is exposed by more than one relation."""
        return len({s.relation for s in self.slots if s.name == name}) > 1

    def needs_qualifier(self, column: ColumnExpr) -> bool:
        """True when a bare ``column.name`` could bind to another relation."""
        if len(self.relations) < 2:
            return False
        return self.is_open or self.is_ambiguous(column.name)

    def merge(self, other: Scope) -> Scope:
        """Combine two scopes side by side (the inputs of a join)."""
        return Scope(
            slots=self.slots + other.slots,
            open_relations=self.open_relations + other.open_relations,
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, column: ColumnExpr) -> ColumnExpr:
        """Resolve a user reference to its canonical, relation-qualified form.

        Args:
            column: A possibly qualified column reference.

        Returns:
            A :class:`ColumnExpr` qualified with the owning relation.

        Raises:
            UnresolvedColumnError: If no relation exposes the name.
            AmbiguousColumnError: If several relations expose it.
        """
        if column.qualifier is not None:
            return self._resolve_qualified(column)

        matches = [s for s in self.slots if s.name == column.name]
        if len(matches) == 1:
            return self._canonical(matches[0], column)
        if len(matches) > 1:
            raise AmbiguousColumnError(
                f"Column '{column.name}' is ambiguous; qualify it with one of "
                f"{[s.relation for s in matches]}.",
                column=column.name,
                relations=[s.relation for s in matches],
            )
        if len(self.open_relations) == 1:
            return ColumnExpr(
                name=column.name,
                qualifier=self.open_relations[0].relation,
                dtype=column.dtype,
            )
        if self.open_relations:
            relations = [r.relation for r in self.open_relations]
            raise AmbiguousColumnError(
                f"Column '{column.name}' may come from any of {relations}; qualify it.",
                column=column.name,
                relations=relations,
            )
        raise UnresolvedColumnError(column.name, self.names)

    def _resolve_qualified(self, column: ColumnExpr) -> ColumnExpr:
        qualifier = column.qualifier
        direct = [s for s in self.slots if s.relation == qualifier and s.name == column.name]
        if direct:
            return self._canonical(direct[0], column)

        derived = [s for s in self.slots if (qualifier, column.name) in s.origins]
        if len(derived) == 1:
            return self._canonical(derived[0], column)
        if len(derived) > 1:
            raise AmbiguousColumnError(
                f"Column '{qualifier}.{column.name}' is exposed as "
                f"{[s.name for s in derived]}; reference one of those names instead.",
                column=f"{qualifier}.{column.name}",
                relations=sorted({s.relation for s in derived}),
            )

        opens = [r for r in self.open_relations if r.matches(qualifier)]
        if len(opens) == 1:
            return ColumnExpr(name=column.name, qualifier=opens[0].relation, dtype=column.dtype)
        raise UnresolvedColumnError(
            f"{qualifier}.{column.name}",
            [f"{s.relation}.{s.name}" for s in self.slots],
            open_scope=self.is_open,
        )

    @staticmethod
    def _canonical(slot: ColumnSlot, column: ColumnExpr) -> ColumnExpr:
        return ColumnExpr(name=slot.name, qualifier=slot.relation, dtype=slot.dtype or column.dtype)
