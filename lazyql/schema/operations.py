"""Pydantic models for relational operation nodes.

Each node records one transformation step and owns a reference to its
predecessor (two for joins), forming an immutable chain that ends at a
:class:`~lazyql.schema.table.TableRef`.  Nodes are frozen: builders create
new nodes that point at existing ones, so any number of plans can share a
common prefix.
"""
from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lazyql.schema.expressions import Expression, SortKey
from lazyql.schema.table import TableRef

_FROZEN = ConfigDict(extra="forbid", frozen=True)


def _check_unique(items: tuple[NamedExpr, ...]) -> tuple[NamedExpr, ...]:
    seen: set[str] = set()
    for item in items:
        if item.name in seen:
            raise ValueError(f"Duplicate output name {item.name!r}")
        seen.add(item.name)
    return items


class NamedExpr(BaseModel):
    """An output column: a name bound to an expression."""

    model_config = _FROZEN

    name: str = Field(min_length=1)
    expr: Expression


class ProjectOp(BaseModel):
    """Column selection, renaming and derivation.

    Attributes:
        source: Predecessor node.
        outputs: Ordered output columns.
        keep_existing: Keep every existing column and add / replace
            ``outputs`` (derive), instead of replacing the column set.
    """

    model_config = _FROZEN

    kind: Literal["project"] = "project"
    source: Node
    outputs: tuple[NamedExpr, ...] = Field(min_length=1)
    keep_existing: bool = False

    @field_validator("outputs")
    @classmethod
    def _unique_outputs(cls, v: tuple[NamedExpr, ...]) -> tuple[NamedExpr, ...]:
        return _check_unique(v)


class FilterOp(BaseModel):
    """Row filtering by a boolean predicate."""

    model_config = _FROZEN

    kind: Literal["filter"] = "filter"
    source: Node
    predicate: Expression


class SortOp(BaseModel):
    """Row ordering; replaces any earlier ordering."""

    model_config = _FROZEN

    kind: Literal["sort"] = "sort"
    source: Node
    keys: tuple[SortKey, ...] = Field(min_length=1)


class AggregateOp(BaseModel):
    """Grouping and aggregation.

    Attributes:
        source: Predecessor node.
        group_keys: Named grouping expressions (empty for a global aggregate).
        aggregates: Named aggregate expressions.
    """

    model_config = _FROZEN

    kind: Literal["aggregate"] = "aggregate"
    source: Node
    group_keys: tuple[NamedExpr, ...] = ()
    aggregates: tuple[NamedExpr, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_names(self) -> AggregateOp:
        _check_unique(self.group_keys + self.aggregates)
        return self


class JoinOp(BaseModel):
    """A join of two plans.

    Exactly one of ``on`` (an arbitrary predicate) or ``by`` (same-named
    equi-join keys) is set.

    Attributes:
        left: Left input.
        right: Right input.
        how: ``inner``, ``left``, ``right`` or ``full``.
        on: Join predicate.
        by: Equi-join key names present on both sides.
        suffixes: Suffixes appended to colliding left / right column names.
    """

    model_config = _FROZEN

    kind: Literal["join"] = "join"
    left: Node
    right: Node
    how: Literal["inner", "left", "right", "full"] = "inner"
    on: Expression | None = None
    by: tuple[str, ...] = ()
    suffixes: tuple[str, str] = ("_x", "_y")

    @model_validator(mode="after")
    def _on_or_by(self) -> JoinOp:
        if (self.on is None) == (not self.by):
            raise ValueError("Join requires exactly one of 'on' or 'by'")
        if self.suffixes[0] == self.suffixes[1]:
            raise ValueError("Join suffixes must differ")
        return self


class DistinctOp(BaseModel):
    """Duplicate-row elimination."""

    model_config = _FROZEN

    kind: Literal["distinct"] = "distinct"
    source: Node


class LimitOp(BaseModel):
    """Keep at most ``n`` rows."""

    model_config = _FROZEN

    kind: Literal["limit"] = "limit"
    source: Node
    n: int = Field(ge=0)


Node = Annotated[
    Union[TableRef, ProjectOp, FilterOp, SortOp, AggregateOp, JoinOp, DistinctOp, LimitOp],
    Field(discriminator="kind"),
]

OPERATION_TYPES: tuple[type[BaseModel], ...] = (
    ProjectOp,
    FilterOp,
    SortOp,
    AggregateOp,
    JoinOp,
    DistinctOp,
    LimitOp,
)

# Resolve forward references in recursive types.
ProjectOp.model_rebuild()
FilterOp.model_rebuild()
SortOp.model_rebuild()
AggregateOp.model_rebuild()
JoinOp.model_rebuild()
DistinctOp.model_rebuild()
LimitOp.model_rebuild()


def iter_tables(node: BaseModel) -> Iterator[TableRef]:
    """Yield every base table reachable from ``node``, left to right."""
    if isinstance(node, TableRef):
        yield node
    elif isinstance(node, JoinOp):
        yield from iter_tables(node.left)
        yield from iter_tables(node.right)
    elif isinstance(node, OPERATION_TYPES):
        yield from iter_tables(node.source)  # type: ignore[attr-defined]
    else:
        raise TypeError(f"Unknown plan node: {type(node).__name__}")
