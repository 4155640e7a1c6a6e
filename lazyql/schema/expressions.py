"""Typed expression models for lazyql plans.

Expressions form a closed tagged union (``kind`` discriminator) of frozen
pydantic models.  Python operators build new nodes, so plans read naturally::

    from lazyql.functions import col

    pred = (col("dest") == "IAH") | (col("dest") == "HOU")
    assert isinstance(pred, BinaryExpr)
    assert pred.op == "OR"

Because ``==`` builds a node instead of comparing, expressions must never be
compared with ``==`` or truth-tested; use :func:`same_expression` for
structural equality.  Raw JSON-style dicts are accepted wherever an
expression is expected and are parsed through :data:`EXPRESSION_ADAPTER`::

    to_expression({"kind": "column", "name": "price"})
"""

from __future__ import annotations

import datetime
import decimal
from collections.abc import Callable, Iterator, Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from lazyql.schema.column_reference import ColumnReference
from lazyql.schema.operators import (
    AGGREGATE_FUNCTIONS,
    BINARY_OPS,
    TYPE_KINDS,
    UNARY_OPS,
    SortDirection,
)

_FROZEN = ConfigDict(extra="forbid", frozen=True)

#: Python types that may appear in a ``LiteralExpr``.
LITERAL_TYPES: tuple[type, ...] = (
    bool,
    int,
    float,
    str,
    decimal.Decimal,
    datetime.date,
    datetime.datetime,
    datetime.time,
)


# ---------------------------------------------------------------------------
# Operator-overloading base
# ---------------------------------------------------------------------------


class ExpressionBase(BaseModel):
    """Shared base for every expression node.

    Provides the Python-operator DSL.  Nodes are immutable; every operator
    returns a new node referencing its operands.
    """

    model_config = _FROZEN

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    def __bool__(self) -> bool:
        raise TypeError(
            "Truth value of an expression is undefined; combine predicates "
            "with '&', '|' and '~' instead of 'and', 'or' and 'not'."
        )

    def fingerprint(self) -> str:
        """Return a canonical string identifying this expression's structure."""
        return self.model_dump_json()

    # -- comparison ---------------------------------------------------------

    def __eq__(self, other: Any) -> BinaryExpr:  # type: ignore[override]
        return BinaryExpr(op="=", left=self, right=to_operand(other))

    def __ne__(self, other: Any) -> BinaryExpr:  # type: ignore[override]
        return BinaryExpr(op="<>", left=self, right=to_operand(other))

    def __lt__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="<", left=self, right=to_operand(other))

    def __le__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="<=", left=self, right=to_operand(other))

    def __gt__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op=">", left=self, right=to_operand(other))

    def __ge__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op=">=", left=self, right=to_operand(other))

    # -- arithmetic ---------------------------------------------------------

    def __add__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="+", left=self, right=to_operand(other))

    def __radd__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="+", left=to_operand(other), right=self)

    def __sub__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="-", left=self, right=to_operand(other))

    def __rsub__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="-", left=to_operand(other), right=self)

    def __mul__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="*", left=self, right=to_operand(other))

    def __rmul__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="*", left=to_operand(other), right=self)

    def __truediv__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="/", left=self, right=to_operand(other))

    def __rtruediv__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="/", left=to_operand(other), right=self)

    def __mod__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="%", left=self, right=to_operand(other))

    def __rmod__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="%", left=to_operand(other), right=self)

    def __neg__(self) -> UnaryExpr:
        return UnaryExpr(op="-", operand=self)

    # -- logic --------------------------------------------------------------

    def __and__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="AND", left=self, right=to_operand(other))

    def __rand__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="AND", left=to_operand(other), right=self)

    def __or__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="OR", left=self, right=to_operand(other))

    def __ror__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(op="OR", left=to_operand(other), right=self)

    def __invert__(self) -> UnaryExpr:
        return UnaryExpr(op="NOT", operand=self)

    # -- named predicates and helpers --------------------------------------

    def is_null(self) -> UnaryExpr:
        return UnaryExpr(op="IS NULL", operand=self)

    def not_null(self) -> UnaryExpr:
        return UnaryExpr(op="IS NOT NULL", operand=self)

    def is_in(self, values: Sequence[Any]) -> FuncExpr:
        """Membership test; ``None`` among ``values`` matches NULL rows."""
        return FuncExpr(name="in", args=(self, *(to_operand(v) for v in values)))

    def between(self, low: Any, high: Any) -> FuncExpr:
        return FuncExpr(name="between", args=(self, to_operand(low), to_operand(high)))

    def like(self, pattern: str) -> BinaryExpr:
        return BinaryExpr(op="LIKE", left=self, right=to_operand(pattern))

    def cast(self, kind: str) -> FuncExpr:
        """Cast to one of ``integer``, ``float``, ``string``."""
        return FuncExpr(name=f"as_{kind}", args=(self,))

    def lower(self) -> FuncExpr:
        return FuncExpr(name="lower", args=(self,))

    def upper(self) -> FuncExpr:
        return FuncExpr(name="upper", args=(self,))

    def length(self) -> FuncExpr:
        return FuncExpr(name="length", args=(self,))

    def abs(self) -> FuncExpr:
        return FuncExpr(name="abs", args=(self,))

    def round(self, digits: int = 0) -> FuncExpr:
        return FuncExpr(name="round", args=(self, LiteralExpr(value=digits)))

    def asc(self) -> SortKey:
        return SortKey(expr=self, direction=SortDirection.ASC.value)

    def desc(self) -> SortKey:
        return SortKey(expr=self, direction=SortDirection.DESC.value)


# ---------------------------------------------------------------------------
# Concrete expression types
# ---------------------------------------------------------------------------


class ColumnExpr(ExpressionBase):
    """A column reference, optionally qualified by a table name or alias.

    Attributes:
        name: Column name.
        qualifier: Table name / alias for qualified references, or ``None``.
        dtype: Optional declared type kind (``integer``, ``float``, ...),
            used when the source table's columns are unknown.
    """

    kind: Literal["column"] = "column"
    name: str
    qualifier: str | None = None
    dtype: str | None = None

    @field_validator("dtype")
    @classmethod
    def _known_dtype(cls, v: str | None) -> str | None:
        if v is not None and v not in TYPE_KINDS:
            raise ValueError(f"dtype must be one of {sorted(TYPE_KINDS)}, got {v!r}")
        return v

    @classmethod
    def parse(cls, ref: str, dtype: str | None = None) -> ColumnExpr:
        """Build a column from a ``"table.column"`` or bare ``"column"`` string."""
        parsed = ColumnReference.parse(ref)
        return cls(name=parsed.column, qualifier=parsed.table, dtype=dtype)

    @property
    def reference(self) -> ColumnReference:
        return ColumnReference(table=self.qualifier, column=self.name)


class LiteralExpr(ExpressionBase):
    """A literal value: number, string, boolean, date/time or ``None``."""

    kind: Literal["literal"] = "literal"
    value: Any = None

    @field_validator("value")
    @classmethod
    def _supported_value(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, LITERAL_TYPES):
            raise ValueError(f"Unsupported literal type: {type(v).__name__}")
        return v


class UnaryExpr(ExpressionBase):
    """A unary operator applied to one operand (``-x``, ``NOT p``, ``x IS NULL``)."""

    kind: Literal["unary"] = "unary"
    op: str
    operand: Expression

    @field_validator("op")
    @classmethod
    def _known_op(cls, v: str) -> str:
        if v not in UNARY_OPS:
            raise ValueError(f"Unknown unary operator {v!r}")
        return v


class BinaryExpr(ExpressionBase):
    """A binary operator: arithmetic, comparison, LIKE, AND / OR."""

    kind: Literal["binary"] = "binary"
    op: str
    left: Expression
    right: Expression

    @field_validator("op")
    @classmethod
    def _known_op(cls, v: str) -> str:
        if v not in BINARY_OPS:
            raise ValueError(f"Unknown binary operator {v!r}")
        return v


class FuncExpr(ExpressionBase):
    """A scalar function call, translated through the dialect's function map."""

    kind: Literal["function"] = "function"
    name: str
    args: tuple[Expression, ...] = ()

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, v: str) -> str:
        return v.lower()


class CaseBranch(BaseModel):
    """A single ``WHEN <when> THEN <then>`` branch."""

    model_config = _FROZEN

    when: Expression
    then: Expression


class CaseExpr(ExpressionBase):
    """A searched CASE expression."""

    kind: Literal["case"] = "case"
    branches: tuple[CaseBranch, ...] = Field(min_length=1)
    default: Expression | None = None


class AggregateExpr(ExpressionBase):
    """An aggregate function over one argument (``None`` only for ``count``)."""

    kind: Literal["aggregate"] = "aggregate"
    fn: str
    arg: Expression | None = None
    distinct: bool = False

    @field_validator("fn")
    @classmethod
    def _known_fn(cls, v: str) -> str:
        v = v.lower()
        if v not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"Unknown aggregate {v!r}; expected one of {sorted(AGGREGATE_FUNCTIONS)}")
        return v

    @model_validator(mode="after")
    def _arg_required(self) -> AggregateExpr:
        if self.arg is None and (self.fn != "count" or self.distinct):
            raise ValueError(f"Aggregate {self.fn!r} requires an argument")
        return self


class ParamExpr(ExpressionBase):
    """A named runtime parameter bound at execution time."""

    kind: Literal["param"] = "param"
    name: str


class SortKey(BaseModel):
    """An ORDER BY key: an expression plus a direction."""

    model_config = _FROZEN

    expr: Expression
    direction: Literal["ASC", "DESC"] = "ASC"


# ---------------------------------------------------------------------------
# Discriminated union
# ---------------------------------------------------------------------------

Expression = Annotated[
    Union[
        ColumnExpr,
        LiteralExpr,
        UnaryExpr,
        BinaryExpr,
        FuncExpr,
        CaseExpr,
        AggregateExpr,
        ParamExpr,
    ],
    Field(discriminator="kind"),
]

# Resolve forward references in recursive types.
UnaryExpr.model_rebuild()
BinaryExpr.model_rebuild()
FuncExpr.model_rebuild()
CaseBranch.model_rebuild()
CaseExpr.model_rebuild()
AggregateExpr.model_rebuild()
SortKey.model_rebuild()

#: Parse a raw dict into a typed Expression at any call site.
EXPRESSION_ADAPTER: TypeAdapter[Expression] = TypeAdapter(Expression)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def to_operand(value: Any) -> ExpressionBase:
    """Coerce an operator operand: expressions pass through, anything else is a literal.

    Strings become *string literals* here (``col("dest") == "IAH"``).
    """
    if isinstance(value, ExpressionBase):
        return value
    if isinstance(value, dict):
        return EXPRESSION_ADAPTER.validate_python(value)
    return LiteralExpr(value=value)


def to_expression(value: Any) -> ExpressionBase:
    """Coerce a builder argument: strings are *column names*.

    Args:
        value: An expression, a ``"table.column"`` / ``"column"`` string,
            a raw expression dict, or a literal value.

    Returns:
        A typed expression node.
    """
    if isinstance(value, str):
        return ColumnExpr.parse(value)
    return to_operand(value)


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def children(expr: ExpressionBase) -> tuple[ExpressionBase, ...]:
    """Return the direct sub-expressions of ``expr`` in evaluation order."""
    if isinstance(expr, (ColumnExpr, LiteralExpr, ParamExpr)):
        return ()
    if isinstance(expr, UnaryExpr):
        return (expr.operand,)
    if isinstance(expr, BinaryExpr):
        return (expr.left, expr.right)
    if isinstance(expr, FuncExpr):
        return expr.args
    if isinstance(expr, CaseExpr):
        nodes: list[ExpressionBase] = []
        for branch in expr.branches:
            nodes.extend((branch.when, branch.then))
        if expr.default is not None:
            nodes.append(expr.default)
        return tuple(nodes)
    if isinstance(expr, AggregateExpr):
        return (expr.arg,) if expr.arg is not None else ()
    raise TypeError(f"Unknown expression type: {type(expr).__name__}")


def walk(expr: ExpressionBase) -> Iterator[ExpressionBase]:
    """Yield ``expr`` and all of its descendants, depth first."""
    yield expr
    for child in children(expr):
        yield from walk(child)


def iter_columns(expr: ExpressionBase) -> Iterator[ColumnExpr]:
    """Yield every column reference inside ``expr``."""
    for node in walk(expr):
        if isinstance(node, ColumnExpr):
            yield node


def contains_aggregate(expr: ExpressionBase) -> bool:
    return any(isinstance(node, AggregateExpr) for node in walk(expr))


def same_expression(a: ExpressionBase, b: ExpressionBase) -> bool:
    """Structural equality (``==`` builds a predicate instead)."""
    return a.fingerprint() == b.fingerprint()


def replace_columns(
    expr: ExpressionBase,
    fn: Callable[[ColumnExpr], ExpressionBase],
) -> ExpressionBase:
    """Return a copy of ``expr`` with every column reference replaced by ``fn(column)``."""
    if isinstance(expr, ColumnExpr):
        return fn(expr)
    if isinstance(expr, (LiteralExpr, ParamExpr)):
        return expr
    if isinstance(expr, UnaryExpr):
        return expr.model_copy(update={"operand": replace_columns(expr.operand, fn)})
    if isinstance(expr, BinaryExpr):
        return expr.model_copy(
            update={
                "left": replace_columns(expr.left, fn),
                "right": replace_columns(expr.right, fn),
            }
        )
    if isinstance(expr, FuncExpr):
        return expr.model_copy(update={"args": tuple(replace_columns(a, fn) for a in expr.args)})
    if isinstance(expr, CaseExpr):
        branches = tuple(
            CaseBranch(when=replace_columns(b.when, fn), then=replace_columns(b.then, fn))
            for b in expr.branches
        )
        default = replace_columns(expr.default, fn) if expr.default is not None else None
        return expr.model_copy(update={"branches": branches, "default": default})
    if isinstance(expr, AggregateExpr):
        if expr.arg is None:
            return expr
        return expr.model_copy(update={"arg": replace_columns(expr.arg, fn)})
    raise TypeError(f"Unknown expression type: {type(expr).__name__}")
