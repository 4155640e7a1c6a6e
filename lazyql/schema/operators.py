"""Operator enums, precedence tables, and type-kind helpers.

Expression nodes store operators as plain strings; this module defines the
allowable sets and the groups used by both the validator and the compiler.
"""

from __future__ import annotations

from enum import Enum

# ---------------------------------------------------------------------------
# Operator enums
# ---------------------------------------------------------------------------


class ArithmeticOp(str, Enum):
    """Binary arithmetic operators."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"


class ComparisonOp(str, Enum):
    """Binary comparison operators."""

    EQ = "="
    NE = "<>"
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


class LogicalOp(str, Enum):
    """Logical connectives."""

    AND = "AND"
    OR = "OR"


class PatternOp(str, Enum):
    """Pattern-match operators."""

    LIKE = "LIKE"


class UnaryOp(str, Enum):
    """Unary operators."""

    NEG = "-"
    NOT = "NOT"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


class SortDirection(str, Enum):
    """ORDER BY directions."""

    ASC = "ASC"
    DESC = "DESC"


# ---------------------------------------------------------------------------
# Operator groups (frozenset for O(1) membership tests)
# ---------------------------------------------------------------------------

ARITHMETIC_OPS: frozenset[str] = frozenset(op.value for op in ArithmeticOp)
COMPARISON_OPS: frozenset[str] = frozenset(op.value for op in ComparisonOp)
LOGICAL_OPS: frozenset[str] = frozenset(op.value for op in LogicalOp)
PATTERN_OPS: frozenset[str] = frozenset(op.value for op in PatternOp)

#: Every operator accepted by ``BinaryExpr.op``.
BINARY_OPS: frozenset[str] = ARITHMETIC_OPS | COMPARISON_OPS | LOGICAL_OPS | PATTERN_OPS

#: Every operator accepted by ``UnaryExpr.op``.
UNARY_OPS: frozenset[str] = frozenset(op.value for op in UnaryOp)

#: Binding strength of binary operators; higher binds tighter.
PRECEDENCE: dict[str, int] = {
    "OR": 1,
    "AND": 2,
    "=": 4,
    "<>": 4,
    ">": 4,
    ">=": 4,
    "<": 4,
    "<=": 4,
    "LIKE": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}

#: Operators where ``a op (b op c)`` differs from ``(a op b) op c``.
NON_ASSOCIATIVE_OPS: frozenset[str] = frozenset({"-", "/", "%"})

# ---------------------------------------------------------------------------
# Function groups
# ---------------------------------------------------------------------------

#: Aggregate function names understood by ``AggregateExpr``.
AGGREGATE_FUNCTIONS: frozenset[str] = frozenset(
    {"count", "sum", "mean", "min", "max", "sd", "var", "median"}
)

# ---------------------------------------------------------------------------
# Type kinds
# ---------------------------------------------------------------------------

INTEGER = "integer"
FLOAT = "float"
STRING = "string"
BOOLEAN = "boolean"
TEMPORAL = "temporal"

TYPE_KINDS: frozenset[str] = frozenset({INTEGER, FLOAT, STRING, BOOLEAN, TEMPORAL})

_TYPE_PREFIXES: tuple[tuple[str, str], ...] = (
    ("BIGINT", INTEGER),
    ("SMALLINT", INTEGER),
    ("TINYINT", INTEGER),
    ("INT", INTEGER),
    ("SERIAL", INTEGER),
    ("DOUBLE", FLOAT),
    ("FLOAT", FLOAT),
    ("REAL", FLOAT),
    ("NUMERIC", FLOAT),
    ("DECIMAL", FLOAT),
    ("BOOL", BOOLEAN),
    ("TIMESTAMP", TEMPORAL),
    ("DATETIME", TEMPORAL),
    ("DATE", TEMPORAL),
    ("TIME", TEMPORAL),
    ("VARCHAR", STRING),
    ("CHAR", STRING),
    ("TEXT", STRING),
    ("STRING", STRING),
)


def type_kind(sql_type: str | None) -> str | None:
    """Classify a SQL type string (or a type kind) into a type kind.

    Args:
        sql_type: A declared SQL type such as ``'INTEGER'`` or
            ``'VARCHAR(20)'``, or one of the type kinds themselves.

    Returns:
        One of the ``TYPE_KINDS`` or ``None`` when the type is unknown.
    """
    if not sql_type:
        return None
    if sql_type in TYPE_KINDS:
        return sql_type
    upper = sql_type.strip().upper()
    for prefix, kind in _TYPE_PREFIXES:
        if upper.startswith(prefix):
            return kind
    return None
