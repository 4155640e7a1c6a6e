"""lazyql schema models: expressions, operations, tables, dialects."""
from lazyql.schema.dialect import Dialect, DialectBuilder
from lazyql.schema.expressions import (
    AggregateExpr,
    BinaryExpr,
    CaseBranch,
    CaseExpr,
    ColumnExpr,
    Expression,
    ExpressionBase,
    FuncExpr,
    LiteralExpr,
    ParamExpr,
    SortKey,
    UnaryExpr,
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
)
from lazyql.schema.table import ColumnInfo, TableRef

__all__ = [
    "Dialect",
    "DialectBuilder",
    "AggregateExpr",
    "BinaryExpr",
    "CaseBranch",
    "CaseExpr",
    "ColumnExpr",
    "Expression",
    "ExpressionBase",
    "FuncExpr",
    "LiteralExpr",
    "ParamExpr",
    "SortKey",
    "UnaryExpr",
    "AggregateOp",
    "DistinctOp",
    "FilterOp",
    "JoinOp",
    "LimitOp",
    "NamedExpr",
    "Node",
    "ProjectOp",
    "SortOp",
    "ColumnInfo",
    "TableRef",
]
