"""lazyql – lazy relational queries compiled to SQL.

Build a query step by step, render it for any dialect, run it when needed.

Public API
----------
``table``
    Start a :class:`Plan` from a remote table.

``Plan``
    Immutable query; ``project``, ``derive``, ``filter``, ``sort``,
    ``aggregate``, ``join``, ``distinct``, ``limit`` return new plans;
    ``render`` compiles to SQL; ``collect`` / ``acollect`` execute.

``lazyql.functions``
    Expression helpers: ``col``, ``lit``, ``param``, ``count``, ``mean``, ...

Example::

    from lazyql import table
    from lazyql.functions import col, count

    q = (
        table("flights")
        .filter((col("dest") == "IAH") | (col("dest") == "HOU"))
        .aggregate("carrier", n=count())
        .sort(col("n").desc())
    )
    print(q.render("postgres"))

Extensibility
-------------
New dialects are derived from a registered one and registered by name::

    from lazyql import Dialect, DialectRegistry

    DialectRegistry.register(
        Dialect.builder("duckdb", base=DialectRegistry.get("postgres"))
        .param_style("named")
        .build()
    )

Dialects needing custom rendering register a compiler class as well::

    @DialectRegistry.register_compiler("mydb")
    class MyDBCompiler(SQLCompiler):
        ...
"""

from __future__ import annotations

from lazyql import functions
from lazyql.compile.ansi import ANSI
from lazyql.compile.base import RenderedQuery, SQLCompiler
from lazyql.compile.builder import QueryBuilder
from lazyql.compile.mysql import MYSQL, MySQLCompiler
from lazyql.compile.postgres import POSTGRES
from lazyql.compile.registry import DialectRegistry
from lazyql.compile.sqlite import SQLITE
from lazyql.errors import (
    AmbiguousColumnError,
    CompilationError,
    DialectCapabilityError,
    DialectConfigError,
    ExecutionError,
    LazyQLError,
    MissingParamError,
    PlanError,
    UnresolvedColumnError,
    UnsupportedExpressionError,
)
from lazyql.execute.base import AsyncQueryExecutor, QueryExecutor, QueryResult, rows_to_arrow
from lazyql.execute.dbapi import DBAPIExecutor
from lazyql.execute.sqlalchemy_executor import SQLAlchemyExecutor
from lazyql.plan import (
    Plan,
    acollect,
    aggregate,
    collect,
    derive,
    distinct,
    filter,
    join,
    limit,
    project,
    render,
    sort,
    table,
)
from lazyql.schema.converters import table_from_sqlalchemy
from lazyql.schema.dialect import Dialect, DialectBuilder
from lazyql.schema.table import ColumnInfo, TableRef

# ---------------------------------------------------------------------------
# Register built-in dialects with DialectRegistry
# ---------------------------------------------------------------------------

DialectRegistry.register(ANSI)
DialectRegistry.register(POSTGRES)
DialectRegistry.register(SQLITE)
DialectRegistry.register(MYSQL, MySQLCompiler)

__all__ = [
    # Builder API
    "Plan",
    "table",
    "project",
    "derive",
    "filter",
    "sort",
    "aggregate",
    "join",
    "distinct",
    "limit",
    "render",
    "collect",
    "acollect",
    "functions",
    # Schema types
    "TableRef",
    "ColumnInfo",
    "table_from_sqlalchemy",
    # Dialects and compilation
    "Dialect",
    "DialectBuilder",
    "DialectRegistry",
    "SQLCompiler",
    "MySQLCompiler",
    "QueryBuilder",
    "RenderedQuery",
    # Execution
    "QueryExecutor",
    "AsyncQueryExecutor",
    "QueryResult",
    "DBAPIExecutor",
    "SQLAlchemyExecutor",
    "rows_to_arrow",
    # Errors
    "LazyQLError",
    "PlanError",
    "CompilationError",
    "UnresolvedColumnError",
    "AmbiguousColumnError",
    "UnsupportedExpressionError",
    "DialectCapabilityError",
    "DialectConfigError",
    "MissingParamError",
    "ExecutionError",
]
