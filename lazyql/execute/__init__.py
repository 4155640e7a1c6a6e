"""lazyql execution layer: rendered SQL → pyarrow.Table."""
from lazyql.execute.base import (
    AsyncQueryExecutor,
    QueryExecutor,
    QueryResult,
    aexecute_rendered,
    execute_rendered,
    rows_to_arrow,
)
from lazyql.execute.dbapi import DBAPIExecutor
from lazyql.execute.sqlalchemy_executor import SQLAlchemyExecutor

__all__ = [
    "AsyncQueryExecutor",
    "QueryExecutor",
    "QueryResult",
    "DBAPIExecutor",
    "SQLAlchemyExecutor",
    "aexecute_rendered",
    "execute_rendered",
    "rows_to_arrow",
]
