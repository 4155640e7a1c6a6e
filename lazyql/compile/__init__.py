"""lazyql compilation layer: operation chain → SQL."""
from lazyql.compile.base import RenderedQuery, SQLCompiler
from lazyql.compile.builder import QueryBuilder
from lazyql.compile.mysql import MySQLCompiler
from lazyql.compile.planner import ClauseSet, SubqueryPlanner
from lazyql.compile.registry import DialectRegistry

__all__ = [
    "RenderedQuery",
    "SQLCompiler",
    "QueryBuilder",
    "MySQLCompiler",
    "ClauseSet",
    "SubqueryPlanner",
    "DialectRegistry",
]
