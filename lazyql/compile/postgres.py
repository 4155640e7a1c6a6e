"""PostgreSQL dialect."""

from __future__ import annotations

from lazyql.compile.ansi import ANSI
from lazyql.schema.dialect import Dialect

POSTGRES_RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "ALL", "ANALYSE", "ANALYZE", "AND", "ANY", "ARRAY", "AS", "ASC",
        "ASYMMETRIC", "AUTHORIZATION", "BINARY", "BOTH", "CASE", "CAST", "CHECK",
        "COLLATE", "COLLATION", "COLUMN", "CONCURRENTLY", "CONSTRAINT", "CREATE",
        "CROSS", "CURRENT_CATALOG", "CURRENT_DATE", "CURRENT_ROLE",
        "CURRENT_SCHEMA", "CURRENT_TIME", "CURRENT_TIMESTAMP", "CURRENT_USER",
        "DEFAULT", "DEFERRABLE", "DESC", "DISTINCT", "DO", "ELSE", "END",
        "EXCEPT", "FALSE", "FETCH", "FOR", "FOREIGN", "FREEZE", "FROM", "FULL",
        "GRANT", "GROUP", "HAVING", "ILIKE", "IN", "INITIALLY", "INNER",
        "INTERSECT", "INTO", "IS", "ISNULL", "JOIN", "LATERAL", "LEADING",
        "LEFT", "LIKE", "LIMIT", "LOCALTIME", "LOCALTIMESTAMP", "NATURAL",
        "NOT", "NOTNULL", "NULL", "OFFSET", "ON", "ONLY", "OR", "ORDER",
        "OUTER", "OVERLAPS", "PLACING", "PRIMARY", "REFERENCES", "RETURNING",
        "RIGHT", "SELECT", "SESSION_USER", "SIMILAR", "SOME", "SYMMETRIC",
        "TABLE", "TABLESAMPLE", "THEN", "TO", "TRAILING", "TRUE", "UNION",
        "UNIQUE", "USER", "USING", "VARIADIC", "VERBOSE", "WHEN", "WHERE",
        "WINDOW", "WITH",
    }
)

# Parameter style: ``%(name)s`` – compatible with ``psycopg2`` and
# ``psycopg`` named-parameter execution.
POSTGRES = (
    Dialect.builder("postgres", base=ANSI)
    .reserved_words(POSTGRES_RESERVED_WORDS, replace=True)
    .functions(
        {
            "ceil": "CEIL({0})",
            "concat": "CONCAT({args})",
            "as_string": "CAST({0} AS TEXT)",
            "median": "PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY {0})",
        }
    )
    .float_type("DOUBLE PRECISION")
    .param_style("pyformat")
    .limit_template("LIMIT {n}")
    .build()
)
