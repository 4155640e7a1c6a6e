"""SQLite dialect.

Parameter style: ``:name`` – compatible with Python's built-in ``sqlite3``
named-parameter execution (``cursor.execute(sql, dict)``).

SQLite has no standard-deviation aggregates and only exposes the math
functions when compiled with them, so those translations are removed and
calls raise :class:`~lazyql.errors.UnsupportedExpressionError`.
"""
from __future__ import annotations

from lazyql.compile.ansi import ANSI
from lazyql.schema.dialect import Dialect

SQLITE_RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "ABORT", "ACTION", "ADD", "AFTER", "ALL", "ALTER", "ANALYZE", "AND",
        "AS", "ASC", "ATTACH", "AUTOINCREMENT", "BEFORE", "BEGIN", "BETWEEN",
        "BY", "CASCADE", "CASE", "CAST", "CHECK", "COLLATE", "COLUMN", "COMMIT",
        "CONFLICT", "CONSTRAINT", "CREATE", "CROSS", "CURRENT_DATE",
        "CURRENT_TIME", "CURRENT_TIMESTAMP", "DATABASE", "DEFAULT",
        "DEFERRABLE", "DEFERRED", "DELETE", "DESC", "DETACH", "DISTINCT",
        "DROP", "EACH", "ELSE", "END", "ESCAPE", "EXCEPT", "EXCLUSIVE",
        "EXISTS", "EXPLAIN", "FAIL", "FOR", "FOREIGN", "FROM", "FULL", "GLOB",
        "GROUP", "HAVING", "IF", "IGNORE", "IMMEDIATE", "IN", "INDEX",
        "INDEXED", "INITIALLY", "INNER", "INSERT", "INSTEAD", "INTERSECT",
        "INTO", "IS", "ISNULL", "JOIN", "KEY", "LEFT", "LIKE", "LIMIT",
        "MATCH", "NATURAL", "NO", "NOT", "NOTNULL", "NULL", "OF", "OFFSET",
        "ON", "OR", "ORDER", "OUTER", "PLAN", "PRAGMA", "PRIMARY", "QUERY",
        "RAISE", "RECURSIVE", "REFERENCES", "REGEXP", "REINDEX", "RELEASE",
        "RENAME", "REPLACE", "RESTRICT", "RIGHT", "ROLLBACK", "ROW",
        "SAVEPOINT", "SELECT", "SET", "TABLE", "TEMP", "TEMPORARY", "THEN",
        "TO", "TRANSACTION", "TRIGGER", "UNION", "UNIQUE", "UPDATE", "USING",
        "VACUUM", "VALUES", "VIEW", "VIRTUAL", "WHEN", "WHERE", "WITH",
        "WITHOUT",
    }
)

SQLITE = (
    Dialect.builder("sqlite", base=ANSI)
    .reserved_words(SQLITE_RESERVED_WORDS, replace=True)
    .functions(
        {
            "length": "LENGTH({0})",
            "substr": "SUBSTR({0}, {1}, {2})",
            "as_float": "CAST({0} AS REAL)",
            "as_string": "CAST({0} AS TEXT)",
            "year": "CAST(STRFTIME('%Y', {0}) AS INTEGER)",
            "month": "CAST(STRFTIME('%m', {0}) AS INTEGER)",
            "day": "CAST(STRFTIME('%d', {0}) AS INTEGER)",
        }
    )
    .without_functions("floor", "ceil", "sqrt", "exp", "ln", "power", "sd", "var")
    .float_type("REAL")
    .param_style("named")
    .limit_template("LIMIT {n}")
    .build()
)
