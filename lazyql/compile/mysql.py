"""MySQL dialect and compiler."""

from __future__ import annotations

from lazyql.compile.ansi import ANSI
from lazyql.compile.base import SQLCompiler
from lazyql.schema.dialect import Dialect

MYSQL_RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "ADD", "ALL", "ALTER", "ANALYZE", "AND", "AS", "ASC", "BETWEEN",
        "BIGINT", "BINARY", "BLOB", "BOTH", "BY", "CALL", "CASCADE", "CASE",
        "CHANGE", "CHAR", "CHARACTER", "CHECK", "COLLATE", "COLUMN",
        "CONDITION", "CONSTRAINT", "CONTINUE", "CONVERT", "CREATE", "CROSS",
        "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP", "CURRENT_USER",
        "CURSOR", "DATABASE", "DATABASES", "DEC", "DECIMAL", "DECLARE",
        "DEFAULT", "DELETE", "DESC", "DESCRIBE", "DISTINCT", "DIV", "DOUBLE",
        "DROP", "DUAL", "EACH", "ELSE", "ELSEIF", "EXISTS", "EXIT", "EXPLAIN",
        "FALSE", "FETCH", "FLOAT", "FOR", "FORCE", "FOREIGN", "FROM",
        "FULLTEXT", "GRANT", "GROUP", "HAVING", "IF", "IGNORE", "IN", "INDEX",
        "INNER", "INSERT", "INT", "INTEGER", "INTERVAL", "INTO", "IS", "JOIN",
        "KEY", "KEYS", "KILL", "LEADING", "LEFT", "LIKE", "LIMIT", "LINES",
        "LOAD", "LOCK", "LONG", "MATCH", "MOD", "NATURAL", "NOT", "NULL",
        "NUMERIC", "ON", "OPTION", "OR", "ORDER", "OUTER", "PRIMARY",
        "PROCEDURE", "RANGE", "READ", "REAL", "REFERENCES", "REGEXP", "RENAME",
        "REPEAT", "REPLACE", "REQUIRE", "RESTRICT", "RETURN", "REVOKE",
        "RIGHT", "RLIKE", "SCHEMA", "SELECT", "SET", "SHOW", "SMALLINT",
        "SPATIAL", "SQL", "TABLE", "THEN", "TO", "TRAILING", "TRIGGER", "TRUE",
        "UNION", "UNIQUE", "UNLOCK", "UNSIGNED", "UPDATE", "USAGE", "USE",
        "USING", "VALUES", "VARCHAR", "WHEN", "WHERE", "WHILE", "WITH",
        "WRITE", "XOR", "YEAR_MONTH",
    }
)

# MySQL has no FULL JOIN and its ``/`` always returns a decimal, so integer
# division needs no cast.  Identifiers are quoted with backticks.
MYSQL = (
    Dialect.builder("mysql", base=ANSI)
    .reserved_words(MYSQL_RESERVED_WORDS, replace=True)
    .functions(
        {
            "ceil": "CEIL({0})",
            "concat": "CONCAT({args})",
            "as_integer": "CAST({0} AS SIGNED)",
            "as_float": "CAST({0} AS DOUBLE)",
            "as_string": "CAST({0} AS CHAR)",
            "year": "YEAR({0})",
            "month": "MONTH({0})",
            "day": "DAY({0})",
        }
    )
    .integer_division_requires_cast(False)
    .full_join(False)
    .identifier_quote("`")
    .float_type("DOUBLE")
    .param_style("pyformat")
    .limit_template("LIMIT {n}")
    .build()
)


class MySQLCompiler(SQLCompiler):
    """Compiles plans to MySQL-flavoured SQL.

    Parameter style: ``%(name)s`` – compatible with ``PyMySQL`` and
    ``mysql-connector-python`` named-parameter execution.

    MySQL treats backslash as an escape character inside string literals
    (unless ``NO_BACKSLASH_ESCAPES`` is set), so backslashes are doubled.
    """

    def render_string(self, value: str) -> str:
        escaped = value.replace("\\", "\\\\").replace("'", "''")
        return f"'{self.escape_percent(escaped)}'"
