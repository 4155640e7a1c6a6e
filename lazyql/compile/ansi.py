"""ANSI SQL dialect: the conservative baseline every built-in dialect extends."""

from __future__ import annotations

from lazyql.schema.dialect import Dialect

#: Reserved words of standard SQL that commonly collide with column names.
ANSI_RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "ALL", "AND", "ANY", "ARRAY", "AS", "ASC", "BETWEEN", "BOTH", "BY",
        "CASE", "CAST", "CHECK", "COLLATE", "COLUMN", "CONSTRAINT", "CREATE",
        "CROSS", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP",
        "CURRENT_USER", "DAY", "DEFAULT", "DELETE", "DESC", "DISTINCT", "DROP",
        "ELSE", "END", "EXCEPT", "EXISTS", "FALSE", "FETCH", "FOR", "FOREIGN",
        "FROM", "FULL", "GRANT", "GROUP", "HAVING", "HOUR", "IN", "INNER",
        "INSERT", "INTERSECT", "INTERVAL", "INTO", "IS", "JOIN", "LATERAL",
        "LEADING", "LEFT", "LIKE", "LIMIT", "MINUTE", "MONTH", "NATURAL", "NOT",
        "NULL", "OFFSET", "ON", "OR", "ORDER", "OUTER", "PRIMARY", "REFERENCES",
        "RIGHT", "SECOND", "SELECT", "SESSION_USER", "SOME", "TABLE", "THEN",
        "TO", "TRAILING", "TRUE", "UNION", "UNIQUE", "UPDATE", "USER", "USING",
        "VALUES", "WHEN", "WHERE", "WINDOW", "WITH", "YEAR",
    }
)

#: Standard function translations.
ANSI_FUNCTIONS: dict[str, str] = {
    # scalar
    "abs": "ABS({0})",
    "round": "ROUND({0}, {1})",
    "floor": "FLOOR({0})",
    "ceil": "CEILING({0})",
    "sqrt": "SQRT({0})",
    "exp": "EXP({0})",
    "ln": "LN({0})",
    "power": "POWER({0}, {1})",
    "lower": "LOWER({0})",
    "upper": "UPPER({0})",
    "length": "CHAR_LENGTH({0})",
    "trim": "TRIM({0})",
    "substr": "SUBSTRING({0} FROM {1} FOR {2})",
    "concat": "({0} || {1})",
    "coalesce": "COALESCE({args})",
    "nullif": "NULLIF({0}, {1})",
    "as_integer": "CAST({0} AS INTEGER)",
    "as_float": "CAST({0} AS DOUBLE PRECISION)",
    "as_string": "CAST({0} AS VARCHAR)",
    "year": "EXTRACT(YEAR FROM {0})",
    "month": "EXTRACT(MONTH FROM {0})",
    "day": "EXTRACT(DAY FROM {0})",
    # aggregates
    "count": "COUNT({0})",
    "sum": "SUM({0})",
    "mean": "AVG({0})",
    "min": "MIN({0})",
    "max": "MAX({0})",
    "sd": "STDDEV_SAMP({0})",
    "var": "VAR_SAMP({0})",
}

ANSI = (
    Dialect.builder("ansi")
    .reserved_words(ANSI_RESERVED_WORDS)
    .functions(ANSI_FUNCTIONS)
    .integer_division_requires_cast()
    .limit_template("FETCH FIRST {n} ROWS ONLY")
    .build()
)
