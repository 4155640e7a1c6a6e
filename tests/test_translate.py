"""Unit tests for ExpressionTranslator (literals, operators, functions)."""

from __future__ import annotations

import datetime
import decimal

import pytest

import lazyql  # noqa: F401  (registers the built-in dialects)
from lazyql.compile.context import CompilationContext, RuntimeContext
from lazyql.compile.expression_builder import ExpressionTranslator, infer_kind
from lazyql.compile.registry import DialectRegistry
from lazyql.compile.scope import Scope
from lazyql.errors import CompilationError, UnsupportedExpressionError
from lazyql.functions import (
    case_when,
    coalesce,
    col,
    count,
    count_distinct,
    func,
    if_else,
    lit,
    mean,
    median,
    param,
    sd,
)
from lazyql.schema.expressions import ExpressionBase, replace_columns
from lazyql.schema.table import TableRef


def _translator(dialect: str = "postgres", runtime: RuntimeContext | None = None):
    ctx = CompilationContext(compiler=DialectRegistry.create(dialect))
    scope = Scope.for_table(TableRef(name="t"))
    return ExpressionTranslator(ctx, runtime or RuntimeContext(), scope), scope


def _sql(expr: ExpressionBase, dialect: str = "postgres") -> str:
    translator, scope = _translator(dialect)
    return translator.translate(replace_columns(expr, scope.resolve))


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


def test_integer_and_float_literals():
    assert _sql(lit(1)) == "1"
    assert _sql(lit(1.5)) == "1.5"
    assert _sql(lit(decimal.Decimal("2.50"))) == "2.50"


def test_string_literal_quotes_are_doubled():
    assert _sql(lit("O'Hare")) == "'O''Hare'"


def test_null_and_boolean_literals():
    assert _sql(lit(None)) == "NULL"
    assert _sql(lit(True)) == "TRUE"
    assert _sql(lit(False)) == "FALSE"


def test_temporal_literals_are_iso_strings():
    assert _sql(lit(datetime.date(2013, 1, 1))) == "'2013-01-01'"
    assert _sql(lit(datetime.datetime(2013, 1, 1, 5, 30))) == "'2013-01-01 05:30:00'"


def test_non_finite_float_is_unsupported():
    with pytest.raises(UnsupportedExpressionError):
        _sql(lit(float("nan")))


def test_mysql_doubles_backslashes():
    assert _sql(lit("a\\b"), "mysql") == "'a\\\\b'"
    assert _sql(lit("a\\b"), "postgres") == "'a\\b'"


# ---------------------------------------------------------------------------
# Operators and null awareness
# ---------------------------------------------------------------------------


def test_or_is_parenthesized_with_sql_operators():
    pred = (col("dest") == "IAH") | (col("dest") == "HOU")
    assert _sql(pred) == "(dest = 'IAH' OR dest = 'HOU')"


def test_nested_logic():
    pred = (col("a") > 1) & ((col("b") < 2) | col("c").is_null())
    assert _sql(pred) == "(a > 1 AND (b < 2 OR c IS NULL))"


def test_equality_with_none_becomes_is_null():
    assert _sql(col("tailnum") == None) == "tailnum IS NULL"  # noqa: E711
    assert _sql(col("tailnum") != None) == "tailnum IS NOT NULL"  # noqa: E711


def test_in_list_with_none_adds_null_test():
    assert _sql(col("x").is_in([1, 2])) == "x IN (1, 2)"
    assert _sql(col("x").is_in([1, 2, None])) == "(x IN (1, 2) OR x IS NULL)"
    assert _sql(col("x").is_in([None])) == "x IS NULL"
    assert _sql(col("x").is_in([])) == "FALSE"


def test_not_and_negation():
    assert _sql(~(col("a") > 1)) == "NOT (a > 1)"
    assert _sql(~((col("a") > 1) | (col("b") > 1))) == "NOT (a > 1 OR b > 1)"
    assert _sql(-col("a")) == "-a"
    assert _sql(-(col("a") + col("b"))) == "-(a + b)"


def test_leading_minus_never_doubles():
    assert _sql(-lit(-1)) == "-(-1)"
    assert _sql(-(-col("a"))) == "-(-a)"
    assert _sql(col("a") - lit(-1)) == "a - (-1)"
    assert _sql(col("a") - (-col("b"))) == "a - (-b)"
    assert _sql(col("a") + lit(-1)) == "a + -1"


def test_is_null_on_arithmetic_is_parenthesized():
    assert _sql((col("a") + col("b")).is_null()) == "(a + b) IS NULL"


@pytest.mark.parametrize(
    ("expr", "expected"),
    [
        ((col("a") + col("b")) * col("c"), "(a + b) * c"),
        (col("a") * col("b") + col("c"), "a * b + c"),
        (col("a") - (col("b") - col("c")), "a - (b - c)"),
        (col("a") - col("b") - col("c"), "a - b - c"),
        (col("a") + (col("b") - col("c")), "a + (b - c)"),
        (col("a") + 1 > col("b"), "a + 1 > b"),
        ((col("a") == col("b")) == col("c"), "(a = b) = c"),
    ],
)
def test_precedence_parentheses(expr, expected):
    assert _sql(expr) == expected


def test_between_and_like():
    assert _sql(col("a").between(1, 5)) == "a BETWEEN 1 AND 5"
    assert _sql(col("name").like("A%"), "sqlite") == "name LIKE 'A%'"


def test_percent_is_doubled_for_pyformat_drivers():
    assert _sql(col("name").like("A%"), "postgres") == "name LIKE 'A%%'"
    assert _sql(col("name").like("A%"), "mysql") == "name LIKE 'A%%'"
    assert _sql(col("a") % 2, "postgres") == "a %% 2"
    assert _sql(col("a") % 2, "sqlite") == "a % 2"


def test_case_expression():
    expr = case_when((col("x") > 0, "pos"), (col("x") < 0, "neg"), default="zero")
    assert _sql(expr) == "CASE WHEN x > 0 THEN 'pos' WHEN x < 0 THEN 'neg' ELSE 'zero' END"


def test_if_else_keeps_null_conditions_null():
    expr = if_else(col("x") > 0, "pos", "other")
    assert _sql(expr) == "CASE WHEN x > 0 THEN 'pos' WHEN NOT (x > 0) THEN 'other' END"


# ---------------------------------------------------------------------------
# Integer division
# ---------------------------------------------------------------------------


def test_integer_division_is_cast_where_required():
    expr = col("a", dtype="integer") / col("b", dtype="integer")
    assert _sql(expr, "ansi") == "CAST(a AS DOUBLE PRECISION) / b"
    assert _sql(expr, "sqlite") == "CAST(a AS REAL) / b"
    assert _sql(expr, "mysql") == "a / b"


def test_literal_integer_division_is_cast():
    assert _sql(lit(1) / 2, "ansi") == "CAST(1 AS DOUBLE PRECISION) / 2"


def test_float_or_unknown_division_is_not_cast():
    assert _sql(col("a", dtype="float") / col("b", dtype="integer"), "ansi") == "a / b"
    assert _sql(col("price") / col("carat"), "ansi") == "price / carat"


def test_cast_of_compound_dividend():
    expr = (col("a", dtype="integer") + 1) / col("b", dtype="integer")
    assert _sql(expr, "ansi") == "CAST(a + 1 AS DOUBLE PRECISION) / b"


# ---------------------------------------------------------------------------
# Functions, aggregates, parameters
# ---------------------------------------------------------------------------


def test_scalar_functions_use_dialect_templates():
    assert _sql(col("name").lower()) == "LOWER(name)"
    assert _sql(col("x").round(2)) == "ROUND(x, 2)"
    assert _sql(func("concat", "a", "b"), "postgres") == "CONCAT(a, b)"
    assert _sql(func("concat", "a", "b"), "ansi") == "(a || b)"
    assert _sql(col("name").length(), "ansi") == "CHAR_LENGTH(name)"
    assert _sql(col("name").length(), "sqlite") == "LENGTH(name)"


def test_variadic_function():
    assert _sql(coalesce("a", "b", lit(0))) == "COALESCE(a, b, 0)"


def test_casts_per_dialect():
    assert _sql(col("x").cast("integer"), "mysql") == "CAST(x AS SIGNED)"
    assert _sql(col("x").cast("string"), "postgres") == "CAST(x AS TEXT)"


def test_unknown_function_is_reported():
    with pytest.raises(UnsupportedExpressionError) as exc_info:
        _sql(func("levenshtein", "a", "b"))
    assert exc_info.value.function == "levenshtein"


def test_wrong_arity_is_reported():
    with pytest.raises(UnsupportedExpressionError):
        _sql(func("lower", "a", "b"))


def test_aggregates():
    assert _sql(count()) == "COUNT(*)"
    assert _sql(count_distinct("tailnum")) == "COUNT(DISTINCT tailnum)"
    assert _sql(mean("arr_delay")) == "AVG(arr_delay)"
    assert _sql(median("x"), "postgres") == "PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY x)"


def test_aggregates_missing_from_dialect():
    with pytest.raises(UnsupportedExpressionError):
        _sql(sd("x"), "sqlite")
    with pytest.raises(UnsupportedExpressionError):
        _sql(median("x"), "ansi")


def test_param_placeholders_are_recorded():
    runtime = RuntimeContext()
    translator, scope = _translator("postgres", runtime)
    pred = replace_columns((col("dest") == param("dest")) | (col("origin") == param("dest")), scope.resolve)
    assert translator.translate(pred) == "(dest = %(dest)s OR origin = %(dest)s)"
    assert runtime.params == ["dest"]
    assert _sql(param("dest"), "sqlite") == ":dest"


def test_between_needs_three_arguments():
    with pytest.raises(CompilationError):
        _sql(func("between", "a", "b"))


# ---------------------------------------------------------------------------
# Identifier quoting
# ---------------------------------------------------------------------------


def test_reserved_and_irregular_identifiers_are_quoted():
    assert _sql(col("year"), "ansi") == '"year"'
    assert _sql(col("year"), "postgres") == "year"
    assert _sql(col("Order Date")) == '"Order Date"'
    assert _sql(col("select"), "mysql") == "`select`"


def test_quote_all_identifiers():
    dialect = (
        lazyql.Dialect.builder("pg_quoted", base=DialectRegistry.get("postgres"))
        .quote_all_identifiers()
        .build()
    )
    ctx = CompilationContext(compiler=DialectRegistry.create(dialect))
    scope = Scope.for_table(TableRef(name="t"))
    translator = ExpressionTranslator(ctx, RuntimeContext(), scope)
    assert translator.translate(scope.resolve(col("dest"))) == '"dest"'


# ---------------------------------------------------------------------------
# Type inference
# ---------------------------------------------------------------------------


def test_infer_kind():
    assert infer_kind(lit(1)) == "integer"
    assert infer_kind(lit(1) / 2) == "float"
    assert infer_kind(col("a", dtype="integer") + 1) == "integer"
    assert infer_kind(col("a") + 1) is None
    assert infer_kind(col("a") > 1) == "boolean"
    assert infer_kind(count()) == "integer"
    assert infer_kind(mean("a")) == "float"
    assert infer_kind(col("s").lower()) == "string"
