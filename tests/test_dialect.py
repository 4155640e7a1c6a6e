"""Tests for Dialect, DialectBuilder and DialectRegistry."""

from __future__ import annotations

import pytest

from lazyql import Dialect, DialectRegistry, table
from lazyql.compile.ansi import ANSI
from lazyql.compile.base import SQLCompiler
from lazyql.compile.mysql import MySQLCompiler
from lazyql.compile.postgres import POSTGRES
from lazyql.errors import CompilationError, DialectConfigError
from lazyql.functions import col, median
from lazyql.schema.table import TableRef
from tests.fixtures import squash


@pytest.fixture()
def isolated_registry(monkeypatch):
    """Let a test register dialects without leaking them into other tests."""
    monkeypatch.setattr(DialectRegistry, "_dialects", dict(DialectRegistry._dialects))
    monkeypatch.setattr(DialectRegistry, "_compilers", dict(DialectRegistry._compilers))
    return DialectRegistry


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_builtin_dialects_are_registered():
    assert {"ansi", "postgres", "sqlite", "mysql"} <= set(DialectRegistry.registered_dialects())


def test_unknown_dialect_name():
    with pytest.raises(CompilationError) as exc_info:
        DialectRegistry.get("oracle")
    assert "postgres" in str(exc_info.value)


def test_compiler_selection():
    assert isinstance(DialectRegistry.create("mysql"), MySQLCompiler)
    assert type(DialectRegistry.create("postgres")) is SQLCompiler
    unregistered = Dialect.builder("adhoc", base=ANSI).build()
    assert type(DialectRegistry.create(unregistered)) is SQLCompiler


def test_register_custom_dialect(isolated_registry):
    duck = (
        Dialect.builder("duckdb", base=POSTGRES)
        .functions({"median": "MEDIAN({0})"})
        .param_style("named")
        .build()
    )
    isolated_registry.register(duck)
    plan = table("t").aggregate(m=median("x"))
    assert squash(plan.render("duckdb")) == "SELECT MEDIAN(x) AS m FROM t"


def test_register_compiler_decorator(isolated_registry):
    isolated_registry.register(Dialect.builder("shouty", base=ANSI).build())

    @isolated_registry.register_compiler("shouty")
    class ShoutyCompiler(SQLCompiler):
        def render_string(self, value: str) -> str:
            return super().render_string(value.upper())

    plan = table("t").filter(col("name") == "ada")
    assert squash(plan.render("shouty")) == "SELECT * FROM t WHERE name = 'ADA'"


def test_render_accepts_unregistered_dialect_instance():
    dialect = Dialect.builder("pg_named", base=POSTGRES).param_style("named").build()
    from lazyql.functions import param

    sql = table("t").filter(col("a") == param("a")).render(dialect)
    assert squash(sql) == "SELECT * FROM t WHERE a = :a"
    assert sql.dialect == "pg_named"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def test_builder_copies_base_without_mutating_it():
    derived = Dialect.builder("pg2", base=POSTGRES).functions({"median2": "M({0})"}).build()
    assert derived.function_template("median2") == "M({0})"
    assert derived.function_template("lower") == "LOWER({0})"
    assert POSTGRES.function_template("median2") is None


def test_without_functions():
    dialect = Dialect.builder("nolower", base=ANSI).without_functions("lower").build()
    assert dialect.function_template("lower") is None
    assert ANSI.function_template("lower") == "LOWER({0})"


def test_reserved_words_are_case_insensitive():
    dialect = Dialect.builder("r", base=ANSI).reserved_words(["flight"]).build()
    assert dialect.is_reserved("FLIGHT")
    assert dialect.is_reserved("Flight")
    assert dialect.is_reserved("year")


def test_replace_reserved_words():
    dialect = Dialect.builder("r", base=ANSI).reserved_words(["only"], replace=True).build()
    assert dialect.reserved_words == frozenset({"ONLY"})


def test_bracket_quoting():
    dialect = Dialect.builder("tsql", base=ANSI).identifier_quote("[]").build()
    compiler = SQLCompiler(dialect)
    assert compiler.quote_identifier("Order Date") == "[Order Date]"
    assert compiler.quote_identifier("a]b") == "[a]]b]"


def test_quote_escaping():
    compiler = DialectRegistry.create("postgres")
    assert compiler.quote_identifier('say "hi"') == '"say ""hi"""'
    assert DialectRegistry.create("mysql").quote_identifier("a`b") == "`a``b`"


def test_schema_qualified_table_quoting():
    compiler = DialectRegistry.create("ansi")
    assert compiler.quote_table(TableRef(name="order", schema_name="sales")) == 'sales."order"'


@pytest.mark.parametrize(
    ("configure", "field"),
    [
        (lambda b: b.identifier_quote("abc"), "identifier_quote"),
        (lambda b: b.identifier_quote(""), "identifier_quote"),
        (lambda b: b.functions({"f": "F({x})"}), "function_map"),
        (lambda b: b.functions({"f": "F({args}, {0})"}), "function_map"),
        (lambda b: b.functions({"f": "F({0"}), "function_map"),
        (lambda b: b.limit_template("TOP 10"), "limit_template"),
    ],
)
def test_invalid_configuration(configure, field):
    builder = Dialect.builder("bad", base=ANSI)
    with pytest.raises(DialectConfigError) as exc_info:
        configure(builder).build()
    assert exc_info.value.field == field


def test_invalid_param_style():
    with pytest.raises(DialectConfigError):
        Dialect.builder("bad", base=ANSI).param_style("qmark").build()  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Built-in dialect details
# ---------------------------------------------------------------------------


def test_mysql_rendering():
    plan = table("flights").filter(col("dest") == "IAH").project("select", "dest").limit(3)
    assert squash(plan.render("mysql")) == (
        "SELECT `select`, dest FROM flights WHERE dest = 'IAH' LIMIT 3"
    )


def test_capability_flags():
    assert DialectRegistry.get("postgres").supports_full_join
    assert not DialectRegistry.get("mysql").supports_full_join
    assert DialectRegistry.get("ansi").integer_division_requires_cast
    assert not DialectRegistry.get("mysql").integer_division_requires_cast


def test_dialects_are_frozen():
    with pytest.raises(Exception):
        POSTGRES.param_style = "named"  # type: ignore[misc]
