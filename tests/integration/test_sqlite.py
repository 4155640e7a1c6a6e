"""Integration tests: render → execute against a real SQLite in-memory DB.

Runs each plan through ``DBAPIExecutor`` on :mod:`sqlite3`, and a subset
through ``SQLAlchemyExecutor``, checking the rows the database returns
rather than the SQL text.
"""
from __future__ import annotations

import sqlite3

import pytest

from lazyql import DBAPIExecutor, Plan, table
from lazyql.errors import ExecutionError
from lazyql.functions import col, count, desc, if_else, lit, mean, param
from tests.fixtures import load_ddl, load_seed_statements, load_tables

pytestmark = pytest.mark.integration

TABLES = load_tables()


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.executescript(load_ddl("sqlite"))
    for stmt in load_seed_statements():
        conn.execute(stmt)
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture()
def executor(db) -> DBAPIExecutor:
    return DBAPIExecutor(db, param_style="named", dialect="sqlite")


def _rows(plan: Plan, executor, **params) -> list[dict]:
    return plan.collect(executor, params=params or None).to_pylist()


# ---------------------------------------------------------------------------
# Single SELECT
# ---------------------------------------------------------------------------


def test_or_filter(executor):
    plan = table("flights").filter((col("dest") == "IAH") | (col("dest") == "HOU"))
    assert len(_rows(plan, executor)) == 4


def test_null_comparison_becomes_is_null(executor):
    plan = table("flights").filter(col("tailnum") == None)  # noqa: E711
    rows = _rows(plan, executor)
    assert len(rows) == 1
    assert rows[0]["dep_delay"] is None


def test_in_list_with_none(executor):
    plan = table("flights").filter(col("tailnum").is_in([None, "N14228"]))
    assert len(_rows(plan, executor)) == 2


def test_runtime_parameter(executor):
    plan = table("flights").filter(col("origin") == param("origin")).project("dest")
    assert len(_rows(plan, executor, origin="EWR")) == 4
    assert len(_rows(plan, executor, origin="JFK")) == 2


def test_sort_and_limit(executor):
    plan = table("flights").sort(desc("arr_delay")).limit(2).project("dest", "arr_delay")
    assert _rows(plan, executor) == [
        {"dest": "MIA", "arr_delay": 33},
        {"dest": "IAH", "arr_delay": 20},
    ]


def test_distinct(executor):
    plan = table("flights").distinct("carrier").sort("carrier")
    assert [r["carrier"] for r in _rows(plan, executor)] == ["AA", "B6", "DL", "EV", "UA"]


def test_integer_division_is_not_truncated(executor):
    plan = (
        Plan(node=TABLES["flights"])
        .filter(col("tailnum") == "N24211")
        .project(ratio=col("dep_delay") / col("distance"))
    )
    (row,) = _rows(plan, executor)
    assert row["ratio"] == pytest.approx(4 / 1416)


def test_unknown_columns_table(executor):
    plan = table("diamonds").project(price_per_carat=col("price") / col("carat")).limit(1)
    (row,) = _rows(plan, executor)
    assert row["price_per_carat"] > 1000


# ---------------------------------------------------------------------------
# Nesting and aggregation
# ---------------------------------------------------------------------------


def test_nested_projection(executor):
    plan = (
        table("diamonds")
        .project(c2=col("price") + 2)
        .project(c3=col("c2") + 1)
        .sort("c3")
    )
    assert [r["c3"] for r in _rows(plan, executor)] == [329, 329, 337, 338, 1003]


def test_aggregate_then_filter(executor):
    plan = table("flights").aggregate("dest", n=count()).filter(col("n") > 1)
    assert _rows(plan, executor) == [{"dest": "IAH", "n": 3}]


def test_mean_ignores_nulls(executor):
    plan = table("flights").filter(col("carrier") == "UA").aggregate("carrier", delay=mean("arr_delay"))
    (row,) = _rows(plan, executor)
    assert row["delay"] == pytest.approx((11 + 20 + 12) / 3)


def test_derive_filter_aggregate_sort(executor):
    plan = (
        table("flights")
        .derive(band=if_else(col("distance") > 1000, "long", "short"))
        .filter(col("arr_delay") > 0)
        .aggregate("band", n=count())
        .sort(col("n").desc())
    )
    assert _rows(plan, executor) == [{"band": "long", "n": 4}, {"band": "short", "n": 2}]


def test_ordering_survives_a_projection_that_drops_the_sort_column(executor):
    plan = (
        Plan(node=TABLES["flights"])
        .filter(col("origin") == "LGA")
        .sort(desc("distance"))
        .project(c=col("dep_delay") + 1)
        .project(d=col("c") * 10)
    )
    assert _rows(plan, executor) == [{"d": 50}, {"d": -50}, {"d": -10}, {"d": -20}]


def test_if_else_with_null_condition_is_null(executor):
    plan = (
        Plan(node=TABLES["flights"])
        .filter(col("tailnum").is_null())
        .project(status=if_else(col("dep_delay") > 0, "late", "on time"))
    )
    assert _rows(plan, executor) == [{"status": None}]


def test_negated_negative_literal(executor):
    plan = table("diamonds").project(x=-lit(-1), cut="cut").limit(1)
    assert _rows(plan, executor)[0]["x"] == 1


# ---------------------------------------------------------------------------
# Joins
# ---------------------------------------------------------------------------


def test_left_join_keeps_unmatched_rows(executor):
    flights, planes = Plan(node=TABLES["flights"]), Plan(node=TABLES["planes"])
    result = flights.join(planes, how="left", by="tailnum").collect(executor)
    assert result.num_rows == 10
    assert "year_x" in result.column_names
    assert "year_y" in result.column_names
    assert result.column("manufacturer").null_count == 4


def test_join_with_unknown_left_columns_keeps_left_names(executor):
    plan = (
        table("flights")
        .join(Plan(node=TABLES["planes"]), on=col("flights.tailnum") == col("planes.tailnum"))
        .filter(col("year") == 2013)
    )
    result = plan.collect(executor)
    assert result.num_rows == 6
    assert result.column_names.count("year") == 1
    assert "year_y" in result.column_names


def test_inner_join_then_aggregate(executor):
    flights, planes = Plan(node=TABLES["flights"]), Plan(node=TABLES["planes"])
    plan = (
        flights.join(planes, by="tailnum")
        .aggregate("manufacturer", n=count())
        .sort("manufacturer")
    )
    assert _rows(plan, executor) == [
        {"manufacturer": "AIRBUS", "n": 1},
        {"manufacturer": "BOEING", "n": 5},
    ]


def test_join_filtered_input(executor):
    flights, planes = Plan(node=TABLES["flights"]), Plan(node=TABLES["planes"])
    plan = (
        flights.filter(col("dest") == "IAH")
        .join(planes, by="tailnum")
        .project("tailnum", "seats")
        .sort("tailnum")
    )
    assert _rows(plan, executor) == [
        {"tailnum": "N14228", "seats": 149},
        {"tailnum": "N24211", "seats": 149},
    ]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_driver_error_is_wrapped(executor):
    with pytest.raises(ExecutionError) as exc_info:
        table("no_such_table").collect(executor)
    assert isinstance(exc_info.value.original, sqlite3.OperationalError)


# ---------------------------------------------------------------------------
# SQLAlchemy
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine():
    sqlalchemy = pytest.importorskip("sqlalchemy")
    from sqlalchemy.pool import StaticPool

    eng = sqlalchemy.create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    with eng.begin() as conn:
        for stmt in load_ddl("sqlite").split(";"):
            if stmt.strip():
                conn.exec_driver_sql(stmt)
        for stmt in load_seed_statements():
            conn.exec_driver_sql(stmt)
    yield eng
    eng.dispose()


def test_sqlalchemy_executor(engine):
    from lazyql import SQLAlchemyExecutor

    executor = SQLAlchemyExecutor(engine, dialect="sqlite")
    plan = table("flights").filter(col("dest") == param("dest")).aggregate("dest", n=count())
    assert plan.collect(executor, params={"dest": "IAH"}).to_pylist() == [{"dest": "IAH", "n": 3}]


def test_reflected_table_resolves_columns(engine):
    from lazyql import SQLAlchemyExecutor, table_from_sqlalchemy

    ref = table_from_sqlalchemy(engine, "flights")
    assert ref.column_names[:3] == ["year", "month", "day"]
    assert ref.get_column("dep_delay").kind == "integer"
    assert ref.get_column("carrier").nullable is False

    plan = Plan(node=ref).project(r=col("dep_delay") / col("distance")).limit(1)
    assert "CAST(dep_delay AS REAL)" in plan.render("sqlite").sql
    assert plan.collect(SQLAlchemyExecutor(engine, dialect="sqlite")).num_rows == 1
