"""Tests for the execution boundary using in-process fake executors."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pyarrow as pa
import pytest

import lazyql
from lazyql import table
from lazyql.errors import ExecutionError, MissingParamError, UnresolvedColumnError
from lazyql.execute.base import (
    AsyncQueryExecutor,
    QueryExecutor,
    QueryResult,
    rows_to_arrow,
)
from lazyql.functions import col, count, param


class RecordingExecutor:
    """Returns canned rows and records every call."""

    def __init__(self, result: QueryResult, param_style: str = "named", dialect: str | None = None) -> None:
        self.result = result
        self.param_style = param_style
        self.dialect = dialect
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult:
        self.calls.append((sql, dict(params)))
        return self.result


class FailingExecutor:
    param_style = "named"

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.attempts = 0

    def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult:
        self.attempts += 1
        raise self.exc


class SlowAsyncExecutor:
    param_style = "named"

    def __init__(self, delay: float, result: QueryResult) -> None:
        self.delay = delay
        self.result = result

    async def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult:
        await asyncio.sleep(self.delay)
        return self.result


_DEST_COUNTS = QueryResult(columns=["dest", "n"], rows=[("IAH", 3), ("HOU", 1)])


# ---------------------------------------------------------------------------
# Result materialization
# ---------------------------------------------------------------------------


def test_rows_to_arrow_keeps_column_order():
    tbl = rows_to_arrow(_DEST_COUNTS)
    assert isinstance(tbl, pa.Table)
    assert tbl.column_names == ["dest", "n"]
    assert tbl.to_pylist() == [{"dest": "IAH", "n": 3}, {"dest": "HOU", "n": 1}]


def test_rows_to_arrow_with_nulls_and_no_rows():
    tbl = rows_to_arrow(QueryResult(columns=["a"], rows=[(None,), (2,)]))
    assert tbl.column("a").to_pylist() == [None, 2]
    empty = rows_to_arrow(QueryResult(columns=["a", "b"], rows=[]))
    assert empty.num_rows == 0
    assert empty.column_names == ["a", "b"]


def test_query_result_to_dicts():
    assert _DEST_COUNTS.to_dicts()[0] == {"dest": "IAH", "n": 3}


def test_protocols_are_structural():
    assert isinstance(RecordingExecutor(_DEST_COUNTS), QueryExecutor)
    assert isinstance(SlowAsyncExecutor(0, _DEST_COUNTS), AsyncQueryExecutor)


# ---------------------------------------------------------------------------
# collect
# ---------------------------------------------------------------------------


def test_collect_renders_binds_and_materializes():
    executor = RecordingExecutor(_DEST_COUNTS, dialect="sqlite")
    plan = table("flights").filter(col("origin") == param("origin")).aggregate("dest", n=count())
    result = plan.collect(executor, params={"origin": "EWR", "extra": 1})
    assert result.num_rows == 2
    sql, params = executor.calls[0]
    assert ":origin" in sql
    assert "LIMIT" not in sql
    assert params == {"origin": "EWR"}


def test_collect_aligns_placeholders_with_executor():
    executor = RecordingExecutor(_DEST_COUNTS, param_style="pyformat")
    table("flights").filter(col("dest") == param("dest")).collect(
        executor, dialect="sqlite", params={"dest": "IAH"}
    )
    assert "%(dest)s" in executor.calls[0][0]


def test_collect_defaults_to_executor_dialect():
    executor = RecordingExecutor(_DEST_COUNTS, param_style="pyformat", dialect="postgres")
    table("flights").limit(1).collect(executor)
    assert executor.calls[0][0].endswith("LIMIT 1")


def test_missing_param_raises_before_execution():
    executor = RecordingExecutor(_DEST_COUNTS)
    with pytest.raises(MissingParamError):
        table("flights").filter(col("dest") == param("dest")).collect(executor)
    assert executor.calls == []


def test_compile_error_raises_before_execution(flights):
    executor = RecordingExecutor(_DEST_COUNTS)
    with pytest.raises(UnresolvedColumnError):
        flights.filter(col("nope") > 0).collect(executor)
    assert executor.calls == []


def test_driver_failure_is_wrapped_and_not_retried():
    original = RuntimeError("connection reset")
    executor = FailingExecutor(original)
    with pytest.raises(ExecutionError) as exc_info:
        table("flights").collect(executor, dialect="sqlite")
    err = exc_info.value
    assert err.original is original
    assert err.__cause__ is original
    assert err.sql == "SELECT *\nFROM flights"
    assert executor.attempts == 1


# ---------------------------------------------------------------------------
# acollect
# ---------------------------------------------------------------------------


def test_acollect():
    executor = SlowAsyncExecutor(0, _DEST_COUNTS)
    result = asyncio.run(table("flights").acollect(executor, dialect="sqlite"))
    assert result.column_names == ["dest", "n"]


def test_module_level_acollect():
    executor = SlowAsyncExecutor(0, _DEST_COUNTS)
    result = asyncio.run(lazyql.acollect(table("flights"), executor, dialect="sqlite"))
    assert result.num_rows == 2


def test_acollect_timeout():
    executor = SlowAsyncExecutor(1.0, _DEST_COUNTS)
    with pytest.raises(ExecutionError, match="timed out"):
        asyncio.run(table("flights").acollect(executor, dialect="sqlite", timeout=0.01))
