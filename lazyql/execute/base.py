"""Execution adapter boundary.

lazyql never owns a database connection.  Rendered SQL is handed to a
*query executor*: any object with an ``execute(sql, params)`` method (or an
awaitable ``execute`` for async drivers) returning a :class:`QueryResult`.
Results are materialized as :class:`pyarrow.Table`.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import pyarrow as pa
from pydantic import BaseModel, ConfigDict, Field

from lazyql.compile.base import RenderedQuery
from lazyql.errors import ExecutionError, LazyQLError

logger = logging.getLogger(__name__)


class QueryResult(BaseModel):
    """Rows returned by an executor, in positional form."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[str]
    rows: list[Sequence[Any]]
    elapsed_ms: int | None = Field(default=None)

    def to_dicts(self) -> list[dict[str, Any]]:
        """Return the rows as dictionaries keyed by column name."""
        return [dict(zip(self.columns, row)) for row in self.rows]


@runtime_checkable
class QueryExecutor(Protocol):
    """Synchronous execution collaborator."""

    param_style: str

    def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult: ...


@runtime_checkable
class AsyncQueryExecutor(Protocol):
    """Asynchronous execution collaborator."""

    param_style: str

    async def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult: ...


def rows_to_arrow(result: QueryResult) -> pa.Table:
    """Materialize ``result`` as a pyarrow Table, keeping column order."""
    if not result.columns:
        return pa.table({})
    data: list[list[Any]] = [[] for _ in result.columns]
    for row in result.rows:
        for index in range(len(result.columns)):
            data[index].append(row[index] if index < len(row) else None)
    return pa.Table.from_arrays([pa.array(values) for values in data], names=result.columns)


def execute_rendered(
    executor: QueryExecutor,
    query: RenderedQuery,
    params: Mapping[str, Any] | None = None,
) -> pa.Table:
    """Run ``query`` through ``executor`` and materialize the result.

    Raises:
        MissingParamError: If a runtime parameter has no bound value.
        ExecutionError: If the executor fails; never retried.
    """
    bound = query.bind_params(params)
    logger.debug("Executing %s query (%d params)", query.dialect, len(bound))
    started = time.perf_counter()
    try:
        result = executor.execute(query.sql, bound)
    except LazyQLError:
        raise
    except Exception as exc:
        raise ExecutionError(f"Query execution failed: {exc}", sql=query.sql, original=exc) from exc
    logger.debug("Query returned %d rows in %.1f ms", len(result.rows), (time.perf_counter() - started) * 1000)
    return rows_to_arrow(result)


async def aexecute_rendered(
    executor: AsyncQueryExecutor,
    query: RenderedQuery,
    params: Mapping[str, Any] | None = None,
    timeout: float | None = None,
) -> pa.Table:
    """Async variant of :func:`execute_rendered` with an optional timeout.

    Raises:
        MissingParamError: If a runtime parameter has no bound value.
        ExecutionError: If the executor fails or the timeout expires.
    """
    bound = query.bind_params(params)
    logger.debug("Executing %s query asynchronously (%d params)", query.dialect, len(bound))
    try:
        result = await asyncio.wait_for(executor.execute(query.sql, bound), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ExecutionError(
            f"Query execution timed out after {timeout}s", sql=query.sql, original=exc
        ) from exc
    except LazyQLError:
        raise
    except Exception as exc:
        raise ExecutionError(f"Query execution failed: {exc}", sql=query.sql, original=exc) from exc
    return rows_to_arrow(result)
