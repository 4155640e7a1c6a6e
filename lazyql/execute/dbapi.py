"""Executor for PEP 249 (DB-API 2.0) connections."""
from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

from lazyql.execute.base import QueryResult
from lazyql.schema.dialect import Dialect, ParamStyle

logger = logging.getLogger(__name__)


class DBAPIExecutor:
    """Runs SQL on any DB-API 2.0 connection (``sqlite3``, ``psycopg``, ...).

    The executor borrows the connection; it never commits, rolls back or
    closes it.

    Args:
        connection: An open DB-API connection.
        param_style: Placeholder style the driver accepts.  ``sqlite3``
            takes ``"named"`` (``:name``); ``psycopg`` takes ``"pyformat"``.
        dialect: Default dialect used by ``collect`` when none is given.
    """

    def __init__(
        self,
        connection: Any,
        param_style: ParamStyle = "named",
        dialect: str | Dialect | None = None,
    ) -> None:
        self._connection = connection
        self.param_style = param_style
        self.dialect = dialect

    def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult:
        """Execute ``sql`` and fetch every row.

        Driver exceptions propagate unchanged; the caller wraps them.
        """
        started = time.perf_counter()
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, dict(params))
            if cursor.description is None:
                return QueryResult(columns=[], rows=[])
            columns = [desc[0] for desc in cursor.description]
            rows = [tuple(row) for row in cursor.fetchall()]
        finally:
            cursor.close()
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.debug("DB-API cursor returned %d rows", len(rows))
        return QueryResult(columns=columns, rows=rows, elapsed_ms=elapsed_ms)
