"""Executor backed by a SQLAlchemy ``Engine``.

Install the optional dependency before using this module::

    pip install "lazyql[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from lazyql import SQLAlchemyExecutor, table

    executor = SQLAlchemyExecutor(create_engine("sqlite://"), dialect="sqlite")
    result = table("flights").limit(10).collect(executor)
"""
from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from lazyql.execute.base import QueryResult
from lazyql.schema.dialect import Dialect

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class SQLAlchemyExecutor:
    """Runs SQL through ``sqlalchemy.text()`` with named bind parameters.

    Each call opens a short-lived connection from the engine's pool.

    Args:
        engine: A SQLAlchemy :class:`~sqlalchemy.Engine`.
        dialect: Default dialect used by ``collect`` when none is given.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
    """

    #: ``text()`` parses ``:name`` binds regardless of the driver.
    param_style = "named"

    def __init__(self, engine: Engine, dialect: str | Dialect | None = None) -> None:
        try:
            from sqlalchemy import text as _text
        except ImportError as exc:
            raise ImportError(
                "SQLAlchemy is required for SQLAlchemyExecutor. "
                'Install it with: pip install "lazyql[sqlalchemy]"'
            ) from exc
        self._engine = engine
        self._text = _text
        self.dialect = dialect

    def execute(self, sql: str, params: Mapping[str, Any]) -> QueryResult:
        """Execute ``sql`` on a pooled connection and fetch every row."""
        started = time.perf_counter()
        with self._engine.connect() as conn:
            result = conn.execute(self._text(sql), dict(params))
            if not result.returns_rows:
                return QueryResult(columns=[], rows=[])
            columns = list(result.keys())
            rows = [tuple(row) for row in result.fetchall()]
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.debug("SQLAlchemy connection returned %d rows", len(rows))
        return QueryResult(columns=columns, rows=rows, elapsed_ms=elapsed_ms)
