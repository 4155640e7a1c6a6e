"""Utilities for building a TableRef from external sources.

SQLAlchemy converter
--------------------
:func:`table_from_sqlalchemy` reflects one table through a live engine and
returns a :class:`~lazyql.schema.table.TableRef` with its columns declared,
so the planner can resolve names and disambiguate joins precisely.

Install the optional dependency before using this module::

    pip install "lazyql[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from lazyql.schema.converters import table_from_sqlalchemy

    engine = create_engine("sqlite:///flights.db")
    flights = table_from_sqlalchemy(engine, "flights")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lazyql.schema.table import ColumnInfo, TableRef

if TYPE_CHECKING:
    from sqlalchemy import Engine, Table


def table_from_sqlalchemy(
    engine: Engine,
    name: str,
    *,
    schema: str | None = None,
    alias: str | None = None,
) -> TableRef:
    """Build a :class:`TableRef` by reflecting ``name`` through ``engine``.

    Column order, SQL type names and nullability are taken from the
    reflected table.

    Args:
        engine: A SQLAlchemy :class:`~sqlalchemy.Engine`.
        name: Table name to reflect.
        schema: Optional database schema containing the table.
        alias: Optional alias for the returned reference.

    Returns:
        A :class:`TableRef` with ``columns`` populated.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
        sqlalchemy.exc.NoSuchTableError: If the table does not exist.
    """
    try:
        from sqlalchemy import MetaData as _MetaData
        from sqlalchemy import Table as _Table
    except ImportError as exc:
        raise ImportError(
            "SQLAlchemy is required for table_from_sqlalchemy(). "
            'Install it with: pip install "lazyql[sqlalchemy]"'
        ) from exc

    with engine.connect() as conn:
        reflected = _Table(name, _MetaData(), schema=schema, autoload_with=conn)
    return _table_to_ref(reflected, alias=alias)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _table_to_ref(table: Table, alias: str | None = None) -> TableRef:
    """Convert a reflected :class:`~sqlalchemy.schema.Table`."""
    columns = tuple(
        ColumnInfo(name=col.name, type=str(col.type), nullable=bool(col.nullable))
        for col in table.columns
    )
    return TableRef(name=table.name, schema_name=table.schema, alias=alias, columns=columns)

