"""Test fixtures: sample table definitions, DDL and seed rows."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from lazyql.schema.table import ColumnInfo, TableRef

_FIXTURES_DIR = Path(__file__).parent


def load_tables() -> dict[str, TableRef]:
    """Load the sample tables (with declared columns) from schema.json."""
    data = json.loads((_FIXTURES_DIR / "schema.json").read_text())
    return {
        name: TableRef(name=name, columns=tuple(ColumnInfo.model_validate(c) for c in columns))
        for name, columns in data.items()
    }


def load_ddl(target: Literal["sqlite", "postgres"] = "sqlite") -> str:
    """Return the sample DDL SQL string for the given backend.

    Args:
        target: ``'sqlite'`` (default) or ``'postgres'``.

    Returns:
        DDL string ready to execute against the target backend.
    """
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()


def load_seed_statements() -> list[str]:
    """Return the portable INSERT statements, one per row."""
    text = (_FIXTURES_DIR / "seed.sql").read_text()
    return [stmt.strip() for stmt in text.split(";") if stmt.strip()]


def squash(sql: object) -> str:
    """Collapse all whitespace so assertions ignore line breaks."""
    return " ".join(str(sql).split())
