"""Pydantic models for remote table references.

A :class:`TableRef` names a base table in the remote database.  Declaring
its columns is optional; when they are known the planner can report
unresolved names and disambiguate joins precisely.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from lazyql.schema.operators import type_kind


class ColumnInfo(BaseModel):
    """Metadata for a single column.

    Attributes:
        name: Column name.
        type: SQL type string (e.g. ``'TEXT'``, ``'INTEGER'``) or a type kind
            (``'integer'``, ``'float'``, ...).
        nullable: Whether the column can be NULL.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    type: str | None = None
    nullable: bool = True

    @property
    def kind(self) -> str | None:
        """Returns the type kind used for type inference, or ``None``."""
        return type_kind(self.type)


class TableRef(BaseModel):
    """A base table in the remote database.

    Attributes:
        name: Table name.
        schema_name: Optional database schema (``"public"``, ``"main"``).
        alias: Optional alias used in FROM and for qualified references.
        columns: Ordered column metadata, or ``None`` when unknown.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["table"] = "table"
    name: str
    schema_name: str | None = None
    alias: str | None = None
    columns: tuple[ColumnInfo, ...] | None = None

    @field_validator("columns", mode="before")
    @classmethod
    def _coerce_columns(cls, v: object) -> object:
        """Accept bare names, ``{name: type}`` mappings, or ColumnInfo items."""
        if v is None:
            return v
        if isinstance(v, dict):
            return tuple(ColumnInfo(name=k, type=t) for k, t in v.items())
        return tuple(ColumnInfo(name=c) if isinstance(c, str) else c for c in v)  # type: ignore[union-attr]

    @field_validator("columns")
    @classmethod
    def _unique_columns(cls, v: tuple[ColumnInfo, ...] | None) -> tuple[ColumnInfo, ...] | None:
        if v is None:
            return v
        seen: set[str] = set()
        for col in v:
            if col.name in seen:
                raise ValueError(f"Duplicate column name {col.name!r}")
            seen.add(col.name)
        return v

    @property
    def ref_name(self) -> str:
        """The name used to qualify this table's columns (alias or table name)."""
        return self.alias or self.name

    @property
    def column_names(self) -> list[str]:
        """Returns declared column names (``[]`` when unknown)."""
        return [c.name for c in self.columns] if self.columns is not None else []

    def get_column(self, name: str) -> ColumnInfo | None:
        """Returns the ColumnInfo for ``name``, or ``None``."""
        for col in self.columns or ():
            if col.name == name:
                return col
        return None
