"""Compiler abstractions: RenderedQuery and the SQLCompiler.

The Template Method pattern (GoF) is used:
- ``SQLCompiler`` implements every dialect-dependent rendering step
  (identifier quoting, literals, placeholders, function templates) from the
  settings of a :class:`~lazyql.schema.dialect.Dialect`.
- Subclasses such as ``MySQLCompiler`` override individual steps where a
  dialect deviates from what configuration can express.
"""
from __future__ import annotations

import datetime
import decimal
import math
import re
import string
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lazyql.errors import CompilationError, MissingParamError, UnsupportedExpressionError
from lazyql.schema.dialect import Dialect
from lazyql.schema.table import TableRef

_PLAIN_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True)
class RenderedQuery:
    """The output of a successful render.

    Attributes:
        sql: The SQL statement.  Runtime parameters appear as placeholders
            in the dialect's ``param_style``.
        tables: Base tables referenced by the statement, in plan order.
        params: Names of the runtime parameters the statement needs, in
            order of first appearance.
        dialect: Name of the dialect the SQL was rendered for.
    """

    sql: str
    tables: tuple[TableRef, ...]
    params: tuple[str, ...]
    dialect: str

    def __str__(self) -> str:
        return self.sql

    def bind_params(self, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Return the parameter dict to pass to the driver.

        Args:
            values: Caller-supplied parameter values; extra keys are ignored.

        Returns:
            A dict holding exactly the parameters the statement uses.

        Raises:
            MissingParamError: If a required parameter has no value.
        """
        values = values or {}
        missing = [name for name in self.params if name not in values]
        if missing:
            raise MissingParamError(missing)
        return {name: values[name] for name in self.params}


class SQLCompiler:
    """Renders dialect-dependent SQL fragments for a :class:`Dialect`.

    The :class:`~lazyql.compile.builder.QueryBuilder` uses this interface for
    every token whose spelling depends on the target database.

    Args:
        dialect: The dialect configuration to render for.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    @property
    def dialect_name(self) -> str:
        return self.dialect.name

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def needs_quoting(self, name: str) -> bool:
        """True when ``name`` cannot appear as a bare identifier."""
        if self.dialect.quote_all_identifiers:
            return True
        return not _PLAIN_IDENTIFIER.match(name) or self.dialect.is_reserved(name)

    def quote_identifier(self, name: str) -> str:
        """Return ``name`` as an identifier, quoted only when required.

        Args:
            name: Unquoted identifier (table, column or alias name).

        Returns:
            The identifier, quoted and escaped if necessary.
        """
        if not self.needs_quoting(name):
            return name
        quote = self.dialect.identifier_quote
        open_q, close_q = (quote[0], quote[-1])
        escaped = name.replace(close_q, close_q * 2)
        return f"{open_q}{escaped}{close_q}"

    def quote_table(self, table: TableRef) -> str:
        """Return the (optionally schema-qualified) table name."""
        name = self.quote_identifier(table.name)
        if table.schema_name:
            return f"{self.quote_identifier(table.schema_name)}.{name}"
        return name

    # ------------------------------------------------------------------
    # Literals and parameters
    # ------------------------------------------------------------------

    def param_placeholder(self, name: str) -> str:
        """Return the SQL placeholder string for a named parameter.

        Args:
            name: Parameter name.

        Returns:
            ``:name`` for the ``named`` style, ``%(name)s`` for ``pyformat``.
        """
        if self.dialect.param_style == "pyformat":
            return f"%({name})s"
        return f":{name}"

    def render_literal(self, value: Any) -> str:
        """Render a Python value as an inline SQL literal."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            if not math.isfinite(value):
                raise UnsupportedExpressionError(
                    f"Non-finite float literal {value!r} has no SQL representation.",
                    dialect=self.dialect_name,
                )
            return repr(value)
        if isinstance(value, decimal.Decimal):
            return str(value)
        if isinstance(value, datetime.datetime):
            return self.render_string(value.isoformat(sep=" "))
        if isinstance(value, (datetime.date, datetime.time)):
            return self.render_string(value.isoformat())
        if isinstance(value, str):
            return self.render_string(value)
        raise CompilationError(
            f"Unsupported literal type: {type(value).__name__}", clause="expression"
        )

    def render_string(self, value: str) -> str:
        """Return a single-quoted string literal with quotes doubled."""
        escaped = self.escape_percent(value.replace("'", "''"))
        return f"'{escaped}'"

    def escape_percent(self, sql: str) -> str:
        """Double literal ``%`` signs when the driver formats with ``%(name)s``."""
        if self.dialect.param_style == "pyformat":
            return sql.replace("%", "%%")
        return sql

    def render_operator(self, op: str) -> str:
        """Return the spelling of a binary operator."""
        return self.escape_percent(op)

    # ------------------------------------------------------------------
    # Functions, casts and limits
    # ------------------------------------------------------------------

    def build_func_call(self, name: str, args: list[str]) -> str:
        """Render a function or aggregate call through the dialect's template.

        Args:
            name: Function name as stored on the expression node.
            args: Already-rendered argument SQL fragments.

        Returns:
            The rendered call.

        Raises:
            UnsupportedExpressionError: If the dialect has no template for
                ``name`` or the template's arity does not match ``args``.
        """
        template = self.dialect.function_template(name)
        if template is None:
            raise UnsupportedExpressionError(
                f"Function '{name}' has no translation for dialect '{self.dialect_name}'.",
                function=name,
                dialect=self.dialect_name,
            )
        template = self.escape_percent(template)
        fields = {f for _, f, _, _ in string.Formatter().parse(template) if f is not None}
        if "args" in fields:
            if not args:
                raise UnsupportedExpressionError(
                    f"Function '{name}' needs at least one argument.",
                    function=name,
                    dialect=self.dialect_name,
                )
            return template.format(args=", ".join(args))
        arity = len(fields)
        if len(args) != arity:
            raise UnsupportedExpressionError(
                f"Function '{name}' takes {arity} argument(s) in dialect "
                f"'{self.dialect_name}', got {len(args)}.",
                function=name,
                dialect=self.dialect_name,
            )
        return template.format(*args)

    def cast_to_float(self, sql: str) -> str:
        return f"CAST({sql} AS {self.dialect.float_type})"

    def limit_clause(self, n: int) -> str:
        return self.dialect.limit_template.format(n=n)
