"""Custom exception hierarchy for lazyql.

All public errors inherit from :class:`LazyQLError` so callers can catch the
base class for any lazyql-specific failure.  Compile-time failures derive
from :class:`CompilationError` and are always raised before any SQL text is
returned.
"""
from __future__ import annotations

from typing import Any


class LazyQLError(Exception):
    """Base exception for all lazyql errors."""


class PlanError(LazyQLError):
    """Raised when a builder call receives malformed arguments.

    Args:
        message: Human-readable description.
        operation: The builder operation being constructed (e.g. ``"sort"``).
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class CompilationError(LazyQLError):
    """Raised when a Plan cannot be compiled to SQL.

    Args:
        message: Human-readable description.
        code: Machine-readable error code (e.g. ``UNRESOLVED_COLUMN``).
        clause: The clause being compiled when the error occurred.
        details: Extra structured context for the caller.
    """

    def __init__(
        self,
        message: str,
        code: str = "COMPILATION_ERROR",
        clause: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.clause = clause
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response suitable for API callers."""
        return {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }


class UnresolvedColumnError(CompilationError):
    """Raised when an expression references a name not visible in its scope."""

    def __init__(self, column: str, available: list[str], open_scope: bool = False) -> None:
        message = f"Column '{column}' is not visible at this point in the plan."
        if available:
            message += f" Available columns: {', '.join(available)}."
        super().__init__(
            message,
            code="UNRESOLVED_COLUMN",
            details={"column": column, "available": available, "open_scope": open_scope},
        )
        self.column = column


class AmbiguousColumnError(CompilationError):
    """Raised when a name cannot be attributed to exactly one join side."""

    def __init__(self, message: str, column: str | None = None, relations: list[str] | None = None) -> None:
        super().__init__(
            message,
            code="AMBIGUOUS_COLUMN",
            clause="JOIN",
            details={"column": column, "relations": relations or []},
        )
        self.column = column


class UnsupportedExpressionError(CompilationError):
    """Raised when an expression has no translation for the active dialect."""

    def __init__(self, message: str, function: str | None = None, dialect: str | None = None) -> None:
        super().__init__(
            message,
            code="UNSUPPORTED_EXPRESSION",
            details={"function": function, "dialect": dialect},
        )
        self.function = function


class DialectCapabilityError(CompilationError):
    """Raised when a plan needs a feature the dialect does not support."""

    def __init__(self, message: str, feature: str, dialect: str) -> None:
        super().__init__(
            message,
            code="DIALECT_CAPABILITY",
            details={"feature": feature, "dialect": dialect},
        )
        self.feature = feature


class DialectConfigError(LazyQLError):
    """Raised when a :class:`~lazyql.schema.dialect.Dialect` is misconfigured.

    Detected at :meth:`DialectBuilder.build` time, before any query is
    rendered.

    Args:
        message: Human-readable description.
        field: The configuration field at fault.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class MissingParamError(LazyQLError):
    """Raised when a rendered query needs a parameter the caller did not bind."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"No value bound for parameter(s): {', '.join(missing)}.")
        self.missing = missing


class ExecutionError(LazyQLError):
    """Raised when the external executor fails to run a rendered query.

    The driver exception is preserved as ``original`` (and ``__cause__``);
    lazyql never retries.

    Args:
        message: Human-readable description.
        sql: The statement that was being executed.
        original: The exception raised by the executor.
    """

    def __init__(self, message: str, sql: str, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.sql = sql
        self.original = original
