"""Dialect registry (Open/Closed Principle).

``DialectRegistry``
    Central registry of :class:`~lazyql.schema.dialect.Dialect`
    configurations and the :class:`~lazyql.compile.base.SQLCompiler` class
    that renders each one.  Register a dialect once; ``render`` and
    ``collect`` look it up by name.

The registry is populated with the built-in dialects when :mod:`lazyql` is
imported and is treated as read-only afterwards.

Usage::

    from lazyql.compile.registry import DialectRegistry

    DialectRegistry.register(my_dialect)

    @DialectRegistry.register_compiler("mydb")
    class MyDBCompiler(SQLCompiler):
        ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from lazyql.compile.base import SQLCompiler
from lazyql.errors import CompilationError
from lazyql.schema.dialect import Dialect


class DialectRegistry:
    """Registry mapping dialect names to configurations and compiler classes.

    Example::

        DialectRegistry.register(
            Dialect.builder("duckdb", base=DialectRegistry.get("postgres")).build()
        )
        compiler = DialectRegistry.create("duckdb")
    """

    _dialects: ClassVar[dict[str, Dialect]] = {}
    _compilers: ClassVar[dict[str, type[SQLCompiler]]] = {}

    @classmethod
    def register(cls, dialect: Dialect, compiler_cls: type[SQLCompiler] | None = None) -> Dialect:
        """Register ``dialect`` under its name.

        Args:
            dialect: The dialect configuration.
            compiler_cls: Optional :class:`SQLCompiler` subclass for it.

        Returns:
            The registered dialect.
        """
        cls._dialects[dialect.name] = dialect
        if compiler_cls is not None:
            cls._compilers[dialect.name] = compiler_cls
        return dialect

    @classmethod
    def register_compiler(cls, name: str) -> Callable[[type[SQLCompiler]], type[SQLCompiler]]:
        """Decorator that registers a compiler class for dialect ``name``.

        Args:
            name: The dialect name (e.g. ``"mysql"``).

        Returns:
            A decorator that registers and returns the compiler class.
        """

        def decorator(compiler_cls: type[SQLCompiler]) -> type[SQLCompiler]:
            cls._compilers[name] = compiler_cls
            return compiler_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> Dialect:
        """Return the dialect registered as ``name``.

        Raises:
            CompilationError: If no dialect is registered for ``name``.
        """
        dialect = cls._dialects.get(name)
        if dialect is None:
            raise CompilationError(
                f"Unsupported dialect: '{name}'. Registered dialects: {cls.registered_dialects()}."
            )
        return dialect

    @classmethod
    def resolve(cls, dialect: str | Dialect) -> Dialect:
        """Accept a dialect name or instance and return the instance."""
        if isinstance(dialect, Dialect):
            return dialect
        return cls.get(dialect)

    @classmethod
    def create(cls, dialect: str | Dialect) -> SQLCompiler:
        """Instantiate the compiler for ``dialect``.

        Unregistered :class:`Dialect` instances are rendered with the plain
        :class:`SQLCompiler`.

        Args:
            dialect: A registered dialect name or a :class:`Dialect`.

        Returns:
            A fresh :class:`SQLCompiler` bound to the dialect.

        Raises:
            CompilationError: If ``dialect`` is an unknown name.
        """
        resolved = cls.resolve(dialect)
        compiler_cls = cls._compilers.get(resolved.name, SQLCompiler)
        return compiler_cls(resolved)

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._dialects)
