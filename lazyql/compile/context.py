"""Compilation context value objects.

``CompilationContext`` packages the static configuration of a render (the
compiler bound to its dialect); ``RuntimeContext`` carries the mutable
per-render state that must be unique across the whole statement.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from lazyql.compile.base import SQLCompiler


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for a single compilation run.

    Attributes:
        compiler: Dialect-specific SQL compiler instance.
    """

    compiler: SQLCompiler

    @property
    def dialect(self):
        return self.compiler.dialect


@dataclass
class RuntimeContext:
    """Per-render state shared by the planner and every sub-builder.

    A single instance is created per ``build()`` call so subquery aliases are
    globally unique and numbered in planning order (``q01``, ``q02``, ...),
    which keeps rendering deterministic.
    """

    params: list[str] = field(default_factory=list)
    _alias_counter: int = 0

    def next_alias(self) -> str:
        """Return a fresh subquery alias."""
        self._alias_counter += 1
        return f"q{self._alias_counter:02d}"

    def add_param(self, name: str) -> None:
        """Record that the statement needs runtime parameter ``name``."""
        if name not in self.params:
            self.params.append(name)
