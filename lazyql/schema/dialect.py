"""Pydantic model for SQL dialect configuration.

A :class:`Dialect` describes one SQL variant: its reserved words, function
translations, quoting and capability flags.  Dialects are plain frozen
configuration; behaviour lives in :class:`~lazyql.compile.base.SQLCompiler`.

Create variants through the builder, starting from a registered base::

    from lazyql import Dialect, DialectRegistry

    duck = (
        Dialect.builder("duckdb", base=DialectRegistry.get("postgres"))
        .functions({"median": "MEDIAN({0})"})
        .param_style("named")
        .build()
    )
    DialectRegistry.register(duck)

Function templates use :meth:`str.format` syntax: positional fields
(``{0}``, ``{1}``) for fixed arity, or ``{args}`` for a comma-separated
variadic argument list.
"""
from __future__ import annotations

import string
from collections.abc import Iterable, Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lazyql.errors import DialectConfigError

#: Supported bind-parameter placeholder styles.
ParamStyle = Literal["named", "pyformat"]


class Dialect(BaseModel):
    """Configuration for one SQL dialect.

    Attributes:
        name: Registry name (``'postgres'``, ``'sqlite'``, ...).
        reserved_words: Upper-cased words that must be quoted as identifiers.
        function_map: Function / aggregate name → SQL template.
        integer_division_requires_cast: ``int / int`` truncates in this
            dialect, so the dividend is cast to ``float_type``.
        supports_full_join: ``FULL JOIN`` is available.
        supports_right_join: ``RIGHT JOIN`` is available.
        quote_all_identifiers: Quote every identifier, reserved or not.
        identifier_quote: One quote character, or an open/close pair
            (``"[]"``).
        float_type: Type name used for floating-point casts.
        param_style: Bind-parameter placeholder style.
        limit_template: Row-limit clause template with an ``{n}`` field.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    reserved_words: frozenset[str] = frozenset()
    function_map: dict[str, str] = Field(default_factory=dict)
    integer_division_requires_cast: bool = False
    supports_full_join: bool = True
    supports_right_join: bool = True
    quote_all_identifiers: bool = False
    identifier_quote: str = '"'
    float_type: str = "DOUBLE PRECISION"
    param_style: ParamStyle = "named"
    limit_template: str = "LIMIT {n}"

    @field_validator("reserved_words")
    @classmethod
    def _upper_reserved(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(w.upper() for w in v)

    @field_validator("function_map")
    @classmethod
    def _lower_function_names(cls, v: dict[str, str]) -> dict[str, str]:
        return {k.lower(): t for k, t in v.items()}

    @classmethod
    def builder(cls, name: str, base: Dialect | None = None) -> DialectBuilder:
        """Return a :class:`DialectBuilder`, optionally seeded from ``base``.

        Args:
            name: Name of the new dialect.
            base: Existing dialect to copy every setting from.

        Returns:
            A fresh :class:`DialectBuilder`.
        """
        return DialectBuilder(name=name, base=base)

    def is_reserved(self, word: str) -> bool:
        """True when ``word`` is reserved in this dialect (case-insensitive)."""
        return word.upper() in self.reserved_words

    def function_template(self, name: str) -> str | None:
        """Return the template registered for ``name``, or ``None``."""
        return self.function_map.get(name.lower())


class DialectBuilder:
    """Fluent builder for :class:`Dialect`.

    Always obtained via :meth:`Dialect.builder`.  Each method changes one
    setting; :meth:`build` validates the combination.

    Example, a MySQL-like dialect without FULL JOIN::

        dialect = (
            Dialect.builder("mariadb", base=DialectRegistry.get("mysql"))
            .reserved_words(["OFFSET"])
            .full_join(False)
            .build()
        )
    """

    def __init__(self, name: str, base: Dialect | None = None) -> None:
        seed = base.model_dump() if base is not None else {}
        seed["name"] = name
        self._settings: dict = seed
        self._settings.setdefault("reserved_words", frozenset())
        self._settings.setdefault("function_map", {})
        self._settings["function_map"] = dict(self._settings["function_map"])

    def reserved_words(self, words: Iterable[str], replace: bool = False) -> DialectBuilder:
        """Add reserved words (or replace the whole set with ``replace=True``)."""
        upper = frozenset(w.upper() for w in words)
        current = frozenset() if replace else frozenset(self._settings["reserved_words"])
        self._settings["reserved_words"] = current | upper
        return self

    def functions(self, mapping: Mapping[str, str]) -> DialectBuilder:
        """Add or override function templates."""
        for name, template in mapping.items():
            self._settings["function_map"][name.lower()] = template
        return self

    def without_functions(self, *names: str) -> DialectBuilder:
        """Remove function translations (calls will raise UnsupportedExpressionError)."""
        for name in names:
            self._settings["function_map"].pop(name.lower(), None)
        return self

    def integer_division_requires_cast(self, required: bool = True) -> DialectBuilder:
        self._settings["integer_division_requires_cast"] = required
        return self

    def full_join(self, supported: bool = True) -> DialectBuilder:
        self._settings["supports_full_join"] = supported
        return self

    def right_join(self, supported: bool = True) -> DialectBuilder:
        self._settings["supports_right_join"] = supported
        return self

    def quote_all_identifiers(self, enabled: bool = True) -> DialectBuilder:
        self._settings["quote_all_identifiers"] = enabled
        return self

    def identifier_quote(self, quote: str) -> DialectBuilder:
        self._settings["identifier_quote"] = quote
        return self

    def float_type(self, type_name: str) -> DialectBuilder:
        self._settings["float_type"] = type_name
        return self

    def param_style(self, style: ParamStyle) -> DialectBuilder:
        self._settings["param_style"] = style
        return self

    def limit_template(self, template: str) -> DialectBuilder:
        self._settings["limit_template"] = template
        return self

    def build(self) -> Dialect:
        """Validate the configuration and return the :class:`Dialect`.

        Raises:
            DialectConfigError: When a setting can never render valid SQL.
        """
        self._validate()
        try:
            return Dialect(**self._settings)
        except ValueError as exc:
            raise DialectConfigError(f"Invalid dialect settings: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        """Raise :class:`DialectConfigError` for invalid configurations.

        Rules
        -----
        ``identifier_quote``
            One character, or exactly two (open and close).
        ``function_map``
            Every template parses as a format string and uses only
            positional fields or the ``{args}`` field, not both.
        ``limit_template``
            Contains an ``{n}`` field.
        """
        quote = self._settings.get("identifier_quote", '"')
        if len(quote) not in (1, 2):
            raise DialectConfigError(
                f"identifier_quote must be one or two characters, got {quote!r}.",
                field="identifier_quote",
            )

        for name, template in self._settings["function_map"].items():
            fields = _template_fields(name, template)
            if "args" in fields and len(fields) > 1:
                raise DialectConfigError(
                    f"Template for {name!r} mixes {{args}} with positional fields.",
                    field="function_map",
                )
            unknown = [f for f in fields if f != "args" and not f.isdigit()]
            if unknown:
                raise DialectConfigError(
                    f"Template for {name!r} uses unknown fields {unknown}; "
                    "use positional fields ({0}, {1}) or {args}.",
                    field="function_map",
                )

        limit = self._settings.get("limit_template", "LIMIT {n}")
        if "n" not in _template_fields("limit_template", limit):
            raise DialectConfigError(
                "limit_template must contain an {n} field.", field="limit_template"
            )


def _template_fields(name: str, template: str) -> set[str]:
    try:
        return {
            field for _, field, _, _ in string.Formatter().parse(template) if field is not None
        }
    except ValueError as exc:
        raise DialectConfigError(
            f"Template for {name!r} is not a valid format string: {exc}",
            field="function_map",
        ) from exc
