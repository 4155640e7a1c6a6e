"""Dialect capability validator.

Checks that the plan does not use SQL features the target dialect lacks
(``RIGHT JOIN`` and ``FULL JOIN``).  Unsupported joins are reported, never
rewritten into a different join kind.
"""

from __future__ import annotations

from lazyql.errors import DialectCapabilityError
from lazyql.schema.dialect import Dialect
from lazyql.schema.operations import JoinOp


class DialectValidator:
    """Validates plan features against the dialect's capability flags.

    Args:
        dialect: The dialect the plan will be rendered for.
    """

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    def validate_join(self, op: JoinOp) -> None:
        """Raise if the join kind is unavailable.

        Raises:
            DialectCapabilityError: If the dialect lacks the join kind.
        """
        if op.how == "full" and not self._dialect.supports_full_join:
            raise DialectCapabilityError(
                f"FULL JOIN is not supported by dialect '{self._dialect.name}'.",
                feature="supports_full_join",
                dialect=self._dialect.name,
            )
        if op.how == "right" and not self._dialect.supports_right_join:
            raise DialectCapabilityError(
                f"RIGHT JOIN is not supported by dialect '{self._dialect.name}'.",
                feature="supports_right_join",
                dialect=self._dialect.name,
            )
