"""Value and identifier quoting.

``Quoter`` turns Python values into SQL literal text and names into quoted
identifiers.  It holds no state beyond the dialect's :class:`QuoteStyle` and
the driver's ``escape`` function, so quoting the same value twice always
yields the same text.

Value rules
-----------
=====================  ==========================================
``True`` / ``False``   ``1`` / ``0``
int, float, Decimal    literal text, unquoted (``.`` decimal point);
                       NaN and infinity raise InvalidArgumentError
``Expression``         its rendered text, inserted verbatim
sequence               ``(a,b)``; ``a,b`` when any item is itself a
                       sequence; ``NULL`` when empty
``None``               ``NULL``
anything else          escaped text inside the value quote
=====================  ==========================================
"""
from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from quillsql.errors import InvalidArgumentError
from quillsql.schema.config import QuoteStyle
from quillsql.schema.expression import Expression

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def is_sequence(value: Any) -> bool:
    """Return ``True`` for values quoted as a list (mappings quote their values)."""
    return isinstance(value, _SEQUENCE_TYPES) or isinstance(value, Mapping)


def _items(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return list(value.values())
    return list(value)


def _number(value: int | float | Decimal) -> str:
    if isinstance(value, Decimal):
        finite = value.is_finite()
    elif isinstance(value, float):
        finite = math.isfinite(value)
    else:
        finite = True
    if not finite:
        raise InvalidArgumentError(f"{value!r} has no SQL literal", argument="value")
    if isinstance(value, float):
        return repr(value)
    return str(value)


class Quoter:
    """Quotes values and identifiers for one dialect.

    Args:
        style: Delimiter characters of the dialect.
        escape: Driver escape function applied to text values.
    """

    def __init__(self, style: QuoteStyle, escape: Callable[[str], str]) -> None:
        self.style = style
        self._escape = escape

    def escape(self, text: str) -> str:
        return self._escape(text)

    def quote_value(self, value: Any) -> str:
        """Return ``value`` as SQL literal text."""
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float, Decimal)):
            return _number(value)
        if isinstance(value, Expression):
            return str(value)
        if is_sequence(value):
            items = _items(value)
            if not items:
                return "NULL"
            return self._join(items, self.quote_value)
        if value is None:
            return "NULL"
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8")
        quote = self.style.value_quote
        return f"{quote}{self._escape(str(value))}{quote}"

    def quote_identifier(self, value: Any) -> str:
        """Return ``value`` as a quoted (possibly namespaced) identifier.

        Existing identifier quotes around each segment are stripped before
        re-quoting, so ``a.`b``` and ``a.b`` quote identically.  Values that
        are neither text nor sequences quote to an empty string.
        """
        if isinstance(value, str):
            quote = self.style.identifier_quote
            separator = self.style.name_separator
            return separator.join(
                f"{quote}{segment.strip(quote)}{quote}" for segment in value.split(separator)
            )
        if is_sequence(value):
            items = _items(value)
            if items:
                return self._join(items, self.quote_identifier)
        return ""

    @staticmethod
    def _join(items: list[Any], quote: Callable[[Any], str]) -> str:
        nested = any(is_sequence(item) for item in items)
        body = ",".join(quote(item) for item in items)
        return body if nested else f"({body})"
