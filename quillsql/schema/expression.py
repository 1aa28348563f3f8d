"""Reusable SQL fragments bound to a connection.

An :class:`Expression` is a template plus its own context.  Rendering it
(``str(expr)``) applies the context through the connection, and the quoting
engine inserts the rendered text verbatim wherever an expression appears as
a value, so expressions nest inside statements and other expressions::

    lower = connection.expression("LOWER({!column})", {"column": "u.name"})
    statement.add_filter(connection.expression("{?lower} = {name}", {
        "lower": lower, "name": "ada",
    }))
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from quillsql.schema.context import Context

if TYPE_CHECKING:
    from quillsql.execute.connection import Connection

#: Names matching this pattern are inserted raw by :class:`Name` (SQL
#: keywords and built-in functions such as ``COUNT`` or ``NOW``).
RAW_NAME_PATTERN = re.compile(r"^[A-Z0-9_]+$")


class Expression:
    """A template fragment with its own context.

    Args:
        connection: Connection used to apply the template.
        definition: Template text.
        context: Values for the template's placeholders.
    """

    def __init__(
        self,
        connection: Connection,
        definition: str,
        context: Context | Mapping[str, Any] | None = None,
    ) -> None:
        self._connection = connection
        self._definition = definition
        self._context = Context(context)

    def __str__(self) -> str:
        return self._connection.apply(self._definition, self._context)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._definition!r})"

    def get_connection(self) -> Connection:
        return self._connection

    def get_definition(self) -> str:
        return self._definition

    def _set_definition(self, value: str) -> None:
        self._definition = value

    def get_context(self) -> Context:
        return self._context

    def set_context(self, value: Context | Mapping[str, Any]) -> None:
        self._context = value if isinstance(value, Context) else Context(value)

    def clone(self) -> Expression:
        """Return a copy whose context is independent of this one."""
        duplicate = type(self).__new__(type(self))
        duplicate.__dict__.update(self.__dict__)
        duplicate._context = self._context.clone()
        return duplicate


class Name(Expression):
    """A (function) name, optionally followed by an argument list.

    Args:
        connection: Connection used to apply the template.
        definition: The name, e.g. ``users.email`` or ``COUNT``.
        arguments: Values rendered as ``(a,b)``; ``[]`` renders ``()``.
        quote: Force identifier quoting on or off.  ``None`` quotes every
            name except upper-case keywords matching :data:`RAW_NAME_PATTERN`.
    """

    def __init__(
        self,
        connection: Connection,
        definition: str,
        arguments: Sequence[Any] | None = None,
        quote: bool | None = None,
    ) -> None:
        style = connection.compiler.style
        if quote is None:
            quote = RAW_NAME_PATTERN.match(definition) is None
        marker = style.name_marker if quote else style.raw_marker

        template = f"{{{marker}definition}}"
        if arguments is not None:
            template += "{?argument}" if not arguments else "{argument}"

        super().__init__(connection, template, {
            "definition": definition,
            # nesting the list once drops the quoter's outer parentheses
            "argument": [list(arguments)] if arguments else "()",
        })
