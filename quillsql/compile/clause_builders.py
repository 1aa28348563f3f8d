"""Clause-level SQL builders.

Each class renders exactly one clause from the statement's stored lists and
returns an empty string when the clause has nothing to render.  Aliases are
identifier-quoted through the owning compiler; definitions are inserted as
given (see :func:`render_definition`).

Classes
-------
FieldClauseBuilder: ``<field> AS <alias>, …`` (``*`` when empty)
FromClauseBuilder: ``<table> AS <alias>`` plus joins
FilterClauseBuilder: ``WHERE`` / ``HAVING`` fragments with their glue
OrderClauseBuilder: ``GROUP BY`` / ``ORDER BY``
LimitClauseBuilder: ``LIMIT … OFFSET …``
AssignmentClauseBuilder: ``SET <column> = <value>, …``
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from quillsql.schema.statement import GluedFilter, Statement, TableEntry

if TYPE_CHECKING:
    from quillsql.compile.base import StatementCompiler


def render_definition(value: Any, parenthesize: bool = True) -> str:
    """Render a table, field or filter definition as template text.

    Text is returned unchanged.  A nested statement renders as its own
    applied SELECT, parenthesized unless ``parenthesize`` is false (compound
    members such as ``UNION`` operands); other expressions render through
    their connection.
    """
    if isinstance(value, Statement):
        if parenthesize:
            return str(value)
        return value.get_connection().apply(value.get_select(), value.get_context())
    return str(value)


def _aliased(definition: Any, alias: str, quote) -> str:
    rendered = render_definition(definition)
    if isinstance(definition, str) and definition == alias:
        return rendered
    return f"{rendered} AS {quote(alias)}"


class FieldClauseBuilder:
    """Builds the field list of a SELECT."""

    def __init__(self, compiler: StatementCompiler) -> None:
        self._compiler = compiler

    def build(self, fields: Mapping[str, Any]) -> str:
        if not fields:
            return "*"
        quote = self._compiler.quote_identifier
        return ", ".join(_aliased(definition, alias, quote) for alias, definition in fields.items())


class FromClauseBuilder:
    """Builds a table list: the first table, then comma-listed or joined ones.

    A table without a join filter is comma-listed; one with a filter becomes
    ``<KIND> JOIN <table> ON <filter>``.  The first table's join filter is
    ignored here (UPDATE and DELETE fold it into ``WHERE``).
    """

    def __init__(self, compiler: StatementCompiler) -> None:
        self._compiler = compiler

    def table(self, alias: str, entry: TableEntry) -> str:
        return _aliased(entry.definition, alias, self._compiler.quote_identifier)

    def build(self, tables: list[tuple[str, TableEntry]]) -> str:
        if not tables:
            return ""
        (alias, entry), rest = tables[0], tables[1:]
        sql = self.table(alias, entry)
        for alias, entry in rest:
            if entry.join_filter is None:
                sql += f", {self.table(alias, entry)}"
            else:
                sql += (
                    f"\n{entry.kind.value} JOIN {self.table(alias, entry)}"
                    f" ON {render_definition(entry.join_filter)}"
                )
        return sql


class FilterClauseBuilder:
    """Builds ``WHERE`` / ``HAVING``: every fragment parenthesized and glued.

    The default glue is ``AND``; a :class:`GluedFilter` carries its own.
    The first fragment's glue is dropped.
    """

    def build(self, filters: list[Any], keyword: str = "WHERE") -> str:
        if not filters:
            return ""
        parts: list[str] = []
        for item in filters:
            glue, expression = "AND", item
            if isinstance(item, GluedFilter):
                glue, expression = item.glue, item.expression
            fragment = f"({render_definition(expression)})"
            parts.append(f"{glue} {fragment}" if parts else fragment)
        return f"{keyword} {' '.join(parts)}"


class OrderClauseBuilder:
    """Builds ``GROUP BY`` / ``ORDER BY`` from ``(expression, descending)`` pairs."""

    def build(self, keyword: str, pairs: list[tuple[Any, bool]], directions: bool = True) -> str:
        if not pairs:
            return ""
        items = []
        for expression, descending in pairs:
            sql = render_definition(expression)
            if directions:
                sql += " DESC" if descending else " ASC"
            items.append(sql)
        return f"{keyword} {', '.join(items)}"


class LimitClauseBuilder:
    """Builds ``LIMIT``; a count of zero omits the clause, offset included."""

    def build(self, count: int, offset: int = 0) -> str:
        if not count:
            return ""
        sql = f"LIMIT {count}"
        if offset:
            sql += f" OFFSET {offset}"
        return sql


class AssignmentClauseBuilder:
    """Builds ``SET <column> = <value>`` from the field list (alias = column).

    Unless ``qualified`` is set, only the last namespace segment of the
    alias is used as the column name.
    """

    def __init__(self, compiler: StatementCompiler) -> None:
        self._compiler = compiler

    def build(self, fields: Mapping[str, Any], qualified: bool = False) -> str:
        separator = self._compiler.style.name_separator
        quote = self._compiler.quote_identifier
        assignments = []
        for alias, value in fields.items():
            column = alias if qualified else alias.rsplit(separator, 1)[-1]
            assignments.append(f"{quote(column)} = {render_definition(value)}")
        return f"SET {', '.join(assignments)}"
