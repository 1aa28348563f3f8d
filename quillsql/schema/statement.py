"""Statement builder: the clauses of one SELECT/INSERT/UPDATE/DELETE.

A :class:`Statement` accumulates tables, fields, filters, grouping,
ordering, limit, flags and custom fragments.  It renders nothing itself:
the connection's dialect compiler turns the clauses into template text, and
every execution call compiles afresh, so the builder can be mutated and
executed repeatedly::

    stmt = connection.statement()
    stmt.add_table("users", "u")
    stmt.add_field("u.id").add_field("u.name")
    stmt.add_filter("u.active = {filter.WHERE.active}", {"active": True})
    stmt.set_limit(10)
    rows = stmt.search()

Clause operations share one shape: ``get_*`` reads, ``set_*`` replaces (some
optionally merge), ``add_*`` appends one item and ``remove_*`` removes by
key or clears everything.  Mutators return the statement for chaining.

Alias policy
------------
Tables and fields share one alias space.  When no alias is given, a text
definition is its own alias; a nested statement or expression without an
alias cannot be referenced and is **not stored** (a warning is logged).  An
alias that is already taken is left untouched unless ``overwrite=True`` is
passed: the first writer wins.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from quillsql.errors import InvalidArgumentError, UnsupportedCustomError, UnsupportedFilterError
from quillsql.schema.context import PATH_SEPARATOR, Context
from quillsql.schema.expression import Expression

if TYPE_CHECKING:
    from quillsql.compile.base import StatementCompiler
    from quillsql.execute.connection import Connection
    from quillsql.execute.result import Result

logger = logging.getLogger(__name__)


class JoinKind(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass
class TableEntry:
    """One entry of the table list.

    Attributes:
        definition: Table name, or a nested statement used as a derived table.
        join_filter: ``ON`` condition; ``None`` lists the table without a join.
        kind: Join kind used when ``join_filter`` is set.
    """

    definition: Any
    join_filter: Any = None
    kind: JoinKind = JoinKind.INNER


@dataclass(frozen=True)
class GluedFilter:
    """A filter fragment joined to the previous one with a non-default glue."""

    glue: str
    expression: Any


class Statement(Expression):
    """Mutable builder for one SQL statement.

    Args:
        connection: Connection that compiles and executes the statement.
        context: Default context merged under every execution's context.
    """

    FILTER_SIMPLE = "WHERE"
    FILTER_GROUP = "HAVING"

    CONTEXT_FIELD = "field"
    CONTEXT_FILTER = "filter"

    def __init__(
        self,
        connection: Connection,
        context: Context | Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(connection, "", context)
        self._table: dict[str, TableEntry] = {}
        self._field: dict[str, Any] = {}
        self._filter: dict[str, list[Any]] = {}
        self._group: list[tuple[Any, bool]] = []
        self._sort: list[tuple[Any, bool]] = []
        self._limit = 0
        self._offset = 0
        self._flag: dict[str, str] = {}
        self._custom: dict[str, list[Any]] = {}

        compiler = connection.compiler
        self.support_filter(compiler.filter_types)
        self.support_custom(compiler.custom_names)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        """Render as a parenthesized sub-select with the own context applied."""
        self._set_definition(f"({self.get_select()})")
        return super().__str__()

    def get_select(self) -> str:
        return self.compiler.render_select(self)

    def get_insert(self) -> str:
        return self.compiler.render_insert(self)

    def get_update(self) -> str:
        return self.compiler.render_update(self)

    def get_delete(self) -> str:
        return self.compiler.render_delete(self)

    @property
    def compiler(self) -> StatementCompiler:
        return self.get_connection().compiler

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def search(self, context: Context | Mapping[str, Any] | None = None) -> Result | list[Result]:
        """Execute the SELECT command."""
        return self._execute(self.get_select(), context)

    def create(self, context: Context | Mapping[str, Any] | None = None) -> Result | list[Result]:
        """Execute the INSERT command."""
        return self._execute(self.get_insert(), context)

    def update(self, context: Context | Mapping[str, Any] | None = None) -> Result | list[Result]:
        """Execute the UPDATE command."""
        return self._execute(self.get_update(), context)

    def remove(self, context: Context | Mapping[str, Any] | None = None) -> Result | list[Result]:
        """Execute the DELETE command."""
        return self._execute(self.get_delete(), context)

    def _execute(self, template: str, context: Context | Mapping[str, Any] | None) -> Result | list[Result]:
        merged = self.get_context().clone().merge(context)
        return self.get_connection().execute(template, merged)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_table(self, alias: str | None = None) -> dict[str, TableEntry] | TableEntry | None:
        if alias is None:
            return dict(self._table)
        return self._table.get(alias)

    def set_table(self, tables: Mapping[str, TableEntry | Mapping[str, Any]]) -> Statement:
        """Replace the table list.

        Each value is a :class:`TableEntry` or a mapping with a
        ``definition`` key and optional ``join_filter`` and ``kind``.  An alias
        already used by a field is skipped.
        """
        table: dict[str, TableEntry] = {}
        for alias, data in tables.items():
            if isinstance(data, TableEntry):
                entry = data
            elif isinstance(data, Mapping) and data.get("definition") is not None:
                entry = TableEntry(
                    definition=data["definition"],
                    join_filter=data.get("join_filter"),
                    kind=_join_kind(data.get("kind", JoinKind.INNER)),
                )
            else:
                raise InvalidArgumentError(
                    f"Table '{alias}' must contain a 'definition'", argument="tables"
                )
            if not self._alias_taken(alias, self._field, "table", entry.definition):
                table[alias] = entry
        self._table = table
        return self

    def add_table(
        self,
        definition: Any,
        alias: str | None = None,
        join_filter: Any = None,
        kind: JoinKind | str = JoinKind.INNER,
        overwrite: bool = False,
    ) -> Statement:
        """Add a table, optionally joined with ``join_filter``."""
        kind = _join_kind(kind)
        alias = self._resolve_alias(definition, alias, overwrite, "table")
        if alias is not None:
            self._table[alias] = TableEntry(definition, join_filter, kind)
        return self

    def remove_table(self, aliases: Iterable[str] | str | None = None) -> Statement:
        """Remove tables by alias; ``None`` removes every table."""
        if aliases is None:
            self._table = {}
        else:
            for alias in _as_list(aliases):
                self._table.pop(alias, None)
        return self

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def get_field(self, alias: str | None = None) -> dict[str, Any] | Any:
        if alias is None:
            return dict(self._field)
        return self._field.get(alias)

    def set_field(self, fields: Mapping[str, Any] | Sequence[Any], merge: bool = False) -> Statement:
        """Replace (or with ``merge`` update) the field list.

        A sequence item is its own alias.  When merging, existing fields keep
        their position and new values win on an alias collision.
        An alias already used by a table is skipped.
        """
        if isinstance(fields, Mapping):
            items = list(fields.items())
        else:
            items = []
            for definition in fields:
                if not isinstance(definition, str):
                    raise InvalidArgumentError(
                        "Fields without an alias must be text", argument="fields"
                    )
                items.append((definition, definition))

        field = dict(self._field) if merge else {}
        for alias, definition in items:
            if not self._alias_taken(alias, self._table, "field", definition):
                field[alias] = definition
        self._field = field
        return self

    def add_field(self, definition: Any, alias: str | None = None, overwrite: bool = False) -> Statement:
        alias = self._resolve_alias(definition, alias, overwrite, "field")
        if alias is not None:
            self._field[alias] = definition
        return self

    def remove_field(self, aliases: Iterable[str] | str | None = None) -> Statement:
        """Remove fields by alias; ``None`` removes every field."""
        if aliases is None:
            self._field = {}
        else:
            for alias in _as_list(aliases):
                self._field.pop(alias, None)
        return self

    def _resolve_alias(self, definition: Any, alias: str | None, overwrite: bool, kind: str) -> str | None:
        if not alias:
            if not isinstance(definition, str):
                logger.warning("Dropped %s %r: a nested definition needs an alias", kind, definition)
                return None
            alias = definition
        if not overwrite and self._alias_taken(alias, {**self._table, **self._field}, kind, definition):
            return None
        if overwrite:
            # the alias moves to the new list
            self._table.pop(alias, None)
            self._field.pop(alias, None)
        return alias

    @staticmethod
    def _alias_taken(alias: str, taken: Mapping[str, Any], kind: str, definition: Any) -> bool:
        if alias not in taken:
            return False
        logger.debug("Ignored %s %r: alias %r is already taken", kind, definition, alias)
        return True

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def support_filter(self, types: Iterable[str] | str, enable: bool = True) -> Statement:
        """Declare (or with ``enable=False`` withdraw) filter types."""
        for filter_type in _as_list(types):
            if not enable:
                self._filter.pop(filter_type, None)
            else:
                self._filter.setdefault(filter_type, [])
        return self

    def get_filter(self, type: str = FILTER_SIMPLE) -> list[Any]:
        return list(self._filter_list(type))

    def set_filter(
        self,
        filters: Sequence[Any],
        context: Context | Mapping[str, Any] | None = None,
        merge: bool = False,
        type: str = FILTER_SIMPLE,
    ) -> Statement:
        """Replace the filters of ``type``.

        Without ``merge`` the type's context subtree is replaced as well.
        With ``merge`` the new filters are prepended to the existing ones
        (an expression already present is kept once) and the context is
        merged on top.
        """
        current = self._filter_list(type)
        filters = list(filters)
        if merge:
            filters += [item for item in current if item not in filters]
        else:
            self.get_context().unset(self._filter_path(type))
        self._filter[type] = filters
        self.get_context().merge(context, self._filter_path(type))
        return self

    def add_filter(
        self,
        expression: Any,
        context: Context | Mapping[str, Any] | None = None,
        type: str = FILTER_SIMPLE,
        glue: str = "AND",
    ) -> Statement:
        """Append one filter; ``context`` is merged under ``filter.<type>``."""
        filters = self._filter_list(type)
        if glue.upper() != "AND":
            expression = GluedFilter(glue.upper(), expression)
        filters.append(expression)
        self.get_context().merge(context, self._filter_path(type))
        return self

    def remove_filter(
        self,
        type: str | None = None,
        expression: Any = None,
        context_keys: Iterable[str] | None = None,
    ) -> Statement:
        """Remove filters and their context.

        ``type=None`` empties every declared type (the declarations stay);
        ``expression=None`` empties one type; otherwise the first exact match
        of ``expression`` is removed.  Emptying a list also drops its
        context subtree; removing one expression keeps the context, since
        the remaining filters may share its values.  ``context_keys`` removes
        exactly those keys below the filter path.
        """
        if type is None:
            self._filter = {name: [] for name in self._filter}
        else:
            filters = self._filter_list(type)
            if expression is None:
                filters.clear()
            else:
                for index, item in enumerate(filters):
                    if item == expression or (
                        isinstance(item, GluedFilter) and item.expression == expression
                    ):
                        del filters[index]
                        break

        path = self._filter_path(type)
        if context_keys is not None:
            for key in context_keys:
                self.get_context().unset(f"{path}{PATH_SEPARATOR}{key}")
        elif type is None or expression is None:
            self.get_context().unset(path)
        return self

    def _filter_list(self, type: str | None) -> list[Any]:
        if type not in self._filter:
            raise UnsupportedFilterError(type)
        return self._filter[type]

    def _filter_path(self, type: str | None) -> str:
        if type is None:
            return self.CONTEXT_FILTER
        return f"{self.CONTEXT_FILTER}{PATH_SEPARATOR}{type}"

    # ------------------------------------------------------------------
    # Grouping and sorting
    # ------------------------------------------------------------------

    def get_group(self) -> list[tuple[Any, bool]]:
        return list(self._group)

    def set_group(self, pairs: Iterable[Sequence[Any]]) -> Statement:
        """Replace the group list with ``(expression, descending)`` pairs."""
        self._group = _pairs(pairs)
        return self

    def add_group(self, expression: Any, descending: bool = False) -> Statement:
        self._group.append((expression, bool(descending)))
        return self

    def remove_group(self, expressions: Iterable[Any] | None = None) -> Statement:
        self._group = _without(self._group, expressions)
        return self

    def get_sort(self) -> list[tuple[Any, bool]]:
        return list(self._sort)

    def set_sort(self, pairs: Iterable[Sequence[Any]]) -> Statement:
        """Replace the sort list with ``(expression, descending)`` pairs."""
        self._sort = _pairs(pairs)
        return self

    def add_sort(self, expression: Any, descending: bool = False) -> Statement:
        self._sort.append((expression, bool(descending)))
        return self

    def remove_sort(self, expressions: Iterable[Any] | None = None) -> Statement:
        self._sort = _without(self._sort, expressions)
        return self

    # ------------------------------------------------------------------
    # Limit
    # ------------------------------------------------------------------

    def get_limit(self) -> tuple[int, int]:
        """Return ``(count, offset)``; a count of 0 means no LIMIT clause."""
        return self._limit, self._offset

    def set_limit(self, count: int, offset: int | None = None) -> Statement:
        """Set the row count and, when given, the offset."""
        try:
            count = int(count)
            offset = self._offset if offset is None else int(offset)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"Invalid limit: {exc}", argument="limit") from exc
        if count < 0 or offset < 0:
            raise InvalidArgumentError(
                f"Limit and offset must not be negative, got ({count}, {offset})",
                argument="limit",
            )
        self._limit = count
        self._offset = offset
        return self

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def get_flag(self, name: str | None = None) -> list[str] | bool:
        """Return every flag, or whether ``name`` is set."""
        if name is None:
            return list(self._flag)
        return name in self._flag

    def set_flag(self, name: str | None = None, enable: bool = True) -> Statement:
        """Set or clear one flag; ``name=None`` clears every flag."""
        if name is None:
            self._flag = {}
        elif enable:
            self._flag[name] = name
        else:
            self._flag.pop(name, None)
        return self

    # ------------------------------------------------------------------
    # Custom fragments
    # ------------------------------------------------------------------

    def support_custom(self, names: Iterable[str] | str, enable: bool = True) -> Statement:
        """Declare (or with ``enable=False`` withdraw) custom fragment names."""
        for name in _as_list(names):
            name = name.lower()
            if not enable:
                self._custom.pop(name, None)
            else:
                self._custom.setdefault(name, [])
        return self

    def get_custom(self, name: str | None = None) -> list[Any] | dict[str, list[Any]]:
        """Return the definitions of ``name``, or every declared list."""
        if name is None:
            return {key: list(value) for key, value in self._custom.items()}
        return list(self._custom_list(name))

    def add_custom(self, name: str, definition: Any) -> Statement:
        self._custom_list(name).append(definition)
        return self

    def remove_custom(self, name: str | None = None, definition: Any = None) -> Statement:
        """Remove custom definitions.

        ``name=None`` empties every declared name; ``definition=None``
        empties one name; otherwise the first matching definition goes.
        """
        if name is None:
            self._custom = {key: [] for key in self._custom}
            return self
        definitions = self._custom_list(name)
        if definition is None:
            definitions.clear()
        elif definition in definitions:
            definitions.remove(definition)
        return self

    def _custom_list(self, name: str) -> list[Any]:
        key = name.lower() if isinstance(name, str) else name
        if key not in self._custom:
            raise UnsupportedCustomError(name)
        return self._custom[key]

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self) -> Statement:
        """Return an independent copy (clause lists and context)."""
        duplicate = super().clone()
        duplicate._table = dict(self._table)
        duplicate._field = dict(self._field)
        duplicate._filter = {key: list(value) for key, value in self._filter.items()}
        duplicate._group = list(self._group)
        duplicate._sort = list(self._sort)
        duplicate._flag = dict(self._flag)
        duplicate._custom = {key: list(value) for key, value in self._custom.items()}
        return duplicate


def _as_list(value: Iterable[Any] | str) -> list[Any]:
    return [value] if isinstance(value, str) else list(value)


def _pairs(pairs: Iterable[Sequence[Any]]) -> list[tuple[Any, bool]]:
    result: list[tuple[Any, bool]] = []
    for item in pairs:
        if isinstance(item, (str, bytes)) or not isinstance(item, Sequence) or len(item) != 2:
            raise InvalidArgumentError(
                "List item must be an (expression, descending) pair", argument="pairs"
            )
        expression, descending = item
        result.append((expression, bool(descending)))
    return result


def _without(pairs: list[tuple[Any, bool]], expressions: Iterable[Any] | None) -> list[tuple[Any, bool]]:
    if expressions is None:
        return []
    drop = _as_list(expressions)
    return [pair for pair in pairs if pair[0] not in drop]


def _join_kind(kind: JoinKind | str) -> JoinKind:
    if isinstance(kind, JoinKind):
        return kind
    try:
        return JoinKind(str(kind).upper())
    except ValueError as exc:
        raise InvalidArgumentError(f"Unknown join kind: {kind!r}", argument="kind") from exc
