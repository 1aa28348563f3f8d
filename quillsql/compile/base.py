"""Compiler abstraction: the StatementCompiler ABC.

The Template Method pattern (GoF) is used:
- ``StatementCompiler`` defines the skeleton of the four commands and the
  order of their clauses.
- ``MySQLCompiler``, ``SQLiteCompiler`` and ``PostgresCompiler`` supply the
  dialect steps (quoting style, escaping, flags, custom fragments, and how
  extra tables join an UPDATE or DELETE).

Compilers emit *template* text: table and field definitions are inserted as
given, so they may themselves contain ``{...}`` placeholders resolved later
by the connection's ``apply``.

Clause order
------------
SELECT: ``WITH`` · ``SELECT flags fields`` · ``FROM`` tables/joins ·
``WHERE`` · ``GROUP BY`` · ``HAVING`` · ``UNION`` · ``ORDER BY`` ·
``LIMIT/OFFSET`` · lock suffix.

INSERT: ``WITH`` · ``INSERT flags INTO table (columns)`` · ``VALUES`` ·
conflict handling · ``RETURNING``.

UPDATE / DELETE: ``WITH`` · command and target · ``SET`` (update) · extra
tables · ``WHERE`` · ``RETURNING``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from functools import cached_property
from typing import TYPE_CHECKING, Any, ClassVar

from quillsql.compile.clause_builders import (
    AssignmentClauseBuilder,
    FieldClauseBuilder,
    FilterClauseBuilder,
    FromClauseBuilder,
    LimitClauseBuilder,
    OrderClauseBuilder,
    render_definition,
)
from quillsql.errors import CompilationError
from quillsql.render.quoting import Quoter
from quillsql.schema.config import QuoteStyle

if TYPE_CHECKING:
    from quillsql.schema.statement import Statement, TableEntry

COMMAND_SELECT = "select"
COMMAND_INSERT = "insert"
COMMAND_UPDATE = "update"
COMMAND_DELETE = "delete"


class StatementCompiler(ABC):
    """Abstract base for dialect-specific statement compilers.

    Attributes:
        filter_types: Filter types every statement of this dialect supports.
        custom_names: Custom fragment names the dialect knows how to render.
        flags: Allowed flag names per command (upper case).  Flags a command
            does not allow are left out of that command.
        group_direction: Render ``DESC`` after descending GROUP BY items.
    """

    filter_types: ClassVar[tuple[str, ...]] = ("WHERE", "HAVING")
    custom_names: ClassVar[tuple[str, ...]] = ("values", "union")
    flags: ClassVar[dict[str, frozenset[str]]] = {
        COMMAND_SELECT: frozenset({"DISTINCT", "ALL"}),
    }
    group_direction: ClassVar[bool] = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (``'mysql'``, ``'sqlite'`` ...)."""

    @property
    @abstractmethod
    def style(self) -> QuoteStyle:
        """Return the quoting style of the dialect."""

    @abstractmethod
    def escape(self, text: str) -> str:
        """Escape ``text`` for insertion between value quotes.

        Args:
            text: Raw text value.

        Returns:
            Text safe to enclose in the dialect's value quote.
        """

    @cached_property
    def quoter(self) -> Quoter:
        return Quoter(self.style, self.escape)

    def quote_identifier(self, name: Any) -> str:
        return self.quoter.quote_identifier(name)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def render_select(self, statement: Statement) -> str:
        parts = self._with_clause(statement)
        fields = FieldClauseBuilder(self).build(statement.get_field())
        parts.append(f"{self._head('SELECT', statement, COMMAND_SELECT)} {fields}")

        tables = statement.get_table()
        if tables:
            parts.append(f"FROM {FromClauseBuilder(self).build(list(tables.items()))}")

        filters = FilterClauseBuilder()
        parts.append(filters.build(statement.get_filter(statement.FILTER_SIMPLE)))
        parts.append(
            OrderClauseBuilder().build("GROUP BY", statement.get_group(), self.group_direction)
        )
        parts.append(filters.build(statement.get_filter(statement.FILTER_GROUP), "HAVING"))
        parts.extend(
            f"UNION {render_definition(union, parenthesize=False)}"
            for union in self._custom(statement, "union")
        )
        parts.append(OrderClauseBuilder().build("ORDER BY", statement.get_sort()))
        parts.append(LimitClauseBuilder().build(*statement.get_limit()))
        parts.extend(self._select_suffix(statement))
        return _join(parts)

    def render_insert(self, statement: Statement) -> str:
        parts = self._with_clause(statement)
        _, target = self._target(statement, "INSERT")
        fields = statement.get_field()
        columns = f" {self.quote_identifier(list(fields))}" if fields else ""
        head = self._head("INSERT", statement, COMMAND_INSERT)
        parts.append(f"{head} INTO {render_definition(target.definition)}{columns}")

        rows = self._custom(statement, "values")
        if rows:
            parts.append("VALUES " + ", ".join(render_definition(row) for row in rows))
        elif fields:
            values = ", ".join(render_definition(value) for value in fields.values())
            parts.append(f"VALUES ({values})")
        else:
            parts.append(self._empty_values())

        parts.extend(self._insert_suffix(statement))
        parts.extend(self._returning(statement))
        return _join(parts)

    def render_update(self, statement: Statement) -> str:
        """Render UPDATE with extra tables in a ``FROM`` list.

        The first table is the target.  The second table heads the ``FROM``
        list and its join filter moves into ``WHERE``; later tables keep
        their joins.
        """
        parts = self._with_clause(statement)
        alias, target = self._target(statement, "UPDATE")
        head = self._head("UPDATE", statement, COMMAND_UPDATE)
        parts.append(f"{head} {self._table(alias, target)}")
        parts.append(self._set_clause(statement, qualified=False))

        extra, folded = self._extra_tables(statement)
        if extra:
            parts.append(f"FROM {extra}")
        parts.append(self._where(statement, folded))
        parts.extend(self._returning(statement))
        return _join(parts)

    def render_delete(self, statement: Statement) -> str:
        """Render DELETE with extra tables in a ``USING`` list."""
        parts = self._with_clause(statement)
        alias, target = self._target(statement, "DELETE")
        head = self._head("DELETE", statement, COMMAND_DELETE)
        parts.append(f"{head} FROM {self._table(alias, target)}")

        extra, folded = self._extra_tables(statement)
        if extra:
            parts.append(f"USING {extra}")
        parts.append(self._where(statement, folded))
        parts.extend(self._returning(statement))
        return _join(parts)

    # ------------------------------------------------------------------
    # Dialect steps
    # ------------------------------------------------------------------

    def _select_suffix(self, statement: Statement) -> list[str]:
        return [render_definition(lock) for lock in self._custom(statement, "lock")]

    def _insert_suffix(self, statement: Statement) -> list[str]:
        return []

    def _empty_values(self) -> str:
        return "DEFAULT VALUES"

    def _with_clause(self, statement: Statement) -> list[str]:
        definitions = self._custom(statement, "with")
        if not definitions:
            return []
        return ["WITH " + ", ".join(render_definition(item) for item in definitions)]

    def _returning(self, statement: Statement) -> list[str]:
        definitions = self._custom(statement, "returning")
        if not definitions:
            return []
        return ["RETURNING " + ", ".join(render_definition(item) for item in definitions)]

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _head(self, keyword: str, statement: Statement, command: str) -> str:
        allowed = self.flags.get(command, frozenset())
        names = [name.upper() for name in statement.get_flag()]
        return " ".join([keyword, *(name for name in names if name in allowed)])

    @staticmethod
    def _custom(statement: Statement, name: str) -> list[Any]:
        return statement.get_custom().get(name, [])

    @staticmethod
    def _target(statement: Statement, command: str) -> tuple[str, TableEntry]:
        tables = statement.get_table()
        if not tables:
            raise CompilationError(f"{command} needs at least one table", clause=command)
        return next(iter(tables.items()))

    def _table(self, alias: str, entry: TableEntry) -> str:
        return FromClauseBuilder(self).table(alias, entry)

    def _set_clause(self, statement: Statement, qualified: bool) -> str:
        fields = statement.get_field()
        if not fields:
            raise CompilationError("UPDATE needs at least one field", clause="SET")
        return AssignmentClauseBuilder(self).build(fields, qualified)

    def _extra_tables(self, statement: Statement) -> tuple[str, list[Any]]:
        """Return the tables after the target and the join filters to fold."""
        tables = list(statement.get_table().items())[1:]
        if not tables:
            return "", []
        folded = [tables[0][1].join_filter] if tables[0][1].join_filter is not None else []
        return FromClauseBuilder(self).build(tables), folded

    def _where(self, statement: Statement, folded: list[Any]) -> str:
        return FilterClauseBuilder().build(folded + statement.get_filter(statement.FILTER_SIMPLE))


def _join(parts: list[str]) -> str:
    return "\n".join(part for part in parts if part)
