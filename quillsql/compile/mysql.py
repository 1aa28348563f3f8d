"""MySQL dialect compiler."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from quillsql.compile.base import (
    COMMAND_DELETE,
    COMMAND_INSERT,
    COMMAND_SELECT,
    COMMAND_UPDATE,
    StatementCompiler,
)
from quillsql.compile.clause_builders import (
    FromClauseBuilder,
    LimitClauseBuilder,
    OrderClauseBuilder,
    render_definition,
)
from quillsql.schema.config import QuoteStyle

if TYPE_CHECKING:
    from quillsql.schema.statement import Statement

_ESCAPES = {
    "\\": "\\\\",
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "'": "\\'",
    '"': '\\"',
    "\x1a": "\\Z",
}


class MySQLCompiler(StatementCompiler):
    """Compiles statements to MySQL-flavoured SQL.

    Identifiers are quoted with backticks (`` ` ``) and text values are
    escaped with backslashes, as ``mysql_real_escape_string`` does.

    UPDATE and DELETE keep every table in one joined table reference
    (``UPDATE a JOIN b ON … SET …``, ``DELETE a FROM a JOIN b ON …``).
    ``ORDER BY`` and ``LIMIT`` are only rendered for single-table UPDATE and
    DELETE; MySQL rejects them on multi-table forms.

    Descending GROUP BY items render ``DESC`` (MySQL 5.x syntax).

    Custom fragments: ``values`` (INSERT rows), ``union``, ``duplicate``
    (``ON DUPLICATE KEY UPDATE`` assignments) and ``lock`` (``FOR UPDATE``,
    ``LOCK IN SHARE MODE``).
    """

    custom_names: ClassVar[tuple[str, ...]] = ("values", "union", "duplicate", "lock")
    flags: ClassVar[dict[str, frozenset[str]]] = {
        COMMAND_SELECT: frozenset({
            "ALL", "DISTINCT", "DISTINCTROW", "HIGH_PRIORITY", "STRAIGHT_JOIN",
            "SQL_SMALL_RESULT", "SQL_BIG_RESULT", "SQL_BUFFER_RESULT",
            "SQL_NO_CACHE", "SQL_CALC_FOUND_ROWS",
        }),
        COMMAND_INSERT: frozenset({"LOW_PRIORITY", "HIGH_PRIORITY", "IGNORE"}),
        COMMAND_UPDATE: frozenset({"LOW_PRIORITY", "IGNORE"}),
        COMMAND_DELETE: frozenset({"LOW_PRIORITY", "QUICK", "IGNORE"}),
    }
    group_direction: ClassVar[bool] = True

    _style = QuoteStyle()

    @property
    def dialect_name(self) -> str:
        return "mysql"

    @property
    def style(self) -> QuoteStyle:
        return self._style

    def escape(self, text: str) -> str:
        return "".join(_ESCAPES.get(char, char) for char in text)

    def _empty_values(self) -> str:
        return "VALUES ()"

    def _insert_suffix(self, statement: Statement) -> list[str]:
        assignments = self._custom(statement, "duplicate")
        if not assignments:
            return []
        return ["ON DUPLICATE KEY UPDATE " + ", ".join(render_definition(item) for item in assignments)]

    def render_update(self, statement: Statement) -> str:
        self._target(statement, "UPDATE")
        tables = list(statement.get_table().items())
        head = self._head("UPDATE", statement, COMMAND_UPDATE)
        parts = [
            f"{head} {FromClauseBuilder(self).build(tables)}",
            self._set_clause(statement, qualified=True),
            self._where(statement, []),
        ]
        parts.extend(self._single_table_tail(statement, tables))
        return "\n".join(part for part in parts if part)

    def render_delete(self, statement: Statement) -> str:
        alias, _ = self._target(statement, "DELETE")
        tables = list(statement.get_table().items())
        head = self._head("DELETE", statement, COMMAND_DELETE)
        if len(tables) > 1:
            head = f"{head} {self.quote_identifier(alias)}"
        parts = [
            f"{head} FROM {FromClauseBuilder(self).build(tables)}",
            self._where(statement, []),
        ]
        parts.extend(self._single_table_tail(statement, tables))
        return "\n".join(part for part in parts if part)

    def _single_table_tail(self, statement: Statement, tables: list) -> list[str]:
        if len(tables) > 1:
            return []
        return [
            OrderClauseBuilder().build("ORDER BY", statement.get_sort()),
            LimitClauseBuilder().build(*statement.get_limit()),
        ]
