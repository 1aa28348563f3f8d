"""SQLite dialect compiler."""
from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from quillsql.compile.base import (
    COMMAND_INSERT,
    COMMAND_SELECT,
    COMMAND_UPDATE,
    StatementCompiler,
)
from quillsql.compile.clause_builders import render_definition
from quillsql.errors import CompilationError
from quillsql.schema.config import QuoteStyle

if TYPE_CHECKING:
    from quillsql.schema.statement import Statement

_CONFLICT_FLAGS = frozenset({"OR ABORT", "OR FAIL", "OR IGNORE", "OR REPLACE", "OR ROLLBACK"})


class SQLiteCompiler(StatementCompiler):
    """Compiles statements to SQLite-flavoured SQL.

    SQLite accepts MySQL-style backtick identifiers, so the default quoting
    style is kept; text values escape quotes by doubling them, and a
    backslash is ordinary text.

    Conflict resolution is expressed with flags (``OR REPLACE``,
    ``OR IGNORE`` …) on INSERT and UPDATE.  UPDATE joins extra tables with
    ``UPDATE … FROM`` (SQLite 3.33+); DELETE only supports one table.

    Custom fragments: ``values``, ``union``, ``conflict`` (``ON CONFLICT``
    upsert clauses), ``returning`` (SQLite 3.35+) and ``with``.
    """

    custom_names: ClassVar[tuple[str, ...]] = ("values", "union", "conflict", "returning", "with")
    flags: ClassVar[dict[str, frozenset[str]]] = {
        COMMAND_SELECT: frozenset({"DISTINCT", "ALL"}),
        COMMAND_INSERT: _CONFLICT_FLAGS,
        COMMAND_UPDATE: _CONFLICT_FLAGS,
    }

    _style = QuoteStyle(backslash_escapes=False)

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    @property
    def style(self) -> QuoteStyle:
        return self._style

    def escape(self, text: str) -> str:
        return text.replace("'", "''")

    def _insert_suffix(self, statement: Statement) -> list[str]:
        return [f"ON CONFLICT {render_definition(item)}" for item in self._custom(statement, "conflict")]

    def render_delete(self, statement: Statement) -> str:
        if len(statement.get_table()) > 1:
            raise CompilationError("SQLite DELETE supports a single table", clause="DELETE")
        return super().render_delete(statement)
