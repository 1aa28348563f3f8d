"""PostgreSQL dialect compiler."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from quillsql.compile.base import COMMAND_SELECT, StatementCompiler
from quillsql.compile.clause_builders import render_definition
from quillsql.schema.config import QuoteStyle

if TYPE_CHECKING:
    from quillsql.schema.statement import Statement


class PostgresCompiler(StatementCompiler):
    """Compiles statements to PostgreSQL-flavoured SQL.

    Identifiers are quoted with double quotes; text values escape quotes by
    doubling them (``standard_conforming_strings = on``), so a backslash is
    ordinary text.

    UPDATE lists extra tables in ``FROM`` and DELETE in ``USING``; the join
    filter of the first extra table moves into ``WHERE``.

    Booleans quote to ``1``/``0`` like every dialect; compare them against
    boolean columns with an explicit cast (``{flag}::boolean``).

    Custom fragments: ``values``, ``union``, ``conflict`` (``ON CONFLICT``),
    ``returning``, ``with`` and ``lock`` (``FOR UPDATE`` …).
    """

    custom_names: ClassVar[tuple[str, ...]] = (
        "values", "union", "conflict", "returning", "with", "lock",
    )
    flags: ClassVar[dict[str, frozenset[str]]] = {
        COMMAND_SELECT: frozenset({"DISTINCT", "ALL"}),
    }

    _style = QuoteStyle(identifier_quote='"', backslash_escapes=False)

    @property
    def dialect_name(self) -> str:
        return "postgres"

    @property
    def style(self) -> QuoteStyle:
        return self._style

    def escape(self, text: str) -> str:
        return text.replace("'", "''")

    def _insert_suffix(self, statement: Statement) -> list[str]:
        return [f"ON CONFLICT {render_definition(item)}" for item in self._custom(statement, "conflict")]
