"""quillSQL – Template-driven SQL statement building and execution.

Build statements from clauses, render them per dialect, run them in
transactions.

Public API
----------
``connect``
    Open a connection from keyword settings.

``ConnectionRegistry``
    Caller-owned registry creating and caching connections per config.

Re-exported types
-----------------
``Statement``, ``Expression``, ``Name``, ``Context``, ``Connection``,
``Transaction``, ``Result``, the dialect compilers and all error classes.

Extensibility
-------------
New dialect compilers are registered on a factory passed to the registry::

    from quillsql.compile.registry import default_compilers

    compilers = default_compilers()

    @compilers.register("mariadb")
    class MariaDBCompiler(MySQLCompiler):
        ...

    registry = ConnectionRegistry(compilers=compilers)
"""

from __future__ import annotations

from typing import Any

from quillsql.compile.base import StatementCompiler
from quillsql.compile.mysql import MySQLCompiler
from quillsql.compile.postgres import PostgresCompiler
from quillsql.compile.registry import CompilerFactory, default_compilers
from quillsql.compile.sqlite import SQLiteCompiler
from quillsql.errors import (
    BuilderError,
    CompilationError,
    ConnectionOptionError,
    DatabaseConnectionError,
    InvalidArgumentError,
    QuillSQLError,
    StatementError,
    TransactionError,
    TransactionStateError,
    UnsupportedCustomError,
    UnsupportedFilterError,
)
from quillsql.execute.connection import Connection, ConnectionRegistry
from quillsql.execute.result import BufferedResult, Result
from quillsql.execute.transaction import Transaction
from quillsql.schema.config import ConnectionConfig, QuoteStyle
from quillsql.schema.context import Context
from quillsql.schema.expression import Expression, Name
from quillsql.schema.statement import GluedFilter, JoinKind, Statement, TableEntry

__all__ = [
    # Entry points
    "connect",
    "ConnectionRegistry",
    "ConnectionConfig",
    # Statement model
    "Context",
    "Expression",
    "Name",
    "Statement",
    "TableEntry",
    "GluedFilter",
    "JoinKind",
    # Compilation
    "QuoteStyle",
    "StatementCompiler",
    "CompilerFactory",
    "default_compilers",
    "MySQLCompiler",
    "PostgresCompiler",
    "SQLiteCompiler",
    # Execution
    "Connection",
    "Transaction",
    "Result",
    "BufferedResult",
    # Errors
    "QuillSQLError",
    "BuilderError",
    "UnsupportedFilterError",
    "UnsupportedCustomError",
    "InvalidArgumentError",
    "TransactionStateError",
    "StatementError",
    "TransactionError",
    "DatabaseConnectionError",
    "ConnectionOptionError",
    "CompilationError",
]


def connect(registry: ConnectionRegistry | None = None, **settings: Any) -> Connection:
    """Open a connection described by ``settings``.

    This is the shortest way in::

        connection = quillsql.connect(uri="app.db")
        users = connection.statement().add_table("users").search()

    Args:
        registry: Registry to create the connection through; a fresh one is
            used when omitted, so nothing is cached between calls.
        **settings: :class:`ConnectionConfig` fields (``driver``, ``uri``,
            ``user``, ``password``, ``database``, ``options``, ``dialect``).

    Returns:
        An open :class:`Connection`.

    Raises:
        pydantic.ValidationError: If ``settings`` contain unknown fields.
        DatabaseConnectionError: If the database cannot be reached.
    """
    if registry is None:
        registry = ConnectionRegistry()
    return registry.connect(ConnectionConfig(**settings))
