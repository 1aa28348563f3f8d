"""SQLite driver over the standard library ``sqlite3`` module.

The handle runs in autocommit mode (``isolation_level=None``); the
transaction controller issues ``BEGIN``/``SAVEPOINT``/``ROLLBACK``/``COMMIT``
itself, so the module never opens a transaction behind the caller's back.

Options are SQLite ``PRAGMA`` settings: they are applied when the handle
opens and whenever ``set_option`` changes one on a live handle::

    connection = SQLiteConnection(ConnectionConfig(
        uri="app.db", options={"foreign_keys": True, "busy_timeout": 5000},
    ))
"""
from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any, ClassVar

from quillsql.errors import ConnectionOptionError, DatabaseConnectionError, InvalidArgumentError
from quillsql.execute.connection import Connection
from quillsql.execute.result import BufferedResult, Result
from quillsql.execute.transaction import Transaction

logger = logging.getLogger(__name__)

_PRAGMA_NAME = re.compile(r"^[A-Za-z_]+$")


class SQLiteConnection(Connection):
    """Connection to a SQLite database file (``:memory:`` by default).

    ``config.database``, when set, names the file to open instead of
    ``config.uri``; changing it on a live connection reopens the handle.
    URIs starting with ``file:`` are opened in SQLite URI mode.
    """

    driver_errors: ClassVar[tuple[type[BaseException], ...]] = (sqlite3.Error,)

    _handle: sqlite3.Connection | None = None

    def connect(self) -> SQLiteConnection:
        if self._handle is not None:
            return self
        target = self._config.database or self._config.uri
        try:
            self._handle = sqlite3.connect(
                target, isolation_level=None, uri=target.startswith("file:")
            )
        except sqlite3.Error as exc:
            raise DatabaseConnectionError(self.identity(), exc) from exc
        logger.debug("Connected to %s", self.identity())

        for name, value in self._options.items():
            try:
                self._apply_option(name, value)
            except sqlite3.Error as exc:
                raise ConnectionOptionError(name, value, self.identity(), exc) from exc
        return self

    def disconnect(self) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        self._transaction = None
        logger.debug("Disconnected from %s", self.identity())

    def is_connected(self) -> bool:
        return self._handle is not None

    def get_handle(self) -> sqlite3.Connection | None:
        return self._handle

    def _run(self, command: str) -> Result:
        cursor = self._handle.execute(command)
        if cursor.description is None:
            return BufferedResult(
                command,
                affected=max(cursor.rowcount, 0),
                insert_id=cursor.lastrowid or None,
                result=cursor,
            )
        columns = [column[0] for column in cursor.description]
        return BufferedResult(command, columns, cursor.fetchall(), result=cursor)

    def _create_transaction(self) -> Transaction:
        return SQLiteTransaction(self)

    def _apply_option(self, name: str, value: Any) -> None:
        if not _PRAGMA_NAME.match(name):
            raise InvalidArgumentError(f"Invalid pragma name: {name!r}", argument="name")
        self._handle.execute(f"PRAGMA {name} = {self.quote(value)}")


class SQLiteTransaction(Transaction):
    """Transaction statements issued directly on the SQLite handle."""

    def _execute(self, command: str) -> None:
        connection = self.get_connection()
        if not connection.is_connected():
            connection.connect()
        connection.get_handle().execute(command)

    def _begin(self) -> None:
        self._execute("BEGIN")

    def _savepoint(self, name: str) -> None:
        self._execute(f"SAVEPOINT {self.get_connection().quote_name(name)}")

    def _rollback(self, savepoint: str | None) -> None:
        if savepoint is None:
            self._execute("ROLLBACK")
        else:
            self._execute(f"ROLLBACK TO SAVEPOINT {self.get_connection().quote_name(savepoint)}")

    def _commit(self) -> None:
        self._execute("COMMIT")
