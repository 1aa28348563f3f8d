"""SQLAlchemy driver: any database SQLAlchemy has a dialect for.

Commands go through ``Connection.exec_driver_sql``, so the text quillsql
renders reaches the DBAPI unchanged.  The compiler is picked from the
engine's dialect name unless the config names one.

Install the optional dependency before using this module::

    pip install "quillsql[sqlalchemy]"

Example::

    from quillsql import ConnectionConfig, ConnectionRegistry

    registry = ConnectionRegistry()
    connection = registry.connect(
        ConnectionConfig(driver="sqlalchemy", uri="sqlite:///app.db")
    )

Options are SQLAlchemy execution options (``isolation_level``,
``schema_translate_map`` ...) applied to the live connection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from quillsql.compile.base import StatementCompiler
from quillsql.compile.registry import CompilerFactory
from quillsql.errors import ConnectionOptionError, DatabaseConnectionError
from quillsql.execute.connection import Connection
from quillsql.execute.result import BufferedResult, Result
from quillsql.execute.transaction import Transaction
from quillsql.schema.config import ConnectionConfig

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection as EngineConnection
    from sqlalchemy.engine import RootTransaction

logger = logging.getLogger(__name__)

#: SQLAlchemy dialect names mapped to compiler targets.
DIALECT_TARGETS = {
    "sqlite": "sqlite",
    "mysql": "mysql",
    "mariadb": "mysql",
    "postgresql": "postgres",
}


class SQLAlchemyConnection(Connection):
    """Connection over a SQLAlchemy :class:`~sqlalchemy.Engine`.

    Args:
        config: ``uri`` is a SQLAlchemy URL.  ``user``, ``password`` and
            ``database`` override the URL's parts when set.
        compiler: Dialect compiler; derived from the engine when omitted.
        compilers: Compiler factory consulted when ``compiler`` is omitted.
        engine: An existing engine to use instead of creating one.
    """

    driver_errors: ClassVar[tuple[type[BaseException], ...]] = (SQLAlchemyError,)

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        compiler: StatementCompiler | None = None,
        compilers: CompilerFactory | None = None,
        engine: Engine | None = None,
    ) -> None:
        config = config or ConnectionConfig(driver="sqlalchemy", uri="sqlite://")
        self._engine = engine if engine is not None else create_engine(self._url(config))
        self._handle: EngineConnection | None = None
        super().__init__(config, compiler, compilers)

    @staticmethod
    def _url(config: ConnectionConfig):
        url = make_url(config.uri)
        parts: dict[str, Any] = {}
        if config.user is not None:
            parts["username"] = config.user
        if config.password is not None:
            parts["password"] = config.password.get_secret_value()
        if config.database is not None:
            parts["database"] = config.database
        return url.set(**parts) if parts else url

    def default_dialect(self) -> str:
        return DIALECT_TARGETS.get(self._engine.dialect.name, self._engine.dialect.name)

    def get_engine(self) -> Engine:
        return self._engine

    def connect(self) -> SQLAlchemyConnection:
        if self._handle is not None:
            return self
        try:
            self._handle = self._engine.connect()
        except SQLAlchemyError as exc:
            raise DatabaseConnectionError(self.identity(), exc) from exc
        logger.debug("Connected to %s", self.identity())

        if self._options:
            try:
                self._handle.execution_options(**self._options)
            except (SQLAlchemyError, TypeError, ValueError) as exc:
                raise ConnectionOptionError(
                    "options", self._options, self.identity(), exc
                ) from exc
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

    def get_handle(self) -> EngineConnection | None:
        return self._handle

    def _run(self, command: str) -> Result:
        try:
            result = self._handle.exec_driver_sql(command)
        except SQLAlchemyError:
            # close the autobegun transaction
            if not self.transaction.is_pending() and self._handle.in_transaction():
                self._handle.rollback()
            raise
        if result.returns_rows:
            buffered = BufferedResult(command, list(result.keys()), result.fetchall())
        else:
            buffered = BufferedResult(
                command,
                affected=max(result.rowcount, 0),
                insert_id=result.lastrowid or None,
            )
        if not self.transaction.is_pending():
            self._handle.commit()
        return buffered

    def _create_transaction(self) -> Transaction:
        return SQLAlchemyTransaction(self)

    def _apply_option(self, name: str, value: Any) -> None:
        self._handle.execution_options(**{name: value})

    def _select_database(self, name: str | None) -> None:
        self.disconnect()
        self._engine.dispose()
        self._engine = create_engine(self._engine.url.set(database=name))

    def _authenticate(self, user: str | None, password: str | None) -> None:
        self.disconnect()
        self._engine.dispose()
        self._engine = create_engine(self._engine.url.set(username=user, password=password))


class SQLAlchemyTransaction(Transaction):
    """Transactions through SQLAlchemy's connection-level transaction API.

    Savepoints are named and issued as SQL so the controller can roll back
    to any of them, not just the innermost one.
    """

    def __init__(self, connection: SQLAlchemyConnection) -> None:
        super().__init__(connection)
        self._root: RootTransaction | None = None

    def _handle(self) -> EngineConnection:
        connection = self.get_connection()
        if not connection.is_connected():
            connection.connect()
        return connection.get_handle()

    def _begin(self) -> None:
        handle = self._handle()
        # a statement run outside a transaction autobegins; finish it first
        if handle.in_transaction():
            handle.commit()
        self._root = handle.begin()

    def _savepoint(self, name: str) -> None:
        self._handle().exec_driver_sql(f"SAVEPOINT {self.get_connection().quote_name(name)}")

    def _rollback(self, savepoint: str | None) -> None:
        if savepoint is not None:
            name = self.get_connection().quote_name(savepoint)
            self._handle().exec_driver_sql(f"ROLLBACK TO SAVEPOINT {name}")
            return
        self._root.rollback()
        self._root = None

    def _commit(self) -> None:
        self._root.commit()
        self._root = None
