"""Connection abstraction and the caller-owned connection registry.

A :class:`Connection` ties a driver handle to a dialect compiler.  It
quotes, applies templates, splits multi-statement text, runs each command
through the driver and wraps driver failures in quillsql errors.  Concrete
drivers live in :mod:`quillsql.drivers` and implement only the hooks:

``connect`` / ``disconnect`` / ``is_connected``
    open, close and probe the driver handle
``_run(command)``
    execute one fully applied command and return a :class:`Result`
``_create_transaction()``
    build the connection's transaction controller
``_apply_option`` / ``_select_database`` / ``_authenticate``
    push option, database and credential changes to a live handle

Connection failures are critical and raise
:class:`~quillsql.errors.DatabaseConnectionError`; everything else a driver
raises (``driver_errors``) is wrapped with the connection identity.
"""

from __future__ import annotations

import importlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import SecretStr

from quillsql.compile.base import StatementCompiler
from quillsql.compile.registry import CompilerFactory, default_compilers
from quillsql.errors import ConnectionOptionError, InvalidArgumentError, StatementError
from quillsql.render.template import TemplateApplier
from quillsql.schema.config import ConnectionConfig
from quillsql.schema.context import Context
from quillsql.schema.expression import Expression, Name
from quillsql.schema.statement import Statement

if TYPE_CHECKING:
    from quillsql.execute.result import Result
    from quillsql.execute.transaction import Transaction

logger = logging.getLogger(__name__)

ContextData = Context | Mapping[str, Any] | None


class Connection(ABC):
    """Base class of every driver connection.

    Args:
        config: Connection settings; defaults to an in-memory SQLite setup.
        compiler: Dialect compiler to use.  When omitted it is created from
            ``compilers`` for ``config.dialect`` (or the driver's default).
        compilers: Compiler factory consulted when ``compiler`` is omitted.

    Attributes:
        driver_errors: Exception types raised by the underlying driver.
            Only these are wrapped; anything else propagates unchanged.
    """

    driver_errors: ClassVar[tuple[type[BaseException], ...]] = (Exception,)

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        compiler: StatementCompiler | None = None,
        compilers: CompilerFactory | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()
        self._options: dict[str, Any] = dict(self._config.options)
        if compiler is None:
            factory = compilers or default_compilers()
            compiler = factory.create(self._config.dialect or self.default_dialect())
        self.compiler = compiler
        self._applier = TemplateApplier(compiler.quoter)
        self._transaction: Transaction | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity()!r}, dialect={self.compiler.dialect_name!r})"

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    def default_dialect(self) -> str:
        """Return the compiler target used when the config names none."""
        return "sqlite"

    @abstractmethod
    def connect(self) -> Connection:
        """Open the driver handle (no-op when already open).

        Raises:
            DatabaseConnectionError: If the database cannot be reached.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the driver handle; safe to call when already closed."""

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def _run(self, command: str) -> Result:
        """Execute one applied command and return its result."""

    @abstractmethod
    def _create_transaction(self) -> Transaction: ...

    def _apply_option(self, name: str, value: Any) -> None:
        """Push one option to the live handle; the default stores it only."""

    def _select_database(self, name: str | None) -> None:
        """Switch the live handle to another database."""
        self.disconnect()

    def _authenticate(self, user: str | None, password: str | None) -> None:
        """Apply new credentials; the default reconnects lazily."""
        self.disconnect()

    # ------------------------------------------------------------------
    # Quoting and templates
    # ------------------------------------------------------------------

    def escape(self, text: str) -> str:
        return self.compiler.escape(text)

    def quote(self, value: Any) -> str:
        return self.compiler.quoter.quote_value(value)

    def quote_name(self, value: Any) -> str:
        return self.compiler.quoter.quote_identifier(value)

    def apply(self, template: str, context: ContextData = None) -> str:
        return self._applier.apply(template, context)

    def split(self, text: str) -> list[str]:
        return self._applier.split(text)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self, statements: str | Sequence[str], context: ContextData = None
    ) -> Result | list[Result]:
        """Apply ``context``, split into commands and run each one.

        Args:
            statements: Template text (possibly several ``;``-separated
                commands) or a list of templates.
            context: Placeholder values.

        Returns:
            The command's result, or a list when more than one command ran.

        Raises:
            InvalidArgumentError: If there is no command to run.
            StatementError: If the driver fails on a command.  Commands
                before the failing one have already run.
        """
        templates = [statements] if isinstance(statements, str) else list(statements)
        commands = [
            command
            for template in templates
            for command in self.split(self.apply(template, context))
        ]
        if not commands:
            raise InvalidArgumentError("There is no statement to execute", argument="statements")

        if not self.is_connected():
            self.connect()

        results = []
        for command in commands:
            logger.debug("Executing on %s: %s", self.identity(), command)
            try:
                results.append(self._run(command))
            except self.driver_errors as exc:
                raise StatementError(command, self.identity(), exc) from exc
        return results[0] if len(results) == 1 else results

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def statement(self, context: ContextData = None) -> Statement:
        return Statement(self, context)

    def expression(self, definition: str, context: ContextData = None) -> Expression:
        return Expression(self, definition, context)

    def name(
        self, definition: str, arguments: Sequence[Any] | None = None, quote: bool | None = None
    ) -> Name:
        return Name(self, definition, arguments, quote)

    @property
    def transaction(self) -> Transaction:
        """The connection's single transaction controller."""
        if self._transaction is None:
            self._transaction = self._create_transaction()
        return self._transaction

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def identity(self) -> str:
        """Return ``user@uri`` for diagnostics; never contains the password."""
        return self._config.identity()

    def get_config(self) -> ConnectionConfig:
        return self._config

    def get_uri(self) -> str:
        return self._config.uri

    def get_database(self) -> str | None:
        return self._config.database

    def get_authentication(self) -> str | None:
        return self._config.user

    def get_option(self, name: str | None = None, default: Any = None) -> Any:
        """Return one option, or a copy of every option when ``name`` is None."""
        if name is None:
            return dict(self._options)
        return self._options.get(name, default)

    def set_option(self, name: str, value: Any) -> Connection:
        """Store an option and push it to the live handle.

        Raises:
            ConnectionOptionError: If the driver rejects the value.
        """
        if self.is_connected():
            self._change(name, value, self._apply_option, name, value)
        self._options[name] = value
        return self

    def set_database(self, name: str | None) -> Connection:
        if self.is_connected():
            self._change("database", name, self._select_database, name)
        self._config = self._config.model_copy(update={"database": name})
        return self

    def set_authentication(self, user: str | None, password: str | None = None) -> Connection:
        if self.is_connected():
            self._change("authentication", user, self._authenticate, user, password)
        self._config = self._config.model_copy(update={
            "user": user,
            "password": SecretStr(password) if password is not None else None,
        })
        return self

    def _change(self, option: str, value: Any, hook: Callable[..., None], *args: Any) -> None:
        try:
            hook(*args)
        except self.driver_errors as exc:
            raise ConnectionOptionError(option, value, self.identity(), exc) from exc


# Built-in drivers, imported on first use so optional dependencies stay optional.
_BUILTIN_DRIVERS = {
    "sqlite": "quillsql.drivers.sqlite:SQLiteConnection",
    "sqlalchemy": "quillsql.drivers.sqlalchemy:SQLAlchemyConnection",
}


class ConnectionRegistry:
    """Creates connections by driver name and caches them per config.

    The registry is a plain object: create one per application and pass it
    where connections are needed.  Connections are cached under
    ``(driver, uri, user, database)``.

    Args:
        drivers: Extra or replacement driver classes by name.
        compilers: Compiler factory handed to every connection.
    """

    def __init__(
        self,
        drivers: Mapping[str, type[Connection]] | None = None,
        compilers: CompilerFactory | None = None,
    ) -> None:
        self._drivers: dict[str, type[Connection] | str] = dict(_BUILTIN_DRIVERS)
        self._drivers.update(drivers or {})
        self._compilers = compilers or default_compilers()
        self._connections: dict[tuple[str, str, str | None, str | None], Connection] = {}

    def register_driver(self, name: str, connection_cls: type[Connection]) -> None:
        self._drivers[name] = connection_cls

    def registered_drivers(self) -> list[str]:
        return sorted(self._drivers)

    def driver(self, name: str) -> type[Connection]:
        """Return the connection class registered for ``name``.

        Raises:
            InvalidArgumentError: If no driver is registered under ``name``.
        """
        try:
            driver = self._drivers[name]
        except KeyError:
            raise InvalidArgumentError(
                f"Unknown driver: '{name}'. Registered drivers: {self.registered_drivers()}.",
                argument="driver",
            ) from None
        if isinstance(driver, str):
            module_name, _, class_name = driver.partition(":")
            driver = getattr(importlib.import_module(module_name), class_name)
            self._drivers[name] = driver
        return driver

    def connect(self, config: ConnectionConfig) -> Connection:
        """Return the cached connection for ``config``, creating and opening it once."""
        key = config.registry_key()
        connection = self._connections.get(key)
        if connection is None:
            connection = self.driver(config.driver)(config, compilers=self._compilers)
            connection.connect()
            self._connections[key] = connection
            logger.debug("Registered connection %s", connection.identity())
        return connection

    def close(self) -> None:
        """Disconnect and forget every cached connection."""
        for connection in self._connections.values():
            connection.disconnect()
        self._connections.clear()
