"""Test fixtures: a recording connection and the sample SQLite schema."""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar

from quillsql.compile.base import StatementCompiler
from quillsql.compile.registry import CompilerFactory
from quillsql.execute.connection import Connection
from quillsql.execute.result import BufferedResult, Result
from quillsql.execute.transaction import Transaction
from quillsql.schema.config import ConnectionConfig

_FIXTURES_DIR = Path(__file__).parent


class FakeDriverError(Exception):
    """Stands for the exception type a real driver raises."""


class RecordingTransaction(Transaction):
    """Records every hook call; ``fail`` names the actions that raise."""

    def __init__(self, connection: RecordingConnection) -> None:
        super().__init__(connection)
        self.calls: list[tuple[str, str | None]] = []
        self.fail: set[str] = set()

    def _hook(self, action: str, argument: str | None = None) -> None:
        self.calls.append((action, argument))
        if action in self.fail:
            raise FakeDriverError(f"{action} rejected")

    def _begin(self) -> None:
        self._hook("begin")

    def _savepoint(self, name: str) -> None:
        self._hook("savepoint", name)

    def _rollback(self, savepoint: str | None) -> None:
        self._hook("rollback", savepoint)

    def _commit(self) -> None:
        self._hook("commit")


class RecordingConnection(Connection):
    """Connection that records commands instead of running them.

    Every command returns ``rows`` under ``columns``.  A command containing
    ``fail_on`` raises :class:`FakeDriverError`.
    """

    driver_errors: ClassVar[tuple[type[BaseException], ...]] = (FakeDriverError,)

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        compiler: StatementCompiler | None = None,
        compilers: CompilerFactory | None = None,
    ) -> None:
        super().__init__(config or recording_config(), compiler, compilers)
        self.commands: list[str] = []
        self.applied_options: list[tuple[str, Any]] = []
        self.columns = ["id", "name"]
        self.rows: list[tuple[Any, ...]] = [(1, "ada"), (2, "grace")]
        self.fail_on: str | None = None
        self.connected = False

    def connect(self) -> RecordingConnection:
        self.connected = True
        return self

    def disconnect(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def _run(self, command: str) -> Result:
        self.commands.append(command)
        if self.fail_on is not None and self.fail_on in command:
            raise FakeDriverError(f"cannot run {command!r}")
        return BufferedResult(command, self.columns, self.rows)

    def _create_transaction(self) -> Transaction:
        return RecordingTransaction(self)

    def _apply_option(self, name: str, value: Any) -> None:
        if name == "broken":
            raise FakeDriverError("unknown option")
        self.applied_options.append((name, value))


def recording_config(dialect: str = "mysql", **settings: Any) -> ConnectionConfig:
    settings.setdefault("driver", "recording")
    settings.setdefault("uri", "memory://test")
    settings.setdefault("user", "tester")
    return ConnectionConfig(dialect=dialect, **settings)


def recording(dialect: str = "mysql", **settings: Any) -> RecordingConnection:
    """Return a recording connection compiling ``dialect``."""
    return RecordingConnection(recording_config(dialect, **settings))


def load_ddl(target: str = "sqlite") -> str:
    """Return the sample DDL SQL string for the given backend.

    Args:
        target: Only ``'sqlite'`` ships with the test suite.

    Returns:
        DDL string ready to execute against the target backend.
    """
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()
