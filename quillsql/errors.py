"""Custom exception hierarchy for quillsql.

All public errors inherit from QuillSQLError so callers can catch the base
class for any quillsql-specific failure.

Builder errors signal programmer misuse and are raised synchronously.  The
remaining classes wrap a driver failure (available as ``__cause__``) together
with the identity of the connection it happened on.
"""
from __future__ import annotations

from typing import Any


class QuillSQLError(Exception):
    """Base exception for all quillsql errors."""


class BuilderError(QuillSQLError):
    """Raised when a statement builder is used incorrectly."""


class UnsupportedFilterError(BuilderError):
    """Raised when a filter type was never declared on the statement.

    Args:
        filter_type: The undeclared filter type (e.g. ``QUALIFY``).
    """

    def __init__(self, filter_type: str | None) -> None:
        super().__init__(f"There is no support for '{filter_type}' filters")
        self.filter_type = filter_type


class UnsupportedCustomError(BuilderError):
    """Raised when a custom fragment name was never declared on the statement.

    Args:
        name: The undeclared custom name.
    """

    def __init__(self, name: str | None) -> None:
        super().__init__(f"There is no support for '{name}' customs")
        self.name = name


class InvalidArgumentError(BuilderError, ValueError):
    """Raised when a builder argument has the wrong shape or value.

    Args:
        message: Human-readable description.
        argument: Name of the offending argument.
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        super().__init__(message)
        self.argument = argument


class TransactionStateError(QuillSQLError):
    """Raised when a transaction operation is invalid in the current state.

    Args:
        message: Human-readable description.
        action: The attempted action (``begin``, ``commit``, ...).
    """

    def __init__(self, message: str, action: str) -> None:
        super().__init__(message)
        self.action = action


class StatementError(QuillSQLError):
    """Raised when the driver fails to execute a command.

    Args:
        statement: The fully applied command text that failed.
        connection: Identity of the connection (``user@uri``).
        error: The underlying driver failure.
    """

    def __init__(self, statement: str, connection: str, error: BaseException | None = None) -> None:
        super().__init__(
            f"Failed to execute statement(s) on '{connection}', due to: {error}"
        )
        self.statement = statement
        self.connection = connection


class TransactionError(QuillSQLError):
    """Raised when the driver rejects a transaction state change.

    Args:
        action: ``begin``, ``savepoint``, ``rollback`` or ``commit``.
        connection: Identity of the connection.
        error: The underlying driver failure.
    """

    def __init__(self, action: str, connection: str, error: BaseException | None = None) -> None:
        super().__init__(
            f"Failed to change the transaction state to '{action}' on '{connection}', "
            f"due to: {error}"
        )
        self.action = action
        self.connection = connection


class DatabaseConnectionError(QuillSQLError):
    """Raised when the database server cannot be reached.

    Considered critical: nothing on the connection can proceed.

    Args:
        connection: Identity of the connection.
        error: The underlying driver failure.
    """

    def __init__(self, connection: str, error: BaseException | None = None) -> None:
        super().__init__(f"Failed to connect '{connection}', due to: {error}")
        self.connection = connection


class ConnectionOptionError(QuillSQLError):
    """Raised when a connection option cannot be changed.

    Args:
        option: Option name (``database`` and ``authentication`` included).
        value: The rejected value.
        connection: Identity of the connection.
        error: The underlying driver failure.
    """

    def __init__(
        self,
        option: str,
        value: Any,
        connection: str,
        error: BaseException | None = None,
    ) -> None:
        super().__init__(f"Failed to set {option} on '{connection}', due to: {error}")
        self.option = option
        self.value = value
        self.connection = connection


class CompilationError(QuillSQLError):
    """Raised when a statement cannot be rendered to SQL.

    Args:
        message: Human-readable description.
        clause: The clause being compiled when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause
