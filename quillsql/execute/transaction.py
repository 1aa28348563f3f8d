"""Transaction controller with nested savepoints.

States
------
``idle``     no transaction is open (``is_pending()`` is false)
``pending``  a transaction is open, possibly with a stack of savepoints

=====================  ==================  ================================
call                   from                to
=====================  ==================  ================================
``begin()``            idle                pending (no-op when pending)
``begin(name)``        idle / pending      pending, savepoint ``name`` set
``savepoint(name)``    pending             pending
``rollback(name)``     pending             pending (back at ``name``)
``rollback()``         pending             idle
``commit()``           pending             idle
=====================  ==================  ================================

The context managers :meth:`Transaction.new` and :meth:`Transaction.within`
(and their callback forms ``run_new`` / ``run_within``) roll back on every
failing exit path before the failure propagates.  A rollback that fails in
turn is logged and attached to the original exception as a note; it never
replaces it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from quillsql.errors import QuillSQLError, TransactionError, TransactionStateError

if TYPE_CHECKING:
    from quillsql.execute.connection import Connection

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Transaction(ABC):
    """Tracks the transaction state of one connection.

    Drivers implement the four hooks; the base class keeps the state,
    validates transitions and wraps driver failures in
    :class:`~quillsql.errors.TransactionError`.

    Args:
        connection: The connection whose transaction is controlled.
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._pending = False
        self._savepoints: list[str] = []

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _savepoint(self, name: str) -> None: ...

    @abstractmethod
    def _rollback(self, savepoint: str | None) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_connection(self) -> Connection:
        return self._connection

    def is_pending(self) -> bool:
        return self._pending

    def get_savepoints(self) -> list[str]:
        """Return the open savepoints, oldest first."""
        return list(self._savepoints)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin(self, savepoint: str | None = None) -> Transaction:
        """Open a transaction, or only add ``savepoint`` when one is open."""
        if not self._pending:
            self._change("begin", self._begin)
            self._pending = True
            self._savepoints = []
        if savepoint is not None:
            self.savepoint(savepoint)
        return self

    def savepoint(self, name: str) -> Transaction:
        """Create a named savepoint inside the open transaction.

        Raises:
            TransactionStateError: If no transaction is open.
            TransactionError: If the driver rejects the savepoint.
        """
        self._require_pending("savepoint")
        self._change("savepoint", self._savepoint, name)
        self._savepoints.append(name)
        return self

    def rollback(self, savepoint: str | None = None) -> Transaction:
        """Roll back to ``savepoint`` (staying pending) or the whole transaction.

        Savepoints created after ``savepoint`` are discarded; ``savepoint``
        itself stays usable.

        Raises:
            TransactionStateError: If no transaction is open or the savepoint
                is unknown.
            TransactionError: If the driver rejects the rollback.
        """
        self._require_pending("rollback")
        if savepoint is None:
            self._change("rollback", self._rollback, None)
            self._reset()
            return self

        if savepoint not in self._savepoints:
            raise TransactionStateError(f"Unknown savepoint: '{savepoint}'", action="rollback")
        self._change("rollback", self._rollback, savepoint)
        index = len(self._savepoints) - 1 - self._savepoints[::-1].index(savepoint)
        del self._savepoints[index + 1 :]
        return self

    def commit(self) -> Transaction:
        """Commit the open transaction.

        Raises:
            TransactionStateError: If no transaction is open.
            TransactionError: If the driver rejects the commit.
        """
        self._require_pending("commit")
        self._change("commit", self._commit)
        self._reset()
        return self

    def _reset(self) -> None:
        self._pending = False
        self._savepoints = []

    def _require_pending(self, action: str) -> None:
        if not self._pending:
            raise TransactionStateError("There is no pending transaction", action=action)

    def _change(self, action: str, hook: Callable[..., None], *args: Any) -> None:
        identity = self._connection.identity()
        logger.debug("Transaction %s%s on %s", action, f" {args[0]}" if args and args[0] else "", identity)
        try:
            hook(*args)
        except self._connection.driver_errors as exc:
            raise TransactionError(action, identity, exc) from exc

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    @contextmanager
    def new(self, commit: bool = False) -> Iterator[Transaction]:
        """Run the block as a new transaction.

        Raises:
            TransactionStateError: Immediately, when a transaction is
                already pending; no driver call is made.
        """
        if self._pending:
            raise TransactionStateError("There is already a pending transaction", action="begin")
        try:
            self.begin()
            yield self
            if commit:
                self.commit()
        except BaseException as exc:
            if self._pending:
                self._rollback_after(exc, None)
            raise

    @contextmanager
    def within(self, savepoint: str | None = None, commit: bool = False) -> Iterator[Transaction]:
        """Run the block inside the current transaction, opening one if needed.

        With ``savepoint`` the block gets its own savepoint and a failure
        rolls back only to it; without, a failure rolls back everything.
        """
        try:
            if not self._pending:
                self.begin(savepoint)
            elif savepoint is not None:
                self.savepoint(savepoint)
            yield self
            if commit:
                self.commit()
        except BaseException as exc:
            if self._pending:
                self._rollback_after(exc, savepoint)
            raise

    def run_new(self, callback: Callable[[Connection, Transaction], T], commit: bool = False) -> T:
        """Call ``callback(connection, transaction)`` inside :meth:`new`."""
        with self.new(commit) as transaction:
            return callback(self._connection, transaction)

    def run_within(
        self,
        callback: Callable[[Connection, Transaction], T],
        savepoint: str | None = None,
        commit: bool = False,
    ) -> T:
        """Call ``callback(connection, transaction)`` inside :meth:`within`."""
        with self.within(savepoint, commit) as transaction:
            return callback(self._connection, transaction)

    def _rollback_after(self, error: BaseException, savepoint: str | None) -> None:
        try:
            self.rollback(savepoint)
        except QuillSQLError as rollback_error:
            logger.warning(
                "Rollback on %s failed while handling %r: %s",
                self._connection.identity(), error, rollback_error,
            )
            error.add_note(f"Rollback failed: {rollback_error}")
