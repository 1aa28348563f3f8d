"""Unit tests for quillsql.execute.transaction.Transaction."""

from __future__ import annotations

import logging

import pytest

from quillsql.errors import TransactionError, TransactionStateError
from tests.fixtures import FakeDriverError, RecordingConnection, recording


@pytest.fixture()
def connection() -> RecordingConnection:
    return recording("sqlite")


@pytest.fixture()
def transaction(connection):
    return connection.transaction


class Boom(Exception):
    pass


def _fail(connection, transaction):
    raise Boom("callback failed")


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def test_begin_and_commit(transaction):
    assert not transaction.is_pending()
    transaction.begin()
    assert transaction.is_pending()
    transaction.begin()
    transaction.commit()
    assert not transaction.is_pending()
    assert transaction.calls == [("begin", None), ("commit", None)]


def test_begin_with_savepoint(transaction):
    transaction.begin("first")
    transaction.begin("second")
    assert transaction.get_savepoints() == ["first", "second"]
    assert transaction.calls == [("begin", None), ("savepoint", "first"), ("savepoint", "second")]


@pytest.mark.parametrize("action", ["commit", "rollback"])
def test_idle_transitions_fail(transaction, action):
    with pytest.raises(TransactionStateError) as exc_info:
        getattr(transaction, action)()
    assert exc_info.value.action == action
    assert transaction.calls == []


def test_savepoint_requires_pending(transaction):
    with pytest.raises(TransactionStateError):
        transaction.savepoint("sp")


def test_rollback_to_savepoint_stays_pending(transaction):
    transaction.begin().savepoint("a").savepoint("b").savepoint("c")
    transaction.rollback("b")
    assert transaction.is_pending()
    assert transaction.get_savepoints() == ["a", "b"]
    transaction.rollback()
    assert not transaction.is_pending()
    assert transaction.get_savepoints() == []
    assert transaction.calls[-2:] == [("rollback", "b"), ("rollback", None)]


def test_rollback_to_unknown_savepoint(transaction):
    transaction.begin()
    with pytest.raises(TransactionStateError, match="Unknown savepoint"):
        transaction.rollback("nope")
    assert transaction.calls == [("begin", None)]


def test_driver_failure_is_wrapped(transaction):
    transaction.fail.add("begin")
    with pytest.raises(TransactionError) as exc_info:
        transaction.begin()
    error = exc_info.value
    assert error.action == "begin"
    assert error.connection == "tester@memory://test"
    assert isinstance(error.__cause__, FakeDriverError)
    assert not transaction.is_pending()


# ---------------------------------------------------------------------------
# run_new
# ---------------------------------------------------------------------------


def test_run_new_commits(connection, transaction):
    seen = []

    def work(conn, tx):
        seen.append((conn, tx))
        return "done"

    assert transaction.run_new(work, commit=True) == "done"
    assert seen == [(connection, transaction)]
    assert transaction.calls == [("begin", None), ("commit", None)]
    assert not transaction.is_pending()


def test_run_new_without_commit_stays_pending(transaction):
    transaction.run_new(lambda conn, tx: None)
    assert transaction.is_pending()


def test_run_new_while_pending_fails_fast(transaction):
    transaction.begin()
    called = []
    with pytest.raises(TransactionStateError):
        transaction.run_new(lambda conn, tx: called.append(1))
    assert called == []
    assert transaction.calls == [("begin", None)]
    assert transaction.is_pending()


def test_run_new_rolls_back_on_failure(transaction):
    with pytest.raises(Boom):
        transaction.run_new(_fail, commit=True)
    assert transaction.calls == [("begin", None), ("rollback", None)]
    assert not transaction.is_pending()


def test_run_new_rolls_back_when_commit_fails(transaction):
    transaction.fail.add("commit")
    with pytest.raises(TransactionError) as exc_info:
        transaction.run_new(lambda conn, tx: None, commit=True)
    assert exc_info.value.action == "commit"
    assert transaction.calls == [("begin", None), ("commit", None), ("rollback", None)]


def test_rollback_failure_does_not_mask_original(transaction, caplog):
    transaction.fail.add("rollback")
    with caplog.at_level(logging.WARNING, logger="quillsql.execute.transaction"):
        with pytest.raises(Boom) as exc_info:
            transaction.run_new(_fail)
    assert any("Rollback failed" in note for note in exc_info.value.__notes__)
    assert "Rollback on tester@memory://test failed" in caplog.text


# ---------------------------------------------------------------------------
# run_within
# ---------------------------------------------------------------------------


def test_run_within_begins_when_idle(transaction):
    transaction.run_within(lambda conn, tx: None, commit=True)
    assert transaction.calls == [("begin", None), ("commit", None)]


def test_run_within_failure_never_commits(transaction):
    with pytest.raises(Boom):
        transaction.run_within(_fail, commit=True)
    assert transaction.calls == [("begin", None), ("rollback", None)]
    assert not transaction.is_pending()


def test_run_within_pending_uses_savepoint(transaction):
    transaction.begin()
    with pytest.raises(Boom):
        transaction.run_within(_fail, savepoint="step")
    assert transaction.calls == [("begin", None), ("savepoint", "step"), ("rollback", "step")]
    assert transaction.is_pending()


def test_run_within_idle_with_savepoint(transaction):
    transaction.run_within(lambda conn, tx: tx.get_savepoints(), savepoint="start")
    assert transaction.calls == [("begin", None), ("savepoint", "start")]


def test_run_within_nested_success(transaction):
    def outer(conn, tx):
        return tx.run_within(lambda c, t: "inner", savepoint="nested")

    assert transaction.run_new(outer, commit=True) == "inner"
    assert transaction.calls == [
        ("begin", None), ("savepoint", "nested"), ("commit", None),
    ]


# ---------------------------------------------------------------------------
# Context managers
# ---------------------------------------------------------------------------


def test_new_context_manager(connection, transaction):
    with transaction.new(commit=True) as tx:
        assert tx is transaction
        connection.execute("INSERT INTO t VALUES (1)")
    assert transaction.calls == [("begin", None), ("commit", None)]
    assert connection.commands == ["INSERT INTO t VALUES (1)"]


def test_within_context_manager_rolls_back(transaction):
    with pytest.raises(Boom):
        with transaction.within(commit=True):
            raise Boom("inside")
    assert transaction.calls == [("begin", None), ("rollback", None)]
