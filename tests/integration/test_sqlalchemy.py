"""Integration tests: the SQLAlchemy driver over an in-memory SQLite engine.

The sample schema is loaded through ``Connection.execute`` so the splitter
runs over the whole DDL script.  Skips all tests if SQLAlchemy is missing.
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest

pytest.importorskip("sqlalchemy", reason="sqlalchemy required for SQLAlchemy integration tests")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402

from quillsql import ConnectionConfig, ConnectionRegistry, StatementError  # noqa: E402
from quillsql.compile.sqlite import SQLiteCompiler  # noqa: E402
from quillsql.drivers.sqlalchemy import SQLAlchemyConnection  # noqa: E402
from tests.fixtures import load_ddl  # noqa: E402


@pytest.fixture()
def engine_db() -> Iterator[SQLAlchemyConnection]:
    engine = create_engine("sqlite://")
    connection = SQLAlchemyConnection(engine=engine)
    connection.execute(load_ddl("sqlite"))
    yield connection
    connection.disconnect()
    engine.dispose()


def _names(connection) -> list[str]:
    return connection.execute("SELECT name FROM departments ORDER BY id").get_list()


def test_compiler_follows_the_engine(engine_db):
    assert isinstance(engine_db.compiler, SQLiteCompiler)
    assert engine_db.get_engine().dialect.name == "sqlite"


def test_schema_script_was_split(engine_db):
    assert engine_db.execute("SELECT name FROM employees WHERE id = 4").get() == "O'Brien; Jr"


def test_search(engine_db):
    statement = engine_db.statement().add_table("employees", "e")
    statement.add_table("departments", "d", "d.id = e.department_id")
    statement.add_field("e.name", "name").add_field("d.name", "department")
    statement.add_filter("d.name = {filter.WHERE.department}", {"department": "Engineering"})
    statement.add_sort("e.name", descending=True)
    rows = statement.search().get_assoc_list()
    assert rows == {
        0: {"name": "Grace", "department": "Engineering"},
        1: {"name": "Ada", "department": "Engineering"},
    }


def test_create_and_remove(engine_db):
    statement = engine_db.statement().add_table("departments").add_field("{name}", "name")
    result = statement.create({"name": "Legal"})
    assert result.get_insert_id() == 3
    assert result.get_rows() == 1

    removed = engine_db.statement().add_table("departments").add_filter("name = 'Legal'").remove()
    assert removed.get_rows() == 1
    assert _names(engine_db) == ["Engineering", "Sales"]


def test_transaction_commit(engine_db):
    def hire(connection, transaction):
        connection.execute("INSERT INTO departments (name) VALUES ({name})", {"name": "Ops"})

    engine_db.transaction.run_new(hire, commit=True)
    assert not engine_db.transaction.is_pending()
    assert _names(engine_db) == ["Engineering", "Sales", "Ops"]


def test_transaction_rollback(engine_db):
    with pytest.raises(RuntimeError):
        with engine_db.transaction.new(commit=True):
            engine_db.execute("UPDATE employees SET salary = 0")
            raise RuntimeError("abort")
    assert engine_db.execute("SELECT SUM(salary) FROM employees").get() == 320000


def test_statement_error(engine_db):
    with pytest.raises(StatementError) as exc_info:
        engine_db.execute("SELECT * FROM missing")
    assert exc_info.value.statement == "SELECT * FROM missing"
    assert isinstance(exc_info.value.__cause__, OperationalError)


def test_registry_builds_from_url():
    registry = ConnectionRegistry()
    connection = registry.connect(ConnectionConfig(driver="sqlalchemy", uri="sqlite://"))
    try:
        assert isinstance(connection, SQLAlchemyConnection)
        assert connection.execute("SELECT 1 + 1").get() == 2
    finally:
        registry.close()


def test_failed_command_leaves_no_open_transaction(engine_db):
    with pytest.raises(StatementError):
        engine_db.execute("INSERT INTO missing VALUES (1)")
    assert not engine_db.get_handle().in_transaction()
    engine_db.execute("INSERT INTO departments (name) VALUES ('Ops')")
    assert _names(engine_db)[-1] == "Ops"


def test_failed_command_keeps_pending_transaction(engine_db):
    transaction = engine_db.transaction.begin()
    engine_db.execute("INSERT INTO departments (name) VALUES ('Ops')")
    with pytest.raises(StatementError):
        engine_db.execute("SELECT * FROM missing")
    assert transaction.is_pending()
    assert engine_db.get_handle().in_transaction()
    transaction.rollback()
    assert _names(engine_db) == ["Engineering", "Sales"]
