"""Shared pytest fixtures for quillSQL unit and integration tests."""
from __future__ import annotations

from collections.abc import Iterator

import pytest

from quillsql.drivers.sqlite import SQLiteConnection
from quillsql.schema.config import ConnectionConfig
from tests.fixtures import RecordingConnection, load_ddl, recording


@pytest.fixture()
def mysql() -> RecordingConnection:
    """Recording connection compiling MySQL."""
    return recording("mysql")


@pytest.fixture()
def sqlite_recorder() -> RecordingConnection:
    """Recording connection compiling SQLite."""
    return recording("sqlite")


@pytest.fixture()
def postgres() -> RecordingConnection:
    """Recording connection compiling PostgreSQL."""
    return recording("postgres")


@pytest.fixture()
def db() -> Iterator[SQLiteConnection]:
    """In-memory SQLite database loaded with the sample schema."""
    connection = SQLiteConnection(ConnectionConfig(uri=":memory:"))
    connection.connect()
    connection.get_handle().executescript(load_ddl("sqlite"))
    yield connection
    connection.disconnect()
