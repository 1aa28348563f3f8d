"""Pydantic models for connection and quoting configuration.

``QuoteStyle`` describes the delimiter characters a dialect uses; every
compiler exposes one.  ``ConnectionConfig`` carries what a driver needs to
open a connection::

    from quillsql import ConnectionConfig, ConnectionRegistry

    registry = ConnectionRegistry()
    connection = registry.connect(ConnectionConfig(driver="sqlite", uri=":memory:"))
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class QuoteStyle(BaseModel):
    """Delimiter characters used when quoting and parsing statement text.

    Attributes:
        value_quote: Encloses quoted text values.
        identifier_quote: Encloses each identifier segment.
        name_separator: Namespace separator inside identifiers.
        delimiters: Characters opening a literal block the parser skips.
        statement_separator: Separates commands in multi-statement text.
        raw_marker: Placeholder prefix for raw insertion.
        name_marker: Placeholder prefix for identifier insertion.
        backslash_escapes: A backslash before a delimiter escapes it.  Turn
            off for dialects that escape quotes by doubling them, where a
            trailing backslash inside a literal is ordinary text.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    value_quote: str = Field(default="'", min_length=1, max_length=1)
    identifier_quote: str = Field(default="`", min_length=1, max_length=1)
    name_separator: str = Field(default=".", min_length=1, max_length=1)
    delimiters: str = Field(default="'\"`", min_length=1)
    statement_separator: str = Field(default=";", min_length=1, max_length=1)
    raw_marker: str = Field(default="?", min_length=1, max_length=1)
    name_marker: str = Field(default="!", min_length=1, max_length=1)
    backslash_escapes: bool = True


class ConnectionConfig(BaseModel):
    """Settings for one database connection.

    Attributes:
        driver: Registry key of the connection class (``'sqlite'``,
            ``'sqlalchemy'``, ...).
        uri: Driver-specific location (file path, SQLAlchemy URL, ...).
        user: Optional user name.
        password: Optional password; never rendered in messages.
        database: Optional database to select after connecting.
        options: Driver-specific options.
        dialect: Compiler target; ``None`` lets the driver decide.
    """

    model_config = ConfigDict(extra="forbid")

    driver: str = "sqlite"
    uri: str = ":memory:"
    user: str | None = None
    password: SecretStr | None = None
    database: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    dialect: str | None = None

    def identity(self) -> str:
        """Return ``user@uri`` (or ``uri``) for diagnostics."""
        return f"{self.user}@{self.uri}" if self.user else self.uri

    def registry_key(self) -> tuple[str, str, str | None, str | None]:
        return (self.driver, self.uri, self.user, self.database)
