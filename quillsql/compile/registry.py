"""Compiler registry.

``CompilerFactory`` maps dialect target names to
:class:`~quillsql.compile.base.StatementCompiler` classes.  A factory is a
plain object owned by whoever builds connections (usually a
:class:`~quillsql.execute.connection.ConnectionRegistry`), so two
applications in one process can register different compilers under the
same name.

Usage::

    from quillsql.compile.registry import default_compilers

    compilers = default_compilers()

    @compilers.register("mariadb")
    class MariaDBCompiler(MySQLCompiler):
        ...

    compiler = compilers.create("mariadb")
"""

from __future__ import annotations

from collections.abc import Callable

from quillsql.compile.base import StatementCompiler
from quillsql.compile.mysql import MySQLCompiler
from quillsql.compile.postgres import PostgresCompiler
from quillsql.compile.sqlite import SQLiteCompiler
from quillsql.errors import CompilationError


class CompilerFactory:
    """Registry mapping dialect target names to compiler classes.

    Example::

        factory = CompilerFactory()
        factory.register_class("mysql", MySQLCompiler)
        compiler = factory.create("mysql")
    """

    def __init__(self) -> None:
        self._compilers: dict[str, type[StatementCompiler]] = {}

    def register(
        self, name: str
    ) -> Callable[[type[StatementCompiler]], type[StatementCompiler]]:
        """Decorator that registers a compiler class under ``name``.

        Args:
            name: The dialect target name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the compiler class.
        """

        def decorator(compiler_cls: type[StatementCompiler]) -> type[StatementCompiler]:
            self._compilers[name] = compiler_cls
            return compiler_cls

        return decorator

    def register_class(self, name: str, compiler_cls: type[StatementCompiler]) -> None:
        """Register a compiler class without using the decorator form.

        Args:
            name: The dialect target name.
            compiler_cls: The :class:`StatementCompiler` subclass to register.
        """
        self._compilers[name] = compiler_cls

    def create(self, name: str) -> StatementCompiler:
        """Instantiate the compiler registered for ``name``.

        Args:
            name: The dialect target name.

        Returns:
            A fresh :class:`StatementCompiler` instance.

        Raises:
            CompilationError: If no compiler is registered for ``name``.
        """
        compiler_cls = self._compilers.get(name)
        if compiler_cls is None:
            registered = sorted(self._compilers)
            raise CompilationError(
                f"Unsupported dialect target: '{name}'. Registered targets: {registered}."
            )
        return compiler_cls()

    def registered_targets(self) -> list[str]:
        """Return the sorted list of registered dialect target names."""
        return sorted(self._compilers)


def default_compilers() -> CompilerFactory:
    """Return a factory pre-loaded with the built-in dialects."""
    factory = CompilerFactory()
    factory.register_class("mysql", MySQLCompiler)
    factory.register_class("sqlite", SQLiteCompiler)
    factory.register_class("postgres", PostgresCompiler)
    return factory
