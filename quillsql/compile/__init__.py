"""quillsql compilation layer: Statement → dialect template text."""
from quillsql.compile.base import StatementCompiler
from quillsql.compile.mysql import MySQLCompiler
from quillsql.compile.postgres import PostgresCompiler
from quillsql.compile.registry import CompilerFactory, default_compilers
from quillsql.compile.sqlite import SQLiteCompiler

__all__ = [
    "StatementCompiler",
    "MySQLCompiler",
    "PostgresCompiler",
    "SQLiteCompiler",
    "CompilerFactory",
    "default_compilers",
]
