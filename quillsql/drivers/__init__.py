"""Database drivers.

``quillsql.drivers.sqlite`` needs only the standard library.
``quillsql.drivers.sqlalchemy`` needs the ``sqlalchemy`` extra and is not
imported here.
"""
from quillsql.drivers.sqlite import SQLiteConnection, SQLiteTransaction

__all__ = [
    "SQLiteConnection",
    "SQLiteTransaction",
]
