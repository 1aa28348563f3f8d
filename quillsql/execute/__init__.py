"""quillsql execution layer: connections, transactions and results."""
from quillsql.execute.connection import Connection, ConnectionRegistry
from quillsql.execute.result import BufferedResult, Result
from quillsql.execute.transaction import Transaction

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "Result",
    "BufferedResult",
    "Transaction",
]
