"""quillsql statement model: context store, expressions and the statement builder."""
from quillsql.schema.config import ConnectionConfig, QuoteStyle
from quillsql.schema.context import Context, lookup
from quillsql.schema.expression import Expression, Name
from quillsql.schema.statement import GluedFilter, JoinKind, Statement, TableEntry

__all__ = [
    "ConnectionConfig",
    "QuoteStyle",
    "Context",
    "lookup",
    "Expression",
    "Name",
    "Statement",
    "TableEntry",
    "GluedFilter",
    "JoinKind",
]
