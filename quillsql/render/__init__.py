"""quillsql rendering layer: value/identifier quoting and template application."""
from quillsql.render.quoting import Quoter
from quillsql.render.template import ScanState, TemplateApplier

__all__ = [
    "Quoter",
    "ScanState",
    "TemplateApplier",
]
