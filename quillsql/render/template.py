"""Placeholder substitution and multi-statement splitting.

Templates are plain SQL text with ``{...}`` placeholders:

``{path}``
    resolve ``path`` in the context and insert the value-quoted result
``{!path}``
    insert the identifier-quoted result
``{?path}``
    insert the raw text (pre-built fragments, trusted input only)

Paths are dotted (``{filter.WHERE.id}``).  A missing path resolves to
``None``.  Text inside a literal block (any of the style's delimiter
characters) is copied verbatim, so braces inside string literals and quoted
names never start a placeholder.

Both :meth:`TemplateApplier.apply` and :meth:`TemplateApplier.split` drive
the same two-state scanner: ``NORMAL`` and ``LITERAL`` (remembering the
delimiter that opened it).
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from quillsql.render.quoting import Quoter
from quillsql.schema.context import Context, lookup

PLACEHOLDER_START = "{"
PLACEHOLDER_END = "}"


class ScanState(Enum):
    NORMAL = "normal"
    LITERAL = "literal"


class _Scanner:
    """Literal-aware character scanner over one piece of text."""

    def __init__(self, text: str, delimiters: str, backslash_escapes: bool) -> None:
        self.text = text
        self.state = ScanState.NORMAL
        self.delimiter: str | None = None
        self._delimiters = delimiters
        self._backslash_escapes = backslash_escapes
        self._escape_next = False

    def feed(self, index: int) -> ScanState:
        """Update the state for the character at ``index``.

        Characters must be fed in order.  Returns the state the character
        belongs to; the opening and closing delimiters both belong to the
        literal.
        """
        char = self.text[index]
        escaped, self._escape_next = self._escape_next, False
        if not escaped and self._backslash_escapes and char == "\\":
            self._escape_next = True
            return self.state
        if self.state is ScanState.LITERAL:
            if char == self.delimiter and not escaped:
                self.state = ScanState.NORMAL
                self.delimiter = None
            return ScanState.LITERAL
        if char in self._delimiters and not escaped:
            self.state = ScanState.LITERAL
            self.delimiter = char
            return ScanState.LITERAL
        return ScanState.NORMAL


class TemplateApplier:
    """Resolves placeholders through a :class:`Quoter`.

    Args:
        quoter: Quoter of the target dialect; its style supplies the
            delimiter, separator and marker characters.
    """

    def __init__(self, quoter: Quoter) -> None:
        self.quoter = quoter
        self.style = quoter.style

    def _scanner(self, text: str) -> _Scanner:
        return _Scanner(text, self.style.delimiters, self.style.backslash_escapes)

    def apply(self, template: str, context: Context | Mapping[str, Any] | None = None) -> str:
        """Return ``template`` with every placeholder replaced.

        Never raises for missing context keys: they resolve to ``None``.
        """
        scanner = self._scanner(template)
        output: list[str] = []
        index = 0
        length = len(template)
        while index < length:
            char = template[index]
            if scanner.feed(index) is ScanState.NORMAL and char == PLACEHOLDER_START:
                end = template.find(PLACEHOLDER_END, index + 1)
                if end > index + 1:
                    output.append(self._resolve(template[index + 1 : end], context))
                    index = end + 1
                    continue
            output.append(char)
            index += 1
        return "".join(output)

    def _resolve(self, body: str, context: Context | Mapping[str, Any] | None) -> str:
        marker = body[0]
        if marker in (self.style.name_marker, self.style.raw_marker):
            path = body[1:].strip()
        else:
            path = body.strip()
        value = lookup(context, path)

        if marker == self.style.name_marker:
            return self.quoter.quote_identifier(value)
        if marker == self.style.raw_marker:
            return "" if value is None else str(value)
        return self.quoter.quote_value(value)

    def split(self, text: str) -> list[str]:
        """Split multi-statement text on the separator outside literals.

        Fragments are stripped; empty fragments are dropped.
        """
        return [command for command in self._iter_commands(text) if command]

    def _iter_commands(self, text: str) -> Iterator[str]:
        scanner = self._scanner(text)
        separator = self.style.statement_separator
        start = 0
        for index, char in enumerate(text):
            if scanner.feed(index) is ScanState.NORMAL and char == separator:
                yield text[start:index].strip()
                start = index + 1
        yield text[start:].strip()
