"""Results of executed commands.

A :class:`Result` is a forward cursor over the rows a command returned,
plus the command's metadata (affected row count, last insert id).  Rows
materialize in three shapes:

* array: a tuple of values in column order
* assoc: a ``dict`` of column name to value
* object: a :class:`types.SimpleNamespace` with one attribute per column

Each shape has a single-row getter (``get_array(record)``) and a list form
(``get_array_list(index)``).  The list forms return a mapping keyed by row
position, or by the value of the ``index`` column when one is given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from types import SimpleNamespace
from typing import Any


class Result(ABC):
    """Base class of command results.

    Args:
        statement: The applied command text.
        result: Driver handle of the result, released by :meth:`free`.
        exception: Failure recorded by the driver, if any.
        rows: Number of rows returned (queries) or affected (other commands).
        insert_id: Row id generated by an INSERT, when the driver reports one.
    """

    def __init__(
        self,
        statement: str,
        result: Any = None,
        exception: BaseException | None = None,
        rows: int = 0,
        insert_id: int | None = None,
    ) -> None:
        self._statement = statement
        self._result = result
        self._exception = exception
        self._rows = rows
        self._insert_id = insert_id

        self._cursor = 0
        self._row: tuple[Any, ...] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._statement!r}, rows={self._rows})"

    def __enter__(self) -> Result:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.free()

    # ------------------------------------------------------------------
    # Row access hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def columns(self) -> list[str]:
        """Return the column names in order; empty for commands without rows."""

    @abstractmethod
    def _fetch(self, record: int) -> tuple[Any, ...] | None:
        """Return row ``record`` as a tuple, or ``None`` past the end."""

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_statement(self) -> str:
        return self._statement

    def get_result(self) -> Any:
        return self._result

    def get_exception(self) -> BaseException | None:
        return self._exception

    def get_rows(self) -> int:
        return self._rows

    def get_insert_id(self) -> int | None:
        return self._insert_id

    def free(self) -> None:
        """Release the driver handle and reset the cursor."""
        self._result = None
        self._cursor = 0
        self._row = None

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def rewind(self) -> None:
        self._cursor = 0
        self._row = self.get_array(0)

    def advance(self) -> None:
        self._cursor += 1
        self._row = self.get_array(self._cursor)

    def current(self) -> tuple[Any, ...] | None:
        return self._row

    def key(self) -> int:
        return self._cursor

    def valid(self) -> bool:
        return self._row is not None

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        self.rewind()
        while self.valid():
            yield self._row
            self.advance()

    def __len__(self) -> int:
        """Return the number of rows iteration yields.

        Commands without a row set have length 0; their affected row count
        is :meth:`get_rows`.
        """
        if not self.columns():
            return 0
        return self._count()

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def get(self, record: int = 0, field: int | str = 0) -> Any:
        """Return one value of row ``record``; ``None`` when either is missing."""
        row = self.get_array(record)
        if row is None:
            return None
        position = self._position(field)
        if position is None or position >= len(row):
            return None
        return row[position]

    def get_list(self, field: int | str = 0) -> list[Any]:
        """Return the value of ``field`` from every row."""
        return [self.get(record, field) for record in range(self._count())]

    def get_array(self, record: int = 0) -> tuple[Any, ...] | None:
        if record < 0:
            return None
        return self._fetch(record)

    def get_array_list(self, index: int | str | None = None) -> dict[Any, tuple[Any, ...]]:
        return self._listing(self.get_array, index)

    def get_assoc(self, record: int = 0) -> dict[str, Any] | None:
        row = self.get_array(record)
        if row is None:
            return None
        return dict(zip(self.columns(), row))

    def get_assoc_list(self, index: int | str | None = None) -> dict[Any, dict[str, Any]]:
        return self._listing(self.get_assoc, index)

    def get_object(self, record: int = 0) -> SimpleNamespace | None:
        row = self.get_assoc(record)
        if row is None:
            return None
        return SimpleNamespace(**row)

    def get_object_list(self, index: int | str | None = None) -> dict[Any, SimpleNamespace]:
        return self._listing(self.get_object, index)

    def _count(self) -> int:
        record = 0
        while self.get_array(record) is not None:
            record += 1
        return record

    def _position(self, field: int | str) -> int | None:
        if isinstance(field, int):
            return field
        try:
            return self.columns().index(field)
        except ValueError:
            return None

    def _listing(self, shape, index: int | str | None) -> dict[Any, Any]:
        listing: dict[Any, Any] = {}
        for record in range(self._count()):
            key = record if index is None else self.get(record, index)
            listing[key] = shape(record)
        return listing


class BufferedResult(Result):
    """A result whose rows were fully fetched when the command ran.

    Args:
        statement: The applied command text.
        columns: Column names in order.
        rows: The fetched rows.
        affected: Affected row count; defaults to the number of fetched rows.
        insert_id: Row id generated by an INSERT.
        result: Driver handle (cursor), kept until :meth:`free`.
    """

    def __init__(
        self,
        statement: str,
        columns: Sequence[str] = (),
        rows: Sequence[Sequence[Any]] = (),
        affected: int | None = None,
        insert_id: int | None = None,
        result: Any = None,
    ) -> None:
        self._columns = list(columns)
        self._data = [tuple(row) for row in rows]
        super().__init__(
            statement,
            result=result,
            rows=len(self._data) if affected is None else affected,
            insert_id=insert_id,
        )

    def columns(self) -> list[str]:
        return list(self._columns)

    def free(self) -> None:
        super().free()
        self._data = []

    def _fetch(self, record: int) -> tuple[Any, ...] | None:
        if record >= len(self._data):
            return None
        return self._data[record]
