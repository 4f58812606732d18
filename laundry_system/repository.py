"""Repository plumbing and error types shared by the service layer."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Generic, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InvalidInputError(ValueError):
    """Raised when a request is rejected before touching storage."""


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(sep=" ", timespec="microseconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class SQLiteRepository(Generic[T]):
    """Base class for repositories backed by a single SQLite table.

    Subclasses set ``table`` and implement ``_from_row``. ``select_sql`` and
    ``id_column`` may be overridden for views that join other tables.
    Repositories never commit; writes are grouped by the caller through
    :meth:`LaundryDatabase.transaction`.
    """

    table: str = ""
    label: str = "Record"
    select_sql: Optional[str] = None
    id_column: str = "id"
    order_by: str = "rowid"

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def _from_row(self, row: sqlite3.Row) -> T:
        raise NotImplementedError

    def _select(self) -> str:
        return self.select_sql or f"SELECT * FROM {self.table}"  # nosec - static table names

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._connection.execute(sql, tuple(params))

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[T]:
        cursor = self._execute(sql, params)
        return [self._from_row(row) for row in cursor.fetchall()]

    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        cursor = self._execute(
            f"SELECT 1 FROM {self.table} WHERE id = ? LIMIT 1", (item_id,)
        )
        return cursor.fetchone() is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def __len__(self) -> int:
        cursor = self._execute(f"SELECT COUNT(1) FROM {self.table}")
        value = cursor.fetchone()
        return int(value[0]) if value else 0

    def find(self, item_id: str) -> Optional[T]:
        cursor = self._execute(
            f"{self._select()} WHERE {self.id_column} = ?", (item_id,)
        )
        row = cursor.fetchone()
        return self._from_row(row) if row is not None else None

    def get(self, item_id: str) -> T:
        item = self.find(item_id)
        if item is None:
            raise RecordNotFoundError(f"{self.label} {item_id!r} not found")
        return item

    def remove(self, item_id: str) -> None:
        cursor = self._execute(f"DELETE FROM {self.table} WHERE id = ?", (item_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"{self.label} {item_id!r} not found")

    def list(self) -> List[T]:
        return self._query(f"{self._select()} ORDER BY {self.order_by}")

    def _require_updated(self, cursor: sqlite3.Cursor, item_id: str) -> None:
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"{self.label} {item_id!r} not found")


__all__ = [
    "SQLiteRepository",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "InvalidInputError",
    "to_db_timestamp",
    "from_db_timestamp",
]
