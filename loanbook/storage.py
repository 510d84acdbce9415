"""
Storage Backend Module

Provides the abstract record-store interface the lending engine talks to, with
in-memory (testing) and SQLite (persistence) implementations. Records are plain
JSON documents; monetary values are stored as Decimal strings and dates as ISO
strings.

The store offers per-record operations only. Each call is atomic on its own
record (last write wins); there are no cross-record transactions.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from datetime import datetime, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass
from pathlib import Path

from .exceptions import NotFoundError, PermissionDenied


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime


def _copy(data: Any) -> Any:
    # JSON round trip doubles as a deep copy and normalises Decimal/date to str
    return json.loads(json.dumps(data, default=str))


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save (insert or replace) a record"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record, None if absent"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def update_fields(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge a partial document into an existing record (last write wins).

        Raises:
            NotFoundError: if the record does not exist
        """
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record, True if something was removed"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(table, {})

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._table(table)[record_id] = _copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._table(table).get(record_id)
            if record is not None:
                return _copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [_copy(record) for record in self._table(table).values()]

    def update_fields(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            record = self._table(table).get(record_id)
            if record is None:
                raise NotFoundError(f"Record {record_id} not found in {table}")
            record.update(_copy(fields))
            return _copy(record)

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._table(table).pop(record_id, None) is not None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """
    SQLite backend. Each table holds one JSON document per row, keyed by id,
    with created_at kept from the first insert.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._tables = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        if table in self._tables:
            return
        self._connection.execute(
            f"CREATE TABLE IF NOT EXISTS {table} "
            f"(id TEXT PRIMARY KEY, data TEXT NOT NULL, created_at TEXT NOT NULL, updated_at TEXT NOT NULL)"
        )
        self._connection.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_created_at ON {table}(created_at)")
        self._connection.commit()
        self._tables.add(table)

    def _query(self, table: str, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            self._ensure_table(table)
            return self._connection.execute(sql.format(table=table), params).fetchall()

    def _write(self, table: str, sql: str, params: tuple = ()) -> int:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(sql.format(table=table), params)
            self._connection.commit()
            return cursor.rowcount

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        # created_at survives a replace
        self._write(
            table,
            "INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at) "
            "VALUES (?, ?, COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?), ?)",
            (record_id, json.dumps(data, default=str), record_id, now, now)
        )

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        rows = self._query(table, "SELECT data FROM {table} WHERE id = ?", (record_id,))
        return json.loads(rows[0]['data']) if rows else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        rows = self._query(table, "SELECT data FROM {table} ORDER BY created_at")
        return [json.loads(row['data']) for row in rows]

    def update_fields(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            record = self.load(table, record_id)
            if record is None:
                raise NotFoundError(f"Record {record_id} not found in {table}")
            record.update(_copy(fields))
            self._write(
                table,
                "UPDATE {table} SET data = ?, updated_at = ? WHERE id = ?",
                (json.dumps(record, default=str), datetime.now(timezone.utc).isoformat(), record_id)
            )
            return record

    def delete(self, table: str, record_id: str) -> bool:
        return self._write(table, "DELETE FROM {table} WHERE id = ?", (record_id,)) > 0

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class ReadOnlyStorage(StorageInterface):
    """
    Wraps another backend, passing reads through and rejecting every write
    with PermissionDenied. Used for read-only deployments and for exercising
    the engine's handling of store-side write rejections.
    """

    def __init__(self, inner: StorageInterface):
        self.inner = inner

    def _deny(self, operation: str, table: str):
        raise PermissionDenied(f"Write '{operation}' on {table} rejected: storage is read-only")

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        self._deny("save", table)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        return self.inner.load(table, record_id)

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        return self.inner.load_all(table)

    def update_fields(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._deny("update", table)

    def delete(self, table: str, record_id: str) -> bool:
        self._deny("delete", table)

    def close(self) -> None:
        self.inner.close()
