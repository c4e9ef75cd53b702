from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, List, Optional

from .errors import StoreUnavailableError
from .models import TodoEntity
from .repositories import Repository, apply_update
from .schemas import TodoCreate, TodoUpdate


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    is_complete: str = "is_complete"
    created_at: str = "created_at"


_COLS = _Cols()

# SQLite INTEGER range; larger Python ints cannot be bound as parameters
SQLITE_MIN_INT = -(2**63)
SQLITE_MAX_INT = 2**63 - 1


def format_timestamp(value: datetime) -> str:
    """ISO text with fixed microsecond precision so stored values sort lexically."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


@contextmanager
def connect(db_path: str, store: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Open a short-lived connection, committing on success.

    Any sqlite3.Error is re-raised as StoreUnavailableError tagged with `store`.
    """
    try:
        conn = sqlite3.connect(db_path)
    except sqlite3.Error as exc:
        raise StoreUnavailableError(store, f"cannot open {store} store: {exc}") from exc
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        # close() discards the uncommitted transaction
        raise StoreUnavailableError(store, f"{store} store operation failed: {exc}") from exc
    finally:
        conn.close()


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    def _conn(self):
        return connect(self._db_path, "todos")

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.is_complete} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "is_complete": bool(row[_COLS.is_complete]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
        }

    def _select(self, conn: sqlite3.Connection, todo_id: int) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,)).fetchone()

    def create(self, data: TodoCreate) -> TodoEntity:
        now = format_timestamp(datetime.now(timezone.utc))
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.description}, {_COLS.is_complete}, {_COLS.created_at})
                VALUES (?, ?, 0, ?)
                """,
                (data.title, data.description, now),
            )
            row = self._select(conn, cur.lastrowid)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = self._select(conn, todo_id)
            return self._row_to_entity(row) if row else None

    def update(self, todo_id: int, data: TodoUpdate) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = self._select(conn, todo_id)
            if not row:
                return None
            updated = apply_update(self._row_to_entity(row), data)
            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.is_complete} = ?
                WHERE {_COLS.id} = ?
                """,
                (updated["title"], updated["description"], 1 if updated["is_complete"] else 0, todo_id),
            )
            row2 = self._select(conn, todo_id)
            assert row2 is not None
            return self._row_to_entity(row2)

    def delete(self, todo_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            return cur.rowcount > 0

    def list(self) -> List[TodoEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.created_at} DESC, {_COLS.id} DESC"
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]
