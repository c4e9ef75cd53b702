"""
Append-only stores for activity log entries.

The log store is independent of the todo store: its own id space, its own
database file, no foreign keys. Entries are written once and never updated
or removed.
"""
from __future__ import annotations

import itertools
import json
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Any, List, Optional, Tuple

from .db import SQLITE_MAX_INT, connect, format_timestamp
from .models import (
    ActivityAction,
    ActivityLogEntry,
    ActivityPayload,
    CreatedDetails,
    DeletedSnapshot,
    FieldChange,
    UpdatedChanges,
)
from .settings import Settings


def _new_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class ActivityLogStore(ABC):
    """Abstract contract for activity log storage backends."""

    @abstractmethod
    def append(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Persist `entry` under a fresh id and return the stored entry."""

    @abstractmethod
    def find(self, todo_id: Optional[int] = None, limit: int = 50) -> List[ActivityLogEntry]:
        """Return up to `limit` entries, newest first, optionally for one todo id."""

    @abstractmethod
    def count(self, todo_id: Optional[int] = None) -> int:
        """Return the number of entries, optionally for one todo id."""


class InMemoryActivityLogStore(ActivityLogStore):
    """
    Thread-safe in-memory log store for testing and the default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        # (insertion sequence, entry); the sequence orders entries sharing a timestamp
        self._entries: List[Tuple[int, ActivityLogEntry]] = []
        self._seq = itertools.count()

    def append(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        stored = replace(entry, id=_new_id())
        with self._lock:
            self._entries.append((next(self._seq), stored))
        return stored

    def _matching(self, todo_id: Optional[int]) -> List[Tuple[int, ActivityLogEntry]]:
        if todo_id is None:
            return list(self._entries)
        return [(seq, e) for seq, e in self._entries if e.todo_id == todo_id]

    def find(self, todo_id: Optional[int] = None, limit: int = 50) -> List[ActivityLogEntry]:
        with self._lock:
            items = self._matching(todo_id)
        items.sort(key=lambda pair: (pair[1].timestamp, pair[0]), reverse=True)
        return [e for _, e in items[: max(limit, 0)]]

    def count(self, todo_id: Optional[int] = None) -> int:
        with self._lock:
            return len(self._matching(todo_id))


def _encode_payload(payload: ActivityPayload) -> Optional[str]:
    doc: Any
    if payload is None:
        return None
    if isinstance(payload, CreatedDetails):
        doc = {"description": payload.description, "isComplete": payload.is_complete}
    elif isinstance(payload, UpdatedChanges):
        doc = [{"field": c.field, "from": c.from_value, "to": c.to_value} for c in payload.changes]
    else:
        doc = {
            "id": payload.id,
            "title": payload.title,
            "description": payload.description,
            "isComplete": payload.is_complete,
            "createdAt": format_timestamp(payload.created_at),
        }
    return json.dumps(doc)


def _decode_payload(action: ActivityAction, raw: Optional[str]) -> ActivityPayload:
    if raw is None:
        return None
    doc = json.loads(raw)
    if action is ActivityAction.CREATED:
        return CreatedDetails(description=doc["description"], is_complete=doc["isComplete"])
    if action is ActivityAction.UPDATED:
        return UpdatedChanges(
            changes=tuple(FieldChange(field=c["field"], from_value=c["from"], to_value=c["to"]) for c in doc)
        )
    return DeletedSnapshot(
        id=doc["id"],
        title=doc["title"],
        description=doc["description"],
        is_complete=doc["isComplete"],
        created_at=datetime.fromisoformat(doc["createdAt"]),
    )


class SQLiteActivityLogStore(ActivityLogStore):
    """
    SQLite-backed log store. Payloads are kept as JSON documents; a composite
    index on (todo_id, timestamp) serves the filtered newest-first query.
    """

    table = "activity_logs"

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    def _conn(self):
        return connect(self._db_path, "activity_logs")

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    action TEXT NOT NULL,
                    todo_id INTEGER NOT NULL,
                    todo_title TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    payload TEXT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_todo_id_timestamp ON {self.table}(todo_id, timestamp)"
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_timestamp ON {self.table}(timestamp)")

    def _row_to_entry(self, row: Any) -> ActivityLogEntry:
        action = ActivityAction(row["action"])
        return ActivityLogEntry(
            id=row["id"],
            action=action,
            todo_id=int(row["todo_id"]),
            todo_title=row["todo_title"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            payload=_decode_payload(action, row["payload"]),
        )

    @staticmethod
    def _where(todo_id: Optional[int]) -> Tuple[str, List[Any]]:
        if todo_id is None:
            return "", []
        return "WHERE todo_id = ?", [todo_id]

    def append(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        stored = replace(entry, id=_new_id())
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {self.table} (id, action, todo_id, todo_title, timestamp, payload)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.id,
                    stored.action.value,
                    stored.todo_id,
                    stored.todo_title,
                    format_timestamp(stored.timestamp),
                    _encode_payload(stored.payload),
                ),
            )
        return stored

    def find(self, todo_id: Optional[int] = None, limit: int = 50) -> List[ActivityLogEntry]:
        where_sql, params = self._where(todo_id)
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {self.table} {where_sql} ORDER BY timestamp DESC, seq DESC LIMIT ?",
                [*params, min(max(limit, 0), SQLITE_MAX_INT)],
            ).fetchall()
            return [self._row_to_entry(r) for r in rows]

    def count(self, todo_id: Optional[int] = None) -> int:
        where_sql, params = self._where(todo_id)
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {self.table} {where_sql}", params).fetchone()
            return int(row["cnt"]) if row else 0


# PUBLIC_INTERFACE
def build_activity_log_store(settings: Settings) -> ActivityLogStore:
    """Return the activity log store configured by settings."""
    if settings.activity_log_backend == "sqlite":
        return SQLiteActivityLogStore(settings.activity_log_db_path)
    return InMemoryActivityLogStore()
