"""
Activity log writer and reader.

The writer turns todo mutations into ActivityLogEntry records and appends
them to the log store; the reader serves newest-first queries over it.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from .activity_store import ActivityLogStore
from .change_detector import detect_change
from .errors import StoreUnavailableError
from .models import (
    ActivityAction,
    ActivityLogEntry,
    ActivityPayload,
    CreatedDetails,
    DeletedSnapshot,
    TodoEntity,
    UpdatedChanges,
)
from .observability import get_logger

logger = get_logger(__name__)


# PUBLIC_INTERFACE
class ActivityLogWriter:
    """
    Records one log entry per todo mutation.

    With strict=True a StoreUnavailableError from the log store propagates to
    the caller. With strict=False the failure is logged as
    `activity_log_write_failed` and the record_* call returns None.
    """

    def __init__(self, store: ActivityLogStore, strict: bool = True) -> None:
        self._store = store
        self._strict = strict

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _write(self, action: ActivityAction, todo: TodoEntity, payload: ActivityPayload = None) -> Optional[ActivityLogEntry]:
        entry = ActivityLogEntry(
            action=action,
            todo_id=todo["id"],
            todo_title=todo["title"],
            timestamp=self._now(),
            payload=payload,
        )
        try:
            stored = self._store.append(entry)
        except StoreUnavailableError as exc:
            if self._strict:
                raise
            logger.warning(
                "activity_log_write_failed",
                action=action.value,
                todo_id=todo["id"],
                error=exc.message,
            )
            return None
        logger.debug("activity_logged", action=action.value, todo_id=todo["id"], log_id=stored.id)
        return stored

    def record_created(self, todo: TodoEntity) -> Optional[ActivityLogEntry]:
        details = CreatedDetails(description=todo["description"], is_complete=todo["is_complete"])
        return self._write(ActivityAction.CREATED, todo, details)

    def record_updated(self, before: TodoEntity, after: TodoEntity) -> Optional[ActivityLogEntry]:
        """Classify the before/after pair and record the resulting action."""
        classification = detect_change(before, after)
        payload: ActivityPayload = None
        if classification.action is ActivityAction.UPDATED:
            payload = UpdatedChanges(changes=classification.changes or ())
        return self._write(classification.action, after, payload)

    def record_deleted(self, todo: TodoEntity) -> Optional[ActivityLogEntry]:
        """Record a deletion; `todo` must be the state read before removal."""
        return self._write(ActivityAction.DELETED, todo, DeletedSnapshot.of(todo))


# PUBLIC_INTERFACE
class ActivityLogReader:
    """Read-only queries over the activity log store."""

    def __init__(self, store: ActivityLogStore) -> None:
        self._store = store

    def list_logs(self, todo_id: Optional[int] = None, limit: int = 50) -> List[ActivityLogEntry]:
        """
        Return at most `limit` entries ordered by timestamp, newest first.
        When `todo_id` is given only that todo's entries are returned.
        """
        return self._store.find(todo_id=todo_id, limit=limit)

    def count_logs(self, todo_id: Optional[int] = None) -> int:
        """Return the number of matching entries, irrespective of any limit."""
        return self._store.count(todo_id=todo_id)
