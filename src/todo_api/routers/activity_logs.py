from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..activity_log import ActivityLogReader
from ..db import SQLITE_MAX_INT, SQLITE_MIN_INT
from ..dependencies import get_activity_reader
from ..schemas import ActivityLogCount, ActivityLogOut

router = APIRouter(
    prefix="/api/activity-logs",
    tags=["activity-logs"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ActivityLogOut],
    summary="List Activity Logs",
    description=(
        "List activity log entries, newest first.\n\n"
        "Query parameters:\n"
        "- todoId: only return entries for this todo id\n"
        "- limit: max number of entries to return (default 50)"
    ),
)
def list_activity_logs(
    todo_id: Optional[int] = Query(None, alias="todoId", ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT, description="Filter by todo id"),
    limit: int = Query(50, ge=0, description="Maximum number of entries to return"),
    reader: ActivityLogReader = Depends(get_activity_reader),
) -> List[ActivityLogOut]:
    return [ActivityLogOut.from_entry(e) for e in reader.list_logs(todo_id=todo_id, limit=limit)]


# PUBLIC_INTERFACE
@router.get(
    "/count",
    response_model=ActivityLogCount,
    summary="Count Activity Logs",
    description="Count activity log entries, optionally for a single todo id.",
)
def count_activity_logs(
    todo_id: Optional[int] = Query(None, alias="todoId", ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT, description="Filter by todo id"),
    reader: ActivityLogReader = Depends(get_activity_reader),
) -> ActivityLogCount:
    return ActivityLogCount(count=reader.count_logs(todo_id=todo_id))
