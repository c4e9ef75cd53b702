from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, Response, status

from ..activity_log import ActivityLogWriter
from ..change_detector import has_changes
from ..db import SQLITE_MAX_INT, SQLITE_MIN_INT
from ..dependencies import get_activity_writer, get_repository
from ..errors import TodoNotFoundError
from ..observability import get_logger
from ..repositories import Repository
from ..schemas import TodoCreate, TodoOut, TodoUpdate

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description="List all todos, newest first.",
)
def list_todos(repo: Repository = Depends(get_repository)) -> List[TodoOut]:
    return [TodoOut(**t) for t in repo.list()]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(
    todo_id: int = Path(..., ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT),
    repo: Repository = Depends(get_repository),
) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    item = repo.get(todo_id)
    if item is None:
        raise TodoNotFoundError(todo_id)
    return TodoOut(**item)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and record a Created activity.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
    },
)
def create_todo(
    payload: TodoCreate,
    response: Response,
    repo: Repository = Depends(get_repository),
    activity: ActivityLogWriter = Depends(get_activity_writer),
) -> TodoOut:
    """
    Create a new Todo. The Created entry is written only after the todo is stored.
    """
    created = repo.create(payload)
    logger.info("todo_created", todo_id=created["id"])
    activity.record_created(created)
    response.headers["Location"] = f"/api/todos/{created['id']}"
    return TodoOut(**created)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description="Update the supplied fields of a Todo item; null or absent fields are left unchanged.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def update_todo(
    payload: TodoUpdate,
    todo_id: int = Path(..., ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT),
    repo: Repository = Depends(get_repository),
    activity: ActivityLogWriter = Depends(get_activity_writer),
) -> TodoOut:
    """
    Partial update of a Todo item.

    The before state is read first so the activity log can classify the change.
    Updates that change nothing are not logged.
    """
    before = repo.get(todo_id)
    if before is None:
        raise TodoNotFoundError(todo_id)

    after = repo.update(todo_id, payload)
    if after is None:
        # Deleted by another request between the lookup and the write
        raise TodoNotFoundError(todo_id)

    if has_changes(before, after):
        logger.info("todo_updated", todo_id=todo_id)
        activity.record_updated(before, after)
    else:
        logger.info("todo_update_noop", todo_id=todo_id)
    return TodoOut(**after)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    description="Delete a Todo item by ID, recording a snapshot of its final state.",
    responses={
        204: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(
    todo_id: int = Path(..., ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT),
    repo: Repository = Depends(get_repository),
    activity: ActivityLogWriter = Depends(get_activity_writer),
) -> Response:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    existing = repo.get(todo_id)
    if existing is None:
        raise TodoNotFoundError(todo_id)

    # The snapshot must be taken from the state read before removal
    activity.record_deleted(existing)
    if not repo.delete(todo_id):
        # Removed by a concurrent request after the lookup
        raise TodoNotFoundError(todo_id)
    logger.info("todo_deleted", todo_id=todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
