from __future__ import annotations


class TodoApiError(Exception):
    """Base class for domain errors raised by stores and handlers."""


# PUBLIC_INTERFACE
class TodoNotFoundError(TodoApiError):
    """Raised when a todo id is absent from the entity store."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"Todo {todo_id} not found")
        self.todo_id = todo_id


# PUBLIC_INTERFACE
class StoreUnavailableError(TodoApiError):
    """
    Raised when a backing store cannot be reached or fails an operation.

    `store` names the failing store: 'todos' or 'activity_logs'.
    """

    def __init__(self, store: str, message: str) -> None:
        super().__init__(message)
        self.store = store
        self.message = message
