from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, TypedDict, Union


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo item for non-ORM storage
    backends.

    Fields:
    - id: Unique integer identifier assigned by the entity store
    - title: Non-empty title
    - description: Optional detailed description
    - is_complete: Boolean completion flag (False on creation)
    - created_at: UTC creation timestamp, set once
    """

    id: int
    title: str
    description: Optional[str]
    is_complete: bool
    created_at: datetime


# PUBLIC_INTERFACE
class ActivityAction(str, Enum):
    """Semantic action recorded in the activity log."""

    CREATED = "Created"
    UPDATED = "Updated"
    COMPLETED = "Completed"
    UNCOMPLETED = "Uncompleted"
    DELETED = "Deleted"


@dataclass(frozen=True)
class FieldChange:
    """A single field difference; both sides are text (or None for a missing description)."""

    field: str
    from_value: Optional[str]
    to_value: Optional[str]


@dataclass(frozen=True)
class CreatedDetails:
    description: Optional[str]
    is_complete: bool


@dataclass(frozen=True)
class UpdatedChanges:
    changes: Tuple[FieldChange, ...] = ()


@dataclass(frozen=True)
class DeletedSnapshot:
    """Full state of a todo captured immediately before deletion."""

    id: int
    title: str
    description: Optional[str]
    is_complete: bool
    created_at: datetime

    @classmethod
    def of(cls, todo: TodoEntity) -> "DeletedSnapshot":
        return cls(
            id=todo["id"],
            title=todo["title"],
            description=todo["description"],
            is_complete=todo["is_complete"],
            created_at=todo["created_at"],
        )


ActivityPayload = Union[CreatedDetails, UpdatedChanges, DeletedSnapshot, None]

# Completed/Uncompleted carry no payload.
_PAYLOAD_TYPES = {
    ActivityAction.CREATED: CreatedDetails,
    ActivityAction.UPDATED: UpdatedChanges,
    ActivityAction.COMPLETED: type(None),
    ActivityAction.UNCOMPLETED: type(None),
    ActivityAction.DELETED: DeletedSnapshot,
}


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ActivityLogEntry:
    """
    An immutable activity log record.

    The payload variant is fixed by the action; a mismatch raises ValueError.
    `id` is None until the log store assigns one on append.
    """

    action: ActivityAction
    todo_id: int
    todo_title: str
    timestamp: datetime
    payload: ActivityPayload = None
    id: Optional[str] = None

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES[self.action]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.action.value} entries require a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )

    @property
    def details(self) -> Optional[CreatedDetails]:
        return self.payload if isinstance(self.payload, CreatedDetails) else None

    @property
    def changes(self) -> Optional[Tuple[FieldChange, ...]]:
        return self.payload.changes if isinstance(self.payload, UpdatedChanges) else None

    @property
    def snapshot(self) -> Optional[DeletedSnapshot]:
        return self.payload if isinstance(self.payload, DeletedSnapshot) else None
