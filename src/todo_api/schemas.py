from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import ActivityLogEntry, CreatedDetails, DeletedSnapshot, FieldChange


def _require_title_text(v: str) -> str:
    if not v.strip():
        raise ValueError("title must not be empty")
    return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(_CamelModel):
    """
    Schema for creating a new Todo item. New todos always start incomplete.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
            }
        },
    )

    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Reject empty or whitespace-only titles.
        """
        return _require_title_text(v)


# PUBLIC_INTERFACE
class TodoUpdate(_CamelModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; null or absent fields leave the stored value unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "isComplete": True,
            }
        },
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    is_complete: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_title_text(v)


# PUBLIC_INTERFACE
class TodoOut(_CamelModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "isComplete": False,
                "createdAt": "2025-01-25T10:15:30.123456Z",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    is_complete: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")


class FieldChangeOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    from_value: Optional[str] = Field(default=None, alias="from")
    to_value: Optional[str] = Field(default=None, alias="to")

    @classmethod
    def from_change(cls, change: FieldChange) -> "FieldChangeOut":
        return cls(field=change.field, from_value=change.from_value, to_value=change.to_value)


class CreatedDetailsOut(_CamelModel):
    description: Optional[str] = None
    is_complete: bool

    @classmethod
    def from_details(cls, details: CreatedDetails) -> "CreatedDetailsOut":
        return cls(description=details.description, is_complete=details.is_complete)


class TodoSnapshotOut(_CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    is_complete: bool
    created_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: DeletedSnapshot) -> "TodoSnapshotOut":
        return cls(
            id=snapshot.id,
            title=snapshot.title,
            description=snapshot.description,
            is_complete=snapshot.is_complete,
            created_at=snapshot.created_at,
        )


# PUBLIC_INTERFACE
class ActivityLogOut(_CamelModel):
    """
    Schema returned by the API for an activity log entry.

    Exactly one of details/changes/snapshot is populated depending on the
    action; Completed and Uncompleted entries carry none.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3f9c2d0e8a7b4c1d9e6f5a4b3c2d1e0f",
                "action": "Updated",
                "todoId": 1,
                "todoTitle": "New",
                "timestamp": "2025-01-26T09:00:00.000001Z",
                "details": None,
                "changes": [{"field": "title", "from": "Test todo", "to": "New"}],
                "snapshot": None,
            }
        },
    )

    id: str = Field(..., description="Log entry identifier (independent of todo ids)")
    action: str = Field(..., description="Created, Updated, Completed, Uncompleted or Deleted")
    todo_id: int = Field(..., description="Id of the todo the event refers to")
    todo_title: str = Field(..., description="Todo title at the time of the event")
    timestamp: datetime = Field(..., description="Event time (UTC)")
    details: Optional[CreatedDetailsOut] = None
    changes: Optional[List[FieldChangeOut]] = None
    snapshot: Optional[TodoSnapshotOut] = None

    @classmethod
    def from_entry(cls, entry: ActivityLogEntry) -> "ActivityLogOut":
        details = entry.details
        changes = entry.changes
        snapshot = entry.snapshot
        return cls(
            id=entry.id or "",
            action=entry.action.value,
            todo_id=entry.todo_id,
            todo_title=entry.todo_title,
            timestamp=entry.timestamp,
            details=CreatedDetailsOut.from_details(details) if details else None,
            changes=[FieldChangeOut.from_change(c) for c in changes] if changes is not None else None,
            snapshot=TodoSnapshotOut.from_snapshot(snapshot) if snapshot else None,
        )


# PUBLIC_INTERFACE
class ActivityLogCount(BaseModel):
    """Response body of the activity log count endpoint."""

    count: int = Field(..., description="Number of matching log entries")
