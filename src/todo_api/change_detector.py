"""
Before/after classification of todo updates.

Pure functions; no store access.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .models import ActivityAction, FieldChange, TodoEntity

# Comparison order of the mutable fields, paired with their wire names.
_TRACKED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("title", "title"),
    ("description", "description"),
    ("is_complete", "isComplete"),
)


@dataclass(frozen=True)
class ChangeClassification:
    """Result of comparing two states of the same todo."""

    action: ActivityAction
    changes: Optional[Tuple[FieldChange, ...]] = None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


# PUBLIC_INTERFACE
def has_changes(before: TodoEntity, after: TodoEntity) -> bool:
    """Return True if any tracked field differs between the two states."""
    return any(before[key] != after[key] for key, _ in _TRACKED_FIELDS)


# PUBLIC_INTERFACE
def detect_change(before: TodoEntity, after: TodoEntity) -> ChangeClassification:
    """
    Classify the transition from `before` to `after`.

    A flip of is_complete with title and description untouched is reported as
    Completed/Uncompleted without a change list. Anything else is Updated with
    one FieldChange per differing field, in title, description, isComplete
    order. Identical states yield Updated with an empty list.
    """
    if (
        before["is_complete"] != after["is_complete"]
        and before["title"] == after["title"]
        and before["description"] == after["description"]
    ):
        action = ActivityAction.COMPLETED if after["is_complete"] else ActivityAction.UNCOMPLETED
        return ChangeClassification(action=action)

    changes: List[FieldChange] = []
    for key, wire_name in _TRACKED_FIELDS:
        if before[key] != after[key]:
            changes.append(
                FieldChange(
                    field=wire_name,
                    from_value=_as_text(before[key]),
                    to_value=_as_text(after[key]),
                )
            )
    return ChangeClassification(action=ActivityAction.UPDATED, changes=tuple(changes))
