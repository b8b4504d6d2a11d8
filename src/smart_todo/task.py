"""Task data model for smart-todo."""

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from .utils.datetime import now_local, ensure_naive, to_iso_string, from_iso_string


# Id carried by a task that the store has not persisted yet.
UNASSIGNED_ID = 0


class Priority(Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def level(self) -> int:
        """Numeric level used for ordering (higher is more urgent)."""
        return _PRIORITY_LEVELS[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_value(cls, value: Any) -> "Priority":
        """Resolve a priority from an enum, name, value string or level.

        Unknown values fall back to MEDIUM.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.MEDIUM
        if isinstance(value, int):
            for priority, level in _PRIORITY_LEVELS.items():
                if level == value:
                    return priority
            return cls.MEDIUM
        if isinstance(value, str):
            normalized = value.strip().lower()
            for priority in cls:
                if priority.value == normalized:
                    return priority
        return cls.MEDIUM


_PRIORITY_LEVELS = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
}


def _to_bool(value: Any) -> bool:
    """Read a boolean from imported data; unrecognized values are False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return False


@dataclass
class Task:
    """A to-do item as stored, listed and exported."""

    id: int = UNASSIGNED_ID
    title: str = ""
    description: str = ""

    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    has_reminder: bool = False

    completed: bool = False
    completed_at: Optional[datetime] = None

    created_at: datetime = field(default_factory=now_local)
    category: Optional[str] = None

    def __post_init__(self):
        self.priority = Priority.from_value(self.priority)
        self.due_date = ensure_naive(self.due_date)
        self.completed_at = ensure_naive(self.completed_at)
        self.created_at = ensure_naive(self.created_at)

    def complete(self, now: Optional[datetime] = None):
        """Mark the task as completed."""
        if self.completed:
            return
        self.completed = True
        self.completed_at = now or now_local()

    def reopen(self):
        """Reopen a completed task."""
        self.completed = False
        self.completed_at = None

    def toggle_completion(self, now: Optional[datetime] = None):
        if self.completed:
            self.reopen()
        else:
            self.complete(now)

    def clear_due_date(self):
        """Remove the deadline; a reminder without one is meaningless."""
        self.due_date = None
        self.has_reminder = False

    def copy(self, **changes) -> "Task":
        """Return a copy of the task with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to a dictionary with ISO local date-time strings."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "due_date": to_iso_string(self.due_date),
            "has_reminder": self.has_reminder,
            "completed": self.completed,
            "completed_at": to_iso_string(self.completed_at),
            "created_at": to_iso_string(self.created_at),
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a dictionary.

        Missing or malformed date strings become None; a missing creation
        time becomes now.
        """
        return cls(
            id=data.get("id") or UNASSIGNED_ID,
            title=data.get("title") or "",
            description=data.get("description") or "",
            priority=Priority.from_value(data.get("priority", "medium")),
            due_date=from_iso_string(data.get("due_date")),
            has_reminder=_to_bool(data.get("has_reminder", False)),
            completed=_to_bool(data.get("completed", False)),
            completed_at=from_iso_string(data.get("completed_at")),
            created_at=from_iso_string(data.get("created_at")) or now_local(),
            category=data.get("category"),
        )
