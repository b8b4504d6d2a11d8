"""Ordering and derivation rules for task list views.

Pure functions over Task values: overdue/due-today status, relative time
labels and the sort orders used by the "all", "active" and "completed"
views. Every function that depends on the current moment accepts it as
an argument.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from ..task import Task
from ..utils.datetime import now_local, max_local, min_local


# Rank of completed tasks in the combined view, below every active rank.
COMPLETED_RANK = 999
OVERDUE_RANK = 0

WEEKDAY_LABELS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class TaskCounts:
    """Counts shown in the list header."""
    active: int
    completed: int
    overdue: int


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """Check if the task is overdue."""
    if task.due_date is None or task.completed:
        return False
    return task.due_date < (now or now_local())


def is_due_today(task: Task, now: Optional[datetime] = None) -> bool:
    if task.due_date is None:
        return False
    return task.due_date.date() == (now or now_local()).date()


def is_due_tomorrow(task: Task, now: Optional[datetime] = None) -> bool:
    if task.due_date is None:
        return False
    return (task.due_date.date() - (now or now_local()).date()).days == 1


def format_time(dt: datetime) -> str:
    """Format as ``h:mm AM``."""
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {meridiem}"


def format_short_date(dt: datetime) -> str:
    """Format as ``MMM dd``."""
    return f"{MONTH_LABELS[dt.month - 1]} {dt.day:02d}"


def format_for_display(dt: datetime) -> str:
    """Format as ``MMM dd, yyyy at h:mm AM``."""
    return f"{format_short_date(dt)}, {dt.year:04d} at {format_time(dt)}"


def relative_time_label(dt: datetime, now: Optional[datetime] = None) -> str:
    """Describe ``dt`` relative to the current day.

    Today, tomorrow and yesterday are named; other days within a week use
    the weekday name ("Last" for the past); anything further out falls
    back to the full date.
    """
    days_diff = (dt.date() - (now or now_local()).date()).days
    time_label = format_time(dt)
    weekday = WEEKDAY_LABELS[dt.weekday()]

    if days_diff == 0:
        return f"Today {time_label}"
    if days_diff == 1:
        return f"Tomorrow {time_label}"
    if days_diff == -1:
        return f"Yesterday {time_label}"
    if 1 < days_diff <= 7:
        return f"{weekday} {time_label}"
    if -7 <= days_diff < -1:
        return f"Last {weekday} {time_label}"
    return format_for_display(dt)


def time_until_due(dt: datetime, now: Optional[datetime] = None) -> str:
    """Compact countdown such as ``3h 20m`` or ``2d 4h``."""
    seconds = (dt - (now or now_local())).total_seconds()
    if seconds < 0:
        return "Overdue"

    minutes = int(seconds // 60)
    hours = minutes // 60
    if hours == 0:
        return f"{minutes}m"
    if hours < 24:
        return f"{hours}h {minutes % 60}m"
    return f"{hours // 24}d {hours % 24}h"


def sort_rank(task: Task, now: Optional[datetime] = None) -> int:
    """Primary rank in the combined view; lower sorts first."""
    if task.completed:
        return COMPLETED_RANK
    if is_overdue(task, now):
        return OVERDUE_RANK
    # HIGH -> 1, MEDIUM -> 2, LOW -> 3
    return 3 - task.priority.level


def sort_all(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[Task]:
    """Order for the combined list view.

    Overdue incomplete tasks first, then incomplete tasks by priority
    (highest first), then completed tasks. Ties are broken by due date,
    or by creation time for tasks without one.
    """
    now = now or now_local()
    return sorted(
        tasks,
        key=lambda task: (
            sort_rank(task, now),
            task.due_date if task.due_date is not None else task.created_at,
        ),
    )


def sort_active(tasks: Iterable[Task]) -> List[Task]:
    """Incomplete tasks by priority descending, then due date ascending."""
    active = [task for task in tasks if not task.completed]
    return sorted(
        active,
        key=lambda task: (
            -task.priority.level,
            task.due_date or max_local(),
        ),
    )


def sort_completed(tasks: Iterable[Task]) -> List[Task]:
    """Completed tasks, most recently completed first."""
    completed = [task for task in tasks if task.completed]
    return sorted(
        completed,
        key=lambda task: task.completed_at or min_local(),
        reverse=True,
    )


def matches_query(task: Task, query: str) -> bool:
    """Case-insensitive title/description substring match."""
    needle = query.strip().lower()
    if not needle:
        return True
    return needle in task.title.lower() or needle in (task.description or "").lower()


def filter_tasks(tasks: Iterable[Task], query: Optional[str] = None,
                 category: Optional[str] = None) -> List[Task]:
    """Filter by category and search text, keeping the incoming order."""
    filtered = list(tasks)
    if category is not None:
        filtered = [task for task in filtered if task.category == category]
    if query:
        filtered = [task for task in filtered if matches_query(task, query)]
    return filtered


def count_tasks(tasks: Iterable[Task], now: Optional[datetime] = None) -> TaskCounts:
    now = now or now_local()
    active = completed = overdue = 0
    for task in tasks:
        if task.completed:
            completed += 1
        else:
            active += 1
            if is_overdue(task, now):
                overdue += 1
    return TaskCounts(active=active, completed=completed, overdue=overdue)
