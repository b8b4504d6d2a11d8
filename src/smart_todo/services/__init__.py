"""Application services for smart-todo."""

from .export import ExportManager, export_tasks_to_json, import_tasks_from_json
from .ordering import TaskCounts, filter_tasks, sort_active, sort_all, sort_completed
from .reminders import (
    InProcessScheduler,
    Notification,
    ReminderManager,
    ReminderWorker,
    Scheduler,
)
from .suggestions import get_suggestions, suggest_categories

__all__ = [
    "ExportManager",
    "export_tasks_to_json",
    "import_tasks_from_json",
    "TaskCounts",
    "filter_tasks",
    "sort_active",
    "sort_all",
    "sort_completed",
    "InProcessScheduler",
    "Notification",
    "ReminderManager",
    "ReminderWorker",
    "Scheduler",
    "get_suggestions",
    "suggest_categories",
]
