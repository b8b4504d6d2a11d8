"""Validation utilities and error types for smart-todo.

Tasks are validated at save time: the title must be non-blank once
trimmed, and a reminder flag without a due date is normalized away.
"""

import logging
from typing import Any, List

logger = logging.getLogger(__name__)


class TaskValidationError(Exception):
    """Exception raised when a task fails validation before saving."""

    def __init__(self, message: str, field_name: str, value: Any, suggestions: List[str] = None):
        self.field_name = field_name
        self.value = value
        self.suggestions = suggestions or []
        super().__init__(message)


BLANK_TITLE_MESSAGE = "Task title cannot be blank"


class StorageError(Exception):
    """Exception raised when the task store cannot complete an operation."""


def validate_task(task, strict_mode: bool = True):
    """Validate a Task before it is persisted.

    Args:
        task: Task object to validate
        strict_mode: If True, raise on a blank title. If False, log a
                     warning and leave the task untouched.

    Returns:
        The same task, with its title trimmed and a dangling reminder flag
        cleared.

    Raises:
        TaskValidationError: If strict_mode is True and the title is blank.
    """
    title = (task.title or "").strip()
    if not title:
        message = BLANK_TITLE_MESSAGE
        if strict_mode:
            raise TaskValidationError(message, "title", task.title, [
                "Enter a short description of the task",
            ])
        logger.warning(message)
        return task

    task.title = title

    if task.has_reminder and task.due_date is None:
        logger.debug(f"Clearing reminder on task {task.id}: no due date")
        task.has_reminder = False

    return task
