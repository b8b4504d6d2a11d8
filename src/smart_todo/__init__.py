"""smart-todo - A to-do list that understands plain-English task sentences."""

__version__ = "0.1.0"
__author__ = "smart-todo Team"

from .task import Task, Priority
from .parser import ParsedTask, SmartTaskParser, TaskBuilder, parse_task_input

__all__ = [
    "Task",
    "Priority",
    "ParsedTask",
    "SmartTaskParser",
    "TaskBuilder",
    "parse_task_input",
    "__version__",
]
