"""UI state for the task list and the add/edit dialog.

State is an immutable ``TaskUiState``; every change goes through
``reduce(state, event)``, which returns a new state and never performs
I/O. The controller dispatches events after talking to the store.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Type

from .parser import ParsedTask
from .task import Task, Priority
from .services.suggestions import get_suggestions


class TaskTab(Enum):
    """List views."""
    ALL = "All"
    ACTIVE = "Active"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class TaskUiState:
    selected_tab: TaskTab = TaskTab.ALL

    # Add/edit dialog
    show_task_dialog: bool = False
    editing_task: Optional[Task] = None
    task_title: str = ""
    task_description: str = ""
    selected_priority: Priority = Priority.MEDIUM
    selected_due_date: Optional[datetime] = None
    has_reminder: bool = False
    selected_category: Optional[str] = None
    smart_suggestions: Tuple[str, ...] = ()

    # Single-slot undo for deletions
    deleted_task: Optional[Task] = None
    show_undo: bool = False

    search_query: str = ""
    category_filter: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class TabSelected:
    tab: TaskTab


@dataclass(frozen=True)
class AddDialogOpened:
    pass


@dataclass(frozen=True)
class EditDialogOpened:
    task: Task


@dataclass(frozen=True)
class DialogClosed:
    pass


@dataclass(frozen=True)
class TitleChanged:
    title: str


@dataclass(frozen=True)
class DescriptionChanged:
    description: str


@dataclass(frozen=True)
class PriorityChanged:
    priority: Priority


@dataclass(frozen=True)
class DueDateChanged:
    due_date: Optional[datetime]


@dataclass(frozen=True)
class ReminderChanged:
    enabled: bool


@dataclass(frozen=True)
class CategoryChanged:
    category: Optional[str]


@dataclass(frozen=True)
class SuggestionApplied:
    parsed: ParsedTask


@dataclass(frozen=True)
class QuickAddParsed:
    parsed: ParsedTask


@dataclass(frozen=True)
class SearchChanged:
    query: str


@dataclass(frozen=True)
class SearchCleared:
    pass


@dataclass(frozen=True)
class CategoryFilterChanged:
    category: Optional[str]


@dataclass(frozen=True)
class TaskDeleted:
    task: Task


@dataclass(frozen=True)
class UndoDismissed:
    pass


@dataclass(frozen=True)
class TaskRestored:
    pass


@dataclass(frozen=True)
class MessageShown:
    message: str


@dataclass(frozen=True)
class MessageCleared:
    pass


def _empty_form(state: TaskUiState, **changes) -> TaskUiState:
    return replace(
        state,
        editing_task=None,
        task_title="",
        task_description="",
        selected_priority=Priority.MEDIUM,
        selected_due_date=None,
        has_reminder=False,
        selected_category=None,
        smart_suggestions=(),
        **changes,
    )


def _edit_form(state: TaskUiState, event: EditDialogOpened) -> TaskUiState:
    task = event.task
    return replace(
        state,
        show_task_dialog=True,
        editing_task=task,
        task_title=task.title,
        task_description=task.description,
        selected_priority=task.priority,
        selected_due_date=task.due_date,
        has_reminder=task.has_reminder,
        selected_category=task.category,
        smart_suggestions=(),
    )


def _title_changed(state: TaskUiState, event: TitleChanged) -> TaskUiState:
    suggestions = tuple(get_suggestions(event.title)) if len(event.title) > 2 else ()
    return replace(state, task_title=event.title, smart_suggestions=suggestions)


def _due_date_changed(state: TaskUiState, event: DueDateChanged) -> TaskUiState:
    if event.due_date is None:
        return replace(state, selected_due_date=None, has_reminder=False)
    return replace(state, selected_due_date=event.due_date)


def _apply_parsed(state: TaskUiState, parsed: ParsedTask, **changes) -> TaskUiState:
    return replace(
        state,
        task_title=parsed.title,
        selected_priority=parsed.priority,
        selected_due_date=parsed.due_date,
        has_reminder=parsed.has_reminder,
        **changes,
    )


_REDUCERS: Dict[Type, Callable[[TaskUiState, object], TaskUiState]] = {
    TabSelected: lambda s, e: replace(s, selected_tab=e.tab),
    AddDialogOpened: lambda s, e: _empty_form(s, show_task_dialog=True),
    EditDialogOpened: _edit_form,
    DialogClosed: lambda s, e: _empty_form(s, show_task_dialog=False),
    TitleChanged: _title_changed,
    DescriptionChanged: lambda s, e: replace(s, task_description=e.description),
    PriorityChanged: lambda s, e: replace(s, selected_priority=e.priority),
    DueDateChanged: _due_date_changed,
    ReminderChanged: lambda s, e: replace(s, has_reminder=e.enabled),
    CategoryChanged: lambda s, e: replace(s, selected_category=e.category),
    SuggestionApplied: lambda s, e: _apply_parsed(s, e.parsed, smart_suggestions=()),
    QuickAddParsed: lambda s, e: _apply_parsed(s, e.parsed),
    SearchChanged: lambda s, e: replace(s, search_query=e.query),
    SearchCleared: lambda s, e: replace(s, search_query=""),
    CategoryFilterChanged: lambda s, e: replace(s, category_filter=e.category),
    TaskDeleted: lambda s, e: replace(s, deleted_task=e.task, show_undo=True),
    UndoDismissed: lambda s, e: replace(s, deleted_task=None, show_undo=False),
    TaskRestored: lambda s, e: replace(s, deleted_task=None, show_undo=False),
    MessageShown: lambda s, e: replace(s, message=e.message),
    MessageCleared: lambda s, e: replace(s, message=None),
}


def reduce(state: TaskUiState, event) -> TaskUiState:
    """Return the state that follows ``event``.

    Raises:
        TypeError: If the event type is unknown.
    """
    handler = _REDUCERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown UI event: {event!r}")
    return handler(state, event)
