"""Application controller tying the store, parser and reminders together.

Each operation performs its I/O against the injected collaborators and
then dispatches events through the pure ``state.reduce`` function.
Persistence failures are reported through ``state.message`` and are not
retried.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .parser import SmartTaskParser, TaskBuilder
from .services.export import export_tasks_to_json, import_tasks_from_json
from .services.ordering import TaskCounts, filter_tasks
from .services.reminders import ReminderManager
from .state import (
    AddDialogOpened,
    CategoryChanged,
    CategoryFilterChanged,
    DescriptionChanged,
    DialogClosed,
    DueDateChanged,
    EditDialogOpened,
    MessageCleared,
    MessageShown,
    PriorityChanged,
    QuickAddParsed,
    ReminderChanged,
    SearchChanged,
    SearchCleared,
    SuggestionApplied,
    TabSelected,
    TaskDeleted,
    TaskRestored,
    TaskTab,
    TaskUiState,
    TitleChanged,
    UndoDismissed,
    reduce,
)
from .storage import TaskStore
from .task import Task, Priority, UNASSIGNED_ID
from .utils.datetime import Clock, now_local
from .utils.validation import BLANK_TITLE_MESSAGE, StorageError, TaskValidationError

logger = logging.getLogger(__name__)


class TaskController:
    """Drives the task list and the add/edit dialog."""

    def __init__(self, store: TaskStore, reminders: ReminderManager,
                 parser: Optional[SmartTaskParser] = None, clock: Optional[Clock] = None,
                 state: Optional[TaskUiState] = None):
        self.store = store
        self.reminders = reminders
        self.clock = clock or now_local
        self.parser = parser or SmartTaskParser(clock=self.clock)
        self.builder = TaskBuilder()
        self.state = state or TaskUiState()

    def dispatch(self, event) -> TaskUiState:
        self.state = reduce(self.state, event)
        return self.state

    def _show_message(self, message: str):
        self.dispatch(MessageShown(message))

    def clear_message(self):
        self.dispatch(MessageCleared())

    # Navigation and filters

    def set_selected_tab(self, tab: TaskTab):
        self.dispatch(TabSelected(tab))

    def update_search_query(self, query: str):
        self.dispatch(SearchChanged(query))

    def clear_search(self):
        self.dispatch(SearchCleared())

    def set_category_filter(self, category: Optional[str]):
        self.dispatch(CategoryFilterChanged(category))

    # Dialog form

    def show_add_task_dialog(self):
        self.dispatch(AddDialogOpened())

    def show_edit_task_dialog(self, task: Task):
        self.dispatch(EditDialogOpened(task))

    def hide_task_dialog(self):
        self.dispatch(DialogClosed())

    def update_task_title(self, title: str):
        self.dispatch(TitleChanged(title))

    def update_task_description(self, description: str):
        self.dispatch(DescriptionChanged(description))

    def update_selected_priority(self, priority: Priority):
        self.dispatch(PriorityChanged(priority))

    def update_selected_due_date(self, due_date: Optional[datetime]):
        self.dispatch(DueDateChanged(due_date))

    def update_has_reminder(self, enabled: bool):
        self.dispatch(ReminderChanged(enabled))

    def update_selected_category(self, category: Optional[str]):
        self.dispatch(CategoryChanged(category))

    def apply_suggestion(self, suggestion: str):
        self.dispatch(SuggestionApplied(self.parser.parse(suggestion)))

    def parse_quick_add(self, text: str):
        self.dispatch(QuickAddParsed(self.parser.parse(text)))

    # Persistence operations

    def _schedule_if_wanted(self, task: Task):
        if task.has_reminder and task.due_date is not None:
            self.reminders.reschedule_reminder(task)
        else:
            self.reminders.cancel_reminder(task.id)

    def save_task(self) -> Optional[int]:
        """Insert or update the task described by the dialog form.

        Returns:
            The saved task id, or None if nothing was saved
        """
        state = self.state
        if not state.task_title.strip():
            self._show_message(f"Error saving task: {BLANK_TITLE_MESSAGE}")
            return None

        fields = dict(
            title=state.task_title.strip(),
            description=state.task_description.strip(),
            priority=state.selected_priority,
            due_date=state.selected_due_date,
            has_reminder=state.has_reminder and state.selected_due_date is not None,
            category=state.selected_category,
        )

        try:
            if state.editing_task is not None:
                task = state.editing_task.copy(**fields)
                self.store.update(task)
            else:
                task = Task(created_at=self.clock(), **fields)
                task = task.copy(id=self.store.insert(task))

            self._schedule_if_wanted(task)
        except (StorageError, TaskValidationError) as e:
            logger.error(f"Saving task failed: {e}")
            self._show_message(f"Error saving task: {e}")
            return None

        self.hide_task_dialog()
        self._show_message("Task saved successfully")
        return task.id

    def quick_add(self, text: str, description: str = "",
                  category: Optional[str] = None) -> Optional[int]:
        """Parse a sentence and save it as a new task without the dialog."""
        parsed = self.parser.parse(text)
        if not parsed.title.strip():
            self._show_message(f"Error saving task: {BLANK_TITLE_MESSAGE}")
            return None

        task = self.builder.build(parsed, description=description, category=category, now=self.clock())
        try:
            task = task.copy(id=self.store.insert(task))
            self._schedule_if_wanted(task)
        except (StorageError, TaskValidationError) as e:
            logger.error(f"Quick add failed: {e}")
            self._show_message(f"Error saving task: {e}")
            return None

        self._show_message("Task saved successfully")
        return task.id

    def delete_task(self, task: Task) -> bool:
        """Delete a task and keep it in the undo slot."""
        try:
            deleted = self.store.delete(task)
            self.reminders.cancel_reminder(task.id)
        except StorageError as e:
            logger.error(f"Deleting task {task.id} failed: {e}")
            self._show_message(f"Error deleting task: {e}")
            return False

        if not deleted:
            logger.warning(f"Task {task.id} was already gone")
            self._show_message(f"Error deleting task: Task {task.id} not found")
            return False

        self.dispatch(TaskDeleted(task))
        self._show_message("Task deleted")
        return True

    def undo_delete(self) -> Optional[int]:
        """Re-insert the most recently deleted task under a new id."""
        deleted = self.state.deleted_task
        if deleted is None:
            return None

        try:
            restored = deleted.copy(id=UNASSIGNED_ID)
            restored = restored.copy(id=self.store.insert(restored))
            if restored.has_reminder and restored.due_date is not None:
                self.reminders.schedule_reminder(restored)
        except (StorageError, TaskValidationError) as e:
            logger.error(f"Restoring task failed: {e}")
            self._show_message(f"Error restoring task: {e}")
            return None

        self.dispatch(TaskRestored())
        self._show_message("Task restored")
        return restored.id

    def dismiss_undo(self):
        self.dispatch(UndoDismissed())

    def toggle_task_completion(self, task: Task) -> Optional[Task]:
        """Complete or reopen a task, updating its reminder accordingly."""
        try:
            updated = self.store.toggle_completion(task, self.clock())
            if updated.completed:
                self.reminders.cancel_reminder(updated.id)
            elif updated.has_reminder and updated.due_date is not None:
                self.reminders.schedule_reminder(updated)
        except StorageError as e:
            logger.error(f"Updating task {task.id} failed: {e}")
            self._show_message(f"Error updating task: {e}")
            return None
        return updated

    def import_tasks(self, json_string: str) -> int:
        """Import tasks from JSON and schedule their reminders.

        Returns:
            Number of tasks imported
        """
        imported = import_tasks_from_json(json_string, self.clock())
        if not imported:
            self._show_message("No tasks found in the file")
            return 0

        try:
            ids = self.store.insert_many(imported)
        except (StorageError, TaskValidationError) as e:
            logger.error(f"Importing tasks failed: {e}")
            self._show_message(f"Error importing tasks: {e}")
            return 0

        for task, task_id in zip(imported, ids):
            self.reminders.schedule_reminder(task.copy(id=task_id))

        self._show_message(f"Imported {len(imported)} tasks successfully")
        return len(imported)

    def export_tasks(self, tasks: Optional[List[Task]] = None) -> str:
        if tasks is None:
            tasks = self.store.all_tasks(self.clock())
        return export_tasks_to_json(tasks)

    def check_overdue(self) -> int:
        """Tell the user how many tasks are overdue."""
        try:
            overdue = self.store.overdue_tasks(self.clock())
        except StorageError as e:
            logger.warning(f"Could not count overdue tasks: {e}")
            return 0

        if overdue:
            self._show_message(f"You have {len(overdue)} overdue tasks")
        return len(overdue)

    # Queries

    def visible_tasks(self) -> List[Task]:
        """Tasks for the selected tab, search query and category."""
        state = self.state
        if state.selected_tab == TaskTab.ACTIVE:
            tasks = self.store.active_tasks()
        elif state.selected_tab == TaskTab.COMPLETED:
            tasks = self.store.completed_tasks()
        elif state.search_query.strip():
            tasks = self.store.search(state.search_query.strip())
        else:
            tasks = self.store.all_tasks(self.clock())

        return filter_tasks(tasks, query=state.search_query, category=state.category_filter)

    def counts(self) -> TaskCounts:
        now = self.clock()
        return TaskCounts(
            active=self.store.count_active(),
            completed=self.store.count_completed(),
            overdue=self.store.count_overdue(now),
        )
