"""Tests for the task controller."""

import json
from datetime import datetime, timedelta

import pytest

from smart_todo.controller import TaskController
from smart_todo.services.reminders import ReminderManager, reminder_key
from smart_todo.state import TaskTab
from smart_todo.task import Task, Priority
from smart_todo.utils.validation import StorageError

from conftest import FIXED_NOW


@pytest.fixture
def controller(store, scheduler, clock):
    return TaskController(store, ReminderManager(scheduler, clock=clock), clock=clock)


def saved_task(store, **kwargs):
    kwargs.setdefault("created_at", FIXED_NOW)
    task_id = store.insert(Task(**kwargs))
    return store.get_by_id(task_id)


class TestSaveTask:
    """Test adding and editing through the dialog."""

    def test_quick_add_and_save(self, controller, store, scheduler):
        controller.show_add_task_dialog()
        controller.parse_quick_add("Call John tomorrow 9am urgent remind me")
        task_id = controller.save_task()

        task = store.get_by_id(task_id)
        assert task.title == "Call John"
        assert task.priority == Priority.HIGH
        assert task.due_date == datetime(2024, 5, 2, 9, 0)
        assert task.has_reminder is True
        assert task.created_at == FIXED_NOW
        assert reminder_key(task_id) in scheduler.scheduled

        assert controller.state.message == "Task saved successfully"
        assert controller.state.show_task_dialog is False
        assert controller.state.task_title == ""

    def test_blank_title_is_not_saved(self, controller, store):
        controller.show_add_task_dialog()
        controller.update_task_title("   ")
        assert controller.save_task() is None
        assert store.count_active() == 0
        assert controller.state.show_task_dialog is True
        assert controller.state.message == "Error saving task: Task title cannot be blank"

    def test_reminder_without_due_date_is_dropped(self, controller, store, scheduler):
        controller.show_add_task_dialog()
        controller.update_task_title("water plants")
        controller.update_has_reminder(True)
        task_id = controller.save_task()

        assert store.get_by_id(task_id).has_reminder is False
        assert scheduler.scheduled == {}

    def test_edit_existing_task(self, controller, store, scheduler):
        task = saved_task(store, title="old", due_date=FIXED_NOW + timedelta(days=1), has_reminder=True)

        controller.show_edit_task_dialog(task)
        controller.update_task_title("new")
        controller.update_selected_priority(Priority.LOW)
        controller.update_selected_due_date(None)
        assert controller.save_task() == task.id

        updated = store.get_by_id(task.id)
        assert updated.title == "new"
        assert updated.priority == Priority.LOW
        assert updated.due_date is None
        assert updated.has_reminder is False
        assert reminder_key(task.id) in scheduler.cancelled

    def test_edit_reschedules_reminder(self, controller, store, scheduler):
        task = saved_task(store, title="x", due_date=FIXED_NOW + timedelta(days=1), has_reminder=True)
        new_due = FIXED_NOW + timedelta(days=2)

        controller.show_edit_task_dialog(task)
        controller.update_selected_due_date(new_due)
        controller.save_task()

        when, _ = scheduler.scheduled[reminder_key(task.id)]
        assert when == new_due

    def test_storage_failure_sets_message(self, controller, store, monkeypatch):
        def fail(task):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "insert", fail)
        controller.show_add_task_dialog()
        controller.update_task_title("x")

        assert controller.save_task() is None
        assert controller.state.message == "Error saving task: disk full"
        assert controller.state.show_task_dialog is True

    def test_quick_add(self, controller, store, scheduler):
        task_id = controller.quick_add("Remind me to pay rent next monday 10am", category="home")

        task = store.get_by_id(task_id)
        assert task.title == "to pay rent"
        assert task.due_date == datetime(2024, 5, 6, 10, 0)
        assert task.category == "home"
        assert reminder_key(task_id) in scheduler.scheduled
        assert controller.state.message == "Task saved successfully"

    def test_quick_add_blank(self, controller, store):
        assert controller.quick_add("   ") is None
        assert store.count_active() == 0
        assert controller.state.message == "Error saving task: Task title cannot be blank"

    def test_apply_suggestion(self, controller):
        controller.update_task_title("pay")
        assert controller.state.smart_suggestions == ("Pay bills tomorrow",)

        controller.apply_suggestion("Pay bills tomorrow")
        assert controller.state.task_title == "Pay bills"
        assert controller.state.selected_due_date == datetime(2024, 5, 2, 9, 0)
        assert controller.state.smart_suggestions == ()


class TestDeleteAndUndo:
    """Test deletion with single-slot undo."""

    def test_delete_then_undo(self, controller, store, scheduler):
        task = saved_task(store, title="x", due_date=FIXED_NOW + timedelta(hours=3), has_reminder=True)

        assert controller.delete_task(task) is True
        assert store.get_by_id(task.id) is None
        assert controller.state.message == "Task deleted"
        assert controller.state.show_undo is True
        assert reminder_key(task.id) in scheduler.cancelled

        new_id = controller.undo_delete()
        assert new_id is not None and new_id != task.id
        assert store.get_by_id(new_id).title == "x"
        assert reminder_key(new_id) in scheduler.scheduled
        assert controller.state.message == "Task restored"
        assert controller.state.show_undo is False

    def test_undo_without_deletion(self, controller):
        assert controller.undo_delete() is None

    def test_delete_already_gone(self, controller, store):
        task = saved_task(store, title="x")
        store.delete_by_id(task.id)

        assert controller.delete_task(task) is False
        assert controller.state.message == f"Error deleting task: Task {task.id} not found"
        assert controller.state.deleted_task is None
        assert controller.state.show_undo is False

    def test_dismiss_undo(self, controller, store):
        controller.delete_task(saved_task(store, title="x"))
        controller.dismiss_undo()
        assert controller.state.deleted_task is None
        assert controller.undo_delete() is None


class TestToggle:
    """Test completing and reopening."""

    def test_complete_cancels_and_reopen_schedules(self, controller, store, scheduler):
        task = saved_task(store, title="x", due_date=FIXED_NOW + timedelta(hours=3), has_reminder=True)
        key = reminder_key(task.id)

        completed = controller.toggle_task_completion(task)
        assert completed.completed and completed.completed_at == FIXED_NOW
        assert key in scheduler.cancelled

        reopened = controller.toggle_task_completion(completed)
        assert not reopened.completed
        assert key in scheduler.scheduled


class TestImportExport:
    """Test JSON import and export through the controller."""

    def test_import_schedules_with_new_ids(self, controller, store, scheduler):
        content = json.dumps([
            {"id": 50, "title": "a", "due_date": "2024-05-02T09:00:00", "has_reminder": True},
            {"id": 51, "title": "b"},
        ])

        assert controller.import_tasks(content) == 2
        assert controller.state.message == "Imported 2 tasks successfully"

        ids = [task.id for task in store.all_tasks()]
        assert 50 not in ids and 51 not in ids
        scheduled_ids = [int(key.split("_")[1]) for key in scheduler.scheduled]
        assert len(scheduled_ids) == 1 and scheduled_ids[0] in ids

    def test_import_nothing(self, controller):
        assert controller.import_tasks("[]") == 0
        assert controller.state.message == "No tasks found in the file"

    def test_export(self, controller, store):
        saved_task(store, title="x")
        data = json.loads(controller.export_tasks())
        assert [record["title"] for record in data] == ["x"]


class TestQueries:
    """Test list views and counters."""

    def test_check_overdue(self, controller, store):
        saved_task(store, title="late", due_date=FIXED_NOW - timedelta(days=1))
        assert controller.check_overdue() == 1
        assert controller.state.message == "You have 1 overdue tasks"

    def test_no_overdue_keeps_message(self, controller):
        assert controller.check_overdue() == 0
        assert controller.state.message is None

    def test_visible_tasks_by_tab(self, controller, store):
        saved_task(store, title="open")
        done = saved_task(store, title="done")
        store.toggle_completion(done, FIXED_NOW)

        assert [t.title for t in controller.visible_tasks()] == ["open", "done"]
        controller.set_selected_tab(TaskTab.ACTIVE)
        assert [t.title for t in controller.visible_tasks()] == ["open"]
        controller.set_selected_tab(TaskTab.COMPLETED)
        assert [t.title for t in controller.visible_tasks()] == ["done"]

    def test_visible_tasks_search_and_category(self, controller, store):
        saved_task(store, title="Buy milk", category="home")
        saved_task(store, title="Buy stamps", category="errands")
        saved_task(store, title="Write report", category="work")

        controller.update_search_query("buy")
        assert {t.title for t in controller.visible_tasks()} == {"Buy milk", "Buy stamps"}
        controller.set_category_filter("home")
        assert [t.title for t in controller.visible_tasks()] == ["Buy milk"]
        controller.clear_search()
        controller.set_category_filter(None)
        assert len(controller.visible_tasks()) == 3

    def test_counts(self, controller, store):
        saved_task(store, title="late", due_date=FIXED_NOW - timedelta(days=1))
        done = saved_task(store, title="done")
        store.toggle_completion(done, FIXED_NOW)

        counts = controller.counts()
        assert (counts.active, counts.completed, counts.overdue) == (1, 1, 1)
