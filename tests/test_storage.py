"""
Unit tests for the SQLite task store
"""

from datetime import datetime

import pytest

from smart_todo.storage import SQLiteTaskStore
from smart_todo.task import Task, Priority, UNASSIGNED_ID
from smart_todo.utils.validation import StorageError, TaskValidationError

from conftest import FIXED_NOW


def new_task(title, **kwargs):
    kwargs.setdefault("created_at", datetime(2024, 4, 1, 8, 0))
    return Task(title=title, **kwargs)


class TestCrud:
    """Test insert, update and delete"""

    def test_insert_assigns_ids(self, store):
        first = store.insert(new_task("one"))
        second = store.insert(new_task("two"))
        assert first != UNASSIGNED_ID
        assert second > first

    def test_get_by_id_round_trips_fields(self, store):
        task_id = store.insert(new_task(
            "Call John",
            description="about the trip",
            priority=Priority.HIGH,
            due_date=datetime(2024, 5, 2, 9, 0),
            has_reminder=True,
            category="work",
        ))
        loaded = store.get_by_id(task_id)
        assert loaded.id == task_id
        assert loaded.title == "Call John"
        assert loaded.description == "about the trip"
        assert loaded.priority == Priority.HIGH
        assert loaded.due_date == datetime(2024, 5, 2, 9, 0)
        assert loaded.has_reminder is True
        assert loaded.category == "work"

    def test_get_missing(self, store):
        assert store.get_by_id(999) is None

    def test_insert_blank_title_rejected(self, store):
        with pytest.raises(TaskValidationError):
            store.insert(new_task("   "))
        assert store.all_tasks() == []

    def test_insert_clears_dangling_reminder(self, store):
        task_id = store.insert(new_task("x", has_reminder=True))
        assert store.get_by_id(task_id).has_reminder is False

    def test_update(self, store):
        task_id = store.insert(new_task("before"))
        task = store.get_by_id(task_id)
        store.update(task.copy(title="after", priority=Priority.LOW))
        updated = store.get_by_id(task_id)
        assert updated.title == "after"
        assert updated.priority == Priority.LOW

    def test_update_unsaved_task(self, store):
        with pytest.raises(StorageError):
            store.update(new_task("never saved"))

    def test_update_missing_row(self, store):
        with pytest.raises(StorageError):
            store.update(new_task("ghost", id=42))

    def test_delete(self, store):
        task_id = store.insert(new_task("x"))
        assert store.delete(store.get_by_id(task_id)) is True
        assert store.get_by_id(task_id) is None
        assert store.delete_by_id(task_id) is False

    def test_insert_many(self, store):
        ids = store.insert_many([new_task("a"), new_task("b")])
        assert len(set(ids)) == 2
        assert {t.title for t in store.all_tasks()} == {"a", "b"}

    def test_insert_many_is_atomic(self, store):
        with pytest.raises(TaskValidationError):
            store.insert_many([new_task("a"), new_task("")])
        assert store.all_tasks() == []

    def test_delete_all(self, store):
        store.insert_many([new_task("a"), new_task("b")])
        assert store.delete_all() == 2
        assert store.count_active() == 0

    def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "tasks.db"
        task_id = SQLiteTaskStore(path).insert(new_task("persisted"))
        assert SQLiteTaskStore(path).get_by_id(task_id).title == "persisted"


class TestQueries:
    """Test list queries"""

    def setup_tasks(self, store):
        store.insert(new_task("overdue", due_date=datetime(2024, 4, 30, 9, 0)))
        store.insert(new_task("today", due_date=datetime(2024, 5, 1, 17, 0), has_reminder=True))
        store.insert(new_task("urgent", priority=Priority.HIGH, category="work"))
        done_id = store.insert(new_task("done", category="home"))
        store.toggle_completion(store.get_by_id(done_id), FIXED_NOW)

    def test_all_tasks_order(self, store):
        self.setup_tasks(store)
        assert [t.title for t in store.all_tasks()] == ["overdue", "urgent", "today", "done"]

    def test_active_and_completed(self, store):
        self.setup_tasks(store)
        assert [t.title for t in store.active_tasks()] == ["urgent", "overdue", "today"]
        completed = store.completed_tasks()
        assert [t.title for t in completed] == ["done"]
        assert completed[0].completed_at == FIXED_NOW

    def test_counts(self, store):
        self.setup_tasks(store)
        assert store.count_active() == 3
        assert store.count_completed() == 1
        assert store.count_overdue() == 1

    def test_due_today_and_reminders(self, store):
        self.setup_tasks(store)
        assert [t.title for t in store.tasks_due_today()] == ["today"]
        assert [t.title for t in store.tasks_with_reminders()] == ["today"]
        assert [t.title for t in store.overdue_tasks()] == ["overdue"]

    def test_by_priority_and_categories(self, store):
        self.setup_tasks(store)
        assert [t.title for t in store.tasks_by_priority(Priority.HIGH)] == ["urgent"]
        assert store.categories() == ["home", "work"]

    def test_search(self, store):
        self.setup_tasks(store)
        store.insert(new_task("Email", description="send the URGENT memo"))
        assert {t.title for t in store.search("urgent")} == {"urgent", "Email"}

    def test_toggle_back_clears_completion_time(self, store):
        task_id = store.insert(new_task("x"))
        completed = store.toggle_completion(store.get_by_id(task_id), FIXED_NOW)
        reopened = store.toggle_completion(completed)
        assert reopened.completed is False
        assert store.get_by_id(task_id).completed_at is None


class TestSubscriptions:
    """Test change notifications"""

    def test_observe_all_delivers_immediately_and_on_change(self, store):
        received = []
        store.observe_all(received.append)
        store.insert(new_task("a"))

        assert received[0] == []
        assert [t.title for t in received[-1]] == ["a"]

    def test_observe_search(self, store):
        received = []
        store.observe_search("milk", received.append)
        store.insert(new_task("Buy milk"))
        store.insert(new_task("Walk dog"))
        assert [t.title for t in received[-1]] == ["Buy milk"]

    def test_cancel(self, store):
        received = []
        subscription = store.observe_all(received.append)
        subscription.cancel()
        store.insert(new_task("a"))
        assert len(received) == 1

    def test_failing_subscriber_does_not_break_store(self, store):
        def broken(tasks):
            if tasks:
                raise RuntimeError("boom")

        store.observe_all(broken)
        task_id = store.insert(new_task("a"))
        assert store.get_by_id(task_id) is not None
