"""Storage layer for smart-todo using SQLite.

The store exposes CRUD operations, the list queries behind each view and
a callback subscription that delivers the ordered task list after every
change.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from .task import Task, Priority, UNASSIGNED_ID
from .services.ordering import (
    is_due_today,
    is_overdue,
    sort_active,
    sort_all,
    sort_completed,
)
from .utils.datetime import Clock, now_local, to_iso_string, from_iso_string, max_local
from .utils.validation import StorageError, validate_task

logger = logging.getLogger(__name__)


TaskListCallback = Callable[[List[Task]], None]


class Subscription:
    """Handle returned by ``observe_all``/``observe_search``."""

    def __init__(self, store: "TaskStore", callback: TaskListCallback, query: Optional[str] = None):
        self.store = store
        self.callback = callback
        self.query = query
        self.active = True

    def cancel(self):
        """Stop receiving updates."""
        self.active = False
        self.store._remove_subscription(self)

    def deliver(self):
        if not self.active:
            return
        tasks = self.store.search(self.query) if self.query else self.store.all_tasks()
        self.callback(tasks)


class TaskStore(ABC):
    """Persistence interface used by the controller and the CLI."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or now_local
        self._subscriptions: List[Subscription] = []

    @abstractmethod
    def insert(self, task: Task) -> int:
        """Persist a new task and return its id."""
        pass

    @abstractmethod
    def insert_many(self, tasks: List[Task]) -> List[int]:
        pass

    @abstractmethod
    def update(self, task: Task) -> None:
        pass

    @abstractmethod
    def delete_by_id(self, task_id: int) -> bool:
        pass

    @abstractmethod
    def get_by_id(self, task_id: int) -> Optional[Task]:
        pass

    @abstractmethod
    def _load_tasks(self) -> List[Task]:
        """All stored tasks in storage order."""
        pass

    @abstractmethod
    def search(self, text: str) -> List[Task]:
        pass

    def delete(self, task: Task) -> bool:
        return self.delete_by_id(task.id)

    def all_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        """Tasks in the combined-view order."""
        return sort_all(self._load_tasks(), now or self.clock())

    def active_tasks(self) -> List[Task]:
        return sort_active(self._load_tasks())

    def completed_tasks(self) -> List[Task]:
        return sort_completed(self._load_tasks())

    def tasks_by_priority(self, priority: Priority) -> List[Task]:
        tasks = [task for task in self._load_tasks() if task.priority == priority]
        return sorted(tasks, key=lambda task: task.due_date or max_local())

    def tasks_with_reminders(self) -> List[Task]:
        return [
            task for task in self._load_tasks()
            if task.has_reminder and task.due_date is not None and not task.completed
        ]

    def overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        now = now or self.clock()
        return [task for task in self._load_tasks() if is_overdue(task, now)]

    def tasks_due_today(self, now: Optional[datetime] = None) -> List[Task]:
        now = now or self.clock()
        return [
            task for task in self._load_tasks()
            if not task.completed and is_due_today(task, now)
        ]

    def categories(self) -> List[str]:
        return sorted({task.category for task in self._load_tasks() if task.category})

    def toggle_completion(self, task: Task, now: Optional[datetime] = None) -> Task:
        """Flip completion, keeping ``completed_at`` in step, and save."""
        updated = task.copy()
        updated.toggle_completion(now or self.clock())
        self.update(updated)
        return updated

    def count_active(self) -> int:
        return sum(1 for task in self._load_tasks() if not task.completed)

    def count_completed(self) -> int:
        return sum(1 for task in self._load_tasks() if task.completed)

    def count_overdue(self, now: Optional[datetime] = None) -> int:
        return len(self.overdue_tasks(now))

    def observe_all(self, callback: TaskListCallback) -> Subscription:
        """Deliver the ordered task list now and after every change."""
        return self._add_subscription(Subscription(self, callback))

    def observe_search(self, text: str, callback: TaskListCallback) -> Subscription:
        return self._add_subscription(Subscription(self, callback, query=text))

    def _add_subscription(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        subscription.deliver()
        return subscription

    def _remove_subscription(self, subscription: Subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _notify_changed(self):
        for subscription in list(self._subscriptions):
            try:
                subscription.deliver()
            except Exception:
                logger.exception("Task list subscriber failed")


class SQLiteTaskStore(TaskStore):
    """Task store backed by a single SQLite table."""

    COLUMNS = (
        "id", "title", "description", "priority", "due_date", "has_reminder",
        "completed", "completed_at", "created_at", "category",
    )

    def __init__(self, db_path: Union[str, Path], clock: Optional[Clock] = None):
        """Initialize the store

        Args:
            db_path: Database file path; each operation opens its own
                     connection, so in-memory databases are not supported
            clock: Source of the current moment for overdue checks
        """
        super().__init__(clock)
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    @contextmanager
    def get_connection(self):
        """Get database connection with context manager

        Yields:
            sqlite3.Connection: Database connection

        Raises:
            StorageError: If SQLite reports an error
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open task database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Task database error: {e}")
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_db(self):
        """Initialize database schema"""
        with self.get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    due_date TEXT,
                    has_reminder INTEGER NOT NULL DEFAULT 0,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT,
                    created_at TEXT NOT NULL,
                    category TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks(completed)")

    @staticmethod
    def _task_values(task: Task) -> tuple:
        return (
            task.title,
            task.description or "",
            task.priority.value,
            to_iso_string(task.due_date),
            int(task.has_reminder),
            int(task.completed),
            to_iso_string(task.completed_at),
            to_iso_string(task.created_at),
            task.category,
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            priority=Priority.from_value(row["priority"]),
            due_date=from_iso_string(row["due_date"]),
            has_reminder=bool(row["has_reminder"]),
            completed=bool(row["completed"]),
            completed_at=from_iso_string(row["completed_at"]),
            created_at=from_iso_string(row["created_at"]) or now_local(),
            category=row["category"],
        )

    def _insert_row(self, conn: sqlite3.Connection, task: Task) -> int:
        validate_task(task)
        if task.id == UNASSIGNED_ID:
            cursor = conn.execute(
                "INSERT INTO tasks (title, description, priority, due_date, has_reminder, "
                "completed, completed_at, created_at, category) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._task_values(task),
            )
        else:
            cursor = conn.execute(
                "INSERT OR REPLACE INTO tasks (id, title, description, priority, due_date, "
                "has_reminder, completed, completed_at, created_at, category) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (task.id,) + self._task_values(task),
            )
        return cursor.lastrowid

    def insert(self, task: Task) -> int:
        with self.get_connection() as conn:
            task_id = self._insert_row(conn, task)
        logger.debug(f"Inserted task {task_id}: {task.title!r}")
        self._notify_changed()
        return task_id

    def insert_many(self, tasks: List[Task]) -> List[int]:
        with self.get_connection() as conn:
            ids = [self._insert_row(conn, task) for task in tasks]
        logger.debug(f"Inserted {len(ids)} tasks")
        self._notify_changed()
        return ids

    def update(self, task: Task) -> None:
        if task.id == UNASSIGNED_ID:
            raise StorageError("Cannot update a task that has not been saved")

        validate_task(task)
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE tasks SET title = ?, description = ?, priority = ?, due_date = ?, "
                "has_reminder = ?, completed = ?, completed_at = ?, created_at = ?, category = ? "
                "WHERE id = ?",
                self._task_values(task) + (task.id,),
            )
            if cursor.rowcount == 0:
                raise StorageError(f"Task {task.id} not found")
        self._notify_changed()

    def delete_by_id(self, task_id: int) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            self._notify_changed()
        return deleted

    def delete_all(self) -> int:
        with self.get_connection() as conn:
            cursor = conn.execute("DELETE FROM tasks")
            removed = cursor.rowcount
        self._notify_changed()
        return removed

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def _load_tasks(self) -> List[Task]:
        with self.get_connection() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY id").fetchall()
        return [self._row_to_task(row) for row in rows]

    def search(self, text: str) -> List[Task]:
        """Tasks whose title or description contains ``text``."""
        pattern = f"%{text}%"
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE title LIKE ? OR description LIKE ?",
                (pattern, pattern),
            ).fetchall()
        return sort_all([self._row_to_task(row) for row in rows], self.clock())

    def count_active(self) -> int:
        with self.get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM tasks WHERE completed = 0").fetchone()[0]

    def count_completed(self) -> int:
        with self.get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM tasks WHERE completed = 1").fetchone()[0]
