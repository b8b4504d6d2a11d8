"""Reminder scheduling and delivery for smart-todo.

A reminder is a unit of work keyed by ``reminder_<task id>`` and handed
to a Scheduler, which fires it at the task's due time. When it fires,
the ReminderWorker re-reads the task and notifies the user only if the
task still exists, is incomplete and still wants a reminder.
"""

import logging
import shutil
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console

from ..task import Task, UNASSIGNED_ID
from ..utils.datetime import Clock, now_local

logger = logging.getLogger(__name__)


REMINDER_KEY_PREFIX = "reminder_"
KEY_TASK_ID = "task_id"
KEY_TASK_TITLE = "task_title"


def reminder_key(task_id: int) -> str:
    """Scheduler key for the reminder of ``task_id``."""
    return f"{REMINDER_KEY_PREFIX}{task_id}"


class Scheduler(ABC):
    """Accepts "fire this payload at time T" requests."""

    @abstractmethod
    def schedule_at(self, key: str, when: datetime, payload: Dict[str, Any]) -> None:
        """Schedule work, replacing any pending work with the same key."""
        pass

    @abstractmethod
    def cancel(self, key: str) -> None:
        pass

    @abstractmethod
    def cancel_all(self) -> None:
        pass


class InProcessScheduler(Scheduler):
    """Scheduler backed by one ``threading.Timer`` per key."""

    def __init__(self, callback: Callable[[Dict[str, Any]], Any], clock: Optional[Clock] = None):
        self.callback = callback
        self.clock = clock or now_local
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule_at(self, key: str, when: datetime, payload: Dict[str, Any]) -> None:
        delay = max(0.0, (when - self.clock()).total_seconds())
        timer = threading.Timer(delay, self._fire, args=(key, payload))
        timer.daemon = True

        with self._lock:
            existing = self._timers.pop(key, None)
            if existing is not None:
                existing.cancel()
            self._timers[key] = timer
        timer.start()

    def cancel(self, key: str) -> None:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def pending_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._timers)

    def _fire(self, key: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._timers.pop(key, None)
        try:
            self.callback(payload)
        except Exception:
            logger.exception(f"Reminder {key} failed")


class ReminderManager:
    """Schedules and cancels task reminders."""

    def __init__(self, scheduler: Scheduler, clock: Optional[Clock] = None):
        self.scheduler = scheduler
        self.clock = clock or now_local

    def schedule_reminder(self, task: Task) -> bool:
        """Schedule a reminder at the task's due time.

        Nothing is scheduled for tasks without a reminder or due date, for
        completed tasks, or when the due time is not at least a minute
        away.

        Returns:
            True if a reminder was scheduled
        """
        if not task.has_reminder or task.due_date is None or task.completed:
            return False

        if task.id == UNASSIGNED_ID:
            logger.warning(f"Not scheduling reminder for unsaved task {task.title!r}")
            return False

        now = self.clock()
        delay_minutes = int((task.due_date - now).total_seconds() / 60)
        if delay_minutes <= 0:
            logger.debug(f"Skipping past-due reminder for task {task.id}")
            return False

        when = now + timedelta(minutes=delay_minutes)
        self.scheduler.schedule_at(
            reminder_key(task.id),
            when,
            {KEY_TASK_ID: task.id, KEY_TASK_TITLE: task.title},
        )
        logger.debug(f"Scheduled reminder for task {task.id} in {delay_minutes} minutes")
        return True

    def cancel_reminder(self, task_id: int) -> None:
        self.scheduler.cancel(reminder_key(task_id))

    def reschedule_reminder(self, task: Task) -> bool:
        self.cancel_reminder(task.id)
        return self.schedule_reminder(task)

    def cancel_all_reminders(self) -> None:
        self.scheduler.cancel_all()

    def restore_reminders(self, store) -> int:
        """Schedule every pending reminder held by ``store``.

        Returns:
            Number of reminders scheduled
        """
        return sum(1 for task in store.tasks_with_reminders() if self.schedule_reminder(task))


@dataclass
class Notification:
    """A message shown to the user when a reminder fires."""
    title: str
    message: str
    task_id: Optional[int] = None
    created_at: datetime = field(default_factory=now_local)


class NotificationDelivery(ABC):
    """Abstract base class for notification delivery methods"""

    @abstractmethod
    def send(self, notification: Notification) -> bool:
        """Send a notification. Returns True if successful."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this delivery method is available on the current system."""
        pass


class ConsoleNotificationDelivery(NotificationDelivery):
    """Prints reminders to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def is_available(self) -> bool:
        return True

    def send(self, notification: Notification) -> bool:
        self.console.print(f"[bold yellow]⏰ {notification.title}[/bold yellow] {notification.message}")
        return True


class DesktopNotificationDelivery(NotificationDelivery):
    """Desktop notification delivery using native OS notifications"""

    def __init__(self):
        self.platform = sys.platform.lower()

    def is_available(self) -> bool:
        if self.platform == "darwin":
            return True
        if self.platform.startswith("win"):
            return False
        return shutil.which("notify-send") is not None

    def send(self, notification: Notification) -> bool:
        try:
            if self.platform == "darwin":
                return self._send_macos(notification)
            return self._send_linux(notification)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Desktop notification failed: {e}")
            return False

    def _send_macos(self, notification: Notification) -> bool:
        """Send macOS notification using osascript"""
        cmd = [
            "osascript",
            "-e",
            "on run argv",
            "-e",
            "display notification (item 2 of argv) with title (item 1 of argv)",
            "-e",
            "end run",
            str(notification.title or ""),
            str(notification.message or ""),
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=10)
        if result.returncode != 0:
            logger.debug(f"osascript returned {result.returncode}: {result.stderr}")
        return result.returncode == 0

    def _send_linux(self, notification: Notification) -> bool:
        """Send Linux notification using notify-send"""
        try:
            subprocess.run([
                "notify-send",
                "--app-name", "smart-todo",
                notification.title,
                notification.message,
            ], check=True)
            return True
        except subprocess.CalledProcessError:
            return False


class ReminderWorker:
    """Runs a fired reminder: verifies the task, then notifies."""

    def __init__(self, store, delivery: NotificationDelivery):
        self.store = store
        self.delivery = delivery

    def run(self, payload: Dict[str, Any]) -> bool:
        """Handle one fired reminder.

        Returns:
            True if a notification was delivered
        """
        task_id = payload.get(KEY_TASK_ID, UNASSIGNED_ID)
        if task_id == UNASSIGNED_ID:
            logger.warning(f"Reminder payload without a task id: {payload!r}")
            return False

        task = self.store.get_by_id(task_id)
        if task is None or task.completed or not task.has_reminder:
            logger.debug(f"Reminder for task {task_id} no longer needed")
            return False

        notification = Notification(
            title="Task Reminder",
            message=payload.get(KEY_TASK_TITLE) or task.title,
            task_id=task_id,
        )
        return self.delivery.send(notification)
