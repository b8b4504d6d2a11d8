"""
Export and import of tasks as JSON.

The exchange format is a UTF-8 JSON array of task records with ISO-8601
local date-time strings. Imported tasks get a fresh (unassigned) id and
a creation time equal to the import moment, so the store assigns new
identifiers and never collides with existing rows.
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..task import Task, UNASSIGNED_ID
from ..utils.datetime import now_local

logger = logging.getLogger(__name__)


def export_tasks_to_json(tasks: List[Task]) -> str:
    """Export tasks to a pretty-printed JSON array."""
    return json.dumps([task.to_dict() for task in tasks], indent=2, ensure_ascii=False)


def _task_from_record(record: Any, imported_at: datetime) -> Optional[Task]:
    if not isinstance(record, dict):
        logger.warning(f"Skipping non-object task record: {record!r}")
        return None

    title = record.get("title")
    if not isinstance(title, str) or not title.strip():
        logger.warning(f"Skipping task record without a title: {record!r}")
        return None

    task = Task.from_dict(record)
    return task.copy(id=UNASSIGNED_ID, created_at=imported_at)


def import_tasks_from_json(json_string: str, now: Optional[datetime] = None) -> List[Task]:
    """Import tasks from a JSON array.

    Malformed JSON, or a document that is not an array, yields an empty
    list rather than an error.
    """
    try:
        data = json.loads(json_string)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not parse task import: {e}")
        return []

    if not isinstance(data, list):
        logger.warning("Task import must be a JSON array")
        return []

    imported_at = now or now_local()
    tasks = []
    for record in data:
        task = _task_from_record(record, imported_at)
        if task is not None:
            tasks.append(task)

    logger.info(f"Parsed {len(tasks)} of {len(data)} task records")
    return tasks


class ExportManager:
    """Reads and writes task export files."""

    def export_to_file(self, tasks: List[Task], file_path: str) -> str:
        """Export tasks to ``file_path`` and return the written content."""
        content = export_tasks_to_json(tasks)
        self._write_to_file(content, file_path)
        logger.info(f"Exported {len(tasks)} tasks to {file_path}")
        return content

    def import_from_file(self, file_path: str, now: Optional[datetime] = None) -> List[Task]:
        """Import tasks from ``file_path``.

        Raises:
            OSError: If the file cannot be read.
        """
        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()
        return import_tasks_from_json(content, now)

    def summarize(self, tasks: List[Task]) -> Dict[str, int]:
        """Counts reported after an import or export."""
        return {
            "total": len(tasks),
            "completed": sum(1 for task in tasks if task.completed),
            "with_reminder": sum(1 for task in tasks if task.has_reminder),
        }

    def _write_to_file(self, content: str, file_path: str):
        """Write content to file"""
        dir_path = os.path.dirname(file_path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)
