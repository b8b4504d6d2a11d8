"""Tests for JSON export and import."""

import json
from datetime import datetime

import pytest

from smart_todo.services.export import (
    ExportManager, export_tasks_to_json, import_tasks_from_json,
)
from smart_todo.task import Task, Priority, UNASSIGNED_ID

from conftest import FIXED_NOW


@pytest.fixture
def sample_tasks():
    return [
        Task(
            id=1,
            title="Call John",
            priority=Priority.HIGH,
            due_date=datetime(2024, 5, 2, 9, 0),
            has_reminder=True,
            created_at=datetime(2024, 4, 20, 8, 0),
            category="work",
        ),
        Task(
            id=2,
            title="Café visit",
            completed=True,
            completed_at=datetime(2024, 4, 21, 18, 0),
            created_at=datetime(2024, 4, 20, 9, 0),
        ),
    ]


class TestExport:
    """Test exporting tasks."""

    def test_export_is_json_array(self, sample_tasks):
        data = json.loads(export_tasks_to_json(sample_tasks))
        assert isinstance(data, list)
        assert data[0]["title"] == "Call John"
        assert data[0]["due_date"] == "2024-05-02T09:00:00"
        assert data[1]["completed"] is True

    def test_export_keeps_unicode(self, sample_tasks):
        assert "Café" in export_tasks_to_json(sample_tasks)

    def test_empty_export(self):
        assert json.loads(export_tasks_to_json([])) == []


class TestImport:
    """Test importing tasks."""

    def test_round_trip_resets_identity(self, sample_tasks):
        imported = import_tasks_from_json(export_tasks_to_json(sample_tasks), FIXED_NOW)

        assert [t.title for t in imported] == ["Call John", "Café visit"]
        assert all(t.id == UNASSIGNED_ID for t in imported)
        assert all(t.created_at == FIXED_NOW for t in imported)
        assert imported[0].due_date == datetime(2024, 5, 2, 9, 0)
        assert imported[0].priority == Priority.HIGH
        assert imported[1].completed_at == datetime(2024, 4, 21, 18, 0)

    @pytest.mark.parametrize("content", ["not json", "{\"title\": \"x\"}", "42", ""])
    def test_malformed_input_yields_nothing(self, content):
        assert import_tasks_from_json(content) == []

    def test_invalid_records_are_skipped(self):
        content = json.dumps([{"title": "ok"}, {"title": "   "}, "junk", {"description": "no title"}])
        imported = import_tasks_from_json(content, FIXED_NOW)
        assert [t.title for t in imported] == ["ok"]


class TestExportManager:
    """Test file based export."""

    def test_file_round_trip(self, tmp_path, sample_tasks):
        manager = ExportManager()
        path = tmp_path / "nested" / "tasks.json"

        manager.export_to_file(sample_tasks, str(path))
        imported = manager.import_from_file(str(path), FIXED_NOW)

        assert len(imported) == 2

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            ExportManager().import_from_file(str(tmp_path / "missing.json"))

    def test_summarize(self, sample_tasks):
        assert ExportManager().summarize(sample_tasks) == {
            "total": 2,
            "completed": 1,
            "with_reminder": 1,
        }


class TestImportFlags:
    """Test how boolean fields in imported records are read."""

    @pytest.mark.parametrize("raw,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("TRUE", True),
        ("false", False),
        ("False", False),
        (1, True),
        (0, False),
        ("1", True),
        ("0", False),
        ("yes", False),
        (None, False),
        (2, False),
    ])
    def test_flag_values(self, raw, expected):
        content = json.dumps([{
            "title": "a",
            "due_date": "2024-05-02T09:00:00",
            "completed": raw,
            "has_reminder": raw,
        }])
        task = import_tasks_from_json(content, FIXED_NOW)[0]
        assert task.completed is expected
        assert task.has_reminder is expected

    def test_string_false_stays_open(self):
        content = '[{"title": "a", "completed": "false", "has_reminder": "false"}]'
        task = import_tasks_from_json(content, FIXED_NOW)[0]
        assert task.completed is False
        assert task.has_reminder is False
