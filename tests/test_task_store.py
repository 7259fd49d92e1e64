"""Tests for the JSON task store."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from core.models import TaskPriority, TaskStatus, TaskType
from stores.task_store import JsonTaskStore, TaskStoreError


def test_projects_are_created_and_sorted(tmp_path: Path) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")

    web = store.create_project("Web Sitesi")
    genel = store.create_project("Genel", order=-1)

    assert [project.name for project in store.list_projects()] == ["Genel", "Web Sitesi"]
    assert web.order == 0
    assert store.get_project(genel.id) == genel
    assert store.get_project("missing") is None

    with pytest.raises(TaskStoreError):
        store.create_project("   ")


def test_create_and_update_task_round_trip(tmp_path: Path) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")
    project = store.create_project("Web Sitesi")

    task_id = asyncio.run(
        store.create_task(
            {
                "project_id": project.id,
                "title": "Fix login bug",
                "priority": "Yüksek",
                "status": "Yapılacak",
                "type": "Takip",
                "deadline": "2025-03-17T09:00:00+00:00",
                "ignored": "value",
            }
        )
    )

    task = store.get_task(task_id)
    assert task is not None
    assert task.title == "Fix login bug"
    assert task.project_name == "Web Sitesi"
    assert task.priority is TaskPriority.HIGH
    assert task.task_type is TaskType.FOLLOW_UP
    assert task.deadline is not None and task.deadline.day == 17

    asyncio.run(store.update_task(task_id, {"status": "Yapıldı", "assigned_person": "Ayşe"}))

    updated = store.get_task(task_id)
    assert updated.status is TaskStatus.DONE
    assert updated.assigned_person == "Ayşe"

    document = json.loads((tmp_path / "tasks.json").read_text(encoding="utf-8"))
    assert "ignored" not in document["tasks"][0]
    assert not (tmp_path / "tasks.json.tmp").exists()


def test_create_task_validates_input(tmp_path: Path) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")
    project = store.create_project("Genel")

    with pytest.raises(TaskStoreError):
        asyncio.run(store.create_task({"project_id": project.id, "title": "  "}))
    with pytest.raises(TaskStoreError):
        asyncio.run(store.create_task({"project_id": "unknown", "title": "Deploy"}))


def test_update_unknown_task_raises(tmp_path: Path) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")
    with pytest.raises(TaskStoreError):
        asyncio.run(store.update_task("missing", {"status": "Yapıldı"}))


def test_update_rejects_blank_title(tmp_path: Path) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")
    project = store.create_project("Genel")
    task_id = asyncio.run(store.create_task({"project_id": project.id, "title": "Deploy"}))

    with pytest.raises(TaskStoreError):
        asyncio.run(store.update_task(task_id, {"title": ""}))


def test_list_tasks_skips_invalid_entries(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            {
                "projects": [{"id": "p1", "name": "Genel", "order": 0}],
                "tasks": [
                    {"id": "t1", "project_id": "p1", "title": "Rapor", "status": "bogus"},
                    {"id": "t2", "project_id": "p1", "title": ""},
                    "not a task",
                ],
            }
        ),
        encoding="utf-8",
    )
    store = JsonTaskStore(path)

    tasks = store.list_tasks()

    assert [task.id for task in tasks] == ["t1"]
    assert tasks[0].status is TaskStatus.TODO
    assert tasks[0].project_name == "Genel"


def test_missing_or_empty_file_is_an_empty_store(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    assert JsonTaskStore(path).list_projects() == []
    path.write_text("", encoding="utf-8")
    assert JsonTaskStore(path).list_tasks() == []


def test_non_object_document_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(TaskStoreError):
        JsonTaskStore(path).list_projects()
