"""Projects and tasks persisted in a single JSON document.

The document looks like ``{"projects": [...], "tasks": [...]}``. Reads and
atomic writes go through ``core.json_storage`` so a crash never leaves a
half-written store behind.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from core.json_storage import atomic_write_json, read_json
from core.models import (
    Project,
    TaskDuration,
    TaskPriority,
    TaskStatus,
    TaskType,
    TaskWithProjectName,
)

logger = logging.getLogger(__name__)

_DEFAULT_STORAGE_PATH = Path("data/tasks.json")
_UPDATABLE_FIELDS = (
    "title",
    "description",
    "assigned_person",
    "status",
    "priority",
    "estimated_duration",
    "type",
    "deadline",
    "project_id",
)


class TaskStoreError(RuntimeError):
    """Raised when a mutation references unknown data or breaks an invariant."""


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _read_document(path: Path) -> Dict[str, Any]:
    data = read_json(path, {"projects": [], "tasks": []})
    if not isinstance(data, dict):
        raise TaskStoreError(f"Task store must contain a JSON object: {path}")
    data.setdefault("projects", [])
    data.setdefault("tasks", [])
    return data


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


class JsonTaskStore:
    """File-backed repository used by the CLI and the web API."""

    def __init__(self, storage_path: Path | None = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else _DEFAULT_STORAGE_PATH

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    # --- Projects -----------------------------------------------------------
    def list_projects(self) -> List[Project]:
        document = _read_document(self._storage_path)
        projects = [self._project_from_dict(entry) for entry in document["projects"] if isinstance(entry, dict)]
        projects.sort(key=lambda project: (project.order, project.name.lower()))
        return projects

    def create_project(self, name: str, *, order: Optional[int] = None) -> Project:
        name = (name or "").strip()
        if not name:
            raise TaskStoreError("Project name must not be empty")
        document = _read_document(self._storage_path)
        if order is None:
            order = max((int(entry.get("order", 0)) for entry in document["projects"]), default=-1) + 1
        project = Project(id=uuid.uuid4().hex, name=name, order=order)
        document["projects"].append({**project.to_dict(), "created_at": _utc_timestamp()})
        atomic_write_json(self._storage_path, document)
        logger.info("Created project %s (%s)", project.name, project.id)
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    # --- Tasks --------------------------------------------------------------
    def list_tasks(self) -> List[TaskWithProjectName]:
        """Every task with its project's name, as the agent's search snapshot."""

        document = _read_document(self._storage_path)
        names = {entry.get("id"): entry.get("name", "") for entry in document["projects"] if isinstance(entry, dict)}
        tasks: List[TaskWithProjectName] = []
        for entry in document["tasks"]:
            if not isinstance(entry, dict):
                continue
            try:
                tasks.append(self._task_from_dict(entry, names.get(entry.get("project_id"), "")))
            except ValueError:
                logger.warning("Skipping stored task without a title: %s", entry.get("id"))
        return tasks

    def get_task(self, task_id: str) -> Optional[TaskWithProjectName]:
        for task in self.list_tasks():
            if task.id == task_id:
                return task
        return None

    async def create_task(self, fields: Mapping[str, Any]) -> str:
        title = str(fields.get("title") or "").strip()
        if not title:
            raise TaskStoreError("Task title must not be empty")
        document = _read_document(self._storage_path)
        project_id = fields.get("project_id")
        if not any(entry.get("id") == project_id for entry in document["projects"]):
            raise TaskStoreError(f"Unknown project id: {project_id}")

        now = _utc_timestamp()
        entry: Dict[str, Any] = {
            "id": uuid.uuid4().hex,
            "project_id": project_id,
            "title": title,
            "created_at": now,
            "updated_at": now,
        }
        for key in _UPDATABLE_FIELDS:
            if key in fields and key not in entry:
                entry[key] = fields[key]
        document["tasks"].append(entry)
        atomic_write_json(self._storage_path, document)
        logger.info("Created task %s in project %s", entry["id"], project_id)
        return entry["id"]

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> None:
        document = _read_document(self._storage_path)
        for entry in document["tasks"]:
            if entry.get("id") != task_id:
                continue
            changes = {key: fields[key] for key in _UPDATABLE_FIELDS if key in fields}
            if "title" in changes and not str(changes["title"] or "").strip():
                raise TaskStoreError("Task title must not be empty")
            entry.update(changes)
            entry["updated_at"] = _utc_timestamp()
            atomic_write_json(self._storage_path, document)
            logger.info("Updated task %s fields=%s", task_id, sorted(changes))
            return
        raise TaskStoreError(f"Unknown task id: {task_id}")

    # --- Mapping ------------------------------------------------------------
    @staticmethod
    def _project_from_dict(entry: Mapping[str, Any]) -> Project:
        try:
            order = int(entry.get("order", 0))
        except (TypeError, ValueError):
            order = 0
        return Project(id=str(entry.get("id", "")), name=str(entry.get("name", "")), order=order)

    @staticmethod
    def _task_from_dict(entry: Mapping[str, Any], project_name: str) -> TaskWithProjectName:
        return TaskWithProjectName(
            id=str(entry.get("id", "")),
            project_id=str(entry.get("project_id", "")),
            title=str(entry.get("title", "")),
            description=str(entry.get("description") or ""),
            assigned_person=str(entry.get("assigned_person") or ""),
            status=TaskStatus.coerce(entry.get("status")) or TaskStatus.TODO,
            priority=TaskPriority.coerce(entry.get("priority")) or TaskPriority.MEDIUM,
            estimated_duration=TaskDuration.coerce(entry.get("estimated_duration")) or TaskDuration.MIN_30,
            task_type=TaskType.coerce(entry.get("type")) or TaskType.OPERATION,
            deadline=_parse_datetime(entry.get("deadline")),
            created_at=_parse_datetime(entry.get("created_at")),
            project_name=project_name,
        )


__all__ = ["JsonTaskStore", "TaskStoreError"]
