"""Persistence adapters for projects and tasks."""

from __future__ import annotations

from stores.task_store import JsonTaskStore, TaskStoreError

__all__ = ["JsonTaskStore", "TaskStoreError"]
