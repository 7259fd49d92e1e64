"""Typed command drafts parsed out of untrusted oracle JSON.

WHAT: ``parse_command_draft`` turns the oracle's raw text into one of
``CreateDraft``, ``UpdateDraft`` or ``CompleteDraft``; ``build_create_request``
turns a CREATE draft into the fully defaulted payload the repository stores.
WHY: the oracle is a language model; field presence and enum membership can
never be assumed.
HOW: every field is re-read with type checks, enum values are coerced through
``core.models`` and invalid optional values are dropped rather than trusted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from core.date_resolution import resolve_deadline
from core.errors import ParsingError, ValidationError
from core.models import (
    Project,
    TaskDuration,
    TaskPriority,
    TaskStatus,
    TaskType,
    coerce_mapping_str,
)
from core.task_search import TaskIdentification, find_best_project

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5


class CommandType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    COMPLETE = "COMPLETE"


@dataclass(frozen=True)
class CreateDraft:
    title: str
    description: str = ""
    project_name: str = ""
    assigned_person: str = ""
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    estimated_duration: Optional[TaskDuration] = None
    task_type: Optional[TaskType] = None
    deadline_text: Optional[str] = None
    confidence: float = DEFAULT_CONFIDENCE

    @property
    def command_type(self) -> CommandType:
        return CommandType.CREATE


@dataclass(frozen=True)
class UpdateFields:
    """Sparse set of fields to change; ``None`` means "leave as is"."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    estimated_duration: Optional[TaskDuration] = None
    deadline_text: Optional[str] = None
    assigned_person: Optional[str] = None

    def changed_fields(self) -> List[str]:
        names = [
            "title",
            "description",
            "status",
            "priority",
            "estimated_duration",
            "deadline",
            "assigned_person",
        ]
        values = [
            self.title,
            self.description,
            self.status,
            self.priority,
            self.estimated_duration,
            self.deadline_text,
            self.assigned_person,
        ]
        return [name for name, value in zip(names, values) if value is not None]

    def is_empty(self) -> bool:
        return not self.changed_fields()

    def to_fields(self, reference: Optional[datetime] = None) -> Dict[str, Any]:
        """Repository payload with enum values and a resolved deadline."""

        payload: Dict[str, Any] = {}
        if self.title is not None:
            payload["title"] = self.title
        if self.description is not None:
            payload["description"] = self.description
        if self.status is not None:
            payload["status"] = self.status.value
        if self.priority is not None:
            payload["priority"] = self.priority.value
        if self.estimated_duration is not None:
            payload["estimated_duration"] = self.estimated_duration.value
        if self.deadline_text is not None:
            payload["deadline"] = resolve_deadline(self.deadline_text, reference).isoformat()
        if self.assigned_person is not None:
            payload["assigned_person"] = self.assigned_person
        return payload


@dataclass(frozen=True)
class UpdateDraft:
    identification: TaskIdentification
    fields: UpdateFields
    confidence: float = DEFAULT_CONFIDENCE

    @property
    def command_type(self) -> CommandType:
        return CommandType.UPDATE


@dataclass(frozen=True)
class CompleteDraft:
    identification: TaskIdentification
    confidence: float = DEFAULT_CONFIDENCE

    @property
    def command_type(self) -> CommandType:
        return CommandType.COMPLETE


CommandDraft = Union[CreateDraft, UpdateDraft, CompleteDraft]


@dataclass(frozen=True)
class CreateRequest:
    """A CREATE draft with project, deadline and defaults resolved."""

    project_id: str
    project_name: str
    title: str
    description: str
    assigned_person: str
    status: TaskStatus
    task_type: TaskType
    priority: TaskPriority
    estimated_duration: TaskDuration
    deadline: datetime
    confidence: float

    def to_fields(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "assigned_person": self.assigned_person,
            "status": self.status.value,
            "type": self.task_type.value,
            "priority": self.priority.value,
            "estimated_duration": self.estimated_duration.value,
            "deadline": self.deadline.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.to_fields()
        payload["project_name"] = self.project_name
        payload["confidence"] = self.confidence
        return payload


# --- Parsing ----------------------------------------------------------------
def parse_command_draft(raw: str) -> CommandDraft:
    """Validate raw oracle output into a typed draft.

    Raises ``ParsingError`` for non-JSON or unknown command types and
    ``ValidationError`` for missing required fields.
    """

    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ParsingError("AI yanıtı geçersiz JSON formatında", details={"reason": str(exc)}) from exc
    if not isinstance(payload, Mapping):
        raise ParsingError("AI yanıtı bir JSON nesnesi değil")

    raw_type = payload.get("commandType")
    if raw_type is None or (isinstance(raw_type, str) and not raw_type.strip()):
        raise ValidationError("Komut tipi belirtilmemiş")
    try:
        command_type = CommandType(str(raw_type).strip().upper())
    except ValueError as exc:
        raise ParsingError(
            f"Desteklenmeyen komut tipi: {raw_type}",
            details={"commandType": raw_type},
        ) from exc

    if command_type is CommandType.CREATE:
        draft: CommandDraft = _parse_create(payload)
    elif command_type is CommandType.UPDATE:
        draft = _parse_update(payload)
    else:
        draft = CompleteDraft(
            identification=_parse_identification(payload),
            confidence=_confidence(payload.get("confidence")),
        )
    logger.debug("Parsed %s draft", command_type.value)
    return draft


def _parse_create(payload: Mapping[str, Any]) -> CreateDraft:
    title = coerce_mapping_str(payload, "title")
    if not title:
        raise ValidationError("CREATE komutu için görev başlığı gerekli")
    return CreateDraft(
        title=title,
        description=coerce_mapping_str(payload, "description"),
        project_name=coerce_mapping_str(payload, "projectName"),
        assigned_person=coerce_mapping_str(payload, "assignedPerson"),
        status=TaskStatus.coerce(payload.get("status")),
        priority=TaskPriority.coerce(payload.get("priority")),
        estimated_duration=TaskDuration.coerce(payload.get("estimatedDuration")),
        task_type=TaskType.coerce(payload.get("type")),
        deadline_text=coerce_mapping_str(payload, "deadline") or None,
        confidence=_confidence(payload.get("confidence")),
    )


def _parse_update(payload: Mapping[str, Any]) -> UpdateDraft:
    identification = _parse_identification(payload)
    raw_fields = payload.get("updateFields")
    if not isinstance(raw_fields, Mapping) or not raw_fields:
        raise ValidationError("Güncellenecek alan bilgisi bulunamadı")

    fields = UpdateFields(
        title=coerce_mapping_str(raw_fields, "title") or None,
        description=coerce_mapping_str(raw_fields, "description") or None,
        status=TaskStatus.coerce(raw_fields.get("status")),
        priority=TaskPriority.coerce(raw_fields.get("priority")),
        estimated_duration=TaskDuration.coerce(raw_fields.get("estimatedDuration")),
        deadline_text=coerce_mapping_str(raw_fields, "deadline") or None,
        assigned_person=coerce_mapping_str(raw_fields, "assignedPerson") or None,
    )
    if fields.is_empty():
        raise ValidationError(
            "Güncellenecek alanların hiçbiri geçerli değil",
            details={"updateFields": sorted(str(key) for key in raw_fields)},
        )
    return UpdateDraft(
        identification=identification,
        fields=fields,
        confidence=_confidence(payload.get("confidence")),
    )


def _parse_identification(payload: Mapping[str, Any]) -> TaskIdentification:
    raw = payload.get("taskIdentification")
    if not isinstance(raw, Mapping):
        raw = {}
    project_name = coerce_mapping_str(raw, "projectName")
    task_name = coerce_mapping_str(raw, "taskName")
    if not project_name or not task_name:
        raise ValidationError("Görev tanımlama bilgileri eksik (proje ve görev ismi gerekli)")
    return TaskIdentification(project_name=project_name, task_name=task_name)


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, float(value)))


# --- CREATE resolution ------------------------------------------------------
def build_create_request(
    draft: CreateDraft,
    projects: Sequence[Project],
    reference: Optional[datetime] = None,
) -> CreateRequest:
    project = find_best_project(draft.project_name, projects)
    if project is None:
        raise ValidationError("Proje listesi boş")
    return CreateRequest(
        project_id=project.id,
        project_name=project.name,
        title=draft.title,
        description=draft.description,
        assigned_person=draft.assigned_person,
        status=draft.status or TaskStatus.TODO,
        task_type=draft.task_type or TaskType.OPERATION,
        priority=draft.priority or TaskPriority.MEDIUM,
        estimated_duration=draft.estimated_duration or TaskDuration.MIN_30,
        deadline=resolve_deadline(draft.deadline_text, reference),
        confidence=draft.confidence,
    )


__all__ = [
    "CommandDraft",
    "CommandType",
    "CompleteDraft",
    "CreateDraft",
    "CreateRequest",
    "DEFAULT_CONFIDENCE",
    "UpdateDraft",
    "UpdateFields",
    "build_create_request",
    "parse_command_draft",
]
