"""Dashboard entities and the ephemeral search results built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from core.text_utils import normalize_turkish

E = TypeVar("E", bound=Enum)


class TaskStatus(str, Enum):
    TODO = "Yapılacak"
    IN_PROGRESS = "Yapılıyor"
    WAITING = "Beklemede"
    BLOCKED = "Blocked"
    DONE = "Yapıldı"

    @classmethod
    def coerce(cls, value: Any) -> Optional["TaskStatus"]:
        return _coerce(cls, value)


class TaskPriority(str, Enum):
    HIGH = "Yüksek"
    MEDIUM = "Orta"
    LOW = "Düşük"

    @classmethod
    def coerce(cls, value: Any) -> Optional["TaskPriority"]:
        return _coerce(cls, value)


class TaskDuration(str, Enum):
    MIN_15 = "15dk"
    MIN_30 = "30dk"
    HOUR_1 = "1saat"
    HOUR_1_5 = "1.5saat"
    HOUR_2 = "2saat"

    @property
    def minutes(self) -> int:
        return _DURATION_MINUTES[self]

    @classmethod
    def coerce(cls, value: Any) -> Optional["TaskDuration"]:
        return _coerce(cls, value)


class TaskType(str, Enum):
    OPERATION = "Operasyon"
    ROUTING = "Yönlendirme"
    FOLLOW_UP = "Takip"

    @classmethod
    def coerce(cls, value: Any) -> Optional["TaskType"]:
        return _coerce(cls, value)


class MatchCategory(str, Enum):
    EXACT = "exact"
    CASE_INSENSITIVE = "case-insensitive"
    TYPO_CORRECTED = "typo-corrected"
    PARTIAL = "partial"
    FUZZY = "fuzzy"


_DURATION_MINUTES = {
    TaskDuration.MIN_15: 15,
    TaskDuration.MIN_30: 30,
    TaskDuration.HOUR_1: 60,
    TaskDuration.HOUR_1_5: 90,
    TaskDuration.HOUR_2: 120,
}

# Oracle output mixes Turkish labels, English words and enum names; keys are
# compared after ``normalize_turkish``.
_ALIASES: Dict[Type[Enum], Dict[str, Enum]] = {
    TaskStatus: {
        "todo": TaskStatus.TODO,
        "to do": TaskStatus.TODO,
        "pending": TaskStatus.TODO,
        "open": TaskStatus.TODO,
        "yapilacak": TaskStatus.TODO,
        "in progress": TaskStatus.IN_PROGRESS,
        "inprogress": TaskStatus.IN_PROGRESS,
        "doing": TaskStatus.IN_PROGRESS,
        "devam ediyor": TaskStatus.IN_PROGRESS,
        "waiting": TaskStatus.WAITING,
        "on hold": TaskStatus.WAITING,
        "engellendi": TaskStatus.BLOCKED,
        "done": TaskStatus.DONE,
        "completed": TaskStatus.DONE,
        "complete": TaskStatus.DONE,
        "finished": TaskStatus.DONE,
        "tamamlandi": TaskStatus.DONE,
        "bitti": TaskStatus.DONE,
    },
    TaskPriority: {
        "high": TaskPriority.HIGH,
        "urgent": TaskPriority.HIGH,
        "acil": TaskPriority.HIGH,
        "medium": TaskPriority.MEDIUM,
        "normal": TaskPriority.MEDIUM,
        "low": TaskPriority.LOW,
    },
    TaskDuration: {
        "15 dk": TaskDuration.MIN_15,
        "15 dakika": TaskDuration.MIN_15,
        "15 min": TaskDuration.MIN_15,
        "15 minutes": TaskDuration.MIN_15,
        "30 dk": TaskDuration.MIN_30,
        "30 dakika": TaskDuration.MIN_30,
        "30 min": TaskDuration.MIN_30,
        "30 minutes": TaskDuration.MIN_30,
        "yarim saat": TaskDuration.MIN_30,
        "half hour": TaskDuration.MIN_30,
        "1 saat": TaskDuration.HOUR_1,
        "60dk": TaskDuration.HOUR_1,
        "1 hour": TaskDuration.HOUR_1,
        "one hour": TaskDuration.HOUR_1,
        "15 saat": TaskDuration.HOUR_1_5,
        "90dk": TaskDuration.HOUR_1_5,
        "bir bucuk saat": TaskDuration.HOUR_1_5,
        "15 hours": TaskDuration.HOUR_1_5,
        "2 saat": TaskDuration.HOUR_2,
        "120dk": TaskDuration.HOUR_2,
        "2 hours": TaskDuration.HOUR_2,
    },
    TaskType: {
        "operation": TaskType.OPERATION,
        "routing": TaskType.ROUTING,
        "delegation": TaskType.ROUTING,
        "follow up": TaskType.FOLLOW_UP,
        "followup": TaskType.FOLLOW_UP,
    },
}


def _coerce(enum_cls: Type[E], value: Any) -> Optional[E]:
    """Map canonical values, member names and aliases onto ``enum_cls``."""

    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    key = normalize_turkish(value)
    for member in enum_cls:
        if key in (normalize_turkish(member.value), normalize_turkish(member.name.replace("_", " "))):
            return member
    alias = _ALIASES.get(enum_cls, {}).get(key)
    return alias  # type: ignore[return-value]


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "order": self.order}


@dataclass(frozen=True)
class Task:
    """A dashboard task. Titles are never empty."""

    id: str
    project_id: str
    title: str
    description: str = ""
    assigned_person: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_duration: TaskDuration = TaskDuration.MIN_30
    task_type: TaskType = TaskType.OPERATION
    deadline: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not (self.title or "").strip():
            raise ValueError("Task title must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "assigned_person": self.assigned_person,
            "status": self.status.value,
            "priority": self.priority.value,
            "estimated_duration": self.estimated_duration.value,
            "type": self.task_type.value,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class TaskWithProjectName(Task):
    """Read-side view of a task carrying its project's display name."""

    project_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["project_name"] = self.project_name
        return data


@dataclass(frozen=True)
class MatchResult:
    task: TaskWithProjectName
    project_name: str
    confidence: int
    category: MatchCategory
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "project_name": self.project_name,
            "confidence": self.confidence,
            "category": self.category.value,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class SearchResultSet:
    matches: Tuple[MatchResult, ...] = ()
    confident_match: Optional[MatchResult] = None
    needs_disambiguation: bool = False

    @property
    def top(self) -> Optional[MatchResult]:
        return self.matches[0] if self.matches else None

    @property
    def is_empty(self) -> bool:
        return not self.matches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [match.to_dict() for match in self.matches],
            "confident_match": self.confident_match.to_dict() if self.confident_match else None,
            "needs_disambiguation": self.needs_disambiguation,
        }


def project_names(projects: List[Project]) -> List[str]:
    return [project.name for project in projects]


def coerce_mapping_str(raw: Mapping[str, Any], key: str) -> str:
    """Return ``raw[key]`` as a stripped string, or "" for anything else."""

    value = raw.get(key)
    if isinstance(value, str):
        return value.strip()
    return ""


__all__ = [
    "MatchCategory",
    "MatchResult",
    "Project",
    "SearchResultSet",
    "Task",
    "TaskDuration",
    "TaskPriority",
    "TaskStatus",
    "TaskType",
    "TaskWithProjectName",
    "coerce_mapping_str",
    "project_names",
]
