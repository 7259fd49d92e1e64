"""Voice command state machine.

WHAT: ``TaskAgent`` takes a transcript, asks the oracle for a command draft
and either applies it, asks the user to confirm a single uncertain match, or
asks the user to pick from a ranked list.
WHY: spoken task names are noisy; acting on a weak match silently would edit
the wrong task, while asking every time would make the voice flow useless.
HOW: CREATE drafts go straight to the repository. UPDATE and COMPLETE share
one resolve routine built on ``search_tasks`` and the resolution policy. All
failures become ``CommandFailed`` results; a generation counter discards
oracle or repository responses that arrive after ``reset`` or ``cancel``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from core.command_draft import (
    CommandType,
    CompleteDraft,
    CreateDraft,
    CreateRequest,
    UpdateDraft,
    build_create_request,
    parse_command_draft,
)
from core.command_log import CommandLogger, CommandRecord
from core.command_oracle import CommandOracle
from core.errors import (
    AgentError,
    NotFoundError,
    PersistenceError,
    TaskAgentError,
    ValidationError,
    to_agent_error,
)
from core.models import MatchResult, Project, TaskStatus, TaskWithProjectName, project_names
from core.resolution_messages import confirmation_prompt, disambiguation_text, suggestion_text
from core.resolution_policy import DEFAULT_THRESHOLDS, ConfidenceThresholds, best_match, needs_confirmation
from core.task_search import search_tasks

logger = logging.getLogger(__name__)


class AgentStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    CREATING = "creating"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    COMPLETED = "completed"
    ERROR = "error"


_BUSY = (AgentStatus.ANALYZING, AgentStatus.CREATING, AgentStatus.AWAITING_CONFIRMATION)


class TaskRepository(Protocol):
    async def create_task(self, fields: Mapping[str, Any]) -> str:
        ...

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> None:
        ...


PendingDraft = Union[UpdateDraft, CompleteDraft]


@dataclass(frozen=True)
class ConfirmationContext:
    """Pending UPDATE/COMPLETE waiting for the user to pick a task."""

    draft: PendingDraft
    search_term: str
    command_type: CommandType
    candidates: Tuple[MatchResult, ...]
    top_match: Optional[MatchResult] = None
    needs_confirmation: bool = False
    needs_disambiguation: bool = False

    def as_disambiguation(self) -> "ConfirmationContext":
        return replace(self, needs_confirmation=False, needs_disambiguation=True)

    def find_candidate(self, task_id: str) -> Optional[MatchResult]:
        for candidate in self.candidates:
            if candidate.task.id == task_id:
                return candidate
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search_term": self.search_term,
            "command_type": self.command_type.value,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "top_match": self.top_match.to_dict() if self.top_match else None,
            "needs_confirmation": self.needs_confirmation,
            "needs_disambiguation": self.needs_disambiguation,
        }


# --- Results ----------------------------------------------------------------
@dataclass(frozen=True)
class CreateSucceeded:
    request: CreateRequest
    task_id: str

    kind = "create"
    success = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "success": self.success,
            "command_type": CommandType.CREATE.value,
            "task_id": self.task_id,
            "task_data": self.request.to_dict(),
        }


@dataclass(frozen=True)
class UpdateSucceeded:
    task_id: str
    title: str
    project_name: str
    changed_fields: Tuple[str, ...] = ()
    fields: Dict[str, Any] = field(default_factory=dict)

    kind = "update"
    success = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "success": self.success,
            "command_type": CommandType.UPDATE.value,
            "task_id": self.task_id,
            "title": self.title,
            "project_name": self.project_name,
            "changed_fields": list(self.changed_fields),
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class CompleteSucceeded:
    task_id: str
    title: str
    project_name: str

    kind = "complete"
    success = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "success": self.success,
            "command_type": CommandType.COMPLETE.value,
            "task_id": self.task_id,
            "title": self.title,
            "project_name": self.project_name,
        }


@dataclass(frozen=True)
class NeedsConfirmation:
    """Not a failure: the command is valid but the user has to choose."""

    confirmation: ConfirmationContext
    message: str

    kind = "needs-confirmation"
    success = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "success": self.success,
            "command_type": self.confirmation.command_type.value,
            "message": self.message,
            "confirmation": self.confirmation.to_dict(),
        }


@dataclass(frozen=True)
class CommandFailed:
    error: AgentError

    kind = "failure"
    success = False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "success": self.success, "error": self.error.to_dict()}


AgentResult = Union[CreateSucceeded, UpdateSucceeded, CompleteSucceeded, NeedsConfirmation, CommandFailed]


@dataclass(frozen=True)
class AgentState:
    status: AgentStatus
    current_transcript: str = ""
    transcript_confidence: Optional[float] = None
    result: Optional[AgentResult] = None
    error: Optional[AgentError] = None
    confirmation: Optional[ConfirmationContext] = None
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "current_transcript": self.current_transcript,
            "transcript_confidence": self.transcript_confidence,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error.to_dict() if self.error else None,
            "confirmation": self.confirmation.to_dict() if self.confirmation else None,
            "generation": self.generation,
        }


@dataclass(frozen=True)
class _LastRequest:
    transcript: str
    projects: Tuple[Project, ...]
    tasks: Tuple[TaskWithProjectName, ...]
    transcript_confidence: Optional[float]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class TaskAgent:
    """One command in flight at a time; see module docstring."""

    def __init__(
        self,
        oracle: CommandOracle,
        repository: TaskRepository,
        *,
        thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
        command_logger: Optional[CommandLogger] = None,
        clock: Callable[[], datetime] = _local_now,
        on_success: Optional[Callable[[AgentResult], None]] = None,
        on_error: Optional[Callable[[AgentError], None]] = None,
    ) -> None:
        self._oracle = oracle
        self._repository = repository
        self._thresholds = thresholds
        self._command_logger = command_logger
        self._clock = clock
        self._on_success = on_success
        self._on_error = on_error

        self._status = AgentStatus.IDLE
        self._transcript = ""
        self._transcript_confidence: Optional[float] = None
        self._result: Optional[AgentResult] = None
        self._error: Optional[AgentError] = None
        self._confirmation: Optional[ConfirmationContext] = None
        self._last_request: Optional[_LastRequest] = None
        self._generation = 0
        self._started: Optional[float] = None

    # --- Introspection ------------------------------------------------------
    @property
    def state(self) -> AgentState:
        return AgentState(
            status=self._status,
            current_transcript=self._transcript,
            transcript_confidence=self._transcript_confidence,
            result=self._result,
            error=self._error,
            confirmation=self._confirmation,
            generation=self._generation,
        )

    @property
    def status(self) -> AgentStatus:
        return self._status

    @property
    def confirmation(self) -> Optional[ConfirmationContext]:
        return self._confirmation

    @property
    def thresholds(self) -> ConfidenceThresholds:
        return self._thresholds

    @property
    def has_retry(self) -> bool:
        return self._last_request is not None

    # --- Entry points -------------------------------------------------------
    async def analyze(
        self,
        transcript: str,
        projects: Sequence[Project],
        tasks: Sequence[TaskWithProjectName] = (),
        *,
        transcript_confidence: Optional[float] = None,
    ) -> Optional[AgentResult]:
        """Interpret ``transcript`` and run the resulting command.

        Returns ``None`` only when the call was overtaken by ``reset`` or
        ``cancel`` while awaiting the oracle or the repository.
        """

        if self._status in _BUSY:
            error = ValidationError(
                "Başka bir komut işleniyor; önce onaylayın, iptal edin veya sıfırlayın",
                details={"status": self._status.value},
            ).to_agent_error()
            logger.warning("Rejected analyze while %s", self._status.value)
            return CommandFailed(error)

        transcript = transcript or ""
        self._last_request = _LastRequest(
            transcript=transcript,
            projects=tuple(projects),
            tasks=tuple(tasks),
            transcript_confidence=transcript_confidence,
        )
        self._generation += 1
        generation = self._generation
        self._status = AgentStatus.ANALYZING
        self._transcript = transcript
        self._transcript_confidence = transcript_confidence
        self._result = None
        self._error = None
        self._confirmation = None
        self._started = time.monotonic()
        logger.debug("Analyzing transcript (%d chars, %d projects)", len(transcript), len(projects))

        try:
            if not transcript.strip():
                raise ValidationError("Metin boş")
            if not projects:
                raise ValidationError("Proje listesi boş")

            raw = await self._oracle.interpret(
                transcript.strip(),
                self._clock().date().isoformat(),
                project_names(list(projects)),
            )
            if not self._is_current(generation):
                return self._discard("oracle")

            draft = parse_command_draft(raw)
            if isinstance(draft, CreateDraft):
                return await self._create(draft, projects, generation)
            return await self._resolve(draft, tasks, generation)
        except Exception as exc:  # every failure becomes a CommandFailed result
            if not self._is_current(generation):
                return self._discard("failure")
            return self._fail(exc)

    async def confirm_task_match(self, selected: MatchResult) -> Optional[AgentResult]:
        """Apply the pending command to ``selected`` without searching again."""

        if self._status in (AgentStatus.ANALYZING, AgentStatus.CREATING):
            return CommandFailed(ValidationError("Başka bir komut işleniyor").to_agent_error())
        context = self._confirmation
        if context is None:
            return self._fail(ValidationError("Onaylanacak görev verisi bulunamadı"))

        generation = self._generation
        self._confirmation = None
        logger.debug("User confirmed %r (%s)", selected.task.title, context.command_type.value)
        try:
            return await self._apply(context.draft, selected, generation)
        except Exception as exc:  # every failure becomes a CommandFailed result
            if not self._is_current(generation):
                return self._discard("failure")
            return self._fail(exc)

    def reject_and_disambiguate(self) -> AgentResult:
        """Swap a single-match confirmation for the full candidate list."""

        context = self._confirmation
        if context is None or not context.needs_confirmation:
            error = ValidationError("Reddedilecek tekil bir eşleşme yok").to_agent_error()
            logger.warning("reject_and_disambiguate called without a single-match confirmation")
            return CommandFailed(error)

        updated = context.as_disambiguation()
        logger.debug("User rejected %r; showing %d candidates", context.search_term, len(updated.candidates))
        return self._await_confirmation(updated, outcome="rejected")

    def create_new_task(self) -> AgentResult:
        """Only CREATE confirmations could create; UPDATE/COMPLETE must be re-issued."""

        context = self._confirmation
        if context is None:
            error = ValidationError("Bekleyen bir komut yok").to_agent_error()
            return CommandFailed(error)

        error = ValidationError(
            'Yeni görev oluşturmak için CREATE komutunu kullanın. Örnek: "Yeni görev oluştur: [görev adı]"',
            details={"command_type": context.command_type.value},
        ).to_agent_error()
        self._log("create_new_rejected", error=error)
        self._notify(self._on_error, error)
        return CommandFailed(error)

    def cancel(self) -> None:
        """Drop any pending command; the retry memo survives."""

        self._generation += 1
        self._status = AgentStatus.IDLE
        self._confirmation = None
        self._result = None
        self._error = None
        logger.debug("Agent cancelled (generation %d)", self._generation)

    async def retry_last_analysis(self) -> Optional[AgentResult]:
        request = self._last_request
        if request is None:
            logger.error("No previous request to retry")
            return None
        logger.debug("Retrying last analysis")
        return await self.analyze(
            request.transcript,
            request.projects,
            request.tasks,
            transcript_confidence=request.transcript_confidence,
        )

    def reset(self) -> None:
        self._generation += 1
        self._status = AgentStatus.IDLE
        self._transcript = ""
        self._transcript_confidence = None
        self._result = None
        self._error = None
        self._confirmation = None
        self._last_request = None
        self._started = None
        logger.debug("Agent reset (generation %d)", self._generation)

    # --- Command paths ------------------------------------------------------
    async def _create(self, draft: CreateDraft, projects: Sequence[Project], generation: int) -> Optional[AgentResult]:
        request = build_create_request(draft, projects, self._clock())
        self._status = AgentStatus.CREATING
        try:
            task_id = await self._repository.create_task(request.to_fields())
        except TaskAgentError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Görev oluşturulamadı: {exc}") from exc
        if not self._is_current(generation):
            return self._discard("create")

        result = CreateSucceeded(request=request, task_id=str(task_id))
        return self._succeed(
            result,
            command_type=CommandType.CREATE.value,
            oracle_confidence=request.confidence,
            task_id=result.task_id,
            task_title=request.title,
            project_name=request.project_name,
        )

    async def _resolve(
        self,
        draft: PendingDraft,
        tasks: Sequence[TaskWithProjectName],
        generation: int,
    ) -> Optional[AgentResult]:
        """Shared UPDATE/COMPLETE routine: act, confirm, disambiguate or fail."""

        identification = draft.identification
        results = search_tasks(tasks, identification, thresholds=self._thresholds)
        best = best_match(results, self._thresholds)

        if best is not None and best.confidence >= self._thresholds.auto_accept:
            return await self._apply(draft, best, generation)

        if best is not None and needs_confirmation(results, self._thresholds):
            context = ConfirmationContext(
                draft=draft,
                search_term=identification.task_name,
                command_type=draft.command_type,
                candidates=results.matches,
                top_match=best,
                needs_confirmation=True,
            )
            return self._await_confirmation(context)

        if results.needs_disambiguation:
            context = ConfirmationContext(
                draft=draft,
                search_term=identification.task_name,
                command_type=draft.command_type,
                candidates=results.matches,
                needs_disambiguation=True,
            )
            return self._await_confirmation(context)

        suggestions = [match for match in results.matches if match.confidence >= self._thresholds.show_suggestions]
        raise NotFoundError(
            f'Görev bulunamadı: "{identification.task_name}" ({identification.project_name})',
            details={
                "task_name": identification.task_name,
                "project_name": identification.project_name,
                "suggestion": suggestion_text(suggestions, identification.task_name),
            },
        )

    async def _apply(self, draft: PendingDraft, match: MatchResult, generation: int) -> Optional[AgentResult]:
        self._status = AgentStatus.CREATING
        if isinstance(draft, UpdateDraft):
            fields = draft.fields.to_fields(self._clock())
        else:
            fields = {"status": TaskStatus.DONE.value}

        try:
            await self._repository.update_task(match.task.id, fields)
        except TaskAgentError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Görev güncellenemedi: {exc}", details={"task_id": match.task.id}) from exc
        if not self._is_current(generation):
            return self._discard("update")

        result: AgentResult
        if isinstance(draft, UpdateDraft):
            result = UpdateSucceeded(
                task_id=match.task.id,
                title=match.task.title,
                project_name=match.project_name,
                changed_fields=tuple(draft.fields.changed_fields()),
                fields=fields,
            )
        else:
            result = CompleteSucceeded(task_id=match.task.id, title=match.task.title, project_name=match.project_name)
        return self._succeed(
            result,
            command_type=draft.command_type.value,
            oracle_confidence=draft.confidence,
            task_id=match.task.id,
            task_title=match.task.title,
            project_name=match.project_name,
            match_confidence=match.confidence,
            match_category=match.category.value,
        )

    # --- State transitions --------------------------------------------------
    def _await_confirmation(self, context: ConfirmationContext, *, outcome: str = "needs_confirmation") -> AgentResult:
        if context.needs_confirmation and context.top_match is not None:
            message = confirmation_prompt(context.top_match)
        else:
            message = disambiguation_text(context.candidates)
        result = NeedsConfirmation(confirmation=context, message=message)
        self._status = AgentStatus.AWAITING_CONFIRMATION
        self._confirmation = context
        self._result = result
        self._error = None
        self._log(
            outcome,
            command_type=context.command_type.value,
            oracle_confidence=context.draft.confidence,
            candidates=_candidate_summary(context.candidates),
            extras={"needs_disambiguation": context.needs_disambiguation},
        )
        return result

    def _succeed(self, result: AgentResult, **record: Any) -> AgentResult:
        self._status = AgentStatus.COMPLETED
        self._result = result
        self._error = None
        self._confirmation = None
        logger.info("Command %s succeeded", result.kind)
        self._log(result.kind, **record)
        self._notify(self._on_success, result)
        return result

    def _fail(self, exc: BaseException) -> AgentResult:
        error = to_agent_error(exc)
        if isinstance(exc, TaskAgentError):
            logger.warning("Command failed (%s): %s", error.error_type.value, error.message)
        else:
            logger.exception("Unexpected failure while handling a command")
        result = CommandFailed(error)
        self._status = AgentStatus.ERROR
        self._error = error
        self._result = result
        self._log("failed", error=error)
        self._notify(self._on_error, error)
        return result

    def _notify(self, callback: Optional[Callable[[Any], None]], payload: Any) -> None:
        # Callbacks run after the transition; their failures never change the outcome.
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception("Agent callback %r failed", callback)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _discard(self, stage: str) -> None:
        logger.info("Discarding stale %s response", stage)
        return None

    def _log(self, outcome: str, *, error: Optional[AgentError] = None, **fields: Any) -> None:
        if self._command_logger is None:
            return
        latency = int((time.monotonic() - self._started) * 1000) if self._started is not None else None
        if error is not None:
            fields.setdefault("error_type", error.error_type.value)
            fields.setdefault("error_message", error.message)
        record = CommandRecord.new(
            outcome=outcome,
            transcript=self._transcript,
            transcript_confidence=self._transcript_confidence,
            latency_ms=latency,
            **fields,
        )
        self._command_logger.log_command(record)


def _candidate_summary(candidates: Sequence[MatchResult]) -> List[Dict[str, Any]]:
    return [
        {
            "task_id": candidate.task.id,
            "title": candidate.task.title,
            "confidence": candidate.confidence,
            "category": candidate.category.value,
        }
        for candidate in candidates
    ]


__all__ = [
    "AgentResult",
    "AgentState",
    "AgentStatus",
    "CommandFailed",
    "CompleteSucceeded",
    "ConfirmationContext",
    "CreateSucceeded",
    "NeedsConfirmation",
    "TaskAgent",
    "TaskRepository",
    "UpdateSucceeded",
]
