"""Error taxonomy shared by the oracle adapter, the draft parser and the agent.

Every failure the agent can report is one of ``AgentErrorType``. Code raises
the matching ``TaskAgentError`` subclass; the agent converts it into an
``AgentError`` value at the boundary so callers never see an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AgentErrorType(str, Enum):
    ORACLE_ERROR = "ORACLE_ERROR"
    PARSING_ERROR = "PARSING_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


USER_MESSAGES: Dict[AgentErrorType, str] = {
    AgentErrorType.ORACLE_ERROR: "AI servisi hatası - lütfen tekrar deneyin",
    AgentErrorType.PARSING_ERROR: "Metin analizi başarısız - lütfen daha açık konuşun",
    AgentErrorType.VALIDATION_ERROR: "Çıkarılan veri geçersiz - lütfen görev detaylarını kontrol edin",
    AgentErrorType.PERSISTENCE_ERROR: "Görev kaydetme hatası - lütfen bağlantınızı kontrol edin",
    AgentErrorType.NOT_FOUND: "Görev veya proje bulunamadı - lütfen mevcut bir isim belirtin",
    AgentErrorType.NETWORK_ERROR: "Ağ bağlantısı hatası - internet bağlantınızı kontrol edin",
    AgentErrorType.UNKNOWN: "Bilinmeyen hata - lütfen tekrar deneyin",
}

_RECOVERABLE_DEFAULTS: Dict[AgentErrorType, bool] = {
    AgentErrorType.ORACLE_ERROR: True,
    AgentErrorType.PARSING_ERROR: False,
    AgentErrorType.VALIDATION_ERROR: False,
    AgentErrorType.PERSISTENCE_ERROR: True,
    AgentErrorType.NOT_FOUND: False,
    AgentErrorType.NETWORK_ERROR: True,
    AgentErrorType.UNKNOWN: True,
}


def user_message_for(error_type: AgentErrorType) -> str:
    return USER_MESSAGES.get(error_type, USER_MESSAGES[AgentErrorType.UNKNOWN])


def is_recoverable(error_type: AgentErrorType) -> bool:
    return _RECOVERABLE_DEFAULTS.get(error_type, True)


@dataclass(frozen=True)
class AgentError:
    """Error value attached to the agent state and to failure results."""

    error_type: AgentErrorType
    message: str
    recoverable: bool
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_message(self) -> str:
        return user_message_for(self.error_type)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "user_message": self.user_message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class TaskAgentError(RuntimeError):
    """Base class for failures raised inside the command pipeline."""

    error_type = AgentErrorType.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.recoverable = is_recoverable(self.error_type) if recoverable is None else recoverable

    def to_agent_error(self) -> AgentError:
        return AgentError(
            error_type=self.error_type,
            message=self.message,
            recoverable=self.recoverable,
            details=dict(self.details),
        )


class OracleError(TaskAgentError):
    """The language model returned nothing usable or the API refused the call."""

    error_type = AgentErrorType.ORACLE_ERROR


class ParsingError(TaskAgentError):
    """The oracle response is not valid JSON or has an unknown shape."""

    error_type = AgentErrorType.PARSING_ERROR


class ValidationError(TaskAgentError):
    """Input or oracle fields failed validation."""

    error_type = AgentErrorType.VALIDATION_ERROR


class PersistenceError(TaskAgentError):
    """The repository rejected a create or update."""

    error_type = AgentErrorType.PERSISTENCE_ERROR


class NotFoundError(TaskAgentError):
    """No candidate task matched the spoken description."""

    error_type = AgentErrorType.NOT_FOUND


class NetworkError(TaskAgentError):
    """Transport failure while talking to the oracle."""

    error_type = AgentErrorType.NETWORK_ERROR


def to_agent_error(exc: BaseException) -> AgentError:
    """Convert any exception into an ``AgentError`` value."""

    if isinstance(exc, TaskAgentError):
        return exc.to_agent_error()
    message = str(exc) or exc.__class__.__name__
    return AgentError(
        error_type=AgentErrorType.UNKNOWN,
        message=message,
        recoverable=is_recoverable(AgentErrorType.UNKNOWN),
        details={"exception": exc.__class__.__name__},
    )


__all__ = [
    "AgentError",
    "AgentErrorType",
    "NetworkError",
    "NotFoundError",
    "OracleError",
    "ParsingError",
    "PersistenceError",
    "TaskAgentError",
    "USER_MESSAGES",
    "ValidationError",
    "is_recoverable",
    "to_agent_error",
    "user_message_for",
]
