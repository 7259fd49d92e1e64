"""Structured audit log of voice commands.

Every terminal outcome of the agent (created, updated, completed, waiting for
confirmation, failed) becomes one ``CommandRecord`` appended to a JSONL file.
Free-text fields are scrubbed of e-mail addresses, phone numbers and URLs
before they reach disk, and the file rotates once it passes a size limit.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, IO, Iterable, List, Optional, Pattern

from core.text_utils import hash_text

logger = logging.getLogger(__name__)

_KNOWN_PATTERNS: Dict[str, Pattern[str]] = {
    "email": re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),
    "phone": re.compile(r"(?<![\d-])(?:\+?\d{1,3}[\s-]?)?\(?\d{3}\)?[\s-]?\d{3}[\s-]?\d{2}[\s-]?\d{2}(?![\d-])"),
    "url": re.compile(r"https?://[^\s]+", re.IGNORECASE),
}
_PATTERN_PRIORITY: Dict[str, int] = {
    "url": 0,
    "email": 1,
    "phone": 2,
}
_REDACT_FIELDS = {
    "transcript",
    "error_message",
    "extras",
}


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


@dataclass
class CommandRecord:
    """WHAT: one resolved (or failed) voice command.

    WHY: fuzzy matching decisions need to be replayable when a user says the
    agent picked the wrong task.
    HOW: plain dataclass; ``new`` stamps the timestamp and transcript hash.
    """

    timestamp: str
    outcome: str
    transcript: str = ""
    transcript_hash: str = ""
    transcript_confidence: float | None = None
    command_type: str | None = None
    oracle_confidence: float | None = None
    task_id: str | None = None
    task_title: str | None = None
    project_name: str | None = None
    match_confidence: int | None = None
    match_category: str | None = None
    candidates: List[Dict[str, Any]] = field(default_factory=list)
    error_type: str | None = None
    error_message: str | None = None
    latency_ms: int | None = None
    extras: Dict[str, Any] | None = None

    @classmethod
    def new(cls, *, outcome: str, transcript: str = "", **fields: Any) -> "CommandRecord":
        return cls(
            timestamp=_utc_now(),
            outcome=outcome,
            transcript=transcript,
            transcript_hash=hash_text(transcript),
            **fields,
        )


class CommandLogger:
    """WHAT: append-only JSONL writer for ``CommandRecord`` rows.

    WHY: the audit trail must stay bounded on disk and free of contact
    details users dictate into transcripts.
    HOW: redact configured fields, rotate to numbered backups when
    ``max_bytes`` would be exceeded, then append one line per record.
    """

    def __init__(
        self,
        *,
        log_path: Path,
        enabled: bool = True,
        redact: bool = True,
        patterns: Iterable[str] | None = None,
        max_bytes: int = 0,
        backup_count: int = 0,
    ) -> None:
        self._log_path = Path(log_path)
        self._enabled = enabled
        self._redact = redact
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        selected = tuple(patterns) if patterns else tuple(_KNOWN_PATTERNS)
        self._redaction_patterns = sorted(
            ((key, _KNOWN_PATTERNS[key]) for key in selected if key in _KNOWN_PATTERNS),
            key=lambda item: _PATTERN_PRIORITY.get(item[0], 10),
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def log_path(self) -> Path:
        return self._log_path

    def log_command(self, record: CommandRecord) -> None:
        if not self._enabled:
            return
        self._append_json_line(self._log_path, asdict(record))

    def read_records(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return logged rows, newest last; malformed lines are skipped."""

        if not self._log_path.exists():
            return []
        rows: List[Dict[str, Any]] = []
        with self._log_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed command log line in %s", self._log_path)
        if limit is not None and limit >= 0:
            return rows[-limit:] if limit else []
        return rows

    def _append_json_line(self, path: Path, payload: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        prepared = self._prepare_payload(payload)
        line = json.dumps(prepared, ensure_ascii=False)
        self._rotate_if_needed(path, len(line.encode("utf-8")) + 1)
        with self._open_file(path) as handle:
            handle.write(line)
            handle.write("\n")

    @staticmethod
    def _open_file(path: Path) -> IO[str]:
        return path.open("a", encoding="utf-8")

    def _prepare_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self._redact or not self._redaction_patterns:
            return payload
        return {
            key: self._scrub_value(value) if key in _REDACT_FIELDS else value
            for key, value in payload.items()
        }

    def _scrub_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._scrub_value(val) for key, val in value.items()}
        if isinstance(value, list):
            return [self._scrub_value(item) for item in value]
        if isinstance(value, str):
            return self._scrub_string(value)
        return value

    def _scrub_string(self, value: str) -> str:
        sanitized = value
        for key, pattern in self._redaction_patterns:
            sanitized = pattern.sub(f"[REDACTED_{key.upper()}]", sanitized)
        return sanitized

    def _rotate_if_needed(self, path: Path, incoming_bytes: int) -> None:
        """Keep ``path`` under ``max_bytes``; ``backup_count`` 0 truncates instead."""

        if self._max_bytes <= 0 or not path.exists():
            return
        if path.stat().st_size + incoming_bytes <= self._max_bytes:
            return

        if self._backup_count <= 0:
            path.unlink()
            return

        for index in range(self._backup_count - 1, 0, -1):
            src = Path(f"{path}.{index}")
            if src.exists():
                src.replace(Path(f"{path}.{index + 1}"))
        path.replace(Path(f"{path}.1"))


__all__ = ["CommandLogger", "CommandRecord"]
