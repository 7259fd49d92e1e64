"""Centralize defaults and environment lookups for the voice task agent."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Mapping

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Default configuration values
# ---------------------------------------------------------------------------
_DEFAULT_ORACLE_MODEL = "gpt-4o-mini"
_DEFAULT_ORACLE_MAX_TOKENS = 300
_DEFAULT_ORACLE_TEMPERATURE = 0.1
_DEFAULT_TASK_STORE_PATH = "data/tasks.json"
_DEFAULT_RESOLUTION_POLICY_PATH = "config/resolution_policy.yml"
_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_COMMAND_LOG_ENABLED: bool = True
_DEFAULT_LOG_REDACTION_ENABLED: bool = True
_DEFAULT_LOG_DIR = "logs"
_COMMAND_LOG_FILENAME = "commands.jsonl"
_DEFAULT_LOG_REDACTION_PATTERNS = "email,phone,url"
_DEFAULT_LOG_MAX_BYTES = 1_000_000
_DEFAULT_LOG_BACKUP_COUNT = 5
_DEFAULT_WEB_UI_HOST = "127.0.0.1"
_DEFAULT_WEB_UI_PORT = 9000
_VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _source(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return env if env is not None else os.environ


def _read_flag(env: Mapping[str, str] | None, key: str, default: bool) -> bool:
    raw = _source(env).get(key)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _read_int(env: Mapping[str, str] | None, key: str, default: int) -> int:
    raw = _source(env).get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------
def get_openai_api_key(env: Dict[str, str] | None = None) -> str | None:
    """Return the API key for the oracle.

    Args:
        env: Optional mapping used instead of ``os.environ`` to simplify testing.

    Returns:
        The API key string if present, otherwise ``None``.
    """

    value = _source(env).get("OPENAI_API_KEY")
    return value.strip() if value and value.strip() else None


def get_oracle_model(env: Dict[str, str] | None = None) -> str:
    """Return the chat model used to interpret transcripts."""

    value = _source(env).get("ORACLE_MODEL")
    return value.strip() if value and value.strip() else _DEFAULT_ORACLE_MODEL


def get_oracle_max_tokens(env: Dict[str, str] | None = None) -> int:
    value = _read_int(env, "ORACLE_MAX_TOKENS", _DEFAULT_ORACLE_MAX_TOKENS)
    return value if value > 0 else _DEFAULT_ORACLE_MAX_TOKENS


def get_oracle_temperature(env: Dict[str, str] | None = None) -> float:
    raw = _source(env).get("ORACLE_TEMPERATURE")
    if raw is None:
        return _DEFAULT_ORACLE_TEMPERATURE
    try:
        value = float(raw)
    except ValueError:
        return _DEFAULT_ORACLE_TEMPERATURE
    return min(max(value, 0.0), 2.0)


# ---------------------------------------------------------------------------
# Storage and policy
# ---------------------------------------------------------------------------
def get_task_store_path(env: Dict[str, str] | None = None) -> Path:
    """Return the JSON file holding projects and tasks."""

    override = _source(env).get("TASK_STORE_PATH")
    return Path(override) if override else Path(_DEFAULT_TASK_STORE_PATH)


def get_resolution_policy_path(env: Dict[str, str] | None = None) -> Path:
    """Return the path to the resolution policy YAML file."""

    override = _source(env).get("RESOLUTION_POLICY_PATH")
    return Path(override) if override else Path(_DEFAULT_RESOLUTION_POLICY_PATH)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
def get_log_level(env: Dict[str, str] | None = None) -> str:
    raw = (_source(env).get("LOG_LEVEL") or "").strip().upper()
    return raw if raw in _VALID_LOG_LEVELS else _DEFAULT_LOG_LEVEL


def is_command_log_enabled(env: Dict[str, str] | None = None) -> bool:
    """Determine whether the JSONL command audit log is written."""

    return _read_flag(env, "COMMAND_LOG_ENABLED", _DEFAULT_COMMAND_LOG_ENABLED)


def get_log_dir(env: Dict[str, str] | None = None) -> Path:
    override = _source(env).get("LOG_DIR")
    return Path(override) if override else Path(_DEFAULT_LOG_DIR)


def get_command_log_path(env: Dict[str, str] | None = None) -> Path:
    """Return the full path for the command log JSONL file."""

    return get_log_dir(env) / _COMMAND_LOG_FILENAME


def is_log_redaction_enabled(env: Dict[str, str] | None = None) -> bool:
    """Determine whether contact details are scrubbed before logging."""

    return _read_flag(env, "LOG_REDACTION_ENABLED", _DEFAULT_LOG_REDACTION_ENABLED)


def get_log_redaction_patterns(env: Dict[str, str] | None = None) -> List[str]:
    raw = _source(env).get("LOG_REDACTION_PATTERNS")
    values = raw if raw is not None else _DEFAULT_LOG_REDACTION_PATTERNS
    return [segment.strip().lower() for segment in values.split(",") if segment.strip()]


def get_log_max_bytes(env: Dict[str, str] | None = None) -> int:
    """Return the maximum size in bytes before rotating the command log."""

    return max(_read_int(env, "LOG_MAX_BYTES", _DEFAULT_LOG_MAX_BYTES), 0)


def get_log_backup_count(env: Dict[str, str] | None = None) -> int:
    """Return the number of rotated log files to retain."""

    return max(_read_int(env, "LOG_BACKUP_COUNT", _DEFAULT_LOG_BACKUP_COUNT), 0)


# ---------------------------------------------------------------------------
# Web API
# ---------------------------------------------------------------------------
def get_web_ui_host(env: Dict[str, str] | None = None) -> str:
    return _source(env).get("WEB_UI_HOST", _DEFAULT_WEB_UI_HOST)


def get_web_ui_port(env: Dict[str, str] | None = None) -> int:
    value = _read_int(env, "WEB_UI_PORT", _DEFAULT_WEB_UI_PORT)
    return value if 0 < value <= 65535 else _DEFAULT_WEB_UI_PORT
