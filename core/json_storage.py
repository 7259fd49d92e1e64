"""Helpers for file-backed JSON documents.

Stores keep their whole state in one JSON file; reading and the atomic
replace-on-write live here so every store writes the same way.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")


def read_json(path: Path, default: T) -> T:
    """Return JSON content from ``path``, or ``default`` for a missing or blank file."""

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    if not raw.strip():
        return default
    return json.loads(raw)


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` next to ``path`` and swap it in with ``os.replace``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    # Turkish titles stay readable in the file.
    tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp_path, path)


__all__ = ["atomic_write_json", "read_json"]
