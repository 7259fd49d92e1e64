"""Shared text normalization utilities.

Task titles and project names arrive from speech transcripts, so comparisons
must ignore case, punctuation, and the Turkish letters that speech engines and
keyboards render inconsistently.
"""

from __future__ import annotations

import hashlib
import re

TURKISH_CHAR_MAP = {
    "ı": "i",
    "İ": "i",
    "I": "i",
    "ğ": "g",
    "Ğ": "g",
    "ü": "u",
    "Ü": "u",
    "ş": "s",
    "Ş": "s",
    "ö": "o",
    "Ö": "o",
    "ç": "c",
    "Ç": "c",
}

_TURKISH_TABLE = str.maketrans(TURKISH_CHAR_MAP)
_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _clean(value: str) -> str:
    # Punctuation goes before whitespace collapse so "a - b" ends up as "a b".
    stripped = _PUNCTUATION_PATTERN.sub("", value.lower())
    return _WHITESPACE_PATTERN.sub(" ", stripped).strip()


def normalize_text(value: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""

    return _clean(value or "")


def normalize_turkish(value: str) -> str:
    """Like ``normalize_text`` but folds Turkish letters to ASCII first.

    ``İ`` is mapped before lowercasing; ``str.lower`` would otherwise turn it
    into ``i`` plus a combining dot.
    """

    return _clean((value or "").translate(_TURKISH_TABLE))


def hash_text(value: str) -> str:
    normalized = normalize_text(value)
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


__all__ = ["TURKISH_CHAR_MAP", "normalize_text", "normalize_turkish", "hash_text"]
