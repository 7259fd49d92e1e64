"""Resolve the deadline phrases the oracle copies out of a transcript."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.text_utils import normalize_turkish

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_DAYS = 7

# Keys are ASCII-folded so "yarın" and "yarin" both hit.
_RELATIVE_KEYWORDS = {
    "bugun": 0,
    "yarin": 1,
    "obur gun": 2,
    "ertesi gun": 2,
    "gelecek hafta": 7,
    "haftaya": 7,
    "gelecek ay": 30,
    "today": 0,
    "tomorrow": 1,
    "day after tomorrow": 2,
    "next week": 7,
    "next month": 30,
}
# "day after tomorrow" must win over "tomorrow".
_RELATIVE_ORDER = sorted(_RELATIVE_KEYWORDS, key=len, reverse=True)

_MONTHS = {
    "ocak": 1,
    "subat": 2,
    "mart": 3,
    "nisan": 4,
    "mayis": 5,
    "haziran": 6,
    "temmuz": 7,
    "agustos": 8,
    "eylul": 9,
    "ekim": 10,
    "kasim": 11,
    "aralik": 12,
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_ISO_PATTERN = re.compile(r"(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})")
_MONTH_NAME_PATTERN = re.compile(r"(?P<day>\d{1,2})\s+(?P<month_name>[a-z]+)(?:\s+(?P<year>\d{4}))?")
_NUMERIC_PATTERN = re.compile(r"(?P<day>\d{1,2})[./](?P<month>\d{1,2})[./](?P<year>\d{4})")


def default_deadline(reference: Optional[datetime] = None) -> datetime:
    reference = reference or datetime.now(timezone.utc)
    return reference + timedelta(days=DEFAULT_DEADLINE_DAYS)


def resolve_deadline(text: Optional[str], reference: Optional[datetime] = None) -> datetime:
    """Turn free-form deadline text into a datetime.

    Absent or unreadable text means one week from ``reference``. Relative
    keywords keep the reference time of day; absolute dates resolve to
    midnight in the reference timezone.
    """

    reference = reference or datetime.now(timezone.utc)
    if not text or not text.strip():
        return default_deadline(reference)

    raw = text.strip()
    folded = normalize_turkish(raw)

    iso_match = _ISO_PATTERN.search(raw)
    if iso_match:
        parsed = _build(reference, iso_match.group("year"), iso_match.group("month"), iso_match.group("day"))
        if parsed is not None:
            return correct_stale_year(parsed, reference)

    for keyword in _RELATIVE_ORDER:
        if re.search(rf"\b{re.escape(keyword)}\b", folded):
            return reference + timedelta(days=_RELATIVE_KEYWORDS[keyword])

    for match in _MONTH_NAME_PATTERN.finditer(folded):
        month = _MONTHS.get(match.group("month_name"))
        if not month:
            continue
        year = match.group("year") or str(reference.year)
        parsed = _build(reference, year, str(month), match.group("day"))
        if parsed is not None:
            return correct_stale_year(parsed, reference)

    numeric_match = _NUMERIC_PATTERN.search(raw)
    if numeric_match:
        parsed = _build(
            reference,
            numeric_match.group("year"),
            numeric_match.group("month"),
            numeric_match.group("day"),
        )
        if parsed is not None:
            return correct_stale_year(parsed, reference)

    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Unreadable deadline %r; using default", raw)
        return default_deadline(reference)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=reference.tzinfo)
    return correct_stale_year(parsed, reference)


def correct_stale_year(value: datetime, reference: datetime) -> datetime:
    """Move dates more than a year in the past into the reference year."""

    if value.year >= reference.year - 1:
        return value
    logger.debug("Correcting stale deadline year %s -> %s", value.year, reference.year)
    try:
        return value.replace(year=reference.year)
    except ValueError:
        # 29 February in a non-leap year.
        return value.replace(year=reference.year, day=28)


def _build(reference: datetime, year: str, month: str, day: str) -> Optional[datetime]:
    try:
        return datetime(int(year), int(month), int(day), tzinfo=reference.tzinfo)
    except ValueError:
        return None


__all__ = ["DEFAULT_DEADLINE_DAYS", "correct_stale_year", "default_deadline", "resolve_deadline"]
