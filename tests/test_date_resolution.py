from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from core.date_resolution import correct_stale_year, default_deadline, resolve_deadline

REFERENCE = datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc)


def _midnight(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", [None, "", "   ", "bir ara", "sometime soon"])
def test_missing_or_unreadable_text_defaults_to_one_week(text) -> None:
    assert resolve_deadline(text, REFERENCE) == REFERENCE + timedelta(days=7)


@pytest.mark.parametrize(
    "text, days",
    [
        ("bugün", 0),
        ("Bugun", 0),
        ("yarın", 1),
        ("yarin sabah", 1),
        ("öbür gün", 2),
        ("ertesi gün", 2),
        ("haftaya", 7),
        ("gelecek hafta", 7),
        ("gelecek ay", 30),
        ("today", 0),
        ("tomorrow", 1),
        ("the day after tomorrow", 2),
        ("next week", 7),
        ("next month", 30),
    ],
)
def test_relative_keywords_keep_time_of_day(text: str, days: int) -> None:
    assert resolve_deadline(text, REFERENCE) == REFERENCE + timedelta(days=days)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2025-04-01", _midnight(2025, 4, 1)),
        ("deadline 2025-4-9 please", _midnight(2025, 4, 9)),
        ("15 Mart", _midnight(2025, 3, 15)),
        ("3 Şubat 2026", _midnight(2026, 2, 3)),
        ("3 subat 2026", _midnight(2026, 2, 3)),
        ("22 Ağustos", _midnight(2025, 8, 22)),
        ("5 may", _midnight(2025, 5, 5)),
        ("12 Dec 2025", _midnight(2025, 12, 12)),
        ("20.04.2025", _midnight(2025, 4, 20)),
        ("01/02/2026", _midnight(2026, 2, 1)),
    ],
)
def test_absolute_dates_resolve_to_midnight(text: str, expected: datetime) -> None:
    assert resolve_deadline(text, REFERENCE) == expected


def test_invalid_calendar_date_falls_back() -> None:
    assert resolve_deadline("2025-02-30", REFERENCE) == REFERENCE + timedelta(days=7)


def test_stale_years_are_moved_to_reference_year() -> None:
    assert resolve_deadline("2020-05-01", REFERENCE) == _midnight(2025, 5, 1)
    assert resolve_deadline("2024-05-01", REFERENCE) == _midnight(2024, 5, 1)


def test_correct_stale_year_handles_leap_day() -> None:
    corrected = correct_stale_year(_midnight(2020, 2, 29), REFERENCE)
    assert corrected == _midnight(2025, 2, 28)


def test_default_deadline_uses_now_without_reference() -> None:
    before = datetime.now(timezone.utc)
    deadline = default_deadline()
    assert deadline - before >= timedelta(days=7)
    assert deadline - before < timedelta(days=7, minutes=1)
