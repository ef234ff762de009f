"""
backend/tests/test_validators.py

Purpose:
    Entry window predicate and its raising variant.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from obsada.services import validators

KICKOFF = datetime(2024, 6, 15, 18, 0, tzinfo=timezone.utc)


def test_window_opens_exactly_at_reference_plus_hours():
    assert not validators.is_within_entry_window(KICKOFF, 4, now=KICKOFF + timedelta(hours=3, minutes=59))
    assert validators.is_within_entry_window(KICKOFF, 4, now=KICKOFF + timedelta(hours=4))
    assert validators.is_within_entry_window(KICKOFF, 4, now=KICKOFF + timedelta(days=400))


def test_window_accepts_naive_reference_from_storage():
    naive = KICKOFF.replace(tzinfo=None)
    assert validators.is_within_entry_window(naive, 2, now=KICKOFF + timedelta(hours=2))


def test_window_constants_are_derived_from_match_duration():
    assert validators.MATCH_DURATION == 2
    assert validators.GRADE_ENTRY_TIME_WINDOW == validators.MATCH_DURATION + 2
    assert validators.OVERALL_GRADE_ENTRY_TIME_WINDOW == validators.MATCH_DURATION + 48


def test_validate_entry_time_raises_400_before_window():
    with pytest.raises(HTTPException) as exc:
        validators.validate_entry_time(KICKOFF, 4, now=KICKOFF + timedelta(hours=1))
    assert exc.value.status_code == 400
    assert "4 hours" in exc.value.detail


def test_validate_entry_time_passes_after_window():
    validators.validate_entry_time(KICKOFF, 50, now=KICKOFF + timedelta(hours=50))
