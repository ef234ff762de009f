"""
backend/tests/test_grade_sms_service.py

Purpose:
    Syntax gates of inbound grade SMS and the post-lookup business gates.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from obsada.services import grade_sms_service as gs


@pytest.mark.parametrize(
    "text,reply",
    [
        ("ABC", gs.INVALID_FORMAT),
        ("A#B#C", gs.INVALID_FORMAT),
        ("", gs.INVALID_FORMAT),
        ("#5/10", gs.INVALID_MATCH_KEY),
        ("   #5/10", gs.INVALID_MATCH_KEY),
        ("KEY#5", gs.INVALID_GRADE_FORMAT),
        ("KEY#5/10/2", gs.INVALID_GRADE_FORMAT),
        ("KEY#x/10", gs.INVALID_GRADE),
        ("KEY#/10", gs.INVALID_GRADE),
        ("KEY# /10", gs.INVALID_GRADE),
        ("1506240102#1_0/10", gs.INVALID_GRADE),
        ("KEY#8,5/10", gs.INVALID_GRADE),
        ("KEY#\u0663/10", gs.INVALID_GRADE),
        ("KEY#1e999/10", gs.INVALID_GRADE),
        ("KEY#nan/10", gs.INVALID_GRADE),
        ("KEY#inf/10", gs.INVALID_GRADE),
    ],
)
def test_syntax_gates_map_to_exactly_one_reply(text, reply):
    with pytest.raises(gs.GradeSmsError) as exc:
        gs.parse_grade_sms(text)
    assert exc.value.reply == reply


def test_valid_sms_is_parsed_and_max_grade_is_not_checked():
    parsed = gs.parse_grade_sms(" 1506240102#8.5/3 ")
    assert parsed.match_key == "1506240102"
    assert parsed.grade == 8.5
    assert parsed.max_grade == "3"


def test_gradeable_checks_run_in_order():
    now = datetime(2024, 6, 15, 21, 0, tzinfo=timezone.utc)
    ended = {"match_date": now - timedelta(hours=2), "referee_grade": None}
    running = {"match_date": now - timedelta(hours=1, minutes=59), "referee_grade": None}
    graded = {"match_date": now - timedelta(hours=1), "referee_grade": 8.0}

    assert gs.check_match_gradeable(None, now=now) == gs.INVALID_MATCH_KEY
    assert gs.check_match_gradeable(graded, now=now) == gs.GRADE_ALREADY_ENTERED
    assert gs.check_match_gradeable(running, now=now) == gs.GRADE_BEFORE_MATCH_END
    assert gs.check_match_gradeable(ended, now=now) is None


def test_zero_grade_counts_as_entered():
    now = datetime(2024, 6, 15, 21, 0, tzinfo=timezone.utc)
    match = {"match_date": now - timedelta(days=1), "referee_grade": 0.0}
    assert gs.check_match_gradeable(match, now=now) == gs.GRADE_ALREADY_ENTERED


@pytest.mark.parametrize(
    "token,grade",
    [("+7", 7.0), ("-1", -1.0), (".5", 0.5), ("7.", 7.0), ("1e1", 10.0), (" 9 ", 9.0)],
)
def test_decimal_notations_are_accepted(token, grade):
    assert gs.parse_grade_sms(f"1506240102#{token}/10").grade == grade
