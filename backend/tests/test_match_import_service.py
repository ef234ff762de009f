"""
backend/tests/test_match_import_service.py

Purpose:
    Schedule import: line-numbered rejection of bad CSV lines, conversion of
    a valid batch and whole-batch semantics when creating matches.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi import HTTPException

from obsada.services import match_import_service as mis
from obsada.services.match_repository import MatchRepository
from obsada.services.match_service import MatchService

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

TEAMS = [
    {"_id": ObjectId(), "name": "Lech"},
    {"_id": ObjectId(), "name": "Legia"},
    {"_id": ObjectId(), "name": "Wisla"},
    {"_id": ObjectId(), "name": "Cracovia"},
]
REFEREES = [{"_id": ObjectId(), "last_name": "Marciniak"}]
OBSERVERS = [{"_id": ObjectId(), "last_name": "Nowak", "phone_number": "48600700800"}]

VALID = (
    "Lech;Legia;2099-06-15;18:00;Stadion Poznan;Marciniak;Nowak\n"
    "\n"
    "Wisla;Cracovia;2099-06-15;20:30;Stadion Krakow;Marciniak;Nowak\r\n"
)


def _validate(text: str) -> None:
    mis.validate_matches(text, TEAMS, REFEREES, OBSERVERS, now=NOW)


@pytest.mark.parametrize(
    "line,message",
    [
        ("Lech;Legia;2099-06-15;18:00;Stadion;Marciniak", "Invalid number of match props"),
        ("Lech;Legia;2099-06-15;18:00;Stadion;Marciniak;Nowak;extra", "Invalid number of match props"),
        ("Pogon;Legia;2099-06-15;18:00;Stadion;Marciniak;Nowak", "Home team not found"),
        ("Lech;Pogon;2099-06-15;18:00;Stadion;Marciniak;Nowak", "Away team not found"),
        ("Lech;Legia;2099-06-15;18:00;Stadion;Kowalski;Nowak", "Referee not found"),
        ("Lech;Legia;2099-06-15;18:00;Stadion;Marciniak;Kowalski", "Observer not found"),
        ("Lech;Legia;15.06.2099;18:00;Stadion;Marciniak;Nowak", "Invalid date/time"),
        ("Lech;Legia;2099-06-15;25:00;Stadion;Marciniak;Nowak", "Invalid date/time"),
        ("Lech;Legia;2020-06-15;18:00;Stadion;Marciniak;Nowak", "Match date/time is from the past"),
        ("Lech;Legia;2099-06-15;18:00; ;Marciniak;Nowak", "Stadium not found"),
    ],
)
def test_bad_line_rejects_batch_with_line_number(line, message):
    text = "Wisla;Cracovia;2099-06-14;18:00;Stadion Krakow;Marciniak;Nowak\n" + line

    with pytest.raises(HTTPException) as exc:
        _validate(text)

    assert exc.value.status_code == 400
    assert exc.value.detail == f"{message} in line 2."


def test_empty_file_is_rejected():
    with pytest.raises(HTTPException) as exc:
        _validate("\n\n")
    assert exc.value.detail == "No matches found."


def test_valid_batch_converts_one_payload_per_line():
    _validate(VALID)

    dtos = mis.get_file_matches_dtos(VALID, TEAMS, REFEREES, OBSERVERS)

    assert [line_no for line_no, _ in dtos] == [1, 3]
    first = dtos[0][1]
    assert first.home_team_id == str(TEAMS[0]["_id"])
    assert first.away_team_id == str(TEAMS[1]["_id"])
    assert first.referee_id == str(REFEREES[0]["_id"])
    assert first.observer_id == str(OBSERVERS[0]["_id"])
    assert first.stadium == "Stadion Poznan"
    assert first.match_date == datetime(2099, 6, 15, 18, 0, tzinfo=timezone.utc)


def test_batch_conflicts_are_detected_before_creation():
    text = (
        "Lech;Legia;2099-06-15;18:00;A;Marciniak;Nowak\n"
        "Wisla;Lech;2099-06-15;12:00;B;Marciniak;Nowak\n"
    )
    dtos = mis.get_file_matches_dtos(text, TEAMS, REFEREES, OBSERVERS)

    with pytest.raises(HTTPException) as exc:
        mis.check_batch_conflicts(dtos)
    assert exc.value.detail == "Team already plays that day (line 1) in line 2."


@pytest.mark.asyncio
async def test_import_creates_matches_in_file_order(fake_db, sms):
    service = MatchService(repository=MatchRepository(), gateway=sms)

    created = await mis.import_matches(
        service, "league-1", VALID, TEAMS, REFEREES, OBSERVERS, league_idx=0, actor_id="admin-1",
    )

    assert [m["user_readable_key"] for m in created] == ["1506990101", "1506990103"]
    assert [c[0] for c in sms.calls] == ["schedule", "schedule"]
    assert len(fake_db.matches.docs) == 2


@pytest.mark.asyncio
async def test_import_conflicting_with_stored_match_creates_nothing(fake_db, sms):
    service = MatchService(repository=MatchRepository(), gateway=sms)
    await mis.import_matches(
        service, "league-1", VALID.splitlines()[0], TEAMS, REFEREES, OBSERVERS, league_idx=0, actor_id="a",
    )
    sms.calls.clear()

    text = (
        "Wisla;Cracovia;2099-06-16;18:00;B;Marciniak;Nowak\n"
        "Legia;Wisla;2099-06-15;12:00;C;Marciniak;Nowak\n"
    )
    with pytest.raises(HTTPException) as exc:
        await mis.import_matches(
            service, "league-1", text, TEAMS, REFEREES, OBSERVERS, league_idx=0, actor_id="a",
        )

    assert exc.value.detail == "One of the teams already has a match at that day in line 2."
    assert sms.calls == []
    assert len(fake_db.matches.docs) == 1


@pytest.mark.asyncio
async def test_key_overflow_rejects_batch_before_any_creation(fake_db, sms):
    service = MatchService(repository=MatchRepository(), gateway=sms)
    teams = [{"_id": ObjectId(), "name": f"T{i}"} for i in range(101)]
    text = (
        "T0;T1;2099-06-15;18:00;A;Marciniak;Nowak\n"
        "T99;T2;2099-06-16;18:00;B;Marciniak;Nowak\n"
    )

    with pytest.raises(HTTPException) as exc:
        await mis.import_matches(
            service, "league-1", text, teams, REFEREES, OBSERVERS, league_idx=0, actor_id="a",
        )

    assert exc.value.status_code == 400
    assert exc.value.detail == "Home team index 99 does not fit a two-digit match key in line 2."
    assert sms.calls == []
    assert fake_db.matches.docs == []


def test_lines_sharing_a_key_are_rejected(monkeypatch):
    # Different days in Warsaw, same UTC day: same key for the same home team.
    monkeypatch.setattr(mis.settings, "LEAGUE_TIMEZONE", "Europe/Warsaw")
    text = (
        "Lech;Legia;2099-06-15;18:00;A;Marciniak;Nowak\n"
        "Lech;Wisla;2099-06-16;01:00;B;Marciniak;Nowak\n"
    )
    dtos = mis.get_file_matches_dtos(text, TEAMS, REFEREES, OBSERVERS)
    mis.check_batch_conflicts(dtos)
    team_idx = {str(t["_id"]): idx for idx, t in enumerate(TEAMS)}

    with pytest.raises(HTTPException) as exc:
        mis.check_batch_keys(dtos, 0, team_idx)
    assert exc.value.detail == "Match key 1506990101 already used (line 1) in line 2."

    assert mis.check_batch_keys(dtos[:1], 0, team_idx) == ["1506990101"]
