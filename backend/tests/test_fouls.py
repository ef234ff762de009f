"""
backend/tests/test_fouls.py

Purpose:
    Foul records: who may read and write them, the overall-grade entry
    window once a match is overall-graded, and cleanup on match removal.

Dependencies:
    - pytest
    - obsada.routers.fouls
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from bson import ObjectId
from fastapi import HTTPException

from obsada.models.fouls import CardType, FoulCreate
from obsada.routers import fouls as fouls_router
from obsada.routers import matches as matches_router
from obsada.services.match_repository import MatchRepository
from obsada.services.match_service import MatchService
from obsada.utils import utcnow


def _user(role: str, last_name: str) -> dict:
    return {"_id": ObjectId(), "role": role, "first_name": "Test", "last_name": last_name, "phone_number": "48600700800"}


@pytest.fixture
def league(fake_db, sms, monkeypatch):
    service = MatchService(MatchRepository(), sms)
    monkeypatch.setattr(fouls_router, "match_service", service)
    monkeypatch.setattr(matches_router, "match_service", service)

    admin = _user("admin", "Admin")
    referee = _user("referee", "Marciniak")
    observer = _user("observer", "Nowak")
    outsider = _user("observer", "Obcy")
    fake_db.users.docs.extend([admin, referee, observer, outsider])

    league_doc = {
        "_id": ObjectId(),
        "name": "Ekstraklasa",
        "admin_ids": [str(admin["_id"])],
        "referee_ids": [str(referee["_id"])],
        "observer_ids": [str(observer["_id"])],
        "created_at": utcnow(),
    }
    fake_db.leagues.docs.append(league_doc)
    return {
        "id": str(league_doc["_id"]),
        "admin": admin,
        "referee": referee,
        "observer": observer,
        "outsider": outsider,
    }


def _add_match(fake_db, league: dict, hours_ago: float, overall_grade=None) -> str:
    match = {
        "_id": ObjectId(),
        "user_readable_key": "1506240101",
        "match_date": utcnow() - timedelta(hours=hours_ago),
        "stadium": "Stadion Miejski",
        "league_id": league["id"],
        "home_team_id": "home",
        "away_team_id": "away",
        "referee_id": str(league["referee"]["_id"]),
        "observer_id": str(league["observer"]["_id"]),
        "observer_sms_id": None,
        "referee_grade": None,
        "overall_grade": overall_grade,
    }
    fake_db.matches.docs.append(match)
    return str(match["_id"])


def _foul(minute: int = 30, team_id: str = "home", **extra) -> FoulCreate:
    return FoulCreate(minute=minute, team_id=team_id, **extra)


@pytest.mark.asyncio
async def test_observer_records_fouls_and_members_read_them(league, fake_db):
    match_id = _add_match(fake_db, league, hours_ago=3)

    late = await fouls_router.create_foul(
        league["id"], match_id, _foul(80, "away", card=CardType.yellow), user=league["observer"],
    )
    await fouls_router.create_foul(league["id"], match_id, _foul(12), user=league["observer"])

    listed = await fouls_router.list_fouls(league["id"], match_id, user=league["referee"])
    assert [f.minute for f in listed] == [12, 80]
    assert listed[1].card == CardType.yellow

    fetched = await fouls_router.get_foul(league["id"], match_id, late.id, user=league["admin"])
    assert fetched.team_id == "away"
    assert fetched.created_by == str(league["observer"]["_id"])
    assert [a["action"] for a in fake_db.audit_logs.docs] == ["FOUL_CREATED", "FOUL_CREATED"]


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["referee", "admin", "owner"])
async def test_only_observers_may_write_fouls(role):
    user = _user(role, "Kowalski")
    with pytest.raises(HTTPException) as exc:
        await fouls_router.get_observer_user(user=user)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_observer_outside_league_is_rejected(league, fake_db):
    match_id = _add_match(fake_db, league, hours_ago=3)

    with pytest.raises(HTTPException) as exc:
        await fouls_router.create_foul(league["id"], match_id, _foul(), user=league["outsider"])
    assert exc.value.status_code == 403

    with pytest.raises(HTTPException) as exc:
        await fouls_router.list_fouls(league["id"], match_id, user=league["outsider"])
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_team_must_play_in_the_match(league, fake_db):
    match_id = _add_match(fake_db, league, hours_ago=3)

    with pytest.raises(HTTPException) as exc:
        await fouls_router.create_foul(league["id"], match_id, _foul(team_id="other"), user=league["observer"])
    assert exc.value.status_code == 400
    assert fake_db.fouls.docs == []


@pytest.mark.asyncio
async def test_overall_graded_match_locks_fouls_until_window_opens(league, fake_db):
    open_id = _add_match(fake_db, league, hours_ago=3)
    foul = await fouls_router.create_foul(league["id"], open_id, _foul(), user=league["observer"])
    fake_db.matches.docs[0]["overall_grade"] = "B"

    with pytest.raises(HTTPException) as exc:
        await fouls_router.update_foul(league["id"], open_id, foul.id, _foul(55), user=league["observer"])
    assert exc.value.status_code == 400
    assert exc.value.detail == "Entry is allowed only 50 hours after match start."

    with pytest.raises(HTTPException):
        await fouls_router.create_foul(league["id"], open_id, _foul(60), user=league["observer"])
    assert len(fake_db.fouls.docs) == 1

    old_id = _add_match(fake_db, league, hours_ago=51, overall_grade="B")
    created = await fouls_router.create_foul(league["id"], old_id, _foul(70), user=league["observer"])
    updated = await fouls_router.update_foul(
        league["id"], old_id, created.id, _foul(71, decision_correct=False), user=league["observer"],
    )
    assert updated.minute == 71
    assert updated.decision_correct is False


@pytest.mark.asyncio
async def test_foul_of_another_match_is_not_found(league, fake_db):
    first = _add_match(fake_db, league, hours_ago=3)
    second = _add_match(fake_db, league, hours_ago=4)
    foul = await fouls_router.create_foul(league["id"], first, _foul(), user=league["observer"])

    with pytest.raises(HTTPException) as exc:
        await fouls_router.remove_foul(league["id"], second, foul.id, user=league["observer"])
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        await fouls_router.get_foul(league["id"], first, "not-an-id", user=league["observer"])
    assert exc.value.status_code == 404

    removed = await fouls_router.remove_foul(league["id"], first, foul.id, user=league["observer"])
    assert removed.id == foul.id
    assert fake_db.fouls.docs == []


@pytest.mark.asyncio
async def test_removing_match_drops_its_fouls(league, fake_db):
    match_id = _add_match(fake_db, league, hours_ago=3)
    await fouls_router.create_foul(league["id"], match_id, _foul(), user=league["observer"])

    await matches_router.remove_match(league["id"], match_id, user=league["admin"])

    assert fake_db.matches.docs == []
    assert fake_db.fouls.docs == []
