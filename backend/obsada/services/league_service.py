"""
backend/obsada/services/league_service.py

Purpose:
    League and team lookups needed by match scheduling: membership checks,
    official rosters, and the league/home-team ordinals that feed the
    human-readable match key.

Dependencies:
    - obsada.database
"""

import logging
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, status

import obsada.database as _db
from obsada.models.leagues import LeagueInDB, TeamInDB
from obsada.models.user import Role
from obsada.utils import utcnow

logger = logging.getLogger("obsada.league_service")

_ROSTER_FIELDS = {
    Role.referee: "referee_ids",
    Role.observer: "observer_ids",
    Role.admin: "admin_ids",
}


async def list_leagues(user: dict) -> list[dict]:
    """Leagues visible to the user: all of them for the owner, else those they belong to."""
    query: dict = {}
    if user.get("role") != Role.owner.value:
        user_id = str(user["_id"])
        query = {"$or": [{field: user_id} for field in _ROSTER_FIELDS.values()]}
    return await _db.db.leagues.find(query).sort("created_at", 1).to_list(length=1000)


async def create_league(name: str, country: str = "") -> dict:
    doc = {
        "name": name,
        "country": country,
        "team_ids": [],
        "referee_ids": [],
        "observer_ids": [],
        "admin_ids": [],
        "created_at": utcnow(),
    }
    LeagueInDB.model_validate(doc)
    result = await _db.db.leagues.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("League created: %s (%s)", doc["_id"], name)
    return doc


async def create_team(league: dict, name: str) -> dict:
    league_id = str(league["_id"])
    if await _db.db.teams.find_one({"league_id": league_id, "name": name}):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Team with this name already exists in the league.",
        )
    doc = {"name": name, "league_id": league_id, "created_at": utcnow()}
    TeamInDB.model_validate(doc)
    result = await _db.db.teams.insert_one(doc)
    doc["_id"] = result.inserted_id
    await _db.db.leagues.update_one(
        {"_id": league["_id"]},
        {"$addToSet": {"team_ids": str(doc["_id"])}},
    )
    logger.info("Team created: %s in league %s", doc["_id"], league_id)
    return doc


async def get_by_id(league_id: str) -> Optional[dict]:
    return await _db.db.leagues.find_one({"_id": ObjectId(league_id)})


async def require_league(league_id: str) -> dict:
    league = await get_by_id(league_id)
    if not league:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="League not found.")
    return league


async def get_league_teams(league_id: str) -> list[dict]:
    """Teams of a league in roster order (creation time)."""
    return await _db.db.teams.find({"league_id": league_id}).sort("created_at", 1).to_list(length=500)


async def get_league_officials(league: dict, role: Role) -> list[dict]:
    ids = [ObjectId(uid) for uid in league.get(_ROSTER_FIELDS[role], [])]
    if not ids:
        return []
    return await _db.db.users.find({"_id": {"$in": ids}}).to_list(length=len(ids))


async def get_league_index(league_id: str) -> int:
    """Zero-based position of the league, ordered by creation time."""
    leagues = await _db.db.leagues.find({}, {"_id": 1}).sort("created_at", 1).to_list(length=1000)
    league_ids = [str(doc["_id"]) for doc in leagues]
    if league_id not in league_ids:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="League not found.")
    return league_ids.index(league_id)


async def get_match_key_indices(league_id: str, home_team_id: str) -> tuple[int, int]:
    """Zero-based (league, home team) ordinals for the match key.

    Teams are ordered by their position in the league roster.
    """
    league_idx = await get_league_index(league_id)
    teams = await get_league_teams(league_id)
    team_ids = [str(doc["_id"]) for doc in teams]
    if home_team_id not in team_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Home team does not belong to this league.",
        )
    return league_idx, team_ids.index(home_team_id)


def is_league_admin(user: dict, league: dict) -> bool:
    if user.get("role") == Role.owner.value:
        return True
    return str(user["_id"]) in league.get("admin_ids", [])


def is_league_member(user: dict, league: dict) -> bool:
    """Admins of the league (and the owner) plus its rostered officials."""
    if is_league_admin(user, league):
        return True
    user_id = str(user["_id"])
    return user_id in league.get("referee_ids", []) or user_id in league.get("observer_ids", [])


async def require_league_member(league_id: str, user: dict) -> dict:
    league = await require_league(league_id)
    if not is_league_member(user, league):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have sufficient permissions.",
        )
    return league


def require_official(league: dict, user_id: str, role: Role) -> None:
    """400 unless ``user_id`` is on the league's roster for ``role``."""
    if user_id not in league.get(_ROSTER_FIELDS[role], []):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User is not a {role.value} of this league.",
        )


async def assign_official(league: dict, user: dict, role: Role) -> None:
    if user.get("role") != role.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User is not a {role.value}.",
        )
    await _db.db.leagues.update_one(
        {"_id": league["_id"]},
        {"$addToSet": {_ROSTER_FIELDS[role]: str(user["_id"])}},
    )


async def unassign_official(league: dict, user_id: str, role: Role) -> None:
    await _db.db.leagues.update_one(
        {"_id": league["_id"]},
        {"$pull": {_ROSTER_FIELDS[role]: user_id}},
    )
    logger.info("Removed %s %s from league %s", role.value, user_id, league["_id"])
