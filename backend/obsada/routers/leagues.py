"""
backend/obsada/routers/leagues.py

Purpose:
    League administration: leagues, their teams and the referee, observer
    and admin rosters that scheduling draws from.

Dependencies:
    - obsada.services.league_service
    - obsada.services.match_service
    - obsada.services.user_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from obsada.models.leagues import (
    LeagueCreate,
    LeagueResponse,
    TeamCreate,
    TeamResponse,
    league_to_response,
    team_to_response,
)
from obsada.models.user import Role, UserResponse, user_to_response
from obsada.services import league_service, user_service
from obsada.services.audit_service import log_audit
from obsada.services.auth_service import get_current_user, get_owner_user
from obsada.services.match_service import match_service

logger = logging.getLogger("obsada.leagues")

router = APIRouter(prefix="/api/leagues", tags=["leagues"])

_ROLE_PATHS = {
    "referees": Role.referee,
    "observers": Role.observer,
    "admins": Role.admin,
}


def _roster_role(roster: str) -> Role:
    try:
        return _ROLE_PATHS[roster]
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Roster not found.") from None


async def _admin_league(league_id: str, user: dict) -> dict:
    league = await league_service.require_league(league_id)
    if not league_service.is_league_admin(user, league):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have sufficient permissions.",
        )
    return league


@router.get("", response_model=list[LeagueResponse])
async def list_leagues(user=Depends(get_current_user)):
    return [league_to_response(doc) for doc in await league_service.list_leagues(user)]


@router.post("", response_model=LeagueResponse, status_code=status.HTTP_201_CREATED)
async def create_league(body: LeagueCreate, owner=Depends(get_owner_user)):
    league = await league_service.create_league(body.name, body.country)
    await log_audit(actor_id=str(owner["_id"]), target_id=str(league["_id"]), action="LEAGUE_CREATED")
    return league_to_response(league)


@router.get("/{league_id}/teams", response_model=list[TeamResponse])
async def list_teams(league_id: str, user=Depends(get_current_user)):
    await league_service.require_league(league_id)
    return [team_to_response(doc) for doc in await league_service.get_league_teams(league_id)]


@router.post("/{league_id}/teams", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(league_id: str, body: TeamCreate, user=Depends(get_current_user)):
    league = await _admin_league(league_id, user)
    return team_to_response(await league_service.create_team(league, body.name))


@router.get("/{league_id}/officials/{roster}", response_model=list[UserResponse])
async def list_officials(league_id: str, roster: str, user=Depends(get_current_user)):
    role = _roster_role(roster)
    league = await _admin_league(league_id, user)
    return [user_to_response(doc) for doc in await league_service.get_league_officials(league, role)]


@router.put("/{league_id}/officials/{roster}/{user_id}", response_model=LeagueResponse)
async def assign_official(league_id: str, roster: str, user_id: str, user=Depends(get_current_user)):
    role = _roster_role(roster)
    if role == Role.admin and user.get("role") != Role.owner.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have sufficient permissions.",
        )
    league = await _admin_league(league_id, user)
    official = await user_service.require_user(user_id)
    await league_service.assign_official(league, official, role)
    await log_audit(
        actor_id=str(user["_id"]), target_id=league_id, action="LEAGUE_OFFICIAL_ASSIGNED",
        metadata={"user_id": user_id, "role": role.value},
    )
    return league_to_response(await league_service.require_league(league_id))


@router.delete("/{league_id}/officials/{roster}/{user_id}", response_model=LeagueResponse)
async def unassign_official(league_id: str, roster: str, user_id: str, user=Depends(get_current_user)):
    role = _roster_role(roster)
    if role == Role.admin and user.get("role") != Role.owner.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have sufficient permissions.",
        )
    league = await _admin_league(league_id, user)
    if role != Role.admin:
        await match_service.validate_user_league_removal(league_id, user_id)
    await league_service.unassign_official(league, user_id, role)
    await log_audit(
        actor_id=str(user["_id"]), target_id=league_id, action="LEAGUE_OFFICIAL_REMOVED",
        metadata={"user_id": user_id, "role": role.value},
    )
    return league_to_response(await league_service.require_league(league_id))
