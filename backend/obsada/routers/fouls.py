"""
backend/obsada/routers/fouls.py

Purpose:
    Fouls recorded per match. League members may read them; only observers
    of the league may record, change or remove them.

Dependencies:
    - obsada.services.foul_service
    - obsada.services.league_service
    - obsada.services.match_service
"""

from fastapi import APIRouter, Depends, status

from obsada.models.fouls import FoulCreate, FoulResponse, FoulUpdate, foul_to_response
from obsada.models.user import Role
from obsada.services import league_service
from obsada.services.auth_service import get_current_user, require_roles
from obsada.services.foul_service import foul_service
from obsada.services.match_service import match_service

router = APIRouter(prefix="/api/leagues/{league_id}/matches/{match_id}/fouls", tags=["fouls"])

get_observer_user = require_roles(Role.observer)


async def _match_for(league_id: str, match_id: str, user: dict) -> dict:
    await league_service.require_league_member(league_id, user)
    return await match_service.require_match(match_id, league_id)


@router.get("", response_model=list[FoulResponse])
async def list_fouls(league_id: str, match_id: str, user=Depends(get_current_user)):
    await _match_for(league_id, match_id, user)
    return [foul_to_response(f) for f in await foul_service.get_by_match(match_id)]


@router.get("/{foul_id}", response_model=FoulResponse)
async def get_foul(league_id: str, match_id: str, foul_id: str, user=Depends(get_current_user)):
    await _match_for(league_id, match_id, user)
    return foul_to_response(await foul_service.require_foul(foul_id, match_id))


@router.post("", response_model=FoulResponse, status_code=status.HTTP_201_CREATED)
async def create_foul(league_id: str, match_id: str, body: FoulCreate, user=Depends(get_observer_user)):
    match = await _match_for(league_id, match_id, user)
    foul = await foul_service.create(match, body, actor_id=str(user["_id"]))
    return foul_to_response(foul)


@router.put("/{foul_id}", response_model=FoulResponse)
async def update_foul(
    league_id: str,
    match_id: str,
    foul_id: str,
    body: FoulUpdate,
    user=Depends(get_observer_user),
):
    match = await _match_for(league_id, match_id, user)
    foul = await foul_service.update(match, foul_id, body, actor_id=str(user["_id"]))
    return foul_to_response(foul)


@router.delete("/{foul_id}", response_model=FoulResponse)
async def remove_foul(league_id: str, match_id: str, foul_id: str, user=Depends(get_observer_user)):
    match = await _match_for(league_id, match_id, user)
    return foul_to_response(await foul_service.remove(match, foul_id, actor_id=str(user["_id"])))
