"""
backend/obsada/routers/matches.py

Purpose:
    League match API: scheduling, schedule import, grading, referee notes and
    report artifact keys. Access rules live here; match state rules live in
    the match service.

Dependencies:
    - obsada.services.match_service
    - obsada.services.match_import_service
    - obsada.services.league_service
    - obsada.services.foul_service
    - obsada.services.user_service
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from obsada.models.match import (
    GradeUpdate,
    MatchCreate,
    MatchInfo,
    MatchResponse,
    MatchUpdate,
    OverallGradeUpdate,
    RefereeNoteUpdate,
    ReportKeyUpdate,
    db_to_response,
)
from obsada.models.reports import ActionType, ReportType
from obsada.models.user import Role
from obsada.services import league_service, match_import_service, user_service
from obsada.services.auth_service import get_admin_user, get_current_user
from obsada.services.foul_service import foul_service
from obsada.services.match_service import match_service

logger = logging.getLogger("obsada.matches")

router = APIRouter(prefix="/api", tags=["matches"])


def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="User does not have sufficient permissions.",
    )


async def _league_for_admin(league_id: str, user: dict) -> dict:
    league = await league_service.require_league(league_id)
    if not league_service.is_league_admin(user, league):
        raise _forbidden()
    return league


def _is_official_of(user: dict, match: dict, field: str) -> bool:
    return match.get(field) == str(user["_id"])


async def _observer_phone(observer_id: str) -> str:
    observer = await user_service.require_user(observer_id)
    return observer["phone_number"]


async def _to_infos(matches: list[dict], hide_observer: bool) -> list[MatchInfo]:
    referees = await user_service.users_by_ids(m["referee_id"] for m in matches)
    observers = await user_service.users_by_ids(m["observer_id"] for m in matches)
    return [
        match_service.get_match_info(m, referees, observers, hide_observer=hide_observer)
        for m in matches
    ]


def _hides_observer(user: dict) -> bool:
    return user.get("role") == Role.referee.value


def _validate_payload(league: dict, body: MatchCreate) -> None:
    league_service.require_official(league, body.referee_id, Role.referee)
    league_service.require_official(league, body.observer_id, Role.observer)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.get("/matches", response_model=list[MatchResponse])
async def list_all_matches(_admin=Depends(get_admin_user)):
    """All matches across leagues (administrators only)."""
    return [db_to_response(m) for m in await match_service.get_all_matches()]


@router.get("/leagues/{league_id}/matches", response_model=list[MatchInfo])
async def list_league_matches(league_id: str, user=Depends(get_current_user)):
    await league_service.require_league_member(league_id, user)
    matches = await match_service.get_by_league(league_id)
    return await _to_infos(matches, hide_observer=_hides_observer(user))


@router.get("/leagues/{league_id}/users/{user_id}/matches", response_model=list[MatchInfo])
async def list_user_league_matches(league_id: str, user_id: str, user=Depends(get_current_user)):
    league = await league_service.require_league_member(league_id, user)
    if user_id != str(user["_id"]) and not league_service.is_league_admin(user, league):
        raise _forbidden()
    matches = await match_service.get_user_league_matches(league_id, user_id)
    return await _to_infos(matches, hide_observer=_hides_observer(user))


@router.get("/leagues/{league_id}/matches/{match_id}", response_model=MatchInfo)
async def get_match(league_id: str, match_id: str, user=Depends(get_current_user)):
    await league_service.require_league_member(league_id, user)
    match = await match_service.require_match(match_id, league_id)
    return (await _to_infos([match], hide_observer=_hides_observer(user)))[0]


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


@router.post(
    "/leagues/{league_id}/matches",
    response_model=MatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_match(league_id: str, body: MatchCreate, user=Depends(get_current_user)):
    league = await _league_for_admin(league_id, user)
    _validate_payload(league, body)
    league_idx, home_team_idx = await league_service.get_match_key_indices(league_id, body.home_team_id)
    match = await match_service.create_match(
        league_id,
        body,
        league_idx,
        home_team_idx,
        await _observer_phone(body.observer_id),
        actor_id=str(user["_id"]),
    )
    return db_to_response(match)


@router.post(
    "/leagues/{league_id}/matches/import",
    response_model=list[MatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def import_matches(
    league_id: str,
    file: UploadFile = File(..., description="Semicolon separated schedule"),
    user=Depends(get_current_user),
):
    """Create a league schedule from a CSV file. Any invalid line rejects the whole file."""
    league = await _league_for_admin(league_id, user)
    try:
        csv_text = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be UTF-8 text.") from None

    teams = await league_service.get_league_teams(league_id)
    referees = await league_service.get_league_officials(league, Role.referee)
    observers = await league_service.get_league_officials(league, Role.observer)
    league_idx = await league_service.get_league_index(league_id)

    created = await match_import_service.import_matches(
        match_service,
        league_id,
        csv_text,
        teams,
        referees,
        observers,
        league_idx,
        actor_id=str(user["_id"]),
    )
    return [db_to_response(m) for m in created]


@router.put("/leagues/{league_id}/matches/{match_id}", response_model=MatchResponse)
async def update_match(league_id: str, match_id: str, body: MatchUpdate, user=Depends(get_current_user)):
    league = await _league_for_admin(league_id, user)
    await match_service.require_match(match_id, league_id)
    _validate_payload(league, body)
    league_idx, home_team_idx = await league_service.get_match_key_indices(league_id, body.home_team_id)
    match = await match_service.update_match(
        match_id,
        body,
        league_idx,
        home_team_idx,
        await _observer_phone(body.observer_id),
        actor_id=str(user["_id"]),
    )
    return db_to_response(match)


@router.delete("/leagues/{league_id}/matches/{match_id}", response_model=MatchResponse)
async def remove_match(league_id: str, match_id: str, user=Depends(get_current_user)):
    await _league_for_admin(league_id, user)
    match = await match_service.require_match(match_id, league_id)
    removed = await match_service.remove_match(
        match_id,
        await _observer_phone(match["observer_id"]),
        actor_id=str(user["_id"]),
    )
    await foul_service.remove_for_match(match_id)
    return db_to_response(removed)


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------


@router.put("/leagues/{league_id}/matches/{match_id}/grade", response_model=MatchResponse)
async def update_grade(league_id: str, match_id: str, body: GradeUpdate, user=Depends(get_current_user)):
    """Referee grade, entered by the match observer or a league admin."""
    league = await league_service.require_league(league_id)
    match = await match_service.require_match(match_id, league_id)
    if not (_is_official_of(user, match, "observer_id") or league_service.is_league_admin(user, league)):
        raise _forbidden()
    updated = await match_service.update_grade(match_id, body.referee_grade, actor_id=str(user["_id"]))
    return db_to_response(updated)


@router.put("/leagues/{league_id}/matches/{match_id}/overall-grade", response_model=MatchResponse)
async def update_overall_grade(
    league_id: str,
    match_id: str,
    body: OverallGradeUpdate,
    user=Depends(get_current_user),
):
    await _league_for_admin(league_id, user)
    await match_service.require_match(match_id, league_id)
    updated = await match_service.update_overall_grade(match_id, body.overall_grade, actor_id=str(user["_id"]))
    return db_to_response(updated)


@router.put("/leagues/{league_id}/matches/{match_id}/referee-note", response_model=MatchResponse)
async def update_referee_note(
    league_id: str,
    match_id: str,
    body: RefereeNoteUpdate,
    user=Depends(get_current_user),
):
    league = await league_service.require_league(league_id)
    match = await match_service.require_match(match_id, league_id)
    if not (_is_official_of(user, match, "referee_id") or league_service.is_league_admin(user, league)):
        raise _forbidden()
    return db_to_response(await match_service.update_referee_note(match_id, body.referee_note))


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


async def _report_match(league_id: str, match_id: str, user: dict) -> dict:
    league = await league_service.require_league_member(league_id, user)
    match = await match_service.require_match(match_id, league_id)
    if league_service.is_league_admin(user, league):
        return match
    if _is_official_of(user, match, "referee_id") or _is_official_of(user, match, "observer_id"):
        return match
    raise _forbidden()


@router.get("/leagues/{league_id}/matches/{match_id}/reports/{report_type}")
async def get_report_key(
    league_id: str,
    match_id: str,
    report_type: ReportType,
    user=Depends(get_current_user),
) -> dict[str, Optional[str]]:
    await _report_match(league_id, match_id, user)
    match_service.validate_user_action(user, report_type, ActionType.view)
    key = await match_service.get_key_for_report(match_id, report_type)
    if key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found.")
    return {"key": key}


@router.put("/leagues/{league_id}/matches/{match_id}/reports/{report_type}", response_model=MatchResponse)
async def upload_report(
    league_id: str,
    match_id: str,
    report_type: ReportType,
    body: ReportKeyUpdate,
    user=Depends(get_current_user),
):
    match = await _report_match(league_id, match_id, user)
    match_service.validate_user_action(user, report_type, ActionType.upload)
    match_service.validate_match_not_upcoming(match)
    return db_to_response(await match_service.update_report_data(match_id, report_type, body.key))


@router.delete("/leagues/{league_id}/matches/{match_id}/reports/{report_type}", response_model=MatchResponse)
async def remove_report(
    league_id: str,
    match_id: str,
    report_type: ReportType,
    user=Depends(get_current_user),
):
    await _report_match(league_id, match_id, user)
    match_service.validate_user_action(user, report_type, ActionType.remove)
    return db_to_response(await match_service.remove_report(match_id, report_type))
