"""
backend/obsada/services/match_import_service.py

Purpose:
    Bulk import of a league schedule from semicolon-separated text.

    One match per line, exactly seven fields:
        home;away;YYYY-MM-DD;HH:mm;stadium;refereeLastName;observerLastName

    The whole batch is validated before anything is created. Any bad line
    rejects the batch with a 400 naming the (1-based) line.

Dependencies:
    - obsada.services.match_service
    - obsada.services.league_service
"""

import logging
import re
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status

from obsada.config import settings
from obsada.models.match import MatchCreate
from obsada.services.match_keys import get_user_readable_key
from obsada.services.match_service import MatchService, day_bounds
from obsada.utils import league_tz, utcnow

logger = logging.getLogger("obsada.match_import")

MATCH_PROPS_COUNT = 7
DELIMITER = ";"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M"

_LINE_SPLIT = re.compile(r"\r?\n|\r")


def _reject(message: str, line_no: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"{message} in line {line_no}.",
    )


def _lines(csv_text: str) -> list[tuple[int, str]]:
    return [
        (idx + 1, line)
        for idx, line in enumerate(_LINE_SPLIT.split(csv_text))
        if line.strip()
    ]


def get_maps(
    teams: list[dict],
    referees: list[dict],
    observers: list[dict],
) -> tuple[dict[str, dict], dict[str, dict], dict[str, dict]]:
    """Name lookups: teams by name, officials by last name."""
    teams_dict = {t["name"]: t for t in teams}
    referees_dict = {r["last_name"]: r for r in referees}
    observers_dict = {o["last_name"]: o for o in observers}
    return teams_dict, referees_dict, observers_dict


def _parse_datetime(date: str, time: str) -> datetime:
    naive = datetime.strptime(f"{date.strip()}T{time.strip()}", DATETIME_FORMAT)
    return naive.replace(tzinfo=league_tz(settings.LEAGUE_TIMEZONE))


def validate_matches(
    csv_text: str,
    teams: list[dict],
    referees: list[dict],
    observers: list[dict],
    now: Optional[datetime] = None,
) -> None:
    teams_dict, referees_dict, observers_dict = get_maps(teams, referees, observers)
    now = now or utcnow()

    lines = _lines(csv_text)
    if not lines:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No matches found.")

    for line_no, line in lines:
        props = line.split(DELIMITER)
        if len(props) != MATCH_PROPS_COUNT:
            raise _reject("Invalid number of match props", line_no)

        home, away, date, time, stadium, referee, observer = (p.strip() for p in props)

        if home not in teams_dict:
            raise _reject("Home team not found", line_no)
        if away not in teams_dict:
            raise _reject("Away team not found", line_no)
        if referee not in referees_dict:
            raise _reject("Referee not found", line_no)
        if observer not in observers_dict:
            raise _reject("Observer not found", line_no)

        try:
            match_date = _parse_datetime(date, time)
        except ValueError:
            raise _reject("Invalid date/time", line_no) from None

        if match_date < now:
            raise _reject("Match date/time is from the past", line_no)

        if not stadium:
            raise _reject("Stadium not found", line_no)


def get_file_matches_dtos(
    csv_text: str,
    teams: list[dict],
    referees: list[dict],
    observers: list[dict],
) -> list[tuple[int, MatchCreate]]:
    """Convert an already validated batch into (line number, payload) pairs."""
    teams_dict, referees_dict, observers_dict = get_maps(teams, referees, observers)
    dtos: list[tuple[int, MatchCreate]] = []
    for line_no, line in _lines(csv_text):
        home, away, date, time, stadium, referee, observer = (p.strip() for p in line.split(DELIMITER))
        dtos.append((
            line_no,
            MatchCreate(
                match_date=_parse_datetime(date, time),
                stadium=stadium,
                home_team_id=str(teams_dict[home]["_id"]),
                away_team_id=str(teams_dict[away]["_id"]),
                referee_id=str(referees_dict[referee]["_id"]),
                observer_id=str(observers_dict[observer]["_id"]),
            ),
        ))
    return dtos


def check_batch_conflicts(dtos: list[tuple[int, MatchCreate]]) -> None:
    """Reject two lines that put the same team on the same day, or a team against itself."""
    seen: dict[tuple[datetime, str], int] = {}
    for line_no, dto in dtos:
        if dto.home_team_id == dto.away_team_id:
            raise _reject("Home team same as away team", line_no)
        day, _ = day_bounds(dto.match_date, settings.LEAGUE_TIMEZONE)
        for team_id in (dto.home_team_id, dto.away_team_id):
            other = seen.get((day, team_id))
            if other is not None:
                raise _reject(f"Team already plays that day (line {other})", line_no)
            seen[(day, team_id)] = line_no


def check_batch_keys(
    dtos: list[tuple[int, MatchCreate]],
    league_idx: int,
    team_idx: dict[str, int],
) -> list[str]:
    """Keys of the batch in line order. Every line must yield one, and no two may share it."""
    seen: dict[str, int] = {}
    for line_no, dto in dtos:
        try:
            key = get_user_readable_key(dto.match_date, league_idx, team_idx[dto.home_team_id])
        except ValueError as exc:
            raise _reject(str(exc).rstrip("."), line_no) from None
        other = seen.get(key)
        if other is not None:
            raise _reject(f"Match key {key} already used (line {other})", line_no)
        seen[key] = line_no
    return list(seen)


async def import_matches(
    service: MatchService,
    league_id: str,
    csv_text: str,
    teams: list[dict],
    referees: list[dict],
    observers: list[dict],
    league_idx: int,
    actor_id: str,
) -> list[dict]:
    """Validate the whole batch, then create its matches in file order."""
    validate_matches(csv_text, teams, referees, observers)
    dtos = get_file_matches_dtos(csv_text, teams, referees, observers)
    check_batch_conflicts(dtos)

    team_idx = {str(t["_id"]): idx for idx, t in enumerate(teams)}
    keys = check_batch_keys(dtos, league_idx, team_idx)

    for (line_no, dto), key in zip(dtos, keys):
        try:
            await service.validate_match(dto)
        except HTTPException as exc:
            raise _reject(exc.detail.rstrip("."), line_no) from None
        stored = await service.get_by_user_readable_key(key)
        if stored and stored.get("referee_grade") is None:
            raise _reject(f"Match key {key} is already used by an ungraded match", line_no)

    observer_phones = {str(o["_id"]): o["phone_number"] for o in observers}

    created: list[dict] = []
    for _, dto in dtos:
        created.append(await service.create_match(
            league_id,
            dto,
            league_idx,
            team_idx[dto.home_team_id],
            observer_phones[dto.observer_id],
            actor_id=actor_id,
        ))
    logger.info("Imported %d matches into league %s", len(created), league_id)
    return created
